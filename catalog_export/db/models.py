from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from catalog_export.models.utils import generate_id


def _utcnow() -> datetime:
    return datetime.now(UTC)


class Base(DeclarativeBase):
    """Declarative base for all catalog_export tables."""

    pass


class TimeStampMixin:
    """Mixin that adds created_at / updated_at columns."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        onupdate=_utcnow,
        nullable=False,
    )


class MappingProfileRow(TimeStampMixin, Base):
    __tablename__ = "mapping_profiles"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_id)
    name: Mapped[str] = mapped_column(String, nullable=False)
    profile: Mapped[dict] = mapped_column(
        JSON,
        nullable=False,
        comment="MappingProfile.model_dump(mode='json')",
    )


class JobProfileRow(TimeStampMixin, Base):
    __tablename__ = "job_profiles"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_id)
    name: Mapped[str] = mapped_column(String, nullable=False)
    mapping_profile_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("mapping_profiles.id"),
        nullable=False,
    )
    is_deletion_profile: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )


class ExportJobRow(TimeStampMixin, Base):
    __tablename__ = "export_jobs"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_id)
    tenant_id: Mapped[str] = mapped_column(String, nullable=False)
    job_profile_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("job_profiles.id"),
        nullable=False,
    )
    record_category: Mapped[str] = mapped_column(String(32), nullable=False)
    file_location: Mapped[str] = mapped_column(String, nullable=False)
    from_id: Mapped[int] = mapped_column(Integer, nullable=False)
    to_id: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(String(32), nullable=False)
    exported: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    failed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    duplicated: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    not_found: Mapped[list] = mapped_column(JSON, nullable=False, default=list)

    __table_args__ = (Index("idx_export_jobs_status", "status"),)


class ExportIdRow(Base):
    """Ranked external identifiers of a job; ``rank`` is the page ordering."""

    __tablename__ = "export_ids"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_id)
    job_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("export_jobs.id"),
        nullable=False,
    )
    rank: Mapped[int] = mapped_column(Integer, nullable=False)
    external_id: Mapped[str] = mapped_column(String(36), nullable=False)

    __table_args__ = (Index("idx_export_ids_job_rank", "job_id", "rank"),)


class SourceRecordRow(TimeStampMixin, Base):
    __tablename__ = "source_records"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_id)
    external_id: Mapped[str] = mapped_column(String(36), nullable=False)
    scope: Mapped[str] = mapped_column(String, nullable=False)
    category: Mapped[str] = mapped_column(String(32), nullable=False)
    state: Mapped[str] = mapped_column(String(16), nullable=False)
    generation: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    content: Mapped[str] = mapped_column(Text, nullable=False)

    __table_args__ = (
        Index("idx_source_records_lookup", "scope", "category", "external_id"),
    )


class InventoryRecordRow(Base):
    __tablename__ = "inventory_records"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_id)
    external_id: Mapped[str] = mapped_column(String(36), nullable=False)
    scope: Mapped[str] = mapped_column(String, nullable=False)
    hrid: Mapped[str | None] = mapped_column(String, nullable=True)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    payload: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)

    __table_args__ = (
        Index("idx_inventory_records_lookup", "scope", "external_id", unique=True),
    )


class TenantRow(Base):
    """Consortium membership: which shared tenant a member tenant falls back to."""

    __tablename__ = "tenants"

    tenant_id: Mapped[str] = mapped_column(String, primary_key=True)
    central_tenant_id: Mapped[str] = mapped_column(String, nullable=False)


class ErrorLogRow(Base):
    __tablename__ = "error_logs"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_id)
    job_id: Mapped[str] = mapped_column(String(36), nullable=False)
    code: Mapped[str] = mapped_column(String(64), nullable=False)
    message_values: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        nullable=False,
    )
    seq: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        comment="Insertion order within the job",
    )

    __table_args__ = (Index("idx_error_logs_job_code", "job_id", "code"),)
