from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Iterable
from contextlib import asynccontextmanager

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from catalog_export.db.models import (
    Base,
    ErrorLogRow,
    ExportIdRow,
    ExportJobRow,
    InventoryRecordRow,
    JobProfileRow,
    MappingProfileRow,
    SourceRecordRow,
    TenantRow,
)
from catalog_export.models import (
    ErrorCode,
    ErrorEntry,
    ExportIdentifier,
    ExportJob,
    InventoryRecord,
    JobProfile,
    MappingProfile,
    SourceRecord,
)
from catalog_export.store.base import PageRequest, Slice, Store

logger = logging.getLogger(__name__)

# Bound on the size of ``IN (...)`` lists sent in one statement.
IN_CLAUSE_CHUNK_SIZE = 500


class PostgresStore(Store):
    """Store backed by SQLAlchemy's asyncio ORM.

    Production deployments use ``postgresql+asyncpg``; any async
    SQLAlchemy URL works (integration tests use ``sqlite+aiosqlite``).
    Translates to/from domain dataclasses at the boundary.
    """

    def __init__(
        self,
        url: str,
        *,
        pool_size: int | None = None,
        max_overflow: int | None = None,
    ) -> None:
        engine_kwargs: dict = {"echo": False}
        if pool_size is not None:
            engine_kwargs["pool_size"] = pool_size
        if max_overflow is not None:
            engine_kwargs["max_overflow"] = max_overflow
        self._engine = create_async_engine(url, **engine_kwargs)
        self._session_factory = async_sessionmaker(self._engine, expire_on_commit=False)
        self._scoped_session: AsyncSession | None = None

    @classmethod
    def from_params(
        cls,
        host: str,
        port: int,
        database: str,
        user: str,
        password: str,
        *,
        pool_size: int = 10,
        max_overflow: int = 20,
    ) -> PostgresStore:
        url = f"postgresql+asyncpg://{user}:{password}@{host}:{port}/{database}"
        return cls(url, pool_size=pool_size, max_overflow=max_overflow)

    @classmethod
    def from_config(cls, config: dict) -> PostgresStore:
        if "url" in config:
            return cls(config["url"])
        return cls.from_params(**config)

    @asynccontextmanager
    async def _auto_session(self) -> AsyncIterator[AsyncSession]:
        """Yield the scoped session if inside ``atomic()``, else a fresh
        auto-committing session that is closed after use."""
        if self._scoped_session is not None:
            yield self._scoped_session
            return
        session = self._session_factory()
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()

    # ── Lifecycle ────────────────────────────────────────────────────

    async def init(self) -> None:
        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def reset(self) -> None:
        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
        await self.init()

    async def close(self) -> None:
        await self._engine.dispose()

    @asynccontextmanager
    async def atomic(self) -> AsyncIterator[None]:
        session = self._session_factory()
        self._scoped_session = session
        try:
            yield
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()
            self._scoped_session = None

    # ── Jobs & profiles ──────────────────────────────────────────────

    async def create_job(self, job: ExportJob) -> ExportJob:
        async with self._auto_session() as s:
            s.add(
                ExportJobRow(
                    id=job.id,
                    tenant_id=job.tenant_id,
                    job_profile_id=job.job_profile_id,
                    record_category=job.record_category,
                    file_location=job.file_location,
                    from_id=job.from_id,
                    to_id=job.to_id,
                    status=job.status,
                    exported=job.exported,
                    failed=job.failed,
                    duplicated=job.duplicated,
                    not_found=list(job.not_found),
                )
            )
        return job

    async def get_job(self, job_id: str) -> ExportJob | None:
        async with self._auto_session() as s:
            row = await s.get(ExportJobRow, job_id)
        if row is None:
            return None
        return _job_from_orm(row)

    async def update_job(self, job: ExportJob) -> None:
        async with self._auto_session() as s:
            row = await s.get(ExportJobRow, job.id)
            if row is None:
                raise ValueError(f"ExportJob {job.id} not found")
            row.status = job.status
            row.exported = job.exported
            row.failed = job.failed
            row.duplicated = job.duplicated
            row.not_found = list(job.not_found)

    async def save_job_profile(self, profile: JobProfile) -> JobProfile:
        async with self._auto_session() as s:
            await s.merge(
                JobProfileRow(
                    id=profile.id,
                    name=profile.name,
                    mapping_profile_id=profile.mapping_profile_id,
                    is_deletion_profile=profile.is_deletion_profile,
                )
            )
        return profile

    async def get_job_profile(self, profile_id: str) -> JobProfile | None:
        async with self._auto_session() as s:
            row = await s.get(JobProfileRow, profile_id)
        if row is None:
            return None
        return JobProfile(
            id=row.id,
            name=row.name,
            mapping_profile_id=row.mapping_profile_id,
            is_deletion_profile=row.is_deletion_profile,
        )

    async def save_mapping_profile(self, profile: MappingProfile) -> MappingProfile:
        async with self._auto_session() as s:
            await s.merge(
                MappingProfileRow(
                    id=profile.id,
                    name=profile.name,
                    profile=profile.model_dump(mode="json"),
                )
            )
        return profile

    async def get_mapping_profile(self, profile_id: str) -> MappingProfile | None:
        async with self._auto_session() as s:
            row = await s.get(MappingProfileRow, profile_id)
        if row is None:
            return None
        return MappingProfile.model_validate(row.profile)

    # ── Export identifiers ───────────────────────────────────────────

    async def add_export_ids(self, ids: Iterable[ExportIdentifier]) -> int:
        rows = [
            ExportIdRow(job_id=i.job_id, rank=i.rank, external_id=i.external_id)
            for i in ids
        ]
        async with self._auto_session() as s:
            s.add_all(rows)
        return len(rows)

    async def get_export_ids(
        self,
        job_id: str,
        from_id: int,
        to_id: int,
        page_request: PageRequest,
    ) -> Slice:
        # One extra row tells us whether another page exists.
        stmt = (
            select(ExportIdRow.external_id)
            .where(
                ExportIdRow.job_id == job_id,
                ExportIdRow.rank >= from_id,
                ExportIdRow.rank <= to_id,
            )
            .order_by(ExportIdRow.rank, ExportIdRow.id)
            .offset(page_request.offset)
            .limit(page_request.size + 1)
        )
        async with self._auto_session() as s:
            content = list((await s.execute(stmt)).scalars().all())
        return Slice(
            content=content[: page_request.size],
            page_request=page_request,
            has_next=len(content) > page_request.size,
        )

    async def count_export_ids(self, job_id: str, from_id: int, to_id: int) -> int:
        stmt = select(func.count(ExportIdRow.id)).where(
            ExportIdRow.job_id == job_id,
            ExportIdRow.rank >= from_id,
            ExportIdRow.rank <= to_id,
        )
        async with self._auto_session() as s:
            return (await s.execute(stmt)).scalar() or 0

    # ── Source records ───────────────────────────────────────────────

    async def add_source_records(self, records: Iterable[SourceRecord]) -> int:
        rows = [
            SourceRecordRow(
                id=r.id,
                external_id=r.external_id,
                scope=r.scope,
                category=r.category,
                state=r.state,
                generation=r.generation,
                content=r.content,
            )
            for r in records
        ]
        async with self._auto_session() as s:
            s.add_all(rows)
        return len(rows)

    async def find_non_deleted(
        self,
        scope: str,
        category: str,
        external_ids: Iterable[str],
    ) -> list[SourceRecord]:
        found: list[SourceRecord] = []
        async with self._auto_session() as s:
            for chunk in _chunks(list(external_ids), IN_CLAUSE_CHUNK_SIZE):
                stmt = (
                    select(SourceRecordRow)
                    .where(
                        SourceRecordRow.scope == scope,
                        SourceRecordRow.category == category,
                        SourceRecordRow.external_id.in_(chunk),
                    )
                    .order_by(SourceRecordRow.external_id, SourceRecordRow.generation)
                )
                rows = (await s.execute(stmt)).scalars().all()
                found.extend(_record_from_orm(r) for r in rows)
        return found

    async def add_inventory_records(self, records: Iterable[InventoryRecord]) -> int:
        rows = [
            InventoryRecordRow(
                external_id=r.external_id,
                scope=r.scope,
                hrid=r.hrid,
                title=r.title,
                payload=r.payload,
            )
            for r in records
        ]
        async with self._auto_session() as s:
            s.add_all(rows)
        return len(rows)

    async def find_inventory(
        self, scope: str, external_ids: Iterable[str]
    ) -> dict[str, InventoryRecord]:
        found: dict[str, InventoryRecord] = {}
        async with self._auto_session() as s:
            for chunk in _chunks(list(external_ids), IN_CLAUSE_CHUNK_SIZE):
                stmt = select(InventoryRecordRow).where(
                    InventoryRecordRow.scope == scope,
                    InventoryRecordRow.external_id.in_(chunk),
                )
                for row in (await s.execute(stmt)).scalars().all():
                    found[row.external_id] = InventoryRecord(
                        external_id=row.external_id,
                        scope=row.scope,
                        hrid=row.hrid,
                        title=row.title,
                        payload=dict(row.payload or {}),
                    )
        return found

    # ── Tenants ──────────────────────────────────────────────────────

    async def set_central_tenant(self, tenant_id: str, central_tenant_id: str) -> None:
        async with self._auto_session() as s:
            await s.merge(
                TenantRow(tenant_id=tenant_id, central_tenant_id=central_tenant_id)
            )

    async def get_central_tenant_id(self, tenant_id: str) -> str | None:
        async with self._auto_session() as s:
            row = await s.get(TenantRow, tenant_id)
        if row is None or not row.central_tenant_id:
            return None
        return row.central_tenant_id

    # ── Error log ────────────────────────────────────────────────────

    async def save_error(self, entry: ErrorEntry) -> ErrorEntry:
        async with self._auto_session() as s:
            seq_stmt = select(func.count(ErrorLogRow.id)).where(
                ErrorLogRow.job_id == entry.job_id
            )
            seq = (await s.execute(seq_stmt)).scalar() or 0
            s.add(
                ErrorLogRow(
                    id=entry.id,
                    job_id=entry.job_id,
                    code=str(entry.code),
                    message_values=list(entry.message_values),
                    created_at=entry.created_at,
                    seq=seq,
                )
            )
        return entry

    async def has_error(self, job_id: str, code: ErrorCode) -> bool:
        stmt = (
            select(ErrorLogRow.id)
            .where(ErrorLogRow.job_id == job_id, ErrorLogRow.code == str(code))
            .limit(1)
        )
        async with self._auto_session() as s:
            return (await s.execute(stmt)).first() is not None

    async def get_errors(self, job_id: str) -> list[ErrorEntry]:
        stmt = (
            select(ErrorLogRow)
            .where(ErrorLogRow.job_id == job_id)
            .order_by(ErrorLogRow.seq)
        )
        async with self._auto_session() as s:
            rows = list((await s.execute(stmt)).scalars().all())
        return [
            ErrorEntry(
                id=r.id,
                job_id=r.job_id,
                code=r.code,
                message_values=list(r.message_values),
                created_at=r.created_at,
            )
            for r in rows
        ]


# ── Row → domain ─────────────────────────────────────────────────────


def _job_from_orm(row: ExportJobRow) -> ExportJob:
    return ExportJob(
        id=row.id,
        tenant_id=row.tenant_id,
        job_profile_id=row.job_profile_id,
        record_category=row.record_category,
        file_location=row.file_location,
        from_id=row.from_id,
        to_id=row.to_id,
        status=row.status,
        exported=row.exported,
        failed=row.failed,
        duplicated=row.duplicated,
        not_found=list(row.not_found or []),
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _record_from_orm(row: SourceRecordRow) -> SourceRecord:
    return SourceRecord(
        id=row.id,
        external_id=row.external_id,
        generation=row.generation,
        content=row.content,
        state=row.state,
        scope=row.scope,
        category=row.category,
    )


def _chunks(items: list[str], size: int) -> Iterable[list[str]]:
    for i in range(0, len(items), size):
        yield items[i : i + size]
