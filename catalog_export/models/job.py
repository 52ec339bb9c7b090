from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import UTC, datetime

from catalog_export.models.utils import generate_id


def _utcnow() -> datetime:
    return datetime.now(UTC)


class RecordCategory(enum.StrEnum):
    """Kind of catalog record a job exports."""

    INSTANCE = "instance"
    AUTHORITY = "authority"


class ExportJobStatus(enum.StrEnum):
    SCHEDULED = "SCHEDULED"
    COMPLETED = "COMPLETED"
    COMPLETED_WITH_ERRORS = "COMPLETED_WITH_ERRORS"
    FAILED = "FAILED"


TERMINAL_STATUSES = frozenset(
    {
        ExportJobStatus.COMPLETED,
        ExportJobStatus.COMPLETED_WITH_ERRORS,
        ExportJobStatus.FAILED,
    }
)


@dataclass
class ExportJob:
    """One export run over a contiguous range of the ranked identifier store.

    ``from_id`` / ``to_id`` are inclusive bounds on the rank of the
    job's export identifiers.  The core only ever writes ``status`` and
    the counter fields.
    """

    tenant_id: str
    job_profile_id: str
    file_location: str
    from_id: int
    to_id: int
    record_category: str = RecordCategory.INSTANCE.value

    id: str = field(default_factory=generate_id)
    status: str = ExportJobStatus.SCHEDULED.value
    exported: int = 0
    failed: int = 0
    duplicated: int = 0
    not_found: list[str] = field(default_factory=list)
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)

    def __post_init__(self) -> None:
        if self.from_id > self.to_id:
            raise ValueError(
                f"from_id ({self.from_id}) must not exceed to_id ({self.to_id})"
            )

    @property
    def is_finished(self) -> bool:
        return self.status in TERMINAL_STATUSES


@dataclass
class ExportIdentifier:
    """A ranked external identifier belonging to a job."""

    job_id: str
    rank: int
    external_id: str
