from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Iterable
from contextlib import asynccontextmanager
from dataclasses import dataclass
from types import TracebackType

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


@dataclass(frozen=True)
class PageRequest:
    """Zero-based page over a stable ordering."""

    page: int
    size: int

    def __post_init__(self) -> None:
        if self.size < 1:
            raise ValueError("page size must be positive")
        if self.page < 0:
            raise ValueError("page must not be negative")

    @property
    def offset(self) -> int:
        return self.page * self.size

    def next(self) -> PageRequest:
        return PageRequest(page=self.page + 1, size=self.size)


@dataclass(frozen=True)
class Slice:
    """One page of external identifiers plus whether more remain."""

    content: list[str]
    page_request: PageRequest
    has_next: bool

    def next_page_request(self) -> PageRequest:
        return self.page_request.next()


class Store(ABC):
    """Abstract store for every collaborator the export core reads from
    or writes to.

    Implementations must override every ``@abstractmethod``.
    The default ``atomic()`` is a no-op suitable for in-memory stores;
    database-backed stores override it to provide a transactional
    boundary.
    """

    # ── Lifecycle ────────────────────────────────────────────────────

    @abstractmethod
    async def init(self) -> None:
        """Create tables / indices (idempotent)."""
        ...

    @abstractmethod
    async def reset(self) -> None:
        """Drop all data and recreate from scratch."""
        ...

    @abstractmethod
    async def close(self) -> None:
        """Release any held resources (connections, file handles)."""
        ...

    async def __aenter__(self) -> Store:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.close()

    @asynccontextmanager
    async def atomic(self) -> AsyncIterator[None]:
        """Wrap multiple operations in a single commit.

        The default implementation is a no-op (each operation is
        auto-committed).
        """
        yield

    # ── Jobs & profiles ──────────────────────────────────────────────

    @abstractmethod
    async def create_job(self, job: ExportJob) -> ExportJob:
        ...

    @abstractmethod
    async def get_job(self, job_id: str) -> ExportJob | None:
        ...

    @abstractmethod
    async def update_job(self, job: ExportJob) -> None:
        """Persist status and counters of an existing job."""
        ...

    @abstractmethod
    async def save_job_profile(self, profile: JobProfile) -> JobProfile:
        ...

    @abstractmethod
    async def get_job_profile(self, profile_id: str) -> JobProfile | None:
        ...

    @abstractmethod
    async def save_mapping_profile(self, profile: MappingProfile) -> MappingProfile:
        ...

    @abstractmethod
    async def get_mapping_profile(self, profile_id: str) -> MappingProfile | None:
        ...

    # ── Export identifiers ───────────────────────────────────────────

    @abstractmethod
    async def add_export_ids(self, ids: Iterable[ExportIdentifier]) -> int:
        """Persist ranked identifiers.  Returns the number inserted."""
        ...

    @abstractmethod
    async def get_export_ids(
        self,
        job_id: str,
        from_id: int,
        to_id: int,
        page_request: PageRequest,
    ) -> Slice:
        """Return one page of the job's identifiers with
        ``from_id <= rank <= to_id``, ordered by rank."""
        ...

    @abstractmethod
    async def count_export_ids(self, job_id: str, from_id: int, to_id: int) -> int:
        ...

    # ── Source records ───────────────────────────────────────────────

    @abstractmethod
    async def add_source_records(self, records: Iterable[SourceRecord]) -> int:
        ...

    @abstractmethod
    async def find_non_deleted(
        self,
        scope: str,
        category: str,
        external_ids: Iterable[str],
    ) -> list[SourceRecord]:
        """Return candidate records of *category* in tenant *scope*.

        "Non-deleted" means the record has not been purged from the
        source; records whose state is ``DELETED`` (set for deletion)
        are still returned.
        """
        ...

    @abstractmethod
    async def add_inventory_records(self, records: Iterable[InventoryRecord]) -> int:
        ...

    @abstractmethod
    async def find_inventory(
        self, scope: str, external_ids: Iterable[str]
    ) -> dict[str, InventoryRecord]:
        """Return inventory records keyed by external id (missing ids are skipped)."""
        ...

    # ── Tenants ──────────────────────────────────────────────────────

    @abstractmethod
    async def set_central_tenant(self, tenant_id: str, central_tenant_id: str) -> None:
        ...

    @abstractmethod
    async def get_central_tenant_id(self, tenant_id: str) -> str | None:
        """Return the shared upstream tenant for *tenant_id*, if configured."""
        ...

    # ── Error log ────────────────────────────────────────────────────

    @abstractmethod
    async def save_error(self, entry: ErrorEntry) -> ErrorEntry:
        ...

    @abstractmethod
    async def has_error(self, job_id: str, code: ErrorCode) -> bool:
        """Whether an entry with *code* was already recorded for the job."""
        ...

    @abstractmethod
    async def get_errors(self, job_id: str) -> list[ErrorEntry]:
        """Return the job's error log in insertion order."""
        ...
