from __future__ import annotations

from collections.abc import Iterable

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


class InMemoryStore(Store):
    """Store backed by plain Python dicts.

    Safe within a single asyncio event loop (no concurrent mutation).
    ``atomic()`` is inherited as a no-op from the base class.
    """

    def __init__(self) -> None:
        self._jobs: dict[str, ExportJob] = {}
        self._job_profiles: dict[str, JobProfile] = {}
        self._mapping_profiles: dict[str, MappingProfile] = {}
        self._export_ids: dict[str, list[ExportIdentifier]] = {}
        self._records: list[SourceRecord] = []
        self._inventory: dict[tuple[str, str], InventoryRecord] = {}
        self._central_tenants: dict[str, str] = {}
        self._errors: list[ErrorEntry] = []

    # ── Lifecycle ────────────────────────────────────────────────────

    async def init(self) -> None:
        pass

    async def reset(self) -> None:
        self.__init__()  # type: ignore[misc]

    async def close(self) -> None:
        pass

    # ── Jobs & profiles ──────────────────────────────────────────────

    async def create_job(self, job: ExportJob) -> ExportJob:
        self._jobs[job.id] = job
        return job

    async def get_job(self, job_id: str) -> ExportJob | None:
        return self._jobs.get(job_id)

    async def update_job(self, job: ExportJob) -> None:
        self._jobs[job.id] = job

    async def save_job_profile(self, profile: JobProfile) -> JobProfile:
        self._job_profiles[profile.id] = profile
        return profile

    async def get_job_profile(self, profile_id: str) -> JobProfile | None:
        return self._job_profiles.get(profile_id)

    async def save_mapping_profile(self, profile: MappingProfile) -> MappingProfile:
        self._mapping_profiles[profile.id] = profile
        return profile

    async def get_mapping_profile(self, profile_id: str) -> MappingProfile | None:
        return self._mapping_profiles.get(profile_id)

    # ── Export identifiers ───────────────────────────────────────────

    async def add_export_ids(self, ids: Iterable[ExportIdentifier]) -> int:
        count = 0
        for export_id in ids:
            self._export_ids.setdefault(export_id.job_id, []).append(export_id)
            count += 1
        return count

    def _ranked(self, job_id: str, from_id: int, to_id: int) -> list[ExportIdentifier]:
        rows = [
            r for r in self._export_ids.get(job_id, []) if from_id <= r.rank <= to_id
        ]
        return sorted(rows, key=lambda r: r.rank)

    async def get_export_ids(
        self,
        job_id: str,
        from_id: int,
        to_id: int,
        page_request: PageRequest,
    ) -> Slice:
        rows = self._ranked(job_id, from_id, to_id)
        start = page_request.offset
        end = start + page_request.size
        return Slice(
            content=[r.external_id for r in rows[start:end]],
            page_request=page_request,
            has_next=end < len(rows),
        )

    async def count_export_ids(self, job_id: str, from_id: int, to_id: int) -> int:
        return len(self._ranked(job_id, from_id, to_id))

    # ── Source records ───────────────────────────────────────────────

    async def add_source_records(self, records: Iterable[SourceRecord]) -> int:
        before = len(self._records)
        self._records.extend(records)
        return len(self._records) - before

    async def find_non_deleted(
        self,
        scope: str,
        category: str,
        external_ids: Iterable[str],
    ) -> list[SourceRecord]:
        wanted = set(external_ids)
        return [
            r
            for r in self._records
            if r.scope == scope and r.category == category and r.external_id in wanted
        ]

    async def add_inventory_records(self, records: Iterable[InventoryRecord]) -> int:
        count = 0
        for record in records:
            self._inventory[(record.scope, record.external_id)] = record
            count += 1
        return count

    async def find_inventory(
        self, scope: str, external_ids: Iterable[str]
    ) -> dict[str, InventoryRecord]:
        found: dict[str, InventoryRecord] = {}
        for external_id in external_ids:
            record = self._inventory.get((scope, external_id))
            if record is not None:
                found[external_id] = record
        return found

    # ── Tenants ──────────────────────────────────────────────────────

    async def set_central_tenant(self, tenant_id: str, central_tenant_id: str) -> None:
        self._central_tenants[tenant_id] = central_tenant_id

    async def get_central_tenant_id(self, tenant_id: str) -> str | None:
        return self._central_tenants.get(tenant_id)

    # ── Error log ────────────────────────────────────────────────────

    async def save_error(self, entry: ErrorEntry) -> ErrorEntry:
        self._errors.append(entry)
        return entry

    async def has_error(self, job_id: str, code: ErrorCode) -> bool:
        return any(e.job_id == job_id and e.code == code for e in self._errors)

    async def get_errors(self, job_id: str) -> list[ErrorEntry]:
        return [e for e in self._errors if e.job_id == job_id]
