from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path

import pytest

from catalog_export.config import ExportSettings
from catalog_export.export.reporter import ErrorReporter
from catalog_export.export.statistics import ExportStatistics
from catalog_export.export.strategy import ExportContext
from catalog_export.models import (
    ExportIdentifier,
    ExportJob,
    JobProfile,
    MappingProfile,
    RecordCategory,
    RecordState,
    SourceRecord,
)
from catalog_export.storage.disk import DiskStorage
from catalog_export.store.memory import InMemoryStore

TENANT = "diku"
CENTRAL_TENANT = "consortium"


def source_record(
    external_id: str,
    *,
    generation: int = 1,
    state: RecordState = RecordState.ACTIVE,
    scope: str = TENANT,
    category: RecordCategory = RecordCategory.INSTANCE,
    record_id: str | None = None,
    content: dict | str | None = None,
) -> SourceRecord:
    """Build a source record whose content echoes its identifiers."""
    if content is None:
        content = {"id": external_id, "generation": generation, "scope": scope}
    if not isinstance(content, str):
        content = json.dumps(content)
    return SourceRecord(
        id=record_id or f"{external_id}-g{generation}-{scope}",
        external_id=external_id,
        generation=generation,
        content=content,
        state=state.value,
        scope=scope,
        category=category.value,
    )


class MemorySink:
    """Collects written chunks; optionally fails on close."""

    def __init__(self, fail_on_close: Exception | None = None) -> None:
        self.chunks: list[bytes] = []
        self.closed = False
        self._fail_on_close = fail_on_close

    def write(self, data: bytes) -> None:
        self.chunks.append(data)

    def close(self) -> None:
        self.closed = True
        if self._fail_on_close is not None:
            raise self._fail_on_close

    @property
    def lines(self) -> list[dict]:
        return [json.loads(chunk) for chunk in self.chunks]


@dataclass
class Seeded:
    job: ExportJob
    job_profile: JobProfile
    mapping_profile: MappingProfile
    external_ids: list[str] = field(default_factory=list)


async def seed_job(
    store: InMemoryStore,
    external_ids: list[str],
    *,
    category: RecordCategory = RecordCategory.INSTANCE,
    is_deletion_profile: bool = False,
    is_default: bool = True,
    transformations: list | None = None,
) -> Seeded:
    """Persist profiles, a scheduled job and its ranked identifiers."""
    mapping_profile = MappingProfile(
        name="Default instances mapping profile",
        is_default=is_default,
        record_categories=[category.value],
        transformations=transformations or [],
    )
    await store.save_mapping_profile(mapping_profile)
    job_profile = JobProfile(
        name="Default job profile",
        mapping_profile_id=mapping_profile.id,
        is_deletion_profile=is_deletion_profile,
    )
    await store.save_job_profile(job_profile)
    job = ExportJob(
        tenant_id=TENANT,
        job_profile_id=job_profile.id,
        file_location="exports/job.jsonl",
        from_id=1,
        to_id=max(len(external_ids), 1),
        record_category=category.value,
    )
    await store.create_job(job)
    await store.add_export_ids(
        ExportIdentifier(job_id=job.id, rank=rank, external_id=external_id)
        for rank, external_id in enumerate(external_ids, start=1)
    )
    return Seeded(job, job_profile, mapping_profile, list(external_ids))


def make_context(store: InMemoryStore, seeded: Seeded) -> ExportContext:
    return ExportContext(
        job=seeded.job,
        job_profile=seeded.job_profile,
        mapping_profile=seeded.mapping_profile,
        reporter=ErrorReporter(store, seeded.job.id),
        statistics=ExportStatistics(),
    )


@pytest.fixture()
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture()
def output_dir(tmp_path: Path) -> Path:
    return tmp_path / "output"


@pytest.fixture()
def storage(output_dir: Path) -> DiskStorage:
    return DiskStorage(str(output_dir))


@pytest.fixture()
def settings(tmp_path: Path) -> ExportSettings:
    return ExportSettings(export_ids_batch=2, tmp_storage=str(tmp_path / "tmp"))
