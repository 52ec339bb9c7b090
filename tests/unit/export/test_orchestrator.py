from __future__ import annotations

import json
from pathlib import Path

import pytest

from catalog_export.config import ExportSettings
from catalog_export.export.exceptions import ExportJobError, OutputSinkError
from catalog_export.export.orchestrator import ExportOrchestrator
from catalog_export.export.strategies.instance import InstanceExportStrategy
from catalog_export.export.types import Window
from catalog_export.models import (
    ErrorCode,
    ExportJob,
    ExportJobStatus,
    InventoryRecord,
    RecordCategory,
    RecordState,
    ResolutionOutcome,
)
from catalog_export.storage.disk import DiskStorage
from catalog_export.store.memory import InMemoryStore
from tests.conftest import (
    CENTRAL_TENANT,
    TENANT,
    MemorySink,
    make_context,
    seed_job,
    source_record,
)


class _MemorySinkOrchestrator(ExportOrchestrator):
    def __init__(self, *args, sink: MemorySink, **kwargs) -> None:  # noqa: ANN002, ANN003
        super().__init__(*args, **kwargs)
        self.sink = sink

    def open_sink(self, job: ExportJob) -> MemorySink:  # type: ignore[override]
        return self.sink


async def _seed_abc(store: InMemoryStore):  # noqa: ANN202
    seeded = await seed_job(store, ["A", "B", "C"])
    await store.add_source_records([source_record("A")])
    await store.add_inventory_records(
        [InventoryRecord(external_id="B", title="Dune", hrid="in002", scope=TENANT)]
    )
    return seeded


def _output_lines(output_dir: Path) -> list[dict]:
    text = (output_dir / "exports" / "job.jsonl").read_text()
    return [json.loads(line) for line in text.splitlines()]


async def test_export_resolves_generates_and_reports_missing(
    store: InMemoryStore,
    storage: DiskStorage,
    output_dir: Path,
    settings: ExportSettings,
) -> None:
    seeded = await _seed_abc(store)

    statistics = await ExportOrchestrator(store, storage, settings).run_export(
        seeded.job
    )

    assert statistics.exported == 2
    assert statistics.failed >= 1
    assert statistics.duplicated == 0
    assert statistics.not_found_ids == ["C"]

    job = await store.get_job(seeded.job.id)
    assert job is not None
    assert job.status == ExportJobStatus.COMPLETED_WITH_ERRORS
    assert job.exported == 2
    assert job.not_found == ["C"]

    lines = _output_lines(output_dir)
    assert [line["id"] for line in lines] == ["A", "B"]
    codes = [e.code for e in await store.get_errors(seeded.job.id)]
    assert codes == [ErrorCode.RECORD_NOT_FOUND]


async def test_temp_file_removed_after_upload(
    store: InMemoryStore, storage: DiskStorage, settings: ExportSettings
) -> None:
    seeded = await _seed_abc(store)

    await ExportOrchestrator(store, storage, settings).run_export(seeded.job)

    assert not list(Path(settings.tmp_storage).rglob("*.jsonl"))


async def test_everything_exported_completes(
    store: InMemoryStore, storage: DiskStorage, settings: ExportSettings
) -> None:
    seeded = await seed_job(store, ["a", "b", "c"])
    await store.add_source_records([source_record(i) for i in seeded.external_ids])
    seen: list[int] = []

    statistics = await ExportOrchestrator(store, storage, settings).run_export(
        seeded.job, listener=seen.append
    )

    assert statistics.status == ExportJobStatus.COMPLETED
    assert seen == [1, 2, 3]


async def test_sink_close_failure_fails_whole_job(
    store: InMemoryStore, storage: DiskStorage, settings: ExportSettings
) -> None:
    ids = [f"id-{i}" for i in range(10)]
    seeded = await seed_job(store, ids)
    await store.add_source_records([source_record(i) for i in ids])
    sink = MemorySink(fail_on_close=OutputSinkError("exports/job.jsonl", "disk full"))

    statistics = await _MemorySinkOrchestrator(
        store, storage, settings, sink=sink
    ).run_export(seeded.job)

    assert len(sink.chunks) == 10
    assert statistics.exported == 0
    assert statistics.failed == 10
    job = await store.get_job(seeded.job.id)
    assert job is not None
    assert job.status == ExportJobStatus.FAILED
    assert job.exported == 0
    assert job.failed == 10
    errors = await store.get_errors(seeded.job.id)
    assert [e.code for e in errors] == [ErrorCode.GENERAL_ERROR]
    assert "disk full" in errors[0].message


async def test_identifier_store_failure_fails_whole_job(
    store: InMemoryStore, storage: DiskStorage, settings: ExportSettings
) -> None:
    seeded = await seed_job(store, ["a", "b", "c"])
    original = store.get_export_ids
    calls = 0

    async def flaky(*args, **kwargs):  # noqa: ANN002, ANN003, ANN202
        nonlocal calls
        calls += 1
        if calls > 1:
            raise RuntimeError("connection reset")
        return await original(*args, **kwargs)

    store.get_export_ids = flaky  # type: ignore[method-assign]
    await store.add_source_records([source_record("a"), source_record("b")])

    statistics = await ExportOrchestrator(store, storage, settings).run_export(
        seeded.job
    )

    assert statistics.exported == 0
    assert statistics.failed == 3
    assert statistics.status == ExportJobStatus.FAILED


async def test_record_store_failure_fails_whole_job(
    store: InMemoryStore, storage: DiskStorage, settings: ExportSettings
) -> None:
    seeded = await seed_job(store, ["a", "b", "c"])
    await store.add_source_records([source_record(i) for i in seeded.external_ids])

    async def unreachable(*args, **kwargs):  # noqa: ANN002, ANN003, ANN202
        raise ConnectionError("record store unreachable")

    store.find_non_deleted = unreachable  # type: ignore[method-assign]

    statistics = await ExportOrchestrator(store, storage, settings).run_export(
        seeded.job
    )

    total = await store.count_export_ids(seeded.job.id, 1, 3)
    assert statistics.exported == 0
    assert statistics.failed == total == 3
    job = await store.get_job(seeded.job.id)
    assert job is not None
    assert job.status == ExportJobStatus.FAILED
    assert job.exported == 0
    assert job.failed == total


async def test_unwritable_temp_storage_fails_whole_job(
    store: InMemoryStore, storage: DiskStorage, tmp_path: Path
) -> None:
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("")
    settings = ExportSettings(export_ids_batch=2, tmp_storage=str(blocker))
    seeded = await seed_job(store, ["a", "b"])
    await store.add_source_records([source_record(i) for i in seeded.external_ids])

    statistics = await ExportOrchestrator(store, storage, settings).run_export(
        seeded.job
    )

    assert statistics.exported == 0
    assert statistics.failed == 2
    job = await store.get_job(seeded.job.id)
    assert job is not None
    assert job.status == ExportJobStatus.FAILED
    codes = [e.code for e in await store.get_errors(seeded.job.id)]
    assert codes == [ErrorCode.GENERAL_ERROR]

async def test_latest_generation_wins_over_generated_record(
    store: InMemoryStore,
    storage: DiskStorage,
    output_dir: Path,
    settings: ExportSettings,
) -> None:
    seeded = await seed_job(store, ["A", "B", "C"])
    await store.add_source_records(
        [
            source_record("A"),
            source_record("B", generation=1),
            source_record("B", generation=2),
        ]
    )

    statistics = await ExportOrchestrator(store, storage, settings).run_export(
        seeded.job
    )

    assert statistics.exported == 2
    assert statistics.duplicated == 0
    assert statistics.not_found_ids == ["C"]
    lines = {line["id"]: line for line in _output_lines(output_dir)}
    assert set(lines) == {"A", "B"}
    assert lines["B"]["generation"] == 2



async def test_central_tenant_consulted_once_per_window(
    store: InMemoryStore, storage: DiskStorage, settings: ExportSettings
) -> None:
    seeded = await seed_job(store, ["a", "b"])
    await store.set_central_tenant(TENANT, CENTRAL_TENANT)
    await store.add_source_records(
        [
            source_record("a", scope=CENTRAL_TENANT),
            source_record("b", scope=CENTRAL_TENANT),
        ]
    )
    original = store.get_central_tenant_id
    calls: list[str] = []

    async def spy(tenant_id: str) -> str | None:
        calls.append(tenant_id)
        return await original(tenant_id)

    store.get_central_tenant_id = spy  # type: ignore[method-assign]

    statistics = await ExportOrchestrator(store, storage, settings).run_export(
        seeded.job
    )

    assert calls == [TENANT]
    assert statistics.exported == 2
    assert statistics.status == ExportJobStatus.COMPLETED


async def test_deleted_records_with_regular_profile(
    store: InMemoryStore, storage: DiskStorage, settings: ExportSettings
) -> None:
    seeded = await seed_job(store, ["a", "b"])
    await store.add_source_records(
        [source_record("a"), source_record("b", state=RecordState.DELETED)]
    )

    statistics = await ExportOrchestrator(store, storage, settings).run_export(
        seeded.job
    )

    assert statistics.exported == 1
    assert statistics.not_found_ids == ["b"]
    codes = [e.code for e in await store.get_errors(seeded.job.id)]
    assert ErrorCode.UUID_IS_SET_TO_DELETION in codes
    assert codes.count(ErrorCode.PROFILE_USED_ONLY_FOR_NON_DELETED) == 1


async def test_authority_needs_default_mapping_profile(
    store: InMemoryStore, storage: DiskStorage, settings: ExportSettings
) -> None:
    seeded = await seed_job(
        store, ["a"], category=RecordCategory.AUTHORITY, is_default=False
    )
    await store.add_source_records(
        [source_record("a", category=RecordCategory.AUTHORITY)]
    )

    statistics = await ExportOrchestrator(store, storage, settings).run_export(
        seeded.job
    )

    assert statistics.exported == 0
    assert statistics.not_found_ids == ["a"]
    assert statistics.status == ExportJobStatus.FAILED


async def test_authority_exported_from_source_records(
    store: InMemoryStore,
    storage: DiskStorage,
    output_dir: Path,
    settings: ExportSettings,
) -> None:
    seeded = await seed_job(store, ["a", "b"], category=RecordCategory.AUTHORITY)
    await store.add_source_records(
        [
            source_record("a", category=RecordCategory.AUTHORITY, generation=1),
            source_record("a", category=RecordCategory.AUTHORITY, generation=2),
            source_record("b", category=RecordCategory.AUTHORITY),
        ]
    )

    statistics = await ExportOrchestrator(store, storage, settings).run_export(
        seeded.job
    )

    assert statistics.exported == 2
    assert statistics.status == ExportJobStatus.COMPLETED
    lines = _output_lines(output_dir)
    assert {(line["id"], line["generation"]) for line in lines} == {("a", 2), ("b", 1)}


async def test_missing_job_profile_raises(
    store: InMemoryStore, storage: DiskStorage, settings: ExportSettings
) -> None:
    job = ExportJob(
        tenant_id=TENANT,
        job_profile_id="missing",
        file_location="exports/job.jsonl",
        from_id=1,
        to_id=1,
    )

    with pytest.raises(ExportJobError, match="missing"):
        await ExportOrchestrator(store, storage, settings).run_export(job)


async def test_process_window_reports_outcomes(
    store: InMemoryStore, storage: DiskStorage, settings: ExportSettings
) -> None:
    seeded = await _seed_abc(store)
    await store.add_source_records([source_record("D", content="[1, 2]")])
    context = make_context(store, seeded)
    strategy = InstanceExportStrategy(store)

    outcomes = await ExportOrchestrator(store, storage, settings).process_window(
        Window(number=1, external_ids=["A", "B", "C", "D"]),
        strategy,
        context,
        MemorySink(),
    )

    assert outcomes == {
        "A": ResolutionOutcome.RESOLVED,
        "B": ResolutionOutcome.GENERATED,
        "C": ResolutionOutcome.NOT_FOUND,
        "D": ResolutionOutcome.FAILED,
    }
