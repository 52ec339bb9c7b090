from __future__ import annotations

from catalog_export.export.generated import GeneratedRecordProducer
from catalog_export.export.strategies.authority import AuthorityExportStrategy
from catalog_export.export.strategies.instance import InstanceExportStrategy
from catalog_export.export.types import GeneratedResult
from catalog_export.models import ErrorCode, InventoryRecord, RecordCategory
from catalog_export.store.memory import InMemoryStore
from tests.conftest import TENANT, MemorySink, make_context, seed_job


async def test_instance_generated_from_inventory(store: InMemoryStore) -> None:
    seeded = await seed_job(store, ["a", "b"])
    await store.add_inventory_records(
        [InventoryRecord(external_id="a", title="Dune", hrid="in001", scope=TENANT)]
    )
    context = make_context(store, seeded)
    sink = MemorySink()

    result = await GeneratedRecordProducer(
        InstanceExportStrategy(store), context
    ).produce(["a", "b"], sink)

    assert [i for i, _ in result.records] == ["a"]
    assert result.not_found_ids == ["b"]
    assert sink.lines == [
        {"hrid": "in001", "id": "a", "source": "inventory", "title": "Dune"}
    ]
    assert context.statistics.exported == 1
    assert context.statistics.failed == 1
    assert context.statistics.not_found_ids == ["b"]
    errors = await store.get_errors(seeded.job.id)
    assert [e.message for e in errors] == ["Record not found: b"]


async def test_deletion_profile_generates_tombstones(store: InMemoryStore) -> None:
    seeded = await seed_job(store, ["a"], is_deletion_profile=True)
    await store.add_inventory_records(
        [InventoryRecord(external_id="a", title="Dune", scope=TENANT)]
    )
    context = make_context(store, seeded)
    sink = MemorySink()

    await GeneratedRecordProducer(InstanceExportStrategy(store), context).produce(
        ["a"], sink
    )

    assert sink.lines[0]["deleted"] is True


async def test_authority_cannot_be_generated(store: InMemoryStore) -> None:
    seeded = await seed_job(store, ["a", "b"], category=RecordCategory.AUTHORITY)
    context = make_context(store, seeded)
    sink = MemorySink()

    result = await GeneratedRecordProducer(
        AuthorityExportStrategy(store), context
    ).produce(["a", "b"], sink)

    assert result.records == []
    assert result.not_found_ids == ["a", "b"]
    assert sink.chunks == []
    assert context.statistics.failed == 2
    codes = [e.code for e in await store.get_errors(seeded.job.id)]
    assert codes == [ErrorCode.RECORD_NOT_FOUND, ErrorCode.RECORD_NOT_FOUND]


async def test_unhandled_identifier_becomes_not_found(store: InMemoryStore) -> None:
    seeded = await seed_job(store, ["a", "b"])
    context = make_context(store, seeded)

    class PartialStrategy(InstanceExportStrategy):
        async def synthesize(self, external_ids, context):  # noqa: ANN001, ANN202
            result = GeneratedResult()
            result.add_generated("a", b'{"id": "a"}\n')
            return result

    result = await GeneratedRecordProducer(PartialStrategy(store), context).produce(
        ["a", "b"], MemorySink()
    )

    assert result.not_found_ids == ["b"]
    assert context.statistics.exported == 1
    assert context.statistics.failed == 1


async def test_empty_request_does_nothing(store: InMemoryStore) -> None:
    seeded = await seed_job(store, ["a"])
    context = make_context(store, seeded)

    result = await GeneratedRecordProducer(
        InstanceExportStrategy(store), context
    ).produce([], MemorySink())

    assert result.handled_ids == set()
    assert await store.get_errors(seeded.job.id) == []
