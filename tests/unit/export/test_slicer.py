from __future__ import annotations

import pytest

from catalog_export.export.exceptions import IdentifierStoreUnavailableError
from catalog_export.export.slicer import IdentifierSlicer
from catalog_export.store.base import PageRequest, Slice
from catalog_export.store.memory import InMemoryStore
from tests.conftest import seed_job


async def _collect(slicer: IdentifierSlicer, job) -> list[list[str]]:  # noqa: ANN001
    return [window.external_ids async for window in slicer.windows(job)]


@pytest.mark.parametrize(("count", "batch_size"), [(5, 2), (6, 3), (1, 10), (7, 1)])
async def test_windows_cover_range_exactly_once(
    store: InMemoryStore, count: int, batch_size: int
) -> None:
    ids = [f"id-{i}" for i in range(count)]
    seeded = await seed_job(store, ids)

    windows = await _collect(IdentifierSlicer(store, batch_size), seeded.job)

    assert len(windows) == -(-count // batch_size)
    assert [i for window in windows for i in window] == ids
    assert all(len(window) <= batch_size for window in windows)


async def test_windows_are_numbered_from_one(store: InMemoryStore) -> None:
    seeded = await seed_job(store, ["a", "b", "c"])

    numbers = [w.number async for w in IdentifierSlicer(store, 2).windows(seeded.job)]

    assert numbers == [1, 2]


async def test_empty_page_does_not_consume_a_window_number(
    store: InMemoryStore,
) -> None:
    seeded = await seed_job(store, ["a", "b"])
    original = store.get_export_ids
    calls = 0

    async def leading_empty_page(job_id, from_id, to_id, page_request):  # noqa: ANN001, ANN202
        nonlocal calls
        calls += 1
        if calls == 1:
            return Slice(content=[], page_request=page_request, has_next=True)
        shifted = PageRequest(page=page_request.page - 1, size=page_request.size)
        return await original(job_id, from_id, to_id, shifted)

    store.get_export_ids = leading_empty_page  # type: ignore[method-assign]

    windows = [w async for w in IdentifierSlicer(store, 2).windows(seeded.job)]

    assert [w.number for w in windows] == [1]
    assert windows[0].external_ids == ["a", "b"]


async def test_repeated_identifier_within_page_appears_once(
    store: InMemoryStore,
) -> None:
    seeded = await seed_job(store, ["a", "b", "a", "c"])

    windows = await _collect(IdentifierSlicer(store, 4), seeded.job)

    assert windows == [["a", "b", "c"]]


async def test_empty_range_yields_nothing(store: InMemoryStore) -> None:
    seeded = await seed_job(store, [])

    assert await _collect(IdentifierSlicer(store, 3), seeded.job) == []


async def test_store_failure_is_job_fatal(store: InMemoryStore) -> None:
    seeded = await seed_job(store, ["a"])

    async def broken(*args, **kwargs):  # noqa: ANN002, ANN003, ANN202
        raise RuntimeError("connection refused")

    store.get_export_ids = broken  # type: ignore[method-assign]

    with pytest.raises(IdentifierStoreUnavailableError, match="connection refused"):
        await _collect(IdentifierSlicer(store, 3), seeded.job)


def test_batch_size_must_be_positive(store: InMemoryStore) -> None:
    with pytest.raises(ValueError):
        IdentifierSlicer(store, 0)
