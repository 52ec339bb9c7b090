from __future__ import annotations

import os
from collections.abc import AsyncGenerator
from pathlib import Path

import pytest

from catalog_export.store.postgres import PostgresStore


def pytest_collection_modifyitems(items: list, config) -> None:  # noqa: ANN001
    """Auto-mark every test in the integration directory."""
    marker = pytest.mark.integration
    for item in items:
        item.add_marker(marker)


def _database_url(tmp_path: Path) -> str:
    """``CATALOG_EXPORT_TEST_DB_URL`` points the suite at a real
    PostgreSQL; otherwise a throwaway SQLite file is used."""
    return os.getenv(
        "CATALOG_EXPORT_TEST_DB_URL", f"sqlite+aiosqlite:///{tmp_path / 'export.db'}"
    )


@pytest.fixture()
async def pg_store(tmp_path: Path) -> AsyncGenerator[PostgresStore]:
    """Create a PostgresStore with a clean slate for each test."""
    store = PostgresStore(_database_url(tmp_path))
    await store.init()
    await store.reset()

    yield store

    await store.reset()
    await store.close()
