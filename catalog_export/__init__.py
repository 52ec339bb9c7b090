from __future__ import annotations

from typing import Any

from catalog_export.config import ExportSettings, parse_config
from catalog_export.export.exceptions import ExportJobError
from catalog_export.export.orchestrator import ExportOrchestrator
from catalog_export.export.statistics import ExportStatistics, derive_status
from catalog_export.models import (
    ErrorEntry,
    ExportJob,
    ExportJobStatus,
    RecordCategory,
)
from catalog_export.storage.base import StorageBackend
from catalog_export.store.base import Store


__all__ = [
    "CatalogExport",
    "ExportJobError",
    "ExportJobStatus",
    "ExportSettings",
    "ExportStatistics",
    "RecordCategory",
    "derive_status",
]


class CatalogExport:
    """Main entry point for the catalog_export library.

    Usage::

        exporter = CatalogExport.from_config({
            "storage": {"provider": "disk", "config": {"base_path": "./data/output"}},
            "store": {
                "provider": "postgres",
                "config": {
                    "host": "localhost",
                    "port": 5432,
                    "database": "catalog_export",
                    "user": "postgres",
                    "password": "postgres",
                },
            },
            "export": {"export_ids_batch": 1000},
        })
        await exporter.init()
        statistics = await exporter.run_export(job_id)
    """

    def __init__(
        self,
        storage: StorageBackend,
        store: Store,
        settings: ExportSettings | None = None,
    ) -> None:
        self._storage = storage
        self._store = store
        self._settings = settings or ExportSettings()

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> CatalogExport:
        """Construct a CatalogExport instance from a configuration dict."""
        storage, store, settings = parse_config(config)
        return cls(storage=storage, store=store, settings=settings)

    @property
    def store(self) -> Store:
        return self._store

    @property
    def storage(self) -> StorageBackend:
        return self._storage

    async def init(self) -> None:
        await self._store.init()

    async def close(self) -> None:
        await self._store.close()

    async def run_export(self, job_id: str) -> ExportStatistics:
        """Export every identifier of a scheduled job and write its final status."""
        job = await self._store.get_job(job_id)
        if job is None:
            raise ExportJobError(f"Export job {job_id} not found")
        if job.is_finished:
            raise ExportJobError(f"Export job {job_id} already finished: {job.status}")

        orchestrator = ExportOrchestrator(self._store, self._storage, self._settings)
        return await orchestrator.run_export(job)

    async def get_job(self, job_id: str) -> ExportJob | None:
        return await self._store.get_job(job_id)

    async def get_errors(self, job_id: str) -> list[ErrorEntry]:
        return await self._store.get_errors(job_id)
