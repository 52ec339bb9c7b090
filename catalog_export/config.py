from __future__ import annotations

from typing import Any, Generic, TypeVar

from pydantic import BaseModel, Field

from catalog_export.storage.base import StorageBackend
from catalog_export.storage.sink import OUTPUT_BUFFER_SIZE
from catalog_export.store.base import Store


class ExportSettings(BaseModel):
    """Tunables of the export core."""

    export_ids_batch: int = Field(default=1000, ge=1)
    """Window size: identifiers fetched and processed together."""

    tmp_storage: str = "./data/tmp"
    """Local directory for output files before they are uploaded."""

    output_buffer_size: int = Field(default=OUTPUT_BUFFER_SIZE, ge=1)


T = TypeVar("T")


class _Registry(Generic[T]):
    """Lazily-populated factory registry.

    Each backend module registers itself via :meth:`register`.
    :meth:`build` resolves a provider name to a factory, calling
    ``factory.from_config(config)`` if available, otherwise
    ``factory(**config)``.
    """

    def __init__(self, label: str) -> None:
        self._label = label
        self._factories: dict[str, type[T]] = {}
        self._defaults_loaded = False

    def register(self, name: str, cls: type[T]) -> None:
        self._factories[name] = cls

    @property
    def available(self) -> list[str]:
        self._ensure_defaults()
        return list(self._factories)

    def build(self, provider: str, config: dict[str, Any]) -> T:
        self._ensure_defaults()
        factory = self._factories.get(provider)
        if factory is None:
            raise ValueError(
                f"Unknown {self._label} provider '{provider}'. "
                f"Available: {list(self._factories)}"
            )
        if hasattr(factory, "from_config"):
            return factory.from_config(config)  # type: ignore[return-value]
        return factory(**config)  # type: ignore[return-value]

    def _ensure_defaults(self) -> None:
        if not self._defaults_loaded:
            self._load_defaults()
            self._defaults_loaded = True

    def _load_defaults(self) -> None:
        """Override point: subclasses populate built-in factories here."""


class _StorageRegistry(_Registry[StorageBackend]):
    def _load_defaults(self) -> None:
        from catalog_export.storage.disk import DiskStorage

        self.register("disk", DiskStorage)

        try:
            from catalog_export.storage.gcs import GCSStorage

            self.register("gcs", GCSStorage)
        except ImportError:
            pass


class _StoreRegistry(_Registry[Store]):
    def _load_defaults(self) -> None:
        from catalog_export.store.memory import InMemoryStore

        self.register("memory", InMemoryStore)

        try:
            from catalog_export.store.postgres import PostgresStore

            self.register("postgres", PostgresStore)
        except ImportError:
            pass


# Singleton instances
storage_registry = _StorageRegistry("storage")
store_registry = _StoreRegistry("store")


def parse_config(
    config: dict[str, Any],
) -> tuple[StorageBackend, Store, ExportSettings]:
    """Parse a user config dict and return (storage, store, settings).

    Expected shape::

        {
            "storage": {"provider": "disk", "config": {"base_path": "./data/out"}},
            "store": {"provider": "postgres", "config": {"host": "localhost", ...}},
            "export": {"export_ids_batch": 1000, "tmp_storage": "./data/tmp"},
        }

    Storage defaults to disk under ``./data/output``; the store defaults
    to in-memory.
    """
    storage_cfg = config.get("storage", {})
    store_cfg = config.get("store", {})

    storage = storage_registry.build(
        storage_cfg.get("provider", "disk"),
        storage_cfg.get("config", {"base_path": "./data/output"}),
    )
    store = store_registry.build(
        store_cfg.get("provider", "memory"),
        store_cfg.get("config", {}),
    )
    settings = ExportSettings.model_validate(config.get("export", {}))

    return storage, store, settings
