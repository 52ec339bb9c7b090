"""Configuration management for the catalog-export CLI.

Reads a TOML config file into a typed Config dataclass.
Default location: ``~/.config/catalog-export/config.toml``.
Override with the ``CATALOG_EXPORT_CONFIG`` environment variable.

Example::

    [store]
    provider = "postgres"

    [database]
    host = "localhost"
    port = 5432
    name = "catalog_export"

    [export]
    batch_size = 1000

    [data]
    dir = "./data"
"""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any

_DEFAULT_CONFIG_DIR = Path("~/.config/catalog-export").expanduser()
_DEFAULT_DATA_DIR = Path("./data")


def _config_path() -> Path:
    env = os.environ.get("CATALOG_EXPORT_CONFIG")
    if env:
        return Path(env).expanduser()
    return _DEFAULT_CONFIG_DIR / "config.toml"


@dataclass
class Config:
    # Store backend: "memory" (no persistence) or "postgres"
    store_provider: str = "postgres"

    db_host: str = "localhost"
    db_port: int = 5432
    db_name: str = "catalog_export"
    db_user: str = "postgres"
    db_password: str = "postgres"

    batch_size: int = 1000
    data_dir: str = str(_DEFAULT_DATA_DIR)

    @property
    def output_dir(self) -> Path:
        return Path(self.data_dir) / "output"

    @property
    def tmp_dir(self) -> Path:
        return Path(self.data_dir) / "tmp"

    @property
    def uses_postgres(self) -> bool:
        return self.store_provider == "postgres"

    def to_dict(self) -> dict[str, Any]:
        """Canonical config dict for :meth:`CatalogExport.from_config`."""
        store_config: dict[str, Any] = {}
        if self.uses_postgres:
            store_config = {
                "host": self.db_host,
                "port": self.db_port,
                "database": self.db_name,
                "user": self.db_user,
                "password": self.db_password,
            }
        return {
            "storage": {"provider": "disk", "config": {"base_path": str(self.output_dir)}},
            "store": {"provider": self.store_provider, "config": store_config},
            "export": {
                "export_ids_batch": self.batch_size,
                "tmp_storage": str(self.tmp_dir),
            },
        }


def load_config() -> Config:
    """Load config from disk, falling back to defaults + env overrides."""
    path = _config_path()
    cfg = Config()

    if path.exists():
        with open(path, "rb") as f:
            data = tomllib.load(f)
        store_section = data.get("store", {})
        db_section = data.get("database", {})
        export_section = data.get("export", {})
        data_section = data.get("data", {})

        cfg.store_provider = store_section.get("provider", cfg.store_provider)

        cfg.db_host = db_section.get("host", cfg.db_host)
        cfg.db_port = int(db_section.get("port", cfg.db_port))
        cfg.db_name = db_section.get("name", cfg.db_name)
        cfg.db_user = db_section.get("user", cfg.db_user)
        cfg.db_password = db_section.get("password", cfg.db_password)

        cfg.batch_size = int(export_section.get("batch_size", cfg.batch_size))
        cfg.data_dir = data_section.get("dir", cfg.data_dir)

    # Environment variables always take precedence
    cfg.store_provider = os.environ.get("CATALOG_EXPORT_STORE", cfg.store_provider)
    cfg.db_host = os.environ.get("POSTGRES_HOST", cfg.db_host)
    cfg.db_port = int(os.environ.get("POSTGRES_PORT", str(cfg.db_port)))
    cfg.db_name = os.environ.get("POSTGRES_DB", cfg.db_name)
    cfg.db_user = os.environ.get("POSTGRES_USER", cfg.db_user)
    cfg.db_password = os.environ.get("POSTGRES_PASSWORD", cfg.db_password)
    cfg.batch_size = int(
        os.environ.get("CATALOG_EXPORT_BATCH_SIZE", str(cfg.batch_size))
    )
    cfg.data_dir = os.environ.get("CATALOG_EXPORT_DATA_DIR", cfg.data_dir)

    return cfg


def config_exists() -> bool:
    return _config_path().exists()


def config_path_display() -> str:
    return str(_config_path())
