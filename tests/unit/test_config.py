from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from catalog_export.cli.config import load_config
from catalog_export.config import ExportSettings, parse_config, store_registry
from catalog_export.storage.disk import DiskStorage
from catalog_export.store.memory import InMemoryStore


def test_parse_config_defaults_to_memory_store(tmp_path: Path) -> None:
    storage, store, settings = parse_config(
        {"storage": {"provider": "disk", "config": {"base_path": str(tmp_path)}}}
    )

    assert isinstance(storage, DiskStorage)
    assert isinstance(store, InMemoryStore)
    assert settings.export_ids_batch == 1000


def test_parse_config_reads_export_settings(tmp_path: Path) -> None:
    _, _, settings = parse_config(
        {
            "storage": {"provider": "disk", "config": {"base_path": str(tmp_path)}},
            "export": {"export_ids_batch": 25, "tmp_storage": str(tmp_path / "t")},
        }
    )

    assert settings.export_ids_batch == 25
    assert settings.tmp_storage == str(tmp_path / "t")


def test_batch_size_must_be_positive() -> None:
    with pytest.raises(ValidationError):
        ExportSettings(export_ids_batch=0)


def test_unknown_store_provider() -> None:
    with pytest.raises(ValueError, match="Unknown store provider 'redis'"):
        store_registry.build("redis", {})


def test_cli_config_file_and_env_overrides(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    config_file = tmp_path / "config.toml"
    config_file.write_text(
        '[store]\nprovider = "memory"\n\n'
        "[export]\nbatch_size = 50\n\n"
        f'[data]\ndir = "{tmp_path.as_posix()}"\n'
    )
    monkeypatch.setenv("CATALOG_EXPORT_CONFIG", str(config_file))
    monkeypatch.setenv("CATALOG_EXPORT_BATCH_SIZE", "75")
    monkeypatch.delenv("CATALOG_EXPORT_STORE", raising=False)
    monkeypatch.delenv("CATALOG_EXPORT_DATA_DIR", raising=False)

    cfg = load_config()

    assert cfg.store_provider == "memory"
    assert cfg.batch_size == 75
    config = cfg.to_dict()
    assert config["store"] == {"provider": "memory", "config": {}}
    assert config["export"]["export_ids_batch"] == 75
    assert config["storage"]["config"]["base_path"] == str(tmp_path / "output")
