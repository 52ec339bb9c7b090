from __future__ import annotations

import shutil
from pathlib import Path

from catalog_export.storage.base import StorageBackend


class DiskStorage(StorageBackend):
    """Export files copied into a directory on the local filesystem."""

    def __init__(self, base_path: str) -> None:
        self._base = Path(base_path)
        self._base.mkdir(parents=True, exist_ok=True)

    def _resolve(self, key: str) -> Path:
        return self._base / key

    def upload_file(self, key: str, path: Path) -> None:
        target = self._resolve(key)
        target.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(path, target)

    def resolve_uri(self, key: str) -> str:
        return self._resolve(key).resolve().as_uri()
