from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path


class StorageBackend(ABC):
    """Destination for finished export files.

    Output is always staged in a local file first (see
    :class:`~catalog_export.storage.sink.LocalStorageWriter`), so a backend
    only has to move that file under a key.
    """

    @abstractmethod
    def upload_file(self, key: str, path: Path) -> None:
        """Store the local file at *path* under *key*, replacing any
        previous object."""
        ...

    @abstractmethod
    def resolve_uri(self, key: str) -> str:
        """URI a user can follow to the stored file."""
        ...
