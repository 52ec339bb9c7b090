from catalog_export.storage.base import StorageBackend
from catalog_export.storage.disk import DiskStorage

__all__ = ["DiskStorage", "StorageBackend"]
