from catalog_export.store.base import PageRequest, Slice, Store
from catalog_export.store.memory import InMemoryStore

__all__ = ["InMemoryStore", "PageRequest", "Slice", "Store"]
