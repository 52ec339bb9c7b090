from __future__ import annotations

import enum
from dataclasses import dataclass, field

from catalog_export.models.job import RecordCategory


class RecordState(enum.StrEnum):
    ACTIVE = "ACTIVE"
    DELETED = "DELETED"


class ResolutionOutcome(enum.StrEnum):
    """Per-identifier result of processing one window."""

    RESOLVED = "RESOLVED"
    GENERATED = "GENERATED"
    FAILED = "FAILED"
    NOT_FOUND = "NOT_FOUND"


@dataclass(frozen=True)
class SourceRecord:
    """One candidate record for an external identifier.

    Several records may share ``external_id`` (older generations, or
    copies living in different tenants).  ``scope`` is the tenant the
    record was read from.
    """

    id: str
    external_id: str
    generation: int
    content: str
    state: str = RecordState.ACTIVE.value
    scope: str = ""
    category: str = RecordCategory.INSTANCE.value

    @property
    def is_deleted(self) -> bool:
        return self.state == RecordState.DELETED


@dataclass
class InventoryRecord:
    """Inventory view of an instance, used when no source record exists."""

    external_id: str
    title: str
    hrid: str | None = None
    scope: str = ""
    payload: dict = field(default_factory=dict)
