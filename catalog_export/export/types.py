from __future__ import annotations

from dataclasses import dataclass, field
from typing import Generic, TypeAlias, TypeVar

from catalog_export.models import SourceRecord

T = TypeVar("T")
E = TypeVar("E", bound=Exception)


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T


@dataclass(frozen=True)
class Err(Generic[E]):
    error: E


Result: TypeAlias = "Ok[T] | Err[E]"


@dataclass(frozen=True)
class Window:
    """One fixed-size batch of external identifiers, in store order."""

    number: int
    external_ids: list[str]

    def __len__(self) -> int:
        return len(self.external_ids)


@dataclass
class Resolution:
    """Records selected for a window plus the identifiers still unresolved."""

    records: list[SourceRecord] = field(default_factory=list)
    unresolved: list[str] = field(default_factory=list)

    @property
    def resolved_ids(self) -> set[str]:
        return {r.external_id for r in self.records}


@dataclass
class RecordFields:
    """Supplementary fields for one external identifier."""

    fields: dict[str, object] = field(default_factory=dict)
    error_messages: list[str] = field(default_factory=list)


@dataclass
class Emission:
    """What the direct-conversion pass did with a window's records."""

    emitted_ids: set[str] = field(default_factory=set)
    failed_ids: set[str] = field(default_factory=set)
    attempted_ids: set[str] = field(default_factory=set)


@dataclass
class GeneratedResult:
    """Outcome of synthesizing records for never-resolved identifiers.

    Every id in ``not_found_ids`` is also in ``failed_ids``.
    """

    records: list[tuple[str, bytes]] = field(default_factory=list)
    failed_ids: list[str] = field(default_factory=list)
    not_found_ids: list[str] = field(default_factory=list)

    def add_generated(self, external_id: str, data: bytes) -> None:
        self.records.append((external_id, data))

    def add_failed(self, external_id: str) -> None:
        self.failed_ids.append(external_id)

    def add_not_found(self, external_id: str) -> None:
        self.failed_ids.append(external_id)
        self.not_found_ids.append(external_id)

    @property
    def handled_ids(self) -> set[str]:
        return {i for i, _ in self.records} | set(self.failed_ids)


@dataclass(frozen=True)
class DuplicateIdentifiers:
    """Human-readable label for an external id reported as duplicated."""

    external_id: str
    hrid: str | None = None

    @property
    def label(self) -> str:
        if self.hrid:
            return f"Record with HRID {self.hrid} ({self.external_id})"
        return f"Record {self.external_id}"
