from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass, field

from catalog_export.models import ExportJobStatus

ExportedListener = Callable[[int], None]


@dataclass
class ExportStatistics:
    """Mutable per-job counters.

    ``not_found`` keeps insertion order so the job log lists missing
    identifiers in the order they were processed.  ``listener`` is
    called with the running exported total after every increment
    (progress reporting).
    """

    exported: int = 0
    failed: int = 0
    duplicated: int = 0
    not_found: dict[str, None] = field(default_factory=dict)
    listener: ExportedListener | None = field(default=None, repr=False)

    def increment_exported(self) -> None:
        self.exported += 1
        if self.listener is not None:
            self.listener(self.exported)

    def increment_failed(self, count: int = 1) -> None:
        self.failed += count

    def increment_duplicated(self) -> None:
        self.duplicated += 1

    def add_not_found(self, external_ids: Iterable[str]) -> None:
        for external_id in external_ids:
            self.not_found[external_id] = None

    def discard_exported(self) -> None:
        """Forget everything written so far (the output was lost)."""
        self.exported = 0
        self.duplicated = 0

    @property
    def not_found_ids(self) -> list[str]:
        return list(self.not_found)

    @property
    def status(self) -> ExportJobStatus:
        return derive_status(self)


def derive_status(statistics: ExportStatistics) -> ExportJobStatus:
    """Terminal job status from final counters.

    Exhaustive over ``exported >= 0, failed >= 0``: nothing exported is
    a failure regardless of ``failed``.
    """
    if statistics.exported == 0:
        return ExportJobStatus.FAILED
    if statistics.failed == 0:
        return ExportJobStatus.COMPLETED
    return ExportJobStatus.COMPLETED_WITH_ERRORS
