from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import ClassVar

from catalog_export.export.converter import JsonRecordConverter, RecordConverter
from catalog_export.export.exceptions import UnsupportedRecordCategoryError
from catalog_export.export.fields import SupplementaryFieldProvider
from catalog_export.export.reporter import ErrorReporter
from catalog_export.export.resolver import ConflictResolver, RemoteFallbackResolver
from catalog_export.export.statistics import ExportStatistics
from catalog_export.export.types import (
    DuplicateIdentifiers,
    GeneratedResult,
    Resolution,
)
from catalog_export.models import ExportJob, JobProfile, MappingProfile, RecordCategory
from catalog_export.store.base import Store

logger = logging.getLogger(__name__)


@dataclass
class ExportContext:
    """Everything that stays fixed for the duration of one job."""

    job: ExportJob
    job_profile: JobProfile
    mapping_profile: MappingProfile
    reporter: ErrorReporter
    statistics: ExportStatistics

    def __post_init__(self) -> None:
        self.resolver = ConflictResolver(
            self.reporter, self.job_profile.is_deletion_profile
        )

    @property
    def is_deletion_profile(self) -> bool:
        return self.job_profile.is_deletion_profile


class ExportStrategy(ABC):
    """Record-category specific half of an export.

    The orchestrator owns batching, emission and accounting; a strategy
    decides where candidate records come from, what to do for
    identifiers that have none, and how a duplicated identifier is
    described in the error log.
    """

    category: ClassVar[RecordCategory]

    def __init__(self, store: Store, converter: RecordConverter | None = None) -> None:
        self._store = store
        self._converter = converter or JsonRecordConverter()

    @property
    def converter(self) -> RecordConverter:
        return self._converter

    @property
    @abstractmethod
    def field_provider(self) -> SupplementaryFieldProvider:
        ...

    async def resolve_candidates(
        self, external_ids: list[str], context: ExportContext
    ) -> Resolution:
        """Candidates from the job's own tenant, policy-filtered and
        arbitrated."""
        records = await self._store.find_non_deleted(
            context.job.tenant_id, self.category.value, external_ids
        )
        logger.info(
            "[%s] Total %s records: %d", context.job.id, self.category, len(records)
        )
        resolution = await context.resolver.resolve(records, external_ids)
        logger.info(
            "[%s] %s records after removing: %d, not found locally: %d",
            context.job.id,
            self.category,
            len(resolution.records),
            len(resolution.unresolved),
        )
        return resolution

    async def resolve_fallback(
        self, resolution: Resolution, context: ExportContext
    ) -> Resolution:
        fallback = RemoteFallbackResolver(self._store, context.resolver)
        return await fallback.resolve(context.job, self.category.value, resolution)

    @abstractmethod
    async def synthesize(
        self, external_ids: list[str], context: ExportContext
    ) -> GeneratedResult:
        """Produce output for identifiers that never resolved to a record."""
        ...

    @abstractmethod
    async def identify_duplicate_group(
        self, external_id: str, context: ExportContext
    ) -> DuplicateIdentifiers | None:
        ...

    def release_window(self) -> None:
        """Drop anything cached for the window that just completed."""


# ---------------------------------------------------------------------------
# Strategy registry (record category → strategy class)
# ---------------------------------------------------------------------------

_strategy_registry: dict[RecordCategory, type[ExportStrategy]] = {}


def register_export_strategy(*categories: RecordCategory):
    """Decorator: register a strategy class for one or more record categories."""

    def decorator(cls: type[ExportStrategy]) -> type[ExportStrategy]:
        for category in categories:
            _strategy_registry[category] = cls
        return cls

    return decorator


def get_strategy_for_category(category: str) -> type[ExportStrategy]:
    import catalog_export.export.strategies  # noqa: F401  registers built-ins

    try:
        key = RecordCategory(category)
    except ValueError:
        raise UnsupportedRecordCategoryError(
            f"Unknown record category '{category}'. "
            f"Available: {[c.value for c in RecordCategory]}"
        ) from None
    cls = _strategy_registry.get(key)
    if cls is None:
        raise UnsupportedRecordCategoryError(
            f"No export strategy registered for category: {category}"
        )
    return cls
