from __future__ import annotations

import logging

from catalog_export.export.fields import EmptyFieldProvider, SupplementaryFieldProvider
from catalog_export.export.strategy import (
    ExportContext,
    ExportStrategy,
    register_export_strategy,
)
from catalog_export.export.types import (
    DuplicateIdentifiers,
    GeneratedResult,
    Resolution,
)
from catalog_export.models import RecordCategory

logger = logging.getLogger(__name__)


@register_export_strategy(RecordCategory.AUTHORITY)
class AuthorityExportStrategy(ExportStrategy):
    """Authority records are exported verbatim from their source records.

    Only the tenant default mapping profile can export authorities;
    nothing can be synthesized for an authority without a record.
    """

    category = RecordCategory.AUTHORITY
    field_provider: SupplementaryFieldProvider = EmptyFieldProvider()

    async def resolve_candidates(
        self, external_ids: list[str], context: ExportContext
    ) -> Resolution:
        if not context.mapping_profile.is_default:
            logger.warning(
                "[%s] Mapping profile %s is not the default profile, "
                "no authority records will be read",
                context.job.id,
                context.mapping_profile.name,
            )
            return Resolution(unresolved=list(external_ids))
        if context.is_deletion_profile:
            logger.info("[%s] Deletion job profile is used for authorities", context.job.id)
        return await super().resolve_candidates(external_ids, context)

    async def synthesize(
        self, external_ids: list[str], context: ExportContext
    ) -> GeneratedResult:
        result = GeneratedResult()
        for external_id in external_ids:
            result.add_not_found(external_id)
        return result

    async def identify_duplicate_group(
        self, external_id: str, context: ExportContext
    ) -> DuplicateIdentifiers | None:
        return None
