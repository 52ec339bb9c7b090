from __future__ import annotations

import logging

from catalog_export.export.strategy import ExportContext, ExportStrategy
from catalog_export.export.types import GeneratedResult
from catalog_export.models import ErrorCode
from catalog_export.storage.sink import OutputSink

logger = logging.getLogger(__name__)


class GeneratedRecordProducer:
    """Handles identifiers that never resolved to a source record.

    Each identifier ends up exactly once as generated, failed or
    not found (not-found ids are counted as failed too).
    """

    def __init__(self, strategy: ExportStrategy, context: ExportContext) -> None:
        self._strategy = strategy
        self._context = context

    async def produce(self, external_ids: list[str], sink: OutputSink) -> GeneratedResult:
        if not external_ids:
            return GeneratedResult()

        context = self._context
        result = await self._strategy.synthesize(external_ids, context)
        handled = result.handled_ids
        for external_id in external_ids:
            if external_id not in handled:
                logger.warning(
                    "[%s] No generated outcome for %s, marking as not found",
                    context.job.id,
                    external_id,
                )
                result.add_not_found(external_id)

        logger.info("[%s] Generated records: %d", context.job.id, len(result.records))
        for _, data in result.records:
            if data:
                sink.write(data)
            context.statistics.increment_exported()
        context.statistics.increment_failed(len(result.failed_ids))
        context.statistics.add_not_found(result.not_found_ids)
        for external_id in result.not_found_ids:
            await context.reporter.report(ErrorCode.RECORD_NOT_FOUND, external_id)
        return result
