from __future__ import annotations

import logging

from catalog_export.export.strategy import ExportContext, ExportStrategy
from catalog_export.export.types import (
    DuplicateIdentifiers,
    Emission,
    Err,
    Ok,
    RecordFields,
)
from catalog_export.models import ErrorCode, SourceRecord
from catalog_export.storage.sink import OutputSink

logger = logging.getLogger(__name__)


class RecordEmitter:
    """Converts a window's resolved records and writes them to the sink.

    A record that fails to convert is counted and reported, and the
    loop moves on.  A rule violation from the supplementary-field step
    aborts the whole pass for the window.
    """

    def __init__(self, strategy: ExportStrategy, context: ExportContext) -> None:
        self._strategy = strategy
        self._context = context

    async def emit(self, records: list[SourceRecord], sink: OutputSink) -> Emission:
        context = self._context
        statistics = context.statistics
        emission = Emission(attempted_ids={r.external_id for r in records})
        logger.info("[%s] Records to convert: %d", context.job.id, len(records))
        if not records:
            return emission

        match await self._strategy.field_provider.fields_for(
            records, context.mapping_profile, context.job.id
        ):
            case Err(error=error):
                logger.error("[%s] %s", context.job.id, error.message)
                await context.reporter.report_general(error.message)
                emission.failed_ids = set(emission.attempted_ids)
                statistics.increment_failed(len(emission.failed_ids))
                return emission
            case Ok(value=fields_by_id):
                pass

        duplicated: dict[str, None] = {}
        for record in records:
            record_fields = fields_by_id.get(record.external_id) or RecordFields()
            if record_fields.error_messages:
                await context.reporter.report_values(
                    ErrorCode.FIELDS_MAPPING_ERROR, record_fields.error_messages
                )
            match self._strategy.converter.convert(
                record.content, record_fields.fields, context.mapping_profile
            ):
                case Err(error=error):
                    logger.error(
                        "[%s] Error converting %s: %s",
                        context.job.id,
                        record.external_id,
                        error.message,
                    )
                    statistics.increment_failed()
                    emission.failed_ids.add(record.external_id)
                    await context.reporter.report(
                        ErrorCode.CONVERSION_ERROR, record.external_id
                    )
                    continue
                case Ok(value=data):
                    sink.write(data)

            if record.external_id in emission.emitted_ids:
                statistics.increment_duplicated()
                duplicated[record.external_id] = None
            else:
                emission.emitted_ids.add(record.external_id)
            statistics.increment_exported()

        await self._report_duplicates(list(duplicated), records)
        return emission

    async def _report_duplicates(
        self, external_ids: list[str], records: list[SourceRecord]
    ) -> None:
        for external_id in external_ids:
            record_ids = ", ".join(
                r.id for r in records if r.external_id == external_id
            )
            identifiers = await self._strategy.identify_duplicate_group(
                external_id, self._context
            ) or DuplicateIdentifiers(external_id=external_id)
            logger.warning(
                "[%s] %s has following source record ids: %s",
                self._context.job.id,
                identifiers.label,
                record_ids,
            )
            await self._context.reporter.report(
                ErrorCode.DUPLICATE_SOURCE_RECORD, identifiers.label, record_ids
            )
