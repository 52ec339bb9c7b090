"""Export orchestration: windows → resolve → fallback → emit → generate.

Windows are processed strictly one after another.  Duplicate detection
and first-occurrence error deduplication depend on that order.
"""

from __future__ import annotations

import logging
from pathlib import Path

from catalog_export.config import ExportSettings
from catalog_export.export.emitter import RecordEmitter
from catalog_export.export.exceptions import (
    ExportJobError,
    IdentifierStoreUnavailableError,
    OutputSinkError,
)
from catalog_export.export.generated import GeneratedRecordProducer
from catalog_export.export.reporter import ErrorReporter
from catalog_export.export.slicer import IdentifierSlicer
from catalog_export.export.statistics import (
    ExportedListener,
    ExportStatistics,
    derive_status,
)
from catalog_export.export.strategy import (
    ExportContext,
    ExportStrategy,
    get_strategy_for_category,
)
from catalog_export.export.types import Emission, GeneratedResult, Window
from catalog_export.models import ExportJob, ResolutionOutcome
from catalog_export.storage.base import StorageBackend
from catalog_export.storage.sink import LocalStorageWriter, OutputSink
from catalog_export.store.base import Store

logger = logging.getLogger(__name__)


class ExportOrchestrator:
    """Runs one export job from its identifier range to a terminal status.

    Per-record and per-window problems end up in the job's error log and
    counters.  An unreachable store or a failing output sink abort the
    job, which then lands in ``FAILED`` with every identifier of its
    range counted as failed.
    """

    def __init__(
        self,
        store: Store,
        storage: StorageBackend,
        settings: ExportSettings | None = None,
        strategy: ExportStrategy | None = None,
    ) -> None:
        self._store = store
        self._storage = storage
        self._settings = settings or ExportSettings()
        self._strategy = strategy

    async def run_export(
        self,
        job: ExportJob,
        *,
        listener: ExportedListener | None = None,
    ) -> ExportStatistics:
        context = await self._build_context(job, ExportStatistics(listener=listener))
        strategy = self._strategy or get_strategy_for_category(job.record_category)(
            self._store
        )
        slicer = IdentifierSlicer(self._store, self._settings.export_ids_batch)
        logger.info(
            "[%s] Export started: %s records %d..%d with mapping profile %s",
            job.id,
            job.record_category,
            job.from_id,
            job.to_id,
            context.mapping_profile.name,
        )

        fatal = False
        sink: OutputSink | None = None
        try:
            sink = self.open_sink(job)
            async for window in slicer.windows(job):
                await self.process_window(window, strategy, context, sink)
        except IdentifierStoreUnavailableError as exc:
            logger.error("[%s] Export aborted: %s", job.id, exc.message)
            fatal = True
        except OutputSinkError as exc:
            logger.error("[%s] Export aborted: %s", job.id, exc.message)
            await context.reporter.report_general(exc.message)
            fatal = True
        except Exception:
            # Record, inventory or error-log store outages.
            logger.exception("[%s] Export aborted while processing a window", job.id)
            fatal = True
        finally:
            if sink is not None:
                closed = await self._close_sink(sink, context)
                fatal = fatal or not closed

        if fatal:
            await self._recount_after_fatal(job, context.statistics)
        await self._finish(job, context.statistics)
        return context.statistics

    async def process_window(
        self,
        window: Window,
        strategy: ExportStrategy,
        context: ExportContext,
        sink: OutputSink,
    ) -> dict[str, ResolutionOutcome]:
        """Run one window to completion and return each identifier's outcome."""
        try:
            resolution = await strategy.resolve_candidates(window.external_ids, context)
            resolution = await strategy.resolve_fallback(resolution, context)

            emission = await RecordEmitter(strategy, context).emit(
                resolution.records, sink
            )
            pending = [
                i for i in window.external_ids if i not in emission.attempted_ids
            ]
            generated = await GeneratedRecordProducer(strategy, context).produce(
                pending, sink
            )
        finally:
            strategy.release_window()

        outcomes = _window_outcomes(window, emission, generated)
        logger.debug("[%s] Window %d outcomes: %s", context.job.id, window.number, outcomes)
        return outcomes

    def open_sink(self, job: ExportJob) -> OutputSink:
        return LocalStorageWriter(
            self._storage,
            job.file_location,
            Path(self._settings.tmp_storage),
            buffer_size=self._settings.output_buffer_size,
        )

    async def _build_context(
        self, job: ExportJob, statistics: ExportStatistics
    ) -> ExportContext:
        job_profile = await self._store.get_job_profile(job.job_profile_id)
        if job_profile is None:
            raise ExportJobError(f"Job profile {job.job_profile_id} not found")
        mapping_profile = await self._store.get_mapping_profile(
            job_profile.mapping_profile_id
        )
        if mapping_profile is None:
            raise ExportJobError(
                f"Mapping profile {job_profile.mapping_profile_id} not found"
            )
        return ExportContext(
            job=job,
            job_profile=job_profile,
            mapping_profile=mapping_profile,
            reporter=ErrorReporter(self._store, job.id),
            statistics=statistics,
        )

    async def _close_sink(self, sink: OutputSink, context: ExportContext) -> bool:
        try:
            sink.close()
        except OutputSinkError as exc:
            logger.error(
                "[%s] Error while saving file %s: %s",
                context.job.id,
                context.job.file_location,
                exc.message,
            )
            await context.reporter.report_general(exc.message)
            return False
        return True

    async def _recount_after_fatal(
        self, job: ExportJob, statistics: ExportStatistics
    ) -> None:
        statistics.discard_exported()
        try:
            statistics.failed = await self._store.count_export_ids(
                job.id, job.from_id, job.to_id
            )
        except Exception:
            logger.exception(
                "[%s] Cannot recount identifiers, keeping failed=%d",
                job.id,
                statistics.failed,
            )

    async def _finish(self, job: ExportJob, statistics: ExportStatistics) -> None:
        job.status = derive_status(statistics).value
        job.exported = statistics.exported
        job.failed = statistics.failed
        job.duplicated = statistics.duplicated
        job.not_found = statistics.not_found_ids
        await self._store.update_job(job)
        logger.info(
            "[%s] Export finished: %s (exported=%d, failed=%d, duplicated=%d, "
            "not found=%d)",
            job.id,
            job.status,
            job.exported,
            job.failed,
            job.duplicated,
            len(job.not_found),
        )


def _window_outcomes(
    window: Window, emission: Emission, generated: GeneratedResult
) -> dict[str, ResolutionOutcome]:
    generated_ids = {i for i, _ in generated.records}
    not_found = set(generated.not_found_ids)
    outcomes: dict[str, ResolutionOutcome] = {}
    for external_id in window.external_ids:
        if external_id in emission.emitted_ids:
            outcomes[external_id] = ResolutionOutcome.RESOLVED
        elif external_id in generated_ids:
            outcomes[external_id] = ResolutionOutcome.GENERATED
        elif external_id in not_found:
            outcomes[external_id] = ResolutionOutcome.NOT_FOUND
        else:
            outcomes[external_id] = ResolutionOutcome.FAILED
    return outcomes
