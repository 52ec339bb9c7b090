"""Conflict resolution between candidate source records and job intent."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from catalog_export.export.reporter import ErrorReporter
from catalog_export.export.types import Resolution
from catalog_export.models import ErrorCode, ExportJob, SourceRecord
from catalog_export.store.base import Store

logger = logging.getLogger(__name__)


class ConflictResolver:
    """Applies the deletion-state policy, then keeps the latest generation
    per external identifier.

    Filtering never raises: rejected records are dropped and reported
    through the :class:`ErrorReporter`.
    """

    def __init__(self, reporter: ErrorReporter, is_deletion_profile: bool) -> None:
        self._reporter = reporter
        self._is_deletion_profile = is_deletion_profile

    async def resolve(
        self,
        records: Iterable[SourceRecord],
        requested_ids: Iterable[str],
    ) -> Resolution:
        kept = await self.filter_by_deletion_policy(records)
        selected = self.select_latest_generation(kept)
        present = {r.external_id for r in selected}
        unresolved = [i for i in dict.fromkeys(requested_ids) if i not in present]
        return Resolution(records=selected, unresolved=unresolved)

    async def filter_by_deletion_policy(
        self, records: Iterable[SourceRecord]
    ) -> list[SourceRecord]:
        kept: list[SourceRecord] = []
        for record in records:
            if record.is_deleted and not self._is_deletion_profile:
                await self._reporter.report_unique(
                    ErrorCode.UUID_IS_SET_TO_DELETION, record.external_id
                )
                await self._reporter.report(ErrorCode.PROFILE_USED_ONLY_FOR_NON_DELETED)
                logger.error(
                    "[%s] %s is set for deletion, skipped",
                    self._reporter.job_id,
                    record.external_id,
                )
            elif not record.is_deleted and self._is_deletion_profile:
                await self._reporter.report(
                    ErrorCode.PROFILE_USED_ONLY_FOR_SET_TO_DELETION
                )
                logger.error(
                    "[%s] %s is not set for deletion, skipped",
                    self._reporter.job_id,
                    record.external_id,
                )
            else:
                kept.append(record)
        return kept

    @staticmethod
    def select_latest_generation(records: Iterable[SourceRecord]) -> list[SourceRecord]:
        """One record per external id: the highest generation, first wins ties."""
        latest: dict[str, SourceRecord] = {}
        for record in records:
            current = latest.get(record.external_id)
            if current is None or record.generation > current.generation:
                latest[record.external_id] = record
        return list(latest.values())


class RemoteFallbackResolver:
    """Looks up identifiers left unresolved locally in the job tenant's
    central (shared) tenant.

    Runs at most once per window.  Central records never replace a
    record already resolved in the local tenant.
    """

    def __init__(self, store: Store, resolver: ConflictResolver) -> None:
        self._store = store
        self._resolver = resolver

    async def resolve(
        self,
        job: ExportJob,
        category: str,
        resolution: Resolution,
    ) -> Resolution:
        if not resolution.unresolved:
            return resolution

        central_tenant_id = await self._store.get_central_tenant_id(job.tenant_id)
        if not central_tenant_id:
            logger.error(
                "[%s] Central tenant not found for %s, records that cannot be found: %s",
                job.id,
                job.tenant_id,
                resolution.unresolved,
            )
            return resolution

        candidates = await self._store.find_non_deleted(
            central_tenant_id, category, resolution.unresolved
        )
        logger.info(
            "[%s] Records found in central tenant %s: %d",
            job.id,
            central_tenant_id,
            len(candidates),
        )
        remote = await self._resolver.resolve(candidates, resolution.unresolved)
        return merge_resolutions(resolution, remote)


def merge_resolutions(local: Resolution, remote: Resolution) -> Resolution:
    """Union of both record sets; a local record wins over a remote one
    for the same external id."""
    local_ids = local.resolved_ids
    merged = list(local.records)
    merged.extend(r for r in remote.records if r.external_id not in local_ids)
    present = local_ids | remote.resolved_ids
    return Resolution(
        records=merged,
        unresolved=[i for i in local.unresolved if i not in present],
    )
