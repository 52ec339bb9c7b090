from __future__ import annotations

import logging
from collections.abc import AsyncIterator

from catalog_export.export.exceptions import IdentifierStoreUnavailableError
from catalog_export.export.types import Window
from catalog_export.models import ExportJob
from catalog_export.store.base import PageRequest, Slice, Store

logger = logging.getLogger(__name__)


class IdentifierSlicer:
    """Pages a job's ranked identifiers into fixed-size windows.

    Only one page is held at a time, so arbitrarily large ranges never
    get materialized.  Any failure of the store is job-fatal and is
    re-raised as :class:`IdentifierStoreUnavailableError`.
    """

    def __init__(self, store: Store, batch_size: int) -> None:
        if batch_size < 1:
            raise ValueError(f"batch_size must be positive, got {batch_size}")
        self._store = store
        self._batch_size = batch_size

    async def windows(self, job: ExportJob) -> AsyncIterator[Window]:
        page_request = PageRequest(page=0, size=self._batch_size)
        number = 0
        while True:
            page = await self._fetch(job, page_request)
            if page.content:
                number += 1
                logger.info(
                    "[%s] Window %d: %d identifiers", job.id, number, len(page.content)
                )
                yield Window(
                    number=number,
                    external_ids=list(dict.fromkeys(page.content)),
                )
            if not page.has_next:
                return
            page_request = page.next_page_request()

    async def _fetch(self, job: ExportJob, page_request: PageRequest) -> Slice:
        try:
            return await self._store.get_export_ids(
                job.id, job.from_id, job.to_id, page_request
            )
        except Exception as exc:
            raise IdentifierStoreUnavailableError(str(exc)) from exc
