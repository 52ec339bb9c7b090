from __future__ import annotations

import logging

from catalog_export.models import ONCE_PER_JOB_CODES, ErrorCode, ErrorEntry
from catalog_export.store.base import Store

logger = logging.getLogger(__name__)


class ErrorReporter:
    """Writes structured errors to a job's error log.

    Policy codes (``ONCE_PER_JOB_CODES``) are recorded at most once per
    job: the first occurrence wins, including occurrences persisted by an
    earlier run of the same job.  ``report_unique`` suppresses repeats of
    an identical message; everything else is recorded every time.
    """

    def __init__(self, store: Store, job_id: str) -> None:
        self._store = store
        self._job_id = job_id
        self._seen_codes: set[ErrorCode] = set()
        self._seen_messages: set[tuple[ErrorCode, tuple[str, ...]]] = set()

    @property
    def job_id(self) -> str:
        return self._job_id

    async def report(self, code: ErrorCode, *args: str) -> bool:
        """Record *code* with its description filled from *args*.

        Returns ``True`` when an entry was written.
        """
        if code in ONCE_PER_JOB_CODES:
            if code in self._seen_codes:
                return False
            self._seen_codes.add(code)
            if await self._store.has_error(self._job_id, code):
                return False
        await self._save(code, [self._format(code, args)])
        return True

    async def report_unique(self, code: ErrorCode, *args: str) -> bool:
        key = (code, tuple(args))
        if key in self._seen_messages:
            return False
        self._seen_messages.add(key)
        return await self.report(code, *args)

    async def report_values(self, code: ErrorCode, values: list[str]) -> None:
        """Record pre-formatted message values verbatim."""
        await self._save(code, list(values))

    async def report_general(self, message: str) -> None:
        await self._save(ErrorCode.GENERAL_ERROR, [message])

    async def _save(self, code: ErrorCode, values: list[str]) -> None:
        await self._store.save_error(
            ErrorEntry(job_id=self._job_id, code=code, message_values=values)
        )

    @staticmethod
    def _format(code: ErrorCode, args: tuple[str, ...]) -> str:
        template = code.description
        if "%s" not in template:
            return template
        return template % args
