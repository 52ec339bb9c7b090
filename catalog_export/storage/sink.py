from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from types import TracebackType

from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from catalog_export.export.exceptions import OutputSinkError
from catalog_export.storage.base import StorageBackend

logger = logging.getLogger(__name__)

OUTPUT_BUFFER_SIZE = 1 << 16


class OutputSink(ABC):
    """Scoped, append-only destination for a job's serialized records."""

    @abstractmethod
    def write(self, data: bytes) -> None:
        ...

    @abstractmethod
    def close(self) -> None:
        """Flush and release.  Raises :class:`OutputSinkError` on failure."""
        ...

    def __enter__(self) -> OutputSink:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.close()


class LocalStorageWriter(OutputSink):
    """Buffers output in a local temp file and uploads it to a
    :class:`StorageBackend` on close.

    The temp file is removed on close whether or not the upload
    succeeded.
    """

    def __init__(
        self,
        storage: StorageBackend,
        key: str,
        tmp_dir: str | Path,
        buffer_size: int = OUTPUT_BUFFER_SIZE,
    ) -> None:
        self._storage = storage
        self._key = key
        self._path = Path(tmp_dir) / key
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._file = open(self._path, "wb", buffering=buffer_size)  # noqa: SIM115
        except OSError as exc:
            raise OutputSinkError(key, str(exc)) from exc
        self._closed = False
        self.bytes_written = 0

    @property
    def key(self) -> str:
        return self._key

    @property
    def path(self) -> Path:
        return self._path

    def write(self, data: bytes) -> None:
        if self._closed:
            raise ValueError(f"write to closed sink {self._key}")
        try:
            self._file.write(data)
        except OSError as exc:
            raise OutputSinkError(self._key, str(exc)) from exc
        self.bytes_written += len(data)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            self._file.close()
            self._upload()
        except Exception as exc:
            raise OutputSinkError(self._key, str(exc)) from exc
        finally:
            self._path.unlink(missing_ok=True)
        logger.info("Uploaded %s (%d bytes)", self._key, self.bytes_written)

    @retry(
        retry=retry_if_exception_type(ConnectionError),
        stop=stop_after_attempt(3),
        wait=wait_exponential_jitter(initial=1, max=10, jitter=2),
        reraise=True,
    )
    def _upload(self) -> None:
        self._storage.upload_file(self._key, self._path)
