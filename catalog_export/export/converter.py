from __future__ import annotations

import json
from abc import ABC, abstractmethod

from catalog_export.export.exceptions import ConversionError
from catalog_export.export.types import Err, Ok, Result
from catalog_export.models import MappingProfile


class RecordConverter(ABC):
    """Turns a source record's content into output bytes.

    Subclasses implement :meth:`render` and raise
    :class:`ConversionError` on malformed input.  Callers use
    :meth:`convert`, which never raises for a bad record.
    """

    @abstractmethod
    def render(
        self,
        content: str,
        fields: dict[str, object],
        profile: MappingProfile,
    ) -> bytes:
        ...

    def convert(
        self,
        content: str,
        fields: dict[str, object],
        profile: MappingProfile,
    ) -> Result[bytes, ConversionError]:
        """Not intended to be overridden."""
        try:
            return Ok(self.render(content, fields, profile))
        except ConversionError as exc:
            return Err(exc)
        except RecursionError:
            return Err(ConversionError("content is nested too deeply"))
        except Exception as exc:
            return Err(ConversionError(str(exc) or type(exc).__name__))


class JsonRecordConverter(RecordConverter):
    """One JSON object per line: the record content with the
    supplementary fields laid over it."""

    def render(
        self,
        content: str,
        fields: dict[str, object],
        profile: MappingProfile,
    ) -> bytes:
        try:
            parsed = json.loads(content)
        except json.JSONDecodeError as exc:
            raise ConversionError(f"content is not valid JSON ({exc.msg})") from exc
        if not isinstance(parsed, dict):
            raise ConversionError(
                f"content must be a JSON object, got {type(parsed).__name__}"
            )
        record = {**parsed, **fields}
        line = json.dumps(record, sort_keys=True, ensure_ascii=False)
        return line.encode("utf-8") + b"\n"
