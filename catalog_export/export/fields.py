"""Supplementary fields merged into each record during conversion."""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from collections import Counter

from catalog_export.export.exceptions import RuleViolationError
from catalog_export.export.types import Err, Ok, RecordFields, Result
from catalog_export.models import MappingProfile, SourceRecord

logger = logging.getLogger(__name__)

FieldMap = dict[str, RecordFields]

_MISSING = object()


class SupplementaryFieldProvider(ABC):
    """Computes per-record supplementary fields for a window.

    Subclasses implement :meth:`collect`, raising
    :class:`RuleViolationError` when the profile's rules cannot be
    applied at all.  Callers use :meth:`fields_for`.
    """

    @abstractmethod
    async def collect(
        self,
        records: list[SourceRecord],
        profile: MappingProfile,
        job_id: str,
    ) -> FieldMap:
        ...

    async def fields_for(
        self,
        records: list[SourceRecord],
        profile: MappingProfile,
        job_id: str,
    ) -> Result[FieldMap, RuleViolationError]:
        """Not intended to be overridden."""
        try:
            return Ok(await self.collect(records, profile, job_id))
        except RuleViolationError as exc:
            return Err(exc)


class EmptyFieldProvider(SupplementaryFieldProvider):
    async def collect(
        self,
        records: list[SourceRecord],
        profile: MappingProfile,
        job_id: str,
    ) -> FieldMap:
        return {}


class TransformationFieldProvider(SupplementaryFieldProvider):
    """Applies the mapping profile's transformations to record content.

    A transformation with an empty path or target, or two
    transformations writing the same target, make the rule set
    unusable.  A path missing from one record is only a field error
    for that record.
    """

    async def collect(
        self,
        records: list[SourceRecord],
        profile: MappingProfile,
        job_id: str,
    ) -> FieldMap:
        self._validate(profile)
        if not profile.transformations:
            return {}

        result: FieldMap = {}
        for record in records:
            try:
                content = json.loads(record.content)
            except (json.JSONDecodeError, RecursionError):
                # Left to the converter, which reports it per record.
                continue
            fields = RecordFields()
            for transformation in profile.transformations:
                value = _lookup(content, transformation.source_path)
                if value is _MISSING:
                    fields.error_messages.append(
                        f"Field '{transformation.source_path}' not found "
                        f"for record {record.external_id}"
                    )
                else:
                    fields.fields[transformation.target] = value
            result[record.external_id] = fields
        return result

    @staticmethod
    def _validate(profile: MappingProfile) -> None:
        for transformation in profile.transformations:
            if not transformation.source_path.strip():
                raise RuleViolationError(
                    f"empty source path in mapping profile {profile.name}"
                )
            if not transformation.target.strip():
                raise RuleViolationError(
                    f"empty target for {transformation.source_path} "
                    f"in mapping profile {profile.name}"
                )
        targets = Counter(t.target for t in profile.transformations)
        duplicated = sorted(t for t, n in targets.items() if n > 1)
        if duplicated:
            raise RuleViolationError(
                f"targets {', '.join(duplicated)} are mapped more than once "
                f"in mapping profile {profile.name}"
            )


def _lookup(content: object, path: str) -> object:
    current = content
    for part in path.split("."):
        if not isinstance(current, dict) or part not in current:
            return _MISSING
        current = current[part]
    return current
