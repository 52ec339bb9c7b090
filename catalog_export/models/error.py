from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import UTC, datetime

from catalog_export.models.utils import generate_id


def _utcnow() -> datetime:
    return datetime.now(UTC)


class ErrorCode(enum.StrEnum):
    """Codes written to a job's error log.

    ``description`` holds the ``%``-style template for the message.
    """

    UUID_IS_SET_TO_DELETION = "error.uuidIsSetToDeletion"
    PROFILE_USED_ONLY_FOR_NON_DELETED = "error.profileUsedOnlyForNonDeleted"
    PROFILE_USED_ONLY_FOR_SET_TO_DELETION = "error.profileUsedOnlyForSetToDeletion"
    CONVERSION_ERROR = "error.conversion"
    DUPLICATE_SOURCE_RECORD = "error.duplicateSourceRecord"
    FIELDS_MAPPING_ERROR = "error.fieldsMapping"
    RECORD_NOT_FOUND = "error.recordNotFound"
    GENERAL_ERROR = "error.general"

    @property
    def description(self) -> str:
        return _DESCRIPTIONS[self]


_DESCRIPTIONS: dict[ErrorCode, str] = {
    ErrorCode.UUID_IS_SET_TO_DELETION: "%s is set for deletion and cannot be exported using this profile",
    ErrorCode.PROFILE_USED_ONLY_FOR_NON_DELETED: "This profile can only be used to export records not set for deletion",
    ErrorCode.PROFILE_USED_ONLY_FOR_SET_TO_DELETION: "This profile can only be used to export records set for deletion",
    ErrorCode.CONVERSION_ERROR: "Error converting source record with external id %s",
    ErrorCode.DUPLICATE_SOURCE_RECORD: "%s has following source record ids: %s",
    ErrorCode.FIELDS_MAPPING_ERROR: "%s",
    ErrorCode.RECORD_NOT_FOUND: "Record not found: %s",
    ErrorCode.GENERAL_ERROR: "%s",
}

ONCE_PER_JOB_CODES = frozenset(
    {
        ErrorCode.PROFILE_USED_ONLY_FOR_NON_DELETED,
        ErrorCode.PROFILE_USED_ONLY_FOR_SET_TO_DELETION,
    }
)


@dataclass
class ErrorEntry:
    """One row of a job's error log."""

    job_id: str
    code: str
    message_values: list[str] = field(default_factory=list)

    id: str = field(default_factory=generate_id)
    created_at: datetime = field(default_factory=_utcnow)

    @property
    def message(self) -> str:
        return "; ".join(self.message_values)
