"""Domain models: pure Python dataclasses with no infrastructure dependencies.

These are the canonical types used by the Store protocol and by the
export pipeline.  The SQLAlchemy ORM models used by ``PostgresStore``
live separately in ``db/models.py`` and map to/from these.
"""

from catalog_export.models.error import ONCE_PER_JOB_CODES, ErrorCode, ErrorEntry
from catalog_export.models.job import (
    ExportIdentifier,
    ExportJob,
    ExportJobStatus,
    RecordCategory,
)
from catalog_export.models.profile import JobProfile, MappingProfile, Transformation
from catalog_export.models.record import (
    InventoryRecord,
    RecordState,
    ResolutionOutcome,
    SourceRecord,
)

__all__ = [
    "ErrorCode",
    "ErrorEntry",
    "ExportIdentifier",
    "ExportJob",
    "ExportJobStatus",
    "InventoryRecord",
    "JobProfile",
    "MappingProfile",
    "ONCE_PER_JOB_CODES",
    "RecordCategory",
    "RecordState",
    "ResolutionOutcome",
    "SourceRecord",
    "Transformation",
]
