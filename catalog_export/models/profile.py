from __future__ import annotations

from dataclasses import dataclass, field

from pydantic import BaseModel, ConfigDict, Field

from catalog_export.models.utils import generate_id


class Transformation(BaseModel):
    """Copies one value from the source content into the output record.

    ``source_path`` is a dotted path into the record content
    (``"title"``, ``"identifiers.isbn"``); ``target`` is the output key.
    """

    model_config = ConfigDict(frozen=True)

    source_path: str
    target: str


class MappingProfile(BaseModel):
    """How records of a job are rendered.  Resolved once per job."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=generate_id)
    name: str
    is_default: bool = False
    record_categories: list[str] = Field(default_factory=list)
    transformations: list[Transformation] = Field(default_factory=list)


@dataclass
class JobProfile:
    """Ties a job to a mapping profile.

    ``is_deletion_profile`` marks the profile whose sole use is
    exporting records that are set for deletion.
    """

    name: str
    mapping_profile_id: str
    is_deletion_profile: bool = False

    id: str = field(default_factory=generate_id)
