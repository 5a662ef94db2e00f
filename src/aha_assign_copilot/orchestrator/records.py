"""Record handles and the hierarchical payloads fetched for them.

Payload models mirror the shape returned by the Aha! data layer (camelCase keys),
so a raw query result can be validated directly.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from aha_assign_copilot.orchestrator.errors import UnsupportedRecordError


@dataclass(frozen=True, slots=True)
class FeatureRef:
    """Minimal Feature handle as provided by the host context."""

    reference_num: str
    id: str | None = None
    typename: Literal["Feature"] = "Feature"


@dataclass(frozen=True, slots=True)
class RequirementRef:
    """Minimal Requirement handle as provided by the host context."""

    reference_num: str
    id: str | None = None
    typename: Literal["Requirement"] = "Requirement"


RecordRef = FeatureRef | RequirementRef


def parse_record_ref(
    typename: str | None, reference_num: str, *, id: str | None = None  # noqa: A002
) -> RecordRef:
    """Build a record handle from a host type tag.

    Raises:
        UnsupportedRecordError: for anything other than Feature or Requirement.
    """

    reference = reference_num.strip()
    if not reference:
        raise ValueError("A record reference is required (e.g. FEAT-123)")

    normalized = (typename or "").strip().lower()
    if normalized == "feature":
        return FeatureRef(reference_num=reference, id=id)
    if normalized == "requirement":
        return RequirementRef(reference_num=reference, id=id)
    raise UnsupportedRecordError(typename)


class _HostModel(BaseModel):
    model_config = ConfigDict(
        populate_by_name=True, extra="ignore", frozen=True, coerce_numbers_to_str=True
    )


class Attachment(_HostModel):
    """A file attached to a description.

    ``download_url`` is token-scoped and short-lived; it must never be cached or persisted.
    """

    file_name: str = Field(alias="fileName")
    content_type: str = Field(default="", alias="contentType")
    download_url: str = Field(alias="downloadUrl")


class Note(_HostModel):
    markdown_body: str | None = Field(default=None, alias="markdownBody")
    attachments: list[Attachment] = Field(default_factory=list)


class Task(_HostModel):
    """A todo item on a record."""

    name: str
    body: str | None = None


class RequirementSummary(_HostModel):
    reference_num: str = Field(alias="referenceNum")
    name: str | None = None


class ParentFeature(_HostModel):
    reference_num: str = Field(alias="referenceNum")
    name: str | None = None
    description: Note | None = None


class FeaturePayload(_HostModel):
    typename: Literal["Feature"] = "Feature"
    id: str | None = None
    reference_num: str = Field(alias="referenceNum")
    name: str
    path: str = ""
    description: Note | None = None
    requirements: list[RequirementSummary] = Field(default_factory=list)
    tasks: list[Task] = Field(default_factory=list)


class RequirementPayload(_HostModel):
    typename: Literal["Requirement"] = "Requirement"
    id: str | None = None
    reference_num: str = Field(alias="referenceNum")
    name: str
    path: str = ""
    description: Note | None = None
    feature: ParentFeature | None = None
    tasks: list[Task] = Field(default_factory=list)


RecordPayload = Annotated[FeaturePayload | RequirementPayload, Field(discriminator="typename")]

_payload_adapter: TypeAdapter[FeaturePayload | RequirementPayload] = TypeAdapter(RecordPayload)


def parse_payload(raw: dict[str, object]) -> FeaturePayload | RequirementPayload:
    """Validate a raw data-layer result into the matching payload model."""

    return _payload_adapter.validate_python(raw)
