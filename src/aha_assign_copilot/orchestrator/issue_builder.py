"""Build the GitHub issue (title + body) for a Feature or Requirement.

This module is pure: no I/O, and identical inputs always give byte-identical output.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import assert_never

from aha_assign_copilot.orchestrator.records import (
    Attachment,
    FeaturePayload,
    Note,
    RecordRef,
    RequirementPayload,
    RequirementSummary,
    Task,
)


@dataclass(frozen=True, slots=True)
class IssueDraft:
    """Issue title and body ready to submit. Never persisted."""

    title: str
    body: str


def _markdown(note: Note | None) -> str:
    if note is None or note.markdown_body is None:
        return ""
    return note.markdown_body


def _attachments(note: Note | None) -> list[Attachment]:
    if note is None:
        return []
    return list(note.attachments)


def _requirements_section(requirements: list[RequirementSummary]) -> str | None:
    if not requirements:
        return None
    lines = [f"- **{req.reference_num}**: {req.name or 'No name provided'}" for req in requirements]
    return "### Requirements\n" + "\n".join(lines)


def _todos_section(tasks: list[Task]) -> str | None:
    if not tasks:
        return None
    entries = [f"- **{task.name}**\n\n{task.body or ''}" for task in tasks]
    return "### Todos\n" + "\n\n".join(entries)


def _attachments_section(attachments: list[Attachment]) -> str | None:
    if not attachments:
        return None
    lines = [f"- [{att.file_name}]({att.download_url})" for att in attachments]
    return "### Attachments\n" + "\n".join(lines)


def collect_attachments(payload: FeaturePayload | RequirementPayload) -> list[Attachment]:
    """Attachments listed in the issue, in order.

    For a Requirement this is its own attachments followed by the parent Feature's.
    """

    if isinstance(payload, FeaturePayload):
        return _attachments(payload.description)
    if isinstance(payload, RequirementPayload):
        parent = payload.feature.description if payload.feature is not None else None
        return _attachments(payload.description) + _attachments(parent)
    assert_never(payload)


def synthesize(
    record: RecordRef,
    payload: FeaturePayload | RequirementPayload,
    custom_instructions: str | None = None,
) -> IssueDraft:
    """Turn a fetched record into an :class:`IssueDraft`.

    Sections with no source data are left out entirely; the description section
    is always present (empty when the record has no description text).

    Raises:
        ValueError: if the payload does not describe the same kind of record.
    """

    if payload.typename != record.typename:
        raise ValueError(
            f"Payload type {payload.typename!r} does not match record type {record.typename!r}"
        )

    sections: list[str | None] = [f"### Description\n\n{_markdown(payload.description)}"]

    if isinstance(payload, FeaturePayload):
        sections.append(_requirements_section(payload.requirements))
    elif isinstance(payload, RequirementPayload):
        if payload.feature is not None:
            sections.append(
                f"## Feature {payload.feature.reference_num}\n\n"
                f"{_markdown(payload.feature.description)}"
            )
    else:
        assert_never(payload)

    sections.append(_todos_section(payload.tasks))
    sections.append(f"**Aha! Reference:** [{record.reference_num}]({payload.path})")
    sections.append(_attachments_section(collect_attachments(payload)))

    if custom_instructions and custom_instructions.strip():
        sections.append(f"### Additional Instructions\n\n{custom_instructions}")

    body = "\n\n".join(s for s in sections if s is not None) + "\n"
    title = f"{payload.reference_num}: {payload.name}"
    return IssueDraft(title=title, body=body)
