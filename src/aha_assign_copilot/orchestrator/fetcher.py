"""Content fetching for Features and Requirements.

The host data layer is consumed through :class:`RecordDataSource`. Queries are
described declaratively (select + merge) so a source can fetch the whole
hierarchy in one logical request.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Protocol

from pydantic import ValidationError

from aha_assign_copilot.orchestrator.errors import RecordNotFound
from aha_assign_copilot.orchestrator.records import (
    FeaturePayload,
    RecordRef,
    RequirementPayload,
    parse_payload,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class RecordQuery:
    """``Model.select(*fields).merge(relations)`` for a single model."""

    model: str
    fields: tuple[str, ...]
    relations: dict[str, RecordQuery] = field(default_factory=dict)

    def merge(self, **relations: RecordQuery) -> RecordQuery:
        return RecordQuery(
            model=self.model, fields=self.fields, relations={**self.relations, **relations}
        )


def select(model: str, *fields: str) -> RecordQuery:
    return RecordQuery(model=model, fields=tuple(fields))


def _description_query() -> RecordQuery:
    # downloadUrl is requested with a token; such URLs expire and are never cached.
    return select("Note", "markdownBody").merge(
        attachments=select("Attachment", "fileName", "contentType", "downloadUrl"),
    )


FEATURE_QUERY = select("Feature", "id", "name", "path", "referenceNum").merge(
    description=_description_query(),
    tasks=select("Task", "name", "body"),
    requirements=select("Requirement", "name", "referenceNum"),
)

REQUIREMENT_QUERY = select("Requirement", "id", "name", "referenceNum", "path").merge(
    description=_description_query(),
    tasks=select("Task", "name", "body"),
    feature=select("Feature", "name", "referenceNum").merge(description=_description_query()),
)


class RecordDataSource(Protocol):
    """Host data layer: run a query for one record, ``None`` when unresolvable."""

    def find(self, query: RecordQuery, reference_num: str) -> dict[str, Any] | None: ...


class JsonRecordSource:
    """Record source backed by a JSON export (a list of records in host shape).

    The file is re-read on every lookup so expiring download URLs are never held
    between runs.
    """

    def __init__(self, path: Path) -> None:
        self._path = path

    def _load(self) -> list[dict[str, Any]]:
        if not self._path.exists():
            return []
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
        except json.JSONDecodeError:
            logger.warning(
                "Record export is not valid JSON; treating as empty",
                extra={"path": str(self._path)},
            )
            return []
        if not isinstance(raw, list):
            logger.warning(
                "Record export has unexpected shape; treating as empty",
                extra={"path": str(self._path)},
            )
            return []
        return [item for item in raw if isinstance(item, dict)]

    def find(self, query: RecordQuery, reference_num: str) -> dict[str, Any] | None:
        wanted = reference_num.strip()
        for item in self._load():
            if str(item.get("referenceNum", "")).strip() != wanted:
                continue
            typename = item.get("typename")
            if typename is not None and typename != query.model:
                continue
            return item
        return None


class ContentFetcher:
    """Resolve a record handle into its full hierarchical payload."""

    def __init__(self, source: RecordDataSource) -> None:
        self._source = source

    def fetch(self, record: RecordRef) -> FeaturePayload | RequirementPayload:
        query = FEATURE_QUERY if record.typename == "Feature" else REQUIREMENT_QUERY
        label = record.typename.lower()

        raw = self._source.find(query, record.reference_num)
        if raw is None:
            raise RecordNotFound(f"Failed to fetch {label} details.")

        try:
            payload = parse_payload({**raw, "typename": record.typename})
        except ValidationError as e:
            raise RecordNotFound(
                f"Failed to fetch {label} details: {e.error_count()} invalid field(s)."
            ) from e

        logger.debug(
            "Record fetched",
            extra={"reference_num": record.reference_num, "typename": record.typename},
        )
        return payload
