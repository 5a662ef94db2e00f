"""Record-scoped extension field storage.

The assignment marker lives in one extension field per record; its presence is
what makes an assignment idempotent.
"""

from __future__ import annotations

import json
import os
import threading
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Protocol

from pydantic import BaseModel, ConfigDict, Field

from aha_assign_copilot.orchestrator.errors import PersistenceError

EXTENSION_ID = "aha-develop.assign-copilot"
FIELD_NAME = "copilotIssue"


class AssignmentRecord(BaseModel):
    """Persisted proof that a record was sent to Copilot."""

    model_config = ConfigDict(populate_by_name=True)

    issue_number: int = Field(alias="issueNumber", gt=0)
    issue_url: str = Field(alias="issueUrl")
    assigned_at: str = Field(alias="assignedAt")

    @classmethod
    def create(cls, *, issue_number: int, issue_url: str, now: datetime) -> AssignmentRecord:
        if now.tzinfo is not None:
            assigned_at = now.astimezone(UTC).isoformat()
        else:
            assigned_at = now.replace(tzinfo=UTC).isoformat()
        return cls(issue_number=issue_number, issue_url=issue_url, assigned_at=assigned_at)

    def to_field_value(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class FieldStorage(Protocol):
    """Host extension-field storage, scoped per record."""

    def get(self, record_reference: str, extension_id: str, field_name: str) -> Any | None: ...

    def set(
        self, record_reference: str, extension_id: str, field_name: str, value: Any
    ) -> None: ...


class JsonFieldStore:
    """JSON-file backed extension fields: ``{reference: {extension_id: {field: value}}}``.

    Individual reads and writes are serialized; there is no transaction across a
    whole assignment run (last write wins).
    """

    def __init__(self, path: Path) -> None:
        self._path = path
        self._lock = threading.Lock()

    def _load_unlocked(self) -> dict[str, dict[str, dict[str, Any]]]:
        if not self._path.exists():
            return {}
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise PersistenceError(
                f"Extension field file {self._path} is not valid JSON: {e}"
            ) from e
        if not isinstance(raw, dict) or not all(
            isinstance(fields, dict) and all(isinstance(v, dict) for v in fields.values())
            for fields in raw.values()
        ):
            raise PersistenceError(
                f"Extension field file {self._path} has an unexpected shape; "
                "expected {reference: {extension_id: {field: value}}}"
            )
        return raw

    def _save_unlocked(self, data: dict[str, Any]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        # Atomic replace; readers never see a partial file.
        tmp = self._path.with_name(f"{self._path.name}.tmp")
        tmp.write_text(
            json.dumps(data, indent=2, ensure_ascii=False, sort_keys=True) + "\n",
            encoding="utf-8",
        )
        os.replace(tmp, self._path)

    def get(self, record_reference: str, extension_id: str, field_name: str) -> Any | None:
        """Return a stored field value, or None.

        Raises:
            PersistenceError: if the backing file is unreadable.
        """

        with self._lock:
            data = self._load_unlocked()
        return data.get(record_reference, {}).get(extension_id, {}).get(field_name)

    def set(self, record_reference: str, extension_id: str, field_name: str, value: Any) -> None:
        with self._lock:
            data = self._load_unlocked()
            record_fields = data.setdefault(record_reference, {})
            record_fields.setdefault(extension_id, {})[field_name] = value
            self._save_unlocked(data)

    def clear(self, record_reference: str, extension_id: str, field_name: str) -> bool:
        """Remove a field value. Returns False if nothing was stored."""

        with self._lock:
            data = self._load_unlocked()
            fields = data.get(record_reference, {}).get(extension_id, {})
            if field_name not in fields:
                return False
            del fields[field_name]
            if not fields:
                del data[record_reference][extension_id]
            if not data[record_reference]:
                del data[record_reference]
            self._save_unlocked(data)
            return True
