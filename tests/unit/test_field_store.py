"""Unit tests for record-scoped extension field storage."""

from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
from pydantic import ValidationError

from aha_assign_copilot.orchestrator.errors import PersistenceError
from aha_assign_copilot.orchestrator.field_store import (
    EXTENSION_ID,
    FIELD_NAME,
    AssignmentRecord,
    JsonFieldStore,
)


def test_assignment_record_serializes_with_host_field_names() -> None:
    record = AssignmentRecord.create(
        issue_number=7,
        issue_url="https://github.com/acme/app/issues/7",
        now=datetime(2025, 1, 1, 12, 0, tzinfo=timezone(timedelta(hours=2))),
    )

    assert record.to_field_value() == {
        "issueNumber": 7,
        "issueUrl": "https://github.com/acme/app/issues/7",
        "assignedAt": "2025-01-01T10:00:00+00:00",
    }


def test_assignment_record_rejects_non_positive_issue_numbers() -> None:
    with pytest.raises(ValidationError):
        AssignmentRecord.model_validate({"issueNumber": 0, "issueUrl": "u", "assignedAt": "t"})


def test_store_roundtrip_is_scoped_per_record(tmp_path: Path) -> None:
    path = tmp_path / "agent_state" / "extension_fields.json"
    store = JsonFieldStore(path)
    value = {"issueNumber": 1, "issueUrl": "u", "assignedAt": "t"}

    assert store.get("FEAT-1", EXTENSION_ID, FIELD_NAME) is None

    store.set("FEAT-1", EXTENSION_ID, FIELD_NAME, value)

    assert store.get("FEAT-1", EXTENSION_ID, FIELD_NAME) == value
    assert store.get("FEAT-2", EXTENSION_ID, FIELD_NAME) is None
    assert store.get("FEAT-1", "other.extension", FIELD_NAME) is None

    raw = json.loads(path.read_text(encoding="utf-8"))
    assert raw == {"FEAT-1": {EXTENSION_ID: {FIELD_NAME: value}}}


def test_set_overwrites_last_write_wins(tmp_path: Path) -> None:
    store = JsonFieldStore(tmp_path / "fields.json")

    store.set("FEAT-1", EXTENSION_ID, FIELD_NAME, {"issueNumber": 1})
    store.set("FEAT-1", EXTENSION_ID, FIELD_NAME, {"issueNumber": 2})

    assert store.get("FEAT-1", EXTENSION_ID, FIELD_NAME) == {"issueNumber": 2}


def test_clear_removes_value(tmp_path: Path) -> None:
    path = tmp_path / "fields.json"
    store = JsonFieldStore(path)
    store.set("FEAT-1", EXTENSION_ID, FIELD_NAME, {"issueNumber": 1})

    assert store.clear("FEAT-1", EXTENSION_ID, FIELD_NAME) is True
    assert store.clear("FEAT-1", EXTENSION_ID, FIELD_NAME) is False
    assert store.get("FEAT-1", EXTENSION_ID, FIELD_NAME) is None
    assert json.loads(path.read_text(encoding="utf-8")) == {}


@pytest.mark.parametrize(
    "content",
    [
        '{"FEAT-1": {"aha-develop.assign-copilot": {"copilotIssue": {"issueNum',
        "[1, 2, 3]",
        '{"FEAT-1": ["not", "a", "mapping"]}',
        '{"FEAT-1": {"aha-develop.assign-copilot": 5}}',
    ],
)
def test_unreadable_file_raises_and_is_left_untouched(tmp_path: Path, content: str) -> None:
    path = tmp_path / "fields.json"
    path.write_text(content, encoding="utf-8")
    store = JsonFieldStore(path)

    with pytest.raises(PersistenceError):
        store.get("FEAT-1", EXTENSION_ID, FIELD_NAME)
    with pytest.raises(PersistenceError):
        store.set("FEAT-2", EXTENSION_ID, FIELD_NAME, {"issueNumber": 1})
    with pytest.raises(PersistenceError):
        store.clear("FEAT-1", EXTENSION_ID, FIELD_NAME)

    assert path.read_text(encoding="utf-8") == content


def test_set_replaces_file_without_leaving_temp_files(tmp_path: Path) -> None:
    path = tmp_path / "fields.json"
    store = JsonFieldStore(path)

    store.set("FEAT-1", EXTENSION_ID, FIELD_NAME, {"issueNumber": 1})
    store.set("FEAT-2", EXTENSION_ID, FIELD_NAME, {"issueNumber": 2})

    assert sorted(p.name for p in tmp_path.iterdir()) == ["fields.json"]
    assert set(json.loads(path.read_text(encoding="utf-8"))) == {"FEAT-1", "FEAT-2"}
