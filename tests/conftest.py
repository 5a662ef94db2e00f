"""Test configuration and fixtures."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest

from aha_assign_copilot.orchestrator.fetcher import RecordQuery


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Keep a developer's real .env / environment out of the tests."""

    for name in (
        "ORCHESTRATOR_GITHUB_TOKEN",
        "GITHUB_BASE_URL",
        "LOG_LEVEL",
        "AGENT_STATE_PATH",
        "AHA_RECORDS_PATH",
        "COPILOT_ASSIGNEE",
        "COPILOT_REPOSITORY",
        "COPILOT_BASE_BRANCH",
        "COPILOT_CUSTOM_INSTRUCTIONS",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)


class DictRecordSource:
    """In-memory record data source keyed by reference."""

    def __init__(self, records: dict[str, dict[str, Any]]) -> None:
        self.records = records
        self.calls: list[tuple[str, str]] = []

    def find(self, query: RecordQuery, reference_num: str) -> dict[str, Any] | None:
        self.calls.append((query.model, reference_num))
        return self.records.get(reference_num)


@pytest.fixture
def feature_raw() -> dict[str, Any]:
    """A feature with one requirement, as returned by the data layer."""
    return {
        "id": "1001",
        "referenceNum": "FEAT-1",
        "name": "Login flow",
        "path": "https://acme.aha.io/features/FEAT-1",
        "description": {"markdownBody": "Add OAuth support", "attachments": []},
        "requirements": [{"referenceNum": "REQ-1", "name": "Support Google login"}],
        "tasks": [],
    }


@pytest.fixture
def requirement_raw() -> dict[str, Any]:
    """A requirement with its parent feature, todos and attachments."""
    return {
        "id": "2001",
        "referenceNum": "FEAT-1-1",
        "name": "Support Google login",
        "path": "https://acme.aha.io/requirements/FEAT-1-1",
        "description": {
            "markdownBody": "Use the Google identity platform.",
            "attachments": [
                {
                    "fileName": "flow.png",
                    "contentType": "image/png",
                    "downloadUrl": "https://files.example/flow.png?token=a",
                }
            ],
        },
        "feature": {
            "referenceNum": "FEAT-1",
            "name": "Login flow",
            "description": {
                "markdownBody": "Add OAuth support",
                "attachments": [
                    {
                        "fileName": "spec.pdf",
                        "contentType": "application/pdf",
                        "downloadUrl": "https://files.example/spec.pdf?token=b",
                    }
                ],
            },
        },
        "tasks": [
            {"name": "Register OAuth client", "body": "Use the staging project."},
            {"name": "Write docs"},
        ],
    }


@pytest.fixture
def record_source(
    feature_raw: dict[str, Any], requirement_raw: dict[str, Any]
) -> DictRecordSource:
    return DictRecordSource(
        {
            feature_raw["referenceNum"]: feature_raw,
            requirement_raw["referenceNum"]: requirement_raw,
        }
    )


@pytest.fixture
def records_file(
    tmp_path: Path, feature_raw: dict[str, Any], requirement_raw: dict[str, Any]
) -> Path:
    """A JSON record export on disk."""
    path = tmp_path / "aha_records.json"
    path.write_text(
        json.dumps(
            [
                {"typename": "Feature", **feature_raw},
                {"typename": "Requirement", **requirement_raw},
            ]
        ),
        encoding="utf-8",
    )
    return path
