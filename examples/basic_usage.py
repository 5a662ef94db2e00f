#!/usr/bin/env python3
"""Programmatic assignment example.

This demonstrates using the components directly:

* load settings from `.env`
* resolve a record from an in-memory data source
* send it to Copilot and persist the issue link to `agent_state/extension_fields.json`

The repository is passed as an argument (not read from `.env`).
"""

from __future__ import annotations

import argparse
from typing import Any, Sequence

from aha_assign_copilot.orchestrator.assignment import AssignmentService
from aha_assign_copilot.orchestrator.config import ExtensionSettings, OrchestratorSettings
from aha_assign_copilot.orchestrator.fetcher import ContentFetcher, RecordQuery
from aha_assign_copilot.orchestrator.field_store import JsonFieldStore
from aha_assign_copilot.orchestrator.github.client import GitHubClient, StaticTokenBroker
from aha_assign_copilot.orchestrator.logging import configure_logging
from aha_assign_copilot.orchestrator.records import FeatureRef
from aha_assign_copilot.orchestrator.view import command_output

FEATURE: dict[str, Any] = {
    "id": "7001",
    "referenceNum": "DEMO-1",
    "name": "Login flow",
    "path": "https://example.aha.io/features/DEMO-1",
    "description": {"markdownBody": "Add OAuth support", "attachments": []},
    "requirements": [{"referenceNum": "DEMO-1-1", "name": "Support Google login"}],
    "tasks": [],
}


class InMemorySource:
    def find(self, query: RecordQuery, reference_num: str) -> dict[str, Any] | None:
        return FEATURE if reference_num == FEATURE["referenceNum"] else None


def _parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Send a demo feature to Copilot.")
    parser.add_argument("--repo", required=True, help='Target repository in the form "owner/repo"')
    parser.add_argument("--base-branch", default="main", help="Base branch for Copilot work")
    parser.add_argument("--instructions", default="", help="Additional instructions (optional)")
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    args = _parse_args(argv)

    settings = OrchestratorSettings()
    configure_logging(settings.log_level)

    github = GitHubClient(
        broker=StaticTokenBroker(settings.github_token),
        base_url=settings.github_base_url,
    )
    service = AssignmentService(
        fetcher=ContentFetcher(InMemorySource()),
        github=github,
        field_store=JsonFieldStore(settings.extension_fields_file),
        assignee=settings.copilot_assignee,
    )

    try:
        snapshot = service.run(
            FeatureRef(reference_num="DEMO-1"),
            ExtensionSettings(
                repository=args.repo,
                base_branch=args.base_branch,
                custom_instructions=args.instructions,
            ),
        )
    finally:
        github.close()

    print(command_output(snapshot))
    print(f"Persisted to: {settings.extension_fields_file}")
    return 0 if snapshot.error is None else 1


if __name__ == "__main__":
    raise SystemExit(main())
