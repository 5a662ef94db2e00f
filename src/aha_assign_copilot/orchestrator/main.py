"""Headless command entrypoint.

Runs the same assignment flow as the "Send to Copilot" button, printing progress
and the final outcome as command output.
"""

from __future__ import annotations

import argparse
import logging
import sys

from pydantic import ValidationError

from aha_assign_copilot import __version__
from aha_assign_copilot.orchestrator.assignment import (
    AssignmentService,
    AssignmentSnapshot,
    AssignmentState,
)
from aha_assign_copilot.orchestrator.config import OrchestratorSettings
from aha_assign_copilot.orchestrator.errors import AssignCopilotError, UnsupportedRecordError
from aha_assign_copilot.orchestrator.fetcher import ContentFetcher, JsonRecordSource
from aha_assign_copilot.orchestrator.field_store import (
    EXTENSION_ID,
    FIELD_NAME,
    AssignmentRecord,
    JsonFieldStore,
)
from aha_assign_copilot.orchestrator.github.client import GitHubClient, StaticTokenBroker
from aha_assign_copilot.orchestrator.issue_builder import synthesize
from aha_assign_copilot.orchestrator.logging import configure_logging
from aha_assign_copilot.orchestrator.records import RecordRef, parse_record_ref
from aha_assign_copilot.orchestrator.view import command_output, progress_output

logger = logging.getLogger(__name__)


def _add_record_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--record",
        dest="reference_num",
        required=True,
        help="Record reference, e.g. 'FEAT-123' or 'FEAT-123-1'",
    )
    parser.add_argument(
        "--type",
        dest="typename",
        default="Feature",
        help="Record type: Feature | Requirement",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="aha-assign-copilot",
        description="Send an Aha! Feature or Requirement to the GitHub Copilot coding agent",
    )
    parser.add_argument("--version", action="version", version=f"aha-assign-copilot {__version__}")

    subparsers = parser.add_subparsers(dest="command", required=True)

    assign = subparsers.add_parser(
        "assign-copilot",
        help="Create a GitHub issue for a record and assign it to Copilot",
    )
    _add_record_arguments(assign)
    assign.add_argument(
        "--repo",
        "--repository",
        dest="repository",
        default=None,
        help="Target repository in the form 'owner/repo' (defaults to COPILOT_REPOSITORY)",
    )
    assign.add_argument(
        "--base-branch",
        default=None,
        help="Base branch for Copilot work (defaults to COPILOT_BASE_BRANCH, then 'main')",
    )
    assign.add_argument(
        "--instructions",
        default=None,
        help="Additional instructions for Copilot (defaults to COPILOT_CUSTOM_INSTRUCTIONS)",
    )

    show = subparsers.add_parser(
        "show-assignment", help="Show the stored Copilot issue for a record, if any"
    )
    _add_record_arguments(show)

    preview = subparsers.add_parser(
        "preview-issue", help="Print the issue title and body that would be created"
    )
    _add_record_arguments(preview)
    preview.add_argument(
        "--instructions",
        default=None,
        help="Additional instructions to include in the preview",
    )

    clear = subparsers.add_parser(
        "clear-assignment",
        help="Forget the stored Copilot issue so the record can be assigned again",
    )
    _add_record_arguments(clear)

    return parser


def _print_progress(snapshot: AssignmentSnapshot) -> None:
    line = progress_output(snapshot)
    if line is not None:
        print(line, flush=True)


def _assign(settings: OrchestratorSettings, record: RecordRef, args: argparse.Namespace) -> int:
    github = GitHubClient(
        broker=StaticTokenBroker(settings.github_token),
        base_url=settings.github_base_url,
    )
    try:
        service = AssignmentService(
            fetcher=ContentFetcher(JsonRecordSource(settings.records_path)),
            github=github,
            field_store=JsonFieldStore(settings.extension_fields_file),
            assignee=settings.copilot_assignee,
            on_progress=_print_progress,
        )
        snapshot = service.run(
            record,
            settings.extension_settings(
                repository=args.repository,
                base_branch=args.base_branch,
                custom_instructions=args.instructions,
            ),
        )
    finally:
        github.close()

    print(command_output(snapshot))
    return 0 if snapshot.state == AssignmentState.DONE else 1


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = OrchestratorSettings()
    except ValidationError as e:
        # Logging isn't configured yet; keep it simple and actionable.
        print("Configuration error (check your .env):", file=sys.stderr)
        print(e, file=sys.stderr)
        return 2

    configure_logging(settings.log_level)

    try:
        record = parse_record_ref(args.typename, args.reference_num)
    except (UnsupportedRecordError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    try:
        if args.command == "assign-copilot":
            return _assign(settings, record, args)

        store = JsonFieldStore(settings.extension_fields_file)

        if args.command == "show-assignment":
            existing = store.get(record.reference_num, EXTENSION_ID, FIELD_NAME)
            if existing is None:
                print(f"{record.reference_num} is not assigned to Copilot")
                return 0
            assignment = AssignmentRecord.model_validate(existing)
            print(
                f"Assigned to Copilot: #{assignment.issue_number} {assignment.issue_url} "
                f"(at {assignment.assigned_at})"
            )
            return 0

        if args.command == "preview-issue":
            payload = ContentFetcher(JsonRecordSource(settings.records_path)).fetch(record)
            instructions = (
                args.instructions if args.instructions is not None else settings.custom_instructions
            )
            draft = synthesize(record, payload, instructions)
            print(draft.title)
            print()
            print(draft.body, end="")
            return 0

        if args.command == "clear-assignment":
            if store.clear(record.reference_num, EXTENSION_ID, FIELD_NAME):
                logger.info(
                    "Copilot assignment cleared", extra={"reference_num": record.reference_num}
                )
                print(f"Cleared Copilot assignment for {record.reference_num}")
            else:
                print(f"{record.reference_num} is not assigned to Copilot")
            return 0

        logger.error("Unknown command", extra={"command": args.command})
        return 2

    except AssignCopilotError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    except Exception:
        logger.exception("Command failed")
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
