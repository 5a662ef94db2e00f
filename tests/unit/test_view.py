"""Unit tests for the button and command-output projections."""

from __future__ import annotations

import pytest

from aha_assign_copilot.orchestrator.assignment import AssignmentSnapshot, AssignmentState
from aha_assign_copilot.orchestrator.config import ExtensionSettings
from aha_assign_copilot.orchestrator.field_store import AssignmentRecord
from aha_assign_copilot.orchestrator.view import (
    ButtonStatus,
    command_output,
    initial_view,
    progress_output,
    reset_view,
    view_for_snapshot,
)

ISSUE = AssignmentRecord(
    issue_number=42,
    issue_url="https://github.com/acme/app/issues/42",
    assigned_at="2025-01-01T00:00:00+00:00",
)


def _snap(state: AssignmentState, **kwargs) -> AssignmentSnapshot:
    return AssignmentSnapshot(state=state, record_reference="FEAT-1", **kwargs)


def test_initial_view_states() -> None:
    configured = ExtensionSettings(repository="acme/app")

    assert initial_view(configured, None).status == ButtonStatus.IDLE
    assert initial_view(ExtensionSettings(), None).status == ButtonStatus.NOT_CONFIGURED

    existing = initial_view(ExtensionSettings(), ISSUE)
    assert existing.status == ButtonStatus.EXISTING
    assert existing.message == "Assigned to Copilot."
    assert existing.issue_url == ISSUE.issue_url


@pytest.mark.parametrize(
    ("state", "message"),
    [
        (AssignmentState.FETCHING, "Loading record details..."),
        (AssignmentState.AUTHENTICATING, "Authenticating with GitHub..."),
        (AssignmentState.CREATING_ISSUE, "Creating GitHub Issue and assigning Copilot..."),
        (AssignmentState.PERSISTING, "Saving issue link..."),
    ],
)
def test_in_flight_states_render_loading(state: AssignmentState, message: str) -> None:
    view = view_for_snapshot(_snap(state))

    assert view.status == ButtonStatus.LOADING
    assert view.message == message


def test_done_renders_success_or_existing() -> None:
    success = view_for_snapshot(_snap(AssignmentState.DONE, issue=ISSUE))
    assert success.status == ButtonStatus.SUCCESS
    assert success.message == "GitHub Issue created and assigned to Copilot."
    assert success.issue_url == ISSUE.issue_url

    existing = view_for_snapshot(_snap(AssignmentState.DONE, issue=ISSUE, already_assigned=True))
    assert existing.status == ButtonStatus.EXISTING


def test_failed_renders_error_banner() -> None:
    view = view_for_snapshot(_snap(AssignmentState.FAILED, error="Validation failed"))

    assert view.status == ButtonStatus.ERROR
    assert view.message == "Error: Validation failed"


def test_try_again_returns_to_idle() -> None:
    assert reset_view(ExtensionSettings(repository="acme/app")).status == ButtonStatus.IDLE


def test_command_output_lines() -> None:
    assert command_output(_snap(AssignmentState.DONE, issue=ISSUE, already_assigned=True)) == (
        "Already assigned to Copilot: https://github.com/acme/app/issues/42"
    )
    assert command_output(_snap(AssignmentState.DONE, issue=ISSUE)) == (
        "✓ Copilot assigned to Issue: https://github.com/acme/app/issues/42\n\n"
        "Copilot will create a PR when it starts working on this task."
    )
    assert command_output(_snap(AssignmentState.FAILED, error="boom")) == "Error: boom"


def test_progress_output_only_for_network_steps() -> None:
    assert progress_output(_snap(AssignmentState.FETCHING)) is None
    assert progress_output(_snap(AssignmentState.AUTHENTICATING)) == "Authenticating with GitHub..."
    assert progress_output(_snap(AssignmentState.DONE, issue=ISSUE)) is None
