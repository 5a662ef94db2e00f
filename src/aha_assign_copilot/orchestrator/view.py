"""Pure projections of assignment state for the two surfaces.

- The "Send to Copilot" button (:class:`ButtonView`)
- Headless command output (:func:`command_output`)
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel

from aha_assign_copilot.orchestrator.assignment import AssignmentSnapshot, AssignmentState
from aha_assign_copilot.orchestrator.config import ExtensionSettings
from aha_assign_copilot.orchestrator.field_store import AssignmentRecord


class ButtonStatus(str, Enum):
    NOT_CONFIGURED = "not_configured"
    IDLE = "idle"
    LOADING = "loading"
    SUCCESS = "success"
    ERROR = "error"
    EXISTING = "existing"


class ButtonView(BaseModel):
    status: ButtonStatus
    message: str = ""
    issue_url: str | None = None


LOADING_MESSAGES: dict[AssignmentState, str] = {
    AssignmentState.IDLE: "Loading record details...",
    AssignmentState.CHECKING_EXISTING: "Loading record details...",
    AssignmentState.FETCHING: "Loading record details...",
    AssignmentState.AUTHENTICATING: "Authenticating with GitHub...",
    AssignmentState.CREATING_ISSUE: "Creating GitHub Issue and assigning Copilot...",
    AssignmentState.PERSISTING: "Saving issue link...",
}

NOT_CONFIGURED_MESSAGE = "Please configure the repository setting (e.g., owner/repo)"
EXISTING_MESSAGE = "Assigned to Copilot."
SUCCESS_MESSAGE = "GitHub Issue created and assigned to Copilot."
UNEXPECTED_ERROR_MESSAGE = "An unexpected error occurred."


def _existing_view(existing: AssignmentRecord) -> ButtonView:
    return ButtonView(
        status=ButtonStatus.EXISTING, message=EXISTING_MESSAGE, issue_url=existing.issue_url
    )


def initial_view(settings: ExtensionSettings, existing: AssignmentRecord | None) -> ButtonView:
    """What the button shows before anyone clicks it."""

    if existing is not None:
        return _existing_view(existing)
    if not settings.is_configured:
        return ButtonView(status=ButtonStatus.NOT_CONFIGURED, message=NOT_CONFIGURED_MESSAGE)
    return ButtonView(status=ButtonStatus.IDLE)


def reset_view(settings: ExtensionSettings) -> ButtonView:
    """The "Try again" action after an error."""

    return initial_view(settings, None)


def view_for_snapshot(snapshot: AssignmentSnapshot) -> ButtonView:
    if snapshot.state == AssignmentState.DONE:
        if snapshot.issue is None:
            return ButtonView(
                status=ButtonStatus.ERROR, message=f"Error: {UNEXPECTED_ERROR_MESSAGE}"
            )
        if snapshot.already_assigned:
            return _existing_view(snapshot.issue)
        return ButtonView(
            status=ButtonStatus.SUCCESS, message=SUCCESS_MESSAGE, issue_url=snapshot.issue.issue_url
        )
    if snapshot.state == AssignmentState.FAILED:
        message = f"Error: {snapshot.error}" if snapshot.error else UNEXPECTED_ERROR_MESSAGE
        return ButtonView(status=ButtonStatus.ERROR, message=message)
    return ButtonView(status=ButtonStatus.LOADING, message=LOADING_MESSAGES[snapshot.state])


def command_output(snapshot: AssignmentSnapshot) -> str:
    """Final line(s) printed by the headless command."""

    if snapshot.state == AssignmentState.DONE and snapshot.issue is not None:
        if snapshot.already_assigned:
            return f"Already assigned to Copilot: {snapshot.issue.issue_url}"
        return (
            f"✓ Copilot assigned to Issue: {snapshot.issue.issue_url}\n\n"
            "Copilot will create a PR when it starts working on this task."
        )
    if snapshot.state == AssignmentState.FAILED:
        return f"Error: {snapshot.error or UNEXPECTED_ERROR_MESSAGE}"
    return LOADING_MESSAGES.get(snapshot.state, "")


def progress_output(snapshot: AssignmentSnapshot) -> str | None:
    """Progress line for an in-flight snapshot; None when nothing should be printed."""

    if snapshot.state == AssignmentState.AUTHENTICATING:
        return "Authenticating with GitHub..."
    if snapshot.state == AssignmentState.CREATING_ISSUE:
        return "Creating GitHub Issue and assigning Copilot..."
    return None
