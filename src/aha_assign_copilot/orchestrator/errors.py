"""Error taxonomy for the assignment flow.

Every error carries a human-readable message (``str(error)``) that is shown
verbatim to the invoking surface (command output or UI banner).
"""

from __future__ import annotations

from dataclasses import dataclass


class AssignCopilotError(Exception):
    """Base class for expected failures of an assignment run."""


class ConfigError(AssignCopilotError):
    """Missing or malformed extension settings (raised before any network call)."""


class UnsupportedRecordError(ConfigError):
    """The command was invoked on something other than a Feature or Requirement."""

    def __init__(self, typename: str | None = None) -> None:
        super().__init__("Please run this command on a Feature or Requirement")
        self.typename = typename


class AuthError(AssignCopilotError):
    """The token broker could not provide a GitHub token."""


class RecordNotFound(AssignCopilotError):
    """The record reference could not be resolved by the data source."""


@dataclass(frozen=True, slots=True)
class GitHubApiError(AssignCopilotError):
    """GitHub rejected a request (or the request never completed)."""

    status: int | None
    message: str

    def __str__(self) -> str:
        return self.message


@dataclass(frozen=True, slots=True)
class PersistenceError(AssignCopilotError):
    """Writing (or reading) the assignment marker on the record failed.

    When raised after issue creation, ``issue_url`` points at the issue that was
    created and is not retracted.
    """

    message: str
    issue_url: str | None = None

    def __str__(self) -> str:
        return self.message
