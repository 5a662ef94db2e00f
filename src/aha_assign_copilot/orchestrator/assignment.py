"""The assignment flow as an explicit state machine.

idle -> checking_existing -> fetching -> authenticating -> creating_issue
     -> persisting -> done, with `failed` reachable from every in-flight state.

A stored assignment short-circuits checking_existing straight to done without
any network call. Runs are strictly sequential and never retried; concurrent runs
for one record are not locked against each other.

Known gap: if the issue is created but the marker write fails, nothing is stored,
so a re-run creates a second issue.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, replace
from datetime import UTC, datetime
from enum import Enum

from pydantic import ValidationError

from aha_assign_copilot.orchestrator.config import ExtensionSettings
from aha_assign_copilot.orchestrator.errors import AssignCopilotError, PersistenceError
from aha_assign_copilot.orchestrator.fetcher import ContentFetcher
from aha_assign_copilot.orchestrator.field_store import (
    EXTENSION_ID,
    FIELD_NAME,
    AssignmentRecord,
    FieldStorage,
)
from aha_assign_copilot.orchestrator.github.client import (
    DEFAULT_COPILOT_ASSIGNEE,
    CreateIssueOptions,
    GitHubClient,
)
from aha_assign_copilot.orchestrator.issue_builder import synthesize
from aha_assign_copilot.orchestrator.records import RecordRef

logger = logging.getLogger(__name__)


class AssignmentState(str, Enum):
    IDLE = "idle"
    CHECKING_EXISTING = "checking_existing"
    FETCHING = "fetching"
    AUTHENTICATING = "authenticating"
    CREATING_ISSUE = "creating_issue"
    PERSISTING = "persisting"
    DONE = "done"
    FAILED = "failed"


ALLOWED_TRANSITIONS: dict[AssignmentState, set[AssignmentState]] = {
    AssignmentState.IDLE: {AssignmentState.CHECKING_EXISTING},
    AssignmentState.CHECKING_EXISTING: {
        AssignmentState.FETCHING,
        AssignmentState.DONE,
        AssignmentState.FAILED,
    },
    AssignmentState.FETCHING: {AssignmentState.AUTHENTICATING, AssignmentState.FAILED},
    AssignmentState.AUTHENTICATING: {AssignmentState.CREATING_ISSUE, AssignmentState.FAILED},
    AssignmentState.CREATING_ISSUE: {AssignmentState.PERSISTING, AssignmentState.FAILED},
    AssignmentState.PERSISTING: {AssignmentState.DONE, AssignmentState.FAILED},
    AssignmentState.DONE: set(),
    AssignmentState.FAILED: set(),
}


class IllegalTransitionError(ValueError):
    pass


@dataclass(frozen=True, slots=True)
class AssignmentSnapshot:
    """Where a run is, and what it has produced so far."""

    state: AssignmentState
    record_reference: str
    issue: AssignmentRecord | None = None
    error: str | None = None
    already_assigned: bool = False

    @property
    def is_terminal(self) -> bool:
        return self.state in (AssignmentState.DONE, AssignmentState.FAILED)


def start(record_reference: str) -> AssignmentSnapshot:
    return AssignmentSnapshot(state=AssignmentState.IDLE, record_reference=record_reference)


def transition(
    *,
    current: AssignmentSnapshot,
    to: AssignmentState,
    issue: AssignmentRecord | None = None,
    error: str | None = None,
    already_assigned: bool = False,
) -> AssignmentSnapshot:
    allowed = ALLOWED_TRANSITIONS.get(current.state, set())
    if to not in allowed:
        raise IllegalTransitionError(f"Illegal transition: {current.state.value} -> {to.value}")
    if to == AssignmentState.FAILED and not error:
        raise IllegalTransitionError("A failed transition requires an error message")
    return replace(
        current,
        state=to,
        issue=issue if issue is not None else current.issue,
        error=error,
        already_assigned=already_assigned or current.already_assigned,
    )


ProgressCallback = Callable[[AssignmentSnapshot], None]


def _utc_now() -> datetime:
    return datetime.now(tz=UTC)


def read_assignment(
    field_store: FieldStorage,
    record_reference: str,
    *,
    extension_id: str = EXTENSION_ID,
    field_name: str = FIELD_NAME,
) -> AssignmentRecord | None:
    """Return the stored assignment marker for a record, if any.

    Raises:
        PersistenceError: if a value is stored but is not a valid assignment.
    """

    raw = field_store.get(record_reference, extension_id, field_name)
    if raw is None:
        return None
    try:
        return AssignmentRecord.model_validate(raw)
    except ValidationError as e:
        raise PersistenceError(
            f"Stored Copilot assignment for {record_reference} is unreadable"
        ) from e


class AssignmentService:
    """Send one record to Copilot: fetch, synthesize, authenticate, create, persist."""

    def __init__(
        self,
        *,
        fetcher: ContentFetcher,
        github: GitHubClient,
        field_store: FieldStorage,
        assignee: str = DEFAULT_COPILOT_ASSIGNEE,
        extension_id: str = EXTENSION_ID,
        field_name: str = FIELD_NAME,
        clock: Callable[[], datetime] = _utc_now,
        on_progress: ProgressCallback | None = None,
    ) -> None:
        self._fetcher = fetcher
        self._github = github
        self._field_store = field_store
        self._assignee = assignee
        self._extension_id = extension_id
        self._field_name = field_name
        self._clock = clock
        self._on_progress = on_progress

    def existing_assignment(self, record: RecordRef) -> AssignmentRecord | None:
        """Return the stored assignment marker for a record, if any."""

        return read_assignment(
            self._field_store,
            record.reference_num,
            extension_id=self._extension_id,
            field_name=self._field_name,
        )

    def _advance(
        self,
        current: AssignmentSnapshot,
        to: AssignmentState,
        *,
        issue: AssignmentRecord | None = None,
        error: str | None = None,
        already_assigned: bool = False,
    ) -> AssignmentSnapshot:
        snapshot = transition(
            current=current, to=to, issue=issue, error=error, already_assigned=already_assigned
        )
        logger.debug(
            "Assignment state changed",
            extra={
                "reference_num": snapshot.record_reference,
                "from_state": current.state.value,
                "to_state": snapshot.state.value,
            },
        )
        if self._on_progress is not None:
            self._on_progress(snapshot)
        return snapshot

    def run(self, record: RecordRef, settings: ExtensionSettings) -> AssignmentSnapshot:
        """Run the assignment flow once. Never raises for expected failures.

        Returns:
            The terminal snapshot: `done` (possibly ``already_assigned``) or `failed`.
        """

        snapshot = self._advance(start(record.reference_num), AssignmentState.CHECKING_EXISTING)
        try:
            existing = self.existing_assignment(record)
            if existing is not None:
                logger.info(
                    "Record already assigned to Copilot",
                    extra={"reference_num": record.reference_num, "issue_url": existing.issue_url},
                )
                return self._advance(
                    snapshot, AssignmentState.DONE, issue=existing, already_assigned=True
                )

            owner, repo = settings.owner_and_repo()
            base_branch = settings.resolved_base_branch()
            custom_instructions = settings.custom_instructions

            snapshot = self._advance(snapshot, AssignmentState.FETCHING)
            payload = self._fetcher.fetch(record)
            draft = synthesize(record, payload, custom_instructions)

            snapshot = self._advance(snapshot, AssignmentState.AUTHENTICATING)
            token = self._github.authenticate()

            snapshot = self._advance(snapshot, AssignmentState.CREATING_ISSUE)
            created = self._github.create_issue_with_copilot(
                token,
                CreateIssueOptions(
                    owner=owner,
                    repo=repo,
                    title=draft.title,
                    body=draft.body,
                    base_branch=base_branch,
                    reference_num=record.reference_num,
                    custom_instructions=custom_instructions,
                    assignee=self._assignee,
                ),
            )

            snapshot = self._advance(snapshot, AssignmentState.PERSISTING)
            assignment = AssignmentRecord.create(
                issue_number=created.number, issue_url=created.html_url, now=self._clock()
            )
            self._persist(record, assignment)

            logger.info(
                "Record assigned to Copilot",
                extra={
                    "reference_num": record.reference_num,
                    "repo": f"{owner}/{repo}",
                    "issue_number": assignment.issue_number,
                },
            )
            return self._advance(snapshot, AssignmentState.DONE, issue=assignment)

        except AssignCopilotError as e:
            logger.warning(
                "Copilot assignment failed",
                extra={
                    "reference_num": record.reference_num,
                    "state": snapshot.state.value,
                    "error_type": type(e).__name__,
                },
            )
            return self._advance(snapshot, AssignmentState.FAILED, error=str(e))
        except Exception as e:
            logger.exception(
                "Copilot assignment failed unexpectedly",
                extra={"reference_num": record.reference_num, "state": snapshot.state.value},
            )
            return self._advance(
                snapshot, AssignmentState.FAILED, error=str(e) or type(e).__name__
            )

    def _persist(self, record: RecordRef, assignment: AssignmentRecord) -> None:
        try:
            self._field_store.set(
                record.reference_num,
                self._extension_id,
                self._field_name,
                assignment.to_field_value(),
            )
        except Exception as e:
            # The issue exists on GitHub regardless; report where it is.
            raise PersistenceError(
                f"Issue #{assignment.issue_number} was created ({assignment.issue_url}) but "
                f"saving it on {record.reference_num} failed: {e}",
                issue_url=assignment.issue_url,
            ) from e
