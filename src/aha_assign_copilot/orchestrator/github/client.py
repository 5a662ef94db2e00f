"""GitHub REST client for creating issues assigned to the Copilot coding agent.

Tokens come from an :class:`AuthBroker` per run; they are sent per request and
never logged or stored on the client.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Protocol

import requests

from aha_assign_copilot.orchestrator.errors import AuthError, GitHubApiError

logger = logging.getLogger(__name__)

GITHUB_API = "https://api.github.com"
GITHUB_API_VERSION = "2022-11-28"
DEFAULT_COPILOT_ASSIGNEE = "copilot-swe-agent[bot]"

# Issue creation plus organization read (needed for org-owned repositories).
GITHUB_SCOPE = "repo, read:org"


@dataclass(frozen=True, slots=True)
class AuthResult:
    token: str


class AuthBroker(Protocol):
    """OAuth-style token broker. May block on user interaction or reuse a cached token."""

    def authenticate(self, provider: str, *, cacheable: bool, scope: str) -> AuthResult: ...


class StaticTokenBroker:
    """Broker that hands out a preconfigured token (e.g. ORCHESTRATOR_GITHUB_TOKEN)."""

    def __init__(self, token: str) -> None:
        self._token = token

    def authenticate(self, provider: str, *, cacheable: bool, scope: str) -> AuthResult:
        if not self._token.strip():
            raise AuthError(
                f"No {provider} token configured (set ORCHESTRATOR_GITHUB_TOKEN with scope "
                f"'{scope}')"
            )
        return AuthResult(token=self._token.strip())


@dataclass(frozen=True, slots=True)
class CreateIssueOptions:
    owner: str
    repo: str
    title: str
    body: str
    base_branch: str
    reference_num: str
    custom_instructions: str | None = None
    assignee: str = DEFAULT_COPILOT_ASSIGNEE

    @property
    def target_repo(self) -> str:
        return f"{self.owner}/{self.repo}"


@dataclass(frozen=True, slots=True)
class CreatedIssue:
    """Minimal issue metadata returned from GitHub."""

    number: int
    html_url: str
    node_id: str | None = None


def build_agent_instructions(reference_num: str, custom_instructions: str | None = None) -> str:
    """Instructions sent to the agent: the naming requirement, then any custom text.

    The reference must end up in the branch name and PR title so the work can be
    traced back to the record.
    """

    naming = (
        "IMPORTANT - Branch and PR Naming Requirement:\n"
        f"You MUST include {reference_num} in the branch name.\n"
        f"You MUST include {reference_num} in the PR title.\n"
        f'The reference "{reference_num}" is required for tracking.'
    )
    if custom_instructions and custom_instructions.strip():
        return f"{naming}\n\n{custom_instructions}"
    return naming


def _error_message(resp: requests.Response) -> str:
    try:
        data = resp.json()
    except ValueError:
        data = None
    if isinstance(data, dict):
        message = data.get("message")
        if isinstance(message, str) and message.strip():
            return message
    return f"GitHub API error: {resp.status_code}"


class GitHubClient:
    """Small REST wrapper for the two calls an assignment needs."""

    def __init__(
        self,
        *,
        broker: AuthBroker,
        base_url: str = GITHUB_API,
        session: requests.Session | None = None,
    ) -> None:
        self._broker = broker
        self._rest_base_url = base_url.rstrip("/")
        self._session = session or requests.Session()
        self._session.headers.update(
            {
                "Accept": "application/vnd.github+json",
                "X-GitHub-Api-Version": GITHUB_API_VERSION,
                "User-Agent": "aha-assign-copilot",
            }
        )

    def authenticate(self) -> str:
        """Obtain a GitHub token from the broker."""

        try:
            result = self._broker.authenticate("github", cacheable=True, scope=GITHUB_SCOPE)
        except AuthError:
            raise
        except Exception as e:
            raise AuthError(f"GitHub authentication failed: {e}") from e

        token = result.token if result is not None else ""
        if not isinstance(token, str) or not token.strip():
            raise AuthError("GitHub authentication failed: no token returned")
        return token

    def _issues_url(self, *, owner: str, repo: str) -> str:
        return f"{self._rest_base_url}/repos/{owner.strip()}/{repo.strip().strip('/')}/issues"

    def _request(
        self, token: str, method: str, url: str, payload: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        headers = {"Authorization": f"Bearer {token}", "Content-Type": "application/json"}
        try:
            resp = self._session.request(method, url, json=payload, headers=headers, timeout=30)
        except requests.RequestException as e:
            raise GitHubApiError(status=None, message=f"GitHub request failed: {e}") from e

        if not resp.ok:
            message = _error_message(resp)
            logger.warning(
                "GitHub request rejected",
                extra={"method": method, "url": url, "status_code": resp.status_code},
            )
            raise GitHubApiError(status=resp.status_code, message=message)

        try:
            data = resp.json()
        except ValueError as e:
            raise GitHubApiError(
                status=resp.status_code, message="GitHub API returned an invalid response"
            ) from e
        if not isinstance(data, dict):
            raise GitHubApiError(
                status=resp.status_code, message="GitHub API returned an invalid response"
            )
        return data

    def create_issue_with_copilot(self, token: str, options: CreateIssueOptions) -> CreatedIssue:
        """Create an issue and request the Copilot agent in the same call."""

        if not options.title.strip():
            raise ValueError("Issue title is required")

        payload: dict[str, Any] = {
            "title": options.title,
            "body": options.body,
            "assignees": [options.assignee],
            "agent_assignment": {
                "target_repo": options.target_repo,
                "base_branch": options.base_branch,
                "custom_instructions": build_agent_instructions(
                    options.reference_num, options.custom_instructions
                ),
            },
        }

        url = self._issues_url(owner=options.owner, repo=options.repo)
        data = self._request(token, "POST", url, payload)

        number = data.get("number")
        if not isinstance(number, int) or number <= 0:
            raise GitHubApiError(
                status=None, message="Unexpected create issue response: missing number"
            )
        html_url = data.get("html_url")
        if not isinstance(html_url, str) or not html_url.strip():
            raise GitHubApiError(
                status=None, message="Unexpected create issue response: missing html_url"
            )
        node_id = data.get("node_id")

        logger.info(
            "Issue created and assigned to Copilot",
            extra={
                "repo": options.target_repo,
                "issue_number": number,
                "assignee": options.assignee,
                "base_branch": options.base_branch,
                "reference_num": options.reference_num,
            },
        )
        return CreatedIssue(
            number=number,
            html_url=html_url,
            node_id=node_id if isinstance(node_id, str) else None,
        )

    def close(self) -> None:
        self._session.close()
