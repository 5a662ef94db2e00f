"""Configuration for the Copilot assignment extension.

Two layers:
- :class:`ExtensionSettings` is the per-invocation extension settings object
  (``repository``, ``baseBranch``, ``customInstructions``), as configured on the host.
- :class:`OrchestratorSettings` is process configuration loaded from environment
  variables and a local `.env` file; it also supplies default extension settings
  for headless runs.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from aha_assign_copilot.orchestrator.errors import ConfigError
from aha_assign_copilot.orchestrator.github.client import DEFAULT_COPILOT_ASSIGNEE, GITHUB_API

DEFAULT_BASE_BRANCH = "main"

_REPOSITORY_HINT = "Please configure the repository setting (e.g., owner/repo)"


class ExtensionSettings(BaseModel):
    """Settings configured for the extension on the host."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    repository: str | None = None
    base_branch: str | None = Field(default=None, alias="baseBranch")
    custom_instructions: str | None = Field(default=None, alias="customInstructions")

    @property
    def is_configured(self) -> bool:
        return bool((self.repository or "").strip())

    def resolved_base_branch(self) -> str:
        return (self.base_branch or "").strip() or DEFAULT_BASE_BRANCH

    def owner_and_repo(self) -> tuple[str, str]:
        """Split ``repository`` into (owner, repo).

        Raises:
            ConfigError: if the setting is missing or not exactly ``owner/repo``.
        """

        repository = (self.repository or "").strip()
        parts = repository.split("/")
        if len(parts) != 2 or not all(p.strip() for p in parts):
            raise ConfigError(_REPOSITORY_HINT)
        owner, repo = (p.strip() for p in parts)
        return owner, repo


class OrchestratorSettings(BaseSettings):
    """Process settings.

    Environment variables:
    - ORCHESTRATOR_GITHUB_TOKEN   (required when a run authenticates)
    - GITHUB_BASE_URL             (optional)
    - LOG_LEVEL                   (optional)
    - AGENT_STATE_PATH            (optional)
    - AHA_RECORDS_PATH            (optional)
    - COPILOT_ASSIGNEE            (optional)
    - COPILOT_REPOSITORY / COPILOT_BASE_BRANCH / COPILOT_CUSTOM_INSTRUCTIONS

    Notes:
        Unlike a plain CLI token check, the token is not validated at load time: an
        already-assigned record needs no GitHub access at all. A missing token
        surfaces as an authentication error when a run actually needs it.
    """

    github_token: str = Field(
        default="",
        validation_alias="ORCHESTRATOR_GITHUB_TOKEN",
        description="GitHub token handed out by the static token broker",
    )
    github_base_url: str = Field(
        default=GITHUB_API,
        validation_alias="GITHUB_BASE_URL",
        description="GitHub API base URL (useful for GitHub Enterprise)",
    )

    log_level: str = Field(
        default="INFO",
        validation_alias="LOG_LEVEL",
        description="Root logging level",
    )

    agent_state_path: Path = Field(
        default=Path("agent_state"),
        validation_alias="AGENT_STATE_PATH",
        description="Directory where record extension fields are persisted",
    )

    records_path: Path = Field(
        default=Path("aha_records.json"),
        validation_alias="AHA_RECORDS_PATH",
        description="JSON export of Aha! records used as the record data source",
    )

    copilot_assignee: str = Field(
        default=DEFAULT_COPILOT_ASSIGNEE,
        validation_alias="COPILOT_ASSIGNEE",
        description=(
            "GitHub login used for Copilot coding agent issue assignment. "
            "Override via COPILOT_ASSIGNEE if your org uses a different login."
        ),
    )

    repository: str = Field(
        default="",
        validation_alias="COPILOT_REPOSITORY",
        description="Default target repository in the form 'owner/repo'",
    )
    base_branch: str = Field(
        default=DEFAULT_BASE_BRANCH,
        validation_alias="COPILOT_BASE_BRANCH",
        description="Default base branch for Copilot work",
    )
    custom_instructions: str = Field(
        default="",
        validation_alias="COPILOT_CUSTOM_INSTRUCTIONS",
        description="Default additional instructions for Copilot",
    )

    model_config = SettingsConfigDict(
        env_prefix="",
        env_file=".env",
        extra="ignore",
    )

    @property
    def extension_fields_file(self) -> Path:
        """Path where record extension fields (assignment markers) are persisted."""

        return self.agent_state_path / "extension_fields.json"

    def extension_settings(
        self,
        *,
        repository: str | None = None,
        base_branch: str | None = None,
        custom_instructions: str | None = None,
    ) -> ExtensionSettings:
        """Extension settings from configured defaults, with explicit overrides applied."""

        return ExtensionSettings(
            repository=repository if repository is not None else self.repository,
            base_branch=base_branch if base_branch is not None else self.base_branch,
            custom_instructions=(
                custom_instructions if custom_instructions is not None else self.custom_instructions
            ),
        )
