"""Aha! → GitHub Copilot assignment.

Turns an Aha! Feature or Requirement into a GitHub issue assigned to the Copilot
coding agent, and records the issue on the originating record so the operation
runs at most once per record:
- configuration loaded from `.env`
- structured logging
- issue synthesis, GitHub issue creation and record-scoped persistence
"""

__version__ = "0.1.0"

from aha_assign_copilot.orchestrator.config import ExtensionSettings, OrchestratorSettings

__all__ = ["__version__", "ExtensionSettings", "OrchestratorSettings"]
