"""FastAPI adapter for the "Send to Copilot" button.

Design intent:
- Keep the assignment flow in `aha_assign_copilot.orchestrator.*`
- Keep HTTP concerns (routing, request models, status codes) here
"""

from __future__ import annotations

__all__ = ["create_app"]

from aha_assign_copilot.server.app import create_app
