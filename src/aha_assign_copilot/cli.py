"""Console script entrypoint.

The command is implemented in `aha_assign_copilot.orchestrator.main`.
"""

from __future__ import annotations

from aha_assign_copilot.orchestrator.main import main

__all__ = ["main"]


if __name__ == "__main__":
    raise SystemExit(main())
