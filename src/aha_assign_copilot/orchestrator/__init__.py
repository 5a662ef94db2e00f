"""Assignment components.

- Record fetching and issue synthesis
- GitHub issue creation with Copilot agent assignment
- The assignment state machine and its presentation
"""
