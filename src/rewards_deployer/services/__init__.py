"""
rewards_deployer.services

Service layer between the CLI and the orchestrator.

Responsibilities:
- Create and resume runs in the ledger.
- Commit a checkpoint after every confirmed step.
"""


# --- Module Notes -----------------------------------------------------------
# Services take an orchestrator and a session; tests pass a fake chain client and in-memory SQLite.
