"""
rewards_deployer.db

Run ledger persistence (async SQLAlchemy).

Responsibilities:
- Record each deployment run, its last confirmed stage and its audit trail.
- Let an interrupted or failed run be resumed from the step after that stage.
"""


# --- Module Notes -----------------------------------------------------------
# DEPLOYER_DATABASE_URL defaults to `./deployments.db`; keep that file with the deploy checkout.
