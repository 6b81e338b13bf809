"""
rewards_deployer.orchestrator.state

Typed state schema and stage machine for a deployment run.

Responsibilities:
- Define the contract between graph nodes (inputs/outputs).
- Provide a stable, JSON-friendly shape for the run ledger (stored in runs.state).
- Map each stage to the step that follows it, for fresh runs and resumes alike.
"""

from __future__ import annotations

import enum
from typing import Annotated, Any, TypedDict

from rewards_deployer.orchestrator.reducers import append_audit, merge_dicts


class Stage(enum.StrEnum):
    # Last confirmed milestone of the run; only ever moves forward.
    not_started = "NOT_STARTED"
    factory_deployed = "FACTORY_DEPLOYED"
    initialized = "INITIALIZED"
    record_read = "RECORD_READ"
    funded = "FUNDED"
    activated = "ACTIVATED"


class RunStatus(enum.StrEnum):
    pending = "PENDING"
    running = "RUNNING"
    completed = "COMPLETED"
    failed = "FAILED"
    # Resume refused until the operator confirms a possibly-submitted step.
    interrupted = "INTERRUPTED"


DEPLOY_FACTORY = "deploy_factory"
INITIALIZE_FACTORY = "initialize_factory"
READ_RECORD = "read_staking_rewards_record"
FUND = "fund_staking_rewards"
WAIT = "wait_for_propagation"
ACTIVATE = "activate_rewards"
FINISH = "finish"

STEPS = (DEPLOY_FACTORY, INITIALIZE_FACTORY, READ_RECORD, FUND, WAIT, ACTIVATE)

# Steps that submit a transaction; re-sending them can duplicate on-chain effects.
SENDING_STEPS = frozenset({DEPLOY_FACTORY, INITIALIZE_FACTORY, FUND, ACTIVATE})

_STEP_AFTER_STAGE = {
    Stage.not_started: DEPLOY_FACTORY,
    Stage.factory_deployed: INITIALIZE_FACTORY,
    Stage.initialized: READ_RECORD,
    Stage.record_read: FUND,
    Stage.funded: WAIT,
    Stage.activated: FINISH,
}


class DeploymentState(TypedDict, total=False):
    # Identifiers
    run_id: str
    network: str

    # Progress
    stage: str
    status: str
    propagated: bool

    # Inputs (snapshot of the immutable parameters the run was started with)
    reward_token: str
    parameters: dict[str, Any]
    funding_amount: int

    # Outputs
    factory_address: str | None
    staking_rewards_address: str | None
    record_index: int
    funded_address: str | None
    transactions: Annotated[dict[str, str], merge_dicts]

    # Failure(step, cause)
    failure: dict[str, Any] | None

    # Audit
    audit_log: Annotated[list[dict[str, Any]], append_audit]


def next_step(state: DeploymentState) -> str:
    stage = Stage(state.get("stage") or Stage.not_started)
    if stage == Stage.funded and state.get("propagated"):
        return ACTIVATE
    return _STEP_AFTER_STAGE[stage]


# --- Module Notes -----------------------------------------------------------
# The propagation wait has no stage of its own; `propagated` records that it finished
# so a resumed run does not wait twice before activation.
