from __future__ import annotations

from typing import TYPE_CHECKING, Any

from rewards_deployer.models import FactoryHandle, StakingRewardsRecord
from rewards_deployer.observability.logging import get_logger
from rewards_deployer.orchestrator.errors import InvalidParameters
from rewards_deployer.orchestrator.state import (
    ACTIVATE,
    DEPLOY_FACTORY,
    FINISH,
    FUND,
    INITIALIZE_FACTORY,
    READ_RECORD,
    WAIT,
    DeploymentState,
    RunStatus,
    Stage,
    next_step,
)

if TYPE_CHECKING:  # pragma: no cover - typing only
    from rewards_deployer.orchestrator.deployer import DeploymentOrchestrator

log = get_logger(__name__)


def _audit(event: str, **details: Any) -> list[dict[str, Any]]:
    return [{"event": event, "details": details}]


def _factory(state: DeploymentState) -> FactoryHandle:
    address = state.get("factory_address")
    if not address:
        # Only reachable with a hand-edited state; the stage says the factory exists.
        raise InvalidParameters(["run state has no factory address"])
    return FactoryHandle(address=address)


async def entry_node(state: DeploymentState) -> DeploymentState:
    """
    - Mark the run as running and clear a previous failure
    - Record whether this is a fresh run or a resume
    """

    resumed = state.get("stage", Stage.not_started) != Stage.not_started or bool(state.get("failure"))
    event = "RUN_RESUMED" if resumed else "RUN_STARTED"
    log.info(event.lower(), stage=state.get("stage"), next_step=next_step(state))
    return {
        "status": RunStatus.running,
        "failure": None,
        "audit_log": _audit(event, stage=str(state.get("stage")), next_step=next_step(state)),
    }


async def deploy_factory_node(
    state: DeploymentState, *, orchestrator: DeploymentOrchestrator
) -> DeploymentState:
    log.info("step_started", step=DEPLOY_FACTORY)
    handle = await orchestrator.deploy_factory(state["reward_token"])
    tx_hash = handle.receipt.tx_hash if handle.receipt else ""
    log.info("factory_deployed", address=handle.address, tx_hash=tx_hash)
    return {
        "stage": Stage.factory_deployed,
        "factory_address": handle.address,
        "transactions": {DEPLOY_FACTORY: tx_hash},
        "audit_log": _audit("FACTORY_DEPLOYED", address=handle.address, tx_hash=tx_hash),
    }


async def initialize_factory_node(
    state: DeploymentState, *, orchestrator: DeploymentOrchestrator
) -> DeploymentState:
    log.info("step_started", step=INITIALIZE_FACTORY)
    receipt = await orchestrator.initialize_factory(
        _factory(state), orchestrator.config.parameters
    )
    log.info("factory_initialized", tx_hash=receipt.tx_hash)
    return {
        "stage": Stage.initialized,
        "transactions": {INITIALIZE_FACTORY: receipt.tx_hash},
        "audit_log": _audit("FACTORY_INITIALIZED", tx_hash=receipt.tx_hash),
    }


async def read_record_node(
    state: DeploymentState, *, orchestrator: DeploymentOrchestrator
) -> DeploymentState:
    index = int(state.get("record_index", 0) or 0)
    log.info("step_started", step=READ_RECORD, index=index)
    record = await orchestrator.read_staking_rewards_record(_factory(state), index)
    log.info("record_read", index=record.index, address=record.address)
    return {
        "stage": Stage.record_read,
        "staking_rewards_address": record.address,
        "audit_log": _audit("RECORD_READ", index=record.index, address=record.address),
    }


async def fund_node(
    state: DeploymentState, *, orchestrator: DeploymentOrchestrator
) -> DeploymentState:
    address = state.get("staking_rewards_address")
    if not address:
        raise InvalidParameters(["run state has no staking-rewards address"])
    record = StakingRewardsRecord(index=int(state.get("record_index", 0) or 0), address=address)
    amount = int(state["funding_amount"])

    log.info("step_started", step=FUND, amount=amount)
    factory = _factory(state)
    receipt = await orchestrator.fund_staking_rewards(record, amount, factory=factory)
    funded = factory.address if orchestrator.config.funding_target == "factory" else record.address
    log.info("rewards_funded", to=funded, amount=amount, tx_hash=receipt.tx_hash)
    return {
        "stage": Stage.funded,
        "funded_address": funded,
        "propagated": False,
        "transactions": {FUND: receipt.tx_hash},
        "audit_log": _audit("FUNDED", to=funded, amount=str(amount), tx_hash=receipt.tx_hash),
    }


async def wait_node(
    state: DeploymentState, *, orchestrator: DeploymentOrchestrator
) -> DeploymentState:
    delay = orchestrator.config.propagation_delay_ms
    log.info("step_started", step=WAIT, delay_ms=delay)
    await orchestrator.wait_for_propagation(delay)
    return {"propagated": True, "audit_log": _audit("PROPAGATED", delay_ms=delay)}


async def activate_node(
    state: DeploymentState, *, orchestrator: DeploymentOrchestrator
) -> DeploymentState:
    log.info("step_started", step=ACTIVATE)
    receipt = await orchestrator.activate_rewards(_factory(state))
    log.info("rewards_activated", tx_hash=receipt.tx_hash)
    return {
        "stage": Stage.activated,
        "transactions": {ACTIVATE: receipt.tx_hash},
        "audit_log": _audit("ACTIVATED", tx_hash=receipt.tx_hash),
    }


async def finish_node(state: DeploymentState) -> DeploymentState:
    log.info(
        "farm_started",
        factory=state.get("factory_address"),
        staking_rewards=state.get("staking_rewards_address"),
    )
    return {
        "status": RunStatus.completed,
        "audit_log": _audit(
            "FINISH",
            factory_address=state.get("factory_address"),
            staking_rewards_address=state.get("staking_rewards_address"),
        ),
    }


def route_from_entry(state: DeploymentState) -> str:
    # Resumes re-enter at the step after the last confirmed stage.
    return next_step(state)


ROUTES = {
    DEPLOY_FACTORY: DEPLOY_FACTORY,
    INITIALIZE_FACTORY: INITIALIZE_FACTORY,
    READ_RECORD: READ_RECORD,
    FUND: FUND,
    WAIT: WAIT,
    ACTIVATE: ACTIVATE,
    FINISH: FINISH,
}
