"""
rewards_deployer.orchestrator.deployer

The deployment orchestrator: six ordered on-chain steps plus the run driver.

Responsibilities:
- Implement each step against an injected chain client, checking local
  preconditions before anything is sent.
- Drive a full run through the step graph, checkpointing after every step.
- Record `FAILED(step, cause)` and surface it; never retry across steps.
- Refuse to resume past an ambiguous failure without operator confirmation.
"""

from __future__ import annotations

import asyncio
import uuid
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import asdict, dataclass
from typing import Any, Literal

from rewards_deployer.chain_clients.artifacts import ContractArtifact
from rewards_deployer.chain_clients.base import ChainClient
from rewards_deployer.models import (
    ZERO_ADDRESS,
    DeploymentParameters,
    FactoryHandle,
    RunSummary,
    StakingRewardsRecord,
    TxReceipt,
    is_address,
)
from rewards_deployer.observability.logging import get_logger
from rewards_deployer.orchestrator.clock import AsyncioClock, Clock
from rewards_deployer.orchestrator.errors import (
    LOCAL_ERROR_KINDS,
    CallReverted,
    CheckpointFailed,
    ConfirmationRequired,
    DeploymentFailed,
    InsufficientBalance,
    InvalidParameters,
    NotFunded,
    RecordNotFound,
    error_kind,
)
from rewards_deployer.orchestrator.graph import build_graph
from rewards_deployer.orchestrator.state import (
    SENDING_STEPS,
    DeploymentState,
    RunStatus,
    Stage,
    next_step,
)

log = get_logger(__name__)

SETUP_METHOD = "deploy"
RECORD_GETTER = "stakingRewardsInfoList"
ACTIVATE_METHOD = "notifyRewardAmounts"

Checkpoint = Callable[[DeploymentState], Awaitable[None]]


@dataclass(frozen=True, slots=True)
class OrchestratorConfig:
    parameters: DeploymentParameters
    # Fund a multiple of one period's reward to pre-stage several cycles.
    funding_multiple: int = 3
    funding_target: Literal["staking_rewards", "factory"] = "staking_rewards"
    propagation_delay_ms: int = 3000

    @property
    def funding_amount(self) -> int:
        return self.parameters.reward_amount * self.funding_multiple


@dataclass(slots=True)
class _Funding:
    address: str
    amount: int


class DeploymentOrchestrator:
    """
    One instance drives one run at a time. The instance holds no state beyond the
    funding record of the current run, which is restored from saved state on resume.
    """

    def __init__(
        self,
        *,
        client: ChainClient,
        config: OrchestratorConfig,
        factory_artifact: ContractArtifact,
        clock: Clock | None = None,
    ) -> None:
        self._client = client
        self._config = config
        self._artifact = factory_artifact
        self._clock = clock or AsyncioClock()
        self._funding: _Funding | None = None

    @property
    def config(self) -> OrchestratorConfig:
        return self._config

    # -- steps -----------------------------------------------------------------

    async def deploy_factory(self, reward_token: str) -> FactoryHandle:
        if not is_address(reward_token):
            raise InvalidParameters([f"reward_token is not an address: {reward_token!r}"])
        address, receipt = await self._client.deploy(self._artifact, [reward_token])
        return FactoryHandle(address=address, receipt=receipt)

    async def initialize_factory(
        self, handle: FactoryHandle, params: DeploymentParameters
    ) -> TxReceipt:
        # Validation happens before any chain call; a rejected parameter set sends nothing.
        params.validate()
        return await self._client.send(
            handle.address, self._artifact.abi, SETUP_METHOD, list(params.as_call_args())
        )

    async def read_staking_rewards_record(
        self, handle: FactoryHandle, index: int = 0
    ) -> StakingRewardsRecord:
        if index < 0:
            raise RecordNotFound(f"record index must be >= 0, got {index}")
        try:
            info = await self._client.call(
                handle.address, self._artifact.abi, RECORD_GETTER, [index]
            )
        except CallReverted as e:
            raise RecordNotFound(f"factory {handle.address} has no record #{index}") from e

        address = _record_address(info)
        if address is None or address.lower() == ZERO_ADDRESS:
            raise RecordNotFound(f"factory {handle.address} has no record #{index}")
        return StakingRewardsRecord(index=index, address=address)

    async def fund_staking_rewards(
        self,
        record: StakingRewardsRecord,
        amount: int,
        *,
        factory: FactoryHandle | None = None,
    ) -> TxReceipt:
        if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
            raise InvalidParameters([f"funding amount must be a positive integer, got {amount!r}"])

        target = record.address
        if self._config.funding_target == "factory":
            if factory is None:
                raise InvalidParameters(["funding target is the factory but no factory was given"])
            target = factory.address

        token = self._config.parameters.reward_token
        owner = self._client.account_address
        balance = await self._client.get_token_balance(token, owner)
        if balance < amount:
            raise InsufficientBalance(
                f"deployer {owner} holds {balance} of {token}, needs {amount}",
                balance=balance,
                required=amount,
            )

        receipt = await self._client.transfer_token(token, target, amount)
        self._funding = _Funding(address=target, amount=amount)
        return receipt

    async def wait_for_propagation(self, duration_ms: int | None = None) -> None:
        delay = self._config.propagation_delay_ms if duration_ms is None else duration_ms
        if delay < 0:
            raise InvalidParameters([f"propagation delay must be >= 0, got {delay}"])
        if delay:
            await self._clock.sleep(delay / 1000)

    async def activate_rewards(self, handle: FactoryHandle) -> TxReceipt:
        funding = self._funding
        if funding is None:
            raise NotFunded("rewards have not been funded in this run; fund before activating")

        balance = await self._client.get_token_balance(
            self._config.parameters.reward_token, funding.address
        )
        if balance < funding.amount:
            raise NotFunded(
                f"{funding.address} holds {balance}, expected at least {funding.amount}"
            )
        return await self._client.send(handle.address, self._artifact.abi, ACTIVATE_METHOD, [])

    # -- run driver ------------------------------------------------------------

    def new_state(self, *, network: str = "", run_id: str | None = None) -> DeploymentState:
        params = self._config.parameters
        return {
            "run_id": run_id or uuid.uuid4().hex,
            "network": network,
            "stage": Stage.not_started,
            "status": RunStatus.pending,
            "propagated": False,
            "reward_token": params.reward_token,
            "parameters": asdict(params),
            "funding_amount": self._config.funding_amount,
            "factory_address": None,
            "staking_rewards_address": None,
            "record_index": 0,
            "funded_address": None,
            "transactions": {},
            "failure": None,
            "audit_log": [],
        }

    async def run(
        self,
        state: DeploymentState | None = None,
        *,
        network: str = "",
        confirm_retry: bool = False,
        on_checkpoint: Checkpoint | None = None,
    ) -> RunSummary:
        """
        Execute (or resume) the pipeline and return the deployed addresses.

        Raises `InvalidParameters` or `ConfirmationRequired` before any chain call,
        `DeploymentFailed` when a step fails, and `CheckpointFailed` when a snapshot
        cannot be stored after a step succeeded.
        """

        self._check_config()
        current: DeploymentState = dict(state) if state else self.new_state(network=network)  # type: ignore[assignment]
        self._check_parameters(current)
        check_resume(current, confirm_retry=confirm_retry)
        self._restore_funding(current)

        graph = build_graph(orchestrator=self)
        try:
            async for snapshot in graph.astream(current, stream_mode="values"):
                current = dict(snapshot)  # type: ignore[assignment]
                await self._checkpoint(on_checkpoint, current)
        except CheckpointFailed:
            raise
        except asyncio.CancelledError:
            # Leave the run where it stopped; no cleanup transactions are attempted.
            current = record_failure(current, next_step(current), "Cancelled", "run cancelled")
            log.warning("run_cancelled", step=current["failure"]["step"])
            if on_checkpoint is not None:
                await asyncio.shield(on_checkpoint(current))
            raise
        except Exception as e:
            step = next_step(current)
            current = record_failure(current, step, error_kind(e), str(e))
            log.error("step_failed", step=step, error=error_kind(e), message=str(e))
            failed = DeploymentFailed(step, e, current)
            try:
                await self._checkpoint(on_checkpoint, current)
            except CheckpointFailed as cf:
                raise failed from cf
            raise failed from e

        return RunSummary(
            run_id=current["run_id"],
            factory_address=current["factory_address"] or "",
            staking_rewards_address=current["staking_rewards_address"] or "",
            funded_amount=int(current.get("funding_amount", 0)),
        )

    def _check_config(self) -> None:
        problems = self._config.parameters.problems()
        multiple = self._config.funding_multiple
        if isinstance(multiple, bool) or not isinstance(multiple, int) or multiple < 1:
            problems.append(f"funding_multiple must be an integer >= 1, got {multiple!r}")
        delay = self._config.propagation_delay_ms
        if isinstance(delay, bool) or not isinstance(delay, int) or delay < 0:
            problems.append(f"propagation_delay_ms must be an integer >= 0, got {delay!r}")
        if problems:
            raise InvalidParameters(problems)

    async def _checkpoint(self, on_checkpoint: Checkpoint | None, state: DeploymentState) -> None:
        if on_checkpoint is None:
            return
        try:
            await on_checkpoint(state)
        except Exception as e:
            log.error("checkpoint_failed", stage=str(state.get("stage")), error=error_kind(e), message=str(e))
            raise CheckpointFailed(str(state.get("stage")), e) from e

    def _check_parameters(self, state: DeploymentState) -> None:
        saved = state.get("parameters")
        current = asdict(self._config.parameters)
        if not saved:
            return
        # The ledger stores large amounts as decimal strings.
        changed = sorted(k for k in current if str(saved.get(k)) != str(current[k]))
        if changed:
            raise InvalidParameters(
                [f"parameters differ from the saved run: {', '.join(changed)}"]
            )

    def _restore_funding(self, state: DeploymentState) -> None:
        self._funding = None
        if Stage(state.get("stage") or Stage.not_started) in (Stage.funded, Stage.activated):
            address = state.get("funded_address")
            if address:
                self._funding = _Funding(address=address, amount=int(state["funding_amount"]))


def _record_address(info: Any) -> str | None:
    if isinstance(info, Mapping):
        value = info.get("stakingRewards")
    elif isinstance(info, (list, tuple)):
        value = info[0] if info else None
    else:
        value = info
    return value if is_address(value) else None


def check_resume(state: DeploymentState, *, confirm_retry: bool) -> None:
    failure = state.get("failure")
    if not failure or confirm_retry:
        return
    step = str(failure.get("step", ""))
    if step in SENDING_STEPS and failure.get("error") not in LOCAL_ERROR_KINDS:
        raise ConfirmationRequired(
            step=step,
            reason=(
                f"previous attempt failed with {failure.get('error')}; the transaction may "
                "have reached the chain. Check chain state, then re-run with confirmation."
            ),
            payload={
                "failure": dict(failure),
                "stage": state.get("stage"),
                "factory_address": state.get("factory_address"),
                "staking_rewards_address": state.get("staking_rewards_address"),
            },
        )


def record_failure(
    state: DeploymentState, step: str, error: str, message: str
) -> DeploymentState:
    failed: DeploymentState = dict(state)  # type: ignore[assignment]
    failed["status"] = RunStatus.failed
    failed["failure"] = {"step": step, "error": error, "message": message}
    failed["audit_log"] = [
        *state.get("audit_log", []),
        {"event": "STEP_FAILED", "details": {"step": step, "error": error, "message": message}},
    ]
    return failed


# --- Module Notes -----------------------------------------------------------
# Step methods are usable on their own (operators and tests call them directly); `run`
# composes them through the graph in `orchestrator.graph`.
