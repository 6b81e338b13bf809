"""
rewards_deployer.services.deployment_service

Deployment run lifecycle service (transaction + persistence owner).

Responsibilities:
- Create runs and initialize orchestrator state.
- Execute the orchestrator with a durable checkpoint after every step.
- Persist audit events, failures, and confirmation interrupts.
- Resume a run from the step after its last confirmed stage.
"""

from __future__ import annotations

import asyncio
import uuid
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from rewards_deployer.db.repositories.audit import AuditRepo
from rewards_deployer.db.repositories.runs import RunRepo
from rewards_deployer.observability.logging import bind_run_context, clear_run_context, get_logger
from rewards_deployer.orchestrator.deployer import DeploymentOrchestrator
from rewards_deployer.orchestrator.errors import ConfirmationRequired
from rewards_deployer.orchestrator.state import DeploymentState, RunStatus

log = get_logger(__name__)


class RunNotFound(LookupError):
    pass


class DeploymentService:
    def __init__(self, *, session: AsyncSession, orchestrator: DeploymentOrchestrator) -> None:
        self._session = session
        self._orchestrator = orchestrator

        self._runs = RunRepo(session)
        self._audit = AuditRepo(session)

    async def start(self, *, network: str, actor: str = "operator") -> uuid.UUID:
        run = await self._runs.create(network=network)
        initial = self._orchestrator.new_state(network=network, run_id=str(run.id))
        await self._runs.set_state(run_id=run.id, state=dict(initial))
        # Audit: run creation is attributed to the initiating operator.
        await self._audit.add(
            run_id=run.id,
            actor=actor,
            event_type="RUN_CREATED",
            details={"network": network, "parameters": _jsonable(initial["parameters"])},
        )
        await self._session.commit()
        return run.id

    async def latest_run_id(self, *, network: str) -> uuid.UUID | None:
        run = await self._runs.latest_for_network(network)
        return run.id if run else None

    async def execute(
        self, *, run_id: uuid.UUID, actor: str = "operator", confirm_retry: bool = False
    ) -> dict[str, Any]:
        run = await self._runs.get(run_id)
        if run is None:
            raise RunNotFound(f"run {run_id} not found")

        state: DeploymentState = dict(run.state or {})  # type: ignore[assignment]
        if not state:
            state = self._orchestrator.new_state(network=run.network, run_id=str(run.id))
        persisted_audit_idx = len(state.get("audit_log", []))

        async def checkpoint(snapshot: DeploymentState) -> None:
            nonlocal persisted_audit_idx
            failure = snapshot.get("failure") or {}
            await self._runs.set_state(
                run_id=run.id,
                status=RunStatus(snapshot.get("status") or RunStatus.running),
                state=_jsonable(dict(snapshot)),
                failed_step=failure.get("step"),
                error=failure.get("message"),
                clear_failure=not failure,
            )
            # Persist newly appended audit entries incrementally for crash recovery / replay.
            entries = snapshot.get("audit_log", [])
            for entry in entries[persisted_audit_idx:]:
                await self._audit.add(
                    run_id=run.id,
                    actor="deployer",
                    event_type=str(entry.get("event", "UNKNOWN")),
                    details=_jsonable(dict(entry.get("details", {}))),
                )
            persisted_audit_idx = len(entries)
            await self._session.commit()

        bind_run_context(run_id=str(run.id), network=run.network)
        try:
            if confirm_retry and state.get("failure"):
                await self._audit.add(
                    run_id=run.id,
                    actor=actor,
                    event_type="RETRY_CONFIRMED",
                    details=_jsonable(dict(state["failure"])),
                )
                await self._session.commit()

            summary = await self._orchestrator.run(
                state, confirm_retry=confirm_retry, on_checkpoint=checkpoint
            )
            return {
                "status": RunStatus.completed.value,
                "run_id": str(run.id),
                "network": run.network,
                "factory_address": summary.factory_address,
                "staking_rewards_address": summary.staking_rewards_address,
                "funded_amount": str(summary.funded_amount),
            }
        except ConfirmationRequired as cr:
            await self._runs.set_state(run_id=run.id, status=RunStatus.interrupted)
            await self._audit.add(
                run_id=run.id,
                actor="deployer",
                event_type="CONFIRMATION_REQUIRED",
                details=_jsonable({"step": cr.step, "reason": cr.reason, **cr.payload}),
            )
            await self._session.commit()
            log.warning("confirmation_required", step=cr.step, reason=cr.reason)
            return {
                "status": RunStatus.interrupted.value,
                "run_id": str(run.id),
                "network": run.network,
                "step": cr.step,
                "reason": cr.reason,
            }
        except asyncio.CancelledError:
            log.warning("run_interrupted")
            raise
        finally:
            clear_run_context()

    async def status(self, *, run_id: uuid.UUID) -> dict[str, Any]:
        return await run_status(self._session, run_id=run_id)


async def run_status(session: AsyncSession, *, run_id: uuid.UUID) -> dict[str, Any]:
    """Stored run state plus its audit trail; needs no chain connection."""

    run = await RunRepo(session).get(run_id)
    if run is None:
        raise RunNotFound(f"run {run_id} not found")
    events = await AuditRepo(session).list_for_run(run.id)
    return {
        "run_id": str(run.id),
        "network": run.network,
        "status": str(run.status),
        "stage": str(run.stage),
        "factory_address": run.factory_address,
        "staking_rewards_address": run.staking_rewards_address,
        "failed_step": run.failed_step,
        "error": run.error,
        "transactions": dict((run.state or {}).get("transactions", {})),
        "created_at": run.created_at.isoformat(),
        "updated_at": run.updated_at.isoformat(),
        "events": [
            {"event": ev.event_type, "actor": ev.actor, "details": ev.details}
            for ev in events
        ],
    }


def _jsonable(value: Any) -> Any:
    # Token amounts exceed the 2**53 range of JSON numbers in most readers; store as strings.
    if isinstance(value, bool) or value is None:
        return value
    if isinstance(value, int) and abs(value) > 2**53:
        return str(value)
    if isinstance(value, dict):
        return {str(k): _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    return value


# --- Module Notes -----------------------------------------------------------
# This service is the transaction boundary: it decides when to commit checkpoints and how to
# map orchestrator state into durable rows (DeploymentRun/AuditEvent).
