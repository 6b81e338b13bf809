"""
rewards_deployer.db.repositories.runs

Repository for `DeploymentRun` entities.

Responsibilities:
- Create and fetch deployment runs.
- Persist checkpoints (state snapshots) and failure metadata.
"""

from __future__ import annotations

import uuid
from typing import Any

from sqlalchemy import desc, select
from sqlalchemy.ext.asyncio import AsyncSession

from rewards_deployer.db.models import DeploymentRun, _utcnow
from rewards_deployer.orchestrator.state import RunStatus, Stage


class RunRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, *, network: str) -> DeploymentRun:
        # A new run starts PENDING at NOT_STARTED; the orchestrator fills in the state.
        run = DeploymentRun(
            network=network,
            status=RunStatus.pending,
            stage=Stage.not_started,
            state={},
            failed_step=None,
            error=None,
        )
        self._session.add(run)
        await self._session.flush()
        return run

    async def get(self, run_id: uuid.UUID) -> DeploymentRun | None:
        return await self._session.get(DeploymentRun, run_id)

    async def latest_for_network(self, network: str) -> DeploymentRun | None:
        stmt = (
            select(DeploymentRun)
            .where(DeploymentRun.network == network)
            .order_by(desc(DeploymentRun.created_at))
            .limit(1)
        )
        return (await self._session.execute(stmt)).scalar_one_or_none()

    async def set_state(
        self,
        *,
        run_id: uuid.UUID,
        status: RunStatus | None = None,
        state: dict[str, Any] | None = None,
        failed_step: str | None = None,
        error: str | None = None,
        clear_failure: bool = False,
    ) -> None:
        # Checkpoint/state updates are locked to avoid concurrent writers clobbering state.
        run = await self._session.get(DeploymentRun, run_id, with_for_update=True)
        if run is None:
            return
        if status is not None:
            run.status = status
        if state is not None:
            run.state = state
            run.stage = Stage(state.get("stage") or Stage.not_started)
            run.factory_address = state.get("factory_address")
            run.staking_rewards_address = state.get("staking_rewards_address")
        if clear_failure:
            run.failed_step = None
            run.error = None
        if failed_step is not None:
            run.failed_step = failed_step
        if error is not None:
            run.error = error
        run.updated_at = _utcnow()


# --- Module Notes -----------------------------------------------------------
# Checkpoints are written after each graph node execution (see services.deployment_service).
