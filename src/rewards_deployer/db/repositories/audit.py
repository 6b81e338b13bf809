"""
rewards_deployer.db.repositories.audit

Append-only audit trail of a deployment run.
"""

from __future__ import annotations

import uuid
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from rewards_deployer.db.models import AuditEvent


class AuditRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add(
        self,
        *,
        run_id: uuid.UUID,
        actor: str,
        event_type: str,
        details: dict[str, Any] | None = None,
    ) -> AuditEvent:
        event = AuditEvent(run_id=run_id, actor=actor, event_type=event_type, details=dict(details or {}))
        self._session.add(event)
        await self._session.flush()
        return event

    async def list_for_run(self, run_id: uuid.UUID) -> list[AuditEvent]:
        # Oldest first: the trail reads as the run happened.
        stmt = (
            select(AuditEvent)
            .where(AuditEvent.run_id == run_id)
            .order_by(AuditEvent.created_at, AuditEvent.id)
        )
        return list((await self._session.scalars(stmt)).all())
