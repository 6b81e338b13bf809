"""
rewards_deployer.db.models

Persistence schema for the deployment run ledger.

Responsibilities:
- Define ORM models for deployment runs:
  - DeploymentRun: one pipeline execution against one network, with its state snapshot
  - AuditEvent: append-only trail of step events per run
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import JSON, Enum, Index, Integer, String, Text, Uuid as SAUuid
from sqlalchemy.orm import Mapped, mapped_column

from rewards_deployer.db.base import Base
from rewards_deployer.orchestrator.state import RunStatus, Stage


def _utcnow() -> datetime:
    # Persist naive UTC timestamps for simplicity.
    return datetime.now(UTC).replace(tzinfo=None)


class DeploymentRun(Base):
    __tablename__ = "deployment_runs"

    id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    network: Mapped[str] = mapped_column(String(64), nullable=False, index=True)

    status: Mapped[RunStatus] = mapped_column(Enum(RunStatus), nullable=False, index=True)
    stage: Mapped[Stage] = mapped_column(Enum(Stage), nullable=False)
    # `state` stores the orchestrator state snapshot (checkpointed per step).
    state: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)

    factory_address: Mapped[str | None] = mapped_column(String(42), nullable=True)
    staking_rewards_address: Mapped[str | None] = mapped_column(String(42), nullable=True)

    failed_step: Mapped[str | None] = mapped_column(String(64), nullable=True)
    error: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(nullable=False, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(nullable=False, default=_utcnow, onupdate=_utcnow)

    __table_args__ = (Index("ix_runs_network_created", "network", "created_at"),)


class AuditEvent(Base):
    __tablename__ = "audit_events"

    # Integer key preserves insertion order when timestamps collide.
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    run_id: Mapped[uuid.UUID] = mapped_column(SAUuid(as_uuid=True), nullable=False, index=True)

    actor: Mapped[str] = mapped_column(String(256), nullable=False)  # operator / deployer
    event_type: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    details: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)

    created_at: Mapped[datetime] = mapped_column(nullable=False, default=_utcnow, index=True)

    __table_args__ = (Index("ix_audit_run_created", "run_id", "created_at"),)


# --- Module Notes -----------------------------------------------------------
# The chain is the source of truth; this ledger only records what the deployer observed
# so an operator can resume from the right step instead of restarting from step one.
