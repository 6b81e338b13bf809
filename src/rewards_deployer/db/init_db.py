"""
rewards_deployer.db.init_db

DB initialization helpers.

Responsibilities:
- Create the run ledger tables if they don't exist.
"""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncEngine

from rewards_deployer.db import models  # noqa: F401  (registers tables on Base.metadata)
from rewards_deployer.db.base import Base


async def init_db(engine: AsyncEngine) -> None:
    # Use a transactional DDL block when supported by the backend.
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


# --- Module Notes -----------------------------------------------------------
# The ledger schema is small and append-mostly; `create_all` is the whole migration story.
