"""
rewards_deployer.orchestrator.clock

Time source used for every intentional suspension in a run.

Responsibilities:
- Provide a cancellable `sleep` (never a blocking one).
- Allow tests to inject a fake clock and skip delays.
"""

from __future__ import annotations

import asyncio
import time
from typing import Protocol


class Clock(Protocol):
    async def sleep(self, seconds: float) -> None: ...

    def monotonic(self) -> float: ...


class AsyncioClock:
    async def sleep(self, seconds: float) -> None:
        # asyncio.sleep raises CancelledError when the surrounding task is cancelled.
        await asyncio.sleep(seconds)

    def monotonic(self) -> float:
        return time.monotonic()


# --- Module Notes -----------------------------------------------------------
# Chain clients use the same protocol for receipt polling so a fake clock covers both.
