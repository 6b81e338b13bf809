"""
rewards_deployer.chain_clients.base

Chain client boundary used by the orchestrator.

Responsibilities:
- Define the async capabilities the orchestrator needs from a node + signer.
- Keep the orchestrator independent of web3 (tests drive it with a fake).
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any, Protocol

from rewards_deployer.chain_clients.artifacts import ContractArtifact
from rewards_deployer.models import TxReceipt


class ChainClient(Protocol):
    """
    Every method either returns a confirmed result or raises a
    `rewards_deployer.orchestrator.errors.DeploymentError` subclass.
    """

    @property
    def account_address(self) -> str: ...

    async def deploy(
        self, artifact: ContractArtifact, constructor_args: Sequence[Any]
    ) -> tuple[str, TxReceipt]: ...

    async def call(
        self, address: str, abi: list[dict[str, Any]], method: str, args: Sequence[Any] = ()
    ) -> Any: ...

    async def send(
        self, address: str, abi: list[dict[str, Any]], method: str, args: Sequence[Any] = ()
    ) -> TxReceipt: ...

    async def get_token_balance(self, token: str, owner: str) -> int: ...

    async def transfer_token(self, token: str, to: str, amount: int) -> TxReceipt: ...


# --- Module Notes -----------------------------------------------------------
# `send`/`deploy`/`transfer_token` only return once the configured confirmation depth is
# reached, so the orchestrator never issues step N+1 before step N is confirmed.
