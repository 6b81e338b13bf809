"""
tests.fakes

In-memory stand-ins for the chain client and the clock.

Responsibilities:
- Record every chain interaction in order (one shared event log with the clock).
- Model the factory's record list and ERC-20 balances closely enough for step tests.
- Inject one-shot failures per operation.
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from rewards_deployer.chain_clients.artifacts import ContractArtifact
from rewards_deployer.models import ZERO_ADDRESS, DeploymentParameters, TxReceipt
from rewards_deployer.orchestrator.errors import CallReverted, DeploymentError, InsufficientBalance
from rewards_deployer.settings import GIN_TOKEN_ADDRESS

TOKEN = GIN_TOKEN_ADDRESS
DEPLOYER = "0x" + "d" * 40
REWARD = 86400 * 10**18


def factory_address(n: int) -> str:
    return f"0x{0xFAC70000 + n:040x}"


def staking_address(n: int) -> str:
    return f"0x{0x57A4E000 + n:040x}"


FACTORY_ABI: list[dict[str, Any]] = [
    {
        "type": "constructor",
        "inputs": [{"name": "_rewardsToken", "type": "address"}],
        "stateMutability": "nonpayable",
    },
    {
        "type": "function",
        "name": "deploy",
        "inputs": [
            {"name": "stakingToken", "type": "address"},
            {"name": "rewardAmount", "type": "uint256"},
            {"name": "rewardsDuration", "type": "uint256"},
            {"name": "lockPeriod", "type": "uint256"},
            {"name": "cooldownPeriod", "type": "uint256"},
            {"name": "boostMultiplier", "type": "uint256"},
        ],
        "outputs": [],
        "stateMutability": "nonpayable",
    },
    {
        "type": "function",
        "name": "stakingRewardsInfoList",
        "inputs": [{"name": "", "type": "uint256"}],
        "outputs": [
            {"name": "stakingRewards", "type": "address"},
            {"name": "rewardAmount", "type": "uint256"},
        ],
        "stateMutability": "view",
    },
    {
        "type": "function",
        "name": "notifyRewardAmounts",
        "inputs": [],
        "outputs": [],
        "stateMutability": "nonpayable",
    },
]


def artifact_payload() -> dict[str, Any]:
    return {
        "contractName": "GinLockedStakingRewardsFactory",
        "abi": FACTORY_ABI,
        "bytecode": "0x608060405234801561001057600080fd5b50",
    }


def write_artifact(directory: Path) -> Path:
    path = directory / "GinLockedStakingRewardsFactory.json"
    path.write_text(json.dumps(artifact_payload()), encoding="utf-8")
    return path


def default_parameters(**overrides: Any) -> DeploymentParameters:
    values: dict[str, Any] = {
        "reward_token": TOKEN,
        "reward_amount": REWARD,
        "reward_duration": 86400,
        "lock_period": 600,
        "cooldown_period": 600,
        "boost_multiplier": 2,
    }
    values.update(overrides)
    return DeploymentParameters(**values)


class FakeChainClient:
    """
    Events are tuples: ("deploy", contract, args), ("send", address, method, args),
    ("call", address, method, args), ("balance", token, owner), ("transfer", token, to, amount).
    """

    def __init__(self, *, balance: int = 10 * REWARD, create_records: bool = True) -> None:
        self.events: list[tuple[Any, ...]] = []
        self.balances: dict[tuple[str, str], int] = {(TOKEN.lower(), DEPLOYER.lower()): balance}
        self.records: dict[str, list[str]] = {}
        self.create_records = create_records
        # op name ("deploy", "transfer" or a method name) -> exception raised once
        self.failures: dict[str, DeploymentError] = {}
        self.record_override: Any = None
        self._deployed = 0
        self._tx = 0
        self.entered = 0

    async def __aenter__(self) -> FakeChainClient:
        self.entered += 1
        return self

    async def __aexit__(self, *exc: object) -> None:
        return None

    @property
    def account_address(self) -> str:
        return DEPLOYER

    def fail_once(self, op: str, error: DeploymentError) -> None:
        self.failures[op] = error

    def set_balance(self, owner: str, amount: int, token: str = TOKEN) -> None:
        self.balances[(token.lower(), owner.lower())] = amount

    def balance_of(self, owner: str, token: str = TOKEN) -> int:
        return self.balances.get((token.lower(), owner.lower()), 0)

    def chain_events(self) -> list[tuple[Any, ...]]:
        """Events without the read-only balance lookups."""
        return [e for e in self.events if e[0] != "balance"]

    def _receipt(self, contract_address: str | None = None) -> TxReceipt:
        self._tx += 1
        return TxReceipt(
            tx_hash=f"0x{self._tx:064x}",
            block_number=100 + self._tx,
            contract_address=contract_address,
            gas_used=21000,
        )

    def _maybe_fail(self, op: str) -> None:
        error = self.failures.pop(op, None)
        if error is not None:
            raise error

    async def deploy(
        self, artifact: ContractArtifact, constructor_args: Sequence[Any]
    ) -> tuple[str, TxReceipt]:
        self.events.append(("deploy", artifact.contract_name, tuple(constructor_args)))
        self._maybe_fail("deploy")
        self._deployed += 1
        address = factory_address(self._deployed)
        self.records[address.lower()] = []
        return address, self._receipt(contract_address=address)

    async def call(
        self, address: str, abi: list[dict[str, Any]], method: str, args: Sequence[Any] = ()
    ) -> Any:
        self.events.append(("call", address, method, tuple(args)))
        self._maybe_fail(method)
        if self.record_override is not None:
            return self.record_override
        records = self.records.get(address.lower(), [])
        (index,) = args
        if index >= len(records):
            raise CallReverted(f"call {method} reverted: index out of range")
        return {"stakingRewards": records[index], "rewardAmount": REWARD}

    async def send(
        self, address: str, abi: list[dict[str, Any]], method: str, args: Sequence[Any] = ()
    ) -> TxReceipt:
        self.events.append(("send", address, method, tuple(args)))
        self._maybe_fail(method)
        if method == "deploy" and self.create_records:
            records = self.records.setdefault(address.lower(), [])
            records.append(staking_address(self._deployed * 10 + len(records)))
        return self._receipt()

    async def get_token_balance(self, token: str, owner: str) -> int:
        self.events.append(("balance", token, owner))
        return self.balance_of(owner, token)

    async def transfer_token(self, token: str, to: str, amount: int) -> TxReceipt:
        self.events.append(("transfer", token, to, amount))
        self._maybe_fail("transfer")
        available = self.balance_of(DEPLOYER, token)
        if available < amount:
            raise InsufficientBalance("transfer amount exceeds balance", balance=available, required=amount)
        self.set_balance(DEPLOYER, available - amount, token)
        self.set_balance(to, self.balance_of(to, token) + amount, token)
        return self._receipt()


class FakeClock:
    """Records sleeps into a shared event log; `block=True` parks the first sleep forever."""

    def __init__(self, events: list[tuple[Any, ...]] | None = None, *, block: bool = False) -> None:
        self.events = events if events is not None else []
        self.sleeps: list[float] = []
        self.block = block
        self.sleeping = asyncio.Event()
        self.now = 0.0

    async def sleep(self, seconds: float) -> None:
        self.events.append(("sleep", seconds))
        self.sleeps.append(seconds)
        self.now += seconds
        self.sleeping.set()
        if self.block:
            await asyncio.Event().wait()

    def monotonic(self) -> float:
        return self.now


__all__ = [
    "DEPLOYER",
    "REWARD",
    "TOKEN",
    "ZERO_ADDRESS",
    "FakeChainClient",
    "FACTORY_ABI",
    "FakeClock",
    "artifact_payload",
    "default_parameters",
    "factory_address",
    "staking_address",
    "write_artifact",
]
