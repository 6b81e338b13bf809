"""
rewards_deployer.models

Immutable domain records shared by the orchestrator and chain clients.

Responsibilities:
- Deployment parameters (validated before anything is sent).
- Handles for the factory and the staking-rewards record it creates.
- Normalised transaction receipts and the final run summary.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from rewards_deployer.orchestrator.errors import InvalidParameters

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


def _is_int(value: Any) -> bool:
    # bool is an int subclass; a flag is never a valid amount.
    return isinstance(value, int) and not isinstance(value, bool)


def is_address(value: Any) -> bool:
    if not isinstance(value, str) or len(value) != 42 or not value.startswith("0x"):
        return False
    try:
        int(value[2:], 16)
    except ValueError:
        return False
    return True


@dataclass(frozen=True, slots=True)
class DeploymentParameters:
    reward_token: str
    # Token base units (18 decimals for GIN); arbitrary precision int.
    reward_amount: int
    reward_duration: int
    lock_period: int
    cooldown_period: int
    boost_multiplier: int

    def problems(self) -> list[str]:
        out: list[str] = []
        if not is_address(self.reward_token):
            out.append(f"reward_token is not an address: {self.reward_token!r}")
        for name in ("reward_amount", "reward_duration", "boost_multiplier"):
            value = getattr(self, name)
            if not _is_int(value):
                out.append(f"{name} must be an integer, got {value!r}")
            elif value <= 0:
                out.append(f"{name} must be > 0, got {value}")
        for name in ("lock_period", "cooldown_period"):
            value = getattr(self, name)
            if not _is_int(value):
                out.append(f"{name} must be an integer, got {value!r}")
            elif value < 0:
                out.append(f"{name} must be >= 0, got {value}")
        return out

    def validate(self) -> None:
        problems = self.problems()
        if problems:
            raise InvalidParameters(problems)

    def as_call_args(self) -> tuple[str, int, int, int, int, int]:
        """
        Argument order of the factory's `deploy` entrypoint:
        token, reward amount, reward duration, lock period, cooldown period, boost multiplier.
        """

        return (
            self.reward_token,
            self.reward_amount,
            self.reward_duration,
            self.lock_period,
            self.cooldown_period,
            self.boost_multiplier,
        )


@dataclass(frozen=True, slots=True)
class FactoryHandle:
    address: str
    # Deployment receipt when the handle came from this run; absent on resume.
    receipt: TxReceipt | None = field(default=None, compare=False)


@dataclass(frozen=True, slots=True)
class StakingRewardsRecord:
    index: int
    address: str


@dataclass(frozen=True, slots=True)
class TxReceipt:
    tx_hash: str
    block_number: int | None = None
    status: int = 1
    contract_address: str | None = None
    gas_used: int | None = None

    def as_dict(self) -> dict[str, Any]:
        return {
            "tx_hash": self.tx_hash,
            "block_number": self.block_number,
            "status": self.status,
            "contract_address": self.contract_address,
            "gas_used": self.gas_used,
        }


@dataclass(frozen=True, slots=True)
class RunSummary:
    run_id: str
    factory_address: str
    staking_rewards_address: str
    funded_amount: int
