"""
rewards_deployer.chain_clients.artifacts

Compiled contract artifacts.

Responsibilities:
- Load Truffle build output (`build/contracts/<Name>.json`) into a typed model.
- Bundle the minimal ERC-20 ABI used for balance checks and funding transfers.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError


class ArtifactError(RuntimeError):
    """Raised when a compiled artifact is missing or unusable."""


class ContractArtifact(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    contract_name: str = Field(alias="contractName")
    abi: list[dict[str, Any]]
    bytecode: str = ""

    @property
    def deployable(self) -> bool:
        code = self.bytecode.removeprefix("0x")
        # Unlinked library references show up as "__Name____" placeholders.
        return bool(code) and "__" not in code


def load_artifact(artifacts_dir: Path, name: str) -> ContractArtifact:
    path = Path(artifacts_dir) / f"{name}.json"
    if not path.is_file():
        raise ArtifactError(f"artifact not found: {path} (compile the contracts first)")
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ArtifactError(f"artifact {path} is not valid JSON: {e}") from e
    try:
        artifact = ContractArtifact.model_validate(payload)
    except ValidationError as e:
        raise ArtifactError(f"artifact {path} is missing required fields: {e}") from e
    if not artifact.deployable:
        raise ArtifactError(f"artifact {path} has no deployable (linked) bytecode")
    return artifact


ERC20_ABI: list[dict[str, Any]] = [
    {
        "constant": True,
        "inputs": [{"name": "account", "type": "address"}],
        "name": "balanceOf",
        "outputs": [{"name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "constant": False,
        "inputs": [
            {"name": "recipient", "type": "address"},
            {"name": "amount", "type": "uint256"},
        ],
        "name": "transfer",
        "outputs": [{"name": "", "type": "bool"}],
        "stateMutability": "nonpayable",
        "type": "function",
    },
]


# --- Module Notes -----------------------------------------------------------
# Only the factory is deployed from an artifact; the reward token already exists on-chain.
