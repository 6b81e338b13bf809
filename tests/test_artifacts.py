"""
tests.test_artifacts

Loading compiled contract artifacts.
"""

from __future__ import annotations

import json

import pytest

from rewards_deployer.chain_clients.artifacts import ArtifactError, load_artifact

from tests.fakes import artifact_payload, write_artifact


def test_load_artifact(tmp_path) -> None:
    write_artifact(tmp_path)

    artifact = load_artifact(tmp_path, "GinLockedStakingRewardsFactory")

    assert artifact.contract_name == "GinLockedStakingRewardsFactory"
    assert artifact.deployable
    assert {e.get("name") for e in artifact.abi} >= {"deploy", "notifyRewardAmounts"}


def test_missing_artifact(tmp_path) -> None:
    with pytest.raises(ArtifactError, match="not found"):
        load_artifact(tmp_path, "GinLockedStakingRewardsFactory")


def test_corrupt_artifact(tmp_path) -> None:
    (tmp_path / "Broken.json").write_text("{not json", encoding="utf-8")
    with pytest.raises(ArtifactError, match="not valid JSON"):
        load_artifact(tmp_path, "Broken")


def test_artifact_without_abi(tmp_path) -> None:
    (tmp_path / "NoAbi.json").write_text(json.dumps({"contractName": "NoAbi"}), encoding="utf-8")
    with pytest.raises(ArtifactError, match="missing required fields"):
        load_artifact(tmp_path, "NoAbi")


@pytest.mark.parametrize("bytecode", ["", "0x", "0x6080__$LibraryPlaceholder$__6040"])
def test_undeployable_bytecode(tmp_path, bytecode) -> None:
    payload = artifact_payload() | {"bytecode": bytecode}
    (tmp_path / "GinLockedStakingRewardsFactory.json").write_text(json.dumps(payload), encoding="utf-8")
    with pytest.raises(ArtifactError, match="deployable"):
        load_artifact(tmp_path, "GinLockedStakingRewardsFactory")
