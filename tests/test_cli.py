"""
tests.test_cli

Command-line exit codes and output, with the chain client replaced by the fake.
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from rewards_deployer import cli
from rewards_deployer.orchestrator.errors import TransactionRejected
from rewards_deployer.settings import Settings

from tests.fakes import DEPLOYER, REWARD, FakeChainClient, factory_address, write_artifact

PRIVATE_KEY = "0x" + "11" * 32


def make_settings(tmp_path: Path, **overrides) -> Settings:
    values = {
        "database_url": f"sqlite+aiosqlite:///{tmp_path / 'ledger.db'}",
        "private_key": PRIVATE_KEY,
        "artifacts_dir": tmp_path,
        "propagation_delay_ms": 0,
        "log_format": "json",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def chain(monkeypatch: pytest.MonkeyPatch) -> FakeChainClient:
    fake = FakeChainClient()
    monkeypatch.setattr(cli, "open_chain_client", lambda network, private_key: fake)
    return fake


def test_deploy_prints_addresses(tmp_path, chain, capsys) -> None:
    write_artifact(tmp_path)

    code = cli.main(["deploy"], settings=make_settings(tmp_path))

    out = capsys.readouterr().out
    assert code == cli.EXIT_OK
    assert factory_address(1) in out
    assert chain.records[factory_address(1).lower()][0] in out
    assert chain.entered == 1


def test_missing_private_key_is_a_config_error(tmp_path, chain, capsys) -> None:
    write_artifact(tmp_path)

    code = cli.main(["deploy"], settings=make_settings(tmp_path, private_key=None))

    assert code == cli.EXIT_CONFIG
    assert "DEPLOYER_PRIVATE_KEY" in capsys.readouterr().err
    assert chain.events == []


def test_missing_artifact_is_a_config_error(tmp_path, chain) -> None:
    assert cli.main(["deploy"], settings=make_settings(tmp_path)) == cli.EXIT_CONFIG
    assert chain.events == []


def test_unknown_network_is_a_config_error(tmp_path, chain, capsys) -> None:
    write_artifact(tmp_path)

    code = cli.main(["deploy", "--network", "nowhere"], settings=make_settings(tmp_path))

    assert code == cli.EXIT_CONFIG
    assert "nowhere" in capsys.readouterr().err


def test_invalid_parameters_are_a_config_error(tmp_path, chain) -> None:
    write_artifact(tmp_path)

    code = cli.main(["deploy"], settings=make_settings(tmp_path, reward_amount=0))

    assert code == cli.EXIT_CONFIG
    assert chain.events == []


def test_failure_then_confirmed_resume(tmp_path, chain, capsys) -> None:
    write_artifact(tmp_path)
    settings = make_settings(tmp_path)
    chain.fail_once("notifyRewardAmounts", TransactionRejected("send notifyRewardAmounts rejected"))

    assert cli.main(["deploy"], settings=settings) == cli.EXIT_FAILED
    assert "activate_rewards" in capsys.readouterr().out

    assert cli.main(["deploy", "--resume", "latest"], settings=settings) == cli.EXIT_CONFIRMATION_REQUIRED
    assert "--confirm-retry" in capsys.readouterr().out

    code = cli.main(["deploy", "--resume", "latest", "--confirm-retry"], settings=settings)
    assert code == cli.EXIT_OK
    assert [e[0] for e in chain.events].count("deploy") == 1


def test_resume_unknown_run_is_a_config_error(tmp_path, chain) -> None:
    write_artifact(tmp_path)
    settings = make_settings(tmp_path)

    assert cli.main(["deploy", "--resume", "latest"], settings=settings) == cli.EXIT_CONFIG
    assert cli.main(["deploy", "--resume", "not-a-uuid"], settings=settings) == cli.EXIT_CONFIG


def test_insufficient_balance_reports_failing_step(tmp_path, chain, capsys) -> None:
    write_artifact(tmp_path)
    chain.set_balance(DEPLOYER, REWARD)

    code = cli.main(["deploy"], settings=make_settings(tmp_path))

    assert code == cli.EXIT_FAILED
    assert "fund_staking_rewards: InsufficientBalance" in capsys.readouterr().out


def test_status_prints_stored_run(tmp_path, chain, capsys) -> None:
    write_artifact(tmp_path)
    settings = make_settings(tmp_path)
    assert cli.main(["deploy"], settings=settings) == cli.EXIT_OK
    capsys.readouterr()

    assert cli.main(["status"], settings=settings) == cli.EXIT_OK

    payload = json.loads(capsys.readouterr().out)
    assert payload["status"] == "COMPLETED"
    assert payload["stage"] == "ACTIVATED"
    assert payload["factory_address"] == factory_address(1)
