"""
tests.test_settings

Env-driven configuration and the network table.
"""

from __future__ import annotations

import json

import pytest

from rewards_deployer.settings import GIN_TOKEN_ADDRESS, Settings, UnknownNetwork


def test_defaults_describe_the_gin_farm() -> None:
    settings = Settings(_env_file=None)

    params = settings.deployment_parameters()
    assert params.reward_token == GIN_TOKEN_ADDRESS
    assert params.as_call_args()[1:] == (86400 * 10**18, 86400, 600, 600, 2)
    assert settings.funding_multiple == 3
    assert settings.propagation_delay_ms == 3000


def test_known_networks() -> None:
    settings = Settings(_env_file=None)

    assert settings.network_config().chain_id == 28
    mainnet = settings.network_config("boba_mainnet")
    assert mainnet.chain_id == 288
    assert mainnet.rpc_url == "https://mainnet.boba.network"


def test_unknown_network() -> None:
    with pytest.raises(UnknownNetwork, match="boba_mainnet"):
        Settings(_env_file=None).network_config("ropsten")


def test_env_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DEPLOYER_NETWORK", "local")
    monkeypatch.setenv("DEPLOYER_REWARD_AMOUNT", "1000")
    monkeypatch.setenv(
        "DEPLOYER_NETWORKS",
        json.dumps({"local": {"rpc_url": "http://127.0.0.1:8545", "chain_id": 1337}}),
    )

    settings = Settings(_env_file=None)

    assert settings.network_config().chain_id == 1337
    assert settings.network_config().confirmations == 1
    assert settings.deployment_parameters().reward_amount == 1000


def test_private_key_is_not_rendered(monkeypatch: pytest.MonkeyPatch) -> None:
    key = "0x" + "ab" * 32
    monkeypatch.setenv("DEPLOYER_PRIVATE_KEY", key)

    settings = Settings(_env_file=None)

    assert settings.private_key is not None
    assert settings.private_key.get_secret_value() == key
    assert key not in repr(settings)
    assert key not in str(settings.model_dump())
