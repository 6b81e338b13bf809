"""
tests.test_params

Deployment parameter validation.
"""

from __future__ import annotations

import pytest

from rewards_deployer.orchestrator.errors import InvalidParameters

from tests.fakes import REWARD, TOKEN, default_parameters


def test_default_parameters_are_valid_and_ordered() -> None:
    params = default_parameters()
    params.validate()
    assert params.as_call_args() == (TOKEN, REWARD, 86400, 600, 600, 2)


def test_zero_lock_and_cooldown_are_allowed() -> None:
    assert default_parameters(lock_period=0, cooldown_period=0).problems() == []


@pytest.mark.parametrize(
    "field, value",
    [
        ("reward_amount", 0),
        ("reward_amount", -1),
        ("reward_duration", 0),
        ("boost_multiplier", 0),
        ("lock_period", -1),
        ("cooldown_period", -600),
        ("boost_multiplier", True),
        ("reward_amount", "86400"),
        ("reward_token", "0x1234"),
        ("reward_token", "not-an-address"),
    ],
)
def test_invalid_parameter_is_reported(field: str, value: object) -> None:
    params = default_parameters(**{field: value})
    with pytest.raises(InvalidParameters) as exc:
        params.validate()
    assert any(field in p for p in exc.value.problems)
    assert exc.value.local is True


def test_all_problems_are_collected() -> None:
    params = default_parameters(reward_amount=0, lock_period=-5, boost_multiplier=0)
    assert len(params.problems()) == 3


def test_large_amounts_keep_full_precision() -> None:
    amount = 123456789 * 10**30 + 1
    assert default_parameters(reward_amount=amount).as_call_args()[1] == amount
