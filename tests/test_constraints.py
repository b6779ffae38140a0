"""Tests for constraint descriptors: validation, canonical form and configs."""

import dataclasses

import pytest

import BoundLearn.core.backend.backend as backend
from BoundLearn.core.errors import ConfigurationError
from BoundLearn.nn.constraints import (
    MaxNorm,
    MinMaxNorm,
    NonNegative,
    UnitNorm,
    constraint_from_config,
    constraint_to_config,
)

from conftest import CONSTRAINT_CASES


def test_canonical_strings() -> None:
    assert str(MaxNorm(0.5, 1)) == "MaxNorm(max_norm=0.5, axis=1)"
    assert str(MinMaxNorm(0.3, 0.4, 1.0, 1)) == (
        "MinMaxNorm(min_norm=0.3, max_norm=0.4, rate=1.0, axis=1, epsilon=1e-06)"
    )
    assert str(NonNegative()) == "NonNegative()"
    assert repr(UnitNorm(1)) == "UnitNorm(axis=1)"


def test_int_arguments_are_normalized() -> None:
    assert MaxNorm(2) == MaxNorm(2.0)
    assert str(MaxNorm(2)) == "MaxNorm(max_norm=2.0, axis=1)"


def test_default_epsilon_comes_from_runtime_config() -> None:
    assert MinMaxNorm(0.3, 0.4).epsilon == backend.CONSTRAINT_EPSILON


def test_value_equality_and_hash() -> None:
    assert MaxNorm(0.5) == MaxNorm(0.5, axis=1)
    assert MaxNorm(0.5) != MaxNorm(0.5, axis=0)
    assert NonNegative() == NonNegative()
    assert len({MaxNorm(0.5), MaxNorm(0.5), UnitNorm()}) == 2


def test_descriptors_are_frozen() -> None:
    c = MaxNorm(0.5)
    with pytest.raises(dataclasses.FrozenInstanceError):
        c.max_norm = 1.0


@pytest.mark.parametrize(
    "factory",
    [
        lambda: MaxNorm(-1.0),
        lambda: MaxNorm(float("inf")),
        lambda: MaxNorm(0.5, axis=1.5),
        lambda: MinMaxNorm(0.3, 0.4, epsilon=0.0),
        lambda: MinMaxNorm(0.5, 0.4),
        lambda: MinMaxNorm(0.3, 0.4, rate=0.0),
        lambda: MinMaxNorm(0.3, 0.4, rate=1.5),
        lambda: UnitNorm(axis="1"),
        lambda: MinMaxNorm(0.3, 0.4, epsilon=-1e-6),
    ],
)
def test_invalid_parameters_raise(factory) -> None:
    with pytest.raises(ConfigurationError):
        factory()


@pytest.mark.parametrize("constraint", CONSTRAINT_CASES, ids=lambda c: c.kind)
def test_config_round_trip(constraint) -> None:
    cfg = constraint_to_config(constraint)
    assert cfg["type"] == constraint.kind
    restored = constraint_from_config(cfg)
    assert restored == constraint
    assert str(restored) == str(constraint)


def test_unknown_type_in_config() -> None:
    with pytest.raises(ConfigurationError):
        constraint_from_config({"type": "L1Norm", "axis": 1})
    with pytest.raises(ConfigurationError):
        constraint_from_config({"type": "MaxNorm", "bogus": 1})
