"""Tests for resolving constraint groups onto layer parameters."""

import pytest

from BoundLearn.core.errors import ConfigurationError
from BoundLearn.nn import Network, NetworkConfig
from BoundLearn.nn.constraints import (
    MaxNorm,
    NonNegative,
    ParamRole,
    UnitNorm,
    bind_layer,
    get_constraints,
    get_parameter_roles,
    resolve_constraints,
)
from BoundLearn.nn.layers import Dense, LSTM, Output

from conftest import CONSTRAINT_CASES


@pytest.mark.parametrize("constraint", CONSTRAINT_CASES, ids=lambda c: c.kind)
def test_all_equals_weight_plus_bias(constraint) -> None:
    via_all = Dense(n_in=4, n_out=3, constraints=constraint)
    via_roles = Dense(n_in=4, n_out=3, weight_constraints=constraint, bias_constraints=constraint)
    bind_layer(via_all, {})
    bind_layer(via_roles, {})
    assert get_constraints(via_all) == get_constraints(via_roles) == [str(constraint)]
    for key in ("W", "b"):
        assert resolve_constraints(via_all, key) == resolve_constraints(via_roles, key) == [constraint]


def test_roles_resolve_to_parameter_keys() -> None:
    layer = LSTM(n_in=5, n_out=2, constraints=NonNegative(), recurrent_constraints=MaxNorm(0.5))
    bindings = bind_layer(layer, {})
    assert [b.role for b in bindings] == [ParamRole.ALL, ParamRole.RECURRENT_WEIGHT]
    assert bindings[0].params == ("W", "RW", "b")
    assert bindings[1].params == ("RW",)
    assert resolve_constraints(layer, "RW") == [NonNegative(), MaxNorm(0.5)]
    assert resolve_constraints(layer, "W") == [NonNegative()]


def test_parameter_roles() -> None:
    lstm = LSTM(n_in=5, n_out=2)
    assert get_parameter_roles(lstm) == {
        ParamRole.WEIGHT: "W",
        ParamRole.BIAS: "b",
        ParamRole.RECURRENT_WEIGHT: "RW",
    }
    assert ParamRole.RECURRENT_WEIGHT not in get_parameter_roles(Dense(n_in=5, n_out=2))


def test_network_defaults_fill_uncovered_parameters_only() -> None:
    layer = Dense(n_in=4, n_out=3, bias_constraints=NonNegative())
    defaults = {ParamRole.ALL: (UnitNorm(),)}
    bindings = bind_layer(layer, defaults)
    assert [(b.source, b.params) for b in bindings] == [("layer", ("b",)), ("network", ("W",))]
    assert resolve_constraints(layer, "b") == [NonNegative()]
    assert resolve_constraints(layer, "W") == [UnitNorm()]


def test_layer_bindings_apply_before_network_bindings() -> None:
    """
    Layer bindings are ordered ahead of network defaults, and a network default
    never reaches a tensor a layer binding already covers. The two sources
    therefore never stack on one tensor: first.W gets only UnitNorm even
    though a network weight default exists.
    """
    net = Network(
        [Dense(n_in=4, n_out=3, weight_constraints=UnitNorm()), Output(n_in=3, n_out=2)],
        NetworkConfig(bias_constraints=MaxNorm(1.0), weight_constraints=NonNegative()),
    ).init()
    first, second = net.layers
    assert [b.source for b in first.bindings] == ["layer", "network"]
    assert resolve_constraints(first, "W") == [UnitNorm()]
    assert resolve_constraints(first, "b") == [MaxNorm(1.0)]
    assert resolve_constraints(second, "W") == [NonNegative()]
    assert get_constraints(second) == [str(NonNegative()), str(MaxNorm(1.0))]
    for layer in net.layers:
        by_source = {}
        for b in layer.bindings:
            by_source.setdefault(b.source, set()).update(b.params)
        assert not by_source.get("layer", set()) & by_source.get("network", set())


def test_recurrent_role_on_dense_fails_at_init_and_commits_nothing() -> None:
    good = LSTM(n_in=4, n_out=3, weight_constraints=MaxNorm(1.0))
    bad = Output(n_in=3, n_out=2, recurrent_constraints=MaxNorm(1.0))
    declared = (good.bindings, bad.bindings)
    net = Network([good, bad], NetworkConfig(constraints=UnitNorm()))
    with pytest.raises(ConfigurationError):
        net.init()
    assert (good.bindings, bad.bindings) == declared
    assert all(b.params is None for b in good.bindings)
    assert not good.is_initialized()
    with pytest.raises(RuntimeError):
        net.get_param("0_W")


@pytest.mark.parametrize("axis", [2, -3])
def test_axis_out_of_range_is_a_configuration_error(axis) -> None:
    net = Network([Dense(n_in=4, n_out=3, weight_constraints=MaxNorm(1.0, axis=axis))])
    with pytest.raises(ConfigurationError, match="out of range"):
        net.init()


def test_negative_axis_within_rank_is_accepted() -> None:
    layer = Dense(n_in=4, n_out=3, constraints=UnitNorm(axis=-2))
    bind_layer(layer, {})
    assert get_constraints(layer) == ["UnitNorm(axis=-2)"]


def test_duplicate_network_default_is_rejected() -> None:
    config = NetworkConfig(weight_constraints=MaxNorm(1.0))
    with pytest.raises(ConfigurationError):
        config.add_default_constraints(ParamRole.WEIGHT, UnitNorm())
    # other roles are still free, and strings name roles too
    config.add_default_constraints("bias", NonNegative())
    assert list(config.default_constraints) == [ParamRole.WEIGHT, ParamRole.BIAS]


def test_restored_bindings_are_not_rederived() -> None:
    layer = Dense(n_in=4, n_out=3)
    bind_layer(layer, {ParamRole.ALL: (MaxNorm(2.0),)})
    restored = Dense.from_config(layer.get_config())
    # different defaults must not leak into a restored layer
    bind_layer(restored, {ParamRole.ALL: (UnitNorm(),)})
    assert restored.bindings == layer.bindings
    assert get_constraints(restored) == [str(MaxNorm(2.0))]


def test_non_descriptor_is_rejected() -> None:
    with pytest.raises(ConfigurationError):
        Dense(n_in=4, n_out=3, constraints=["max_norm"])
