"""
End-to-end constraint scenarios: two-layer networks with N(0, 5) weights,
one optimization step on three samples, then save/restore.
"""

import numpy as np
import pytest

from BoundLearn.nn.constraints import MaxNorm, UnitNorm, get_constraints

from conftest import (
    CONSTRAINT_CASES,
    assert_round_trip_equal,
    assert_satisfies,
    build_network,
    round_trip,
    row_norms,
)

ids = [c.kind for c in CONSTRAINT_CASES]


@pytest.mark.parametrize("constraint", CONSTRAINT_CASES, ids=ids)
def test_lstm_layer_constraints(constraint, batch) -> None:
    x, y = batch
    net = build_network("lstm", layer_kwargs={"constraints": constraint})
    assert get_constraints(net.layers[0])[0] == str(constraint)

    net.fit(x, y)
    assert_satisfies(constraint, net.get_param("0_RW"))

    restored = round_trip(net)
    assert_round_trip_equal(net, restored)
    np.testing.assert_array_equal(net.params(), restored.params())


@pytest.mark.parametrize("constraint", CONSTRAINT_CASES, ids=ids)
def test_lstm_recurrent_weight_constraints(constraint, batch) -> None:
    x, y = batch
    net = build_network("lstm", layer_kwargs={"recurrent_constraints": constraint})
    assert get_constraints(net.layers[0]) == [str(constraint)]

    net.fit(x, y)
    assert_satisfies(constraint, net.get_param("0_RW"))
    assert_round_trip_equal(net, round_trip(net))


@pytest.mark.parametrize("constraint", CONSTRAINT_CASES, ids=ids)
def test_layer_bias_constraints(constraint, batch) -> None:
    x, y = batch
    net = build_network("dense", layer_kwargs={"bias_constraints": constraint}, bias_init=10.0)
    assert get_constraints(net.layers[0]) == [str(constraint)]

    net.fit(x, y)
    assert_satisfies(constraint, net.get_param("0_b"))
    assert_round_trip_equal(net, round_trip(net))


@pytest.mark.parametrize("constraint", CONSTRAINT_CASES, ids=ids)
def test_layer_weight_constraints(constraint, batch) -> None:
    x, y = batch
    net = build_network("dense", layer_kwargs={"weight_constraints": constraint})
    assert get_constraints(net.layers[0]) == [str(constraint)]

    net.fit(x, y)
    assert_satisfies(constraint, net.get_param("0_W"))
    assert_round_trip_equal(net, round_trip(net))


@pytest.mark.parametrize("constraint", CONSTRAINT_CASES, ids=ids)
def test_layer_weights_and_bias_separate_constraints(constraint, batch) -> None:
    x, y = batch
    net = build_network(
        "dense",
        layer_kwargs={"weight_constraints": constraint, "bias_constraints": constraint},
        bias_init=0.2,
    )
    assert get_constraints(net.layers[0]) == [str(constraint)]

    net.fit(x, y)
    assert_satisfies(constraint, net.get_param("0_W"))
    assert_satisfies(constraint, net.get_param("0_b"))
    assert_round_trip_equal(net, round_trip(net))


@pytest.mark.parametrize("constraint", CONSTRAINT_CASES, ids=ids)
def test_network_wide_constraints(constraint, batch) -> None:
    x, y = batch
    net = build_network("dense", bias_init=1.0, constraints=constraint)
    assert get_constraints(net.layers[0]) == [str(constraint)]
    assert get_constraints(net.layers[1]) == [str(constraint)]

    net.fit(x, y)
    assert_satisfies(constraint, net.get_param("0_W"))
    assert_satisfies(constraint, net.get_param("1_W"))

    restored = round_trip(net)
    assert_round_trip_equal(net, restored)
    assert all(b.source == "network" for b in restored.layers[0].bindings)


def test_recurrent_max_norm_scenario(batch) -> None:
    x, y = batch
    net = build_network("lstm", layer_kwargs={"recurrent_constraints": MaxNorm(0.5)})
    assert net.get_param("0_RW").shape == (10, 40)

    net.fit(x, y)
    assert row_norms(net.get_param("0_RW")).max() <= 0.5 + 1e-6

    restored = round_trip(net)
    assert row_norms(restored.get_param("0_RW")).max() <= 0.5 + 1e-6
    # a further step keeps the bound and keeps both networks in lockstep
    net.fit(x, y)
    restored.fit(x, y)
    assert_round_trip_equal(net, restored)


def test_unit_norm_after_a_real_update(batch) -> None:
    x, y = batch
    net = build_network("dense", layer_kwargs={"weight_constraints": UnitNorm()}, learning_rate=0.1)
    before = row_norms(net.get_param("0_W"))
    # N(0, 5) rows start far from unit norm
    assert before.min() > 2.0

    net.fit(x, y)
    np.testing.assert_allclose(row_norms(net.get_param("0_W")), 1.0, atol=1e-6)
