"""Tests for applying constraints after each optimization step."""

import numpy as np

from BoundLearn.nn.constraints import (
    ConstraintScheduler,
    MaxNorm,
    NonNegative,
    apply_constraints,
    bind_layer,
)
from BoundLearn.nn.initializations import Normal
from BoundLearn.nn.layers import Dense

from conftest import build_network, row_norms


def _bound_dense(**kwargs):
    layer = Dense(n_in=6, n_out=4, **kwargs)
    bind_layer(layer, {})
    layer.initialize("distribution", Normal(0.0, 5.0), 0.5)
    return layer


def test_descriptors_are_threaded_in_order() -> None:
    layer = _bound_dense(weight_constraints=[NonNegative(), MaxNorm(1.0)])
    storage = layer.W.data
    assert apply_constraints(layer) == 2
    assert layer.W.data is storage
    assert storage.min() >= 0.0
    assert row_norms(storage).max() <= 1.0 + 1e-6


def test_unbound_parameters_are_untouched() -> None:
    layer = _bound_dense(weight_constraints=MaxNorm(0.1))
    b_before = layer.b.data.copy()
    apply_constraints(layer)
    np.testing.assert_array_equal(layer.b.data, b_before)
    assert row_norms(layer.W.data).max() <= 0.1 + 1e-6


def test_layer_without_bindings_is_a_no_op() -> None:
    layer = _bound_dense()
    W_before = layer.W.data.copy()
    assert apply_constraints(layer) == 0
    np.testing.assert_array_equal(layer.W.data, W_before)


def test_scheduler_counts_steps() -> None:
    scheduler = ConstraintScheduler()
    layer = _bound_dense(constraints=MaxNorm(1.0))
    assert scheduler.step([layer]) == 2
    scheduler.step([layer])
    assert scheduler.steps_applied == 2
    scheduler.reset()
    assert scheduler.steps_applied == 0


def test_fit_applies_constraints_once_per_step(batch) -> None:
    x, y = batch
    net = build_network(layer_kwargs={"weight_constraints": MaxNorm(0.5)}, learning_rate=0.01)
    net.fit(x, y, epochs=3)
    assert net.scheduler.steps_applied == 3
    assert net.iteration_count == 3
    # holds after the last update, before anything reads the weights again
    assert row_norms(net.get_param("0_W")).max() <= 0.5 + 1e-6
