import io

import numpy as np
import pytest

import BoundLearn.core.backend.backend as backend
from BoundLearn.core.errors import RoundTripMismatchError
from BoundLearn.nn import Network, NetworkConfig
from BoundLearn.nn.constraints import MaxNorm, MinMaxNorm, NonNegative, UnitNorm, get_constraints
from BoundLearn.nn.initializations import Normal
from BoundLearn.nn.layers import Dense, LSTM, Output
from BoundLearn.nn.optim.optimizers import SGD
from BoundLearn.serialization import save_model, load_model

# The four kinds exercised end to end, all measured along axis 1
CONSTRAINT_CASES = [
    MaxNorm(0.5, axis=1),
    MinMaxNorm(0.3, 0.4, rate=1.0, axis=1),
    NonNegative(),
    UnitNorm(axis=1),
]


def pytest_runtest_setup(item) -> None:
    # Default seed for determinism unless a test overrides it
    backend.set_seed(0)


@pytest.fixture
def float64_backend():
    prev = backend.DTYPE
    backend.set_dtype("float64")
    yield
    backend.DTYPE = prev


@pytest.fixture
def batch():
    rng = np.random.default_rng(42)
    x = rng.random((3, 12)).astype(np.float32)
    y = rng.random((3, 8)).astype(np.float32)
    return x, y


def build_network(first="dense", layer_kwargs=None, bias_init=0.2, learning_rate=0.0,
                  updater=None, **config_kwargs):
    """Two-layer 12 -> 10 -> 8 network with N(0, 5) weights, as used across the suite."""
    layer_kwargs = layer_kwargs or {}
    first_cls = {"dense": Dense, "lstm": LSTM}[first]
    config = NetworkConfig(
        seed=12345,
        updater=updater if updater is not None else SGD(learning_rate=learning_rate),
        weight_init="distribution",
        dist=Normal(0.0, 5.0),
        bias_init=bias_init,
        **config_kwargs,
    )
    layers = [
        first_cls(n_in=12, n_out=10, **layer_kwargs),
        Output(n_in=10, n_out=8, loss="mse"),
    ]
    return Network(layers, config).init()


def round_trip(network, **save_kwargs):
    buf = io.BytesIO()
    save_model(network, buf, **save_kwargs)
    buf.seek(0)
    return load_model(buf)


def assert_round_trip_equal(original, restored):
    """Configuration-equal and parameter-value-equal, or RoundTripMismatchError."""
    if original.get_config() != restored.get_config():
        raise RoundTripMismatchError("network configurations differ after restore")
    for i, (a, b) in enumerate(zip(original.layers, restored.layers)):
        if get_constraints(a) != get_constraints(b):
            raise RoundTripMismatchError(
                f"layer {i}: constraints {get_constraints(a)} != {get_constraints(b)}"
            )
    if original.param_names() != restored.param_names():
        raise RoundTripMismatchError(f"{original.param_names()} != {restored.param_names()}")
    for name in original.param_names():
        a = backend.to_numpy(original.get_param(name))
        b = backend.to_numpy(restored.get_param(name))
        if a.shape != b.shape or a.dtype != b.dtype or not np.array_equal(a, b):
            raise RoundTripMismatchError(f"parameter '{name}' differs after restore")


def row_norms(arr, axis=1):
    arr = np.asarray(backend.to_numpy(arr), dtype=np.float64)
    return np.sqrt(np.sum(arr * arr, axis=axis))


def assert_satisfies(constraint, arr, tol=1e-6) -> None:
    """Post-condition of `constraint` on `arr` (rows along axis 1)."""
    arr = np.asarray(backend.to_numpy(arr), dtype=np.float64)
    if isinstance(constraint, MaxNorm):
        assert row_norms(arr).max() <= constraint.max_norm + tol
    elif isinstance(constraint, MinMaxNorm):
        norms = row_norms(arr)
        assert norms.min() >= constraint.min_norm - tol
        assert norms.max() <= constraint.max_norm + tol
    elif isinstance(constraint, NonNegative):
        assert arr.min() >= 0.0
    elif isinstance(constraint, UnitNorm):
        np.testing.assert_allclose(row_norms(arr), 1.0, atol=tol)
    else:
        raise AssertionError(f"no post-condition for {constraint!r}")
