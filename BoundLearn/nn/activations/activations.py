from BoundLearn.core import Tensor, ops


def linear(x: Tensor) -> Tensor:
    """Linear activation (identity). Returns the input tensor unchanged."""
    return x


def sigmoid(x: Tensor) -> Tensor:
    """Elementwise 1 / (1 + exp(-x))."""
    return ops.sigmoid(x)


def tanh(x: Tensor) -> Tensor:
    """Elementwise hyperbolic tangent."""
    return ops.tanh(x)


def relu(x: Tensor) -> Tensor:
    """Elementwise max(0, x)."""
    return ops.relu(x)


ACTIVATIONS = {
    "linear": linear,
    "identity": linear,
    "sigmoid": sigmoid,
    "tanh": tanh,
    "relu": relu,
}


def get_activation(name_or_fn):
    """
    Fetch an activation function by name or return it directly if already callable.

    Args:
        name_or_fn (str or callable):
            - If str, returns the corresponding activation function.
            - If callable, returns it directly (assumes correct signature).
    """
    if callable(name_or_fn):
        return name_or_fn
    if isinstance(name_or_fn, str):
        if name_or_fn not in ACTIVATIONS:
            raise ValueError(f"Unsupported activation '{name_or_fn}'. "
                             f"Available: {list(ACTIVATIONS.keys())}")
        return ACTIVATIONS[name_or_fn]
    raise TypeError("Activation must be a string or a callable")
