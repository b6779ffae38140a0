import builtins

import BoundLearn.core.backend.backend as backend
from .tensor import Tensor
from .utils import ensure_tensor, unbroadcast, accumulate_grad

xp = backend.xp

# ============================================================================
# Graph helpers
# ============================================================================

def _make_output(data, parents, name):
    requires_grad = builtins.any(p.requires_grad for p in parents)
    if not backend.is_grad_enabled():
        requires_grad = False
    out = Tensor(data, requires_grad=requires_grad, dtype=parents[0].dtype)
    out.is_leaf = False
    out.grad_fn = name
    out._prev = tuple(parents)
    return out


def unary_op(a: Tensor, op, grad_fn, name):
    """
    General helper for unary operations with autograd support.

    Args:
        a (Tensor): Input tensor.
        op (callable): Forward operation applied to `a.data`.
        grad_fn (callable): grad_fn(grad_out, a_data, out_data) -> grad wrt `a`.
        name (str): Name of the operation.

    Returns:
        Tensor: Result tensor with autograd tracking.
    """
    a = ensure_tensor(a)
    out = _make_output(op(a.data), (a,), name)

    def _backward():
        if out.grad is None or not a.requires_grad:
            return
        accumulate_grad(a, grad_fn(out.grad, a.data, out.data))

    out._backward = _backward
    return out


def elementwise_op(a: Tensor, b: Tensor, op, grad_a_fn, grad_b_fn, name):
    """
    General helper for broadcasting binary operations with autograd support.

    Gradients are computed only for the operands that require them.
    """
    a = ensure_tensor(a)
    b = ensure_tensor(b, dtype=a.dtype)
    out = _make_output(op(a.data, b.data), (a, b), name)

    def _backward():
        if out.grad is None:
            return
        if a.requires_grad:
            accumulate_grad(a, unbroadcast(grad_a_fn(out.grad, a.data, b.data), a.shape))
        if b.requires_grad:
            accumulate_grad(b, unbroadcast(grad_b_fn(out.grad, a.data, b.data), b.shape))

    out._backward = _backward
    return out

# ============================================================================
# Arithmetic
# ============================================================================

def add(a: Tensor, b: Tensor) -> Tensor:
    """Elementwise addition: out = a + b"""
    return elementwise_op(
        a, b, xp.add,
        lambda g, x, y: g,
        lambda g, x, y: g,
        "add",
    )


def subtract(a: Tensor, b: Tensor) -> Tensor:
    """Elementwise subtraction: out = a - b"""
    return elementwise_op(
        a, b, xp.subtract,
        lambda g, x, y: g,
        lambda g, x, y: -g,
        "subtract",
    )


def multiply(a: Tensor, b: Tensor) -> Tensor:
    """Elementwise multiplication: out = a * b"""
    return elementwise_op(
        a, b, xp.multiply,
        lambda g, x, y: g * y,
        lambda g, x, y: g * x,
        "multiply",
    )


def divide(a: Tensor, b: Tensor) -> Tensor:
    """Elementwise division: out = a / b"""
    return elementwise_op(
        a, b, xp.divide,
        lambda g, x, y: g / y,
        lambda g, x, y: -g * x / (y ** 2),
        "divide",
    )


def neg(a: Tensor) -> Tensor:
    return unary_op(a, xp.negative, lambda g, x, out: -g, "neg")


def power(a: Tensor, exponent: float) -> Tensor:
    """Elementwise power with a constant exponent: out = a ** exponent"""
    if isinstance(exponent, Tensor):
        raise TypeError("power() only supports a constant (non-Tensor) exponent")
    p = float(exponent)
    return unary_op(
        a,
        lambda x: x ** p,
        lambda g, x, out: g * p * x ** (p - 1),
        "power",
    )

# ============================================================================
# Activations
# ============================================================================

def exp(a: Tensor) -> Tensor:
    return unary_op(a, xp.exp, lambda g, x, out: g * out, "exp")


def tanh(a: Tensor) -> Tensor:
    return unary_op(a, xp.tanh, lambda g, x, out: g * (1 - out ** 2), "tanh")


def sigmoid(a: Tensor) -> Tensor:
    return unary_op(
        a,
        lambda x: 1 / (1 + xp.exp(-x)),
        lambda g, x, out: g * out * (1 - out),
        "sigmoid",
    )


def relu(a: Tensor) -> Tensor:
    return unary_op(
        a,
        lambda x: xp.maximum(x, 0),
        lambda g, x, out: g * (x > 0),
        "relu",
    )

# ============================================================================
# Reductions
# ============================================================================

def sum(a: Tensor, axis=None, keepdims=False) -> Tensor:
    """Reduction sum over `axis`."""
    a = ensure_tensor(a)
    out = _make_output(xp.sum(a.data, axis=axis, keepdims=keepdims), (a,), "sum")

    def _backward():
        if out.grad is None or not a.requires_grad:
            return
        grad_out = out.grad
        if axis is not None and not keepdims:
            grad_out = xp.expand_dims(grad_out, axis=axis)
        accumulate_grad(a, xp.broadcast_to(grad_out, a.shape))

    out._backward = _backward
    return out


def mean(a: Tensor, axis=None, keepdims=False) -> Tensor:
    """Reduction mean over `axis`."""
    a = ensure_tensor(a)
    if axis is None:
        count = a.size
    else:
        axes = axis if isinstance(axis, tuple) else (axis,)
        count = 1
        for ax in axes:
            count *= a.shape[ax]
    return multiply(sum(a, axis=axis, keepdims=keepdims), 1.0 / count)

# ============================================================================
# Matrix / shape operations
# ============================================================================

def matmul(a: Tensor, b: Tensor) -> Tensor:
    """
    Matrix multiplication of two 2D tensors.

    - Gradient w.r.t. `a`: grad_out @ b^T
    - Gradient w.r.t. `b`: a^T @ grad_out
    """
    a = ensure_tensor(a)
    b = ensure_tensor(b)
    out = _make_output(xp.matmul(a.data, b.data), (a, b), "matmul")

    def _backward():
        if out.grad is None:
            return
        if a.requires_grad:
            accumulate_grad(a, xp.matmul(out.grad, b.data.T))
        if b.requires_grad:
            accumulate_grad(b, xp.matmul(a.data.T, out.grad))

    out._backward = _backward
    return out


def transpose(a: Tensor) -> Tensor:
    """Swap the last two dimensions."""
    return unary_op(
        a,
        lambda x: xp.swapaxes(x, -1, -2),
        lambda g, x, out: xp.swapaxes(g, -1, -2),
        "transpose",
    )


def slice(a: Tensor, slices) -> Tensor:
    """
    Slice a tensor to extract a subset of elements.

    Args:
        a (Tensor): Input tensor.
        slices (slice or tuple of slices): Basic indexing specification.

    Returns:
        Tensor: Tensor containing the selected elements.
    """
    def _grad(g, x, out):
        grad_a = xp.zeros_like(x)
        grad_a[slices] = g
        return grad_a

    return unary_op(a, lambda x: x[slices], _grad, "slice")

# ============================================================================
# Losses
# ============================================================================

def mean_squared_error(predictions: Tensor, targets) -> Tensor:
    """Mean over all elements of (predictions - targets)^2."""
    targets = ensure_tensor(targets, dtype=ensure_tensor(predictions).dtype)
    if predictions.shape != targets.shape:
        raise ValueError(f"predictions shape {predictions.shape} does not match targets shape {targets.shape}")
    diff = subtract(predictions, targets)
    return mean(multiply(diff, diff))
