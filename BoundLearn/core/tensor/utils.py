import BoundLearn.core.backend.backend as backend
from .tensor import Tensor

xp = backend.xp


def ensure_tensor(obj, dtype=None):
    """
    Ensure the input is a Tensor.
    Scalars, lists, numpy/cupy arrays get wrapped automatically.
    """
    from .parameter import Parameter

    if isinstance(obj, Tensor):
        return obj
    if isinstance(obj, Parameter):
        return obj.master
    return Tensor(obj, dtype=dtype)


def unbroadcast(grad, shape):
    """
    Reduce `grad` back to `shape` (the original tensor shape before broadcasting).
    """
    # Drop leading dims that got added
    while grad.ndim > len(shape):
        grad = grad.sum(axis=0)

    # For broadcasted axes (dim=1), sum along that axis
    for i, dim in enumerate(shape):
        if dim == 1 and grad.shape[i] != 1:
            grad = grad.sum(axis=i, keepdims=True)

    return grad


def accumulate_grad(t: Tensor, grad):
    """Add `grad` into `t.grad`, never aliasing the incoming array."""
    grad = xp.asarray(grad, dtype=t.dtype)
    if t.grad is None:
        t.grad = grad.copy()
    else:
        t.grad = t.grad + grad
