"""
In-place projection kernels.

Each kernel mutates `data` (an `xp.ndarray`) and returns the same object.
Row norms are accumulated in float64 and the resulting scale is cast back to
the tensor dtype before it is applied, so rows that need no correction are
multiplied by exactly 1 and stay bit-identical.

A "row" is every element sharing the indices of all dimensions except `axis`.
"""
import BoundLearn.core.backend.backend as backend
from BoundLearn.nn.constraints.constraints import MaxNorm, MinMaxNorm, NonNegative, UnitNorm


def row_norms(data, axis):
    """L2 norm of every row along `axis`, in float64, with `axis` kept as size 1."""
    xp = backend.xp
    wide = data.astype(xp.float64)
    return xp.sqrt(xp.sum(wide * wide, axis=axis, keepdims=True))


def _scale_rows(data, scale):
    data *= scale.astype(data.dtype)
    return data


def max_norm_(data, max_norm, axis=1):
    xp = backend.xp
    norms = row_norms(data, axis)
    over = norms > max_norm
    if not xp.any(over):
        return data
    # zero rows never satisfy `over`; the where() only guards the division
    safe = xp.where(norms > 0, norms, 1.0)
    return _scale_rows(data, xp.where(over, max_norm / safe, 1.0))


def min_max_norm_(data, min_norm, max_norm, rate=1.0, axis=1, epsilon=1e-6):
    xp = backend.xp
    norms = row_norms(data, axis)
    clipped = xp.clip(norms, min_norm, max_norm)
    # rows at or below epsilon are not lifted toward min_norm
    outside = (norms > max_norm) | ((norms < min_norm) & (norms > epsilon))
    if not xp.any(outside):
        return data
    target = rate * clipped + (1.0 - rate) * norms
    safe = xp.where(norms > 0, norms, 1.0)
    return _scale_rows(data, xp.where(outside, target / safe, 1.0))


def non_negative_(data):
    xp = backend.xp
    xp.maximum(data, 0, out=data)
    return data


def unit_norm_(data, axis=1):
    xp = backend.xp
    wide = data.astype(xp.float64)
    norms = xp.sqrt(xp.sum(wide * wide, axis=axis, keepdims=True))
    nonzero = norms > 0
    if not xp.any(nonzero):
        return data
    # divided in float64: a 1/norm scale for subnormal rows overflows float32
    # all-zero rows have no direction and keep scale 1
    data[...] = wide / xp.where(nonzero, norms, 1.0)
    return data


PROJECTIONS = {
    MaxNorm: lambda c, data: max_norm_(data, c.max_norm, c.axis),
    MinMaxNorm: lambda c, data: min_max_norm_(data, c.min_norm, c.max_norm, c.rate, c.axis, c.epsilon),
    NonNegative: lambda c, data: non_negative_(data),
    UnitNorm: lambda c, data: unit_norm_(data, c.axis),
}


def project(constraint, data):
    """
    Apply the kernel for `constraint` to `data` in place.

    Args:
        constraint: A constraint descriptor (MaxNorm, MinMaxNorm, NonNegative, UnitNorm).
        data (xp.ndarray): Parameter storage to correct.

    Returns:
        The same `data` object.
    """
    kernel = PROJECTIONS.get(type(constraint))
    if kernel is None:
        raise TypeError(f"No projection registered for {type(constraint).__name__}")
    return kernel(constraint, data)
