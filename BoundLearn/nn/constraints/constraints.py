"""
Constraint descriptors.

A descriptor names one projection kind and its numeric parameters. It is a
frozen value object: equal fields mean equal descriptors, and the same
instance may be attached to any number of parameter groups.

Every descriptor has a canonical string, `Kind(field=value, ...)`, with the
fields in declaration order. It is what `get_constraints()` reports and what
configuration-equality checks compare.
"""
import math
from dataclasses import dataclass, fields

import BoundLearn.core.backend.backend as backend
from BoundLearn.core.errors import ConfigurationError


def _check_norm(kind, name, value):
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigurationError(f"{kind}: {name} must be a number, got {value!r}")
    if not math.isfinite(value) or value < 0:
        raise ConfigurationError(f"{kind}: {name} must be finite and >= 0, got {value}")
    return float(value)


def _check_axis(kind, axis):
    if isinstance(axis, bool) or not isinstance(axis, int):
        raise ConfigurationError(f"{kind}: axis must be an int, got {axis!r}")
    return int(axis)


def _check_epsilon(kind, epsilon):
    if epsilon is None:
        epsilon = backend.CONSTRAINT_EPSILON
    if isinstance(epsilon, bool) or not isinstance(epsilon, (int, float)):
        raise ConfigurationError(f"{kind}: epsilon must be a number, got {epsilon!r}")
    if not math.isfinite(epsilon) or epsilon <= 0:
        raise ConfigurationError(f"{kind}: epsilon must be finite and > 0, got {epsilon}")
    return float(epsilon)


def _format_value(value):
    if isinstance(value, int):
        return repr(int(value))
    return repr(float(value))


class _Descriptor:
    """Shared canonical-form behaviour for the frozen descriptor dataclasses."""

    # Fields that name a tensor dimension. Empty for elementwise kinds.
    axis_fields = ()

    @property
    def kind(self):
        return type(self).__name__

    def get_config(self):
        return {"type": self.kind, **{f.name: getattr(self, f.name) for f in fields(self)}}

    @classmethod
    def from_config(cls, cfg):
        return cls(**cfg)

    def canonical(self):
        args = ", ".join(f"{f.name}={_format_value(getattr(self, f.name))}" for f in fields(self))
        return f"{self.kind}({args})"

    def __str__(self):
        return self.canonical()

    def __repr__(self):
        return self.canonical()


@dataclass(frozen=True, eq=True, repr=False)
class MaxNorm(_Descriptor):
    """Rows along `axis` with an L2 norm above `max_norm` are scaled down onto it."""
    max_norm: float
    axis: int = 1

    axis_fields = ("axis",)

    def __post_init__(self):
        object.__setattr__(self, "max_norm", _check_norm("MaxNorm", "max_norm", self.max_norm))
        object.__setattr__(self, "axis", _check_axis("MaxNorm", self.axis))


@dataclass(frozen=True, eq=True, repr=False)
class MinMaxNorm(_Descriptor):
    """
    Keeps row norms along `axis` inside [min_norm, max_norm].

    `rate` in (0, 1] is the fraction of the distance to the violated boundary
    that a row moves per application; 1.0 lands exactly on the boundary.
    Rows with a norm at or below `epsilon` have no usable direction and are
    never lifted toward `min_norm`.
    """
    min_norm: float
    max_norm: float
    rate: float = 1.0
    axis: int = 1
    epsilon: float = None

    axis_fields = ("axis",)

    def __post_init__(self):
        lo = _check_norm("MinMaxNorm", "min_norm", self.min_norm)
        hi = _check_norm("MinMaxNorm", "max_norm", self.max_norm)
        if lo > hi:
            raise ConfigurationError(f"MinMaxNorm: min_norm ({lo}) must be <= max_norm ({hi})")
        rate = self.rate
        if isinstance(rate, bool) or not isinstance(rate, (int, float)) or not 0.0 < rate <= 1.0:
            raise ConfigurationError(f"MinMaxNorm: rate must be in (0, 1], got {rate!r}")
        object.__setattr__(self, "min_norm", lo)
        object.__setattr__(self, "max_norm", hi)
        object.__setattr__(self, "rate", float(rate))
        object.__setattr__(self, "axis", _check_axis("MinMaxNorm", self.axis))
        object.__setattr__(self, "epsilon", _check_epsilon("MinMaxNorm", self.epsilon))


@dataclass(frozen=True, eq=True, repr=False)
class NonNegative(_Descriptor):
    """Elementwise clamp of negative values to zero."""


@dataclass(frozen=True, eq=True, repr=False)
class UnitNorm(_Descriptor):
    """Nonzero rows along `axis` are divided by their norm. All-zero rows stay zero."""
    axis: int = 1

    axis_fields = ("axis",)

    def __post_init__(self):
        object.__setattr__(self, "axis", _check_axis("UnitNorm", self.axis))


CONSTRAINTS = {
    "MaxNorm": MaxNorm,
    "MinMaxNorm": MinMaxNorm,
    "NonNegative": NonNegative,
    "UnitNorm": UnitNorm,
}

CONSTRAINT_TYPES = tuple(CONSTRAINTS.values())


def is_constraint(obj):
    return isinstance(obj, CONSTRAINT_TYPES)


def constraint_to_config(constraint):
    if not is_constraint(constraint):
        raise TypeError(f"Not a constraint descriptor: {constraint!r}")
    return constraint.get_config()


def constraint_from_config(cfg):
    """Rebuild a descriptor from its `get_config()` dict."""
    cfg = dict(cfg)
    name = cfg.pop("type", None)
    if name not in CONSTRAINTS:
        raise ConfigurationError(f"Unknown constraint '{name}'. Available: {list(CONSTRAINTS)}")
    try:
        return CONSTRAINTS[name].from_config(cfg)
    except TypeError as e:
        raise ConfigurationError(f"Invalid {name} config {cfg}: {e}") from e
