"""
Parameter group binding.

A layer declares constraint groups by role (its `constraints`,
`weight_constraints`, `bias_constraints` and `recurrent_constraints`
keywords); a `NetworkConfig` declares network-wide defaults the same way.
Binding turns both into `ParameterGroupBinding` records resolved to the
layer's parameter keys, validated against the parameter shapes.

Application order for one parameter: layer bindings before network
bindings, then declaration order, then descriptor order inside a binding.
"""
import logging
from dataclasses import dataclass, replace
from enum import Enum

from BoundLearn.core.errors import ConfigurationError
from BoundLearn.nn.constraints.constraints import (
    is_constraint,
    constraint_to_config,
    constraint_from_config,
)

logger = logging.getLogger(__name__)

LAYER_SOURCE = "layer"
NETWORK_SOURCE = "network"
SOURCES = (LAYER_SOURCE, NETWORK_SOURCE)


class ParamRole(Enum):
    WEIGHT = "weight"
    BIAS = "bias"
    RECURRENT_WEIGHT = "recurrent_weight"
    ALL = "all"


# Parameter key owned by each single-tensor role
ROLE_KEYS = {
    ParamRole.WEIGHT: "W",
    ParamRole.BIAS: "b",
    ParamRole.RECURRENT_WEIGHT: "RW",
}


def as_role(role):
    """Accept a ParamRole, its value ("weight") or its name ("WEIGHT")."""
    if isinstance(role, ParamRole):
        return role
    if isinstance(role, str):
        key = role.strip()
        try:
            return ParamRole(key.lower())
        except ValueError:
            pass
        if key.upper() in ParamRole.__members__:
            return ParamRole[key.upper()]
    raise ConfigurationError(f"Unknown parameter role {role!r}. Available: {[r.value for r in ParamRole]}")


def as_constraints(constraints):
    """Normalize None / a single descriptor / an iterable of descriptors to a tuple."""
    if constraints is None:
        return ()
    if is_constraint(constraints):
        return (constraints,)
    out = tuple(constraints)
    for c in out:
        if not is_constraint(c):
            raise ConfigurationError(f"Expected a constraint descriptor, got {c!r}")
    return out


@dataclass(frozen=True)
class ParameterGroupBinding:
    """
    One constraint group attached to a layer.

    Attributes:
        role (ParamRole): Which parameter(s) of the layer the group targets.
        constraints (tuple): Ordered descriptors.
        source (str): "layer" when declared on the layer, "network" when
            inherited from the network-wide defaults.
        params (tuple or None): Parameter keys the group resolved to; None
            until the layer is bound.
    """
    role: ParamRole
    constraints: tuple
    source: str = LAYER_SOURCE
    params: tuple = None

    def __post_init__(self):
        object.__setattr__(self, "role", as_role(self.role))
        object.__setattr__(self, "constraints", as_constraints(self.constraints))
        if not self.constraints:
            raise ConfigurationError(f"Binding for role '{self.role.value}' has no constraints")
        if self.source not in SOURCES:
            raise ConfigurationError(f"Binding source must be one of {SOURCES}, got {self.source!r}")
        if self.params is not None:
            object.__setattr__(self, "params", tuple(self.params))

    @property
    def resolved(self):
        return self.params is not None

    def with_params(self, params):
        return replace(self, params=tuple(params))

    def get_config(self):
        return {
            "role": self.role.value,
            "source": self.source,
            "params": list(self.params) if self.params is not None else None,
            "constraints": [constraint_to_config(c) for c in self.constraints],
        }

    @classmethod
    def from_config(cls, cfg):
        return cls(
            role=cfg["role"],
            constraints=tuple(constraint_from_config(c) for c in cfg["constraints"]),
            source=cfg.get("source", LAYER_SOURCE),
            params=cfg.get("params"),
        )


def declare_bindings(constraints=None, weight_constraints=None, bias_constraints=None,
                     recurrent_constraints=None):
    """Build the unresolved layer-level bindings in keyword declaration order."""
    declared = []
    for role, group in (
        (ParamRole.ALL, constraints),
        (ParamRole.WEIGHT, weight_constraints),
        (ParamRole.BIAS, bias_constraints),
        (ParamRole.RECURRENT_WEIGHT, recurrent_constraints),
    ):
        group = as_constraints(group)
        if group:
            declared.append(ParameterGroupBinding(role, group, LAYER_SOURCE))
    return tuple(declared)


def role_keys(role, param_keys):
    """Parameter keys `role` covers among `param_keys` (possibly empty)."""
    if role is ParamRole.ALL:
        return tuple(param_keys)
    key = ROLE_KEYS[role]
    return (key,) if key in param_keys else ()


def get_parameter_roles(layer):
    """Return {ParamRole: key} for every single-tensor role the layer owns."""
    keys = layer.param_keys()
    return {role: key for role, key in ROLE_KEYS.items() if key in keys}


def _validate(layer_name, binding, shapes):
    for key in binding.params:
        if key not in shapes:
            raise ConfigurationError(
                f"{layer_name}: binding for role '{binding.role.value}' targets unknown parameter '{key}'"
            )
        ndim = len(shapes[key])
        for c in binding.constraints:
            for field in c.axis_fields:
                axis = getattr(c, field)
                if not -ndim <= axis < ndim:
                    raise ConfigurationError(
                        f"{layer_name}: {c} has {field}={axis}, out of range for parameter "
                        f"'{key}' with shape {shapes[key]} (rank {ndim})"
                    )


def resolve_layer_bindings(layer, defaults, shapes, layer_name="layer"):
    """
    Compute the bound bindings of one layer without committing them.

    Args:
        layer: The layer (provides `bindings` and `param_keys()`).
        defaults (dict): Network-wide {ParamRole: tuple of descriptors}, in
            declaration order.
        shapes (dict): {key: shape} of the layer's parameters. Parameters do
            not need to be allocated yet.
        layer_name (str): Used in error messages.

    Returns:
        tuple of ParameterGroupBinding with `params` filled.

    Raises:
        ConfigurationError: a role has no matching parameter, or an axis is
            out of range for a bound parameter's rank.
    """
    keys = tuple(shapes)
    current = tuple(layer.bindings)
    restored = getattr(layer, "restored", False) or any(b.source == NETWORK_SOURCE for b in current)

    resolved = []
    covered = set()
    for b in current:
        params = role_keys(b.role, keys)
        if not params:
            raise ConfigurationError(
                f"{layer_name} ({type(layer).__name__}) has no parameter for role '{b.role.value}'"
            )
        if b.resolved and tuple(b.params) != params and b.source == LAYER_SOURCE:
            raise ConfigurationError(
                f"{layer_name}: binding for role '{b.role.value}' was resolved to {b.params}, "
                f"layer parameters are {keys}"
            )
        b = b if b.resolved else b.with_params(params)
        resolved.append(b)
        if b.source == LAYER_SOURCE:
            covered.update(b.params)

    if not restored:
        for role, group in defaults.items():
            params = tuple(k for k in role_keys(role, keys) if k not in covered)
            if params:
                resolved.append(ParameterGroupBinding(role, group, NETWORK_SOURCE, params))

    # layer bindings first, stable within each source
    resolved.sort(key=lambda b: SOURCES.index(b.source))

    for b in resolved:
        _validate(layer_name, b, shapes)
    return tuple(resolved)


def bind_layer(layer, defaults, shapes=None, layer_name="layer"):
    """Resolve and commit the bindings of a single layer."""
    shapes = layer.param_shapes() if shapes is None else shapes
    layer.bindings = resolve_layer_bindings(layer, defaults, shapes, layer_name)
    return layer.bindings


def bind_network(layers, defaults, shapes):
    """
    Bind every layer, all or nothing.

    `shapes[i]` is the {key: shape} dict of `layers[i]`. If any layer fails
    to bind, ConfigurationError propagates and no layer is modified.
    """
    pending = [
        resolve_layer_bindings(layer, defaults, layer_shapes, layer_name=f"layer {i}")
        for i, (layer, layer_shapes) in enumerate(zip(layers, shapes))
    ]
    for layer, bindings in zip(layers, pending):
        layer.bindings = bindings
    logger.debug("Bound constraints on %d layers (%d bindings)", len(layers), sum(len(p) for p in pending))
    return pending


def resolve_constraints(layer, key):
    """Ordered descriptors that apply to parameter `key` of `layer`."""
    out = []
    for b in layer.bindings:
        params = b.params if b.resolved else role_keys(b.role, layer.param_keys())
        if key in params:
            out.extend(b.constraints)
    return out


def get_constraints(layer):
    """Ordered, de-duplicated canonical strings of every descriptor bound on `layer`."""
    seen = []
    for b in layer.bindings:
        for c in b.constraints:
            s = c.canonical()
            if s not in seen:
                seen.append(s)
    return seen
