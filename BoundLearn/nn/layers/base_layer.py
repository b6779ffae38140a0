from BoundLearn.core import Tensor, Parameter
from BoundLearn.core.errors import ConfigurationError
from BoundLearn.nn.stateful import Stateful
from BoundLearn.nn.activations import ACTIVATIONS
from BoundLearn.nn.initializations import ALL_INITIALIZATIONS, distribution_to_config, distribution_from_config
from BoundLearn.nn.constraints.binding import declare_bindings, ParameterGroupBinding


class BaseLayer(Stateful):
    """
    Base class for parameterized layers.

    Parameters are stored as attributes named by their key (`W`, `b`, `RW`)
    and listed by `param_keys()`. Constraint groups declared through the
    constructor keywords are kept in `self.bindings` and resolved to
    parameter keys when the owning network is initialized.

    Args:
        n_in (int, optional): Input size. Inferred from the previous layer when None.
        n_out (int): Output size.
        activation (str): Name in ACTIVATIONS.
        weight_init (str, optional): Name in ALL_INITIALIZATIONS. None inherits
            the network default.
        dist (Distribution, optional): Used when weight_init is "distribution".
        bias_init (float, optional): Constant bias value. None inherits the
            network default.
        constraints: Descriptors applied to every parameter of the layer.
        weight_constraints: Descriptors applied to `W`.
        bias_constraints: Descriptors applied to `b`.
        recurrent_constraints: Descriptors applied to `RW` (recurrent layers only).
    """
    def __init__(self, n_in=None, n_out=None, activation="linear", weight_init=None,
                 dist=None, bias_init=None, constraints=None, weight_constraints=None,
                 bias_constraints=None, recurrent_constraints=None):
        if n_in is not None and (not isinstance(n_in, int) or n_in <= 0):
            raise ConfigurationError(f"n_in must be a positive integer, got {n_in!r}")
        if not isinstance(n_out, int) or n_out <= 0:
            raise ConfigurationError(f"n_out must be a positive integer, got {n_out!r}")
        if activation not in ACTIVATIONS:
            raise ConfigurationError(f"Unsupported activation '{activation}'. "
                                     f"Available: {list(ACTIVATIONS.keys())}")
        if weight_init is not None and weight_init.lower() not in ALL_INITIALIZATIONS:
            raise ConfigurationError(f"Unsupported weight initialization '{weight_init}'. "
                                     f"Available: {list(ALL_INITIALIZATIONS.keys())}")

        self.n_in = n_in
        self.n_out = n_out
        self.activation = activation
        self.weight_init = weight_init
        self.dist = dist
        self.bias_init = None if bias_init is None else float(bias_init)

        self.bindings = declare_bindings(constraints, weight_constraints,
                                         bias_constraints, recurrent_constraints)
        # True when built from a saved config: bindings are never re-derived
        self.restored = False

        self.frozen = False

    # -------------------------------
    # Parameters
    # -------------------------------
    def param_keys(self):
        """Parameter keys in storage order."""
        raise NotImplementedError

    def param_shapes(self, n_in=None):
        """{key: shape} for the given (or configured) input size, before allocation."""
        raise NotImplementedError

    def is_initialized(self):
        return all(isinstance(getattr(self, k, None), Parameter) for k in self.param_keys())

    def get_param(self, key):
        param = getattr(self, key, None) if key in self.param_keys() else None
        if param is None:
            raise KeyError(f"{type(self).__name__} has no parameter '{key}'")
        return param

    def named_parameters(self, prefix="", with_layer=False):
        params = []
        for key in self.param_keys():
            param = getattr(self, key, None)
            if not isinstance(param, Parameter):
                continue
            name = f"{prefix}{key}"
            params.append((name, {"name": name, "param": param, "layer": self} if with_layer else param))
        return params

    def parameters(self, with_layer=False):
        return [p for _, p in self.named_parameters(with_layer=with_layer)]

    def initialize(self, weight_init, dist, bias_init):
        """Allocate parameters. Arguments are the effective (network-resolved) settings."""
        raise NotImplementedError

    def _make_params(self, arrays):
        for key in self.param_keys():
            setattr(self, key, Parameter(arrays[key], requires_grad=True))

    def freeze(self):
        for p in self.parameters():
            p.frozen = True

    def unfreeze(self):
        for p in self.parameters():
            p.frozen = False

    # -------------------------------
    # Stateful
    # -------------------------------
    def state_dict(self):
        out = {"_type": self.__class__.__name__}
        for name, param in self.named_parameters():
            out[name] = param.state_dict()
        return out

    def load_state_dict(self, state):
        for name, param in self.named_parameters():
            if name in state:
                param.load_state_dict(state[name])

    def get_config(self):
        return {
            "type": type(self).__name__,
            "n_in": self.n_in,
            "n_out": self.n_out,
            "activation": self.activation,
            "weight_init": self.weight_init,
            "dist": distribution_to_config(self.dist),
            "bias_init": self.bias_init,
            "bindings": [b.get_config() for b in self.bindings],
        }

    @classmethod
    def from_config(cls, cfg):
        cfg = dict(cfg)
        cfg.pop("type", None)
        bindings = cfg.pop("bindings", [])
        cfg["dist"] = distribution_from_config(cfg.get("dist"))
        layer = cls(**cfg)
        layer.bindings = tuple(ParameterGroupBinding.from_config(b) for b in bindings)
        layer.restored = True
        return layer

    # -------------------------------
    # Forward
    # -------------------------------
    def __call__(self, x: Tensor) -> Tensor:
        return self.forward(x)

    def forward(self, x: Tensor) -> Tensor:
        raise NotImplementedError

    def extra_repr(self):
        return f"n_in={self.n_in}, n_out={self.n_out}, activation={self.activation}"

    def __repr__(self):
        return f"{type(self).__name__}({self.extra_repr()})"


def resolve_init(layer, weight_init, dist, bias_init):
    """Layer settings win over the network defaults passed in."""
    return (
        layer.weight_init if layer.weight_init is not None else weight_init,
        layer.dist if layer.dist is not None else dist,
        layer.bias_init if layer.bias_init is not None else bias_init,
    )
