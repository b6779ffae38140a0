import logging

import BoundLearn.core.backend.backend as backend
from BoundLearn.core import Tensor
from BoundLearn.core.errors import ConfigurationError
from BoundLearn.nn.stateful import Stateful
from BoundLearn.nn.config import NetworkConfig
from BoundLearn.nn.layers import BaseLayer, layer_to_config, layer_from_config
from BoundLearn.nn.layers.base_layer import resolve_init
from BoundLearn.nn.constraints.binding import bind_network, get_parameter_roles
from BoundLearn.nn.constraints.scheduler import ConstraintScheduler

logger = logging.getLogger(__name__)


class Network(Stateful):
    """
    Ordered stack of layers trained with the configured updater.

    Parameters are addressed as "<layer index>_<key>", e.g. "0_W", "0_RW",
    "1_b". Every `fit` step runs forward, backward, `updater.step` and then
    the constraint scheduler, so constraints always hold before the next
    forward pass.

    Example:
        net = Network([
            LSTM(n_in=12, n_out=10, recurrent_constraints=MaxNorm(0.5)),
            Output(n_in=10, n_out=8, loss="mse"),
        ], NetworkConfig(seed=12345, updater=SGD(0.1)))
        net.init()
        net.fit(x, y)
    """
    def __init__(self, layers, config=None):
        layers = list(layers)
        if not layers:
            raise ValueError("Network needs at least one layer")
        for layer in layers:
            if not isinstance(layer, BaseLayer):
                raise ValueError(f"Expected a BaseLayer, got {type(layer).__name__}")

        self.config = config if config is not None else NetworkConfig()
        self.layers = layers
        self.scheduler = ConstraintScheduler()
        self.score_ = None
        self.iteration_count = 0
        self._initialized = False

    @property
    def updater(self):
        return self.config.updater

    # -------------------------------
    # Initialization
    # -------------------------------
    def _infer_inputs(self):
        n_ins = []
        prev_out = None
        for i, layer in enumerate(self.layers):
            n_in = layer.n_in if layer.n_in is not None else prev_out
            if n_in is None:
                raise ConfigurationError(f"layer {i} ({type(layer).__name__}): n_in must be set on the first layer")
            if prev_out is not None and n_in != prev_out:
                raise ConfigurationError(
                    f"layer {i} ({type(layer).__name__}): n_in={n_in} does not match previous n_out={prev_out}"
                )
            n_ins.append(n_in)
            prev_out = layer.n_out
        return n_ins

    def init(self):
        """
        Validate the topology, bind constraints and allocate parameters.

        Binding is all-or-nothing: on ConfigurationError no layer is modified.
        Calling init() on an initialized network is a no-op.
        """
        if self._initialized:
            return self

        n_ins = self._infer_inputs()
        shapes = [layer.param_shapes(n_in) for layer, n_in in zip(self.layers, n_ins)]
        bind_network(self.layers, self.config.default_constraints, shapes)

        if self.config.seed is not None:
            backend.set_seed(self.config.seed)

        cfg = self.config
        for layer, n_in in zip(self.layers, n_ins):
            layer.n_in = n_in
            layer.initialize(*resolve_init(layer, cfg.weight_init, cfg.dist, cfg.bias_init))

        self._initialized = True
        logger.info("Initialized network: %d layers, %d parameters", len(self.layers), self.num_params())
        return self

    def _check_initialized(self):
        if not self._initialized:
            raise RuntimeError("Network is not initialized; call init() first")

    # -------------------------------
    # Parameters
    # -------------------------------
    def named_parameters(self, with_layer=False):
        params = []
        for i, layer in enumerate(self.layers):
            params += layer.named_parameters(prefix=f"{i}_", with_layer=with_layer)
        return params

    def parameters(self, with_layer=False):
        return [p for _, p in self.named_parameters(with_layer=with_layer)]

    def param_names(self):
        return [name for name, _ in self.named_parameters()]

    def _lookup(self, name):
        idx, sep, key = str(name).partition("_")
        if not sep or not idx.isdigit() or int(idx) >= len(self.layers):
            raise KeyError(f"Unknown parameter '{name}'")
        try:
            return self.layers[int(idx)].get_param(key)
        except KeyError:
            raise KeyError(f"Unknown parameter '{name}'") from None

    def get_param(self, name):
        """Live storage of parameter `name`."""
        self._check_initialized()
        return self._lookup(name).data

    def set_param(self, name, value):
        """Copy `value` into the existing storage of parameter `name` (shape-checked)."""
        self._check_initialized()
        self._lookup(name).assign(value)

    def param_table(self):
        """{name: live array} in network order."""
        self._check_initialized()
        return {name: p.data for name, p in self.named_parameters()}

    def params(self):
        """All parameters flattened into one new 1-D array, in network order."""
        self._check_initialized()
        xp = backend.xp
        return xp.concatenate([p.data.ravel() for p in self.parameters()])

    def num_params(self):
        return sum(p.size for p in self.parameters())

    def get_parameter_roles(self, layer_index):
        """{ParamRole: parameter name} for the layer at `layer_index`."""
        roles = get_parameter_roles(self.layers[layer_index])
        return {role: f"{layer_index}_{key}" for role, key in roles.items()}

    # -------------------------------
    # Forward / training
    # -------------------------------
    def forward(self, x):
        out = x if isinstance(x, Tensor) else Tensor(x)
        for layer in self.layers:
            out = layer(out)
        return out

    def output(self, x):
        """Forward pass without gradient tracking; returns an array."""
        self._check_initialized()
        with backend.no_grad():
            return self.forward(x).data

    def _loss_layer(self):
        last = self.layers[-1]
        if not hasattr(last, "compute_loss"):
            raise ConfigurationError(f"The last layer must be an Output layer, got {type(last).__name__}")
        return last

    def score(self, x, y):
        """Loss on (x, y) without updating anything."""
        self._check_initialized()
        with backend.no_grad():
            return float(self._loss_layer().compute_loss(self.forward(x), y).item())

    def apply_constraints(self):
        """Project every constrained parameter back onto its feasible set."""
        self._check_initialized()
        return self.scheduler.step(self.layers)

    def fit(self, x, y, epochs=1):
        """Full-batch training: one update (and one constraint application) per epoch."""
        self._check_initialized()
        loss_layer = self._loss_layer()
        params = self.parameters(with_layer=True)
        for _ in range(epochs):
            self.updater.zero_grad(params)
            loss = loss_layer.compute_loss(self.forward(x), y)
            loss.backward()
            self.updater.step(params)
            self.apply_constraints()
            self.score_ = float(loss.item())
            self.iteration_count += 1
            logger.debug("Iteration %d: score=%.6f", self.iteration_count, self.score_)
        return self

    # -------------------------------
    # Stateful / persistence
    # -------------------------------
    def state_dict(self):
        return {str(i): layer.state_dict() for i, layer in enumerate(self.layers)}

    def load_state_dict(self, state):
        for i, layer in enumerate(self.layers):
            if str(i) in state:
                layer.load_state_dict(state[str(i)])

    def get_config(self):
        return {
            "config": self.config.get_config(),
            "layers": [layer_to_config(layer) for layer in self.layers],
        }

    @classmethod
    def from_config(cls, cfg):
        """Rebuild an uninitialized network; layer bindings come from `cfg` as-is."""
        return cls(
            [layer_from_config(layer_cfg) for layer_cfg in cfg["layers"]],
            NetworkConfig.from_config(cfg["config"]),
        )

    def save(self, sink, save_updater=True, compact=None):
        from BoundLearn.serialization import save_model
        return save_model(self, sink, save_updater=save_updater, compact=compact)

    @classmethod
    def load(cls, source, load_updater=True):
        from BoundLearn.serialization import load_model
        return load_model(source, load_updater=load_updater)

    def __repr__(self):
        child_str = "\n".join(f"  ({i}): {layer!r}" for i, layer in enumerate(self.layers))
        return f"{type(self).__name__}(\n{child_str}\n)"
