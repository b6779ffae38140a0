import copy

import BoundLearn.core.backend.backend as backend
from BoundLearn.core import Parameter
from BoundLearn.nn.stateful import Stateful


class BaseOptimizer(Stateful):
    """
    Base class for parameter updaters.

    `step()` receives parameter descriptors as produced by
    `Network.parameters(with_layer=True)`: dicts with "name", "param" and
    "layer". Per-parameter state lives in `self.state`, keyed by parameter
    name so it can be saved next to the weights.
    """
    def __init__(self, learning_rate):
        if learning_rate < 0:
            raise ValueError(f"learning_rate must be >= 0, got {learning_rate}")
        self.learning_rate = float(learning_rate)
        self.state = {}

    def get_config(self):
        return {"learning_rate": self.learning_rate}

    def state_dict(self):
        return {
            "learning_rate": self.learning_rate,
            "state": copy.deepcopy(self.state),
        }

    def load_state_dict(self, state):
        if "learning_rate" in state:
            self.learning_rate = float(state["learning_rate"])
        if "state" in state:
            self.state = copy.deepcopy(state["state"])

    def _iter_params(self, params):
        """Yield (name, Parameter, layer) for parameters that should be updated."""
        for desc in params:
            if isinstance(desc, dict):
                param = desc["param"]
                layer = desc.get("layer", None)
                name = desc.get("name", None)
            else:
                param, layer, name = desc, None, None

            if not isinstance(param, Parameter):
                continue
            if param.grad is None:
                continue
            if getattr(param, "frozen", False):
                continue
            if layer is not None and getattr(layer, "frozen", False):
                continue

            yield (name if name is not None else id(param)), param, layer

    def step(self, params):
        """Update parameters based on their gradients."""
        raise NotImplementedError

    def zero_grad(self, params):
        """Clear gradients."""
        for desc in params:
            param = desc["param"] if isinstance(desc, dict) else desc
            if isinstance(param, Parameter):
                param.zero_grad()

    def __repr__(self):
        args = ", ".join(f"{k}={v!r}" for k, v in self.get_config().items())
        return f"{type(self).__name__}({args})"


def zeros_like_param(param):
    return backend.xp.zeros_like(param.data)
