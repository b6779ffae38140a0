# stateful must load first: BoundLearn.core.tensor.parameter depends on it
from .stateful import Stateful

from . import activations
from . import initializations
from . import loss
from . import optim
from . import constraints
from . import layers

from .config import NetworkConfig
from .network import Network

__all__ = [
    "Stateful",
    "activations",
    "initializations",
    "loss",
    "optim",
    "constraints",
    "layers",
    "NetworkConfig",
    "Network",
]
