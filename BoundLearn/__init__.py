# nn before core: BoundLearn.core.tensor.parameter imports BoundLearn.nn.stateful
from . import nn
from . import core
from . import serialization

from .nn import Network, NetworkConfig
from .serialization import save_model, load_model

__all__ = [
    "nn",
    "core",
    "serialization",
    "Network",
    "NetworkConfig",
    "save_model",
    "load_model",
]
