from .activations import ACTIVATIONS
from .activations import get_activation
from .activations import linear
from .activations import sigmoid
from .activations import tanh
from .activations import relu

__all__ = [
    "ACTIVATIONS",
    "get_activation",
    "linear",
    "sigmoid",
    "tanh",
    "relu",
]
