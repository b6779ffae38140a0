from .tensor import Tensor
from .parameter import Parameter
from . import ops

__all__ = [
    "Tensor",
    "Parameter",
    "ops",
]
