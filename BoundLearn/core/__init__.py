from .tensor import Tensor
from .tensor import Parameter
from .tensor import ops

from .backend.backend import gpu_available
from .backend.backend import is_gpu
from .backend.backend import get_device
from .backend.backend import use_gpu
from .backend.backend import use_cpu
from .backend.backend import set_seed
from .backend.backend import set_dtype
from .backend.backend import is_grad_enabled
from .backend.backend import no_grad

from .errors import BoundLearnError
from .errors import ConfigurationError
from .errors import PersistenceCorruptionError

__all__ = [
    "Tensor",
    "Parameter",
    "ops",
    "gpu_available",
    "is_gpu",
    "get_device",
    "use_gpu",
    "use_cpu",
    "set_seed",
    "set_dtype",
    "is_grad_enabled",
    "no_grad",
    "BoundLearnError",
    "ConfigurationError",
    "PersistenceCorruptionError",
]
