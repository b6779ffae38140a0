from .initializations import He
from .initializations import Xavier
from .initializations import LeCun
from .initializations import Zeros
from .initializations import ALL_INITIALIZATIONS
from .initializations import initialize_weights
from .distributions import Distribution
from .distributions import Normal
from .distributions import Uniform
from .distributions import distribution_to_config
from .distributions import distribution_from_config

__all__ = [
    "He",
    "Xavier",
    "LeCun",
    "Zeros",
    "ALL_INITIALIZATIONS",
    "initialize_weights",
    "Distribution",
    "Normal",
    "Uniform",
    "distribution_to_config",
    "distribution_from_config",
]
