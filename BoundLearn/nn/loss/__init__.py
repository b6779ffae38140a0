from .loss import BaseLoss
from .loss import MeanSquaredError
from .loss import LOSSES
from .loss import get_loss

__all__ = [
    "BaseLoss",
    "MeanSquaredError",
    "LOSSES",
    "get_loss",
]
