from BoundLearn.core.errors import ConfigurationError

from .base_optimizer import BaseOptimizer
from .sgd import SGD
from .sgd_momentum import SGDMomentum

OPTIMIZERS = {
    "SGD": SGD,
    "SGDMomentum": SGDMomentum,
}


def optimizer_to_config(optimizer):
    return {"type": type(optimizer).__name__, **optimizer.get_config()}


def optimizer_from_config(cfg):
    cfg = dict(cfg)
    name = cfg.pop("type", None)
    if name not in OPTIMIZERS:
        raise ConfigurationError(f"Unknown updater '{name}'. Available: {list(OPTIMIZERS)}")
    return OPTIMIZERS[name].from_config(cfg)


__all__ = [
    "BaseOptimizer",
    "SGD",
    "SGDMomentum",
    "OPTIMIZERS",
    "optimizer_to_config",
    "optimizer_from_config",
]
