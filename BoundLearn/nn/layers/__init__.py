from BoundLearn.core.errors import ConfigurationError

from .base_layer import BaseLayer
from .dense import Dense
from .output import Output
from .lstm import LSTM

LAYERS = {
    "Dense": Dense,
    "Output": Output,
    "LSTM": LSTM,
}


def layer_to_config(layer):
    return layer.get_config()


def layer_from_config(cfg):
    name = cfg.get("type")
    if name not in LAYERS:
        raise ConfigurationError(f"Unknown layer type '{name}'. Available: {list(LAYERS)}")
    return LAYERS[name].from_config(cfg)


__all__ = [
    "BaseLayer",
    "Dense",
    "Output",
    "LSTM",
    "LAYERS",
    "layer_to_config",
    "layer_from_config",
]
