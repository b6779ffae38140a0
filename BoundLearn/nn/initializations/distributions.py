import BoundLearn.core.backend.backend as backend
from BoundLearn.core.errors import ConfigurationError
from BoundLearn.nn.stateful import Stateful


class Distribution(Stateful):
    """Sampling distribution for the "distribution" weight initialization."""

    def sample(self, shape):
        raise NotImplementedError

    def __eq__(self, other):
        return type(self) is type(other) and self.get_config() == other.get_config()

    def __hash__(self):
        return hash((type(self).__name__, tuple(sorted(self.get_config().items()))))

    def __repr__(self):
        args = ", ".join(f"{k}={v!r}" for k, v in self.get_config().items())
        return f"{type(self).__name__}({args})"


class Normal(Distribution):
    def __init__(self, mean=0.0, std=1.0):
        if std < 0:
            raise ConfigurationError(f"std must be >= 0, got {std}")
        self.mean = float(mean)
        self.std = float(std)

    def sample(self, shape):
        xp = backend.xp
        return (xp.random.randn(*shape) * self.std + self.mean).astype(backend.DTYPE)

    def get_config(self):
        return {"mean": self.mean, "std": self.std}


class Uniform(Distribution):
    def __init__(self, low=-1.0, high=1.0):
        if high < low:
            raise ConfigurationError(f"high ({high}) must be >= low ({low})")
        self.low = float(low)
        self.high = float(high)

    def sample(self, shape):
        xp = backend.xp
        return xp.random.uniform(self.low, self.high, shape).astype(backend.DTYPE)

    def get_config(self):
        return {"low": self.low, "high": self.high}


DISTRIBUTIONS = {
    "Normal": Normal,
    "Uniform": Uniform,
}


def distribution_to_config(dist):
    if dist is None:
        return None
    return {"type": type(dist).__name__, **dist.get_config()}


def distribution_from_config(cfg):
    if cfg is None:
        return None
    cfg = dict(cfg)
    name = cfg.pop("type", None)
    if name not in DISTRIBUTIONS:
        raise ConfigurationError(f"Unknown distribution '{name}'. Available: {list(DISTRIBUTIONS)}")
    return DISTRIBUTIONS[name].from_config(cfg)
