from BoundLearn.nn.layers.dense import Dense
from BoundLearn.nn.loss import get_loss, LOSSES
from BoundLearn.core.errors import ConfigurationError


class Output(Dense):
    """
    Dense layer that also owns the training loss.

    Args:
        loss (str): Name in LOSSES. Defaults to "mse".
        activation (str): Defaults to "identity".
    """
    def __init__(self, n_in=None, n_out=None, loss="mse", activation="identity", **kwargs):
        if loss not in LOSSES:
            raise ConfigurationError(f"Unsupported loss '{loss}'. Available: {list(LOSSES.keys())}")
        super().__init__(n_in=n_in, n_out=n_out, activation=activation, **kwargs)
        self.loss = loss

    def compute_loss(self, predictions, targets):
        return get_loss(self.loss)(predictions, targets)

    def get_config(self):
        cfg = super().get_config()
        cfg["loss"] = self.loss
        return cfg

    def extra_repr(self):
        return f"{super().extra_repr()}, loss={self.loss}"
