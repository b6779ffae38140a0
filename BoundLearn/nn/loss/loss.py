from BoundLearn.core import Tensor, ops


class BaseLoss:
    name = None

    def __call__(self, *args, **kwargs):
        return self.forward(*args, **kwargs)

    def forward(self, *args, **kwargs):
        raise NotImplementedError


class MeanSquaredError(BaseLoss):
    """
    Mean Squared Error (MSE) loss with autograd support.

    Computes the average squared difference between predictions and targets
    over every element of the batch.
    """
    name = "mse"

    def forward(self, predictions: Tensor, targets) -> Tensor:
        return ops.mean_squared_error(predictions, targets)


LOSSES = {
    "mse": MeanSquaredError,
}


def get_loss(name_or_loss):
    if isinstance(name_or_loss, BaseLoss):
        return name_or_loss
    if isinstance(name_or_loss, str):
        key = name_or_loss.lower()
        if key not in LOSSES:
            raise ValueError(f"Unsupported loss '{name_or_loss}'. Available: {list(LOSSES.keys())}")
        return LOSSES[key]()
    raise TypeError("Loss must be a string or a BaseLoss instance")
