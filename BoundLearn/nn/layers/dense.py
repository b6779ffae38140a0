from BoundLearn.core import Tensor, ops
from BoundLearn.nn.layers.base_layer import BaseLayer
from BoundLearn.nn.activations import get_activation
from BoundLearn.nn.initializations import initialize_weights


class Dense(BaseLayer):
    """
    Fully connected layer: activation(x @ W + b).

    Parameters:
        W: (n_in, n_out)
        b: (1, n_out)

    See `BaseLayer` for the constructor arguments, including the constraint
    keywords. `recurrent_constraints` is accepted but fails at bind time,
    since a dense layer has no recurrent weights.
    """
    def param_keys(self):
        return ("W", "b")

    def param_shapes(self, n_in=None):
        n_in = self.n_in if n_in is None else n_in
        return {"W": (n_in, self.n_out), "b": (1, self.n_out)}

    def initialize(self, weight_init, dist, bias_init):
        shapes = self.param_shapes()
        W, b = initialize_weights(shapes["W"], shapes["b"], weight_init, dist=dist, bias_init=bias_init)
        self._make_params({"W": W, "b": b})

    def forward(self, A_prev: Tensor) -> Tensor:
        W = self.W.to_compute()
        b = self.b.to_compute()
        Z = ops.matmul(A_prev, W) + b
        activation = get_activation(self.activation)
        return activation(Z)
