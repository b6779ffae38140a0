import BoundLearn.core.backend.backend as backend
from BoundLearn.core import Tensor, ops
from BoundLearn.nn.layers.base_layer import BaseLayer
from BoundLearn.nn.activations import get_activation
from BoundLearn.nn.initializations import initialize_weights


class LSTM(BaseLayer):
    """
    Long Short-Term Memory layer with fused gate weights.

    Gates are packed along the last axis in the order input, forget, output,
    candidate, each `n_out` wide:
        i_t = sigmoid(x_t @ W_i + h_{t-1} @ RW_i + b_i)
        f_t = sigmoid(x_t @ W_f + h_{t-1} @ RW_f + b_f)
        o_t = sigmoid(x_t @ W_o + h_{t-1} @ RW_o + b_o)
        g_t = act(x_t @ W_g + h_{t-1} @ RW_g + b_g)
        c_t = f_t * c_{t-1} + i_t * g_t
        h_t = o_t * act(c_t)

    Parameters:
        W:  (n_in, 4 * n_out)
        RW: (n_out, 4 * n_out)
        b:  (1, 4 * n_out)

    Input is (batch, n_in), treated as a single timestep, or
    (batch, timesteps, n_in). The output is the last hidden state
    (batch, n_out).

    Args:
        forget_gate_bias_init (float): Initial bias of the forget gate.
            Defaults to 1.0.
        activation (str): Candidate/cell activation. Defaults to "tanh".
    """
    def __init__(self, n_in=None, n_out=None, activation="tanh", forget_gate_bias_init=1.0, **kwargs):
        super().__init__(n_in=n_in, n_out=n_out, activation=activation, **kwargs)
        self.forget_gate_bias_init = float(forget_gate_bias_init)

    def param_keys(self):
        return ("W", "RW", "b")

    def param_shapes(self, n_in=None):
        n_in = self.n_in if n_in is None else n_in
        hs = self.n_out
        return {"W": (n_in, 4 * hs), "RW": (hs, 4 * hs), "b": (1, 4 * hs)}

    def initialize(self, weight_init, dist, bias_init):
        shapes = self.param_shapes()
        hs = self.n_out
        W, b = initialize_weights(shapes["W"], shapes["b"], weight_init, dist=dist, bias_init=bias_init)
        RW, _ = initialize_weights(shapes["RW"], None, weight_init, dist=dist)
        b[:, hs:2 * hs] = self.forget_gate_bias_init
        self._make_params({"W": W, "RW": RW, "b": b})

    def _step(self, x_t, h_prev, c_prev, W, RW, b):
        hs = self.n_out
        act = get_activation(self.activation)
        Z = ops.matmul(x_t, W) + ops.matmul(h_prev, RW) + b
        i_t = ops.sigmoid(Z[:, 0:hs])
        f_t = ops.sigmoid(Z[:, hs:2 * hs])
        o_t = ops.sigmoid(Z[:, 2 * hs:3 * hs])
        g_t = act(Z[:, 3 * hs:4 * hs])
        c_t = f_t * c_prev + i_t * g_t
        h_t = o_t * act(c_t)
        return h_t, c_t

    def forward(self, x: Tensor) -> Tensor:
        xp = backend.xp
        W = self.W.to_compute()
        RW = self.RW.to_compute()
        b = self.b.to_compute()

        batch = x.shape[0]
        h = Tensor(xp.zeros((batch, self.n_out), dtype=backend.DTYPE))
        c = Tensor(xp.zeros((batch, self.n_out), dtype=backend.DTYPE))

        if x.ndim == 2:
            h, c = self._step(x, h, c, W, RW, b)
            return h

        for t in range(x.shape[1]):
            h, c = self._step(x[:, t, :], h, c, W, RW, b)
        return h

    def get_config(self):
        cfg = super().get_config()
        cfg["forget_gate_bias_init"] = self.forget_gate_bias_init
        return cfg
