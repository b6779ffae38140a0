from BoundLearn.nn.optim.optimizers.base_optimizer import BaseOptimizer, zeros_like_param


class SGDMomentum(BaseOptimizer):
    """SGD with an exponential moving average of gradients (slot "v")."""
    def __init__(self, learning_rate=0.01, beta=0.9):
        super().__init__(learning_rate)
        if not 0.0 <= beta < 1.0:
            raise ValueError(f"beta must be in [0, 1), got {beta}")
        self.beta = float(beta)

    def get_config(self):
        return {"learning_rate": self.learning_rate, "beta": self.beta}

    def step(self, params):
        for name, param, _ in self._iter_params(params):
            if name not in self.state:
                self.state[name] = {"v": zeros_like_param(param)}
            state = self.state[name]
            state["v"] = self.beta * state["v"] + (1 - self.beta) * param.grad
            param.data -= self.learning_rate * state["v"]
