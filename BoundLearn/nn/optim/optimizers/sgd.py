from BoundLearn.nn.optim.optimizers.base_optimizer import BaseOptimizer


class SGD(BaseOptimizer):
    def __init__(self, learning_rate=0.01):
        super().__init__(learning_rate)

    def step(self, params):
        for _, param, _ in self._iter_params(params):
            param.data -= self.learning_rate * param.grad
