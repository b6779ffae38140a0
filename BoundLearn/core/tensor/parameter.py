import BoundLearn.core.backend.backend as backend
from BoundLearn.nn.stateful import Stateful
from .tensor import Tensor


class Parameter(Stateful):
    """
    Trainable parameter owned by exactly one layer.

    The master tensor's backing array is the storage the updater and the
    constraint scheduler mutate in place; its identity never changes after
    initialization.
    """
    def __init__(self, data, requires_grad=True):
        xp = backend.xp
        self.master = Tensor(xp.array(data, dtype=backend.DTYPE), requires_grad=requires_grad)
        self.requires_grad = requires_grad
        self.frozen = False

        self._state_fields = [
            "requires_grad",
            "frozen",
        ]

    def state_dict(self):
        out = {"master_data": self.master.data}
        for name in self._state_fields:
            out[name] = getattr(self, name)
        return out

    def load_state_dict(self, state):
        if "master_data" in state:
            self.assign(state["master_data"])
        for name in self._state_fields:
            if name in state:
                setattr(self, name, state[name])

    def assign(self, value):
        """Copy `value` into the existing storage (shape must match)."""
        value = backend.xp.asarray(value)
        if value.shape != self.shape:
            raise ValueError(f"Cannot assign array of shape {value.shape} to parameter of shape {self.shape}")
        self.master.data[...] = value

    @property
    def data(self):
        """Access the master weight data."""
        return self.master.data

    @data.setter
    def data(self, value):
        # in-place ops (`param.data -= ...`) hand back the same array
        if value is not self.master.data:
            self.assign(value)

    @property
    def grad(self):
        return self.master.grad

    @property
    def shape(self):
        return self.master.shape

    @property
    def ndim(self):
        return self.master.ndim

    @property
    def size(self):
        return self.master.size

    def to_compute(self):
        """Return the tensor used in the forward pass."""
        return self.master

    def zero_grad(self):
        """Clear master gradient."""
        self.master.grad = None

    def __repr__(self):
        return f"Parameter(shape={self.shape}, dtype={self.master.dtype}, frozen={self.frozen})"
