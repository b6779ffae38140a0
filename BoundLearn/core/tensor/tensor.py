import BoundLearn.core.backend.backend as backend

xp = backend.xp


def _ops():
    # ops imports Tensor, so it is resolved on first use
    from BoundLearn.core.tensor import ops
    return ops


class Tensor:
    # ======================================================
    # Core initialization
    # ======================================================
    def __init__(self, data, requires_grad=False, dtype=None):
        """
        Tensor(data, requires_grad=False, dtype=None)

        Core tensor object for BoundLearn.

        Args:
            data: array-like, numpy.ndarray, cupy.ndarray, or scalar.
            requires_grad (bool): track gradients for autograd.
            dtype (str or np.dtype, optional): data type to cast input to.
        """
        if isinstance(data, Tensor):
            self.data = data.data.astype(dtype or data.dtype)
            self.requires_grad = requires_grad or data.requires_grad
        else:
            self.data = xp.asarray(data, dtype=(dtype or backend.DTYPE))
            self.requires_grad = requires_grad and backend.is_grad_enabled()

        self.grad = None
        self.grad_fn = None
        self.is_leaf = True
        self._retain_grad = False
        self._backward = lambda: None
        self._prev = ()

    # ======================================================
    # Display / Python integration
    # ======================================================
    def __repr__(self):
        return (f"Tensor(shape={self.shape}, dtype={self.dtype}, "
                f"requires_grad={self.requires_grad}, grad_fn={self.grad_fn})")

    def __len__(self):
        if self.ndim == 0:
            raise TypeError("Scalar tensor has no length")
        return self.data.shape[0]

    # ======================================================
    # Indexing
    # ======================================================
    def __getitem__(self, idx):
        """Tensor slicing. Delegates to ops.slice."""
        return _ops().slice(self, idx)

    # ======================================================
    # Arithmetic operators
    # ======================================================
    def __add__(self, other):
        return _ops().add(self, other)

    def __radd__(self, other):
        return _ops().add(other, self)

    def __sub__(self, other):
        return _ops().subtract(self, other)

    def __rsub__(self, other):
        return _ops().subtract(other, self)

    def __mul__(self, other):
        return _ops().multiply(self, other)

    def __rmul__(self, other):
        return _ops().multiply(other, self)

    def __truediv__(self, other):
        return _ops().divide(self, other)

    def __neg__(self):
        return _ops().neg(self)

    def __pow__(self, exponent):
        return _ops().power(self, exponent)

    def __matmul__(self, other):
        return _ops().matmul(self, other)

    # ======================================================
    # Views / reductions
    # ======================================================
    @property
    def T(self):
        """Shorthand for transpose (last two dims swapped)."""
        return _ops().transpose(self)

    def sum(self, axis=None, keepdims=False):
        return _ops().sum(self, axis=axis, keepdims=keepdims)

    def mean(self, axis=None, keepdims=False):
        return _ops().mean(self, axis=axis, keepdims=keepdims)

    # ======================================================
    # Conversion / utility
    # ======================================================
    def zero_grad(self):
        """Clear gradients (set to None)."""
        self.grad = None

    def detach(self):
        """Return a new Tensor detached from graph."""
        return Tensor(self.data.copy(), requires_grad=False, dtype=self.dtype)

    def item(self):
        """Return Python scalar from a single-element Tensor."""
        if self.size != 1:
            raise ValueError("Can only convert scalar tensor to Python number")
        return self.data.item()

    def numpy(self):
        """Return NumPy array (copy if GPU backend)."""
        return backend.to_numpy(self.data)

    # ======================================================
    # Properties
    # ======================================================
    @property
    def dtype(self):
        return self.data.dtype

    @property
    def shape(self):
        return self.data.shape

    @property
    def ndim(self):
        return self.data.ndim

    @property
    def size(self):
        return self.data.size

    # ======================================================
    # Autograd
    # ======================================================
    def retain_grad(self):
        """Retain grad for non-leaf tensors."""
        if not self.requires_grad:
            raise RuntimeError("Cannot retain grad on a tensor that does not require grad")
        self._retain_grad = True
        return self

    def backward(self, grad=None):
        """
        Backpropagate gradients through computation graph.

        Args:
            grad: initial gradient (defaults to ones for scalar).
        """
        if not self.requires_grad:
            raise RuntimeError("backward() called on a tensor that does not require grad")
        if grad is None:
            if self.data.size != 1:
                raise RuntimeError("Grad must be specified for non-scalar outputs")
            grad = xp.ones_like(self.data)
        self.grad = xp.asarray(grad, dtype=self.dtype)

        topo, visited = [], set()

        def build_topo(t):
            if id(t) not in visited:
                visited.add(id(t))
                for child in t._prev:
                    if child.requires_grad:
                        build_topo(child)
                topo.append(t)

        build_topo(self)

        for t in reversed(topo):
            t._backward()
            if not (t.is_leaf or t._retain_grad):
                t.grad = None
