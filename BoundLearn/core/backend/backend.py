"""
Backend runtime selector for BoundLearn.

- Single import point for the array backend (`xp`) and core runtime flags.
- CPU (NumPy) by default, GPU (CuPy) when installed and requested.
- Global-access pattern:
    >>> import BoundLearn.core.backend.backend as backend
    >>> xp = backend.xp
    >>> DTYPE = backend.DTYPE

This module is intentionally stateful to be easy to use in userland code.
"""

from __future__ import annotations

import logging
import numpy as _np
from contextlib import contextmanager

from BoundLearn.core.backend.config import CONFIG

logger = logging.getLogger(__name__)


# ---------------------------
# Optional GPU backend (CuPy)
# ---------------------------
try:
    import cupy as _cp
    _CUPY_AVAILABLE = True
except ImportError:
    _cp = None
    _CUPY_AVAILABLE = False


# ---------------------------
# Public runtime state (globals)
# ---------------------------
xp = _np                       # current array module (NumPy or CuPy)
USING = "cpu"                  # "cpu" | "gpu"
SEED = int(CONFIG.get("seed", 997))

DTYPE = _np.float32

# Default MinMaxNorm epsilon: rows at or below it are not lifted to min_norm
CONSTRAINT_EPSILON = float(CONFIG.get("constraint_epsilon", 1e-6))

# Store parameters as float16 unless the caller asks otherwise
COMPACT_STORAGE = bool(CONFIG.get("compact_storage", False))

# Autograd switch
AUTOGRAD_ENABLED = bool(CONFIG.get("autograd_enable", True))

_DTYPE_MAP = {"float32": _np.float32, "float64": _np.float64}


# ===========================
# Introspection / utilities
# ===========================
def gpu_available() -> bool:
    """Return True if CuPy is importable."""
    return _CUPY_AVAILABLE


def is_gpu() -> bool:
    """Return True if current backend is GPU (CuPy)."""
    return USING == "gpu"


def get_device() -> str:
    """Return current device string: 'cpu' or 'gpu'."""
    return USING


def to_numpy(arr):
    """Return a host (NumPy) view or copy of a backend array."""
    if is_gpu() and _cp is not None and isinstance(arr, _cp.ndarray):
        return _cp.asnumpy(arr)
    return _np.asarray(arr)


# ===========================
# Backend switching
# ===========================
def use_gpu():
    """
    Switch backend to GPU (CuPy).
    Raises ImportError if CuPy is not available.
    """
    global xp, USING
    if not _CUPY_AVAILABLE:
        raise ImportError("CuPy is not installed. Run `pip install cupy` to use GPU.")
    xp = _cp
    USING = "gpu"
    _cp.random.seed(SEED)
    logger.info("Using GPU (CuPy)")


def use_cpu():
    """Switch backend to CPU (NumPy)."""
    global xp, USING
    xp = _np
    USING = "cpu"
    _np.random.seed(SEED)
    logger.debug("Using CPU (NumPy)")


def set_seed(seed: int):
    """Set RNG seed for both NumPy and CuPy (if present)."""
    global SEED
    SEED = int(seed)
    _np.random.seed(SEED)
    if _CUPY_AVAILABLE:
        _cp.random.seed(SEED)


def set_dtype(dtype: str = "float32"):
    """Set master DTYPE to float32 or float64."""
    global DTYPE
    if dtype not in _DTYPE_MAP:
        raise ValueError(f"dtype must be one of {list(_DTYPE_MAP)}, got '{dtype}'")
    DTYPE = _DTYPE_MAP[dtype]


def _auto_select_device():
    device = str(CONFIG.get("device", "cpu")).lower()
    if device == "gpu" and _CUPY_AVAILABLE:
        use_gpu()
    else:
        use_cpu()


set_dtype(CONFIG.get("dtype", "float32"))
_auto_select_device()


# ===========================
# Autograd guards
# ===========================
def is_grad_enabled() -> bool:
    """Return whether autograd recording is enabled."""
    return AUTOGRAD_ENABLED


@contextmanager
def no_grad():
    global AUTOGRAD_ENABLED
    _prev = AUTOGRAD_ENABLED
    AUTOGRAD_ENABLED = False
    try:
        yield
    finally:
        AUTOGRAD_ENABLED = _prev
