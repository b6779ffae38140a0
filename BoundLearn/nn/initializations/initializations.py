import BoundLearn.core.backend.backend as backend
from BoundLearn.core.errors import ConfigurationError


def calculate_fan_in_and_fan_out(shape):
    """
    Compute fan_in and fan_out from a given weight shape (fan_in, fan_out).
    """
    if len(shape) == 2:
        fan_in, fan_out = shape[0], shape[1]
    else:
        fan_in = fan_out = 1
    return fan_in, fan_out


def He(shape, uniform=False):
    xp = backend.xp
    fan_in, _ = calculate_fan_in_and_fan_out(shape)
    if uniform:
        limit = xp.sqrt(6.0 / fan_in)
        return xp.random.uniform(-limit, limit, shape).astype(backend.DTYPE)
    return (xp.random.randn(*shape) * xp.sqrt(2.0 / fan_in)).astype(backend.DTYPE)


def Xavier(shape, uniform=True):
    xp = backend.xp
    fan_in, fan_out = calculate_fan_in_and_fan_out(shape)
    if uniform:
        limit = xp.sqrt(6.0 / (fan_in + fan_out))
        return xp.random.uniform(-limit, limit, shape).astype(backend.DTYPE)
    return (xp.random.randn(*shape) * xp.sqrt(2.0 / (fan_in + fan_out))).astype(backend.DTYPE)


def LeCun(shape, uniform=False):
    xp = backend.xp
    fan_in, _ = calculate_fan_in_and_fan_out(shape)
    if uniform:
        limit = xp.sqrt(3.0 / fan_in)
        return xp.random.uniform(-limit, limit, shape).astype(backend.DTYPE)
    return (xp.random.randn(*shape) * xp.sqrt(1.0 / fan_in)).astype(backend.DTYPE)


def Zeros(shape, uniform=False):
    return backend.xp.zeros(shape, dtype=backend.DTYPE)


INITIALIZATION = {
    "he": He,
    "xavier": Xavier,
    "lecun": LeCun,
    "zeros": Zeros,
}

# "distribution" samples from the layer's (or network's) Distribution object
ALL_INITIALIZATIONS = {**INITIALIZATION, "distribution": None}


def initialize_weights(w_shape, b_shape, w_init, dist=None, uniform=False, bias_init=0.0):
    """
    Initialize a weight matrix and a bias row.

    Args:
        w_shape (tuple): Shape of the weights.
        b_shape (tuple): Shape of the biases, or None for no bias.
        w_init (str): Weight initializer name.
        dist (Distribution): Required when `w_init == "distribution"`.
        uniform (bool): Whether to use uniform distribution where applicable.
        bias_init (float): Constant value for every bias element.

    Returns:
        W (ndarray): Initialized weights.
        b (ndarray): Initialized biases (None when `b_shape` is None).
    """
    xp = backend.xp
    name = w_init.lower()
    if name not in ALL_INITIALIZATIONS:
        raise ConfigurationError(
            f"Unsupported weight initialization '{w_init}'. "
            f"Available: {list(ALL_INITIALIZATIONS.keys())}"
        )

    if name == "distribution":
        if dist is None:
            raise ConfigurationError("weight_init='distribution' requires a distribution (dist=...)")
        W = dist.sample(w_shape)
    else:
        W = INITIALIZATION[name](w_shape, uniform=uniform)

    b = None
    if b_shape is not None:
        b = xp.full(b_shape, bias_init, dtype=backend.DTYPE)

    return W, b
