class BoundLearnError(Exception):
    """Base class for BoundLearn errors."""


class ConfigurationError(BoundLearnError, ValueError):
    """
    Invalid network or constraint configuration.

    Raised at construction or bind time (bad descriptor parameters, an axis
    outside a bound tensor's rank, a role with no matching parameter,
    duplicate network-wide defaults, unknown types in a decoded config).
    """


class PersistenceCorruptionError(BoundLearnError):
    """A saved artifact is malformed: bad header, size or shape mismatch."""


class RoundTripMismatchError(BoundLearnError, AssertionError):
    """A restored network differs from the original. Only raised by test helpers."""
