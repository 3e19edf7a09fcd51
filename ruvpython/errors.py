"""
Exception taxonomy for ruvPython.

All errors derive from ValueError so callers that already guard against
bad input with ``except ValueError`` keep working.
"""


class RUVError(ValueError):
    """Base class for ruvPython errors."""


class InvalidInput(RUVError):
    """Malformed or inconsistent input: shapes, empty collections, bad ids."""


class InvalidParameter(InvalidInput):
    """Parameter out of range, e.g. k larger than the available rank."""


class InsufficientControls(RUVError):
    """No negative control gene is present in the count matrix."""


class InsufficientReplicates(RUVError):
    """No replicate set has at least two real members."""


class NumericalInstability(RUVError):
    """Singular or ill-conditioned decomposition."""
