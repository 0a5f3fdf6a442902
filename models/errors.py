"""
Error types for the Deadlock Detection & Recovery engine.

Every failure of the core is raised to the caller as one of these types.
Nothing is repaired silently and no partial results are returned.
"""


class DeadlockError(Exception):
    """Base class for all errors raised by the detection engine."""
    pass


class InvalidGraphError(DeadlockError):
    """
    Resource allocation graph failed validation.

    Raised for dangling edge references, duplicate identifiers, and
    inconsistent holder/waiter state.
    """
    pass


class MatrixValidationError(DeadlockError):
    """Count-matrix input for the safety checker is malformed."""
    pass


class DimensionMismatchError(MatrixValidationError):
    """Available vector, maximum and allocation matrices disagree in shape."""
    pass


class NegativeValueError(MatrixValidationError):
    """A count is negative, or an allocation exceeds its declared maximum."""
    pass
