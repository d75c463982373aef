"""Exceptions raised by flexmet."""


class ShapeMismatchError(ValueError):
    """Parameter dimensions disagree with the declared ``k`` or ``ncat``."""


class NotInvertibleError(ValueError):
    """A b-vector does not correspond to a valid filtered monotonic polynomial."""


class OptimizationFailure(RuntimeError):
    """The linking objective cannot be optimized from the given start."""


class InvalidDistributionSpecError(ValueError):
    """A distribution specification cannot be called or yields unusable values."""
