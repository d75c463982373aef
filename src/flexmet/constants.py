"""Constants for numerical stability and default bounds.

These are true constants that should not be user-configurable.
For configurable values, use function arguments with defaults.
"""

PROB_EPSILON: float = 1e-10
"""Small value to prevent log(0) and division by zero in probability calculations."""

ROOT_TOLERANCE: float = 1e-7
"""Relative size of an imaginary part below which a filter root is treated as real.

A repeated real root comes back from the eigenvalue solver split by about
sqrt(machine epsilon), roughly 1.5e-8, so the tolerance sits just above that.
"""

DEFAULT_TAU_START: float = -4.0
"""Starting tau for higher-order linking terms; exp(-4) keeps the start close to identity."""

PAD_VALUE: float = float("nan")
"""Filler for unused cells of rectangular parameter matrices."""
