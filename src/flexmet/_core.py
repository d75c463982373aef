"""Core utility functions with no internal dependencies.

This module provides fundamental numeric helpers that are used throughout
the codebase but have no dependencies on other flexmet modules, avoiding
circular import issues.
"""

import numpy as np
from numpy.typing import NDArray


def sigmoid(x: NDArray[np.floating] | float) -> NDArray[np.floating] | float:
    """Compute sigmoid function with numerical stability.

    Uses the identity sigmoid(-x) = 1 - sigmoid(x) to avoid overflow
    for large negative values.

    Parameters
    ----------
    x : array_like or float
        Input values.

    Returns
    -------
    array_like or float
        Sigmoid of input, same shape as input.
    """
    x = np.asarray(x, dtype=np.float64)
    e = np.exp(-np.abs(x))
    result = np.where(x >= 0, 1.0 / (1.0 + e), e / (1.0 + e))
    return float(result) if result.ndim == 0 else result


def softmax(logits: NDArray[np.floating], axis: int = -1) -> NDArray[np.float64]:
    """Normalized exponentials along ``axis``.

    The maximum along ``axis`` is subtracted before exponentiating so large
    logits do not overflow.
    """
    logits = np.asarray(logits, dtype=np.float64)
    shifted = logits - np.max(logits, axis=axis, keepdims=True)
    expo = np.exp(shifted)
    return expo / np.sum(expo, axis=axis, keepdims=True)


def logsumexp(x: NDArray[np.floating], axis: int = -1) -> NDArray[np.float64]:
    """Log of summed exponentials along ``axis``, computed stably."""
    x = np.asarray(x, dtype=np.float64)
    x_max = np.max(x, axis=axis, keepdims=True)
    x_max = np.where(np.isfinite(x_max), x_max, 0.0)
    out = np.log(np.sum(np.exp(x - x_max), axis=axis, keepdims=True)) + x_max
    return np.squeeze(out, axis=axis)
