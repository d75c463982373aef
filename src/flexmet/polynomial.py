"""Polynomial algebra on ascending coefficient arrays.

A polynomial ``c0 + c1 x + ... + cn x^n`` is stored as ``[c0, c1, ..., cn]``.
Zero high-order coefficients are kept so the declared degree of every result
is known from the lengths of the inputs alone.
"""

import numpy as np
from numpy.polynomial import polynomial as P
from numpy.typing import ArrayLike, NDArray

from flexmet.typing import Coefficients


def _as_coefficients(coefs: ArrayLike, name: str) -> Coefficients:
    arr = np.atleast_1d(np.asarray(coefs, dtype=np.float64))
    if arr.ndim != 1 or arr.size == 0:
        raise ValueError(f"{name} must be a non-empty 1D coefficient array")
    return arr


def poly_multiply(a: ArrayLike, b: ArrayLike) -> Coefficients:
    """Product of two polynomials; length ``len(a) + len(b) - 1``."""
    a = _as_coefficients(a, "a")
    b = _as_coefficients(b, "b")
    return np.convolve(a, b)


def poly_add(a: ArrayLike, b: ArrayLike) -> Coefficients:
    """Sum of two polynomials; length ``max(len(a), len(b))``."""
    a = _as_coefficients(a, "a")
    b = _as_coefficients(b, "b")
    out = np.zeros(max(a.size, b.size))
    out[: a.size] += a
    out[: b.size] += b
    return out


def poly_compose(outer: ArrayLike, inner: ArrayLike) -> Coefficients:
    """Substitute ``inner`` into ``outer``, i.e. the coefficients of outer(inner(x)).

    Evaluated with Horner's scheme, so the result has length
    ``(len(outer) - 1) * (len(inner) - 1) + 1``.

    Parameters
    ----------
    outer : array_like
        Coefficients of the outer polynomial, degree ``d1``.
    inner : array_like
        Coefficients of the inner polynomial, degree ``d2``.

    Returns
    -------
    ndarray
        Coefficients of the composed polynomial, degree ``d1 * d2``.

    Examples
    --------
    >>> poly_compose([0.0, 2.0], [1.0, 3.0])  # 2 * (1 + 3x)
    array([2., 6.])
    """
    outer = _as_coefficients(outer, "outer")
    inner = _as_coefficients(inner, "inner")
    degree = (outer.size - 1) * (inner.size - 1)

    result = outer[-1:].copy()
    for c in outer[-2::-1]:
        result = poly_add(poly_multiply(result, inner), [c])

    out = np.zeros(degree + 1)
    out[: min(result.size, degree + 1)] = result[: degree + 1]
    return out


def poly_evaluate(coefs: ArrayLike, x: ArrayLike) -> NDArray[np.float64]:
    """Evaluate a polynomial at ``x``."""
    coefs = _as_coefficients(coefs, "coefs")
    return P.polyval(np.asarray(x, dtype=np.float64), coefs)


def poly_derivative(coefs: ArrayLike) -> Coefficients:
    """Coefficients of the first derivative."""
    coefs = _as_coefficients(coefs, "coefs")
    if coefs.size == 1:
        return np.zeros(1)
    return coefs[1:] * np.arange(1, coefs.size)
