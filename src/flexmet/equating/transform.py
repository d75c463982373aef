"""Latent-trait metric transformations of FMP item parameters.

A transformation vector ``tvec = (t0, t1, ..., t_{2k_theta+1})`` defines

    theta = T(theta*) = t0 + t1 theta* + ... + t_{2k_theta+1} theta*^{2k_theta+1}

and the transformed item polynomial is ``m*(theta*) = m(T(theta*))``, so that
an item has the same response function on both metrics. Composition raises the
item complexity to ``k* = ((2k + 1)(2k_theta + 1) - 1) / 2``.
"""

import numpy as np
from numpy.typing import ArrayLike, NDArray

from flexmet.exceptions import ShapeMismatchError
from flexmet.parameters import BMatrix
from flexmet.polynomial import poly_compose, poly_evaluate


def _as_tvec(tvec: ArrayLike) -> NDArray[np.float64]:
    tvec = np.atleast_1d(np.asarray(tvec, dtype=np.float64))
    if tvec.ndim != 1 or tvec.size < 2 or tvec.size % 2:
        raise ShapeMismatchError(
            f"tvec must have an even length 2 * k_theta + 2 >= 2, got {tvec.size}"
        )
    return tvec


def k_theta_of(tvec: ArrayLike) -> int:
    """Complexity ``k_theta`` of a transformation vector."""
    return (_as_tvec(tvec).size - 2) // 2


def transformed_k(k: int | NDArray[np.int_], k_theta: int) -> int | NDArray[np.int_]:
    """Item complexity after composing with a degree ``2 k_theta + 1`` transform."""
    return ((2 * k + 1) * (2 * k_theta + 1) - 1) // 2


def _compose_item(
    intercepts: NDArray[np.float64],
    slopes: NDArray[np.float64],
    tvec: NDArray[np.float64],
) -> NDArray[np.float64]:
    composed = poly_compose(np.concatenate([[0.0], slopes]), tvec)
    # m(T(0)) is the same for every category, so it shifts each intercept
    return np.concatenate([intercepts + composed[0], composed[1:]])


def transform_b(
    bvec: ArrayLike,
    tvec: ArrayLike,
    ncat: int = 2,
) -> NDArray[np.float64]:
    """Transform the b-vector of one item to a new latent-trait metric.

    Parameters
    ----------
    bvec : array_like
        ``[b0_1, ..., b0_{ncat-1}, b1, ..., b_{2k+1}]``.
    tvec : array_like
        Transformation coefficients, length ``2 k_theta + 2``.
    ncat : int, default=2
        Number of response categories of the item.

    Returns
    -------
    ndarray
        Transformed b-vector with ``ncat - 1 + 2k* + 1`` entries.

    Examples
    --------
    >>> transform_b([0.5, 2.0], [1.0, 0.5])  # intercept 0.5 + 2 * 1, slope 2 * 0.5
    array([2.5, 1. ])
    """
    bvec = np.atleast_1d(np.asarray(bvec, dtype=np.float64))
    tvec = _as_tvec(tvec)
    n_slopes = bvec.size - (ncat - 1)
    if ncat < 2 or n_slopes < 1 or n_slopes % 2 == 0:
        raise ShapeMismatchError(
            f"b-vector of length {bvec.size} does not fit ncat={ncat}"
        )
    return _compose_item(bvec[: ncat - 1], bvec[ncat - 1 :], tvec)


def transform_bmat(bmat: BMatrix, tvec: ArrayLike) -> BMatrix:
    """Transform every item of ``bmat``; returns a new matrix.

    Items keep their ``ncat``; their complexities become
    ``transformed_k(k, k_theta)``. Padded cells of ``bmat`` are not read.
    """
    tvec = _as_tvec(tvec)
    k_theta = (tvec.size - 2) // 2
    rows = [
        _compose_item(bmat.intercepts(i), bmat.slopes(i), tvec)
        for i in range(bmat.n_items)
    ]
    return BMatrix.from_rows(rows, transformed_k(bmat.k, k_theta), bmat.ncat)


def transform_theta(theta: ArrayLike, tvec: ArrayLike) -> NDArray[np.float64]:
    """Evaluate ``T(theta)`` for the transformation ``tvec``."""
    return poly_evaluate(_as_tvec(tvec), theta)


def inv_tvec(tvec: ArrayLike) -> NDArray[np.float64]:
    """Inverse of a linear transformation ``(t0, t1)``: ``(-t0 / t1, 1 / t1)``.

    Raises
    ------
    ValueError
        If ``tvec`` is not linear or ``t1 == 0``; polynomial transformations of
        higher degree have no polynomial inverse.
    """
    tvec = _as_tvec(tvec)
    if tvec.size != 2:
        raise ValueError(
            f"only linear transformations can be inverted, got degree {tvec.size - 1}"
        )
    t0, t1 = tvec
    if t1 == 0:
        raise ValueError("t1 must be non-zero to invert a linear transformation")
    return np.array([-t0 / t1, 1.0 / t1])
