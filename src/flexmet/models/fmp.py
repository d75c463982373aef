"""Item response functions of the filtered monotonic polynomial model.

For an item with intercepts ``b0_1 .. b0_{C-1}`` and polynomial

    m(theta) = b1 theta + b2 theta^2 + ... + b_{2k+1} theta^{2k+1}

the category probabilities follow the partial credit form

    P(X = c | theta) = exp(sum_{v=1}^{c} (b0_v + m(theta)))
                       / sum_{u=0}^{C-1} exp(sum_{v=1}^{u} (b0_v + m(theta)))

with category 0 as reference. Binary items may carry lower and upper
asymptotes: P(X = 1 | theta) = c + (d - c) * sigmoid(b0_1 + m(theta)).
"""

import numpy as np
from numpy.typing import ArrayLike, NDArray

from flexmet._core import sigmoid, softmax
from flexmet.parameters import BMatrix
from flexmet.polynomial import poly_evaluate
from flexmet.typing import ProbabilityArray


def _as_theta(theta: ArrayLike) -> NDArray[np.float64]:
    theta = np.asarray(theta, dtype=np.float64)
    if theta.ndim > 1:
        if theta.ndim == 2 and theta.shape[1] == 1:
            return theta.ravel()
        raise ValueError(f"theta must be 1D, got shape {theta.shape}")
    return np.atleast_1d(theta)


def resolve_asymptotes(
    bmat: BMatrix,
    cvec: ArrayLike | None = None,
    dvec: ArrayLike | None = None,
) -> tuple[NDArray[np.float64], NDArray[np.float64]]:
    """Validate lower/upper asymptotes against ``bmat``.

    Missing vectors default to 0 and 1. Asymptotes other than (0, 1) are only
    defined for binary items.
    """
    n_items = bmat.n_items
    c = np.zeros(n_items) if cvec is None else np.asarray(cvec, dtype=np.float64)
    d = np.ones(n_items) if dvec is None else np.asarray(dvec, dtype=np.float64)

    for name, vec in (("cvec", c), ("dvec", d)):
        if vec.shape != (n_items,):
            raise ValueError(
                f"{name} must have length n_items ({n_items}), got shape {vec.shape}"
            )

    if np.any(c < 0) or np.any(d > 1) or np.any(c >= d):
        raise ValueError(f"asymptotes must satisfy 0 <= c < d <= 1, got c={c}, d={d}")

    polytomous = bmat.ncat > 2
    if np.any(polytomous & ((c != 0) | (d != 1))):
        items = np.flatnonzero(polytomous & ((c != 0) | (d != 1))).tolist()
        raise ValueError(
            f"asymptotes are only defined for binary items; items {items} "
            "have more than 2 categories"
        )

    return c, d


def item_probabilities(
    theta: ArrayLike,
    intercepts: ArrayLike,
    slopes: ArrayLike,
    lower: float = 0.0,
    upper: float = 1.0,
) -> NDArray[np.float64]:
    """Category probabilities of a single item.

    Parameters
    ----------
    theta : array_like of shape (n_theta,)
        Latent trait values.
    intercepts : array_like of shape (ncat - 1,)
        ``b0_1 .. b0_{ncat-1}``.
    slopes : array_like of shape (2k + 1,)
        ``b1 .. b_{2k+1}``.
    lower, upper : float
        Asymptotes, binary items only.

    Returns
    -------
    ndarray of shape (n_theta, ncat)
    """
    theta = _as_theta(theta)
    intercepts = np.atleast_1d(np.asarray(intercepts, dtype=np.float64))
    slopes = np.atleast_1d(np.asarray(slopes, dtype=np.float64))
    ncat = intercepts.size + 1

    m = poly_evaluate(np.concatenate([[0.0], slopes]), theta)

    if ncat == 2:
        p1 = lower + (upper - lower) * sigmoid(intercepts[0] + m)
        return np.column_stack([1.0 - p1, p1])

    cum_intercepts = np.concatenate([[0.0], np.cumsum(intercepts)])
    logits = cum_intercepts[None, :] + np.arange(ncat)[None, :] * m[:, None]
    return softmax(logits, axis=1)


def irf_fmp(
    theta: ArrayLike,
    bmat: BMatrix,
    cvec: ArrayLike | None = None,
    dvec: ArrayLike | None = None,
    returncat: int | None = None,
) -> ProbabilityArray:
    """FMP item response functions for every item of ``bmat``.

    Parameters
    ----------
    theta : array_like of shape (n_theta,)
        Latent trait values.
    bmat : BMatrix
        Item parameters in b form.
    cvec, dvec : array_like of shape (n_items,), optional
        Lower and upper asymptotes of binary items.
    returncat : int, optional
        If given, only the probabilities of this category are returned.

    Returns
    -------
    ndarray
        Shape ``(n_theta, n_items, maxncat)``, or ``(n_theta, n_items)`` when
        ``returncat`` is set. Categories an item does not have are 0.

    Examples
    --------
    >>> bmat = BMatrix([[0.0, 1.0]], k=0)
    >>> irf_fmp([0.0], bmat, returncat=1)
    array([[0.5]])
    """
    theta = _as_theta(theta)
    c, d = resolve_asymptotes(bmat, cvec, dvec)

    probs = np.zeros((theta.size, bmat.n_items, bmat.maxncat))
    for i in range(bmat.n_items):
        ncat = bmat.ncat[i]
        probs[:, i, :ncat] = item_probabilities(
            theta, bmat.intercepts(i), bmat.slopes(i), c[i], d[i]
        )

    if returncat is not None:
        if not 0 <= returncat < bmat.maxncat:
            raise ValueError(
                f"returncat {returncat} out of range [0, {bmat.maxncat})"
            )
        return probs[:, :, returncat]
    return probs


def expected_scores(
    theta: ArrayLike,
    bmat: BMatrix,
    cvec: ArrayLike | None = None,
    dvec: ArrayLike | None = None,
) -> NDArray[np.float64]:
    """Expected item scores ``sum_c c * P(X = c | theta)``, shape (n_theta, n_items)."""
    probs = irf_fmp(theta, bmat, cvec, dvec)
    return probs @ np.arange(bmat.maxncat, dtype=np.float64)


def trf_fmp(
    theta: ArrayLike,
    bmat: BMatrix,
    cvec: ArrayLike | None = None,
    dvec: ArrayLike | None = None,
) -> NDArray[np.float64]:
    """Expected test score at each theta, shape (n_theta,)."""
    return expected_scores(theta, bmat, cvec, dvec).sum(axis=1)

