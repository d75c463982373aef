"""Data simulation utilities for FMP models."""

from typing import NamedTuple, Optional

import numpy as np
from numpy.typing import ArrayLike, NDArray

from flexmet.models.fmp import irf_fmp, resolve_asymptotes
from flexmet.parameters import (
    BMatrix,
    GreekMatrix,
    GreekParameters,
    expand_per_item,
    greekmat2bmat,
)
from flexmet.utils.distributions import DistributionSpec


class SimulatedParameters(NamedTuple):
    """Simulated item parameters in both parameterizations."""

    bmat: BMatrix
    greekmat: GreekMatrix


def sim_bmat(
    n_items: int,
    k: int | ArrayLike,
    ncat: int | ArrayLike = 2,
    xi_dist: Optional[DistributionSpec] = None,
    omega_dist: Optional[DistributionSpec] = None,
    alpha_dist: Optional[DistributionSpec] = None,
    tau_dist: Optional[DistributionSpec] = None,
    seed: Optional[int] = None,
) -> SimulatedParameters:
    """Randomly generate FMP item parameters.

    Greek-letter parameters are drawn from the given distributions and
    converted to b form.

    Parameters
    ----------
    n_items : int
        Number of items.
    k : int or array_like of int
        Item complexity, the same for all items or one per item.
    ncat : int or array_like of int, default=2
        Number of response categories, the same for all items or one per item.
    xi_dist : DistributionSpec, optional
        Sampler for thresholds. Default U(-1, 1). Each item's thresholds are
        sorted in decreasing order.
    omega_dist : DistributionSpec, optional
        Sampler for omega. Default U(-1, 1).
    alpha_dist : DistributionSpec, optional
        Sampler for alpha. Default U(-1, 0.5). Unused if all ``k == 0``.
    tau_dist : DistributionSpec, optional
        Sampler for tau. Default U(-3, 0). Unused if all ``k == 0``.
    seed : int, optional
        Seed of the generator behind the default samplers.

    Returns
    -------
    SimulatedParameters
        ``bmat`` and ``greekmat`` of the simulated items.

    Examples
    --------
    >>> pars = sim_bmat(n_items=5, k=2, seed=2342)
    >>> pars.bmat.values.shape
    (5, 6)

    >>> pars = sim_bmat(n_items=5, k=[1, 2, 0, 0, 2], ncat=[2, 3, 4, 5, 2], seed=2432)
    >>> pars.greekmat.column_names[:5]
    ['xi1', 'xi2', 'xi3', 'xi4', 'omega']
    """
    if n_items < 1:
        raise ValueError(f"n_items must be positive, got {n_items}")

    k = expand_per_item(k, n_items, "k")
    ncat = expand_per_item(ncat, n_items, "ncat")
    if np.any(k < 0):
        raise ValueError(f"k must be non-negative, got {k}")
    if np.any(ncat < 2):
        raise ValueError(f"ncat must be at least 2, got {ncat}")

    rng = np.random.default_rng(seed)
    if xi_dist is None:
        xi_dist = DistributionSpec(rng.uniform, {"low": -1.0, "high": 1.0})
    if omega_dist is None:
        omega_dist = DistributionSpec(rng.uniform, {"low": -1.0, "high": 1.0})
    if alpha_dist is None:
        alpha_dist = DistributionSpec(rng.uniform, {"low": -1.0, "high": 0.5})
    if tau_dist is None:
        tau_dist = DistributionSpec(rng.uniform, {"low": -3.0, "high": 0.0})

    omega = omega_dist.draw(n_items)

    parameters = []
    for i in range(n_items):
        xi = np.sort(xi_dist.draw(int(ncat[i]) - 1))[::-1]
        if k[i] > 0:
            alpha = alpha_dist.draw(int(k[i]))
            tau = tau_dist.draw(int(k[i]))
        else:
            alpha = tau = np.zeros(0)
        parameters.append(GreekParameters(xi, float(omega[i]), alpha, tau))

    greekmat = GreekMatrix.from_parameters(parameters)
    return SimulatedParameters(bmat=greekmat2bmat(greekmat), greekmat=greekmat)


def sim_data(
    bmat: BMatrix,
    theta: ArrayLike,
    cvec: Optional[ArrayLike] = None,
    dvec: Optional[ArrayLike] = None,
    seed: Optional[int] = None,
) -> NDArray[np.int_]:
    """Simulate categorical responses from FMP item parameters.

    Parameters
    ----------
    bmat : BMatrix
        Item parameters in b form.
    theta : array_like of shape (n_persons,)
        Latent trait values of the simulees.
    cvec, dvec : array_like, optional
        Lower and upper asymptotes of binary items.
    seed : int, optional
        Random seed for reproducibility.

    Returns
    -------
    ndarray of shape (n_persons, n_items)
        Responses coded ``0 .. ncat - 1``.

    Examples
    --------
    >>> pars = sim_bmat(n_items=5, k=1, seed=1)
    >>> responses = sim_data(pars.bmat, np.random.default_rng(2).normal(size=100), seed=3)
    >>> responses.shape
    (100, 5)
    """
    rng = np.random.default_rng(seed)
    theta = np.atleast_1d(np.asarray(theta, dtype=np.float64))
    c, d = resolve_asymptotes(bmat, cvec, dvec)

    probs = irf_fmp(theta, bmat, c, d)
    cumulative = np.cumsum(probs, axis=2)

    u = rng.random((theta.size, bmat.n_items, 1))
    responses = np.sum(u > cumulative, axis=2)
    # Guard against cumulative sums that round to just below 1
    return np.minimum(responses, bmat.ncat[None, :] - 1).astype(np.int_)
