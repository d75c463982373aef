"""Stocking-Lord and Haebara linking of FMP item parameters.

Given anchor items calibrated twice, once per test (``bmat1`` on the reference
metric, ``bmat2`` on the metric to be rescaled), linking estimates the
monotonic polynomial ``T`` with ``theta_2 = T(theta_1)`` that best aligns the
transformed ``bmat2`` with ``bmat1``.

The search runs over the Greek parameters of ``T`` (``xi, omega, alpha_1,
tau_1, ...``) so every trial transformation is monotonic; results are reported
both in that form and as the coefficient vector ``tvec``.
"""

from dataclasses import dataclass
from typing import Callable

import numpy as np
from numpy.typing import ArrayLike, NDArray

from flexmet.constants import DEFAULT_TAU_START
from flexmet.equating.optimizer import Minimizer, ScipyMinimizer
from flexmet.equating.transform import transform_bmat
from flexmet.estimation.quadrature import IntegrationGrid, int_mat
from flexmet.exceptions import OptimizationFailure, ShapeMismatchError
from flexmet.models.fmp import expected_scores, irf_fmp, resolve_asymptotes
from flexmet.parameters import BMatrix, b2greek, greek2b
from flexmet.typing import LinkingMethod


@dataclass
class LinkingFitStatistics:
    """Fit statistics for linking quality assessment.

    Attributes
    ----------
    tcc_rmse : float
        Weighted root mean square difference of the test response functions.
    irf_rmse : float
        Weighted root mean square difference of item expected scores,
        averaged over items.
    item_rmse : NDArray[np.float64]
        Per-item weighted root mean square difference of expected scores.
    """

    tcc_rmse: float
    irf_rmse: float
    item_rmse: NDArray[np.float64]


@dataclass
class LinkingResult:
    """Result of FMP linking.

    Attributes
    ----------
    tvec : NDArray[np.float64]
        Transformation coefficients, length ``2 * k_theta + 2``.
    greek : NDArray[np.float64]
        Optimum in the search space ``(xi, omega, alpha_1, tau_1, ...)``.
    bmat : BMatrix
        ``bmat2`` transformed to the metric of ``bmat1``.
    objective : float
        Criterion value at the optimum.
    n_iterations : int
        Minimizer iterations.
    n_evaluations : int
        Criterion evaluations.
    converged : bool
        Convergence flag as reported by the minimizer.
    message : str
        Minimizer status message.
    method : str
        Linking criterion.
    fit_statistics : LinkingFitStatistics | None
        Fit of the transformed parameters to the reference parameters.
    """

    tvec: NDArray[np.float64]
    greek: NDArray[np.float64]
    bmat: BMatrix
    objective: float
    n_iterations: int
    n_evaluations: int
    converged: bool
    message: str
    method: str
    fit_statistics: LinkingFitStatistics | None = None

    @property
    def k_theta(self) -> int:
        return (self.tvec.size - 2) // 2


def greek2tvec(params: ArrayLike) -> NDArray[np.float64]:
    """Map ``(xi, omega, alpha_1, tau_1, ...)`` to the coefficients of ``T``."""
    params = np.asarray(params, dtype=np.float64)
    return greek2b(params[:1], params[1], params[2::2], params[3::2])


def tvec2greek(tvec: ArrayLike) -> NDArray[np.float64]:
    """Inverse of :func:`greek2tvec` for a monotonic ``tvec``."""
    pars = b2greek(tvec, ncat=2)
    pairs = np.column_stack([pars.alpha, pars.tau]).ravel()
    return np.concatenate([pars.xi, [pars.omega], pairs])


def default_start(k_theta: int) -> NDArray[np.float64]:
    """Near-identity start: ``t0 = 0, t1 = 1`` and small higher-order terms."""
    start = np.zeros(2 * k_theta + 2)
    start[3::2] = DEFAULT_TAU_START
    return start


def link(
    bmat1: BMatrix,
    bmat2: BMatrix,
    k_theta: int = 0,
    method: LinkingMethod = "stocking_lord",
    grid: IntegrationGrid | None = None,
    cvec1: ArrayLike | None = None,
    dvec1: ArrayLike | None = None,
    cvec2: ArrayLike | None = None,
    dvec2: ArrayLike | None = None,
    start_vals: ArrayLike | None = None,
    minimizer: Minimizer | None = None,
    compute_diagnostics: bool = True,
) -> LinkingResult:
    """Link two FMP parameter sets for the same items.

    Parameters
    ----------
    bmat1 : BMatrix
        Reference item parameters.
    bmat2 : BMatrix
        Item parameters to rescale; same items and ``ncat`` as ``bmat1``.
    k_theta : int, default=0
        Complexity of the transformation; ``0`` gives a linear link.
    method : {'stocking_lord', 'haebara'}
        - "stocking_lord": weighted squared difference of test response
          functions.
        - "haebara": weighted squared differences of category
          probabilities, summed over items and categories.
    grid : IntegrationGrid, optional
        Theta points and weights; default ``int_mat()``. The grid stays fixed
        during optimization.
    cvec1, dvec1, cvec2, dvec2 : array_like, optional
        Asymptotes of binary items. Held fixed; they are not transformed.
    start_vals : array_like, optional
        Start in the search space ``(xi, omega, alpha_1, tau_1, ...)``,
        length ``2 * k_theta + 2``. Default :func:`default_start`.
    minimizer : Minimizer, optional
        Default ``ScipyMinimizer()`` (Nelder-Mead).
    compute_diagnostics : bool, default=True
        Whether to compute fit statistics at the optimum.

    Returns
    -------
    LinkingResult
        Check ``converged`` before using the estimate.

    Raises
    ------
    ShapeMismatchError
        If the matrices describe different numbers of items or categories,
        or ``start_vals`` has the wrong length.
    OptimizationFailure
        If the criterion is not finite at the start.

    Examples
    --------
    >>> result = link(bmat_ref, bmat_new, k_theta=0, method="haebara")
    >>> t0, t1 = result.tvec
    """
    _validate_pair(bmat1, bmat2)
    if int(k_theta) != k_theta or k_theta < 0:
        raise ValueError(f"k_theta must be a non-negative integer, got {k_theta}")
    k_theta = int(k_theta)

    if grid is None:
        grid = int_mat()
    if minimizer is None:
        minimizer = ScipyMinimizer()

    c1, d1 = resolve_asymptotes(bmat1, cvec1, dvec1)
    c2, d2 = resolve_asymptotes(bmat2, cvec2, dvec2)

    if start_vals is None:
        x0 = default_start(k_theta)
    else:
        x0 = np.asarray(start_vals, dtype=np.float64).ravel()
        if x0.size != 2 * k_theta + 2:
            raise ShapeMismatchError(
                f"start_vals must have length 2 * k_theta + 2 = {2 * k_theta + 2}, "
                f"got {x0.size}"
            )

    if method == "stocking_lord":
        curves, build = expected_scores, _stocking_lord_criterion
    elif method == "haebara":
        curves, build = irf_fmp, _haebara_criterion
    else:
        raise ValueError(f"Unknown linking method: {method}")

    target = curves(grid.theta, bmat1, c1, d1)

    def trial_curves(params: NDArray[np.float64]) -> NDArray[np.float64]:
        with np.errstate(over="ignore", invalid="ignore"):
            bmat_star = transform_bmat(bmat2, greek2tvec(params))
            return curves(grid.theta, bmat_star, c2, d2)

    criterion = build(target, trial_curves, grid.weights)

    f0 = criterion(x0)
    if not np.isfinite(f0):
        raise OptimizationFailure(
            f"{method} criterion is {f0} at the start {x0}; choose other start_vals"
        )

    def guarded(params: NDArray[np.float64]) -> float:
        value = criterion(params)
        return value if np.isfinite(value) else np.inf

    outcome = minimizer(guarded, x0)

    tvec = greek2tvec(outcome.x)
    bmat_star = transform_bmat(bmat2, tvec)

    fit_statistics = None
    if compute_diagnostics:
        fit_statistics = _compute_fit_statistics(
            expected_scores(grid.theta, bmat1, c1, d1),
            expected_scores(grid.theta, bmat_star, c2, d2),
            grid.weights,
        )

    return LinkingResult(
        tvec=tvec,
        greek=outcome.x,
        bmat=bmat_star,
        objective=outcome.fun,
        n_iterations=outcome.nit,
        n_evaluations=outcome.nfev,
        converged=outcome.success,
        message=outcome.message,
        method=method,
        fit_statistics=fit_statistics,
    )


def sl_link(bmat1: BMatrix, bmat2: BMatrix, k_theta: int = 0, **kwargs) -> LinkingResult:
    """Stocking-Lord linking; see :func:`link` for the arguments."""
    return link(bmat1, bmat2, k_theta=k_theta, method="stocking_lord", **kwargs)


def hb_link(bmat1: BMatrix, bmat2: BMatrix, k_theta: int = 0, **kwargs) -> LinkingResult:
    """Haebara linking; see :func:`link` for the arguments."""
    return link(bmat1, bmat2, k_theta=k_theta, method="haebara", **kwargs)


def _validate_pair(bmat1: BMatrix, bmat2: BMatrix) -> None:
    if bmat1.n_items != bmat2.n_items:
        raise ShapeMismatchError(
            f"bmat1 and bmat2 must describe the same items: "
            f"{bmat1.n_items} vs {bmat2.n_items}"
        )
    mismatch = np.flatnonzero(bmat1.ncat != bmat2.ncat)
    if mismatch.size:
        raise ShapeMismatchError(
            f"ncat differs for items {mismatch.tolist()}: "
            f"{bmat1.ncat[mismatch].tolist()} vs {bmat2.ncat[mismatch].tolist()}"
        )


def _stocking_lord_criterion(
    target: NDArray[np.float64],
    trial_scores: Callable[[NDArray[np.float64]], NDArray[np.float64]],
    weights: NDArray[np.float64],
) -> Callable[[NDArray[np.float64]], float]:
    """Stocking-Lord test response function criterion."""
    trf_target = target.sum(axis=1)

    def criterion(params: NDArray[np.float64]) -> float:
        trf_trial = trial_scores(params).sum(axis=1)
        return float(np.sum(weights * (trf_target - trf_trial) ** 2))

    return criterion


def _haebara_criterion(
    target: NDArray[np.float64],
    trial_probs: Callable[[NDArray[np.float64]], NDArray[np.float64]],
    weights: NDArray[np.float64],
) -> Callable[[NDArray[np.float64]], float]:
    """Haebara criterion on category probabilities, shape (n_theta, n_items, maxncat).

    Categories an item lacks are 0 on both sides.
    """

    def criterion(params: NDArray[np.float64]) -> float:
        diff_sq = (target - trial_probs(params)) ** 2
        return float(np.sum(weights * diff_sq.sum(axis=(1, 2))))

    return criterion


def _compute_fit_statistics(
    target: NDArray[np.float64],
    linked: NDArray[np.float64],
    weights: NDArray[np.float64],
) -> LinkingFitStatistics:
    """Compute fit statistics for linking quality."""
    diff_sq = (target - linked) ** 2
    item_rmse = np.sqrt(weights @ diff_sq)
    tcc_rmse = float(np.sqrt(np.sum(weights * (target.sum(1) - linked.sum(1)) ** 2)))
    irf_rmse = float(np.sqrt(np.mean(weights @ diff_sq)))

    return LinkingFitStatistics(
        tcc_rmse=tcc_rmse,
        irf_rmse=irf_rmse,
        item_rmse=item_rmse,
    )
