"""Marginal maximum likelihood calibration of FMP items via EM."""

from __future__ import annotations

import numpy as np
from numpy.typing import ArrayLike, NDArray
from scipy.optimize import minimize

from flexmet.constants import PROB_EPSILON
from flexmet.estimation.base import BaseEstimator
from flexmet.estimation.quadrature import GaussHermiteQuadrature
from flexmet.exceptions import ShapeMismatchError
from flexmet.models.fmp import item_probabilities
from flexmet.parameters import GreekMatrix, greek2b, greekmat2bmat
from flexmet.results.fit_result import FitResult
from flexmet.typing import ResponseMatrix

_XI_BOUNDS = (-15.0, 15.0)
_OMEGA_BOUNDS = (-5.0, 3.0)
_ALPHA_BOUNDS = (-5.0, 5.0)
_TAU_BOUNDS = (-20.0, 5.0)


class EMEstimator(BaseEstimator):
    """Bock-Aitkin EM for the FMP model.

    The latent trait is N(0, 1), which fixes the metric of the estimates. The
    M-step maximizes each item's expected complete-data log-likelihood over
    its Greek parameters, so every iterate is a monotonic item.

    Parameters
    ----------
    n_quadpts : int, default=41
        Number of Gauss-Hermite points.
    max_iter : int, default=500
        Maximum number of EM cycles.
    tol : float, default=1e-4
        Convergence tolerance on the marginal log-likelihood.
    verbose : bool, default=False
        Print the log-likelihood of each cycle.
    prob_epsilon : float
        Floor for probabilities inside logarithms.
    item_optim_maxiter : int, default=100
        Iteration limit of each item's L-BFGS-B step.
    item_optim_ftol : float, default=1e-8
        ``ftol`` of each item's L-BFGS-B step.
    """

    def __init__(
        self,
        n_quadpts: int = 41,
        max_iter: int = 500,
        tol: float = 1e-4,
        verbose: bool = False,
        prob_epsilon: float = PROB_EPSILON,
        item_optim_maxiter: int = 100,
        item_optim_ftol: float = 1e-8,
    ) -> None:
        super().__init__(max_iter, tol, verbose)

        if n_quadpts < 5:
            raise ValueError("n_quadpts should be at least 5")

        self.n_quadpts = n_quadpts
        self.prob_epsilon = prob_epsilon
        self.item_optim_maxiter = item_optim_maxiter
        self.item_optim_ftol = item_optim_ftol

    def fit(
        self,
        responses: ResponseMatrix,
        k: int | ArrayLike = 0,
        start_greek: GreekMatrix | None = None,
    ) -> FitResult:
        """Calibrate FMP items.

        Parameters
        ----------
        responses : ndarray of shape (n_persons, n_items)
            Category codes ``0 .. ncat - 1``; ``-1`` marks missing values.
            Each item's ``ncat`` is its highest observed code plus one.
        k : int or array_like of int, default=0
            Item complexity, scalar or one per item.
        start_greek : GreekMatrix, optional
            Starting values; must match the items' ``k`` and ``ncat``.

        Returns
        -------
        FitResult
        """
        responses, k, ncat = self._prepare(responses, k)
        n_persons, n_items = responses.shape

        if start_greek is None:
            start_greek = self._starting_values(responses, k, ncat)
        elif (
            start_greek.n_items != n_items
            or np.any(start_greek.k != k)
            or np.any(start_greek.ncat != ncat)
        ):
            raise ShapeMismatchError(
                f"start_greek has k={start_greek.k.tolist()}, "
                f"ncat={start_greek.ncat.tolist()}; data need k={k.tolist()}, "
                f"ncat={ncat.tolist()}"
            )

        params = [start_greek.row(i) for i in range(n_items)]

        quadrature = GaussHermiteQuadrature(n_points=self.n_quadpts)
        nodes = quadrature.nodes
        log_weights = np.log(quadrature.weights)

        self._convergence_history = []
        prev_ll = -np.inf
        converged = False

        for iteration in range(self.max_iter):
            log_likelihoods = self._log_likelihoods(responses, params, ncat, nodes)
            posterior, current_ll = self._posterior(log_likelihoods, log_weights)
            self._convergence_history.append(current_ll)
            self._log_iteration(iteration, current_ll)

            if self._check_convergence(prev_ll, current_ll):
                converged = True
                if self.verbose:
                    print(f"Converged at iteration {iteration}")
                break

            prev_ll = current_ll

            for i in range(n_items):
                counts = self._expected_counts(responses[:, i], posterior, ncat[i])
                params[i] = self._optimize_item(params[i], counts, nodes, ncat[i])

        greekmat = GreekMatrix.from_rows(params, k, ncat)
        n_params = int(np.sum(ncat - 1 + 1 + 2 * k))
        aic, bic = self._information_criteria(current_ll, n_params, n_persons)

        return FitResult(
            bmat=greekmat2bmat(greekmat),
            greekmat=greekmat,
            log_likelihood=current_ll,
            n_iterations=iteration + 1,
            converged=converged,
            aic=aic,
            bic=bic,
            n_observations=n_persons,
            n_parameters=n_params,
        )

    def _starting_values(
        self,
        responses: ResponseMatrix,
        k: NDArray[np.int_],
        ncat: NDArray[np.int_],
    ) -> GreekMatrix:
        """Adjacent-category logits of the observed proportions; unit slope."""
        rows = []
        for i in range(responses.shape[1]):
            item = responses[:, i]
            counts = np.bincount(item[item >= 0], minlength=ncat[i])[: ncat[i]] + 0.5
            xi = np.log(counts[1:] / counts[:-1])
            filters = np.tile([0.0, -1.0], k[i])
            rows.append(np.concatenate([xi, [0.0], filters]))
        return GreekMatrix.from_rows(rows, k, ncat)

    def _log_likelihoods(
        self,
        responses: ResponseMatrix,
        params: list[NDArray[np.float64]],
        ncat: NDArray[np.int_],
        nodes: NDArray[np.float64],
    ) -> NDArray[np.float64]:
        """Log-likelihood of every response pattern at every node."""
        n_persons = responses.shape[0]
        log_likelihoods = np.zeros((n_persons, nodes.size))

        for i, item_params in enumerate(params):
            probs = self._item_probs(item_params, nodes, ncat[i])
            log_probs = np.log(np.clip(probs, self.prob_epsilon, 1.0))
            item_resp = responses[:, i]
            valid = item_resp >= 0
            log_likelihoods[valid] += log_probs[:, item_resp[valid]].T

        return log_likelihoods

    @staticmethod
    def _item_probs(
        item_params: NDArray[np.float64],
        nodes: NDArray[np.float64],
        ncat: int,
    ) -> NDArray[np.float64]:
        n_xi = ncat - 1
        bvec = greek2b(
            item_params[:n_xi],
            item_params[n_xi],
            item_params[n_xi + 1 :: 2],
            item_params[n_xi + 2 :: 2],
        )
        return item_probabilities(nodes, bvec[:n_xi], bvec[n_xi:])

    @staticmethod
    def _expected_counts(
        item_resp: NDArray[np.int_],
        posterior: NDArray[np.float64],
        ncat: int,
    ) -> NDArray[np.float64]:
        """Expected number of responses in each category at each node."""
        counts = np.zeros((posterior.shape[1], ncat))
        for c in range(ncat):
            counts[:, c] = posterior[item_resp == c].sum(axis=0)
        return counts

    def _optimize_item(
        self,
        item_params: NDArray[np.float64],
        counts: NDArray[np.float64],
        nodes: NDArray[np.float64],
        ncat: int,
    ) -> NDArray[np.float64]:
        eps = self.prob_epsilon

        def neg_expected_loglik(x: NDArray[np.float64]) -> float:
            with np.errstate(over="ignore"):
                probs = self._item_probs(x, nodes, ncat)
            return -float(np.sum(counts * np.log(np.clip(probs, eps, 1.0))))

        n_filters = (item_params.size - ncat) // 2
        bounds = (
            [_XI_BOUNDS] * (ncat - 1)
            + [_OMEGA_BOUNDS]
            + [_ALPHA_BOUNDS, _TAU_BOUNDS] * n_filters
        )
        start = np.clip(item_params, [b[0] for b in bounds], [b[1] for b in bounds])

        result = minimize(
            neg_expected_loglik,
            start,
            method="L-BFGS-B",
            bounds=bounds,
            options={
                "maxiter": self.item_optim_maxiter,
                "ftol": self.item_optim_ftol,
            },
        )
        return result.x


def fmp(
    responses: ResponseMatrix,
    k: int | ArrayLike = 0,
    start_greek: GreekMatrix | None = None,
    **estimator_kwargs,
) -> FitResult:
    """Fit the FMP model to response data.

    Parameters
    ----------
    responses : ndarray of shape (n_persons, n_items)
        Category codes, ``-1`` for missing.
    k : int or array_like of int, default=0
        Item complexity.
    start_greek : GreekMatrix, optional
        Starting values.
    **estimator_kwargs
        Passed to :class:`EMEstimator`.

    Returns
    -------
    FitResult

    Examples
    --------
    >>> pars = sim_bmat(n_items=10, k=1, seed=1)
    >>> responses = sim_data(pars.bmat, np.random.default_rng(2).normal(size=1000))
    >>> result = fmp(responses, k=1)
    >>> result.bmat.values.shape
    (10, 4)
    """
    estimator = EMEstimator(**estimator_kwargs)
    return estimator.fit(responses, k=k, start_greek=start_greek)
