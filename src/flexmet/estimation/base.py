"""Shared machinery for FMP calibration algorithms."""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

import numpy as np
from numpy.typing import ArrayLike, NDArray

from flexmet._core import logsumexp
from flexmet.parameters import expand_per_item
from flexmet.typing import ResponseMatrix

if TYPE_CHECKING:
    from flexmet.results.fit_result import FitResult


class BaseEstimator(ABC):
    """Common interface of FMP calibration algorithms.

    Subclasses implement :meth:`fit`. The base class owns response
    validation, category inference, the posterior step over a fixed theta
    grid, convergence bookkeeping and verbose progress output.

    Parameters
    ----------
    max_iter : int, default=500
        Maximum number of cycles.
    tol : float, default=1e-4
        Convergence tolerance on the change of the marginal log-likelihood.
    verbose : bool, default=False
        Print one progress line per cycle.
    """

    def __init__(
        self,
        max_iter: int = 500,
        tol: float = 1e-4,
        verbose: bool = False,
    ) -> None:
        if max_iter < 1:
            raise ValueError("max_iter must be at least 1")
        if tol <= 0:
            raise ValueError("tol must be positive")

        self.max_iter = max_iter
        self.tol = tol
        self.verbose = verbose
        self._convergence_history: list[float] = []

    @abstractmethod
    def fit(
        self,
        responses: ResponseMatrix,
        k: int | ArrayLike = 0,
        **kwargs,
    ) -> "FitResult":
        """Calibrate FMP items on ``responses``.

        Parameters
        ----------
        responses : ndarray of shape (n_persons, n_items)
            Category codes, ``-1`` for missing.
        k : int or array_like of int
            Item complexity, scalar or one per item.
        **kwargs
            Algorithm-specific options.
        """
        ...

    @property
    def convergence_history(self) -> list[float]:
        """Marginal log-likelihood of every completed cycle."""
        return self._convergence_history.copy()

    def _check_convergence(self, old_ll: float, new_ll: float) -> bool:
        return abs(new_ll - old_ll) < self.tol

    def _prepare(
        self, responses: ResponseMatrix, k: int | ArrayLike
    ) -> tuple[ResponseMatrix, NDArray[np.int_], NDArray[np.int_]]:
        """Validate data and return ``(responses, k, ncat)`` per item.

        ``ncat`` is the highest observed code plus one, and at least 2.
        """
        responses = np.asarray(responses)
        if responses.ndim != 2:
            raise ValueError(f"responses must be 2D, got {responses.ndim}D")
        if responses.shape[0] < 2 or responses.shape[1] < 1:
            raise ValueError(
                f"responses needs at least 2 persons and 1 item, got shape "
                f"{responses.shape}"
            )
        if not np.all(np.equal(np.mod(responses, 1), 0)):
            raise ValueError("responses must be integer category codes")
        if np.any(responses < -1):
            raise ValueError("responses must be >= 0, with -1 for missing values")
        responses = responses.astype(np.int_)

        k = expand_per_item(k, responses.shape[1], "k")
        if np.any(k < 0):
            raise ValueError(f"k must be non-negative, got {k}")

        ncat = np.maximum(responses.max(axis=0) + 1, 2)
        return responses, k, ncat

    @staticmethod
    def _posterior(
        log_likelihoods: NDArray[np.float64],
        log_weights: NDArray[np.float64],
    ) -> tuple[NDArray[np.float64], float]:
        """Posterior weights of each person over the grid, and the marginal LL."""
        log_joint = log_likelihoods + log_weights[None, :]
        log_marginal = logsumexp(log_joint, axis=1)
        posterior = np.exp(log_joint - log_marginal[:, None])
        return posterior, float(np.sum(log_marginal))

    def _log_iteration(self, iteration: int, log_likelihood: float) -> None:
        if not self.verbose:
            return
        msg = f"Iteration {iteration:4d}: LL = {log_likelihood:.4f}"
        if len(self._convergence_history) > 1:
            change = log_likelihood - self._convergence_history[-2]
            msg += f", change = {change:.6f}"
        print(msg)

    @staticmethod
    def _information_criteria(
        log_likelihood: float, n_parameters: int, n_observations: int
    ) -> tuple[float, float]:
        """AIC and BIC."""
        aic = -2 * log_likelihood + 2 * n_parameters
        bic = -2 * log_likelihood + n_parameters * np.log(n_observations)
        return aic, bic

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(max_iter={self.max_iter}, tol={self.tol}, "
            f"verbose={self.verbose})"
        )
