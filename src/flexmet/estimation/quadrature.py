"""Quadrature grids for integrating over the latent trait."""

from dataclasses import dataclass
from typing import Callable

import numpy as np
from numpy.typing import NDArray
from scipy import stats
from scipy.special import roots_hermite

from flexmet.exceptions import InvalidDistributionSpecError
from flexmet.typing import GridMethod
from flexmet.utils.distributions import DistributionSpec


@dataclass(frozen=True, eq=False)
class IntegrationGrid:
    """Fixed theta support points with normalized weights.

    Attributes
    ----------
    theta : ndarray of shape (n_points,)
        Support points.
    weights : ndarray of shape (n_points,)
        Non-negative weights summing to 1.
    """

    theta: NDArray[np.float64]
    weights: NDArray[np.float64]

    def __post_init__(self) -> None:
        theta = np.array(self.theta, dtype=np.float64).ravel()
        weights = np.array(self.weights, dtype=np.float64).ravel()
        if theta.shape != weights.shape:
            raise ValueError(
                f"theta and weights must have equal length, got "
                f"{theta.size} and {weights.size}"
            )
        if theta.size == 0:
            raise ValueError("integration grid needs at least one point")
        if not np.all(np.isfinite(theta)) or not np.all(np.isfinite(weights)):
            raise ValueError("integration grid contains non-finite values")
        if np.any(weights < 0) or weights.sum() <= 0:
            raise ValueError("grid weights must be non-negative with a positive sum")
        weights = weights / weights.sum()

        theta.setflags(write=False)
        weights.setflags(write=False)
        object.__setattr__(self, "theta", theta)
        object.__setattr__(self, "weights", weights)

    @property
    def n_points(self) -> int:
        return self.theta.size

    def expectation(self, values: NDArray[np.float64]) -> float | NDArray[np.float64]:
        """Weighted sum of ``values`` over the first axis."""
        return np.tensordot(self.weights, np.asarray(values), axes=(0, 0))

    def __repr__(self) -> str:
        return (
            f"IntegrationGrid(n_points={self.n_points}, "
            f"range=({self.theta.min():.2f}, {self.theta.max():.2f}))"
        )


class GaussHermiteQuadrature:
    """Gauss-Hermite quadrature for integrating over a normal distribution.

    This class provides nodes (quadrature points) and weights for
    numerically approximating integrals of the form:

        ∫ f(x) × φ(x; μ, σ) dx ≈ Σ w_i × f(x_i)

    Parameters
    ----------
    n_points : int, default=41
        Number of quadrature points.
    mean : float, default=0.0
        Mean of the normal distribution.
    sd : float, default=1.0
        Standard deviation of the normal distribution.

    Examples
    --------
    >>> quad = GaussHermiteQuadrature(n_points=21)
    >>> round(float(np.sum(quad.weights * quad.nodes**2)), 6)
    1.0
    """

    def __init__(
        self,
        n_points: int = 41,
        mean: float = 0.0,
        sd: float = 1.0,
    ) -> None:
        if n_points < 1:
            raise ValueError("n_points must be at least 1")
        if sd <= 0:
            raise ValueError(f"sd must be positive, got {sd}")

        self.n_points = n_points
        self.mean = float(mean)
        self.sd = float(sd)
        self._nodes, self._weights = self._compute_quadrature()

    def _compute_quadrature(
        self,
    ) -> tuple[NDArray[np.float64], NDArray[np.float64]]:
        # scipy's roots_hermite uses the physicist's weight exp(-x²)
        nodes, weights = roots_hermite(self.n_points)
        nodes = nodes * np.sqrt(2) * self.sd + self.mean
        weights = weights / np.sqrt(np.pi)
        return nodes, weights / weights.sum()

    @property
    def nodes(self) -> NDArray[np.float64]:
        """Quadrature nodes (points)."""
        return self._nodes.copy()

    @property
    def weights(self) -> NDArray[np.float64]:
        """Quadrature weights."""
        return self._weights.copy()

    def integrate(self, func: Callable[[NDArray[np.float64]], NDArray]) -> float:
        """Approximate ∫ f(x) × φ(x; μ, σ) dx."""
        return float(np.sum(self._weights * func(self._nodes)))

    def to_grid(self) -> IntegrationGrid:
        return IntegrationGrid(self._nodes, self._weights)

    def __repr__(self) -> str:
        return (
            f"GaussHermiteQuadrature(n_points={self.n_points}, "
            f"mean={self.mean}, sd={self.sd})"
        )


def int_mat(
    distribution: DistributionSpec | None = None,
    bounds: tuple[float, float] = (-6.0, 6.0),
    n_points: int = 33,
    method: GridMethod = "uniform",
) -> IntegrationGrid:
    """Build the integration grid used for expectations over theta.

    Parameters
    ----------
    distribution : DistributionSpec, optional
        Density of the latent trait, called as ``func(theta, **params)``.
        Default is the standard normal density. With
        ``method="gauss_hermite"`` the params ``loc`` and ``scale`` (if
        present) set the normal's mean and standard deviation.
    bounds : tuple of float, default=(-6.0, 6.0)
        Lowest and highest theta of a uniform grid.
    n_points : int, default=33
        Number of grid points.
    method : {'uniform', 'gauss_hermite'}, default='uniform'
        Equally spaced points weighted by the density, or Gauss-Hermite
        nodes of a normal distribution.

    Returns
    -------
    IntegrationGrid
        Grid with weights normalized to sum to 1.

    Raises
    ------
    InvalidDistributionSpecError
        If the density cannot be evaluated, is negative or non-finite, or
        vanishes over the whole grid.

    Examples
    --------
    >>> grid = int_mat(n_points=11)
    >>> grid.theta[[0, -1]]
    array([-6.,  6.])
    """
    if n_points < 2:
        raise ValueError(f"n_points must be at least 2, got {n_points}")
    if distribution is None:
        distribution = DistributionSpec(stats.norm.pdf, {"loc": 0.0, "scale": 1.0})

    if method == "gauss_hermite":
        params = dict(distribution.params)
        quad = GaussHermiteQuadrature(
            n_points=n_points,
            mean=params.get("loc", 0.0),
            sd=params.get("scale", 1.0),
        )
        return quad.to_grid()
    if method != "uniform":
        raise ValueError(f"Unknown grid method: {method}")

    lower, upper = bounds
    if not lower < upper:
        raise ValueError(f"bounds must be increasing, got {bounds}")

    theta = np.linspace(lower, upper, n_points)
    weights = distribution.density(theta)
    if weights.sum() <= 0:
        raise InvalidDistributionSpecError(
            f"density is zero everywhere on [{lower}, {upper}]"
        )
    return IntegrationGrid(theta, weights)
