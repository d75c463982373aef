"""Minimizer boundary used by the linking engine.

Linking only needs "minimize a scalar function of a real vector". Anything
implementing :class:`Minimizer` can be passed to :func:`flexmet.equating.link`;
:class:`ScipyMinimizer` is the default and wraps ``scipy.optimize.minimize``.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Protocol

import numpy as np
from numpy.typing import NDArray
from scipy import optimize

Objective = Callable[[NDArray[np.float64]], float]


@dataclass
class OptimizerOutcome:
    """What a minimizer reports back.

    Attributes
    ----------
    x : NDArray[np.float64]
        Minimizing parameter vector.
    fun : float
        Objective value at ``x``.
    nit : int
        Number of iterations.
    nfev : int
        Number of objective evaluations.
    success : bool
        Convergence flag of the minimizer.
    message : str
        Minimizer status message.
    """

    x: NDArray[np.float64]
    fun: float
    nit: int
    nfev: int
    success: bool
    message: str = ""


class Minimizer(Protocol):
    def __call__(
        self, objective: Objective, x0: NDArray[np.float64]
    ) -> OptimizerOutcome: ...


def _default_options() -> dict[str, Any]:
    return {"maxiter": 1000, "xatol": 1e-8, "fatol": 1e-8}


@dataclass
class ScipyMinimizer:
    """``scipy.optimize.minimize`` behind the :class:`Minimizer` interface.

    Parameters
    ----------
    method : str, default="Nelder-Mead"
        Any method accepted by ``scipy.optimize.minimize``.
    options : dict
        Passed unmodified as ``options`` to ``scipy.optimize.minimize``.
        The default suits Nelder-Mead; replace it when changing ``method``.
    tol : float, optional
        Passed as ``tol``.

    Examples
    --------
    >>> minimizer = ScipyMinimizer(method="BFGS", options={"gtol": 1e-8})
    >>> minimizer(lambda x: float(np.sum((x - 1) ** 2)), np.zeros(2)).success
    True
    """

    method: str = "Nelder-Mead"
    options: dict[str, Any] = field(default_factory=_default_options)
    tol: float | None = None

    def __call__(
        self, objective: Objective, x0: NDArray[np.float64]
    ) -> OptimizerOutcome:
        result = optimize.minimize(
            objective,
            np.asarray(x0, dtype=np.float64),
            method=self.method,
            tol=self.tol,
            options=dict(self.options),
        )
        return OptimizerOutcome(
            x=np.asarray(result.x, dtype=np.float64),
            fun=float(result.fun),
            nit=int(getattr(result, "nit", 0)),
            nfev=int(getattr(result, "nfev", 0)),
            success=bool(result.success),
            message=str(result.message),
        )
