"""Filtered monotonic polynomial item response models.

flexmet fits FMP item response functions, converts between the Greek-letter
and polynomial coefficient (b) parameterizations, simulates parameters and
data, and links parameter sets calibrated on different latent-trait metrics
through monotonic polynomial transformations.

Examples
--------
>>> import numpy as np
>>> from flexmet import sim_bmat, sim_data, fmp, int_mat, sl_link
>>> pars = sim_bmat(n_items=5, k=0, seed=1)
>>> rng = np.random.default_rng(2)
>>> fit1 = fmp(sim_data(pars.bmat, rng.normal(0, 1, 1000), seed=3), k=0)
>>> fit2 = fmp(sim_data(pars.bmat, rng.normal(-1, 1, 1000), seed=4), k=0)
>>> result = sl_link(fit1.bmat, fit2.bmat, k_theta=0, grid=int_mat())
>>> result.tvec  # doctest: +SKIP
"""

from flexmet._version import __version__
from flexmet.equating import (
    LinkingFitStatistics,
    LinkingResult,
    Minimizer,
    OptimizerOutcome,
    ScipyMinimizer,
    hb_link,
    inv_tvec,
    link,
    sl_link,
    transform_b,
    transform_bmat,
    transform_theta,
)
from flexmet.estimation import (
    EMEstimator,
    GaussHermiteQuadrature,
    IntegrationGrid,
    fmp,
    int_mat,
)
from flexmet.exceptions import (
    InvalidDistributionSpecError,
    NotInvertibleError,
    OptimizationFailure,
    ShapeMismatchError,
)
from flexmet.models import expected_scores, irf_fmp, trf_fmp
from flexmet.parameters import (
    BMatrix,
    GreekMatrix,
    GreekParameters,
    b2greek,
    bmat2greekmat,
    greek2b,
    greekmat2bmat,
)
from flexmet.polynomial import poly_add, poly_compose, poly_evaluate, poly_multiply
from flexmet.results.fit_result import FitResult
from flexmet.utils import DistributionSpec, SimulatedParameters, sim_bmat, sim_data

__all__ = [
    "__version__",
    # Parameters
    "BMatrix",
    "GreekMatrix",
    "GreekParameters",
    "greek2b",
    "b2greek",
    "greekmat2bmat",
    "bmat2greekmat",
    # Polynomial core
    "poly_add",
    "poly_multiply",
    "poly_compose",
    "poly_evaluate",
    # Item response functions
    "irf_fmp",
    "expected_scores",
    "trf_fmp",
    # Metric transformation
    "transform_b",
    "transform_bmat",
    "transform_theta",
    "inv_tvec",
    # Linking
    "link",
    "sl_link",
    "hb_link",
    "LinkingResult",
    "LinkingFitStatistics",
    "Minimizer",
    "OptimizerOutcome",
    "ScipyMinimizer",
    # Integration and estimation
    "int_mat",
    "IntegrationGrid",
    "GaussHermiteQuadrature",
    "EMEstimator",
    "fmp",
    "FitResult",
    # Simulation
    "DistributionSpec",
    "SimulatedParameters",
    "sim_bmat",
    "sim_data",
    # Errors
    "ShapeMismatchError",
    "NotInvertibleError",
    "OptimizationFailure",
    "InvalidDistributionSpecError",
]
