"""Metric transformation and linking of FMP item parameters.

Examples
--------
Stocking-Lord linking with a linear transformation:

>>> from flexmet.equating import sl_link
>>> result = sl_link(bmat_ref, bmat_new, k_theta=0)
>>> print(result.tvec, result.converged)

Rescaling item parameters with a known transformation:

>>> from flexmet.equating import transform_bmat
>>> bmat_star = transform_bmat(bmat_new, result.tvec)
"""

from flexmet.equating.linking import (
    LinkingFitStatistics,
    LinkingResult,
    default_start,
    greek2tvec,
    hb_link,
    link,
    sl_link,
    tvec2greek,
)
from flexmet.equating.optimizer import Minimizer, OptimizerOutcome, ScipyMinimizer
from flexmet.equating.transform import (
    inv_tvec,
    transform_b,
    transform_bmat,
    transform_theta,
)

__all__ = [
    # Linking
    "link",
    "sl_link",
    "hb_link",
    "LinkingResult",
    "LinkingFitStatistics",
    "greek2tvec",
    "tvec2greek",
    "default_start",
    # Optimizer boundary
    "Minimizer",
    "OptimizerOutcome",
    "ScipyMinimizer",
    # Metric transformation
    "transform_b",
    "transform_bmat",
    "transform_theta",
    "inv_tvec",
]
