from flexmet.estimation.base import BaseEstimator
from flexmet.estimation.em import EMEstimator, fmp
from flexmet.estimation.quadrature import (
    GaussHermiteQuadrature,
    IntegrationGrid,
    int_mat,
)

__all__ = [
    "BaseEstimator",
    "EMEstimator",
    "fmp",
    "GaussHermiteQuadrature",
    "IntegrationGrid",
    "int_mat",
]
