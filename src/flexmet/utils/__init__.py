from flexmet.utils.distributions import DistributionSpec
from flexmet.utils.simulation import SimulatedParameters, sim_bmat, sim_data

__all__ = [
    "DistributionSpec",
    "SimulatedParameters",
    "sim_bmat",
    "sim_data",
]
