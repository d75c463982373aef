"""Type definitions for the flexmet package."""

from typing import Literal

import numpy as np
from numpy.typing import NDArray

# Array types
ResponseMatrix = NDArray[np.int_]  # Shape: (n_persons, n_items)
ProbabilityArray = NDArray[np.float64]  # Shape: (n_theta, n_items, maxncat)

# Ascending polynomial coefficients: c0 + c1 x + c2 x^2 + ...
Coefficients = NDArray[np.float64]

# Linking criteria
LinkingMethod = Literal["stocking_lord", "haebara"]

# Integration grid construction
GridMethod = Literal["uniform", "gauss_hermite"]
