"""Pytest configuration and shared fixtures."""

import numpy as np
import pytest

from flexmet import BMatrix, GreekMatrix, greekmat2bmat, int_mat


@pytest.fixture
def rng():
    """Reproducible random number generator."""
    return np.random.default_rng(42)


@pytest.fixture
def grid():
    """Default integration grid over a standard normal density."""
    return int_mat()


@pytest.fixture
def dichotomous_bmat():
    """Five binary k = 0 items (2PL-like)."""
    values = np.array(
        [
            [-1.0, 1.0],
            [-0.5, 1.2],
            [0.0, 0.8],
            [0.5, 1.5],
            [1.0, 1.1],
        ]
    )
    return BMatrix(values, k=0, ncat=2)


@pytest.fixture
def mixed_greekmat():
    """Items with heterogeneous k and ncat; unused cells are NaN padding."""
    rows = [
        [0.4, 0.1, -0.2, -1.0],
        [0.8, -0.3, 0.2, -0.4, -1.5, 0.1, -0.5],
        [1.0, 0.0, -1.0, 0.3],
        [-0.2, 0.5, -0.1, -2.0, 0.3, -0.2],
        [0.3, -0.6, -0.4],
    ]
    k = [1, 2, 0, 2, 0]
    ncat = [2, 3, 4, 2, 3]
    return GreekMatrix.from_rows(rows, k, ncat)


@pytest.fixture
def mixed_bmat(mixed_greekmat):
    """b form of ``mixed_greekmat``."""
    return greekmat2bmat(mixed_greekmat)
