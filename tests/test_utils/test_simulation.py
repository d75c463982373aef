"""Tests for parameter and response simulation."""

import numpy as np
import pytest

from flexmet import (
    BMatrix,
    DistributionSpec,
    ShapeMismatchError,
    bmat2greekmat,
    irf_fmp,
    sim_bmat,
    sim_data,
)
from flexmet.polynomial import poly_derivative, poly_evaluate


class TestSimBmat:
    """Random item parameters."""

    def test_shapes(self):
        pars = sim_bmat(n_items=5, k=2, seed=2342)
        assert pars.bmat.values.shape == (5, 6)
        assert pars.greekmat.values.shape == (5, 6)

    def test_mixed_k_and_ncat(self):
        pars = sim_bmat(n_items=5, k=[1, 2, 0, 0, 2], ncat=[2, 3, 4, 5, 2], seed=2432)
        np.testing.assert_array_equal(pars.bmat.k, [1, 2, 0, 0, 2])
        np.testing.assert_array_equal(pars.bmat.ncat, [2, 3, 4, 5, 2])
        assert pars.greekmat.column_names[:5] == ["xi1", "xi2", "xi3", "xi4", "omega"]
        assert np.isnan(pars.bmat.values[0, 1:4]).all()

    def test_reproducible(self):
        first = sim_bmat(n_items=4, k=1, ncat=3, seed=7)
        second = sim_bmat(n_items=4, k=1, ncat=3, seed=7)
        np.testing.assert_array_equal(first.bmat.values, second.bmat.values)

    def test_thresholds_decreasing(self):
        pars = sim_bmat(n_items=6, k=0, ncat=5, seed=3)
        for i in range(6):
            assert np.all(np.diff(pars.greekmat.parameters(i).xi) <= 0)

    def test_default_ranges(self):
        pars = sim_bmat(n_items=50, k=1, seed=11)
        values = pars.greekmat.values
        assert np.all((values[:, 0] >= -1) & (values[:, 0] <= 1))
        assert np.all((values[:, 1] >= -1) & (values[:, 1] <= 1))
        assert np.all((values[:, 2] >= -1) & (values[:, 2] <= 0.5))
        assert np.all((values[:, 3] >= -3) & (values[:, 3] <= 0))

    def test_monotonic_items(self):
        """Every simulated polynomial is increasing."""
        pars = sim_bmat(n_items=10, k=2, seed=5)
        theta = np.linspace(-5, 5, 201)
        for i in range(10):
            m = np.concatenate([[0.0], pars.bmat.slopes(i)])
            assert np.all(poly_evaluate(poly_derivative(m), theta) > 0)

    def test_greek_and_b_agree(self):
        """Both returned matrices describe the same items."""
        pars = sim_bmat(n_items=3, k=1, ncat=3, seed=1)
        back = bmat2greekmat(pars.bmat)
        for i in range(3):
            original = pars.greekmat.parameters(i)
            recovered = back.parameters(i)
            np.testing.assert_allclose(recovered.xi, original.xi)
            assert recovered.omega == pytest.approx(original.omega)

    def test_custom_distributions(self):
        fixed = DistributionSpec(lambda size, value: np.full(size, value), {"value": 0.25})
        pars = sim_bmat(n_items=3, k=0, omega_dist=fixed, seed=1)
        np.testing.assert_allclose(pars.greekmat.values[:, 1], 0.25)

    def test_invalid_arguments(self):
        with pytest.raises(ValueError, match="n_items"):
            sim_bmat(n_items=0, k=0)
        with pytest.raises(ValueError, match="non-negative"):
            sim_bmat(n_items=2, k=-1)
        with pytest.raises(ValueError, match="at least 2"):
            sim_bmat(n_items=2, k=0, ncat=1)
        with pytest.raises(ShapeMismatchError):
            sim_bmat(n_items=3, k=[0, 1])


class TestSimData:
    """Random responses."""

    def test_shape_and_range(self):
        pars = sim_bmat(n_items=4, k=1, ncat=[2, 3, 4, 5], seed=8)
        theta = np.random.default_rng(9).normal(size=300)
        responses = sim_data(pars.bmat, theta, seed=10)
        assert responses.shape == (300, 4)
        assert responses.min() >= 0
        assert np.all(responses.max(axis=0) <= pars.bmat.ncat - 1)

    def test_reproducible(self, dichotomous_bmat):
        theta = np.linspace(-2, 2, 50)
        np.testing.assert_array_equal(
            sim_data(dichotomous_bmat, theta, seed=4),
            sim_data(dichotomous_bmat, theta, seed=4),
        )

    def test_proportions_match_probabilities(self):
        """At fixed theta, category frequencies approach the model."""
        bmat = BMatrix.from_rows([[0.5, -0.5, 1.0]], k=0, ncat=3)
        theta = np.zeros(20000)
        responses = sim_data(bmat, theta, seed=12)
        observed = np.bincount(responses[:, 0], minlength=3) / theta.size
        expected = irf_fmp([0.0], bmat)[0, 0]
        np.testing.assert_allclose(observed, expected, atol=0.02)

    def test_asymptotes(self, dichotomous_bmat):
        """A lower asymptote keeps correct responses at very low theta."""
        theta = np.full(5000, -30.0)
        responses = sim_data(
            dichotomous_bmat, theta, cvec=np.full(5, 0.3), seed=13
        )
        assert responses.mean() == pytest.approx(0.3, abs=0.03)
