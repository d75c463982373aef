"""Tests for EM calibration of FMP items."""

import numpy as np
import pytest

from flexmet import (
    EMEstimator,
    FitResult,
    GreekMatrix,
    ShapeMismatchError,
    fmp,
    int_mat,
    sim_bmat,
    sim_data,
    sl_link,
)


@pytest.fixture
def binary_data():
    pars = sim_bmat(n_items=8, k=0, seed=101)
    theta = np.random.default_rng(102).normal(size=3000)
    return pars, sim_data(pars.bmat, theta, seed=103)


class TestEMEstimator:
    """Calibration of simulated data."""

    def test_recovers_k0_parameters(self, binary_data):
        pars, responses = binary_data
        result = fmp(responses, k=0)
        assert isinstance(result, FitResult)
        assert result.converged
        np.testing.assert_allclose(result.bmat.values, pars.bmat.values, atol=0.3)

    def test_log_likelihood_increases(self, binary_data):
        _, responses = binary_data
        estimator = EMEstimator(max_iter=20)
        estimator.fit(responses, k=0)
        history = estimator.convergence_history
        assert len(history) > 1
        assert history[-1] > history[0]

    def test_polytomous_k1(self):
        pars = sim_bmat(n_items=4, k=1, ncat=[2, 3, 4, 3], seed=21)
        theta = np.random.default_rng(22).normal(size=1500)
        responses = sim_data(pars.bmat, theta, seed=23)
        result = fmp(responses, k=1, max_iter=50)
        np.testing.assert_array_equal(result.bmat.ncat, [2, 3, 4, 3])
        np.testing.assert_array_equal(result.greekmat.k, 1)
        assert np.isfinite(result.log_likelihood)
        assert result.n_parameters == (1 + 2 + 3 + 2) + 4 * (1 + 2)

    def test_missing_responses(self, binary_data):
        _, responses = binary_data
        responses = responses.copy()
        responses[::7, 0] = -1
        result = fmp(responses, k=0, max_iter=30)
        assert np.all(np.isfinite(result.bmat.values))

    def test_start_greek(self, binary_data):
        pars, responses = binary_data
        result = fmp(responses, k=0, start_greek=pars.greekmat, max_iter=30)
        assert result.n_iterations <= 30

    def test_start_greek_mismatch(self, binary_data):
        _, responses = binary_data
        start = GreekMatrix(np.zeros((8, 4)), k=1, ncat=2)
        with pytest.raises(ShapeMismatchError, match="start_greek"):
            fmp(responses, k=0, start_greek=start)

    def test_verbose(self, binary_data, capsys):
        _, responses = binary_data
        EMEstimator(max_iter=2, verbose=True).fit(responses, k=0)
        assert "Iteration" in capsys.readouterr().out


class TestValidation:
    """Argument checks."""

    def test_too_few_quadrature_points(self):
        with pytest.raises(ValueError, match="n_quadpts"):
            EMEstimator(n_quadpts=3)

    def test_bad_max_iter(self):
        with pytest.raises(ValueError, match="max_iter"):
            EMEstimator(max_iter=0)

    def test_responses_must_be_2d(self):
        with pytest.raises(ValueError, match="2D"):
            fmp(np.zeros(10, dtype=int))

    def test_non_integer_responses(self):
        with pytest.raises(ValueError, match="integer"):
            fmp(np.full((5, 2), 0.5))

    def test_negative_codes(self):
        responses = np.zeros((5, 2), dtype=int)
        responses[0, 0] = -2
        with pytest.raises(ValueError, match="-1 for missing"):
            fmp(responses)

    def test_negative_k(self, binary_data):
        _, responses = binary_data
        with pytest.raises(ValueError, match="non-negative"):
            fmp(responses, k=-1)


class TestFitResult:
    """Reporting of calibration results."""

    @pytest.fixture
    def result(self, binary_data):
        _, responses = binary_data
        return fmp(responses, k=0, max_iter=30)

    def test_coef(self, result):
        coefs = result.coef()
        assert list(coefs) == ["b0", "b1"]
        assert coefs["b1"].shape == (8,)
        assert list(result.coef("greek")) == ["xi1", "omega"]

    def test_coef_unknown(self, result):
        with pytest.raises(ValueError, match="Unknown parameterization"):
            result.coef("irt")

    def test_information_criteria(self, result):
        assert result.aic == pytest.approx(-2 * result.log_likelihood + 2 * 16)
        assert result.bic > result.aic

    def test_summary(self, result):
        text = result.summary()
        assert "FMP Model Results" in text
        assert "omega" in text
        assert "FitResult" in repr(result)


def test_calibrate_then_link():
    """Two groups calibrated separately are put back on a common metric.

    Group 2 has a mean one unit lower, so theta_2 = theta_1 + 1 on the
    calibrated metrics. The sign of t0 follows from the convention
    theta_2 = T(theta_1); the reverse mapping would give t0 near -1.
    """
    pars = sim_bmat(n_items=5, k=0, seed=2024)
    rng = np.random.default_rng(2025)
    responses1 = sim_data(pars.bmat, rng.normal(0.0, 1.0, 2000), seed=1)
    responses2 = sim_data(pars.bmat, rng.normal(-1.0, 1.0, 2000), seed=2)

    fit1 = fmp(responses1, k=0)
    fit2 = fmp(responses2, k=0)
    result = sl_link(fit1.bmat, fit2.bmat, k_theta=0, grid=int_mat())

    assert result.converged
    t0, t1 = result.tvec
    assert t0 == pytest.approx(1.0, abs=0.3)
    assert t1 == pytest.approx(1.0, abs=0.3)
