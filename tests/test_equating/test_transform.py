"""Tests for metric transformations of FMP parameters."""

import numpy as np
import pytest

from flexmet import (
    ShapeMismatchError,
    greek2b,
    inv_tvec,
    irf_fmp,
    transform_b,
    transform_bmat,
    transform_theta,
)
from flexmet.equating.transform import k_theta_of, transformed_k

THETA = np.linspace(-3, 3, 25)


class TestTransformB:
    """Single-item transformations."""

    def test_identity_is_exact(self):
        bvec = greek2b([0.4, -0.3], 0.2, [0.1], [-1.0])
        np.testing.assert_array_equal(transform_b(bvec, [0.0, 1.0], ncat=3), bvec)

    def test_linear_formula(self):
        """Linear T shifts intercepts by b1 t0 and scales b1 by t1."""
        result = transform_b([0.5, -0.5, 1.2], [0.3, 2.0], ncat=3)
        np.testing.assert_allclose(result, [0.5 + 1.2 * 0.3, -0.5 + 1.2 * 0.3, 2.4])

    def test_docstring_example(self):
        np.testing.assert_allclose(transform_b([0.5, 2.0], [1.0, 0.5]), [2.5, 1.0])

    def test_output_length_grows_with_complexity(self):
        """k = 1 composed with k_theta = 1 gives k* = 4."""
        bvec = greek2b([0.0], 0.0, [0.2], [-1.0])
        tvec = greek2b([0.1], -0.2, [0.3], [-0.5])
        result = transform_b(bvec, tvec)
        assert result.size == 1 + 2 * 4 + 1

    def test_polynomial_composition(self, rng):
        """m*(theta*) + b0 equals m(T(theta*)) + b0 pointwise."""
        bvec = greek2b([0.3], 0.1, [0.2], [-1.0])
        tvec = greek2b([-0.2], 0.3, [-0.1], [-2.0])
        result = transform_b(bvec, tvec)
        theta = rng.uniform(-2, 2, 20)

        t = transform_theta(theta, tvec)
        original = 0.3 + bvec[1] * t + bvec[2] * t**2 + bvec[3] * t**3
        powers = theta[:, None] ** np.arange(1, result.size)
        transformed = result[0] + powers @ result[1:]
        np.testing.assert_allclose(transformed, original)

    def test_invalid_tvec(self):
        with pytest.raises(ShapeMismatchError, match="even length"):
            transform_b([0.0, 1.0], [0.0, 1.0, 0.1])

    def test_invalid_bvec(self):
        with pytest.raises(ShapeMismatchError, match="does not fit"):
            transform_b([0.0, 1.0, 0.2], [0.0, 1.0])


class TestTransformBmat:
    """Matrix transformations."""

    def test_response_functions_invariant(self, mixed_bmat):
        """Transformed items on theta* match original items on T(theta*)."""
        tvec = greek2b([0.4], -0.3, [0.2], [-1.5])
        transformed = transform_bmat(mixed_bmat, tvec)
        np.testing.assert_allclose(
            irf_fmp(THETA, transformed),
            irf_fmp(transform_theta(THETA, tvec), mixed_bmat),
            atol=1e-8,
        )

    def test_complexities_and_categories(self, mixed_bmat):
        transformed = transform_bmat(mixed_bmat, np.array([0.0, 1.0, 0.0, 0.01]))
        np.testing.assert_array_equal(transformed.k, [4, 7, 1, 7, 1])
        np.testing.assert_array_equal(transformed.ncat, mixed_bmat.ncat)

    def test_linear_keeps_shape(self, mixed_bmat):
        transformed = transform_bmat(mixed_bmat, [1.0, 0.5])
        assert transformed.values.shape == mixed_bmat.values.shape
        np.testing.assert_array_equal(transformed.k, mixed_bmat.k)

    def test_input_unchanged(self, mixed_bmat):
        before = mixed_bmat.values.copy()
        transform_bmat(mixed_bmat, [1.0, 0.5])
        np.testing.assert_array_equal(mixed_bmat.values, before)


class TestLinearInverse:
    """Inverse of linear transformations."""

    def test_round_trip(self, dichotomous_bmat):
        """Applying T then its inverse restores the parameters."""
        tvec = np.array([-0.7, 1.3])
        back = transform_bmat(transform_bmat(dichotomous_bmat, tvec), inv_tvec(tvec))
        np.testing.assert_allclose(back.values, dichotomous_bmat.values)

    def test_inverse_values(self):
        np.testing.assert_allclose(inv_tvec([1.0, 2.0]), [-0.5, 0.5])

    def test_nonlinear_rejected(self):
        with pytest.raises(ValueError, match="linear"):
            inv_tvec([0.0, 1.0, 0.0, 0.1])

    def test_zero_slope_rejected(self):
        with pytest.raises(ValueError, match="non-zero"):
            inv_tvec([1.0, 0.0])


def test_transformed_k():
    assert transformed_k(0, 0) == 0
    assert transformed_k(1, 1) == 4
    assert transformed_k(2, 1) == 7
    np.testing.assert_array_equal(transformed_k(np.array([0, 1]), 2), [2, 7])


def test_k_theta_of():
    assert k_theta_of([0.0, 1.0]) == 0
    assert k_theta_of(np.zeros(6)) == 2
