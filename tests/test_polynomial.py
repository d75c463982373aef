"""Tests for polynomial algebra."""

import numpy as np
import pytest

from flexmet.polynomial import (
    poly_add,
    poly_compose,
    poly_derivative,
    poly_evaluate,
    poly_multiply,
)


class TestPolynomialAlgebra:
    """Multiplication, addition and evaluation."""

    def test_multiply(self):
        """(1 + x)(1 - x) = 1 - x^2."""
        np.testing.assert_allclose(poly_multiply([1, 1], [1, -1]), [1, 0, -1])

    def test_add_pads_shorter(self):
        """Addition keeps the longer length."""
        np.testing.assert_allclose(poly_add([1, 2, 3], [1]), [2, 2, 3])

    def test_evaluate(self):
        """Evaluation uses ascending coefficients."""
        np.testing.assert_allclose(poly_evaluate([1, 0, 2], [0.0, 1.0, 2.0]), [1, 3, 9])

    def test_derivative(self):
        """d/dx (1 + 2x + 3x^2) = 2 + 6x."""
        np.testing.assert_allclose(poly_derivative([1, 2, 3]), [2, 6])
        np.testing.assert_allclose(poly_derivative([5]), [0])

    def test_empty_rejected(self):
        """Empty coefficient arrays are rejected."""
        with pytest.raises(ValueError, match="non-empty"):
            poly_multiply([], [1])


class TestPolynomialCompose:
    """Composition outer(inner(x))."""

    def test_degree_bookkeeping(self):
        """A cubic composed with a cubic has degree 9."""
        outer = [0.0, 1.0, 0.5, 0.2]
        inner = [0.3, 1.1, 0.0, 0.1]
        assert poly_compose(outer, inner).size == 10

    def test_matches_pointwise_evaluation(self, rng):
        """Coefficients of the composition evaluate to outer(inner(x))."""
        outer = rng.normal(size=6)
        inner = rng.normal(size=4)
        x = np.linspace(-2, 2, 25)

        composed = poly_compose(outer, inner)
        expected = poly_evaluate(outer, poly_evaluate(inner, x))

        np.testing.assert_allclose(poly_evaluate(composed, x), expected, rtol=1e-10)

    def test_identity_inner_is_exact(self, rng):
        """Composing with x returns the outer polynomial unchanged."""
        outer = rng.normal(size=5)
        np.testing.assert_array_equal(poly_compose(outer, [0.0, 1.0]), outer)

    def test_zero_leading_coefficient_keeps_length(self):
        """Zero high-order inner terms still give the declared length."""
        composed = poly_compose([1.0, 2.0, 3.0], [0.5, 1.0, 0.0, 0.0])
        assert composed.size == 7
        np.testing.assert_allclose(composed[3:], 0.0)

    def test_constant_outer(self):
        """A constant outer polynomial stays constant."""
        np.testing.assert_allclose(poly_compose([4.0], [1.0, 2.0]), [4.0])
