"""
Unit tests for navekf/fusion/gating.py.

Run with: pytest tests/navekf/fusion/test_navekf_gating.py -v
"""

import unittest

import numpy as np
import pytest

from navekf.fusion.gating import (
    ChiSquareGate,
    chi_square_bounds,
    chi_square_gate,
    chi_square_threshold,
    normalized_innovation_squared,
)


class TestNormalizedInnovationSquared(unittest.TestCase):
    def test_value(self) -> None:
        assert normalized_innovation_squared(3.0, 9.0) == 1.0

    def test_rejects_non_positive_variance(self) -> None:
        with pytest.raises(ValueError, match="positive"):
            normalized_innovation_squared(1.0, 0.0)


class TestChiSquareThreshold(unittest.TestCase):
    def test_known_values(self) -> None:
        assert np.isclose(chi_square_threshold(1, 0.95), 3.841, atol=1e-3)
        assert np.isclose(chi_square_threshold(1, 0.99), 6.635, atol=1e-3)

    def test_monotonic_in_confidence(self) -> None:
        assert chi_square_threshold(1, 0.9) < chi_square_threshold(1, 0.99)

    def test_rejects_bad_arguments(self) -> None:
        with pytest.raises(ValueError, match="Degrees of freedom"):
            chi_square_threshold(0, 0.95)
        with pytest.raises(ValueError, match="Confidence"):
            chi_square_threshold(1, 1.0)

    def test_bounds_bracket_mean(self) -> None:
        lower, upper = chi_square_bounds(1, 0.95)
        assert lower < 1.0 < upper


class TestChiSquareGate(unittest.TestCase):
    def test_function_gate(self) -> None:
        assert chi_square_gate(1.0, 1.0)
        assert not chi_square_gate(3.0, 1.0)

    def test_callable_gate(self) -> None:
        gate = ChiSquareGate(confidence=0.99)
        assert gate(2.0, 1.0)
        assert not gate(3.0, 1.0)
        assert "0.99" in repr(gate)

    def test_non_finite_never_accepted(self) -> None:
        gate = ChiSquareGate()
        assert not gate(0.0, float("inf"))
        assert not gate(float("nan"), 1.0)
        assert not gate(0.0, -1.0)
        assert not chi_square_gate(0.0, 0.0)


if __name__ == "__main__":
    unittest.main()
