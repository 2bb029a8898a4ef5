"""
Unit tests for navekf/coords/rotations.py.

Tests cover:
    - Hamilton product and conjugate
    - Quaternion division convention (r⁻¹ ⊗ q)
    - DCM orthonormality and body-to-NED direction
    - Exact and first-order rotation vector maps
    - Euler angle conversion
    - Input validation

Run with: pytest tests/navekf/coords/test_coords_rotations.py -v
"""

import unittest

import numpy as np
import pytest

from navekf.coords.rotations import (
    error_rotvec,
    euler_to_quat,
    quat_conjugate,
    quat_divide,
    quat_multiply,
    quat_normalize,
    quat_to_dcm,
    quat_to_euler,
    quat_to_rotvec,
    rotvec_to_quat,
    skew,
    small_angle_quat,
)

IDENTITY = np.array([1.0, 0.0, 0.0, 0.0])


class TestSkew(unittest.TestCase):
    """Test suite for the cross-product matrix."""

    def test_skew_matches_cross_product(self) -> None:
        a = np.array([0.3, -1.2, 2.0])
        b = np.array([-0.7, 0.4, 1.1])
        np.testing.assert_allclose(skew(a) @ b, np.cross(a, b))

    def test_skew_is_antisymmetric(self) -> None:
        S = skew(np.array([1.0, 2.0, 3.0]))
        np.testing.assert_array_equal(S.T, -S)

    def test_skew_invalid_shape(self) -> None:
        with pytest.raises(ValueError, match="shape"):
            skew(np.array([1.0, 2.0]))


class TestQuaternionAlgebra(unittest.TestCase):
    """Test suite for products, conjugates and division."""

    def test_identity_is_neutral(self) -> None:
        q = quat_normalize(np.array([0.9, 0.1, -0.3, 0.2]))
        np.testing.assert_allclose(quat_multiply(IDENTITY, q), q)
        np.testing.assert_allclose(quat_multiply(q, IDENTITY), q)

    def test_product_composes_rotations(self) -> None:
        """DCM of p ⊗ q equals DCM(p) @ DCM(q)."""
        p = euler_to_quat(0.1, -0.2, 0.5)
        q = euler_to_quat(-0.3, 0.4, 1.2)
        np.testing.assert_allclose(
            quat_to_dcm(quat_multiply(p, q)), quat_to_dcm(p) @ quat_to_dcm(q), atol=1e-12
        )

    def test_conjugate_inverts_unit_quaternion(self) -> None:
        q = euler_to_quat(0.2, 0.1, -0.7)
        np.testing.assert_allclose(quat_multiply(quat_conjugate(q), q), IDENTITY, atol=1e-12)

    def test_divide_is_left_relative_rotation(self) -> None:
        """quat_divide(q, r) = r⁻¹ ⊗ q, so r ⊗ (q / r) = q."""
        q = euler_to_quat(0.3, -0.1, 2.0)
        r = euler_to_quat(-0.2, 0.25, 1.0)
        d = quat_divide(q, r)
        np.testing.assert_allclose(quat_multiply(r, d), q, atol=1e-12)

    def test_normalize_rejects_zero(self) -> None:
        with pytest.raises(ValueError):
            quat_normalize(np.zeros(4))

    def test_normalize_rejects_nan(self) -> None:
        with pytest.raises(ValueError):
            quat_normalize(np.array([np.nan, 0.0, 0.0, 0.0]))

    def test_multiply_invalid_shape(self) -> None:
        with pytest.raises(ValueError, match="shape"):
            quat_multiply(np.ones(3), IDENTITY)


class TestDcm(unittest.TestCase):
    """Test suite for the body-to-NED direction cosine matrix."""

    def test_identity_quaternion(self) -> None:
        np.testing.assert_allclose(quat_to_dcm(IDENTITY), np.eye(3))

    def test_orthonormal(self) -> None:
        T = quat_to_dcm(euler_to_quat(0.4, -0.3, 2.5))
        np.testing.assert_allclose(T @ T.T, np.eye(3), atol=1e-12)
        assert np.isclose(np.linalg.det(T), 1.0)

    def test_yaw_90_maps_body_x_to_east(self) -> None:
        T = quat_to_dcm(euler_to_quat(0.0, 0.0, np.pi / 2))
        np.testing.assert_allclose(T @ np.array([1.0, 0.0, 0.0]), [0.0, 1.0, 0.0], atol=1e-12)


class TestRotationVector(unittest.TestCase):
    """Test suite for rotation-vector maps."""

    def test_rotvec_to_quat_axis_angle(self) -> None:
        q = rotvec_to_quat(np.array([0.0, 0.0, np.pi / 2]))
        np.testing.assert_allclose(q, [np.cos(np.pi / 4), 0.0, 0.0, np.sin(np.pi / 4)])

    def test_rotvec_to_quat_zero(self) -> None:
        np.testing.assert_allclose(rotvec_to_quat(np.zeros(3)), IDENTITY)

    def test_rotvec_round_trip(self) -> None:
        v = np.array([0.4, -0.9, 1.3])
        np.testing.assert_allclose(quat_to_rotvec(rotvec_to_quat(v)), v, atol=1e-12)

    def test_rotvec_to_quat_is_unit(self) -> None:
        q = rotvec_to_quat(np.array([2.0, 1.0, -0.5]))
        assert np.isclose(np.linalg.norm(q), 1.0)

    def test_quat_to_rotvec_takes_short_way(self) -> None:
        q = rotvec_to_quat(np.array([0.0, 0.0, 0.3]))
        np.testing.assert_allclose(quat_to_rotvec(-q), [0.0, 0.0, 0.3], atol=1e-12)

    def test_small_angle_first_order(self) -> None:
        v = np.array([1e-4, -2e-4, 3e-4])
        np.testing.assert_allclose(error_rotvec(small_angle_quat(v)), v)
        np.testing.assert_allclose(
            quat_normalize(small_angle_quat(v)), rotvec_to_quat(v), atol=1e-11
        )


class TestEuler(unittest.TestCase):
    """Test suite for Euler conversions."""

    def test_round_trip(self) -> None:
        angles = np.array([0.3, -0.4, 2.9])
        np.testing.assert_allclose(quat_to_euler(euler_to_quat(*angles)), angles, atol=1e-12)

    def test_pitch_clamped_at_gimbal_lock(self) -> None:
        euler = quat_to_euler(euler_to_quat(0.0, np.pi / 2, 0.0))
        assert np.isclose(euler[1], np.pi / 2)


if __name__ == "__main__":
    unittest.main()
