"""
Unit tests for Jacobian correctness.

Tests the analytical state transition, disturbance and measurement
Jacobians against central differences of the nonlinear models. The
attitude columns are differentiated through the truth attitude
q ⊗ exp(rotErr), which is what the rotation-error states represent.

Run with: python -m pytest tests/test_jacobians.py -v
"""

from typing import Callable

import numpy as np
import pytest

from navekf.coords.rotations import euler_to_quat, quat_multiply, rotvec_to_quat
from navekf.ekf import measurements
from navekf.ekf.covariance import noise_input_matrix, state_transition_matrix
from navekf.ekf.prediction import predict_state
from navekf.ekf.states import NUM_STATES, NavState, StateIndex, default_state_vector

DT = 0.01
ATT = slice(0, 3)


def numerical_jacobian(
    f: Callable,
    x: np.ndarray,
    epsilon: float = 1e-7
) -> np.ndarray:
    """
    Compute Jacobian numerically using central differences.

    Args:
        f: Function that takes x and returns y
        x: Point at which to compute Jacobian
        epsilon: Step size for finite differences

    Returns:
        Numerical Jacobian, shape (len(y), len(x))
    """
    x = np.asarray(x, dtype=float)
    y0 = np.atleast_1d(f(x))

    J = np.zeros((len(y0), len(x)))
    for i in range(len(x)):
        x_plus = x.copy()
        x_minus = x.copy()
        x_plus[i] += epsilon
        x_minus[i] -= epsilon
        J[:, i] = (np.atleast_1d(f(x_plus)) - np.atleast_1d(f(x_minus))) / (2 * epsilon)
    return J


def flying_state() -> NavState:
    """A state with every group populated and the body X axis near the airflow."""
    x = default_state_vector()
    x[StateIndex.VEL] = [14.0, 4.0, 0.8]
    x[StateIndex.POS] = [100.0, -50.0, -12.0]
    x[StateIndex.DANG_BIAS] = [1e-5, -2e-5, 5e-6]
    x[StateIndex.DANG_SCALE] = [1.01, 0.98, 1.003]
    x[StateIndex.DVEL_BIAS_Z] = 2e-3
    x[StateIndex.MAG_NED] = [210.0, 35.0, 430.0]
    x[StateIndex.MAG_BODY] = [12.0, -8.0, 20.0]
    x[StateIndex.WIND] = [2.5, -1.5]
    q = euler_to_quat(0.08, -0.05, 0.3)
    return NavState(x=x, q=q, P=np.eye(NUM_STATES))


def observe(state: NavState, build: Callable) -> Callable:
    """Predicted measurement as a function of the full state, rotErr through the truth attitude."""
    def h(x):
        q_truth = quat_multiply(state.q, rotvec_to_quat(x[ATT]))
        x_truth = x.copy()
        x_truth[ATT] = 0.0
        return build(NavState(x=x_truth, q=q_truth, P=state.P)).predicted
    return h


def assert_row_matches(state, build, rtol=1e-5, atol=1e-6, columns=None):
    obs = build(state)
    H_analytical = obs.jacobian_row()
    H_numerical = numerical_jacobian(observe(state, build), state.x)[0]
    if columns is not None:
        H_analytical = H_analytical[columns]
        H_numerical = H_numerical[columns]
    np.testing.assert_allclose(
        H_analytical, H_numerical, rtol=rtol, atol=atol,
        err_msg=f"Jacobian mismatch for {obs.label}",
    )


class TestPredictionJacobians:
    """Test F and G against the state predictor."""

    def setup_method(self):
        self.state = flying_state()
        self.dang = np.array([0.004, -0.003, 0.012])
        self.dvel = np.array([0.3, -0.05, -0.095])

    def test_state_transition_matrix(self):
        q = self.state.q

        def f(x_):
            return predict_state(x_, q, self.dang, self.dvel, DT)[0]

        _, imu = predict_state(self.state.x, q, self.dang, self.dvel, DT)
        F_analytical = state_transition_matrix(q, imu)
        F_numerical = numerical_jacobian(f, self.state.x)

        # First-order small-angle composition leaves O(|dAng|²) terms
        np.testing.assert_allclose(F_analytical, F_numerical, rtol=1e-3, atol=1e-4)

    def test_noise_input_matrix(self):
        x = self.state.x.copy()
        x[StateIndex.DANG_SCALE] = 1.0
        q = self.state.q

        def f(u):
            return predict_state(x, q, u[0:3], u[3:6], DT)[0]

        G_numerical = -numerical_jacobian(f, np.concatenate([self.dang, self.dvel]))
        np.testing.assert_allclose(noise_input_matrix(q), G_numerical, rtol=1e-3, atol=1e-4)

    def test_shapes(self):
        _, imu = predict_state(self.state.x, self.state.q, self.dang, self.dvel, DT)
        assert state_transition_matrix(self.state.q, imu).shape == (NUM_STATES, NUM_STATES)
        assert noise_input_matrix(self.state.q).shape == (NUM_STATES, 6)


class TestMeasurementJacobians:
    """Test every measurement model's H row."""

    def setup_method(self):
        self.state = flying_state()

    @pytest.mark.parametrize("axis", [0, 1, 2])
    def test_velocity(self, axis):
        assert_row_matches(self.state, lambda s: measurements.velocity_ned(s, axis, 0.0, 1.0))

    @pytest.mark.parametrize("axis", [0, 1, 2])
    def test_position(self, axis):
        assert_row_matches(self.state, lambda s: measurements.position_ned(s, axis, 0.0, 1.0))

    def test_true_airspeed(self):
        assert_row_matches(self.state, lambda s: measurements.true_airspeed(s, 15.0, 1.0))

    def test_sideslip(self):
        assert_row_matches(self.state, lambda s: measurements.sideslip(s, 0.0, 0.01))

    @pytest.mark.parametrize("axis", [0, 1, 2])
    def test_magnetic_flux(self, axis):
        assert_row_matches(
            self.state, lambda s: measurements.magnetic_flux(s, axis, 0.0, 25.0), atol=1e-4
        )

    def test_magnetic_heading_attitude_columns(self):
        mag = np.array([180.0, -60.0, 410.0])
        assert_row_matches(
            self.state,
            lambda s: measurements.magnetic_heading(s, mag, 0.01, declination=0.15),
            columns=ATT,
        )

    def test_magnetic_heading_only_attitude(self):
        obs = measurements.magnetic_heading(self.state, np.array([180.0, -60.0, 410.0]), 0.01)
        np.testing.assert_array_equal(obs.h_index, [0, 1, 2])

    def test_synthetic_declination(self):
        assert_row_matches(
            self.state, lambda s: measurements.synthetic_declination(s, 0.2, 0.01)
        )

    @pytest.mark.parametrize("axis", [0, 1])
    def test_optical_flow(self, axis):
        assert_row_matches(
            self.state, lambda s: measurements.optical_flow(s, axis, 0.0, 0.01, terrain_down=0.0)
        )

    @pytest.mark.parametrize("axis", [0, 1])
    def test_lateral_acceleration_linear(self, axis):
        assert_row_matches(
            self.state,
            lambda s: measurements.lateral_acceleration(s, axis, 0.0, 0.1, k_acc=0.3),
        )
