"""
Unit tests for navekf/ekf/measurements.py (predicted values and guards).

Jacobian rows are checked numerically in tests/test_jacobians.py; these
tests pin down predicted values, labels and the unavailable-geometry
guards.

Run with: pytest tests/navekf/ekf/test_ekf_measurements.py -v
"""

import numpy as np
import pytest

from navekf.coords.rotations import euler_to_quat
from navekf.ekf import measurements
from navekf.ekf.measurements import ObservationUnavailable, ScalarObservation
from navekf.ekf.states import NUM_STATES, NavState, StateIndex, default_state_vector


def state_with(q=None, **groups) -> NavState:
    x = default_state_vector()
    for name, value in groups.items():
        x[getattr(StateIndex, name)] = value
    q = np.array([1.0, 0.0, 0.0, 0.0]) if q is None else q
    return NavState(x=x, q=q, P=np.eye(NUM_STATES))


class TestScalarObservation:
    def test_innovation(self):
        obs = measurements.velocity_ned(state_with(VEL=[1.0, 2.0, 3.0]), 1, 2.5, 0.1)
        assert obs.label == "vel_e"
        assert np.isclose(obs.innovation(), 0.5)

    def test_angle_innovation_wraps(self):
        obs = ScalarObservation("psi", predicted=np.pi - 0.05, measured=-np.pi + 0.05,
                                variance=0.01, h_index=np.array([2]), h_value=np.array([1.0]),
                                is_angle=True)
        assert np.isclose(obs.innovation(), 0.1)

    def test_dense_row(self):
        obs = measurements.position_ned(state_with(), 2, 0.0, 1.0)
        H = obs.jacobian_row()
        assert H.shape == (NUM_STATES,)
        assert H[StateIndex.PD] == 1.0
        assert np.count_nonzero(H) == 1

    def test_bad_axis(self):
        with pytest.raises(ValueError, match="axis"):
            measurements.velocity_ned(state_with(), 3, 0.0, 1.0)
        with pytest.raises(ValueError, match="axis"):
            measurements.optical_flow(state_with(POS=[0, 0, -5.0]), 2, 0.0, 1.0)


class TestAirData:
    def test_true_airspeed_subtracts_wind(self):
        state = state_with(VEL=[10.0, 0.0, 0.0], WIND=[-2.0, 5.0])
        obs = measurements.true_airspeed(state, 13.0, 1.0)
        assert np.isclose(obs.predicted, 13.0)
        assert obs.label == "tas"

    def test_true_airspeed_unavailable_when_slow(self):
        with pytest.raises(ObservationUnavailable):
            measurements.true_airspeed(state_with(VEL=[0.5, 0.0, 0.0]), 0.5, 1.0)

    def test_sideslip_of_crosswind(self):
        state = state_with(VEL=[20.0, 0.0, 0.0], WIND=[0.0, -2.0])
        obs = measurements.sideslip(state, 0.0, 0.01)
        assert np.isclose(obs.predicted, 0.1)

    def test_sideslip_unavailable_flying_backwards(self):
        state = state_with(VEL=[-5.0, 0.0, 0.0])
        with pytest.raises(ObservationUnavailable, match="forward airspeed"):
            measurements.sideslip(state, 0.0, 0.01)

    def test_sideslip_unavailable_below_min_airspeed(self):
        state = state_with(VEL=[0.9, 0.3, 0.0])
        with pytest.raises(ObservationUnavailable):
            measurements.sideslip(state, 0.0, 0.01, min_airspeed=1.0)
        obs = measurements.sideslip(state, 0.0, 0.01, min_airspeed=0.5)
        assert np.isclose(obs.predicted, 0.3 / 0.9)


class TestMagnetometer:
    def test_flux_of_level_north(self):
        state = state_with(MAG_NED=[200.0, 0.0, 400.0], MAG_BODY=[5.0, 6.0, 7.0])
        predicted = [measurements.magnetic_flux(state, i, 0.0, 1.0).predicted for i in range(3)]
        np.testing.assert_allclose(predicted, [205.0, 6.0, 407.0])

    def test_flux_rotates_with_yaw(self):
        state = state_with(q=euler_to_quat(0.0, 0.0, np.pi / 2), MAG_NED=[200.0, 0.0, 400.0])
        obs = measurements.magnetic_flux(state, 1, 0.0, 1.0)
        assert np.isclose(obs.predicted, -200.0)

    def test_heading_deviation_zero_when_aligned(self):
        decl = 0.2
        mag_ned = np.array([300.0 * np.cos(decl), 300.0 * np.sin(decl), 400.0])
        state = state_with(q=euler_to_quat(0.0, 0.0, 1.0))
        mag_body = state.dcm().T @ mag_ned
        obs = measurements.magnetic_heading(state, mag_body, 0.01, declination=decl)
        assert np.isclose(obs.predicted, 0.0, atol=1e-12)
        assert obs.measured == 0.0
        assert obs.is_angle

    def test_heading_deviation_sign(self):
        """Deviation is the angle of the rotated reading from magnetic north."""
        state = state_with()
        mag_body = np.array([300.0 * np.cos(-0.1), 300.0 * np.sin(-0.1), 400.0])
        obs = measurements.magnetic_heading(state, mag_body, 0.01)
        assert np.isclose(obs.predicted, -0.1)

    def test_heading_unavailable_vertical_field(self):
        with pytest.raises(ObservationUnavailable):
            measurements.magnetic_heading(state_with(), np.array([0.0, 0.0, 500.0]), 0.01)

    def test_heading_rejects_bad_shape(self):
        with pytest.raises(ValueError, match="mag_measured"):
            measurements.magnetic_heading(state_with(), np.zeros(2), 0.01)

    def test_declination_prediction(self):
        state = state_with(MAG_NED=[100.0, 100.0, 300.0])
        obs = measurements.synthetic_declination(state, 0.5, 0.01)
        assert np.isclose(obs.predicted, np.pi / 4)
        assert np.isclose(obs.innovation(), 0.5 - np.pi / 4)

    def test_declination_unavailable_without_field(self):
        with pytest.raises(ObservationUnavailable):
            measurements.synthetic_declination(state_with(), 0.1, 0.01)


class TestOpticalFlow:
    def test_forward_flight(self):
        state = state_with(VEL=[4.0, 0.0, 0.0], POS=[0.0, 0.0, -8.0])
        los_x = measurements.optical_flow(state, 0, 0.0, 0.01)
        los_y = measurements.optical_flow(state, 1, 0.0, 0.01)
        assert np.isclose(los_x.predicted, 0.0)
        assert np.isclose(los_y.predicted, -0.5)
        assert (los_x.label, los_y.label) == ("los_x", "los_y")

    def test_sideways_flight_over_raised_terrain(self):
        state = state_with(VEL=[0.0, 3.0, 0.0], POS=[0.0, 0.0, -8.0])
        obs = measurements.optical_flow(state, 0, 0.0, 0.01, terrain_down=-2.0)
        assert np.isclose(obs.predicted, 0.5)

    def test_unavailable_on_ground(self):
        state = state_with(VEL=[1.0, 0.0, 0.0], POS=[0.0, 0.0, 0.0])
        with pytest.raises(ObservationUnavailable):
            measurements.optical_flow(state, 0, 0.0, 0.01)

    def test_unavailable_inverted(self):
        state = state_with(q=euler_to_quat(np.pi, 0.0, 0.0), POS=[0.0, 0.0, -10.0])
        with pytest.raises(ObservationUnavailable):
            measurements.optical_flow(state, 0, 0.0, 0.01)


class TestLateralAcceleration:
    def test_linear_drag(self):
        state = state_with(VEL=[4.0, -2.0, 0.0], WIND=[1.0, 0.0])
        ax = measurements.lateral_acceleration(state, 0, 0.0, 0.1, k_acc=0.25)
        ay = measurements.lateral_acceleration(state, 1, 0.0, 0.1, k_acc=0.25)
        assert np.isclose(ax.predicted, -0.75)
        assert np.isclose(ay.predicted, 0.5)

    def test_quadratic_drag_prediction_linear_jacobian(self):
        state = state_with(VEL=[4.0, 0.0, 0.0])
        quad = measurements.lateral_acceleration(
            state, 0, 0.0, 0.1, k_acc=0.25, drag_model="quadratic",
            air_density=1.2, bc_inv=0.05,
        )
        lin = measurements.lateral_acceleration(state, 0, 0.0, 0.1, k_acc=0.25)
        assert np.isclose(quad.predicted, -0.5 * 1.2 * 0.05 * 16.0)
        np.testing.assert_array_equal(quad.h_value, lin.h_value)

    def test_unknown_drag_model(self):
        with pytest.raises(ValueError, match="drag model"):
            measurements.lateral_acceleration(state_with(), 0, 0.0, 0.1, 0.25, drag_model="cubic")
