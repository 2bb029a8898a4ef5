"""
Measurement models of the 24-state filter.

Every model is a pure function of the current state that returns one
ScalarObservation: the predicted measurement, the measured value, the
noise variance and the non-zero entries of the Jacobian row H = ∂z/∂x.
Multi-axis sensors (velocity, position, magnetometer, optical flow,
lateral acceleration) are modelled one axis at a time; the fusion engine
never stacks them into a joint update.

All Jacobians are evaluated at zero rotation error. The truth attitude is
Tbn(q) (I + [rotErr]x), so for any NED vector w the body-frame vector
b = Tbn^T w has ∂b/∂rotErr = [b]x, and for a body vector b the NED vector
w = Tbn b has ∂w/∂rotErr = -Tbn [b]x.

Models raise ObservationUnavailable when the geometry makes the prediction
meaningless (airspeed near zero, horizontal magnetic field vanishing,
optical-flow range non-positive). The fusion engine reports that as a
status instead of an error.
"""

from dataclasses import dataclass
from typing import Sequence

import numpy as np

from navekf.coords.rotations import skew
from navekf.ekf.states import NavState, StateIndex
from navekf.utils.angles import wrap_angle

_ATT_IDX = (0, 1, 2)
_VEL_IDX = (StateIndex.VN, StateIndex.VE, StateIndex.VD)
_WIND_IDX = (StateIndex.WIND_N, StateIndex.WIND_E)
_MAG_NED_IDX = (StateIndex.MAG_N, StateIndex.MAG_E, StateIndex.MAG_D)
_MAG_BODY_IDX = (StateIndex.MAG_X, StateIndex.MAG_Y, StateIndex.MAG_Z)

AXIS_NAMES = ("x", "y", "z")
NED_NAMES = ("n", "e", "d")


class ObservationUnavailable(Exception):
    """The measurement cannot be predicted from the current state."""


@dataclass(frozen=True)
class ScalarObservation:
    """
    One scalar measurement linearized about the current state.

    Attributes:
        label: Short name, e.g. 'vel_n', 'mag_y', 'los_x'.
        predicted: Predicted measurement h(x).
        measured: Measured value z.
        variance: Measurement noise variance R.
        h_index: State indices of the non-zero Jacobian entries.
        h_value: Jacobian values at those indices.
        is_angle: Wrap the innovation to [-π, π].
    """

    label: str
    predicted: float
    measured: float
    variance: float
    h_index: np.ndarray
    h_value: np.ndarray
    is_angle: bool = False

    def innovation(self) -> float:
        """Measured minus predicted, wrapped for angles."""
        y = self.measured - self.predicted
        if self.is_angle:
            return wrap_angle(y)
        return float(y)

    def jacobian_row(self, n_states: int = 24) -> np.ndarray:
        """Dense Jacobian row, shape (n_states,)."""
        H = np.zeros(n_states)
        H[self.h_index] = self.h_value
        return H


def _observation(
    label: str,
    predicted: float,
    measured: float,
    variance: float,
    index: Sequence[int],
    value: Sequence[float],
    is_angle: bool = False,
) -> ScalarObservation:
    return ScalarObservation(
        label=label,
        predicted=float(predicted),
        measured=float(measured),
        variance=float(variance),
        h_index=np.asarray(index, dtype=int),
        h_value=np.asarray(value, dtype=float),
        is_angle=is_angle,
    )


def _check_axis(axis: int, n_axes: int = 3) -> None:
    if axis not in range(n_axes):
        raise ValueError(f"axis must be in 0..{n_axes - 1}, got {axis}")


def _wind_relative_velocity(state: NavState) -> np.ndarray:
    rel = state.velocity.copy()
    rel[0:2] -= state.wind
    return rel


# ============================================================================
# Direct state observations
# ============================================================================

def velocity_ned(state: NavState, axis: int, measured: float, variance: float) -> ScalarObservation:
    """NED velocity component: h(x) = v[axis], H selects that state."""
    _check_axis(axis)
    idx = _VEL_IDX[axis]
    return _observation(
        f"vel_{NED_NAMES[axis]}", state.x[idx], measured, variance, [idx], [1.0]
    )


def position_ned(state: NavState, axis: int, measured: float, variance: float) -> ScalarObservation:
    """NED position component: h(x) = p[axis], H selects that state."""
    _check_axis(axis)
    idx = StateIndex.PN + axis
    return _observation(
        f"pos_{NED_NAMES[axis]}", state.x[idx], measured, variance, [idx], [1.0]
    )


# ============================================================================
# Air data
# ============================================================================

def true_airspeed(
    state: NavState,
    measured: float,
    variance: float,
    min_airspeed: float = 1.0,
) -> ScalarObservation:
    """
    True airspeed: h(x) = ||[vn - vwn, ve - vwe, vd]||.

    Raises:
        ObservationUnavailable: If the predicted airspeed is below min_airspeed.
    """
    rel = _wind_relative_velocity(state)
    airspeed = np.linalg.norm(rel)
    if airspeed < max(min_airspeed, 1e-6):
        raise ObservationUnavailable(f"predicted airspeed {airspeed:.3f} m/s too low")

    h_vel = rel / airspeed
    return _observation(
        "tas",
        airspeed,
        measured,
        variance,
        _VEL_IDX + _WIND_IDX,
        np.concatenate([h_vel, -h_vel[0:2]]),
    )


def sideslip(
    state: NavState,
    measured: float,
    variance: float,
    min_airspeed: float = 1.0,
) -> ScalarObservation:
    """
    Sideslip angle (small-angle form): h(x) = Vbw_y / Vbw_x with
    Vbw = Tbn^T [vn - vwn, ve - vwe, vd].

    Raises:
        ObservationUnavailable: If the forward wind-relative speed is below
            min_airspeed, which includes flying backwards.
    """
    Tbn = state.dcm()
    rel = _wind_relative_velocity(state)
    vbw = Tbn.T @ rel
    if vbw[0] < max(min_airspeed, 1e-6):
        raise ObservationUnavailable(f"forward airspeed {vbw[0]:.3f} m/s too low for sideslip")

    dbeta_dvbw = np.array([-vbw[1] / vbw[0] ** 2, 1.0 / vbw[0], 0.0])
    h_att = dbeta_dvbw @ skew(vbw)
    h_vel = dbeta_dvbw @ Tbn.T
    return _observation(
        "beta",
        vbw[1] / vbw[0],
        measured,
        variance,
        _ATT_IDX + _VEL_IDX + _WIND_IDX,
        np.concatenate([h_att, h_vel, -h_vel[0:2]]),
    )


# ============================================================================
# Magnetometer
# ============================================================================

def magnetic_flux(state: NavState, axis: int, measured: float, variance: float) -> ScalarObservation:
    """
    One axis of the body magnetic flux: h(x) = (Tbn^T magNED + magXYZ)[axis].
    """
    _check_axis(axis)
    Tbn = state.dcm()
    mag_body_pred = Tbn.T @ state.mag_earth

    h_att = skew(mag_body_pred)[axis]
    h_mag_ned = Tbn[:, axis]
    return _observation(
        f"mag_{AXIS_NAMES[axis]}",
        mag_body_pred[axis] + state.mag_body[axis],
        measured,
        variance,
        _ATT_IDX + _MAG_NED_IDX + (_MAG_BODY_IDX[axis],),
        np.concatenate([h_att, h_mag_ned, [1.0]]),
    )


def magnetic_heading(
    state: NavState,
    mag_measured: np.ndarray,
    variance: float,
    declination: float = 0.0,
) -> ScalarObservation:
    """
    Magnetic heading deviation.

    The measured body field, corrected for the body-field states, is
    rotated into NED; the predicted value is the angle of its horizontal
    component from true north minus the declination, which is zero when
    the attitude is right. Only the rotation-error columns of H are
    non-zero, so this update corrects heading without touching the
    magnetic field states.

    Args:
        state: Current state.
        mag_measured: Body-frame magnetometer reading (mGauss), shape (3,).
        variance: Heading noise variance (rad²).
        declination: Magnetic declination (rad).

    Raises:
        ObservationUnavailable: If the horizontal field vanishes.
    """
    mag_measured = np.asarray(mag_measured, dtype=float)
    if mag_measured.shape != (3,):
        raise ValueError(f"mag_measured must have shape (3,), got {mag_measured.shape}")

    Tbn = state.dcm()
    mag_body = mag_measured - state.mag_body
    mag_ned = Tbn @ mag_body
    horiz_sq = mag_ned[0] ** 2 + mag_ned[1] ** 2
    if horiz_sq < 1e-6:
        raise ObservationUnavailable("horizontal magnetic field too small for heading")

    dpsi_dmag = np.array([-mag_ned[1] / horiz_sq, mag_ned[0] / horiz_sq, 0.0])
    h_att = dpsi_dmag @ (-Tbn @ skew(mag_body))
    predicted = wrap_angle(np.arctan2(mag_ned[1], mag_ned[0]) - declination)
    return _observation(
        "mag_heading", predicted, 0.0, variance, _ATT_IDX, h_att, is_angle=True
    )


def synthetic_declination(state: NavState, declination: float, variance: float) -> ScalarObservation:
    """
    Declination of the earth-field states: h(x) = atan2(magE, magN).

    Keeps the earth field aligned with the known declination when no
    absolute position or velocity aiding constrains heading.

    Raises:
        ObservationUnavailable: If the horizontal earth field vanishes.
    """
    mag_n = state.x[StateIndex.MAG_N]
    mag_e = state.x[StateIndex.MAG_E]
    horiz_sq = mag_n**2 + mag_e**2
    if horiz_sq < 1e-6:
        raise ObservationUnavailable("earth field states have no horizontal component")

    return _observation(
        "declination",
        np.arctan2(mag_e, mag_n),
        declination,
        variance,
        (StateIndex.MAG_N, StateIndex.MAG_E),
        [-mag_e / horiz_sq, mag_n / horiz_sq],
        is_angle=True,
    )


# ============================================================================
# Optical flow
# ============================================================================

def optical_flow(
    state: NavState,
    axis: int,
    measured: float,
    variance: float,
    terrain_down: float = 0.0,
    min_range: float = 0.1,
) -> ScalarObservation:
    """
    Motion-compensated optical-flow line-of-sight rate about body X or Y.

        range = (terrain_down - pd) / Tbn[2, 2]
        vb    = Tbn^T v
        losX  = +vb_y / range
        losY  = -vb_x / range

    The camera is assumed aligned with the body axes over flat terrain.

    Args:
        axis: 0 for the X rate, 1 for the Y rate.

    Raises:
        ObservationUnavailable: If the camera does not look down or the
            range is below min_range.
    """
    _check_axis(axis, 2)
    Tbn = state.dcm()
    t22 = Tbn[2, 2]
    if t22 < 1e-3:
        raise ObservationUnavailable("camera axis not pointing at the terrain")
    height = terrain_down - state.x[StateIndex.PD]
    rng = height / t22
    if rng < max(min_range, 1e-6):
        raise ObservationUnavailable(f"optical flow range {rng:.3f} m too small")

    vb = Tbn.T @ state.velocity
    # X rate sees body Y velocity, Y rate sees body X velocity with a sign flip
    k, sign = (1, 1.0) if axis == 0 else (0, -1.0)

    drange_datt = -rng / t22 * np.array([-Tbn[2, 1], Tbn[2, 0], 0.0])
    h_att = sign * (skew(vb)[k] / rng - vb[k] / rng**2 * drange_datt)
    h_vel = sign * Tbn[:, k] / rng
    h_pd = sign * vb[k] / (rng**2 * t22)

    return _observation(
        f"los_{AXIS_NAMES[axis]}",
        sign * vb[k] / rng,
        measured,
        variance,
        _ATT_IDX + _VEL_IDX + (StateIndex.PD,),
        np.concatenate([h_att, h_vel, [h_pd]]),
    )


# ============================================================================
# Multirotor drag
# ============================================================================

def lateral_acceleration(
    state: NavState,
    axis: int,
    measured: float,
    variance: float,
    k_acc: float,
    drag_model: str = "linear",
    air_density: float = 1.225,
    bc_inv: float = 1.0 / 46.0,
) -> ScalarObservation:
    """
    Body X or Y specific force of a multirotor from rotor drag.

    The Jacobian always comes from the linear drag model
    accel = -K_acc * vrel_body[axis], vrel_body = Tbn^T (v - wind).
    The predicted value is linear too unless drag_model is 'quadratic',
    in which case -0.5 * rho * bc_inv * vrel |vrel| is used.

    Args:
        axis: 0 for body X, 1 for body Y.
        k_acc: Linear drag coefficient (1/s).
        drag_model: 'linear' or 'quadratic' prediction.
        air_density: Air density (kg/m³), quadratic model only.
        bc_inv: Inverse ballistic coefficient along this axis (m²/kg),
            quadratic model only.
    """
    _check_axis(axis, 2)
    Tbn = state.dcm()
    vrel_body = Tbn.T @ _wind_relative_velocity(state)
    v_axis = vrel_body[axis]

    if drag_model == "linear":
        predicted = -k_acc * v_axis
    elif drag_model == "quadratic":
        predicted = -0.5 * air_density * bc_inv * v_axis * abs(v_axis)
    else:
        raise ValueError(f"Unknown drag model {drag_model!r}")

    h_att = -k_acc * skew(vrel_body)[axis]
    h_vel = -k_acc * Tbn[:, axis]
    return _observation(
        f"acc_{AXIS_NAMES[axis]}",
        predicted,
        measured,
        variance,
        _ATT_IDX + _VEL_IDX + _WIND_IDX,
        np.concatenate([h_att, h_vel, -h_vel[0:2]]),
    )
