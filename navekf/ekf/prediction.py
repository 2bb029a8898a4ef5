"""
State predictor of the 24-state filter (strapdown mechanization).

One IMU sample advances the state as follows:

    dAngTrue = dAngMeas ⊙ scale - bias
    dVelTrue = dVelMeas - [0, 0, dvz_b]

    q_truth     = q ⊗ [1, 0.5 rotErr]
    q_truth_new = q_truth ⊗ [1, 0.5 dAngTrue]
    rotErr_new  = 2 vec(q⁻¹ ⊗ q_truth_new)

    v_new = v + [0, 0, g] dt + Tbn(q_truth) dVelTrue
    p_new = p + v dt

Biases, scale factors, magnetic fields and wind are random walks: their
mean is carried over unchanged and only the covariance grows.

Coning, sculling, Coriolis and transport-rate terms are not modelled; they
sit below the noise floor of the sensors this filter targets. The
quaternion estimate is not touched here: the attitude change lands in the
rotation-error states and is folded into the quaternion by the error-state
reset.
"""

from dataclasses import dataclass
from typing import Tuple

import numpy as np

from navekf.coords.rotations import (
    error_rotvec,
    quat_divide,
    quat_multiply,
    quat_to_dcm,
    small_angle_quat,
)
from navekf.ekf.states import NUM_STATES, StateIndex


@dataclass(frozen=True)
class CorrectedImu:
    """
    IMU increments after bias and scale-factor correction.

    Attributes:
        raw_delta_angle: Delta angle as measured (rad), shape (3,).
        delta_angle: Corrected delta angle (rad), shape (3,).
        delta_velocity: Corrected delta velocity (m/s), shape (3,).
        dt: Sample interval (s).
    """

    raw_delta_angle: np.ndarray
    delta_angle: np.ndarray
    delta_velocity: np.ndarray
    dt: float


def correct_imu(
    x: np.ndarray,
    delta_angle: np.ndarray,
    delta_velocity: np.ndarray,
    dt: float,
) -> CorrectedImu:
    """
    Remove the estimated bias and scale-factor errors from raw IMU deltas.

    Args:
        x: State vector, shape (24,).
        delta_angle: Raw delta angle (rad), shape (3,).
        delta_velocity: Raw delta velocity (m/s), shape (3,).
        dt: Sample interval (s).

    Returns:
        CorrectedImu with the corrected increments.

    Raises:
        ValueError: On bad shapes, non-finite input or non-positive dt.
    """
    delta_angle = np.asarray(delta_angle, dtype=float)
    delta_velocity = np.asarray(delta_velocity, dtype=float)
    if delta_angle.shape != (3,):
        raise ValueError(f"delta_angle must have shape (3,), got {delta_angle.shape}")
    if delta_velocity.shape != (3,):
        raise ValueError(f"delta_velocity must have shape (3,), got {delta_velocity.shape}")
    if not np.isfinite(dt) or dt <= 0:
        raise ValueError(f"dt must be positive, got {dt}")
    if not (np.all(np.isfinite(delta_angle)) and np.all(np.isfinite(delta_velocity))):
        raise ValueError("IMU deltas must be finite")

    dang_true = delta_angle * x[StateIndex.DANG_SCALE] - x[StateIndex.DANG_BIAS]
    dvel_true = delta_velocity.copy()
    dvel_true[2] -= x[StateIndex.DVEL_BIAS_Z]

    return CorrectedImu(
        raw_delta_angle=delta_angle,
        delta_angle=dang_true,
        delta_velocity=dvel_true,
        dt=float(dt),
    )


def predict_state(
    x: np.ndarray,
    q: np.ndarray,
    delta_angle: np.ndarray,
    delta_velocity: np.ndarray,
    dt: float,
    gravity: float = 9.80665,
) -> Tuple[np.ndarray, CorrectedImu]:
    """
    Propagate the state vector over one IMU sample.

    Args:
        x: State vector before the sample, shape (24,).
        q: Attitude quaternion estimate (unit norm), shape (4,).
        delta_angle: Raw delta angle (rad), shape (3,).
        delta_velocity: Raw delta velocity (m/s), shape (3,).
        dt: Sample interval (s).
        gravity: Gravity magnitude (m/s²), acting along +down.

    Returns:
        Tuple (x_new, imu) where x_new is the predicted state vector and
        imu holds the corrected increments needed by the covariance step.
    """
    x = np.asarray(x, dtype=float)
    if x.shape != (NUM_STATES,):
        raise ValueError(f"x must have shape ({NUM_STATES},), got {x.shape}")

    imu = correct_imu(x, delta_angle, delta_velocity, dt)

    # Attitude: compose the increment onto the truth, re-express vs estimate
    q_truth = quat_multiply(q, small_angle_quat(x[StateIndex.ROT_ERR]))
    q_truth_new = quat_multiply(q_truth, small_angle_quat(imu.delta_angle))
    rot_err_new = error_rotvec(quat_divide(q_truth_new, q))

    # Velocity
    Tbn = quat_to_dcm(q_truth)
    v_prev = x[StateIndex.VEL]
    v_new = v_prev + Tbn @ imu.delta_velocity
    v_new[2] += gravity * dt

    # Position from the previous velocity
    p_new = x[StateIndex.POS] + v_prev * dt

    x_new = x.copy()
    x_new[StateIndex.ROT_ERR] = rot_err_new
    x_new[StateIndex.VEL] = v_new
    x_new[StateIndex.POS] = p_new

    return x_new, imu
