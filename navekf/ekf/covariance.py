"""
Covariance predictor of the 24-state filter.

Propagates P_new = F P F^T + Q once per IMU sample, with F and G the
Jacobians of the state predictor with respect to the state and to the six
IMU disturbances, evaluated at zero rotation error.

With d the corrected delta angle, u the corrected delta velocity, m the raw
delta angle and T = Tbn(q), F is the identity except for

    F[att, att]       = I - 0.5 [d]x
    F[att, dAngBias]  = -I
    F[att, dAngScale] = diag(m)
    F[vel, att]       = -T [u]x
    F[vel, dvz_b]     = -T[:, 2]
    F[pos, vel]       = dt I

and G (24 x 6) is zero except G[att, 0:3] = -I and G[vel, 3:6] = -T, so

    Q[att, att] = diag(var_dAng)
    Q[vel, vel] = T diag(var_dVel) T^T

plus random-walk increments on the diagonal of the bias, scale factor,
magnetic field and wind states.

predict_covariance() applies F as block row operations on the rows it
changes, so no dense 24 x 24 product is formed. The dense builders are kept
for verification and for callers that want the matrices themselves.
"""

import numpy as np

from navekf.coords.rotations import quat_to_dcm, skew
from navekf.ekf.config import ProcessNoise
from navekf.ekf.prediction import CorrectedImu
from navekf.ekf.states import NUM_STATES, StateIndex

_ATT = StateIndex.ROT_ERR
_VEL = StateIndex.VEL
_POS = StateIndex.POS
_DAB = StateIndex.DANG_BIAS
_DAS = StateIndex.DANG_SCALE
_DVB = StateIndex.DVEL_BIAS_Z


def state_transition_matrix(q: np.ndarray, imu: CorrectedImu) -> np.ndarray:
    """
    Dense state transition Jacobian F = ∂x_new/∂x at zero rotation error.

    Args:
        q: Attitude quaternion estimate, shape (4,).
        imu: Corrected IMU increments of the sample.

    Returns:
        F, shape (24, 24).
    """
    Tbn = quat_to_dcm(q)
    F = np.eye(NUM_STATES)
    F[_ATT, _ATT] -= 0.5 * skew(imu.delta_angle)
    F[_ATT, _DAB] = -np.eye(3)
    F[_ATT, _DAS] = np.diag(imu.raw_delta_angle)
    F[_VEL, _ATT] = -Tbn @ skew(imu.delta_velocity)
    F[_VEL, _DVB] = -Tbn[:, 2]
    F[_POS, _VEL] = imu.dt * np.eye(3)
    return F


def noise_input_matrix(q: np.ndarray) -> np.ndarray:
    """
    Dense disturbance Jacobian G = ∂x_new/∂[daxNoise..dvzNoise].

    Returns:
        G, shape (24, 6).
    """
    Tbn = quat_to_dcm(q)
    G = np.zeros((NUM_STATES, 6))
    G[_ATT, 0:3] = -np.eye(3)
    G[_VEL, 3:6] = -Tbn
    return G


def process_noise_matrix(q: np.ndarray, process: ProcessNoise, dt: float) -> np.ndarray:
    """
    Dense process noise Q = G diag(var) G^T plus random-walk increments.

    Returns:
        Q, shape (24, 24).
    """
    G = noise_input_matrix(q)
    Q = G @ np.diag(process.disturbance_variances()) @ G.T
    Q[np.diag_indices(NUM_STATES)] += process.random_walk_diagonal(dt)
    return Q


def _apply_transition(X: np.ndarray, Tbn: np.ndarray, imu: CorrectedImu) -> np.ndarray:
    """Return F @ X using only the rows of F that differ from identity."""
    A = X.copy()

    F_att_att = np.eye(3) - 0.5 * skew(imu.delta_angle)
    A[_ATT] = (
        F_att_att @ X[_ATT]
        - X[_DAB]
        + imu.raw_delta_angle[:, None] * X[_DAS]
    )

    F_vel_att = -Tbn @ skew(imu.delta_velocity)
    A[_VEL] = X[_VEL] + F_vel_att @ X[_ATT] - np.outer(Tbn[:, 2], X[_DVB])

    A[_POS] = X[_POS] + imu.dt * X[_VEL]
    return A


def predict_covariance(
    P: np.ndarray,
    q: np.ndarray,
    imu: CorrectedImu,
    process: ProcessNoise,
) -> np.ndarray:
    """
    Propagate the covariance over one IMU sample: F P F^T + Q.

    Args:
        P: Covariance before the sample, shape (24, 24).
        q: Attitude quaternion estimate, shape (4,).
        imu: Corrected IMU increments of the sample.
        process: Process noise configuration.

    Returns:
        Predicted covariance, shape (24, 24). Symmetrization and the
        diagonal floor are left to NavState.condition().
    """
    Tbn = quat_to_dcm(q)

    FP = _apply_transition(P, Tbn, imu)
    P_new = _apply_transition(FP.T, Tbn, imu).T

    var = process.disturbance_variances()
    P_new[_ATT, _ATT] += np.diag(var[0:3])
    P_new[_VEL, _VEL] += (Tbn * var[3:6]) @ Tbn.T
    P_new[np.diag_indices(NUM_STATES)] += process.random_walk_diagonal(imu.dt)

    return P_new
