"""
24-state extended Kalman filter for aided inertial navigation.

Modules:
    states: State layout, NavState store and covariance conditioning
    config: Process/measurement noise, initial uncertainty, EKFConfig
    prediction: IMU correction and strapdown state prediction
    covariance: Transition/noise matrices and covariance prediction
    measurements: Scalar measurement models with sparse Jacobians
    fusion: Sequential scalar update and the attitude error-state reset
    filter: NavEKF24 facade

Example:
    >>> import numpy as np
    >>> from navekf.ekf import NavEKF24
    >>> ekf = NavEKF24()
    >>> ekf.initialize()
    >>> for _ in range(100):
    ...     ekf.predict(np.zeros(3), np.array([0.0, 0.0, -9.80665 * 0.01]), dt=0.01)
    >>> np.allclose(ekf.velocity, 0.0, atol=1e-9)
    True
"""

from navekf.ekf.config import (
    DRAG_MODELS,
    EKFConfig,
    InitialUncertainty,
    MeasurementNoise,
    ProcessNoise,
)
from navekf.ekf.covariance import (
    noise_input_matrix,
    predict_covariance,
    process_noise_matrix,
    state_transition_matrix,
)
from navekf.ekf.filter import NavEKF24
from navekf.ekf.fusion import (
    FusionResult,
    FusionStatus,
    InnovationGate,
    fuse_scalar,
    reset_error_state,
)
from navekf.ekf.measurements import ObservationUnavailable, ScalarObservation
from navekf.ekf.prediction import CorrectedImu, correct_imu, predict_state
from navekf.ekf.states import (
    NUM_STATES,
    STATE_NAMES,
    NavState,
    StateIndex,
    default_state_vector,
)

__all__ = [
    "CorrectedImu",
    "DRAG_MODELS",
    "EKFConfig",
    "FusionResult",
    "FusionStatus",
    "InitialUncertainty",
    "InnovationGate",
    "MeasurementNoise",
    "NUM_STATES",
    "NavEKF24",
    "NavState",
    "ObservationUnavailable",
    "ProcessNoise",
    "STATE_NAMES",
    "ScalarObservation",
    "StateIndex",
    "correct_imu",
    "default_state_vector",
    "fuse_scalar",
    "noise_input_matrix",
    "predict_covariance",
    "predict_state",
    "process_noise_matrix",
    "reset_error_state",
    "state_transition_matrix",
]
