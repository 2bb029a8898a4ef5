"""Attitude representations for the navigation filter.

Quaternion algebra, direction cosine matrices and rotation-vector maps
used by the state predictor, the measurement models and the error-state
reset.
"""

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

__all__ = [
    "error_rotvec",
    "euler_to_quat",
    "quat_conjugate",
    "quat_divide",
    "quat_multiply",
    "quat_normalize",
    "quat_to_dcm",
    "quat_to_euler",
    "quat_to_rotvec",
    "rotvec_to_quat",
    "skew",
    "small_angle_quat",
]
