"""Quaternion and rotation-vector algebra for the navigation filter.

Conventions:
- Quaternions: [q0, q1, q2, q3], scalar first, Hamilton product.
- The attitude quaternion rotates body (XYZ) vectors into the local
  North-East-Down frame: v_ned = Tbn @ v_body.
- Rotation vectors: axis * angle in radians, expressed in the body frame
  when used as an attitude error.
- Euler angles: [roll, pitch, yaw] in radians (ZYX/3-2-1 convention).

The filter represents attitude uncertainty as a small rotation vector
perturbing the quaternion estimate:

    q_truth = q_est ⊗ [1, 0.5 * rot_err]

so the first-order map (small_angle_quat) is used to linearize and the
exact map (rotvec_to_quat) is used when the error is folded back in.
"""

import numpy as np
from numpy.typing import NDArray


def _check_quat(q: NDArray[np.float64], name: str = "q") -> None:
    if q.shape != (4,):
        raise ValueError(f"{name} must have shape (4,), got {q.shape}")


def _check_vec3(v: NDArray[np.float64], name: str = "v") -> None:
    if v.shape != (3,):
        raise ValueError(f"{name} must have shape (3,), got {v.shape}")


def skew(v: NDArray[np.float64]) -> NDArray[np.float64]:
    """Skew-symmetric cross-product matrix [v]x such that [v]x @ w = v x w."""
    v = np.asarray(v, dtype=np.float64)
    _check_vec3(v)
    return np.array(
        [
            [0.0, -v[2], v[1]],
            [v[2], 0.0, -v[0]],
            [-v[1], v[0], 0.0],
        ],
        dtype=np.float64,
    )


def quat_multiply(p: NDArray[np.float64], q: NDArray[np.float64]) -> NDArray[np.float64]:
    """Hamilton product p ⊗ q.

    Composing rotations: if p maps frame B to A and q maps frame C to B,
    p ⊗ q maps frame C to A.

    Args:
        p: Left quaternion [p0, p1, p2, p3].
        q: Right quaternion [q0, q1, q2, q3].

    Returns:
        Product quaternion, shape (4,). Not renormalized.

    Example:
        >>> q = np.array([1.0, 0.0, 0.0, 0.0])
        >>> quat_multiply(q, q)
        array([1., 0., 0., 0.])
    """
    p = np.asarray(p, dtype=np.float64)
    q = np.asarray(q, dtype=np.float64)
    _check_quat(p, "p")
    _check_quat(q, "q")

    p0, p1, p2, p3 = p
    q0, q1, q2, q3 = q

    return np.array(
        [
            p0 * q0 - p1 * q1 - p2 * q2 - p3 * q3,
            p0 * q1 + p1 * q0 + p2 * q3 - p3 * q2,
            p0 * q2 - p1 * q3 + p2 * q0 + p3 * q1,
            p0 * q3 + p1 * q2 - p2 * q1 + p3 * q0,
        ],
        dtype=np.float64,
    )


def quat_conjugate(q: NDArray[np.float64]) -> NDArray[np.float64]:
    """Quaternion conjugate [q0, -q1, -q2, -q3] (the inverse of a unit quaternion)."""
    q = np.asarray(q, dtype=np.float64)
    _check_quat(q)
    return np.array([q[0], -q[1], -q[2], -q[3]], dtype=np.float64)


def quat_divide(q: NDArray[np.float64], r: NDArray[np.float64]) -> NDArray[np.float64]:
    """Relative rotation of q with respect to r: r⁻¹ ⊗ q.

    With q = r ⊗ e this returns e, i.e. the body-frame rotation that takes
    the reference attitude r onto q. r is assumed to be unit norm.

    Args:
        q: Quaternion to express relative to r.
        r: Reference quaternion (unit norm).

    Returns:
        Relative quaternion, shape (4,).
    """
    q = np.asarray(q, dtype=np.float64)
    r = np.asarray(r, dtype=np.float64)
    _check_quat(q, "q")
    _check_quat(r, "r")

    q0, q1, q2, q3 = q
    r0, r1, r2, r3 = r

    return np.array(
        [
            r0 * q0 + r1 * q1 + r2 * q2 + r3 * q3,
            r0 * q1 - r1 * q0 - r2 * q3 + r3 * q2,
            r0 * q2 + r1 * q3 - r2 * q0 - r3 * q1,
            r0 * q3 - r1 * q2 + r2 * q1 - r3 * q0,
        ],
        dtype=np.float64,
    )


def quat_normalize(q: NDArray[np.float64]) -> NDArray[np.float64]:
    """Normalize quaternion to unit norm.

    Raises:
        ValueError: If q has zero or non-finite norm.
    """
    q = np.asarray(q, dtype=np.float64)
    _check_quat(q)
    norm = np.linalg.norm(q)
    if not np.isfinite(norm) or norm == 0.0:
        raise ValueError(f"Cannot normalize quaternion with norm {norm}")
    return q / norm


def quat_to_dcm(q: NDArray[np.float64]) -> NDArray[np.float64]:
    """Convert quaternion to the body-to-NED direction cosine matrix Tbn.

    Closed-form expression in squared components; exact only for unit
    quaternions, so callers renormalize after every attitude update.

    Args:
        q: Unit quaternion [q0, q1, q2, q3].

    Returns:
        3x3 matrix Tbn such that v_ned = Tbn @ v_body.

    Example:
        >>> quat_to_dcm(np.array([1.0, 0.0, 0.0, 0.0]))
        array([[1., 0., 0.],
               [0., 1., 0.],
               [0., 0., 1.]])
    """
    q = np.asarray(q, dtype=np.float64)
    _check_quat(q)

    q0, q1, q2, q3 = q
    q00 = q0 * q0
    q11 = q1 * q1
    q22 = q2 * q2
    q33 = q3 * q3

    return np.array(
        [
            [q00 + q11 - q22 - q33, 2.0 * (q1 * q2 - q0 * q3), 2.0 * (q1 * q3 + q0 * q2)],
            [2.0 * (q1 * q2 + q0 * q3), q00 - q11 + q22 - q33, 2.0 * (q2 * q3 - q0 * q1)],
            [2.0 * (q1 * q3 - q0 * q2), 2.0 * (q2 * q3 + q0 * q1), q00 - q11 - q22 + q33],
        ],
        dtype=np.float64,
    )


def small_angle_quat(rot_vec: NDArray[np.float64]) -> NDArray[np.float64]:
    """First-order quaternion [1, 0.5 * rot_vec] for a small rotation vector.

    Valid only while |rot_vec| is small; the result is not unit norm.
    """
    rot_vec = np.asarray(rot_vec, dtype=np.float64)
    _check_vec3(rot_vec, "rot_vec")
    return np.array([1.0, 0.5 * rot_vec[0], 0.5 * rot_vec[1], 0.5 * rot_vec[2]])


def error_rotvec(q_err: NDArray[np.float64]) -> NDArray[np.float64]:
    """First-order rotation vector of an error quaternion: 2 * vec(q_err)."""
    q_err = np.asarray(q_err, dtype=np.float64)
    _check_quat(q_err, "q_err")
    return 2.0 * q_err[1:4]


def rotvec_to_quat(rot_vec: NDArray[np.float64]) -> NDArray[np.float64]:
    """Exact rotation vector to unit quaternion (axis-angle map).

    Args:
        rot_vec: Rotation axis scaled by angle (rad), shape (3,).

    Returns:
        Unit quaternion [cos(θ/2), sin(θ/2) * axis].
    """
    rot_vec = np.asarray(rot_vec, dtype=np.float64)
    _check_vec3(rot_vec, "rot_vec")

    angle = np.linalg.norm(rot_vec)
    if angle < 1e-12:
        # Second-order series keeps the map smooth through zero
        return quat_normalize(small_angle_quat(rot_vec))

    half = 0.5 * angle
    axis = rot_vec / angle
    return np.concatenate([[np.cos(half)], np.sin(half) * axis])


def quat_to_rotvec(q: NDArray[np.float64]) -> NDArray[np.float64]:
    """Exact unit quaternion to rotation vector (shortest rotation)."""
    q = quat_normalize(q)
    if q[0] < 0.0:
        q = -q

    vec_norm = np.linalg.norm(q[1:4])
    if vec_norm < 1e-12:
        return 2.0 * q[1:4]

    angle = 2.0 * np.arctan2(vec_norm, q[0])
    return angle * q[1:4] / vec_norm


def euler_to_quat(roll: float, pitch: float, yaw: float) -> NDArray[np.float64]:
    """Convert roll-pitch-yaw (ZYX) Euler angles to a body-to-NED quaternion."""
    cr = np.cos(roll / 2.0)
    sr = np.sin(roll / 2.0)
    cp = np.cos(pitch / 2.0)
    sp = np.sin(pitch / 2.0)
    cy = np.cos(yaw / 2.0)
    sy = np.sin(yaw / 2.0)

    return np.array(
        [
            cr * cp * cy + sr * sp * sy,
            sr * cp * cy - cr * sp * sy,
            cr * sp * cy + sr * cp * sy,
            cr * cp * sy - sr * sp * cy,
        ],
        dtype=np.float64,
    )


def quat_to_euler(q: NDArray[np.float64]) -> NDArray[np.float64]:
    """Convert a body-to-NED quaternion to [roll, pitch, yaw] (ZYX).

    Pitch is clamped at ±90° to stay inside the arcsin domain.
    """
    q = np.asarray(q, dtype=np.float64)
    _check_quat(q)

    q0, q1, q2, q3 = q

    roll = np.arctan2(2.0 * (q0 * q1 + q2 * q3), 1.0 - 2.0 * (q1 * q1 + q2 * q2))
    sin_pitch = np.clip(2.0 * (q0 * q2 - q3 * q1), -1.0, 1.0)
    pitch = np.arcsin(sin_pitch)
    yaw = np.arctan2(2.0 * (q0 * q3 + q1 * q2), 1.0 - 2.0 * (q2 * q2 + q3 * q3))

    return np.array([roll, pitch, yaw], dtype=np.float64)
