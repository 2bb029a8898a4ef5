"""
Generate synthetic IMU delta samples from a ground truth trajectory.

Accelerometers measure specific force, not acceleration. In NED with
gravity along +down, a stationary level IMU reads f_b = [0, 0, -g]:

    f_b = Tbn^T (a_ned - [0, 0, g])

Over one sample the filter integrates

    v_{k+1} = v_k + Tbn(q_k) dVel_k + [0, 0, g] dt

so the delta velocity that reproduces a truth trajectory exactly is

    dVel_k = Tbn(q_k)^T (v_{k+1} - v_k - [0, 0, g] dt)

and the delta angle is the exact rotation vector of q_k⁻¹ ⊗ q_{k+1}.
Noise and constant biases can be added on top.
"""

from dataclasses import dataclass
from typing import List, Optional, Tuple

import numpy as np

from navekf.coords.rotations import (
    euler_to_quat,
    quat_conjugate,
    quat_multiply,
    quat_to_dcm,
    quat_to_rotvec,
)
from navekf.sensors.types import IMUNoiseParams, ImuDeltaSample
from navekf.sensors.units import STANDARD_GRAVITY


@dataclass(frozen=True)
class TruthTrajectory:
    """
    Sampled ground truth.

    Attributes:
        t: Sample times (s), shape (N,).
        pos_ned: NED position (m), shape (N, 3).
        vel_ned: NED velocity (m/s), shape (N, 3).
        quat: Body-to-NED quaternions, shape (N, 4).
    """

    t: np.ndarray
    pos_ned: np.ndarray
    vel_ned: np.ndarray
    quat: np.ndarray

    def __post_init__(self) -> None:
        n = len(self.t)
        if n < 2:
            raise ValueError("TruthTrajectory needs at least two samples")
        for name, arr, width in (("pos_ned", self.pos_ned, 3),
                                 ("vel_ned", self.vel_ned, 3),
                                 ("quat", self.quat, 4)):
            if np.shape(arr) != (n, width):
                raise ValueError(f"{name} must have shape ({n}, {width}), got {np.shape(arr)}")

    @property
    def dt(self) -> float:
        return float(self.t[1] - self.t[0])

    def __len__(self) -> int:
        return len(self.t)


def specific_force_body(
    accel_ned: np.ndarray,
    quat_b_to_n: np.ndarray,
    g: float = STANDARD_GRAVITY,
) -> np.ndarray:
    """
    Specific force in body axes from true NED acceleration.

    Args:
        accel_ned: True acceleration in NED (m/s²), shape (3,).
        quat_b_to_n: Body-to-NED quaternion, shape (4,).
        g: Gravity magnitude (m/s²).

    Returns:
        Ideal accelerometer reading (m/s²), shape (3,).

    Example:
        >>> f_b = specific_force_body(np.zeros(3), np.array([1.0, 0, 0, 0]))
        >>> np.allclose(f_b, [0.0, 0.0, -9.80665])
        True
    """
    gravity_ned = np.array([0.0, 0.0, g])
    return quat_to_dcm(quat_b_to_n).T @ (np.asarray(accel_ned, dtype=float) - gravity_ned)


def constant_turn_trajectory(
    speed: float,
    yaw_rate: float,
    duration: float,
    dt: float = 0.01,
    yaw0: float = 0.0,
    pos0: Optional[np.ndarray] = None,
) -> TruthTrajectory:
    """
    Level flight at constant speed and yaw rate, body X along the velocity.

    yaw_rate = 0 gives straight and level flight; speed = 0 gives a
    stationary vehicle turning on the spot.

    Args:
        speed: Ground speed (m/s).
        yaw_rate: Turn rate (rad/s), positive clockwise seen from above.
        duration: Trajectory length (s).
        dt: Sample interval (s).
        yaw0: Initial heading (rad).
        pos0: Initial NED position (m). Default: origin.

    Returns:
        TruthTrajectory with N = round(duration / dt) + 1 samples.
    """
    if dt <= 0 or duration <= 0:
        raise ValueError(f"dt and duration must be positive, got dt={dt}, duration={duration}")
    pos0 = np.zeros(3) if pos0 is None else np.asarray(pos0, dtype=float)

    n = int(round(duration / dt)) + 1
    t = np.arange(n) * dt
    yaw = yaw0 + yaw_rate * t

    vel = np.column_stack([speed * np.cos(yaw), speed * np.sin(yaw), np.zeros(n)])
    if abs(yaw_rate) > 1e-12:
        radius = speed / yaw_rate
        pos = np.column_stack([
            pos0[0] + radius * (np.sin(yaw) - np.sin(yaw0)),
            pos0[1] - radius * (np.cos(yaw) - np.cos(yaw0)),
            np.full(n, pos0[2]),
        ])
    else:
        pos = pos0 + np.outer(t, vel[0])

    quat = np.array([euler_to_quat(0.0, 0.0, psi) for psi in yaw])
    return TruthTrajectory(t=t, pos_ned=pos, vel_ned=vel, quat=quat)


def imu_deltas_from_trajectory(
    traj: TruthTrajectory,
    g: float = STANDARD_GRAVITY,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Ideal delta angles and delta velocities between consecutive samples.

    Returns:
        Tuple (delta_angle, delta_velocity), each shape (N - 1, 3).
    """
    n = len(traj)
    dt = traj.dt
    gravity_step = np.array([0.0, 0.0, g * dt])
    delta_angle = np.zeros((n - 1, 3))
    delta_velocity = np.zeros((n - 1, 3))

    for k in range(n - 1):
        q_k = traj.quat[k]
        q_inc = quat_multiply(quat_conjugate(q_k), traj.quat[k + 1])
        delta_angle[k] = quat_to_rotvec(q_inc)
        dv_ned = traj.vel_ned[k + 1] - traj.vel_ned[k] - gravity_step
        delta_velocity[k] = quat_to_dcm(q_k).T @ dv_ned

    return delta_angle, delta_velocity


def simulate_imu(
    traj: TruthTrajectory,
    noise: Optional[IMUNoiseParams] = None,
    gyro_bias: Optional[np.ndarray] = None,
    accel_bias: Optional[np.ndarray] = None,
    rng: Optional[np.random.Generator] = None,
    g: float = STANDARD_GRAVITY,
) -> List[ImuDeltaSample]:
    """
    IMU samples for a truth trajectory with optional noise and biases.

    Args:
        traj: Truth trajectory.
        noise: White-noise densities; None gives ideal samples.
        gyro_bias: Constant gyro bias (rad/s), shape (3,).
        accel_bias: Constant accelerometer bias (m/s²), shape (3,).
        rng: Random generator. Default: np.random.default_rng().
        g: Gravity magnitude (m/s²).

    Returns:
        One ImuDeltaSample per interval, timestamped at its end.
    """
    if rng is None:
        rng = np.random.default_rng()
    dt = traj.dt
    delta_angle, delta_velocity = imu_deltas_from_trajectory(traj, g)

    if gyro_bias is not None:
        delta_angle = delta_angle + np.asarray(gyro_bias, dtype=float) * dt
    if accel_bias is not None:
        delta_velocity = delta_velocity + np.asarray(accel_bias, dtype=float) * dt
    if noise is not None:
        var_dang, var_dvel = noise.delta_variances(dt)
        delta_angle = delta_angle + rng.normal(0.0, np.sqrt(var_dang), delta_angle.shape)
        delta_velocity = delta_velocity + rng.normal(0.0, np.sqrt(var_dvel), delta_velocity.shape)

    return [
        ImuDeltaSample(delta_angle=delta_angle[k], delta_velocity=delta_velocity[k],
                       dt=dt, t=float(traj.t[k + 1]))
        for k in range(len(traj) - 1)
    ]
