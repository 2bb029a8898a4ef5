"""
Sensor data structures for the navigation filter.

Defines the IMU input packet consumed by the state predictor and the IMU
noise specification used to derive the process noise.

Frame conventions:
    - Body frame: X forward, Y right, Z down (XYZ body-fixed axes)
    - Navigation frame: local North-East-Down (NED) tangent plane
    - IMU data arrives as integrated delta angles (rad) and delta
      velocities (m/s) over one sample interval dt

A stationary, level IMU in NED therefore reports a delta velocity of
[0, 0, -g * dt]: the specific force is the upward reaction to gravity.
"""

from dataclasses import dataclass
from typing import Optional

import numpy as np

from navekf.sensors.units import (
    arw_to_delta_angle_variance,
    deg_per_hour_to_rad_per_sec,
    deg_per_sqrt_hour_to_rad_per_sqrt_sec,
    mg_to_mps2,
    mps_per_sqrt_hour_to_mps_per_sqrt_sec,
    vrw_to_delta_velocity_variance,
)


@dataclass(frozen=True)
class IMUNoiseParams:
    """
    IMU noise and bias parameters with explicit units in field names.

    Attributes:
        gyro_arw_rad_sqrt_s: Angular Random Walk coefficient (rad/√s).
        accel_vrw_mps_sqrt_s: Velocity Random Walk coefficient (m/s/√s).
        gyro_bias_rad_s: Gyroscope bias instability (rad/s). Sets the
            initial uncertainty of the delta-angle bias states.
        accel_bias_mps2: Accelerometer bias instability (m/s²). Sets the
            initial uncertainty of the Z delta-velocity bias state.
        gyro_bias_rw_rad_s_sqrt_s: Gyro bias random walk (rad/s/√s).
        accel_bias_rw_mps2_sqrt_s: Accelerometer bias random walk (m/s²/√s).
        grade: IMU grade label, for documentation only.

    Example:
        >>> params = IMUNoiseParams.consumer_grade()
        >>> var_dang, var_dvel = params.delta_variances(dt=0.01)
    """

    gyro_arw_rad_sqrt_s: float
    accel_vrw_mps_sqrt_s: float
    gyro_bias_rad_s: float
    accel_bias_mps2: float
    gyro_bias_rw_rad_s_sqrt_s: float = 0.0
    accel_bias_rw_mps2_sqrt_s: float = 0.0
    grade: str = 'unknown'

    def __post_init__(self) -> None:
        for name in (
            'gyro_arw_rad_sqrt_s',
            'accel_vrw_mps_sqrt_s',
            'gyro_bias_rad_s',
            'accel_bias_mps2',
            'gyro_bias_rw_rad_s_sqrt_s',
            'accel_bias_rw_mps2_sqrt_s',
        ):
            value = getattr(self, name)
            if not np.isfinite(value) or value < 0:
                raise ValueError(f"IMUNoiseParams.{name} must be non-negative, got {value}")

    @classmethod
    def consumer_grade(cls) -> "IMUNoiseParams":
        """Typical MEMS autopilot IMU (hobby and small commercial UAVs)."""
        return cls(
            gyro_arw_rad_sqrt_s=deg_per_sqrt_hour_to_rad_per_sqrt_sec(0.5),
            accel_vrw_mps_sqrt_s=mps_per_sqrt_hour_to_mps_per_sqrt_sec(0.1),
            gyro_bias_rad_s=deg_per_hour_to_rad_per_sec(20.0),
            accel_bias_mps2=mg_to_mps2(20.0),
            gyro_bias_rw_rad_s_sqrt_s=deg_per_hour_to_rad_per_sec(1.0),
            accel_bias_rw_mps2_sqrt_s=mg_to_mps2(0.1),
            grade='consumer',
        )

    @classmethod
    def tactical_grade(cls) -> "IMUNoiseParams":
        """Typical tactical-grade MEMS or FOG unit."""
        return cls(
            gyro_arw_rad_sqrt_s=deg_per_sqrt_hour_to_rad_per_sqrt_sec(0.05),
            accel_vrw_mps_sqrt_s=mps_per_sqrt_hour_to_mps_per_sqrt_sec(0.02),
            gyro_bias_rad_s=deg_per_hour_to_rad_per_sec(1.0),
            accel_bias_mps2=mg_to_mps2(1.0),
            gyro_bias_rw_rad_s_sqrt_s=deg_per_hour_to_rad_per_sec(0.05),
            accel_bias_rw_mps2_sqrt_s=mg_to_mps2(0.01),
            grade='tactical',
        )

    def delta_variances(self, dt: float):
        """
        Per-sample delta-angle and delta-velocity noise variances.

        Args:
            dt: IMU sample interval (s).

        Returns:
            Tuple (var_delta_angle [rad²], var_delta_velocity [(m/s)²]).
        """
        return (
            arw_to_delta_angle_variance(self.gyro_arw_rad_sqrt_s, dt),
            vrw_to_delta_velocity_variance(self.accel_vrw_mps_sqrt_s, dt),
        )


@dataclass(frozen=True)
class ImuDeltaSample:
    """
    One IMU sample expressed as integrated increments.

    Attributes:
        delta_angle: Integrated body angular rate over dt (rad), shape (3,).
        delta_velocity: Integrated body specific force over dt (m/s), shape (3,).
        dt: Sample interval (s), must be positive.
        t: Optional timestamp of the end of the interval (s).
    """

    delta_angle: np.ndarray
    delta_velocity: np.ndarray
    dt: float
    t: Optional[float] = None

    def __post_init__(self) -> None:
        """Validate shapes and interval."""
        if np.shape(self.delta_angle) != (3,):
            raise ValueError(
                f"ImuDeltaSample.delta_angle must have shape (3,), got {np.shape(self.delta_angle)}"
            )
        if np.shape(self.delta_velocity) != (3,):
            raise ValueError(
                f"ImuDeltaSample.delta_velocity must have shape (3,), "
                f"got {np.shape(self.delta_velocity)}"
            )
        if not np.isfinite(self.dt) or self.dt <= 0:
            raise ValueError(f"ImuDeltaSample.dt must be positive, got {self.dt}")
        if not (np.all(np.isfinite(self.delta_angle)) and np.all(np.isfinite(self.delta_velocity))):
            raise ValueError("ImuDeltaSample contains non-finite values")

    @classmethod
    def from_rates(
        cls,
        gyro_rad_s: np.ndarray,
        accel_mps2: np.ndarray,
        dt: float,
        t: Optional[float] = None,
    ) -> "ImuDeltaSample":
        """
        Build a sample from rate-type readings held constant over dt.

        Args:
            gyro_rad_s: Angular rate in body frame (rad/s), shape (3,).
            accel_mps2: Specific force in body frame (m/s²), shape (3,).
            dt: Sample interval (s).
            t: Optional timestamp (s).
        """
        gyro_rad_s = np.asarray(gyro_rad_s, dtype=float)
        accel_mps2 = np.asarray(accel_mps2, dtype=float)
        return cls(
            delta_angle=gyro_rad_s * dt,
            delta_velocity=accel_mps2 * dt,
            dt=float(dt),
            t=t,
        )
