"""
Unit conversion utilities for IMU and magnetometer specifications.

Datasheets quote gyro and accelerometer noise in deg/√hr, m/s/√hr, deg/hr
and mg, and magnetometers in Gauss. The filter works on delta angles (rad),
delta velocities (m/s) and milligauss, so every conversion is spelled out
with both units in the function name.

The last group converts random-walk coefficients into the per-sample
disturbance variances the covariance predictor consumes: a white rate
noise with random-walk coefficient N integrates over one sample interval
dt into a delta with variance N² · dt.
"""

from typing import Union

import numpy as np

Numeric = Union[float, np.ndarray]

STANDARD_GRAVITY = 9.80665  # m/s² (ISO 80000-3:2006)


# ============================================================================
# Gyroscope Unit Conversions
# ============================================================================

def deg_per_hour_to_rad_per_sec(deg_per_hr: Numeric) -> Numeric:
    """
    Convert gyroscope bias from deg/hr to rad/s.

    Example:
        >>> print(f"{deg_per_hour_to_rad_per_sec(10.0):.6f} rad/s")
        0.000048 rad/s
    """
    return np.deg2rad(deg_per_hr) / 3600.0


def deg_per_sqrt_hour_to_rad_per_sqrt_sec(deg_per_sqrt_hr: Numeric) -> Numeric:
    """Convert gyroscope Angular Random Walk (ARW) from deg/√hr to rad/√s."""
    return np.deg2rad(deg_per_sqrt_hr) / np.sqrt(3600.0)


# ============================================================================
# Accelerometer Unit Conversions
# ============================================================================

def mg_to_mps2(mg: Numeric) -> Numeric:
    """
    Convert acceleration from milligravity (mg) to m/s².

    Example:
        >>> print(f"{mg_to_mps2(10.0):.6f} m/s²")
        0.098067 m/s²
    """
    return mg * 0.001 * STANDARD_GRAVITY


def mps_per_sqrt_hour_to_mps_per_sqrt_sec(mps_per_sqrt_hr: Numeric) -> Numeric:
    """Convert accelerometer Velocity Random Walk (VRW) from m/s/√hr to m/s/√s."""
    return mps_per_sqrt_hr / np.sqrt(3600.0)


# ============================================================================
# Magnetometer Unit Conversions
# ============================================================================

def gauss_to_milligauss(gauss: Numeric) -> Numeric:
    """Convert magnetic flux density from Gauss to milligauss."""
    return gauss * 1000.0


def microtesla_to_milligauss(microtesla: Numeric) -> Numeric:
    """
    Convert magnetic flux density from µT to milligauss (1 µT = 10 mGauss).

    Example:
        >>> microtesla_to_milligauss(50.0)
        500.0
    """
    return microtesla * 10.0


# ============================================================================
# Per-sample disturbance variances
# ============================================================================

def arw_to_delta_angle_variance(arw_rad_sqrt_s: Numeric, dt: float) -> Numeric:
    """
    Variance of one delta-angle sample from the gyro ARW.

    Args:
        arw_rad_sqrt_s: Angular Random Walk in rad/√s.
        dt: IMU sample interval in seconds.

    Returns:
        Delta-angle noise variance in rad².

    Raises:
        ValueError: If dt is not positive.
    """
    if dt <= 0:
        raise ValueError(f"dt must be positive, got {dt}")
    return arw_rad_sqrt_s**2 * dt


def vrw_to_delta_velocity_variance(vrw_mps_sqrt_s: Numeric, dt: float) -> Numeric:
    """
    Variance of one delta-velocity sample from the accelerometer VRW.

    Args:
        vrw_mps_sqrt_s: Velocity Random Walk in m/s/√s.
        dt: IMU sample interval in seconds.

    Returns:
        Delta-velocity noise variance in (m/s)².

    Raises:
        ValueError: If dt is not positive.
    """
    if dt <= 0:
        raise ValueError(f"dt must be positive, got {dt}")
    return vrw_mps_sqrt_s**2 * dt


def rate_bias_to_delta_angle_bias(bias_rad_s: Numeric, dt: float) -> Numeric:
    """Express a gyro rate bias (rad/s) as a per-sample delta-angle bias (rad)."""
    return bias_rad_s * dt


def accel_bias_to_delta_velocity_bias(bias_mps2: Numeric, dt: float) -> Numeric:
    """Express an accelerometer bias (m/s²) as a per-sample delta-velocity bias (m/s)."""
    return bias_mps2 * dt
