"""
Inertial sensor inputs for the navigation filter.

Modules:
    types: IMU delta-angle/delta-velocity packet and IMU noise parameters
    units: Datasheet unit conversions and per-sample disturbance variances

Example:
    >>> import numpy as np
    >>> from navekf.sensors import ImuDeltaSample, IMUNoiseParams
    >>> sample = ImuDeltaSample.from_rates(
    ...     gyro_rad_s=np.zeros(3),
    ...     accel_mps2=np.array([0.0, 0.0, -9.80665]),
    ...     dt=0.01,
    ... )
    >>> var_dang, var_dvel = IMUNoiseParams.consumer_grade().delta_variances(0.01)
"""

from navekf.sensors import units
from navekf.sensors.types import IMUNoiseParams, ImuDeltaSample

__all__ = [
    "IMUNoiseParams",
    "ImuDeltaSample",
    "units",
]
