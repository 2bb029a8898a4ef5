"""
Simulation utilities for exercising the filter on synthetic data.

Modules:
    imu_from_trajectory: Truth trajectories and the IMU delta samples
        that reproduce them
    aiding: Ideal magnetometer, airspeed and optical-flow readings
"""

from navekf.sim.aiding import (
    mag_field_ned,
    magnetometer_reading,
    optical_flow_reading,
    true_airspeed_reading,
)
from navekf.sim.imu_from_trajectory import (
    TruthTrajectory,
    constant_turn_trajectory,
    imu_deltas_from_trajectory,
    simulate_imu,
    specific_force_body,
)

__all__ = [
    "TruthTrajectory",
    "constant_turn_trajectory",
    "imu_deltas_from_trajectory",
    "mag_field_ned",
    "magnetometer_reading",
    "optical_flow_reading",
    "simulate_imu",
    "specific_force_body",
    "true_airspeed_reading",
]
