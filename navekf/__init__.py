"""Rotation-vector navigation EKF.

This package contains the components of a 24-state aided inertial
navigation filter:
- coords: Quaternion and rotation-vector algebra
- utils: Angle helpers
- sensors: IMU sample packets and noise densities
- ekf: State store, prediction, covariance propagation, measurement
  models and sequential fusion
- fusion: Aiding measurement packets and innovation gating
- sim: Synthetic IMU data from analytic trajectories
"""

__version__ = "0.1.0"
