"""
Runnable demonstrations of the 24-state navigation filter.

Examples:
    - example_fixed_wing_wind.py: Wind and heading estimation from air
      data, GPS velocity and magnetometer while loitering
    - example_multirotor_flow.py: GPS-denied hover with optical flow,
      rotor drag and magnetic heading
"""

__all__ = []
