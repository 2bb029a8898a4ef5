"""
Angle wrapping utilities for heading-type innovations.

Magnetic heading and declination observations are angles; their
innovations must be taken on the circle so that a predicted heading of
-179° and a measured heading of +179° differ by 2°, not 358°.
"""

from typing import Union

import numpy as np


def wrap_angle(angle: float) -> float:
    """
    Wrap angle to [-π, π].

    Args:
        angle: Angle in radians (any value).

    Returns:
        Equivalent angle in [-π, π].

    Example:
        >>> wrap_angle(3.5 * np.pi)
        -1.5707963267948966
    """
    return float(np.arctan2(np.sin(angle), np.cos(angle)))


def angle_diff(angle1: Union[float, np.ndarray],
               angle2: Union[float, np.ndarray]) -> Union[float, np.ndarray]:
    """
    Shortest signed difference angle1 - angle2, wrapped to [-π, π].

    Used as innovation = angle_diff(measured, predicted).

    Example:
        >>> round(angle_diff(np.pi - 0.1, -np.pi + 0.1), 6)
        -0.2
    """
    if isinstance(angle1, np.ndarray) or isinstance(angle2, np.ndarray):
        diff = np.asarray(angle1) - np.asarray(angle2)
        return np.arctan2(np.sin(diff), np.cos(diff))
    return wrap_angle(angle1 - angle2)
