"""
Ideal aiding sensor readings from a truth trajectory.

These are the forward models of the filter's measurement equations,
evaluated on truth; tests and examples add noise themselves.
"""

from typing import Optional

import numpy as np

from navekf.coords.rotations import quat_to_dcm


def magnetometer_reading(
    quat_b_to_n: np.ndarray,
    mag_ned: np.ndarray,
    mag_body: Optional[np.ndarray] = None,
) -> np.ndarray:
    """Body-frame flux Tbn^T magNED + magXYZ (mGauss)."""
    b = quat_to_dcm(quat_b_to_n).T @ np.asarray(mag_ned, dtype=float)
    if mag_body is not None:
        b = b + np.asarray(mag_body, dtype=float)
    return b


def true_airspeed_reading(vel_ned: np.ndarray, wind_ne: Optional[np.ndarray] = None) -> float:
    """Norm of the wind-relative velocity (m/s)."""
    rel = np.array(vel_ned, dtype=float)
    if wind_ne is not None:
        rel[0:2] -= np.asarray(wind_ne, dtype=float)
    return float(np.linalg.norm(rel))


def optical_flow_reading(
    quat_b_to_n: np.ndarray,
    vel_ned: np.ndarray,
    pos_ned: np.ndarray,
    terrain_down: float = 0.0,
) -> np.ndarray:
    """[losX, losY] flow rates (rad/s) of a body-aligned downward camera."""
    Tbn = quat_to_dcm(quat_b_to_n)
    rng = (terrain_down - pos_ned[2]) / Tbn[2, 2]
    vb = Tbn.T @ np.asarray(vel_ned, dtype=float)
    return np.array([vb[1] / rng, -vb[0] / rng])


def mag_field_ned(intensity: float, inclination: float, declination: float) -> np.ndarray:
    """
    Earth field vector in NED from intensity and angles.

    Args:
        intensity: Total field (mGauss).
        inclination: Dip angle, positive down (rad).
        declination: Angle of the horizontal field east of true north (rad).

    Example:
        >>> m = mag_field_ned(500.0, 0.0, 0.0)
        >>> np.allclose(m, [500.0, 0.0, 0.0])
        True
    """
    horiz = intensity * np.cos(inclination)
    return np.array([
        horiz * np.cos(declination),
        horiz * np.sin(declination),
        intensity * np.sin(inclination),
    ])
