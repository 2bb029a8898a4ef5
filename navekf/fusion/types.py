"""Aiding measurement packets for the navigation filter.

Aiding sensors arrive asynchronously to the IMU. Each packet carries a
type tag, the measured value(s) and optional per-axis noise variances;
axes are fused one scalar at a time, so variances are a vector, not a
covariance matrix. Missing variances fall back to the filter
configuration.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

import numpy as np


class MeasurementKind(str, Enum):
    """Type tag of an aiding measurement and its value dimension."""

    VELOCITY_NED = "velocity_ned"
    POSITION_NED = "position_ned"
    AIRSPEED = "airspeed"
    SIDESLIP = "sideslip"
    MAG_FLUX = "mag_flux"
    MAG_HEADING = "mag_heading"
    DECLINATION = "declination"
    OPTICAL_FLOW = "optical_flow"
    LATERAL_ACCEL = "lateral_accel"

    @property
    def dimension(self) -> int:
        return _DIMENSIONS[self]


_DIMENSIONS = {
    MeasurementKind.VELOCITY_NED: 3,
    MeasurementKind.POSITION_NED: 3,
    MeasurementKind.AIRSPEED: 1,
    MeasurementKind.SIDESLIP: 1,
    MeasurementKind.MAG_FLUX: 3,
    # Heading takes the full body-frame field vector
    MeasurementKind.MAG_HEADING: 3,
    MeasurementKind.DECLINATION: 1,
    MeasurementKind.OPTICAL_FLOW: 2,
    MeasurementKind.LATERAL_ACCEL: 2,
}


@dataclass(frozen=True)
class AidingMeasurement:
    """Time-stamped aiding measurement.

    Attributes:
        kind: MeasurementKind (a plain string such as 'airspeed' is accepted).
        z: Measured value(s), shape (kind.dimension,).
        R: Optional per-axis noise variances. For MAG_HEADING a single
           heading variance. None uses the filter configuration.
        t: Optional timestamp (s). Informational only; NavEKF24.fuse
           applies the measurement at the latest prediction.
        meta: Sensor-specific extras, e.g. {'terrain_down': -2.0} for
              optical flow or {'declination': 0.2} for heading.

    Example:
        >>> meas = AidingMeasurement(
        ...     kind='velocity_ned',
        ...     z=np.array([5.0, 0.0, 0.0]),
        ...     R=np.array([0.01, 0.01, 0.04]),
        ... )
    """

    kind: MeasurementKind
    z: np.ndarray
    R: Optional[np.ndarray] = None
    t: Optional[float] = None
    meta: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        """Validate tag, dimensions and variances."""
        try:
            kind = MeasurementKind(self.kind)
        except ValueError:
            raise ValueError(f"Unknown measurement kind {self.kind!r}") from None
        object.__setattr__(self, "kind", kind)

        z = np.atleast_1d(np.asarray(self.z, dtype=float))
        if z.shape != (kind.dimension,):
            raise ValueError(
                f"{kind.value} measurement must have shape ({kind.dimension},), got {z.shape}"
            )
        if not np.all(np.isfinite(z)):
            raise ValueError(f"{kind.value} measurement contains non-finite values")
        object.__setattr__(self, "z", z)

        if self.R is not None:
            R = np.atleast_1d(np.asarray(self.R, dtype=float))
            n_var = 1 if kind is MeasurementKind.MAG_HEADING else kind.dimension
            if R.shape != (n_var,):
                raise ValueError(
                    f"{kind.value} variances must have shape ({n_var},), got {R.shape}"
                )
            if np.any(np.isnan(R)) or np.any(R < 0):
                raise ValueError(f"Measurement variances must be non-negative, got {R}")
            object.__setattr__(self, "R", R)

        if self.t is not None and self.t < 0:
            raise ValueError(f"Timestamp must be non-negative, got {self.t}")
