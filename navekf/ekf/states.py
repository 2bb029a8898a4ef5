"""
State vector layout and the state/covariance store of the 24-state filter.

State Vector (24 scalars):
    x = [rotErr (3), v (3), p (3), dAngBias (3), dAngScale (3),
         dVelBiasZ (1), magNED (3), magXYZ (3), wind (2)]^T

    Where:
        rotErr: Attitude error rotation vector in body axes (rad).
            Always zero between updates; exists to carry attitude
            uncertainty in the covariance.
        v: Velocity in NED (m/s).
        p: Position in NED (m).
        dAngBias: Delta-angle bias in body axes (rad per sample).
        dAngScale: Delta-angle scale factor in body axes (nominal 1).
        dVelBiasZ: Z-axis delta-velocity bias (m/s per sample).
        magNED: Earth magnetic field in NED (mGauss).
        magXYZ: Body-fixed (hard-iron) magnetic field (mGauss).
        wind: North/East wind velocity (m/s).

The attitude itself lives in a separate unit quaternion; the truth
attitude is q ⊗ [1, 0.5 * rotErr].
"""

from dataclasses import dataclass, field
from typing import Dict

import numpy as np

from navekf.coords.rotations import quat_normalize, quat_to_dcm, quat_to_euler

NUM_STATES = 24


class StateIndex:
    """Index map of the 24-element state vector."""

    ROT_ERR = slice(0, 3)
    VEL = slice(3, 6)
    POS = slice(6, 9)
    DANG_BIAS = slice(9, 12)
    DANG_SCALE = slice(12, 15)
    DVEL_BIAS_Z = 15
    MAG_NED = slice(16, 19)
    MAG_BODY = slice(19, 22)
    WIND = slice(22, 24)

    VN, VE, VD = 3, 4, 5
    PN, PE, PD = 6, 7, 8
    MAG_N, MAG_E, MAG_D = 16, 17, 18
    MAG_X, MAG_Y, MAG_Z = 19, 20, 21
    WIND_N, WIND_E = 22, 23


STATE_NAMES = (
    "rotErrX", "rotErrY", "rotErrZ",
    "vn", "ve", "vd",
    "pn", "pe", "pd",
    "dax_b", "day_b", "daz_b",
    "dax_s", "day_s", "daz_s",
    "dvz_b",
    "magN", "magE", "magD",
    "magX", "magY", "magZ",
    "vwn", "vwe",
)


def default_state_vector() -> np.ndarray:
    """State vector at rest: everything zero except unit scale factors."""
    x = np.zeros(NUM_STATES)
    x[StateIndex.DANG_SCALE] = 1.0
    return x


@dataclass
class NavState:
    """
    Mutable state/covariance store of the filter.

    Attributes:
        x: State vector, shape (24,).
        q: Attitude quaternion estimate (body to NED), shape (4,), unit norm.
        P: State covariance, shape (24, 24), symmetric.
        variance_floor: Lower bound applied to the covariance diagonal.
        diagnostics: Running counters (fusions applied/rejected, floor hits).

    Notes:
        - This is a MUTABLE dataclass; prediction and fusion write into it.
        - condition() must run after every covariance change.
    """

    x: np.ndarray
    q: np.ndarray
    P: np.ndarray
    variance_floor: float = 0.0
    diagnostics: Dict[str, int] = field(default_factory=lambda: {
        "predictions": 0,
        "fusions_applied": 0,
        "fusions_rejected": 0,
        "variance_floor_hits": 0,
    })

    def __post_init__(self) -> None:
        """Validate shapes and normalize the quaternion."""
        self.x = np.asarray(self.x, dtype=float).copy()
        self.P = np.asarray(self.P, dtype=float).copy()
        if self.x.shape != (NUM_STATES,):
            raise ValueError(f"NavState.x must have shape ({NUM_STATES},), got {self.x.shape}")
        if self.P.shape != (NUM_STATES, NUM_STATES):
            raise ValueError(
                f"NavState.P must have shape ({NUM_STATES}, {NUM_STATES}), got {self.P.shape}"
            )
        if self.variance_floor < 0:
            raise ValueError(f"variance_floor must be non-negative, got {self.variance_floor}")
        if not (np.all(np.isfinite(self.x)) and np.all(np.isfinite(self.P))):
            raise ValueError("NavState.x and NavState.P must be finite")

        q = np.asarray(self.q, dtype=float)
        q_norm = np.linalg.norm(q)
        if not np.isclose(q_norm, 1.0, atol=1e-3):
            import warnings

            warnings.warn(
                f"NavState initialized with non-unit quaternion "
                f"(||q|| = {q_norm:.6f}). Normalizing.",
                UserWarning,
            )
        self.q = quat_normalize(q)
        self.condition()

    # ------------------------------------------------------------------
    # Covariance conditioning
    # ------------------------------------------------------------------

    def condition(self) -> None:
        """Symmetrize P and floor its diagonal at variance_floor."""
        self.P = 0.5 * (self.P + self.P.T)
        diag = np.diagonal(self.P)
        low = diag < self.variance_floor
        if np.any(low):
            idx = np.flatnonzero(low)
            self.P[idx, idx] = self.variance_floor
            self.diagnostics["variance_floor_hits"] += int(idx.size)

    def asymmetry(self) -> float:
        """Largest absolute entry of P - P^T."""
        return float(np.max(np.abs(self.P - self.P.T)))

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def rot_err(self) -> np.ndarray:
        return self.x[StateIndex.ROT_ERR]

    @property
    def velocity(self) -> np.ndarray:
        return self.x[StateIndex.VEL]

    @property
    def position(self) -> np.ndarray:
        return self.x[StateIndex.POS]

    @property
    def delta_angle_bias(self) -> np.ndarray:
        return self.x[StateIndex.DANG_BIAS]

    @property
    def delta_angle_scale(self) -> np.ndarray:
        return self.x[StateIndex.DANG_SCALE]

    @property
    def delta_velocity_bias_z(self) -> float:
        return float(self.x[StateIndex.DVEL_BIAS_Z])

    @property
    def mag_earth(self) -> np.ndarray:
        return self.x[StateIndex.MAG_NED]

    @property
    def mag_body(self) -> np.ndarray:
        return self.x[StateIndex.MAG_BODY]

    @property
    def wind(self) -> np.ndarray:
        return self.x[StateIndex.WIND]

    def dcm(self) -> np.ndarray:
        """Body-to-NED direction cosine matrix of the quaternion estimate."""
        return quat_to_dcm(self.q)

    def euler(self) -> np.ndarray:
        """[roll, pitch, yaw] of the quaternion estimate (rad)."""
        return quat_to_euler(self.q)

    def variances(self) -> np.ndarray:
        """Diagonal of P."""
        return np.diagonal(self.P).copy()

    def copy(self) -> "NavState":
        """Deep copy (state, quaternion, covariance and counters)."""
        new = NavState.__new__(NavState)
        new.x = self.x.copy()
        new.q = self.q.copy()
        new.P = self.P.copy()
        new.variance_floor = self.variance_floor
        new.diagnostics = dict(self.diagnostics)
        return new
