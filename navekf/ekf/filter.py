"""
24-state aided inertial navigation filter.

NavEKF24 ties the pieces together:

    IMU sample      -> predict_state -> predict_covariance -> reset_error_state
    aiding sensor   -> measurement model (one axis) -> fuse_scalar (+ reset)

Prediction runs at IMU rate in strictly increasing time order. Aiding
measurements may arrive at any rate and are fused onto the most recent
prediction; delaying the IMU to the measurement time is the caller's job.

Every public call that touches the state holds one re-entrant lock, so an
IMU thread and a sensor thread can share a filter instance.

Example:
    >>> import numpy as np
    >>> ekf = NavEKF24()
    >>> ekf.initialize()
    >>> ekf.predict(np.zeros(3), np.array([0.0, 0.0, -9.80665 * 0.01]))
    >>> results = ekf.fuse_velocity(np.array([0.0, 0.0, 0.0]))
    >>> all(r.applied for r in results)
    True
"""

import threading
from typing import Callable, List, Optional, Sequence

import numpy as np

from navekf.ekf import measurements
from navekf.ekf.config import EKFConfig
from navekf.ekf.covariance import predict_covariance
from navekf.ekf.fusion import (
    FusionResult,
    InnovationGate,
    fuse_scalar,
    reset_error_state,
    unavailable,
)
from navekf.ekf.measurements import ObservationUnavailable, ScalarObservation
from navekf.ekf.prediction import predict_state
from navekf.ekf.states import NavState, StateIndex, default_state_vector
from navekf.fusion.types import AidingMeasurement, MeasurementKind
from navekf.sensors.types import ImuDeltaSample


def _axis_variances(values: Optional[Sequence[float]], defaults: np.ndarray) -> np.ndarray:
    if values is None:
        return defaults
    values = np.atleast_1d(np.asarray(values, dtype=float))
    if values.shape != defaults.shape:
        raise ValueError(f"Expected {defaults.size} variances, got shape {values.shape}")
    if np.any(np.isnan(values)) or np.any(values < 0):
        raise ValueError(f"Measurement variances must be non-negative, got {values}")
    return values


def _scalar_variance(value: Optional[float], default: float) -> float:
    if value is None:
        return default
    return float(_axis_variances([value], np.array([default]))[0])


def _vector(values, size: int, name: str) -> np.ndarray:
    values = np.asarray(values, dtype=float)
    if values.shape != (size,):
        raise ValueError(f"{name} must have shape ({size},), got {values.shape}")
    return values


class NavEKF24:
    """
    Rotation-vector EKF with 24 states.

    Args:
        config: Filter configuration. Default: EKFConfig.default().
        gate: Optional innovation consistency test gate(y, S) -> accept,
            applied to every scalar fusion (e.g. fusion.ChiSquareGate()).

    Attributes:
        config: Active configuration.
        gate: Active gate or None.
        time_s: Timestamp of the last prediction, if timestamps are used.
    """

    def __init__(self, config: Optional[EKFConfig] = None, gate: Optional[InnovationGate] = None):
        self.config = config if config is not None else EKFConfig.default()
        self.gate = gate
        self.time_s: Optional[float] = None
        self._state: Optional[NavState] = None
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def initialize(
        self,
        q0: Optional[np.ndarray] = None,
        velocity: Optional[np.ndarray] = None,
        position: Optional[np.ndarray] = None,
        mag_earth: Optional[np.ndarray] = None,
        mag_body: Optional[np.ndarray] = None,
        wind: Optional[np.ndarray] = None,
        P0: Optional[np.ndarray] = None,
        t: Optional[float] = None,
    ) -> None:
        """
        Create the state and covariance.

        Args:
            q0: Initial attitude quaternion (body to NED). Default: level, north.
            velocity: Initial NED velocity (m/s). Default: zero.
            position: Initial NED position (m). Default: zero.
            mag_earth: Initial earth field (mGauss). Default: zero.
            mag_body: Initial body field (mGauss). Default: zero.
            wind: Initial NE wind (m/s). Default: zero.
            P0: Initial covariance (24 x 24). Default: config.initial.
            t: Optional start time (s) for timestamp ordering.

        Raises:
            ValueError: On bad shapes, a non-finite P0 or t, or a negative
                initial variance.
        """
        x = default_state_vector()
        if velocity is not None:
            x[StateIndex.VEL] = _vector(velocity, 3, "velocity")
        if position is not None:
            x[StateIndex.POS] = _vector(position, 3, "position")
        if mag_earth is not None:
            x[StateIndex.MAG_NED] = _vector(mag_earth, 3, "mag_earth")
        if mag_body is not None:
            x[StateIndex.MAG_BODY] = _vector(mag_body, 3, "mag_body")
        if wind is not None:
            x[StateIndex.WIND] = _vector(wind, 2, "wind")

        q = np.array([1.0, 0.0, 0.0, 0.0]) if q0 is None else _vector(q0, 4, "q0")
        if P0 is None:
            P = self.config.initial.covariance()
        else:
            P = np.asarray(P0, dtype=float)
            if not np.all(np.isfinite(P)):
                raise ValueError("P0 must be finite")
            if P.ndim == 2 and np.any(np.diag(P) < 0):
                raise ValueError(f"P0 must have a non-negative diagonal, got {np.diag(P)}")
        if t is not None and not np.isfinite(t):
            raise ValueError(f"Start time must be finite, got {t}")

        with self._lock:
            self._state = NavState(x=x, q=q, P=P, variance_floor=self.config.variance_floor)
            self.time_s = t

    reset = initialize

    @property
    def is_initialized(self) -> bool:
        return self._state is not None

    def _require_state(self) -> NavState:
        if self._state is None:
            raise RuntimeError("Filter must be initialized before use")
        return self._state

    # ------------------------------------------------------------------
    # Prediction
    # ------------------------------------------------------------------

    def predict(
        self,
        delta_angle: np.ndarray,
        delta_velocity: np.ndarray,
        dt: Optional[float] = None,
        t: Optional[float] = None,
    ) -> None:
        """
        Advance state and covariance by one IMU sample.

        Args:
            delta_angle: Raw delta angle (rad), shape (3,).
            delta_velocity: Raw delta velocity (m/s), shape (3,).
            dt: Sample interval (s). Default: config.dt_imu.
            t: Optional timestamp at the end of the sample (s); must be
                strictly increasing.

        Raises:
            RuntimeError: If the filter is not initialized.
            ValueError: On non-positive dt, bad inputs, non-finite or
                out-of-order t.
        """
        dt = self.config.dt_imu if dt is None else float(dt)
        if t is not None and not np.isfinite(t):
            raise ValueError(f"IMU timestamp must be finite, got {t}")
        with self._lock:
            state = self._require_state()
            if t is not None and self.time_s is not None and t <= self.time_s:
                raise ValueError(
                    f"IMU samples must be strictly increasing in time: {t} <= {self.time_s}"
                )

            x_new, imu = predict_state(
                state.x, state.q, delta_angle, delta_velocity, dt, self.config.gravity
            )
            P_new = predict_covariance(state.P, state.q, imu, self.config.process)

            state.x = x_new
            state.P = P_new
            state.condition()
            reset_error_state(state)
            state.diagnostics["predictions"] += 1

            if t is not None:
                self.time_s = float(t)
            elif self.time_s is not None:
                self.time_s += dt

    def predict_sample(self, sample: ImuDeltaSample) -> None:
        """Advance by one ImuDeltaSample."""
        self.predict(sample.delta_angle, sample.delta_velocity, dt=sample.dt, t=sample.t)

    # ------------------------------------------------------------------
    # Fusion
    # ------------------------------------------------------------------

    def _fuse(self, label: str, build: Callable[[NavState], ScalarObservation]) -> FusionResult:
        with self._lock:
            state = self._require_state()
            try:
                obs = build(state)
            except ObservationUnavailable:
                return unavailable(state, label)
            return fuse_scalar(state, obs, gate=self.gate, joseph=self.config.joseph_update)

    def fuse_velocity(
        self, velocity_ned: np.ndarray, variances: Optional[Sequence[float]] = None
    ) -> List[FusionResult]:
        """Fuse NED velocity, north then east then down."""
        z = _vector(velocity_ned, 3, "velocity_ned")
        R = _axis_variances(variances, self.config.measurement.velocity())
        return [
            self._fuse(f"vel_{measurements.NED_NAMES[i]}",
                       lambda s, i=i: measurements.velocity_ned(s, i, z[i], R[i]))
            for i in range(3)
        ]

    def fuse_position(
        self, position_ned: np.ndarray, variances: Optional[Sequence[float]] = None
    ) -> List[FusionResult]:
        """Fuse NED position, north then east then down."""
        z = _vector(position_ned, 3, "position_ned")
        R = _axis_variances(variances, self.config.measurement.position())
        return [
            self._fuse(f"pos_{measurements.NED_NAMES[i]}",
                       lambda s, i=i: measurements.position_ned(s, i, z[i], R[i]))
            for i in range(3)
        ]

    def fuse_airspeed(self, airspeed: float, variance: Optional[float] = None) -> FusionResult:
        """Fuse a true airspeed (m/s)."""
        R = _scalar_variance(variance, self.config.measurement.r_tas)
        return self._fuse("tas", lambda s: measurements.true_airspeed(
            s, airspeed, R, self.config.min_airspeed))

    def fuse_sideslip(self, beta: float = 0.0, variance: Optional[float] = None) -> FusionResult:
        """Fuse a sideslip angle (rad); zero is the usual synthetic value for fixed wings."""
        R = _scalar_variance(variance, self.config.measurement.r_beta)
        return self._fuse("beta", lambda s: measurements.sideslip(
            s, beta, R, self.config.min_airspeed))

    def fuse_magnetometer(
        self, mag_body: np.ndarray, variances: Optional[Sequence[float]] = None
    ) -> List[FusionResult]:
        """Fuse the three magnetometer axes as independent scalar updates."""
        z = _vector(mag_body, 3, "mag_body")
        R = _axis_variances(variances, np.full(3, self.config.measurement.r_mag))
        return [
            self._fuse(f"mag_{measurements.AXIS_NAMES[i]}",
                       lambda s, i=i: measurements.magnetic_flux(s, i, z[i], R[i]))
            for i in range(3)
        ]

    def fuse_mag_heading(
        self,
        mag_body: np.ndarray,
        variance: Optional[float] = None,
        declination: Optional[float] = None,
    ) -> FusionResult:
        """Fuse the heading implied by a magnetometer reading (attitude only)."""
        z = _vector(mag_body, 3, "mag_body")
        R = _scalar_variance(variance, self.config.measurement.r_mag_heading)
        decl = self.config.declination if declination is None else float(declination)
        return self._fuse("mag_heading", lambda s: measurements.magnetic_heading(s, z, R, decl))

    def fuse_declination(
        self, declination: Optional[float] = None, variance: Optional[float] = None
    ) -> FusionResult:
        """Fuse the known declination against the earth-field states."""
        R = _scalar_variance(variance, self.config.measurement.r_decl)
        decl = self.config.declination if declination is None else float(declination)
        return self._fuse("declination", lambda s: measurements.synthetic_declination(s, decl, R))

    def fuse_optical_flow(
        self,
        flow_xy: np.ndarray,
        variances: Optional[Sequence[float]] = None,
        terrain_down: Optional[float] = None,
    ) -> List[FusionResult]:
        """Fuse motion-compensated flow rates about body X then body Y (rad/s)."""
        z = _vector(flow_xy, 2, "flow_xy")
        R = _axis_variances(variances, np.full(2, self.config.measurement.r_los))
        ptd = self.config.terrain_down if terrain_down is None else float(terrain_down)
        return [
            self._fuse(f"los_{measurements.AXIS_NAMES[i]}",
                       lambda s, i=i: measurements.optical_flow(
                           s, i, z[i], R[i], ptd, self.config.min_range))
            for i in range(2)
        ]

    def fuse_lateral_accel(
        self, accel_xy: np.ndarray, variances: Optional[Sequence[float]] = None
    ) -> List[FusionResult]:
        """Fuse body X then body Y specific force against the rotor drag model (m/s²)."""
        z = _vector(accel_xy, 2, "accel_xy")
        R = _axis_variances(variances, np.full(2, self.config.measurement.r_acc))
        cfg = self.config
        bc_inv = (cfg.bcx_inv, cfg.bcy_inv)
        return [
            self._fuse(f"acc_{measurements.AXIS_NAMES[i]}",
                       lambda s, i=i: measurements.lateral_acceleration(
                           s, i, z[i], R[i], cfg.k_acc, cfg.drag_model,
                           cfg.air_density, bc_inv[i]))
            for i in range(2)
        ]

    def fuse(self, measurement: AidingMeasurement) -> List[FusionResult]:
        """
        Fuse a typed aiding measurement.

        Args:
            measurement: AidingMeasurement; R=None uses the configured
                variances. meta may carry 'declination' (mag_heading) or
                'terrain_down' (optical_flow). The declination kind takes
                its value from z[0]. measurement.t is not used; aiding
                data fuses onto the latest prediction.

        Returns:
            One FusionResult per fused scalar.
        """
        kind = measurement.kind
        z = measurement.z
        R = measurement.R
        meta = measurement.meta

        if kind is MeasurementKind.VELOCITY_NED:
            return self.fuse_velocity(z, R)
        if kind is MeasurementKind.POSITION_NED:
            return self.fuse_position(z, R)
        if kind is MeasurementKind.AIRSPEED:
            return [self.fuse_airspeed(z[0], None if R is None else R[0])]
        if kind is MeasurementKind.SIDESLIP:
            return [self.fuse_sideslip(z[0], None if R is None else R[0])]
        if kind is MeasurementKind.MAG_FLUX:
            return self.fuse_magnetometer(z, R)
        if kind is MeasurementKind.MAG_HEADING:
            return [self.fuse_mag_heading(
                z, None if R is None else R[0], meta.get('declination'))]
        if kind is MeasurementKind.DECLINATION:
            return [self.fuse_declination(z[0], None if R is None else R[0])]
        if kind is MeasurementKind.OPTICAL_FLOW:
            return self.fuse_optical_flow(z, R, meta.get('terrain_down'))
        if kind is MeasurementKind.LATERAL_ACCEL:
            return self.fuse_lateral_accel(z, R)
        raise ValueError(f"Unsupported measurement kind {kind!r}")

    # ------------------------------------------------------------------
    # Outputs
    # ------------------------------------------------------------------

    def snapshot(self) -> NavState:
        """Independent copy of the current state store."""
        with self._lock:
            return self._require_state().copy()

    @property
    def state_vector(self) -> np.ndarray:
        with self._lock:
            return self._require_state().x.copy()

    @property
    def covariance(self) -> np.ndarray:
        with self._lock:
            return self._require_state().P.copy()

    @property
    def quaternion(self) -> np.ndarray:
        with self._lock:
            return self._require_state().q.copy()

    @property
    def velocity(self) -> np.ndarray:
        return self.state_vector[StateIndex.VEL]

    @property
    def position(self) -> np.ndarray:
        return self.state_vector[StateIndex.POS]

    @property
    def wind(self) -> np.ndarray:
        return self.state_vector[StateIndex.WIND]

    @property
    def mag_earth(self) -> np.ndarray:
        return self.state_vector[StateIndex.MAG_NED]

    @property
    def mag_body(self) -> np.ndarray:
        return self.state_vector[StateIndex.MAG_BODY]

    @property
    def euler(self) -> np.ndarray:
        with self._lock:
            return self._require_state().euler()

    @property
    def diagnostics(self) -> dict:
        with self._lock:
            return dict(self._require_state().diagnostics)
