"""
Configuration of the 24-state navigation filter.

All configuration objects are frozen dataclasses validated at construction;
an invalid value (negative variance, non-positive dt) raises ValueError and
leaves nothing half-configured. Re-tuning goes through dataclasses.replace,
which re-runs the validation.

Example:
    >>> from dataclasses import replace
    >>> config = EKFConfig.default()
    >>> config = replace(config, measurement=replace(config.measurement, r_tas=4.0))
"""

import warnings
from dataclasses import dataclass, field
from typing import Tuple

import numpy as np

from navekf.ekf.states import NUM_STATES, StateIndex
from navekf.sensors.types import IMUNoiseParams

DRAG_MODELS = ("linear", "quadratic")


def _check_non_negative(owner: str, name: str, value) -> None:
    values = np.atleast_1d(np.asarray(value, dtype=float))
    if not np.all(np.isfinite(values)) or np.any(values < 0):
        raise ValueError(f"{owner}.{name} must be finite and non-negative, got {value}")


def _check_positive(owner: str, name: str, value: float) -> None:
    if not np.isfinite(value) or value <= 0:
        raise ValueError(f"{owner}.{name} must be positive, got {value}")


@dataclass(frozen=True)
class ProcessNoise:
    """
    Process noise of the covariance predictor.

    Attributes:
        delta_angle_var: Variances of the three delta-angle disturbance
            channels (rad²), per IMU sample.
        delta_velocity_var: Variances of the three delta-velocity
            disturbance channels ((m/s)²), per IMU sample.
        dang_bias_rw: Delta-angle bias random walk, variance growth (rad²/s).
        dang_scale_rw: Scale factor random walk, variance growth (1/s).
        dvel_bias_rw: Z delta-velocity bias random walk ((m/s)²/s).
        mag_earth_rw: Earth field random walk (mGauss²/s).
        mag_body_rw: Body field random walk (mGauss²/s).
        wind_rw: Wind random walk ((m/s)²/s).
    """

    delta_angle_var: Tuple[float, float, float] = (1.0e-7, 1.0e-7, 1.0e-7)
    delta_velocity_var: Tuple[float, float, float] = (1.0e-5, 1.0e-5, 1.0e-5)
    dang_bias_rw: float = 1.0e-13
    dang_scale_rw: float = 1.0e-8
    dvel_bias_rw: float = 1.0e-9
    mag_earth_rw: float = 1.0e-2
    mag_body_rw: float = 1.0e-2
    wind_rw: float = 1.0e-2

    def __post_init__(self) -> None:
        if len(self.delta_angle_var) != 3 or len(self.delta_velocity_var) != 3:
            raise ValueError("ProcessNoise disturbance variances must have three channels each")
        for name in (
            'delta_angle_var', 'delta_velocity_var', 'dang_bias_rw', 'dang_scale_rw',
            'dvel_bias_rw', 'mag_earth_rw', 'mag_body_rw', 'wind_rw',
        ):
            _check_non_negative("ProcessNoise", name, getattr(self, name))

    @classmethod
    def zero(cls) -> "ProcessNoise":
        """No process noise at all (deterministic propagation tests)."""
        return cls(
            delta_angle_var=(0.0, 0.0, 0.0),
            delta_velocity_var=(0.0, 0.0, 0.0),
            dang_bias_rw=0.0,
            dang_scale_rw=0.0,
            dvel_bias_rw=0.0,
            mag_earth_rw=0.0,
            mag_body_rw=0.0,
            wind_rw=0.0,
        )

    @classmethod
    def from_imu(cls, imu: IMUNoiseParams, dt: float, **overrides) -> "ProcessNoise":
        """
        Derive the disturbance variances from an IMU specification.

        Args:
            imu: IMU noise parameters (ARW/VRW and bias random walks).
            dt: IMU sample interval (s).
            **overrides: Any other ProcessNoise field.
        """
        _check_positive("ProcessNoise", "dt", dt)
        var_dang, var_dvel = imu.delta_variances(dt)
        # Biases are stored per sample, so a rate random walk scales by dt²
        params = dict(
            delta_angle_var=(var_dang,) * 3,
            delta_velocity_var=(var_dvel,) * 3,
            dang_bias_rw=(imu.gyro_bias_rw_rad_s_sqrt_s * dt) ** 2,
            dvel_bias_rw=(imu.accel_bias_rw_mps2_sqrt_s * dt) ** 2,
        )
        params.update(overrides)
        return cls(**params)

    def disturbance_variances(self) -> np.ndarray:
        """The six IMU disturbance variances [dax, day, daz, dvx, dvy, dvz]."""
        return np.array(tuple(self.delta_angle_var) + tuple(self.delta_velocity_var), dtype=float)

    def random_walk_diagonal(self, dt: float) -> np.ndarray:
        """Per-step variance increments of the random-walk states, shape (24,)."""
        rw = np.zeros(NUM_STATES)
        rw[StateIndex.DANG_BIAS] = self.dang_bias_rw * dt
        rw[StateIndex.DANG_SCALE] = self.dang_scale_rw * dt
        rw[StateIndex.DVEL_BIAS_Z] = self.dvel_bias_rw * dt
        rw[StateIndex.MAG_NED] = self.mag_earth_rw * dt
        rw[StateIndex.MAG_BODY] = self.mag_body_rw * dt
        rw[StateIndex.WIND] = self.wind_rw * dt
        return rw


@dataclass(frozen=True)
class MeasurementNoise:
    """
    Measurement noise variances of the aiding sensors.

    Attributes:
        r_vn, r_ve, r_vd: NED velocity ((m/s)²).
        r_pn, r_pe, r_pd: NED position (m²).
        r_tas: True airspeed ((m/s)²).
        r_beta: Sideslip angle (rad²).
        r_mag: Magnetic flux, each axis (mGauss²).
        r_mag_heading: Magnetic heading deviation (rad²).
        r_decl: Synthetic declination (rad²).
        r_los: Optical-flow line-of-sight rate ((rad/s)²).
        r_acc: Lateral body acceleration ((m/s²)²).
    """

    r_vn: float = 0.25
    r_ve: float = 0.25
    r_vd: float = 0.49
    r_pn: float = 4.0
    r_pe: float = 4.0
    r_pd: float = 25.0
    r_tas: float = 2.0
    r_beta: float = 0.09
    r_mag: float = 2500.0
    r_mag_heading: float = 0.0025
    r_decl: float = 0.0025
    r_los: float = 0.09
    r_acc: float = 0.25

    def __post_init__(self) -> None:
        for name in self.__dataclass_fields__:
            _check_non_negative("MeasurementNoise", name, getattr(self, name))

    def velocity(self) -> np.ndarray:
        return np.array([self.r_vn, self.r_ve, self.r_vd])

    def position(self) -> np.ndarray:
        return np.array([self.r_pn, self.r_pe, self.r_pd])


@dataclass(frozen=True)
class InitialUncertainty:
    """
    One-sigma initial uncertainty per state group.

    Units follow the state vector (rad, m/s, m, rad per sample, –, m/s per
    sample, mGauss, mGauss, m/s).
    """

    attitude_rad: float = 0.1
    velocity_mps: float = 1.0
    position_m: float = 5.0
    dang_bias_rad: float = 1.0e-4
    dang_scale: float = 0.01
    dvel_bias_mps: float = 1.0e-3
    mag_earth_mgauss: float = 50.0
    mag_body_mgauss: float = 50.0
    wind_mps: float = 5.0

    def __post_init__(self) -> None:
        for name in self.__dataclass_fields__:
            _check_non_negative("InitialUncertainty", name, getattr(self, name))

    def covariance(self) -> np.ndarray:
        """Diagonal initial covariance, shape (24, 24)."""
        std = np.zeros(NUM_STATES)
        std[StateIndex.ROT_ERR] = self.attitude_rad
        std[StateIndex.VEL] = self.velocity_mps
        std[StateIndex.POS] = self.position_m
        std[StateIndex.DANG_BIAS] = self.dang_bias_rad
        std[StateIndex.DANG_SCALE] = self.dang_scale
        std[StateIndex.DVEL_BIAS_Z] = self.dvel_bias_mps
        std[StateIndex.MAG_NED] = self.mag_earth_mgauss
        std[StateIndex.MAG_BODY] = self.mag_body_mgauss
        std[StateIndex.WIND] = self.wind_mps
        return np.diag(std**2)


@dataclass(frozen=True)
class EKFConfig:
    """
    Complete filter configuration, constant unless explicitly re-tuned.

    Attributes:
        dt_imu: Nominal IMU sample interval (s).
        gravity: Gravity magnitude along NED down (m/s²).
        process: Process noise.
        measurement: Measurement noise variances.
        initial: Initial uncertainty used when no P0 is supplied.
        air_density: Air density rho (kg/m³), quadratic drag prediction.
        k_acc: Linear drag coefficient K_acc (1/s): lateral specific force
            per unit of wind-relative body velocity.
        bcx_inv, bcy_inv: Inverse ballistic coefficients along body X and Y
            (m²/kg), quadratic drag prediction.
        drag_model: 'linear' or 'quadratic' predicted lateral acceleration.
            The Jacobian is always the linear-drag one.
        declination: Magnetic declination (rad), positive east.
        terrain_down: Down position of the terrain under the vehicle (m).
        min_airspeed: Airspeed below which airspeed/sideslip fusion is skipped (m/s).
        min_range: Optical-flow range below which fusion is skipped (m).
        variance_floor: Lower bound of the covariance diagonal.
        joseph_update: Use the Joseph form for the covariance correction.
    """

    dt_imu: float = 0.01
    gravity: float = 9.80665
    process: ProcessNoise = field(default_factory=ProcessNoise)
    measurement: MeasurementNoise = field(default_factory=MeasurementNoise)
    initial: InitialUncertainty = field(default_factory=InitialUncertainty)
    air_density: float = 1.225
    k_acc: float = 0.25
    bcx_inv: float = 1.0 / 46.0
    bcy_inv: float = 1.0 / 46.0
    drag_model: str = "linear"
    declination: float = 0.0
    terrain_down: float = 0.0
    min_airspeed: float = 1.0
    min_range: float = 0.1
    variance_floor: float = 0.0
    joseph_update: bool = False

    def __post_init__(self) -> None:
        _check_positive("EKFConfig", "dt_imu", self.dt_imu)
        _check_positive("EKFConfig", "gravity", self.gravity)
        for name in ('air_density', 'k_acc', 'bcx_inv', 'bcy_inv',
                     'min_airspeed', 'min_range', 'variance_floor'):
            _check_non_negative("EKFConfig", name, getattr(self, name))
        if not np.isfinite(self.declination) or not np.isfinite(self.terrain_down):
            raise ValueError("EKFConfig.declination and terrain_down must be finite")
        if self.drag_model not in DRAG_MODELS:
            raise ValueError(
                f"EKFConfig.drag_model must be one of {DRAG_MODELS}, got {self.drag_model!r}"
            )
        if self.k_acc > 5.0:
            warnings.warn(
                f"K_acc of {self.k_acc} 1/s is unusually large for multirotor "
                f"drag. Typical values are 0.1-1.0 1/s.",
                UserWarning,
            )

    @classmethod
    def default(cls) -> "EKFConfig":
        """Defaults suited to a small multirotor with a MEMS IMU at 100 Hz."""
        return cls()

    @classmethod
    def for_imu(cls, imu: IMUNoiseParams, dt_imu: float = 0.01, **overrides) -> "EKFConfig":
        """
        Configuration whose process noise and bias uncertainty follow an IMU spec.

        Args:
            imu: IMU noise parameters.
            dt_imu: IMU sample interval (s).
            **overrides: Any other EKFConfig field.
        """
        params = dict(
            dt_imu=dt_imu,
            process=ProcessNoise.from_imu(imu, dt_imu),
            initial=InitialUncertainty(
                dang_bias_rad=imu.gyro_bias_rad_s * dt_imu,
                dvel_bias_mps=imu.accel_bias_mps2 * dt_imu,
            ),
        )
        params.update(overrides)
        return cls(**params)
