"""
Unit tests for navekf/sensors (IMU packets, noise parameters, units).

Run with: pytest tests/navekf/sensors/test_navekf_sensors_types.py -v
"""

import unittest

import numpy as np
import pytest

from navekf.sensors import IMUNoiseParams, ImuDeltaSample, units


class TestImuDeltaSample(unittest.TestCase):
    """Test suite for the IMU input packet."""

    def test_from_rates_integrates_over_dt(self) -> None:
        sample = ImuDeltaSample.from_rates(
            gyro_rad_s=np.array([0.1, 0.0, -0.2]),
            accel_mps2=np.array([0.0, 0.0, -units.STANDARD_GRAVITY]),
            dt=0.01,
            t=1.0,
        )
        np.testing.assert_allclose(sample.delta_angle, [0.001, 0.0, -0.002])
        np.testing.assert_allclose(sample.delta_velocity, [0.0, 0.0, -0.0980665])
        assert sample.dt == 0.01
        assert sample.t == 1.0

    def test_rejects_bad_shape(self) -> None:
        with pytest.raises(ValueError, match="delta_angle"):
            ImuDeltaSample(np.zeros(2), np.zeros(3), 0.01)

    def test_rejects_non_positive_dt(self) -> None:
        with pytest.raises(ValueError, match="dt"):
            ImuDeltaSample(np.zeros(3), np.zeros(3), 0.0)

    def test_rejects_nan(self) -> None:
        with pytest.raises(ValueError, match="non-finite"):
            ImuDeltaSample(np.array([np.nan, 0.0, 0.0]), np.zeros(3), 0.01)


class TestIMUNoiseParams(unittest.TestCase):
    """Test suite for IMU noise presets."""

    def test_consumer_worse_than_tactical(self) -> None:
        consumer = IMUNoiseParams.consumer_grade()
        tactical = IMUNoiseParams.tactical_grade()
        assert consumer.gyro_arw_rad_sqrt_s > tactical.gyro_arw_rad_sqrt_s
        assert consumer.accel_bias_mps2 > tactical.accel_bias_mps2

    def test_delta_variances_scale_with_dt(self) -> None:
        params = IMUNoiseParams(
            gyro_arw_rad_sqrt_s=0.01, accel_vrw_mps_sqrt_s=0.1,
            gyro_bias_rad_s=0.0, accel_bias_mps2=0.0,
        )
        var_dang, var_dvel = params.delta_variances(0.01)
        assert np.isclose(var_dang, 1e-6)
        assert np.isclose(var_dvel, 1e-4)

    def test_negative_parameter_rejected(self) -> None:
        with pytest.raises(ValueError, match="gyro_arw_rad_sqrt_s"):
            IMUNoiseParams(-1.0, 0.1, 0.0, 0.0)


class TestUnits(unittest.TestCase):
    """Test suite for datasheet conversions."""

    def test_deg_per_hour(self) -> None:
        assert np.isclose(units.deg_per_hour_to_rad_per_sec(3600.0), np.deg2rad(1.0))

    def test_arw(self) -> None:
        assert np.isclose(units.deg_per_sqrt_hour_to_rad_per_sqrt_sec(60.0), np.deg2rad(1.0))

    def test_mg(self) -> None:
        assert np.isclose(units.mg_to_mps2(1000.0), units.STANDARD_GRAVITY)

    def test_magnetic(self) -> None:
        assert units.gauss_to_milligauss(0.5) == 500.0
        assert units.microtesla_to_milligauss(50.0) == 500.0

    def test_variance_rejects_bad_dt(self) -> None:
        with pytest.raises(ValueError, match="dt"):
            units.arw_to_delta_angle_variance(0.01, 0.0)
        with pytest.raises(ValueError, match="dt"):
            units.vrw_to_delta_velocity_variance(0.01, -1.0)

    def test_bias_per_sample(self) -> None:
        assert np.isclose(units.rate_bias_to_delta_angle_bias(0.01, 0.01), 1e-4)
        assert np.isclose(units.accel_bias_to_delta_velocity_bias(0.2, 0.01), 2e-3)


if __name__ == "__main__":
    unittest.main()
