"""Input validation for sensor samples."""

from typing import Optional
import numpy as np

from .types import SensorSample, SensorType, ValidationResult
from .config import Config


class SampleValidator:
    """Validates raw sensor samples for plausibility."""

    def __init__(self, config: Config):
        """Initialize validator with configuration.

        Args:
            config: System configuration with sensor thresholds.
        """
        self._config = config
        self._last_gyro_timestamp: Optional[int] = None

    def validate(self, sensor_type: SensorType, sample: SensorSample) -> ValidationResult:
        """Validate a sample from the given sensor.

        Args:
            sensor_type: Sensor that produced the sample.
            sample: Measurement to validate.

        Returns:
            ValidationResult with validation status and any errors/warnings.
        """
        result = ValidationResult(is_valid=True)

        if not sample.is_finite():
            result.add_error(
                f"Non-finite {sensor_type.value} sample: "
                f"({sample.x}, {sample.y}, {sample.z})"
            )
            return result

        if sensor_type is SensorType.ACCELEROMETER:
            self._check_accelerometer(sample, result)
        elif sensor_type is SensorType.GYROSCOPE:
            self._check_gyroscope(sample, result)
        else:
            self._check_magnetometer(sample, result)

        return result

    def _check_accelerometer(self, sample: SensorSample, result: ValidationResult) -> None:
        """Validate accelerometer readings."""
        cfg = self._config.sensor.accelerometer
        max_acc = cfg.range_g * cfg.gravity_nominal

        for axis, value in zip("xyz", (sample.x, sample.y, sample.z)):
            if abs(value) > max_acc:
                result.add_error(f"a{axis} out of range: {value:.2f} m/s^2")

        acc_mag = sample.magnitude
        if abs(acc_mag - cfg.gravity_nominal) > cfg.gravity_tolerance:
            result.add_warning(
                f"Acceleration magnitude {acc_mag:.2f} deviates from "
                f"expected {cfg.gravity_nominal:.2f} +/- {cfg.gravity_tolerance:.2f} m/s^2"
            )

    def _check_gyroscope(self, sample: SensorSample, result: ValidationResult) -> None:
        """Validate gyroscope readings and timestamp monotonicity."""
        max_rate = np.deg2rad(self._config.sensor.gyroscope.range_dps)

        for axis, value in zip("xyz", (sample.x, sample.y, sample.z)):
            if abs(value) > max_rate:
                result.add_error(f"g{axis} out of range: {value:.2f} rad/s")

        if self._last_gyro_timestamp is not None:
            dt_ns = sample.timestamp_ns - self._last_gyro_timestamp
            if dt_ns <= 0:
                result.add_error(f"Non-monotonic gyroscope timestamp: dt={dt_ns} ns")
                return

        if result.is_valid:
            self._last_gyro_timestamp = sample.timestamp_ns

    def _check_magnetometer(self, sample: SensorSample, result: ValidationResult) -> None:
        """Validate magnetometer readings."""
        cfg = self._config.sensor.magnetometer

        for axis, value in zip("xyz", (sample.x, sample.y, sample.z)):
            if abs(value) > cfg.range_ut:
                result.add_error(f"m{axis} out of range: {value:.1f} uT")

        mag_mag = sample.magnitude
        if mag_mag < cfg.min_field_ut:
            result.add_warning(f"Magnetic field too weak: {mag_mag:.1f} uT")
        elif mag_mag > cfg.max_field_ut:
            result.add_warning(f"Magnetic field too strong: {mag_mag:.1f} uT")

    def reset(self) -> None:
        """Reset validator state."""
        self._last_gyro_timestamp = None
