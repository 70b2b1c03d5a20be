"""Data types for orientation sensor fusion."""

from dataclasses import dataclass, field
from enum import Enum
import numpy as np
from numpy.typing import NDArray


class SensorType(Enum):
    """Raw motion sensors feeding the fusion engine."""
    ACCELEROMETER = "accelerometer"
    GYROSCOPE = "gyroscope"
    MAGNETOMETER = "magnetometer"


class SamplingRate(Enum):
    """Sampling rate tiers.

    Each tier maps to a sensor sampling period (microseconds, 0 meaning
    "as fast as the source can deliver") and a fusion tick period
    (milliseconds).
    """
    NORMAL = (200_000, 224)
    UI = (66_667, 77)
    GAME = (20_000, 37)
    FASTEST = (0, 16)

    def __init__(self, sample_period_us: int, tick_period_ms: int):
        self.sample_period_us = sample_period_us
        self.tick_period_ms = tick_period_ms

    @property
    def tick_period_s(self) -> float:
        """Fusion tick period in seconds."""
        return self.tick_period_ms / 1000.0

    @property
    def sample_period_s(self) -> float:
        """Sensor sampling period in seconds."""
        return self.sample_period_us / 1_000_000.0

    @classmethod
    def parse(cls, name: str) -> "SamplingRate":
        """Look up a rate by case-insensitive name.

        Raises:
            ValueError: If the name is not a known rate.
        """
        try:
            return cls[name.strip().upper()]
        except KeyError:
            valid = ", ".join(member.name for member in cls)
            raise ValueError(f"Unknown sampling rate {name!r} (expected one of {valid})") from None


@dataclass(frozen=True)
class SensorSample:
    """Single timestamped 3-axis sample from one sensor.

    Units are sensor-native:
    - Accelerometer: m/s^2
    - Gyroscope: rad/s
    - Magnetometer: uT (microtesla)
    """
    timestamp_ns: int  # Monotonic nanoseconds
    x: float
    y: float
    z: float

    @classmethod
    def from_vector(cls, vector, timestamp_ns: int) -> "SensorSample":
        """Create from any 3-element sequence."""
        return cls(timestamp_ns=int(timestamp_ns), x=float(vector[0]),
                   y=float(vector[1]), z=float(vector[2]))

    @property
    def vector(self) -> NDArray[np.float64]:
        """Sample as array [x, y, z]."""
        return np.array([self.x, self.y, self.z], dtype=np.float64)

    @property
    def magnitude(self) -> float:
        """Euclidean norm of the sample vector."""
        return float(np.linalg.norm(self.vector))

    def is_finite(self) -> bool:
        """Check all components are finite."""
        return bool(np.all(np.isfinite(self.vector)))


@dataclass(frozen=True)
class OrientationDegrees:
    """Orientation as delivered to consumers.

    Azimuth lies in [0, 360); pitch and roll keep their signed ranges.
    """
    azimuth: float
    pitch: float
    roll: float

    @classmethod
    def from_radians(cls, orientation: NDArray[np.float64]) -> "OrientationDegrees":
        """Convert [azimuth, pitch, roll] radians, normalizing azimuth."""
        azimuth = float(np.rad2deg(orientation[0]))
        if azimuth < 0:
            azimuth += 360.0
        if azimuth >= 360.0:
            azimuth -= 360.0
        return cls(
            azimuth=azimuth,
            pitch=float(np.rad2deg(orientation[1])),
            roll=float(np.rad2deg(orientation[2])),
        )

    def as_tuple(self) -> tuple:
        """Return (azimuth, pitch, roll)."""
        return (self.azimuth, self.pitch, self.roll)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "azimuth": self.azimuth,
            "pitch": self.pitch,
            "roll": self.roll,
        }


@dataclass
class ValidationResult:
    """Result of sensor data validation."""
    is_valid: bool
    errors: list = field(default_factory=list)
    warnings: list = field(default_factory=list)

    def add_error(self, message: str) -> None:
        """Add validation error."""
        self.is_valid = False
        self.errors.append(message)

    def add_warning(self, message: str) -> None:
        """Add validation warning."""
        self.warnings.append(message)


@dataclass
class SensorStats:
    """Counters for samples received by the engine."""
    accelerometer_samples: int = 0
    gyroscope_samples: int = 0
    magnetometer_samples: int = 0
    dropped_samples: int = 0
    degenerate_geometry: int = 0

    @property
    def total_samples(self) -> int:
        """Samples received across all sensors."""
        return (self.accelerometer_samples + self.gyroscope_samples
                + self.magnetometer_samples)

    @property
    def drop_rate(self) -> float:
        """Fraction of samples rejected by validation."""
        if self.total_samples == 0:
            return 0.0
        return self.dropped_samples / self.total_samples

    def record(self, sensor_type: SensorType) -> None:
        """Count one received sample."""
        if sensor_type is SensorType.ACCELEROMETER:
            self.accelerometer_samples += 1
        elif sensor_type is SensorType.GYROSCOPE:
            self.gyroscope_samples += 1
        else:
            self.magnetometer_samples += 1
