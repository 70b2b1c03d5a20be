"""Pytest fixtures for orientation fusion tests."""

import threading
import pytest
import numpy as np
from numpy.typing import NDArray

from orientation_fusion.core.config import Config
from orientation_fusion.core.rotation import RotationOps
from orientation_fusion.core.types import SensorType
from orientation_fusion.fusion.engine import OrientationEngine
from orientation_fusion.sensors.mock import SimulatedSensor

GRAVITY = 9.81
EARTH_FIELD = np.array([0.0, 22.0, -42.0])  # east, north, up in uT


class RecordingDelegate:
    """Delegate collecting every (azimuth, pitch, roll) it receives."""

    def __init__(self):
        self.calls = []
        self.event = threading.Event()
        self._lock = threading.Lock()

    def __call__(self, azimuth: float, pitch: float, roll: float) -> None:
        with self._lock:
            self.calls.append((azimuth, pitch, roll))
        self.event.set()

    @property
    def count(self) -> int:
        with self._lock:
            return len(self.calls)

    @property
    def last(self):
        with self._lock:
            return self.calls[-1]


def device_readings(azimuth_deg: float):
    """Accelerometer and magnetometer vectors for a flat device.

    Args:
        azimuth_deg: Heading of the device.

    Returns:
        Tuple (acc, mag) in device coordinates.
    """
    rotation = RotationOps.from_orientation(
        np.array([np.deg2rad(azimuth_deg), 0.0, 0.0])
    )
    acc = np.array([0.0, 0.0, GRAVITY])
    mag = rotation.T @ EARTH_FIELD
    return acc, mag


@pytest.fixture
def config() -> Config:
    """Create default configuration for tests."""
    return Config()


@pytest.fixture
def quiet_config() -> Config:
    """Configuration with a noise-free, seeded simulation."""
    cfg = Config()
    cfg.simulation.acc_noise = 0.0
    cfg.simulation.gyro_noise = 0.0
    cfg.simulation.mag_noise = 0.0
    cfg.simulation.seed = 7
    return cfg


@pytest.fixture
def accelerometer() -> SimulatedSensor:
    return SimulatedSensor(SensorType.ACCELEROMETER)


@pytest.fixture
def gyroscope() -> SimulatedSensor:
    return SimulatedSensor(SensorType.GYROSCOPE)


@pytest.fixture
def magnetometer() -> SimulatedSensor:
    return SimulatedSensor(SensorType.MAGNETOMETER)


@pytest.fixture
def delegate() -> RecordingDelegate:
    return RecordingDelegate()


@pytest.fixture
def engine(accelerometer, gyroscope, magnetometer, delegate, config):
    """Engine wired to simulated sensors; stopped and disposed afterwards."""
    eng = OrientationEngine(accelerometer, gyroscope, magnetometer, delegate, config)
    yield eng
    if not eng.is_disposed:
        if eng.is_running:
            eng.stop()
        eng.dispose()


@pytest.fixture
def feed(accelerometer, magnetometer):
    """Push accelerometer/magnetometer readings for a given heading."""
    def _feed(azimuth_deg: float, timestamp_ns: int = 0) -> None:
        acc, mag = device_readings(azimuth_deg)
        magnetometer.emit(*mag, timestamp_ns=timestamp_ns)
        accelerometer.emit(*acc, timestamp_ns=timestamp_ns)
    return _feed


@pytest.fixture
def readings():
    """Expose device_readings to tests."""
    return device_readings


@pytest.fixture
def identity_matrix() -> NDArray[np.float64]:
    return np.eye(3)
