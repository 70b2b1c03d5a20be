"""In-process sensor sources for tests, demos and replay."""

import logging
import threading
import time
from typing import Optional

import numpy as np

from ..core.config import Config
from ..core.errors import UnsupportedSensorError
from ..core.rotation import RotationOps
from ..core.types import SamplingRate, SensorSample, SensorType
from .base import Sensor, SampleListener

logger = logging.getLogger(__name__)

DEFAULT_RANGES = {
    SensorType.ACCELEROMETER: 16.0 * 9.80665,
    SensorType.GYROSCOPE: float(np.deg2rad(2000.0)),
    SensorType.MAGNETOMETER: 4900.0,
}


class SimulatedSensor(Sensor):
    """Sensor whose samples are pushed by the caller through ``emit()``."""

    def __init__(
        self,
        sensor_type: SensorType,
        supported: bool = True,
        maximum_range: Optional[float] = None,
    ):
        """Initialize simulated sensor.

        Args:
            sensor_type: Kind of sensor being simulated.
            supported: Whether the device "has" this sensor.
            maximum_range: Range in native units, defaults per sensor type.
        """
        self.sensor_type = sensor_type
        self._supported = supported
        self._maximum_range = (
            DEFAULT_RANGES[sensor_type] if maximum_range is None else maximum_range
        )
        self._listener: Optional[SampleListener] = None
        self._rate: Optional[SamplingRate] = None
        self._lock = threading.Lock()

    @property
    def is_supported(self) -> bool:
        return self._supported

    @property
    def maximum_range(self) -> float:
        if not self._supported:
            raise UnsupportedSensorError(f"{self.sensor_type.value} is not supported")
        return self._maximum_range

    @property
    def is_registered(self) -> bool:
        """Whether a listener is currently registered."""
        return self._listener is not None

    @property
    def rate(self) -> Optional[SamplingRate]:
        """Rate requested by the current listener, if any."""
        return self._rate

    def on(self, rate: SamplingRate, listener: SampleListener) -> None:
        if not self._supported:
            raise UnsupportedSensorError(f"{self.sensor_type.value} is not supported")
        with self._lock:
            self._listener = listener
            self._rate = rate
        logger.debug("%s on at %s", self.sensor_type.value, rate.name)

    def off(self) -> None:
        with self._lock:
            self._listener = None
            self._rate = None
        logger.debug("%s off", self.sensor_type.value)

    def emit(self, x: float, y: float, z: float,
             timestamp_ns: Optional[int] = None) -> bool:
        """Deliver one sample to the registered listener.

        Args:
            x, y, z: Sample components in native units.
            timestamp_ns: Sample time; defaults to the monotonic clock.

        Returns:
            True if a listener received the sample.
        """
        if timestamp_ns is None:
            timestamp_ns = time.monotonic_ns()

        with self._lock:
            listener = self._listener

        if listener is None:
            return False

        listener(SensorSample(timestamp_ns=int(timestamp_ns),
                              x=float(x), y=float(y), z=float(z)))
        return True


class MockDevice:
    """Synthetic device feeding simulated sensors from a background thread.

    Simulates a device lying flat and turning about the vertical axis at a
    constant rate, with Gaussian noise on every sensor and a constant gyro
    bias. Usage:

        device = MockDevice(config)
        engine = OrientationEngine(device.accelerometer, device.gyroscope,
                                   device.magnetometer, delegate, config)
        with device:
            engine.start(SamplingRate.GAME)
    """

    def __init__(
        self,
        config: Config,
        accelerometer: Optional[SimulatedSensor] = None,
        gyroscope: Optional[SimulatedSensor] = None,
        magnetometer: Optional[SimulatedSensor] = None,
    ):
        """Initialize mock device.

        Args:
            config: System configuration with simulation settings.
            accelerometer: Sensor to drive, created if None.
            gyroscope: Sensor to drive, created if None.
            magnetometer: Sensor to drive, created if None.
        """
        self._config = config
        self._sim = config.simulation
        self.accelerometer = accelerometer or SimulatedSensor(SensorType.ACCELEROMETER)
        self.gyroscope = gyroscope or SimulatedSensor(SensorType.GYROSCOPE)
        self.magnetometer = magnetometer or SimulatedSensor(SensorType.MAGNETOMETER)

        self._rng = np.random.default_rng(self._sim.seed)
        self._gravity = config.sensor.accelerometer.gravity_nominal
        self._field = np.asarray(self._sim.magnetic_field_ut, dtype=np.float64)
        self._gyro_bias = np.asarray(self._sim.gyro_bias, dtype=np.float64)
        self._yaw_rate = float(np.deg2rad(self._sim.yaw_rate_dps))

        self._thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()
        self._start_ns = 0
        self.sample_count = 0

    @property
    def is_open(self) -> bool:
        """Whether the generator thread is running."""
        return self._thread is not None and self._thread.is_alive()

    def true_azimuth(self, elapsed_s: float) -> float:
        """Ground-truth azimuth in radians, wrapped to (-pi, pi]."""
        angle = self._yaw_rate * elapsed_s
        return float(np.arctan2(np.sin(angle), np.cos(angle)))

    def step(self, elapsed_s: float, timestamp_ns: int) -> None:
        """Emit one sample on every sensor for the given instant.

        Args:
            elapsed_s: Simulation time since start.
            timestamp_ns: Timestamp stamped on the samples.
        """
        azimuth = self.true_azimuth(elapsed_s)
        rotation = RotationOps.from_orientation(np.array([azimuth, 0.0, 0.0]))

        acc = np.array([0.0, 0.0, self._gravity])
        acc = acc + self._rng.normal(0.0, self._sim.acc_noise, 3)

        # Heading grows clockwise, which is a negative turn about +Z.
        gyro = np.array([0.0, 0.0, -self._yaw_rate]) + self._gyro_bias
        gyro = gyro + self._rng.normal(0.0, self._sim.gyro_noise, 3)

        mag = rotation.T @ self._field
        mag = mag + self._rng.normal(0.0, self._sim.mag_noise, 3)

        self.magnetometer.emit(*mag, timestamp_ns=timestamp_ns)
        self.accelerometer.emit(*acc, timestamp_ns=timestamp_ns)
        self.gyroscope.emit(*gyro, timestamp_ns=timestamp_ns)
        self.sample_count += 1

    def open(self) -> None:
        """Start generating samples."""
        if self.is_open:
            return
        self._stop_event.clear()
        self._start_ns = time.monotonic_ns()
        self._thread = threading.Thread(
            target=self._run, name="mock-device", daemon=True
        )
        self._thread.start()
        logger.info(
            "Mock device opened: %.1f Hz, yaw rate %.1f deg/s",
            self._sim.sample_rate_hz, self._sim.yaw_rate_dps
        )

    def close(self) -> None:
        """Stop generating samples and wait for the generator thread."""
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join()
            self._thread = None
        logger.info("Mock device closed after %d samples", self.sample_count)

    def _run(self) -> None:
        period = 1.0 / self._sim.sample_rate_hz
        while not self._stop_event.wait(period):
            now_ns = time.monotonic_ns()
            self.step((now_ns - self._start_ns) * 1e-9, now_ns)

    def __enter__(self) -> "MockDevice":
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
