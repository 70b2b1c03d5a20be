"""Orientation fusion engine.

Combines the accelerometer/magnetometer orientation (absolute but noisy)
with integrated gyroscope orientation (smooth but drifting) through a
complementary filter running on a fixed-rate background tick.
"""

import gc
import logging
import threading
import time
from typing import List, Optional
import numpy as np
from numpy.typing import NDArray

from ..core.config import Config
from ..core.errors import EngineDisposedError, EngineStateError
from ..core.rotation import RotationOps
from ..core.types import (
    OrientationDegrees,
    SamplingRate,
    SensorSample,
    SensorStats,
    SensorType,
)
from ..core.validation import SampleValidator
from ..monitoring.metrics import TickMonitor, TickStats
from ..sensors.base import Sensor
from .complementary import fuse_orientation
from .dispatch import ChangeDispatcher, OrientationDelegate
from .gyro import GyroIntegrator

logger = logging.getLogger(__name__)

INITIAL_TICK_DELAY_S = 0.001


class OrientationEngine:
    """Sensor fusion engine producing stabilized device orientation.

    Accelerometer samples trigger a recompute of the direct orientation,
    magnetometer samples are latched for the next recompute, and gyroscope
    samples are integrated. Every tick blends both estimates, pulls the gyro
    integration back onto the blend, and offers the result to the change
    dispatcher.

    Usage:
        engine = OrientationEngine(acc, gyro, mag, on_orientation, config)
        engine.set_tolerance(1.0, 1.0, 1.0)
        engine.start(SamplingRate.GAME)
        ...
        engine.stop()
        engine.dispose()

    Fusion state is guarded by a single re-entrant lock, so sensors may
    deliver samples from any thread.
    """

    def __init__(
        self,
        accelerometer: Sensor,
        gyroscope: Sensor,
        magnetometer: Sensor,
        delegate: OrientationDelegate,
        config: Optional[Config] = None,
    ):
        """Initialize engine.

        Args:
            accelerometer: Accelerometer source (m/s^2).
            gyroscope: Gyroscope source (rad/s, nanosecond timestamps).
            magnetometer: Magnetometer source (uT).
            delegate: Receives (azimuth, pitch, roll) in degrees.
            config: System configuration; defaults if None.
        """
        if config is None:
            config = Config()

        self._config = config
        self._accelerometer: Optional[Sensor] = accelerometer
        self._gyroscope: Optional[Sensor] = gyroscope
        self._magnetometer: Optional[Sensor] = magnetometer

        self._coefficient = config.fusion.filter_coefficient
        self._dispatcher: Optional[ChangeDispatcher] = ChangeDispatcher(
            delegate, config.dispatch.tolerances
        )
        self._validator = SampleValidator(config)
        self._monitor = TickMonitor(config)
        self._gyro = GyroIntegrator(epsilon=config.fusion.epsilon)

        self._lock = threading.RLock()
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        # Tick threads stopped from their own delegate call, not yet joined.
        self._detached: List[threading.Thread] = []
        self._registered: List[Sensor] = []
        self._rate: Optional[SamplingRate] = None
        self._running = False
        self._disposed = False

        self._reset_state()

    def _reset_state(self) -> None:
        """Create fresh fusion state for a new run."""
        self._acceleration: Optional[NDArray[np.float64]] = np.zeros(3)
        self._magnet: Optional[NDArray[np.float64]] = np.zeros(3)
        self._acc_mag_orientation: Optional[NDArray[np.float64]] = None
        self._fused_orientation: Optional[NDArray[np.float64]] = np.zeros(3)
        self._gyro.reset()
        self._validator.reset()
        self._monitor.reset()
        self._stats = SensorStats()
        if self._dispatcher is not None:
            self._dispatcher.reset()

    def _check_alive(self) -> None:
        if self._disposed:
            raise EngineDisposedError("Orientation engine has been disposed")

    @property
    def is_supported(self) -> bool:
        """True if both accelerometer and magnetometer are available."""
        self._check_alive()
        return self._accelerometer.is_supported and self._magnetometer.is_supported

    @property
    def maximum_range(self) -> float:
        """Fused orientation has no meaningful sensor range."""
        self._check_alive()
        return 0.0

    @property
    def is_running(self) -> bool:
        """Whether the engine is between start() and stop()."""
        return self._running

    @property
    def is_disposed(self) -> bool:
        """Whether dispose() has been called."""
        return self._disposed

    @property
    def rate(self) -> Optional[SamplingRate]:
        """Rate of the current run, None when stopped."""
        return self._rate

    def set_tolerance(self, azimuth: float, pitch: float, roll: float) -> None:
        """Set per-axis dispatch tolerances in degrees.

        Raises:
            EngineDisposedError: If the engine was disposed.
            ValueError: If a tolerance is negative.
        """
        self._check_alive()
        self._dispatcher.set_tolerance(azimuth, pitch, roll)

    def start(self, rate: Optional[SamplingRate] = None, periodic: bool = True) -> None:
        """Register the sensors and start the fusion tick.

        Args:
            rate: Sampling rate tier; defaults to the configured rate.
            periodic: Run the fusion tick on a background thread. When
                False the caller drives fusion through fuse().

        Raises:
            EngineDisposedError: If the engine was disposed.
            EngineStateError: If the engine is already running.
        """
        self._check_alive()
        if rate is None:
            rate = self._config.fusion.sampling_rate

        self._join_detached()

        with self._lock:
            if self._running:
                raise EngineStateError("Orientation engine is already running")

            self._reset_state()
            self._rate = rate
            self._monitor.target_period_ms = rate.tick_period_ms
            self._running = True

            try:
                self._register_sensors(rate)
            except Exception:
                self._running = False
                self._rate = None
                self._unregister_sensors()
                raise

        if not (self._accelerometer.is_supported and self._magnetometer.is_supported):
            logger.warning(
                "Accelerometer and magnetometer are both required; "
                "no orientation will be produced"
            )

        if periodic:
            stop_event = threading.Event()
            self._stop_event = stop_event
            self._thread = threading.Thread(
                target=self._run,
                args=(rate.tick_period_s, stop_event),
                name="orientation-fusion",
                daemon=True,
            )
            self._thread.start()

        logger.info(
            "Orientation engine started at %s (tick %d ms, %d sensors)",
            rate.name, rate.tick_period_ms, len(self._registered)
        )

    def _register_sensors(self, rate: SamplingRate) -> None:
        listeners = (
            (self._accelerometer, self._on_accelerometer),
            (self._gyroscope, self._on_gyroscope),
            (self._magnetometer, self._on_magnetometer),
        )
        for sensor, listener in listeners:
            if not sensor.is_supported:
                logger.warning("%s not supported, skipping", sensor.sensor_type.value)
                continue
            sensor.on(rate, listener)
            self._registered.append(sensor)

    def _unregister_sensors(self) -> None:
        for sensor in self._registered:
            sensor.off()
        self._registered = []

    def stop(self) -> None:
        """Stop the fusion tick and unregister the sensors.

        Once this returns the delegate is not called again. When called
        from the delegate itself, the tick in progress completes and no
        further tick starts.

        Raises:
            EngineDisposedError: If the engine was disposed.
            EngineStateError: If the engine is not running.
        """
        self._check_alive()
        with self._lock:
            if not self._running:
                raise EngineStateError("Orientation engine is not running")
            self._running = False

        self._stop_event.set()
        thread = self._thread
        self._thread = None
        if thread is not None:
            if thread is threading.current_thread():
                self._detached.append(thread)
            else:
                thread.join()
        self._join_detached()

        with self._lock:
            self._unregister_sensors()
            self._rate = None

        logger.info("Orientation engine stopped")

    def _join_detached(self) -> None:
        """Wait for earlier tick threads, except the calling one."""
        current = threading.current_thread()
        for thread in list(self._detached):
            if thread is not current:
                thread.join()
                self._detached.remove(thread)

    def dispose(self) -> None:
        """Stop if running and release all state and collaborators.

        Raises:
            EngineDisposedError: If the engine was already disposed.
        """
        self._check_alive()
        if self._running:
            self.stop()
        self._join_detached()

        with self._lock:
            self._acceleration = None
            self._magnet = None
            self._acc_mag_orientation = None
            self._fused_orientation = None
            self._gyro.reset()
            self._accelerometer = None
            self._gyroscope = None
            self._magnetometer = None
            self._dispatcher = None
            self._disposed = True

        logger.info("Orientation engine disposed")

    def force_dispose(self) -> None:
        """Dispose and run a garbage collection pass."""
        self.dispose()
        gc.collect()

    def _accept(self, sensor_type: SensorType, sample: SensorSample) -> bool:
        """Validate a sample and count it. Caller holds the lock."""
        if not self._running:
            return False

        self._stats.record(sensor_type)
        result = self._validator.validate(sensor_type, sample)
        if not result.is_valid:
            self._stats.dropped_samples += 1
            for error in result.errors:
                logger.warning("Dropped sample: %s", error)
            return False

        for warning in result.warnings:
            logger.debug("Sample warning: %s", warning)
        return True

    def _on_accelerometer(self, sample: SensorSample) -> None:
        with self._lock:
            if not self._accept(SensorType.ACCELEROMETER, sample):
                return
            self._acceleration = sample.vector
            self._update_acc_mag_orientation()

    def _on_magnetometer(self, sample: SensorSample) -> None:
        with self._lock:
            if not self._accept(SensorType.MAGNETOMETER, sample):
                return
            self._magnet = sample.vector

    def _on_gyroscope(self, sample: SensorSample) -> None:
        with self._lock:
            if not self._accept(SensorType.GYROSCOPE, sample):
                return
            self._gyro.integrate(sample, self._acc_mag_orientation)

    def _update_acc_mag_orientation(self) -> None:
        R = RotationOps.from_gravity_magnetic(self._acceleration, self._magnet)
        if R is None:
            self._stats.degenerate_geometry += 1
            return
        self._acc_mag_orientation = RotationOps.to_orientation(R)

    def fuse(self) -> Optional[NDArray[np.float64]]:
        """Run one fusion tick.

        Returns:
            Copy of the fused [azimuth, pitch, roll] in radians, or None if
            no direct orientation is available yet.

        Raises:
            EngineDisposedError: If the engine was disposed.
            EngineStateError: If the engine is not running.
        """
        self._check_alive()
        if not self._running:
            raise EngineStateError("Orientation engine is not running")
        return self._fuse()

    def _fuse(self) -> Optional[NDArray[np.float64]]:
        with self._lock:
            if self._acc_mag_orientation is None or self._dispatcher is None:
                return None

            fused = fuse_orientation(
                self._gyro.orientation,
                self._acc_mag_orientation,
                self._coefficient,
            )
            self._fused_orientation = fused
            self._gyro.reseed(fused)
            dispatcher = self._dispatcher

        dispatcher.dispatch(fused)
        return fused.copy()

    def _run(self, period_s: float, stop_event: threading.Event) -> None:
        """Fixed-rate tick loop; exits once this run's stop event is set."""
        next_tick = time.monotonic() + INITIAL_TICK_DELAY_S
        while not stop_event.wait(max(0.0, next_tick - time.monotonic())):
            self._monitor.start_tick()
            try:
                self._fuse()
            except Exception:
                logger.exception("Fusion tick failed")
            self._monitor.end_tick()
            next_tick += period_s

    @property
    def fused_orientation(self) -> NDArray[np.float64]:
        """Copy of the fused orientation in radians."""
        self._check_alive()
        with self._lock:
            return self._fused_orientation.copy()

    @property
    def gyro_orientation(self) -> NDArray[np.float64]:
        """Copy of the gyro-integrated orientation in radians."""
        self._check_alive()
        with self._lock:
            return self._gyro.orientation

    @property
    def gyro_matrix(self) -> NDArray[np.float64]:
        """Copy of the running gyro rotation matrix."""
        self._check_alive()
        with self._lock:
            return self._gyro.matrix

    @property
    def acc_mag_orientation(self) -> Optional[NDArray[np.float64]]:
        """Copy of the accelerometer/magnetometer orientation, if computed."""
        self._check_alive()
        with self._lock:
            if self._acc_mag_orientation is None:
                return None
            return self._acc_mag_orientation.copy()

    @property
    def seed_count(self) -> int:
        """Times gyro integration was seeded during the current run."""
        self._check_alive()
        with self._lock:
            return self._gyro.seed_count

    @property
    def last_dispatched(self) -> OrientationDegrees:
        """Last orientation sent to the delegate."""
        self._check_alive()
        return self._dispatcher.last_dispatched

    @property
    def dispatch_count(self) -> int:
        """Delegate notifications during the current run."""
        self._check_alive()
        return self._dispatcher.dispatch_count

    @property
    def sensor_stats(self) -> SensorStats:
        """Sample counters for the current run."""
        self._check_alive()
        return self._stats

    @property
    def stats(self) -> TickStats:
        """Fusion tick timing for the current run."""
        self._check_alive()
        return self._monitor.get_stats()
