"""Stabilized device orientation from accelerometer, gyroscope and magnetometer.

A complementary filter blends the absolute accelerometer/magnetometer
estimate with integrated gyroscope orientation and reports azimuth, pitch
and roll to a delegate whenever they change beyond per-axis tolerances.
"""

__version__ = "1.0.0"

from .core import (
    Config,
    load_config,
    SamplingRate,
    SensorSample,
    SensorType,
    OrientationDegrees,
    OrientationError,
    EngineStateError,
    EngineDisposedError,
    UnsupportedSensorError,
)
from .fusion import OrientationEngine, ChangeDispatcher
from .sensors import Sensor, SimulatedSensor, MockDevice, LogReplay

__all__ = [
    "Config",
    "load_config",
    "SamplingRate",
    "SensorSample",
    "SensorType",
    "OrientationDegrees",
    "OrientationError",
    "EngineStateError",
    "EngineDisposedError",
    "UnsupportedSensorError",
    "OrientationEngine",
    "ChangeDispatcher",
    "Sensor",
    "SimulatedSensor",
    "MockDevice",
    "LogReplay",
]
