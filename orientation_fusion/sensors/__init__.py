"""Raw motion sensor sources for orientation fusion."""

from .base import Sensor, SampleListener
from .mock import SimulatedSensor, MockDevice
from .replay import LogReplay, LogRecord, read_log

__all__ = [
    "Sensor",
    "SampleListener",
    "SimulatedSensor",
    "MockDevice",
    "LogReplay",
    "LogRecord",
    "read_log",
]
