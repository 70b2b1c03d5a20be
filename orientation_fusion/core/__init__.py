"""Core module for orientation sensor fusion."""

from .types import (
    SensorType,
    SamplingRate,
    SensorSample,
    OrientationDegrees,
    ValidationResult,
    SensorStats,
)
from .validation import SampleValidator
from .rotation import RotationOps
from .config import Config, load_config
from .errors import (
    OrientationError,
    EngineStateError,
    EngineDisposedError,
    UnsupportedSensorError,
    ReplayError,
)

__all__ = [
    "SensorType",
    "SamplingRate",
    "SensorSample",
    "OrientationDegrees",
    "ValidationResult",
    "SensorStats",
    "SampleValidator",
    "RotationOps",
    "Config",
    "load_config",
    "OrientationError",
    "EngineStateError",
    "EngineDisposedError",
    "UnsupportedSensorError",
    "ReplayError",
]
