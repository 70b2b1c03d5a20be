"""Exceptions raised by the orientation fusion package."""


class OrientationError(Exception):
    """Base exception for orientation fusion errors."""
    pass


class EngineStateError(OrientationError):
    """Operation not allowed in the engine's current lifecycle state."""
    pass


class EngineDisposedError(EngineStateError):
    """Engine was used after dispose()."""
    pass


class UnsupportedSensorError(OrientationError):
    """Sensor is not available on this device."""
    pass


class ReplayError(OrientationError):
    """Recorded sensor log cannot be replayed."""
    pass
