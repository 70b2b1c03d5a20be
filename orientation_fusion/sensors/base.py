"""Contract shared by raw sensor sources."""

from abc import ABC, abstractmethod
from typing import Callable

from ..core.types import SamplingRate, SensorSample, SensorType

SampleListener = Callable[[SensorSample], None]


class Sensor(ABC):
    """A raw motion sensor delivering timestamped 3-axis samples.

    Platform adapters implement this for real hardware; samples are pushed
    to the listener registered with ``on()`` from whatever thread the
    platform delivers them on.
    """

    sensor_type: SensorType

    @property
    @abstractmethod
    def is_supported(self) -> bool:
        """Whether the sensor is present on this device."""

    @property
    @abstractmethod
    def maximum_range(self) -> float:
        """Maximum range of the sensor in its native unit.

        Raises:
            UnsupportedSensorError: If the sensor is not supported.
        """

    @abstractmethod
    def on(self, rate: SamplingRate, listener: SampleListener) -> None:
        """Start delivering samples to ``listener`` at ``rate``.

        Raises:
            UnsupportedSensorError: If the sensor is not supported.
        """

    @abstractmethod
    def off(self) -> None:
        """Stop delivering samples."""
