"""Gyroscope integration anchored to the accelerometer/magnetometer estimate."""

import logging
from typing import Optional
import numpy as np
from numpy.typing import NDArray

from ..core.rotation import RotationOps
from ..core.types import SensorSample

logger = logging.getLogger(__name__)

NS_TO_S = 1e-9


class GyroIntegrator:
    """Integrates angular velocity samples into a running rotation matrix.

    The first sample after a reset seeds the running matrix with the
    absolute orientation from the accelerometer and magnetometer, so that
    integration starts from a drift-free reference. The fusion tick then
    reseeds the matrix from the fused orientation to bleed off drift.
    """

    def __init__(self, epsilon: float = 1e-9):
        """Initialize integrator.

        Args:
            epsilon: Angular speed (rad/s) at or below which a sample
                contributes no rotation.
        """
        self._epsilon = epsilon
        self.reset()

    def reset(self) -> None:
        """Return to the initial, unseeded state."""
        self._matrix = RotationOps.identity()
        self._orientation = np.zeros(3)
        self._timestamp_ns: Optional[int] = None
        self._init_state = True
        self._seed_count = 0

    @property
    def matrix(self) -> NDArray[np.float64]:
        """Copy of the running rotation matrix."""
        return self._matrix.copy()

    @property
    def orientation(self) -> NDArray[np.float64]:
        """Copy of the integrated [azimuth, pitch, roll] in radians."""
        return self._orientation.copy()

    @property
    def is_seeded(self) -> bool:
        """Whether the absolute seed has been applied."""
        return not self._init_state

    @property
    def seed_count(self) -> int:
        """Number of times the seed was applied since the last reset."""
        return self._seed_count

    @property
    def timestamp_ns(self) -> Optional[int]:
        """Timestamp of the last integrated sample."""
        return self._timestamp_ns

    def integrate(
        self,
        sample: SensorSample,
        acc_mag_orientation: Optional[NDArray[np.float64]],
    ) -> bool:
        """Integrate one angular velocity sample.

        Args:
            sample: Gyroscope sample in rad/s with nanosecond timestamp.
            acc_mag_orientation: Current direct orientation, or None if
                it has not been computed yet.

        Returns:
            False if the sample was skipped because no direct orientation
            is available to seed from.
        """
        if acc_mag_orientation is None:
            return False

        if self._init_state:
            init_matrix = RotationOps.from_orientation(acc_mag_orientation)
            self._matrix = RotationOps.multiply(self._matrix, init_matrix)
            self._init_state = False
            self._seed_count += 1
            logger.debug(
                "Gyro integration seeded at azimuth=%.1f deg",
                np.rad2deg(acc_mag_orientation[0])
            )

        if self._timestamp_ns is not None:
            dt = (sample.timestamp_ns - self._timestamp_ns) * NS_TO_S
            delta_vector = RotationOps.rotation_vector_from_gyro(
                sample.vector, dt / 2.0, self._epsilon
            )
            delta_matrix = RotationOps.from_rotation_vector(delta_vector)
            self._matrix = RotationOps.multiply(self._matrix, delta_matrix)

        self._timestamp_ns = sample.timestamp_ns
        self._orientation = RotationOps.to_orientation(self._matrix)
        return True

    def reseed(self, orientation: NDArray[np.float64]) -> None:
        """Replace the running state with an externally corrected orientation.

        Args:
            orientation: [azimuth, pitch, roll] in radians.
        """
        orientation = np.asarray(orientation, dtype=np.float64)
        self._matrix = RotationOps.from_orientation(orientation)
        self._orientation = orientation.copy()
