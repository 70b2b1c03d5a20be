"""Change-dispatch filter between the fusion engine and its consumer."""

import logging
import threading
from typing import Callable, Optional, Tuple
import numpy as np
from numpy.typing import NDArray

from ..core.types import OrientationDegrees

logger = logging.getLogger(__name__)

# Receives (azimuth, pitch, roll) in degrees, azimuth in [0, 360).
OrientationDelegate = Callable[[float, float, float], None]


class ChangeDispatcher:
    """Notifies a delegate only when the orientation moves noticeably.

    Every axis is compared with the last dispatched value; if any axis
    differs by more than its tolerance, the full triple is latched and
    sent.
    """

    def __init__(
        self,
        delegate: OrientationDelegate,
        tolerances: Tuple[float, float, float] = (0.0, 0.0, 0.0),
    ):
        """Initialize dispatcher.

        Args:
            delegate: Callback receiving (azimuth, pitch, roll) in degrees.
            tolerances: Per-axis thresholds in degrees.
        """
        self._delegate = delegate
        self._lock = threading.Lock()
        self._tolerance = np.zeros(3)
        self.set_tolerance(*tolerances)
        self.reset()

    def set_tolerance(self, azimuth: float, pitch: float, roll: float) -> None:
        """Set per-axis tolerances in degrees.

        Raises:
            ValueError: If any tolerance is negative or not finite.
        """
        tolerance = np.array([azimuth, pitch, roll], dtype=np.float64)
        if not np.all(np.isfinite(tolerance)) or np.any(tolerance < 0):
            raise ValueError(f"Tolerances must be finite and non-negative, got {tolerance.tolist()}")
        with self._lock:
            self._tolerance = tolerance

    @property
    def tolerance(self) -> Tuple[float, float, float]:
        """Current tolerances as (azimuth, pitch, roll) degrees."""
        return tuple(float(v) for v in self._tolerance)

    @property
    def last_dispatched(self) -> OrientationDegrees:
        """Last orientation sent to the delegate."""
        with self._lock:
            return OrientationDegrees(*(float(v) for v in self._last))

    @property
    def dispatch_count(self) -> int:
        """Number of delegate notifications since the last reset."""
        return self._dispatch_count

    def reset(self) -> None:
        """Forget the last dispatched orientation."""
        with self._lock:
            self._last = np.zeros(3)
            self._dispatch_count = 0

    def dispatch(self, fused: NDArray[np.float64]) -> Optional[OrientationDegrees]:
        """Offer a fused orientation to the delegate.

        Args:
            fused: [azimuth, pitch, roll] in radians.

        Returns:
            The dispatched orientation, or None if every axis stayed
            within tolerance.
        """
        orientation = OrientationDegrees.from_radians(fused)
        values = np.array(orientation.as_tuple())

        with self._lock:
            if not np.any(np.abs(self._last - values) > self._tolerance):
                return None
            self._last = values
            self._dispatch_count += 1

        # Called without the lock held; the delegate may re-enter the engine.
        self._delegate(orientation.azimuth, orientation.pitch, orientation.roll)
        return orientation
