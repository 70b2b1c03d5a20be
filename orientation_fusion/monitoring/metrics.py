"""Timing metrics for the periodic fusion tick."""

import logging
import time
from collections import deque
from dataclasses import dataclass
from typing import Optional, Deque
import numpy as np

from ..core.config import Config

logger = logging.getLogger(__name__)


@dataclass
class TickMetrics:
    """Metrics for a single fusion tick."""
    interval_ms: float
    duration_ms: float
    tick: int
    is_late: bool


@dataclass
class TickStats:
    """Aggregated fusion tick statistics."""
    mean_interval_ms: float
    std_interval_ms: float
    max_interval_ms: float
    min_interval_ms: float
    mean_duration_ms: float
    max_duration_ms: float
    effective_rate_hz: float
    jitter_ms: float
    late_ticks: int
    total_ticks: int

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "mean_interval_ms": self.mean_interval_ms,
            "std_interval_ms": self.std_interval_ms,
            "mean_duration_ms": self.mean_duration_ms,
            "max_duration_ms": self.max_duration_ms,
            "effective_rate_hz": self.effective_rate_hz,
            "late_ticks": self.late_ticks,
            "total_ticks": self.total_ticks,
        }


class TickMonitor:
    """Monitors timing of the fusion tick.

    Tracks the interval between ticks and the time spent in each one,
    counts ticks arriving later than the target period plus the
    configured slack, and logs a summary periodically.
    """

    def __init__(self, config: Config, target_period_ms: Optional[float] = None):
        """Initialize tick monitor.

        Args:
            config: System configuration with monitoring settings.
            target_period_ms: Expected tick period; defaults to the
                configured rate's period.
        """
        self._mon_cfg = config.monitoring

        window = self._mon_cfg.window_size
        self._interval_history: Deque[float] = deque(maxlen=window)
        self._duration_history: Deque[float] = deque(maxlen=window)

        if target_period_ms is None:
            target_period_ms = float(config.fusion.sampling_rate.tick_period_ms)
        self._target_period_ms = target_period_ms
        self._late_threshold_ms = self._mon_cfg.late_tick_ms

        self._tick = 0
        self._late_ticks = 0
        self._last_log_time = time.monotonic()
        self._last_tick_start: Optional[float] = None
        self._tick_start: Optional[float] = None

    @property
    def target_period_ms(self) -> float:
        """Expected interval between ticks."""
        return self._target_period_ms

    @target_period_ms.setter
    def target_period_ms(self, value: float) -> None:
        self._target_period_ms = float(value)

    def start_tick(self) -> None:
        """Mark the start of a tick."""
        self._tick_start = time.perf_counter()

    def end_tick(self) -> TickMetrics:
        """Mark the end of a tick and compute its metrics.

        Returns:
            Metrics for this tick.
        """
        now = time.perf_counter()
        start = self._tick_start if self._tick_start is not None else now
        duration_ms = (now - start) * 1000

        interval_ms = 0.0
        is_late = False
        if self._last_tick_start is not None:
            interval_ms = (start - self._last_tick_start) * 1000
            self._interval_history.append(interval_ms)
            if interval_ms > self._target_period_ms + self._late_threshold_ms:
                is_late = True
                self._late_ticks += 1
                logger.debug(
                    "Late tick: interval=%.2f ms (target=%.2f ms)",
                    interval_ms, self._target_period_ms
                )

        self._duration_history.append(duration_ms)
        self._last_tick_start = start
        self._tick_start = None
        self._tick += 1

        self._maybe_log_stats()

        return TickMetrics(
            interval_ms=interval_ms,
            duration_ms=duration_ms,
            tick=self._tick,
            is_late=is_late,
        )

    def _maybe_log_stats(self) -> None:
        """Log statistics periodically."""
        now = time.monotonic()
        if now - self._last_log_time >= self._mon_cfg.log_interval_s:
            stats = self.get_stats()
            logger.info(
                "Fusion tick: rate=%.1f Hz, interval=%.2f+/-%.2f ms, "
                "duration=%.3f ms, late=%d",
                stats.effective_rate_hz,
                stats.mean_interval_ms,
                stats.std_interval_ms,
                stats.mean_duration_ms,
                stats.late_ticks,
            )
            self._last_log_time = now

    def get_stats(self) -> TickStats:
        """Get aggregated tick statistics.

        Returns:
            TickStats with current metrics.
        """
        if not self._duration_history:
            return TickStats(
                mean_interval_ms=0.0,
                std_interval_ms=0.0,
                max_interval_ms=0.0,
                min_interval_ms=0.0,
                mean_duration_ms=0.0,
                max_duration_ms=0.0,
                effective_rate_hz=0.0,
                jitter_ms=0.0,
                late_ticks=0,
                total_ticks=0,
            )

        duration_array = np.array(self._duration_history)
        if self._interval_history:
            interval_array = np.array(self._interval_history)
        else:
            interval_array = np.zeros(1)

        mean_interval = float(np.mean(interval_array))
        effective_rate = 1000.0 / mean_interval if mean_interval > 0 else 0.0

        return TickStats(
            mean_interval_ms=mean_interval,
            std_interval_ms=float(np.std(interval_array)),
            max_interval_ms=float(np.max(interval_array)),
            min_interval_ms=float(np.min(interval_array)),
            mean_duration_ms=float(np.mean(duration_array)),
            max_duration_ms=float(np.max(duration_array)),
            effective_rate_hz=effective_rate,
            jitter_ms=float(np.std(interval_array - self._target_period_ms)),
            late_ticks=self._late_ticks,
            total_ticks=self._tick,
        )

    def reset(self) -> None:
        """Reset all metrics."""
        self._interval_history.clear()
        self._duration_history.clear()
        self._tick = 0
        self._late_ticks = 0
        self._last_tick_start = None
        self._tick_start = None
