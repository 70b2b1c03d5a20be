"""Performance monitoring module for orientation sensor fusion."""

from .metrics import TickMonitor, TickMetrics, TickStats

__all__ = ["TickMonitor", "TickMetrics", "TickStats"]
