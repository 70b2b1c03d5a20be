"""Sensor fusion module for device orientation estimation."""

from .complementary import fuse_axis, fuse_orientation, FILTER_COEFFICIENT
from .gyro import GyroIntegrator
from .dispatch import ChangeDispatcher, OrientationDelegate
from .engine import OrientationEngine

__all__ = [
    "fuse_axis",
    "fuse_orientation",
    "FILTER_COEFFICIENT",
    "GyroIntegrator",
    "ChangeDispatcher",
    "OrientationDelegate",
    "OrientationEngine",
]
