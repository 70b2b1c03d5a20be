"""Complementary filter blending gyro and accelerometer/magnetometer angles."""

import numpy as np
from numpy.typing import NDArray

FILTER_COEFFICIENT = 0.98

TWO_PI = 2.0 * np.pi
HALF_PI = 0.5 * np.pi


def fuse_axis(gyro: float, direct: float,
              coefficient: float = FILTER_COEFFICIENT) -> float:
    """Blend one angle from both estimates.

    When one angle sits below -pi/2 and the other is positive, the pair
    straddles the +/-pi seam: the negative one is shifted up by 2*pi before
    blending and the result is brought back into (-pi, pi].

    Args:
        gyro: Gyro-integrated angle in radians.
        direct: Accelerometer/magnetometer angle in radians.
        coefficient: Weight of the gyro estimate.

    Returns:
        Fused angle in radians.
    """
    one_minus = 1.0 - coefficient

    if gyro < -HALF_PI and direct > 0.0:
        fused = coefficient * (gyro + TWO_PI) + one_minus * direct
        if fused > np.pi:
            fused -= TWO_PI
    elif direct < -HALF_PI and gyro > 0.0:
        fused = coefficient * gyro + one_minus * (direct + TWO_PI)
        if fused > np.pi:
            fused -= TWO_PI
    else:
        fused = coefficient * gyro + one_minus * direct

    return float(fused)


def fuse_orientation(
    gyro: NDArray[np.float64],
    direct: NDArray[np.float64],
    coefficient: float = FILTER_COEFFICIENT,
) -> NDArray[np.float64]:
    """Fuse [azimuth, pitch, roll] triples axis by axis.

    Args:
        gyro: Gyro-integrated orientation in radians.
        direct: Accelerometer/magnetometer orientation in radians.
        coefficient: Weight of the gyro estimate.

    Returns:
        Fused orientation in radians.
    """
    return np.array(
        [fuse_axis(float(g), float(d), coefficient) for g, d in zip(gyro, direct)],
        dtype=np.float64,
    )
