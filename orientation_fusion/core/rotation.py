"""Rotation matrix operations and utilities.

Matrices are 3x3 float64 arrays (row-major when flattened). Orientation
triples are [azimuth, pitch, roll] in radians, with azimuth about Z,
pitch about X and roll about Y.
"""

from typing import Optional
import numpy as np
from numpy.typing import NDArray
from scipy.spatial.transform import Rotation

STANDARD_GRAVITY = 9.80665

# Below 1% of g^2 the device is considered in free fall.
FREE_FALL_GRAVITY_SQUARED = 0.01 * STANDARD_GRAVITY * STANDARD_GRAVITY
MIN_HORIZONTAL_NORM = 0.1


class RotationOps:
    """Static methods for rotation matrix operations."""

    @staticmethod
    def identity() -> NDArray[np.float64]:
        """Return the 3x3 identity matrix."""
        return np.eye(3, dtype=np.float64)

    @staticmethod
    def multiply(a: NDArray[np.float64], b: NDArray[np.float64]) -> NDArray[np.float64]:
        """Multiply two 3x3 matrices.

        Args:
            a: Left 3x3 matrix.
            b: Right 3x3 matrix.

        Returns:
            Product a * b as a new array.
        """
        a = np.asarray(a, dtype=np.float64).reshape(3, 3)
        b = np.asarray(b, dtype=np.float64).reshape(3, 3)
        return a @ b

    @staticmethod
    def from_orientation(orientation: NDArray[np.float64]) -> NDArray[np.float64]:
        """Build a rotation matrix from [azimuth, pitch, roll].

        Rotations are applied in roll, pitch, azimuth order, giving
        Z * X * Y.

        Args:
            orientation: Orientation triple in radians.

        Returns:
            3x3 rotation matrix.
        """
        azimuth, pitch, roll = (float(v) for v in orientation[:3])

        sin_x, cos_x = np.sin(pitch), np.cos(pitch)
        sin_y, cos_y = np.sin(roll), np.cos(roll)
        sin_z, cos_z = np.sin(azimuth), np.cos(azimuth)

        x_m = np.array([
            [1.0, 0.0, 0.0],
            [0.0, cos_x, sin_x],
            [0.0, -sin_x, cos_x],
        ])
        y_m = np.array([
            [cos_y, 0.0, sin_y],
            [0.0, 1.0, 0.0],
            [-sin_y, 0.0, cos_y],
        ])
        z_m = np.array([
            [cos_z, sin_z, 0.0],
            [-sin_z, cos_z, 0.0],
            [0.0, 0.0, 1.0],
        ])

        result = RotationOps.multiply(x_m, y_m)
        return RotationOps.multiply(z_m, result)

    @staticmethod
    def to_orientation(R: NDArray[np.float64]) -> NDArray[np.float64]:
        """Extract [azimuth, pitch, roll] from a rotation matrix.

        Args:
            R: 3x3 rotation matrix.

        Returns:
            Orientation triple in radians.
        """
        R = np.asarray(R, dtype=np.float64).reshape(3, 3)
        azimuth = np.arctan2(R[0, 1], R[1, 1])
        pitch = np.arcsin(np.clip(-R[2, 1], -1.0, 1.0))
        roll = np.arctan2(-R[2, 0], R[2, 2])
        return np.array([azimuth, pitch, roll], dtype=np.float64)

    @staticmethod
    def from_gravity_magnetic(
        gravity: NDArray[np.float64],
        geomagnetic: NDArray[np.float64],
    ) -> Optional[NDArray[np.float64]]:
        """Compute the device rotation matrix from gravity and magnetic field.

        Rows of the result are east (H), north (M) and up (A) expressed in
        device coordinates.

        Args:
            gravity: Accelerometer reading [ax, ay, az] in m/s^2.
            geomagnetic: Magnetometer reading [mx, my, mz] in uT.

        Returns:
            3x3 rotation matrix, or None if the device is in free fall or
            the vectors are (close to) parallel.
        """
        a = np.asarray(gravity, dtype=np.float64)
        e = np.asarray(geomagnetic, dtype=np.float64)

        norm_sq_a = float(np.dot(a, a))
        if norm_sq_a < FREE_FALL_GRAVITY_SQUARED:
            return None

        h = np.cross(e, a)
        norm_h = float(np.linalg.norm(h))
        if norm_h < MIN_HORIZONTAL_NORM:
            return None

        h = h / norm_h
        a = a / np.sqrt(norm_sq_a)
        m = np.cross(a, h)

        return np.vstack([h, m, a])

    @staticmethod
    def rotation_vector_from_gyro(
        gyro: NDArray[np.float64],
        time_factor: float,
        epsilon: float = 1e-9,
    ) -> NDArray[np.float64]:
        """Convert an angular velocity sample into a delta rotation vector.

        The rotation axis is the normalized angular velocity; it stays zero
        when the angular speed does not exceed ``epsilon``.

        Args:
            gyro: Angular velocity [wx, wy, wz] in rad/s.
            time_factor: Half the elapsed time in seconds.
            epsilon: Minimum angular speed treated as a rotation.

        Returns:
            Rotation vector [x, y, z, w] (scalar last).
        """
        gyro = np.asarray(gyro, dtype=np.float64)
        omega_magnitude = float(np.linalg.norm(gyro))

        axis = np.zeros(3)
        if omega_magnitude > epsilon:
            axis = gyro / omega_magnitude

        theta_over_two = omega_magnitude * time_factor
        sin_theta_over_two = np.sin(theta_over_two)
        cos_theta_over_two = np.cos(theta_over_two)

        return np.array([
            sin_theta_over_two * axis[0],
            sin_theta_over_two * axis[1],
            sin_theta_over_two * axis[2],
            cos_theta_over_two,
        ], dtype=np.float64)

    @staticmethod
    def from_rotation_vector(rotation_vector: NDArray[np.float64]) -> NDArray[np.float64]:
        """Convert a scalar-last rotation vector into a rotation matrix.

        Args:
            rotation_vector: Quaternion components [x, y, z, w].

        Returns:
            3x3 rotation matrix. A zero vector yields identity.
        """
        q = np.asarray(rotation_vector, dtype=np.float64)
        if np.linalg.norm(q) < 1e-12:
            return RotationOps.identity()
        return Rotation.from_quat(q).as_matrix()

    @staticmethod
    def is_orthonormal(R: NDArray[np.float64], tolerance: float = 1e-6) -> bool:
        """Check that R is a proper rotation within tolerance."""
        R = np.asarray(R, dtype=np.float64).reshape(3, 3)
        if not np.all(np.isfinite(R)):
            return False
        return (np.allclose(R @ R.T, np.eye(3), atol=tolerance)
                and abs(np.linalg.det(R) - 1.0) <= tolerance)
