"""Tests for rotation matrix operations."""

import pytest
import numpy as np
from numpy.testing import assert_allclose

from orientation_fusion.core.rotation import RotationOps


class TestMultiply:
    """Tests for the 3x3 multiply primitive."""

    def test_identity_leaves_matrix_unchanged(self, identity_matrix):
        """Multiplying by identity should return the same matrix."""
        R = RotationOps.from_orientation(np.array([0.3, -0.2, 0.5]))

        assert_allclose(RotationOps.multiply(R, identity_matrix), R, atol=1e-12)
        assert_allclose(RotationOps.multiply(identity_matrix, R), R, atol=1e-12)

    def test_accepts_flat_row_major(self):
        """Nine-element row-major inputs should be reshaped."""
        a = list(range(9))
        identity = [1, 0, 0, 0, 1, 0, 0, 0, 1]

        result = RotationOps.multiply(a, identity)

        assert result.shape == (3, 3)
        assert_allclose(result.flatten(), a)

    def test_row_major_product(self):
        """Product should follow row-by-column multiplication."""
        a = np.array([[1.0, 2.0, 0.0], [0.0, 1.0, 0.0], [0.0, 0.0, 3.0]])
        b = np.array([[0.0, 1.0, 0.0], [1.0, 0.0, 0.0], [0.0, 0.0, 1.0]])

        result = RotationOps.multiply(a, b)

        assert_allclose(result, [[2.0, 1.0, 0.0], [1.0, 0.0, 0.0], [0.0, 0.0, 3.0]])


class TestOrientationConversion:
    """Tests for orientation <-> matrix conversion."""

    def test_zero_orientation_is_identity(self, identity_matrix):
        """Zero angles should give the identity matrix."""
        R = RotationOps.from_orientation(np.zeros(3))
        assert_allclose(R, identity_matrix, atol=1e-12)

    @pytest.mark.parametrize("orientation", [
        [0.0, 0.0, 0.0],
        [1.0, 0.2, -0.3],
        [-2.5, -0.7, 1.2],
        [3.0, 1.2, -2.9],
    ])
    def test_round_trip(self, orientation):
        """Extracting angles from a built matrix should recover them."""
        orientation = np.array(orientation)
        R = RotationOps.from_orientation(orientation)

        assert_allclose(RotationOps.to_orientation(R), orientation, atol=1e-9)

    def test_result_is_orthonormal(self):
        """Built matrices should be proper rotations."""
        R = RotationOps.from_orientation(np.array([0.7, -0.4, 2.0]))
        assert RotationOps.is_orthonormal(R)

    def test_non_rotation_detected(self):
        """Scaled matrices should not pass the orthonormal check."""
        assert not RotationOps.is_orthonormal(2.0 * np.eye(3))
        assert not RotationOps.is_orthonormal(np.full((3, 3), np.nan))


class TestGravityMagnetic:
    """Tests for the accelerometer/magnetometer rotation matrix."""

    def test_flat_facing_north(self, readings):
        """Flat device facing north should give identity."""
        acc, mag = readings(0.0)
        R = RotationOps.from_gravity_magnetic(acc, mag)

        assert R is not None
        assert_allclose(R, np.eye(3), atol=1e-12)

    def test_flat_facing_east(self):
        """Flat device facing east should give azimuth of +90 degrees."""
        R = RotationOps.from_gravity_magnetic(
            np.array([0.0, 0.0, 9.81]), np.array([-22.0, 0.0, -42.0])
        )

        assert R is not None
        orientation = RotationOps.to_orientation(R)
        assert_allclose(orientation, [np.pi / 2, 0.0, 0.0], atol=1e-9)

    @pytest.mark.parametrize("azimuth_deg", [-150.0, -30.0, 45.0, 120.0, 179.0])
    def test_recovers_heading(self, readings, azimuth_deg):
        """Synthetic readings should map back to their heading."""
        acc, mag = readings(azimuth_deg)
        orientation = RotationOps.to_orientation(
            RotationOps.from_gravity_magnetic(acc, mag)
        )

        assert abs(np.rad2deg(orientation[0]) - azimuth_deg) < 1e-6

    def test_free_fall_rejected(self):
        """Acceleration far below gravity should not resolve a matrix."""
        R = RotationOps.from_gravity_magnetic(
            np.array([0.0, 0.0, 0.5]), np.array([0.0, 22.0, -42.0])
        )
        assert R is None

    def test_parallel_vectors_rejected(self):
        """Magnetic field parallel to gravity should not resolve a matrix."""
        R = RotationOps.from_gravity_magnetic(
            np.array([0.0, 0.0, 9.81]), np.array([0.0, 0.0, -42.0])
        )
        assert R is None

    def test_zero_field_rejected(self):
        """Missing magnetic field should not resolve a matrix."""
        R = RotationOps.from_gravity_magnetic(np.array([0.0, 0.0, 9.81]), np.zeros(3))
        assert R is None


class TestRotationVector:
    """Tests for gyro delta rotations."""

    def test_below_epsilon_is_identity(self):
        """Angular speed below epsilon should yield no rotation."""
        vector = RotationOps.rotation_vector_from_gyro(np.array([1e-10, 0.0, 0.0]), 0.01)

        assert np.all(np.isfinite(vector))
        assert_allclose(vector[:3], 0.0)
        assert_allclose(RotationOps.from_rotation_vector(vector), np.eye(3), atol=1e-12)

    def test_zero_rate_no_nan(self):
        """Exactly zero angular velocity should not divide by zero."""
        vector = RotationOps.rotation_vector_from_gyro(np.zeros(3), 0.05)

        assert np.all(np.isfinite(vector))
        assert_allclose(vector, [0.0, 0.0, 0.0, 1.0])

    def test_quarter_turn_about_z(self):
        """1 rad/s for pi/2 seconds should rotate a quarter turn about Z."""
        vector = RotationOps.rotation_vector_from_gyro(np.array([0.0, 0.0, 1.0]), np.pi / 4)
        R = RotationOps.from_rotation_vector(vector)

        expected = np.array([[0.0, -1.0, 0.0], [1.0, 0.0, 0.0], [0.0, 0.0, 1.0]])
        assert_allclose(R, expected, atol=1e-12)

    def test_unit_quaternion(self):
        """Rotation vectors from non-trivial rates should be unit length."""
        vector = RotationOps.rotation_vector_from_gyro(np.array([0.3, -1.2, 0.5]), 0.01)
        assert abs(np.linalg.norm(vector) - 1.0) < 1e-12

    def test_zero_vector_is_identity(self):
        """An all-zero rotation vector should map to identity."""
        assert_allclose(RotationOps.from_rotation_vector(np.zeros(4)), np.eye(3))
