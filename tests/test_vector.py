"""Test module for bezarc.vector

The tests are run using pytest.
"""

import math

import numpy as np
import pytest

from bezarc import vector


class TestVector:
    """Test point and vector helpers."""

    def test_as_vector(self):
        """Sequences become 1D float64 arrays."""
        arr = vector.as_vector((1, 2, 3))
        assert arr.dtype == np.float64
        assert np.array_equal(arr, [1.0, 2.0, 3.0])

    def test_as_vector_rejects_matrix(self):
        """A 2D array is not a vector."""
        with pytest.raises(ValueError, match="1 dimension"):
            vector.as_vector([(1.0, 2.0), (3.0, 4.0)])

    def test_lerp_ends_are_exact(self):
        """lerp reproduces both points exactly."""
        a, b = (0.1, 0.7), (0.3, 1.9)
        assert np.array_equal(vector.lerp(a, b, 0.0), a)
        assert np.array_equal(vector.lerp(a, b, 1.0), b)
        assert np.allclose(vector.lerp(a, b, 0.5), (0.2, 1.3))

    def test_sub_scale_dot(self):
        """Basic vector arithmetic."""
        assert np.array_equal(vector.sub((3.0, 4.0), (1.0, 1.0)), (2.0, 3.0))
        assert np.array_equal(vector.scale((1.0, -2.0, 0.5), 2.0), (2.0, -4.0, 1.0))
        assert vector.dot((1.0, 2.0, 3.0), (4.0, 5.0, 6.0)) == 32.0

    def test_length_and_direction(self):
        """Length is Euclidean, direction has unit length."""
        assert vector.length((3.0, 4.0)) == 5.0
        assert np.allclose(vector.direction((3.0, 4.0)), (0.6, 0.8))
        assert math.isclose(vector.length(vector.direction((1.0, 2.0, 2.0))), 1.0)

    def test_direction_of_zero_vector(self):
        """A zero vector has zero direction."""
        assert np.array_equal(vector.direction((0.0, 0.0, 0.0)), (0.0, 0.0, 0.0))

    @pytest.mark.parametrize("func", [vector.lerp, vector.sub, vector.dot])
    def test_dimension_mismatch(self, func):
        """2D and 3D vectors cannot be combined."""
        args = ((1.0, 2.0), (1.0, 2.0, 3.0))
        if func is vector.lerp:
            args = args + (0.5,)
        with pytest.raises(ValueError, match="dimension"):
            func(*args)
