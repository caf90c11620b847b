"""Point and vector primitives consumed by the curve and arc length code."""

from __future__ import annotations

import math

import numpy as np
from numpy.typing import NDArray

from bezarc.common import PointLike


def as_vector(point: PointLike) -> NDArray[np.float64]:
    """Return the given point or vector as a 1D float64 array."""
    arr = np.asarray(point, dtype=np.float64)
    if arr.ndim != 1:
        raise ValueError(f"point must have 1 dimension, got {arr.ndim}")
    return arr


def _check_same_dimension(a: NDArray[np.float64], b: NDArray[np.float64]) -> None:
    if a.shape != b.shape:
        raise ValueError(f"dimension mismatch: {a.shape[0]} vs {b.shape[0]}")


def lerp(start: PointLike, end: PointLike, t: float) -> NDArray[np.float64]:
    """Interpolate between two points by factor t.

    Uses the (1-t)*start + t*end form, which reproduces start at t=0 and
    end at t=1 exactly.
    """
    a = as_vector(start)
    b = as_vector(end)
    _check_same_dimension(a, b)
    return (1.0 - t) * a + t * b


def sub(end: PointLike, start: PointLike) -> NDArray[np.float64]:
    """Vector pointing from start to end."""
    a = as_vector(start)
    b = as_vector(end)
    _check_same_dimension(a, b)
    return b - a


def scale(vector: PointLike, factor: float) -> NDArray[np.float64]:
    """Vector multiplied by a scalar factor."""
    return as_vector(vector) * factor


def dot(a: PointLike, b: PointLike) -> float:
    """Dot product of two vectors."""
    va = as_vector(a)
    vb = as_vector(b)
    _check_same_dimension(va, vb)
    return float(np.dot(va, vb))


def length(vector: PointLike) -> float:
    """Euclidean length of a vector."""
    return math.sqrt(dot(vector, vector))


def direction(vector: PointLike) -> NDArray[np.float64]:
    """Unit vector pointing in the direction of vector.

    A zero vector has no direction; a zero vector is returned in that case.
    """
    v = as_vector(vector)
    norm = length(v)
    if norm == 0.0:
        return np.zeros_like(v)
    return v / norm
