"""Bezier curve handling for quadratic and cubic curves in 2D and 3D.

Evaluation and subdivision are based on de Casteljau's algorithm. The first
derivative used inside the arc length engine is evaluated on plain Python
floats from precomputed power-form coefficients, expanded around t=0 for
t <= 0.5 and around t=1 for t > 0.5.
"""

from __future__ import annotations

import math
from typing import Callable, Iterable, List, Optional, Tuple

import numpy as np
from numpy.typing import NDArray

from bezarc import vector
from bezarc.common import SUPPORTED_DEGREES, SUPPORTED_DIMENSIONS, ControlPointsLike, PointLike

# Threshold at which derivative evaluation switches from the expansion around t=0 to the one around t=1
_DERIVATIVE_BRANCH_T: float = 0.5


###############################################################################
# BezierCurve
###############################################################################


class BezierCurve:
    """Immutable quadratic or cubic Bezier curve in 2D or 3D.

    The control points are held in a private read-only float64 array of shape
    (degree + 1, dimension). Every operation that changes the geometry returns
    a new curve.

    A BezierCurve also provides the two callbacks needed to build an arc length
    parameterization: ``speed_at(t)`` and ``acceleration_bound()``.
    """

    def __init__(self, points: ControlPointsLike):
        """
        Initialize a BezierCurve from its control points.

        Args:
            points: 3 (quadratic) or 4 (cubic) points, each (x, y) or (x, y, z).

        Raises:
            ValueError: If the number of points, the point dimension or any
                coordinate value is not supported.
        """
        try:
            arr = np.array(points, dtype=np.float64)
        except (TypeError, ValueError) as err:
            raise ValueError("control points must be a sequence of equally sized numeric points") from err

        if arr.ndim != 2:
            raise ValueError(f"control points must have 2 dimensions, got {arr.ndim}")
        if arr.shape[0] - 1 not in SUPPORTED_DEGREES:
            raise ValueError(f"expected 3 (quadratic) or 4 (cubic) control points, got {arr.shape[0]}")
        if arr.shape[1] not in SUPPORTED_DIMENSIONS:
            raise ValueError(f"control points must have shape (n, 2) or (n, 3), got {arr.shape}")
        if not np.all(np.isfinite(arr)):
            raise ValueError("control points must have finite coordinates")

        arr.flags.writeable = False
        self._points: NDArray[np.float64] = arr
        self._degree: int = arr.shape[0] - 1
        self._dimension: int = arr.shape[1]

        # Second differences of the control points, basis of the second derivative
        second_differences = np.diff(arr, n=2, axis=0)
        second_differences.flags.writeable = False
        self._second_differences: NDArray[np.float64] = second_differences
        self._max_second_derivative: float = float(
            self._degree * (self._degree - 1) * np.max(np.linalg.norm(second_differences, axis=1))
        )

        self._forward_coefficients, self._backward_coefficients = self._derivative_coefficients(arr)

    @staticmethod
    def _derivative_coefficients(
        points: NDArray[np.float64],
    ) -> Tuple[Tuple[Tuple[float, ...], ...], Tuple[Tuple[float, ...], ...]]:
        """Power-form coefficients of the first derivative, per coordinate, highest order first.

        The derivative of a degree n curve is n * sum_k C(n-1, k) * s^k * D^k d_0, where d
        are the first differences of the control points and D^k the k-th forward difference.
        The forward expansion uses s = t and the differences in their natural order, the
        backward expansion uses s = 1 - t and the differences in reverse order.
        """
        degree = points.shape[0] - 1
        differences = np.diff(points, axis=0)

        def expand(diffs: NDArray[np.float64]) -> Tuple[Tuple[float, ...], ...]:
            terms = [
                degree * math.comb(degree - 1, k) * np.diff(diffs, n=k, axis=0)[0] for k in range(degree)
            ]
            return tuple(
                tuple(float(terms[k][axis]) for k in reversed(range(degree))) for axis in range(points.shape[1])
            )

        return expand(differences), expand(differences[::-1])

    ###########################################################################
    # Construction
    ###########################################################################

    @classmethod
    def from_control_points(cls, points: ControlPointsLike, degree: Optional[int] = None) -> BezierCurve:
        """
        Create a BezierCurve from control points, optionally checking the expected degree.

        Args:
            points: Control points as sequence of (x, y) / (x, y, z) or array.
            degree: Expected degree (2 or 3). If None, the degree follows the point count.

        Returns:
            BezierCurve: the new curve

        Raises:
            ValueError: If the point count does not match the requested degree.
        """
        if degree is not None:
            if degree not in SUPPORTED_DEGREES:
                raise ValueError(f"degree must be one of {SUPPORTED_DEGREES}, got {degree}")
            if len(points) != degree + 1:
                raise ValueError(f"degree {degree} curve needs {degree + 1} control points, got {len(points)}")
        return cls(points)

    @classmethod
    def from_endpoints_and_tangents(
        cls, start: PointLike, start_tangent: PointLike, end: PointLike, end_tangent: PointLike
    ) -> BezierCurve:
        """
        Create a cubic BezierCurve with the given end points and boundary derivatives.

        The inner control points are chosen so that derivative_at(0) equals
        start_tangent and derivative_at(1) equals end_tangent.

        Args:
            start: Start point of the curve.
            start_tangent: First derivative at t=0.
            end: End point of the curve.
            end_tangent: First derivative at t=1.

        Returns:
            BezierCurve: the cubic curve
        """
        p0 = vector.as_vector(start)
        p3 = vector.as_vector(end)
        t0 = vector.as_vector(start_tangent)
        t1 = vector.as_vector(end_tangent)
        if not p0.shape == p3.shape == t0.shape == t1.shape:
            raise ValueError(
                f"points and tangents must share one dimension, got {p0.shape[0]}, {t0.shape[0]}, "
                f"{p3.shape[0]}, {t1.shape[0]}"
            )
        p1 = p0 + vector.scale(t0, 1.0 / 3.0)
        p2 = p3 - vector.scale(t1, 1.0 / 3.0)
        return cls(np.array([p0, p1, p2, p3], dtype=np.float64))

    @classmethod
    def from_lower_degree(cls, curve: BezierCurve) -> BezierCurve:
        """
        Create the cubic BezierCurve describing exactly the same geometry as a quadratic one.

        Args:
            curve: Quadratic curve to elevate.

        Returns:
            BezierCurve: cubic curve with identical geometry and parameterization

        Raises:
            ValueError: If the given curve is not quadratic.
        """
        if curve.degree != 2:
            raise ValueError(f"degree elevation needs a quadratic curve, got degree {curve.degree}")
        points = curve.control_points
        new_degree = curve.degree + 1
        elevated = [points[0]]
        for i in range(1, new_degree):
            alpha = i / new_degree
            elevated.append(alpha * points[i - 1] + (1.0 - alpha) * points[i])
        elevated.append(points[-1])
        return cls(np.array(elevated, dtype=np.float64))

    @classmethod
    def from_dict(cls, data: dict) -> BezierCurve:
        """Create a BezierCurve instance from a dictionary."""
        return cls(data.get("control_points", []))

    def to_dict(self) -> dict:
        """Convert the BezierCurve instance to a dictionary."""
        return {"control_points": self._points.tolist()}

    ###########################################################################
    # Properties
    ###########################################################################

    @property
    def control_points(self) -> NDArray[np.float64]:
        """
        The control points as read-only numpy array of shape (degree + 1, dimension).
        """
        return self._points

    @property
    def degree(self) -> int:
        """int: 2 for quadratic, 3 for cubic curves."""
        return self._degree

    @property
    def dimension(self) -> int:
        """int: Number of coordinates per point (2 or 3)."""
        return self._dimension

    @property
    def start_point(self) -> NDArray[np.float64]:
        """The first control point, identical to point_at(0)."""
        return self._points[0]

    @property
    def end_point(self) -> NDArray[np.float64]:
        """The last control point, identical to point_at(1)."""
        return self._points[-1]

    ###########################################################################
    # Evaluation
    ###########################################################################

    def _de_casteljau(self, t: float) -> List[NDArray[np.float64]]:
        """Return all levels of the de Casteljau triangle at t.

        Level 0 holds the control points, level k holds degree + 1 - k points
        and the last level holds the single point on the curve.
        """
        levels = [self._points]
        level = self._points
        while level.shape[0] > 1:
            level = (1.0 - t) * level[:-1] + t * level[1:]
            levels.append(level)
        return levels

    def point_at(self, t: float) -> NDArray[np.float64]:
        """
        Evaluate the position on the curve at parameter t.

        Values of t outside [0, 1] extrapolate the polynomial.

        Args:
            t: Curve parameter.

        Returns:
            NDArray[np.float64]: the point of shape (dimension,)
        """
        return self._de_casteljau(t)[-1][0]

    def sample_at(self, t: float) -> Tuple[NDArray[np.float64], NDArray[np.float64]]:
        """Evaluate position and first derivative at t from one de Casteljau pass."""
        levels = self._de_casteljau(t)
        before_last = levels[-2]
        return levels[-1][0], self._degree * (before_last[1] - before_last[0])

    def _derivative_components(self, t: float) -> List[float]:
        if t <= _DERIVATIVE_BRANCH_T:
            s = t
            coefficients = self._forward_coefficients
        else:
            s = 1.0 - t
            coefficients = self._backward_coefficients

        components = []
        for axis_coefficients in coefficients:
            value = 0.0
            for c in axis_coefficients:
                value = value * s + c
            components.append(value)
        return components

    def derivative_at(self, t: float) -> NDArray[np.float64]:
        """
        Evaluate the first derivative with respect to t.

        The derivative is computed from the control point differences, expanded
        around t=0 for t <= 0.5 and around t=1 (using u = 1 - t) otherwise.

        Args:
            t: Curve parameter.

        Returns:
            NDArray[np.float64]: the derivative vector of shape (dimension,)
        """
        return np.array(self._derivative_components(t), dtype=np.float64)

    def speed_at(self, t: float) -> float:
        """
        Magnitude of the first derivative at t.

        Same evaluation as derivative_at, but the Euclidean norm is accumulated
        on the fly without creating a vector.
        """
        if t <= _DERIVATIVE_BRANCH_T:
            s = t
            coefficients = self._forward_coefficients
        else:
            s = 1.0 - t
            coefficients = self._backward_coefficients

        total = 0.0
        for axis_coefficients in coefficients:
            value = 0.0
            for c in axis_coefficients:
                value = value * s + c
            total += value * value
        return math.sqrt(total)

    def second_derivative_at(self, t: float) -> NDArray[np.float64]:
        """
        Evaluate the second derivative with respect to t.

        For a cubic curve this is the linear interpolation between the two
        second differences of the control points, scaled by 6. For a quadratic
        curve it is the constant 2 * (P0 - 2*P1 + P2).
        """
        level = self._second_differences
        while level.shape[0] > 1:
            level = (1.0 - t) * level[:-1] + t * level[1:]
        return self._degree * (self._degree - 1) * level[0]

    def max_second_derivative_magnitude(self) -> float:
        """
        Upper bound of the second derivative magnitude over the whole curve.

        The second derivative is a Bezier polynomial over the scaled second
        differences of the control points, so its magnitude never exceeds the
        largest of them. For a quadratic curve the bound is exact.

        Returns:
            float: non-negative bound
        """
        return self._max_second_derivative

    def acceleration_bound(self) -> float:
        """Bound on the acceleration magnitude used by the arc length engine."""
        return self._max_second_derivative

    ###########################################################################
    # Batched evaluation
    ###########################################################################

    def _map_vectors(
        self, func: Callable[[float], NDArray[np.float64]], ts: Iterable[float]
    ) -> NDArray[np.float64]:
        values = [func(float(t)) for t in ts]
        if not values:
            return np.empty((0, self._dimension), dtype=np.float64)
        return np.array(values, dtype=np.float64)

    def points_at(self, ts: Iterable[float]) -> NDArray[np.float64]:
        """Positions at each parameter value, shape (len(ts), dimension)."""
        return self._map_vectors(self.point_at, ts)

    def derivatives_at(self, ts: Iterable[float]) -> NDArray[np.float64]:
        """First derivatives at each parameter value, shape (len(ts), dimension)."""
        return self._map_vectors(self.derivative_at, ts)

    def second_derivatives_at(self, ts: Iterable[float]) -> NDArray[np.float64]:
        """Second derivatives at each parameter value, shape (len(ts), dimension)."""
        return self._map_vectors(self.second_derivative_at, ts)

    def speeds_at(self, ts: Iterable[float]) -> NDArray[np.float64]:
        """Derivative magnitudes at each parameter value."""
        return np.array([self.speed_at(float(t)) for t in ts], dtype=np.float64)

    def samples_at(self, ts: Iterable[float]) -> List[Tuple[NDArray[np.float64], NDArray[np.float64]]]:
        """(position, derivative) pairs at each parameter value."""
        return [self.sample_at(float(t)) for t in ts]

    def polygonize(self, steps: int) -> NDArray[np.float64]:
        """
        Polygonize the curve into line segments of uniform parameter spacing.

        All parameter values are evaluated at once by running the de Casteljau
        recursion on stacked numpy arrays.

        Args:
            steps: Number of segments to divide the curve into.

        Returns:
            NDArray[np.float64] of shape (steps+1, dimension) containing the points
        """
        if steps < 1:
            raise ValueError(f"steps must be >= 1, got {steps}")

        t = np.linspace(0.0, 1.0, steps + 1, dtype=np.float64)[:, np.newaxis, np.newaxis]
        level = np.broadcast_to(self._points, (steps + 1,) + self._points.shape)
        while level.shape[1] > 1:
            level = (1.0 - t) * level[:, :-1] + t * level[:, 1:]
        return level[:, 0, :]

    ###########################################################################
    # Subdivision
    ###########################################################################

    def split_at(self, t: float) -> Tuple[BezierCurve, BezierCurve]:
        """
        Split the curve at parameter t into two curves of the same degree.

        The left curve takes the first point of every de Casteljau level, the
        right curve the last point of every level in reverse order. Both curves
        share the point at t.

        Args:
            t: Split parameter, meaningful within [0, 1].

        Returns:
            Tuple[BezierCurve, BezierCurve]: the curves covering [0, t] and [t, 1]
        """
        levels = self._de_casteljau(t)
        left = np.array([level[0] for level in levels], dtype=np.float64)
        right = np.array([level[-1] for level in reversed(levels)], dtype=np.float64)
        return BezierCurve(left), BezierCurve(right)

    def bisect(self) -> Tuple[BezierCurve, BezierCurve]:
        """Split the curve at t=0.5."""
        return self.split_at(0.5)

    def reversed(self) -> BezierCurve:
        """Return the same curve traversed from its end point to its start point."""
        return BezierCurve(self._points[::-1])

    ###########################################################################
    # Comparison
    ###########################################################################

    def approx_equal(self, other: BezierCurve, rtol: float = 1e-9, atol: float = 1e-9) -> bool:
        """
        Check if two curves are approximately equal within numerical tolerances.

        Args:
            other: The other curve to compare with.
            rtol: Relative tolerance for floating point comparisons.
            atol: Absolute tolerance for floating point comparisons.

        Returns:
            bool: True if both curves have the same shape of control points and
                all control points match within the tolerances.
        """
        if not isinstance(other, BezierCurve):
            return False
        if self._points.shape != other.control_points.shape:
            return False
        return bool(np.allclose(self._points, other.control_points, rtol=rtol, atol=atol))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, BezierCurve):
            return NotImplemented
        return self._points.shape == other.control_points.shape and bool(
            np.array_equal(self._points, other.control_points)
        )

    def __hash__(self) -> int:
        return hash((self._points.shape, tuple(float(value) for value in self._points.ravel())))

    def __repr__(self) -> str:
        return f"BezierCurve({self._points.tolist()})"
