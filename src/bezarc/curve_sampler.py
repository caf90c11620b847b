"""Sampling of Bezier curves at uniform arc length spacing."""

from __future__ import annotations

from typing import Iterable, List, Optional, Tuple

import numpy as np
from numpy.typing import NDArray

from bezarc import vector
from bezarc.arc_length import ArcLengthParameterization
from bezarc.bezier import BezierCurve
from bezarc.common import DEFAULT_MAX_ERROR


class CurveSampler:
    """Utility class for sampling positions and tangents along a curve by arc length.

    The parameterization does not own the curve, so the curve it was built for
    is passed in explicitly to resolve parameter values into points.
    """

    @staticmethod
    def sample_at_arc_length(
        curve: BezierCurve, parameterization: ArcLengthParameterization, length: float
    ) -> Optional[Tuple[NDArray[np.float64], NDArray[np.float64]]]:
        """Position and first derivative at the given arc length, or None if out of range."""
        t = parameterization.to_parameter_value(length)
        if t is None:
            return None
        return curve.sample_at(t)

    @staticmethod
    def points_at_arc_lengths(
        curve: BezierCurve, parameterization: ArcLengthParameterization, lengths: Iterable[float]
    ) -> List[Optional[NDArray[np.float64]]]:
        """Positions at each arc length, None for lengths outside [0, total_length]."""
        return [None if t is None else curve.point_at(t) for t in parameterization.to_parameter_values(lengths)]

    @staticmethod
    def unit_tangents_at_arc_lengths(
        curve: BezierCurve, parameterization: ArcLengthParameterization, lengths: Iterable[float]
    ) -> List[Optional[NDArray[np.float64]]]:
        """
        Unit tangent vectors at each arc length.

        Where the curve has zero speed the tangent is a zero vector. Lengths
        outside [0, total_length] give None.
        """
        return [
            None if t is None else vector.direction(curve.derivative_at(t))
            for t in parameterization.to_parameter_values(lengths)
        ]

    @staticmethod
    def polygonize_uniform_arc_length(
        curve: BezierCurve, steps: int, max_error: float = DEFAULT_MAX_ERROR
    ) -> NDArray[np.float64]:
        """
        Polygonize a curve into line segments of equal arc length.

        Args:
            curve: The curve to polygonize.
            steps: Number of segments to divide the curve into.
            max_error: Absolute error bound of the arc length table.

        Returns:
            NDArray[np.float64] of shape (steps+1, dimension) starting at the
            first and ending at the last control point

        Raises:
            ValueError: If steps is smaller than 1.
        """
        if steps < 1:
            raise ValueError(f"steps must be >= 1, got {steps}")
        parameterization = ArcLengthParameterization.from_curve(curve, max_error=max_error)
        return curve.points_at(parameterization.uniform_parameter_values(steps + 1))
