"""Arc length parameterization of curves with a bounded acceleration.

An ArcLengthParameterization maps between the curve parameter t in [0, 1] and
the arc length traveled from t=0. It is built from two callbacks only: the
speed (magnitude of the first derivative) at a parameter value and a global
bound on the magnitude of the second derivative.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import TYPE_CHECKING, Iterable, List, Optional, Protocol

import numpy as np
from numpy.typing import NDArray

from bezarc.common import DEFAULT_MAX_ERROR, ZERO_SPEED_EPS

if TYPE_CHECKING:
    from bezarc.bezier import BezierCurve  # pylint: disable=unused-import

logger = logging.getLogger(__name__)


###############################################################################
# SpeedSource
###############################################################################


class SpeedSource(Protocol):
    """Protocol for anything an arc length table can be built for.

    BezierCurve implements this protocol.
    """

    def speed_at(self, t: float) -> float:
        """Return the non-negative magnitude of the first derivative at t."""

    def acceleration_bound(self) -> float:
        """Return an upper bound of the second derivative magnitude over [0, 1]."""


###############################################################################
# ArcLengthOptions
###############################################################################


@dataclass(frozen=True)
class ArcLengthOptions:
    """Options for building an arc length parameterization.

    Attributes:
        max_error: Absolute error bound of the computed arc lengths.
    """

    max_error: float = DEFAULT_MAX_ERROR

    def __post_init__(self):
        value = self.max_error
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValueError(f"max_error must be a number, got {value!r}")
        if not math.isfinite(value) or value <= 0.0:
            raise ValueError(f"max_error must be a positive finite number, got {value}")

    def to_dict(self) -> dict:
        """Convert options to a dictionary for serialization."""
        return {"max_error": self.max_error}

    @classmethod
    def from_dict(cls, data: dict) -> "ArcLengthOptions":
        """Create ArcLengthOptions from a dictionary."""
        return cls(max_error=data.get("max_error", DEFAULT_MAX_ERROR))


###############################################################################
# ArcLengthSegment
###############################################################################


@dataclass(frozen=True)
class ArcLengthSegment:
    """One entry of an arc length table.

    Attributes:
        t_start: Parameter at the start of the segment.
        t_end: Parameter at the end of the segment.
        length_start: Arc length from t=0 to t_start.
        length_end: Arc length from t=0 to t_end.
    """

    t_start: float
    t_end: float
    length_start: float
    length_end: float

    @property
    def length(self) -> float:
        """float: Arc length covered by this segment."""
        return self.length_end - self.length_start


###############################################################################
# ArcLengthParameterization
###############################################################################


class ArcLengthParameterization:
    """Tolerance-bounded mapping between curve parameter and arc length.

    The parameter range [0, 1] is bisected until the trapezoid estimate of
    the length integral on every leaf interval [a, b] is accurate to
    ERROR_BUDGET_FRACTION * max_error * (b - a). The error of a leaf is bounded
    by the global acceleration bound as max_accel * (b - a)^3 / 12, and
    additionally estimated from the difference to the trapezoid estimate of
    both halves, whichever is larger. The accepted leaves form a table of
    segments in increasing parameter and arc length order.

    Within a segment starting at a, the arc length up to t is modeled as
    length_start + (t - a) * (speed(a) + speed(t)) / 2. Lengths are inverted
    by Newton iteration on this model inside the segment bounds, falling back
    to bisection where the speed vanishes.

    Instances are immutable and can be shared between threads.
    """

    # Maximum bisection depth of the parameter range
    MAX_DEPTH: int = 24  # pylint: disable=invalid-name
    # Share of max_error available to the table, the rest is left for rounding and the inversion
    ERROR_BUDGET_FRACTION: float = 0.5  # pylint: disable=invalid-name
    # Maximum number of Newton / bisection steps when inverting a length
    MAX_INVERSION_ITERATIONS: int = 50  # pylint: disable=invalid-name
    # Inversion stops when the length residual is below this share of max_error
    INVERSION_RESIDUAL_FACTOR: float = 1.0e-3  # pylint: disable=invalid-name

    def __init__(self, source: SpeedSource, options: Optional[ArcLengthOptions] = None):
        """
        Build the arc length table for the given speed source.

        Args:
            source: Provides speed_at(t) and acceleration_bound().
            options: Build options, defaults to ArcLengthOptions().

        Raises:
            ValueError: If the acceleration bound is negative or not finite.
        """
        self._source = source
        self._options = options if options is not None else ArcLengthOptions()
        self._build_table()

    @classmethod
    def build(
        cls,
        source: SpeedSource,
        options: Optional[ArcLengthOptions] = None,
        *,
        max_error: Optional[float] = None,
    ) -> ArcLengthParameterization:
        """Build a parameterization from either options or a plain max_error value."""
        if options is not None and max_error is not None:
            raise ValueError("pass either options or max_error, not both")
        if max_error is not None:
            options = ArcLengthOptions(max_error=max_error)
        return cls(source, options)

    @classmethod
    def from_curve(cls, curve: BezierCurve, max_error: float = DEFAULT_MAX_ERROR) -> ArcLengthParameterization:
        """Build the parameterization of a BezierCurve with the given absolute error bound."""
        return cls(curve, ArcLengthOptions(max_error=max_error))

    def _build_table(self) -> None:
        speed_at = self._source.speed_at
        max_accel = float(self._source.acceleration_bound())
        if not math.isfinite(max_accel) or max_accel < 0.0:
            raise ValueError(f"acceleration bound must be a non-negative finite number, got {max_accel}")

        budget = self.ERROR_BUDGET_FRACTION * self._options.max_error
        accel_term = max_accel / 12.0

        t_start: List[float] = []
        t_end: List[float] = []
        speed_start: List[float] = []
        length_start: List[float] = []
        length_end: List[float] = []

        cumulative = 0.0
        capped_count = 0
        deepest = 0

        # Depth first, left half on top of the stack: leaves come out in increasing t
        stack = [(0.0, 1.0, float(speed_at(0.0)), float(speed_at(1.0)), 0)]
        while stack:
            a, b, fa, fb, depth = stack.pop()
            h = b - a
            m = 0.5 * (a + b)
            fm = float(speed_at(m))

            whole = 0.5 * h * (fa + fb)
            halves = 0.25 * h * (fa + 2.0 * fm + fb)
            error = max(accel_term * h * h * h, 4.0 / 3.0 * abs(whole - halves))

            if error > budget * h:
                if depth < self.MAX_DEPTH:
                    stack.append((m, b, fm, fb, depth + 1))
                    stack.append((a, m, fa, fm, depth + 1))
                    continue
                capped_count += 1

            deepest = max(deepest, depth)
            t_start.append(a)
            t_end.append(b)
            speed_start.append(fa)
            length_start.append(cumulative)
            cumulative += whole
            length_end.append(cumulative)

        self._t_start = self._frozen_array(t_start)
        self._t_end = self._frozen_array(t_end)
        self._speed_start = self._frozen_array(speed_start)
        self._length_start = self._frozen_array(length_start)
        self._length_end = self._frozen_array(length_end)
        self._total_length = cumulative

        logger.debug(
            "Arc length table: %d segments, depth %d, total length %.12g",
            len(t_start),
            deepest,
            cumulative,
        )
        if capped_count:
            logger.warning(
                "%d arc length segments reached the maximum depth %d, their error may exceed max_error=%g",
                capped_count,
                self.MAX_DEPTH,
                self._options.max_error,
            )

    @staticmethod
    def _frozen_array(values: List[float]) -> NDArray[np.float64]:
        arr = np.array(values, dtype=np.float64)
        arr.flags.writeable = False
        return arr

    ###########################################################################
    # Properties
    ###########################################################################

    @property
    def source(self) -> SpeedSource:
        """The speed source (usually the BezierCurve) this table was built for."""
        return self._source

    @property
    def options(self) -> ArcLengthOptions:
        """The options used to build this table."""
        return self._options

    @property
    def max_error(self) -> float:
        """float: Absolute error bound of the arc lengths."""
        return self._options.max_error

    @property
    def total_length(self) -> float:
        """float: Arc length of the whole curve, from t=0 to t=1."""
        return self._total_length

    @property
    def segment_count(self) -> int:
        """int: Number of segments of the table."""
        return int(self._t_start.shape[0])

    @property
    def segments(self) -> List[ArcLengthSegment]:
        """The table as list of segments in increasing parameter order."""
        return [
            ArcLengthSegment(float(a), float(b), float(la), float(lb))
            for a, b, la, lb in zip(self._t_start, self._t_end, self._length_start, self._length_end)
        ]

    ###########################################################################
    # Queries
    ###########################################################################

    def _segment_length_at(self, index: int, t: float) -> float:
        a = float(self._t_start[index])
        length_a = float(self._length_start[index])
        length_b = float(self._length_end[index])
        if t <= a:
            return length_a
        if t >= self._t_end[index]:
            return length_b
        length_t = length_a + 0.5 * (t - a) * (float(self._speed_start[index]) + self._source.speed_at(t))
        return min(max(length_t, length_a), length_b)

    def from_parameter_value(self, t: float) -> Optional[float]:
        """
        Arc length from parameter 0 to t.

        Args:
            t: Curve parameter.

        Returns:
            Optional[float]: the arc length, or None if t is outside [0, 1]
        """
        if not 0.0 <= t <= 1.0:
            return None
        index = min(int(np.searchsorted(self._t_end, t, side="left")), self.segment_count - 1)
        return self._segment_length_at(index, t)

    def _invert_segment(self, index: int, length: float) -> float:
        """Solve the segment length model for the parameter reaching the given length.

        Newton steps use the speed as derivative. A step leaving the current
        bracket, or a vanishing speed, is replaced by bisection of the bracket.
        """
        a = float(self._t_start[index])
        b = float(self._t_end[index])
        speed_a = float(self._speed_start[index])
        length_a = float(self._length_start[index])
        length_b = float(self._length_end[index])
        residual_target = self.INVERSION_RESIDUAL_FACTOR * self._options.max_error
        speed_at = self._source.speed_at

        low, high = a, b
        t = a + (length - length_a) / (length_b - length_a) * (b - a)
        for _ in range(self.MAX_INVERSION_ITERATIONS):
            speed_t = speed_at(t)
            residual = length_a + 0.5 * (t - a) * (speed_a + speed_t) - length
            if abs(residual) <= residual_target:
                return t
            if residual < 0.0:
                low = t
            else:
                high = t

            if speed_t > ZERO_SPEED_EPS:
                candidate = t - residual / speed_t
                if not low < candidate < high:
                    candidate = 0.5 * (low + high)
            else:
                candidate = 0.5 * (low + high)

            if candidate == t:
                # bracket collapsed to floating point resolution
                return t
            t = candidate
        return t

    def _parameter_for_length(self, length: float) -> float:
        index = min(int(np.searchsorted(self._length_end, length, side="left")), self.segment_count - 1)
        length_a = float(self._length_start[index])
        length_b = float(self._length_end[index])
        if length_b <= length_a or length <= length_a:
            return float(self._t_start[index])
        if length >= length_b:
            return float(self._t_end[index])
        return self._invert_segment(index, length)

    def to_parameter_value(self, length: float) -> Optional[float]:
        """
        Parameter t at which the arc length from 0 to t equals the given length.

        Args:
            length: Arc length measured from the start of the curve.

        Returns:
            Optional[float]: the parameter, or None if length is outside [0, total_length]
        """
        if not 0.0 <= length <= self._total_length:
            return None
        return self._parameter_for_length(length)

    def arc_length_to_parameter_value(self, length: float) -> Optional[float]:
        """Public name of to_parameter_value."""
        return self.to_parameter_value(length)

    def parameter_value_to_arc_length(self, t: float) -> Optional[float]:
        """Public name of from_parameter_value."""
        return self.from_parameter_value(t)

    def to_parameter_values(self, lengths: Iterable[float]) -> List[Optional[float]]:
        """to_parameter_value applied to each length."""
        return [self.to_parameter_value(float(length)) for length in lengths]

    def from_parameter_values(self, ts: Iterable[float]) -> List[Optional[float]]:
        """from_parameter_value applied to each parameter."""
        return [self.from_parameter_value(float(t)) for t in ts]

    def uniform_parameter_values(self, count: int) -> List[float]:
        """
        Parameters of count points equally spaced in arc length, including both ends.

        Args:
            count: Number of parameter values, at least 2.

        Returns:
            List[float]: increasing parameters starting at 0.0 and ending at 1.0
        """
        if count < 2:
            raise ValueError(f"count must be >= 2, got {count}")
        total = self._total_length
        last = count - 1
        return [self._parameter_for_length(total * (i / last)) for i in range(count)]

    def __repr__(self) -> str:
        return (
            f"ArcLengthParameterization(total_length={self._total_length}, "
            f"segments={self.segment_count}, max_error={self._options.max_error})"
        )
