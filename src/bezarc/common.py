"""Central module containing types and constants for curve evaluation and arc length handling."""

from __future__ import annotations

from typing import Sequence, Tuple, Union

import numpy as np
from numpy.typing import NDArray

###############################################################################
# Types
###############################################################################


PointLike = Union[Sequence[float], NDArray[np.float64]]  # (x, y) or (x, y, z)

ControlPointsLike = Union[  # 3 points for quadratic, 4 points for cubic curves
    Sequence[Tuple[float, float]],
    Sequence[Tuple[float, float, float]],
    Sequence[Sequence[float]],
    NDArray[np.float64],
]


###############################################################################
# Consts
###############################################################################


SUPPORTED_DEGREES: Tuple[int, ...] = (2, 3)
SUPPORTED_DIMENSIONS: Tuple[int, ...] = (2, 3)

# Default absolute error bound used for arc length tables
DEFAULT_MAX_ERROR: float = 1.0e-6

# Speeds at or below this value are treated as zero by the inversion
ZERO_SPEED_EPS: float = 1.0e-300
