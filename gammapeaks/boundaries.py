"""
Derivative-based peak boundary location.

A peak ends where the spectrum flattens out, not where it reaches a given
count level: on top of a Compton edge the baseline itself has a nonzero
slope, so amplitude thresholds misplace the edges. The boundary search walks
outward from the maximum and stops at the first channel whose interpolated
slope magnitude falls below a tolerance.
"""

import numpy as np
from scipy.interpolate import make_interp_spline

from .exceptions import InvalidInput, NoBoundaryFound
from .models import PeakBounds
from .utils import validate_spectrum


def slope_profile(x: np.ndarray, y: np.ndarray) -> np.ndarray:
    """
    Slope of the piecewise-linear interpolant of ``y`` at every ``x``.

    At each knot the slope of the segment to its right is used, and the
    last knot takes the slope of the last segment.

    Parameters:
        x: Strictly increasing positions
        y: Values at ``x``

    Returns:
        Array of slopes, same length as ``x``
    """
    x, y = validate_spectrum(x, y)
    if len(x) < 2:
        raise InvalidInput("At least two points are needed to compute a slope")
    if np.any(np.diff(x) <= 0):
        raise InvalidInput("x must be strictly increasing to interpolate")

    interpolant = make_interp_spline(x, y, k=1)
    return interpolant.derivative()(x)


def locate_bounds(x: np.ndarray,
                  y: np.ndarray,
                  peak_index: int,
                  tol: float,
                  left_guard: int = 20,
                  right_guard: int = 15) -> PeakBounds:
    """
    Find the left and right edges of a peak.

    Starting next to the guard band on each side of the peak, step outward
    one index at a time until ``|slope| < tol``. The guard bands keep the
    flat top of the peak itself from being reported as an edge.

    Parameters:
        x: Channel numbers or energies (strictly increasing)
        y: Counts, usually smoothed
        peak_index: Index of the peak maximum
        tol: Slope magnitude below which the peak is considered ended
        left_guard: Indices skipped left of the peak before testing
        right_guard: Indices skipped right of the peak before testing

    Returns:
        PeakBounds(left, peak, right)

    Raises:
        NoBoundaryFound: If the walk reaches the end of the data on a side
        InvalidInput: On malformed data or parameters
    """
    if tol <= 0:
        raise InvalidInput(f"tol must be positive, got {tol}")
    for name, guard in (('left_guard', left_guard), ('right_guard', right_guard)):
        if not isinstance(guard, (int, np.integer)) or guard < 0:
            raise InvalidInput(f"{name} must be a non-negative integer, got {guard!r}")

    slopes = slope_profile(x, y)
    n = len(slopes)
    if not isinstance(peak_index, (int, np.integer)) or not 0 <= peak_index < n:
        raise InvalidInput(f"peak_index {peak_index!r} outside spectrum of length {n}")

    flat = np.abs(slopes) < tol

    # Left walk: peak - left_guard - 1, peak - left_guard - 2, ..., 0
    left = None
    for i in range(peak_index - left_guard - 1, -1, -1):
        if flat[i]:
            left = i
            break
    if left is None:
        raise NoBoundaryFound(int(peak_index), 'left', tol)

    # Right walk: peak + right_guard + 1, ..., n - 1
    right = None
    for i in range(peak_index + right_guard + 1, n):
        if flat[i]:
            right = i
            break
    if right is None:
        raise NoBoundaryFound(int(peak_index), 'right', tol)

    return PeakBounds(int(left), int(peak_index), int(right))
