"""
Model-free peak position estimate.

The centroid is the count-weighted mean position over the part of the peak
that rises more than a fixed fraction above the linear background, so the
low-signal tails do not pull it towards the background.
"""

from typing import Sequence

import numpy as np

from .exceptions import InvalidInput
from .utils import background_window, validate_spectrum


def weighted_mean(x: Sequence[float], w: Sequence[float]) -> float:
    """
    Compute weighted mean of ``x`` with L1-normalized weights ``w``.

    Parameters:
        x: Values
        w: Weights, same length as ``x``

    Returns:
        Weighted mean
    """
    x = np.asarray(x, dtype=float)
    w = np.asarray(w, dtype=float)
    if len(x) != len(w) or len(x) == 0:
        raise InvalidInput("x and w must be non-empty and of equal length")

    norm = np.sum(np.abs(w))
    if norm == 0:
        raise InvalidInput("weights are all zero")

    return float(np.sum(x * (w / norm)))


def peak_centroid(x: Sequence[float],
                  y: Sequence[float],
                  bounds,
                  fraction: float = 0.2) -> float:
    """
    Compute the weighted-mean position of a peak.

    Parameters:
        x: Channel numbers or energies
        y: Counts
        bounds: PeakBounds of the peak
        fraction: Fraction of the height above background to cut at

    Returns:
        Centroid position in units of ``x``

    Raises:
        InsufficientSignal: If no count exceeds the cut
    """
    x, y = validate_spectrum(x, y)
    start, stop = background_window(y, bounds, fraction)
    return weighted_mean(x[start:stop + 1], y[start:stop + 1])
