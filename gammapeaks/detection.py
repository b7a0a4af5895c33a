"""
Peak detection for gamma spectroscopy.

This module provides the moving-average smoother, with an explicit policy for
values that have no full averaging window, and prominence-based peak finding
on the smoothed counts.
"""

from typing import Optional, Sequence

import numpy as np
from scipy.signal import find_peaks as scipy_find_peaks

from .exceptions import InvalidInput
from .utils import EDGE_POLICIES


def fill_missing(values: Sequence[float], fill: float = 0.0) -> np.ndarray:
    """
    Replace missing (NaN) values.

    Parameters:
        values: Input sequence, possibly containing NaN
        fill: Replacement value

    Returns:
        New float array without NaN
    """
    filled = np.array(values, dtype=float)
    filled[np.isnan(filled)] = fill
    return filled


def smooth_spectrum(counts: Sequence[float],
                    window_length: int = 5,
                    edge_policy: str = 'zero') -> np.ndarray:
    """
    Apply a centered simple moving average to reduce statistical noise.

    An even window reaches one position further to the left than to the
    right. What happens where the window does not fit depends on
    ``edge_policy``:

    - 'zero': positions without a full window of observed counts are 0.0
    - 'shrink': the window is truncated to the observed counts available
    - 'reject': positions without a full window are left as NaN

    Parameters:
        counts: Raw counts; NaN marks a channel without observation
        window_length: Number of channels averaged
        edge_policy: One of 'zero', 'shrink', 'reject'

    Returns:
        Smoothed counts, same length as ``counts``
    """
    counts = np.asarray(counts, dtype=float)
    if counts.ndim != 1 or len(counts) == 0:
        raise InvalidInput("counts must be a non-empty one-dimensional sequence")
    if not isinstance(window_length, (int, np.integer)) or window_length < 1:
        raise InvalidInput(f"window_length must be a positive integer, got {window_length!r}")
    if window_length > len(counts):
        raise InvalidInput(
            f"window_length ({window_length}) exceeds spectrum length ({len(counts)})"
        )
    if edge_policy not in EDGE_POLICIES:
        raise InvalidInput(f"edge_policy must be one of {EDGE_POLICIES}, got {edge_policy!r}")

    n = len(counts)
    observed = ~np.isnan(counts)

    # Running sums make every window sum O(1)
    value_sums = np.concatenate(([0.0], np.cumsum(np.where(observed, counts, 0.0))))
    observed_sums = np.concatenate(([0], np.cumsum(observed)))

    half_left = window_length // 2
    half_right = window_length - 1 - half_left
    positions = np.arange(n)
    lo = np.maximum(positions - half_left, 0)
    hi = np.minimum(positions + half_right + 1, n)

    totals = value_sums[hi] - value_sums[lo]
    n_observed = observed_sums[hi] - observed_sums[lo]

    smoothed = np.full(n, np.nan)
    if edge_policy == 'shrink':
        defined = n_observed > 0
    else:
        defined = n_observed == window_length
    smoothed[defined] = totals[defined] / n_observed[defined]

    if edge_policy == 'reject':
        return smoothed
    return fill_missing(smoothed)


def detect_peaks(smoothed: Sequence[float],
                 x: Optional[Sequence[float]] = None,
                 min_prominence: float = 50.0,
                 edge_margin: int = 0) -> np.ndarray:
    """
    Detect peaks by prominence in a smoothed spectrum.

    Prominence is the height of a maximum above the higher of its two
    bounding minima.

    Parameters:
        smoothed: Smoothed counts
        x: Positions matching ``smoothed``; used to order the result
        min_prominence: Minimum peak prominence
        edge_margin: Peaks closer than this many indices to either end
            are discarded (usually the smoothing window)

    Returns:
        Array of peak indices in ascending order of position (may be empty)
    """
    smoothed = np.asarray(smoothed, dtype=float)
    if smoothed.ndim != 1 or len(smoothed) == 0:
        raise InvalidInput("smoothed must be a non-empty one-dimensional sequence")
    if np.any(np.isnan(smoothed)):
        raise InvalidInput("smoothed series contains missing values")
    if min_prominence <= 0:
        raise InvalidInput("min_prominence must be positive")
    if edge_margin < 0:
        raise InvalidInput("edge_margin must be non-negative")
    if x is not None and len(x) != len(smoothed):
        raise InvalidInput(
            f"x and smoothed must have the same length ({len(x)} != {len(smoothed)})"
        )

    peaks, _ = scipy_find_peaks(smoothed, prominence=min_prominence)

    n = len(smoothed)
    keep = (peaks >= edge_margin) & (peaks <= n - 1 - edge_margin)
    peaks = peaks[keep]

    if x is not None and len(peaks) > 1:
        order = np.argsort(np.asarray(x, dtype=float)[peaks], kind='stable')
        peaks = peaks[order]

    return peaks.astype(int)
