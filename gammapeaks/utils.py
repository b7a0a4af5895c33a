"""
Utility functions for gamma spectroscopy peak analysis.

This module provides helpers for logging, configuration, input validation,
the background-thresholded peak window shared by the centroid and fit
estimators, and synthetic test spectra.
"""

import copy
import logging
import sys
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np

from .exceptions import InsufficientSignal, InvalidInput


EDGE_POLICIES = ('zero', 'shrink', 'reject')

DEFAULT_CONFIG: Dict[str, Dict[str, Any]] = {
    'smoothing': {
        'window_length': 5,
        'edge_policy': 'zero',
    },
    'detection': {
        'min_prominence': 50.0,
        'edge_margin': None,  # defaults to the smoothing window
    },
    'boundaries': {
        'tolerance': 1.0,
        'left_guard': 20,
        'right_guard': 15,
    },
    'quantification': {
        'threshold_fraction': 0.2,
        'max_iterations': 5000,
        'use_smoothed': False,
    },
}


def setup_logger(name: str = 'gammapeaks',
                level: int = logging.INFO,
                log_file: Optional[str] = None) -> logging.Logger:
    """
    Setup logger with console and optional file output.

    Parameters:
        name: Logger name
        level: Logging level
        log_file: Optional log file path

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)

    # Remove existing handlers
    logger.handlers = []

    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger


def merge_config(base: Dict[str, Any],
                 overrides: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """
    Merge two nested configuration dictionaries.

    Sections present in both are merged key by key; ``None`` values in
    ``overrides`` leave the base value untouched. Neither input is modified.

    Parameters:
        base: Base configuration
        overrides: Values taking precedence over ``base``

    Returns:
        Merged configuration
    """
    merged = copy.deepcopy(base)
    for key, value in (overrides or {}).items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = merge_config(merged[key], value)
        elif value is not None:
            merged[key] = copy.deepcopy(value)
    return merged


def validate_parameters(config: Dict[str, Any]) -> bool:
    """
    Validate analysis parameters.

    Parameters:
        config: Configuration dictionary (as produced by ``merge_config``)

    Returns:
        True if valid

    Raises:
        InvalidInput: If parameters are invalid
    """
    smoothing = config.get('smoothing', {})
    window = smoothing.get('window_length', 5)
    if not isinstance(window, (int, np.integer)) or window < 1:
        raise InvalidInput("window_length must be a positive integer")
    if smoothing.get('edge_policy', 'zero') not in EDGE_POLICIES:
        raise InvalidInput(f"edge_policy must be one of {EDGE_POLICIES}")

    detection = config.get('detection', {})
    if detection.get('min_prominence', 50.0) <= 0:
        raise InvalidInput("min_prominence must be positive")
    margin = detection.get('edge_margin')
    if margin is not None and margin < 0:
        raise InvalidInput("edge_margin must be non-negative")

    boundaries = config.get('boundaries', {})
    if boundaries.get('tolerance', 1.0) <= 0:
        raise InvalidInput("tolerance must be positive")
    for key in ('left_guard', 'right_guard'):
        guard = boundaries.get(key, 0)
        if not isinstance(guard, (int, np.integer)) or guard < 0:
            raise InvalidInput(f"{key} must be a non-negative integer")

    quantification = config.get('quantification', {})
    fraction = quantification.get('threshold_fraction', 0.2)
    if not 0 <= fraction < 1:
        raise InvalidInput("threshold_fraction must be in [0, 1)")
    if quantification.get('max_iterations', 5000) < 1:
        raise InvalidInput("max_iterations must be at least 1")

    return True


def validate_spectrum(x: Sequence[float],
                      y: Sequence[float],
                      allow_missing: bool = False) -> Tuple[np.ndarray, np.ndarray]:
    """
    Check a spectrum and return it as a pair of float arrays.

    Parameters:
        x: Channel numbers or energies, non-decreasing
        y: Counts
        allow_missing: Accept NaN entries in ``y``

    Returns:
        tuple: (x, y) as 1-D float arrays

    Raises:
        InvalidInput: On empty, mismatched, non-monotonic, infinite or missing data
    """
    x = np.asarray(x, dtype=float)
    y = np.asarray(y, dtype=float)

    if x.ndim != 1 or y.ndim != 1:
        raise InvalidInput("Spectrum arrays must be one-dimensional")
    if len(y) == 0:
        raise InvalidInput("Empty spectrum")
    if len(x) != len(y):
        raise InvalidInput(
            f"x and y must have the same length ({len(x)} != {len(y)})"
        )
    if not np.all(np.isfinite(x)):
        raise InvalidInput("x contains missing or non-finite values")
    if np.any(np.diff(x) < 0):
        raise InvalidInput("x must be monotonically non-decreasing")
    if np.any(np.isinf(y)):
        raise InvalidInput("y contains infinite values")
    if not allow_missing and np.any(np.isnan(y)):
        raise InvalidInput("y contains missing values")

    return x, y


def check_bounds(bounds, length: int):
    """Raise InvalidInput if ``bounds`` does not fit a spectrum of ``length``."""
    left, peak, right = bounds
    if left < 0 or right >= length:
        raise InvalidInput(
            f"Peak bounds ({left}, {peak}, {right}) outside spectrum of length {length}"
        )


def background_window(y: np.ndarray,
                      bounds,
                      fraction: float = 0.2) -> Tuple[int, int]:
    """
    Find the part of a peak rising above a fraction of its height.

    The background is the mean of the counts at the two peak edges. The
    window starts at the first index right of the left edge, and ends at the
    first index left of the right edge, whose counts exceed
    ``background + fraction * (y[peak] - background)``.

    Parameters:
        y: Counts
        bounds: PeakBounds (or any (left, peak, right) triple)
        fraction: Fraction of the height above background to cut at

    Returns:
        tuple: (start, stop) indices, both inclusive

    Raises:
        InsufficientSignal: If no index between the edges exceeds the threshold
    """
    if not 0 <= fraction < 1:
        raise InvalidInput("fraction must be in [0, 1)")
    y = np.asarray(y, dtype=float)
    check_bounds(bounds, len(y))
    left, peak, right = bounds

    background = (y[left] + y[right]) / 2
    threshold = background + fraction * (y[peak] - background)

    inner = y[left + 1:right]
    above = np.flatnonzero(inner > threshold)
    if len(above) == 0:
        raise InsufficientSignal(
            bounds, f"no count exceeds {threshold:.4g} between the edges"
        )

    return left + 1 + int(above[0]), left + 1 + int(above[-1])


def generate_synthetic_spectrum(num_channels: int = 200,
                                peaks: List[Tuple[float, float, float]] = None,
                                background_level: float = 10.0,
                                noise_level: float = 0.0,
                                poisson: bool = False,
                                seed: Optional[int] = None) -> Tuple[np.ndarray, np.ndarray]:
    """
    Generate synthetic gamma spectrum for testing.

    Parameters:
        num_channels: Number of channels
        peaks: List of (channel, height, sigma) tuples
        background_level: Flat background count level
        noise_level: Standard deviation of additive Gaussian noise
        poisson: Draw the final counts from a Poisson distribution
        seed: Random seed for reproducibility

    Returns:
        Tuple of (channels, counts)
    """
    rng = np.random.RandomState(seed)
    channels = np.arange(num_channels, dtype=float)
    counts = np.full(num_channels, float(background_level))

    if peaks is None:
        peaks = [(num_channels / 2, 1000.0, 8.0)]

    for channel, height, sigma in peaks:
        counts += height * np.exp(-0.5 * ((channels - channel) / sigma) ** 2)

    if noise_level > 0:
        counts += noise_level * rng.randn(num_channels)

    if poisson:
        counts = rng.poisson(np.maximum(counts, 0)).astype(float)

    return channels, counts


def format_uncertainty(value: float, uncertainty: float,
                      precision: int = 2) -> str:
    """
    Format value with uncertainty in standard notation.

    Parameters:
        value: Central value
        uncertainty: Uncertainty
        precision: Number of significant figures for uncertainty

    Returns:
        Formatted string
    """
    if not np.isfinite(uncertainty) or uncertainty <= 0:
        return f"{value:.{precision}f}"

    if uncertainty >= 10:
        return f"{value:.0f} ± {uncertainty:.0f}"
    elif uncertainty >= 1:
        return f"{value:.1f} ± {uncertainty:.1f}"

    # Decimal places set by the first significant digit of the uncertainty
    exp = int(np.floor(np.log10(uncertainty)))
    decimals = precision - 1 - exp
    return f"{value:.{decimals}f} ± {uncertainty:.{decimals}f}"
