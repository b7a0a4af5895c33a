"""
Peak analysis pipeline.

Runs smoothing, peak finding and boundary location on a spectrum, then
quantifies each bounded peak with a centroid and a Gaussian fit. Peaks are
processed independently: a failure on one peak is recorded in its result
and the remaining peaks are still analyzed.
"""

import logging
import multiprocessing as mp
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np

from .boundaries import locate_bounds
from .centroid import peak_centroid
from .detection import detect_peaks, smooth_spectrum
from .exceptions import GammaPeaksError, InvalidInput, NoBoundaryFound
from .fitting import fit_gaussian
from .models import BoundaryFailure, PeakBounds, PeakResult, SpectrumReport
from .utils import DEFAULT_CONFIG, merge_config, validate_parameters, validate_spectrum

logger = logging.getLogger(__name__)


def _find_bounds(x: np.ndarray,
                 smoothed: np.ndarray,
                 peaks: np.ndarray,
                 tol: float,
                 left_guard: int,
                 right_guard: int) -> Tuple[List[PeakBounds], List[BoundaryFailure]]:
    bounds = []
    failures = []
    for peak in peaks:
        try:
            bounds.append(locate_bounds(x, smoothed, int(peak), tol,
                                        left_guard=left_guard,
                                        right_guard=right_guard))
        except NoBoundaryFound as e:
            logger.warning("Skipping peak at index %d: %s", peak, e)
            failures.append(BoundaryFailure(int(peak), str(e)))
    return bounds, failures


def peak_parameters(x: Sequence[float],
                    y: Sequence[float],
                    window_length: int,
                    min_prominence: float,
                    tol: float,
                    edge_policy: str = 'zero',
                    left_guard: int = 20,
                    right_guard: int = 15) -> Tuple[List[PeakBounds], np.ndarray]:
    """
    Locate peaks and their edges in a spectrum.

    Parameters:
        x: Channel numbers or energies
        y: Raw counts
        window_length: Moving-average window for smoothing
        min_prominence: Minimum peak prominence in the smoothed counts
        tol: Slope tolerance marking the end of a peak
        edge_policy: Smoothing edge policy ('zero', 'shrink', 'reject')
        left_guard: Guard band on the left of each peak
        right_guard: Guard band on the right of each peak

    Returns:
        tuple: (list of PeakBounds, smoothed counts)
    """
    x, y = validate_spectrum(x, y, allow_missing=True)
    smoothed = smooth_spectrum(y, window_length, edge_policy=edge_policy)
    peaks = detect_peaks(smoothed, x, min_prominence, edge_margin=window_length)
    bounds, _ = _find_bounds(x, smoothed, peaks, tol, left_guard, right_guard)
    return bounds, smoothed


def quantify_peak(x: np.ndarray,
                  y: np.ndarray,
                  bounds: PeakBounds,
                  fraction: float = 0.2,
                  max_iterations: int = 5000,
                  p0: Optional[Sequence[float]] = None) -> PeakResult:
    """
    Estimate the centroid and fit a Gaussian for one peak.

    The two estimates are independent; each one that fails leaves its
    value as None and records the reason.

    Parameters:
        x: Channel numbers or energies
        y: Counts
        bounds: PeakBounds of the peak
        fraction: Fraction of the height above background to cut at
        max_iterations: Fit iteration budget
        p0: Optional initial fit parameters

    Returns:
        PeakResult
    """
    centroid = fit = None
    centroid_error = fit_error = None

    try:
        centroid = peak_centroid(x, y, bounds, fraction)
    except GammaPeaksError as e:
        centroid_error = str(e)
        logger.warning("Centroid failed for %s: %s", bounds, e)

    try:
        fit = fit_gaussian(x, y, bounds, p0=p0, fraction=fraction,
                           max_iterations=max_iterations)
    except GammaPeaksError as e:
        fit_error = str(e)
        logger.warning("Fit failed for %s: %s", bounds, e)

    return PeakResult(bounds, centroid, fit, centroid_error, fit_error)


def analyze_spectrum(x: Sequence[float],
                     y: Sequence[float],
                     config: Optional[Dict[str, Any]] = None,
                     workers: Optional[int] = None) -> SpectrumReport:
    """
    Run the complete analysis on one spectrum.

    Parameters:
        x: Channel numbers or energies
        y: Raw counts; NaN marks a channel without observation
        config: Configuration overriding ``DEFAULT_CONFIG``
        workers: Number of processes for quantifying peaks (serial if None or 1)

    Returns:
        SpectrumReport listing every peak with its results or failure reasons
    """
    config = merge_config(DEFAULT_CONFIG, config)
    validate_parameters(config)
    smoothing = config['smoothing']
    detection = config['detection']
    boundaries = config['boundaries']
    quantification = config['quantification']

    x, y = validate_spectrum(x, y, allow_missing=True)

    window = smoothing['window_length']
    smoothed = smooth_spectrum(y, window, edge_policy=smoothing['edge_policy'])
    if np.any(np.isnan(smoothed)):
        raise InvalidInput(
            "Smoothed spectrum has undefined values; use the 'zero' or "
            "'shrink' edge policy or trim the spectrum"
        )

    edge_margin = detection.get('edge_margin')
    if edge_margin is None:
        edge_margin = window
    peaks = detect_peaks(smoothed, x, detection['min_prominence'], edge_margin=edge_margin)
    logger.info("Found %d peaks", len(peaks))

    bounds, failures = _find_bounds(
        x, smoothed, peaks,
        boundaries['tolerance'],
        boundaries['left_guard'],
        boundaries['right_guard'],
    )

    counts = smoothed if quantification.get('use_smoothed', False) else y
    if np.any(np.isnan(counts)):
        # Missing channels in the raw counts take the smoothed value
        counts = np.where(np.isnan(counts), smoothed, counts)

    args = [(x, counts, b, quantification['threshold_fraction'],
             quantification['max_iterations']) for b in bounds]

    if workers is not None and workers > 1 and len(args) > 1:
        logger.debug("Quantifying %d peaks with %d workers", len(args), workers)
        with mp.Pool(workers) as pool:
            results = pool.starmap(quantify_peak, args)
    else:
        results = [quantify_peak(*a) for a in args]

    for result in results:
        logger.debug("Peak %s: centroid=%s fit=%s", result.bounds.as_tuple(),
                     result.centroid, result.fit)

    return SpectrumReport(smoothed=smoothed, peak_indices=peaks,
                          peaks=results, boundary_failures=failures)
