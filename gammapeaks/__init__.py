"""
GammaPeaks - Peak Location and Quantification for Gamma Spectra
===============================================================

A Python package for locating peaks in pulse-height spectra, bounding them
from the slope of the spectrum, and measuring their position both as a
background-cut centroid and as a fitted Gaussian.

Basic Usage:
    from gammapeaks import analyze_spectrum

    report = analyze_spectrum(x, y, {'boundaries': {'tolerance': 1.0}})
    for peak in report.peaks:
        print(peak.bounds, peak.centroid, peak.fit)

Command Line Usage:
    python -m gammapeaks spectrum.Txt --calibration 0.5,1.2 --min-prominence 50
"""

__version__ = "0.1.0"

from .exceptions import (
    GammaPeaksError,
    InvalidInput,
    NoBoundaryFound,
    InsufficientSignal,
    FitDidNotConverge,
)
from .models import PeakBounds, FitResult, PeakResult, SpectrumReport
from .detection import smooth_spectrum, detect_peaks, fill_missing
from .boundaries import locate_bounds
from .centroid import peak_centroid, weighted_mean
from .fitting import fit_gaussian, gaussian
from .pipeline import analyze_spectrum, peak_parameters, quantify_peak
from .io_module import load_spectrum, read_maestro_txt, load_config
from .calibration import LinearCalibration, get_xy_data, select_part, expected_compton_energy

__all__ = [
    'GammaPeaksError',
    'InvalidInput',
    'NoBoundaryFound',
    'InsufficientSignal',
    'FitDidNotConverge',
    'PeakBounds',
    'FitResult',
    'PeakResult',
    'SpectrumReport',
    'smooth_spectrum',
    'detect_peaks',
    'fill_missing',
    'locate_bounds',
    'peak_centroid',
    'weighted_mean',
    'fit_gaussian',
    'gaussian',
    'analyze_spectrum',
    'peak_parameters',
    'quantify_peak',
    'load_spectrum',
    'read_maestro_txt',
    'load_config',
    'LinearCalibration',
    'get_xy_data',
    'select_part',
    'expected_compton_energy',
]
