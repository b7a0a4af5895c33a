#!/usr/bin/env python3
"""
Main command-line interface for GammaPeaks peak analysis.

Loads a spectrum, optionally calibrates it, runs the peak pipeline and
writes the peak table (and a plot) to the output directory.
"""

import argparse
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from . import __version__
from .calibration import get_xy_data, parse_calibration
from .exceptions import GammaPeaksError
from .io_module import load_config, load_spectrum
from .models import SpectrumReport
from .output import export_results, format_report, plot_spectrum_with_peaks
from .pipeline import analyze_spectrum
from .utils import DEFAULT_CONFIG, EDGE_POLICIES, merge_config, setup_logger, validate_parameters


def parse_arguments(argv: Optional[Sequence[str]] = None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description='GammaPeaks - Peak location, centroids and Gaussian fits for gamma spectra',
        formatter_class=argparse.RawDescriptionHelpFormatter
    )

    parser.add_argument(
        'spectrum',
        type=str,
        help='Path to spectrum file (Maestro .txt export or CSV)'
    )

    parser.add_argument(
        '--config',
        type=str,
        default=None,
        help='Path to JSON configuration file'
    )

    # Calibration parameters
    calibration_group = parser.add_argument_group('calibration parameters')
    calibration_group.add_argument(
        '--calibration',
        type=str,
        default=None,
        help='Linear calibration coefficients as "a,b" where Energy = a*Channel + b'
    )

    calibration_group.add_argument(
        '--lower-limit',
        type=int,
        default=1,
        help='First channel kept; lower channels are low-energy noise (default: 1)'
    )

    # Smoothing parameters
    smoothing_group = parser.add_argument_group('smoothing parameters')
    smoothing_group.add_argument(
        '--smoothing-window',
        type=int,
        default=None,
        help='Moving-average window size (default: 5)'
    )

    smoothing_group.add_argument(
        '--edge-policy',
        type=str,
        choices=EDGE_POLICIES,
        default=None,
        help='Handling of positions without a full window (default: zero)'
    )

    # Peak detection parameters
    detection_group = parser.add_argument_group('peak detection parameters')
    detection_group.add_argument(
        '--min-prominence',
        type=float,
        default=None,
        help='Minimum peak prominence for detection (default: 50)'
    )

    detection_group.add_argument(
        '--tolerance',
        type=float,
        default=None,
        help='Slope magnitude marking the end of a peak (default: 1.0)'
    )

    detection_group.add_argument(
        '--left-guard',
        type=int,
        default=None,
        help='Channels skipped left of a peak before testing the slope (default: 20)'
    )

    detection_group.add_argument(
        '--right-guard',
        type=int,
        default=None,
        help='Channels skipped right of a peak before testing the slope (default: 15)'
    )

    # Output parameters
    output_group = parser.add_argument_group('output parameters')
    output_group.add_argument(
        '--output-dir',
        type=str,
        default='.',
        help='Output directory for results (default: current directory)'
    )

    output_group.add_argument(
        '--output-prefix',
        type=str,
        default='',
        help='Prefix for output files (default: none)'
    )

    output_group.add_argument(
        '--no-plot',
        action='store_true',
        help='Skip generating plot'
    )

    parser.add_argument(
        '--workers',
        type=int,
        default=None,
        help='Number of processes used to quantify peaks'
    )

    parser.add_argument(
        '--verbose',
        action='store_true',
        help='Enable verbose output'
    )

    parser.add_argument(
        '--quiet',
        action='store_true',
        help='Suppress all output except errors'
    )

    parser.add_argument(
        '--log-file',
        type=str,
        default=None,
        help='Also write log messages to this file'
    )

    parser.add_argument(
        '--version',
        action='version',
        version=f'%(prog)s {__version__}'
    )

    return parser.parse_args(argv)


def load_configuration(args) -> Dict[str, Any]:
    """
    Load and merge configuration from defaults, file and command line.

    Parameters:
        args: Command line arguments

    Returns:
        dict: Merged configuration
    """
    config = DEFAULT_CONFIG
    if args.config:
        config = merge_config(config, load_config(args.config))

    # Unset command line options leave file and default values in place
    cli_config = {
        'smoothing': {
            'window_length': args.smoothing_window,
            'edge_policy': args.edge_policy,
        },
        'detection': {
            'min_prominence': args.min_prominence,
        },
        'boundaries': {
            'tolerance': args.tolerance,
            'left_guard': args.left_guard,
            'right_guard': args.right_guard,
        },
    }
    config = merge_config(config, cli_config)
    validate_parameters(config)
    return config


def process_spectrum(filepath: str,
                     config: Optional[Dict[str, Any]] = None,
                     calibration=None,
                     lower_limit: int = 1,
                     workers: Optional[int] = None) -> Tuple[np.ndarray, np.ndarray, SpectrumReport]:
    """
    Load, calibrate and analyze one spectrum file.

    Parameters:
        filepath: Spectrum file path
        config: Analysis configuration
        calibration: Callable mapping channels to energies, or None
        lower_limit: First channel row kept, counting from 1
        workers: Number of processes used to quantify peaks

    Returns:
        tuple: (x, y, report)
    """
    channels, counts = load_spectrum(filepath)
    data = pd.DataFrame({'Lines': channels, 'Counts': counts})
    x, y = get_xy_data(data, lower_limit, calibration)
    report = analyze_spectrum(x, y, config, workers=workers)
    return x, y, report


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main execution function."""
    args = parse_arguments(argv)

    if args.quiet:
        level = logging.ERROR
    elif args.verbose:
        level = logging.DEBUG
    else:
        level = logging.INFO
    logger = setup_logger('gammapeaks', level=level, log_file=args.log_file)

    try:
        config = load_configuration(args)
        calibration = parse_calibration(args.calibration) if args.calibration else None

        logger.debug("Loading spectrum from %s", args.spectrum)
        x, y, report = process_spectrum(
            args.spectrum, config,
            calibration=calibration,
            lower_limit=args.lower_limit,
            workers=args.workers
        )
    except (GammaPeaksError, FileNotFoundError) as e:
        logger.error("%s", e)
        return 1

    logger.info("Loaded %d channels, %.0f total counts", len(x), np.nansum(y))

    output_dir = Path(args.output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    prefix = args.output_prefix
    if prefix and not prefix.endswith('_'):
        prefix += '_'
    timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')

    peaks_file = output_dir / f'{prefix}peaks_{timestamp}.csv'
    export_results(report, peaks_file)
    logger.info("Peak table saved to %s", peaks_file)

    if not args.no_plot:
        plot_file = output_dir / f'{prefix}spectrum_{timestamp}.png'
        x_label = 'Energy (keV)' if calibration else 'Channel'
        plot_spectrum_with_peaks(x, y, report, plot_file, x_label=x_label)
        logger.info("Plot saved to %s", plot_file)

    if not args.quiet:
        print(format_report(report))

    return 0


def entry_point():
    """Entry point for console script."""
    sys.exit(main())


if __name__ == "__main__":
    entry_point()
