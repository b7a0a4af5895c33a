"""
Output functions for gamma spectroscopy peak analysis.

This module turns a SpectrumReport into a peak table, exports it, formats a
text report listing each peak with its results or failure reasons, and plots
the spectrum with the located peaks.
"""

from pathlib import Path
import json
import warnings

import numpy as np
import matplotlib.pyplot as plt
import pandas as pd

from .fitting import gaussian
from .models import SpectrumReport
from .utils import format_uncertainty


TABLE_COLUMNS = [
    'peak_number', 'left', 'peak', 'right', 'centroid',
    'amplitude', 'amplitude_err', 'sigma', 'sigma_err', 'mu', 'mu_err',
    'fwhm', 'chi_square', 'status', 'error',
]


def results_table(report: SpectrumReport) -> pd.DataFrame:
    """
    Build a table with one row per bounded peak.

    Parameters:
        report: Pipeline output

    Returns:
        DataFrame with the TABLE_COLUMNS columns
    """
    rows = []
    for i, result in enumerate(report.peaks, 1):
        fit = result.fit
        errors = [e for e in (result.centroid_error, result.fit_error) if e]
        if result.ok:
            status = 'ok'
        elif result.centroid is not None or fit is not None:
            status = 'partial'
        else:
            status = 'failed'

        rows.append({
            'peak_number': i,
            'left': result.bounds.left,
            'peak': result.bounds.peak,
            'right': result.bounds.right,
            'centroid': result.centroid if result.centroid is not None else np.nan,
            'amplitude': fit.amplitude if fit else np.nan,
            'amplitude_err': fit.amplitude_err if fit else np.nan,
            'sigma': fit.sigma if fit else np.nan,
            'sigma_err': fit.sigma_err if fit else np.nan,
            'mu': fit.mu if fit else np.nan,
            'mu_err': fit.mu_err if fit else np.nan,
            'fwhm': fit.fwhm if fit else np.nan,
            'chi_square': fit.chi_square if fit else np.nan,
            'status': status,
            'error': '; '.join(errors),
        })

    return pd.DataFrame(rows, columns=TABLE_COLUMNS)


def export_results(report: SpectrumReport,
                   output_file: str,
                   format: str = 'auto'):
    """
    Export the peak table to file.

    Parameters:
        report: Pipeline output
        output_file: Output file path
        format: Output format ('csv', 'json', 'text', 'auto')
    """
    output_path = Path(output_file)

    if format == 'auto':
        format_map = {
            '.csv': 'csv',
            '.json': 'json',
            '.txt': 'text',
        }
        format = format_map.get(output_path.suffix.lower(), 'csv')

    table = results_table(report)

    if format == 'csv':
        table.to_csv(output_path, index=False, float_format='%.4f')
    elif format == 'json':
        records = json.loads(table.to_json(orient='records'))
        payload = {
            'peaks': records,
            'boundary_failures': [
                {'peak_index': f.peak_index, 'reason': f.reason}
                for f in report.boundary_failures
            ],
        }
        with open(output_path, 'w') as f:
            json.dump(payload, f, indent=2)
    elif format == 'text':
        with open(output_path, 'w') as f:
            f.write(format_report(report))
    else:
        warnings.warn(f"Unknown format: {format}, using CSV")
        table.to_csv(output_path, index=False)


def format_report(report: SpectrumReport) -> str:
    """
    Format a text report listing each peak with its results or failures.

    Parameters:
        report: Pipeline output

    Returns:
        Report text
    """
    lines = [
        "Peak Analysis Results",
        "=" * 72,
        f"{'Peak':<5} {'Bounds':<18} {'Centroid':<12} {'mu':<18} {'sigma':<16}",
        "-" * 72,
    ]

    for i, result in enumerate(report.peaks, 1):
        bounds = "({}, {}, {})".format(*result.bounds.as_tuple())
        centroid = f"{result.centroid:.2f}" if result.centroid is not None else "-"
        if result.fit is not None:
            mu = format_uncertainty(result.fit.mu, result.fit.mu_err)
            sigma = format_uncertainty(result.fit.sigma, result.fit.sigma_err)
        else:
            mu = sigma = "-"
        lines.append(f"{i:<5} {bounds:<18} {centroid:<12} {mu:<18} {sigma:<16}")
        if result.centroid_error:
            lines.append(f"      centroid failed: {result.centroid_error}")
        if result.fit_error:
            lines.append(f"      fit failed: {result.fit_error}")

    for failure in report.boundary_failures:
        lines.append(f"  peak at index {failure.peak_index} skipped: {failure.reason}")

    if not report.peaks and not report.boundary_failures:
        lines.append("No peaks found")

    return "\n".join(lines) + "\n"


def plot_spectrum_with_peaks(x: np.ndarray,
                             y: np.ndarray,
                             report: SpectrumReport,
                             output_file: str,
                             x_label: str = 'Channel',
                             log_scale: bool = False,
                             dpi: int = 150):
    """
    Plot the spectrum with peak bounds, centroids and fitted Gaussians.

    Parameters:
        x: Channel numbers or energies
        y: Raw counts
        report: Pipeline output for this spectrum
        output_file: Output image path
        x_label: Label of the x-axis
        log_scale: Whether to use log scale for y-axis
        dpi: Resolution of the saved image
    """
    x = np.asarray(x, dtype=float)
    y = np.asarray(y, dtype=float)

    fig, ax = plt.subplots(figsize=(12, 6))

    ax.plot(x, y, 'b-', alpha=0.3, linewidth=0.5, label='Raw data')
    ax.plot(x, report.smoothed, 'k-', linewidth=1, label='Smoothed data')

    for i, result in enumerate(report.peaks):
        left, peak, right = result.bounds
        ax.axvspan(x[left], x[right], color=f'C{i % 10}', alpha=0.1)

        if result.centroid is not None:
            ax.axvline(result.centroid, color='g', linestyle='--', linewidth=0.8)

        if result.fit is not None:
            start, stop = result.fit.window
            x_fit = np.linspace(x[start], x[stop], 200)
            y_fit = gaussian(x_fit, *result.fit.params)
            ax.plot(x_fit, y_fit, 'r-', linewidth=1.5, alpha=0.8)

        ax.annotate(f'{i + 1}', xy=(x[peak], y[peak]), xytext=(0, 8),
                    textcoords='offset points', ha='center', fontsize=8,
                    color='darkgreen')

    ax.set_xlabel(x_label, fontsize=11)
    ax.set_ylabel('Counts', fontsize=11)
    if log_scale:
        ax.set_yscale('log')
        ax.set_ylim(bottom=0.5)
    ax.grid(True, alpha=0.3)
    ax.legend(loc='upper right', fontsize=9)
    ax.set_title('Gamma Spectrum Analysis', fontsize=13, fontweight='bold')

    fig.tight_layout()
    fig.savefig(output_file, dpi=dpi, bbox_inches='tight')
    plt.close(fig)
