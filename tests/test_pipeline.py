"""
Unit tests for the peak analysis pipeline.
"""

import unittest
import numpy as np
from pathlib import Path
import sys

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from gammapeaks.exceptions import InvalidInput
from gammapeaks.models import PeakBounds, PeakResult, SpectrumReport
from gammapeaks.pipeline import analyze_spectrum, peak_parameters, quantify_peak
from gammapeaks.utils import (
    DEFAULT_CONFIG,
    generate_synthetic_spectrum,
    merge_config,
    validate_parameters,
)


class TestAnalyzeSpectrum(unittest.TestCase):
    """Test the full analysis of a single spectrum."""

    def setUp(self):
        self.x, self.y = generate_synthetic_spectrum(
            num_channels=200, peaks=[(100, 1000, 8)], background_level=10
        )

    def test_single_clean_peak(self):
        report = analyze_spectrum(self.x, self.y)

        self.assertIsInstance(report, SpectrumReport)
        self.assertEqual(len(report.smoothed), len(self.y))
        np.testing.assert_array_equal(report.peak_indices, [100])
        self.assertEqual(len(report.peaks), 1)
        self.assertEqual(report.boundary_failures, [])

        result = report.peaks[0]
        self.assertTrue(result.ok)
        self.assertEqual(result.bounds.peak, 100)
        self.assertAlmostEqual(result.bounds.left, 70, delta=5)
        self.assertAlmostEqual(result.bounds.right, 130, delta=5)
        self.assertAlmostEqual(result.centroid, 100.0, delta=0.5)
        self.assertAlmostEqual(result.fit.mu, 100.0, delta=0.5)
        self.assertAlmostEqual(result.fit.sigma, 8.0, delta=1.0)

    def test_no_peaks(self):
        """Pure noise gives an empty report, not an error."""
        rng = np.random.RandomState(0)
        y = 10 + rng.uniform(-2, 2, 500)
        report = analyze_spectrum(np.arange(500.0), y)

        self.assertEqual(len(report.peak_indices), 0)
        self.assertEqual(report.peaks, [])
        self.assertEqual(report.boundary_failures, [])

    def test_edge_peak_is_skipped(self):
        """A peak too close to the start is recorded and the others still analyzed."""
        x, y = generate_synthetic_spectrum(
            num_channels=300, peaks=[(12, 500, 3), (150, 1000, 8)], background_level=10
        )
        report = analyze_spectrum(x, y)

        np.testing.assert_array_equal(report.peak_indices, [12, 150])
        self.assertEqual(len(report.peaks), 1)
        self.assertEqual(report.peaks[0].bounds.peak, 150)
        self.assertTrue(report.peaks[0].ok)

        self.assertEqual(len(report.boundary_failures), 1)
        self.assertEqual(report.boundary_failures[0].peak_index, 12)
        self.assertIn('left', report.boundary_failures[0].reason)

    def test_calibrated_axis(self):
        """Positions are reported in the units of x."""
        energy = 0.5 * self.x + 20.0
        report = analyze_spectrum(energy, self.y, {'boundaries': {'tolerance': 2.0}})

        self.assertEqual(len(report.peaks), 1)
        self.assertAlmostEqual(report.peaks[0].centroid, 70.0, delta=0.5)
        self.assertAlmostEqual(report.peaks[0].fit.mu, 70.0, delta=0.5)
        self.assertAlmostEqual(report.peaks[0].fit.sigma, 4.0, delta=0.5)

    def test_missing_channel(self):
        """A missing raw channel does not stop the analysis."""
        y = self.y.copy()
        y[100] = np.nan
        report = analyze_spectrum(self.x, y, {'smoothing': {'edge_policy': 'shrink'}})

        self.assertEqual(len(report.peaks), 1)
        self.assertFalse(np.any(np.isnan(report.smoothed)))
        self.assertAlmostEqual(report.peaks[0].centroid, 100.0, delta=1.0)

    def test_quantify_smoothed_counts(self):
        report = analyze_spectrum(self.x, self.y, {'quantification': {'use_smoothed': True}})
        self.assertAlmostEqual(report.peaks[0].centroid, 100.0, delta=0.5)

    def test_reject_policy_needs_clean_smoothing(self):
        """Undefined smoothed values are an error for the whole spectrum."""
        with self.assertRaises(InvalidInput):
            analyze_spectrum(self.x, self.y, {'smoothing': {'edge_policy': 'reject'}})

    def test_infinite_count_rejected(self):
        y = self.y.copy()
        y[10] = np.inf
        with self.assertRaises(InvalidInput):
            analyze_spectrum(self.x, y)

    def test_invalid_config(self):
        with self.assertRaises(InvalidInput):
            analyze_spectrum(self.x, self.y, {'boundaries': {'tolerance': -1.0}})
        with self.assertRaises(InvalidInput):
            analyze_spectrum(self.x, self.y, {'smoothing': {'window_length': 0}})

    def test_parallel_matches_serial(self):
        x, y = generate_synthetic_spectrum(
            num_channels=400, peaks=[(100, 1000, 8), (280, 400, 6)], background_level=10
        )
        serial = analyze_spectrum(x, y)
        parallel = analyze_spectrum(x, y, workers=2)

        self.assertEqual(len(serial.peaks), 2)
        self.assertEqual(serial.bounds, parallel.bounds)
        self.assertEqual(serial.centroids, parallel.centroids)
        for a, b in zip(serial.fits, parallel.fits):
            np.testing.assert_allclose(a.params, b.params)


class TestPeakParameters(unittest.TestCase):
    """Test the smoothing, detection and boundary stage on its own."""

    def test_returns_bounds_and_smoothed(self):
        x, y = generate_synthetic_spectrum(
            num_channels=400, peaks=[(100, 1000, 8), (280, 400, 6)], background_level=10
        )
        bounds, smoothed = peak_parameters(x, y, window_length=5, min_prominence=50, tol=1.0)

        self.assertEqual(len(smoothed), 400)
        self.assertEqual([b.peak for b in bounds], [100, 280])
        for b in bounds:
            self.assertIsInstance(b, PeakBounds)
            self.assertLess(b.left, b.peak)
            self.assertLess(b.peak, b.right)


class TestQuantifyPeak(unittest.TestCase):
    """Test per-peak quantification with independent failures."""

    def test_partial_success(self):
        """A one-channel spike has a centroid but too few points for a fit."""
        x = np.arange(100.0)
        y = np.zeros(100)
        y[50] = 100.0
        result = quantify_peak(x, y, PeakBounds(40, 50, 60))

        self.assertIsInstance(result, PeakResult)
        self.assertEqual(result.centroid, 50.0)
        self.assertIsNone(result.centroid_error)
        self.assertIsNone(result.fit)
        self.assertIn('at least 3', result.fit_error)
        self.assertFalse(result.ok)

    def test_both_fail(self):
        result = quantify_peak(np.arange(100.0), np.full(100, 10.0), PeakBounds(40, 50, 60))
        self.assertIsNone(result.centroid)
        self.assertIsNone(result.fit)
        self.assertIsNotNone(result.centroid_error)
        self.assertIsNotNone(result.fit_error)

    def test_infinite_count_recorded(self):
        """An infinite count fails both estimates without raising."""
        x, y = generate_synthetic_spectrum(
            num_channels=200, peaks=[(100, 1000, 8)], background_level=10
        )
        y[95] = np.inf
        result = quantify_peak(x, y, PeakBounds(71, 100, 128))
        self.assertIsNone(result.centroid)
        self.assertIsNone(result.fit)
        self.assertIn('infinite', result.centroid_error)
        self.assertIn('infinite', result.fit_error)

    def test_fit_iteration_budget(self):
        x, y = generate_synthetic_spectrum(
            num_channels=200, peaks=[(100, 1000, 8)], background_level=10
        )
        result = quantify_peak(x, y, PeakBounds(71, 100, 128), max_iterations=1)
        self.assertIsNotNone(result.centroid)
        self.assertIsNone(result.fit)
        self.assertIsNotNone(result.fit_error)


class TestConfiguration(unittest.TestCase):
    """Test configuration merging and validation."""

    def test_merge_keeps_defaults(self):
        config = merge_config(DEFAULT_CONFIG, {'boundaries': {'tolerance': 2.5}})
        self.assertEqual(config['boundaries']['tolerance'], 2.5)
        self.assertEqual(config['boundaries']['left_guard'], 20)
        self.assertEqual(config['smoothing']['window_length'], 5)

    def test_merge_ignores_none(self):
        config = merge_config(DEFAULT_CONFIG, {'smoothing': {'window_length': None}})
        self.assertEqual(config['smoothing']['window_length'], 5)

    def test_merge_does_not_modify_inputs(self):
        overrides = {'detection': {'min_prominence': 10.0}}
        merge_config(DEFAULT_CONFIG, overrides)
        self.assertEqual(DEFAULT_CONFIG['detection']['min_prominence'], 50.0)
        self.assertEqual(overrides, {'detection': {'min_prominence': 10.0}})

    def test_validate_defaults(self):
        self.assertTrue(validate_parameters(DEFAULT_CONFIG))

    def test_validate_rejects(self):
        bad = [
            {'smoothing': {'edge_policy': 'mirror'}},
            {'detection': {'min_prominence': 0}},
            {'detection': {'edge_margin': -1}},
            {'boundaries': {'right_guard': 1.5}},
            {'quantification': {'threshold_fraction': 1.0}},
            {'quantification': {'max_iterations': 0}},
        ]
        for overrides in bad:
            with self.assertRaises(InvalidInput):
                validate_parameters(merge_config(DEFAULT_CONFIG, overrides))


if __name__ == '__main__':
    unittest.main()
