"""
Unit tests for I/O module.
"""

import unittest
import tempfile
import shutil
import json
import numpy as np
from pathlib import Path
import sys

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from gammapeaks.exceptions import InvalidInput
from gammapeaks.io_module import (
    read_maestro_txt,
    load_csv_spectrum,
    load_spectrum,
    load_config,
    save_config
)


MAESTRO_TEXT = """\
Spectrum name: test.Spe
Detector #1
Acquisition started: 19-Oct-2026 10:00:00
Live Time: 300 seconds
         0:       0       0       3       7       5
         5:      12      40      91      40      11
        10:       4       2       1
End of spectrum
"""


class TestMaestroReader(unittest.TestCase):
    """Test reading Maestro 'Print to text' exports."""

    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()
        self.temp_path = Path(self.temp_dir)

    def tearDown(self):
        shutil.rmtree(self.temp_dir)

    def test_read_maestro(self):
        filepath = self.temp_path / "spectrum.Txt"
        filepath.write_text(MAESTRO_TEXT)

        data = read_maestro_txt(filepath)

        self.assertEqual(list(data.columns), ['Lines', 'Counts'])
        self.assertEqual(len(data), 13)
        np.testing.assert_array_equal(data['Lines'], np.arange(1, 14))
        np.testing.assert_array_equal(
            data['Counts'], [0, 0, 3, 7, 5, 12, 40, 91, 40, 11, 4, 2, 1]
        )

    def test_header_lines_ignored(self):
        """Lines not starting with a space are not data, even with a colon."""
        filepath = self.temp_path / "spectrum.Txt"
        filepath.write_text("Real Time: 305\n     0:   1   2\nLive Time: 300\n")

        data = read_maestro_txt(filepath)
        np.testing.assert_array_equal(data['Counts'], [1, 2])

    def test_malformed_line(self):
        filepath = self.temp_path / "bad.Txt"
        filepath.write_text("     0:   1   x   3\n")
        with self.assertRaises(InvalidInput):
            read_maestro_txt(filepath)

    def test_no_data(self):
        filepath = self.temp_path / "empty.Txt"
        filepath.write_text("Spectrum name: nothing\n")
        with self.assertRaises(InvalidInput):
            read_maestro_txt(filepath)

    def test_missing_file(self):
        with self.assertRaises(FileNotFoundError):
            read_maestro_txt(self.temp_path / "absent.Txt")


class TestSpectrumLoading(unittest.TestCase):
    """Test spectrum file loading."""

    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()
        self.temp_path = Path(self.temp_dir)

    def tearDown(self):
        shutil.rmtree(self.temp_dir)

    def test_load_csv_two_columns(self):
        filepath = self.temp_path / "spectrum.csv"
        filepath.write_text("# channel,counts\n0,5\n1,10\n2,7\n")

        channels, counts = load_csv_spectrum(filepath)

        np.testing.assert_array_equal(channels, [0, 1, 2])
        np.testing.assert_array_equal(counts, [5, 10, 7])

    def test_load_csv_single_column(self):
        filepath = self.temp_path / "counts.csv"
        filepath.write_text("5\n10\n7\n")

        channels, counts = load_csv_spectrum(filepath)

        np.testing.assert_array_equal(channels, [0, 1, 2])
        np.testing.assert_array_equal(counts, [5, 10, 7])

    def test_load_csv_non_numeric(self):
        filepath = self.temp_path / "bad.csv"
        filepath.write_text("0,5\n1,abc\n")
        with self.assertRaises(InvalidInput):
            load_csv_spectrum(filepath)

    def test_load_spectrum_dispatch(self):
        """Text files are read as Maestro exports, other files as CSV."""
        maestro = self.temp_path / "spectrum.TXT"
        maestro.write_text(MAESTRO_TEXT)
        channels, counts = load_spectrum(str(maestro))
        self.assertEqual(channels[0], 1.0)
        self.assertEqual(len(counts), 13)
        self.assertEqual(counts.dtype, float)

        csv = self.temp_path / "spectrum.dat"
        csv.write_text("0,5\n1,10\n")
        channels, counts = load_spectrum(str(csv))
        np.testing.assert_array_equal(counts, [5, 10])

    def test_load_nonexistent_file(self):
        with self.assertRaises(FileNotFoundError):
            load_spectrum(str(self.temp_path / "nonexistent.csv"))


class TestConfigIO(unittest.TestCase):
    """Test configuration file I/O."""

    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()
        self.temp_path = Path(self.temp_dir)

    def tearDown(self):
        shutil.rmtree(self.temp_dir)

    def test_save_and_load(self):
        config = {
            'smoothing': {'window_length': 7, 'edge_policy': 'shrink'},
            'boundaries': {'tolerance': 0.5},
        }
        filepath = self.temp_path / "config.json"
        save_config(config, filepath)

        self.assertEqual(load_config(filepath), config)

    def test_invalid_json(self):
        filepath = self.temp_path / "config.json"
        filepath.write_text("{'not': json}")
        with self.assertRaises(InvalidInput):
            load_config(filepath)

    def test_missing_config(self):
        with self.assertRaises(FileNotFoundError):
            load_config(self.temp_path / "absent.json")

    def test_saved_file_is_json(self):
        filepath = self.temp_path / "config.json"
        save_config({'detection': {'min_prominence': 25.0}}, filepath)
        with open(filepath) as f:
            self.assertEqual(json.load(f)['detection']['min_prominence'], 25.0)


if __name__ == '__main__':
    unittest.main()
