"""
Input/Output operations for gamma spectroscopy data.

This module reads Maestro text exports and CSV spectra, and loads and saves
JSON analysis configurations.
"""

import json
from pathlib import Path
from typing import Any, Dict, Tuple

import numpy as np
import pandas as pd

from .exceptions import InvalidInput


def read_maestro_txt(filepath: str) -> pd.DataFrame:
    """
    Read a spectrum printed to text by Maestro.

    To get the file from Maestro: ``File > Print > Print to text``. Data
    lines start with a space and hold a channel label followed by a colon
    and the counts of consecutive channels.

    Parameters:
        filepath: Path to the .Txt file

    Returns:
        DataFrame with columns 'Lines' (channel numbers, starting at 1)
        and 'Counts'
    """
    filepath = Path(filepath)
    if not filepath.exists():
        raise FileNotFoundError(f"Spectrum file not found: {filepath}")

    counts = []
    with open(filepath, 'r') as f:
        for line in f:
            line = line.rstrip('\n')
            if not line or line[0] != ' ':
                continue
            _, sep, values = line.partition(':')
            if not sep:
                continue
            try:
                counts.extend(int(token) for token in values.split())
            except ValueError as e:
                raise InvalidInput(f"Malformed data line in {filepath}: {line!r}") from e

    if not counts:
        raise InvalidInput(f"No data found in Maestro file: {filepath}")

    return pd.DataFrame({
        'Lines': np.arange(1, len(counts) + 1),
        'Counts': np.array(counts, dtype=np.int64),
    })


def load_csv_spectrum(filepath: Path) -> Tuple[np.ndarray, np.ndarray]:
    """
    Load spectrum from CSV file.

    Expected format: Two columns (channel/energy, counts), or a single
    column of counts. Lines starting with '#' are ignored.

    Parameters:
        filepath: Path to CSV file

    Returns:
        tuple: (channels, counts) arrays
    """
    try:
        data = pd.read_csv(filepath, header=None, comment='#')
    except (pd.errors.ParserError, pd.errors.EmptyDataError) as e:
        raise InvalidInput(f"Error reading CSV file: {e}") from e

    if data.shape[1] < 2:
        counts = data.iloc[:, 0].to_numpy()
        channels = np.arange(len(counts))
    else:
        channels = data.iloc[:, 0].to_numpy()
        counts = data.iloc[:, 1].to_numpy()

    try:
        channels = channels.astype(float)
        counts = counts.astype(float)
    except ValueError as e:
        raise InvalidInput(f"Non-numeric data in CSV file: {e}") from e

    if len(counts) == 0:
        raise InvalidInput("Empty spectrum file")

    return channels, counts


def load_spectrum(filepath: str) -> Tuple[np.ndarray, np.ndarray]:
    """
    Load spectrum from file with format detection by extension.

    Parameters:
        filepath: Path to spectrum file (.txt Maestro export, or .csv/.dat)

    Returns:
        tuple: (channels, counts) as numpy arrays; Maestro channels start at 1

    Raises:
        FileNotFoundError: If file doesn't exist
        InvalidInput: If data is invalid
    """
    filepath = Path(filepath)

    if not filepath.exists():
        raise FileNotFoundError(f"Spectrum file not found: {filepath}")

    if filepath.suffix.lower() == '.txt':
        data = read_maestro_txt(filepath)
        return (data['Lines'].to_numpy(dtype=float),
                data['Counts'].to_numpy(dtype=float))

    return load_csv_spectrum(filepath)


def load_config(filepath: str) -> Dict[str, Any]:
    """
    Load configuration from JSON file.

    Parameters:
        filepath: Path to configuration file

    Returns:
        dict: Configuration dictionary
    """
    filepath = Path(filepath)

    if not filepath.exists():
        raise FileNotFoundError(f"Configuration file not found: {filepath}")

    try:
        with open(filepath, 'r') as f:
            return json.load(f)
    except json.JSONDecodeError as e:
        raise InvalidInput(f"Invalid JSON in configuration file: {e}") from e


def save_config(config: Dict[str, Any], filepath: str):
    """
    Save configuration to JSON file.

    Parameters:
        config: Configuration dictionary
        filepath: Output file path
    """
    with open(Path(filepath), 'w') as f:
        json.dump(config, f, indent=2)
