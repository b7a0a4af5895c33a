"""
Energy calibration utilities for gamma spectroscopy.

This module maps channel numbers to energies with a linear calibration,
prepares calibrated (x, y) data for the peak analysis, and provides the
Compton-scattering energy used to check measured peak positions.
"""

from dataclasses import dataclass
from typing import Sequence, Tuple, Union

import numpy as np
import pandas as pd
from scipy.stats import linregress

from .exceptions import InvalidInput


ELECTRON_REST_ENERGY_KEV = 511.0


@dataclass(frozen=True)
class LinearCalibration:
    """Linear calibration E = slope * channel + intercept."""
    slope: float = 1.0
    intercept: float = 0.0

    def __call__(self, channels: Union[float, np.ndarray]) -> Union[float, np.ndarray]:
        return self.slope * np.asarray(channels, dtype=float) + self.intercept

    def inverse(self, energies: Union[float, np.ndarray]) -> Union[float, np.ndarray]:
        """Convert energies back to (fractional) channels."""
        return (np.asarray(energies, dtype=float) - self.intercept) / self.slope

    @classmethod
    def from_points(cls, channels: Sequence[float],
                    energies: Sequence[float]) -> 'LinearCalibration':
        """
        Fit a linear calibration to known (channel, energy) pairs.

        Parameters:
            channels: Measured peak channels
            energies: Reference energies in keV

        Returns:
            Fitted LinearCalibration
        """
        channels = np.asarray(channels, dtype=float)
        energies = np.asarray(energies, dtype=float)
        if len(channels) != len(energies):
            raise InvalidInput("channels and energies must have the same length")
        if len(channels) < 2:
            raise InvalidInput("At least 2 calibration points required")

        result = linregress(channels, energies)
        return cls(float(result.slope), float(result.intercept))


def parse_calibration(text: str) -> LinearCalibration:
    """
    Parse a calibration given as "a,b" where Energy = a*Channel + b.

    Parameters:
        text: Calibration string

    Returns:
        LinearCalibration
    """
    parts = text.split(',')
    if len(parts) != 2:
        raise InvalidInput(f"calibration must be 'a,b' format, got {text!r}")
    try:
        return LinearCalibration(float(parts[0]), float(parts[1]))
    except ValueError as e:
        raise InvalidInput(f"calibration must be 'a,b' format, got {text!r}") from e


def get_xy_data(data: pd.DataFrame,
                lower_limit: int,
                calibration=None) -> Tuple[np.ndarray, np.ndarray]:
    """
    Cut low-energy noise and scale the x-axis with a calibration.

    Parameters:
        data: Spectrum table, channels in the first column and counts in
            the second (as returned by ``read_maestro_txt``)
        lower_limit: First channel row kept, counting from 1
        calibration: Callable mapping channels to energies; identity if None

    Returns:
        tuple: (x, y) arrays
    """
    if lower_limit < 1 or lower_limit > len(data):
        raise InvalidInput(
            f"lower_limit must be between 1 and {len(data)}, got {lower_limit}"
        )

    channels = data.iloc[lower_limit - 1:, 0].to_numpy(dtype=float)
    counts = data.iloc[lower_limit - 1:, 1].to_numpy(dtype=float)

    if calibration is not None:
        channels = np.asarray(calibration(channels), dtype=float)

    return channels, counts


def select_part(x: Sequence[float],
                y: Sequence[float],
                lower: float,
                upper: float) -> Tuple[np.ndarray, np.ndarray]:
    """
    Select the data strictly between ``lower`` and ``upper`` on the x-axis.

    Parameters:
        x: Positions, non-decreasing
        y: Values
        lower: Lower x limit (exclusive)
        upper: Upper x limit (exclusive)

    Returns:
        tuple: (x, y) slices
    """
    x = np.asarray(x, dtype=float)
    y = np.asarray(y, dtype=float)
    inside = np.flatnonzero((x > lower) & (x < upper))
    if len(inside) == 0:
        raise InvalidInput(f"No data between {lower} and {upper}")

    start, stop = inside[0], inside[-1] + 1
    return x[start:stop], y[start:stop]


def expected_compton_energy(theta: Union[float, np.ndarray],
                            source_energy: float) -> Union[float, np.ndarray]:
    """
    Energy of a photon after Compton scattering off a free electron.

    Parameters:
        theta: Scattering angle in degrees
        source_energy: Incident photon energy in keV

    Returns:
        Scattered photon energy in keV
    """
    alpha = source_energy / ELECTRON_REST_ENERGY_KEV
    return source_energy / (1 + alpha * (1 - np.cos(np.radians(theta))))
