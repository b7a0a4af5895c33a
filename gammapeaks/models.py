"""
Data classes for peak analysis results.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Tuple

import numpy as np

from .exceptions import InvalidInput


@dataclass(frozen=True)
class PeakBounds:
    """Left edge, maximum and right edge of a peak, as spectrum indices."""
    left: int
    peak: int
    right: int

    def __post_init__(self):
        if not self.left < self.peak < self.right:
            raise InvalidInput(
                f"Peak bounds must satisfy left < peak < right, got "
                f"({self.left}, {self.peak}, {self.right})"
            )

    def __iter__(self):
        return iter((self.left, self.peak, self.right))

    def as_tuple(self) -> Tuple[int, int, int]:
        return (self.left, self.peak, self.right)

    @property
    def width(self) -> int:
        """Number of indices spanned by the peak, edges included."""
        return self.right - self.left + 1


@dataclass(frozen=True)
class FitResult:
    """
    Fitted parameters of a normalized Gaussian and their standard errors.

    Attributes:
        amplitude: Area scale factor A of the Gaussian
        sigma: Standard deviation
        mu: Center position
        amplitude_err, sigma_err, mu_err: Standard errors from the covariance
        window: (start, stop) indices of the fitted sub-window, stop inclusive
        chi_square: Reduced chi-square of the residuals
    """
    amplitude: float
    sigma: float
    mu: float
    amplitude_err: float
    sigma_err: float
    mu_err: float
    window: Tuple[int, int] = (0, 0)
    chi_square: float = float('nan')

    @property
    def params(self) -> np.ndarray:
        return np.array([self.amplitude, self.sigma, self.mu])

    @property
    def errors(self) -> np.ndarray:
        return np.array([self.amplitude_err, self.sigma_err, self.mu_err])

    @property
    def fwhm(self) -> float:
        return 2 * np.sqrt(2 * np.log(2)) * abs(self.sigma)

    @property
    def height(self) -> float:
        """Maximum of the fitted curve."""
        return self.amplitude / (abs(self.sigma) * np.sqrt(2 * np.pi))


@dataclass(frozen=True)
class PeakResult:
    """Outcome of quantifying one peak; either estimate may be missing."""
    bounds: PeakBounds
    centroid: Optional[float] = None
    fit: Optional[FitResult] = None
    centroid_error: Optional[str] = None
    fit_error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.centroid is not None and self.fit is not None


@dataclass(frozen=True)
class BoundaryFailure:
    """A detected peak whose boundaries could not be located."""
    peak_index: int
    reason: str


@dataclass
class SpectrumReport:
    """Everything the pipeline produced for one spectrum."""
    smoothed: np.ndarray
    peak_indices: np.ndarray
    peaks: List[PeakResult] = field(default_factory=list)
    boundary_failures: List[BoundaryFailure] = field(default_factory=list)

    @property
    def bounds(self) -> List[PeakBounds]:
        return [p.bounds for p in self.peaks]

    @property
    def centroids(self) -> List[Optional[float]]:
        return [p.centroid for p in self.peaks]

    @property
    def fits(self) -> List[Optional[FitResult]]:
        return [p.fit for p in self.peaks]
