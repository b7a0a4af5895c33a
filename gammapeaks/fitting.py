"""
Gaussian peak fitting for gamma spectroscopy.

Each peak is fitted with a normalized Gaussian scaled by an area factor,
over the same background-thresholded window used for the centroid estimate.
"""

from typing import Optional, Sequence, Tuple
import warnings

import numpy as np
from scipy.optimize import OptimizeWarning, curve_fit

from .exceptions import FitDidNotConverge, InvalidInput
from .models import FitResult
from .utils import background_window, validate_spectrum


def gaussian(x: np.ndarray, amplitude: float, sigma: float, mu: float) -> np.ndarray:
    """
    Normalized Gaussian scaled by ``amplitude``.

    Parameters:
        x: Channel numbers or energies
        amplitude: Area under the curve
        sigma: Standard deviation
        mu: Center position

    Returns:
        Gaussian values
    """
    return (amplitude * (1 / (sigma * np.sqrt(2 * np.pi)))
            * np.exp(-0.5 * ((x - mu) / sigma) ** 2))


def estimate_initial_params(x_fit: np.ndarray,
                            y_fit: np.ndarray) -> Tuple[float, float, float]:
    """
    Estimate initial parameters for the Gaussian fit from the fit window.

    The width guess is half the window span and the center guess is the
    position of the highest count; the amplitude guess is the area of a
    Gaussian of that width reaching the highest count.

    Parameters:
        x_fit: Positions in the fit window
        y_fit: Counts in the fit window

    Returns:
        tuple: (amplitude, sigma, mu)
    """
    peak = int(np.argmax(y_fit))
    height = float(y_fit[peak])
    sigma = (x_fit[-1] - x_fit[0]) / 2
    if sigma <= 0:
        sigma = 1.0
    amplitude = height * sigma * np.sqrt(2 * np.pi)
    return amplitude, float(sigma), float(x_fit[peak])


def fit_gaussian(x: Sequence[float],
                 y: Sequence[float],
                 bounds,
                 p0: Optional[Sequence[float]] = None,
                 fraction: float = 0.2,
                 max_iterations: int = 5000) -> FitResult:
    """
    Fit a Gaussian to a peak by nonlinear least squares.

    Parameters:
        x: Channel numbers or energies
        y: Counts
        bounds: PeakBounds of the peak
        p0: Initial (amplitude, sigma, mu); estimated from the data if None
        fraction: Fraction of the height above background to cut at
        max_iterations: Maximum number of model evaluations

    Returns:
        FitResult with parameters and standard errors

    Raises:
        InsufficientSignal: If the fit window cannot be built
        FitDidNotConverge: If the optimizer fails, the covariance is singular
            or the fitted center lies outside the fit window
    """
    x, y = validate_spectrum(x, y)
    if max_iterations < 1:
        raise InvalidInput("max_iterations must be at least 1")

    start, stop = background_window(y, bounds, fraction)
    x_fit = x[start:stop + 1]
    y_fit = y[start:stop + 1]

    if len(x_fit) < 3:
        raise FitDidNotConverge(
            bounds, f"{len(x_fit)} points in fit window, at least 3 needed"
        )

    if p0 is None:
        p0 = estimate_initial_params(x_fit, y_fit)
    elif len(p0) != 3:
        raise InvalidInput("p0 must hold (amplitude, sigma, mu)")

    with warnings.catch_warnings():
        # A covariance that cannot be estimated means a singular Jacobian
        warnings.simplefilter('error', OptimizeWarning)
        try:
            popt, pcov = curve_fit(
                gaussian,
                x_fit,
                y_fit,
                p0=p0,
                maxfev=max_iterations
            )
        except RuntimeError as e:
            raise FitDidNotConverge(bounds, str(e)) from e
        except OptimizeWarning as e:
            raise FitDidNotConverge(bounds, f"singular Jacobian: {e}") from e

    perr = np.sqrt(np.diag(pcov))
    if not np.all(np.isfinite(popt)) or not np.all(np.isfinite(perr)):
        raise FitDidNotConverge(bounds, "non-finite parameters or covariance")

    amplitude, sigma, mu = popt
    # The model only depends on sigma through |sigma| once the sign is
    # carried by the amplitude
    if sigma < 0:
        amplitude, sigma = -amplitude, -sigma

    if not x_fit[0] <= mu <= x_fit[-1]:
        raise FitDidNotConverge(
            bounds, f"fitted center {mu:.4g} outside window "
                    f"[{x_fit[0]:.4g}, {x_fit[-1]:.4g}]"
        )

    residuals = y_fit - gaussian(x_fit, *popt)
    dof = len(y_fit) - len(popt)
    chi_square = float(np.sum(residuals ** 2) / dof) if dof > 0 else np.inf

    return FitResult(
        amplitude=float(amplitude),
        sigma=float(sigma),
        mu=float(mu),
        amplitude_err=float(perr[0]),
        sigma_err=float(perr[1]),
        mu_err=float(perr[2]),
        window=(start, stop),
        chi_square=chi_square,
    )
