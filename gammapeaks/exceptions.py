"""
Exception types raised by the peak analysis pipeline.

Every failure carries the context needed to report it per peak, so a batch
run can record the reason and move on to the next peak.
"""


class GammaPeaksError(Exception):
    """Base class for all gammapeaks errors."""


class InvalidInput(GammaPeaksError, ValueError):
    """Malformed spectrum data or analysis parameters."""


class NoBoundaryFound(GammaPeaksError):
    """
    The derivative never dropped below tolerance on one side of a peak.

    Parameters:
        peak_index: Index of the peak maximum
        direction: 'left' or 'right'
        tol: Slope tolerance that was searched for
    """

    def __init__(self, peak_index: int, direction: str, tol: float = None):
        self.peak_index = peak_index
        self.direction = direction
        self.tol = tol
        message = f"No {direction} boundary found for peak at index {peak_index}"
        if tol is not None:
            message += f" (|slope| never below {tol:g})"
        super().__init__(message)


class InsufficientSignal(GammaPeaksError):
    """The background-thresholded sub-window could not be built."""

    def __init__(self, bounds, reason: str = "no point exceeds the threshold"):
        self.bounds = bounds
        self.reason = reason
        super().__init__(f"Insufficient signal in {bounds}: {reason}")


class FitDidNotConverge(GammaPeaksError):
    """The Gaussian least-squares fit failed."""

    def __init__(self, bounds, reason: str):
        self.bounds = bounds
        self.reason = reason
        super().__init__(f"Gaussian fit failed for {bounds}: {reason}")
