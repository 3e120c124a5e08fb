"""
Exceptions raised by the dart vision core.

Every failure surfaces to the caller; nothing is retried internally.
"""


class PipelineError(Exception):
    """Base class for all dart vision errors."""


class InsufficientKeypointsError(PipelineError):
    """Fewer than four distinct labeled board corners were available."""

    def __init__(self, found: int):
        self.found = found
        super().__init__(f"Only {found} of 4 board keypoints detected")


class HomographyFailedError(PipelineError):
    """The DLT/SVD solve produced no usable homography."""

    def __init__(self, message: str = "Homography could not be computed"):
        super().__init__(message)


class InvalidModelOutputError(PipelineError, ValueError):
    """Raw detector tensor does not match the expected channel layout."""


class ModelNotFoundError(PipelineError):
    """A configured model file does not exist."""
