"""
PhotoBurn Exceptions
"""


class PhotoBurnError(Exception):
    """Base class for all PhotoBurn errors."""


class InvalidImageData(PhotoBurnError, ValueError):
    """Raised when a pixel buffer does not match its declared dimensions."""


class FaceDetectorUnavailable(PhotoBurnError):
    """
    Raised by a face detector that cannot run.

    The classifier treats this as "no faces found" and carries on
    with the rule-based result.
    """


class ImageLoadError(PhotoBurnError, OSError):
    """Raised when an image file cannot be read or written."""
