class DetectionError(Exception):
    """Base class for errors raised while turning model output into detections."""


class FormatError(DetectionError, ValueError):
    """Raw output tensor does not have a `4 + num_classes` axis (or a usable rank)."""

    def __init__(self, message: str, shape=None):
        super().__init__(message)
        self.shape = tuple(shape) if shape is not None else None


class DecodeError(DetectionError):
    """Input image could not be read or converted into a model blob."""
