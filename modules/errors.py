"""Error types surfaced to the capture and log screens."""
from enum import Enum


class ErrorKind(Enum):
    CAMERA = "camera"
    ANALYSIS = "analysis"


class VisionLoggerError(Exception):
    """Base error. Carries a user-facing message and its kind."""

    kind: ErrorKind

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class CameraPermissionError(VisionLoggerError):
    """Raised when the camera is denied, missing, or stops delivering frames."""

    kind = ErrorKind.CAMERA


class AnalysisError(VisionLoggerError):
    """Raised by the vision client for any failure, whatever the cause."""

    kind = ErrorKind.ANALYSIS


def describe_error(error: VisionLoggerError) -> tuple[str, str]:
    """
    Map an error to (display category, message).

    Camera errors are shown as a persistent overlay, analysis errors as a
    one-shot flash message.
    """
    if error.kind is ErrorKind.CAMERA:
        return "overlay", error.message
    if error.kind is ErrorKind.ANALYSIS:
        return "flash", error.message
    raise ValueError(f"Unknown error kind: {error.kind!r}")
