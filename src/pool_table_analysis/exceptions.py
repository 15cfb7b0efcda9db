"""
Exceptions raised by the table analysis engine.

Every error is local to the operation that raised it; nothing is retried.
"""

from typing import Optional


class TableAnalysisError(Exception):
    """Base class for all table analysis errors."""


class DecodeError(TableAnalysisError, ValueError):
    """The image could not be turned into a pixel buffer (empty or malformed)."""


class OutOfBounds(TableAnalysisError, IndexError):
    """A pixel coordinate or region lies outside the buffer extent."""

    def __init__(self, x: int, y: int, width: int, height: int, detail: str = "") -> None:
        self.x = x
        self.y = y
        self.width = width
        self.height = height
        message = f"Coordinates ({x}, {y}) are outside of the {width}x{height} image"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class InvalidColorComponent(TableAnalysisError, ValueError):
    """An explicitly constructed LAB colour lies outside the LAB domain."""


class DegenerateSampleRegion(TableAnalysisError, ValueError):
    """The cloth colour sample region has zero area."""


class ImageLoadError(TableAnalysisError):
    """Base class for failures of the image decode collaborator."""


class UnsupportedFormat(ImageLoadError, ValueError):
    """The file extension or byte stream is not a raster format OpenCV reads."""


class CorruptImage(ImageLoadError, ValueError):
    """The file claims a supported format but could not be decoded."""


class AnalysisError(TableAnalysisError):
    """
    A pipeline stage of TableAnalyzer.analyze failed.

    Attributes:
        stage: Name of the stage that was being entered when the failure occurred
        error: The underlying exception
    """

    def __init__(self, stage: str, error: Optional[BaseException] = None) -> None:
        self.stage = stage
        self.error = error
        reason = f"{type(error).__name__}: {error}" if error is not None else "unknown error"
        super().__init__(f"Analysis failed at stage '{stage}': {reason}")
