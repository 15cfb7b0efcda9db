"""
Type definitions and common constants for table image analysis.

This module defines the shared types used by the pixel buffer, colour space,
sampling and segmentation modules so that they agree on data layout.
"""

from typing import NamedTuple, Tuple
import numpy as np
from numpy.typing import NDArray

# Type aliases for common data structures
Image = NDArray[np.uint8]          # Decoded bitmap (H, W), (H, W, 3) BGR or (H, W, 4) BGRA
LabArray = NDArray[np.float64]     # Per-pixel LAB values (H, W, 3)
Position = Tuple[float, float]     # Type for (x, y) positions
Size = Tuple[float, float]         # Type for (width, height) dimensions
BoundingBox = Tuple[int, int, int, int]     # (x, y, width, height) in pixels
Rectangle = Tuple[float, float, float, float]  # (x, y, width, height) in inches
Rgba = Tuple[int, int, int, int]   # (red, green, blue, alpha)

# Pixel layout
BYTES_PER_PIXEL = 4
BLUE, GREEN, RED, ALPHA = 0, 1, 2, 3

# Segmentation defaults
DEFAULT_DELTA_E_THRESHOLD = 10.0   # found interactively to separate balls from cloth
CONNECTIVITY_OPTIONS = [4, 8]
DEFAULT_CONNECTIVITY = 8


class Bgra(NamedTuple):
    """A single pixel in the byte order emitted by bitmap APIs."""

    blue: int
    green: int
    red: int
    alpha: int = 255

    def to_rgba(self) -> Rgba:
        return (self.red, self.green, self.blue, self.alpha)

    @classmethod
    def from_rgba(cls, red: int, green: int, blue: int, alpha: int = 255) -> "Bgra":
        return cls(blue, green, red, alpha)


class SampleRegion(NamedTuple):
    """Rectangular pixel region, (x, y) being the top-left corner."""

    x: int
    y: int
    width: int
    height: int

    @property
    def area(self) -> int:
        return max(self.width, 0) * max(self.height, 0)

    @property
    def right(self) -> int:
        return self.x + self.width

    @property
    def bottom(self) -> int:
        return self.y + self.height
