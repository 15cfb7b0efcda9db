"""
Pixel buffer for decoded table images.

This module provides the PixelBuffer class, which owns the raw BGRA bytes of a
decoded image together with its row stride and gives bounds-checked access to
individual pixels.
"""

import logging
from typing import Optional, Sequence, Union

import cv2
import numpy as np
from numpy.typing import NDArray

from .exceptions import DecodeError, OutOfBounds
from .types import BYTES_PER_PIXEL, Bgra, Image

logger = logging.getLogger(__name__)


class PixelBuffer:
    """
    Read-only BGRA byte buffer with an optional copy-on-write working copy.

    The source bytes are never modified once the buffer is created. Calls to
    write_pixel go to a working copy that is created on the first write and is
    only used to produce annotated output images.
    """

    def __init__(self,
                 data: Union[bytes, bytearray, NDArray[np.uint8]],
                 width: int,
                 height: int,
                 stride: int) -> None:
        """
        Initialize the pixel buffer.

        Args:
            data: Packed BGRA bytes, exactly stride * height long
            width: Image width in pixels
            height: Image height in pixels
            stride: Byte width of one row, at least width * 4

        Raises:
            DecodeError: If the dimensions, stride or data length are inconsistent
        """
        if width <= 0 or height <= 0:
            raise DecodeError(f"Image must have non-zero dimensions, got {width}x{height}")
        if stride < width * BYTES_PER_PIXEL:
            raise DecodeError(
                f"Stride {stride} is smaller than the row width {width * BYTES_PER_PIXEL}"
            )

        if isinstance(data, (bytes, bytearray)):
            buffer = np.frombuffer(bytes(data), dtype=np.uint8)
        else:
            buffer = np.array(data, dtype=np.uint8).reshape(-1)
        if buffer.size != stride * height:
            raise DecodeError(
                f"Expected {stride * height} bytes for a {width}x{height} image with stride {stride}, "
                f"got {buffer.size}"
            )
        buffer.flags.writeable = False

        self.width = width
        self.height = height
        self.stride = stride
        self._data: NDArray[np.uint8] = buffer
        self._working: Optional[NDArray[np.uint8]] = None

    @classmethod
    def decode(cls, image: Image) -> "PixelBuffer":
        """
        Build a pixel buffer from a decoded bitmap.

        Args:
            image: Grayscale (H, W), BGR (H, W, 3) or BGRA (H, W, 4) uint8 array
                   as returned by OpenCV

        Returns:
            PixelBuffer holding the image in BGRA byte order

        Raises:
            DecodeError: If the image is empty or has an unsupported layout
        """
        if image is None or not isinstance(image, np.ndarray):
            raise DecodeError("Image must be a decoded numpy array")
        if image.ndim < 2 or image.shape[0] == 0 or image.shape[1] == 0:
            raise DecodeError(f"Image has zero width or height: shape {image.shape}")
        if image.dtype != np.uint8:
            raise DecodeError(f"Only 8-bit images are supported, got dtype {image.dtype}")

        if image.ndim == 2:
            bgra = cv2.cvtColor(image, cv2.COLOR_GRAY2BGRA)
        elif image.ndim == 3 and image.shape[2] == 3:
            bgra = cv2.cvtColor(image, cv2.COLOR_BGR2BGRA)
        elif image.ndim == 3 and image.shape[2] == 4:
            bgra = image
        else:
            raise DecodeError(f"Unsupported image shape {image.shape}")

        height, width = bgra.shape[:2]
        row_bytes = width * BYTES_PER_PIXEL
        if bgra.strides[1:] == (BYTES_PER_PIXEL, 1) and bgra.strides[0] >= row_bytes:
            # Strided BGRA view: keep its row stride, padding bytes are zeroed
            stride = bgra.strides[0]
        else:
            stride = row_bytes
        rows = np.zeros((height, stride), dtype=np.uint8)
        rows[:, :row_bytes] = bgra.reshape(height, row_bytes)
        logger.debug(f"Decoded {width}x{height} image with stride {stride}")
        return cls(rows.reshape(-1), width, height, stride)

    @property
    def data(self) -> NDArray[np.uint8]:
        """Read-only view of the source bytes."""
        return self._data

    @property
    def has_annotations(self) -> bool:
        return self._working is not None

    def _offset(self, x: int, y: int) -> int:
        if x < 0 or y < 0 or x >= self.width or y >= self.height:
            raise OutOfBounds(x, y, self.width, self.height)
        return y * self.stride + x * BYTES_PER_PIXEL

    def read_pixel(self, x: int, y: int) -> Bgra:
        """
        Read the source pixel at (x, y).

        Raises:
            OutOfBounds: If the coordinate is outside the image
        """
        offset = self._offset(x, y)
        blue, green, red, alpha = self._data[offset:offset + BYTES_PER_PIXEL].tolist()
        return Bgra(blue, green, red, alpha)

    def write_pixel(self, x: int, y: int, color: Sequence[int]) -> None:
        """
        Write a BGRA colour into the working copy at (x, y).

        Raises:
            OutOfBounds: If the coordinate is outside the image
            ValueError: If color is not four 0-255 channel values
        """
        offset = self._offset(x, y)
        values = [int(c) for c in color]
        if len(values) != BYTES_PER_PIXEL or any(c < 0 or c > 255 for c in values):
            raise ValueError(f"Color must be four channel values in 0-255, got {color}")
        if self._working is None:
            self._working = self._data.copy()
        self._working[offset:offset + BYTES_PER_PIXEL] = values

    def as_array(self, annotated: bool = False) -> NDArray[np.uint8]:
        """
        View the buffer as an (H, W, 4) BGRA array, dropping row padding.

        Args:
            annotated: Use the working copy (if any writes happened) instead of the source
        """
        source = self._working if annotated and self._working is not None else self._data
        rows = source.reshape(self.height, self.stride)
        return rows[:, :self.width * BYTES_PER_PIXEL].reshape(self.height, self.width, BYTES_PER_PIXEL)

    def to_image(self, annotated: bool = True) -> NDArray[np.uint8]:
        """Contiguous BGRA copy suitable for encoding."""
        return np.ascontiguousarray(self.as_array(annotated=annotated)).copy()

    def __repr__(self) -> str:
        return f"PixelBuffer(width={self.width}, height={self.height}, stride={self.stride})"
