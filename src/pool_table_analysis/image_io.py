"""
Image decoding and encoding through OpenCV.

The analysis engine itself never touches image containers; these helpers turn
files or byte streams into decoded bitmaps and back.
"""

import logging
import os
from typing import Union

import cv2
import numpy as np
from numpy.typing import NDArray

from .exceptions import CorruptImage, UnsupportedFormat
from .pixel_buffer import PixelBuffer

logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS = ('.bmp', '.jpeg', '.jpg', '.png', '.tif', '.tiff', '.webp')
ALPHALESS_EXTENSIONS = ('.jpeg', '.jpg')


def _check_extension(path: str) -> str:
    ext = os.path.splitext(path)[1].lower()
    if ext not in SUPPORTED_EXTENSIONS:
        raise UnsupportedFormat(f"Unsupported image format '{ext}'. Use one of: {SUPPORTED_EXTENSIONS}")
    return ext


def load_image(image_path: str) -> NDArray[np.uint8]:
    """
    Load an image file, keeping its alpha channel if present.

    Raises:
        FileNotFoundError: If the file does not exist
        UnsupportedFormat: If the extension is not a supported raster format
        CorruptImage: If OpenCV cannot decode the file
    """
    if not os.path.exists(image_path):
        raise FileNotFoundError(f"Input image not found: {image_path}")
    _check_extension(image_path)

    image = cv2.imread(image_path, cv2.IMREAD_UNCHANGED)
    if image is None:
        raise CorruptImage(f"Could not load image: {image_path}")

    logger.info(f"Loaded image {image_path}: {image.shape[1]}x{image.shape[0]}")
    return image


def decode_image_bytes(data: bytes) -> NDArray[np.uint8]:
    """
    Decode an in-memory image file.

    Raises:
        UnsupportedFormat: If the bytes are empty or not a format OpenCV reads
    """
    if not data:
        raise UnsupportedFormat("Image byte stream is empty")
    image = cv2.imdecode(np.frombuffer(data, dtype=np.uint8), cv2.IMREAD_UNCHANGED)
    if image is None:
        raise UnsupportedFormat("Byte stream is not a decodable image")
    return image


def encode_image(image: Union[PixelBuffer, NDArray[np.uint8]], ext: str = '.png') -> bytes:
    """
    Encode an image (or annotated pixel buffer) into a file format.

    Raises:
        UnsupportedFormat: If the extension is not supported
        CorruptImage: If OpenCV fails to encode the image
    """
    if ext.lower() not in SUPPORTED_EXTENSIONS:
        raise UnsupportedFormat(f"Unsupported image format '{ext}'. Use one of: {SUPPORTED_EXTENSIONS}")
    array = image.to_image() if isinstance(image, PixelBuffer) else image
    if ext.lower() in ALPHALESS_EXTENSIONS and array.ndim == 3 and array.shape[2] == 4:
        array = cv2.cvtColor(array, cv2.COLOR_BGRA2BGR)

    success, encoded = cv2.imencode(ext, array)
    if not success:
        raise CorruptImage(f"Could not encode image as {ext}")
    return encoded.tobytes()


def save_image(output_path: str, image: Union[PixelBuffer, NDArray[np.uint8]]) -> None:
    """Encode and write an image, creating the parent directory if needed."""
    ext = _check_extension(output_path)
    directory = os.path.dirname(output_path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    with open(output_path, 'wb') as f:
        f.write(encode_image(image, ext))
    logger.info(f"Image saved to: {output_path}")
