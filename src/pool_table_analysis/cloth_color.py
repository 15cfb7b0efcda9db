"""
Table cloth colour sampling.

The cloth is assumed to dominate the centre of a table photograph, so the
most frequent exact colour in the centre quadrant of the image is taken as the
cloth colour. Sampling the centre avoids rails, pockets and shadows near the
image edges and keeps the scan cheap.
"""

import logging
from typing import Optional

import numpy as np

from .exceptions import DegenerateSampleRegion, OutOfBounds
from .pixel_buffer import PixelBuffer
from .types import Bgra, SampleRegion

logger = logging.getLogger(__name__)


def center_sample_region(width: int, height: int) -> SampleRegion:
    """
    Region one quadrant in size (half width, half height) centred in the image.
    """
    quadrant_width = width // 2
    quadrant_height = height // 2
    return SampleRegion(quadrant_width // 2, quadrant_height // 2, quadrant_width, quadrant_height)


def find_dominant_color(buffer: PixelBuffer, sample_region: Optional[SampleRegion] = None) -> Bgra:
    """
    Find the most frequent exact BGRA colour inside a sample region.

    Every pixel of the region is counted. When several colours share the
    highest count, the one encountered first in row-major order wins.

    Args:
        buffer: Pixel buffer to sample
        sample_region: Region to sample; defaults to the centre quadrant

    Returns:
        The modal colour

    Raises:
        DegenerateSampleRegion: If the region has zero area
        OutOfBounds: If the region extends beyond the buffer
    """
    region = sample_region if sample_region is not None else center_sample_region(buffer.width, buffer.height)

    if region.width <= 0 or region.height <= 0:
        raise DegenerateSampleRegion(f"Sample region {tuple(region)} has zero area")
    if region.x < 0 or region.y < 0:
        raise OutOfBounds(region.x, region.y, buffer.width, buffer.height)
    if region.right > buffer.width or region.bottom > buffer.height:
        raise OutOfBounds(region.right - 1, region.bottom - 1, buffer.width, buffer.height,
                          f"sample region {tuple(region)} extends beyond the image")

    pixels = buffer.as_array()[region.y:region.bottom, region.x:region.right]
    # Pack each BGRA pixel into one integer key, row-major
    keys = np.ascontiguousarray(pixels).reshape(-1, 4).astype(np.uint32)
    keys = keys[:, 0] | (keys[:, 1] << 8) | (keys[:, 2] << 16) | (keys[:, 3] << 24)

    unique_keys, first_index, counts = np.unique(keys, return_index=True, return_counts=True)
    candidates = np.flatnonzero(counts == counts.max())
    winner = candidates[np.argmin(first_index[candidates])]
    key = int(unique_keys[winner])

    color = Bgra(key & 0xFF, (key >> 8) & 0xFF, (key >> 16) & 0xFF, (key >> 24) & 0xFF)
    logger.debug(
        f"Dominant colour {color} in region {tuple(region)}: "
        f"{int(counts[winner])}/{keys.size} pixels, {unique_keys.size} distinct colours"
    )
    return color
