"""
Table size constants and dimensions.

This module defines the standard play-field dimensions (cloth surface inside
the cushions) used to scale image-space measurements into inches.
"""

from enum import Enum
from types import MappingProxyType
from typing import Mapping, Tuple

MM_PER_INCH = 25.4


class TableSize(Enum):
    """Nominal table sizes."""

    SEVEN_FOOT = "7ft"
    EIGHT_FOOT = "8ft"
    NINE_FOOT = "9ft"
    SNOOKER = "12ft"


# Play field (long side, short side) in inches
PLAY_FIELD_INCHES: Mapping[TableSize, Tuple[float, float]] = MappingProxyType({
    TableSize.SEVEN_FOOT: (78.0, 39.0),
    TableSize.EIGHT_FOOT: (88.0, 44.0),
    TableSize.NINE_FOOT: (100.0, 50.0),
    TableSize.SNOOKER: (3569 / MM_PER_INCH, 1778 / MM_PER_INCH),  # 3569 x 1778 mm
})


# Ball diameter in inches (pool 2 1/4 in, snooker 52.5 mm)
BALL_DIAMETER_INCHES: Mapping[TableSize, float] = MappingProxyType({
    TableSize.SEVEN_FOOT: 2.25,
    TableSize.EIGHT_FOOT: 2.25,
    TableSize.NINE_FOOT: 2.25,
    TableSize.SNOOKER: 52.5 / MM_PER_INCH,
})


def play_field_for_image(table_size: TableSize, image_width: int, image_height: int) -> Tuple[float, float]:
    """
    Play-field (width, height) in inches oriented to match the image.

    The long side of the table is matched to the long side of the image.
    """
    long_side, short_side = PLAY_FIELD_INCHES[table_size]
    if image_height > image_width:
        return short_side, long_side
    return long_side, short_side


def inches_per_pixel(table_size: TableSize, image_width: int, image_height: int) -> Tuple[float, float]:
    """Horizontal and vertical scale of an image cropped to the play field."""
    field_width, field_height = play_field_for_image(table_size, image_width, image_height)
    return field_width / image_width, field_height / image_height


def parse_table_size(value: str) -> TableSize:
    """
    Parse a table size from its value ('9ft') or name ('NINE_FOOT').

    Raises:
        ValueError: If the value names no known table size
    """
    for size in TableSize:
        if value.lower() == size.value or value.upper() == size.name:
            return size
    valid = [size.value for size in TableSize]
    raise ValueError(f"Unknown table size: {value}. Use one of: {valid}")
