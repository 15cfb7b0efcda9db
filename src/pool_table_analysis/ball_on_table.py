"""
Detected objects on the table cloth.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping, Tuple

from .table.table_constants import TableSize, inches_per_pixel
from .types import BoundingBox, Position, Rectangle, Size


@dataclass(frozen=True)
class BallOnTable:
    """
    An object found on the table during one analysis pass.

    Attributes:
        indexed_data: Byte offset in the source buffer -> byte value, for every
                      channel of every pixel belonging to the object
        location: Image-space centroid (x, y) in pixels
        bounding_box: Image-space extent (x, y, width, height) in pixels
        table_size: Table the image was taken of
        image_size: (width, height) of the analysed image in pixels
        calculated_rect: Real-world (x, y, width, height) in inches, measured
                         from the top-left corner of the play field
    """

    indexed_data: Mapping[int, int]
    location: Position
    bounding_box: BoundingBox
    table_size: TableSize
    image_size: Tuple[int, int]
    calculated_rect: Rectangle = field(init=False)

    def __post_init__(self) -> None:
        image_width, image_height = self.image_size
        if image_width <= 0 or image_height <= 0:
            raise ValueError(f"Image size must be positive, got {self.image_size}")
        _, _, box_width, box_height = self.bounding_box
        if box_width <= 0 or box_height <= 0:
            raise ValueError(f"Bounding box must have positive size, got {self.bounding_box}")
        if not isinstance(self.table_size, TableSize):
            raise ValueError(f"table_size must be a TableSize, got {self.table_size!r}")

        object.__setattr__(self, 'indexed_data', MappingProxyType(dict(self.indexed_data)))
        object.__setattr__(self, 'calculated_rect',
                           calculate_actual_location(self.bounding_box, self.table_size, self.image_size))

    @property
    def data(self) -> bytes:
        """Raw bytes of the object in buffer order."""
        return bytes(self.indexed_data[offset] for offset in sorted(self.indexed_data))

    @property
    def pixel_count(self) -> int:
        return len(self.indexed_data) // 4

    @property
    def calculated_location(self) -> Position:
        return (self.calculated_rect[0], self.calculated_rect[1])

    @property
    def calculated_size(self) -> Size:
        return (self.calculated_rect[2], self.calculated_rect[3])


def calculate_actual_location(bounding_box: BoundingBox,
                              table_size: TableSize,
                              image_size: Tuple[int, int]) -> Rectangle:
    """
    Scale an image-space rectangle to inches on the play field.

    Each axis uses inches = pixels * (play_field_inches / image_pixels), which
    assumes the image is cropped to the play field.
    """
    scale_x, scale_y = inches_per_pixel(table_size, *image_size)

    x, y, width, height = bounding_box
    return (x * scale_x, y * scale_y, width * scale_x, height * scale_y)
