"""Physical table dimensions."""

from .table_constants import (
    BALL_DIAMETER_INCHES,
    PLAY_FIELD_INCHES,
    TableSize,
    inches_per_pixel,
    parse_table_size,
    play_field_for_image,
)

__all__ = [
    'BALL_DIAMETER_INCHES',
    'PLAY_FIELD_INCHES',
    'TableSize',
    'inches_per_pixel',
    'parse_table_size',
    'play_field_for_image',
]
