"""
Pool Table Analysis - Colorimetric Analysis of Cue Sports Table Images

This package finds the table cloth colour in a photograph of a pool or
snooker table and separates the balls from the cloth using the CIE94
perceptual colour difference.

Key Components:
- PixelBuffer: Bounds-checked access to decoded BGRA image bytes
- Colour space: sRGB <-> CIE-LAB conversion (scalar and vectorised)
- Delta-E94: Perceptual colour difference with graphic arts / textile weights
- Cloth colour: Modal colour of the centre quadrant of the image
- TableAnalyzer: Decode -> cloth colour -> segmentation -> real-world positions

Quick Start:
    >>> from pool_table_analysis import TableAnalyzer, TableSize
    >>>
    >>> analyzer = TableAnalyzer()
    >>> buffer, balls = analyzer.analyze("table.jpg", TableSize.NINE_FOOT)
    >>> for ball in balls:
    ...     print(ball.location, ball.calculated_location, ball.calculated_size)
"""

__version__ = "0.1.0"

from .ball_on_table import BallOnTable
from .cloth_color import center_sample_region, find_dominant_color
from .color_space import LabColor, bgra_to_lab_array, lab_to_rgb, rgb_to_lab
from .config import AnalyzerConfig
from .delta_e import (
    DELTA_E_CONSTANTS,
    ApplicationType,
    DeltaEConstants,
    delta_e94,
    delta_e94_array,
    get_constants,
)
from .exceptions import (
    AnalysisError,
    CorruptImage,
    DecodeError,
    DegenerateSampleRegion,
    ImageLoadError,
    InvalidColorComponent,
    OutOfBounds,
    TableAnalysisError,
    UnsupportedFormat,
)
from .pixel_buffer import PixelBuffer
from .table.table_constants import BALL_DIAMETER_INCHES, PLAY_FIELD_INCHES, TableSize
from .table_analyzer import AnalysisStage, TableAnalyzer, segment
from .types import Bgra, SampleRegion

__all__ = [
    'AnalysisError',
    'AnalysisStage',
    'AnalyzerConfig',
    'ApplicationType',
    'BALL_DIAMETER_INCHES',
    'BallOnTable',
    'Bgra',
    'CorruptImage',
    'DELTA_E_CONSTANTS',
    'DecodeError',
    'DegenerateSampleRegion',
    'DeltaEConstants',
    'ImageLoadError',
    'InvalidColorComponent',
    'LabColor',
    'OutOfBounds',
    'PLAY_FIELD_INCHES',
    'PixelBuffer',
    'SampleRegion',
    'TableAnalysisError',
    'TableAnalyzer',
    'TableSize',
    'UnsupportedFormat',
    'bgra_to_lab_array',
    'center_sample_region',
    'delta_e94',
    'delta_e94_array',
    'find_dominant_color',
    'get_constants',
    'lab_to_rgb',
    'rgb_to_lab',
    'segment',
]
