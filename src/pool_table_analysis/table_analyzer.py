"""
TableAnalyzer Module

Finds objects (balls) on a table cloth using a linear pipeline:

1) Decode the image into a PixelBuffer
2) Determine the cloth colour from the centre of the image
3) Convert every pixel to CIE-LAB and score it against the cloth colour with
   Delta-E94; pixels at or above the threshold are foreground
4) Group connected foreground pixels into objects, keep those whose size in
   inches is plausible for a ball on the given table, and scale each kept
   bounding box to inches

Any failure aborts the pipeline and raises AnalysisError naming the stage.
"""

import logging
from enum import Enum
from typing import List, Optional, Sequence, Tuple, Union

import cv2
import numpy as np

from .ball_on_table import BallOnTable
from .cloth_color import find_dominant_color
from .color_space import LabColor, bgra_to_lab_array, rgb_to_lab
from .config import AnalyzerConfig
from .delta_e import delta_e94, delta_e94_array
from .exceptions import AnalysisError
from .image_io import load_image
from .pixel_buffer import PixelBuffer
from .table.table_constants import BALL_DIAMETER_INCHES, TableSize, inches_per_pixel
from .types import BYTES_PER_PIXEL, Bgra, Image, Rgba, SampleRegion

logger = logging.getLogger(__name__)

ANNOTATION_COLOR = Bgra(0, 0, 255, 255)  # Red in BGRA


class AnalysisStage(Enum):
    UNLOADED = "unloaded"
    DECODED = "decoded"
    CLOTH_COLOR_KNOWN = "cloth_color_known"
    SEGMENTED = "segmented"
    DONE = "done"


class TableAnalyzer:
    """
    Cloth-colour based object finder for table photographs.

    One analyzer owns at most one pixel buffer at a time; calling analyze
    again starts a new session.
    """

    def __init__(self, config: Optional[AnalyzerConfig] = None) -> None:
        """
        Initialize the analyzer.

        Args:
            config: Segmentation parameters; defaults to AnalyzerConfig.create_default()

        Raises:
            ValueError: If the configuration is invalid
        """
        self.config = config if config is not None else AnalyzerConfig.create_default()
        self.config.validate()
        self._reset()

    def _reset(self) -> None:
        self.stage = AnalysisStage.UNLOADED
        self.buffer: Optional[PixelBuffer] = None
        self.cloth_color: Optional[Bgra] = None
        self.balls: List[BallOnTable] = []

    # --- Public API ---
    def analyze(self,
                image: Union[str, Image],
                table_size: TableSize,
                sample_region: Optional[SampleRegion] = None) -> Tuple[PixelBuffer, List[BallOnTable]]:
        """
        Run the full pipeline on one image.

        Args:
            image: Either a file path to an image or a decoded numpy array
            table_size: Table the photograph shows
            sample_region: Cloth colour sample region; defaults to the centre quadrant

        Returns:
            The decoded pixel buffer and the objects found on the cloth

        Raises:
            AnalysisError: If any stage fails; `stage` names the stage being entered
        """
        self._reset()

        try:
            buffer = self.load(image)
        except Exception as e:
            raise AnalysisError(AnalysisStage.DECODED.value, e) from e

        try:
            cloth_color = self.determine_cloth_color(sample_region)
        except Exception as e:
            raise AnalysisError(AnalysisStage.CLOTH_COLOR_KNOWN.value, e) from e

        try:
            self.find_objects_on_table(cloth_color, table_size)
        except Exception as e:
            raise AnalysisError(AnalysisStage.SEGMENTED.value, e) from e

        self.stage = AnalysisStage.DONE
        logger.info(f"Analysis complete: {len(self.balls)} objects on cloth colour {cloth_color}")
        return buffer, list(self.balls)

    def load(self, image: Union[str, Image]) -> PixelBuffer:
        """Decode an image (path or array) into this analyzer's pixel buffer."""
        self._reset()
        bitmap = load_image(image) if isinstance(image, str) else image
        self.buffer = PixelBuffer.decode(bitmap)
        self.stage = AnalysisStage.DECODED
        logger.info(f"Image decoded: {self.buffer}")
        return self.buffer

    def determine_cloth_color(self, sample_region: Optional[SampleRegion] = None) -> Bgra:
        """Sample the loaded image for the table cloth colour."""
        buffer = self._require_buffer()
        self.cloth_color = find_dominant_color(buffer, sample_region)
        self.stage = AnalysisStage.CLOTH_COLOR_KNOWN
        logger.info(f"Table cloth colour: {self.cloth_color}")
        return self.cloth_color

    def find_objects_on_table(self, cloth_color: Sequence[int], table_size: TableSize) -> List[BallOnTable]:
        """
        Segment the loaded image against a cloth colour.

        The previous result is kept if segmentation fails.
        """
        buffer = self._require_buffer()
        balls = segment(buffer, cloth_color, table_size, self.config)
        self.balls = balls
        self.stage = AnalysisStage.SEGMENTED
        return list(balls)

    def color_at(self, x: int, y: int) -> Rgba:
        """
        Colour of the loaded image at (x, y) as (red, green, blue, alpha).

        Raises:
            RuntimeError: If no image is loaded
            OutOfBounds: If the coordinate is outside the image
        """
        return self._require_buffer().read_pixel(x, y).to_rgba()

    def delta_e_between(self, reference: Tuple[int, int], point: Tuple[int, int]) -> float:
        """Delta-E94 between the pixels at two coordinates, the first being the reference."""
        buffer = self._require_buffer()
        lab1 = _to_lab(buffer.read_pixel(*reference))
        lab2 = _to_lab(buffer.read_pixel(*point))
        delta = delta_e94(lab1, lab2, self.config.application_type)
        if delta >= self.config.delta_e_threshold:
            logger.debug(f"Edge between {reference} and {point}: delta {delta:.2f}")
        return delta

    def annotate(self, color: Sequence[int] = ANNOTATION_COLOR) -> Image:
        """
        Draw the bounding box of every found object into the working buffer.

        Returns:
            Annotated BGRA image
        """
        buffer = self._require_buffer()
        for ball in self.balls:
            draw_rectangle(buffer, ball.bounding_box, color)
        return buffer.to_image(annotated=True)

    def _require_buffer(self) -> PixelBuffer:
        if self.buffer is None:
            raise RuntimeError("Cannot read colours without an image")
        return self.buffer


def _to_lab(pixel: Bgra) -> LabColor:
    return rgb_to_lab(pixel.red, pixel.green, pixel.blue, pixel.alpha)


def foreground_mask(buffer: PixelBuffer,
                    cloth_color: Sequence[int],
                    config: AnalyzerConfig) -> np.ndarray:
    """
    Binary mask (255 = foreground) of pixels that differ from the cloth colour.

    Args:
        buffer: Pixel buffer to score
        cloth_color: Cloth colour in BGRA order
        config: Threshold and Delta-E profile
    """
    blue, green, red, alpha = cloth_color
    reference = rgb_to_lab(red, green, blue, alpha)

    lab = bgra_to_lab_array(buffer.as_array())
    distances = delta_e94_array(reference, lab, config.application_type)
    mask = np.where(distances >= config.delta_e_threshold, 255, 0).astype(np.uint8)

    if config.morphology_kernel_size > 0:
        kernel = np.ones((config.morphology_kernel_size, config.morphology_kernel_size), np.uint8)
        mask = cv2.morphologyEx(mask, cv2.MORPH_OPEN, kernel, iterations=1)

    return mask


def ball_size_window(table_size: TableSize, config: AnalyzerConfig) -> Tuple[Optional[float], Optional[float]]:
    """Allowed (min, max) bounding box side in inches, None where unbounded."""
    diameter = BALL_DIAMETER_INCHES[table_size]
    lower = config.min_ball_size_ratio * diameter if config.min_ball_size_ratio is not None else None
    upper = config.max_ball_size_ratio * diameter if config.max_ball_size_ratio is not None else None
    return lower, upper


def _select_components(stats: np.ndarray,
                       buffer: PixelBuffer,
                       table_size: TableSize,
                       config: AnalyzerConfig) -> np.ndarray:
    """Labels (background excluded) whose stats pass the area and size filters."""
    w = stats[1:, cv2.CC_STAT_WIDTH]
    h = stats[1:, cv2.CC_STAT_HEIGHT]
    area = stats[1:, cv2.CC_STAT_AREA]
    keep = area >= config.min_object_area

    if config.max_object_area_fraction is not None:
        keep &= area <= config.max_object_area_fraction * buffer.width * buffer.height

    lower, upper = ball_size_window(table_size, config)
    if lower is not None or upper is not None:
        scale_x, scale_y = inches_per_pixel(table_size, buffer.width, buffer.height)
        width_in = w * scale_x
        height_in = h * scale_y
        if lower is not None:
            keep &= (width_in >= lower) & (height_in >= lower)
        if upper is not None:
            keep &= (width_in <= upper) & (height_in <= upper)

    return np.flatnonzero(keep) + 1


def segment(buffer: PixelBuffer,
            cloth_color: Sequence[int],
            table_size: TableSize,
            config: Optional[AnalyzerConfig] = None) -> List[BallOnTable]:
    """
    Group pixels that differ from the cloth colour into objects.

    Components are filtered on their stats before any pixel is gathered:
    area limits first, then the physical size window around the ball
    diameter for the table. Objects are returned in label order, which
    follows the row-major position of each object's first pixel.
    """
    config = config if config is not None else AnalyzerConfig.create_default()
    mask = foreground_mask(buffer, cloth_color, config)

    num_labels, labels, stats, centroids = cv2.connectedComponentsWithStats(
        mask, connectivity=config.connectivity
    )
    selected = _select_components(stats, buffer, table_size, config)
    logger.debug(f"Kept {len(selected)} of {num_labels - 1} components after size filtering")

    # Group flat pixel indices by label in one pass; a stable sort keeps row-major order
    flat_labels = labels.reshape(-1)
    order = np.argsort(flat_labels, kind='stable')
    starts = np.concatenate(([0], np.cumsum(np.bincount(flat_labels, minlength=num_labels))))

    data = buffer.data
    channels = np.arange(BYTES_PER_PIXEL)
    balls: List[BallOnTable] = []
    for label in selected.tolist():
        x, y, w, h, _ = (int(v) for v in stats[label])
        indices = order[starts[label]:starts[label + 1]]
        ys, xs = np.divmod(indices, buffer.width)
        pixel_offsets = ys * buffer.stride + xs * BYTES_PER_PIXEL
        offsets = (pixel_offsets[:, None] + channels).reshape(-1)
        indexed_data = dict(zip(offsets.tolist(), data[offsets].tolist()))

        cx, cy = centroids[label]
        balls.append(BallOnTable(
            indexed_data=indexed_data,
            location=(float(cx), float(cy)),
            bounding_box=(x, y, w, h),
            table_size=table_size,
            image_size=(buffer.width, buffer.height),
        ))

    logger.info(
        f"Segmented {len(balls)} objects ({num_labels - 1} components) "
        f"at Delta-E94 >= {config.delta_e_threshold}"
    )
    return balls


def draw_rectangle(buffer: PixelBuffer, box: Tuple[int, int, int, int], color: Sequence[int]) -> None:
    """Draw a one pixel rectangle outline into the buffer's working copy."""
    x, y, w, h = box
    right = min(x + w - 1, buffer.width - 1)
    bottom = min(y + h - 1, buffer.height - 1)
    for px in range(x, right + 1):
        buffer.write_pixel(px, y, color)
        buffer.write_pixel(px, bottom, color)
    for py in range(y, bottom + 1):
        buffer.write_pixel(x, py, color)
        buffer.write_pixel(right, py, color)
