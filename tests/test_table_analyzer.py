#!/usr/bin/env python3
"""
Integration tests for TableAnalyzer.

These tests build synthetic table images (solid cloth with coloured blobs)
and run the complete pipeline on them. The small images have a very coarse
inch-per-pixel scale, so most tests disable the ball size filter.
"""

import os
import sys
import time
sys.path.insert(0, os.path.join(os.path.dirname(os.path.abspath(__file__)), '..', 'src'))

from unittest.mock import patch

import cv2
import numpy as np
import pytest

from pool_table_analysis.cloth_color import find_dominant_color
from pool_table_analysis.color_space import rgb_to_lab
from pool_table_analysis.config import AnalyzerConfig
from pool_table_analysis.delta_e import delta_e94
from pool_table_analysis.exceptions import (
    AnalysisError,
    DecodeError,
    DegenerateSampleRegion,
    OutOfBounds,
)
from pool_table_analysis.pixel_buffer import PixelBuffer
from pool_table_analysis.table.table_constants import BALL_DIAMETER_INCHES, TableSize
from pool_table_analysis.table_analyzer import AnalysisStage, TableAnalyzer, ball_size_window, segment
from pool_table_analysis.types import Bgra, SampleRegion

CLOTH = (40, 140, 20, 255)     # Green baize in BGRA
RED_BALL = (0, 0, 200, 255)
WHITE_BALL = (255, 255, 255, 255)
RAIL = (30, 60, 120, 255)      # Brown wood in BGRA


def create_test_table(width=40, height=20):
    """Create a cloth image with a red and a white ball."""
    image = np.full((height, width, 4), CLOTH, dtype=np.uint8)
    image[8:13, 6:11] = RED_BALL
    image[4:7, 28:31] = WHITE_BALL
    return image


def create_railed_table(width=400, height=200, rail=10):
    """Cloth framed by a wooden rail, with one 10 x 10 white ball."""
    image = np.full((height, width, 4), RAIL, dtype=np.uint8)
    image[rail:height - rail, rail:width - rail] = CLOTH
    image[40:50, 60:70] = WHITE_BALL
    return image


def any_size(**overrides):
    return AnalyzerConfig.create_without_size_filter(**overrides)


def lab_of(color):
    blue, green, red, alpha = color
    return rgb_to_lab(red, green, blue, alpha)


class TestEndToEnd:

    def test_four_by_four_corner_pixel(self):
        """Solid 4x4 buffer, stride 16, with one contrasting corner pixel."""
        image = np.full((4, 4, 4), CLOTH, dtype=np.uint8)
        image[3, 3] = RED_BALL
        buffer = PixelBuffer.decode(image)
        assert buffer.stride == 16

        majority = find_dominant_color(buffer, SampleRegion(0, 0, 4, 4))
        assert majority == Bgra(*CLOTH)

        minority = buffer.read_pixel(3, 3)
        assert delta_e94(lab_of(majority), lab_of(minority)) > 10

        analyzer = TableAnalyzer(any_size())
        result_buffer, balls = analyzer.analyze(image, TableSize.NINE_FOOT)

        assert result_buffer is analyzer.buffer
        assert analyzer.stage is AnalysisStage.DONE
        assert analyzer.cloth_color == Bgra(*CLOTH)
        assert len(balls) == 1
        ball = balls[0]
        assert ball.location == pytest.approx((3.0, 3.0))
        assert ball.bounding_box == (3, 3, 1, 1)
        assert ball.pixel_count == 1
        assert dict(ball.indexed_data) == {60: 0, 61: 0, 62: 200, 63: 255}
        # 100 x 50 inch play field over a 4 x 4 image
        assert ball.calculated_rect == pytest.approx((75.0, 37.5, 25.0, 12.5))

    def test_two_balls(self):
        analyzer = TableAnalyzer(any_size())

        _, balls = analyzer.analyze(create_test_table(), TableSize.EIGHT_FOOT)

        assert len(balls) == 2
        # Label order follows the first pixel in row-major order
        white, red = balls
        assert white.bounding_box == (28, 4, 3, 3)
        assert white.location == pytest.approx((29.0, 5.0))
        assert red.bounding_box == (6, 8, 5, 5)
        assert red.location == pytest.approx((8.0, 10.0))
        assert white.calculated_size == pytest.approx((3 * 88 / 40, 3 * 44 / 20))

    def test_analyze_from_file(self, tmp_path):
        path = str(tmp_path / "table.png")
        cv2.imwrite(path, create_test_table())

        _, balls = TableAnalyzer(any_size()).analyze(path, TableSize.SNOOKER)

        assert len(balls) == 2


class TestSegmentation:

    def test_similar_shade_is_cloth(self):
        image = np.full((10, 10, 4), CLOTH, dtype=np.uint8)
        image[5, 5] = (41, 141, 21, 255)
        buffer = PixelBuffer.decode(image)

        assert segment(buffer, CLOTH, TableSize.NINE_FOOT) == []

    def test_threshold_from_config(self):
        image = np.full((10, 10, 4), CLOTH, dtype=np.uint8)
        image[5, 5] = (40, 160, 20, 255)
        buffer = PixelBuffer.decode(image)
        distance = delta_e94(lab_of(CLOTH), lab_of(image[5, 5].tolist()))

        below = any_size(delta_e_threshold=distance + 0.5)
        at = any_size(delta_e_threshold=distance - 1e-6)

        assert segment(buffer, CLOTH, TableSize.NINE_FOOT, below) == []
        assert len(segment(buffer, CLOTH, TableSize.NINE_FOOT, at)) == 1

    def test_min_object_area(self):
        image = create_test_table()
        image[15, 35] = WHITE_BALL  # single pixel speck
        buffer = PixelBuffer.decode(image)

        assert len(segment(buffer, CLOTH, TableSize.NINE_FOOT, any_size())) == 3
        balls = segment(buffer, CLOTH, TableSize.NINE_FOOT, any_size(min_object_area=4))
        assert len(balls) == 2

    def test_morphology_removes_specks(self):
        image = create_test_table()
        image[15, 35] = WHITE_BALL
        buffer = PixelBuffer.decode(image)

        balls = segment(buffer, CLOTH, TableSize.NINE_FOOT, any_size(morphology_kernel_size=3))

        assert len(balls) == 2

    def test_max_object_area_fraction(self):
        buffer = PixelBuffer.decode(create_test_table())

        balls = segment(buffer, CLOTH, TableSize.NINE_FOOT, any_size(max_object_area_fraction=0.02))

        # 800 pixel image: the 9 pixel white ball stays, the 25 pixel red one goes
        assert [ball.bounding_box for ball in balls] == [(28, 4, 3, 3)]

    def test_connectivity(self):
        image = np.full((6, 6, 4), CLOTH, dtype=np.uint8)
        image[2, 2] = WHITE_BALL
        image[3, 3] = WHITE_BALL
        buffer = PixelBuffer.decode(image)

        assert len(segment(buffer, CLOTH, TableSize.NINE_FOOT, any_size(connectivity=8))) == 1
        assert len(segment(buffer, CLOTH, TableSize.NINE_FOOT, any_size(connectivity=4))) == 2


class TestBallSizeFilter:

    def test_rail_is_not_a_ball(self):
        image = create_railed_table()
        image[100, 300] = WHITE_BALL  # single pixel speck, a quarter inch across

        _, balls = TableAnalyzer().analyze(image, TableSize.NINE_FOOT)

        # 100 x 50 inch play field over 400 x 200 pixels: 0.25 inch per pixel
        assert len(balls) == 1
        ball = balls[0]
        assert ball.bounding_box == (60, 40, 10, 10)
        assert ball.location == pytest.approx((64.5, 44.5))
        assert ball.calculated_size == pytest.approx((2.5, 2.5))

    def test_window_bounds_are_configurable(self):
        buffer = PixelBuffer.decode(create_railed_table())

        no_upper = segment(buffer, CLOTH, TableSize.NINE_FOOT, AnalyzerConfig(max_ball_size_ratio=None))
        assert [ball.bounding_box for ball in no_upper] == [(0, 0, 400, 200), (60, 40, 10, 10)]

        # 2.5 inch ball is above 1.05 x 2.25 inches
        assert segment(buffer, CLOTH, TableSize.NINE_FOOT, AnalyzerConfig(max_ball_size_ratio=1.05)) == []

    def test_window_follows_table_size(self):
        diameter = BALL_DIAMETER_INCHES[TableSize.SNOOKER]
        assert diameter == pytest.approx(52.5 / 25.4)

        lower, upper = ball_size_window(TableSize.SNOOKER, AnalyzerConfig())
        assert lower == pytest.approx(0.5 * diameter)
        assert upper == pytest.approx(2.0 * diameter)

        assert ball_size_window(TableSize.NINE_FOOT, any_size()) == (None, None)


class TestLargeImages:

    def test_many_components_on_a_large_image(self):
        image = np.full((1000, 1000, 4), CLOTH, dtype=np.uint8)
        grid = np.arange(5, 1000, 18)
        rows, cols = np.meshgrid(grid, grid, indexing='ij')
        rows = rows.reshape(-1)[:3000]
        cols = cols.reshape(-1)[:3000]
        image[rows, cols] = WHITE_BALL
        buffer = PixelBuffer.decode(image)

        start = time.perf_counter()
        balls = segment(buffer, CLOTH, TableSize.NINE_FOOT, any_size())
        elapsed = time.perf_counter() - start

        assert elapsed < 5.0
        assert len(balls) == 3000
        assert balls[0].bounding_box == (5, 5, 1, 1)
        last = balls[-1]
        assert last.bounding_box == (int(cols[-1]), int(rows[-1]), 1, 1)
        offset = int(rows[-1]) * buffer.stride + int(cols[-1]) * 4
        assert dict(last.indexed_data) == {offset: 255, offset + 1: 255, offset + 2: 255, offset + 3: 255}

    def test_default_filter_drops_specks_on_a_large_image(self):
        image = np.full((1000, 1000, 4), CLOTH, dtype=np.uint8)
        image[5::18, 5::18] = WHITE_BALL
        image[480:503, 480:500] = RED_BALL  # 2 x 1.15 inches at 0.1 x 0.05 inch per pixel

        start = time.perf_counter()
        _, balls = TableAnalyzer().analyze(image, TableSize.NINE_FOOT)

        assert time.perf_counter() - start < 5.0
        assert [ball.bounding_box for ball in balls] == [(480, 480, 20, 23)]


class TestFailures:

    def test_decode_failure(self):
        analyzer = TableAnalyzer()

        with pytest.raises(AnalysisError) as exc_info:
            analyzer.analyze(np.zeros((0, 0, 3), dtype=np.uint8), TableSize.NINE_FOOT)

        assert exc_info.value.stage == AnalysisStage.DECODED.value
        assert isinstance(exc_info.value.error, DecodeError)
        assert analyzer.stage is AnalysisStage.UNLOADED
        assert analyzer.balls == []

    def test_missing_file(self, tmp_path):
        with pytest.raises(AnalysisError) as exc_info:
            TableAnalyzer().analyze(str(tmp_path / "missing.png"), TableSize.NINE_FOOT)

        assert exc_info.value.stage == AnalysisStage.DECODED.value
        assert isinstance(exc_info.value.__cause__, FileNotFoundError)

    def test_degenerate_sample_region(self):
        analyzer = TableAnalyzer()

        with pytest.raises(AnalysisError) as exc_info:
            analyzer.analyze(create_test_table(), TableSize.NINE_FOOT, SampleRegion(0, 0, 5, 0))

        assert exc_info.value.stage == AnalysisStage.CLOTH_COLOR_KNOWN.value
        assert isinstance(exc_info.value.error, DegenerateSampleRegion)
        assert analyzer.stage is AnalysisStage.DECODED
        assert analyzer.cloth_color is None

    def test_segmentation_failure_keeps_cloth_color(self):
        analyzer = TableAnalyzer()

        with patch('pool_table_analysis.table_analyzer.segment',
                   side_effect=OutOfBounds(99, 99, 40, 20)):
            with pytest.raises(AnalysisError) as exc_info:
                analyzer.analyze(create_test_table(), TableSize.NINE_FOOT)

        assert exc_info.value.stage == AnalysisStage.SEGMENTED.value
        assert analyzer.stage is AnalysisStage.CLOTH_COLOR_KNOWN
        assert analyzer.cloth_color == Bgra(*CLOTH)
        assert analyzer.balls == []

    def test_invalid_config(self):
        with pytest.raises(ValueError):
            TableAnalyzer(AnalyzerConfig(delta_e_threshold=-1))


class TestCoordinateQueries:

    def test_color_at(self):
        analyzer = TableAnalyzer()
        analyzer.load(create_test_table())

        assert analyzer.color_at(0, 0) == (20, 140, 40, 255)
        assert analyzer.color_at(29, 5) == (255, 255, 255, 255)
        with pytest.raises(OutOfBounds):
            analyzer.color_at(40, 0)
        with pytest.raises(OutOfBounds):
            analyzer.color_at(0, -1)

    def test_color_at_without_image(self):
        with pytest.raises(RuntimeError):
            TableAnalyzer().color_at(0, 0)

    def test_delta_e_between(self):
        analyzer = TableAnalyzer()
        analyzer.load(create_test_table())

        assert analyzer.delta_e_between((0, 0), (1, 0)) == 0
        assert analyzer.delta_e_between((0, 0), (8, 10)) > 10

    def test_annotate(self):
        analyzer = TableAnalyzer(any_size())
        analyzer.analyze(create_test_table(), TableSize.NINE_FOOT)

        annotated = analyzer.annotate()

        assert annotated.shape == (20, 40, 4)
        # Outline of the white ball box (28, 4, 3, 3)
        assert tuple(annotated[4, 28]) == (0, 0, 255, 255)
        assert tuple(annotated[6, 30]) == (0, 0, 255, 255)
        # Inside and outside the outline stay untouched
        assert tuple(annotated[5, 29]) == WHITE_BALL
        assert tuple(annotated[0, 0]) == CLOTH
        # Source buffer is unchanged
        assert analyzer.buffer.read_pixel(28, 4) == Bgra(*WHITE_BALL)
