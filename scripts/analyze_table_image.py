#!/usr/bin/env python3
"""
Table Image Analysis Script

Finds the table cloth colour of a pool/snooker table photograph, segments the
objects lying on the cloth and prints their image and real-world positions.
Optionally writes an annotated copy of the image and a JSON summary.
"""

import argparse
import json
import logging
import os
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

# Add the package source to the Python path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from pool_table_analysis import AnalysisError, AnalyzerConfig, TableAnalyzer
from pool_table_analysis.image_io import save_image
from pool_table_analysis.table.table_constants import TableSize, parse_table_size

logger = logging.getLogger(__name__)


def build_summary(analyzer: TableAnalyzer, table_size: TableSize) -> Dict[str, Any]:
    """Collect the analysis result into JSON-serialisable form."""
    if analyzer.buffer is None or analyzer.cloth_color is None:
        raise RuntimeError("No analysis result to summarise")
    blue, green, red, alpha = analyzer.cloth_color
    return {
        'image': {'width': analyzer.buffer.width, 'height': analyzer.buffer.height},
        'table_size': table_size.value,
        'cloth_color_rgba': [red, green, blue, alpha],
        'config': analyzer.config.to_dict(),
        'objects': [
            {
                'location': [round(v, 2) for v in ball.location],
                'bounding_box': list(ball.bounding_box),
                'pixel_count': ball.pixel_count,
                'calculated_location_inches': [round(v, 2) for v in ball.calculated_location],
                'calculated_size_inches': [round(v, 2) for v in ball.calculated_size],
            }
            for ball in analyzer.balls
        ],
    }


def main(argv: Optional[List[str]] = None) -> int:
    """Main function with argument parsing."""
    parser = argparse.ArgumentParser(
        description="Find the table cloth colour and the objects on it in a table photograph"
    )

    parser.add_argument(
        "image",
        help="Path to input image file"
    )

    parser.add_argument(
        "--table-size",
        default=TableSize.NINE_FOOT.value,
        help=f"Table size, one of {[size.value for size in TableSize]}"
    )

    parser.add_argument(
        "--config",
        help="Path to a JSON analyzer configuration"
    )

    parser.add_argument(
        "--threshold",
        type=float,
        help="Delta-E94 threshold separating objects from the cloth (overrides --config)"
    )

    parser.add_argument(
        "--no-size-filter",
        action="store_true",
        help="Keep objects of any size (for images not cropped to the play field)"
    )

    parser.add_argument(
        "--output",
        help="Path to save the annotated image"
    )

    parser.add_argument(
        "--json",
        dest="json_path",
        help="Path to save a JSON summary"
    )

    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging"
    )

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    if not os.path.exists(args.image):
        print(f"Error: Image file not found: {args.image}")
        return 1

    try:
        table_size = parse_table_size(args.table_size)
        config = AnalyzerConfig.from_json_file(args.config) if args.config else AnalyzerConfig.create_default()
        if args.threshold is not None:
            config.delta_e_threshold = args.threshold
        if args.no_size_filter:
            config.min_ball_size_ratio = None
            config.max_ball_size_ratio = None
        analyzer = TableAnalyzer(config)
    except (ValueError, OSError) as e:
        print(f"Error: {e}")
        return 1

    try:
        analyzer.analyze(args.image, table_size)
    except AnalysisError as e:
        logger.error(f"Analysis failed at stage '{e.stage}': {e.error}")
        return 1

    summary = build_summary(analyzer, table_size)
    print(f"Cloth colour (RGBA): {tuple(summary['cloth_color_rgba'])}")
    print(f"Objects found: {len(summary['objects'])}")
    for i, obj in enumerate(summary['objects'], 1):
        print(f"  {i}. at {tuple(obj['location'])} px -> "
              f"{tuple(obj['calculated_location_inches'])} in, "
              f"size {tuple(obj['calculated_size_inches'])} in")

    if args.output:
        save_image(args.output, analyzer.annotate())

    if args.json_path:
        with open(args.json_path, 'w') as f:
            json.dump(summary, f, indent=2)
        logger.info(f"Summary saved to: {args.json_path}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
