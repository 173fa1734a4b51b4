#!/usr/bin/env python3
"""
PhotoBurn - Main Entry Point

Command-line front end for the processing pipeline.
Run with: python -m photoburn.main INPUT OUTPUT [options]
"""

import argparse
import logging
import sys
from typing import List, Optional

from .core.errors import PhotoBurnError
from .core.params import DitheringMethod, ImageType
from .core.settings import PipelineSettings, configure_logging
from .image.face_detection import default_face_detector
from .io.image_importer import load_image, save_image
from .io.report_io import load_overrides, save_report
from .materials.presets import VARIANTS, LaserType, list_materials
from .pipeline import ProcessingOverrides, process_image

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="photoburn",
        description="Prepare photos and line art for laser engraving",
    )
    parser.add_argument("input", nargs="?", help="Source image file")
    parser.add_argument("output", nargs="?", help="Processed image file")
    parser.add_argument("--material", default="walnut", help="Material preset id (default: walnut)")
    parser.add_argument("--variant", default="neutral", choices=VARIANTS)
    parser.add_argument("--laser", default=LaserType.CO2.value,
                        choices=[laser.value for laser in LaserType])
    parser.add_argument("--anchor-gray", type=int, help="Fixed contrast pivot (0-255)")
    parser.add_argument("--image-type", choices=[t.value for t in ImageType],
                        help="Skip classification and use this image type")
    parser.add_argument("--dither", choices=["none"] + [m.value for m in DitheringMethod],
                        help="Force a dithering method, or 'none' to disable dithering")
    parser.add_argument("--dither-threshold", type=int, help="Error diffusion threshold (0-255)")
    parser.add_argument("--invert", action="store_true", help="Invert the output")
    parser.add_argument("--faces", action="store_true",
                        help="Use OpenCV face detection to recognize portraits")
    parser.add_argument("--overrides", metavar="FILE.json", help="JSON file of parameter overrides")
    parser.add_argument("--report", metavar="FILE.json", help="Write a processing report")
    parser.add_argument("--list-materials", action="store_true", help="List material presets and exit")
    parser.add_argument("--log-level", help="Logging level (default: PHOTOBURN_LOG_LEVEL or INFO)")
    return parser


def _collect_overrides(args) -> Optional[ProcessingOverrides]:
    values = {}
    if args.overrides:
        loaded = load_overrides(args.overrides)
        if loaded is None:
            return None
        values.update(loaded)

    if args.anchor_gray is not None:
        values["anchor_gray"] = args.anchor_gray
    if args.image_type:
        values["known_image_type"] = args.image_type
    if args.invert:
        values["invert"] = True
    if args.dither == "none":
        values["dither_enabled"] = False
    elif args.dither:
        values["dither_enabled"] = True
        values["dither_type"] = args.dither
    if args.dither_threshold is not None:
        values["dither_threshold"] = args.dither_threshold

    return ProcessingOverrides.from_dict(values)


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the photoburn command."""
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log_level)

    if args.list_materials:
        for material in list_materials():
            kind = "metal" if material.is_metal else "non-metal"
            print(f"{material.id:16} {material.name} ({kind}): {material.description}")
        return 0

    if not args.input or not args.output:
        parser.error("input and output are required")

    try:
        overrides = _collect_overrides(args)
        if overrides is None:
            return 1

        face_detector = default_face_detector() if args.faces else None
        if args.faces and face_detector is None:
            logger.warning("Face detection unavailable; install the 'faces' extra")

        image = load_image(args.input)
        result = process_image(
            image,
            args.material,
            variant=args.variant,
            laser_type=args.laser,
            overrides=overrides,
            face_detector=face_detector,
            settings=PipelineSettings.from_env(),
        )
        save_image(result.processed_image, args.output)

        if args.report and not save_report(result, args.report, source=args.input):
            return 1
    except (PhotoBurnError, ValueError) as e:
        logger.error(f"{e}")
        return 1

    logger.info(f"Wrote {args.output} ({result.image_type.value}; {result.info})")
    return 0


if __name__ == "__main__":
    sys.exit(main())
