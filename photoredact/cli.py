"""
Command-line interface for photoredact.

Redacts images with regions supplied as JSON, using argparse.
"""

import argparse
import json
import logging
import sys
import time
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from . import __version__
from .compositor import CompositionEngine
from .config import EffectType, PhotoRedactConfig, ProcessingMetadata, Region, load_config
from .image_io import downscale, load_image, save_image
from .logger import get_logger, setup_root_logger


def create_parser() -> argparse.ArgumentParser:
    """Create command-line argument parser."""
    parser = argparse.ArgumentParser(
        prog="photoredact",
        description="Blur, pixelate or black out regions of photos",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Redact one photo with the regions from a detector
  photoredact --input photo.jpg --regions faces.json --output out/

  # Force every region to a black box
  photoredact --input photo.jpg --regions faces.json --effect black_box

  # Batch process a directory; regions.json maps file names to region lists
  photoredact --input photos/ --regions regions.json --output out/ --recursive

Region JSON:
  [{"bbox": [10, 10, 50, 50], "effect": {"type": "pixelation", "block_size": 20},
    "source": "auto_face"}]
        """
    )

    # Input/Output arguments
    parser.add_argument(
        "--input", "-i",
        type=str,
        required=True,
        help="Input image file or directory path"
    )

    parser.add_argument(
        "--regions",
        type=str,
        required=True,
        help="JSON file with a region list, or a mapping of file name to region list"
    )

    parser.add_argument(
        "--output", "-o",
        type=str,
        help="Output directory path (default: from config, else ./output)"
    )

    # Effect options
    parser.add_argument(
        "--effect", "-e",
        type=str,
        choices=[t.value for t in EffectType],
        help="Apply this effect to every region instead of each region's own"
    )

    parser.add_argument(
        "--radius",
        type=int,
        help="Blur radius used with --effect gaussian (default: 25)"
    )

    parser.add_argument(
        "--block-size",
        type=int,
        help="Pixel block size used with --effect pixelation (default: 20)"
    )

    # Processing options
    parser.add_argument(
        "--recursive", "-r",
        action="store_true",
        help="Process directories recursively"
    )

    parser.add_argument(
        "--extensions",
        type=str,
        nargs="+",
        default=[".jpg", ".jpeg", ".png", ".bmp", ".webp"],
        help="File extensions to process (default: common image formats)"
    )

    parser.add_argument(
        "--max-dimension",
        type=int,
        help="Downscale large images before redacting; region boxes are scaled to match"
    )

    parser.add_argument(
        "--quality",
        type=int,
        help="JPEG output quality (default: 95)"
    )

    # Configuration
    parser.add_argument(
        "--config", "-c",
        type=str,
        help="Path to JSON configuration file"
    )

    # Output options
    parser.add_argument(
        "--save-metadata",
        dest="save_metadata",
        action="store_true",
        default=None,
        help="Save processing metadata as JSON (default: from config)"
    )

    parser.add_argument(
        "--no-metadata",
        dest="save_metadata",
        action="store_false",
        help="Do not save processing metadata"
    )

    # Logging
    parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=None,
        help="Logging level (default: from config, INFO)"
    )

    parser.add_argument(
        "--log-file",
        type=str,
        help="Path to log file (default: console only)"
    )

    # Misc
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show what would be processed without actually processing"
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"photoredact {__version__}"
    )

    return parser


def find_input_files(
    input_path: Union[str, Path],
    extensions: List[str],
    recursive: bool = False
) -> List[Path]:
    """Find input files based on path and extensions."""
    input_path = Path(input_path)

    if not input_path.exists():
        raise FileNotFoundError(f"Input path not found: {input_path}")

    files = []

    if input_path.is_file():
        if input_path.suffix.lower() in [ext.lower() for ext in extensions]:
            files.append(input_path)
    elif input_path.is_dir():
        pattern = "**/*" if recursive else "*"
        for ext in extensions:
            files.extend(input_path.glob(f"{pattern}{ext}"))
            files.extend(input_path.glob(f"{pattern}{ext.upper()}"))

    return sorted(set(files))


def load_regions(regions_path: Union[str, Path]) -> Union[List[Region], Dict[str, List[Region]]]:
    """
    Load regions from JSON.

    Returns:
        A list applied to every input, or a dict keyed by file name
    """
    regions_path = Path(regions_path)
    if not regions_path.exists():
        raise FileNotFoundError(f"Regions file not found: {regions_path}")

    with open(regions_path, 'r') as f:
        data = json.load(f)

    if isinstance(data, list):
        return [Region.from_dict(item) for item in data]
    if isinstance(data, dict):
        return {
            name: [Region.from_dict(item) for item in items]
            for name, items in data.items()
        }
    raise ValueError(f"Regions file must hold a list or an object, got {type(data).__name__}")


def regions_for_file(
    regions: Union[List[Region], Dict[str, List[Region]]],
    input_path: Path
) -> List[Region]:
    """Pick the regions that belong to ``input_path``."""
    if isinstance(regions, list):
        return regions
    return regions.get(input_path.name, regions.get(str(input_path), []))


def process_single_file(
    input_path: Path,
    output_dir: Path,
    regions: List[Region],
    config: PhotoRedactConfig,
    engine: CompositionEngine,
    logger
) -> Dict[str, Any]:
    """Process a single input file."""
    logger.info(f"Processing: {input_path}")

    start_time = time.time()
    processing_info = {
        "input_file": str(input_path),
        "success": False,
        "error": None,
        "processing_time_ms": 0,
        "regions": 0
    }

    try:
        # Region boxes are in source pixels; load at full size and scale them
        # alongside the image if it gets downscaled
        image = load_image(input_path, max_dimension=None)
        if config.io.max_dimension:
            full_height, full_width = image.shape[:2]
            image = downscale(image, config.io.max_dimension)
            height, width = image.shape[:2]
            if (width, height) != (full_width, full_height):
                scale_x = width / full_width
                scale_y = height / full_height
                regions = [r.with_bbox(r.bbox.scaled(scale_x, scale_y)) for r in regions]

        if not regions:
            logger.info(f"No regions for {input_path.name}, skipping")
            processing_info.update({
                "success": True,
                "processing_time_ms": (time.time() - start_time) * 1000
            })
            return processing_info

        redacted, composite_info = engine.composite_with_metadata(image, regions)

        output_path = output_dir / f"redacted_{input_path.name}"
        save_image(redacted, output_path, config.io.jpeg_quality)

        processing_time_ms = (time.time() - start_time) * 1000

        if config.save_metadata:
            metadata = ProcessingMetadata(
                input_file=str(input_path),
                output_file=str(output_path),
                processing_time_ms=processing_time_ms,
                regions=list(regions),
                image_size=(image.shape[1], image.shape[0]),
                timestamp=datetime.now().isoformat(),
                applied_regions=composite_info["applied_regions"],
                skipped_regions=composite_info["skipped_regions"]
            )
            metadata_path = output_dir / f"{input_path.stem}_metadata.json"
            with open(metadata_path, 'w') as f:
                json.dump(metadata.to_dict(), f, indent=2)

        processing_info.update({
            "success": True,
            "processing_time_ms": processing_time_ms,
            "regions": len(regions)
        })

    except Exception as e:
        logger.error(f"Failed to process {input_path}: {e}")
        processing_info["error"] = str(e)

    return processing_info


def apply_overrides(config: PhotoRedactConfig, args: argparse.Namespace) -> PhotoRedactConfig:
    """Override config values with CLI arguments."""
    if args.radius is not None:
        config.redaction.gaussian_radius = args.radius
    if args.block_size is not None:
        config.redaction.pixel_size = args.block_size
    if args.effect:
        config.redaction.default_effect = EffectType(args.effect)
    if args.max_dimension is not None:
        config.io.max_dimension = args.max_dimension
    if args.quality is not None:
        config.io.jpeg_quality = args.quality
    if args.save_metadata is not None:
        config.save_metadata = args.save_metadata
    if args.output:
        config.output_dir = Path(args.output)
    if args.log_level:
        config.log_level = args.log_level
    return config


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    # Setup logging
    log_file = Path(args.log_file) if args.log_file else None
    setup_root_logger(args.log_level or "INFO", log_file)
    logger = get_logger(__name__)

    logger.info("photoredact CLI started")

    try:
        config = apply_overrides(load_config(args.config), args)
        logging.getLogger().setLevel(config.log_level.upper())

        input_files = find_input_files(args.input, args.extensions, args.recursive)
        if not input_files:
            logger.error("No input files found")
            return 1

        logger.info(f"Found {len(input_files)} files to process")

        if args.dry_run:
            logger.info("DRY RUN - Files that would be processed:")
            for file_path in input_files:
                logger.info(f"  {file_path}")
            return 0

        regions = load_regions(args.regions)

        forced_effect = None
        if args.effect:
            forced_effect = config.redaction.make_effect(EffectType(args.effect))

        output_dir = config.output_dir
        output_dir.mkdir(parents=True, exist_ok=True)

        engine = CompositionEngine(config.redaction)

        results = []
        for i, input_file in enumerate(input_files, 1):
            logger.info(f"Processing file {i}/{len(input_files)}: {input_file.name}")

            file_regions = regions_for_file(regions, input_file)
            if forced_effect is not None:
                file_regions = [r.with_effect(forced_effect) for r in file_regions]

            results.append(process_single_file(
                input_file, output_dir, file_regions, config, engine, logger
            ))

        # Print summary
        successful = sum(1 for r in results if r["success"])
        failed = len(results) - successful
        total_regions = sum(r["regions"] for r in results if r["success"])
        avg_time = sum(r["processing_time_ms"] for r in results if r["success"]) / max(successful, 1)

        logger.info(f"""
Processing complete!
  Total files: {len(results)}
  Successful: {successful}
  Failed: {failed}
  Total regions redacted: {total_regions}
  Average processing time: {avg_time:.2f}ms
  Output directory: {output_dir}
        """)

        if failed > 0:
            logger.warning(f"{failed} files failed to process")
            for result in results:
                if not result["success"]:
                    logger.warning(f"  {result['input_file']}: {result['error']}")

        return 0 if failed == 0 else 1

    except KeyboardInterrupt:
        logger.info("Processing interrupted by user")
        return 1
    except Exception as e:
        logger.error(f"Unexpected error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
