#!/usr/bin/env python
"""
Command-line interface for the Document Scanning Pipeline.

Usage:
    python -m docscan.cli --input <images or folder> --output <file.pdf> [options]

Examples:
    # Scan two photos into one PDF
    python -m docscan.cli --input page1.jpg page2.jpg --output scan.pdf

    # Black and white, slightly brighter
    python -m docscan.cli --input ./photos --output scan.pdf --monochrome --brightness 10
"""

import argparse
import logging
import sys
import time
from typing import List, Optional

from . import __version__
from .config import get_config
from .exceptions import DocScanError
from .utils.raster import CornerSet

logger = logging.getLogger("docscan")


def setup_argparser() -> argparse.ArgumentParser:
    """Create argument parser."""
    parser = argparse.ArgumentParser(
        prog="docscan",
        description="Document Scanning Pipeline - Rectify page photos and assemble them into a PDF",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  Scan photos into a PDF with automatic corner detection:
    python -m docscan.cli --input page1.jpg page2.jpg --output scan.pdf

  Use explicit corners (percent of width/height, TL TR BR BL):
    python -m docscan.cli --input page.jpg --output scan.pdf --corners 5,8,95,6,97,94,3,92

  Black and white with extra contrast, then verify the xref table:
    python -m docscan.cli --input ./photos --output scan.pdf --monochrome --contrast 30 --verify
        """
    )

    parser.add_argument(
        "--input", "-i",
        required=True,
        nargs="+",
        help="Input images (JPEG, PNG, WebP) or folders of images, in page order"
    )

    parser.add_argument(
        "--output", "-o",
        required=True,
        help="Output PDF path"
    )

    parser.add_argument(
        "--corners",
        type=str,
        default=None,
        help="Eight comma-separated percentages x1,y1,...,x4,y4 applied to every page"
    )

    parser.add_argument(
        "--no-detect",
        action="store_true",
        help="Skip corner detection and use the default margin corners"
    )

    parser.add_argument(
        "--brightness",
        type=float,
        default=0,
        help="Brightness adjustment in [-100, 100] (default: 0)"
    )

    parser.add_argument(
        "--contrast",
        type=float,
        default=0,
        help="Contrast adjustment in [-100, 100] (default: 0)"
    )

    parser.add_argument(
        "--monochrome",
        action="store_true",
        help="Threshold pages to pure black and white"
    )

    parser.add_argument(
        "--verify",
        action="store_true",
        help="Re-read the written PDF and check every xref offset"
    )

    parser.add_argument(
        "--keep-partial",
        action="store_true",
        help="Write the pages that succeeded even if others failed"
    )

    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose output"
    )

    parser.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="Suppress non-error output"
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}"
    )

    return parser


def parse_corners(value: str) -> CornerSet:
    """Parse 'x1,y1,x2,y2,x3,y3,x4,y4' into a CornerSet (percent space)."""
    try:
        numbers = [float(v) for v in value.split(",")]
    except ValueError:
        raise argparse.ArgumentTypeError(f"Corners must be numbers: {value!r}")
    if len(numbers) != 8:
        raise argparse.ArgumentTypeError(f"Expected 8 values for --corners, got {len(numbers)}")
    return CornerSet(zip(numbers[0::2], numbers[1::2])).clamped()


def run_pipeline(args, corners: Optional[CornerSet] = None) -> int:
    """
    Run the scanning pipeline.

    Args:
        args: Parsed command-line arguments
        corners: Explicit corners for every page, already parsed from --corners
    """
    from .utils.assembler import DocumentAssembler
    from .utils.corners import default_corners
    from .utils.io import expand_inputs, load_image, save_document
    from .utils.pdf import verify_offsets

    start_time = time.time()
    config = get_config()
    if config.debug_mode:
        logging.getLogger().setLevel(logging.DEBUG)

    paths = expand_inputs(args.input)
    if not paths:
        logger.error("No images to process")
        return 1
    logger.info(f"Processing {len(paths)} page(s)")

    assembler = DocumentAssembler(config)
    failures: List[str] = []

    for number, path in enumerate(paths, start=1):
        try:
            image = load_image(path, config.imports)
            page_corners = corners
            if page_corners is None and args.no_detect:
                page_corners = default_corners(image.width, image.height, config.detection)
            assembler.add_image(
                image,
                corners=page_corners,
                brightness=args.brightness,
                contrast=args.contrast,
                monochrome=args.monochrome,
            )
            logger.info(f"Page {number}: {path}")
        except (DocScanError, OSError, ValueError) as e:
            logger.error(f"Page {number} ({path}) failed: {e}")
            failures.append(str(path))

    if failures and not args.keep_partial:
        logger.error(f"{len(failures)} page(s) failed; nothing written (use --keep-partial)")
        return 1
    if not len(assembler):
        logger.error("No pages succeeded")
        return 1

    data = assembler.build()
    output_path = save_document(data, args.output)

    if args.verify:
        bad = verify_offsets(data)
        if bad:
            logger.error(f"xref offsets do not match objects: {bad}")
            return 1
        logger.info("xref table verified")

    elapsed = time.time() - start_time

    if not args.quiet:
        print("\n" + "=" * 60)
        print("SCAN COMPLETE")
        print("=" * 60)
        print(f"Output: {output_path}")
        print(f"Pages written: {len(assembler)}")
        if failures:
            print(f"Pages failed: {len(failures)}")
        print(f"Size: {len(data)} bytes")
        print(f"Processing time: {elapsed:.2f}s")
        print("=" * 60)

    return 1 if failures else 0


def main(argv: Optional[List[str]] = None):
    """Main entry point."""
    parser = setup_argparser()
    args = parser.parse_args(argv)

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)
    elif args.quiet:
        logging.getLogger().setLevel(logging.ERROR)

    corners = None
    if args.corners:
        try:
            corners = parse_corners(args.corners)
        except argparse.ArgumentTypeError as e:
            parser.error(str(e))

    try:
        exit_code = run_pipeline(args, corners)
        sys.exit(exit_code)
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        sys.exit(130)
    except DocScanError as e:
        logger.error(f"Unexpected error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
