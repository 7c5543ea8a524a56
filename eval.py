#!/usr/bin/env python
"""
Evaluation script for corner detection in the Document Scanning Pipeline.

Runs detection on page photos and compares the result against ground-truth
corners (percent space, as written by examples/generate_samples.py).

Usage:
    python eval.py --input <photo> --expected <corners_json>
    python eval.py --photos-dir <dir> --expected-dir <dir> --report <report.json>
"""

import argparse
import json
import logging
from pathlib import Path
from dataclasses import dataclass, asdict
from typing import List, Dict, Any
import sys

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Corner error (percent of the frame) counted as a hit
HIT_TOLERANCE = 3.0


@dataclass
class DetectionMetrics:
    """Evaluation metrics for one detected page."""
    corner_errors: List[float]
    mean_error: float = 0.0
    max_error: float = 0.0
    corners_within_tolerance: int = 0
    used_fallback: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def load_expected(json_path: Path):
    """Load ground-truth corners as a CornerSet."""
    from docscan.utils.raster import CornerSet

    with open(json_path, 'r', encoding='utf-8') as f:
        truth = json.load(f)
    return CornerSet([(c["x"], c["y"]) for c in truth["corners"]])


def evaluate_photo(photo_path: Path, expected) -> DetectionMetrics:
    """Detect corners on a photo and score them against ground truth."""
    from docscan.config import get_config
    from docscan.utils.corners import detect_corners, default_corners
    from docscan.utils.io import load_image

    config = get_config()
    image = load_image(photo_path, config.imports)
    detected = detect_corners(image, config.detection)

    errors = [d.distance_to(e) for d, e in zip(detected, expected)]

    return DetectionMetrics(
        corner_errors=[round(err, 3) for err in errors],
        mean_error=sum(errors) / len(errors),
        max_error=max(errors),
        corners_within_tolerance=sum(1 for err in errors if err <= HIT_TOLERANCE),
        used_fallback=detected == default_corners(image.width, image.height, config.detection),
    )


def print_metrics(metrics: DetectionMetrics, name: str = "Photo"):
    """Print metrics in a formatted way."""
    print(f"\n{'='*60}")
    print(f"Detection Results: {name}")
    print('='*60)

    labels = ["Top-left", "Top-right", "Bottom-right", "Bottom-left"]
    for label, err in zip(labels, metrics.corner_errors):
        print(f"  {label:<13} error: {err:.2f}%")

    print(f"\n  Mean Error: {metrics.mean_error:.2f}%")
    print(f"  Max Error: {metrics.max_error:.2f}%")
    print(f"  Within {HIT_TOLERANCE:.0f}%: {metrics.corners_within_tolerance}/4")
    if metrics.used_fallback:
        print("  Fallback corners were used")

    print('='*60)


def evaluate_directory(
    photos_dir: Path,
    expected_dir: Path
) -> Dict[str, DetectionMetrics]:
    """Evaluate every photo that has a matching ground-truth file."""
    results = {}

    for photo in sorted(photos_dir.iterdir()):
        expected_file = expected_dir / f"{photo.stem}.json"
        if not expected_file.exists():
            continue

        results[photo.stem] = evaluate_photo(photo, load_expected(expected_file))

    return results


def generate_report(
    results: Dict[str, DetectionMetrics]
) -> Dict[str, Any]:
    """Generate a summary report from multiple evaluations."""
    if not results:
        return {"error": "No results to report"}

    total = len(results)
    hits = sum(m.corners_within_tolerance for m in results.values())

    return {
        "summary": {
            "photos_evaluated": total,
            "average_error_pct": round(sum(m.mean_error for m in results.values()) / total, 3),
            "worst_error_pct": round(max(m.max_error for m in results.values()), 3),
            "corner_hit_rate": round(hits / (4 * total), 3),
            "fallbacks": sum(1 for m in results.values() if m.used_fallback),
        },
        "individual_results": {
            name: metrics.to_dict()
            for name, metrics in results.items()
        }
    }


def main():
    parser = argparse.ArgumentParser(
        description="Evaluate corner detection against ground truth"
    )

    parser.add_argument(
        "--input", "-i",
        type=Path,
        help="Path to a page photo"
    )

    parser.add_argument(
        "--expected", "-e",
        type=Path,
        help="Path to the ground-truth corners JSON for --input"
    )

    parser.add_argument(
        "--photos-dir",
        type=Path,
        help="Directory containing page photos"
    )

    parser.add_argument(
        "--expected-dir",
        type=Path,
        help="Directory containing ground-truth corners"
    )

    parser.add_argument(
        "--report", "-r",
        type=Path,
        help="Output path for evaluation report JSON"
    )

    parser.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="Suppress printed output"
    )

    args = parser.parse_args()

    results = {}

    # Evaluate single photo
    if args.input:
        if not args.input.exists() or not args.expected or not args.expected.exists():
            logger.error(f"Need an existing photo and --expected file: {args.input}")
            sys.exit(1)

        metrics = evaluate_photo(args.input, load_expected(args.expected))
        results[args.input.stem] = metrics

        if not args.quiet:
            print_metrics(metrics, args.input.name)

    # Evaluate directory
    elif args.photos_dir and args.expected_dir:
        if not args.photos_dir.is_dir():
            logger.error(f"Photos directory not found: {args.photos_dir}")
            sys.exit(1)

        results = evaluate_directory(args.photos_dir, args.expected_dir)

        if not args.quiet:
            for name, metrics in results.items():
                print_metrics(metrics, name)

    else:
        parser.print_help()
        sys.exit(1)

    # Generate and save report
    if args.report and results:
        report = generate_report(results)

        with open(args.report, 'w') as f:
            json.dump(report, f, indent=2)

        logger.info(f"Report saved to: {args.report}")

        if not args.quiet:
            print(f"\nReport saved to: {args.report}")
            print("\nSummary:")
            for key, value in report["summary"].items():
                print(f"  {key}: {value}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
