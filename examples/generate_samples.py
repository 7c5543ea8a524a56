#!/usr/bin/env python
"""
Generate synthetic page photos for trying out the document scanning pipeline.

This script creates phone-style shots of a document with:
- A light page with text lines
- A perspective tilt, as if photographed at an angle
- A dark desk around the page
- Optional dim lighting

Each photo gets a JSON file with the true corners in percent space, so
detection can be compared against ground truth.

Usage:
    python examples/generate_samples.py
    python -m docscan.cli --input examples/sample_photos --output scan.pdf
"""

import numpy as np
import json
from pathlib import Path


def create_page(title: str, lines: int = 14) -> np.ndarray:
    """Create an upright page with a title and lines of text."""
    import cv2

    # A4 proportions at a small size: 420 x 594
    img = np.ones((594, 420, 3), dtype=np.uint8) * 245

    cv2.putText(img, title, (40, 60),
               cv2.FONT_HERSHEY_DUPLEX, 0.8, (20, 20, 20), 2)

    y = 110
    for i in range(lines):
        text = f"Line {i + 1}: the quick brown fox jumps over the lazy dog"
        cv2.putText(img, text, (40, y), cv2.FONT_HERSHEY_SIMPLEX, 0.4, (30, 30, 30), 1)
        y += 30

    cv2.putText(img, "Page footer", (170, 570),
               cv2.FONT_HERSHEY_SIMPLEX, 0.4, (100, 100, 100), 1)
    return img


def photograph(page: np.ndarray, quad, frame_size=(640, 800), desk=40, light=1.0) -> np.ndarray:
    """
    Warp a page onto a desk as if photographed at an angle.

    Args:
        page: Upright page image
        quad: Page corners in the frame, [TL, TR, BR, BL] pixels
        frame_size: (width, height) of the photo
        desk: Gray level of the desk
        light: Brightness multiplier, below 1.0 for a dim shot

    Returns:
        BGR photo
    """
    import cv2

    h, w = page.shape[:2]
    src = np.float32([[0, 0], [w, 0], [w, h], [0, h]])
    M = cv2.getPerspectiveTransform(src, np.float32(quad))
    frame = cv2.warpPerspective(page, M, frame_size, borderValue=(desk, desk, desk))

    if light != 1.0:
        frame = np.clip(frame.astype(np.float32) * light, 0, 255).astype(np.uint8)
    return frame


def create_ground_truth(name: str, quad, frame_size) -> dict:
    """Ground-truth corners in percent space."""
    fw, fh = frame_size
    return {
        "source_file": f"{name}.png",
        "width": fw,
        "height": fh,
        "corners": [
            {"x": round(x * 100 / fw, 3), "y": round(y * 100 / fh, 3)}
            for x, y in quad
        ],
    }


def main():
    import cv2

    # Create output directories
    photos_dir = Path(__file__).parent / "sample_photos"
    truth_dir = Path(__file__).parent / "expected_corners"
    photos_dir.mkdir(exist_ok=True)
    truth_dir.mkdir(exist_ok=True)

    frame_size = (640, 800)
    samples = [
        ("sample_straight", "Straight Shot", [(90, 70), (550, 70), (550, 730), (90, 730)], 1.0),
        ("sample_tilted", "Tilted Shot", [(120, 90), (520, 60), (580, 720), (70, 760)], 1.0),
        ("sample_dim", "Dim Lighting", [(80, 120), (540, 80), (560, 700), (110, 740)], 0.6),
    ]

    for name, title, quad, light in samples:
        photo = photograph(create_page(title), quad, frame_size, light=light)

        # Save image
        img_path = photos_dir / f"{name}.png"
        cv2.imwrite(str(img_path), photo)
        print(f"Created: {img_path}")

        # Save ground truth
        truth = create_ground_truth(name, quad, frame_size)
        truth_path = truth_dir / f"{name}.json"
        with open(truth_path, 'w') as f:
            json.dump(truth, f, indent=2)
        print(f"Created: {truth_path}")

    print("\nSample generation complete!")


if __name__ == "__main__":
    main()
