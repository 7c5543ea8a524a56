"""
Document corner detection.

Estimates the four corners of the dominant document quadrilateral from a
Sobel gradient-magnitude edge map, searching a coarse grid around each
margin-inset image corner for the strongest edge response.
"""

import logging
from typing import List, Optional, Tuple

import cv2
import numpy as np

from ..config import DetectionConfig
from .raster import CornerSet, Point, RasterImage

logger = logging.getLogger(__name__)


# ============================================================================
# Edge Map
# ============================================================================

def to_gray_mean(image: RasterImage) -> np.ndarray:
    """Average of the R, G and B channels as float64 (alpha ignored)."""
    return image.rgb.astype(np.float64).mean(axis=2)


def sobel_edge_map(image: RasterImage) -> np.ndarray:
    """
    Gradient magnitude of the channel-mean grayscale image.

    Uses the 3x3 Sobel kernels in x and y; magnitude is sqrt(gx^2 + gy^2).
    Border pixels are left at zero.

    Returns:
        (height, width) float64 array
    """
    gray = to_gray_mean(image)
    h, w = gray.shape
    edges = np.zeros((h, w), dtype=np.float64)
    if h < 3 or w < 3:
        return edges

    gx = cv2.Sobel(gray, cv2.CV_64F, 1, 0, ksize=3)
    gy = cv2.Sobel(gray, cv2.CV_64F, 0, 1, ksize=3)
    magnitude = cv2.magnitude(gx, gy)

    edges[1:-1, 1:-1] = magnitude[1:-1, 1:-1]
    return edges


# ============================================================================
# Regional Maxima Search
# ============================================================================

def margin_for(width: int, height: int, margin_ratio: float = 0.1) -> float:
    return min(width, height) * margin_ratio


def search_centers(width: int, height: int, margin: float) -> List[Tuple[float, float]]:
    """Margin-inset corner positions in [TL, TR, BR, BL] order (pixels)."""
    return [
        (margin, margin),
        (width - margin, margin),
        (width - margin, height - margin),
        (margin, height - margin),
    ]


def _scan_offsets(radius: float, stride: int) -> np.ndarray:
    offsets = []
    d = -radius
    while d <= radius:
        offsets.append(d)
        d += stride
    return np.array(offsets, dtype=np.float64)


def _search_region(
    edges: np.ndarray,
    center: Tuple[float, float],
    radius: float,
    stride: int
) -> Optional[Point]:
    """
    Strongest edge sample on a coarse grid around center.

    Scans rows (dy) outer and columns (dx) inner; the first strictly
    greater value wins. Returns the center itself when no sample beats
    zero and None when there is nothing to sample.
    """
    h, w = edges.shape
    offsets = _scan_offsets(radius, stride)
    if h == 0 or w == 0 or offsets.size == 0:
        return None

    cx, cy = center
    xs = np.clip(cx + offsets, 0, w - 1)
    ys = np.clip(cy + offsets, 0, h - 1)
    samples = edges[np.floor(ys).astype(np.intp)[:, None],
                    np.floor(xs).astype(np.intp)[None, :]]

    if not np.all(np.isfinite(samples)):
        return None

    row, col = np.unravel_index(int(np.argmax(samples)), samples.shape)
    if samples[row, col] <= 0:
        return Point(cx, cy)
    return Point(float(xs[col]), float(ys[row]))


def find_corners(
    edges: np.ndarray,
    width: int,
    height: int,
    config: Optional[DetectionConfig] = None
) -> List[Point]:
    """
    Locate one corner per search region in pixel space.

    Falls back to the margin-inset corners when any region yields nothing.
    """
    config = config or DetectionConfig()
    margin = margin_for(width, height, config.margin_ratio)

    corners = []
    for center in search_centers(width, height, margin):
        point = _search_region(edges, center, margin, config.search_stride)
        if point is not None:
            corners.append(point)

    if len(corners) != 4:
        logger.debug(f"Corner search yielded {len(corners)} points, using defaults")
        return [Point(x, y) for x, y in search_centers(width, height, margin)]

    return corners


def default_corners(
    width: int,
    height: int,
    config: Optional[DetectionConfig] = None
) -> CornerSet:
    """The four margin-inset corners in percent space, no search."""
    config = config or DetectionConfig()
    margin = margin_for(width, height, config.margin_ratio)
    pts = [Point(x, y) for x, y in search_centers(width, height, margin)]
    return CornerSet(pts).to_percent(width, height).clamped()


def detect_corners(
    image: RasterImage,
    config: Optional[DetectionConfig] = None
) -> CornerSet:
    """
    Estimate the document corners of an image.

    Args:
        image: Input image
        config: Detection parameters (margin ratio, search stride)

    Returns:
        CornerSet in percent space (0-100), ordered [TL, TR, BR, BL]

    Raises:
        ValueError: If the image has no pixels
    """
    width, height = image.size
    if width == 0 or height == 0:
        raise ValueError(f"Cannot detect corners on an empty image ({width}x{height})")

    edges = sobel_edge_map(image)
    corners = find_corners(edges, width, height, config)

    result = CornerSet(corners).to_percent(width, height).clamped()
    logger.debug(f"Detected corners: {result}")
    return result
