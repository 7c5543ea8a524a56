"""
Perspective rectification of a document quadrilateral.
"""

import logging
from typing import Optional, Tuple

import numpy as np

from ..config import RectifyConfig
from ..exceptions import EncodeFailure
from .homography import apply_homography, estimate_homography
from .raster import CornerSet, RasterImage

logger = logging.getLogger(__name__)

# Homography noise below this is snapped to the nearest integer before flooring
_SNAP_EPSILON = 1e-9


def edge_lengths(corners_px: CornerSet) -> Tuple[float, float]:
    """
    Longer of each pair of opposite edges of a pixel-space quad.

    Keeping the longer edge means foreshortening does not lose resolution.
    """
    tl, tr, br, bl = corners_px.points
    width = max(tl.distance_to(tr), br.distance_to(bl))
    height = max(tr.distance_to(br), bl.distance_to(tl))
    return width, height


def target_size(corners_px: CornerSet) -> Tuple[int, int]:
    """Output (width, height) in whole pixels, truncated."""
    width, height = edge_lengths(corners_px)
    return int(width), int(height)


def _snap_floor(values: np.ndarray) -> np.ndarray:
    nearest = np.rint(values)
    snapped = np.where(np.abs(values - nearest) < _SNAP_EPSILON, nearest, values)
    return np.floor(snapped)


def rectify(
    image: RasterImage,
    corners: CornerSet,
    config: Optional[RectifyConfig] = None
) -> RasterImage:
    """
    Resample the quadrilateral given by corners into an upright rectangle.

    Each destination pixel is mapped back into the source through a
    homography estimated from the destination rectangle to the source
    corners, then sampled nearest-neighbour (floor). Destination pixels
    that land outside the source stay fully transparent.

    Args:
        image: Source image
        corners: Document corners in percent space, [TL, TR, BR, BL]
        config: Rectification settings

    Returns:
        New RasterImage with the rectified content

    Raises:
        EncodeFailure: If the quad collapses to an empty output surface
        SingularSystemError: If the corners are degenerate
    """
    src_w, src_h = image.size
    if src_w == 0 or src_h == 0:
        raise EncodeFailure(f"No drawing surface for empty source image ({src_w}x{src_h})")

    corners_px = corners.to_pixels(src_w, src_h)
    width, height = target_size(corners_px)
    if width <= 0 or height <= 0:
        raise EncodeFailure(f"No drawing surface for a {width}x{height} output")

    # The mapping spans the exact edge lengths; only the output grid is truncated
    edge_w, edge_h = edge_lengths(corners_px)
    dst_rect = [(0, 0), (edge_w, 0), (edge_w, edge_h), (0, edge_h)]
    T = estimate_homography(dst_rect, corners_px)

    ys, xs = np.mgrid[0:height, 0:width].astype(np.float64)
    with np.errstate(divide="ignore", invalid="ignore"):
        sx, sy = apply_homography(T, xs, ys)

    finite = np.isfinite(sx) & np.isfinite(sy)
    fx = np.full_like(xs, -1.0)
    fy = np.full_like(ys, -1.0)
    fx[finite] = _snap_floor(sx[finite])
    fy[finite] = _snap_floor(sy[finite])

    # floor(x') in [0, w-1] is the same as 0 <= x' < w
    valid = finite & (fx >= 0) & (fx < src_w) & (fy >= 0) & (fy < src_h)

    out = np.zeros((height, width, 4), dtype=np.uint8)
    out[valid] = image.pixels[fy[valid].astype(np.intp), fx[valid].astype(np.intp)]

    logger.debug(
        f"Rectified {src_w}x{src_h} -> {width}x{height} "
        f"({int(valid.sum())}/{valid.size} pixels sampled)"
    )
    return RasterImage(out)
