"""
Projective transform (homography) estimation from four point pairs.
"""

import itertools
import logging
from typing import Sequence, Tuple, Union

import numpy as np

from ..exceptions import SingularSystemError
from .linalg import solve_linear_system
from .raster import CornerSet, PointLike, as_point

logger = logging.getLogger(__name__)

Points = Union[CornerSet, Sequence[PointLike]]

# Cross products below this fraction of the squared point spread count as collinear
COLLINEAR_EPSILON = 1e-10


def _four_points(points: Points, name: str) -> np.ndarray:
    pts = [as_point(p) for p in points]
    if len(pts) != 4:
        raise ValueError(f"{name} must contain exactly 4 points, got {len(pts)}")
    return np.array([(p.x, p.y) for p in pts], dtype=np.float64)


def _check_general_position(pts: np.ndarray, name: str):
    """Raise SingularSystemError if any three of the four points are collinear."""
    extent = float(np.ptp(pts, axis=0).max())
    tolerance = COLLINEAR_EPSILON * max(extent, 1.0) ** 2
    for i, j, k in itertools.combinations(range(4), 3):
        (ax, ay), (bx, by), (cx, cy) = pts[i], pts[j], pts[k]
        cross = (bx - ax) * (cy - ay) - (by - ay) * (cx - ax)
        if abs(cross) <= tolerance:
            raise SingularSystemError(
                f"{name} points {i}, {j} and {k} are collinear or coincident"
            )


def build_dlt_system(src: np.ndarray, dst: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """
    Build the 8x8 direct linear transform system for four correspondences.

    Each pair (x, y) -> (u, v) contributes one row for u and one for v,
    with the bottom-right matrix entry fixed to 1.
    """
    A = np.zeros((8, 8), dtype=np.float64)
    b = np.zeros(8, dtype=np.float64)
    for i in range(4):
        x, y = src[i]
        u, v = dst[i]
        A[2 * i] = [x, y, 1, 0, 0, 0, -u * x, -u * y]
        A[2 * i + 1] = [0, 0, 0, x, y, 1, -v * x, -v * y]
        b[2 * i] = u
        b[2 * i + 1] = v
    return A, b


def estimate_homography(src: Points, dst: Points) -> np.ndarray:
    """
    Compute the 3x3 homography T with T . [x, y, 1] ~ [u, v, 1] for each pair.

    Args:
        src: Four source points
        dst: Four destination points, matched to src by index

    Returns:
        Read-only 3x3 float64 matrix with T[2, 2] == 1

    Raises:
        ValueError: If either side does not have exactly four points
        SingularSystemError: If three points on either side are collinear
            or coincident
    """
    src_arr = _four_points(src, "src")
    dst_arr = _four_points(dst, "dst")
    _check_general_position(src_arr, "src")
    _check_general_position(dst_arr, "dst")

    A, b = build_dlt_system(src_arr, dst_arr)
    h = solve_linear_system(A, b)

    T = np.append(h, 1.0).reshape(3, 3)
    T.setflags(write=False)
    return T


def apply_homography(T: np.ndarray, x, y):
    """
    Map (x, y) through T with perspective division.

    Works on scalars or numpy arrays of matching shape.
    """
    w = T[2, 0] * x + T[2, 1] * y + T[2, 2]
    px = (T[0, 0] * x + T[0, 1] * y + T[0, 2]) / w
    py = (T[1, 0] * x + T[1, 1] * y + T[1, 2]) / w
    return px, py
