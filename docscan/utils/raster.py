"""
Core data types shared across pipeline stages.

Provides:
- RasterImage: RGBA pixel buffer with its dimensions
- Point: a coordinate pair in percent or pixel space
- CornerSet: the four document corners, [TL, TR, BR, BL]
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Iterator, List, Sequence, Tuple, Union

import numpy as np

logger = logging.getLogger(__name__)


# ============================================================================
# Raster Image
# ============================================================================

class RasterImage:
    """
    An RGBA image with 8 bits per channel.

    pixels: np.ndarray with shape (height, width, 4), dtype uint8, row-major.
    """

    __slots__ = ("pixels",)

    def __init__(self, pixels: np.ndarray):
        self.pixels = _as_rgba(pixels)

    @classmethod
    def blank(
        cls,
        width: int,
        height: int,
        color: Tuple[int, int, int, int] = (255, 255, 255, 255)
    ) -> "RasterImage":
        """Create an image filled with a single RGBA color."""
        if width < 0 or height < 0:
            raise ValueError(f"Invalid image size: {width}x{height}")
        pixels = np.empty((height, width, 4), dtype=np.uint8)
        pixels[...] = np.asarray(color, dtype=np.uint8)
        return cls(pixels)

    @classmethod
    def from_buffer(cls, buffer: Union[bytes, bytearray, Sequence[int]],
                    width: int, height: int) -> "RasterImage":
        """Create an image from a flat interleaved RGBA buffer."""
        if isinstance(buffer, (bytes, bytearray)):
            data = np.frombuffer(bytes(buffer), dtype=np.uint8)
        else:
            data = np.asarray(buffer, dtype=np.uint8)
        if data.size != width * height * 4:
            raise ValueError(
                f"Buffer length {data.size} does not match {width}x{height}x4"
            )
        return cls(data.reshape(height, width, 4).copy())

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    @property
    def size(self) -> Tuple[int, int]:
        return self.width, self.height

    @property
    def rgb(self) -> np.ndarray:
        return self.pixels[:, :, :3]

    @property
    def alpha(self) -> np.ndarray:
        return self.pixels[:, :, 3]

    def tobytes(self) -> bytes:
        return self.pixels.tobytes()

    def copy(self) -> "RasterImage":
        return RasterImage(self.pixels.copy())

    def __eq__(self, other) -> bool:
        if not isinstance(other, RasterImage):
            return NotImplemented
        return self.pixels.shape == other.pixels.shape and \
            bool(np.array_equal(self.pixels, other.pixels))

    def __repr__(self) -> str:
        return f"RasterImage({self.width}x{self.height})"


def _as_rgba(pixels: np.ndarray) -> np.ndarray:
    """Promote grayscale, RGB or RGBA input to a contiguous RGBA uint8 array."""
    arr = np.asarray(pixels)
    if arr.dtype != np.uint8:
        arr = np.clip(np.rint(arr), 0, 255).astype(np.uint8)

    if arr.ndim == 2:
        arr = np.stack([arr, arr, arr, np.full_like(arr, 255)], axis=-1)
    elif arr.ndim == 3 and arr.shape[2] == 1:
        gray = arr[:, :, 0]
        arr = np.stack([gray, gray, gray, np.full_like(gray, 255)], axis=-1)
    elif arr.ndim == 3 and arr.shape[2] == 3:
        alpha = np.full(arr.shape[:2] + (1,), 255, dtype=np.uint8)
        arr = np.concatenate([arr, alpha], axis=2)
    elif not (arr.ndim == 3 and arr.shape[2] == 4):
        raise ValueError(f"Unexpected image shape: {arr.shape}")

    return np.ascontiguousarray(arr)


# ============================================================================
# Points and Corners
# ============================================================================

@dataclass(frozen=True)
class Point:
    """A 2D coordinate, either in percent (0-100) or pixel space."""
    x: float
    y: float

    def to_pixels(self, width: int, height: int) -> "Point":
        return Point(self.x * width / 100.0, self.y * height / 100.0)

    def to_percent(self, width: int, height: int) -> "Point":
        return Point(self.x * 100.0 / width, self.y * 100.0 / height)

    def clamped(self, low: float = 0.0, high: float = 100.0) -> "Point":
        return Point(min(high, max(low, self.x)), min(high, max(low, self.y)))

    def distance_to(self, other: "Point") -> float:
        return float(np.hypot(other.x - self.x, other.y - self.y))

    def as_tuple(self) -> Tuple[float, float]:
        return (self.x, self.y)


PointLike = Union[Point, Tuple[float, float], Sequence[float]]


def as_point(value: PointLike) -> Point:
    if isinstance(value, Point):
        return value
    x, y = value
    return Point(float(x), float(y))


class CornerSet:
    """
    The four document corners ordered [top-left, top-right, bottom-right,
    bottom-left]. Homography estimation and page geometry rely on this
    order.
    """

    TOP_LEFT, TOP_RIGHT, BOTTOM_RIGHT, BOTTOM_LEFT = range(4)

    __slots__ = ("_points",)

    def __init__(self, points: Iterable[PointLike]):
        pts = tuple(as_point(p) for p in points)
        if len(pts) != 4:
            raise ValueError(f"A CornerSet needs exactly 4 points, got {len(pts)}")
        self._points = pts

    @property
    def points(self) -> Tuple[Point, Point, Point, Point]:
        return self._points  # type: ignore[return-value]

    def __getitem__(self, index: int) -> Point:
        return self._points[index]

    def __iter__(self) -> Iterator[Point]:
        return iter(self._points)

    def __len__(self) -> int:
        return 4

    def __eq__(self, other) -> bool:
        if not isinstance(other, CornerSet):
            return NotImplemented
        return self._points == other._points

    def __repr__(self) -> str:
        inner = ", ".join(f"({p.x:.2f}, {p.y:.2f})" for p in self._points)
        return f"CornerSet([{inner}])"

    def with_point(self, index: int, point: PointLike) -> "CornerSet":
        """Return a copy with one corner replaced, clamped to percent range."""
        if not 0 <= index < 4:
            raise IndexError(f"Corner index out of range: {index}")
        pts = list(self._points)
        pts[index] = as_point(point).clamped()
        return CornerSet(pts)

    def clamped(self) -> "CornerSet":
        return CornerSet(p.clamped() for p in self._points)

    def to_pixels(self, width: int, height: int) -> "CornerSet":
        return CornerSet(p.to_pixels(width, height) for p in self._points)

    def to_percent(self, width: int, height: int) -> "CornerSet":
        return CornerSet(p.to_percent(width, height) for p in self._points)

    def as_array(self) -> np.ndarray:
        """Return a (4, 2) float64 array."""
        return np.array([p.as_tuple() for p in self._points], dtype=np.float64)

    def as_list(self) -> List[Tuple[float, float]]:
        return [p.as_tuple() for p in self._points]
