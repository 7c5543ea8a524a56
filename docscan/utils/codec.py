"""
Image encode/decode boundary.

Handles:
- Decoding compressed bytes (JPEG, PNG, WebP, ...) into RGBA rasters
- JPEG encoding at a canvas-style quality in [0, 1]
- Base64 data URLs, the text form pages travel in
- Page preparation helpers (flatten onto a background, fit within a box)
"""

import base64
import binascii
import logging
from typing import Optional, Tuple

import cv2
import numpy as np

from ..exceptions import DecodeFailure, EncodeFailure
from .raster import RasterImage

logger = logging.getLogger(__name__)

DEFAULT_JPEG_QUALITY = 0.95


# ============================================================================
# Decode / Encode
# ============================================================================

def decode_image(data: bytes) -> RasterImage:
    """
    Decode compressed image bytes into an RGBA raster.

    Raises:
        DecodeFailure: If the bytes are empty or cannot be decoded
    """
    if not data:
        raise DecodeFailure("Cannot decode an empty payload")

    buf = np.frombuffer(data, dtype=np.uint8)
    img = cv2.imdecode(buf, cv2.IMREAD_UNCHANGED)
    if img is None or img.size == 0:
        raise DecodeFailure(f"Could not decode image ({len(data)} bytes)")

    if img.dtype == np.uint16:
        img = (img >> 8).astype(np.uint8)
    elif img.dtype != np.uint8:
        img = cv2.normalize(img, None, 0, 255, cv2.NORM_MINMAX).astype(np.uint8)

    if img.ndim == 2:
        rgba = cv2.cvtColor(img, cv2.COLOR_GRAY2RGBA)
    elif img.shape[2] == 3:
        rgba = cv2.cvtColor(img, cv2.COLOR_BGR2RGBA)
    elif img.shape[2] == 4:
        rgba = cv2.cvtColor(img, cv2.COLOR_BGRA2RGBA)
    else:
        raise DecodeFailure(f"Unexpected decoded shape: {img.shape}")

    logger.debug(f"Decoded image: {rgba.shape[1]}x{rgba.shape[0]}")
    return RasterImage(rgba)


def encode_jpeg(
    image: RasterImage,
    quality: float = DEFAULT_JPEG_QUALITY,
    background: Optional[Tuple[int, int, int]] = None
) -> bytes:
    """
    Encode an image as baseline JPEG.

    Args:
        image: Image to encode
        quality: Quality in (0, 1], as used by canvas toDataURL
        background: If given, transparent areas are flattened onto this
            RGB color first; otherwise alpha is dropped

    Returns:
        JPEG bytes

    Raises:
        EncodeFailure: If the image is empty or the encoder refuses it
    """
    if image.width == 0 or image.height == 0:
        raise EncodeFailure(f"No drawing surface for a {image.width}x{image.height} image")
    if not 0.0 < quality <= 1.0:
        raise ValueError(f"JPEG quality must be in (0, 1], got {quality}")

    if background is not None:
        image = flatten_on_background(image, background)

    bgr = cv2.cvtColor(np.ascontiguousarray(image.rgb), cv2.COLOR_RGB2BGR)
    params = [cv2.IMWRITE_JPEG_QUALITY, int(round(quality * 100))]
    try:
        ok, encoded = cv2.imencode(".jpg", bgr, params)
    except cv2.error as e:
        raise EncodeFailure(f"JPEG encoder failed: {e}") from e
    if not ok:
        raise EncodeFailure("JPEG encoder returned no data")

    return encoded.tobytes()


# ============================================================================
# Data URLs
# ============================================================================

def to_data_url(data: bytes, mime_type: str = "image/jpeg") -> str:
    """Wrap encoded bytes as a base64 data URL."""
    return f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"


def from_data_url(url: str) -> Tuple[str, bytes]:
    """
    Split a base64 data URL into (mime type, raw bytes).

    Raises:
        DecodeFailure: If the URL is not a base64 data URL
    """
    if not url.startswith("data:") or "," not in url:
        raise DecodeFailure("Not a data URL")

    header, payload = url[5:].split(",", 1)
    parts = header.split(";")
    if "base64" not in parts[1:]:
        raise DecodeFailure("Only base64 data URLs are supported")

    try:
        raw = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise DecodeFailure(f"Invalid base64 payload: {e}") from e

    return parts[0] or "text/plain", raw


# ============================================================================
# Page Preparation
# ============================================================================

def flatten_on_background(
    image: RasterImage,
    color: Tuple[int, int, int] = (255, 255, 255)
) -> RasterImage:
    """Alpha-composite the image over an opaque background color."""
    alpha = image.alpha.astype(np.float64)[:, :, None] / 255.0
    if np.all(alpha == 1.0):
        return image.copy()
    bg = np.asarray(color, dtype=np.float64)
    rgb = image.rgb.astype(np.float64) * alpha + bg * (1.0 - alpha)
    out = np.empty_like(image.pixels)
    out[:, :, :3] = np.clip(np.rint(rgb), 0, 255).astype(np.uint8)
    out[:, :, 3] = 255
    return RasterImage(out)


def fit_within(image: RasterImage, max_width: int, max_height: int) -> RasterImage:
    """Downscale (never upscale) so the image fits inside max_width x max_height."""
    w, h = image.size
    if w == 0 or h == 0:
        return image.copy()

    scale = min(max_width / w, max_height / h, 1.0)
    if scale >= 1.0:
        return image.copy()

    new_w = max(1, int(w * scale))
    new_h = max(1, int(h * scale))
    resized = cv2.resize(image.pixels, (new_w, new_h), interpolation=cv2.INTER_AREA)

    logger.debug(f"Resized page: {w}x{h} -> {new_w}x{new_h} (scale={scale:.3f})")
    return RasterImage(resized)
