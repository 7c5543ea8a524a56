"""
Per-pixel tone filters: brightness, contrast and a monochrome threshold.

All filters return a new image and leave the input untouched, so an
interactive caller can always recompute from the original rectified page.
Alpha is never modified.
"""

import logging

import numpy as np

from .raster import RasterImage

logger = logging.getLogger(__name__)

# Perceptual luminance weights (ITU-R BT.601)
LUMA_WEIGHTS = np.array([0.299, 0.587, 0.114], dtype=np.float64)
MONOCHROME_THRESHOLD = 128


def _check_range(name: str, value: float, low: float = -100, high: float = 100):
    if not low <= value <= high:
        raise ValueError(f"{name} must be in [{low}, {high}], got {value}")


def _with_rgb(image: RasterImage, rgb: np.ndarray) -> RasterImage:
    out = image.pixels.copy()
    out[:, :, :3] = np.clip(np.rint(rgb), 0, 255).astype(np.uint8)
    return RasterImage(out)


def contrast_factor(contrast: float) -> float:
    """Multiplier for a contrast value in [-100, 100]; exactly 1.0 at 0."""
    return (259.0 * (contrast + 255.0)) / (255.0 * (259.0 - contrast))


def apply_brightness(image: RasterImage, brightness: float) -> RasterImage:
    """Add brightness/100 * 255 to R, G and B, clamped to [0, 255]."""
    _check_range("brightness", brightness)
    if brightness == 0:
        return image.copy()
    offset = brightness / 100.0 * 255.0
    return _with_rgb(image, image.rgb.astype(np.float64) + offset)


def apply_contrast(image: RasterImage, contrast: float) -> RasterImage:
    """Scale R, G and B around 128 by contrast_factor(contrast)."""
    _check_range("contrast", contrast)
    factor = contrast_factor(contrast)
    if factor == 1.0:
        return image.copy()
    rgb = image.rgb.astype(np.float64)
    return _with_rgb(image, factor * (rgb - 128.0) + 128.0)


def apply_monochrome(image: RasterImage) -> RasterImage:
    """Hard black/white threshold on perceptual luminance."""
    luminance = image.rgb.astype(np.float64) @ LUMA_WEIGHTS
    bw = np.where(luminance > MONOCHROME_THRESHOLD, 255, 0).astype(np.uint8)
    out = image.pixels.copy()
    out[:, :, :3] = bw[:, :, None]
    return RasterImage(out)


def apply_tone(
    image: RasterImage,
    brightness: float = 0,
    contrast: float = 0,
    monochrome: bool = False
) -> RasterImage:
    """
    Apply brightness, then contrast, then the optional monochrome threshold.

    Args:
        image: Source image (not modified)
        brightness: Offset in [-100, 100]
        contrast: Contrast in [-100, 100]
        monochrome: Threshold to pure black and white

    Returns:
        New filtered image
    """
    result = apply_brightness(image, brightness)
    result = apply_contrast(result, contrast)
    if monochrome:
        result = apply_monochrome(result)

    logger.debug(
        f"Applied tone (brightness={brightness}, contrast={contrast}, "
        f"monochrome={monochrome}) to {image.width}x{image.height} image"
    )
    return result
