"""
Caller-side I/O utilities for the document scanning pipeline.

Handles:
- Format sniffing and the JPEG/PNG/WebP allow-list
- Image loading and validation
- Writing finished documents
- Directory management
"""

import io
import logging
from pathlib import Path
from typing import Iterable, List, Optional, Union

from PIL import Image, UnidentifiedImageError

from ..config import ImportConfig, MIME_TYPES
from ..exceptions import UnsupportedFormat
from .codec import decode_image
from .raster import RasterImage

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = ('.jpg', '.jpeg', '.png', '.webp')


# ============================================================================
# Format Checks
# ============================================================================

def detect_image_format(data: bytes) -> Optional[str]:
    """
    Identify the container format of encoded image bytes.

    Returns:
        Pillow format name ('JPEG', 'PNG', 'WEBP', ...) or None if unknown
    """
    try:
        with Image.open(io.BytesIO(data)) as img:
            return img.format
    except (UnidentifiedImageError, OSError):
        return None


def normalize_format(tag: str) -> str:
    """Map a MIME type, extension or format name to a Pillow format name."""
    tag = tag.strip().lower()
    if tag.startswith("image/"):
        tag = tag[len("image/"):]
    tag = tag.lstrip(".")
    if tag in ("jpg", "jpeg", "pjpeg"):
        return "JPEG"
    return tag.upper()


def check_format(tag: str, config: Optional[ImportConfig] = None) -> str:
    """
    Check a format tag against the allow-list.

    Raises:
        UnsupportedFormat: If the format is not allowed
    """
    config = config or ImportConfig()
    fmt = normalize_format(tag)
    if fmt not in config.allowed_formats:
        raise UnsupportedFormat(fmt, config.allowed_formats)
    return fmt


def validate_upload(
    data: bytes,
    declared: Optional[str] = None,
    config: Optional[ImportConfig] = None
) -> str:
    """
    Validate an imported image before it reaches the pipeline.

    Args:
        data: Encoded image bytes
        declared: Optional MIME type or extension supplied by the caller
        config: Import limits

    Returns:
        The detected format name

    Raises:
        UnsupportedFormat: If the declared or detected format is not allowed
        ValueError: If the payload exceeds the size limit
    """
    config = config or ImportConfig()

    if declared is not None:
        check_format(declared, config)

    if len(data) > config.max_bytes:
        limit_mb = config.max_bytes / (1024 * 1024)
        raise ValueError(f"File size must be less than {limit_mb:g}MB ({len(data)} bytes)")

    detected = detect_image_format(data)
    if detected is None:
        raise UnsupportedFormat("unknown", config.allowed_formats)
    return check_format(detected, config)


# ============================================================================
# Image Loading
# ============================================================================

def load_image(
    image_path: Union[str, Path],
    config: Optional[ImportConfig] = None
) -> RasterImage:
    """
    Load and validate an image file.

    Args:
        image_path: Path to a JPEG, PNG or WebP file

    Returns:
        Decoded RGBA image

    Raises:
        FileNotFoundError: If image file doesn't exist
        UnsupportedFormat: If the format is not allowed
        DecodeFailure: If the image cannot be decoded
    """
    image_path = Path(image_path)
    if not image_path.exists():
        raise FileNotFoundError(f"Image file not found: {image_path}")

    data = image_path.read_bytes()
    fmt = validate_upload(data, declared=image_path.suffix or None, config=config)
    image = decode_image(data)

    logger.debug(f"Loaded image: {image_path} ({MIME_TYPES.get(fmt, fmt)}), "
                 f"{image.width}x{image.height}")
    return image


def expand_inputs(inputs: Iterable[Union[str, Path]], sort: bool = True) -> List[Path]:
    """
    Expand a mix of files and folders into a list of image paths.

    Folders contribute their image files (sorted alphabetically if sort).
    """
    paths: List[Path] = []
    for item in inputs:
        item = Path(item)
        if item.is_dir():
            found = [f for f in item.iterdir() if f.suffix.lower() in IMAGE_EXTENSIONS]
            if sort:
                found = sorted(found)
            logger.info(f"Found {len(found)} images in {item}")
            paths.extend(found)
        else:
            paths.append(item)
    return paths


# ============================================================================
# Output
# ============================================================================

def save_document(data: bytes, output_path: Union[str, Path]) -> Path:
    """
    Write finished document bytes to disk.

    Returns:
        Path to the saved file
    """
    output_path = Path(output_path)
    ensure_dir(output_path.parent)
    output_path.write_bytes(data)
    logger.debug(f"Saved document: {output_path} ({len(data)} bytes)")
    return output_path


def ensure_dir(path: Union[str, Path]) -> Path:
    """
    Ensure a directory exists, creating it if necessary.

    Args:
        path: Path to the directory

    Returns:
        Path object for the directory
    """
    path = Path(path)
    path.mkdir(parents=True, exist_ok=True)
    return path
