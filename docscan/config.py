"""
Configuration and constants for the document scanning pipeline.

This module provides:
- Global logging configuration
- Processing parameters for detection, rectification and tone filters
- Page preparation and PDF settings
- Import boundary limits
"""

import os
from dataclasses import dataclass, field
from typing import Tuple
import logging

# ============================================================================
# Logging Configuration
# ============================================================================

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger("docscan")


# ============================================================================
# Processing Configuration
# ============================================================================

@dataclass
class DetectionConfig:
    """Corner detection configuration."""
    margin_ratio: float = 0.1  # Fraction of the shorter side
    search_stride: int = 5  # Grid step of the regional maxima search


@dataclass
class RectifyConfig:
    """Perspective rectification configuration."""
    jpeg_quality: float = 0.95


@dataclass
class ToneConfig:
    """Tone filter configuration."""
    jpeg_quality: float = 0.95
    brightness_range: Tuple[int, int] = (-100, 100)
    contrast_range: Tuple[int, int] = (-100, 100)


@dataclass
class DocumentConfig:
    """PDF assembly configuration."""
    # A4 at 200 DPI
    max_width: int = 1654
    max_height: int = 2339
    jpeg_quality: float = 0.92
    pdf_version: str = "1.4"
    background: Tuple[int, int, int] = (255, 255, 255)


@dataclass
class ImportConfig:
    """Caller-side import limits."""
    allowed_formats: Tuple[str, ...] = ("JPEG", "PNG", "WEBP")
    max_bytes: int = 10 * 1024 * 1024


@dataclass
class PipelineConfig:
    """Main pipeline configuration."""
    detection: DetectionConfig = field(default_factory=DetectionConfig)
    rectify: RectifyConfig = field(default_factory=RectifyConfig)
    tone: ToneConfig = field(default_factory=ToneConfig)
    document: DocumentConfig = field(default_factory=DocumentConfig)
    imports: ImportConfig = field(default_factory=ImportConfig)

    # Global settings
    debug_mode: bool = False


# ============================================================================
# Default Configuration Instance
# ============================================================================

def get_config() -> PipelineConfig:
    """Get the default pipeline configuration with environment overrides."""
    config = PipelineConfig()

    if os.environ.get("DOCSCAN_DEBUG", "").lower() == "true":
        config.debug_mode = True

    quality = os.environ.get("DOCSCAN_JPEG_QUALITY")
    if quality:
        try:
            value = float(quality)
        except ValueError:
            logger.warning(f"Ignoring invalid DOCSCAN_JPEG_QUALITY: {quality!r}")
        else:
            if 0.0 < value <= 1.0:
                config.document.jpeg_quality = value
            else:
                logger.warning(f"DOCSCAN_JPEG_QUALITY out of range (0, 1]: {value}")

    for env_name, attr in (("DOCSCAN_MAX_PAGE_WIDTH", "max_width"),
                           ("DOCSCAN_MAX_PAGE_HEIGHT", "max_height")):
        raw = os.environ.get(env_name)
        if raw:
            if raw.isdigit() and int(raw) > 0:
                setattr(config.document, attr, int(raw))
            else:
                logger.warning(f"Ignoring invalid {env_name}: {raw!r}")

    return config


# ============================================================================
# Supported Input Formats
# ============================================================================

class ImageFormat:
    """Image format identifiers as reported by Pillow."""
    JPEG = "JPEG"
    PNG = "PNG"
    WEBP = "WEBP"


MIME_TYPES = {
    ImageFormat.JPEG: "image/jpeg",
    ImageFormat.PNG: "image/png",
    ImageFormat.WEBP: "image/webp",
}
