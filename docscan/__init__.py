"""
Document Scanning Pipeline
==========================

Turns photographed or imported document pages into a single PDF without
server-side rendering.

Main components:
- Corner detection (Sobel edge map, regional maxima search)
- Perspective rectification (homography via Gaussian elimination)
- Tone filters (brightness, contrast, monochrome)
- PDF assembly with embedded JPEG pages
"""

__version__ = "1.0.0"
__author__ = "Document Scanning Team"

from .exceptions import (
    DocScanError, SingularSystem, SingularSystemError,
    DecodeFailure, EncodeFailure, UnsupportedFormat,
)
from .utils.raster import RasterImage, Point, CornerSet
from .utils.corners import detect_corners
from .utils.rectify import rectify
from .utils.tone import apply_tone
from .utils.pdf import Page, encode_document
