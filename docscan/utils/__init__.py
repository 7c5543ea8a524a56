"""
Utility modules for the document scanning pipeline.
"""

from .raster import RasterImage, Point, CornerSet
from .linalg import solve_linear_system
from .homography import estimate_homography, apply_homography
from .corners import detect_corners, default_corners, sobel_edge_map
from .rectify import rectify
from .tone import apply_brightness, apply_contrast, apply_monochrome, apply_tone
from .codec import decode_image, encode_jpeg, to_data_url, from_data_url
from .pdf import Page, PdfObjectGraph, encode_document, parse_xref
from .io import load_image, validate_upload, save_document, ensure_dir
from .assembler import PageEditor, DocumentAssembler

__all__ = [
    # Data model
    "RasterImage", "Point", "CornerSet",
    # Geometry
    "solve_linear_system", "estimate_homography", "apply_homography",
    "detect_corners", "default_corners", "sobel_edge_map", "rectify",
    # Tone
    "apply_brightness", "apply_contrast", "apply_monochrome", "apply_tone",
    # Codec
    "decode_image", "encode_jpeg", "to_data_url", "from_data_url",
    # Document
    "Page", "PdfObjectGraph", "encode_document", "parse_xref",
    # IO
    "load_image", "validate_upload", "save_document", "ensure_dir",
    # Assembly
    "PageEditor", "DocumentAssembler",
]
