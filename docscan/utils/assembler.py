"""
Page editing and document assembly.

PageEditor wraps one captured image through corner adjustment,
rectification and tone filters. Every change recomputes from the untouched
source; nothing is cached between recomputations.

DocumentAssembler keeps the ordered list of finished pages and turns it
into a PDF.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Union

from ..config import PipelineConfig, get_config
from .codec import encode_jpeg
from .corners import default_corners, detect_corners
from .pdf import Page, encode_document
from .raster import CornerSet, PointLike, RasterImage
from .rectify import rectify
from .tone import apply_tone

logger = logging.getLogger(__name__)


# ============================================================================
# Data Classes
# ============================================================================

@dataclass
class ToneSettings:
    """Tone controls as shown to the user."""
    brightness: float = 0
    contrast: float = 0
    monochrome: bool = False

    def is_neutral(self) -> bool:
        return self.brightness == 0 and self.contrast == 0 and not self.monochrome


# ============================================================================
# Page Editor
# ============================================================================

class PageEditor:
    """
    Interactive state for one page.

    Holds the source image, the current corners (percent space) and the
    tone settings. rectified() and finished() are recomputed on each call.
    """

    def __init__(
        self,
        source: RasterImage,
        corners: Optional[CornerSet] = None,
        config: Optional[PipelineConfig] = None
    ):
        self.config = config or get_config()
        self._source = source.copy()
        self.tone = ToneSettings()
        self.closed = False
        self.corners = corners if corners is not None else self._detect()

    @property
    def source(self) -> RasterImage:
        return self._source

    def _detect(self) -> CornerSet:
        return detect_corners(self._source, self.config.detection)

    def _check_open(self):
        if self.closed:
            raise RuntimeError("Page editor has been closed")

    def redetect(self) -> CornerSet:
        """Rerun corner detection on the source image."""
        self._check_open()
        self.corners = self._detect()
        return self.corners

    def reset_corners(self) -> CornerSet:
        """Use the margin-inset default corners."""
        self._check_open()
        self.corners = default_corners(self._source.width, self._source.height,
                                       self.config.detection)
        return self.corners

    def move_corner(self, index: int, point: PointLike) -> CornerSet:
        """Replace one corner; the point is clamped to [0, 100]."""
        self._check_open()
        self.corners = self.corners.with_point(index, point)
        return self.corners

    def set_tone(
        self,
        brightness: Optional[float] = None,
        contrast: Optional[float] = None,
        monochrome: Optional[bool] = None
    ) -> ToneSettings:
        self._check_open()
        brightness = self.tone.brightness if brightness is None else brightness
        contrast = self.tone.contrast if contrast is None else contrast
        low, high = self.config.tone.brightness_range
        if not low <= brightness <= high:
            raise ValueError(f"brightness must be in [{low}, {high}], got {brightness}")
        low, high = self.config.tone.contrast_range
        if not low <= contrast <= high:
            raise ValueError(f"contrast must be in [{low}, {high}], got {contrast}")
        self.tone = ToneSettings(
            brightness=brightness,
            contrast=contrast,
            monochrome=self.tone.monochrome if monochrome is None else bool(monochrome),
        )
        return self.tone

    def rectified(self) -> RasterImage:
        self._check_open()
        return rectify(self._source, self.corners, self.config.rectify)

    def finished(self) -> RasterImage:
        """Rectified page with the current tone settings applied."""
        base = self.rectified()
        if self.tone.is_neutral():
            return base
        return apply_tone(base, self.tone.brightness, self.tone.contrast, self.tone.monochrome)

    def rectified_jpeg(self) -> bytes:
        return encode_jpeg(self.rectified(), self.config.rectify.jpeg_quality)

    def finished_jpeg(self) -> bytes:
        return encode_jpeg(self.finished(), self.config.tone.jpeg_quality)

    def to_page(self) -> Page:
        return Page.from_image(self.finished(), self.config.document)

    def close(self):
        """Abandon the edit; later calls raise."""
        self.closed = True


# ============================================================================
# Document Assembler
# ============================================================================

class DocumentAssembler:
    """
    Ordered collection of finished pages.

    Pages are encoded sequentially in list order when the document is built.
    """

    def __init__(self, config: Optional[PipelineConfig] = None):
        self.config = config or get_config()
        self.pages: List[Page] = []

    def __len__(self) -> int:
        return len(self.pages)

    def edit(self, image: RasterImage, corners: Optional[CornerSet] = None) -> PageEditor:
        """Start editing a captured image."""
        return PageEditor(image, corners=corners, config=self.config)

    def add_page(self, page: Union[Page, RasterImage, PageEditor]) -> Page:
        if isinstance(page, PageEditor):
            page = page.to_page()
        elif isinstance(page, RasterImage):
            page = Page.from_image(page, self.config.document)
        self.pages.append(page)
        logger.debug(f"Added page {len(self.pages)} ({page.width}x{page.height})")
        return page

    def add_image(
        self,
        image: RasterImage,
        corners: Optional[CornerSet] = None,
        brightness: float = 0,
        contrast: float = 0,
        monochrome: bool = False
    ) -> Page:
        """Run a captured image through the whole editor pipeline and append it."""
        editor = self.edit(image, corners)
        editor.set_tone(brightness, contrast, monochrome)
        return self.add_page(editor)

    def move_page(self, src: int, dst: int):
        page = self.pages.pop(src)
        self.pages.insert(dst, page)

    def remove_page(self, index: int) -> Page:
        return self.pages.pop(index)

    def build(self) -> bytes:
        """Encode all pages, in order, into one PDF."""
        logger.info(f"Building document from {len(self.pages)} page(s)")
        return encode_document(self.pages, self.config.document)
