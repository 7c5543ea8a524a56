"""
Minimal PDF writer for image-only documents.

Each page embeds one JPEG as a /DCTDecode image XObject and a short
content stream that paints it over the whole page. Objects are collected
in a PdfObjectGraph first; serialization then walks them once, recording
every offset from the running byte length of the output.

Object layout for n pages:
    1            catalog
    2            page tree
    3 + 3i       page i
    4 + 3i       image XObject for page i
    5 + 3i       content stream for page i
"""

import io
import logging
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple, Union

from PIL import Image, UnidentifiedImageError

from ..config import DocumentConfig
from ..exceptions import DecodeFailure
from .codec import decode_image, encode_jpeg, fit_within, from_data_url
from .raster import RasterImage

logger = logging.getLogger(__name__)

# Comment line of bytes above 0x7F marking the file as binary
BINARY_MARKER = b"%\xe2\xe3\xcf\xd3\n"
XREF_ENTRY_LENGTH = 20


# ============================================================================
# Object Descriptors
# ============================================================================

def ref(obj_id: int) -> str:
    """Indirect reference to an object."""
    return f"{obj_id} 0 R"


def pdf_dict(entries: Sequence[Tuple[str, str]]) -> str:
    """Format (key, value) pairs as a PDF dictionary."""
    body = " ".join(f"/{key} {value}" for key, value in entries)
    return f"<< {body} >>"


@dataclass
class DictObject:
    """An indirect object whose body is a single dictionary."""
    entries: List[Tuple[str, str]]

    def body(self) -> bytes:
        return pdf_dict(self.entries).encode("ascii")


@dataclass
class StreamObject:
    """A stream object; /Length is filled in from the raw payload size."""
    data: bytes
    entries: List[Tuple[str, str]] = field(default_factory=list)

    def body(self) -> bytes:
        header = pdf_dict(self.entries + [("Length", str(len(self.data)))])
        return header.encode("ascii") + b"\nstream\n" + self.data + b"\nendstream"


PdfObject = Union[DictObject, StreamObject]


class PdfObjectGraph:
    """
    Collects indirect objects and serializes them with a byte-exact xref.

    Ids are handed out sequentially from 1 by reserve(); objects can be
    defined in any order once their id is known, so forward references
    (a page pointing at its image) need no bookkeeping by the caller.
    """

    def __init__(self, version: str = "1.4"):
        self.version = version
        self._objects: Dict[int, Optional[PdfObject]] = {}

    def reserve(self) -> int:
        obj_id = len(self._objects) + 1
        self._objects[obj_id] = None
        return obj_id

    def define(self, obj_id: int, obj: PdfObject) -> int:
        if obj_id not in self._objects:
            raise KeyError(f"Object {obj_id} was never reserved")
        if self._objects[obj_id] is not None:
            raise ValueError(f"Object {obj_id} is already defined")
        self._objects[obj_id] = obj
        return obj_id

    def add(self, obj: PdfObject) -> int:
        return self.define(self.reserve(), obj)

    def __len__(self) -> int:
        return len(self._objects)

    def serialize(self, root_id: int) -> bytes:
        """
        Write header, objects, xref table and trailer.

        Raises:
            ValueError: If a reserved object was never defined or root_id is unknown
        """
        missing = [i for i, obj in self._objects.items() if obj is None]
        if missing:
            raise ValueError(f"Objects reserved but never defined: {missing}")
        if root_id not in self._objects:
            raise ValueError(f"Unknown root object: {root_id}")

        chunks: List[bytes] = [f"%PDF-{self.version}\n".encode("ascii"), BINARY_MARKER]
        position = sum(len(c) for c in chunks)
        offsets: List[int] = []

        for obj_id in sorted(self._objects):
            chunk = (
                f"{obj_id} 0 obj\n".encode("ascii")
                + self._objects[obj_id].body()
                + b"\nendobj\n"
            )
            offsets.append(position)
            chunks.append(chunk)
            position += len(chunk)

        xref_offset = position
        size = len(self._objects) + 1
        xref_lines = [f"xref\n0 {size}\n", "0000000000 65535 f \n"]
        xref_lines.extend(f"{offset:010d} 00000 n \n" for offset in offsets)
        chunks.append("".join(xref_lines).encode("ascii"))

        trailer = (
            f"trailer\n{pdf_dict([('Size', str(size)), ('Root', ref(root_id))])}\n"
            f"startxref\n{xref_offset}\n%%EOF\n"
        )
        chunks.append(trailer.encode("ascii"))

        return b"".join(chunks)


# ============================================================================
# Pages
# ============================================================================

@dataclass
class Page:
    """A finished page: JPEG bytes plus placement size in user-space units."""
    jpeg: bytes
    width: int
    height: int

    @classmethod
    def from_image(
        cls,
        image: RasterImage,
        config: Optional[DocumentConfig] = None
    ) -> "Page":
        """Flatten onto the page background, fit to the page box and encode."""
        config = config or DocumentConfig()
        fitted = fit_within(image, config.max_width, config.max_height)
        data = encode_jpeg(fitted, quality=config.jpeg_quality, background=config.background)
        return cls(jpeg=data, width=fitted.width, height=fitted.height)

    @classmethod
    def from_jpeg(
        cls,
        data: bytes,
        config: Optional[DocumentConfig] = None
    ) -> "Page":
        """
        Wrap existing JPEG bytes, reading the size from the image.

        The image stream is declared /DeviceRGB, so grayscale and CMYK
        JPEGs are decoded and re-encoded as RGB instead of passed through.

        Raises:
            DecodeFailure: If the data is not a readable JPEG
        """
        if not data.startswith(b"\xff\xd8"):
            raise DecodeFailure("Page payload is not JPEG data")
        try:
            with Image.open(io.BytesIO(data)) as img:
                mode, (width, height) = img.mode, img.size
        except (UnidentifiedImageError, OSError) as e:
            raise DecodeFailure(f"Could not read JPEG header: {e}") from e

        if mode != "RGB":
            logger.debug(f"Re-encoding {mode} JPEG page as RGB")
            return cls.from_image(decode_image(data), config)
        return cls(jpeg=bytes(data), width=width, height=height)

    @classmethod
    def from_data_url(
        cls,
        url: str,
        config: Optional[DocumentConfig] = None
    ) -> "Page":
        """Build a page from a data URL; non-JPEG payloads are re-encoded."""
        mime, raw = from_data_url(url)
        if mime == "image/jpeg":
            return cls.from_jpeg(raw, config)
        return cls.from_image(decode_image(raw), config)


def _as_page(item: Union[Page, RasterImage], config: DocumentConfig) -> Page:
    if isinstance(item, Page):
        return item
    if isinstance(item, RasterImage):
        return Page.from_image(item, config)
    raise TypeError(f"Expected Page or RasterImage, got {type(item).__name__}")


# ============================================================================
# Document Encoding
# ============================================================================

def content_stream(name: str, width: int, height: int) -> bytes:
    """Paint image resource `name` scaled over a width x height page."""
    return f"q\n{width} 0 0 {height} 0 0 cm\n/{name} Do\nQ\n".encode("ascii")


def build_document_graph(
    pages: Sequence[Page],
    version: str = "1.4"
) -> Tuple[PdfObjectGraph, int]:
    """
    Lay out the object graph for a list of pages.

    Returns:
        (graph, catalog id)
    """
    graph = PdfObjectGraph(version)
    catalog_id = graph.reserve()
    pages_id = graph.reserve()

    page_ids = []
    for index, page in enumerate(pages):
        page_id = graph.reserve()
        image_id = graph.reserve()
        contents_id = graph.reserve()
        name = f"Im{index}"

        graph.define(page_id, DictObject([
            ("Type", "/Page"),
            ("Parent", ref(pages_id)),
            ("Resources", pdf_dict([("XObject", pdf_dict([(name, ref(image_id))]))])),
            ("MediaBox", f"[0 0 {page.width} {page.height}]"),
            ("Contents", ref(contents_id)),
        ]))
        graph.define(image_id, StreamObject(page.jpeg, [
            ("Type", "/XObject"),
            ("Subtype", "/Image"),
            ("Width", str(page.width)),
            ("Height", str(page.height)),
            ("ColorSpace", "/DeviceRGB"),
            ("BitsPerComponent", "8"),
            ("Filter", "/DCTDecode"),
        ]))
        graph.define(contents_id, StreamObject(content_stream(name, page.width, page.height)))
        page_ids.append(page_id)

    kids = " ".join(ref(i) for i in page_ids)
    graph.define(catalog_id, DictObject([("Type", "/Catalog"), ("Pages", ref(pages_id))]))
    graph.define(pages_id, DictObject([
        ("Type", "/Pages"),
        ("Kids", f"[{kids}]"),
        ("Count", str(len(page_ids))),
    ]))
    return graph, catalog_id


def encode_document(
    pages: Sequence[Union[Page, RasterImage]],
    config: Optional[DocumentConfig] = None
) -> bytes:
    """
    Assemble pages, in order, into a single PDF.

    Args:
        pages: Finished pages; RasterImages are prepared with Page.from_image
        config: Page preparation and PDF settings

    Returns:
        Complete PDF bytes

    Raises:
        ValueError: If no pages are given
    """
    if not pages:
        raise ValueError("A document needs at least one page")
    config = config or DocumentConfig()

    prepared = [_as_page(p, config) for p in pages]
    graph, catalog_id = build_document_graph(prepared, config.pdf_version)
    data = graph.serialize(catalog_id)

    logger.info(f"Encoded PDF: {len(prepared)} page(s), {len(graph)} objects, {len(data)} bytes")
    return data


# ============================================================================
# Cross-Reference Reading
# ============================================================================

@dataclass
class XrefTable:
    """Parsed cross-reference section and trailer."""
    offsets: Dict[int, int]
    size: int
    root: int
    startxref: int


_TRAILER_RE = re.compile(rb"trailer\s*<<(.*?)>>\s*startxref\s+(\d+)\s+%%EOF", re.S)


def parse_xref(data: bytes) -> XrefTable:
    """
    Read the xref table and trailer of a PDF written by this module.

    Raises:
        ValueError: If the structure cannot be parsed
    """
    match = None
    for match in _TRAILER_RE.finditer(data):
        pass
    if match is None:
        raise ValueError("No trailer found")

    trailer, startxref = match.group(1), int(match.group(2))
    size_match = re.search(rb"/Size\s+(\d+)", trailer)
    root_match = re.search(rb"/Root\s+(\d+)\s+0\s+R", trailer)
    if not size_match or not root_match:
        raise ValueError("Trailer is missing /Size or /Root")

    if data[startxref:startxref + 5] != b"xref\n":
        raise ValueError(f"startxref {startxref} does not point at an xref section")

    pos = startxref + 5
    line_end = data.index(b"\n", pos)
    first, count = (int(v) for v in data[pos:line_end].split())
    pos = line_end + 1

    offsets: Dict[int, int] = {}
    for obj_id in range(first, first + count):
        entry = data[pos:pos + XREF_ENTRY_LENGTH]
        if len(entry) != XREF_ENTRY_LENGTH:
            raise ValueError(f"Truncated xref entry for object {obj_id}")
        offset, _generation, flag = entry.split()
        if flag == b"n":
            offsets[obj_id] = int(offset)
        pos += XREF_ENTRY_LENGTH

    return XrefTable(
        offsets=offsets,
        size=int(size_match.group(1)),
        root=int(root_match.group(1)),
        startxref=startxref,
    )


def verify_offsets(data: bytes) -> List[int]:
    """Return ids whose xref offset does not land on '<id> 0 obj'."""
    table = parse_xref(data)
    bad = []
    for obj_id, offset in sorted(table.offsets.items()):
        token = f"{obj_id} 0 obj".encode("ascii")
        if data[offset:offset + len(token)] != token:
            bad.append(obj_id)
    return bad
