"""
End-to-end integration tests for the Document Scanning Pipeline.
"""

import pytest
import numpy as np
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))


@pytest.fixture
def photographed_page():
    """A white page with text bars, photographed at an angle on a dark desk."""
    import cv2
    from docscan.utils.raster import RasterImage

    page = np.full((280, 200, 3), 245, dtype=np.uint8)
    for y in range(40, 240, 25):
        cv2.rectangle(page, (25, y), (175, y + 8), (30, 30, 30), -1)

    src = np.float32([[0, 0], [200, 0], [200, 280], [0, 280]])
    quad = np.float32([[70, 50], [330, 70], [350, 340], [45, 320]])
    M = cv2.getPerspectiveTransform(src, quad)
    frame = cv2.warpPerspective(page, M, (400, 400), borderValue=(25, 25, 25))

    corners_pct = [(x / 400 * 100, y / 400 * 100) for x, y in quad]
    return RasterImage(frame), corners_pct


class TestPipeline:
    """Test the public capability surface end to end."""

    def test_blank_page_document(self):
        """100x100 white image: fallback corners, rectify, one-page PDF."""
        from docscan import RasterImage, detect_corners, rectify, encode_document
        from docscan.utils.pdf import parse_xref, verify_offsets

        image = RasterImage.blank(100, 100)

        corners = detect_corners(image)
        page = rectify(image, corners)
        data = encode_document([page])
        table = parse_xref(data)

        assert page.size == (80, 80)
        assert table.size == 6  # 5 objects plus the free entry
        assert len(table.offsets) == 5
        assert b"/Count 1" in data
        assert verify_offsets(data) == []

    def test_photographed_page(self, photographed_page):
        """Rectifying with the true corners recovers an upright page."""
        from docscan import CornerSet, rectify, apply_tone

        frame, corners_pct = photographed_page

        result = rectify(frame, CornerSet(corners_pct))

        assert result.width >= 280 and result.height >= 260
        # left margin of the page, clear of the text bars
        margin = result.rgb[result.height // 3: 2 * result.height // 3,
                            result.width * 3 // 100: result.width // 10]
        assert margin.mean() > 200
        bw = apply_tone(result, monochrome=True)
        assert set(np.unique(bw.rgb)) <= {0, 255}

    def test_detected_corners_are_sane(self, photographed_page):
        """Detection returns four ordered points inside the frame."""
        from docscan import detect_corners

        frame, _ = photographed_page

        corners = detect_corners(frame)

        tl, tr, br, bl = corners
        assert tl.x < tr.x and bl.x < br.x
        assert tl.y < bl.y and tr.y < br.y

    def test_degenerate_corners_surface(self):
        """Collinear corners surface as a typed failure, not a bad image."""
        from docscan import RasterImage, CornerSet, rectify
        from docscan.exceptions import DocScanError

        image = RasterImage.blank(50, 50)
        corners = CornerSet([(10, 50), (50, 50), (90, 50), (30, 50)])

        with pytest.raises(DocScanError):
            rectify(image, corners)


class TestPageEditor:
    """Test interactive recomputation."""

    def test_detects_on_creation(self):
        from docscan.config import PipelineConfig
        from docscan.utils.raster import RasterImage
        from docscan.utils.assembler import PageEditor

        editor = PageEditor(RasterImage.blank(100, 100), config=PipelineConfig())

        assert [(p.x, p.y) for p in editor.corners] == [
            (10.0, 10.0), (90.0, 10.0), (90.0, 90.0), (10.0, 90.0)
        ]

    def test_move_corner(self):
        from docscan.config import PipelineConfig
        from docscan.utils.raster import RasterImage
        from docscan.utils.assembler import PageEditor

        editor = PageEditor(RasterImage.blank(100, 100), config=PipelineConfig())
        editor.move_corner(0, (-20, 0))
        editor.move_corner(1, (100, -3))
        editor.move_corner(2, (100, 100))
        editor.move_corner(3, (0, 130))

        assert editor.corners[0].x == 0.0
        assert editor.corners[3].y == 100.0
        assert editor.rectified().size == (100, 100)

    def test_redetect_restores_corners(self, photographed_page):
        """Rerunning detection undoes manual corner edits."""
        from docscan.config import PipelineConfig
        from docscan.utils.assembler import PageEditor

        frame, _ = photographed_page
        editor = PageEditor(frame, config=PipelineConfig())
        detected = editor.corners

        editor.move_corner(0, (0, 0))
        editor.move_corner(2, (100, 100))

        assert editor.corners != detected
        assert editor.redetect() == detected
        assert editor.corners == detected

    def test_reset_corners(self, photographed_page):
        """Resetting gives the margin-inset defaults, not a fresh search."""
        from docscan.config import PipelineConfig
        from docscan.utils.corners import default_corners
        from docscan.utils.assembler import PageEditor

        frame, _ = photographed_page
        editor = PageEditor(frame, config=PipelineConfig())

        editor.reset_corners()

        assert editor.corners == default_corners(frame.width, frame.height)

    def test_tone_never_compounds(self, photographed_page):
        """Setting the same tone twice gives the same image."""
        from docscan.config import PipelineConfig
        from docscan.utils.raster import CornerSet
        from docscan.utils.assembler import PageEditor

        frame, corners_pct = photographed_page
        editor = PageEditor(frame, CornerSet(corners_pct), config=PipelineConfig())

        editor.set_tone(brightness=30)
        first = editor.finished()
        editor.set_tone(brightness=30)
        second = editor.finished()
        editor.set_tone(brightness=0)

        assert first == second
        assert editor.finished() == editor.rectified()

    def test_source_untouched(self):
        from docscan.config import PipelineConfig
        from docscan.utils.raster import RasterImage
        from docscan.utils.assembler import PageEditor

        source = RasterImage.blank(60, 60, color=(10, 20, 30, 255))
        editor = PageEditor(source, config=PipelineConfig())
        editor.set_tone(brightness=80, monochrome=True)
        editor.finished()

        assert editor.source == source

    def test_tone_range_checked(self):
        from docscan.config import PipelineConfig
        from docscan.utils.raster import RasterImage
        from docscan.utils.assembler import PageEditor

        editor = PageEditor(RasterImage.blank(20, 20), config=PipelineConfig())

        with pytest.raises(ValueError):
            editor.set_tone(contrast=150)

    def test_closed_editor(self):
        """An abandoned edit refuses further work."""
        from docscan.config import PipelineConfig
        from docscan.utils.raster import RasterImage
        from docscan.utils.assembler import PageEditor

        editor = PageEditor(RasterImage.blank(20, 20), config=PipelineConfig())
        editor.close()

        with pytest.raises(RuntimeError):
            editor.rectified()
        with pytest.raises(RuntimeError):
            editor.redetect()
        with pytest.raises(RuntimeError):
            editor.reset_corners()

    def test_encoded_outputs(self):
        from docscan.config import PipelineConfig
        from docscan.utils.raster import RasterImage
        from docscan.utils.assembler import PageEditor

        editor = PageEditor(RasterImage.blank(50, 50), config=PipelineConfig())

        assert editor.rectified_jpeg().startswith(b"\xff\xd8")
        assert editor.finished_jpeg().startswith(b"\xff\xd8")


class TestDocumentAssembler:
    """Test page list management and building."""

    @pytest.fixture
    def assembler(self):
        from docscan.config import PipelineConfig
        from docscan.utils.raster import RasterImage
        from docscan.utils.assembler import DocumentAssembler

        assembler = DocumentAssembler(PipelineConfig())
        for width in (40, 50, 60):
            assembler.add_image(RasterImage.blank(width, 100))
        return assembler

    def test_pages_in_order(self, assembler):
        assert [p.width for p in assembler.pages] == [32, 40, 48]

    def test_move_and_remove(self, assembler):
        assembler.move_page(2, 0)
        assert [p.width for p in assembler.pages] == [48, 32, 40]

        removed = assembler.remove_page(1)
        assert removed.width == 32
        assert len(assembler) == 2

    def test_build(self, assembler):
        from docscan.utils.pdf import parse_xref, verify_offsets

        data = assembler.build()
        table = parse_xref(data)

        assert table.size == 12
        assert b"/Kids [3 0 R 6 0 R 9 0 R] /Count 3" in data
        assert verify_offsets(data) == []

    def test_build_empty(self):
        from docscan.config import PipelineConfig
        from docscan.utils.assembler import DocumentAssembler

        with pytest.raises(ValueError):
            DocumentAssembler(PipelineConfig()).build()


class TestCli:
    """Test the command-line interface."""

    @pytest.fixture
    def photo_files(self, tmp_path, photographed_page):
        import cv2

        frame, _ = photographed_page
        paths = []
        for i in range(2):
            path = tmp_path / f"page{i}.png"
            cv2.imwrite(str(path), cv2.cvtColor(frame.pixels, cv2.COLOR_RGBA2BGR))
            paths.append(path)
        return paths

    def test_scan_to_pdf(self, tmp_path, photo_files):
        from docscan.cli import main
        from docscan.utils.pdf import parse_xref

        out = tmp_path / "scan.pdf"
        with pytest.raises(SystemExit) as exc_info:
            main(["--input", *map(str, photo_files), "--output", str(out),
                  "--monochrome", "--verify", "--quiet"])

        assert exc_info.value.code == 0
        data = out.read_bytes()
        assert data.startswith(b"%PDF-1.4\n")
        assert parse_xref(data).size == 9

    def test_explicit_corners(self, tmp_path, photo_files):
        from docscan.cli import main

        out = tmp_path / "scan.pdf"
        with pytest.raises(SystemExit) as exc_info:
            main(["--input", str(photo_files[0]), "--output", str(out),
                  "--corners", "10,10,90,10,90,90,10,90", "--quiet"])

        assert exc_info.value.code == 0
        assert b"/MediaBox [0 0 320 320]" in out.read_bytes()

    def test_bad_corners(self, tmp_path, photo_files):
        from docscan.cli import main

        with pytest.raises(SystemExit) as exc_info:
            main(["--input", str(photo_files[0]), "--output", str(tmp_path / "x.pdf"),
                  "--corners", "1,2,3"])

        assert exc_info.value.code == 2

    def test_unsupported_input(self, tmp_path, photo_files):
        """A rejected page fails the run unless partial output is allowed."""
        from PIL import Image
        from docscan.cli import main

        gif = tmp_path / "page.gif"
        Image.new("RGB", (10, 10)).save(gif, format="GIF")
        out = tmp_path / "scan.pdf"

        with pytest.raises(SystemExit) as exc_info:
            main(["--input", str(photo_files[0]), str(gif), "--output", str(out), "--quiet"])
        assert exc_info.value.code == 1
        assert not out.exists()

        with pytest.raises(SystemExit) as exc_info:
            main(["--input", str(photo_files[0]), str(gif), "--output", str(out),
                  "--keep-partial", "--quiet"])
        assert exc_info.value.code == 1
        assert b"/Count 1" in out.read_bytes()


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
