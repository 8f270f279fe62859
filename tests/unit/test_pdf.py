"""Tests for PDF extraction."""

import fitz
import pytest
from conftest import make_png

from stepwright.exceptions import PdfExtractionError
from stepwright.pdf import PAGE_SEPARATOR, extract_from_pdf


def _make_pdf(with_image: bool = True) -> bytes:
    doc = fitz.open()
    first = doc.new_page()
    first.insert_text((72, 72), "Open the settings panel")
    if with_image:
        first.insert_image(fitz.Rect(72, 100, 172, 200), stream=make_png())
    second = doc.new_page()
    second.insert_text((72, 72), "Save and restart")
    data = doc.tobytes()
    doc.close()
    return data


class TestExtractFromPdf:
    """Tests for extract_from_pdf."""

    def test_text_and_image_markers(self) -> None:
        flat, assets = extract_from_pdf(_make_pdf())

        pages = flat.text.split(PAGE_SEPARATOR)
        assert len(pages) == 2
        assert pages[0].startswith("Open the settings panel")
        assert pages[0].endswith("[Images: [IMAGE:image-1]]")
        assert pages[1] == "Save and restart"
        key = flat.placeholders["image-1"]
        assert key.startswith("page-1/")
        assert assets[key].mime_type.startswith("image/")

    def test_no_images(self) -> None:
        flat, assets = extract_from_pdf(_make_pdf(with_image=False))

        assert flat.placeholders == {}
        assert assets == {}
        assert "[IMAGE:" not in flat.text

    def test_reads_from_path(self, tmp_path) -> None:
        path = tmp_path / "guide.pdf"
        path.write_bytes(_make_pdf(with_image=False))

        flat, _ = extract_from_pdf(path)

        assert "Save and restart" in flat.text

    def test_not_a_pdf(self) -> None:
        with pytest.raises(PdfExtractionError):
            extract_from_pdf(b"definitely not a pdf")
