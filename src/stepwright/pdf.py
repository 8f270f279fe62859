"""PDF import: page text plus rendered images, flattened like an archive."""

from __future__ import annotations

from pathlib import Path

from loguru import logger

from stepwright.constants import PLACEHOLDER_PREFIX
from stepwright.exceptions import PdfExtractionError
from stepwright.types import AssetPayload, FlattenResult, PlaceholderMap
from stepwright.utils.mime import get_mime_type
from stepwright.utils.text import normalize_whitespace

PAGE_SEPARATOR = "\n\n---\n\n"


def _open_document(source: bytes | Path | str):
    import fitz  # PyMuPDF

    try:
        if isinstance(source, (bytes, bytearray)):
            return fitz.open(stream=bytes(source), filetype="pdf")
        return fitz.open(Path(source))
    except Exception as e:
        raise PdfExtractionError(f"Cannot open PDF: {e}") from e


def _extract_page_images(
    doc, page, page_num: int, counter: int, seen_xrefs: set[int]
) -> list[AssetPayload]:
    """Extract images rendered on one page, skipping xrefs already seen."""
    try:
        image_info_list = page.get_image_info(xrefs=True)
    except Exception as e:
        logger.warning(f"Failed to list images on page {page_num}: {e}")
        return []

    payloads: list[AssetPayload] = []
    for info in image_info_list:
        xref = info.get("xref", 0)
        if not xref or xref in seen_xrefs:
            continue
        seen_xrefs.add(xref)
        try:
            base_image = doc.extract_image(xref)
        except Exception as e:
            logger.warning(f"Failed to extract image xref={xref} on page {page_num}: {e}")
            continue
        if not base_image:
            continue
        ext = base_image.get("ext", "png")
        number = counter + len(payloads) + 1
        payloads.append(
            AssetPayload(
                key=f"page-{page_num}/image-{number}.{ext}",
                mime_type=get_mime_type(ext),
                data=base_image["image"],
            )
        )
    return payloads


def extract_from_pdf(
    source: bytes | Path | str,
) -> tuple[FlattenResult, dict[str, AssetPayload]]:
    """Extract page text and images from a PDF.

    Each page's text is followed by the markers of the images drawn on
    it; pages are separated by ``---`` lines.

    Args:
        source: PDF bytes or a path.

    Returns:
        Tuple of (flattened text with placeholder map, assets by key).

    Raises:
        PdfExtractionError: If the PDF cannot be opened or read.
    """
    doc = _open_document(source)
    pages: list[str] = []
    placeholders: PlaceholderMap = {}
    assets: dict[str, AssetPayload] = {}
    seen_xrefs: set[int] = set()

    try:
        for page_num, page in enumerate(doc, start=1):
            try:
                text = normalize_whitespace(page.get_text("text"))
            except Exception as e:
                raise PdfExtractionError(f"Cannot read text on page {page_num}: {e}") from e

            markers = []
            for payload in _extract_page_images(doc, page, page_num, len(assets), seen_xrefs):
                token = f"{PLACEHOLDER_PREFIX}{len(placeholders) + 1}"
                placeholders[token] = payload.key
                assets[payload.key] = payload
                markers.append(f"[IMAGE:{token}]")

            if markers:
                text = f"{text}\n\n[Images: {', '.join(markers)}]".strip()
            pages.append(text)
        page_count = len(doc)
    finally:
        doc.close()

    logger.info(f"Extracted {page_count} page(s) and {len(assets)} image(s) from PDF")
    return FlattenResult(text=PAGE_SEPARATOR.join(pages), placeholders=placeholders), assets
