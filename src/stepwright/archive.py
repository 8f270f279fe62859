"""Archive extraction: split a zip into documents and image assets."""

from __future__ import annotations

import io
import zipfile
import zlib
from pathlib import Path, PurePosixPath
from typing import BinaryIO

from loguru import logger

from stepwright.constants import (
    DOCUMENT_EXTENSIONS,
    DOCUMENT_SEPARATOR,
    IMAGE_EXTENSIONS,
)
from stepwright.exceptions import ArchiveError, NoDocumentFoundError
from stepwright.types import AssetPayload, ExtractionResult
from stepwright.utils.mime import get_mime_type

# Resource-fork folders added by macOS Finder; their ._ files are not documents
_IGNORED_PREFIXES = ("__MACOSX/",)

ArchiveSource = bytes | bytearray | Path | str | BinaryIO

# Raised by ZipFile.read for damaged, encrypted or unsupported entries
_ENTRY_READ_ERRORS = (
    zipfile.BadZipFile,
    zlib.error,
    OSError,
    RuntimeError,
    NotImplementedError,
)


def normalize_key(name: str) -> str:
    """Normalize an archive entry name into an asset key (forward slashes)."""
    return name.replace("\\", "/").lstrip("/")


def classify_entry(name: str) -> str | None:
    """Return ``"document"``, ``"image"`` or None for an entry name."""
    suffix = PurePosixPath(normalize_key(name)).suffix.lower()
    if suffix in DOCUMENT_EXTENSIONS:
        return "document"
    if suffix in IMAGE_EXTENSIONS:
        return "image"
    return None


def _open_archive(source: ArchiveSource) -> zipfile.ZipFile:
    try:
        if isinstance(source, (bytes, bytearray)):
            return zipfile.ZipFile(io.BytesIO(bytes(source)))
        if isinstance(source, (str, Path)):
            return zipfile.ZipFile(Path(source))
        return zipfile.ZipFile(source)
    except (zipfile.BadZipFile, OSError) as e:
        raise ArchiveError(f"Cannot open archive: {e}") from e


def _decode_document(raw: bytes) -> str:
    try:
        return raw.decode("utf-8-sig")
    except UnicodeDecodeError:
        return raw.decode("utf-8", errors="replace")


def extract_from_archive(source: ArchiveSource) -> ExtractionResult:
    """Read every document and image entry from a zip archive.

    Documents are concatenated in archive order, separated by blank lines.
    Images become :class:`AssetPayload` objects keyed by their normalized
    archive path. Entries of any other type are ignored.

    Args:
        source: Raw archive bytes, a path, or a binary file object.

    Returns:
        ExtractionResult with the concatenated document text and assets.

    Raises:
        ArchiveError: If the archive itself (or a document entry) is corrupt.
        NoDocumentFoundError: If the archive holds no document entries.
    """
    documents: list[str] = []
    document_names: list[str] = []
    assets: dict[str, AssetPayload] = {}
    skipped: list[str] = []

    with _open_archive(source) as archive:
        entries = archive.infolist()
        for info in entries:
            if info.is_dir():
                continue
            key = normalize_key(info.filename)
            if key.startswith(_IGNORED_PREFIXES):
                logger.debug(f"Ignoring archive metadata entry: {key}")
                continue

            kind = classify_entry(key)
            if kind == "document":
                try:
                    raw = archive.read(info)
                except _ENTRY_READ_ERRORS as e:
                    raise ArchiveError(f"Cannot read document {key}: {e}") from e
                documents.append(_decode_document(raw))
                document_names.append(key)
            elif kind == "image":
                try:
                    data = archive.read(info)
                except _ENTRY_READ_ERRORS as e:
                    logger.warning(f"Failed to extract image {key}: {e}")
                    skipped.append(key)
                    continue
                assets[key] = AssetPayload(
                    key=key,
                    mime_type=get_mime_type(PurePosixPath(key).suffix),
                    data=data,
                )

    if not documents:
        raise NoDocumentFoundError(entry_count=len(entries))

    logger.info(
        f"Extracted {len(documents)} document(s) and {len(assets)} image(s)"
        + (f", skipped {len(skipped)}" if skipped else "")
    )
    return ExtractionResult(
        document_text=DOCUMENT_SEPARATOR.join(documents),
        assets=assets,
        document_names=document_names,
        skipped=skipped,
    )
