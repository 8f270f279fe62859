"""Tests for archive extraction."""

import io
import struct
import zipfile
from pathlib import Path

import pytest
from conftest import make_png, make_zip

from stepwright.archive import classify_entry, extract_from_archive, normalize_key
from stepwright.exceptions import ArchiveError, NoDocumentFoundError


class TestClassifyEntry:
    """Tests for entry classification by extension."""

    @pytest.mark.parametrize("name", ["index.html", "docs/PAGE.HTM", "a.htm"])
    def test_documents(self, name: str) -> None:
        """Test that markup files are documents regardless of case."""
        assert classify_entry(name) == "document"

    @pytest.mark.parametrize(
        "name", ["a.png", "b.JPG", "c.jpeg", "d.gif", "e.webp", "f.svg"]
    )
    def test_images(self, name: str) -> None:
        """Test that supported image types are images."""
        assert classify_entry(name) == "image"

    @pytest.mark.parametrize("name", ["notes.txt", "style.css", "README", "doc.pdf"])
    def test_other_entries_ignored(self, name: str) -> None:
        """Test that anything else is not classified."""
        assert classify_entry(name) is None

    def test_normalize_key(self) -> None:
        """Test backslashes and leading slashes are normalized."""
        assert normalize_key("\\images\\shot.png") == "images/shot.png"
        assert normalize_key("/a/b.png") == "a/b.png"


class TestExtractFromArchive:
    """Tests for extract_from_archive."""

    def test_partitions_documents_and_assets(self, sample_archive: bytes) -> None:
        """Test documents, images and ignored entries are separated."""
        result = extract_from_archive(sample_archive)

        assert "Install Guide" in result.document_text
        assert result.document_names == ["guide.html"]
        assert list(result.assets) == ["images/shot.png"]
        asset = result.assets["images/shot.png"]
        assert asset.mime_type == "image/png"
        assert asset.data == make_png()

    def test_documents_joined_in_archive_order(self) -> None:
        """Test multiple documents are concatenated with blank lines."""
        data = make_zip({"b.html": "<p>B</p>", "a.html": "<p>A</p>"})

        result = extract_from_archive(data)

        assert result.document_text == "<p>B</p>\n\n<p>A</p>"
        assert result.document_names == ["b.html", "a.html"]

    def test_no_documents_is_fatal(self) -> None:
        """Test an archive with only images raises NoDocumentFoundError."""
        data = make_zip({"a.png": make_png(), "notes.txt": "x"})

        with pytest.raises(NoDocumentFoundError) as exc_info:
            extract_from_archive(data)

        assert exc_info.value.entry_count == 2
        assert isinstance(exc_info.value, ArchiveError)

    def test_macos_metadata_is_not_a_document(self) -> None:
        """Test __MACOSX resource forks are skipped."""
        data = make_zip({"__MACOSX/._guide.html": b"\x00\x05", "img.png": make_png()})

        with pytest.raises(NoDocumentFoundError):
            extract_from_archive(data)

    def test_corrupt_archive_raises(self) -> None:
        """Test non-zip bytes raise ArchiveError."""
        with pytest.raises(ArchiveError):
            extract_from_archive(b"this is not a zip file")

    def test_reads_from_path(self, tmp_path: Path, sample_archive: bytes) -> None:
        """Test a filesystem path is accepted."""
        path = tmp_path / "import.zip"
        path.write_bytes(sample_archive)

        result = extract_from_archive(path)

        assert "images/shot.png" in result.assets

    def test_utf8_bom_is_removed(self) -> None:
        """Test a UTF-8 BOM does not leak into the text."""
        data = make_zip({"a.html": "﻿<p>Hi</p>".encode()})

        assert extract_from_archive(data).document_text == "<p>Hi</p>"

    def test_unreadable_image_is_skipped(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test a failing image entry is skipped while the rest continue."""
        data = make_zip(
            {"a.html": "<p>A</p>", "bad.png": make_png(), "good.png": make_png()}
        )
        original_read = zipfile.ZipFile.read

        def flaky_read(self, name, pwd=None):
            filename = name.filename if isinstance(name, zipfile.ZipInfo) else name
            if filename == "bad.png":
                raise zipfile.BadZipFile("Bad CRC-32")
            return original_read(self, name, pwd)

        monkeypatch.setattr(zipfile.ZipFile, "read", flaky_read)

        result = extract_from_archive(data)

        assert list(result.assets) == ["good.png"]
        assert result.skipped == ["bad.png"]

    def test_corrupt_deflate_image_is_skipped(self) -> None:
        """Test an image whose compressed bytes are garbage is skipped."""
        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as archive:
            archive.writestr("doc.html", "<p>Still here</p>")
            archive.writestr("img.png", b"\x89PNG" + b"A" * 4000)
        data = bytearray(buffer.getvalue())
        with zipfile.ZipFile(io.BytesIO(bytes(data))) as archive:
            info = archive.getinfo("img.png")
        name_len, extra_len = struct.unpack(
            "<HH", data[info.header_offset + 26 : info.header_offset + 30]
        )
        start = info.header_offset + 30 + name_len + extra_len
        # 0xff starts a deflate block of the reserved type
        data[start : start + info.compress_size] = b"\xff" * info.compress_size

        result = extract_from_archive(bytes(data))

        assert result.skipped == ["img.png"]
        assert result.assets == {}
        assert "Still here" in result.document_text
