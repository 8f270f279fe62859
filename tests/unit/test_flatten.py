"""Tests for document flattening."""

import pytest

from stepwright.flatten import flatten, match_asset
from stepwright.types import AssetPayload


def _assets(*keys: str) -> dict[str, AssetPayload]:
    return {key: AssetPayload(key=key, mime_type="image/png", data=b"x") for key in keys}


class TestMatchAsset:
    """Tests for img src -> asset key matching."""

    def test_exact_match(self) -> None:
        assert match_asset("images/shot.png", _assets("images/shot.png")) == "images/shot.png"

    def test_relative_prefix_is_ignored(self) -> None:
        """Test ./ and ../ prefixes are normalized away."""
        assets = _assets("images/shot.png")
        assert match_asset("./images/shot.png", assets) == "images/shot.png"
        assert match_asset("../images/shot.png", assets) == "images/shot.png"

    def test_path_suffix_match(self) -> None:
        """Test a src relative to a nested document finds the asset."""
        assets = _assets("docs/images/shot.png")
        assert match_asset("images/shot.png", assets) == "docs/images/shot.png"

    def test_filename_match(self) -> None:
        """Test falling back to a bare filename match."""
        assets = _assets("media/shot.png")
        assert match_asset("other/dir/shot.png", assets) == "media/shot.png"

    def test_percent_encoded_src(self) -> None:
        assets = _assets("images/my shot.png")
        assert match_asset("images/my%20shot.png", assets) == "images/my shot.png"

    @pytest.mark.parametrize(
        "src", ["https://example.com/shot.png", "data:image/png;base64,AAAA", "", "missing.png"]
    )
    def test_no_match(self, src: str) -> None:
        """Test remote, inline and unknown sources do not match."""
        assert match_asset(src, _assets("images/shot.png")) is None


class TestFlatten:
    """Tests for flatten."""

    def test_structure_and_placeholders(self, sample_html: str) -> None:
        """Test headings, paragraphs, lists and images are flattened."""
        result = flatten(sample_html, _assets("images/shot.png"))

        assert result.text == (
            "Install Guide\n\n"
            "Download the installer.\n\n"
            "[IMAGE:image-1]\n"
            "- Open it\n"
            "- Click next"
        )
        assert result.placeholders == {"image-1": "images/shot.png"}

    def test_script_and_style_discarded(self, sample_html: str) -> None:
        result = flatten(sample_html)

        assert "alert" not in result.text
        assert "color" not in result.text

    def test_tokens_follow_document_order(self) -> None:
        """Test numbering follows the document, not the asset map."""
        html = '<p><img src="b.png"></p><p><img src="a.png"></p><p><img src="b.png"></p>'

        result = flatten(html, _assets("a.png", "b.png"))

        assert result.placeholders == {"image-1": "b.png", "image-2": "a.png", "image-3": "b.png"}
        assert result.text == "[IMAGE:image-1]\n\n[IMAGE:image-2]\n\n[IMAGE:image-3]"

    def test_unmatched_image_is_dropped(self) -> None:
        """Test an img without an asset produces no token and no error."""
        html = '<p>Before <img src="missing.png"> after <img src="a.png"></p>'

        result = flatten(html, _assets("a.png"))

        assert result.text == "Before after [IMAGE:image-1]"
        assert result.placeholders == {"image-1": "a.png"}

    def test_inline_image_in_paragraph(self) -> None:
        result = flatten('<p>Click <img src="a.png"> here</p>', _assets("a.png"))

        assert result.text == "Click [IMAGE:image-1] here"

    def test_line_breaks(self) -> None:
        assert flatten("<div>line one<br>line two</div>").text == "line one\nline two"

    def test_nested_lists(self) -> None:
        html = "<ul><li>Parent<ul><li>Child</li></ul></li><li>Next</li></ul>"

        assert flatten(html).text == "- Parent\n- Child\n- Next"

    def test_comments_ignored(self) -> None:
        assert flatten("<p>Visible</p><!-- hidden -->").text == "Visible"

    def test_empty_document(self) -> None:
        result = flatten("")

        assert result.text == ""
        assert result.placeholders == {}
