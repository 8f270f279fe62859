"""Tests for image compression."""

import io

import pytest
from conftest import make_noise_png, make_png
from loguru import logger
from PIL import Image

from stepwright import image as image_module
from stepwright.config import ImageConfig
from stepwright.image import ImageCompressor
from stepwright.types import AssetPayload


def _asset(data: bytes, key: str = "img.png", mime: str = "image/png") -> AssetPayload:
    return AssetPayload(key=key, mime_type=mime, data=data)


class TestImageCompressor:
    """Tests for ImageCompressor.compress."""

    def test_small_image_stays_within_budget(self) -> None:
        """Test a small image ends up under the size ceiling."""
        result = ImageCompressor().compress(_asset(make_png(100, 100)))

        assert result.within_budget
        assert result.payload.size <= 5 * 1024
        assert result.skip_reason is None

    def test_large_image_is_downscaled_preserving_aspect(self) -> None:
        """Test an oversized image is fit into 400x400."""
        result = ImageCompressor().compress(_asset(make_png(1200, 800, "blue")))

        assert result.payload.mime_type == "image/jpeg"
        with Image.open(io.BytesIO(result.payload.data)) as img:
            assert img.size == (400, 266)

    def test_incompressible_image_keeps_best_attempt(self) -> None:
        """Test attempts are capped and the best attempt is accepted."""
        original = _asset(make_noise_png(800, 600))
        compressor = ImageCompressor(ImageConfig(max_size_kb=0.1))

        result = compressor.compress(original)

        assert not result.within_budget
        assert result.attempts == 8
        assert result.payload.mime_type == "image/jpeg"
        assert result.payload.size < original.size
        with Image.open(io.BytesIO(result.payload.data)) as img:
            assert max(img.size) >= 200

    def test_warning_reports_quality_of_kept_attempt(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Test the logged quality belongs to the attempt that was kept."""
        sizes = {50: 10_000, 20: 5_000}

        def fake_encode(image, size, quality):
            return b"x" * sizes.get(quality, 9_000)

        monkeypatch.setattr(image_module, "_encode_jpeg", fake_encode)
        messages: list[str] = []
        handler_id = logger.add(messages.append, level="WARNING", format="{message}")
        try:
            result = ImageCompressor(ImageConfig(max_size_kb=1)).compress(
                _asset(make_noise_png(800, 600))
            )
        finally:
            logger.remove(handler_id)

        assert result.payload.size == 5_000
        assert result.attempts == 8
        assert len(messages) == 1
        assert "at quality 20" in messages[0]

    def test_undecodable_payload_fails_open(self) -> None:
        """Test garbage bytes are returned unchanged."""
        payload = _asset(b"definitely not a png")

        result = ImageCompressor().compress(payload)

        assert result.payload is payload
        assert result.skip_reason == "undecodable"

    def test_svg_passes_through(self) -> None:
        """Test vector images are not rasterized."""
        payload = _asset(b"<svg xmlns='http://www.w3.org/2000/svg'/>", "a.svg", "image/svg+xml")

        result = ImageCompressor().compress(payload)

        assert result.payload is payload
        assert result.skip_reason == "vector"

    def test_disabled_compression(self) -> None:
        """Test compress=False returns the original payload."""
        payload = _asset(make_png(1200, 800))

        result = ImageCompressor(ImageConfig(compress=False)).compress(payload)

        assert result.payload is payload
        assert result.skip_reason == "disabled"

    def test_transparency_is_flattened(self) -> None:
        """Test RGBA images are encoded as RGB JPEG."""
        img = Image.new("RGBA", (600, 600), (255, 0, 0, 0))
        buffer = io.BytesIO()
        img.save(buffer, format="PNG")

        result = ImageCompressor().compress(_asset(buffer.getvalue()))

        with Image.open(io.BytesIO(result.payload.data)) as out:
            assert out.mode == "RGB"
            assert out.getpixel((0, 0)) == pytest.approx((255, 255, 255), abs=2)


class TestCompressAll:
    """Tests for concurrent compression."""

    @pytest.mark.asyncio
    async def test_keys_preserved(self) -> None:
        """Test every asset comes back under its key."""
        assets = {
            f"img-{i}.png": _asset(make_png(500, 500), key=f"img-{i}.png") for i in range(5)
        }

        compressed, warnings = await ImageCompressor().compress_all(assets)

        assert list(compressed) == list(assets)
        assert all(p.size <= 5 * 1024 for p in compressed.values())
        assert warnings == []

    @pytest.mark.asyncio
    async def test_over_budget_warns(self) -> None:
        """Test an image that cannot fit produces a warning, not an error."""
        assets = {"noise.png": _asset(make_noise_png(600, 600), key="noise.png")}

        compressor = ImageCompressor(ImageConfig(max_size_kb=0.1))

        compressed, warnings = await compressor.compress_all(assets)

        assert "noise.png" in compressed
        assert len(warnings) == 1
        assert "noise.png" in warnings[0]

    @pytest.mark.asyncio
    async def test_empty(self) -> None:
        """Test no assets is a no-op."""
        assert await ImageCompressor().compress_all({}) == ({}, [])
