"""Image compression for assets destined for the record store.

Stored images are embedded as data URLs inside whole-document JSON
records, so every image is squeezed under a small per-item ceiling.
Compression is best effort and fails open: a payload that cannot be
decoded is returned unchanged and never blocks an import.
"""

from __future__ import annotations

import asyncio
import io
from dataclasses import dataclass
from typing import TYPE_CHECKING

from loguru import logger
from PIL import Image

from stepwright.constants import (
    DEFAULT_IMAGE_MIN_QUALITY,
    MIN_SCALE,
    SCALE_DOWN_AFTER_ATTEMPT,
)
from stepwright.types import AssetPayload
from stepwright.utils.executor import run_in_image_thread
from stepwright.utils.mime import is_raster_image

if TYPE_CHECKING:
    from stepwright.config import ImageConfig


@dataclass
class CompressionResult:
    """Outcome of compressing a single asset."""

    payload: AssetPayload
    original_size: int
    attempts: int = 0
    within_budget: bool = True
    skip_reason: str | None = None  # "disabled" | "vector" | "undecodable" | None

    @property
    def compressed(self) -> bool:
        return self.skip_reason is None and self.attempts > 0


def _flatten_to_rgb(image: Image.Image) -> Image.Image:
    """Convert to RGB for JPEG, compositing any alpha onto white."""
    if image.mode == "RGB":
        return image
    if image.mode == "P":
        image = image.convert("RGBA")
    if image.mode in ("RGBA", "LA"):
        background = Image.new("RGB", image.size, (255, 255, 255))
        background.paste(image, mask=image.split()[-1])
        return background
    return image.convert("RGB")


def _fit_within(width: int, height: int, max_width: int, max_height: int) -> tuple[int, int]:
    """Scale (width, height) down to fit the box, preserving aspect ratio."""
    if width <= max_width and height <= max_height:
        return width, height
    ratio = min(max_width / width, max_height / height)
    return max(1, int(width * ratio)), max(1, int(height * ratio))


def _encode_jpeg(image: Image.Image, size: tuple[int, int], quality: int) -> bytes:
    if image.size != size:
        image = image.resize(size, Image.Resampling.LANCZOS)
    buffer = io.BytesIO()
    image.save(buffer, format="JPEG", quality=quality, optimize=True)
    return buffer.getvalue()


class ImageCompressor:
    """Re-encode image assets under a per-item size ceiling."""

    def __init__(self, config: ImageConfig | None = None) -> None:
        from stepwright.config import ImageConfig

        self.config = config or ImageConfig()

    @property
    def max_bytes(self) -> int:
        return int(self.config.max_size_kb * 1024)

    def _scale_for_attempt(self, attempt: int) -> float:
        """Later attempts also shrink the raster, 10% per attempt."""
        if attempt <= SCALE_DOWN_AFTER_ATTEMPT:
            return 1.0
        return max(MIN_SCALE, 1 - (attempt - SCALE_DOWN_AFTER_ATTEMPT) * 0.1)

    def _scaled_size(self, width: int, height: int, scale: float) -> tuple[int, int]:
        if scale >= 1.0:
            return width, height
        # The longer side never drops below min_dimension and nothing is enlarged
        scale = min(1.0, max(scale, self.config.min_dimension / max(width, height)))
        return max(1, int(width * scale)), max(1, int(height * scale))

    def compress(self, payload: AssetPayload) -> CompressionResult:
        """Compress one payload, trying lower quality and size until it fits.

        Args:
            payload: The asset to compress.

        Returns:
            CompressionResult whose payload is the best attempt, or the
            original payload when compression is disabled or impossible.
        """
        original_size = payload.size

        if not self.config.compress:
            return CompressionResult(payload, original_size, skip_reason="disabled")

        if not is_raster_image(payload.mime_type):
            logger.debug(f"Keeping {payload.key} as-is ({payload.mime_type})")
            return CompressionResult(payload, original_size, skip_reason="vector")

        try:
            with io.BytesIO(payload.data) as buffer:
                source = Image.open(buffer)
                source.load()
            raster = _flatten_to_rgb(source)
        except Exception as e:
            logger.warning(f"Cannot decode image {payload.key}, keeping original: {e}")
            return CompressionResult(payload, original_size, skip_reason="undecodable")

        try:
            return self._compress_raster(payload, raster)
        except Exception as e:
            logger.warning(f"Compression failed for {payload.key}, keeping original: {e}")
            return CompressionResult(payload, original_size, skip_reason="undecodable")

    def _compress_raster(
        self, payload: AssetPayload, raster: Image.Image
    ) -> CompressionResult:
        cfg = self.config
        width, height = _fit_within(*raster.size, cfg.max_width, cfg.max_height)
        limit = self.max_bytes

        quality = cfg.quality
        best = _encode_jpeg(raster, (width, height), quality)
        best_quality = quality
        attempts = 1

        if len(best) > limit:
            quality = max(DEFAULT_IMAGE_MIN_QUALITY, int(quality * 0.4))
            while attempts < cfg.max_attempts:
                size = self._scaled_size(width, height, self._scale_for_attempt(attempts))
                data = _encode_jpeg(raster, size, quality)
                attempts += 1
                if len(data) < len(best):
                    best, best_quality = data, quality
                if len(data) <= limit:
                    break
                quality = max(DEFAULT_IMAGE_MIN_QUALITY, int(quality * 0.75))

        within_budget = len(best) <= limit
        fits_box = raster.size == (width, height)
        if fits_box and payload.size <= len(best) and payload.size <= limit:
            # The source was already small enough; re-encoding only made it larger
            logger.debug(f"Keeping original {payload.key} ({payload.size} bytes)")
            return CompressionResult(payload, payload.size, attempts, True)

        if within_budget:
            logger.debug(
                f"Compressed {payload.key}: {payload.size / 1024:.1f}KB -> "
                f"{len(best) / 1024:.1f}KB (quality {best_quality}, attempts {attempts})"
            )
        else:
            logger.warning(
                f"Image {payload.key} still {len(best) / 1024:.1f}KB after "
                f"{attempts} attempts (limit {cfg.max_size_kb}KB), keeping best attempt "
                f"at quality {best_quality}"
            )

        compressed = AssetPayload(key=payload.key, mime_type="image/jpeg", data=best)
        return CompressionResult(compressed, payload.size, attempts, within_budget)

    async def compress_async(self, payload: AssetPayload) -> CompressionResult:
        """Compress one payload in the shared image thread pool."""
        return await run_in_image_thread(self.compress, payload)

    async def compress_all(
        self, assets: dict[str, AssetPayload]
    ) -> tuple[dict[str, AssetPayload], list[str]]:
        """Compress many assets concurrently and wait for all of them.

        Each asset is compressed in isolation; results are joined before
        returning so the caller can move on to the next pipeline stage.

        Args:
            assets: Assets keyed by archive path.

        Returns:
            Tuple of (compressed assets with the same keys, warnings).
        """
        semaphore = asyncio.Semaphore(self.config.concurrency)

        async def compress_one(payload: AssetPayload) -> CompressionResult:
            async with semaphore:
                return await self.compress_async(payload)

        results = await asyncio.gather(*(compress_one(p) for p in assets.values()))

        compressed: dict[str, AssetPayload] = {}
        warnings: list[str] = []
        for key, result in zip(assets, results):
            compressed[key] = result.payload
            if not result.within_budget:
                warnings.append(
                    f"Image {key} is {result.payload.size / 1024:.1f}KB after "
                    f"{result.attempts} compression attempts "
                    f"(limit {self.config.max_size_kb}KB)"
                )
            elif result.skip_reason == "undecodable":
                warnings.append(f"Image {key} could not be decoded and was stored as-is")

        total_before = sum(r.original_size for r in results)
        total_after = sum(r.payload.size for r in results)
        logger.info(
            f"Compressed {len(results)} image(s): "
            f"{total_before / 1024:.1f}KB -> {total_after / 1024:.1f}KB"
        )
        return compressed, warnings
