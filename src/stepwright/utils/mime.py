"""MIME type utilities for archive assets.

This module provides helper functions for MIME type operations,
using the centralized mappings defined in constants.py.
"""

from __future__ import annotations

from stepwright.constants import EXTENSION_TO_MIME

# Formats Pillow can rasterize and re-encode; SVG is vector and passes through
RASTER_MIME_TYPES = frozenset(
    {"image/jpeg", "image/png", "image/gif", "image/webp", "image/bmp"}
)


def get_mime_type(extension: str, default: str = "image/png") -> str:
    """Get MIME type from file extension.

    Args:
        extension: File extension (with or without leading dot), e.g. ".jpg" or "jpg"
        default: Default MIME type if extension is not recognized

    Examples:
        >>> get_mime_type(".jpg")
        'image/jpeg'
        >>> get_mime_type("svg")
        'image/svg+xml'
        >>> get_mime_type(".unknown")
        'image/png'
    """
    ext = extension.lower()
    if not ext.startswith("."):
        ext = f".{ext}"
    return EXTENSION_TO_MIME.get(ext, default)


def is_raster_image(mime_type: str) -> bool:
    """Check whether Pillow can decode and re-encode this MIME type."""
    return mime_type.lower() in RASTER_MIME_TYPES
