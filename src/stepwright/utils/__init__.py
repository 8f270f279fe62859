"""stepwright utilities."""

from stepwright.utils.executor import (
    get_image_executor,
    run_in_image_thread,
    shutdown_image_executor,
)
from stepwright.utils.fs import atomic_write_text, sanitize_key
from stepwright.utils.html import (
    extract_image_urls,
    extract_knowledge_link_ids,
    is_instructions_empty,
)
from stepwright.utils.mime import get_mime_type, is_raster_image
from stepwright.utils.text import format_size, normalize_whitespace, strip_code_fence

__all__ = [
    # Executor
    "get_image_executor",
    "run_in_image_thread",
    "shutdown_image_executor",
    # Filesystem
    "atomic_write_text",
    "sanitize_key",
    # HTML
    "extract_image_urls",
    "extract_knowledge_link_ids",
    "is_instructions_empty",
    # MIME
    "get_mime_type",
    "is_raster_image",
    # Text
    "format_size",
    "normalize_whitespace",
    "strip_code_fence",
]
