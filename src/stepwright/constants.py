"""Centralized constants for stepwright.

This module contains the hardcoded defaults used throughout the codebase.
Grouping them here makes it easier to:
- Find and modify default values
- Understand storage limits at a glance
- Keep the import pipeline and the CLI consistent
"""

from __future__ import annotations

import re

# =============================================================================
# Archive Extraction
# =============================================================================

DOCUMENT_EXTENSIONS: tuple[str, ...] = (".html", ".htm")
IMAGE_EXTENSIONS: tuple[str, ...] = (
    ".png",
    ".jpg",
    ".jpeg",
    ".gif",
    ".webp",
    ".svg",
)
PDF_EXTENSIONS: tuple[str, ...] = (".pdf",)

# Separator between concatenated document entries
DOCUMENT_SEPARATOR = "\n\n"

# =============================================================================
# Image Compression
# =============================================================================

# Stored images live inside whole-document JSON records, so they are kept tiny
DEFAULT_IMAGE_MAX_WIDTH = 400
DEFAULT_IMAGE_MAX_HEIGHT = 400
DEFAULT_IMAGE_QUALITY = 50  # JPEG quality (1-100)
DEFAULT_IMAGE_MAX_SIZE_KB = 5
DEFAULT_IMAGE_MAX_ATTEMPTS = 8
DEFAULT_IMAGE_MIN_DIMENSION = 200  # Retries never scale below this
DEFAULT_IMAGE_MIN_QUALITY = 10
DEFAULT_IMAGE_CONCURRENCY = 8

# Attempts after this index also shrink the raster by 10% per attempt
SCALE_DOWN_AFTER_ATTEMPT = 3
MIN_SCALE = 0.5

# =============================================================================
# Placeholders
# =============================================================================

PLACEHOLDER_PREFIX = "image-"
PLACEHOLDER_TOKEN_PATTERN = re.compile(r"^image-\d+$")
IMAGE_MARKER_PATTERN = re.compile(r"\[IMAGE:([^\]]+)\]")

# =============================================================================
# Persistence
# =============================================================================

PROJECTS_RECORD_KEY = "projects-data"
KNOWLEDGE_RECORD_KEY = "knowledge-items-data"
EXECUTIONS_RECORD_KEY = "workflow-executions-data"

DEFAULT_DATA_DIR = "~/.stepwright/data"
DEFAULT_MAX_RECORD_BYTES: int | None = None  # None = unlimited

# =============================================================================
# LLM
# =============================================================================

DEFAULT_LLM_MODEL = "openai/gpt-4o-mini"
DEFAULT_LLM_TEMPERATURE = 0.3
DEFAULT_LLM_TIMEOUT = 120  # seconds
DEFAULT_PROMPTS_DIR = "~/.stepwright/prompts"

# =============================================================================
# Logging
# =============================================================================

DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_LOG_DIR: str | None = None
DEFAULT_LOG_ROTATION = "10 MB"
DEFAULT_LOG_RETENTION = "7 days"

# =============================================================================
# Paths and Filenames
# =============================================================================

CONFIG_FILENAME = "stepwright.json"
DEFAULT_USER_DIR = "~/.stepwright"

# =============================================================================
# MIME Type Mappings
# =============================================================================

EXTENSION_TO_MIME: dict[str, str] = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
    ".webp": "image/webp",
    ".svg": "image/svg+xml",
    ".bmp": "image/bmp",
}
