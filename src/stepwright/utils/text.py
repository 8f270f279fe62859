"""Text processing utilities for stepwright."""

from __future__ import annotations

import re


def normalize_whitespace(content: str) -> str:
    """Normalize flattened document text.

    - Strip leading and trailing whitespace from each line
    - Collapse runs of spaces inside a line
    - Merge 3+ consecutive newlines into one blank line
    """
    lines = [re.sub(r"[ \t]+", " ", line).strip() for line in content.split("\n")]
    content = re.sub(r"\n{3,}", "\n\n", "\n".join(lines))
    return content.strip()


def strip_code_fence(content: str) -> str:
    """Remove a surrounding Markdown code fence, if any.

    LLMs often wrap structured output in ```yaml ... ``` blocks.
    """
    match = re.search(r"```(?:ya?ml)?[ \t]*\n(.*?)\n```", content, re.DOTALL)
    if match:
        return match.group(1)
    return content.strip()


def format_size(size_bytes: int) -> str:
    """Format size in human-readable format."""
    if size_bytes < 1024:
        return f"{size_bytes} B"
    elif size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.1f} KB"
    else:
        return f"{size_bytes / (1024 * 1024):.2f} MB"
