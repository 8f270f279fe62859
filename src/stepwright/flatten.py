"""Flatten markup documents into line-oriented text with image placeholders.

Every ``<img>`` whose source matches an archive asset is replaced by a
``[IMAGE:image-<n>]`` marker; the marker tokens are numbered in document
order and recorded in the returned placeholder map.
"""

from __future__ import annotations

import posixpath
from urllib.parse import unquote, urlparse

from bs4 import BeautifulSoup, NavigableString, Tag
from bs4.element import PreformattedString
from loguru import logger

from stepwright.constants import PLACEHOLDER_PREFIX
from stepwright.types import AssetPayload, FlattenResult, PlaceholderMap
from stepwright.utils.text import normalize_whitespace

_DISCARDED_TAGS = ("script", "style", "noscript", "template")
_HEADING_TAGS = frozenset({"h1", "h2", "h3", "h4", "h5", "h6"})
_LIST_TAGS = frozenset({"ul", "ol"})
# Containers that start on a fresh line without adding blank lines
_LINE_TAGS = frozenset({"div", "section", "article", "ul", "ol", "table", "tr", "blockquote"})


def _normalize_src(src: str) -> str | None:
    """Reduce an ``<img src>`` to a relative archive path, or None for remote/inline."""
    src = src.strip()
    if not src:
        return None
    parsed = urlparse(src)
    if parsed.scheme or parsed.netloc:
        # http(s):, data:, file: and friends never refer to archive entries
        return None
    path = unquote(parsed.path).replace("\\", "/")
    path = posixpath.normpath(path)
    while path.startswith("../"):
        path = path[3:]
    return path.lstrip("/") or None


def match_asset(src: str, assets: dict[str, AssetPayload]) -> str | None:
    """Find the asset key an image source refers to.

    Tries an exact path match first, then a path-suffix match, then a bare
    filename match. Returns None when nothing matches.
    """
    path = _normalize_src(src)
    if path is None:
        return None
    if path in assets:
        return path

    for key in assets:
        if key.endswith(f"/{path}"):
            return key

    filename = posixpath.basename(path)
    for key in assets:
        if posixpath.basename(key) == filename:
            return key
    return None


def _inline_text(node: Tag) -> str:
    return " ".join(node.stripped_strings)


def _render(node: object) -> str:
    if isinstance(node, PreformattedString):
        # Comments, CDATA, doctypes
        return ""
    if isinstance(node, NavigableString):
        text = node.strip()
        return f"{text} " if text else ""
    if not isinstance(node, Tag):
        return ""

    name = node.name
    if name == "br":
        return "\n"
    if name in _HEADING_TAGS or name == "p":
        text = _inline_text(node)
        return f"\n\n{text}\n\n" if text else ""
    if name == "li":
        nested = [
            child
            for child in node.children
            if isinstance(child, Tag) and child.name in _LIST_TAGS
        ]
        for child in nested:
            child.extract()
        line = f"- {_inline_text(node)}\n"
        return line + "".join(_render(item) for child in nested for item in child.children)
    inner = "".join(_render(child) for child in node.children)
    if name in _LINE_TAGS:
        return f"\n{inner}\n"
    return inner


def flatten(html: str, assets: dict[str, AssetPayload] | None = None) -> FlattenResult:
    """Convert a markup document to plain text, replacing matched images.

    Args:
        html: The markup document (or several, concatenated).
        assets: Archive assets keyed by normalized path.

    Returns:
        FlattenResult with the text and a token -> asset key map.
    """
    assets = assets or {}
    soup = BeautifulSoup(html, "html.parser")

    for tag in soup.find_all(_DISCARDED_TAGS):
        tag.decompose()

    placeholders: PlaceholderMap = {}
    dropped = 0
    for img in soup.find_all("img"):
        src = img.get("src")
        key = match_asset(src, assets) if isinstance(src, str) else None
        if key is None:
            img.decompose()
            dropped += 1
            continue
        token = f"{PLACEHOLDER_PREFIX}{len(placeholders) + 1}"
        placeholders[token] = key
        img.replace_with(NavigableString(f"[IMAGE:{token}]"))

    if dropped:
        logger.debug(f"Dropped {dropped} image reference(s) with no matching asset")

    text = normalize_whitespace(_render(soup))
    return FlattenResult(text=text, placeholders=placeholders)
