"""HTML fragment helpers for task instructions.

Instructions are opaque HTML produced by the rich-text editor; these
helpers only read attributes out of them.
"""

from __future__ import annotations

from bs4 import BeautifulSoup


def _parse(html: str) -> BeautifulSoup:
    return BeautifulSoup(html, "html.parser")


def _unique(values: list[str]) -> list[str]:
    return list(dict.fromkeys(values))


def extract_image_urls(html: str | None) -> list[str]:
    """Return unique ``<img src>`` values in document order."""
    if not html:
        return []
    urls = [img.get("src") for img in _parse(html).find_all("img")]
    return _unique([url for url in urls if isinstance(url, str) and url])


def extract_knowledge_link_ids(html: str | None) -> list[str]:
    """Return unique knowledge item ids linked from the instructions.

    Links are ``<a data-knowledge-link data-knowledge-id="kb-1">`` anchors
    inserted by the editor's knowledge-link tool.
    """
    if not html:
        return []
    ids: list[str] = []
    for link in _parse(html).find_all("a", attrs={"data-knowledge-link": True}):
        knowledge_id = link.get("data-knowledge-id")
        if isinstance(knowledge_id, str) and knowledge_id:
            ids.append(knowledge_id)
    return _unique(ids)


def is_instructions_empty(html: str | None) -> bool:
    """True when the HTML has markup but no visible text."""
    if not html:
        return True
    return not _parse(html).get_text().strip()
