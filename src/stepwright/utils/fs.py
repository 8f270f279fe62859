"""Filesystem helpers for the JSON record store and config files."""

from __future__ import annotations

import contextlib
import os
import sys
import tempfile
import time
from pathlib import Path

# os.replace on Windows fails while an indexer or antivirus holds the target
_REPLACE_ATTEMPTS = 5 if sys.platform == "win32" else 1
_REPLACE_BACKOFF = 0.05


def _replace(src: str, dst: Path) -> None:
    for attempt in range(1, _REPLACE_ATTEMPTS + 1):
        try:
            os.replace(src, dst)
            return
        except PermissionError:
            if attempt == _REPLACE_ATTEMPTS:
                raise
            time.sleep(_REPLACE_BACKOFF * attempt)


def atomic_write_text(path: Path, content: str, encoding: str = "utf-8") -> None:
    """Replace ``path`` with ``content`` in one step.

    The text goes to a temporary sibling file that is then renamed over
    the target, so readers see either the old record or the new one.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding=encoding) as handle:
            handle.write(content)
        _replace(tmp_name, path)
    except BaseException:
        with contextlib.suppress(OSError):
            os.unlink(tmp_name)
        raise


def sanitize_key(key: str) -> str:
    """Turn a record key into a safe filename stem."""
    cleaned = "".join(c if c.isalnum() or c in "-_." else "_" for c in key)
    cleaned = cleaned.strip(".")
    return cleaned or "record"
