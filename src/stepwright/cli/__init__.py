"""CLI package for stepwright.

Usage:
    from stepwright.cli import app
    from stepwright.cli import ui
"""

from __future__ import annotations

from stepwright.cli import ui
from stepwright.cli.main import app

__all__ = ["app", "ui"]
