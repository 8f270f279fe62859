"""Centralized Rich Console instance for the stepwright CLI.

Usage:
    from stepwright.cli.console import get_console

    console = get_console()
"""

from __future__ import annotations

from rich.console import Console

# Singleton instance
_console: Console | None = None


def get_console() -> Console:
    """Get the shared stdout Console instance."""
    global _console
    if _console is None:
        _console = Console()
    return _console


def reset_consoles() -> None:
    """Reset the console instance (for testing purposes)."""
    global _console
    _console = None
