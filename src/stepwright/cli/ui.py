"""Unified UI components for the stepwright CLI.

Usage:
    from stepwright.cli import ui

    ui.title("Import")
    ui.success("Workflow created")
    ui.error("Import failed", detail="Missing required field: workflow.title")
"""

from __future__ import annotations

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from stepwright.cli.console import get_console
from stepwright.models import Task

# Symbol constants for visual markers
MARK_SUCCESS = "✓"  # Checkmark
MARK_ERROR = "✗"  # Cross
MARK_WARNING = "!"  # Exclamation
MARK_INFO = "•"  # Bullet
MARK_TITLE = "◆"  # Diamond
MARK_LINE = "│"  # Vertical line
MARK_CURRENT = "▶"  # Play


def title(text: str, *, console: Console | None = None) -> None:
    """Display a title with diamond symbol."""
    c = console or get_console()
    c.print(f"[cyan]{MARK_TITLE}[/] [bold]{escape(text)}[/]")
    c.print()


def success(text: str, *, console: Console | None = None) -> None:
    c = console or get_console()
    c.print(f"  [green]{MARK_SUCCESS}[/] {escape(text)}")


def error(
    text: str, *, detail: str | None = None, console: Console | None = None
) -> None:
    """Display an error message with cross symbol.

    Args:
        text: The error message to display.
        detail: Optional detail text shown on a separate line.
        console: Optional console for output (defaults to shared console).
    """
    c = console or get_console()
    c.print(f"  [red]{MARK_ERROR}[/] {escape(text)}")
    if detail:
        c.print(f"    [dim]{MARK_LINE} {escape(detail)}[/]")


def warning(
    text: str, *, detail: str | None = None, console: Console | None = None
) -> None:
    c = console or get_console()
    c.print(f"  [yellow]{MARK_WARNING}[/] {escape(text)}")
    if detail:
        c.print(f"    [dim]{MARK_LINE} {escape(detail)}[/]")


def info(text: str, *, console: Console | None = None) -> None:
    c = console or get_console()
    c.print(f"  [dim]{MARK_INFO}[/] {escape(text)}")


def summary(text: str, *, console: Console | None = None) -> None:
    """Display a summary message with checkmark and leading blank line."""
    c = console or get_console()
    c.print()
    c.print(f"[green]{MARK_SUCCESS}[/] {escape(text)}")


def task_table(
    tasks: list[Task],
    completed: list[str] | None = None,
    current_id: str | None = None,
) -> Table:
    """Build a table of tasks, marking completed and current steps."""
    done = set(completed or [])
    table = Table(show_header=True, header_style="bold")
    table.add_column("Step", justify="right")
    table.add_column("", width=1)
    table.add_column("Title")
    table.add_column("Importance")
    table.add_column("Id", style="dim")

    for task in sorted(tasks, key=lambda t: t.step_number):
        if task.id in done:
            mark = f"[green]{MARK_SUCCESS}[/]"
        elif task.id == current_id:
            mark = f"[cyan]{MARK_CURRENT}[/]"
        else:
            mark = ""
        table.add_row(
            str(task.step_number),
            mark,
            escape(task.title),
            task.importance or "",
            task.id,
        )
    return table
