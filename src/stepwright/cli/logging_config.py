"""Logging setup for the stepwright CLI.

Everything goes through loguru: stepwright's own messages, and the stdlib
loggers of the libraries the import pipeline drives (litellm, httpx,
Pillow, PyMuPDF), which are re-emitted through :class:`InterceptHandler`.
"""

from __future__ import annotations

import logging
import os
import sys
import warnings
from datetime import datetime
from pathlib import Path
from typing import Any

from click import Context
from loguru import logger

from stepwright import __version__

# stdlib loggers routed into loguru at WARNING and above
INTERCEPTED_LOGGERS = (
    "LiteLLM",
    "LiteLLM Router",
    "litellm",
    "httpx",
    "httpcore",
    "openai",
    "fitz",
    "pymupdf",
    "PIL",
    "asyncio",
)

NOISY_WARNINGS = (
    r"coroutine 'close_litellm_async_clients' was never awaited",
    r"Field .* has conflict with protected namespace",
)

CONSOLE_FORMAT = "<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | {message}"
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{line} | {message}"


class InterceptHandler(logging.Handler):
    """Forward stdlib log records to loguru, tagged with the source logger."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno
        logger.bind(source=record.name).opt(exception=record.exc_info).log(
            level, record.getMessage()
        )


def _from_library(record: Any) -> bool:
    source = record["extra"].get("source", "")
    return any(
        source == name or source.startswith(f"{name}.") for name in INTERCEPTED_LOGGERS
    )


def _console_filter(verbose: bool):
    """DEBUG only with --verbose; library INFO is never shown on the console."""

    def accept(record: Any) -> bool:
        if record["level"].no < logging.INFO:
            return verbose
        if record["level"].no >= logging.WARNING:
            return True
        return not _from_library(record)

    return accept


def _route_library_loggers() -> None:
    handler = InterceptHandler()
    for name in INTERCEPTED_LOGGERS:
        library_logger = logging.getLogger(name)
        library_logger.handlers = [handler]
        library_logger.propagate = False
        library_logger.setLevel(logging.WARNING)


def setup_logging(
    verbose: bool,
    log_dir: str | None = None,
    log_level: str = "DEBUG",
    rotation: str = "10 MB",
    retention: str = "7 days",
) -> tuple[int, Path | None]:
    """Replace loguru's default sink with the CLI's sinks.

    Args:
        verbose: Show DEBUG messages on stderr.
        log_dir: Directory for a per-run log file; ``STEPWRIGHT_LOG_DIR``
            takes precedence. No file is written when neither is set.
        log_level: Minimum level written to the file.
        rotation: loguru rotation setting for the file sink.
        retention: loguru retention setting for the file sink.

    Returns:
        Tuple of (stderr handler id, log file path or None).
    """
    for pattern in NOISY_WARNINGS:
        warnings.filterwarnings("ignore", message=pattern)

    logger.remove()
    handler_id = logger.add(
        sys.stderr,
        level="DEBUG" if verbose else "INFO",
        format=CONSOLE_FORMAT,
        filter=_console_filter(verbose),
    )

    directory = os.environ.get("STEPWRIGHT_LOG_DIR") or log_dir
    log_file: Path | None = None
    if directory:
        log_file = Path(directory).expanduser() / (
            f"stepwright_{datetime.now():%Y%m%d_%H%M%S_%f}.log"
        )
        log_file.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_file,
            level=log_level,
            rotation=rotation,
            retention=retention,
            format=FILE_FORMAT,
        )

    _route_library_loggers()
    return handler_id, log_file


def print_version(ctx: Context, param: Any, value: bool) -> None:
    """Eager ``--version`` callback."""
    if not value or ctx.resilient_parsing:
        return
    from stepwright.cli.console import get_console

    get_console().print(f"stepwright {__version__}")
    ctx.exit(0)
