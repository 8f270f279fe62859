"""stepwright: turn document archives into versioned, trackable workflows."""

from __future__ import annotations

__version__ = "0.1.0"

from stepwright.archive import extract_from_archive
from stepwright.flatten import flatten
from stepwright.materialize import materialize
from stepwright.parser import parse_import
from stepwright.tracker import ExecutionTracker

__all__ = [
    "__version__",
    "ExecutionTracker",
    "extract_from_archive",
    "flatten",
    "materialize",
    "parse_import",
]
