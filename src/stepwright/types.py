"""Transient data types passed between import pipeline stages.

None of these are persisted: they live for the duration of one import.
Persisted records are defined in :mod:`stepwright.models`.
"""

from __future__ import annotations

import base64
from dataclasses import dataclass, field
from typing import Literal

TaskImportance = Literal["low", "high"]

# token ("image-1") -> asset key ("images/shot.png")
PlaceholderMap = dict[str, str]

# token ("image-1") -> resolved image value (usually a data URL)
ImageMap = dict[str, str]

@dataclass(frozen=True)
class AssetPayload:
    """An image decoded from an archive, keyed by its archive-relative path."""

    key: str
    mime_type: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)

    @property
    def data_url(self) -> str:
        """Inline ``data:`` URL for embedding in HTML instructions."""
        encoded = base64.b64encode(self.data).decode("ascii")
        return f"data:{self.mime_type};base64,{encoded}"


@dataclass
class ExtractionResult:
    """Documents and image assets read from one archive."""

    document_text: str
    assets: dict[str, AssetPayload] = field(default_factory=dict)
    document_names: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)


@dataclass
class FlattenResult:
    """Plain text with ``[IMAGE:image-n]`` markers and the token map."""

    text: str
    placeholders: PlaceholderMap = field(default_factory=dict)


@dataclass
class ParsedTask:
    """A validated task entry from a workflow definition."""

    step: int
    title: str
    description: str = ""
    importance: TaskImportance | None = None
    instructions_html: str = ""
    image_ref: str | None = None


@dataclass
class WorkflowDefinition:
    """A validated workflow definition, not yet bound to any store."""

    title: str
    description: str = ""
    tasks: list[ParsedTask] = field(default_factory=list)


@dataclass
class WorkflowImportResult:
    """Outcome of parsing a workflow definition.

    Expected validation failures are reported here instead of raised:
    ``errors`` holds fatal-structural and per-task errors, ``warnings``
    holds non-fatal issues such as unresolved image placeholders.
    """

    workflow: WorkflowDefinition
    warnings: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        """True when nothing was rejected."""
        return not self.errors

    @property
    def is_fatal(self) -> bool:
        """True when the document was rejected as a whole."""
        return bool(self.errors) and not self.workflow.title


@dataclass
class PreparedImport:
    """Everything the parser needs, produced from one archive or PDF."""

    text: str
    placeholders: PlaceholderMap = field(default_factory=dict)
    image_map: ImageMap = field(default_factory=dict)
    warnings: list[str] = field(default_factory=list)
