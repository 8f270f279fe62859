"""Parse structured import text into a validated workflow definition.

The import format is YAML::

    workflow:
      title: Setup
      description: optional
    tasks:
      - step: 1
        title: Install
        importance: high
        image: image-1
        instructions: |
          <p>Run the installer [IMAGE:image-1]</p>

Expected problems never raise: structural failures land in
``WorkflowImportResult.errors`` and recoverable ones in ``warnings``.
"""

from __future__ import annotations

import html
from typing import Any

import yaml
from loguru import logger
from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
)

from stepwright.constants import IMAGE_MARKER_PATTERN, PLACEHOLDER_TOKEN_PATTERN
from stepwright.types import (
    ImageMap,
    ParsedTask,
    TaskImportance,
    WorkflowDefinition,
    WorkflowImportResult,
)
from stepwright.utils.html import extract_image_urls, is_instructions_empty


def _scalar_text(value: Any) -> Any:
    """Text form of a YAML scalar (dates, booleans, numbers); None becomes empty."""
    if value is None:
        return ""
    if isinstance(value, (dict, list)):
        return value
    return str(value).strip()


class _WorkflowHeader(BaseModel):
    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    title: str
    description: str = ""

    @field_validator("title", "description", mode="before")
    @classmethod
    def _as_text(cls, value: Any) -> Any:
        return _scalar_text(value)


class _TaskEntry(BaseModel):
    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    step: Any = None
    title: str = Field(min_length=1)
    description: str = ""
    importance: TaskImportance | None = None
    image: str | None = Field(default=None, validation_alias=AliasChoices("image", "imageRef"))
    instructions: str | None = None

    @field_validator("title", "description", mode="before")
    @classmethod
    def _as_text(cls, value: Any) -> Any:
        return _scalar_text(value)

    @field_validator("importance", mode="before")
    @classmethod
    def _known_importance(cls, value: Any) -> Any:
        return value if value in ("low", "high") else None

    @field_validator("image", mode="before")
    @classmethod
    def _blank_image(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value.strip() if isinstance(value, str) else value


def _fatal(errors: list[str], warnings: list[str]) -> WorkflowImportResult:
    return WorkflowImportResult(
        workflow=WorkflowDefinition(title=""), warnings=warnings, errors=errors
    )


def _coerce_step(value: Any) -> int | None:
    """Return the declared step as int, or None when it cannot be used."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and value.strip().lstrip("-").isdigit():
        return int(value.strip())
    return None


def resolve_image_markers(
    instructions: str, images: ImageMap
) -> tuple[str, list[str]]:
    """Replace ``[IMAGE:token]`` markers with ``<img>`` elements.

    Returns:
        Tuple of (resolved HTML, unique tokens that had no image).
    """
    missing: list[str] = []

    def replace(match: Any) -> str:
        token = match.group(1).strip()
        url = images.get(token)
        if url is None:
            if token not in missing:
                missing.append(token)
            return match.group(0)
        return f'<img src="{html.escape(url, quote=True)}">'

    return IMAGE_MARKER_PATTERN.sub(replace, instructions), missing


def _describe_errors(error: ValidationError) -> str:
    parts = []
    for item in error.errors():
        field = ".".join(str(loc) for loc in item["loc"]) or "entry"
        parts.append(f"{field}: {item['msg']}")
    return "; ".join(parts)


def parse_import(text: str, images: ImageMap | None = None) -> WorkflowImportResult:
    """Parse and validate an import document.

    Args:
        text: YAML import text.
        images: Placeholder token -> resolved image value (usually data URLs).

    Returns:
        WorkflowImportResult. On a fatal error the workflow has an empty
        title and no tasks.
    """
    images = images or {}
    warnings: list[str] = []
    errors: list[str] = []

    try:
        document = yaml.safe_load(text)
    except yaml.YAMLError as e:
        return _fatal([f"Parse error: {e}"], warnings)

    if not isinstance(document, dict):
        return _fatal(["Parse error: import text must be a mapping"], warnings)

    raw_header = document.get("workflow")
    if not isinstance(raw_header, dict):
        return _fatal(["Missing required field: workflow.title"], warnings)
    try:
        header = _WorkflowHeader.model_validate(raw_header)
    except ValidationError:
        return _fatal(["Missing required field: workflow.title"], warnings)
    if not header.title.strip():
        return _fatal(["Missing required field: workflow.title"], warnings)

    raw_tasks = document.get("tasks")
    if not isinstance(raw_tasks, list):
        return _fatal(["Missing or invalid tasks list"], warnings)

    accepted: list[tuple[int, ParsedTask]] = []
    for position, raw in enumerate(raw_tasks, start=1):
        if not isinstance(raw, dict):
            errors.append(f"Task {position}: entry must be a mapping")
            continue
        title = _scalar_text(raw.get("title"))
        if not isinstance(title, str) or not title:
            errors.append(f"Task {position}: missing title")
            continue
        try:
            entry = _TaskEntry.model_validate(raw)
        except ValidationError as e:
            errors.append(f"Task {position}: {_describe_errors(e)}")
            continue

        step = _coerce_step(entry.step)
        if step is None:
            if entry.step is not None:
                warnings.append(
                    f'Task "{entry.title}": invalid step {entry.step!r}, using position {position}'
                )
            step = position

        if entry.instructions is None:
            warnings.append(f'Task "{entry.title}": missing instructions')
        elif is_instructions_empty(entry.instructions) and not extract_image_urls(
            entry.instructions
        ):
            warnings.append(f'Task "{entry.title}": instructions have no visible content')
        instructions, missing = resolve_image_markers(entry.instructions or "", images)
        for token in missing:
            warnings.append(f'Task "{entry.title}": image placeholder "{token}" not found')

        image_ref = entry.image
        if image_ref and PLACEHOLDER_TOKEN_PATTERN.match(image_ref) and image_ref not in images:
            warnings.append(f'Task "{entry.title}": image "{image_ref}" not found')
            image_ref = None

        accepted.append(
            (
                step,
                ParsedTask(
                    step=step,
                    title=entry.title,
                    description=entry.description,
                    importance=entry.importance,
                    instructions_html=instructions,
                    image_ref=image_ref,
                ),
            )
        )

    if not raw_tasks:
        warnings.append("Workflow has no tasks")

    # Declared steps only order the tasks; the stored steps are always 1..N
    accepted.sort(key=lambda pair: pair[0])
    tasks = []
    for number, (_, task) in enumerate(accepted, start=1):
        task.step = number
        tasks.append(task)

    logger.debug(
        f"Parsed workflow '{header.title}': {len(tasks)} task(s), "
        f"{len(errors)} error(s), {len(warnings)} warning(s)"
    )
    return WorkflowImportResult(
        workflow=WorkflowDefinition(
            title=header.title.strip(),
            description=header.description,
            tasks=tasks,
        ),
        warnings=warnings,
        errors=errors,
    )
