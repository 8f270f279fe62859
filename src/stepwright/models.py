"""Persisted record models.

Records are serialized with camelCase keys so that the JSON documents in
the store keep the layout the rest of the tooling reads
(``stepNumber``, ``completedTaskIds``, ...).
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from stepwright.types import TaskImportance


def generate_id(prefix: str) -> str:
    """Return a new unique record id such as ``task-3f2a9c1b7d4e``."""
    return f"{prefix}-{uuid.uuid4().hex[:12]}"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Record(BaseModel):
    """Base for all persisted records."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class Task(Record):
    """A materialized workflow step.

    ``step_number`` is positional: it is rewritten on every insert,
    delete and reorder so that a workflow's steps are always ``1..N``.
    """

    id: str
    workflow_id: str
    step_number: int = Field(ge=1)
    title: str
    description: str = ""
    instructions_html: str = ""
    knowledge_links: list[str] = Field(default_factory=list)
    image_url: str | None = None
    importance: TaskImportance | None = None


class Workflow(Record):
    id: str
    project_id: str
    title: str
    description: str = ""
    tasks: list[Task] = Field(default_factory=list)
    version: int = Field(default=1, ge=1)

    @field_validator("version", mode="before")
    @classmethod
    def _default_version(cls, value: Any) -> Any:
        # Records written before versioning existed carry no usable version
        if value is None or value == 0:
            return 1
        return value

    def sorted_tasks(self) -> list[Task]:
        return sorted(self.tasks, key=lambda t: t.step_number)


class Project(Record):
    id: str
    title: str
    description: str = ""
    workflows: list[Workflow] = Field(default_factory=list)


class KnowledgeItem(Record):
    id: str
    title: str
    description: str = ""
    content: str = ""


class WorkflowExecution(Record):
    """Completion ledger for one (workflow, version) pair.

    ``completed_task_ids`` is ordered by completion time and never holds
    duplicates.
    """

    id: str
    workflow_id: str
    workflow_version: int = Field(ge=1)
    completed_task_ids: list[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
