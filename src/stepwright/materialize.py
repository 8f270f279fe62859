"""Turn a parsed workflow definition into identity-bearing task records."""

from __future__ import annotations

from stepwright.constants import PLACEHOLDER_TOKEN_PATTERN
from stepwright.models import Task, generate_id
from stepwright.types import ImageMap, WorkflowDefinition
from stepwright.utils.html import extract_knowledge_link_ids


def resolve_image_ref(image_ref: str | None, images: ImageMap) -> str | None:
    """Resolve a task's display image.

    Placeholder tokens (``image-<n>``) are looked up in ``images``; any
    other value is already a usable image URL and passes through.
    """
    if not image_ref:
        return None
    if PLACEHOLDER_TOKEN_PATTERN.match(image_ref):
        return images.get(image_ref)
    return image_ref


def renumber(tasks: list[Task]) -> list[Task]:
    """Return copies of ``tasks`` with step numbers ``1..N`` in list order."""
    return [
        task if task.step_number == number else task.model_copy(update={"step_number": number})
        for number, task in enumerate(tasks, start=1)
    ]


def materialize(
    definition: WorkflowDefinition,
    workflow_id: str,
    images: ImageMap | None = None,
) -> list[Task]:
    """Assign ids and step numbers to parsed tasks and bind them to a workflow.

    Args:
        definition: A validated workflow definition.
        workflow_id: Id of the workflow the tasks belong to.
        images: Placeholder token -> image URL for display images.

    Returns:
        Tasks with contiguous step numbers in declared order.
    """
    images = images or {}
    ordered = sorted(definition.tasks, key=lambda t: t.step)
    return [
        Task(
            id=generate_id("task"),
            workflow_id=workflow_id,
            step_number=number,
            title=parsed.title,
            description=parsed.description,
            instructions_html=parsed.instructions_html,
            knowledge_links=extract_knowledge_link_ids(parsed.instructions_html),
            image_url=resolve_image_ref(parsed.image_ref, images),
            importance=parsed.importance,
        )
        for number, parsed in enumerate(ordered, start=1)
    ]
