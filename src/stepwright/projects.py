"""Projects, workflows and tasks: the editing surface over the projects record.

Every change that touches a workflow's task list renumbers the tasks so
that step numbers stay exactly ``1..N``. Editing tasks never changes a
workflow's version; :meth:`ProjectRepository.bump_version` is the only
operation that does.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from loguru import logger

from stepwright.exceptions import (
    ProjectNotFoundError,
    TaskNotFoundError,
    WorkflowNotFoundError,
)
from stepwright.materialize import materialize, renumber
from stepwright.models import Project, Task, Workflow, generate_id
from stepwright.types import ImageMap, TaskImportance, WorkflowDefinition
from stepwright.utils.html import extract_knowledge_link_ids

if TYPE_CHECKING:
    from stepwright.store import Store

_EDITABLE_TASK_FIELDS = frozenset(
    {"title", "description", "instructions_html", "importance", "image_url"}
)


class ProjectRepository:
    """CRUD over projects and the workflows and tasks they contain."""

    def __init__(self, store: Store[list[Project]]) -> None:
        self.store = store

    # -- projects -----------------------------------------------------------

    def list_projects(self) -> list[Project]:
        return self.store.get()

    def get_project(self, project_id: str) -> Project:
        for project in self.store.get():
            if project.id == project_id:
                return project
        raise ProjectNotFoundError(project_id)

    def add_project(self, title: str, description: str = "") -> Project:
        project = Project(id=generate_id("project"), title=title, description=description)
        self.store.mutate(lambda projects: [*projects, project])
        logger.info(f"Created project {project.id}: {title}")
        return project

    def _update_project(
        self, project_id: str, change: Callable[[Project], Project]
    ) -> Project:
        result: list[Project] = []

        def transform(projects: list[Project]) -> list[Project]:
            for index, project in enumerate(projects):
                if project.id == project_id:
                    updated = change(project)
                    result.append(updated)
                    return [*projects[:index], updated, *projects[index + 1 :]]
            raise ProjectNotFoundError(project_id)

        self.store.mutate(transform)
        return result[0]

    def update_project(
        self,
        project_id: str,
        *,
        title: str | None = None,
        description: str | None = None,
    ) -> Project:
        changes = {
            key: value
            for key, value in (("title", title), ("description", description))
            if value is not None
        }
        return self._update_project(project_id, lambda p: p.model_copy(update=changes))

    def delete_project(self, project_id: str) -> None:
        self.get_project(project_id)
        self.store.mutate(lambda projects: [p for p in projects if p.id != project_id])
        logger.info(f"Deleted project {project_id}")

    # -- workflows ----------------------------------------------------------

    def add_workflow(self, project_id: str, title: str, description: str = "") -> Workflow:
        workflow = Workflow(
            id=generate_id("workflow"),
            project_id=project_id,
            title=title,
            description=description,
        )
        self._update_project(
            project_id,
            lambda p: p.model_copy(update={"workflows": [*p.workflows, workflow]}),
        )
        logger.info(f"Created workflow {workflow.id} in {project_id}")
        return workflow

    def get_workflow(self, project_id: str, workflow_id: str) -> Workflow:
        for workflow in self.get_project(project_id).workflows:
            if workflow.id == workflow_id:
                return workflow
        raise WorkflowNotFoundError(workflow_id)

    def find_workflow(self, workflow_id: str) -> Workflow:
        """Look a workflow up by id across all projects."""
        for project in self.store.get():
            for workflow in project.workflows:
                if workflow.id == workflow_id:
                    return workflow
        raise WorkflowNotFoundError(workflow_id)

    def _update_workflow(
        self, workflow_id: str, change: Callable[[Workflow], Workflow]
    ) -> Workflow:
        result: list[Workflow] = []

        def transform(projects: list[Project]) -> list[Project]:
            for p_index, project in enumerate(projects):
                for w_index, workflow in enumerate(project.workflows):
                    if workflow.id != workflow_id:
                        continue
                    updated = change(workflow)
                    result.append(updated)
                    workflows = [
                        *project.workflows[:w_index],
                        updated,
                        *project.workflows[w_index + 1 :],
                    ]
                    return [
                        *projects[:p_index],
                        project.model_copy(update={"workflows": workflows}),
                        *projects[p_index + 1 :],
                    ]
            raise WorkflowNotFoundError(workflow_id)

        self.store.mutate(transform)
        return result[0]

    def update_workflow(
        self,
        workflow_id: str,
        *,
        title: str | None = None,
        description: str | None = None,
    ) -> Workflow:
        """Change a workflow's title or description. Tasks are untouched."""
        changes = {
            key: value
            for key, value in (("title", title), ("description", description))
            if value is not None
        }
        return self._update_workflow(workflow_id, lambda w: w.model_copy(update=changes))

    def bump_version(self, workflow_id: str) -> Workflow:
        """Start a new version; executions of earlier versions are kept as-is."""
        workflow = self._update_workflow(
            workflow_id, lambda w: w.model_copy(update={"version": w.version + 1})
        )
        logger.info(f"Workflow {workflow_id} is now version {workflow.version}")
        return workflow

    def delete_workflow(self, workflow_id: str) -> None:
        workflow = self.find_workflow(workflow_id)
        self._update_project(
            workflow.project_id,
            lambda p: p.model_copy(
                update={"workflows": [w for w in p.workflows if w.id != workflow_id]}
            ),
        )
        logger.info(f"Deleted workflow {workflow_id}")

    def import_workflow(
        self,
        project_id: str,
        definition: WorkflowDefinition,
        images: ImageMap | None = None,
    ) -> Workflow:
        """Create a workflow from a parsed definition and materialize its tasks."""
        workflow_id = generate_id("workflow")
        workflow = Workflow(
            id=workflow_id,
            project_id=project_id,
            title=definition.title,
            description=definition.description,
            tasks=materialize(definition, workflow_id, images),
        )
        self._update_project(
            project_id,
            lambda p: p.model_copy(update={"workflows": [*p.workflows, workflow]}),
        )
        logger.info(
            f"Imported workflow {workflow_id} '{workflow.title}' "
            f"with {len(workflow.tasks)} task(s)"
        )
        return workflow

    # -- tasks --------------------------------------------------------------

    def _set_tasks(self, workflow_id: str, edit: Callable[[list[Task]], list[Task]]) -> Workflow:
        return self._update_workflow(
            workflow_id,
            lambda w: w.model_copy(update={"tasks": renumber(edit(w.sorted_tasks()))}),
        )

    def _new_task(
        self,
        workflow_id: str,
        title: str,
        description: str,
        instructions_html: str,
        importance: TaskImportance | None,
        image_url: str | None,
    ) -> Task:
        return Task(
            id=generate_id("task"),
            workflow_id=workflow_id,
            step_number=1,
            title=title,
            description=description,
            instructions_html=instructions_html,
            knowledge_links=extract_knowledge_link_ids(instructions_html),
            importance=importance,
            image_url=image_url,
        )

    def insert_task(
        self,
        workflow_id: str,
        index: int,
        title: str,
        description: str = "",
        instructions_html: str = "",
        importance: TaskImportance | None = None,
        image_url: str | None = None,
    ) -> Task:
        """Insert a task at a 0-based position; later steps shift down."""
        task = self._new_task(
            workflow_id, title, description, instructions_html, importance, image_url
        )
        workflow = self._set_tasks(
            workflow_id, lambda tasks: [*tasks[:index], task, *tasks[index:]]
        )
        return next(t for t in workflow.tasks if t.id == task.id)

    def add_task(
        self,
        workflow_id: str,
        title: str,
        description: str = "",
        instructions_html: str = "",
        importance: TaskImportance | None = None,
        image_url: str | None = None,
    ) -> Task:
        """Append a task as the last step."""
        task = self._new_task(
            workflow_id, title, description, instructions_html, importance, image_url
        )
        workflow = self._set_tasks(workflow_id, lambda tasks: [*tasks, task])
        return next(t for t in workflow.tasks if t.id == task.id)

    def get_task(self, workflow_id: str, task_id: str) -> Task:
        for task in self.find_workflow(workflow_id).tasks:
            if task.id == task_id:
                return task
        raise TaskNotFoundError(task_id)

    def update_task(self, workflow_id: str, task_id: str, **changes: Any) -> Task:
        """Update editable fields of a task.

        Accepts ``title``, ``description``, ``instructions_html``,
        ``importance`` and ``image_url``. Knowledge links follow the
        instructions.
        """
        unknown = set(changes) - _EDITABLE_TASK_FIELDS
        if unknown:
            raise ValueError(f"Cannot update task field(s): {', '.join(sorted(unknown))}")

        current = self.get_task(workflow_id, task_id)
        data = {**current.model_dump(), **changes}
        if "instructions_html" in changes:
            data["knowledge_links"] = extract_knowledge_link_ids(changes["instructions_html"])
        updated = Task.model_validate(data)

        self._set_tasks(
            workflow_id,
            lambda tasks: [updated if t.id == task_id else t for t in tasks],
        )
        return updated

    def delete_task(self, workflow_id: str, task_id: str) -> None:
        self.get_task(workflow_id, task_id)
        self._set_tasks(workflow_id, lambda tasks: [t for t in tasks if t.id != task_id])

    def reorder_tasks(self, workflow_id: str, task_ids: list[str]) -> Workflow:
        """Reorder tasks to follow ``task_ids``.

        Unknown ids are ignored; tasks not listed keep their relative order
        after the listed ones.
        """

        def reorder(tasks: list[Task]) -> list[Task]:
            by_id = {t.id: t for t in tasks}
            ordered = [by_id[tid] for tid in dict.fromkeys(task_ids) if tid in by_id]
            listed = {t.id for t in ordered}
            return ordered + [t for t in tasks if t.id not in listed]

        return self._set_tasks(workflow_id, reorder)
