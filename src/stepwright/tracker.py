"""Versioned execution tracking.

One :class:`WorkflowExecution` exists per ``(workflow_id, version)``. It
only records which task ids were completed, in completion order; the
current step, the last completed step and progress are derived from the
workflow's tasks on demand.
"""

from __future__ import annotations

from collections.abc import Collection, Iterable
from typing import TYPE_CHECKING

from loguru import logger

from stepwright.exceptions import ExecutionNotFoundError
from stepwright.models import Task, WorkflowExecution, generate_id, utc_now

if TYPE_CHECKING:
    from stepwright.store import Store


class ExecutionTracker:
    """Completion ledgers backed by the executions collection."""

    def __init__(self, store: Store[list[WorkflowExecution]]) -> None:
        self.store = store

    def find(self, workflow_id: str, version: int) -> WorkflowExecution | None:
        for execution in self.store.get():
            if execution.workflow_id == workflow_id and execution.workflow_version == version:
                return execution
        return None

    def get(self, execution_id: str) -> WorkflowExecution:
        for execution in self.store.get():
            if execution.id == execution_id:
                return execution
        raise ExecutionNotFoundError(execution_id)

    def get_or_create(self, workflow_id: str, version: int) -> WorkflowExecution:
        """Return the ledger for this workflow version, creating an empty one."""
        existing = self.find(workflow_id, version)
        if existing is not None:
            return existing

        execution = WorkflowExecution(
            id=generate_id("exec"),
            workflow_id=workflow_id,
            workflow_version=version,
        )
        self.store.mutate(lambda executions: [*executions, execution])
        logger.debug(f"Created execution {execution.id} for {workflow_id} v{version}")
        return execution

    def _replace(self, updated: WorkflowExecution) -> WorkflowExecution:
        self.store.mutate(
            lambda executions: [updated if e.id == updated.id else e for e in executions]
        )
        return updated

    def complete(self, execution_id: str, task_id: str) -> WorkflowExecution:
        """Mark a task completed. Completing it again changes nothing.

        Raises:
            ExecutionNotFoundError: If the execution does not exist.
        """
        execution = self.get(execution_id)
        if task_id in execution.completed_task_ids:
            return execution
        updated = execution.model_copy(
            update={
                "completed_task_ids": [*execution.completed_task_ids, task_id],
                "updated_at": utc_now(),
            }
        )
        logger.debug(f"Completed {task_id} in {execution_id}")
        return self._replace(updated)

    def undo(
        self, workflow_id: str, version: int, task_id: str | None = None
    ) -> WorkflowExecution | None:
        """Remove a completion from the ledger.

        With ``task_id`` that id is removed wherever it sits; without it the
        most recently completed id is removed. Nothing happens when there is
        no ledger, it is empty, or the id is not in it.
        """
        execution = self.find(workflow_id, version)
        if execution is None or not execution.completed_task_ids:
            return execution

        completed = list(execution.completed_task_ids)
        if task_id is None:
            completed.pop()
        elif task_id in completed:
            completed.remove(task_id)
        else:
            return execution

        updated = execution.model_copy(
            update={"completed_task_ids": completed, "updated_at": utc_now()}
        )
        return self._replace(updated)

    def completed_task_ids(self, workflow_id: str, version: int) -> list[str]:
        execution = self.find(workflow_id, version)
        return list(execution.completed_task_ids) if execution else []

    def is_task_completed(self, workflow_id: str, version: int, task_id: str) -> bool:
        return task_id in self.completed_task_ids(workflow_id, version)


def _by_step(tasks: Iterable[Task]) -> list[Task]:
    return sorted(tasks, key=lambda t: t.step_number)


def current_step(tasks: Iterable[Task], completed: Collection[str]) -> Task | None:
    """The incomplete task with the smallest step number, or None when done."""
    for task in _by_step(tasks):
        if task.id not in completed:
            return task
    return None


def last_completed_step(tasks: Iterable[Task], completed: Collection[str]) -> Task | None:
    """The completed task with the largest step number.

    This is by step order, not completion order: completing t3 and then t1
    still yields t3.
    """
    done = [task for task in _by_step(tasks) if task.id in completed]
    return done[-1] if done else None


def progress(tasks: Iterable[Task], completed: Collection[str]) -> float:
    """Fraction of existing tasks completed, in [0, 1]."""
    task_list = list(tasks)
    if not task_list:
        return 0.0
    done = sum(1 for task in task_list if task.id in completed)
    return done / len(task_list)


def progress_percent(tasks: Iterable[Task], completed: Collection[str]) -> int:
    return round(progress(tasks, completed) * 100)


def can_complete(tasks: Iterable[Task], completed: Collection[str], task_id: str) -> bool:
    """In-order policy: only the current step may be completed next."""
    step = current_step(tasks, completed)
    return step is not None and step.id == task_id
