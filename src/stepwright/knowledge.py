"""Knowledge items linked from task instructions."""

from __future__ import annotations

from typing import TYPE_CHECKING

from loguru import logger

from stepwright.exceptions import KnowledgeItemNotFoundError
from stepwright.models import KnowledgeItem, Task, generate_id

if TYPE_CHECKING:
    from stepwright.store import Store


def default_knowledge_items() -> list[KnowledgeItem]:
    """Items served until the knowledge record is first written."""
    return [
        KnowledgeItem(
            id="kb-1",
            title="Project Scope Definition",
            description="Guidelines for defining project scope",
            content=(
                "A comprehensive guide to defining project scope including "
                "stakeholder requirements, deliverables, and constraints."
            ),
        ),
        KnowledgeItem(
            id="kb-2",
            title="Development Environment Setup",
            description="Best practices for setting up development environments",
            content=(
                "Step-by-step instructions for configuring development "
                "environments with all necessary tools and dependencies."
            ),
        ),
    ]


class KnowledgeRepository:
    """CRUD over the knowledge items collection."""

    def __init__(self, store: Store[list[KnowledgeItem]]) -> None:
        self.store = store

    def list_items(self) -> list[KnowledgeItem]:
        return self.store.get()

    def get_item(self, item_id: str) -> KnowledgeItem:
        for item in self.store.get():
            if item.id == item_id:
                return item
        raise KnowledgeItemNotFoundError(item_id)

    def add_item(self, title: str, description: str = "", content: str = "") -> KnowledgeItem:
        item = KnowledgeItem(
            id=generate_id("kb"), title=title, description=description, content=content
        )
        self.store.mutate(lambda items: [*items, item])
        logger.info(f"Added knowledge item {item.id}: {title}")
        return item

    def update_item(
        self,
        item_id: str,
        *,
        title: str | None = None,
        description: str | None = None,
        content: str | None = None,
    ) -> KnowledgeItem:
        """Update the given fields of an item; None leaves a field unchanged."""
        changes = {
            key: value
            for key, value in (("title", title), ("description", description), ("content", content))
            if value is not None
        }
        updated = self.get_item(item_id).model_copy(update=changes)
        self.store.mutate(
            lambda items: [updated if i.id == item_id else i for i in items]
        )
        return updated

    def delete_item(self, item_id: str) -> None:
        self.get_item(item_id)
        self.store.mutate(lambda items: [i for i in items if i.id != item_id])

    def resolve_links(self, task: Task) -> list[KnowledgeItem]:
        """Knowledge items referenced by a task, in link order.

        Links to items that no longer exist are skipped.
        """
        by_id = {item.id: item for item in self.store.get()}
        resolved = []
        for link in task.knowledge_links:
            item = by_id.get(link)
            if item is None:
                logger.debug(f"Task {task.id} links to missing knowledge item {link}")
                continue
            resolved.append(item)
        return resolved
