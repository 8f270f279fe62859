"""Record store: whole-document collections behind a get/mutate interface.

Each logical collection (projects, knowledge items, executions) is one
JSON document. It is loaded wholesale, transformed in memory, and written
back wholesale. There is no locking; a single writer is assumed.
"""

from __future__ import annotations

import copy
from collections.abc import Callable
from pathlib import Path
from typing import TYPE_CHECKING, Generic, Protocol, TypeVar

from loguru import logger
from pydantic import TypeAdapter, ValidationError

from stepwright.constants import (
    EXECUTIONS_RECORD_KEY,
    KNOWLEDGE_RECORD_KEY,
    PROJECTS_RECORD_KEY,
)
from stepwright.exceptions import StorageQuotaError, StoreError
from stepwright.knowledge import default_knowledge_items
from stepwright.models import KnowledgeItem, Project, WorkflowExecution
from stepwright.utils.fs import atomic_write_text, sanitize_key
from stepwright.utils.text import format_size

if TYPE_CHECKING:
    from stepwright.config import StoreConfig

T = TypeVar("T")


class Store(Protocol[T]):
    """Authoritative in-memory value with transform-based updates."""

    def get(self) -> T: ...

    def mutate(self, transform: Callable[[T], T]) -> T: ...


class Backend(Protocol):
    """Raw key -> text persistence."""

    def read(self, key: str) -> str | None: ...

    def write(self, key: str, text: str) -> None: ...


class MemoryBackend:
    """Backend that keeps records in a dict. Used by tests and dry runs."""

    def __init__(self, records: dict[str, str] | None = None) -> None:
        self.records: dict[str, str] = dict(records or {})

    def read(self, key: str) -> str | None:
        return self.records.get(key)

    def write(self, key: str, text: str) -> None:
        self.records[key] = text


class JsonFileBackend:
    """Backend that stores each record as ``<dir>/<key>.json``."""

    def __init__(self, directory: Path | str) -> None:
        self.directory = Path(directory).expanduser()

    def path_for(self, key: str) -> Path:
        return self.directory / f"{sanitize_key(key)}.json"

    def read(self, key: str) -> str | None:
        path = self.path_for(key)
        if not path.exists():
            return None
        try:
            return path.read_text(encoding="utf-8")
        except OSError as e:
            raise StoreError(f"Cannot read record {key} from {path}: {e}") from e

    def write(self, key: str, text: str) -> None:
        path = self.path_for(key)
        try:
            atomic_write_text(path, text)
        except OSError as e:
            raise StoreError(f"Cannot write record {key} to {path}: {e}") from e


class Collection(Generic[T]):
    """One whole-document record validated through a pydantic TypeAdapter.

    ``get`` returns a private copy; the only way to change the stored
    value is ``mutate``, which serializes the transformed value, enforces
    the size quota, writes it, and only then replaces the cached value.
    """

    def __init__(
        self,
        backend: Backend,
        key: str,
        adapter: TypeAdapter[T],
        default_factory: Callable[[], T],
        max_bytes: int | None = None,
    ) -> None:
        self.backend = backend
        self.key = key
        self.adapter = adapter
        self.default_factory = default_factory
        self.max_bytes = max_bytes
        self._value: T | None = None

    def _load(self) -> T:
        try:
            text = self.backend.read(self.key)
            if text is None:
                return self.default_factory()
            return self.adapter.validate_json(text)
        except (ValidationError, ValueError) as e:
            logger.error(f"Record {self.key} is corrupt, falling back to defaults: {e}")
            return self.default_factory()

    def _value_or_load(self) -> T:
        if self._value is None:
            self._value = self._load()
        return self._value

    def dump(self, value: T) -> str:
        return self.adapter.dump_json(
            value, by_alias=True, exclude_none=True, indent=2
        ).decode("utf-8")

    def get(self) -> T:
        return copy.deepcopy(self._value_or_load())

    def mutate(self, transform: Callable[[T], T]) -> T:
        updated = transform(self.get())
        text = self.dump(updated)
        size = len(text.encode("utf-8"))
        if self.max_bytes is not None and size > self.max_bytes:
            raise StorageQuotaError(self.key, size, self.max_bytes)
        self.backend.write(self.key, text)
        self._value = updated
        logger.debug(f"Saved record {self.key} ({format_size(size)})")
        return copy.deepcopy(updated)

    def reload(self) -> T:
        """Drop the cached value and read the record again."""
        self._value = None
        return self.get()


class Storage:
    """The three record collections sharing one backend."""

    def __init__(self, backend: Backend, max_record_bytes: int | None = None) -> None:
        self.backend = backend
        self.projects: Collection[list[Project]] = Collection(
            backend, PROJECTS_RECORD_KEY, TypeAdapter(list[Project]), list, max_record_bytes
        )
        self.knowledge: Collection[list[KnowledgeItem]] = Collection(
            backend,
            KNOWLEDGE_RECORD_KEY,
            TypeAdapter(list[KnowledgeItem]),
            default_knowledge_items,
            max_record_bytes,
        )
        self.executions: Collection[list[WorkflowExecution]] = Collection(
            backend,
            EXECUTIONS_RECORD_KEY,
            TypeAdapter(list[WorkflowExecution]),
            list,
            max_record_bytes,
        )

    @classmethod
    def from_config(cls, config: StoreConfig) -> Storage:
        directory = config.resolved_dir()
        logger.debug(f"Using data directory {directory}")
        return cls(JsonFileBackend(directory), config.max_record_bytes)

    @classmethod
    def in_memory(cls, max_record_bytes: int | None = None) -> Storage:
        return cls(MemoryBackend(), max_record_bytes)
