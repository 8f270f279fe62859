"""Custom exceptions for stepwright."""

from __future__ import annotations


class StepwrightError(Exception):
    """Base exception class for stepwright."""

    pass


class ConfigurationError(StepwrightError):
    """Configuration error."""

    pass


class EnvVarNotFoundError(ConfigurationError, ValueError):
    """Raised when an environment variable referenced by env: syntax is not found."""

    def __init__(self, var_name: str) -> None:
        self.var_name = var_name
        super().__init__(f"Environment variable not found: {var_name}")


class ArchiveError(StepwrightError):
    """The import archive could not be read."""

    pass


class NoDocumentFoundError(ArchiveError):
    """The archive contains no document entries to flatten."""

    def __init__(self, entry_count: int = 0) -> None:
        self.entry_count = entry_count
        super().__init__(
            f"No HTML documents found in archive ({entry_count} entries scanned)"
        )


class PdfExtractionError(StepwrightError):
    """The PDF could not be opened or its text could not be extracted."""

    pass


class StoreError(StepwrightError):
    """Persistence layer error."""

    pass


class StorageQuotaError(StoreError):
    """A serialized record exceeds the configured size limit."""

    def __init__(self, key: str, size_bytes: int, limit_bytes: int) -> None:
        self.key = key
        self.size_bytes = size_bytes
        self.limit_bytes = limit_bytes
        size_mb = size_bytes / (1024 * 1024)
        super().__init__(
            f"Storage limit exceeded for '{key}' ({size_mb:.2f}MB). "
            "Try importing with fewer images or remove some existing workflows."
        )


class NotFoundError(StepwrightError):
    """A referenced record does not exist."""

    kind = "Record"

    def __init__(self, record_id: str) -> None:
        self.record_id = record_id
        super().__init__(f"{self.kind} not found: {record_id}")


class ProjectNotFoundError(NotFoundError):
    kind = "Project"


class WorkflowNotFoundError(NotFoundError):
    kind = "Workflow"


class TaskNotFoundError(NotFoundError):
    kind = "Task"


class ExecutionNotFoundError(NotFoundError):
    kind = "Execution"


class KnowledgeItemNotFoundError(NotFoundError):
    kind = "Knowledge item"


class LLMError(StepwrightError):
    """LLM-related error."""

    pass
