# src/todo_json/errors.py

"""
Error taxonomy shared by the task model, the storage engine and the CLI.

Everything raised on purpose derives from TodoError, so the CLI can turn any
expected failure into a message + exit status without catching bare Exception.
"""

from __future__ import annotations

from pathlib import Path


class TodoError(Exception):
    """Base class for every expected failure."""


class ValidationError(TodoError, ValueError):
    """Invalid field value or illegal status transition."""


class NotFoundError(TodoError):
    def __init__(self, task_id: str) -> None:
        super().__init__(f"No task with id {task_id!r}.")
        self.task_id = task_id


class DuplicateError(TodoError):
    def __init__(self, task_id: str) -> None:
        super().__init__(f"A task with id {task_id!r} already exists.")
        self.task_id = task_id


class StorageError(TodoError):
    """
    Storage failure with context.

    - path: the store file (or None when unknown)
    - phase: which step failed ("open", "lock", "read", "serialize", "rename", ...)
    """

    def __init__(self, message: str, *, path: str | Path | None = None, phase: str = "") -> None:
        self.path = Path(path) if path is not None else None
        self.phase = phase
        where = f" [{phase}]" if phase else ""
        target = f" {self.path}" if self.path is not None else ""
        super().__init__(f"{message}{where}{target}")


class CorruptStoreError(StorageError):
    """The store content is not valid JSON or not shaped like a todo file."""


# The storage layer talks about deserialization, callers usually about corruption.
DeserializationError = CorruptStoreError


class StorageIOError(StorageError):
    """OS-level failure while creating, opening, locking, syncing or renaming."""


class StoreExistsError(StorageError):
    """Another process created the store between our existence check and create."""


class LockTimeoutError(StorageError):
    """The advisory lock was not acquired within the configured timeout."""
