# src/todo_json/__init__.py

"""Local JSON-backed todo list: task model, locked atomic storage, CLI."""

from __future__ import annotations

from .errors import (
    CorruptStoreError,
    DeserializationError,
    DuplicateError,
    LockTimeoutError,
    NotFoundError,
    StorageError,
    StorageIOError,
    StoreExistsError,
    TodoError,
    ValidationError,
)
from .tasks.task_api import (
    add_task,
    cancel_task,
    complete_task,
    list_tasks,
    remove_task,
    set_task_priority,
    start_task,
    tag_task,
)
from .tasks.task_models import Task, TaskStatus, TodoFile

__version__ = "0.1.0"

__all__ = [
    "CorruptStoreError",
    "DeserializationError",
    "DuplicateError",
    "LockTimeoutError",
    "NotFoundError",
    "StorageError",
    "StorageIOError",
    "StoreExistsError",
    "Task",
    "TaskStatus",
    "TodoError",
    "TodoFile",
    "ValidationError",
    "add_task",
    "cancel_task",
    "complete_task",
    "list_tasks",
    "remove_task",
    "set_task_priority",
    "start_task",
    "tag_task",
]
