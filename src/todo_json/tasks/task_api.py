# src/todo_json/tasks/task_api.py

"""
Task operations used by the CLI (and anything else that wants a todo list).

Every call re-reads the store from disk; nothing is cached between calls.
Mutations follow one cycle (see _mutate_store): lock + load, change in memory,
release the lock, bump meta.version, atomic write.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from pathlib import Path
from typing import TypeVar

from ..errors import ValidationError
from .task_models import Task, TodoFile, check_priority, check_tags
from .task_store import atomic_write, locked_store

logger = logging.getLogger(__name__)

T = TypeVar("T")
StorePath = str | Path


def _mutate_store(
    path: StorePath,
    mutate: Callable[[TodoFile], T],
    *,
    lock_timeout: float | None,
) -> T:
    """
    One read-modify-write cycle.

    The lock is held for open + load + mutate only, and dropped before the write.
    Two cycles whose read phases interleave (B loads before A renames) end with
    B's document on disk: A's change is lost. Sequential calls never lose data.

    If `mutate` raises, nothing is written.
    """
    with locked_store(path, lock_timeout=lock_timeout) as todo:
        result = mutate(todo)
    todo.bump_version()
    atomic_write(path, todo)
    return result


def _update_task(
    path: StorePath,
    task_id: str,
    change: Callable[[Task], object],
    *,
    lock_timeout: float | None,
) -> Task:
    def _apply(todo: TodoFile) -> Task:
        task = todo.get(task_id)
        change(task)
        return task

    return _mutate_store(path, _apply, lock_timeout=lock_timeout)


def filter_tasks(
    tasks: Iterable[Task],
    *,
    priority: int | None = None,
    tags: Iterable[str] | None = None,
) -> list[Task]:
    """
    Keep collection order.

    - priority: exact match when given
    - tags: every requested tag must be on the task (case-insensitive); extra tags are fine
    """
    wanted = check_tags(tags) if tags is not None else []
    return [
        t
        for t in tasks
        if (priority is None or t.priority == priority) and t.has_tags(wanted)
    ]


# ---- public API ----


def insert_task(path: StorePath, task: Task, *, lock_timeout: float | None = None) -> Task:
    """Append an already-built task. DuplicateError if its id is taken."""
    _mutate_store(path, lambda todo: todo.append(task), lock_timeout=lock_timeout)
    logger.info("Task added id=%s priority=%s tags=%s", task.id, task.priority, task.tags)
    return task


def add_task(
    path: StorePath,
    title: str,
    description: str | None = None,
    priority: int = 0,
    tags: Iterable[str] | None = None,
    *,
    lock_timeout: float | None = None,
) -> Task:
    # Validate before the store is opened (or created).
    task = Task.create(
        title, description=description, priority=priority, tags=tags if tags is not None else ()
    )
    return insert_task(path, task, lock_timeout=lock_timeout)


def complete_task(path: StorePath, task_id: str, *, lock_timeout: float | None = None) -> Task:
    """Mark Done. Completing a Done task keeps its original completed_at."""
    task = _update_task(path, task_id, Task.mark_done, lock_timeout=lock_timeout)
    logger.info("Task completed id=%s completed_at=%s", task.id, task.completed_at)
    return task


def start_task(path: StorePath, task_id: str, *, lock_timeout: float | None = None) -> Task:
    task = _update_task(path, task_id, Task.start, lock_timeout=lock_timeout)
    logger.info("Task started id=%s", task.id)
    return task


def cancel_task(path: StorePath, task_id: str, *, lock_timeout: float | None = None) -> Task:
    task = _update_task(path, task_id, Task.cancel, lock_timeout=lock_timeout)
    logger.info("Task canceled id=%s", task.id)
    return task


def set_task_priority(
    path: StorePath,
    task_id: str,
    priority: int,
    *,
    lock_timeout: float | None = None,
) -> Task:
    priority = check_priority(priority)
    task = _update_task(
        path, task_id, lambda t: t.set_priority(priority), lock_timeout=lock_timeout
    )
    logger.info("Task priority set id=%s priority=%s", task.id, task.priority)
    return task


def tag_task(
    path: StorePath,
    task_id: str,
    tags: Iterable[str],
    *,
    lock_timeout: float | None = None,
) -> Task:
    """Add tags (case-insensitive dedup). Tags already present are ignored."""
    clean = check_tags(tags)
    if not clean:
        raise ValidationError("At least one tag is required.")

    def _add_all(task: Task) -> None:
        for tag in clean:
            task.add_tag(tag)

    task = _update_task(path, task_id, _add_all, lock_timeout=lock_timeout)
    logger.info("Task tagged id=%s tags=%s", task.id, task.tags)
    return task


def remove_task(path: StorePath, task_id: str, *, lock_timeout: float | None = None) -> Task:
    """Delete a task, keeping the order of the others. Returns the removed task."""
    task = _mutate_store(path, lambda todo: todo.remove(task_id), lock_timeout=lock_timeout)
    logger.info("Task removed id=%s", task.id)
    return task


def list_tasks(
    path: StorePath,
    priority_filter: int | None = None,
    tag_filter: Iterable[str] | None = None,
    *,
    lock_timeout: float | None = None,
) -> list[Task]:
    """Read-only: no version bump, no write (the file is still created if missing)."""
    if priority_filter is not None:
        check_priority(priority_filter)
    tag_filter = check_tags(tag_filter) if tag_filter is not None else []
    with locked_store(path, lock_timeout=lock_timeout) as todo:
        tasks = filter_tasks(todo.tasks, priority=priority_filter, tags=tag_filter)
    logger.debug(
        "Listed tasks path=%s priority=%s tags=%s matched=%d",
        path,
        priority_filter,
        tag_filter,
        len(tasks),
    )
    return tasks
