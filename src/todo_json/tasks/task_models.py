# src/todo_json/tasks/task_models.py

from __future__ import annotations

import uuid
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import StrEnum
from typing import Any, Self

from ..errors import DuplicateError, NotFoundError, ValidationError

PRIORITY_MIN = 0
PRIORITY_MAX = 5

_IMMUTABLE_FIELDS = frozenset({"id", "created_at"})


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def new_task_id() -> str:
    return str(uuid.uuid4())


class TaskStatus(StrEnum):
    """
    Task workflow status. Values are the persisted spelling.

    Transitions:
    - Pending -> InProgress (start)
    - Pending / InProgress -> Canceled (cancel)
    - anything -> Done (mark_done); nothing leaves Done
    """

    PENDING = "Pending"
    IN_PROGRESS = "InProgress"
    DONE = "Done"
    CANCELED = "Canceled"

    @classmethod
    def parse(cls, raw: Any) -> TaskStatus:
        try:
            return cls(raw)
        except ValueError:
            raise ValidationError(f"Unknown task status: {raw!r}") from None


# ---- field validators ----


def check_title(title: Any) -> str:
    if not isinstance(title, str) or not title.strip():
        raise ValidationError("Task title must be a non-empty string.")
    return title.strip()


def check_priority(priority: Any) -> int:
    # bool is an int subclass; True is not a priority.
    if isinstance(priority, bool) or not isinstance(priority, int):
        raise ValidationError(f"Priority must be an integer, got {priority!r}.")
    if not PRIORITY_MIN <= priority <= PRIORITY_MAX:
        raise ValidationError(
            f"Priority must be between {PRIORITY_MIN} and {PRIORITY_MAX}, got {priority}."
        )
    return priority


def check_tag(tag: Any) -> str:
    if not isinstance(tag, str) or not tag.strip():
        raise ValidationError(f"Tag must be a non-empty string, got {tag!r}.")
    return tag.strip()


def check_tags(tags: Any) -> list[str]:
    # A bare string is iterable too; "work" must not become four tags.
    if isinstance(tags, (str, bytes)):
        raise ValidationError(f"Tags must be a list of strings, got {tags!r}.")
    try:
        return [check_tag(t) for t in tags]
    except TypeError:
        raise ValidationError(f"Tags must be a list of strings, got {tags!r}.") from None


def _ts_to_json(ts: datetime | None) -> str | None:
    return ts.isoformat() if ts is not None else None


def _ts_from_json(raw: Any, name: str) -> datetime | None:
    if raw is None:
        return None
    if not isinstance(raw, str):
        raise ValidationError(f"{name} must be an ISO-8601 string or null, got {raw!r}.")
    try:
        ts = datetime.fromisoformat(raw)
    except ValueError:
        raise ValidationError(f"{name} is not an ISO-8601 timestamp: {raw!r}.") from None
    # Files written by hand may omit the offset; everything we write is UTC.
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts


def _require(data: Mapping[str, Any], key: str, where: str) -> Any:
    if key not in data:
        raise ValidationError(f"{where} is missing field {key!r}.")
    return data[key]


def _check_count(value: Any, name: str, minimum: int = 0) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < minimum:
        raise ValidationError(f"{name} must be an integer >= {minimum}, got {value!r}.")
    return value


# ---- Task ----


@dataclass(slots=True)
class Task:
    """
    A single to-do item.

    Assignments go through __setattr__, so a Task can never hold an empty title,
    an out-of-range priority or an unknown status, and id / created_at cannot be
    reassigned once set. Mutations that users perform should go through the
    methods below, which also maintain updated_at / completed_at.
    """

    id: str
    title: str
    description: str | None = None
    status: TaskStatus = TaskStatus.PENDING
    priority: int = 0
    tags: list[str] = field(default_factory=list)
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime | None = None
    completed_at: datetime | None = None

    def __setattr__(self, name: str, value: Any) -> None:
        if name in _IMMUTABLE_FIELDS and hasattr(self, name):
            raise AttributeError(f"Task.{name} cannot be changed once assigned")
        if name == "id" and (not isinstance(value, str) or not value):
            raise ValidationError(f"Task id must be a non-empty string, got {value!r}.")
        if name == "title":
            value = check_title(value)
        elif name == "priority":
            value = check_priority(value)
        elif name == "status":
            value = TaskStatus.parse(value)
        object.__setattr__(self, name, value)

    def __post_init__(self) -> None:
        # Dedupe case-insensitively, first spelling wins.
        raw_tags = check_tags(self.tags)
        object.__setattr__(self, "tags", [])
        for tag in raw_tags:
            if not self.has_tag(tag):
                self.tags.append(tag)

    # ---- construction ----

    @classmethod
    def create(
        cls,
        title: str,
        description: str | None = None,
        priority: int = 0,
        tags: Iterable[str] = (),
    ) -> Task:
        """New Pending task with a fresh random id; updated_at/completed_at unset."""
        return cls(
            id=new_task_id(),
            title=title,
            description=description,
            priority=priority,
            tags=check_tags(tags),
        )

    @staticmethod
    def builder() -> TaskBuilder:
        return TaskBuilder()

    # ---- queries ----

    def has_tag(self, tag: str) -> bool:
        key = tag.strip().casefold()
        return any(t.casefold() == key for t in self.tags)

    def has_tags(self, tags: Iterable[str]) -> bool:
        """True when every requested tag is present (case-insensitive)."""
        return all(self.has_tag(t) for t in tags)

    # ---- mutations ----

    def _touch(self) -> datetime:
        now = utc_now()
        self.updated_at = now
        return now

    def mark_done(self) -> bool:
        """Move to Done. Returns False (and changes nothing) if already Done."""
        if self.status is TaskStatus.DONE:
            return False
        now = self._touch()
        self.status = TaskStatus.DONE
        if self.completed_at is None:
            self.completed_at = now
        return True

    def start(self) -> bool:
        if self.status is TaskStatus.IN_PROGRESS:
            return False
        if self.status is not TaskStatus.PENDING:
            raise ValidationError(f"Cannot start a task that is {self.status.value}.")
        self._touch()
        self.status = TaskStatus.IN_PROGRESS
        return True

    def cancel(self) -> bool:
        if self.status is TaskStatus.CANCELED:
            return False
        if self.status is TaskStatus.DONE:
            raise ValidationError("Cannot cancel a task that is already Done.")
        self._touch()
        self.status = TaskStatus.CANCELED
        return True

    def set_priority(self, priority: int) -> bool:
        priority = check_priority(priority)
        if priority == self.priority:
            return False
        self.priority = priority
        self._touch()
        return True

    def add_tag(self, tag: str) -> bool:
        tag = check_tag(tag)
        if self.has_tag(tag):
            return False
        self.tags.append(tag)
        self._touch()
        return True

    # ---- JSON shape ----

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "desc": self.description,
            "status": self.status.value,
            "priority": self.priority,
            "tags": list(self.tags),
            "created_at": _ts_to_json(self.created_at),
            "updated_at": _ts_to_json(self.updated_at),
            "completed_at": _ts_to_json(self.completed_at),
        }

    @classmethod
    def from_dict(cls, data: Any) -> Task:
        if not isinstance(data, Mapping):
            raise ValidationError(f"Task entry must be an object, got {type(data).__name__}.")

        desc = data.get("desc")
        if desc is not None and not isinstance(desc, str):
            raise ValidationError(f"Task desc must be a string or null, got {desc!r}.")

        tags = data.get("tags", [])
        if not isinstance(tags, list):
            raise ValidationError(f"Task tags must be a list, got {tags!r}.")

        created_at = _ts_from_json(_require(data, "created_at", "Task"), "created_at")
        if created_at is None:
            raise ValidationError("Task created_at must not be null.")

        status = TaskStatus.parse(_require(data, "status", "Task"))
        completed_at = _ts_from_json(data.get("completed_at"), "completed_at")
        # Done is final, so only a Done task can carry a completion time.
        if completed_at is not None and status is not TaskStatus.DONE:
            raise ValidationError(f"Task completed_at is set but status is {status.value}.")

        return cls(
            id=_require(data, "id", "Task"),
            title=_require(data, "title", "Task"),
            description=desc,
            status=status,
            priority=_require(data, "priority", "Task"),
            tags=tags,
            created_at=created_at,
            updated_at=_ts_from_json(data.get("updated_at"), "updated_at"),
            completed_at=completed_at,
        )


class TaskBuilder:
    """
    Builder stage without a title.

    There is deliberately no build() here: title() returns a TitledTaskBuilder,
    and only that stage can produce a Task.
    """

    def __init__(self) -> None:
        self._description: str | None = None
        self._priority = 0
        self._tags: list[str] = []

    def title(self, title: str) -> TitledTaskBuilder:
        titled = TitledTaskBuilder(title)
        titled._description = self._description
        titled._priority = self._priority
        titled._tags = list(self._tags)
        return titled

    def description(self, text: str) -> Self:
        self._description = text
        return self

    def priority(self, priority: int) -> Self:
        self._priority = check_priority(priority)
        return self

    def tag(self, tag: str) -> Self:
        self._tags.append(check_tag(tag))
        return self


class TitledTaskBuilder(TaskBuilder):
    def __init__(self, title: str) -> None:
        super().__init__()
        self._title = check_title(title)

    def title(self, title: str) -> TitledTaskBuilder:
        self._title = check_title(title)
        return self

    def build(self) -> Task:
        return Task.create(
            self._title,
            description=self._description,
            priority=self._priority,
            tags=self._tags,
        )


# ---- file aggregate ----


@dataclass(slots=True)
class Meta:
    """
    File-level bookkeeping.

    current_id is a leftover from sequential ids; it is carried for file-format
    compatibility and never used to identify tasks.
    """

    version: int = 1
    current_id: int = 1
    generated_at: datetime = field(default_factory=utc_now)

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": self.version,
            "current_id": self.current_id,
            "generated_at": _ts_to_json(self.generated_at),
        }

    @classmethod
    def from_dict(cls, data: Any) -> Meta:
        if not isinstance(data, Mapping):
            raise ValidationError("meta must be an object.")
        generated_at = _ts_from_json(_require(data, "generated_at", "meta"), "generated_at")
        if generated_at is None:
            raise ValidationError("meta.generated_at must not be null.")
        return cls(
            version=_check_count(_require(data, "version", "meta"), "meta.version", 1),
            current_id=_check_count(_require(data, "current_id", "meta"), "meta.current_id"),
            generated_at=generated_at,
        )


@dataclass(slots=True)
class TodoFile:
    """The whole persisted document: meta + tasks in insertion order."""

    meta: Meta = field(default_factory=Meta)
    tasks: list[Task] = field(default_factory=list)

    @classmethod
    def empty(cls) -> TodoFile:
        return cls(meta=Meta(), tasks=[])

    def bump_version(self) -> int:
        self.meta.version += 1
        return self.meta.version

    def find(self, task_id: str) -> Task | None:
        for task in self.tasks:
            if task.id == task_id:
                return task
        return None

    def get(self, task_id: str) -> Task:
        task = self.find(task_id)
        if task is None:
            raise NotFoundError(task_id)
        return task

    def append(self, task: Task) -> None:
        if self.find(task.id) is not None:
            raise DuplicateError(task.id)
        self.tasks.append(task)

    def remove(self, task_id: str) -> Task:
        for i, task in enumerate(self.tasks):
            if task.id == task_id:
                return self.tasks.pop(i)
        raise NotFoundError(task_id)

    def to_dict(self) -> dict[str, Any]:
        return {
            "meta": self.meta.to_dict(),
            "tasks": [t.to_dict() for t in self.tasks],
        }

    @classmethod
    def from_dict(cls, data: Any) -> TodoFile:
        if not isinstance(data, Mapping):
            raise ValidationError("Todo file root must be an object.")
        raw_tasks = _require(data, "tasks", "Todo file")
        if not isinstance(raw_tasks, list):
            raise ValidationError("Todo file tasks must be a list.")

        todo = cls(meta=Meta.from_dict(_require(data, "meta", "Todo file")), tasks=[])
        for raw in raw_tasks:
            try:
                todo.append(Task.from_dict(raw))
            except DuplicateError as exc:
                raise ValidationError(f"Todo file lists task {exc.task_id!r} twice.") from exc
        return todo
