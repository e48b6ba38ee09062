# tests/test_task_models.py

from __future__ import annotations

import json

import pytest

from todo_json.errors import DuplicateError, NotFoundError, ValidationError
from todo_json.tasks.task_models import Task, TaskBuilder, TaskStatus, TodoFile


def test_create_sets_initial_state() -> None:
    task = Task.create("buy milk", priority=2)

    assert len(task.id) == 36
    assert task.title == "buy milk"
    assert task.description is None
    assert task.status is TaskStatus.PENDING
    assert task.priority == 2
    assert task.tags == []
    assert task.created_at.tzinfo is not None
    assert task.updated_at is None
    assert task.completed_at is None


def test_create_generates_distinct_ids() -> None:
    ids = {Task.create("t").id for _ in range(50)}
    assert len(ids) == 50


def test_create_strips_title() -> None:
    assert Task.create("  buy milk \n").title == "buy milk"


@pytest.mark.parametrize("title", ["", "   ", None, 42])
def test_create_rejects_missing_title(title) -> None:
    with pytest.raises(ValidationError):
        Task.create(title)


@pytest.mark.parametrize("priority", [0, 5])
def test_priority_bounds_are_inclusive(priority: int) -> None:
    assert Task.create("t", priority=priority).priority == priority


@pytest.mark.parametrize("priority", [-1, 6, True, 2.0, "3"])
def test_create_rejects_bad_priority(priority) -> None:
    with pytest.raises(ValidationError):
        Task.create("t", priority=priority)


def test_set_priority_validates_and_touches() -> None:
    task = Task.create("t")

    with pytest.raises(ValidationError):
        task.set_priority(6)
    assert task.priority == 0
    assert task.updated_at is None

    assert task.set_priority(0) is False
    assert task.updated_at is None

    assert task.set_priority(5) is True
    assert task.priority == 5
    assert task.updated_at is not None


def test_direct_assignment_is_validated() -> None:
    task = Task.create("t")
    with pytest.raises(ValidationError):
        task.priority = 9
    with pytest.raises(ValidationError):
        task.title = " "
    with pytest.raises(ValidationError):
        task.status = "Finished"
    assert task.priority == 0
    assert task.title == "t"


def test_id_and_created_at_cannot_be_reassigned() -> None:
    task = Task.create("t")
    with pytest.raises(AttributeError):
        task.id = "something-else"
    with pytest.raises(AttributeError):
        task.created_at = task.created_at


def test_tags_are_case_insensitive_and_keep_first_spelling() -> None:
    task = Task.create("t")

    assert task.add_tag("Work") is True
    first_touch = task.updated_at
    assert task.add_tag("work") is False

    assert task.tags == ["Work"]
    assert task.updated_at == first_touch
    assert task.has_tag("WORK")
    assert task.has_tags(["work", "Work"])
    assert not task.has_tags(["work", "home"])


def test_create_dedupes_tags_in_order() -> None:
    task = Task.create("t", tags=["home", "Urgent", "HOME", " urgent "])
    assert task.tags == ["home", "Urgent"]


@pytest.mark.parametrize("tag", ["", "  ", None])
def test_add_tag_rejects_blank(tag) -> None:
    with pytest.raises(ValidationError):
        Task.create("t").add_tag(tag)


def test_mark_done_is_idempotent() -> None:
    task = Task.create("t")

    assert task.mark_done() is True
    assert task.status is TaskStatus.DONE
    assert task.completed_at is not None
    assert task.completed_at == task.updated_at
    completed_at = task.completed_at

    assert task.mark_done() is False
    assert task.completed_at == completed_at


def test_completed_at_survives_later_edits() -> None:
    task = Task.create("t")
    task.mark_done()
    completed_at = task.completed_at

    task.set_priority(4)
    task.add_tag("later")

    assert task.status is TaskStatus.DONE
    assert task.completed_at == completed_at


def test_workflow_transitions() -> None:
    task = Task.create("t")

    assert task.start() is True
    assert task.status is TaskStatus.IN_PROGRESS
    assert task.start() is False

    assert task.cancel() is True
    assert task.status is TaskStatus.CANCELED
    assert task.cancel() is False
    with pytest.raises(ValidationError):
        task.start()

    # A canceled task can still be completed; Done is final.
    assert task.mark_done() is True
    with pytest.raises(ValidationError):
        task.cancel()
    with pytest.raises(ValidationError):
        task.start()
    assert task.status is TaskStatus.DONE


def test_builder_only_builds_after_title() -> None:
    untitled = Task.builder().priority(3).tag("home").description("on the balcony")
    assert isinstance(untitled, TaskBuilder)
    assert not hasattr(untitled, "build")

    task = untitled.title("water plants").tag("Home").tag("weekly").build()

    assert task.title == "water plants"
    assert task.description == "on the balcony"
    assert task.priority == 3
    assert task.tags == ["home", "weekly"]
    assert task.status is TaskStatus.PENDING


def test_builder_validates_eagerly() -> None:
    with pytest.raises(ValidationError):
        Task.builder().priority(7)
    with pytest.raises(ValidationError):
        Task.builder().title("")


def test_status_uses_persisted_spelling() -> None:
    assert [s.value for s in TaskStatus] == ["Pending", "InProgress", "Done", "Canceled"]


def test_todo_file_empty() -> None:
    todo = TodoFile.empty()
    assert todo.meta.version == 1
    assert todo.meta.current_id == 1
    assert todo.tasks == []
    assert todo.bump_version() == 2
    assert todo.meta.version == 2


def test_todo_file_append_get_remove() -> None:
    todo = TodoFile.empty()
    a, b, c = Task.create("a"), Task.create("b"), Task.create("c")
    for t in (a, b, c):
        todo.append(t)

    with pytest.raises(DuplicateError):
        todo.append(b)

    assert todo.get(b.id) is b
    assert todo.find("missing") is None
    with pytest.raises(NotFoundError):
        todo.get("missing")

    assert todo.remove(b.id) is b
    assert [t.title for t in todo.tasks] == ["a", "c"]
    with pytest.raises(NotFoundError):
        todo.remove(b.id)


def test_todo_file_round_trip() -> None:
    todo = TodoFile.empty()
    a = Task.create("a", description="first", priority=3, tags=["Home", "errand"])
    b = Task.create("b")
    b.start()
    c = Task.create("c", priority=5)
    c.mark_done()
    for t in (a, b, c):
        todo.append(t)
    todo.bump_version()

    restored = TodoFile.from_dict(json.loads(json.dumps(todo.to_dict())))

    assert restored == todo
    assert restored.meta.version == 2
    assert restored.tasks[2].completed_at == c.completed_at


def test_task_to_dict_uses_file_format_keys() -> None:
    data = Task.create("t", description="d").to_dict()
    assert set(data) == {
        "id",
        "title",
        "desc",
        "status",
        "priority",
        "tags",
        "created_at",
        "updated_at",
        "completed_at",
    }
    assert data["desc"] == "d"
    assert data["status"] == "Pending"
    assert data["updated_at"] is None


def _valid_task_dict() -> dict:
    return Task.create("t", tags=["x"]).to_dict()


@pytest.mark.parametrize(
    "patch",
    [
        {"title": ""},
        {"priority": 9},
        {"status": "Finished"},
        {"tags": "x"},
        {"tags": ["ok", 3]},
        {"created_at": "yesterday"},
        {"created_at": None},
        {"desc": 5},
        {"id": ""},
        {"completed_at": "2024-01-01T00:00:00+00:00"},
    ],
)
def test_task_from_dict_rejects_bad_fields(patch: dict) -> None:
    data = _valid_task_dict()
    data.update(patch)
    with pytest.raises(ValidationError):
        Task.from_dict(data)


@pytest.mark.parametrize("missing", ["id", "title", "status", "priority", "created_at"])
def test_task_from_dict_requires_fields(missing: str) -> None:
    data = _valid_task_dict()
    del data[missing]
    with pytest.raises(ValidationError):
        Task.from_dict(data)


def test_todo_file_from_dict_rejects_duplicate_ids() -> None:
    entry = _valid_task_dict()
    data = TodoFile.empty().to_dict()
    data["tasks"] = [entry, dict(entry)]
    with pytest.raises(ValidationError):
        TodoFile.from_dict(data)


def test_naive_timestamps_are_read_as_utc() -> None:
    data = _valid_task_dict()
    data["created_at"] = "2024-05-01T10:00:00"
    task = Task.from_dict(data)
    assert task.created_at.utcoffset() is not None
    assert task.created_at.utcoffset().total_seconds() == 0


@pytest.mark.parametrize("tags", ["work", b"work", 5, [None], ["ok", ""]])
def test_create_rejects_tags_that_are_not_a_list_of_strings(tags) -> None:
    with pytest.raises(ValidationError):
        Task.create("t", tags=tags)


def test_completed_at_is_kept_for_a_done_task() -> None:
    task = Task.create("t")
    task.cancel()
    task.mark_done()
    assert Task.from_dict(task.to_dict()).completed_at == task.completed_at
