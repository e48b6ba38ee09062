# tests/conftest.py

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from todo_json.config import Settings


@pytest.fixture()
def store_path(tmp_path: Path) -> Path:
    """Per-test todo file location (not created yet)."""
    return tmp_path / "todo.json"


@pytest.fixture()
def settings(tmp_path: Path, store_path: Path) -> Settings:
    """
    Settings pinned to tmp paths.

    Built directly rather than via Settings.from_env() so a developer's
    TODO_* environment or .env never leaks into the tests.
    """
    return Settings(
        app_name="todo",
        log_level="WARNING",
        log_to_file=False,
        data_dir=tmp_path / ".local" / "todo",
        store_path=store_path,
        lock_timeout=None,
    )


@pytest.fixture()
def restore_logging():
    """setup_logging() rewires the root logger; drop what it added afterwards."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level

    yield

    for h in list(root.handlers):
        if h not in handlers:
            root.removeHandler(h)
            h.close()
    root.setLevel(level)
    logging.captureWarnings(False)
