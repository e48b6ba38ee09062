# src/todo_json/tasks/task_store.py

"""
JSON file storage engine.

One JSON document holds the whole todo list. The protocol:
- open_or_init: open (or publish a seeded new) file and take an exclusive advisory lock
- load_from: parse the locked handle into a TodoFile
- release: drop the lock (closing the handle)
- atomic_write: temp file in the same directory -> fsync -> os.replace over the path

The lock only covers the read phase. Writers never touch the original file in place,
so readers always see either the complete old or the complete new document.
"""

from __future__ import annotations

import contextlib
import json
import logging
import os
import stat
import tempfile
import time
import uuid
from collections.abc import Iterator
from pathlib import Path
from typing import IO, Any

from ..errors import (
    CorruptStoreError,
    LockTimeoutError,
    StorageError,
    StorageIOError,
    StoreExistsError,
    ValidationError,
)
from .task_models import TodoFile

if os.name == "nt":
    import msvcrt
else:
    import fcntl

logger = logging.getLogger(__name__)

LOCK_POLL_SECONDS = 0.05
JSON_INDENT = 2


def dumps(value: Any) -> str:
    """Pretty JSON for a TodoFile (or any JSON-compatible value)."""
    payload = value.to_dict() if isinstance(value, TodoFile) else value
    return json.dumps(payload, ensure_ascii=False, indent=JSON_INDENT) + "\n"


# ---- advisory locking ----


def _try_lock(fd: int) -> bool:
    """Non-blocking exclusive lock. False means another process holds it."""
    try:
        if os.name == "nt":
            os.lseek(fd, 0, os.SEEK_SET)
            msvcrt.locking(fd, msvcrt.LK_NBLCK, 1)
        else:
            fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
    except (BlockingIOError, PermissionError):
        return False
    return True


def _lock(fh: IO[str], path: Path, timeout: float | None) -> None:
    fd = fh.fileno()

    if timeout is None and os.name != "nt":
        try:
            fcntl.flock(fd, fcntl.LOCK_EX)
        except OSError as exc:
            raise StorageIOError("Could not lock todo file", path=path, phase="lock") from exc
        return

    # Bounded wait (or Windows, where there is no blocking lock call): poll.
    deadline = None if timeout is None else time.monotonic() + max(0.0, timeout)
    waited = False
    while True:
        try:
            if _try_lock(fd):
                if waited:
                    logger.debug("Lock acquired after waiting path=%s", path)
                return
        except OSError as exc:
            raise StorageIOError("Could not lock todo file", path=path, phase="lock") from exc

        if deadline is not None and time.monotonic() >= deadline:
            raise LockTimeoutError(
                f"Another process is using the todo file (gave up after {timeout:g}s)",
                path=path,
                phase="lock",
            )
        if not waited:
            logger.debug("Todo file is locked by another process, waiting path=%s", path)
            waited = True
        time.sleep(LOCK_POLL_SECONDS)


def release(fh: IO[str]) -> None:
    """Drop the advisory lock and close the handle. Safe to call twice."""
    if fh.closed:
        return
    try:
        fd = fh.fileno()
        if os.name == "nt":
            os.lseek(fd, 0, os.SEEK_SET)
            msvcrt.locking(fd, msvcrt.LK_UNLCK, 1)
        else:
            fcntl.flock(fd, fcntl.LOCK_UN)
    except OSError:
        # Closing the handle releases the lock anyway.
        logger.debug("Explicit unlock failed; relying on close.", exc_info=True)
    finally:
        fh.close()


# ---- open / load ----


def _publish_seed(path: Path) -> None:
    """
    Make `path` appear already holding an empty TodoFile.

    The seed is written and fsynced under a private name, then hard-linked to
    `path`. os.link fails if `path` exists, so the file is never visible empty
    and a lost create race surfaces as StoreExistsError.
    """
    payload = dumps(TodoFile.empty())
    tmp = path.with_name(f".{path.name}.{uuid.uuid4().hex}.seed")

    phase = "create"
    try:
        fd = os.open(tmp, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o644)
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            phase = "seed"
            fh.write(payload)
            fh.flush()
            os.fsync(fh.fileno())
        phase = "create"
        os.link(tmp, path)
    except FileExistsError as exc:
        raise StoreExistsError(
            "Todo file was created by another process", path=path, phase="create"
        ) from exc
    except OSError as exc:
        raise StorageIOError("Could not create todo file", path=path, phase=phase) from exc
    finally:
        with contextlib.suppress(OSError):
            os.unlink(tmp)

    _fsync_dir(path.parent)
    logger.info("Initialized new todo file path=%s", path)


def _open_rw(path: Path) -> IO[str]:
    try:
        return open(path, "r+", encoding="utf-8")
    except OSError as exc:
        raise StorageIOError("Could not open todo file", path=path, phase="open") from exc


def open_or_init(path: str | Path, *, lock_timeout: float | None = None) -> IO[str]:
    """
    Return a read/write handle to the store with an exclusive advisory lock held.

    - existing file: open + lock
    - missing file: publish a seeded empty TodoFile (see _publish_seed), then
      open + lock; losing a create race raises StoreExistsError (no retry)

    The lock lives as long as the handle: close it (or call release()) to drop it.
    lock_timeout=None waits forever.
    """
    path = Path(path)
    created = False
    try:
        fh = open(path, "r+", encoding="utf-8")
    except FileNotFoundError:
        _publish_seed(path)
        created = True
        fh = _open_rw(path)
    except OSError as exc:
        raise StorageIOError("Could not open todo file", path=path, phase="open") from exc

    try:
        _lock(fh, path, lock_timeout)
    except BaseException:
        fh.close()
        raise

    logger.debug("Locked todo file path=%s created=%s", path, created)
    return fh


def _handle_path(fh: IO[str]) -> str | os.PathLike[str] | None:
    # os.fdopen() handles are named by their integer fd; that is no use in messages.
    name = getattr(fh, "name", None)
    return name if isinstance(name, (str, os.PathLike)) else None


def load_from(fh: IO[str], path: str | Path | None = None) -> TodoFile:
    """
    Rewind and parse the entire handle as a TodoFile.

    Anything that is not valid JSON of the expected shape raises CorruptStoreError;
    there is no fallback to an empty list.
    """
    if path is None:
        path = _handle_path(fh)

    try:
        fh.seek(0)
        raw = fh.read()
    except UnicodeDecodeError as exc:
        raise CorruptStoreError("Todo file is not valid UTF-8", path=path, phase="read") from exc
    except OSError as exc:
        raise StorageIOError("Could not read todo file", path=path, phase="read") from exc

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise CorruptStoreError(
            f"Todo file is not valid JSON ({exc.msg} at line {exc.lineno} column {exc.colno})",
            path=path,
            phase="parse",
        ) from exc

    try:
        todo = TodoFile.from_dict(data)
    except ValidationError as exc:
        raise CorruptStoreError(f"Todo file has an unexpected shape: {exc}", path=path, phase="parse") from exc

    logger.debug("Loaded todo file path=%s version=%s tasks=%d", path, todo.meta.version, len(todo.tasks))
    return todo


@contextlib.contextmanager
def locked_store(path: str | Path, *, lock_timeout: float | None = None) -> Iterator[TodoFile]:
    """
    Read phase as a context manager: open + lock + load, release on exit.

    The yielded TodoFile stays usable after the block; only the lock is gone.
    """
    fh = open_or_init(path, lock_timeout=lock_timeout)
    try:
        yield load_from(fh, path)
    finally:
        release(fh)
        logger.debug("Released todo file lock path=%s", path)


# ---- atomic write ----


def _copy_mode(src: Path, dst: str) -> None:
    try:
        mode = stat.S_IMODE(os.stat(src).st_mode)
    except FileNotFoundError:
        return
    os.chmod(dst, mode)


def _fsync_dir(directory: Path) -> None:
    """Persist the rename itself. Best-effort; directories cannot be opened on Windows."""
    if os.name == "nt":
        return
    with contextlib.suppress(OSError):
        fd = os.open(directory, os.O_RDONLY)
        try:
            os.fsync(fd)
        finally:
            os.close(fd)


def atomic_write(path: str | Path, value: Any) -> None:
    """
    Replace `path` with the pretty JSON of `value`, all or nothing.

    The temp file is created next to `path` so os.replace stays on one filesystem.
    On any failure the original file is untouched and the temp file is removed.
    """
    path = Path(path)
    directory = path.parent

    try:
        payload = dumps(value)
    except (TypeError, ValueError) as exc:
        raise StorageError("Could not serialize todo file", path=path, phase="serialize") from exc

    phase = "create"
    tmp_name: str | None = None
    try:
        with tempfile.NamedTemporaryFile(
            "w",
            encoding="utf-8",
            dir=directory,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
        ) as tmp:
            tmp_name = tmp.name
            phase = "write"
            tmp.write(payload)
            phase = "flush"
            tmp.flush()
            phase = "sync"
            os.fsync(tmp.fileno())

        phase = "chmod"
        _copy_mode(path, tmp_name)
        phase = "rename"
        os.replace(tmp_name, path)
        tmp_name = None
    except OSError as exc:
        raise StorageIOError("Atomic write failed", path=path, phase=phase) from exc
    finally:
        if tmp_name is not None:
            with contextlib.suppress(OSError):
                os.unlink(tmp_name)

    _fsync_dir(directory)
    logger.debug("Wrote todo file path=%s bytes=%d", path, len(payload.encode("utf-8")))
