# src/todo_json/cli/commands.py

from __future__ import annotations

import argparse
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from pathlib import Path

from ..tasks import task_api
from ..tasks.task_models import Task

TITLE_MAX = 48


@dataclass(frozen=True, slots=True)
class CommandContext:
    """What every handler needs: where the store is and how long to wait for it."""

    store_path: Path
    lock_timeout: float | None = None


CommandHandler = Callable[[CommandContext, argparse.Namespace], str]
ArgumentsHook = Callable[[argparse.ArgumentParser], None]


class CommandRegistry:
    """Verb registry; installs itself into an argparse parser as subcommands."""

    def __init__(self) -> None:
        self._commands: dict[str, tuple[CommandHandler, str, list[str], ArgumentsHook | None]] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
        arguments: ArgumentsHook | None = None,
    ) -> None:
        self._commands[name.lower()] = (handler, help_text, list(aliases or []), arguments)

    def install(self, parser: argparse.ArgumentParser) -> None:
        sub = parser.add_subparsers(dest="command", metavar="COMMAND")
        for name, (handler, help_text, aliases, arguments) in self._commands.items():
            p = sub.add_parser(name, help=help_text, description=help_text, aliases=aliases)
            if arguments is not None:
                arguments(p)
            p.set_defaults(handler=handler)


registry = CommandRegistry()


# ---- rendering ----


def _clip(text: str, width: int) -> str:
    return text if len(text) <= width else text[: width - 3] + "..."


def format_task_table(tasks: Sequence[Task]) -> str:
    """Fixed-width table: ID, STATUS, PRI, TITLE, TAGS (collection order)."""
    if not tasks:
        return "No tasks."

    headers = ("ID", "STATUS", "PRI", "TITLE", "TAGS")
    rows = [
        (
            t.id,
            t.status.value,
            str(t.priority) if t.priority else "-",
            _clip(t.title, TITLE_MAX),
            ", ".join(t.tags),
        )
        for t in tasks
    ]
    widths = [max(len(h), *(len(r[i]) for r in rows)) for i, h in enumerate(headers)]

    def line(cells: Sequence[str]) -> str:
        return "  ".join(c.ljust(w) for c, w in zip(cells, widths)).rstrip()

    out = [line(headers), line(["-" * w for w in widths])]
    out.extend(line(r) for r in rows)
    return "\n".join(out)


# ---- argument hooks ----


def _add_tag_option(p: argparse.ArgumentParser, help_text: str) -> None:
    p.add_argument(
        "-t",
        "--tag",
        "--tags",
        dest="tags",
        action="append",
        default=None,
        metavar="TAG",
        help=help_text,
    )


def _args_add(p: argparse.ArgumentParser) -> None:
    p.add_argument("title", help="Short task title.")
    p.add_argument("-d", "--desc", dest="description", default=None, help="Longer description.")
    p.add_argument("-p", "--priority", type=int, default=0, help="0 (none) to 5 (highest).")
    _add_tag_option(p, "Tag to attach (repeatable).")


def _args_list(p: argparse.ArgumentParser) -> None:
    p.add_argument("-p", "--priority", type=int, default=None, help="Only this exact priority.")
    _add_tag_option(p, "Only tasks carrying this tag (repeatable; all must match).")


def _args_id(p: argparse.ArgumentParser) -> None:
    p.add_argument("task_id", metavar="ID", help="Task id (as shown by `list`).")


def _args_priority(p: argparse.ArgumentParser) -> None:
    _args_id(p)
    p.add_argument("priority", type=int, help="0 (none) to 5 (highest).")


def _args_tag(p: argparse.ArgumentParser) -> None:
    _args_id(p)
    p.add_argument("tags", nargs="+", metavar="TAG", help="One or more tags.")


# ---- handlers ----


def cmd_add(ctx: CommandContext, args: argparse.Namespace) -> str:
    task = task_api.add_task(
        ctx.store_path,
        args.title,
        description=args.description,
        priority=args.priority,
        tags=args.tags,
        lock_timeout=ctx.lock_timeout,
    )
    return task.id


def cmd_list(ctx: CommandContext, args: argparse.Namespace) -> str:
    tasks = task_api.list_tasks(
        ctx.store_path,
        priority_filter=getattr(args, "priority", None),
        tag_filter=getattr(args, "tags", None),
        lock_timeout=ctx.lock_timeout,
    )
    return format_task_table(tasks)


def cmd_complete(ctx: CommandContext, args: argparse.Namespace) -> str:
    task = task_api.complete_task(ctx.store_path, args.task_id, lock_timeout=ctx.lock_timeout)
    return f"Completed: {task.title}"


def cmd_start(ctx: CommandContext, args: argparse.Namespace) -> str:
    task = task_api.start_task(ctx.store_path, args.task_id, lock_timeout=ctx.lock_timeout)
    return f"Started: {task.title}"


def cmd_cancel(ctx: CommandContext, args: argparse.Namespace) -> str:
    task = task_api.cancel_task(ctx.store_path, args.task_id, lock_timeout=ctx.lock_timeout)
    return f"Canceled: {task.title}"


def cmd_priority(ctx: CommandContext, args: argparse.Namespace) -> str:
    task = task_api.set_task_priority(
        ctx.store_path, args.task_id, args.priority, lock_timeout=ctx.lock_timeout
    )
    return f"Priority {task.priority}: {task.title}"


def cmd_tag(ctx: CommandContext, args: argparse.Namespace) -> str:
    task = task_api.tag_task(ctx.store_path, args.task_id, args.tags, lock_timeout=ctx.lock_timeout)
    return f"Tags [{', '.join(task.tags)}]: {task.title}"


def cmd_remove(ctx: CommandContext, args: argparse.Namespace) -> str:
    task = task_api.remove_task(ctx.store_path, args.task_id, lock_timeout=ctx.lock_timeout)
    return f"Removed: {task.title}"


registry.register("add", cmd_add, "Add a task and print its id.", arguments=_args_add)
registry.register(
    "list", cmd_list, "List tasks (default when no command is given).", aliases=["ls"], arguments=_args_list
)
registry.register("complete", cmd_complete, "Mark a task Done.", aliases=["done"], arguments=_args_id)
registry.register("start", cmd_start, "Move a Pending task to InProgress.", arguments=_args_id)
registry.register("cancel", cmd_cancel, "Cancel a task that is not Done.", arguments=_args_id)
registry.register("priority", cmd_priority, "Set a task's priority.", arguments=_args_priority)
registry.register("tag", cmd_tag, "Add tags to a task.", arguments=_args_tag)
registry.register("remove", cmd_remove, "Delete a task.", aliases=["rm"], arguments=_args_id)
