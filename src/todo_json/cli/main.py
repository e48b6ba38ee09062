# src/todo_json/cli/main.py

"""
CLI entrypoint.

Loads settings, initializes logging, parses the verb and runs it against the store.
Exit status: 0 ok, 1 on a TodoError (message on stderr), 2 on usage errors (argparse).
"""

from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Sequence
from pathlib import Path

from .. import __version__
from ..config import Settings, get_settings
from ..errors import TodoError
from ..logging_setup import setup_logging
from .commands import CommandContext, cmd_list, registry

logger = logging.getLogger(__name__)


def build_parser(settings: Settings) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=settings.app_name,
        description="Local todo list stored as a single JSON file.",
    )
    parser.add_argument(
        "-f",
        "--file",
        "-o",
        "--output",
        dest="store_path",
        type=Path,
        default=settings.store_path,
        help=f"Todo file (default: {settings.store_path}).",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging on stderr.")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    registry.install(parser)
    parser.set_defaults(handler=None)
    return parser


def _ensure_store_dir(store_path: Path) -> None:
    store_path.parent.mkdir(parents=True, exist_ok=True)


def main(argv: Sequence[str] | None = None, *, settings: Settings | None = None) -> int:
    if settings is None:
        settings = get_settings()
    argv = list(sys.argv[1:] if argv is None else argv)

    parser = build_parser(settings)
    args = parser.parse_args(argv)

    if args.verbose:
        console_level = logging.DEBUG
    else:
        console_level = getattr(logging, settings.log_level, logging.WARNING)
    setup_logging(
        log_dir=settings.data_dir if settings.log_to_file else None,
        console_level=console_level,
    )

    # `todo` alone behaves like `todo list`.
    handler = args.handler or cmd_list

    ctx = CommandContext(store_path=args.store_path, lock_timeout=settings.lock_timeout)
    logger.debug("Running %s store=%s", args.command or "list", ctx.store_path)

    try:
        _ensure_store_dir(ctx.store_path)
        output = handler(ctx, args)
    except (TodoError, OSError) as exc:
        logger.debug("Command failed", exc_info=True)
        print(f"{settings.app_name}: error: {exc}", file=sys.stderr)
        return 1

    if output:
        print(output)
    return 0


if __name__ == "__main__":
    sys.exit(main())
