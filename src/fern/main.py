"""CLI entrypoint.

    fern <task> [here] [-q]     run a task in every leaf defining it
    fern exec <task> ...        same, for task names that clash with commands
    fern leaves [-p]            list marker files
    fern list [-p]              list the task names defined across all leaves
    fern seed <template>        create ./fern.yaml from the global config
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from pydantic import ValidationError

from fern import __version__
from fern.catalog import build_catalog, load_leaves
from fern.config import FernSettings, load_seed_config
from fern.dispatch import dispatch
from fern.errors import FernError, NoLeafHere
from fern.finder import find_leaf_here, find_leaves
from fern.logging import configure_logging
from fern.seed import seed_leaf

logger = logging.getLogger(__name__)

BUILTIN_COMMANDS = frozenset({"help", "leaves", "list", "seed", "exec"})

INTERRUPTED_EXIT_CODE = 130


def _add_root_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-C",
        "--root",
        type=Path,
        default=Path("."),
        help="Directory to search for leaves (defaults to the current directory)",
    )


def _add_porcelain_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-p",
        "--porcelain",
        action="store_true",
        help="Print a single space-separated line without decoration",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="fern",
        description="Run tasks declared in fern.yaml files across a directory tree",
        epilog=(
            "Any other first argument is a task name: `fern <task> [here] [-q]`. "
            "Use `fern exec <task>` for tasks named like a command."
        ),
    )
    parser.add_argument("-v", "--version", action="version", version=f"fern version {__version__}")

    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("help", help="Show this message")

    leaves = subparsers.add_parser("leaves", help="List the leaves (marker files) under the root")
    _add_porcelain_argument(leaves)
    _add_root_argument(leaves)

    list_tasks = subparsers.add_parser("list", help="List the tasks defined across all leaves")
    _add_porcelain_argument(list_tasks)
    _add_root_argument(list_tasks)

    seed = subparsers.add_parser("seed", help="Create a marker file from a seed template")
    seed.add_argument("template", nargs="?", default=None, help="Seed template name")
    seed.add_argument(
        "--force",
        action="store_true",
        help="Overwrite an existing marker file",
    )
    seed.add_argument(
        "-C",
        "--directory",
        type=Path,
        default=Path("."),
        help="Directory to create the marker file in (defaults to the current directory)",
    )

    run = subparsers.add_parser("exec", help="Run a task in every leaf that defines it")
    run.add_argument("task", help="Task name")
    run.add_argument(
        "where",
        nargs="?",
        choices=["here"],
        default=None,
        help="`here` runs only the leaf of the current directory",
    )
    run.add_argument(
        "--here",
        action="store_true",
        help="Run only the leaf of the current directory",
    )
    run.add_argument(
        "-q",
        "--quiet",
        action="store_true",
        help="Exit quietly when there is no marker file here",
    )
    _add_root_argument(run)

    return parser


def normalize_argv(argv: list[str]) -> list[str]:
    """Route `fern <task> ...` to the `exec` subcommand."""

    if argv and argv[0] not in BUILTIN_COMMANDS and not argv[0].startswith("-"):
        return ["exec", *argv]
    return argv


def _display(marker: Path, root: Path) -> str:
    try:
        return marker.relative_to(root).as_posix()
    except ValueError:
        return marker.as_posix()


def _cmd_leaves(args: argparse.Namespace, settings: FernSettings) -> int:
    markers = find_leaves(args.root, marker_name=settings.marker_name)
    paths = [_display(marker, args.root) for marker in markers]

    if args.porcelain:
        if paths:
            print(" ".join(paths))
        return 0

    if not paths:
        print(f"Did not find any {settings.marker_name} files")
        return 0

    print("Considering leaves:")
    for path in paths:
        print(f" *\t{path}")
    return 0


def _cmd_list(args: argparse.Namespace, settings: FernSettings) -> int:
    markers = find_leaves(args.root, marker_name=settings.marker_name)
    catalog = build_catalog(load_leaves(markers).leaves)

    if args.porcelain:
        if catalog:
            print(" ".join(catalog))
        return 0

    if not catalog:
        print(f"No commands are defined in any {settings.marker_name} file")
        return 0

    print("Available commands are:")
    for name in catalog:
        print(f" * {name}")
    return 0


def _cmd_seed(args: argparse.Namespace, settings: FernSettings) -> int:
    if not args.template:
        print(f"No template given to seed the {settings.marker_name} file with.", file=sys.stderr)
        return 1

    config = load_seed_config(settings.config_path)
    seed_leaf(
        args.template,
        config,
        directory=args.directory,
        marker_name=settings.marker_name,
        overwrite=args.force,
    )
    print(f"Created new {settings.marker_name} file for {args.template}")
    return 0


def _cmd_exec(args: argparse.Namespace, settings: FernSettings) -> int:
    if args.here or args.where == "here":
        try:
            markers = [find_leaf_here(args.root, marker_name=settings.marker_name)]
        except NoLeafHere:
            if args.quiet:
                return 0
            raise
    else:
        markers = find_leaves(args.root, marker_name=settings.marker_name)

    loaded = load_leaves(markers)
    report = dispatch(args.task, loaded.leaves, malformed=len(loaded.malformed))
    logger.info(
        "Task finished",
        extra={
            "task": report.task,
            "leaves": len(report.leaves),
            "commands": report.commands_run,
        },
    )
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    raw_argv = list(sys.argv[1:] if argv is None else argv)
    if not raw_argv:
        parser.print_help()
        return 0

    args = parser.parse_args(normalize_argv(raw_argv))
    if args.command == "help":
        parser.print_help()
        return 0

    try:
        settings = FernSettings()
    except ValidationError as e:
        # Logging isn't configured yet; keep it simple and actionable.
        print("Configuration error (check your FERN_* environment variables):", file=sys.stderr)
        print(e, file=sys.stderr)
        return 2

    configure_logging(settings.log_level, settings.log_format)

    try:
        if args.command == "leaves":
            return _cmd_leaves(args, settings)
        if args.command == "list":
            return _cmd_list(args, settings)
        if args.command == "seed":
            return _cmd_seed(args, settings)
        if args.command == "exec":
            return _cmd_exec(args, settings)

        logger.error("Unknown command", extra={"command": args.command})
        return 2

    except FernError as e:
        logger.debug("Command failed", exc_info=True)
        print(str(e), file=sys.stderr)
        return e.exit_code

    except KeyboardInterrupt:
        print("Interrupted", file=sys.stderr)
        return INTERRUPTED_EXIT_CODE

    except Exception:
        logger.exception("Command failed")
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
