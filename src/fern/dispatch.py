"""Run a task's commands across the leaves that define it.

Execution is strictly sequential and fail-fast:
- leaves run in a stable order (parents before children, then by name)
- commands within a leaf run in the order they are written
- the first failing command stops everything and its exit code is reported

Commands are handed to the platform shell with the leaf's directory as the
working directory and the caller's stdin/stdout/stderr inherited, so output
appears live. There are no retries and no timeouts.
"""

from __future__ import annotations

import logging
import subprocess
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from fern.errors import CommandExitFailure, CommandLaunchFailure, NoMatchingLeaf
from fern.finder import leaf_sort_key
from fern.leaf import Leaf

logger = logging.getLogger(__name__)

# POSIX shell statuses for "command not found" and "found but not executable".
SHELL_NOT_FOUND = 127
SHELL_NOT_EXECUTABLE = 126

_SIGNAL_EXIT_BASE = 128


class CommandRunner(Protocol):
    """Runs one command string and returns its exit status."""

    def run(self, command: str, cwd: Path) -> int:
        """Run ``command`` in ``cwd``; raise `OSError` if it cannot be started."""


class ShellRunner:
    """Run commands through the system shell, inheriting standard streams."""

    def run(self, command: str, cwd: Path) -> int:
        completed = subprocess.run(command, shell=True, cwd=cwd, check=False)  # noqa: S602
        returncode = completed.returncode
        if returncode < 0:
            # Killed by a signal; report it the way a shell would.
            return _SIGNAL_EXIT_BASE - returncode
        return returncode


@dataclass(frozen=True, slots=True)
class DispatchReport:
    """What a successful dispatch did."""

    task: str
    leaves: list[Leaf]

    @property
    def commands_run(self) -> int:
        return sum(len(leaf.commands(self.task)) for leaf in self.leaves)


def matching_leaves(task: str, leaves: Iterable[Leaf]) -> list[Leaf]:
    """Return the leaves defining ``task`` in stable order."""

    matches = [leaf for leaf in leaves if leaf.defines(task)]
    return sorted(matches, key=lambda leaf: leaf_sort_key(leaf.path))


def _launch_status(error: OSError) -> int:
    if isinstance(error, FileNotFoundError):
        return SHELL_NOT_FOUND
    if isinstance(error, PermissionError):
        return SHELL_NOT_EXECUTABLE
    return 1


def run_commands(commands: Iterable[str], cwd: Path, runner: CommandRunner) -> None:
    """Run ``commands`` in order in ``cwd``, stopping at the first failure.

    Raises:
        CommandLaunchFailure: the command could not be started, or the shell
            reported it as missing (127) or not executable (126).
        CommandExitFailure: the command ran and exited non-zero.
    """

    for command in commands:
        logger.info("Running command", extra={"cwd": str(cwd), "command": command})
        try:
            status = runner.run(command, cwd)
        except OSError as e:
            raise CommandLaunchFailure(
                command=command,
                cwd=cwd,
                reason=e.strerror or str(e),
                status=_launch_status(e),
            ) from e

        if status == SHELL_NOT_FOUND:
            raise CommandLaunchFailure(
                command=command, cwd=cwd, reason="command not found", status=status
            )
        if status == SHELL_NOT_EXECUTABLE:
            raise CommandLaunchFailure(
                command=command, cwd=cwd, reason="command is not executable", status=status
            )
        if status != 0:
            raise CommandExitFailure(command=command, cwd=cwd, status=status)


def dispatch(
    task: str,
    leaves: Iterable[Leaf],
    *,
    runner: CommandRunner | None = None,
    malformed: int = 0,
) -> DispatchReport:
    """Run ``task`` in every leaf that defines it.

    ``malformed`` is the number of marker files that were found but could not
    be parsed; it only feeds the `NoMatchingLeaf` message.

    Raises:
        NoMatchingLeaf: no leaf defines ``task``.
        CommandLaunchFailure: see `run_commands`.
        CommandExitFailure: see `run_commands`; later leaves are not run.
    """

    candidates = list(leaves)
    matches = matching_leaves(task, candidates)
    if not matches:
        raise NoMatchingLeaf(task=task, searched=len(candidates) + malformed, malformed=malformed)

    active_runner = runner if runner is not None else ShellRunner()
    for leaf in matches:
        logger.info("Running task", extra={"task": task, "leaf": str(leaf.path)})
        run_commands(leaf.commands(task), leaf.directory, active_runner)

    return DispatchReport(task=task, leaves=matches)
