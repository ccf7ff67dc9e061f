"""Error taxonomy for fern.

Library code raises these; only the CLI turns them into messages and exit codes.
Per-leaf parse failures (`MalformedLeaf`) are the only errors that callers are
expected to catch and continue past.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import ClassVar

# Exit status used when the requested task is not defined by any leaf.
NO_MATCHING_LEAF_EXIT_CODE = 3


class FernError(Exception):
    """Base class for every user-facing fern failure."""

    exit_code: ClassVar[int] = 1


@dataclass(frozen=True, slots=True)
class WalkError(FernError):
    """Raised when the root of a tree walk cannot be read at all."""

    root: Path
    reason: str

    def __str__(self) -> str:
        return f"Unable to walk {self.root}: {self.reason}"


@dataclass(frozen=True, slots=True)
class NoLeafHere(FernError):
    """Raised when a single-directory lookup finds no marker file."""

    directory: Path
    marker_name: str

    def __str__(self) -> str:
        return f"Did not find a {self.marker_name} file in here"


@dataclass(frozen=True, slots=True)
class MalformedLeaf(FernError):
    """Raised when one marker file cannot be turned into task definitions."""

    path: Path
    reason: str

    def __str__(self) -> str:
        return f"Malformed leaf {self.path}: {self.reason}"


@dataclass(frozen=True, slots=True)
class NoMatchingLeaf(FernError):
    """Raised when no discovered leaf defines the requested task."""

    task: str
    searched: int
    malformed: int = 0

    exit_code: ClassVar[int] = NO_MATCHING_LEAF_EXIT_CODE

    def __str__(self) -> str:
        message = f"Did not find any leaf defining {self.task!r}"
        if self.searched == 0:
            return f"{message} (no leaves found)"
        if self.malformed:
            return f"{message} (searched {self.searched} leaves, {self.malformed} malformed)"
        return f"{message} (searched {self.searched} leaves)"


@dataclass(frozen=True, slots=True)
class CommandLaunchFailure(FernError):
    """Raised when a command could not be started (missing or non-executable program)."""

    command: str
    cwd: Path
    reason: str
    status: int = 1

    @property
    def exit_code(self) -> int:  # type: ignore[override]
        return self.status

    def __str__(self) -> str:
        return f"Unable to launch {self.command!r} in {self.cwd}: {self.reason}"


@dataclass(frozen=True, slots=True)
class CommandExitFailure(FernError):
    """Raised when a command ran and exited non-zero."""

    command: str
    cwd: Path
    status: int

    @property
    def exit_code(self) -> int:  # type: ignore[override]
        return self.status

    def __str__(self) -> str:
        return f"Failed to execute command {self.command!r} in {self.cwd}: exit code {self.status}"


@dataclass(frozen=True, slots=True)
class NoConfig(FernError):
    """Raised by seeding when the global config file does not exist."""

    path: Path

    def __str__(self) -> str:
        return f"Config file at {self.path} does not exist"


@dataclass(frozen=True, slots=True)
class ConfigParseError(FernError):
    """Raised by seeding when the global config file cannot be parsed."""

    path: Path
    reason: str

    def __str__(self) -> str:
        return f"Unable to read configuration {self.path}: {self.reason}"


@dataclass(frozen=True, slots=True)
class UnknownSeed(FernError):
    """Raised when the requested seed template is not in the config."""

    name: str
    available: tuple[str, ...] = ()

    def __str__(self) -> str:
        message = f"Did not find {self.name} in config"
        if self.available:
            message += f" (available: {', '.join(self.available)})"
        return message


@dataclass(frozen=True, slots=True)
class LeafAlreadyExists(FernError):
    """Raised when seeding would overwrite an existing marker file."""

    path: Path

    def __str__(self) -> str:
        return f"{self.path} already exists; use --force to overwrite it"


@dataclass(frozen=True, slots=True)
class LeafWriteError(FernError):
    """Raised when seeding cannot write the marker file."""

    path: Path
    reason: str

    def __str__(self) -> str:
        return f"Unable to write {self.path}: {self.reason}"
