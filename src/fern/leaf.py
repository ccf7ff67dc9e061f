"""Marker file model, parser and serializer.

A marker file (``fern.yaml``) is a single YAML mapping whose keys are task
names and whose values are either one command string or a list of them:

    fmt: cargo fmt
    test:
      - cargo build
      - cargo test

Scalar values are normalised to one-element lists at parse time, so every
consumer deals with ``list[str]`` only. Duplicate keys follow PyYAML's
``safe_load`` semantics: the last value wins.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Annotated, Any

import yaml
from pydantic import AfterValidator, BeforeValidator, RootModel, StrictStr, ValidationError

from fern.errors import MalformedLeaf

logger = logging.getLogger(__name__)

DEFAULT_MARKER_NAME = "fern.yaml"


def _describe(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "a boolean"
    if isinstance(value, int | float):
        return "a number"
    if isinstance(value, dict):
        return "a mapping"
    if isinstance(value, list):
        return "a list"
    return type(value).__name__


def _one_or_many(value: Any) -> Any:
    if isinstance(value, str):
        return [value]
    if isinstance(value, list):
        if not value:
            raise ValueError("expected at least one command, got an empty list")
        return value
    raise ValueError(
        f"expected a command string or a list of command strings, got {_describe(value)}"
    )


def _non_blank(value: str) -> str:
    if not value.strip():
        raise ValueError("command must not be blank")
    return value


Command = Annotated[StrictStr, AfterValidator(_non_blank)]
Steps = Annotated[list[Command], BeforeValidator(_one_or_many)]


class TaskDefinition(RootModel[dict[StrictStr, Steps]]):
    """Ordered mapping from task name to its non-empty list of commands."""

    def __contains__(self, task: object) -> bool:
        return task in self.root

    @property
    def names(self) -> list[str]:
        return list(self.root)

    def commands(self, task: str) -> list[str]:
        return list(self.root.get(task, []))


@dataclass(frozen=True, slots=True)
class Leaf:
    """A directory holding one marker file, together with its parsed tasks."""

    path: Path
    tasks: TaskDefinition

    @property
    def directory(self) -> Path:
        return self.path.parent

    def defines(self, task: str) -> bool:
        return task in self.tasks

    def commands(self, task: str) -> list[str]:
        return self.tasks.commands(task)


def format_validation_error(exc: ValidationError) -> str:
    """Render a pydantic error as ``<key path>: <problem>`` clauses."""

    clauses: list[str] = []
    for error in exc.errors():
        loc = list(error["loc"])
        if error["type"] == "value_error":
            message = str(error["ctx"]["error"])
        else:
            message = error["msg"]

        if loc and loc[-1] == "[key]":
            loc.pop()
            message = "task names must be strings"

        where = ".".join(repr(part) if isinstance(part, str) else str(part) for part in loc)
        clauses.append(f"{where}: {message}" if where else message)
    return "; ".join(clauses)


def describe_yaml_error(exc: yaml.YAMLError) -> str:
    problem = getattr(exc, "problem", None) or str(exc)
    mark = getattr(exc, "problem_mark", None)
    if mark is not None:
        return f"invalid YAML: {problem} (line {mark.line + 1}, column {mark.column + 1})"
    return f"invalid YAML: {problem}"


def load_yaml_document(text: str, *, source: Path) -> Any:
    """Parse one YAML document, raising `MalformedLeaf` on syntax errors."""

    try:
        return yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise MalformedLeaf(path=source, reason=describe_yaml_error(e)) from e


def build_task_definition(data: Any, *, source: Path) -> TaskDefinition:
    """Validate already-decoded YAML data into a `TaskDefinition`.

    An empty document (``None``) yields a definition without tasks.
    """

    if data is None:
        return TaskDefinition({})
    if not isinstance(data, dict):
        raise MalformedLeaf(
            path=source,
            reason=f"top level must be a mapping of task names, got {_describe(data)}",
        )
    for key in data:
        if isinstance(key, bool):
            # YAML 1.1 reads unquoted on/off/yes/no/true/false as booleans.
            raise MalformedLeaf(
                path=source,
                reason=(
                    f"task name {key!r} was read as a YAML boolean "
                    "(on, off, yes, no, true, false); quote it, e.g. 'on':"
                ),
            )
        if not isinstance(key, str):
            raise MalformedLeaf(
                path=source,
                reason=f"task name {key!r} must be a string; quote it, e.g. '{key}':",
            )

    try:
        return TaskDefinition.model_validate(data)
    except ValidationError as e:
        raise MalformedLeaf(path=source, reason=format_validation_error(e)) from e


def parse_task_definition(text: str, *, source: Path) -> TaskDefinition:
    """Parse the text of one marker file."""

    return build_task_definition(load_yaml_document(text, source=source), source=source)


def read_leaf(path: Path) -> Leaf:
    """Read and parse the marker file at ``path``."""

    try:
        text = path.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise MalformedLeaf(path=path, reason=f"not valid UTF-8: {e.reason}") from e
    except OSError as e:
        raise MalformedLeaf(path=path, reason=e.strerror or str(e)) from e

    tasks = parse_task_definition(text, source=path)
    logger.debug("Parsed leaf", extra={"path": str(path), "tasks": tasks.names})
    return Leaf(path=path, tasks=tasks)


def dump_task_definition(tasks: TaskDefinition) -> str:
    """Serialise tasks back to marker file YAML.

    Single commands are written as scalars and longer sequences as lists,
    mirroring what the parser accepts.
    """

    data: dict[str, str | list[str]] = {
        task: commands[0] if len(commands) == 1 else list(commands)
        for task, commands in tasks.root.items()
    }
    return yaml.safe_dump(
        data,
        sort_keys=False,
        explicit_start=True,
        default_flow_style=False,
        allow_unicode=True,
    )
