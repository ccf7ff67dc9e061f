"""Test configuration and fixtures."""

from __future__ import annotations

import logging
import textwrap
from collections.abc import Callable, Iterator
from pathlib import Path

import pytest

from fern.logging import JsonFormatter, TextFormatter

FERN_ENV_VARS = ("FERN_CONFIG", "FERN_MARKER", "FERN_LOG_LEVEL", "FERN_LOG_FORMAT")

WriteLeaf = Callable[..., Path]


@pytest.fixture(autouse=True)
def _clean_fern_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the developer's own FERN_* settings out of the tests."""
    for name in FERN_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture(autouse=True)
def _restore_root_logging() -> Iterator[None]:
    """`configure_logging` installs its own root handler; drop it after each test."""
    root = logging.getLogger()
    level = root.level
    yield
    for handler in list(root.handlers):
        if isinstance(handler.formatter, TextFormatter | JsonFormatter):
            root.removeHandler(handler)
    root.setLevel(level)


@pytest.fixture
def write_leaf(tmp_path: Path) -> WriteLeaf:
    """Write a marker file below ``tmp_path`` and return its path."""

    def _write(relative: str, content: str, *, name: str = "fern.yaml") -> Path:
        directory = tmp_path / relative if relative else tmp_path
        directory.mkdir(parents=True, exist_ok=True)
        path = directory / name
        path.write_text(textwrap.dedent(content).lstrip(), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def seed_config_file(tmp_path: Path) -> Path:
    """Provide a global config with a `rust` seed template."""
    path = tmp_path / "config" / "fern.config.yaml"
    path.parent.mkdir()
    path.write_text(
        textwrap.dedent(
            """
            seeds:
              rust:
                fmt: cargo fmt
                test: cargo test
              python:
                fmt: [ruff format ., ruff check --fix .]
                test: pytest
            """
        ).lstrip(),
        encoding="utf-8",
    )
    return path
