"""Unit tests for logging configuration."""

from __future__ import annotations

import io
import json
import logging

from fern.logging import JsonFormatter, TextFormatter, configure_logging


def _record(**extra: object) -> logging.LogRecord:
    record = logging.LogRecord(
        name="fern.finder",
        level=logging.WARNING,
        pathname=__file__,
        lineno=1,
        msg="Skipping %s",
        args=("something",),
        exc_info=None,
    )
    record.__dict__.update(extra)
    return record


def test_json_formatter_includes_extra_fields() -> None:
    payload = json.loads(JsonFormatter().format(_record(path="a/b")))

    assert payload["level"] == "WARNING"
    assert payload["logger"] == "fern.finder"
    assert payload["message"] == "Skipping something"
    assert payload["fields"] == {"path": "a/b"}


def test_text_formatter_appends_extra_fields() -> None:
    line = TextFormatter().format(_record(path="a/b", error="denied"))

    assert line == "fern: WARNING: Skipping something (path=a/b, error=denied)"


def test_text_formatter_without_extras() -> None:
    assert TextFormatter().format(_record()) == "fern: WARNING: Skipping something"


def test_configure_logging_replaces_handlers() -> None:
    stream = io.StringIO()

    configure_logging("info", "json", stream=stream)
    configure_logging("info", "json", stream=stream)
    logging.getLogger("fern.test").info("hello", extra={"task": "fmt"})

    lines = stream.getvalue().splitlines()
    assert len(lines) == 1
    assert json.loads(lines[0])["fields"] == {"task": "fmt"}
    assert logging.getLogger().level == logging.INFO
