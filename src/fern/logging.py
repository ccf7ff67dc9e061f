"""Logging configuration.

Uses standard library logging with either a plain text or a JSON formatter.
Everything goes to stderr: stdout belongs to listings and to the child
processes fern runs.

Both formatters render the ``extra={...}`` fields passed to a log call, so
``logger.info("Running command", extra={"cwd": ..., "command": ...})`` reads as
``fern: INFO: Running command (cwd=..., command=...)`` in text mode and carries
a ``fields`` object in JSON mode.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import UTC, datetime
from typing import Any, TextIO

# Attributes every LogRecord carries; anything else arrived through `extra`.
_STANDARD_RECORD_ATTRS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", logging.NOTSET, "", 0, "", None, None))
) | {"message", "asctime", "extras"}

TEXT_FORMAT = "fern: %(levelname)s: %(message)s%(extras)s"


class _FieldsFormatter(logging.Formatter):
    @staticmethod
    def fields(record: logging.LogRecord) -> dict[str, Any]:
        return {
            key: value
            for key, value in vars(record).items()
            if key not in _STANDARD_RECORD_ATTRS and not key.startswith("_")
        }


class TextFormatter(_FieldsFormatter):
    """Human-oriented formatter that appends `extra` fields as key=value pairs."""

    def __init__(self) -> None:
        super().__init__(TEXT_FORMAT)

    def format(self, record: logging.LogRecord) -> str:  # noqa: A003 (record)
        pairs = ", ".join(f"{key}={value}" for key, value in self.fields(record).items())
        record.extras = f" ({pairs})" if pairs else ""
        return super().format(record)


class JsonFormatter(_FieldsFormatter):
    """One JSON object per line: time, level, logger, message, fields, exception."""

    def format(self, record: logging.LogRecord) -> str:  # noqa: A003 (record)
        payload: dict[str, Any] = {
            "time": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if fields := self.fields(record):
            payload["fields"] = fields
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


def configure_logging(level: str, fmt: str = "text", *, stream: TextIO | None = None) -> None:
    """Point root logging at a single stderr handler.

    Args:
        level: Level name, e.g. ``"WARNING"``.
        fmt: ``"text"`` or ``"json"``.
        stream: Destination stream; defaults to the current ``sys.stderr``.
    """

    handler = logging.StreamHandler(stream=stream if stream is not None else sys.stderr)
    handler.setFormatter(JsonFormatter() if fmt == "json" else TextFormatter())

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(level.upper())
