"""Create a new leaf from a named seed template."""

from __future__ import annotations

import logging
from pathlib import Path

from fern.config import SeedConfig
from fern.errors import LeafAlreadyExists, LeafWriteError, UnknownSeed
from fern.leaf import DEFAULT_MARKER_NAME, dump_task_definition

logger = logging.getLogger(__name__)


def seed_leaf(
    name: str,
    config: SeedConfig,
    *,
    directory: Path,
    marker_name: str = DEFAULT_MARKER_NAME,
    overwrite: bool = False,
) -> Path:
    """Write ``directory/marker_name`` from the template ``name``.

    The file is created exclusively unless ``overwrite`` is set, so an
    existing marker file is never replaced by accident.

    Returns:
        The path of the written marker file.

    Raises:
        UnknownSeed: ``name`` is not defined in ``config``.
        LeafAlreadyExists: the marker file exists and ``overwrite`` is false.
        LeafWriteError: the marker file cannot be written (missing or read-only
            directory, for example).
    """

    template = config.get(name)
    if template is None:
        raise UnknownSeed(name=name, available=tuple(config.names))

    target = directory / marker_name
    content = dump_task_definition(template)
    try:
        with target.open("w" if overwrite else "x", encoding="utf-8") as handle:
            handle.write(content)
    except FileExistsError as e:
        raise LeafAlreadyExists(path=target) from e
    except OSError as e:
        raise LeafWriteError(path=target, reason=e.strerror or str(e)) from e

    logger.info("Seeded leaf", extra={"path": str(target), "seed": name})
    return target
