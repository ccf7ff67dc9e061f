"""Locate marker files in a directory tree.

The walk is intentionally *dumb*:
- it does not parse marker files, it only reports where they are
- it never follows symlinked directories (no cycles, no duplicate leaves)
- it skips hidden directories, a few well-known dependency/cache directories,
  and anything ignored by ``.gitignore`` files met along the way, marker
  files included

Unreadable subdirectories are logged and skipped; only an unreadable root is
fatal.
"""

from __future__ import annotations

import functools
import logging
import os
import re
from dataclasses import dataclass
from pathlib import Path

from fern.errors import NoLeafHere, WalkError
from fern.leaf import DEFAULT_MARKER_NAME

logger = logging.getLogger(__name__)

ALWAYS_IGNORED_DIRS: frozenset[str] = frozenset({"node_modules", "__pycache__", "CVS", "_darcs"})

GITIGNORE_NAME = ".gitignore"


@dataclass(frozen=True, slots=True)
class IgnoreRule:
    """One pattern read from a ``.gitignore`` file.

    Patterns without a slash match a name at any depth below ``base``. Any
    other pattern is matched against the path relative to ``base``, where
    ``**`` spans directories (so ``**/gen/out`` matches at any depth and
    ``build/*`` matches everything inside ``build``). A trailing ``/`` limits
    the rule to directories.
    """

    base: Path
    pattern: str
    anchored: bool
    directory_only: bool = False

    def matches(self, path: Path, *, is_dir: bool = True) -> bool:
        if self.directory_only and not is_dir:
            return False
        try:
            relative = path.relative_to(self.base)
        except ValueError:
            return False
        return _compile(self.pattern, self.anchored).fullmatch(relative.as_posix()) is not None


def _translate(pattern: str) -> str:
    parts: list[str] = []
    i = 0
    while i < len(pattern):
        at_segment_start = i == 0 or pattern[i - 1] == "/"
        if at_segment_start and pattern.startswith("**/", i):
            parts.append("(?:.*/)?")
            i += 3
            continue
        if at_segment_start and pattern[i:] == "**":
            parts.append(".*")
            break

        char = pattern[i]
        if char == "*":
            parts.append("[^/]*")
        elif char == "?":
            parts.append("[^/]")
        elif char == "[" and (end := pattern.find("]", i + 2)) != -1:
            body = pattern[i + 1 : end]
            if body.startswith("!"):
                body = "^" + body[1:]
            parts.append(f"[{body}]")
            i = end + 1
            continue
        else:
            parts.append(re.escape(char))
        i += 1
    return "".join(parts)


@functools.lru_cache(maxsize=256)
def _compile(pattern: str, anchored: bool) -> re.Pattern[str]:
    regex = _translate(pattern)
    if not anchored:
        regex = "(?:.*/)?" + regex
    return re.compile(regex)


def parse_ignore_rules(text: str, *, base: Path) -> list[IgnoreRule]:
    """Parse ``.gitignore`` text into rules.

    Negations (``!pattern``) are not supported and are skipped.
    """

    rules: list[IgnoreRule] = []
    for raw in text.splitlines():
        line = raw.strip()
        if not line or line.startswith("#") or line.startswith("!"):
            continue

        directory_only = line.endswith("/")
        pattern = line.rstrip("/")
        anchored = "/" in pattern
        pattern = pattern.lstrip("/")
        if not pattern:
            continue
        rules.append(
            IgnoreRule(
                base=base, pattern=pattern, anchored=anchored, directory_only=directory_only
            )
        )
    return rules


def _read_ignore_rules(directory: Path) -> list[IgnoreRule]:
    path = directory / GITIGNORE_NAME
    if not path.is_file():
        return []
    try:
        text = path.read_text(encoding="utf-8", errors="replace")
    except OSError as e:
        logger.warning("Unable to read ignore file", extra={"path": str(path), "error": e.strerror})
        return []
    return parse_ignore_rules(text, base=directory)


def is_ignored_dir(directory: Path, rules: list[IgnoreRule]) -> bool:
    name = directory.name
    if name.startswith(".") or name in ALWAYS_IGNORED_DIRS:
        return True
    return any(rule.matches(directory, is_dir=True) for rule in rules)


def _warn_unreadable(error: OSError) -> None:
    logger.warning(
        "Skipping unreadable directory",
        extra={"path": str(error.filename), "error": error.strerror},
    )


def _check_root(root: Path) -> None:
    if not root.exists():
        raise WalkError(root=root, reason="no such directory")
    if not root.is_dir():
        raise WalkError(root=root, reason="not a directory")
    try:
        with os.scandir(root):
            pass
    except OSError as e:
        raise WalkError(root=root, reason=e.strerror or str(e)) from e


def leaf_sort_key(marker: Path) -> tuple[str, ...]:
    """Stable order for leaves: by directory components, parents first."""

    return marker.parent.parts


def find_leaves(root: Path, *, marker_name: str = DEFAULT_MARKER_NAME) -> list[Path]:
    """Return every marker file under ``root`` (including ``root`` itself).

    Returns:
        Marker file paths joined onto ``root``, sorted with `leaf_sort_key`.
        An empty list when the tree holds no marker files.

    Raises:
        WalkError: if ``root`` is missing or cannot be read.
    """

    _check_root(root)

    found: list[Path] = []
    inherited: dict[Path, list[IgnoreRule]] = {}

    for dirpath, dirnames, filenames in os.walk(root, onerror=_warn_unreadable, followlinks=False):
        current = Path(dirpath)
        rules = inherited.pop(current, []) + _read_ignore_rules(current)

        if marker_name in filenames:
            marker = current / marker_name
            if any(rule.matches(marker, is_dir=False) for rule in rules):
                logger.debug("Skipping ignored marker file", extra={"path": str(marker)})
            else:
                found.append(marker)

        kept: list[str] = []
        for name in sorted(dirnames):
            child = current / name
            if is_ignored_dir(child, rules):
                logger.debug("Skipping ignored directory", extra={"path": str(child)})
                continue
            kept.append(name)
            inherited[child] = rules
        dirnames[:] = kept

    found.sort(key=leaf_sort_key)
    logger.debug("Walk finished", extra={"root": str(root), "leaves": len(found)})
    return found


def find_leaf_here(directory: Path, *, marker_name: str = DEFAULT_MARKER_NAME) -> Path:
    """Return the marker file of exactly ``directory``, without walking."""

    marker = directory / marker_name
    if not marker.is_file():
        raise NoLeafHere(directory=directory, marker_name=marker_name)
    return marker
