"""Parse discovered leaves and aggregate their task names."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path

from fern.errors import MalformedLeaf
from fern.leaf import Leaf, read_leaf

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class LoadedLeaves:
    """Result of parsing a batch of marker files."""

    leaves: list[Leaf]
    malformed: list[MalformedLeaf] = field(default_factory=list)


def load_leaves(markers: Iterable[Path]) -> LoadedLeaves:
    """Parse each marker file, isolating failures.

    Malformed leaves are logged as warnings and reported in ``malformed``; they
    never abort the batch. Input order is preserved.
    """

    leaves: list[Leaf] = []
    malformed: list[MalformedLeaf] = []
    for marker in markers:
        try:
            leaves.append(read_leaf(marker))
        except MalformedLeaf as e:
            logger.warning("Skipping malformed leaf: %s", e.reason, extra={"path": str(e.path)})
            malformed.append(e)
    return LoadedLeaves(leaves=leaves, malformed=malformed)


def build_catalog(leaves: Iterable[Leaf]) -> list[str]:
    """Return the sorted, de-duplicated union of task names."""

    names: set[str] = set()
    for leaf in leaves:
        names.update(leaf.tasks.names)
    return sorted(names)
