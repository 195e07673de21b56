"""
Selection building.

Reproduces how a checkbox file tree collects its checked items, without the
tree: checking a directory checks everything beneath it, and every ancestor
of a checked item is collected as partially checked.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Iterable, Iterator

from copyfiles.core.models import SelectionSet, normalize_path


logger = logging.getLogger(__name__)


def build_selection(
    source_root: Path | str,
    checked: Iterable[Path | str] = ()
) -> SelectionSet:
    """
    Build a SelectionSet from checked paths.

    Args:
        source_root: Root of the tree
        checked: Checked files and directories; empty means the whole tree

    Raises:
        ValueError: a checked path lies outside source_root
    """
    root = normalize_path(source_root)
    checked_paths = [normalize_path(p) for p in checked]

    if not checked_paths:
        checked_paths = [root]

    members: set[Path] = {root}

    for path in checked_paths:
        if path != root and root not in path.parents:
            raise ValueError(f"{path} is not inside {root}")

        members.add(path)
        members.update(_ancestors(path, root))

        if path.is_dir() and not path.is_symlink():
            members.update(_descendants(path))

    logger.debug(f"build_selection - {len(members)} paths selected under {root}")
    return SelectionSet(source_root=root, paths=frozenset(members))


def _ancestors(path: Path, root: Path) -> Iterator[Path]:
    if path == root:
        return
    for parent in path.parents:
        yield parent
        if parent == root:
            break


def _descendants(directory: Path) -> Iterator[Path]:
    for dirpath, dirnames, filenames in os.walk(directory, followlinks=False):
        current = Path(dirpath)
        for name in dirnames:
            yield current / name
        for name in filenames:
            yield current / name
