"""
File filter engine.

Narrows a selection set to the files that pass the type and date criteria,
then re-includes every selected directory that still holds a kept descendant.

Traversal rules:
- Unselected directories are pruned (never descended into)
- Symlinked directories are not followed
- Directory membership is decided post-order from the kept set, not by
  re-reading the filesystem
"""

from __future__ import annotations

import logging
import os
from datetime import date, datetime
from pathlib import Path
from typing import Iterable, Optional

from copyfiles.core.models import (
    FilteredSet,
    FilterSpec,
    SelectionSet,
    normalize_path,
)


logger = logging.getLogger(__name__)


class FileFilterEngine:
    """
    Applies a FilterSpec to a SelectionSet.

    One pre-order walk of the source tree; the result already satisfies the
    ancestor-inclusion rule, so no second pass is needed.
    """

    def apply(
        self,
        source_root: Path | str,
        selection: SelectionSet | Iterable[Path | str],
        spec: Optional[FilterSpec] = None,
        today: Optional[date] = None
    ) -> FilteredSet:
        """
        Filter a selection.

        Args:
            source_root: Root of the tree being filtered
            selection: Selected paths (the root is implied)
            spec: Filter criteria, defaults to FilterSpec.default()
            today: Reference date for date filters, defaults to date.today()

        Returns:
            FilteredSet with kept files and their selected ancestor directories

        Raises:
            OSError: a selected directory or a file's mtime cannot be read
        """
        root = normalize_path(source_root)
        if not isinstance(selection, SelectionSet):
            selection = SelectionSet.of(root, selection)
        spec = spec or FilterSpec.default()
        today = today or date.today()

        files: set[Path] = set()
        directories: set[Path] = {root}

        if root in selection:
            self._visit(root, selection, spec, today, files, directories)
        else:
            logger.warning(f"FileFilterEngine - Source root {root} is not part of the selection")

        logger.debug(
            f"FileFilterEngine - Kept {len(files)} files and "
            f"{len(directories) - 1} directories of {len(selection)} selected paths"
        )
        return FilteredSet(
            source_root=root,
            files=frozenset(files),
            directories=frozenset(directories),
        )

    def _visit(
        self,
        directory: Path,
        selection: SelectionSet,
        spec: FilterSpec,
        today: date,
        files: set[Path],
        directories: set[Path]
    ) -> bool:
        """Walk one selected directory. Returns True if anything below it was kept."""
        with os.scandir(directory) as it:
            entries = sorted(it, key=lambda e: e.name)

        kept_any = False

        for entry in entries:
            path = directory / entry.name

            if entry.is_dir(follow_symlinks=False):
                if path not in selection:
                    continue
                if self._visit(path, selection, spec, today, files, directories):
                    directories.add(path)
                    kept_any = True

            elif entry.is_file():
                if (
                    path in selection
                    and spec.matches_type(entry.name)
                    and self._passes_date(entry, spec, today)
                ):
                    files.add(path)
                    kept_any = True

        return kept_any

    @staticmethod
    def _passes_date(entry: os.DirEntry, spec: FilterSpec, today: date) -> bool:
        if spec.all_files or spec.date_option.cutoff(today) is None:
            return True
        return spec.matches_date(modified_date(entry.path), today)


def modified_date(path: Path | str) -> date:
    """Last-modified time of a file as a local calendar date."""
    return datetime.fromtimestamp(os.stat(path).st_mtime).date()
