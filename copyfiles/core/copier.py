"""
Tree copy engine.

Materializes a FilteredSet under a target root with:
- Merge semantics (existing directories are reused, files overwritten)
- Progress reporting per copied entry
- Cooperative cancellation at directory/file boundaries
- No rollback: entries already written stay on disk
"""

from __future__ import annotations

import errno
import logging
import os
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

from copyfiles.core.models import (
    ConflictError,
    CopyProgress,
    CopyResult,
    CopyStatus,
    FilteredSet,
    ValidationError,
    normalize_path,
)


logger = logging.getLogger(__name__)


@dataclass
class CopyOptions:
    """Options for copying."""
    buffer_size: int = 65536
    preserve_timestamps: bool = False


def validate_target(source_root: Path | str, target_root: Optional[Path | str]) -> bool:
    """
    Check that a target directory can receive a copy of source_root.

    Returns:
        True if the target already has content (a warning, not an error)

    Raises:
        ValidationError: target missing, not a directory, equal to the source
            or nested inside it
    """
    if target_root is None:
        raise ValidationError("No directory selected!")

    source = normalize_path(source_root)
    target = normalize_path(target_root)

    if not target.is_dir():
        raise ValidationError(f"Target directory not found: {target}")

    source_real = source.resolve()
    target_real = target.resolve()
    if target_real == source_real or source_real in target_real.parents:
        raise ValidationError(
            "Source and target directories are same, or the target is within the source."
        )

    return any(target.iterdir())


class _WalkCancelled(Exception):
    pass


class TreeCopier:
    """
    Copies the members of a FilteredSet from a source root to a target root.

    The walk is strictly sequential; the smallest cancellable unit is one
    file copy.
    """

    def __init__(self, options: Optional[CopyOptions] = None):
        self.options = options or CopyOptions()
        self._cancel_event = threading.Event()

    def cancel(self) -> None:
        """Request cancellation; honored at the next visit boundary."""
        self._cancel_event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._cancel_event.is_set()

    def copy(
        self,
        source_root: Path | str,
        target_root: Path | str,
        filtered: FilteredSet,
        cancel_check: Optional[Callable[[], bool]] = None,
        progress_callback: Optional[Callable[[CopyProgress], None]] = None
    ) -> CopyResult:
        """
        Copy a filtered tree.

        The caller must have run validate_target() first.

        Args:
            source_root: Root the filtered paths live under
            target_root: Existing directory receiving the copy
            filtered: Paths to materialize
            cancel_check: Polled before each visit; True stops the walk
            progress_callback: Called after every copied entry

        Returns:
            CopyResult; I/O failures are reported as FAILED, not raised
        """
        start_time = time.time()

        def should_stop() -> bool:
            if self._cancel_event.is_set():
                return True
            return cancel_check is not None and cancel_check()

        walk = _CopyWalk(
            source_root=normalize_path(source_root),
            target_root=normalize_path(target_root),
            filtered=filtered,
            options=self.options,
            should_stop=should_stop,
            progress_callback=progress_callback,
        )

        status = CopyStatus.SUCCEEDED
        cause: Optional[BaseException] = None

        try:
            walk.run()
        except _WalkCancelled:
            status = CopyStatus.CANCELLED
            logger.info(
                f"TreeCopier - Cancelled after {walk.units_completed} of {walk.total_work} units"
            )
        except OSError as e:
            status = CopyStatus.FAILED
            cause = e
            logger.error(f"TreeCopier - Copy aborted: {e}")

        return CopyResult(
            directories_copied=walk.directories_copied,
            files_copied=walk.files_copied,
            status=status,
            cause=cause,
            units_completed=walk.units_completed,
            total_work=walk.total_work,
            duration=time.time() - start_time,
        )


class _CopyWalk:
    """State of a single pre-order copy walk."""

    def __init__(
        self,
        source_root: Path,
        target_root: Path,
        filtered: FilteredSet,
        options: CopyOptions,
        should_stop: Callable[[], bool],
        progress_callback: Optional[Callable[[CopyProgress], None]]
    ):
        self.source_root = source_root
        self.target_root = target_root
        self.filtered = filtered
        self.options = options
        self.should_stop = should_stop
        self.progress_callback = progress_callback

        self.directories_copied = 0
        self.files_copied = 0
        self.units_completed = 0
        self.total_work = filtered.total_work

    def run(self) -> None:
        self._enter_directory(self.source_root)

    def _enter_directory(self, directory: Path) -> None:
        if self.should_stop():
            raise _WalkCancelled()

        if directory not in self.filtered.directories:
            return

        target = self._target_for(directory)
        self._make_directory(target, is_root=directory == self.source_root)

        if directory != self.source_root:
            self.directories_copied += 1
            self._advance(directory)

        with os.scandir(directory) as it:
            entries = sorted(it, key=lambda e: e.name)

        for entry in entries:
            path = directory / entry.name
            if entry.is_dir(follow_symlinks=False):
                self._enter_directory(path)
            else:
                self._visit_file(path)

    def _visit_file(self, path: Path) -> None:
        if self.should_stop():
            raise _WalkCancelled()

        if path not in self.filtered.files:
            return

        self._copy_file(path, self._target_for(path))
        self.files_copied += 1
        self._advance(path)

    def _target_for(self, path: Path) -> Path:
        return self.target_root / path.relative_to(self.source_root)

    @staticmethod
    def _make_directory(target: Path, is_root: bool = False) -> None:
        try:
            target.mkdir()
        except FileExistsError:
            # A link below the target root would redirect writes outside it
            if not target.is_dir() or (target.is_symlink() and not is_root):
                raise ConflictError(
                    errno.EEXIST, "Target exists and is not a plain directory", str(target)
                )

    def _copy_file(self, source: Path, dest: Path) -> int:
        """
        Stream a file's bytes to dest, replacing any existing file.

        An existing file or link at dest is removed first, so the link's
        referent and read-only permissions are left alone.

        Returns bytes copied.
        """
        bytes_copied = 0

        if dest.is_symlink() or dest.is_file():
            dest.unlink()

        with open(source, 'rb') as src:
            with open(dest, 'wb') as dst:
                while chunk := src.read(self.options.buffer_size):
                    dst.write(chunk)
                    bytes_copied += len(chunk)

        if self.options.preserve_timestamps:
            stat = source.stat()
            os.utime(dest, (stat.st_atime, stat.st_mtime))

        return bytes_copied

    def _advance(self, path: Path) -> None:
        self.units_completed += 1
        if self.progress_callback:
            self.progress_callback(CopyProgress(
                units_completed=self.units_completed,
                total_work=self.total_work,
                current_path=path.relative_to(self.source_root).as_posix(),
            ))
