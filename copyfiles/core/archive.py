"""
ZIP archive builder for a copied directory tree.
"""

from __future__ import annotations

import logging
import os
import zipfile
from pathlib import Path
from typing import Iterator


logger = logging.getLogger(__name__)


class ZipArchiveBuilder:
    """
    Streams a directory tree into `<directory-name>.zip` next to the directory.

    Each regular file becomes one entry named by its path relative to the
    directory; directories get no entries of their own. File contents pass
    through a fixed-size buffer so large files are never held in memory.
    """

    def __init__(
        self,
        buffer_size: int = 8192,
        compression: int = zipfile.ZIP_DEFLATED
    ):
        self.buffer_size = buffer_size
        self.compression = compression

    @staticmethod
    def archive_path_for(directory: Path | str) -> Path:
        directory = Path(os.path.abspath(directory))
        return directory.parent / f"{directory.name}.zip"

    def zip(self, directory: Path | str) -> Path:
        """
        Build the archive.

        Returns:
            Path of the archive file

        Raises:
            OSError: on any read/write failure; the partial archive is removed
        """
        directory = Path(os.path.abspath(directory))
        archive_path = self.archive_path_for(directory)

        try:
            with zipfile.ZipFile(archive_path, 'w', compression=self.compression) as archive:
                for path in iter_regular_files(directory):
                    self._add_file(archive, path, path.relative_to(directory).as_posix())
        except OSError:
            logger.error(f"ZipArchiveBuilder - Failed to build {archive_path}, removing it")
            try:
                archive_path.unlink()
            except OSError as e:
                logger.debug(f"ZipArchiveBuilder - Could not remove partial archive: {e}")
            raise

        logger.debug(f"ZipArchiveBuilder - Wrote {archive_path}")
        return archive_path

    def _add_file(self, archive: zipfile.ZipFile, path: Path, arcname: str) -> None:
        info = zipfile.ZipInfo.from_file(path, arcname, strict_timestamps=False)
        info.compress_type = self.compression

        with open(path, 'rb') as src, archive.open(info, 'w') as dst:
            while chunk := src.read(self.buffer_size):
                dst.write(chunk)


def iter_regular_files(directory: Path) -> Iterator[Path]:
    """Pre-order walk yielding regular files, entries sorted by name."""
    with os.scandir(directory) as it:
        entries = sorted(it, key=lambda e: e.name)

    for entry in entries:
        path = directory / entry.name
        if entry.is_dir(follow_symlinks=False):
            yield from iter_regular_files(path)
        elif entry.is_file():
            yield path
