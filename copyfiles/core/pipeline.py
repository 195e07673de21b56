"""
Filter → copy → archive pipeline.

Runs the three stages in order for one CopyRequest. Stage failures are turned
into results; status lines go to the `copyfiles` logger hierarchy so any
attached handler (console, file, worker status signal) receives them.
"""

from __future__ import annotations

import logging
from datetime import date
from pathlib import Path
from typing import Callable, Optional

from copyfiles.core.archive import ZipArchiveBuilder
from copyfiles.core.copier import CopyOptions, TreeCopier, validate_target
from copyfiles.core.filters import FileFilterEngine
from copyfiles.core.models import (
    CopyProgress,
    CopyRequest,
    CopyResult,
    CopyStatus,
    PipelineResult,
)


logger = logging.getLogger(__name__)


class CopyPipeline:
    """
    One selective copy run.

    The target is validated on construction, so an invalid request raises
    ValidationError before any stage starts.
    """

    def __init__(
        self,
        request: CopyRequest,
        copy_options: Optional[CopyOptions] = None,
        archive_builder: Optional[ZipArchiveBuilder] = None
    ):
        self.request = request
        self.target_not_empty = validate_target(request.source_root, request.target_root)
        self._filter_engine = FileFilterEngine()
        self._copier = TreeCopier(copy_options)
        self._archive_builder = archive_builder or ZipArchiveBuilder()

    def cancel(self) -> None:
        """Request cancellation of the copy stage."""
        self._copier.cancel()

    def run(
        self,
        cancel_check: Optional[Callable[[], bool]] = None,
        progress_callback: Optional[Callable[[CopyProgress], None]] = None,
        today: Optional[date] = None
    ) -> PipelineResult:
        """Run filter, copy and (when requested) archive stages."""
        request = self.request

        logger.info(
            f"Total directories (includes root) and files selected: {len(request.selection)}"
        )
        logger.info(f"Source directory: {request.source_root}")
        logger.info(f"Target directory: {request.target_root}")
        if self.target_not_empty:
            logger.warning("The target directory is not empty.")
        logger.info(f"File filters: {request.filter_spec}")

        try:
            filtered = self._filter_engine.apply(
                request.source_root,
                request.selection,
                request.filter_spec,
                today=today,
            )
        except OSError as e:
            copy_result = CopyResult.failed(e)
            self._log_copy_outcome(copy_result)
            return PipelineResult(filtered=None, copy_result=copy_result)

        logger.info(
            f"Filters applied. Directories [{filtered.directory_count}], "
            f"Files [{filtered.file_count}]."
        )
        logger.info("Copy in progress...")

        copy_result = self._copier.copy(
            request.source_root,
            request.target_root,
            filtered,
            cancel_check=cancel_check,
            progress_callback=progress_callback,
        )
        self._log_copy_outcome(copy_result)

        archive_path: Optional[Path] = None
        archive_error: Optional[BaseException] = None

        if request.archive_requested and copy_result.success:
            if copy_result.files_copied > 0:
                logger.info("Creating ZIP file, wait... ")
                try:
                    archive_path = self._archive_builder.zip(request.target_root)
                    logger.info(f"ZIP file created: {archive_path}")
                except OSError as e:
                    archive_error = e
                    logger.error(f"There was an error creating the ZIP file: {_describe(e)}")
            else:
                logger.info("Cannot create ZIP file with files count = 0")

        return PipelineResult(
            filtered=filtered,
            copy_result=copy_result,
            archive_path=archive_path,
            archive_error=archive_error,
        )

    @staticmethod
    def _log_copy_outcome(result: CopyResult) -> None:
        if result.status == CopyStatus.SUCCEEDED:
            logger.info(
                f"Copy completed. Directories copied [{result.directories_copied}], "
                f"Files copied [{result.files_copied}]"
            )
        elif result.status == CopyStatus.CANCELLED:
            logger.info("Copy is cancelled by user.")
        else:
            logger.error("There was an error during the copy process:")
            logger.error(_describe(result.cause))
        logger.info(f"Status: {result.status.name}")


def _describe(error: Optional[BaseException]) -> str:
    if error is None:
        return "Unknown error!"
    return f"{type(error).__name__}: {error}"
