"""
Worker for the selective copy pipeline.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

from PyQt6.QtCore import QObject

from copyfiles.core.archive import ZipArchiveBuilder
from copyfiles.core.copier import CopyOptions
from copyfiles.core.models import CopyProgress, CopyRequest, CopyStatus, PipelineResult
from copyfiles.core.pipeline import CopyPipeline
from copyfiles.workers.base_worker import BaseWorker


PACKAGE_LOGGER = "copyfiles"


class StatusLogHandler(logging.Handler):
    """
    Forwards log records to a message sink.

    When `thread_id` is given, only records logged on that thread are
    forwarded, so concurrent runs do not see each other's lines.
    """

    def __init__(
        self,
        sink: Callable[[str], None],
        thread_id: Optional[int] = None,
        level: int = logging.INFO
    ):
        super().__init__(level)
        self._sink = sink
        self._thread_id = thread_id
        self.setFormatter(logging.Formatter('%(message)s'))

    def emit(self, record: logging.LogRecord) -> None:
        if self._thread_id is not None and record.thread != self._thread_id:
            return
        try:
            self._sink(self.format(record))
        except Exception:
            self.handleError(record)


class CopyPipelineWorker(BaseWorker):
    """
    Runs filter, copy and archive for one request on a background thread.

    Channels:
        signals.progress  (units_completed, total_work, current_path)
        signals.status    one log line per pipeline message
        finished / cancelled (PipelineResult) or error (type, message)

    The request is validated on construction; an invalid target raises
    ValidationError and no worker is created.
    """

    def __init__(
        self,
        request: CopyRequest,
        copy_options: Optional[CopyOptions] = None,
        archive_builder: Optional[ZipArchiveBuilder] = None,
        parent: Optional[QObject] = None
    ):
        super().__init__(parent)
        self.request = request
        self._pipeline = CopyPipeline(request, copy_options, archive_builder)

    @property
    def target_not_empty(self) -> bool:
        return self._pipeline.target_not_empty

    def do_work(self) -> PipelineResult:
        """Run the pipeline, relaying package log lines as status messages."""
        package_logger = logging.getLogger(PACKAGE_LOGGER)
        handler = StatusLogHandler(self.report_status, thread_id=threading.get_ident())
        previous_level = package_logger.level

        if package_logger.getEffectiveLevel() > logging.INFO:
            package_logger.setLevel(logging.INFO)
        package_logger.addHandler(handler)

        try:
            result = self._pipeline.run(
                cancel_check=lambda: self.is_cancelled,
                progress_callback=self._on_progress,
            )
        finally:
            package_logger.removeHandler(handler)
            package_logger.setLevel(previous_level)

        self._result = result

        cause = result.copy_result.cause
        if result.status == CopyStatus.FAILED and cause is not None:
            raise cause

        return result

    def ended_cancelled(self, result: PipelineResult) -> bool:
        return result.status == CopyStatus.CANCELLED

    def cancel(self) -> None:
        """Cancel the copy stage."""
        super().cancel()
        self._pipeline.cancel()

    def _on_progress(self, progress: CopyProgress) -> None:
        self.report_progress(
            progress.units_completed,
            progress.total_work,
            progress.current_path,
        )
