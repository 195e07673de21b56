"""
Worker base for running long copy jobs off the calling thread.

A worker owns a `WorkerSignals` object and talks to the outside world only
through it:
- progress(current, total, item) after each unit of work
- status(line) for human-readable log lines
- exactly one of finished(result), cancelled(result) or error(type, message)
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from enum import Enum, auto
from typing import Any, Optional

from PyQt6.QtCore import QObject, QThread, pyqtSignal, pyqtSlot, QMutex, QMutexLocker


logger = logging.getLogger(__name__)


class WorkerState(Enum):
    """Lifecycle of a worker run."""
    PENDING = auto()
    RUNNING = auto()
    CANCELLING = auto()
    CANCELLED = auto()
    COMPLETED = auto()
    FAILED = auto()


TERMINAL_STATES = frozenset({
    WorkerState.CANCELLED,
    WorkerState.COMPLETED,
    WorkerState.FAILED,
})


class WorkerSignals(QObject):
    """Channels from a worker to whoever started it. Safe across threads."""

    # (units done, units total, item just processed)
    progress = pyqtSignal(int, int, str)

    # One log line
    status = pyqtSignal(str)

    started = pyqtSignal()

    # Terminal channels; exactly one fires per run
    finished = pyqtSignal(object)
    cancelled = pyqtSignal(object)
    error = pyqtSignal(str, str)  # (exception type name, message)

    state_changed = pyqtSignal(object)  # WorkerState


class WorkerMeta(type(QObject), type(ABC)):
    pass


class BaseWorker(QObject, ABC, metaclass=WorkerMeta):
    """
    QObject worker meant to be moved onto a WorkerThread.

    Subclasses implement `do_work` and poll `is_cancelled` at points where
    stopping is safe. Returning normally reports the result on `finished`,
    or on `cancelled` when `ended_cancelled` says so; raising reports on
    `error`.
    """

    def __init__(self, parent: Optional[QObject] = None):
        super().__init__(parent)
        self.signals = WorkerSignals()
        self._lock = QMutex()
        self._state = WorkerState.PENDING
        self._cancel_requested = False
        self._result: Any = None
        self._error: Optional[tuple[str, str]] = None

    @property
    def state(self) -> WorkerState:
        with QMutexLocker(self._lock):
            return self._state

    def _set_state(self, state: WorkerState) -> None:
        with QMutexLocker(self._lock):
            self._state = state
        self.signals.state_changed.emit(state)

    @property
    def is_cancelled(self) -> bool:
        """True once cancel() has been called."""
        with QMutexLocker(self._lock):
            return self._cancel_requested

    @property
    def result(self) -> Any:
        """Last result, also set for cancelled and failed runs when known."""
        return self._result

    @property
    def error(self) -> Optional[tuple[str, str]]:
        return self._error

    def cancel(self) -> None:
        """Ask the worker to stop at its next check. Callable from any thread."""
        with QMutexLocker(self._lock):
            if self._cancel_requested or self._state in TERMINAL_STATES:
                return
            self._cancel_requested = True
            notify = self._state == WorkerState.RUNNING
            if notify:
                self._state = WorkerState.CANCELLING
        if notify:
            self.signals.state_changed.emit(WorkerState.CANCELLING)

    @pyqtSlot()
    def run(self) -> None:
        """Thread entry point. Override `do_work`, not this."""
        self._set_state(WorkerState.RUNNING)
        self.signals.started.emit()

        try:
            result = self.do_work()
        except Exception as e:
            error_type = type(e).__name__
            logger.error(f"{type(self).__name__} - {error_type}: {e}", exc_info=True)
            self._error = (error_type, str(e))
            self._set_state(WorkerState.FAILED)
            self.signals.error.emit(error_type, str(e))
            return

        self._result = result
        if self.ended_cancelled(result):
            self._set_state(WorkerState.CANCELLED)
            self.signals.cancelled.emit(result)
        else:
            self._set_state(WorkerState.COMPLETED)
            self.signals.finished.emit(result)

    @abstractmethod
    def do_work(self) -> Any:
        """Do the job on the worker thread and return its result."""

    def ended_cancelled(self, result: Any) -> bool:
        """Whether a returned result counts as a cancelled run."""
        return self.is_cancelled

    def report_progress(self, current: int, total: int, message: str = "") -> None:
        self.signals.progress.emit(current, total, message)

    def report_status(self, message: str) -> None:
        self.signals.status.emit(message)


class WorkerThread(QThread):
    """
    QThread that runs one worker and quits when it reports a terminal signal.

        thread = WorkerThread(worker)
        worker.signals.finished.connect(on_done)
        thread.start()
    """

    def __init__(self, worker: BaseWorker, parent: Optional[QObject] = None):
        super().__init__(parent)
        self.worker = worker
        worker.moveToThread(self)

        self.started.connect(worker.run)
        for terminal in (worker.signals.finished, worker.signals.cancelled, worker.signals.error):
            terminal.connect(self.quit)

    def cancel(self) -> None:
        self.worker.cancel()

    @property
    def result(self) -> Any:
        return self.worker.result

    @property
    def error(self) -> Optional[tuple[str, str]]:
        return self.worker.error
