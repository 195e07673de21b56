"""
Background workers for non-blocking operations.

All workers use Qt signals for thread-safe communication
with the thread that started them.
"""

from copyfiles.workers.base_worker import (
    BaseWorker,
    WorkerSignals,
    WorkerState,
    WorkerThread,
)
from copyfiles.workers.copy_worker import (
    CopyPipelineWorker,
    StatusLogHandler,
)

__all__ = [
    # Base
    'BaseWorker',
    'WorkerSignals',
    'WorkerState',
    'WorkerThread',
    # Copy
    'CopyPipelineWorker',
    'StatusLogHandler',
]
