"""
Copy pipeline core.

Provides:
- File filtering with ancestor re-inclusion
- Tree copy with progress and cooperative cancellation
- ZIP archive creation
- Pipeline orchestration of the three stages
"""

from copyfiles.core.models import (
    CopyProgress,
    CopyRequest,
    CopyResult,
    CopyStatus,
    ConflictError,
    DateOption,
    FilteredSet,
    FilterSpec,
    PipelineResult,
    SelectionSet,
    ValidationError,
)
from copyfiles.core.filters import FileFilterEngine
from copyfiles.core.copier import CopyOptions, TreeCopier, validate_target
from copyfiles.core.archive import ZipArchiveBuilder
from copyfiles.core.pipeline import CopyPipeline
from copyfiles.core.selection import build_selection

__all__ = [
    # Models
    'CopyProgress',
    'CopyRequest',
    'CopyResult',
    'CopyStatus',
    'ConflictError',
    'DateOption',
    'FilteredSet',
    'FilterSpec',
    'PipelineResult',
    'SelectionSet',
    'ValidationError',
    # Stages
    'FileFilterEngine',
    'CopyOptions',
    'TreeCopier',
    'validate_target',
    'ZipArchiveBuilder',
    'CopyPipeline',
    'build_selection',
]
