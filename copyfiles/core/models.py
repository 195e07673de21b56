"""
Core data models for the selective copy pipeline.

This module defines the values passed between the pipeline stages:
- Selection and filter models
- Copy progress and result models
- Pipeline request/result models
- Error types

All models are UI-agnostic and immutable once built, so they can be handed
across the worker thread boundary without locking.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from datetime import date, timedelta
from enum import Enum, auto
from pathlib import Path
from typing import Iterable, Iterator, Optional


# =============================================================================
# Enumerations
# =============================================================================

class DateOption(Enum):
    """Modification date criteria for the file filter."""
    ALL_DAYS = auto()
    TODAY = auto()
    LAST_7_DAYS = auto()
    LAST_30_DAYS = auto()

    @property
    def label(self) -> str:
        """Display label, e.g. 'Last 7 days'."""
        return _DATE_OPTION_LABELS[self]

    @property
    def days_back(self) -> Optional[int]:
        """Days subtracted from today to get the cutoff date (None = no cutoff)."""
        return _DATE_OPTION_DAYS[self]

    def cutoff(self, today: date) -> Optional[date]:
        """Files must be modified strictly after this date to pass."""
        days = self.days_back
        if days is None:
            return None
        return today - timedelta(days=days)

    @classmethod
    def lookup(cls, label: str) -> 'DateOption':
        """Return the option for a display label. Raises KeyError if unknown."""
        return _DATE_OPTION_BY_LABEL[label]

    @classmethod
    def labels(cls) -> list[str]:
        return [option.label for option in cls]

    def __str__(self) -> str:
        return self.label


_DATE_OPTION_LABELS: dict[DateOption, str] = {
    DateOption.ALL_DAYS: "All days",
    DateOption.TODAY: "Today",
    DateOption.LAST_7_DAYS: "Last 7 days",
    DateOption.LAST_30_DAYS: "Last 30 days",
}

_DATE_OPTION_BY_LABEL: dict[str, DateOption] = {
    label: option for option, label in _DATE_OPTION_LABELS.items()
}

# TODAY keeps a zero-day cutoff: "strictly after today" (see DESIGN.md).
_DATE_OPTION_DAYS: dict[DateOption, Optional[int]] = {
    DateOption.ALL_DAYS: None,
    DateOption.TODAY: 0,
    DateOption.LAST_7_DAYS: 7,
    DateOption.LAST_30_DAYS: 30,
}


class CopyStatus(Enum):
    """Terminal status of a copy run."""
    SUCCEEDED = auto()
    CANCELLED = auto()
    FAILED = auto()


# =============================================================================
# Errors
# =============================================================================

class ValidationError(ValueError):
    """Target directory is missing, or equal to / nested in the source."""
    pass


class ConflictError(FileExistsError):
    """A directory's target path already exists and is not a directory."""
    pass


# =============================================================================
# Selection and Filter Models
# =============================================================================

ALL_TYPES = "All"
NO_EXTENSION = ""

# Extension tokens offered by the filter picker. "" selects files without
# an extension.
FILE_EXTENSIONS: tuple[str, ...] = (
    ALL_TYPES, "java", "class", "txt", "doc", "docx", "xls",
    "xlsx", "ppt", "png", "jpg", "pdf", "jar", "exe", "html",
    "xhtml", "htm", "mp3", "wmv", NO_EXTENSION,
)


def normalize_path(path: Path | str) -> Path:
    """Absolute, normalized path without resolving symlinks."""
    return Path(os.path.abspath(os.fspath(path)))


def file_extension(name: str) -> str:
    """Text after the last '.' in a file name, '' when there is none."""
    index = name.rfind('.')
    return "" if index == -1 else name[index + 1:]


@dataclass(frozen=True)
class SelectionSet:
    """
    Paths chosen for copying, all under a single source root.

    The root itself is always a member.
    """
    source_root: Path
    paths: frozenset[Path]

    @classmethod
    def of(cls, source_root: Path | str, paths: Iterable[Path | str]) -> 'SelectionSet':
        root = normalize_path(source_root)
        members = {normalize_path(p) for p in paths}
        members.add(root)
        return cls(source_root=root, paths=frozenset(members))

    def __contains__(self, path: object) -> bool:
        return path in self.paths

    def __iter__(self) -> Iterator[Path]:
        return iter(self.paths)

    def __len__(self) -> int:
        return len(self.paths)


@dataclass(frozen=True)
class FilterSpec:
    """Type and date criteria that narrow a selection."""
    all_files: bool = False
    date_option: DateOption = DateOption.ALL_DAYS
    file_types: frozenset[str] = frozenset({ALL_TYPES})

    def __post_init__(self) -> None:
        # A bare string is one extension token, not a set of characters
        if isinstance(self.file_types, str):
            types = frozenset({self.file_types})
        else:
            types = frozenset(self.file_types)
        if not types:
            types = frozenset({ALL_TYPES})
        object.__setattr__(self, 'file_types', types)

    @classmethod
    def default(cls) -> 'FilterSpec':
        return cls()

    def matches_type(self, name: str) -> bool:
        if self.all_files or ALL_TYPES in self.file_types:
            return True
        return file_extension(name) in self.file_types

    def matches_date(self, modified: date, today: date) -> bool:
        if self.all_files:
            return True
        cutoff = self.date_option.cutoff(today)
        return cutoff is None or modified > cutoff

    def __str__(self) -> str:
        types = ", ".join(sorted(self.file_types, key=lambda t: (t != ALL_TYPES, t)))
        text = f"{self.date_option}, [{types}]"
        if self.all_files:
            text = f"All files ({text})"
        return text


@dataclass(frozen=True)
class FilteredSet:
    """
    Selection that survived filtering, plus re-included ancestor directories.

    `directories` always contains the source root as a structural anchor;
    the root is never counted as work.
    """
    source_root: Path
    files: frozenset[Path]
    directories: frozenset[Path]

    @classmethod
    def from_paths(cls, source_root: Path | str, paths: Iterable[Path | str]) -> 'FilteredSet':
        """Partition an arbitrary path set by checking the live filesystem."""
        root = normalize_path(source_root)
        files: set[Path] = set()
        directories: set[Path] = {root}
        for p in paths:
            path = normalize_path(p)
            if path.is_dir():
                directories.add(path)
            else:
                files.add(path)
        return cls(source_root=root, files=frozenset(files), directories=frozenset(directories))

    @property
    def paths(self) -> frozenset[Path]:
        return self.files | self.directories

    @property
    def directory_count(self) -> int:
        """Directories excluding the source root."""
        return max(len(self.directories) - 1, 0)

    @property
    def file_count(self) -> int:
        return len(self.files)

    @property
    def total_work(self) -> int:
        return self.directory_count + self.file_count

    def __contains__(self, path: object) -> bool:
        return path in self.files or path in self.directories

    def __iter__(self) -> Iterator[Path]:
        return iter(self.paths)

    def __len__(self) -> int:
        return len(self.files) + len(self.directories)


# =============================================================================
# Copy Models
# =============================================================================

@dataclass(frozen=True)
class CopyProgress:
    """Progress after one copied entry."""
    units_completed: int
    total_work: int
    current_path: str = ""

    @property
    def fraction(self) -> float:
        if self.total_work == 0:
            return 1.0
        return self.units_completed / self.total_work


@dataclass(frozen=True)
class CopyResult:
    """Terminal result of a copy run."""
    directories_copied: int
    files_copied: int
    status: CopyStatus
    cause: Optional[BaseException] = None
    units_completed: int = 0
    total_work: int = 0
    duration: float = 0.0

    @property
    def success(self) -> bool:
        return self.status == CopyStatus.SUCCEEDED

    @classmethod
    def failed(cls, cause: BaseException) -> 'CopyResult':
        return cls(directories_copied=0, files_copied=0, status=CopyStatus.FAILED, cause=cause)


# =============================================================================
# Pipeline Models
# =============================================================================

@dataclass(frozen=True)
class CopyRequest:
    """Everything the collaborator supplies for one run."""
    source_root: Path
    target_root: Path
    selection: SelectionSet
    filter_spec: FilterSpec = field(default_factory=FilterSpec.default)
    archive_requested: bool = False


@dataclass(frozen=True)
class PipelineResult:
    """Outcome of filter, copy and optional archive stages."""
    filtered: Optional[FilteredSet]
    copy_result: CopyResult
    archive_path: Optional[Path] = None
    archive_error: Optional[BaseException] = None

    @property
    def status(self) -> CopyStatus:
        return self.copy_result.status
