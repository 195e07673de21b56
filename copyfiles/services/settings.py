"""
Application settings management.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field, asdict
from enum import Enum
from pathlib import Path
from typing import Any, Optional

from copyfiles.core.copier import CopyOptions
from copyfiles.core.models import ALL_TYPES, DateOption, FilterSpec


logger = logging.getLogger(__name__)


@dataclass
class CopySettings:
    """Settings for the copy stage."""
    buffer_size: int = 65536
    preserve_timestamps: bool = False

    def to_options(self) -> CopyOptions:
        return CopyOptions(
            buffer_size=self.buffer_size,
            preserve_timestamps=self.preserve_timestamps,
        )


@dataclass
class FilterSettings:
    """Default file filters."""
    all_files: bool = False
    date_option: DateOption = DateOption.ALL_DAYS
    file_types: list[str] = field(default_factory=lambda: [ALL_TYPES])

    def to_spec(self) -> FilterSpec:
        return FilterSpec(
            all_files=self.all_files,
            date_option=self.date_option,
            file_types=frozenset(self.file_types),
        )


@dataclass
class ArchiveSettings:
    """Settings for ZIP creation."""
    create_archive: bool = False
    buffer_size: int = 8192


@dataclass
class ApplicationSettings:
    """Main application settings container."""
    copy: CopySettings = field(default_factory=CopySettings)
    filters: FilterSettings = field(default_factory=FilterSettings)
    archive: ArchiveSettings = field(default_factory=ArchiveSettings)

    recent_source_paths: list[str] = field(default_factory=list)
    recent_target_paths: list[str] = field(default_factory=list)
    recent_paths_limit: int = 5


class SettingsManager:
    """
    JSON-backed store for ApplicationSettings.

    Settings are read lazily on first access. A missing or unreadable file
    yields defaults; write failures are logged and reported as False.
    """

    def __init__(self, settings_path: Optional[Path] = None):
        self.settings_path = settings_path or self.default_path()
        self._settings: Optional[ApplicationSettings] = None

    @staticmethod
    def default_path() -> Path:
        """%APPDATA%\\CopyFiles on Windows, $XDG_CONFIG_HOME/copyfiles elsewhere."""
        if os.name == 'nt':
            base = Path(os.environ.get('APPDATA') or Path.home())
            return base / 'CopyFiles' / 'settings.json'
        base = Path(os.environ.get('XDG_CONFIG_HOME') or Path.home() / '.config')
        return base / 'copyfiles' / 'settings.json'

    @property
    def settings(self) -> ApplicationSettings:
        if self._settings is None:
            self._settings = self.load()
        return self._settings

    def load(self) -> ApplicationSettings:
        if not self.settings_path.is_file():
            return ApplicationSettings()

        try:
            data = json.loads(self.settings_path.read_text(encoding='utf-8'))
            return self._from_dict(data)
        except (OSError, ValueError, TypeError, AttributeError) as e:
            logger.warning(f"SettingsManager - Ignoring unreadable {self.settings_path}: {e}")
            return ApplicationSettings()

    def save(self, settings: Optional[ApplicationSettings] = None) -> bool:
        settings = settings or self._settings
        if settings is None:
            return False

        try:
            self.settings_path.parent.mkdir(parents=True, exist_ok=True)
            self.settings_path.write_text(
                json.dumps(self._to_dict(settings), indent=2),
                encoding='utf-8'
            )
        except OSError as e:
            logger.warning(f"SettingsManager - Could not write {self.settings_path}: {e}")
            return False

        self._settings = settings
        return True

    def reset(self) -> ApplicationSettings:
        """Replace the stored settings with defaults."""
        self._settings = ApplicationSettings()
        self.save()
        return self._settings

    def add_recent_path(self, path: str, is_source: bool) -> None:
        """Move path to the front of the recent source/target list and save."""
        settings = self.settings
        attr = 'recent_source_paths' if is_source else 'recent_target_paths'

        recent = [p for p in getattr(settings, attr) if p != path]
        recent.insert(0, path)
        setattr(settings, attr, recent[:settings.recent_paths_limit])

        self.save()

    def _to_dict(self, settings: ApplicationSettings) -> dict:
        """Convert settings to dictionary for JSON serialization."""
        def convert(obj: Any) -> Any:
            if isinstance(obj, Enum):
                return obj.name
            elif hasattr(obj, '__dataclass_fields__'):
                return {k: convert(v) for k, v in asdict(obj).items()}
            elif isinstance(obj, list):
                return [convert(item) for item in obj]
            elif isinstance(obj, dict):
                return {k: convert(v) for k, v in obj.items()}
            else:
                return obj

        return convert(settings)

    def _from_dict(self, data: dict) -> ApplicationSettings:
        """Convert dictionary back to settings objects."""
        def get_enum(enum_class: type, value: Any) -> Enum:
            if isinstance(value, str):
                try:
                    return enum_class[value]
                except KeyError:
                    return list(enum_class)[0]
            return value

        def get_list(value: Any) -> list:
            if isinstance(value, str):
                return [value]
            return list(value)

        copy_data = data.get('copy', {})
        copy = CopySettings(
            buffer_size=copy_data.get('buffer_size', CopySettings().buffer_size),
            preserve_timestamps=copy_data.get('preserve_timestamps', False),
        )

        filters_data = data.get('filters', {})
        filters = FilterSettings(
            all_files=filters_data.get('all_files', False),
            date_option=get_enum(DateOption, filters_data.get('date_option', 'ALL_DAYS')),
            file_types=get_list(filters_data.get('file_types', [ALL_TYPES])),
        )

        archive_data = data.get('archive', {})
        archive = ArchiveSettings(
            create_archive=archive_data.get('create_archive', False),
            buffer_size=archive_data.get('buffer_size', ArchiveSettings().buffer_size),
        )

        return ApplicationSettings(
            copy=copy,
            filters=filters,
            archive=archive,
            recent_source_paths=data.get('recent_source_paths', []),
            recent_target_paths=data.get('recent_target_paths', []),
            recent_paths_limit=data.get('recent_paths_limit', 5),
        )
