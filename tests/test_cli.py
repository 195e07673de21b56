"""Tests for command line parsing and request building."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import pytest

from copyfiles.core.models import DateOption, ValidationError
from copyfiles.services.settings import ApplicationSettings, SettingsManager

import main

from conftest import make_tree


@pytest.fixture
def quiet_main(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep main() from replacing process-wide handlers during the test run."""
    monkeypatch.setattr(main, "setup_logging", lambda level, log_file=None: logging.getLogger("copyfiles.cli"))
    monkeypatch.setattr(main, "setup_signal_handlers", lambda on_interrupt: None)
    monkeypatch.setattr(main.faulthandler, "enable", lambda: None)
    monkeypatch.setattr(sys, "excepthook", sys.excepthook)


def test_parse_defaults() -> None:
    args = main.parse_arguments(["src", "dst"])

    assert args.source_path == "src"
    assert args.target_path == "dst"
    assert args.selected_paths == []
    assert args.file_types is None
    assert args.date_option is None
    assert args.create_zip is False
    assert args.log_level == "INFO"


def test_parse_filters_and_flags() -> None:
    args = main.parse_arguments([
        "src", "dst",
        "--select", "src/a", "--select", "src/b.txt",
        "--types", "txt", "",
        "--date", "Last 30 days",
        "--zip", "--verbose",
    ])

    assert args.selected_paths == ["src/a", "src/b.txt"]
    assert args.file_types == ["txt", ""]
    assert args.date_option is DateOption.LAST_30_DAYS
    assert args.create_zip is True
    assert args.log_level == "DEBUG"


def test_unknown_date_label_is_rejected() -> None:
    with pytest.raises(SystemExit):
        main.parse_arguments(["src", "dst", "--date", "Yesterday"])


def test_flags_override_settings(tmp_path: Path) -> None:
    source = make_tree(tmp_path / "S", {"a.txt": "a"})
    settings = ApplicationSettings()
    settings.filters.date_option = DateOption.LAST_7_DAYS
    settings.filters.file_types = ["pdf"]
    args = main.parse_arguments([str(source), str(tmp_path / "T"), "--types", "txt"])

    request = main.build_request(args, settings)

    assert request.filter_spec.file_types == {"txt"}
    assert request.filter_spec.date_option is DateOption.LAST_7_DAYS
    assert request.archive_requested is False
    assert source / "a.txt" in request.selection


def test_settings_filters_apply_without_flags(tmp_path: Path) -> None:
    source = make_tree(tmp_path / "S", {"a.txt": "a"})
    settings = ApplicationSettings()
    settings.filters.all_files = True
    settings.filters.file_types = ["pdf"]
    args = main.parse_arguments([str(source), str(tmp_path / "T")])

    spec = main.build_filter_spec(args, settings)

    assert spec == settings.filters.to_spec()
    assert spec.all_files is True
    assert spec.file_types == {"pdf"}


def test_missing_source_is_a_validation_error(tmp_path: Path) -> None:
    args = main.parse_arguments([str(tmp_path / "nope"), str(tmp_path)])

    with pytest.raises(ValidationError):
        main.build_request(args, ApplicationSettings())


def test_main_copies_and_returns_zero(tmp_path: Path, qapp, quiet_main) -> None:
    source = make_tree(tmp_path / "S", {"d/a.txt": "a", "d/b.jpg": "b"})
    target = tmp_path / "T"
    target.mkdir()
    config = tmp_path / "settings.json"

    code = main.main([str(source), str(target), "--types", "txt", "-c", str(config)])

    assert code == main.EXIT_OK
    assert (target / "d" / "a.txt").read_text(encoding="utf-8") == "a"
    assert not (target / "d" / "b.jpg").exists()
    assert SettingsManager(config).settings.recent_source_paths == [str(source)]


def test_main_rejects_nested_target(tmp_path: Path, qapp, quiet_main) -> None:
    source = make_tree(tmp_path / "S", {"inner/a.txt": "a"})

    code = main.main([str(source), str(source / "inner"), "-c", str(tmp_path / "settings.json")])

    assert code == main.EXIT_FAILURE
