"""Tests for the file filter engine."""

from __future__ import annotations

import os
import time
from datetime import date, datetime, timedelta
from pathlib import Path

import pytest

from copyfiles.core.filters import FileFilterEngine, modified_date
from copyfiles.core.models import (
    DateOption,
    FilteredSet,
    FilterSpec,
    SelectionSet,
    file_extension,
)
from copyfiles.core.selection import build_selection

from conftest import make_tree


def _set_mtime(path: Path, day: date) -> None:
    stamp = time.mktime(datetime(day.year, day.month, day.day, 12, 0).timetuple())
    os.utime(path, (stamp, stamp))


def test_example_keeps_txt_and_its_ancestors(example_tree: Path) -> None:
    selection = build_selection(example_tree)
    spec = FilterSpec(file_types=frozenset({"txt"}))

    filtered = FileFilterEngine().apply(example_tree, selection, spec)

    b = example_tree / "B"
    assert filtered.files == {b / "file1.txt"}
    assert filtered.directories == {example_tree, b}
    assert filtered.directory_count == 1
    assert filtered.file_count == 1
    assert filtered.total_work == 2


def test_result_is_subset_of_selection_plus_root(tmp_path: Path) -> None:
    root = make_tree(tmp_path / "S", {
        "x.txt": "x",
        "docs/a.pdf": "a",
        "docs/b.txt": "b",
        "other/c.txt": "c",
    })
    selection = build_selection(root, [root / "docs" / "b.txt", root / "x.txt"])

    filtered = FileFilterEngine().apply(root, selection)

    assert filtered.paths <= set(selection.paths) | {root}
    assert filtered.files == {root / "docs" / "b.txt", root / "x.txt"}
    assert root / "other" not in filtered


def test_unselected_directory_is_pruned(tmp_path: Path) -> None:
    root = make_tree(tmp_path / "S", {"keep/a.txt": "a", "skip/b.txt": "b"})
    # A file listed under an unselected directory is never reached.
    selection = SelectionSet.of(root, [root / "keep", root / "keep" / "a.txt", root / "skip" / "b.txt"])

    filtered = FileFilterEngine().apply(root, selection)

    assert filtered.files == {root / "keep" / "a.txt"}
    assert filtered.directories == {root, root / "keep"}


def test_directory_without_kept_descendants_is_dropped(tmp_path: Path) -> None:
    root = make_tree(tmp_path / "S", {"pics/a.jpg": "a", "empty/": None, "notes/n.txt": "n"})

    filtered = FileFilterEngine().apply(
        root, build_selection(root), FilterSpec(file_types=frozenset({"txt"}))
    )

    assert filtered.directories == {root, root / "notes"}
    assert filtered.files == {root / "notes" / "n.txt"}


def test_every_kept_path_has_its_ancestors(tmp_path: Path) -> None:
    root = make_tree(tmp_path / "S", {"a/b/c/d.txt": "d", "a/x.jpg": "x"})

    filtered = FileFilterEngine().apply(root, build_selection(root))

    for path in filtered:
        if path == root:
            continue
        assert path.parent in filtered.directories


def test_empty_extension_matches_files_without_dot(tmp_path: Path) -> None:
    root = make_tree(tmp_path / "S", {"Makefile": "all:", "readme.md": "#", "archive.": "x"})

    filtered = FileFilterEngine().apply(
        root, build_selection(root), FilterSpec(file_types=frozenset({""}))
    )

    # "archive." has an empty extension too
    assert filtered.files == {root / "Makefile", root / "archive."}


def test_all_types_token_keeps_everything(tmp_path: Path) -> None:
    root = make_tree(tmp_path / "S", {"a.txt": "a", "b.jpg": "b", "c": "c"})

    filtered = FileFilterEngine().apply(
        root, build_selection(root), FilterSpec(file_types=frozenset({"All", "txt"}))
    )

    assert filtered.file_count == 3


def test_empty_type_set_means_all() -> None:
    assert FilterSpec(file_types=frozenset()).file_types == {"All"}


def test_extension_is_case_sensitive(tmp_path: Path) -> None:
    root = make_tree(tmp_path / "S", {"a.TXT": "a", "b.txt": "b"})

    filtered = FileFilterEngine().apply(
        root, build_selection(root), FilterSpec(file_types=frozenset({"txt"}))
    )

    assert filtered.files == {root / "b.txt"}


def test_file_extension_uses_last_dot() -> None:
    assert file_extension("archive.tar.gz") == "gz"
    assert file_extension("README") == ""
    assert file_extension(".bashrc") == "bashrc"


def test_last_7_days_uses_strict_cutoff(tmp_path: Path) -> None:
    today = date(2024, 5, 20)
    root = make_tree(tmp_path / "S", {"new.txt": "n", "edge.txt": "e", "old.txt": "o"})
    _set_mtime(root / "new.txt", today - timedelta(days=6))
    _set_mtime(root / "edge.txt", today - timedelta(days=7))
    _set_mtime(root / "old.txt", today - timedelta(days=30))

    filtered = FileFilterEngine().apply(
        root, build_selection(root), FilterSpec(date_option=DateOption.LAST_7_DAYS), today=today
    )

    assert filtered.files == {root / "new.txt"}


def test_last_30_days(tmp_path: Path) -> None:
    today = date(2024, 5, 20)
    root = make_tree(tmp_path / "S", {"recent.txt": "r", "old.txt": "o"})
    _set_mtime(root / "recent.txt", today - timedelta(days=29))
    _set_mtime(root / "old.txt", today - timedelta(days=31))

    filtered = FileFilterEngine().apply(
        root, build_selection(root), FilterSpec(date_option=DateOption.LAST_30_DAYS), today=today
    )

    assert filtered.files == {root / "recent.txt"}


def test_today_keeps_only_files_dated_after_today(tmp_path: Path) -> None:
    today = date(2024, 5, 20)
    root = make_tree(tmp_path / "S", {"today.txt": "t", "future.txt": "f"})
    _set_mtime(root / "today.txt", today)
    _set_mtime(root / "future.txt", today + timedelta(days=1))

    filtered = FileFilterEngine().apply(
        root, build_selection(root), FilterSpec(date_option=DateOption.TODAY), today=today
    )

    assert filtered.files == {root / "future.txt"}


def test_all_files_overrides_type_and_date(tmp_path: Path) -> None:
    today = date(2024, 5, 20)
    root = make_tree(tmp_path / "S", {"old.jpg": "o"})
    _set_mtime(root / "old.jpg", today - timedelta(days=365))
    spec = FilterSpec(
        all_files=True,
        date_option=DateOption.TODAY,
        file_types=frozenset({"txt"}),
    )

    filtered = FileFilterEngine().apply(root, build_selection(root), spec, today=today)

    assert filtered.files == {root / "old.jpg"}


def test_modified_date_reads_local_date(tmp_path: Path) -> None:
    path = make_tree(tmp_path / "S", {"a.txt": "a"}) / "a.txt"
    _set_mtime(path, date(2023, 1, 2))

    assert modified_date(path) == date(2023, 1, 2)


def test_plain_path_iterable_is_accepted(example_tree: Path) -> None:
    paths = [example_tree / "B", example_tree / "B" / "file2.jpg"]

    filtered = FileFilterEngine().apply(example_tree, paths)

    assert filtered.files == {example_tree / "B" / "file2.jpg"}


def test_missing_selected_directory_raises(tmp_path: Path) -> None:
    root = tmp_path / "gone"

    with pytest.raises(OSError):
        FileFilterEngine().apply(root, [root])


@pytest.mark.parametrize("label, option", [
    ("All days", DateOption.ALL_DAYS),
    ("Today", DateOption.TODAY),
    ("Last 7 days", DateOption.LAST_7_DAYS),
    ("Last 30 days", DateOption.LAST_30_DAYS),
])
def test_date_option_labels(label: str, option: DateOption) -> None:
    assert DateOption.lookup(label) is option
    assert str(option) == label


def test_unknown_date_label_raises() -> None:
    with pytest.raises(KeyError):
        DateOption.lookup("Yesterday")


def test_filter_spec_str() -> None:
    spec = FilterSpec(date_option=DateOption.LAST_7_DAYS, file_types=frozenset({"txt", "All"}))
    assert str(spec) == "Last 7 days, [All, txt]"


def test_filtered_set_from_paths_partitions_by_filesystem(example_tree: Path) -> None:
    b = example_tree / "B"

    filtered = FilteredSet.from_paths(example_tree, [b, b / "file1.txt"])

    assert filtered.directories == {example_tree, b}
    assert filtered.files == {b / "file1.txt"}
    assert filtered.total_work == 2


def test_single_type_string_is_one_token() -> None:
    assert FilterSpec(file_types="txt").file_types == {"txt"}
    assert FilterSpec(file_types="").file_types == {""}
