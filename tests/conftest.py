"""Shared fixtures for the copy pipeline tests."""

from __future__ import annotations

from pathlib import Path
from typing import Dict, Union

import pytest
from PyQt6.QtCore import QCoreApplication


Tree = Dict[str, Union[str, bytes, None]]


def make_tree(root: Path, entries: Tree) -> Path:
    """
    Create files and directories under root.

    Keys are POSIX relative paths; a trailing '/' or a None value makes a
    directory, anything else is file content.
    """
    root.mkdir(parents=True, exist_ok=True)
    for relative, content in entries.items():
        path = root / relative
        if relative.endswith('/') or content is None:
            path.mkdir(parents=True, exist_ok=True)
            continue
        path.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, bytes):
            path.write_bytes(content)
        else:
            path.write_text(content, encoding="utf-8")
    return root


def relative_files(root: Path) -> set[str]:
    return {p.relative_to(root).as_posix() for p in root.rglob("*") if p.is_file()}


def relative_dirs(root: Path) -> set[str]:
    return {p.relative_to(root).as_posix() for p in root.rglob("*") if p.is_dir()}


@pytest.fixture(scope="session")
def qapp() -> QCoreApplication:
    app = QCoreApplication.instance()
    if app is None:
        app = QCoreApplication([])
    return app


@pytest.fixture
def example_tree(tmp_path: Path) -> Path:
    """A/B/file1.txt and A/B/file2.jpg, rooted at A."""
    return make_tree(tmp_path / "A", {
        "B/file1.txt": "hello",
        "B/file2.jpg": b"\xff\xd8\xff\xe0",
    })


@pytest.fixture
def target_dir(tmp_path: Path) -> Path:
    target = tmp_path / "T"
    target.mkdir()
    return target
