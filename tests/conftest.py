"""Shared fixtures for compose backup tests."""

from pathlib import Path

import pytest


def make_project(source: Path, name: str, manifest: str = "docker-compose.yml") -> Path:
    """Create a project folder, with a compose manifest unless manifest is empty."""
    folder = source / name
    folder.mkdir(parents=True)
    (folder / "data.txt").write_text(f"data of {name}")
    if manifest:
        (folder / manifest).write_text("services: {}\n")
    return folder


@pytest.fixture
def source_dir(tmp_path):
    """Source tree with a compose project 'a', a plain folder 'b' and a compose project 'c'."""
    source = tmp_path / "source"
    source.mkdir()
    make_project(source, "a")
    make_project(source, "b", manifest="")
    make_project(source, "c", manifest="docker-compose.yaml")
    (source / "notes.txt").write_text("not a folder")
    return source


@pytest.fixture
def dest_dir(tmp_path):
    """Empty backup destination."""
    dest = tmp_path / "dest"
    dest.mkdir()
    return dest
