"""Tests for project discovery."""

import pytest

from tests.conftest import make_project
from tools.compose_backup.discovery import ProjectEntry, discover_projects, find_compose_manifest
from tools.compose_backup.errors import SourceNotFoundError


class TestFindComposeManifest:
    """Test compose manifest lookup."""

    def test_yml_manifest(self, tmp_path):
        """Test that docker-compose.yml is found."""
        folder = make_project(tmp_path, "app")
        assert find_compose_manifest(folder) == folder / "docker-compose.yml"

    def test_yaml_manifest(self, tmp_path):
        """Test that docker-compose.yaml is found."""
        folder = make_project(tmp_path, "app", manifest="docker-compose.yaml")
        assert find_compose_manifest(folder) == folder / "docker-compose.yaml"

    def test_both_manifests_prefers_yml(self, tmp_path):
        """Test that having both files is not an error and .yml wins."""
        folder = make_project(tmp_path, "app")
        (folder / "docker-compose.yaml").write_text("services: {}\n")
        assert find_compose_manifest(folder) == folder / "docker-compose.yml"

    def test_no_manifest(self, tmp_path):
        """Test folder without manifest."""
        folder = make_project(tmp_path, "app", manifest="")
        assert find_compose_manifest(folder) is None

    def test_manifest_in_subfolder_is_ignored(self, tmp_path):
        """Test that only files directly inside the folder count."""
        folder = make_project(tmp_path, "app", manifest="")
        make_project(folder, "nested")
        assert find_compose_manifest(folder) is None

    def test_manifest_directory_is_ignored(self, tmp_path):
        """Test that a directory named like a manifest does not count."""
        folder = make_project(tmp_path, "app", manifest="")
        (folder / "docker-compose.yml").mkdir()
        assert find_compose_manifest(folder) is None


class TestDiscoverProjects:
    """Test discover_projects."""

    def test_lists_subdirectories_sorted(self, source_dir):
        """Test that every subdirectory is listed in name order."""
        entries = discover_projects(source_dir)
        assert [e.name for e in entries] == ["a", "b", "c"]

    def test_classifies_manifest_presence(self, source_dir):
        """Test compose/plain classification."""
        entries = {e.name: e for e in discover_projects(source_dir)}
        assert entries["a"].has_compose_manifest is True
        assert entries["b"].has_compose_manifest is False
        assert entries["c"].has_compose_manifest is True
        assert entries["a"].kind == "compose"
        assert entries["b"].kind == "plain"

    def test_ignores_files(self, source_dir):
        """Test that regular files in the source are skipped."""
        names = [e.name for e in discover_projects(source_dir)]
        assert "notes.txt" not in names

    def test_excluded_names(self, source_dir):
        """Test that excluded folders never appear."""
        entries = discover_projects(source_dir, frozenset({"c"}))
        assert [e.name for e in entries] == ["a", "b"]

    def test_exclusion_is_exact_match(self, source_dir):
        """Test that exclusion does not match on substrings."""
        make_project(source_dir, "ab")
        entries = discover_projects(source_dir, frozenset({"a"}))
        assert [e.name for e in entries] == ["ab", "b", "c"]

    def test_entry_paths(self, source_dir):
        """Test that entries point at the folders."""
        entry = discover_projects(source_dir)[0]
        assert entry == ProjectEntry(name="a", path=source_dir / "a", has_compose_manifest=True)

    def test_empty_source(self, tmp_path):
        """Test empty source directory."""
        assert discover_projects(tmp_path) == []

    def test_missing_source_raises(self, tmp_path):
        """Test that a missing source path is fatal."""
        with pytest.raises(SourceNotFoundError, match="does not exist"):
            discover_projects(tmp_path / "missing")

    def test_source_is_file_raises(self, tmp_path):
        """Test that a file as source path is fatal."""
        file_path = tmp_path / "file"
        file_path.write_text("x")
        with pytest.raises(SourceNotFoundError):
            discover_projects(file_path)
