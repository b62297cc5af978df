"""Tests for archive creation."""

import tarfile
from datetime import datetime
from unittest.mock import patch

import pytest

from tests.conftest import make_project
from tools.compose_backup.archive import archive_name, create_archive, create_file_archive
from tools.compose_backup.errors import ArchiveError


class TestArchiveName:
    """Test archive_name."""

    def test_format(self):
        """Test timestamp and folder name in the file name."""
        when = datetime(2024, 1, 5, 3, 4, 5)
        assert archive_name("nextcloud", when) == "2024-01-05_03-04-05_nextcloud.tar.gz"

    def test_unique_in_directory(self, tmp_path):
        """Test that an existing archive is never reused."""
        when = datetime(2024, 1, 5, 3, 4, 5)
        (tmp_path / "2024-01-05_03-04-05_app.tar.gz").write_bytes(b"")
        (tmp_path / "2024-01-05_03-04-05_app_1.tar.gz").write_bytes(b"")

        assert archive_name("app", when, directory=tmp_path) == "2024-01-05_03-04-05_app_2.tar.gz"

    def test_free_name_in_directory(self, tmp_path):
        """Test that no suffix is added when the name is free."""
        when = datetime(2024, 1, 5, 3, 4, 5)
        assert archive_name("app", when, directory=tmp_path) == "2024-01-05_03-04-05_app.tar.gz"


class TestCreateArchive:
    """Test create_archive."""

    def test_folder_is_top_level_entry(self, tmp_path):
        """Test that members are relative to the base directory."""
        source = tmp_path / "source"
        make_project(source, "app")
        archive_path = tmp_path / "app.tar.gz"

        create_archive(archive_path, source, "app")

        with tarfile.open(archive_path, "r:gz") as tar:
            names = tar.getnames()

        assert "app" in names
        assert "app/data.txt" in names
        assert "app/docker-compose.yml" in names
        assert not any(name.startswith("/") or str(source).lstrip("/") in name for name in names)

    def test_contents_preserved(self, tmp_path):
        """Test that file contents survive archiving."""
        source = tmp_path / "source"
        make_project(source, "app")
        archive_path = tmp_path / "app.tar.gz"

        create_archive(archive_path, source, "app")

        with tarfile.open(archive_path, "r:gz") as tar:
            data = tar.extractfile("app/data.txt").read()
        assert data == b"data of app"

    def test_missing_folder_raises(self, tmp_path):
        """Test archiving a folder that does not exist."""
        with pytest.raises(ArchiveError, match="Nothing to archive"):
            create_archive(tmp_path / "x.tar.gz", tmp_path, "missing")

    def test_unwritable_destination_raises(self, tmp_path):
        """Test that write errors become ArchiveError."""
        make_project(tmp_path, "app")
        with pytest.raises(ArchiveError, match="Failed to archive"):
            create_archive(tmp_path / "no-such-dir" / "app.tar.gz", tmp_path, "app")

    def test_partial_archive_removed(self, tmp_path):
        """Test that a failed archive does not leave a file behind."""
        make_project(tmp_path, "app")
        archive_path = tmp_path / "app.tar.gz"

        with patch("tarfile.TarFile.add", side_effect=OSError("disk full")):
            with pytest.raises(ArchiveError, match="disk full"):
                create_archive(archive_path, tmp_path, "app")

        assert not archive_path.exists()

    def test_interrupt_removes_partial_archive(self, tmp_path):
        """Test that Ctrl+C while compressing leaves no truncated archive."""
        make_project(tmp_path, "app")
        archive_path = tmp_path / "app.tar.gz"

        with patch("tarfile.TarFile.add", side_effect=KeyboardInterrupt):
            with pytest.raises(KeyboardInterrupt):
                create_archive(archive_path, tmp_path, "app")

        assert not archive_path.exists()


class TestCreateFileArchive:
    """Test create_file_archive."""

    def test_files_stored_by_name(self, tmp_path):
        """Test that loose files are stored by base name."""
        nested = tmp_path / "etc"
        nested.mkdir()
        config = nested / "docker-backup.conf"
        config.write_text('SOURCE_PATH="/srv"\n')
        script = tmp_path / "compose-backup"
        script.write_text("#!/bin/sh\n")
        archive_path = tmp_path / "script_and_config.tar.gz"

        create_file_archive(archive_path, [config, script])

        with tarfile.open(archive_path, "r:gz") as tar:
            assert sorted(tar.getnames()) == ["compose-backup", "docker-backup.conf"]

    def test_missing_file_raises(self, tmp_path):
        """Test that a missing file becomes ArchiveError."""
        archive_path = tmp_path / "out.tar.gz"
        with pytest.raises(ArchiveError):
            create_file_archive(archive_path, [tmp_path / "missing.conf"])
        assert not archive_path.exists()
