"""Compressed tar archives of project folders."""

import tarfile
from datetime import datetime
from pathlib import Path
from typing import Iterable, Optional

from shared.logger import get_logger

from .errors import ArchiveError

logger = get_logger(__name__)

TIMESTAMP_FORMAT = "%Y-%m-%d_%H-%M-%S"
ARCHIVE_SUFFIX = ".tar.gz"
ARTIFACTS_ARCHIVE_NAME = f"script_and_config{ARCHIVE_SUFFIX}"


def archive_name(folder_name: str, when: Optional[datetime] = None, directory: Optional[Path] = None) -> str:
    """
    Build the archive file name for a folder.

    Args:
        folder_name: Base name of the archived folder
        when: Timestamp to embed (defaults to now)
        directory: If given, a numeric suffix is added while the name is taken there

    Returns:
        File name like 2024-01-05_03-00-00_nextcloud.tar.gz
    """
    stem = f"{(when or datetime.now()).strftime(TIMESTAMP_FORMAT)}_{folder_name}"
    name = f"{stem}{ARCHIVE_SUFFIX}"
    if directory is None:
        return name

    counter = 1
    while (directory / name).exists():
        name = f"{stem}_{counter}{ARCHIVE_SUFFIX}"
        counter += 1
    return name


def create_archive(archive_path: Path, base_dir: Path, entry_name: str) -> Path:
    """
    Compress base_dir/entry_name into a gzip tarball.

    The folder is stored under its own name as the top-level entry, not
    under its absolute path.

    Args:
        archive_path: Archive file to write
        base_dir: Directory containing the entry
        entry_name: Name of the folder inside base_dir

    Returns:
        archive_path

    Raises:
        ArchiveError: If the entry is missing or the archive cannot be written
    """
    source = base_dir / entry_name
    if not source.exists():
        raise ArchiveError(f"Nothing to archive at {source}")

    logger.info(f"Compressing folder '{entry_name}' into '{archive_path.name}'...")
    try:
        with tarfile.open(archive_path, "w:gz") as tar:
            tar.add(source, arcname=entry_name)
    except (OSError, tarfile.TarError) as e:
        _discard(archive_path)
        raise ArchiveError(f"Failed to archive {source}: {e}") from e
    except KeyboardInterrupt:
        _discard(archive_path)
        raise

    return archive_path


def create_file_archive(archive_path: Path, files: Iterable[Path]) -> Path:
    """
    Compress loose files into a gzip tarball, each stored by base name.

    Args:
        archive_path: Archive file to write
        files: Files to include

    Returns:
        archive_path

    Raises:
        ArchiveError: If the archive cannot be written
    """
    try:
        with tarfile.open(archive_path, "w:gz") as tar:
            for file in files:
                tar.add(file, arcname=file.name)
    except (OSError, tarfile.TarError) as e:
        _discard(archive_path)
        raise ArchiveError(f"Failed to write {archive_path}: {e}") from e
    except KeyboardInterrupt:
        _discard(archive_path)
        raise

    return archive_path


def _discard(archive_path: Path) -> None:
    """Remove a partially written archive."""
    try:
        archive_path.unlink()
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.warning(f"Could not remove partial archive {archive_path}: {e}")
