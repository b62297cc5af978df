"""Discovery of the project folders to back up."""

from dataclasses import dataclass
from pathlib import Path
from typing import AbstractSet, List, Optional

from shared.logger import get_logger

from .errors import SourceNotFoundError

logger = get_logger(__name__)

# Checked in this order; the first file found wins
COMPOSE_MANIFEST_NAMES = ("docker-compose.yml", "docker-compose.yaml")


@dataclass(frozen=True)
class ProjectEntry:
    """A folder found directly under the source path."""

    name: str
    path: Path
    has_compose_manifest: bool

    @property
    def kind(self) -> str:
        """Human-readable folder kind."""
        return "compose" if self.has_compose_manifest else "plain"


def find_compose_manifest(folder: Path) -> Optional[Path]:
    """
    Find the compose manifest directly inside a folder.

    Args:
        folder: Folder to inspect

    Returns:
        Path to the manifest, or None if the folder has none
    """
    for manifest_name in COMPOSE_MANIFEST_NAMES:
        candidate = folder / manifest_name
        if candidate.is_file():
            return candidate
    return None


def discover_projects(
    source_path: Path, excluded_names: AbstractSet[str] = frozenset()
) -> List[ProjectEntry]:
    """
    List the immediate subdirectories of the source path.

    Non-directory children are ignored and folders whose base name is in
    excluded_names are left out. Entries are sorted by name so that two
    scans of an unchanged tree give the same order.

    Args:
        source_path: Directory holding the project folders
        excluded_names: Folder base names to skip

    Returns:
        Sorted list of ProjectEntry

    Raises:
        SourceNotFoundError: If source_path is missing or not a directory
    """
    if not source_path.is_dir():
        raise SourceNotFoundError(f"Source path does not exist or is not a directory: {source_path}")

    entries = []
    for child in source_path.iterdir():
        if not child.is_dir():
            continue

        if child.name in excluded_names:
            logger.info(f"Skipping excluded folder: {child.name}")
            continue

        entries.append(
            ProjectEntry(
                name=child.name,
                path=child,
                has_compose_manifest=find_compose_manifest(child) is not None,
            )
        )

    entries.sort(key=lambda e: e.name)
    logger.debug(f"Discovered {len(entries)} folder(s) in {source_path}")
    return entries
