"""Rotation of dated backup directories."""

import re
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Tuple

from shared.logger import get_logger

logger = get_logger(__name__)

# ASCII digits only, whole name
DATED_DIR_PATTERN = re.compile(r"[0-9]{4}-[0-9]{2}-[0-9]{2}")


@dataclass
class RetentionReport:
    """Result of one rotation pass."""

    kept: List[Path] = field(default_factory=list)
    removed: List[Path] = field(default_factory=list)
    failed: List[Tuple[Path, str]] = field(default_factory=list)
    skipped: bool = False

    @property
    def success(self) -> bool:
        """True if every scheduled deletion succeeded."""
        return not self.failed


def list_dated_directories(dest_path: Path) -> List[Path]:
    """
    List the dated backup directories under dest_path, newest first.

    Names are fixed-width YYYY-MM-DD, so sorting by name is chronological.

    Args:
        dest_path: Backup destination

    Returns:
        Directories sorted by name, descending
    """
    if not dest_path.is_dir():
        return []

    dated = [
        child
        for child in dest_path.iterdir()
        if child.is_dir() and DATED_DIR_PATTERN.fullmatch(child.name)
    ]
    dated.sort(key=lambda p: p.name, reverse=True)
    return dated


class RetentionManager:
    """
    Keep at most retention_count dated backup directories.

    Attributes:
        dest_path: Backup destination
        retention_count: Directories to keep (None = unlimited)
    """

    def __init__(self, dest_path: Path, retention_count: Optional[int] = None):
        """
        Initialize retention manager.

        Args:
            dest_path: Backup destination
            retention_count: Directories to keep, must be positive (None = unlimited)

        Raises:
            ValueError: If retention_count is zero or negative
        """
        if retention_count is not None and retention_count <= 0:
            raise ValueError(f"Retention count must be a positive integer, got {retention_count}")

        self.dest_path = dest_path
        self.retention_count = retention_count

    def plan(self) -> Tuple[List[Path], List[Path]]:
        """
        Split the dated directories into those to keep and those to remove.

        Returns:
            Tuple of (keep, remove), both newest first
        """
        dated = list_dated_directories(self.dest_path)
        if self.retention_count is None or len(dated) <= self.retention_count:
            return dated, []
        return dated[: self.retention_count], dated[self.retention_count :]

    def rotate(self) -> RetentionReport:
        """
        Delete every dated directory beyond the newest retention_count.

        Deletion is recursive and permanent. A failure on one directory is
        recorded and the remaining deletions still run.

        Returns:
            RetentionReport
        """
        if self.retention_count is None:
            logger.info("Rotation is infinite. No old backups removed.")
            return RetentionReport(kept=list_dated_directories(self.dest_path), skipped=True)

        keep, remove = self.plan()
        report = RetentionReport(kept=keep)

        if not remove:
            logger.info(
                f"No rotation needed. Current backups ({len(keep)}) <= rotation count ({self.retention_count})."
            )
            return report

        logger.info(f"Rotation needed. Keeping newest {self.retention_count}, removing {len(remove)}.")
        for old_dir in remove:
            try:
                logger.info(f"Removing old backup folder: {old_dir}")
                shutil.rmtree(old_dir)
                report.removed.append(old_dir)
            except OSError as e:
                logger.error(f"Failed to remove {old_dir}: {e}")
                report.failed.append((old_dir, str(e)))

        return report
