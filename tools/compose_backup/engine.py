"""Backup lifecycle: stop, archive and restart each project folder."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional, Sequence

from shared.logger import get_logger

from .archive import ARTIFACTS_ARCHIVE_NAME, archive_name, create_archive, create_file_archive
from .compose import ComposeController
from .config import BackupConfig
from .discovery import ProjectEntry, discover_projects
from .errors import ArchiveError, BackupDirError, ComposeError
from .retention import RetentionManager, RetentionReport

logger = get_logger(__name__)

DATE_STAMP_FORMAT = "%Y-%m-%d"


class BackupOutcome(Enum):
    """Outcome of backing up one folder."""

    SUCCESS = "success"
    CONTAINER_STOP_FAILED = "container_stop_failed"
    ARCHIVE_FAILED = "archive_failed"
    CONTAINER_START_FAILED = "container_start_failed"

    @property
    def severity(self) -> int:
        """Rank used to pick the worst outcome; higher is worse."""
        return _SEVERITY[self]

    @property
    def label(self) -> str:
        """Human-readable outcome."""
        return self.value.replace("_", " ").capitalize()


# A container left down outranks a missing archive, which outranks a failed stop
_SEVERITY = {
    BackupOutcome.SUCCESS: 0,
    BackupOutcome.CONTAINER_STOP_FAILED: 1,
    BackupOutcome.ARCHIVE_FAILED: 2,
    BackupOutcome.CONTAINER_START_FAILED: 3,
}


@dataclass
class FolderBackupResult:
    """Result of backing up one folder."""

    entry: ProjectEntry
    archive_path: Path
    outcome: BackupOutcome = BackupOutcome.SUCCESS
    errors: List[str] = field(default_factory=list)
    duration_seconds: float = 0.0

    @property
    def success(self) -> bool:
        """True if every step succeeded."""
        return self.outcome is BackupOutcome.SUCCESS

    def record_failure(self, outcome: BackupOutcome, message: str) -> None:
        """Record a failed step, keeping the most severe outcome."""
        self.errors.append(message)
        if outcome.severity > self.outcome.severity:
            self.outcome = outcome


@dataclass
class BackupRun:
    """One full backup pass."""

    date_stamp: str
    backup_dir: Path
    results: List[FolderBackupResult] = field(default_factory=list)
    artifacts_archive: Optional[Path] = None
    artifacts_error: Optional[str] = None
    retention: Optional[RetentionReport] = None

    @property
    def failures(self) -> List[FolderBackupResult]:
        """Results that did not succeed, worst first."""
        return [r for r in self.results_by_severity() if not r.success]

    @property
    def success(self) -> bool:
        """True if every folder succeeded and rotation deleted what it had to."""
        retention_ok = self.retention is None or self.retention.success
        return not self.failures and retention_ok

    def results_by_severity(self) -> List[FolderBackupResult]:
        """Results ordered worst outcome first; ties keep processing order."""
        return sorted(self.results, key=lambda r: r.outcome.severity, reverse=True)


class BackupEngine:
    """
    Run a backup pass over every project folder in the source path.

    Folders are processed one at a time in name order. Per-folder failures
    are recorded and the pass carries on; only a missing source path or an
    uncreatable backup directory stop the run.

    Attributes:
        config: Backup configuration
        controller: Compose controller used to stop and start projects
        artifacts: Extra files archived into script_and_config.tar.gz
    """

    def __init__(
        self,
        config: BackupConfig,
        controller: Optional[ComposeController] = None,
        artifacts: Sequence[Path] = (),
        clock: Callable[[], datetime] = datetime.now,
    ):
        """
        Initialize backup engine.

        Args:
            config: Backup configuration
            controller: Compose controller (defaults to docker compose)
            artifacts: Files archived after the folders, e.g. config file and script
            clock: Source of the current time
        """
        self.config = config
        self.controller = controller or ComposeController()
        self.artifacts = list(artifacts)
        self.clock = clock

    def run(self) -> BackupRun:
        """
        Perform one full backup pass.

        Returns:
            BackupRun with one result per processed folder

        Raises:
            SourceNotFoundError: If the source path is missing
            BackupDirError: If the dated backup directory cannot be created
        """
        entries = discover_projects(self.config.source_path, self.config.excluded_names)

        date_stamp = self.clock().strftime(DATE_STAMP_FORMAT)
        backup_dir = self.config.dest_path / date_stamp
        try:
            backup_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise BackupDirError(f"Cannot create backup directory {backup_dir}: {e}") from e

        run = BackupRun(date_stamp=date_stamp, backup_dir=backup_dir)
        logger.info(f"All tar backups will be placed in: {backup_dir}")

        for entry in entries:
            result = self.backup_folder(entry, backup_dir)
            run.results.append(result)

        self._archive_artifacts(run)
        run.retention = self._rotate()
        return run

    def backup_folder(self, entry: ProjectEntry, backup_dir: Path) -> FolderBackupResult:
        """
        Back up one folder.

        Compose projects are stopped, archived and started again. The archive
        and the restart are attempted even if an earlier step failed. Plain
        folders are only archived. On KeyboardInterrupt a compose project is
        started once more before the interrupt propagates.

        Args:
            entry: Folder to back up
            backup_dir: Dated backup directory of the run

        Returns:
            FolderBackupResult
        """
        start_time = self.clock()
        archive_path = backup_dir / archive_name(entry.name, start_time, directory=backup_dir)
        result = FolderBackupResult(entry=entry, archive_path=archive_path)
        logger.info(f"Processing folder: {entry.name} ({entry.kind})")

        try:
            self._stop_archive_start(entry, result)
        except KeyboardInterrupt:
            if entry.has_compose_manifest:
                logger.warning(f"Interrupted, restarting containers for {entry.name} before exiting")
                self._start_quietly(entry)
            raise

        result.duration_seconds = (self.clock() - start_time).total_seconds()
        return result

    def _stop_archive_start(self, entry: ProjectEntry, result: FolderBackupResult) -> None:
        """Run the steps for one folder, recording failures on result."""
        if entry.has_compose_manifest:
            try:
                self.controller.stop_project(entry.path)
            except ComposeError as e:
                logger.error(f"Failed to stop containers for {entry.name}: {e}")
                result.record_failure(BackupOutcome.CONTAINER_STOP_FAILED, str(e))

        try:
            create_archive(result.archive_path, self.config.source_path, entry.name)
            logger.info(f"Backup created at: {result.archive_path}")
        except ArchiveError as e:
            logger.error(f"Failed to archive {entry.name}: {e}")
            result.record_failure(BackupOutcome.ARCHIVE_FAILED, str(e))

        if entry.has_compose_manifest:
            try:
                self.controller.start_project(entry.path)
            except ComposeError as e:
                logger.error(f"CONTAINERS FOR {entry.name} ARE DOWN, restart failed: {e}")
                result.record_failure(BackupOutcome.CONTAINER_START_FAILED, str(e))

    def _start_quietly(self, entry: ProjectEntry) -> None:
        """Best-effort restart while handling an interrupt."""
        try:
            self.controller.start_project(entry.path)
        except ComposeError as e:
            logger.error(f"Failed to restart containers for {entry.name}: {e}")

    def _archive_artifacts(self, run: BackupRun) -> None:
        """Archive the config file and script alongside the folder archives."""
        files = [path for path in self.artifacts if path.is_file()]
        if not files:
            logger.debug("No script or config files to archive")
            return

        archive_path = run.backup_dir / ARTIFACTS_ARCHIVE_NAME
        logger.info("Creating archive of script and config...")
        try:
            run.artifacts_archive = create_file_archive(archive_path, files)
            logger.info(f"Archive saved at: {archive_path}")
        except ArchiveError as e:
            logger.error(str(e))
            run.artifacts_error = str(e)

    def _rotate(self) -> RetentionReport:
        """Apply the retention policy to the destination."""
        manager = RetentionManager(self.config.dest_path, self.config.retention_count)
        try:
            return manager.rotate()
        except OSError as e:
            logger.error(f"Cannot list backups in {self.config.dest_path}: {e}")
            return RetentionReport(failed=[(self.config.dest_path, str(e))])
