"""Compose Backup - Stop, archive and restart docker compose projects with dated rotation."""

from .config import BackupConfig, ConfigStore
from .discovery import ProjectEntry, discover_projects
from .engine import BackupEngine, BackupOutcome, BackupRun, FolderBackupResult
from .retention import RetentionManager, RetentionReport

__all__ = [
    "BackupConfig",
    "BackupEngine",
    "BackupOutcome",
    "BackupRun",
    "ConfigStore",
    "FolderBackupResult",
    "ProjectEntry",
    "RetentionManager",
    "RetentionReport",
    "discover_projects",
]
