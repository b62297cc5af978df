"""Exceptions raised by the compose backup tool."""


class ComposeBackupError(Exception):
    """Base class for compose backup errors."""


class SourceNotFoundError(ComposeBackupError):
    """Source path is missing or is not a directory. Fatal for a run."""


class BackupDirError(ComposeBackupError):
    """Dated backup directory could not be created. Fatal for a run."""


class ComposeError(ComposeBackupError):
    """A docker compose command failed for one project."""


class ArchiveError(ComposeBackupError):
    """An archive could not be written."""


class ConfigError(ComposeBackupError):
    """Configuration is invalid or could not be written."""


class ConfigNotFoundError(ConfigError):
    """No configuration file exists yet."""
