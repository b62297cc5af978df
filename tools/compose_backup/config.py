"""Persisted configuration of the compose backup tool."""

import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import AbstractSet, Dict, FrozenSet, Optional, Tuple

from shared.logger import get_logger

from .errors import ConfigError, ConfigNotFoundError

logger = get_logger(__name__)

DEFAULT_CONFIG_FILE = "docker-backup.conf"
CONFIG_ENV_VAR = "COMPOSE_BACKUP_CONFIG"
LOG_FILE_NAME = "docker-backups.log"

# Written in this order
CONFIG_KEYS = (
    "SOURCE_PATH",
    "DEST_PATH",
    "LOGGING_ENABLED",
    "EXCLUDED_CONTAINERS",
    "ROTATION_COUNT",
)


@dataclass(frozen=True)
class BackupConfig:
    """
    Settings for one backup pass.

    retention_count None means unlimited.
    """

    source_path: Path
    dest_path: Path
    logging_enabled: bool = False
    excluded_names: FrozenSet[str] = field(default_factory=frozenset)
    retention_count: Optional[int] = None

    def __post_init__(self):
        if self.retention_count is not None and self.retention_count <= 0:
            raise ConfigError(
                f"ROTATION_COUNT must be a positive integer, got {self.retention_count}"
            )

    @property
    def is_complete(self) -> bool:
        """True once both source and destination paths are set."""
        return bool(format_path(self.source_path)) and bool(format_path(self.dest_path))

    @property
    def log_file(self) -> Path:
        """File the run log is appended to when logging is enabled."""
        return self.dest_path / LOG_FILE_NAME

    def with_changes(self, **changes) -> "BackupConfig":
        """Return a copy with some fields replaced."""
        if "excluded_names" in changes:
            changes["excluded_names"] = frozenset(changes["excluded_names"])
        return replace(self, **changes)


def parse_exclusions(value: str) -> FrozenSet[str]:
    """Split a comma separated list of folder names into a set."""
    return frozenset(name.strip() for name in value.split(",") if name.strip())


def format_exclusions(names: AbstractSet[str]) -> str:
    """Join folder names into the stored comma separated form."""
    return ",".join(sorted(names))


def parse_retention(value: str, strict: bool = True) -> Optional[int]:
    """
    Parse a stored ROTATION_COUNT.

    Empty or non-numeric values mean unlimited retention. With strict=False a
    zero or negative count is also read as unlimited so the setting can be
    repaired.

    Raises:
        ConfigError: If strict and the value is a number that is not positive
    """
    value = value.strip()
    try:
        count = int(value)
    except ValueError:
        if value:
            logger.warning(f"Ignoring non-numeric ROTATION_COUNT '{value}', using infinite rotation")
        return None

    if count <= 0:
        if not strict:
            logger.warning(f"Ignoring invalid ROTATION_COUNT {count}, using infinite rotation")
            return None
        raise ConfigError(f"ROTATION_COUNT must be a positive integer, got {count}")
    return count


def default_config_path() -> Path:
    """Config file location from the environment or the working directory."""
    return Path(os.environ.get(CONFIG_ENV_VAR, DEFAULT_CONFIG_FILE))


class ConfigStore:
    """
    Load and save the KEY="value" configuration file.

    Attributes:
        path: Path to the configuration file
    """

    def __init__(self, path: Optional[Path] = None):
        """
        Initialize configuration store.

        Args:
            path: Configuration file (defaults to default_config_path())
        """
        self.path = path or default_config_path()

    def exists(self) -> bool:
        """Check whether a configuration file has been written."""
        return self.path.is_file()

    def read_values(self) -> Dict[str, str]:
        """
        Read raw KEY=VALUE pairs.

        Returns:
            Dictionary of stored values

        Raises:
            ConfigNotFoundError: If the file does not exist
        """
        if not self.exists():
            raise ConfigNotFoundError(f"No configuration found at {self.path}")

        text = self.path.read_text(encoding="utf-8")
        values = {}
        for number, raw in enumerate(text.splitlines(), 1):
            setting = _parse_setting(raw)
            if setting is None:
                if raw.strip() and not raw.lstrip().startswith("#"):
                    logger.warning(f"{self.path}:{number}: not a KEY=\"value\" setting, ignored")
                continue
            values[setting[0]] = setting[1]

        return values

    def load(self, strict: bool = True) -> BackupConfig:
        """
        Load the configuration.

        Args:
            strict: Reject a zero or negative ROTATION_COUNT; when False it
                loads as unlimited so the file can be rewritten

        Returns:
            BackupConfig

        Raises:
            ConfigNotFoundError: If the file does not exist
            ConfigError: If strict and a stored value is invalid
        """
        values = self.read_values()
        config = BackupConfig(
            source_path=Path(values.get("SOURCE_PATH", "")),
            dest_path=Path(values.get("DEST_PATH", "")),
            logging_enabled=values.get("LOGGING_ENABLED", "false").strip().lower() == "true",
            excluded_names=parse_exclusions(values.get("EXCLUDED_CONTAINERS", "")),
            retention_count=parse_retention(values.get("ROTATION_COUNT", ""), strict=strict),
        )
        logger.debug(f"Loaded configuration from {self.path}")
        return config

    def save(self, config: BackupConfig) -> None:
        """
        Write the whole configuration in one go.

        Raises:
            ConfigError: If the file cannot be written
        """
        values = {
            "SOURCE_PATH": format_path(config.source_path),
            "DEST_PATH": format_path(config.dest_path),
            "LOGGING_ENABLED": "true" if config.logging_enabled else "false",
            "EXCLUDED_CONTAINERS": format_exclusions(config.excluded_names),
            "ROTATION_COUNT": "" if config.retention_count is None else str(config.retention_count),
        }
        try:
            with open(self.path, "w", encoding="utf-8") as f:
                for key in CONFIG_KEYS:
                    f.write(f'{key}="{values[key]}"\n')
        except OSError as e:
            raise ConfigError(
                f"Could not write the configuration to {self.path}: {e}. "
                "Please run with elevated permissions."
            ) from e

        logger.info(f"Saved configuration to {self.path}")

    def update(self, **changes) -> BackupConfig:
        """
        Load, change some fields and save once.

        If no file exists yet, a configuration with empty paths is created.
        An invalid stored ROTATION_COUNT does not block the update; it is
        written back as unlimited unless the update sets a new count.

        Returns:
            The saved BackupConfig
        """
        try:
            current = self.load(strict=False)
        except ConfigNotFoundError:
            current = BackupConfig(source_path=Path(""), dest_path=Path(""))

        updated = current.with_changes(**changes)
        self.save(updated)
        return updated


def format_path(path: Path) -> str:
    """Stored form of a path; an unset path is written as empty."""
    text = str(path)
    return "" if text == "." else text


def _parse_setting(line: str) -> Optional[Tuple[str, str]]:
    """
    Split one KEY="value" line, unquoting the value.

    Returns:
        (key, value), or None for blank lines, comments and malformed lines
    """
    line = line.strip()
    if not line or line.startswith("#"):
        return None

    key, sep, value = line.partition("=")
    key = key.strip()
    if not sep or not key:
        return None

    value = value.strip()
    for quote in ('"', "'"):
        if len(value) >= 2 and value.startswith(quote) and value.endswith(quote):
            value = value[1:-1]
            break
    return key, value
