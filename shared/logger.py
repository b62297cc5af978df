"""Logging setup shared by the command line tools."""

import logging
from pathlib import Path
from typing import Optional, Union

from rich.logging import RichHandler

LOG_FORMAT = "%(message)s"
FILE_LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


def get_logger(name: str) -> logging.Logger:
    """Get a module logger."""
    return logging.getLogger(name)


def setup_logger(
    name: str,
    level: Union[str, int] = "INFO",
    log_file: Optional[Path] = None,
) -> logging.Logger:
    """
    Configure console (and optionally file) logging.

    Handlers are attached to the root logger so that every module logger
    created with get_logger() shares them. Calling this again replaces the
    previously installed handlers.

    Args:
        name: Name of the logger to return
        level: Log level name or number
        log_file: Append plain-text log records to this file as well

    Returns:
        Configured logger
    """
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    console_handler = RichHandler(show_path=False, markup=False, rich_tracebacks=True)
    console_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(console_handler)

    if log_file is not None:
        add_file_handler(log_file)

    root.setLevel(level)
    return logging.getLogger(name)


def add_file_handler(log_file: Path) -> logging.Handler:
    """
    Append log records to a file in addition to the console.

    Args:
        log_file: Path to the log file (parent directory is created)

    Returns:
        The installed handler
    """
    log_file.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(log_file, encoding="utf-8")
    handler.setFormatter(logging.Formatter(FILE_LOG_FORMAT))
    logging.getLogger().addHandler(handler)
    return handler
