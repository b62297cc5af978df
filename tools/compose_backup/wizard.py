"""Interactive prompts that create and edit the configuration."""

from pathlib import Path
from typing import FrozenSet, List, Optional, Sequence

import click

from shared.cli import console, info, success, warning

from .config import BackupConfig, ConfigStore, format_exclusions
from .discovery import ProjectEntry, discover_projects
from .errors import SourceNotFoundError


def prompt_absolute_path(label: str) -> Path:
    """Ask for a path until one without a leading tilde is given."""
    while True:
        value = click.prompt(f"Enter the {label} path (absolute, no tilde ~)").strip()
        if value.startswith("~"):
            warning("Tilde (~) detected. Please use a full absolute path.")
            continue
        return Path(value)


def list_compose_projects(source_path: Path) -> List[ProjectEntry]:
    """Compose projects under source_path, or an empty list if it is not a directory."""
    try:
        return [e for e in discover_projects(source_path) if e.has_compose_manifest]
    except SourceNotFoundError:
        return []


def parse_selection(text: str, names: Sequence[str]) -> FrozenSet[str]:
    """
    Turn a comma separated list of 1-based numbers into folder names.

    Whitespace is ignored and numbers that are not valid indices are dropped.

    Args:
        text: User input such as "1, 3"
        names: Folder names in the order they were shown

    Returns:
        Selected folder names
    """
    selected = set()
    for token in "".join(text.split()).split(","):
        if not token.isdigit():
            continue
        index = int(token) - 1
        if 0 <= index < len(names):
            selected.add(names[index])
    return frozenset(selected)


def choose_exclusions(
    projects: Sequence[ProjectEntry], running: Optional[Sequence[int]] = None
) -> FrozenSet[str]:
    """
    Show numbered compose projects and ask which to exclude.

    Args:
        projects: Compose projects to offer
        running: Running container count per project, if known

    Returns:
        Names chosen for exclusion
    """
    for i, project in enumerate(projects):
        suffix = f"  ({running[i]} running)" if running is not None else ""
        console.print(f"{i + 1:3d}) {project.name}{suffix}")

    console.print()
    text = click.prompt(
        "Enter the numbers of containers to exclude (comma-separated), or press ENTER for none",
        default="",
        show_default=False,
    )
    return parse_selection(text, [p.name for p in projects])


def prompt_retention_count() -> int:
    """Ask for a positive number of dated backups to keep."""
    return click.prompt(
        "Enter the number of backups to keep (must be > 0)", type=click.IntRange(min=1)
    )


def run_setup_wizard(store: ConfigStore) -> BackupConfig:
    """
    Collect every setting interactively and save the configuration.

    Args:
        store: Where the configuration is written

    Returns:
        The saved BackupConfig
    """
    console.print("[bold]=== Full Configuration Wizard ===[/bold]\n")

    source_path = prompt_absolute_path("SOURCE")
    dest_path = prompt_absolute_path("DESTINATION")

    logging_enabled = click.confirm(
        f"Enable logging (append output to '{dest_path / 'docker-backups.log'}')?", default=False
    )

    excluded: FrozenSet[str] = frozenset()
    if source_path.is_dir():
        projects = list_compose_projects(source_path)
        if projects:
            console.print("\nThe following subfolders have docker-compose files and can be excluded if desired:")
            excluded = choose_exclusions(projects)
            if excluded:
                info(f"Excluding: {format_exclusions(excluded)}")
    else:
        warning(f"'{source_path}' is not a directory. Skipping exclusions.")

    retention_count = None
    if click.confirm("Would you like to set a rotation count (limit backups)?", default=False):
        retention_count = prompt_retention_count()
        info(f"Rotation set to {retention_count} backups.")

    config = BackupConfig(
        source_path=source_path,
        dest_path=dest_path,
        logging_enabled=logging_enabled,
        excluded_names=excluded,
        retention_count=retention_count,
    )
    store.save(config)
    success(f"Configuration written to {store.path}")
    return config
