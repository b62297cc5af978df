"""CLI for the compose backup tool."""

import sys
from contextlib import ExitStack
from pathlib import Path
from typing import List, Optional

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from shared.cli import (
    confirm,
    console,
    create_table,
    error,
    handle_errors,
    info,
    success,
    warning,
)
from shared.logger import add_file_handler, setup_logger

from .compose import ComposeController
from .config import BackupConfig, ConfigStore, format_exclusions, format_path
from .engine import BackupEngine, BackupOutcome, BackupRun
from .errors import BackupDirError, ConfigError, ConfigNotFoundError, SourceNotFoundError
from .retention import RetentionManager, list_dated_directories
from .wizard import choose_exclusions, list_compose_projects, prompt_retention_count, run_setup_wizard

OUTCOME_STYLES = {
    BackupOutcome.SUCCESS: "green",
    BackupOutcome.CONTAINER_STOP_FAILED: "yellow",
    BackupOutcome.ARCHIVE_FAILED: "red",
    BackupOutcome.CONTAINER_START_FAILED: "bold white on red",
}


@click.group(invoke_without_command=True)
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    envvar="COMPOSE_BACKUP_CONFIG",
    help="Configuration file (default: ./docker-backup.conf)",
)
@click.option("--verbose", "-v", is_flag=True, help="Verbose output")
@click.pass_context
def main(ctx: click.Context, config_path: Optional[Path], verbose: bool) -> None:
    """
    Compose Backup - Back up docker compose project folders.

    Every subfolder of the source path is archived into
    DEST/<YYYY-MM-DD>/. Folders with a docker-compose.yml are stopped
    before and started again after archiving. Running without a command
    performs a backup (and runs the setup wizard first if needed).

    Examples:

        \b
        # Back up everything
        compose-backup

        \b
        # Re-run the configuration wizard
        compose-backup setup

        \b
        # Keep only the 7 newest dated backups
        compose-backup rotation
    """
    log_level = "DEBUG" if verbose else "INFO"
    setup_logger(__name__, level=log_level)

    ctx.obj = ConfigStore(config_path)
    if ctx.invoked_subcommand is None:
        ctx.invoke(run)


@main.command()
@click.pass_obj
@handle_errors
def run(store: ConfigStore) -> None:
    """Run one full backup pass."""
    if not store.exists():
        warning(f"No configuration found at {store.path}, starting the setup wizard.")
        run_setup_wizard(store)
        if not _confirm_backup():
            info("Exiting without performing backup.")
            sys.exit(0)

    _perform_backup(store)


@main.command()
@click.pass_obj
@handle_errors
def setup(store: ConfigStore) -> None:
    """Run the full interactive configuration wizard."""
    run_setup_wizard(store)
    if not _confirm_backup():
        info("Exiting without performing backup.")
        sys.exit(0)

    _perform_backup(store)


@main.command()
@click.pass_obj
@handle_errors
def details(store: ConfigStore) -> None:
    """Show the current configuration."""
    try:
        config = store.load()
    except ConfigNotFoundError:
        info("No config found. Run 'compose-backup' or 'compose-backup setup' to create one.")
        return
    except ConfigError as e:
        error(str(e))
        sys.exit(1)

    display_config(config, title="Current Configuration Details")


@main.command()
@click.argument("state", type=click.Choice(["on", "off"], case_sensitive=False))
@click.pass_obj
@handle_errors
def logs(store: ConfigStore, state: str) -> None:
    """Turn appending the run log to DEST/docker-backups.log ON or OFF."""
    enabled = state.lower() == "on"
    try:
        store.update(logging_enabled=enabled)
    except ConfigError as e:
        error(str(e))
        sys.exit(1)

    success(f"Config updated: LOGGING_ENABLED='{'true' if enabled else 'false'}'")


@main.command()
@click.pass_obj
@handle_errors
def exclude(store: ConfigStore) -> None:
    """List compose projects and choose which to exclude."""
    config = _load_or_exit(store, strict=False)

    if not config.source_path.is_dir():
        error(f"SOURCE_PATH ({config.source_path}) does not exist or is not a directory.")
        sys.exit(1)

    projects = list_compose_projects(config.source_path)
    if not projects:
        info(f"No folders with docker-compose found in {config.source_path}. Nothing to exclude.")
        return

    controller = ComposeController()
    try:
        running: Optional[List[int]] = [len(controller.running_containers(p.path)) for p in projects]
    except ConnectionError as e:
        warning(f"Container status unavailable: {e}")
        running = None

    console.print("The following subfolders have docker-compose files:")
    info(f"Currently excluded containers: {format_exclusions(config.excluded_names) or 'none'}")
    excluded = choose_exclusions(projects, running)

    store.update(excluded_names=excluded)
    success(f"Exclusions updated. EXCLUDED_CONTAINERS: '{format_exclusions(excluded)}'")
    info("No backups were run.")


@main.command()
@click.pass_obj
@handle_errors
def rotation(store: ConfigStore) -> None:
    """Set how many dated backups to keep."""
    config = _load_or_exit(store, strict=False)

    if config.retention_count is None:
        info("Current rotation is: infinite.")
    else:
        info(f"Current rotation: {config.retention_count} backups.")

    new_count = prompt_retention_count()
    store.update(retention_count=new_count)
    success(f"Rotation updated to: {new_count}")

    if not config.dest_path.is_dir():
        warning(f"Cannot check existing backups because DEST_PATH='{config.dest_path}' is invalid.")
        return

    total = len(list_dated_directories(config.dest_path))
    _, to_remove = RetentionManager(config.dest_path, new_count).plan()
    info(f"Currently {total} dated backup folder(s) in '{config.dest_path}'.")
    if to_remove:
        warning(f"On next run, {len(to_remove)} oldest backup(s) will be removed:")
        for path in to_remove:
            console.print(f"  {path.name}")
    else:
        info(f"No backups will be removed, since {total} <= {new_count}.")


def _confirm_backup() -> bool:
    """Ask before a backup that will restart containers."""
    warning("Running the backup will shut down and restart Docker containers.")
    return confirm("Do you want to proceed with the backup now?", default=False)


def _load_or_exit(store: ConfigStore, strict: bool = True) -> BackupConfig:
    """Load the configuration or print why it cannot be used and exit."""
    try:
        return store.load(strict=strict)
    except ConfigNotFoundError:
        error(f"No config file found at {store.path}. Please run 'compose-backup setup' first.")
        sys.exit(1)
    except ConfigError as e:
        error(str(e))
        sys.exit(1)


def _perform_backup(store: ConfigStore) -> None:
    """Load the configuration, run one pass and exit with its status."""
    config = _load_or_exit(store)
    if not config.is_complete:
        error("SOURCE_PATH and DEST_PATH must both be set. Run 'compose-backup setup'.")
        sys.exit(1)

    with ExitStack() as stack:
        outputs = [console]
        if config.logging_enabled:
            add_file_handler(config.log_file)
            log_handle = stack.enter_context(open(config.log_file, "a", encoding="utf-8"))
            outputs.append(Console(file=log_handle, width=120, no_color=True, highlight=False))

        for out in outputs:
            display_config(config, title="Normal Mode", out=out)

        artifacts = [store.path]
        script = Path(sys.argv[0])
        if script.is_file():
            artifacts.append(script)

        engine = BackupEngine(config, artifacts=artifacts)
        try:
            backup_run = engine.run()
        except (SourceNotFoundError, BackupDirError) as e:
            for out in outputs:
                out.print(f"[bold red]✗ {e}[/bold red]")
            sys.exit(1)

        for out in outputs:
            display_summary(backup_run, out=out)
            if backup_run.success:
                out.print("[green]✓ All done![/green]")
            else:
                out.print("[bold red]✗ Backup finished with errors[/bold red]")

    sys.exit(0 if backup_run.success else 1)


def display_config(config: BackupConfig, title: str, out: Console = console) -> None:
    """
    Display configuration values.

    Args:
        config: Configuration to show
        title: Panel title
        out: Console to print to
    """
    table = Table(show_header=False, box=None)
    table.add_column("Key", style="cyan")
    table.add_column("Value", style="white")

    table.add_row("SOURCE_PATH", format_path(config.source_path))
    table.add_row("DEST_PATH", format_path(config.dest_path))
    table.add_row("LOGGING_ENABLED", "true" if config.logging_enabled else "false")
    table.add_row("EXCLUDED_CONTAINERS", format_exclusions(config.excluded_names) or "none")
    table.add_row(
        "ROTATION_COUNT",
        "infinite" if config.retention_count is None else str(config.retention_count),
    )

    out.print(Panel(table, title=f"[cyan]{title}[/cyan]", border_style="cyan"))


def display_summary(backup_run: BackupRun, out: Console = console) -> None:
    """
    Display per-folder outcomes, worst first, and the rotation result.

    Args:
        backup_run: Finished backup pass
        out: Console to print to; the run log gets the same report
    """
    if not backup_run.results:
        out.print(f"[cyan]No folders to back up. Archives directory: {backup_run.backup_dir}[/cyan]")
    else:
        table = create_table(title=f"Backup Summary ({backup_run.date_stamp})")
        table.add_column("Folder", style="cyan")
        table.add_column("Type", style="magenta")
        table.add_column("Outcome")
        table.add_column("Archive", style="dim")
        table.add_column("Details", style="white")

        for result in backup_run.results_by_severity():
            style = OUTCOME_STYLES[result.outcome]
            table.add_row(
                result.entry.name,
                result.entry.kind,
                f"[{style}]{result.outcome.label}[/{style}]",
                result.archive_path.name if result.archive_path.exists() else "-",
                "; ".join(result.errors),
            )

        out.print(table)
        out.print()

    for result in backup_run.failures:
        if result.outcome is BackupOutcome.CONTAINER_START_FAILED:
            out.print(
                f"[bold red]✗ Containers for '{result.entry.name}' failed to restart and may be DOWN[/bold red]"
            )

    if backup_run.artifacts_archive:
        out.print(f"[cyan]Script and config archived at: {backup_run.artifacts_archive}[/cyan]")
    if backup_run.artifacts_error:
        out.print(f"[yellow]⚠ Script and config archive failed: {backup_run.artifacts_error}[/yellow]")

    report = backup_run.retention
    if report is not None:
        for path in report.removed:
            out.print(f"[cyan]Removed old backup folder: {path}[/cyan]")
        for path, message in report.failed:
            out.print(f"[bold red]✗ Failed to remove {path}: {message}[/bold red]")

    succeeded = sum(1 for r in backup_run.results if r.success)
    out.print(f"\n[cyan]Summary: {succeeded}/{len(backup_run.results)} folder(s) backed up successfully[/cyan]")


if __name__ == "__main__":
    main()
