"""Console output helpers shared by the command line tools."""

import functools
import sys
from typing import Any, Callable, Optional

import click
from rich.console import Console
from rich.table import Table

console = Console()
err_console = Console(stderr=True)


def info(message: str) -> None:
    """Print an informational message."""
    console.print(f"[cyan]{message}[/cyan]")


def success(message: str) -> None:
    """Print a success message."""
    console.print(f"[green]✓ {message}[/green]")


def warning(message: str) -> None:
    """Print a warning message."""
    console.print(f"[yellow]⚠ {message}[/yellow]")


def error(message: str) -> None:
    """Print an error message to stderr."""
    err_console.print(f"[bold red]✗ {message}[/bold red]")


def confirm(question: str, default: bool = False) -> bool:
    """
    Ask a yes/no question.

    Args:
        question: Question to display
        default: Answer used when the user just presses ENTER

    Returns:
        True if the user answered yes
    """
    return click.confirm(question, default=default)


def create_table(title: Optional[str] = None, **kwargs: Any) -> Table:
    """Create a table with the common look of the tools."""
    kwargs.setdefault("header_style", "bold magenta")
    kwargs.setdefault("show_lines", False)
    return Table(title=title, **kwargs)


def handle_errors(func: Callable) -> Callable:
    """
    Turn unexpected exceptions in a command into an error line and exit code 1.

    click's own exceptions pass through so usage errors, aborts and explicit
    exits keep their behaviour.
    """

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except (click.exceptions.ClickException, click.exceptions.Abort, click.exceptions.Exit):
            raise
        except Exception as e:
            error(f"Unexpected error: {e}")
            sys.exit(1)

    return wrapper
