"""
CLI Utilities - Shared functions for CLI commands.
"""
import logging

from rich.console import Console
from rich.logging import RichHandler

console = Console()


def show_error(message: str) -> None:
    """Display error message."""
    console.print(f"[bold red]Error:[/bold red] {message}")


def show_success(message: str) -> None:
    """Display success message."""
    console.print(f"[bold green]✓[/bold green] {message}")


def show_info(message: str) -> None:
    """Display info message."""
    console.print(f"[bold blue]ℹ[/bold blue] {message}")


def show_warning(message: str) -> None:
    """Display warning message."""
    console.print(f"[bold yellow]⚠[/bold yellow] {message}")


def configure_logging(verbose: bool = False) -> None:
    """Route library logging through rich at INFO (DEBUG when verbose)."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(name)s - %(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )
    # numba compilation logs are noise at DEBUG
    logging.getLogger("numba").setLevel(logging.WARNING)


def parse_penalties(value: str | None) -> list[float] | None:
    """Parse a comma-separated penalty list ("0,0.01,0.1")."""
    if value is None:
        return None
    try:
        return [float(v) for v in value.split(",") if v.strip()]
    except ValueError as e:
        raise ValueError(f"Invalid penalty list {value!r}: {e}") from e
