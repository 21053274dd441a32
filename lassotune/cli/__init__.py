"""
CLI Module - Typer-based command-line interface for lasso tuning runs.
"""
import typer

from .commands import run_command, show_config_command
from .utils import console, show_error, show_info, show_success, show_warning

# Create main app
app = typer.Typer(
    name="lassotune",
    help="Influence screening, stratified resampling and lasso penalty tuning",
    add_completion=False
)

# Register commands
app.command(name="run")(run_command)
app.command(name="show-config")(show_config_command)


def main() -> None:
    """Main entry point for the CLI."""
    app()


__all__ = [
    "app",
    "main",
    "console",
    "show_error",
    "show_success",
    "show_info",
    "show_warning",
]
