"""Main CLI application for GitHub Throttle."""

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from github_throttle import __version__
from github_throttle.cli import github as github_cmd
from github_throttle.config import get_settings
from github_throttle.logging import setup_logging

app = typer.Typer(
    name="ghthrottle",
    help="Rate-limited GitHub REST API requests.",
    add_completion=False,
)
console = Console()


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"ghthrottle version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Enable debug logging.",
        ),
    ] = False,
    quiet: Annotated[
        bool,
        typer.Option(
            "--quiet",
            "-q",
            help="Suppress non-error output (WARNING level).",
        ),
    ] = False,
) -> None:
    """GitHub Throttle - call the GitHub API within its rate limits."""
    settings = get_settings()
    log_config = settings.logging

    setup_logging(
        level=settings.log_level,
        verbose=verbose,
        quiet=quiet,
        log_file=Path(log_config.log_file) if log_config.log_file else None,
        rotation=log_config.rotation,
        retention=log_config.retention,
        serialize=log_config.serialize,
    )


# Register subcommands
app.add_typer(github_cmd.app, name="github")


if __name__ == "__main__":
    app()
