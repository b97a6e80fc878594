"""Common CLI helpers.

Provides:
- `run_async_command`: Unified async execution with error handling for CLI commands
- `OutputFormatOption`: Shared --format option
- `parse_params`: key=value option parsing
"""

from __future__ import annotations

import asyncio
from collections.abc import Coroutine
from enum import StrEnum
from typing import Annotated, TypeVar

import typer
from rich.console import Console

# Shared console instance for CLI output
console = Console()

T = TypeVar("T")


class OutputFormat(StrEnum):
    """Output format for CLI commands."""

    TEXT = "text"
    JSON = "json"


def run_async_command(coro: Coroutine[object, object, T]) -> T:
    """Execute async code from synchronous CLI command with unified error handling.

    Uses asyncio.run() for clean event loop management. Catches exceptions,
    prints user-friendly error messages, and exits with code 1.

    Args:
        coro: Async coroutine to execute

    Returns:
        Result from the coroutine

    Raises:
        typer.Exit: Re-raised from deliberate exits, or raised with code 1 on error
    """
    try:
        return asyncio.run(coro)
    except typer.Exit:
        # Re-raise deliberate exits (e.g., from validation helpers)
        raise
    except Exception as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from None


def parse_params(values: list[str] | None) -> dict[str, str]:
    """Parse repeated key=value options into a dict.

    Raises:
        typer.BadParameter: If a value has no '='
    """
    params: dict[str, str] = {}
    for value in values or []:
        key, sep, val = value.partition("=")
        if not sep or not key:
            raise typer.BadParameter(f"Expected key=value, got '{value}'")
        params[key] = val
    return params


OutputFormatOption = Annotated[
    OutputFormat,
    typer.Option(
        "--format",
        "-f",
        help="Output format",
    ),
]
"""Output format option type for CLI commands.

Usage:
    def command(output_format: OutputFormatOption = OutputFormat.TEXT):
"""
