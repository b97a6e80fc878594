"""GitHub API commands."""

import json
from typing import Any

import typer
from rich.table import Table

from github_throttle.cli.common import (
    OutputFormat,
    OutputFormatOption,
    console,
    parse_params,
    run_async_command,
)
from github_throttle.github import (
    GitHubClient,
    GitHubRateLimitError,
    RateLimitPool,
    RateLimitStatus,
)

app = typer.Typer(help="GitHub API commands")


def _get_status_style(status: RateLimitStatus) -> str:
    """Get rich style for status."""
    match status:
        case RateLimitStatus.HEALTHY:
            return "[green]HEALTHY[/green]"
        case RateLimitStatus.WARNING:
            return "[yellow]WARNING[/yellow]"
        case RateLimitStatus.CRITICAL:
            return "[red]CRITICAL[/red]"
        case RateLimitStatus.EXHAUSTED:
            return "[bold red]EXHAUSTED[/bold red]"
        case _:
            return str(status)


def _format_time_remaining(seconds: float) -> str:
    """Format seconds as human-readable time."""
    seconds = int(seconds)
    if seconds <= 0:
        return "Now"
    if seconds < 60:
        return f"{seconds}s"
    if seconds < 3600:
        return f"{seconds // 60}m {seconds % 60}s"
    hours = seconds // 3600
    minutes = (seconds % 3600) // 60
    return f"{hours}h {minutes}m"


@app.command("rate-limit")
def show_rate_limit(
    all_pools: bool = typer.Option(
        False,
        "--all",
        "-a",
        help="Show all rate limit pools (not just core)",
    ),
    output_format: OutputFormatOption = OutputFormat.TEXT,
) -> None:
    """Show current GitHub API rate limit status.

    Examples:
        ghthrottle github rate-limit
        ghthrottle github rate-limit --all
        ghthrottle github rate-limit --format json
    """

    async def _check() -> None:
        async with GitHubClient() as client:
            snapshot = await client.get_rate_limit()

        pools_to_show = list(RateLimitPool) if all_pools else [RateLimitPool.CORE]
        limits = [snapshot.get_pool(pool) for pool in pools_to_show]
        present = [limit for limit in limits if limit is not None]

        if output_format == OutputFormat.JSON:
            console.print_json(
                json.dumps({limit.pool.value: limit.model_dump(mode="json") for limit in present})
            )
            return

        table = Table(title="GitHub API Rate Limits")
        table.add_column("Pool", style="bold")
        table.add_column("Status")
        table.add_column("Remaining", justify="right")
        table.add_column("Limit", justify="right")
        table.add_column("Used %", justify="right")
        table.add_column("Resets In", justify="right")

        for pool_limit in present:
            usage_pct = pool_limit.usage_percent
            if usage_pct < 50:
                usage_str = f"[green]{usage_pct:.1f}%[/green]"
            elif usage_pct < 80:
                usage_str = f"[yellow]{usage_pct:.1f}%[/yellow]"
            else:
                usage_str = f"[red]{usage_pct:.1f}%[/red]"

            table.add_row(
                pool_limit.pool.value,
                _get_status_style(pool_limit.get_status()),
                str(pool_limit.remaining),
                str(pool_limit.limit),
                usage_str,
                _format_time_remaining(pool_limit.seconds_until_reset()),
            )

        console.print(table)

        core = snapshot.get_core()
        if core is not None and core.get_status() == RateLimitStatus.EXHAUSTED:
            console.print(
                f"\n[red]Rate limit exhausted![/red] "
                f"Wait {_format_time_remaining(core.seconds_until_reset())} "
                "before making API calls."
            )

    run_async_command(_check())


@app.command("get")
def get_path(
    path: str = typer.Argument(help="API path, e.g. /repos/octocat/hello-world"),
    param: list[str] | None = typer.Option(
        None,
        "--param",
        "-p",
        help="Query parameter as key=value (repeatable)",
    ),
    stats: bool = typer.Option(
        False,
        "--stats",
        help="Show retry count and time spent waiting",
    ),
) -> None:
    """GET an API path through the rate-limited executor and print the JSON body.

    Examples:
        ghthrottle github get /repos/octocat/hello-world
        ghthrottle github get /repos/octocat/hello-world/stargazers -p per_page=5
    """
    params = parse_params(param)

    async def _get() -> None:
        async with GitHubClient() as client:
            try:
                result = await client.send("GET", path, params=params)
            except GitHubRateLimitError as e:
                console.print(f"[red]Error:[/red] {e}")
                if e.reset_at:
                    console.print(f"  Resets at: {e.reset_at:%H:%M:%S UTC}")
                raise typer.Exit(1) from None

        if stats:
            console.print(
                f"[dim]status={result.response.status_code} "
                f"retries={result.attempts} "
                f"waited={result.total_wait_seconds:.2f}s[/dim]"
            )

        try:
            body: Any = json.loads(result.response.content or b"null")
        except ValueError:
            console.print(result.response.text())
        else:
            console.print_json(json.dumps(body))

        if not result.response.is_success:
            raise typer.Exit(1)

    run_async_command(_get())
