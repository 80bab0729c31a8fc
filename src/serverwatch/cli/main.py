"""Main CLI entry point for ServerWatch.

Provides commands to run the service, try the parser on a saved message and
inspect the records of a running instance.
"""

import json
import os
from pathlib import Path
from typing import Optional

import click
import httpx
from rich.console import Console
from rich.table import Table

from serverwatch import __version__
from serverwatch.parsing.message import parse_message

console = Console()


@click.group()
@click.version_option(version=__version__, prog_name="serverwatch")
def cli() -> None:
    """ServerWatch - game-server telemetry collected from chat."""
    pass


@cli.command()
@click.option("--host", default=None, help="Interface to bind (default: $HOST or 0.0.0.0)")
@click.option("--port", type=int, default=None, help="Port to listen on (default: $PORT or 5000)")
@click.option("--reload", is_flag=True, help="Reload on code changes (development)")
def serve(host: Optional[str], port: Optional[int], reload: bool) -> None:
    """Run the HTTP service and the gateway collector."""
    import uvicorn

    # The app factory reads its configuration from the environment.
    if host:
        os.environ["HOST"] = host
    if port:
        os.environ["PORT"] = str(port)

    from serverwatch.config import load_config_from_env

    config = load_config_from_env()
    console.print(f"[bold]ServerWatch[/bold] listening on http://{config.host}:{config.port}")
    if not config.gateway_enabled:
        console.print("[yellow]Gateway collector disabled: set DISCORD_TOKEN and CHANNEL_ID[/yellow]")

    uvicorn.run(
        "serverwatch.api.app:create_app",
        factory=True,
        host=config.host,
        port=config.port,
        reload=reload,
        log_level=config.log_level.lower(),
    )


@cli.command()
@click.argument("message_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
def parse(message_file: Path) -> None:
    """Parse a saved gateway message (JSON) and show the extracted fields."""
    try:
        data = json.loads(message_file.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        raise click.ClickException(f"Could not read {message_file}: {e}") from e

    # Accept either the bare message or a full dispatch frame.
    if isinstance(data, dict) and isinstance(data.get("d"), dict) and "t" in data:
        data = data["d"]

    parsed = parse_message(data)

    table = Table(title=f"Parsed {message_file.name}")
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("serverName", parsed.server_name or "-")
    table.add_row("moneyPerSec", str(parsed.money_per_sec))
    table.add_row("players", parsed.players or "-")
    table.add_row("jobId", parsed.job_id or "-")
    console.print(table)

    if not parsed.is_relevant:
        console.print("[yellow]No server name or job ID found; the collector would ignore this message.[/yellow]")


@cli.command()
@click.option(
    "--url",
    default="http://127.0.0.1:5000",
    show_default=True,
    help="Base URL of a running ServerWatch service",
)
def messages(url: str) -> None:
    """List the fresh records of a running service."""
    endpoint = url.rstrip("/") + "/messages"
    try:
        response = httpx.get(endpoint, timeout=10.0)
        response.raise_for_status()
        records = response.json()
    except (httpx.HTTPError, ValueError) as e:
        raise click.ClickException(f"Failed to fetch {endpoint}: {e}") from e

    if not records:
        console.print("[yellow]No fresh records[/yellow]")
        return

    table = Table(title=f"{len(records)} fresh records")
    table.add_column("Server", style="cyan")
    table.add_column("Money/s", justify="right")
    table.add_column("Players")
    table.add_column("Job ID")
    table.add_column("Author")
    for record in records:
        table.add_row(
            record.get("serverName") or "-",
            f"{record.get('moneyPerSec', 0):,}",
            record.get("players") or "-",
            record.get("jobId") or "-",
            record.get("author") or "-",
        )
    console.print(table)


def main() -> None:
    """CLI entry point."""
    cli()


if __name__ == "__main__":
    main()
