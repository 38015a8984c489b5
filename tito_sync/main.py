"""
Tito Sync - CLI Entry Point

Command-line interface for Tito registration synchronization.

Usage:
    # Create the tickets table
    tito-sync init-db

    # Run one sync
    tito-sync sync

    # Preview what a sync would insert
    tito-sync sync --dry-run

    # Run on a schedule
    tito-sync daemon --interval 5
"""

import asyncio
import logging
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from tito_sync.config import settings
from tito_sync.exceptions import ConfigurationError, TitoSyncError
from tito_sync.storage import DatabaseStorage
from tito_sync.sync.orchestrator import SyncOrchestrator
from tito_sync.sync.window import sync_permitted

app = typer.Typer(
    name="tito-sync",
    help="Tito registration synchronization service",
    add_completion=False,
)
console = Console()


def configure_logging(level: str | None = None) -> None:
    """Route log records through rich."""
    logging.basicConfig(
        level=(level or settings.log_level).upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
        force=True,
    )


def print_banner() -> None:
    """Print the application banner."""
    console.print(Panel.fit(
        "[bold blue]Tito Sync[/bold blue]\n"
        "[dim]Incremental registration sync[/dim]",
        border_style="blue",
    ))
    console.print()


def _redacted_database_url() -> str:
    url = settings.database_url
    return url.split("@")[-1] if "@" in url else url


@app.command()
def sync(
    dry_run: bool = typer.Option(
        False, "--dry-run", "-n", help="Compute new tickets without writing them"
    ),
    force: bool = typer.Option(
        False, "--force", "-f", help="Run even if the sync cutoff date has passed"
    ),
) -> None:
    """
    Run one incremental sync.

    Fetches every registration page, compares ticket ids with the local
    store, and inserts up to one batch of new tickets.
    """
    configure_logging()
    print_banner()

    try:
        settings.require_tito()
    except ConfigurationError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(2)

    if not force and not sync_permitted(
        settings.stop_syncing_from, settings.stop_syncing_grace_minutes
    ):
        console.print("[yellow]Tito sync cutoff date passed, nothing to do.[/yellow]")
        console.print("[dim]Use --force to sync anyway.[/dim]")
        return

    async def run_sync() -> None:
        async with DatabaseStorage() as storage:
            orchestrator = SyncOrchestrator.from_settings(storage)
            result = await orchestrator.run(dry_run=dry_run)
            orchestrator.print_result(result)

    try:
        asyncio.run(run_sync())
    except KeyboardInterrupt:
        console.print("\n[yellow]Sync interrupted by user[/yellow]")
        raise typer.Exit(130)
    except TitoSyncError as e:
        console.print(f"\n[red]Sync failed: {e}[/red]")
        raise typer.Exit(1)


@app.command()
def status() -> None:
    """
    Show configuration and the number of stored tickets.
    """
    configure_logging()
    print_banner()

    table = Table(show_header=False)
    table.add_column("Setting", style="cyan")
    table.add_column("Value")
    table.add_row("Database", _redacted_database_url())
    table.add_row("Tito account", settings.tito_account_id or "[red]unset[/red]")
    table.add_row("Tito event", settings.tito_event_id or "[red]unset[/red]")
    table.add_row("API key", "set" if settings.tito_api_key else "[red]unset[/red]")
    table.add_row("Conference instance", settings.conference_instance or "[red]unset[/red]")
    table.add_row("Batch limit", str(settings.tito_sync_batch_limit))
    table.add_row("Interval", f"{settings.sync_interval_minutes} min")
    table.add_row(
        "Sync cutoff",
        str(settings.stop_syncing_from) if settings.stop_syncing_from else "none",
    )
    table.add_row(
        "Sync permitted",
        "yes" if sync_permitted(
            settings.stop_syncing_from, settings.stop_syncing_grace_minutes
        ) else "no",
    )
    console.print(table)
    console.print()

    if not settings.conference_instance:
        return

    async def run_status() -> None:
        async with DatabaseStorage() as storage:
            count = await storage.count(settings.conference_instance)
            console.print(
                f"[bold]Stored tickets for {settings.conference_instance}:[/bold] {count:,}"
            )

    try:
        asyncio.run(run_status())
    except Exception as e:
        console.print(f"[red]Could not connect to database: {e}[/red]")
        raise typer.Exit(1)


@app.command("init-db")
def init_db() -> None:
    """
    Initialize the database schema.

    Creates the tickets table if it doesn't exist.
    """
    configure_logging()
    print_banner()
    console.print("[blue]Initializing database schema...[/blue]")

    async def run_init() -> None:
        async with DatabaseStorage():
            console.print("[green]Database schema initialized successfully![/green]")

    try:
        asyncio.run(run_init())
    except Exception as e:
        console.print(f"[red]Failed to initialize database: {e}[/red]")
        raise typer.Exit(1)


@app.command()
def daemon(
    interval: Optional[int] = typer.Option(
        None, "--interval", "-i", help="Minutes between syncs (default from settings)"
    ),
    metrics_port: Optional[int] = typer.Option(
        None, "--metrics-port", help="Port for Prometheus metrics server"
    ),
) -> None:
    """
    Start the sync scheduler daemon.

    Runs a sync immediately and then every --interval minutes, and exposes
    Prometheus metrics on /metrics.

    Use Ctrl+C to stop the daemon gracefully.
    """
    from tito_sync.scheduler import run_scheduler

    configure_logging()
    print_banner()

    try:
        asyncio.run(run_scheduler(sync_interval=interval, metrics_port=metrics_port))
    except ConfigurationError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(2)
    except KeyboardInterrupt:
        console.print("\n[yellow]Daemon stopped[/yellow]")


if __name__ == "__main__":
    app()
