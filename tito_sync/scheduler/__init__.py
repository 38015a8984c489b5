"""
Scheduler module - Automated Tito sync runs.

Runs the incremental sync on a fixed interval using APScheduler.
"""

import asyncio
import logging
from datetime import datetime
from typing import Any

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from rich.console import Console
from rich.panel import Panel

from tito_sync.config import Settings, settings
from tito_sync.metrics import MetricsCollector
from tito_sync.metrics import metrics as default_metrics
from tito_sync.storage import DatabaseStorage, TicketStore
from tito_sync.sync.orchestrator import SyncOrchestrator
from tito_sync.sync.window import sync_permitted

logger = logging.getLogger(__name__)
console = Console()


class SyncScheduler:
    """
    Scheduler for automated Tito synchronization.

    Runs one incremental sync every N minutes while the sync window is
    open. Overlapping runs are prevented both by APScheduler
    (max_instances=1) and by an in-progress flag.
    """

    def __init__(
        self,
        store: TicketStore,
        config: Settings | None = None,
        sync_interval_minutes: int | None = None,
        metrics: MetricsCollector | None = None,
    ) -> None:
        """
        Initialize the sync scheduler.

        Args:
            store: Ticket store shared by all runs
            config: Settings for building each run's orchestrator
            sync_interval_minutes: Minutes between syncs.
                                   Defaults to settings.sync_interval_minutes.
        """
        self.store = store
        self.config = config or settings
        self.sync_interval = sync_interval_minutes or self.config.sync_interval_minutes
        self.metrics = metrics or default_metrics

        self.scheduler = AsyncIOScheduler()
        self._is_syncing = False
        self._last_sync: datetime | None = None
        self._sync_stats: dict[str, Any] = {}

    async def start(self) -> None:
        """Start the scheduler and register the sync job."""
        console.print(Panel.fit(
            "[bold green]Starting Tito Sync Scheduler[/bold green]\n"
            f"[dim]Partition: {self.config.conference_instance}[/dim]\n"
            f"[dim]Interval: every {self.sync_interval} minutes[/dim]",
            border_style="green",
        ))

        self.scheduler.add_job(
            self.run_sync,
            trigger=IntervalTrigger(minutes=self.sync_interval),
            id="tito_sync",
            name="Tito Incremental Sync",
            replace_existing=True,
            max_instances=1,  # Prevent overlapping syncs
            coalesce=True,
        )

        self.scheduler.start()
        logger.info("Scheduler started")

        # Run an immediate sync
        await self.run_sync()

    async def stop(self) -> None:
        """Stop the scheduler gracefully."""
        console.print("[yellow]Stopping scheduler...[/yellow]")
        if self.scheduler.running:
            self.scheduler.shutdown(wait=True)
        console.print("[green]Scheduler stopped[/green]")

    async def run_sync(self) -> None:
        """Run one sync, logging instead of raising on failure."""
        if self._is_syncing:
            logger.warning("Sync already in progress, skipping...")
            return

        if not sync_permitted(
            self.config.stop_syncing_from,
            self.config.stop_syncing_grace_minutes,
        ):
            logger.info("Tito sync cutoff date passed, skipping run")
            self._sync_stats["last_skipped"] = datetime.now()
            return

        self._is_syncing = True
        start_time = datetime.now()

        try:
            orchestrator = SyncOrchestrator.from_settings(
                self.store, self.config, metrics=self.metrics
            )
            result = await orchestrator.run()
            orchestrator.print_result(result)

            self._sync_stats["last_run"] = {
                "time": start_time,
                "duration": result.duration_seconds,
                "inserted": result.inserted,
                "deferred": result.deferred,
                "walk_completed": result.walk_completed,
            }
            self._last_sync = datetime.now()

        except Exception as e:
            logger.exception("Tito sync failed")
            self._sync_stats["last_error"] = {"time": start_time, "error": str(e)}
        finally:
            self._is_syncing = False

    def get_status(self) -> dict[str, Any]:
        """Get current scheduler status."""
        jobs = []
        for job in self.scheduler.get_jobs():
            jobs.append({
                "id": job.id,
                "name": job.name,
                "next_run": str(job.next_run_time) if job.next_run_time else None,
            })

        return {
            "running": self.scheduler.running,
            "is_syncing": self._is_syncing,
            "last_sync": str(self._last_sync) if self._last_sync else None,
            "jobs": jobs,
            "stats": self._sync_stats,
        }


async def run_scheduler(
    config: Settings | None = None,
    sync_interval: int | None = None,
    metrics_port: int | None = None,
) -> None:
    """
    Run the sync scheduler continuously.

    Args:
        config: Settings (defaults to environment)
        sync_interval: Minutes between syncs
        metrics_port: Port for Prometheus metrics server
    """
    config = config or settings
    config.require_tito()

    async with DatabaseStorage(config.database_url) as storage:
        scheduler = SyncScheduler(
            store=storage,
            config=config,
            sync_interval_minutes=sync_interval,
        )

        try:
            await default_metrics.start_server(port=metrics_port or config.metrics_port)
            await scheduler.start()

            # Keep running until interrupted
            while True:
                await asyncio.sleep(60)

                status = scheduler.get_status()
                if status["jobs"]:
                    next_job = status["jobs"][0]
                    console.print(
                        f"[dim]Next sync: {next_job.get('next_run', 'unknown')}[/dim]",
                        highlight=False,
                    )
        except (asyncio.CancelledError, KeyboardInterrupt):
            await scheduler.stop()
        finally:
            await default_metrics.stop_server()
