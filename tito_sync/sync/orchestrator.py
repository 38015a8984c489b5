"""
Sync Orchestrator

Runs one incremental Tito sync for a conference instance:
- Walk every registration page
- Subtract tickets already stored locally
- Persist at most one bulk batch of new tickets

Local writes happen once, after the walk. A run cancelled while walking
leaves the store untouched.
"""

import logging
import time
from dataclasses import dataclass, field

from rich.console import Console
from rich.table import Table

from tito_sync.client.tito_client import ClientStats, TitoClient
from tito_sync.config import Settings, settings
from tito_sync.exceptions import IncompleteWalkError
from tito_sync.metrics import MetricsCollector
from tito_sync.metrics import metrics as default_metrics
from tito_sync.storage import TicketStore
from tito_sync.sync.delta import compute_delta, read_local_ids
from tito_sync.sync.persister import BatchPersister
from tito_sync.sync.walker import PaginationWalker, WalkStats

logger = logging.getLogger(__name__)
console = Console()


@dataclass
class SyncResult:
    """Result of a sync run."""

    partition: str
    success: bool = False
    dry_run: bool = False
    remote_tickets: int = 0
    existing_tickets: int = 0
    new_tickets: int = 0
    inserted: int = 0
    deferred: int = 0
    errors: list[str] = field(default_factory=list)
    duration_seconds: float = 0.0
    walk_stats: WalkStats | None = None
    http_stats: ClientStats | None = None

    @property
    def walk_completed(self) -> bool:
        return self.walk_stats is not None and self.walk_stats.completed


class SyncOrchestrator:
    """
    Orchestrates one Tito sync run.

    All collaborators are passed in; construct one per partition.
    """

    def __init__(
        self,
        store: TicketStore,
        client: TitoClient,
        partition: str,
        batch_limit: int | None = None,
        max_pages: int | None = None,
        deadline_seconds: float | None = None,
        fail_on_page_error: bool = False,
        metrics: MetricsCollector | None = None,
    ) -> None:
        """
        Initialize the orchestrator.

        Args:
            store: Ticket store providing get_all / create_batch
            client: Tito client (entered for the duration of each run)
            partition: Conference instance the tickets are stored under
            batch_limit: Maximum tickets inserted per run
            max_pages: Walker page guard
            deadline_seconds: Budget for the pagination walk
            fail_on_page_error: Raise IncompleteWalkError instead of
                persisting when the walk stops early
        """
        if not partition:
            raise ValueError("partition must not be empty")

        self.store = store
        self.client = client
        self.partition = partition
        self.persister = BatchPersister(store, batch_limit)
        self.max_pages = max_pages
        self.deadline_seconds = deadline_seconds
        self.fail_on_page_error = fail_on_page_error
        self.metrics = metrics or default_metrics

    @classmethod
    def from_settings(
        cls,
        store: TicketStore,
        config: Settings | None = None,
        metrics: MetricsCollector | None = None,
    ) -> "SyncOrchestrator":
        """Build an orchestrator and its client from settings."""
        config = config or settings
        config.require_tito()
        metrics = metrics or default_metrics

        client = TitoClient(
            account_id=config.tito_account_id,
            event_id=config.tito_event_id,
            api_key=config.tito_api_key,
            base_url=config.tito_base_url,
            timeout=config.tito_request_timeout,
            max_retries=config.tito_max_retries,
            retry_backoff=config.tito_retry_backoff,
            metrics=metrics,
        )
        return cls(
            store=store,
            client=client,
            partition=config.conference_instance,
            batch_limit=config.tito_sync_batch_limit,
            max_pages=config.tito_max_pages,
            deadline_seconds=config.run_deadline_seconds,
            fail_on_page_error=config.fail_on_page_error,
            metrics=metrics,
        )

    @property
    def batch_limit(self) -> int:
        return self.persister.batch_limit

    async def run(self, dry_run: bool = False) -> SyncResult:
        """
        Run one sync.

        Args:
            dry_run: Compute the delta without writing

        Returns:
            SyncResult with counts

        Raises:
            PersistenceError: If the bulk insert fails
            IncompleteWalkError: If the walk stopped early and
                fail_on_page_error is set
        """
        start_time = time.time()
        result = SyncResult(partition=self.partition, dry_run=dry_run)

        async with self.metrics.track_sync(self.partition):
            async with self.client as client:
                walker = PaginationWalker(
                    client,
                    max_pages=self.max_pages,
                    deadline_seconds=self.deadline_seconds,
                )
                remote_ids = await walker.walk_all()
                result.http_stats = client.stats

            result.walk_stats = walker.stats
            result.remote_tickets = len(remote_ids)
            if walker.stats.error is not None:
                result.errors.append(str(walker.stats.error))

            if not walker.stats.completed:
                logger.warning("Walk ended early: %s", walker.stats)
                if self.fail_on_page_error:
                    raise IncompleteWalkError(
                        walker.stats.stop_reason.value if walker.stats.stop_reason else "unknown",
                        walker.stats.error,
                    )

            local_ids = await read_local_ids(self.store, self.partition)
            delta = compute_delta(remote_ids, local_ids)
            result.existing_tickets = len(local_ids)
            result.new_tickets = len(delta)

            logger.info(
                "Found %d existing tickets and %d current tickets. Inserting %d new tickets.",
                len(local_ids),
                len(remote_ids),
                0 if dry_run else min(len(delta), self.batch_limit),
            )

            if not dry_run:
                result.inserted = await self.persister.persist_new(self.partition, delta)
            result.deferred = len(delta) - result.inserted
            if not dry_run:
                self.metrics.record_tickets(self.partition, result.inserted, result.deferred)
            result.success = True

        result.duration_seconds = time.time() - start_time
        return result

    def print_result(self, result: SyncResult) -> None:
        """Print a summary of a run."""
        status = "[green]Success[/green]" if result.success else "[red]Failed[/red]"
        table = Table(title=f"Tito sync: {result.partition}", show_header=False)
        table.add_column("Metric", style="cyan")
        table.add_column("Value", justify="right")

        table.add_row("Status", status)
        if result.dry_run:
            table.add_row("Mode", "[yellow]dry run[/yellow]")
        table.add_row("Remote tickets", f"{result.remote_tickets:,}")
        table.add_row("Existing tickets", f"{result.existing_tickets:,}")
        table.add_row("New tickets", f"{result.new_tickets:,}")
        table.add_row("Inserted", f"{result.inserted:,}")
        table.add_row("Deferred", f"{result.deferred:,}")
        if result.walk_stats is not None:
            table.add_row("Pages", str(result.walk_stats.pages_fetched))
            table.add_row("Walk complete", "yes" if result.walk_completed else "no")
        table.add_row("Duration", f"{result.duration_seconds:.1f}s")
        console.print(table)

        for error in result.errors:
            console.print(f"[red]  {error}[/red]")
