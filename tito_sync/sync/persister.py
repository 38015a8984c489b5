"""Batch limiter and persister for new tickets."""

import logging

from tito_sync.config import settings
from tito_sync.exceptions import PersistenceError
from tito_sync.storage import TicketStore, TitoTicket
from tito_sync.sync.delta import cap_batch

logger = logging.getLogger(__name__)


class BatchPersister:
    """
    Writes at most ``batch_limit`` new tickets per call as one bulk insert.

    Ids past the limit are not written; they stay absent locally and come
    back in the next run's delta.
    """

    def __init__(self, store: TicketStore, batch_limit: int | None = None) -> None:
        self.store = store
        self.batch_limit = batch_limit if batch_limit is not None else settings.tito_sync_batch_limit
        if self.batch_limit < 1:
            raise ValueError(f"Batch limit must be positive, got {self.batch_limit}")

    async def persist_new(self, partition: str, delta: list[str]) -> int:
        """
        Persist up to ``batch_limit`` ids from the delta.

        Returns:
            Number of tickets inserted (0 for an empty delta)

        Raises:
            PersistenceError: If the store rejects the batch
        """
        selected, deferred = cap_batch(delta, self.batch_limit)
        if not selected:
            return 0

        if deferred:
            logger.info(
                "Batch limit %d reached, deferring %d tickets to the next run",
                self.batch_limit,
                len(deferred),
            )

        tickets = [TitoTicket(conference_instance=partition, ticket_id=i) for i in selected]
        try:
            await self.store.create_batch(partition, tickets)
        except PersistenceError:
            raise
        except Exception as e:
            logger.error("Store rejected batch of %d tickets: %s", len(tickets), e)
            raise PersistenceError(partition, len(tickets), str(e)) from e
        return len(tickets)
