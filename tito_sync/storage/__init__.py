"""Storage module - Data persistence."""

from typing import Protocol

from tito_sync.storage.database import DatabaseStorage
from tito_sync.storage.models import Base, TitoTicket


class TicketStore(Protocol):
    """What the sync engine needs from a ticket store."""

    async def get_all(self, partition: str) -> list[TitoTicket]: ...

    async def create_batch(self, partition: str, tickets: list[TitoTicket]) -> int: ...


__all__ = [
    "Base",
    "DatabaseStorage",
    "TicketStore",
    "TitoTicket",
]
