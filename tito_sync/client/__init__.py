"""Tito API client."""

from tito_sync.client.schemas import PageMeta, Ticket, TicketsPage
from tito_sync.client.tito_client import ClientStats, PageResult, TitoClient

__all__ = [
    "ClientStats",
    "PageMeta",
    "PageResult",
    "Ticket",
    "TicketsPage",
    "TitoClient",
]
