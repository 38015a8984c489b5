"""
Pytest configuration and fixtures.
"""

from typing import Any, Callable

import httpx
import pytest

from tito_sync.client.tito_client import TitoClient
from tito_sync.exceptions import PersistenceError
from tito_sync.metrics import MetricsCollector
from tito_sync.storage import TitoTicket

PARTITION = "dddperth-2026"
BASE_URL = "https://api.tito.test/v3"


def tito_page(
    ids: list[Any],
    current_page: int,
    total_pages: int,
    next_page: int | None = None,
) -> dict[str, Any]:
    """Build a registrations page body."""
    return {
        "meta": {
            "current_page": current_page,
            "next_page": next_page,
            "total_pages": total_pages,
        },
        "tickets": [{"id": ticket_id} for ticket_id in ids],
    }


class FakeTitoRemote:
    """
    Serves registration pages through httpx.MockTransport.

    Page entries may be a body dict, an httpx.Response, or an httpx
    exception class to raise for that page.
    """

    def __init__(self, pages: dict[int, Any]) -> None:
        self.pages = pages
        self.requests: list[httpx.Request] = []

    @classmethod
    def from_id_pages(cls, *id_pages: list[Any]) -> "FakeTitoRemote":
        """Well-behaved remote: next_page set on every page but the last."""
        total = len(id_pages)
        pages = {
            number: tito_page(
                ids,
                current_page=number,
                total_pages=total,
                next_page=number + 1 if number < total else None,
            )
            for number, ids in enumerate(id_pages, start=1)
        }
        return cls(pages)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        page = int(request.url.params.get("page", "1"))
        entry = self.pages.get(page)

        if entry is None:
            return httpx.Response(404, json={"error": "not found"})
        if isinstance(entry, type) and issubclass(entry, httpx.RequestError):
            raise entry("simulated failure", request=request)
        if isinstance(entry, httpx.Response):
            return entry
        return httpx.Response(200, json=entry)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    @property
    def requested_pages(self) -> list[int]:
        return [int(r.url.params["page"]) for r in self.requests]


class InMemoryTicketStore:
    """Ticket store double with the get_all / create_batch contract."""

    def __init__(self) -> None:
        self.tickets: dict[str, dict[str, TitoTicket]] = {}
        self.batches: list[list[str]] = []
        self.fail_with: Exception | None = None

    def seed(self, partition: str, ids: list[str]) -> None:
        bucket = self.tickets.setdefault(partition, {})
        for ticket_id in ids:
            bucket[ticket_id] = TitoTicket(conference_instance=partition, ticket_id=ticket_id)

    def ids(self, partition: str = PARTITION) -> set[str]:
        return set(self.tickets.get(partition, {}))

    async def get_all(self, partition: str) -> list[TitoTicket]:
        return list(self.tickets.get(partition, {}).values())

    async def create_batch(self, partition: str, tickets: list[TitoTicket]) -> int:
        if self.fail_with is not None:
            raise self.fail_with

        bucket = self.tickets.setdefault(partition, {})
        duplicates = [t.ticket_id for t in tickets if t.ticket_id in bucket]
        if duplicates:
            raise PersistenceError(partition, len(tickets), f"duplicate ids {duplicates}")

        for ticket in tickets:
            bucket[ticket.ticket_id] = ticket
        self.batches.append([t.ticket_id for t in tickets])
        return len(tickets)


@pytest.fixture
def metrics_collector() -> MetricsCollector:
    """Fresh metrics collector with its own registry."""
    return MetricsCollector(enabled=True)


@pytest.fixture
def store() -> InMemoryTicketStore:
    return InMemoryTicketStore()


@pytest.fixture
def make_client(metrics_collector: MetricsCollector) -> Callable[..., TitoClient]:
    """Factory for a TitoClient wired to a FakeTitoRemote."""

    def _make(remote: FakeTitoRemote, **kwargs: Any) -> TitoClient:
        kwargs.setdefault("max_retries", 1)
        kwargs.setdefault("retry_backoff", 1.0)
        kwargs.setdefault("timeout", 5.0)
        return TitoClient(
            account_id="dddperth",
            event_id="2026",
            api_key="secret-key",
            base_url=BASE_URL,
            transport=remote.transport(),
            metrics=metrics_collector,
            **kwargs,
        )

    return _make


def pytest_configure(config: pytest.Config) -> None:
    """Configure pytest."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )
