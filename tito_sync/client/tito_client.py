"""
Tito HTTP Client

Fetches single pages of the registrations endpoint.

Features:
- Async HTTP via httpx.AsyncClient
- Per-request timeout
- Exponential backoff retry for transient failures (5xx, 429, transport)
- Errors reported in the result, never raised to the caller
- Prometheus metrics
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any

import httpx
from pydantic import ValidationError

from tito_sync.client.schemas import PageMeta, Ticket, TicketsPage
from tito_sync.config import settings
from tito_sync.exceptions import DecodeError, RemoteUnavailable, TitoSyncError
from tito_sync.metrics import MetricsCollector
from tito_sync.metrics import metrics as default_metrics

logger = logging.getLogger(__name__)


@dataclass
class PageResult:
    """Result of fetching one page."""

    page: int
    tickets: list[Ticket] = field(default_factory=list)
    meta: PageMeta | None = None
    status_code: int = 0
    error: TitoSyncError | None = None
    fetch_time: float = 0.0

    @property
    def ok(self) -> bool:
        return self.error is None and self.meta is not None


@dataclass
class ClientStats:
    """Statistics for the client's lifetime."""

    http_requests: int = 0
    retries: int = 0
    errors: int = 0
    http_time: float = 0.0

    def __str__(self) -> str:
        return (
            f"HTTP Requests: {self.http_requests} | "
            f"Retries: {self.retries} | "
            f"Errors: {self.errors} | "
            f"HTTP Time: {self.http_time:.1f}s"
        )


class TitoClient:
    """
    Async HTTP client for the Tito registrations endpoint.

    Account, event and API key are passed in explicitly; nothing about a
    run is kept in module state.
    """

    def __init__(
        self,
        account_id: str,
        event_id: str,
        api_key: str,
        base_url: str | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
        retry_backoff: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        metrics: MetricsCollector | None = None,
    ) -> None:
        self.account_id = account_id
        self.event_id = event_id
        self.api_key = api_key
        self.base_url = (base_url or settings.tito_base_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.tito_request_timeout
        self.max_retries = max(1, max_retries if max_retries is not None else settings.tito_max_retries)
        self.retry_backoff = retry_backoff if retry_backoff is not None else settings.tito_retry_backoff
        self.metrics = metrics or default_metrics

        self._transport = transport
        self._client: httpx.AsyncClient | None = None

        self.stats = ClientStats()

    async def __aenter__(self) -> "TitoClient":
        """Async context manager entry."""
        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(self.timeout),
            headers={
                "Accept": "application/json",
                "Authorization": f"Token token={self.api_key}",
                "User-Agent": "tito-sync/1.0",
            },
            transport=self._transport,
            follow_redirects=True,
        )
        self.stats = ClientStats()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Async context manager exit."""
        if self._client:
            await self._client.aclose()
            self._client = None

    def registrations_url(self) -> str:
        return f"{self.base_url}/{self.account_id}/{self.event_id}/registrations"

    async def fetch_page(self, page: int = 1) -> PageResult:
        """
        Fetch and decode one page of registrations.

        Args:
            page: 1-based page number

        Returns:
            PageResult with tickets and meta, or with error set to
            RemoteUnavailable / DecodeError
        """
        if not self._client:
            raise RuntimeError("Client not initialized. Use 'async with' context manager.")

        last_error: RemoteUnavailable | None = None

        for attempt in range(self.max_retries):
            try:
                response = await self._do_fetch(page)
            except httpx.TimeoutException as e:
                last_error = RemoteUnavailable(page, f"timeout: {e}")
                self.metrics.record_http_error("timeout")
            except httpx.RequestError as e:
                last_error = RemoteUnavailable(page, f"request error: {e}")
                self.metrics.record_http_error("request_error")
            else:
                status = response.status_code
                if response.is_success:
                    return self._decode(page, response)

                last_error = RemoteUnavailable(
                    page, f"HTTP {status}: {response.text[:200]}", status_code=status
                )
                self.metrics.record_http_error(f"http_{status}")
                if status != 429 and status < 500:
                    break

            # Exponential backoff
            if attempt < self.max_retries - 1:
                self.stats.retries += 1
                await asyncio.sleep(self.retry_backoff ** attempt)

        assert last_error is not None
        self.stats.errors += 1
        logger.error("Error connecting to Tito: %s", last_error)
        return PageResult(
            page=page,
            status_code=last_error.status_code or 0,
            error=last_error,
        )

    async def _do_fetch(self, page: int) -> httpx.Response:
        """Perform the actual HTTP request with metrics."""
        assert self._client is not None

        start = time.time()
        response = await self._client.get(self.registrations_url(), params={"page": page})
        fetch_time = time.time() - start

        self.stats.http_requests += 1
        self.stats.http_time += fetch_time
        self.metrics.record_http_request(status=response.status_code, duration=fetch_time)
        return response

    def _decode(self, page: int, response: httpx.Response) -> PageResult:
        try:
            decoded = TicketsPage.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            error = DecodeError(page, str(e).splitlines()[0])
            self.stats.errors += 1
            self.metrics.record_http_error("decode")
            logger.error("Error reading Tito response: %s", error)
            return PageResult(page=page, status_code=response.status_code, error=error)

        self.metrics.record_page_fetched()
        return PageResult(
            page=page,
            tickets=decoded.tickets,
            meta=decoded.meta,
            status_code=response.status_code,
        )
