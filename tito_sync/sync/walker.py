"""
Pagination Walker

Drives the Tito client across all registration pages and collects every
ticket id seen, in page-arrival order.

A failed page (RemoteUnavailable or DecodeError) ends the walk: the ids
collected so far are returned and the error is kept on the stats. The next
scheduled run starts again from page 1.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from enum import Enum

from tito_sync.client.tito_client import PageResult, TitoClient
from tito_sync.config import settings
from tito_sync.exceptions import RemoteUnavailable, TitoSyncError

logger = logging.getLogger(__name__)


class StopReason(str, Enum):
    """Why a walk ended."""

    EXHAUSTED = "exhausted"
    PAGE_ERROR = "page_error"
    MAX_PAGES = "max_pages"
    REPEATED_PAGE = "repeated_page"
    DEADLINE = "deadline"


@dataclass
class WalkStats:
    """Statistics for one walk."""

    pages_fetched: int = 0
    ids_collected: int = 0
    stop_reason: StopReason | None = None
    last_page: int | None = None
    error: TitoSyncError | None = None
    started_at: float = field(default_factory=time.time)

    @property
    def completed(self) -> bool:
        """True when the remote reported no further pages."""
        return self.stop_reason == StopReason.EXHAUSTED

    def __str__(self) -> str:
        elapsed = time.time() - self.started_at
        reason = self.stop_reason.value if self.stop_reason else "-"
        return (
            f"Pages: {self.pages_fetched} | "
            f"Tickets: {self.ids_collected} | "
            f"Stopped: {reason} | "
            f"Total: {elapsed:.1f}s"
        )


class PaginationWalker:
    """Walks every page the remote reports, one request at a time."""

    def __init__(
        self,
        client: TitoClient,
        max_pages: int | None = None,
        deadline_seconds: float | None = None,
    ) -> None:
        """
        Args:
            client: An entered TitoClient
            max_pages: Upper bound on page requests per walk
            deadline_seconds: Wall-clock budget for the whole walk (None = unbounded)
        """
        self.client = client
        self.max_pages = max_pages if max_pages is not None else settings.tito_max_pages
        self.deadline_seconds = deadline_seconds
        self.stats = WalkStats()

    async def walk_all(self) -> list[str]:
        """Fetch pages starting at 1 until the remote is exhausted or a stop condition hits."""
        self.stats = WalkStats()
        loop = asyncio.get_running_loop()
        deadline = (
            loop.time() + self.deadline_seconds if self.deadline_seconds is not None else None
        )

        ids: list[str] = []
        requested: set[int] = set()
        page = 1

        while True:
            if len(requested) >= self.max_pages:
                logger.warning("Stopping after %d pages (max_pages guard)", self.max_pages)
                self._stop(StopReason.MAX_PAGES)
                break

            if page in requested:
                logger.warning("Remote asked for page %d again, stopping walk", page)
                self._stop(StopReason.REPEATED_PAGE)
                break

            requested.add(page)
            result = await self._fetch(page, deadline, loop)
            if result is None:
                break

            self.stats.last_page = page
            if result.error is not None or result.meta is None:
                self._stop(StopReason.PAGE_ERROR, result.error)
                break

            self.stats.pages_fetched += 1
            if result.tickets:
                ids.extend(ticket.id for ticket in result.tickets)
                self.stats.ids_collected = len(ids)
                logger.info("Retrieved %d tickets from Tito (page %d).", len(result.tickets), page)

            if not result.meta.has_more:
                self._stop(StopReason.EXHAUSTED)
                break

            page = result.meta.following_page

        return ids

    async def _fetch(
        self,
        page: int,
        deadline: float | None,
        loop: asyncio.AbstractEventLoop,
    ) -> PageResult | None:
        if deadline is None:
            return await self.client.fetch_page(page)

        remaining = deadline - loop.time()
        if remaining <= 0:
            logger.error("Run deadline reached before page %d", page)
            self._stop(StopReason.DEADLINE, RemoteUnavailable(page, "run deadline exceeded"))
            return None

        try:
            return await asyncio.wait_for(self.client.fetch_page(page), timeout=remaining)
        except asyncio.TimeoutError:
            logger.error("Run deadline reached while fetching page %d", page)
            self._stop(StopReason.DEADLINE, RemoteUnavailable(page, "run deadline exceeded"))
            return None

    def _stop(self, reason: StopReason, error: TitoSyncError | None = None) -> None:
        self.stats.stop_reason = reason
        self.stats.error = error
