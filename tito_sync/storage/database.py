"""
Ticket Storage

Async database operations for locally persisted tickets.
Uses PostgreSQL (asyncpg) in production; any SQLAlchemy async driver works.
"""

import logging
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from tito_sync.config import settings
from tito_sync.exceptions import PersistenceError
from tito_sync.storage.models import Base, TitoTicket

logger = logging.getLogger(__name__)


class DatabaseStorage:
    """
    Async storage for Tito tickets.

    Features:
    - Async SQLAlchemy with asyncpg driver
    - All-or-nothing batch inserts (one transaction per batch)
    - Reads scoped to one conference instance
    """

    def __init__(self, database_url: str | None = None) -> None:
        """
        Initialize database storage.

        Args:
            database_url: Database connection URL. Defaults to settings.
        """
        self.database_url = database_url or settings.database_url

        engine_kwargs: dict[str, Any] = {"echo": False}
        if not self.database_url.startswith("sqlite"):
            engine_kwargs.update(pool_size=5, max_overflow=10, pool_pre_ping=True)

        self._engine = create_async_engine(self.database_url, **engine_kwargs)
        self._session_factory = async_sessionmaker(
            self._engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    async def initialize(self) -> None:
        """Create the tickets table if it does not exist."""
        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def close(self) -> None:
        """Close the database connection."""
        await self._engine.dispose()

    async def __aenter__(self) -> "DatabaseStorage":
        """Async context manager entry."""
        await self.initialize()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Async context manager exit."""
        await self.close()

    def get_session(self) -> AsyncSession:
        """Get a new database session."""
        return self._session_factory()

    # ========== Ticket Operations ==========

    async def get_all(self, partition: str) -> list[TitoTicket]:
        """Get all tickets stored for a conference instance."""
        async with self.get_session() as session:
            result = await session.execute(
                select(TitoTicket).where(TitoTicket.conference_instance == partition)
            )
            return list(result.scalars().all())

    async def get_ticket_ids(self, partition: str) -> set[str]:
        """Get only the ticket ids stored for a conference instance."""
        async with self.get_session() as session:
            result = await session.execute(
                select(TitoTicket.ticket_id).where(
                    TitoTicket.conference_instance == partition
                )
            )
            return set(result.scalars().all())

    async def count(self, partition: str) -> int:
        async with self.get_session() as session:
            result = await session.execute(
                select(func.count())
                .select_from(TitoTicket)
                .where(TitoTicket.conference_instance == partition)
            )
            return result.scalar_one()

    async def create_batch(self, partition: str, tickets: list[TitoTicket]) -> int:
        """
        Insert a batch of tickets in a single transaction.

        Args:
            partition: Conference instance the tickets belong to
            tickets: New tickets; all must carry the same conference instance

        Returns:
            Number of tickets inserted

        Raises:
            PersistenceError: If the insert fails. Nothing is committed.
        """
        if not tickets:
            return 0

        mismatched = [t.ticket_id for t in tickets if t.conference_instance != partition]
        if mismatched:
            raise PersistenceError(
                partition,
                len(tickets),
                f"tickets tagged with another conference instance: {mismatched[:5]}",
            )

        try:
            async with self.get_session() as session:
                async with session.begin():
                    session.add_all(tickets)
        except (SQLAlchemyError, OSError) as e:
            logger.error("Batch insert of %d tickets failed: %s", len(tickets), e)
            raise PersistenceError(partition, len(tickets), str(e)) from e

        return len(tickets)
