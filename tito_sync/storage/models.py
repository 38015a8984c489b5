"""
Database Models

SQLAlchemy models for locally persisted Tito tickets.
"""

from datetime import datetime

from sqlalchemy import DateTime, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all models."""

    pass


class TitoTicket(Base):
    """A ticket seen on Tito, stored once per conference instance."""

    __tablename__ = "tito_tickets"

    conference_instance: Mapped[str] = mapped_column(String(100), primary_key=True)
    ticket_id: Mapped[str] = mapped_column(String(255), primary_key=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    def __repr__(self) -> str:
        return f"TitoTicket({self.conference_instance!r}, {self.ticket_id!r})"
