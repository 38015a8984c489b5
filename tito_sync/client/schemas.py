"""
Tito Pydantic Schemas

Decoding schemas for the paginated registrations endpoint.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Ticket(BaseModel):
    """A remote ticket. Only the identifier matters for sync."""

    model_config = ConfigDict(extra="ignore")

    id: str

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> Any:
        # Tito returns numeric ids on some endpoints
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value


class PageMeta(BaseModel):
    """Pagination metadata wrapped around a page of tickets."""

    model_config = ConfigDict(extra="ignore")

    current_page: int
    next_page: int | None = None
    total_pages: int = 0

    @property
    def has_more(self) -> bool:
        """True while the remote reports pages after this one."""
        return self.next_page is not None or self.current_page < self.total_pages

    @property
    def following_page(self) -> int:
        """Page to request next, falling back to current + 1."""
        if self.next_page is not None:
            return self.next_page
        return self.current_page + 1


class TicketsPage(BaseModel):
    """One page of the registrations endpoint."""

    model_config = ConfigDict(extra="ignore")

    meta: PageMeta
    tickets: list[Ticket] = Field(default_factory=list)

    @field_validator("tickets", mode="before")
    @classmethod
    def _null_tickets(cls, value: Any) -> Any:
        return [] if value is None else value
