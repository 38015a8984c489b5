"""Delta computation between remote ticket ids and local state."""

from collections.abc import Iterable

from tito_sync.storage import TicketStore


async def read_local_ids(store: TicketStore, partition: str) -> set[str]:
    """All ticket ids already persisted for a conference instance."""
    return {ticket.ticket_id for ticket in await store.get_all(partition)}


def compute_delta(remote_ids: Iterable[str], local_ids: set[str]) -> list[str]:
    """
    Remote ids not present locally, without duplicates.

    Keeps the order in which ids were first seen remotely, so repeated runs
    against the same remote pick the same ids first.
    """
    seen: set[str] = set()
    delta: list[str] = []
    for ticket_id in remote_ids:
        if ticket_id in seen or ticket_id in local_ids:
            continue
        seen.add(ticket_id)
        delta.append(ticket_id)
    return delta


def cap_batch(delta: list[str], limit: int) -> tuple[list[str], list[str]]:
    """Split a delta into the ids written this run and the ids deferred."""
    if limit < 1:
        raise ValueError(f"Batch limit must be positive, got {limit}")
    return delta[:limit], delta[limit:]
