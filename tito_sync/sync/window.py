"""Sync window gate consulted by callers before a run."""

from datetime import datetime, timedelta, timezone


def sync_permitted(
    stop_syncing_from: datetime | None,
    grace_minutes: int = 10,
    now: datetime | None = None,
) -> bool:
    """
    Whether a sync run may start.

    Runs are allowed until ``stop_syncing_from`` plus a grace period has
    passed. Naive datetimes are taken as UTC.
    """
    if stop_syncing_from is None:
        return True

    now = _as_utc(now or datetime.now(timezone.utc))
    cutoff = _as_utc(stop_syncing_from) + timedelta(minutes=grace_minutes)
    return now <= cutoff


def _as_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)
