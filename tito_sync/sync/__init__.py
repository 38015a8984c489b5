"""Sync module - incremental Tito synchronization."""

from tito_sync.sync.delta import cap_batch, compute_delta, read_local_ids
from tito_sync.sync.orchestrator import SyncOrchestrator, SyncResult
from tito_sync.sync.persister import BatchPersister
from tito_sync.sync.walker import PaginationWalker, StopReason, WalkStats
from tito_sync.sync.window import sync_permitted

__all__ = [
    "BatchPersister",
    "PaginationWalker",
    "StopReason",
    "SyncOrchestrator",
    "SyncResult",
    "WalkStats",
    "cap_batch",
    "compute_delta",
    "read_local_ids",
    "sync_permitted",
]
