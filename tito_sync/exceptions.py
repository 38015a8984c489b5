"""
Exceptions raised by the sync engine.

RemoteUnavailable and DecodeError are reported by the client inside a
PageResult and end the pagination walk. PersistenceError is raised out of
a run.
"""


class TitoSyncError(Exception):
    """Base class for all sync errors."""


class ConfigurationError(TitoSyncError):
    """Required configuration is missing or invalid."""


class RemoteUnavailable(TitoSyncError):
    """A page could not be fetched (transport error or non-success status)."""

    def __init__(self, page: int, reason: str, status_code: int | None = None):
        self.page = page
        self.reason = reason
        self.status_code = status_code
        super().__init__(f"Page {page} unavailable: {reason}")


class DecodeError(TitoSyncError):
    """A page was fetched but its envelope could not be decoded."""

    def __init__(self, page: int, reason: str):
        self.page = page
        self.reason = reason
        super().__init__(f"Page {page} could not be decoded: {reason}")


class PersistenceError(TitoSyncError):
    """The bulk insert of new tickets failed."""

    def __init__(self, partition: str, count: int, reason: str):
        self.partition = partition
        self.count = count
        self.reason = reason
        super().__init__(
            f"Failed to persist {count} tickets for '{partition}': {reason}"
        )


class IncompleteWalkError(TitoSyncError):
    """The walk stopped early and the run is configured to fail instead of persisting."""

    def __init__(self, stop_reason: str, cause: TitoSyncError | None = None):
        self.stop_reason = stop_reason
        self.cause = cause
        message = f"Pagination stopped before the last page ({stop_reason})"
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)
