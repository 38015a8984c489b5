"""Incremental synchronization of Tito registrations into a local ticket store."""

__version__ = "1.0.0"
