"""
Custom exceptions for StreamTrack operations.

Storage failures at construction time (open, schema bootstrap, legacy file
migration) are fatal and surface as StoreInitError. Everything raised later
by the store is a StorageError the caller may log and skip.
"""


class StreamTrackError(Exception):
    """Base exception for all StreamTrack errors."""

    pass


class ValidationError(StreamTrackError):
    """Raised when caller input cannot be stored."""

    pass


class StorageError(StreamTrackError):
    """Raised when a database operation fails."""

    pass


class StoreInitError(StorageError):
    """Raised when the database file cannot be opened or its schema created."""

    pass


class MigrationError(StoreInitError):
    """Raised when the legacy database file cannot be renamed."""

    pass


class ScheduleFetchError(StreamTrackError):
    """Raised by schedule fetchers when the upstream request failed and should be retried."""

    pass
