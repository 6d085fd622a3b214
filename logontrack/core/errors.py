class LogonTrackError(Exception):
    """Base class for failures the HTTP layer turns into a response."""


class StorageError(LogonTrackError):
    """Read/write I/O or constraint failure in the event store."""


class CorrelationError(LogonTrackError):
    """A session lookup failed; the underlying StorageError is the __cause__."""
