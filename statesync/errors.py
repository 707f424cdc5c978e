"""Exceptions raised by the sync engine."""


class SyncError(Exception):
    """Base class for sync cycle failures."""

    pass


class FetchError(SyncError):
    """Raised when the remote state cannot be retrieved."""

    pass


class UploadError(SyncError):
    """Raised when a diff cannot be delivered to the remote store."""

    pass


class MergeError(SyncError):
    """Raised when merge inputs are malformed."""

    pass
