"""Exceptions raised inside the MySideline sync pipeline."""


class SyncError(Exception):
    """Base class for sync pipeline errors."""


class ItemValidationError(SyncError, ValueError):
    """An API item lacks a required field."""


class DuplicateExternalIdError(SyncError):
    """More than one carnival shares a MySideline ID."""

    def __init__(self, my_sideline_id: str, count: int):
        super().__init__(
            f"Found {count} carnivals with mySidelineId {my_sideline_id}"
        )
        self.my_sideline_id = my_sideline_id
        self.count = count


class DownloadRejected(SyncError):
    """A logo download failed one of its guards."""

    def __init__(self, message: str, retryable: bool = True):
        super().__init__(message)
        self.retryable = retryable


class SyncLogStateError(SyncError):
    """A sync log was moved out of a terminal state."""
