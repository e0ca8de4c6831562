"""Exception types raised by the synchronization layer."""


class LiveSyncError(Exception):
    """Base class for synchronization errors."""


class RemoteSourceError(LiveSyncError):
    """Raised when the remote collection source rejects or fails an operation."""

    def __init__(self, message: str, collection: str | None = None, document_id: str | None = None):
        super().__init__(message)
        self.collection = collection
        self.document_id = document_id


class TransientRemoteError(RemoteSourceError):
    """A failure that may succeed if the same operation is issued again."""


class PermissionDeniedError(RemoteSourceError):
    """The remote source refused the operation for the current identity."""


class DocumentNotFoundError(RemoteSourceError):
    """A partial update targeted a document that does not exist."""


class EntityValidationError(ValueError):
    """Raised by caller-side checks before any remote call is issued."""

    def __init__(self, field: str, message: str):
        super().__init__(message)
        self.field = field
        self.message = message


class StoreLifecycleError(RuntimeError):
    """Raised when a store is activated more than once."""
