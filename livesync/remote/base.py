"""Remote collection source interface.

A remote collection source is a hosted, multi-writer document store that
pushes complete ordered snapshots of a collection to every subscriber.
Ordering, consistency, and conflict resolution are whatever the source
provides natively; nothing in this package adds to them.
"""

from abc import ABC, abstractmethod
from typing import Any, Callable, Literal, Mapping

from pydantic import BaseModel, ConfigDict, Field

Direction = Literal["asc", "desc"]


class RawDocument(BaseModel):
    """A document as delivered by one push: an id plus its field mapping."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default=..., description="Source-assigned document id")
    fields: dict[str, Any] = Field(default_factory=dict, description="Field name to value")


SnapshotCallback = Callable[[list[RawDocument]], None]
DocumentCallback = Callable[[RawDocument | None], None]
ErrorCallback = Callable[[Exception], None]


class SubscriptionHandle(ABC):
    """Handle for one open subscription."""

    @abstractmethod
    def unsubscribe(self) -> None:
        """Stop push delivery. Calling it more than once has no effect."""
        pass


class RemoteCollectionSource(ABC):
    """Abstract interface for a push-based document store.

    This interface defines the contract that live stores consume, enabling
    pluggable backends (an in-process store for tests, Cloud Firestore in
    production).
    """

    @abstractmethod
    def subscribe(
        self,
        collection: str,
        order_field: str,
        direction: Direction,
        on_snapshot: SnapshotCallback,
        on_error: ErrorCallback,
    ) -> SubscriptionHandle:
        """Open a live query over a collection.

        ``on_snapshot`` receives the complete, ordered membership of the
        collection on every change, starting with the current state.
        ``on_error`` receives transport or permission failures.

        Args:
            collection: Collection name
            order_field: Field the snapshot is ordered by
            direction: "asc" or "desc"
            on_snapshot: Called with every complete snapshot
            on_error: Called when the subscription fails

        Returns:
            Handle that releases the subscription
        """
        pass

    @abstractmethod
    def subscribe_document(
        self,
        collection: str,
        document_id: str,
        on_snapshot: DocumentCallback,
        on_error: ErrorCallback,
    ) -> SubscriptionHandle:
        """Open a live query over a single document.

        ``on_snapshot`` receives the document, or None while it does not exist.
        """
        pass

    @abstractmethod
    def add(self, collection: str, fields: Mapping[str, Any]) -> str:
        """Create a document with a source-assigned id and return the id.

        Raises:
            RemoteSourceError: If the write fails
        """
        pass

    @abstractmethod
    def update(self, collection: str, document_id: str, fields: Mapping[str, Any]) -> None:
        """Replace the given fields of an existing document.

        Raises:
            DocumentNotFoundError: If the document does not exist
            RemoteSourceError: If the write fails
        """
        pass

    @abstractmethod
    def set(self, collection: str, document_id: str, fields: Mapping[str, Any]) -> None:
        """Create or overwrite a document under a known id."""
        pass

    @abstractmethod
    def delete(self, collection: str, document_id: str) -> None:
        """Remove a document. Removing a missing document succeeds."""
        pass

    @abstractmethod
    def server_timestamp(self) -> Any:
        """Return the sentinel the source replaces with its own write time."""
        pass

    def close(self) -> None:
        """Release client resources."""
        return None
