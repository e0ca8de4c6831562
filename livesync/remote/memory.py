"""In-process remote collection source.

Behaves like a hosted document store for a single process: every write is
pushed as a complete, ordered snapshot to every subscriber of the collection,
server timestamps are assigned at write time, and documents missing the
order field are left out of ordered queries. Used for development and tests;
it also supports injecting write failures and subscription errors.
"""

import copy
import threading
import uuid
from collections import deque
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Mapping

import structlog

from livesync.errors import DocumentNotFoundError, RemoteSourceError
from livesync.remote.base import (
    DocumentCallback,
    Direction,
    ErrorCallback,
    RawDocument,
    RemoteCollectionSource,
    SnapshotCallback,
    SubscriptionHandle,
)

log = structlog.stdlib.get_logger()

# Writes kept for inspection; older entries are dropped
WRITE_LOG_SIZE = 1000


class _ServerTimestamp:
    """Sentinel replaced by the write time when a document is stored."""

    def __repr__(self) -> str:
        return "SERVER_TIMESTAMP"


SERVER_TIMESTAMP = _ServerTimestamp()

# Cross-type ordering, lowest first
_TYPE_RANK: dict[type, int] = {type(None): 0, bool: 1, int: 2, float: 2, datetime: 3, str: 4}


class _Subscription(SubscriptionHandle):
    def __init__(
        self,
        source: "InMemoryCollectionSource",
        collection: str,
        on_snapshot: Callable[[Any], None],
        on_error: ErrorCallback,
        order_field: str | None = None,
        direction: Direction = "desc",
        document_id: str | None = None,
    ):
        self.source = source
        self.collection = collection
        self.on_snapshot = on_snapshot
        self.on_error = on_error
        self.order_field = order_field
        self.direction = direction
        self.document_id = document_id
        self.active = True

    def unsubscribe(self) -> None:
        self.source._release(self)


class InMemoryCollectionSource(RemoteCollectionSource):
    """Thread-safe in-memory document store with push delivery."""

    def __init__(
        self,
        clock: Callable[[], datetime] | None = None,
        id_factory: Callable[[], str] | None = None,
        write_log_size: int = WRITE_LOG_SIZE,
    ):
        """
        Initialize the source.

        Args:
            clock: Returns the current time; defaults to UTC wall clock
            id_factory: Generates document ids for add()
            write_log_size: Most recent writes kept in write_log
        """
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._id_factory = id_factory or (lambda: uuid.uuid4().hex[:20])
        self._lock = threading.RLock()
        self._collections: dict[str, dict[str, dict[str, Any]]] = {}
        self._subscriptions: list[_Subscription] = []
        self._failures: list[tuple[str, str | None, Exception]] = []
        self._last_timestamp: datetime | None = None
        self._pending: deque[tuple[_Subscription, Any]] = deque()
        self._dispatching = False
        self.write_log: deque[tuple[str, str, str, dict[str, Any] | None]] = deque(
            maxlen=write_log_size
        )

    # Subscriptions

    def subscribe(
        self,
        collection: str,
        order_field: str,
        direction: Direction,
        on_snapshot: SnapshotCallback,
        on_error: ErrorCallback,
    ) -> SubscriptionHandle:
        if direction not in ("asc", "desc"):
            raise ValueError(f"direction must be 'asc' or 'desc', got {direction!r}")
        with self._lock:
            subscription = _Subscription(
                self, collection, on_snapshot, on_error, order_field=order_field, direction=direction
            )
            self._subscriptions.append(subscription)
            log.debug("memory_subscription_opened", collection=collection, order_field=order_field)
            self._enqueue(subscription)
            self._drain()
        return subscription

    def subscribe_document(
        self,
        collection: str,
        document_id: str,
        on_snapshot: DocumentCallback,
        on_error: ErrorCallback,
    ) -> SubscriptionHandle:
        with self._lock:
            subscription = _Subscription(
                self, collection, on_snapshot, on_error, document_id=document_id
            )
            self._subscriptions.append(subscription)
            self._enqueue(subscription)
            self._drain()
        return subscription

    def _release(self, subscription: _Subscription) -> None:
        with self._lock:
            if not subscription.active:
                return
            subscription.active = False
            self._subscriptions.remove(subscription)
            log.debug("memory_subscription_released", collection=subscription.collection)

    @property
    def subscription_count(self) -> int:
        """Number of open subscriptions."""
        with self._lock:
            return len(self._subscriptions)

    # Writes

    def add(self, collection: str, fields: Mapping[str, Any]) -> str:
        with self._lock:
            self._raise_injected("add", collection)
            document_id = self._id_factory()
            self._documents(collection)[document_id] = self._resolve(fields)
            self.write_log.append(("add", collection, document_id, dict(fields)))
            self._changed(collection, document_id)
        return document_id

    def update(self, collection: str, document_id: str, fields: Mapping[str, Any]) -> None:
        with self._lock:
            self._raise_injected("update", collection)
            documents = self._documents(collection)
            if document_id not in documents:
                raise DocumentNotFoundError(
                    f"No document to update: {collection}/{document_id}",
                    collection=collection,
                    document_id=document_id,
                )
            documents[document_id].update(self._resolve(fields))
            self.write_log.append(("update", collection, document_id, dict(fields)))
            self._changed(collection, document_id)

    def set(self, collection: str, document_id: str, fields: Mapping[str, Any]) -> None:
        with self._lock:
            self._raise_injected("set", collection)
            self._documents(collection)[document_id] = self._resolve(fields)
            self.write_log.append(("set", collection, document_id, dict(fields)))
            self._changed(collection, document_id)

    def delete(self, collection: str, document_id: str) -> None:
        with self._lock:
            self._raise_injected("delete", collection)
            existed = self._documents(collection).pop(document_id, None) is not None
            self.write_log.append(("delete", collection, document_id, None))
            if existed:
                self._changed(collection, document_id)

    def server_timestamp(self) -> Any:
        return SERVER_TIMESTAMP

    # Test and development hooks

    def fail_next(self, operation: str, error: Exception, collection: str | None = None) -> None:
        """Make the next matching write raise ``error`` instead of applying.

        Args:
            operation: One of add, update, set, delete
            error: Exception to raise
            collection: Restrict to one collection; None matches any
        """
        with self._lock:
            self._failures.append((operation, collection, error))

    def emit_error(self, collection: str, error: Exception) -> None:
        """Deliver a subscription error to every subscriber of a collection."""
        with self._lock:
            targets = [s for s in self._subscriptions if s.collection == collection]
        for subscription in targets:
            subscription.on_error(error)

    def push(self, collection: str) -> None:
        """Re-deliver the current snapshot to every subscriber of a collection."""
        with self._lock:
            self._changed(collection, None)

    def documents(self, collection: str) -> dict[str, dict[str, Any]]:
        """Return a copy of the stored documents of a collection keyed by id."""
        with self._lock:
            return copy.deepcopy(self._collections.get(collection, {}))

    # Internals

    def _documents(self, collection: str) -> dict[str, dict[str, Any]]:
        return self._collections.setdefault(collection, {})

    def _raise_injected(self, operation: str, collection: str) -> None:
        for index, (op, target, error) in enumerate(self._failures):
            if op == operation and target in (None, collection):
                del self._failures[index]
                log.debug("memory_injected_failure", operation=operation, collection=collection)
                raise error

    def _next_timestamp(self) -> datetime:
        now = self._clock()
        if self._last_timestamp is not None and now <= self._last_timestamp:
            now = self._last_timestamp + timedelta(microseconds=1)
        self._last_timestamp = now
        return now

    def _resolve(self, fields: Mapping[str, Any]) -> dict[str, Any]:
        if not isinstance(fields, Mapping):
            raise RemoteSourceError(f"Document fields must be a mapping, got {type(fields).__name__}")
        timestamp: datetime | None = None
        resolved: dict[str, Any] = {}
        for key, value in fields.items():
            if value is SERVER_TIMESTAMP:
                # One write time per write, like a server commit
                if timestamp is None:
                    timestamp = self._next_timestamp()
                value = timestamp
            resolved[key] = copy.deepcopy(value)
        return resolved

    def _changed(self, collection: str, document_id: str | None) -> None:
        for subscription in self._subscriptions:
            if subscription.collection != collection:
                continue
            if subscription.document_id is not None and document_id not in (
                None,
                subscription.document_id,
            ):
                continue
            self._enqueue(subscription)
        self._drain()

    def _enqueue(self, subscription: _Subscription) -> None:
        if subscription.document_id is not None:
            stored = self._documents(subscription.collection).get(subscription.document_id)
            payload = (
                RawDocument(id=subscription.document_id, fields=copy.deepcopy(stored))
                if stored is not None
                else None
            )
        else:
            payload = self._query(subscription)
        self._pending.append((subscription, payload))

    def _drain(self) -> None:
        # Writes issued from inside a callback queue behind the current push
        if self._dispatching:
            return
        self._dispatching = True
        try:
            while self._pending:
                subscription, payload = self._pending.popleft()
                if subscription.active:
                    subscription.on_snapshot(payload)
        finally:
            self._dispatching = False

    def _query(self, subscription: _Subscription) -> list[RawDocument]:
        order_field = subscription.order_field
        rows = [
            (document_id, data)
            for document_id, data in self._documents(subscription.collection).items()
            if order_field in data
        ]
        rows.sort(
            key=lambda row: (_sort_key(row[1][order_field]), row[0]),
            reverse=subscription.direction == "desc",
        )
        return [RawDocument(id=document_id, fields=copy.deepcopy(data)) for document_id, data in rows]


def _sort_key(value: Any) -> tuple[int, Any]:
    rank = _TYPE_RANK.get(type(value))
    if rank is None:
        return (9, repr(value))
    if rank == 0:
        return (0, 0)
    return (rank, value)
