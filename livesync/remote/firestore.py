"""Cloud Firestore implementation of the remote collection source."""

import threading
from typing import Any, Callable, Mapping, TypeVar

import structlog
from google.api_core import exceptions as api_exceptions
from google.cloud import firestore

from livesync.errors import (
    DocumentNotFoundError,
    PermissionDeniedError,
    RemoteSourceError,
    TransientRemoteError,
)
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

T = TypeVar("T")

_TRANSIENT = (
    api_exceptions.ServiceUnavailable,
    api_exceptions.DeadlineExceeded,
    api_exceptions.Aborted,
    api_exceptions.TooManyRequests,
    api_exceptions.InternalServerError,
)


def translate_error(
    error: Exception, collection: str | None = None, document_id: str | None = None
) -> RemoteSourceError:
    """Map a google.api_core exception onto the RemoteSourceError hierarchy."""
    message = f"{type(error).__name__}: {error}"
    if isinstance(error, api_exceptions.NotFound):
        return DocumentNotFoundError(message, collection=collection, document_id=document_id)
    if isinstance(error, (api_exceptions.PermissionDenied, api_exceptions.Unauthenticated)):
        return PermissionDeniedError(message, collection=collection, document_id=document_id)
    if isinstance(error, _TRANSIENT):
        return TransientRemoteError(message, collection=collection, document_id=document_id)
    return RemoteSourceError(message, collection=collection, document_id=document_id)


class _WatchHandle(SubscriptionHandle):
    """Wraps a Firestore Watch: idempotent unsubscribe() and stream failure reporting.

    A Watch takes no error callback. When its listen stream ends without
    recovery (permission denied, network loss) the RPC finalizes with the
    error and the watch shuts itself down on a background thread. The handle
    listens for that finalization and forwards the translated error to
    ``on_error``. A deliberate close finalizes with None and is not reported.
    """

    def __init__(
        self,
        watch: Any,
        collection: str,
        on_error: ErrorCallback,
        document_id: str | None = None,
    ):
        self._watch = watch
        self._collection = collection
        self._document_id = document_id
        self._on_error = on_error
        self._lock = threading.Lock()
        self._closed = False
        self._failed = False
        self._watch_rpc_termination()

    def unsubscribe(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
        self._watch.unsubscribe()
        log.debug("firestore_watch_closed", collection=self._collection)

    def _watch_rpc_termination(self) -> None:
        rpc = getattr(self._watch, "_rpc", None)
        on_rpc_done = getattr(self._watch, "_on_rpc_done", None)
        if rpc is None or on_rpc_done is None:
            log.warning("firestore_watch_failures_unreported", collection=self._collection)
            return

        # The current stream is already open; restarted streams register
        # the watch's _on_rpc_done, so that is wrapped too.
        rpc.add_done_callback(self._rpc_done)

        def chained(result: Any) -> None:
            on_rpc_done(result)
            self._rpc_done(result)

        self._watch._on_rpc_done = chained

    def _rpc_done(self, result: Any) -> None:
        if result is None:
            return
        with self._lock:
            if self._closed or self._failed:
                return
            self._failed = True

        if isinstance(result, api_exceptions.GoogleAPICallError):
            cause = result
        elif isinstance(result, Exception):
            cause = api_exceptions.from_grpc_error(result)
        else:
            cause = RemoteSourceError(f"Watch stream ended: {result!r}")
        error = translate_error(cause, self._collection, self._document_id)

        log.error(
            "firestore_watch_failed",
            collection=self._collection,
            document_id=self._document_id,
            error=str(error),
            error_type=type(error).__name__,
        )
        self._on_error(error)


class FirestoreCollectionSource(RemoteCollectionSource):
    """Remote collection source backed by google-cloud-firestore.

    Snapshot callbacks run on the client's watch thread, so stores receiving
    them must be safe to call from a thread other than the writer's.
    """

    def __init__(self, client: firestore.Client):
        """
        Initialize the source.

        Args:
            client: Configured Firestore client
        """
        self._client = client
        log.info("firestore_source_initialized", project=client.project)

    @classmethod
    def from_settings(
        cls,
        project_id: str | None = None,
        credentials_path: str | None = None,
        database: str | None = None,
    ) -> "FirestoreCollectionSource":
        """Build a client from project settings, falling back to ambient credentials."""
        kwargs: dict[str, Any] = {}
        if project_id:
            kwargs["project"] = project_id
        if database:
            kwargs["database"] = database
        if credentials_path:
            client = firestore.Client.from_service_account_json(credentials_path, **kwargs)
        else:
            client = firestore.Client(**kwargs)
        return cls(client)

    def subscribe(
        self,
        collection: str,
        order_field: str,
        direction: Direction,
        on_snapshot: SnapshotCallback,
        on_error: ErrorCallback,
    ) -> SubscriptionHandle:
        firestore_direction = (
            firestore.Query.DESCENDING if direction == "desc" else firestore.Query.ASCENDING
        )
        query = self._client.collection(collection).order_by(
            order_field, direction=firestore_direction
        )

        def callback(doc_snapshots: list[Any], changes: Any, read_time: Any) -> None:
            try:
                documents = [
                    RawDocument(id=snapshot.id, fields=snapshot.to_dict() or {})
                    for snapshot in doc_snapshots
                ]
            except Exception as e:
                on_error(translate_error(e, collection))
                return
            on_snapshot(documents)

        try:
            watch = query.on_snapshot(callback)
        except api_exceptions.GoogleAPICallError as e:
            raise translate_error(e, collection) from e

        log.info("firestore_watch_opened", collection=collection, order_field=order_field)
        return _WatchHandle(watch, collection, on_error)

    def subscribe_document(
        self,
        collection: str,
        document_id: str,
        on_snapshot: DocumentCallback,
        on_error: ErrorCallback,
    ) -> SubscriptionHandle:
        reference = self._client.collection(collection).document(document_id)

        def callback(doc_snapshots: list[Any], changes: Any, read_time: Any) -> None:
            try:
                snapshot = doc_snapshots[0] if doc_snapshots else None
                if snapshot is None or not snapshot.exists:
                    document = None
                else:
                    document = RawDocument(id=snapshot.id, fields=snapshot.to_dict() or {})
            except Exception as e:
                on_error(translate_error(e, collection, document_id))
                return
            on_snapshot(document)

        try:
            watch = reference.on_snapshot(callback)
        except api_exceptions.GoogleAPICallError as e:
            raise translate_error(e, collection, document_id) from e

        return _WatchHandle(watch, collection, on_error, document_id=document_id)

    def add(self, collection: str, fields: Mapping[str, Any]) -> str:
        _, reference = self._call(
            lambda: self._client.collection(collection).add(dict(fields)), collection
        )
        return reference.id

    def update(self, collection: str, document_id: str, fields: Mapping[str, Any]) -> None:
        reference = self._client.collection(collection).document(document_id)
        self._call(lambda: reference.update(dict(fields)), collection, document_id)

    def set(self, collection: str, document_id: str, fields: Mapping[str, Any]) -> None:
        reference = self._client.collection(collection).document(document_id)
        self._call(lambda: reference.set(dict(fields)), collection, document_id)

    def delete(self, collection: str, document_id: str) -> None:
        reference = self._client.collection(collection).document(document_id)
        self._call(reference.delete, collection, document_id)

    def server_timestamp(self) -> Any:
        return firestore.SERVER_TIMESTAMP

    def _call(
        self, operation: Callable[[], T], collection: str, document_id: str | None = None
    ) -> T:
        try:
            return operation()
        except api_exceptions.GoogleAPICallError as e:
            raise translate_error(e, collection, document_id) from e
