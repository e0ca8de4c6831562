"""Live collection store: keeps an in-memory snapshot in step with a remote collection.

A store owns exactly one subscription for its lifetime. Every push from the
source replaces the whole snapshot; writes go straight to the source and are
never applied locally, so a writer sees its own change only once the source
pushes it back. Callers must not assume a write is visible in ``items`` when
the write call returns.
"""

import threading
from abc import ABC, abstractmethod
from typing import Any, Callable, Generic, Iterable, Mapping, TypeVar

import structlog

from livesync.errors import EntityValidationError, StoreLifecycleError, TransientRemoteError
from livesync.models.config import SyncConfig
from livesync.models.entities import BaseEntity
from livesync.remote.base import (
    ErrorCallback,
    RawDocument,
    RemoteCollectionSource,
    SubscriptionHandle,
)
from livesync.sync.collections import CREATED_AT, UPDATED_AT, CollectionDefinition
from livesync.sync.models import StoreState
from livesync.sync.normalizer import normalize_documents
from livesync.utils.retry import exponential_backoff_retry

log = structlog.stdlib.get_logger()

EntityT = TypeVar("EntityT", bound=BaseEntity)
T = TypeVar("T")

Listener = Callable[[Any], None]


class LiveStoreBase(ABC):
    """Subscription lifecycle shared by collection and document stores.

    States move ``UNINITIALIZED -> SUBSCRIBING -> SYNCED <-> SYNCED_ERROR`` and
    end in ``UNSUBSCRIBED``. Subscription failures are logged and leave the
    last snapshot in place; they are never raised.
    """

    def __init__(self, source: RemoteCollectionSource, name: str, config: SyncConfig | None = None):
        self._source = source
        self._name = name
        self._config = config or SyncConfig()
        self._lock = threading.RLock()
        self._state = StoreState.UNINITIALIZED
        self._loading = True
        self._error: Exception | None = None
        self._handle: SubscriptionHandle | None = None
        self._listeners: list[Listener] = []

    @property
    def name(self) -> str:
        return self._name

    @property
    def state(self) -> StoreState:
        return self._state

    @property
    def loading(self) -> bool:
        """True until the first push or subscription error."""
        return self._loading

    @property
    def error(self) -> Exception | None:
        """Last subscription error, cleared by the next successful push."""
        return self._error

    def activate(self) -> None:
        """Open the subscription.

        Raises:
            StoreLifecycleError: If the store was already activated
        """
        with self._lock:
            if self._state is not StoreState.UNINITIALIZED:
                raise StoreLifecycleError(
                    f"Store '{self._name}' cannot be activated from state {self._state.value}"
                )
            self._state = StoreState.SUBSCRIBING

        log.info("store_activating", collection=self._name)

        try:
            handle = self._open(self._handle_error)
        except Exception as e:
            self._handle_error(e)
            return

        with self._lock:
            closed = self._state is StoreState.UNSUBSCRIBED
            if not closed:
                self._handle = handle

        if closed:
            # Deactivated while the subscription was opening
            handle.unsubscribe()

    def deactivate(self) -> None:
        """Release the subscription. No push is applied afterwards.

        Safe to call more than once and before activation.
        """
        with self._lock:
            if self._state is StoreState.UNSUBSCRIBED:
                return
            self._state = StoreState.UNSUBSCRIBED
            handle, self._handle = self._handle, None

        if handle is not None:
            try:
                handle.unsubscribe()
            except Exception as e:
                log.warning("store_unsubscribe_failed", collection=self._name, error=str(e))

        log.info("store_deactivated", collection=self._name)

    def __enter__(self):
        self.activate()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.deactivate()

    def add_listener(self, listener: Listener) -> Callable[[], None]:
        """Register a callback run with the store after every state change.

        Listeners run outside the store lock, on whichever thread delivered
        the push. A listener that raises is logged and skipped.

        Returns:
            Function that removes the listener
        """
        with self._lock:
            self._listeners.append(listener)

        def remove() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return remove

    @abstractmethod
    def _open(self, on_error: ErrorCallback) -> SubscriptionHandle:
        """Open the subscription that feeds this store."""
        pass

    def _apply(self, commit: Callable[[], None]) -> bool:
        """Run ``commit`` under the lock unless the store is torn down."""
        with self._lock:
            if self._state is StoreState.UNSUBSCRIBED:
                log.debug("store_push_discarded", collection=self._name)
                return False
            commit()
            self._error = None
            self._loading = False
            self._state = StoreState.SYNCED
        self._notify()
        return True

    def _handle_error(self, error: Exception) -> None:
        with self._lock:
            if self._state is StoreState.UNSUBSCRIBED:
                return
            self._error = error
            self._loading = False
            self._state = StoreState.SYNCED_ERROR

        log.error(
            "store_subscription_error",
            collection=self._name,
            error=str(error),
            error_type=type(error).__name__,
        )
        self._notify()

    def _notify(self) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(self)
            except Exception as e:
                log.error("store_listener_failed", collection=self._name, error=str(e))

    def _with_retry(self, write: Callable[..., T], kind: str) -> Callable[..., T]:
        """Wrap an idempotent write with the configured retry policy."""
        if self._config.write_retries == 0:
            return write
        return exponential_backoff_retry(
            max_retries=self._config.write_retries,
            base_delay=self._config.retry_base_delay,
            max_delay=self._config.retry_max_delay,
            exceptions=(TransientRemoteError,),
            operation=f"{self._name}.{kind}",
        )(write)


class LiveCollectionStore(LiveStoreBase, Generic[EntityT]):
    """One collection's snapshot plus write-through CRUD.

    Consumers read ``items`` and ``loading`` and call ``add``, ``update`` and
    ``delete``. The snapshot is an immutable tuple of frozen entities ordered
    by creation time, newest first.
    """

    def __init__(
        self,
        source: RemoteCollectionSource,
        definition: CollectionDefinition,
        config: SyncConfig | None = None,
    ):
        """
        Initialize a store. The subscription opens on activate().

        Args:
            source: Remote collection source to subscribe and write to
            definition: Collection name, entity type and field rules
            config: Ordering and retry settings
        """
        super().__init__(source, definition.name, config)
        self._definition = definition
        self._items: tuple[EntityT, ...] = ()

    @property
    def definition(self) -> CollectionDefinition:
        return self._definition

    @property
    def items(self) -> tuple[EntityT, ...]:
        """Current snapshot."""
        return self._items

    def get(self, document_id: str) -> EntityT | None:
        """Return the entity with this id from the current snapshot."""
        for item in self._items:
            if item.id == document_id:
                return item
        return None

    def find(self, predicate: Callable[[EntityT], bool]) -> list[EntityT]:
        """Return entities in the current snapshot matching ``predicate``."""
        return [item for item in self._items if predicate(item)]

    def _open(self, on_error: ErrorCallback) -> SubscriptionHandle:
        return self._source.subscribe(
            self._name,
            self._config.order_field,
            self._config.order_direction,
            self._handle_snapshot,
            on_error,
        )

    def _handle_snapshot(self, documents: Iterable[RawDocument]) -> None:
        try:
            entities = tuple(normalize_documents(documents, self._definition.normalizer))
        except Exception as e:
            self._handle_error(e)
            return

        def commit() -> None:
            self._items = entities

        if self._apply(commit):
            log.debug("store_snapshot_applied", collection=self._name, count=len(entities))

    # Write-through operations

    def add(self, entity: Mapping[str, Any] | BaseEntity) -> str:
        """
        Create a document from entity fields (any id is ignored).

        Never retried: a repeated add would create a second document.

        Args:
            entity: Entity or field mapping (attribute or remote names)

        Returns:
            Id assigned by the source

        Raises:
            RemoteSourceError: If the write fails (after logging)
        """
        payload = self._payload(entity)
        timestamp = self._source.server_timestamp()
        payload[CREATED_AT] = timestamp
        if self._definition.track_updates:
            payload[UPDATED_AT] = timestamp

        try:
            document_id = self._source.add(self._name, payload)
        except Exception as e:
            log.error(
                "store_add_failed",
                collection=self._name,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise

        log.info("store_document_added", collection=self._name, document_id=document_id)
        return document_id

    def update(self, entity: Mapping[str, Any] | BaseEntity) -> None:
        """
        Write the entity's fields to its existing document.

        Args:
            entity: Entity or field mapping carrying an ``id``

        Raises:
            EntityValidationError: If no id is given (no remote call is made)
            RemoteSourceError: If the write fails (after logging)
        """
        document_id = entity.id if isinstance(entity, BaseEntity) else entity.get("id")
        if not document_id:
            raise EntityValidationError("id", f"Cannot update a {self._name} document without an id")

        payload = self._payload(entity)
        if self._definition.track_updates:
            payload[UPDATED_AT] = self._source.server_timestamp()

        try:
            self._with_retry(self._source.update, "update")(self._name, document_id, payload)
        except Exception as e:
            log.error(
                "store_update_failed",
                collection=self._name,
                document_id=document_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise

        log.info("store_document_updated", collection=self._name, document_id=document_id)

    def delete(self, document_id: str) -> None:
        """
        Remove a document.

        Raises:
            RemoteSourceError: If the write fails (after logging)
        """
        try:
            self._with_retry(self._source.delete, "delete")(self._name, document_id)
        except Exception as e:
            log.error(
                "store_delete_failed",
                collection=self._name,
                document_id=document_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise

        log.info("store_document_deleted", collection=self._name, document_id=document_id)

    def _payload(self, entity: Mapping[str, Any] | BaseEntity) -> dict[str, Any]:
        if isinstance(entity, BaseEntity):
            fields = entity.to_fields()
        else:
            model_fields = self._definition.entity.model_fields
            fields = {}
            for key, value in entity.items():
                declared = model_fields.get(key)
                remote_key = declared.alias if declared is not None and declared.alias else key
                fields[remote_key] = value
        fields.pop("id", None)
        return self._definition.prepare_payload(fields)
