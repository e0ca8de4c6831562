"""Live store over a single remote document."""

from typing import Any, Callable, Mapping

import structlog

from livesync.models.config import SyncConfig
from livesync.remote.base import ErrorCallback, RawDocument, RemoteCollectionSource, SubscriptionHandle
from livesync.sync.collections import UPDATED_AT
from livesync.sync.normalizer import normalize_settings
from livesync.sync.store import LiveStoreBase

log = structlog.stdlib.get_logger()


class LiveDocumentStore(LiveStoreBase):
    """Tracks one document, e.g. the application settings.

    ``value`` is None until the document exists. Lifecycle and error
    handling match LiveCollectionStore.
    """

    def __init__(
        self,
        source: RemoteCollectionSource,
        collection: str,
        document_id: str,
        normalizer: Callable[[RawDocument | None], Any] = normalize_settings,
        config: SyncConfig | None = None,
    ):
        super().__init__(source, f"{collection}/{document_id}", config)
        self._collection = collection
        self._document_id = document_id
        self._normalizer = normalizer
        self._value: Any = None

    @property
    def value(self) -> Any:
        return self._value

    def _open(self, on_error: ErrorCallback) -> SubscriptionHandle:
        return self._source.subscribe_document(
            self._collection, self._document_id, self._handle_document, on_error
        )

    def _handle_document(self, document: RawDocument | None) -> None:
        try:
            value = self._normalizer(document)
        except Exception as e:
            self._handle_error(e)
            return

        def commit() -> None:
            self._value = value

        self._apply(commit)

    def set(self, fields: Mapping[str, Any]) -> None:
        """
        Overwrite the document with ``fields`` and an updatedAt timestamp.

        Raises:
            RemoteSourceError: If the write fails (after logging)
        """
        payload = dict(fields)
        payload[UPDATED_AT] = self._source.server_timestamp()

        try:
            self._with_retry(self._source.set, "set")(self._collection, self._document_id, payload)
        except Exception as e:
            log.error(
                "document_set_failed",
                collection=self._collection,
                document_id=self._document_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise

        log.info("document_set", collection=self._collection, document_id=self._document_id)
