"""Catalog session: one live store per collection plus admin write flows."""

from typing import Any, Mapping

import structlog

from livesync.models.config import AppConfig, SyncConfig
from livesync.models.entities import (
    AppSettings,
    BaseEntity,
    Category,
    Label,
    MenuPage,
    Notification,
    Platform,
    Product,
    Report,
    Slider,
)
from livesync.providers import get_remote_source
from livesync.remote.base import RemoteCollectionSource
from livesync.sync import collections as defs
from livesync.sync.cascade import cascade_category_rename
from livesync.sync.document_store import LiveDocumentStore
from livesync.sync.models import CascadeReport
from livesync.sync.store import LiveCollectionStore
from livesync.sync.validation import validate_category, validate_product

log = structlog.stdlib.get_logger()


def _as_fields(entity: Mapping[str, Any] | BaseEntity) -> dict[str, Any]:
    if isinstance(entity, BaseEntity):
        return entity.model_dump()
    return dict(entity)


class CatalogSession:
    """Owns the live stores an application view needs and their lifetimes.

    Entering the session activates every store; leaving it releases every
    subscription, including when the body raised.
    """

    def __init__(
        self,
        source: RemoteCollectionSource | None = None,
        config: AppConfig | None = None,
        collections: tuple[defs.CollectionDefinition, ...] = defs.ALL_COLLECTIONS,
    ):
        """
        Initialize the session.

        Args:
            source: Optional remote source (built from config via the provider module if None)
            config: Optional application config (required if source is None)
            collections: Collections to open stores for
        """
        if source is None:
            if config is None:
                raise ValueError("config is required when source is not provided")
            source = get_remote_source(config.remote)
            self._owns_source = True
        else:
            self._owns_source = False

        sync_config = config.sync if config is not None else SyncConfig()
        self._source = source
        self._stores: dict[str, LiveCollectionStore] = {
            definition.name: LiveCollectionStore(source, definition, sync_config)
            for definition in collections
        }
        self._settings = LiveDocumentStore(
            source, defs.SETTINGS_COLLECTION, defs.HEADER_LOGO_DOCUMENT, config=sync_config
        )

        log.info("catalog_session_initialized", collections=sorted(self._stores))

    def store(self, name: str) -> LiveCollectionStore:
        """Return the store for a collection name.

        Raises:
            KeyError: If the session has no store for that collection
        """
        return self._stores[name]

    @property
    def products(self) -> LiveCollectionStore[Product]:
        return self._stores[defs.PRODUCTS.name]

    @property
    def categories(self) -> LiveCollectionStore[Category]:
        return self._stores[defs.CATEGORIES.name]

    @property
    def platforms(self) -> LiveCollectionStore[Platform]:
        return self._stores[defs.PLATFORMS.name]

    @property
    def labels(self) -> LiveCollectionStore[Label]:
        return self._stores[defs.LABELS.name]

    @property
    def sliders(self) -> LiveCollectionStore[Slider]:
        return self._stores[defs.SLIDERS.name]

    @property
    def menu_pages(self) -> LiveCollectionStore[MenuPage]:
        return self._stores[defs.MENU_PAGES.name]

    @property
    def reports(self) -> LiveCollectionStore[Report]:
        return self._stores[defs.REPORTS.name]

    @property
    def notifications(self) -> LiveCollectionStore[Notification]:
        return self._stores[defs.NOTIFICATIONS.name]

    @property
    def settings(self) -> LiveDocumentStore:
        return self._settings

    @property
    def app_settings(self) -> AppSettings | None:
        return self._settings.value

    def open(self) -> None:
        """Activate every store. On failure, stores already opened are released."""
        try:
            for store in self._all_stores():
                store.activate()
        except Exception:
            self.close()
            raise
        log.info("catalog_session_opened", stores=len(self._stores) + 1)

    def close(self) -> None:
        """Release every subscription."""
        for store in self._all_stores():
            store.deactivate()
        if self._owns_source:
            self._source.close()
        log.info("catalog_session_closed")

    def __enter__(self) -> "CatalogSession":
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _all_stores(self) -> list[Any]:
        return [*self._stores.values(), self._settings]

    # Admin flows

    def save_category(
        self, category: Mapping[str, Any] | Category, original_name: str | None = None
    ) -> CascadeReport | None:
        """
        Validate and write a category, cascading a rename to products.

        The category write must succeed before any product is touched; the
        product cascade afterwards is best-effort (see livesync.sync.cascade).

        Args:
            category: Category entity or fields; an id means update
            original_name: Name the category had when editing started

        Returns:
            CascadeReport when an existing category was renamed, else None

        Raises:
            EntityValidationError: If name or image is missing (nothing is written)
            RemoteSourceError: If the category write fails
        """
        fields = _as_fields(category)
        validate_category(fields)

        if not fields.get("id"):
            self.categories.add(category)
            return None

        self.categories.update(category)

        new_name = fields.get("name", "")
        if original_name and original_name != new_name:
            return cascade_category_rename(self.products, original_name, new_name)
        return None

    def toggle_category_active(self, category: Category) -> None:
        """Flip a category's isActive flag."""
        self.categories.update(category.model_copy(update={"is_active": not category.is_active}))

    def save_product(self, product: Mapping[str, Any] | Product) -> str:
        """
        Validate and write a product.

        Returns:
            The product's document id (new id on add)

        Raises:
            EntityValidationError: If the form is incomplete (nothing is written)
            RemoteSourceError: If the write fails
        """
        fields = _as_fields(product)
        validate_product(fields)

        document_id = fields.get("id")
        if document_id:
            self.products.update(product)
            return document_id
        return self.products.add(product)

    def set_logo(self, logo_url: str) -> None:
        """Store the header logo URL in the settings document."""
        self._settings.set({"logoUrl": logo_url})

    @staticmethod
    def active(store: LiveCollectionStore) -> list[Any]:
        """Entities of a store whose is_active flag is set."""
        return store.find(lambda entity: getattr(entity, "is_active", False) is True)
