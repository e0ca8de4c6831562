"""Per-collection definitions: remote name, entity type, and field rules."""

from typing import Any, Callable

from pydantic import BaseModel, ConfigDict, Field

from livesync.models.entities import (
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
from livesync.sync.normalizer import identity_normalizer, normalize_product, to_number

PayloadHook = Callable[[dict[str, Any]], dict[str, Any]]

CREATED_AT = "createdAt"
UPDATED_AT = "updatedAt"


def _unchanged(payload: dict[str, Any]) -> dict[str, Any]:
    return payload


def prepare_product_payload(payload: dict[str, Any]) -> dict[str, Any]:
    """Re-derive the stored product fields from the entity fields.

    ``mainImage`` mirrors ``image`` and both prices are written as numbers.
    Only keys present in the payload are touched, so a partial update leaves
    the other stored fields alone.
    """
    prepared = dict(payload)
    if "image" in prepared:
        prepared["mainImage"] = prepared["image"]
    for key in ("price", "originalPrice"):
        if key in prepared:
            prepared[key] = to_number(prepared[key])
    return prepared


class CollectionDefinition(BaseModel):
    """Describes how one remote collection maps onto an entity type."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(default=..., description="Remote collection name")
    entity: type[BaseEntity] = Field(default=..., description="Entity model")
    normalizer: Callable[..., Any] = Field(default=..., description="RawDocument to entity")
    prepare_payload: PayloadHook = Field(
        default=_unchanged, description="Rewrites an outgoing field mapping"
    )
    track_updates: bool = Field(default=False, description="Stamp updatedAt on every write")


PRODUCTS = CollectionDefinition(
    name="products",
    entity=Product,
    normalizer=normalize_product,
    prepare_payload=prepare_product_payload,
    track_updates=True,
)
CATEGORIES = CollectionDefinition(
    name="categories", entity=Category, normalizer=identity_normalizer(Category)
)
PLATFORMS = CollectionDefinition(
    name="platforms", entity=Platform, normalizer=identity_normalizer(Platform)
)
LABELS = CollectionDefinition(
    name="labels", entity=Label, normalizer=identity_normalizer(Label)
)
SLIDERS = CollectionDefinition(
    name="sliders", entity=Slider, normalizer=identity_normalizer(Slider)
)
MENU_PAGES = CollectionDefinition(
    name="menuPages", entity=MenuPage, normalizer=identity_normalizer(MenuPage)
)
REPORTS = CollectionDefinition(
    name="reports", entity=Report, normalizer=identity_normalizer(Report), track_updates=True
)
NOTIFICATIONS = CollectionDefinition(
    name="notifications", entity=Notification, normalizer=identity_normalizer(Notification)
)

ALL_COLLECTIONS: tuple[CollectionDefinition, ...] = (
    PRODUCTS,
    CATEGORIES,
    PLATFORMS,
    LABELS,
    SLIDERS,
    MENU_PAGES,
    REPORTS,
    NOTIFICATIONS,
)

SETTINGS_COLLECTION = "settings"
HEADER_LOGO_DOCUMENT = "headerLogo"
