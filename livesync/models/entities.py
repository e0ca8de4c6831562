"""Pydantic models for the entities projected from remote documents.

Attributes are snake_case; remote field names are their camelCase aliases,
so ``Product.original_price`` is read from and written to ``originalPrice``.
Fields a model does not declare are kept as extras and written back
unchanged on update.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class BaseEntity(BaseModel):
    """Common base for all synchronized entities."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
        frozen=True,
        strict=True,
    )

    id: str = Field(default=..., description="Remote document identifier")

    def to_fields(self) -> dict[str, Any]:
        """Return the remote field mapping for this entity, without its id."""
        fields = self.model_dump(by_alias=True)
        fields.pop("id", None)
        return fields


class Product(BaseEntity):
    """A shoppable product with an affiliate link."""

    title: str = Field(default="", description="Product title")
    price: float = Field(default=0.0, description="Current price")
    original_price: float = Field(default=0.0, description="Price before discount, 0 if none")
    image: str = Field(default="", description="Main image URL")
    images: list[str] = Field(default_factory=list, description="All image URLs")
    description: str = Field(default="", description="Long description")
    category: str = Field(default="", description="Category name (by value, not by id)")
    platform: str = Field(default="", description="Selling platform name")
    label: str = Field(default="", description="Optional badge label name")
    affiliate_link: str = Field(default="", description="Outbound buy link")
    try_on_enabled: bool = Field(default=False, description="Whether virtual try-on is offered")


class Category(BaseEntity):
    """A product category shown in navigation."""

    name: str = Field(default="", description="Display name, referenced by products")
    image: str = Field(default="", description="Square category image URL")
    is_active: bool = Field(default=True, description="Whether the category is listed")


class Platform(BaseEntity):
    """A selling platform (marketplace) products link out to."""

    name: str = Field(default="")
    logo: str = Field(default="")
    is_active: bool = Field(default=True)


class Label(BaseEntity):
    """A badge that can be attached to products."""

    name: str = Field(default="")
    color: str = Field(default="")
    is_active: bool = Field(default=True)


class Slider(BaseEntity):
    """A home screen banner."""

    title: str = Field(default="")
    image: str = Field(default="")
    link: str = Field(default="")
    is_active: bool = Field(default=True)


class MenuPage(BaseEntity):
    """A static content page reachable from the side menu."""

    title: str = Field(default="")
    slug: str = Field(default="")
    content: str = Field(default="")
    is_active: bool = Field(default=True)


class Report(BaseEntity):
    """A user report filed against a product."""

    product_id: str = Field(default="")
    reason: str = Field(default="")
    message: str = Field(default="")
    status: str = Field(default="open")
    reporter_email: str = Field(default="")


class Notification(BaseEntity):
    """A broadcast notification."""

    title: str = Field(default="")
    message: str = Field(default="")
    image: str = Field(default="")
    link: str = Field(default="")


class AppSettings(BaseModel):
    """Application-wide settings held in a single document."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    logo_url: str | None = Field(default=None, description="Header logo URL")
