"""Snapshot normalization: raw pushed documents to typed entities.

Every function here is pure. Malformed input never raises: numeric fields
fall back to 0 and declared fields holding the wrong type fall back to their
declared default.
"""

import math
import re
from typing import Any, Callable, Iterable, TypeVar

import structlog
from pydantic import BaseModel, ValidationError

from livesync.models.entities import AppSettings, BaseEntity, Product
from livesync.remote.base import RawDocument

log = structlog.stdlib.get_logger()

EntityT = TypeVar("EntityT", bound=BaseEntity)
ModelT = TypeVar("ModelT", bound=BaseModel)

Normalizer = Callable[[RawDocument], EntityT]

_DECIMAL = re.compile(r"^[+-]?([0-9]+\.?[0-9]*|\.[0-9]+)([eE][+-]?[0-9]+)?$")
_PREFIXED = re.compile(r"^0([xX][0-9a-fA-F]+|[oO][0-7]+|[bB][01]+)$")


def to_number(value: Any) -> float:
    """Coerce a stored value to a finite number, 0 when it is not numeric.

    Numbers pass through, booleans count as 1 and 0, and numeric strings are
    parsed after trimming whitespace (an empty string is 0). Anything else,
    including NaN and infinities, is 0.

    Args:
        value: Raw field value

    Returns:
        Finite float
    """
    if isinstance(value, bool):
        return 1.0 if value else 0.0

    if isinstance(value, (int, float)):
        try:
            number = float(value)
        except OverflowError:
            return 0.0
        return number if math.isfinite(number) else 0.0

    if isinstance(value, str):
        text = value.strip()
        if not text:
            return 0.0
        if _PREFIXED.match(text):
            return to_number(int(text, 0))
        if _DECIMAL.match(text):
            number = float(text)
            return number if math.isfinite(number) else 0.0

    return 0.0


def build_lenient(model_cls: type[ModelT], data: dict[str, Any]) -> ModelT:
    """Validate data into a model, dropping declared fields that fail validation.

    Dropped fields take their declared defaults. Undeclared fields are kept
    as extras where the model allows them.

    Args:
        model_cls: Target pydantic model
        data: Field mapping keyed by remote (alias) names

    Returns:
        Model instance
    """
    try:
        return model_cls.model_validate(data)
    except ValidationError as e:
        invalid = {error["loc"][0] for error in e.errors() if error["loc"]}
        log.debug(
            "normalizer_fields_defaulted",
            model=model_cls.__name__,
            fields=sorted(str(name) for name in invalid),
        )
        cleaned = {key: value for key, value in data.items() if key not in invalid}
        return model_cls.model_validate(cleaned)


def normalize_product(document: RawDocument) -> Product:
    """Project a product document.

    The main image is read from ``mainImage`` and falls back to the legacy
    ``image`` field; both prices are always numeric.
    """
    fields = document.fields
    data = dict(fields)
    data["image"] = fields.get("mainImage") or fields.get("image") or ""
    data["price"] = to_number(fields["price"]) if "price" in fields else 0.0
    data["originalPrice"] = (
        to_number(fields["originalPrice"]) if "originalPrice" in fields else 0.0
    )
    data["id"] = document.id
    return build_lenient(Product, data)


def identity_normalizer(model_cls: type[EntityT]) -> Normalizer:
    """Return a normalizer mapping id plus declared fields onto ``model_cls``."""

    def normalize(document: RawDocument) -> EntityT:
        data = dict(document.fields)
        data["id"] = document.id
        return build_lenient(model_cls, data)

    normalize.__name__ = f"normalize_{model_cls.__name__.lower()}"
    return normalize


def normalize_documents(documents: Iterable[RawDocument], normalizer: Normalizer) -> list[EntityT]:
    """Normalize one pushed batch, preserving order one-to-one."""
    return [normalizer(document) for document in documents]


def normalize_settings(document: RawDocument | None) -> AppSettings | None:
    """Project the settings document; an empty logo URL reads as no logo."""
    if document is None:
        return None
    data = dict(document.fields)
    data["logoUrl"] = data.get("logoUrl") or None
    return build_lenient(AppSettings, data)
