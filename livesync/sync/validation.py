"""Caller-side checks run before a write is issued.

Stores do not call these; admin flows call them first so that an invalid
form never reaches the remote source.
"""

from typing import Any, Mapping

from livesync.errors import EntityValidationError
from livesync.sync.normalizer import to_number

MIN_PRODUCT_IMAGES = 2
MAX_PRODUCT_IMAGES = 10
MAX_TITLE_WORDS = 50
MAX_DESCRIPTION_WORDS = 1000


def word_count(text: str) -> int:
    """Count whitespace-separated words."""
    return len(text.split())


def _lookup(fields: Mapping[str, Any], name: str, alias: str | None = None) -> Any:
    if name in fields:
        return fields[name]
    if alias is not None:
        return fields.get(alias)
    return None


def _is_blank(value: Any) -> bool:
    return not isinstance(value, str) or not value.strip()


def validate_product(fields: Mapping[str, Any]) -> None:
    """
    Check a product form before add or update.

    Accepts attribute names or remote field names.

    Raises:
        EntityValidationError: On the first failing field
    """
    images = _lookup(fields, "images") or []
    if len(images) < MIN_PRODUCT_IMAGES:
        raise EntityValidationError("images", f"Please add at least {MIN_PRODUCT_IMAGES} images.")
    if len(images) > MAX_PRODUCT_IMAGES:
        raise EntityValidationError("images", f"Maximum {MAX_PRODUCT_IMAGES} images allowed.")
    if _is_blank(_lookup(fields, "image")):
        raise EntityValidationError("image", "Please select a main image.")

    title = _lookup(fields, "title")
    if _is_blank(title):
        raise EntityValidationError("title", "Title is required.")
    if word_count(title) > MAX_TITLE_WORDS:
        raise EntityValidationError("title", f"Title is limited to {MAX_TITLE_WORDS} words.")

    description = _lookup(fields, "description") or ""
    if isinstance(description, str) and word_count(description) > MAX_DESCRIPTION_WORDS:
        raise EntityValidationError(
            "description", f"Description is limited to {MAX_DESCRIPTION_WORDS} words."
        )

    price = _lookup(fields, "price")
    if not _is_valid_price(price):
        raise EntityValidationError("price", "Please enter a valid price.")

    if _is_blank(_lookup(fields, "category")):
        raise EntityValidationError("category", "Category is required.")
    if _is_blank(_lookup(fields, "platform")):
        raise EntityValidationError("platform", "Platform is required.")
    if _is_blank(_lookup(fields, "affiliate_link", "affiliateLink")):
        raise EntityValidationError("affiliate_link", "Affiliate Buy Link is required.")


def _is_valid_price(value: Any) -> bool:
    # 0 is a valid price; non-numeric input is not
    if value is None or isinstance(value, bool):
        return False
    if isinstance(value, str) and not value.strip():
        return False
    number = to_number(value)
    if number == 0 and not _looks_like_zero(value):
        return False
    return number >= 0


def _looks_like_zero(value: Any) -> bool:
    if isinstance(value, (int, float)):
        return value == 0
    if isinstance(value, str):
        try:
            return float(value.strip()) == 0
        except ValueError:
            return False
    return False


def validate_category(fields: Mapping[str, Any]) -> None:
    """
    Check a category form before add or update.

    Raises:
        EntityValidationError: If the name or image is missing
    """
    if _is_blank(_lookup(fields, "name")):
        raise EntityValidationError("name", "Category name and image URL are required.")
    if _is_blank(_lookup(fields, "image")):
        raise EntityValidationError("image", "Category name and image URL are required.")
