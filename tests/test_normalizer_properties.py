"""Property-based tests for snapshot normalization.

Covers numeric coercion of prices, main image resolution, idempotence,
order preservation, and tolerance of malformed documents.
"""

import re

import pytest
import structlog
from hypothesis import given, settings
from hypothesis import strategies as st
from pydantic import ValidationError

from livesync.models.entities import Category, Product
from livesync.remote.base import RawDocument
from livesync.sync.normalizer import (
    identity_normalizer,
    normalize_documents,
    normalize_product,
    normalize_settings,
    to_number,
)

log = structlog.stdlib.get_logger()

finite_floats = st.floats(allow_nan=False, allow_infinity=False, width=64)
document_ids = st.text(
    min_size=1, max_size=20, alphabet=st.characters(whitelist_categories=("Ll", "Lu", "Nd"))
)
json_scalars = st.one_of(
    st.none(), st.booleans(), st.integers(-10_000, 10_000), finite_floats, st.text(max_size=20)
)


@st.composite
def product_document_strategy(draw: st.DrawFn, document_id: str | None = None) -> RawDocument:
    """Generate a raw product document with a mix of well-formed and odd fields."""
    if document_id is None:
        document_id = draw(document_ids)
    fields = {
        "title": draw(st.text(max_size=30)),
        "category": draw(st.sampled_from(["Shoes", "Bags", "Hats", ""])),
        "images": draw(st.lists(st.text(min_size=1, max_size=15), max_size=4)),
        "tryOnEnabled": draw(st.booleans()),
    }
    if draw(st.booleans()):
        fields["price"] = draw(json_scalars)
    if draw(st.booleans()):
        fields["originalPrice"] = draw(json_scalars)
    if draw(st.booleans()):
        fields["mainImage"] = draw(st.text(max_size=15))
    if draw(st.booleans()):
        fields["image"] = draw(st.text(max_size=15))
    return RawDocument(id=document_id, fields=fields)


class TestNumericCoercion:
    """Property: prices are always numeric, parsed from numeric strings, 0 otherwise."""

    @given(value=finite_floats)
    @settings(max_examples=200)
    def test_numeric_string_price_parses_to_its_value(self, value: float) -> None:
        """A price stored as a numeric string normalizes to the parsed number."""
        document = RawDocument(id="p1", fields={"price": repr(value)})

        product = normalize_product(document)

        assert product.price == value

    @given(value=st.integers(min_value=-(10**12), max_value=10**12))
    def test_integer_strings_with_whitespace_parse(self, value: int) -> None:
        """Surrounding whitespace does not prevent parsing."""
        assert to_number(f"  {value}\n") == float(value)

    @given(fields=st.dictionaries(st.sampled_from(["title", "image", "category"]), st.text(max_size=10)))
    def test_missing_price_normalizes_to_zero(self, fields: dict) -> None:
        """Documents without price fields normalize both prices to 0."""
        product = normalize_product(RawDocument(id="p1", fields=fields))

        assert product.price == 0
        assert product.original_price == 0

    @given(
        text=st.text(min_size=1, max_size=20).filter(
            lambda s: s.strip() != ""
            and not _is_float_literal(s)
            and not re.match(r"^\s*0[xXoObB]", s)
        )
    )
    @settings(max_examples=200)
    def test_non_numeric_strings_normalize_to_zero(self, text: str) -> None:
        """Malformed numeric fields become 0 rather than failing."""
        product = normalize_product(RawDocument(id="p1", fields={"price": text, "originalPrice": text}))

        assert product.price == 0
        assert product.original_price == 0

    def test_special_values(self) -> None:
        """Booleans, blanks, None, and non-finite values follow the documented mapping."""
        assert to_number(True) == 1
        assert to_number(False) == 0
        assert to_number("") == 0
        assert to_number("   ") == 0
        assert to_number(None) == 0
        assert to_number(float("nan")) == 0
        assert to_number(float("inf")) == 0
        assert to_number("Infinity") == 0
        assert to_number("1e3") == 1000
        assert to_number("0x1F") == 31
        assert to_number(".5") == 0.5
        assert to_number("1_000") == 0
        assert to_number([5]) == 0
        assert to_number(10**400) == 0

    @given(document=product_document_strategy())
    @settings(max_examples=200)
    def test_prices_are_always_floats(self, document: RawDocument) -> None:
        """Whatever the stored values, normalized prices are floats."""
        product = normalize_product(document)

        assert isinstance(product.price, float)
        assert isinstance(product.original_price, float)


def _is_float_literal(text: str) -> bool:
    try:
        float(text)
    except ValueError:
        return False
    return True


class TestImageResolution:
    """Property: the main image prefers mainImage, then the legacy image field."""

    @given(main=st.text(min_size=1, max_size=30), legacy=st.text(min_size=1, max_size=30))
    def test_main_image_wins_when_both_are_set(self, main: str, legacy: str) -> None:
        """With both fields set, image equals mainImage."""
        product = normalize_product(
            RawDocument(id="p1", fields={"mainImage": main, "image": legacy})
        )

        assert product.image == main

    @given(legacy=st.text(min_size=1, max_size=30))
    def test_legacy_image_used_when_main_image_is_missing_or_empty(self, legacy: str) -> None:
        """An absent or empty mainImage falls back to image."""
        missing = normalize_product(RawDocument(id="p1", fields={"image": legacy}))
        empty = normalize_product(RawDocument(id="p1", fields={"mainImage": "", "image": legacy}))

        assert missing.image == legacy
        assert empty.image == legacy

    def test_image_defaults_to_empty_string(self) -> None:
        """Neither field set gives an empty image."""
        assert normalize_product(RawDocument(id="p1", fields={})).image == ""


class TestNormalizerPurity:
    """Property: normalization is deterministic, order-preserving, and one-to-one."""

    @given(
        documents=st.lists(product_document_strategy(), max_size=10, unique_by=lambda d: d.id)
    )
    @settings(max_examples=100)
    def test_normalizing_twice_gives_identical_results(self, documents: list[RawDocument]) -> None:
        """Normalizing the same batch twice yields structurally identical entities."""
        first = normalize_documents(documents, normalize_product)
        second = normalize_documents(documents, normalize_product)

        assert first == second
        assert [p.model_dump(by_alias=True) for p in first] == [
            p.model_dump(by_alias=True) for p in second
        ]

    @given(
        documents=st.lists(product_document_strategy(), max_size=10, unique_by=lambda d: d.id)
    )
    def test_order_and_ids_are_preserved(self, documents: list[RawDocument]) -> None:
        """Output order and ids match the pushed batch."""
        products = normalize_documents(documents, normalize_product)

        assert [p.id for p in products] == [d.id for d in documents]

    @given(document=product_document_strategy())
    def test_raw_document_is_not_mutated(self, document: RawDocument) -> None:
        """The pushed document is left untouched."""
        before = dict(document.fields)

        normalize_product(document)

        assert document.fields == before


class TestMalformedDocuments:
    """Malformed declared fields fall back to defaults; undeclared fields are kept."""

    def test_wrong_types_fall_back_to_defaults(self) -> None:
        """Declared fields with the wrong type take their defaults."""
        product = normalize_product(
            RawDocument(
                id="p1",
                fields={
                    "title": 42,
                    "images": "not-a-list",
                    "tryOnEnabled": "yes",
                    "category": "Shoes",
                },
            )
        )

        assert product.title == ""
        assert product.images == []
        assert product.try_on_enabled is False
        assert product.category == "Shoes"

    def test_undeclared_fields_are_retained_as_extras(self) -> None:
        """Fields the model does not declare survive normalization."""
        product = normalize_product(
            RawDocument(id="p1", fields={"mainImage": "a.jpg", "sku": "X-1"})
        )

        assert product.model_extra["sku"] == "X-1"
        assert product.model_extra["mainImage"] == "a.jpg"

    def test_document_id_wins_over_id_field(self) -> None:
        """The document id is authoritative even if the fields carry an id."""
        product = normalize_product(RawDocument(id="real", fields={"id": "stale"}))

        assert product.id == "real"

    @given(
        name=st.one_of(st.text(max_size=20), st.integers()),
        is_active=st.one_of(st.booleans(), st.text(max_size=5)),
    )
    def test_identity_normalizer_type_checks_only(self, name, is_active) -> None:
        """Categories keep well-typed values unchanged and default the rest."""
        normalize = identity_normalizer(Category)

        category = normalize(RawDocument(id="c1", fields={"name": name, "isActive": is_active}))

        assert category.id == "c1"
        assert category.name == (name if isinstance(name, str) else "")
        assert category.is_active is (is_active if isinstance(is_active, bool) else True)


class TestSettingsNormalization:
    """Settings document normalization."""

    def test_missing_document_is_none(self) -> None:
        assert normalize_settings(None) is None

    def test_empty_logo_reads_as_none(self) -> None:
        settings_value = normalize_settings(RawDocument(id="headerLogo", fields={"logoUrl": ""}))

        assert settings_value is not None
        assert settings_value.logo_url is None

    def test_logo_url_is_read(self) -> None:
        settings_value = normalize_settings(
            RawDocument(id="headerLogo", fields={"logoUrl": "https://cdn.example.com/logo.png"})
        )

        assert settings_value.logo_url == "https://cdn.example.com/logo.png"


def test_product_entities_are_frozen() -> None:
    """Entities are immutable projections."""
    product = normalize_product(RawDocument(id="p1", fields={"title": "Hat"}))

    assert isinstance(product, Product)
    with pytest.raises(ValidationError):
        product.title = "Cap"
