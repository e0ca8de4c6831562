"""Property-based tests for the category rename cascade.

The cascade is best-effort: every product carrying the old name gets its own
update, failures are reported but neither stop nor roll back the others.
"""

import structlog
from hypothesis import given, settings
from hypothesis import strategies as st
from structlog.testing import capture_logs

from livesync.errors import PermissionDeniedError, RemoteSourceError
from livesync.remote.memory import InMemoryCollectionSource
from livesync.sync.cascade import cascade_category_rename
from livesync.sync.collections import PRODUCTS
from livesync.sync.store import LiveCollectionStore

log = structlog.stdlib.get_logger()


class FlakySource(InMemoryCollectionSource):
    """Memory source whose updates fail for selected product ids."""

    def __init__(self, failing_ids: set[str]):
        super().__init__()
        self.failing_ids = failing_ids

    def update(self, collection, document_id, fields):
        if document_id in self.failing_ids:
            raise PermissionDeniedError(
                "write rejected", collection=collection, document_id=document_id
            )
        super().update(collection, document_id, fields)


def _seed(source: InMemoryCollectionSource, categories: list[str]) -> list[str]:
    ids = []
    for index, category in enumerate(categories):
        document_id = f"p{index}"
        source.set(
            "products",
            document_id,
            {"title": f"Item {index}", "category": category, "createdAt": source.server_timestamp()},
        )
        ids.append(document_id)
    return ids


class TestCascadeCompleteness:
    """Property: every product with the old name is attempted exactly once."""

    def test_rename_updates_every_matching_product(self, source) -> None:
        _seed(source, ["Shoes", "Shoes", "Bags", "Shoes"])

        with LiveCollectionStore(source, PRODUCTS) as products:
            report = cascade_category_rename(products, "Shoes", "Footwear")

            assert sorted(report.updated_ids) == ["p0", "p1", "p3"]
            assert report.success
            assert report.attempted == 3
            assert {p.id: p.category for p in products.items} == {
                "p0": "Footwear",
                "p1": "Footwear",
                "p2": "Bags",
                "p3": "Footwear",
            }

        updates = [entry for entry in source.write_log if entry[0] == "update"]
        assert len(updates) == 3

    @given(
        categories=st.lists(st.sampled_from(["Shoes", "Bags", "Hats"]), max_size=12),
        failing=st.sets(st.integers(min_value=0, max_value=11), max_size=6),
    )
    @settings(max_examples=50)
    def test_failures_do_not_block_other_products(
        self, categories: list[str], failing: set[int]
    ) -> None:
        """Updated plus failed ids cover exactly the products carrying the old name."""
        failing_ids = {f"p{index}" for index in failing}
        source = FlakySource(failing_ids)
        ids = _seed(source, categories)
        targets = {pid for pid, category in zip(ids, categories) if category == "Shoes"}

        with LiveCollectionStore(source, PRODUCTS) as products:
            report = cascade_category_rename(products, "Shoes", "Footwear")
            by_id = {p.id: p.category for p in products.items}

        assert set(report.updated_ids) == targets - failing_ids
        assert set(report.failed) == targets & failing_ids
        assert report.attempted == len(targets)
        assert report.success == (not targets & failing_ids)
        for pid in targets & failing_ids:
            assert by_id[pid] == "Shoes"
        for pid in targets - failing_ids:
            assert by_id[pid] == "Footwear"

    def test_failures_are_logged(self) -> None:
        source = FlakySource({"p1"})
        _seed(source, ["Shoes", "Shoes"])

        with LiveCollectionStore(source, PRODUCTS) as products:
            with capture_logs() as logs:
                report = cascade_category_rename(products, "Shoes", "Footwear")

        assert report.failed == {"p1": "write rejected"}
        failures = [entry for entry in logs if entry["event"] == "cascade_update_failed"]
        assert len(failures) == 1
        assert failures[0]["document_id"] == "p1"
        assert failures[0]["log_level"] == "error"


class TestCascadeIdempotence:
    """Property: re-running a cascade for the same rename converges."""

    def test_rerun_after_partial_failure_completes(self) -> None:
        source = FlakySource({"p1"})
        _seed(source, ["Shoes", "Shoes", "Shoes"])

        with LiveCollectionStore(source, PRODUCTS) as products:
            first = cascade_category_rename(products, "Shoes", "Footwear")
            source.failing_ids.clear()
            second = cascade_category_rename(products, "Shoes", "Footwear")
            third = cascade_category_rename(products, "Shoes", "Footwear")

            assert set(first.failed) == {"p1"}
            assert second.updated_ids == ["p1"]
            assert third.attempted == 0
            assert all(p.category == "Footwear" for p in products.items)

    def test_same_name_is_a_no_op(self, source) -> None:
        _seed(source, ["Shoes"])
        writes_before = len(source.write_log)

        with LiveCollectionStore(source, PRODUCTS) as products:
            report = cascade_category_rename(products, "Shoes", "Shoes")

        assert report.attempted == 0
        assert len(source.write_log) == writes_before

    def test_empty_old_name_is_a_no_op(self, source) -> None:
        _seed(source, [""])

        with LiveCollectionStore(source, PRODUCTS) as products:
            report = cascade_category_rename(products, "", "Footwear")

        assert report.attempted == 0

    def test_cascade_preserves_other_product_fields(self, source) -> None:
        source.set(
            "products",
            "p0",
            {
                "title": "Runner",
                "category": "Shoes",
                "price": 99.0,
                "mainImage": "runner.jpg",
                "sku": "RUN-1",
                "createdAt": source.server_timestamp(),
            },
        )

        with LiveCollectionStore(source, PRODUCTS) as products:
            cascade_category_rename(products, "Shoes", "Footwear")

        stored = source.documents("products")["p0"]
        assert stored["category"] == "Footwear"
        assert stored["title"] == "Runner"
        assert stored["price"] == 99.0
        assert stored["mainImage"] == "runner.jpg"
        assert stored["sku"] == "RUN-1"


def test_generic_remote_errors_are_reported(source) -> None:
    _seed(source, ["Shoes"])

    with LiveCollectionStore(source, PRODUCTS) as products:
        source.fail_next("update", RemoteSourceError("deadline"))
        report = cascade_category_rename(products, "Shoes", "Footwear")

    assert report.failed == {"p0": "deadline"}
