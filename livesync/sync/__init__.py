"""Synchronization components keeping local snapshots in step with remote collections."""

from livesync.sync.cascade import cascade_category_rename
from livesync.sync.catalog import CatalogSession
from livesync.sync.collections import ALL_COLLECTIONS, CollectionDefinition
from livesync.sync.document_store import LiveDocumentStore
from livesync.sync.models import CascadeReport, StoreState
from livesync.sync.normalizer import normalize_documents, normalize_product, to_number
from livesync.sync.store import LiveCollectionStore

__all__ = [
    "ALL_COLLECTIONS",
    "CascadeReport",
    "CatalogSession",
    "CollectionDefinition",
    "LiveCollectionStore",
    "LiveDocumentStore",
    "StoreState",
    "cascade_category_rename",
    "normalize_documents",
    "normalize_product",
    "to_number",
]
