"""Remote collection sources the live stores subscribe to.

The Firestore adapter lives in ``livesync.remote.firestore`` and is imported
on demand by ``livesync.providers``.
"""

from livesync.remote.base import RawDocument, RemoteCollectionSource, SubscriptionHandle
from livesync.remote.memory import SERVER_TIMESTAMP, InMemoryCollectionSource

__all__ = [
    "InMemoryCollectionSource",
    "RawDocument",
    "RemoteCollectionSource",
    "SERVER_TIMESTAMP",
    "SubscriptionHandle",
]
