"""Centralized provider module for remote collection sources.

This module provides the factory that turns configuration into a
RemoteCollectionSource. Developers can modify it to swap implementations
without changing the stores.

Implementations:
- memory: InMemoryCollectionSource (in-process, no external services required)
- firestore: FirestoreCollectionSource (google-cloud-firestore)
"""

import structlog

from livesync.models.config import RemoteSourceConfig
from livesync.remote.base import RemoteCollectionSource
from livesync.remote.memory import InMemoryCollectionSource

log = structlog.stdlib.get_logger()

SUPPORTED_SOURCES = ("memory", "firestore")


def get_remote_source(config: RemoteSourceConfig) -> RemoteCollectionSource:
    """Get the configured remote collection source.

    Developers: Modify this function to change the backing store.

    Example - Use an emulator:
        os.environ["FIRESTORE_EMULATOR_HOST"] = "localhost:8080"
        return FirestoreCollectionSource.from_settings(project_id="demo-project")

    Args:
        config: Remote source configuration section

    Returns:
        RemoteCollectionSource instance

    Raises:
        ValueError: If the source type is not supported
        RuntimeError: If the source cannot be initialized
    """
    if config.type not in SUPPORTED_SOURCES:
        error_msg = f"Unsupported remote source type: {config.type!r}"
        log.error("get_remote_source_failed", error=error_msg)
        raise ValueError(error_msg)

    if config.type == "memory":
        log.info("initializing_remote_source", provider="memory")
        return InMemoryCollectionSource()

    try:
        log.info(
            "initializing_remote_source",
            provider="firestore",
            project_id=config.project_id,
            database=config.database,
        )

        from livesync.remote.firestore import FirestoreCollectionSource

        source = FirestoreCollectionSource.from_settings(
            project_id=config.project_id,
            credentials_path=config.credentials_path,
            database=config.database,
        )

        log.info("remote_source_initialized_successfully", provider="firestore")
        return source

    except Exception as e:
        error_msg = f"Failed to initialize Firestore source for project '{config.project_id}': {e}"
        log.error(
            "get_remote_source_failed",
            project_id=config.project_id,
            error=str(e),
            error_type=type(e).__name__,
        )
        raise RuntimeError(error_msg) from e
