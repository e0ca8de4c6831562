"""Data models for synchronization state and reports."""

from enum import Enum

from pydantic import BaseModel, Field


class StoreState(str, Enum):
    """Lifecycle states of a live store."""

    UNINITIALIZED = "uninitialized"
    SUBSCRIBING = "subscribing"
    SYNCED = "synced"
    SYNCED_ERROR = "synced_error"
    UNSUBSCRIBED = "unsubscribed"


class CascadeReport(BaseModel):
    """Result of a best-effort cascading update.

    Nothing is rolled back: ``failed`` documents still hold the old value.
    """

    collection: str = Field(..., description="Collection the dependent writes targeted")
    field: str = Field(..., description="Field that was rewritten")
    old_value: str = Field(..., description="Value being replaced")
    new_value: str = Field(..., description="Replacement value")
    updated_ids: list[str] = Field(
        default_factory=list, description="Documents whose update succeeded"
    )
    failed: dict[str, str] = Field(
        default_factory=dict, description="Document id to error message for failed updates"
    )

    @property
    def attempted(self) -> int:
        """Get number of dependent updates issued."""
        return len(self.updated_ids) + len(self.failed)

    @property
    def success(self) -> bool:
        """Check if every dependent update succeeded."""
        return len(self.failed) == 0
