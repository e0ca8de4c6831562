"""Data models for the live synchronization layer."""

from livesync.models.config import (
    AdminConfig,
    AppConfig,
    LoggingConfig,
    RemoteSourceConfig,
    SyncConfig,
)
from livesync.models.entities import (
    AppSettings,
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

__all__ = [
    "AdminConfig",
    "AppConfig",
    "AppSettings",
    "BaseEntity",
    "Category",
    "Label",
    "LoggingConfig",
    "MenuPage",
    "Notification",
    "Platform",
    "Product",
    "RemoteSourceConfig",
    "Report",
    "Slider",
    "SyncConfig",
]
