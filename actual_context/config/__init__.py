"""Configuration package."""

from actual_context.config.settings import (
    ActualSettings,
    AppSettings,
    MongoDbSettings,
    Settings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "ActualSettings",
    "AppSettings",
    "MongoDbSettings",
    "Settings",
    "get_settings",
    "validate_all_settings",
]
