"""
Configuration Management for Actual Context

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
The ledger credentials, the Mongo connection and the logging knobs are
the only external inputs. Ledger values are treated as opaque strings -
we check that they are present, never what they look like.
"""

from functools import lru_cache
from typing import Any, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ActualSettings(BaseSettings):
    """Actual Budget server configuration."""

    model_config = SettingsConfigDict(
        env_prefix="ACTUAL_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    server_url: str = Field(
        default="http://localhost:5006",
        description="Base URL of the Actual sync server"
    )
    server_password: str = Field(
        default="",
        description="Password for the Actual sync server"
    )
    data_dir: str = Field(
        default="/data/actual",
        description="Local directory where downloaded budgets are kept"
    )
    budget_id: Optional[str] = Field(
        default=None,
        description="Default budget (sync id) used when a tool does not name one"
    )
    encryption_password: Optional[str] = Field(
        default=None,
        description="End-to-end encryption password, if the budget uses one"
    )

    @field_validator("budget_id", "encryption_password")
    @classmethod
    def blank_as_none(cls, v: Optional[str]) -> Optional[str]:
        """An empty env var means 'not set'."""
        if v is not None and not v.strip():
            return None
        return v


class MongoDbSettings(BaseSettings):
    """MongoDB configuration for the annotation store."""

    model_config = SettingsConfigDict(
        env_prefix="MONGODB_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    uri: str = Field(
        ...,
        description="MongoDB connection string"
    )
    db_name: str = Field(
        default="actual_context",
        description="Database holding the annotation collection"
    )
    collection_name: str = Field(
        default="entity_contexts",
        description="Collection holding one document per annotated entity"
    )

    # Pool settings
    max_pool_size: int = Field(default=10, ge=1)
    min_pool_size: int = Field(default=2, ge=0)
    max_idle_time_ms: int = Field(default=30000, ge=0)
    server_selection_timeout_ms: int = Field(
        default=5000,
        ge=100,
        description="How long to wait for a reachable server before failing"
    )


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    server_name: str = Field(
        default="actual-context",
        description="Name advertised to MCP clients"
    )
    log_level: str = Field(
        default="INFO",
        description="Root log level"
    )
    log_json: bool = Field(
        default=True,
        description="Render logs as JSON (False gives console output)"
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.strip().upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Note: These are loaded lazily to allow partial configuration

    @property
    def actual(self) -> ActualSettings:
        return ActualSettings()

    @property
    def mongodb(self) -> MongoDbSettings:
        return MongoDbSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings(settings: Optional[Settings] = None) -> dict[str, Any]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}, plus
    {setting_name}_error entries for the groups that failed.
    """
    results = {}

    settings = settings or get_settings()

    for name in ("actual", "mongodb", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
