"""Configuration management for datagate.

This module uses Pydantic Settings to load and validate configuration from
environment variables and .env files. Configuration is loaded once and is
immutable during runtime.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration settings.

    Settings are loaded from environment variables and .env files.
    All configuration values are validated at startup.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="DATAGATE_",
        case_sensitive=False,
        extra="ignore",
    )

    # Application Settings
    app_name: str = "datagate"
    app_version: str = "0.1.0"
    environment: Literal["development", "production", "testing"] = "development"
    debug: bool = False

    # Database Settings
    database_url: str = "sqlite+aiosqlite:///./dg_data/datagate.db"
    db_pool_size: int = 5
    db_max_overflow: int = 10
    db_pool_timeout: int = 30
    db_pool_recycle: int = 3600
    db_echo: bool = False

    # Logging Settings
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    log_format: Literal["json", "console"] = "json"

    # Permission Cache Settings
    access_cache_ttl_seconds: int = 900  # 15 minutes
    temporary_access_cache_ttl_seconds: int = 300  # 5 minutes
    scope_cache_ttl_seconds: int = 900
    rules_cache_ttl_seconds: int = 900

    # Evaluation Settings
    permission_check_timeout_seconds: float | None = Field(
        default=5.0,
        description="Upper bound for a single access check; None disables the bound",
    )
    warmup_resource_types: list[str] = Field(
        default=["Posts", "Comments", "Users", "Categories", "Tags"],
    )

    @field_validator(
        "access_cache_ttl_seconds",
        "temporary_access_cache_ttl_seconds",
        "scope_cache_ttl_seconds",
        "rules_cache_ttl_seconds",
    )
    @classmethod
    def validate_ttl(cls, v: int) -> int:
        """Cache TTLs must be positive."""
        if v <= 0:
            raise ValueError("Cache TTL must be a positive number of seconds")
        return v

    @field_validator("warmup_resource_types", mode="before")
    @classmethod
    def parse_resource_types(cls, v: str | list[str]) -> list[str]:
        """Parse resource types from comma-separated string or list."""
        if isinstance(v, str):
            return [item.strip() for item in v.split(",") if item.strip()]
        return v

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment == "development"

    @property
    def is_testing(self) -> bool:
        """Check if running in testing environment."""
        return self.environment == "testing"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Returns:
        Settings: Cached application settings instance.
    """
    return Settings()
