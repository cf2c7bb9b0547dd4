"""
Centralized configuration management using Pydantic Settings.

This module provides type-safe configuration management with validation,
loading settings from environment variables and .env files.
"""

import logging
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Repository layer settings loaded from environment variables.

    All settings can be overridden via environment variables
    (DATABASE_URL, AUTOCOMMIT, DEFAULT_PER_PAGE, ...).
    """

    # Database Configuration
    database_url: str = Field(
        default="sqlite:///./data/repositories.db",
        description="SQLAlchemy database URL used by the default container"
    )
    database_echo: bool = Field(
        default=False,
        description="Echo emitted SQL through the sqlalchemy.engine logger"
    )

    # Repository behaviour
    autocommit: bool = Field(
        default=True,
        description="Commit the session after create/update/delete (flush only when false)"
    )
    default_per_page: int = Field(
        default=15,
        ge=1,
        description="Page size used by paginate() when neither caller nor model gives one"
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Root logging level"
    )
    log_json: bool = Field(
        default=True,
        description="Emit logs as single-line JSON objects"
    )

    # Pydantic Settings Configuration
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("database_url")
    @classmethod
    def validate_database_url(cls, v: str) -> str:
        """
        Validate database URL format.

        Only synchronous SQLAlchemy drivers are accepted; the repository
        layer never awaits.
        """
        if not v or v.strip() == "":
            raise ValueError("DATABASE_URL is required and cannot be empty")

        valid_schemes = [
            "sqlite",
            "postgresql",
            "postgresql+psycopg2",
            "postgresql+psycopg",
            "mysql+pymysql",
        ]
        if not any(v.startswith(scheme + "://") for scheme in valid_schemes):
            raise ValueError(
                f"DATABASE_URL must start with one of: {', '.join(valid_schemes)}. "
                f"Got: {v[:20]}..."
            )
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Normalize the level name and reject unknown ones."""
        level = v.strip().upper()
        if level not in logging.getLevelNamesMapping():
            raise ValueError(f"LOG_LEVEL must be a logging level name, got: {v}")
        return level


@lru_cache
def get_settings() -> Settings:
    """
    Return the process-wide settings instance.

    Cached so the environment and .env file are read once; call
    get_settings.cache_clear() to reload.
    """
    return Settings()
