"""
Configuration for the Expense Tracker API.

Values come from environment variables and an optional .env file.
"""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app_name: str = Field(
        default="Expense Tracker API",
        description="Title shown in the OpenAPI docs",
    )
    database_url: str = Field(
        default="sqlite:///./expense_tracker.db",
        description="SQLAlchemy database URL",
    )

    # Token signing
    secret_key: str = Field(
        ...,
        min_length=1,
        description="Secret used to sign access tokens",
    )
    jwt_algorithm: str = Field(default="HS256")
    access_token_expire_minutes: int = Field(
        default=60,
        ge=1,
        le=10080,
        description="Lifetime of an issued access token",
    )

    # Server
    host: str = Field(default="127.0.0.1")
    port: int = Field(default=8000, ge=1, le=65535)

    # Logging
    log_level: str = Field(default="INFO")
    log_json: bool = Field(
        default=True,
        description="Render log lines as JSON instead of console text",
    )


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()
