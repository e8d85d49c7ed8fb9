"""
Configuration management for the janitor resource tracker.
"""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings, read from the environment or a .env file."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # Database
    database_url: str = Field(default="sqlite:///./janitor_tracker.db")
    resource_table: str = Field(
        default="janitor_resources",
        description="Name of the table holding tracked resources.",
    )
    # Access is light and periodic, so the pool stays small
    db_pool_size: int = Field(default=2, ge=1)
    db_max_overflow: int = Field(default=0, ge=0)

    # Logging
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="json", description="'json' or 'console'")

    # Rules
    janitor_tag: str = Field(
        default="janitor",
        description="Tag owners use to exempt a resource or set its termination date.",
    )


@lru_cache()
def get_settings() -> Settings:
    """Get application settings."""
    return Settings()
