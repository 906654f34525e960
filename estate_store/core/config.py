"""
Settings for the storage core.

Values come from the environment or a local ``.env`` file. The SQL
backend uses SQLite unless DATABASE_URL names a PostgreSQL server.
"""
from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


class Settings(BaseSettings):
    """Environment-driven settings (names are case-insensitive)"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ---- app ----
    APP_NAME: str = "Estate Store"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = Field(default=False, alias="DEBUG")  # also echoes SQL

    # ---- backend selection ----
    # "database" (SQLAlchemy) or "memory" (volatile, per process)
    STORAGE_BACKEND: str = Field(default="database", alias="STORAGE_BACKEND")
    SEED_DEMO_DATA: bool = Field(default=False, alias="SEED_DEMO_DATA")

    # ---- SQL backend ----
    DATABASE_URL: str = Field(
        default="sqlite:///./data/estate.db",
        alias="DATABASE_URL"
    )
    # Ignored for SQLite
    DB_POOL_SIZE: int = Field(default=5, alias="DB_POOL_SIZE")
    DB_MAX_OVERFLOW: int = Field(default=10, alias="DB_MAX_OVERFLOW")

    # ---- result sizes ----
    SEARCH_HISTORY_LIMIT: int = Field(default=10, alias="SEARCH_HISTORY_LIMIT")
    ACTIVITY_LIMIT: int = Field(default=50, alias="ACTIVITY_LIMIT")
    FEATURED_LIMIT: int = Field(default=6, alias="FEATURED_LIMIT")

    # ---- logging ----
    LOG_LEVEL: str = Field(default="INFO", alias="LOG_LEVEL")
    LOG_FILE: Optional[str] = Field(default=None, alias="LOG_FILE")


settings = Settings()
