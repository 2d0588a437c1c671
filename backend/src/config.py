"""Application configuration via environment variables.

Provides type-safe settings loading using pydantic-settings.
Environment variables can be loaded from a .env file.
"""

from functools import lru_cache
from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    All settings have sensible defaults for development. List settings are
    read as JSON arrays, e.g. POLISH_SOURCE_KEYWORDS='["polish", "gel"]'.

    Environment Variables:
        DATABASE_URL: SQLAlchemy connection string for the SQL stores
        LOG_LEVEL: Logging level (default INFO)
        LOG_JSON: Emit JSON log lines (default True)
        STORE_TIMEOUT_SECONDS: Timeout for every external store call
        OFFER_CACHE_MAX_ENTRIES: Bound of the per-batch offer cache
        PICKLIST_MAX_WORKERS: Worker threads per batch (1 = sequential)
        PREFERENCE_RETENTION_DAYS: Age after which unused preferences expire
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # Database
    DATABASE_URL: str = "sqlite:///./picklist.db"

    # Application
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = True
    ENVIRONMENT: str = "development"

    # Store access
    STORE_TIMEOUT_SECONDS: float = Field(default=5.0, gt=0)
    OFFER_CACHE_MAX_ENTRIES: int = Field(default=1000, ge=1)
    PICKLIST_MAX_WORKERS: int = Field(default=1, ge=1, le=32)

    # Preference retention
    PREFERENCE_RETENTION_DAYS: int = Field(default=365, ge=1, le=3650)

    # Matching
    MATCH_PREFIX_LENGTH: int = Field(default=15, ge=1)
    MIN_ITEM_TEXT_LENGTH: int = Field(default=3, ge=1)
    MAX_ALTERNATIVES: int = Field(default=3, ge=0)
    WORD_SET_MIN_MATCHED_WORDS: int = Field(default=2, ge=1)

    POLISH_SOURCE_KEYWORDS: List[str] = ["polish", "gel", "lacquer", "color", "duo"]
    POLISH_DESCRIPTION_KEYWORDS: List[str] = ["polish", "gel", "lacquer"]
    TOOL_SOURCE_KEYWORDS: List[str] = ["brush", "tool", "dotting", "file", "buffer"]
    TOOL_DESCRIPTION_KEYWORDS: List[str] = ["brush", "tool", "file"]
    IMPORTANT_WORD_STOPLIST: List[str] = [
        "nail", "polish", "color", "glue", "tool", "brush", "size"
    ]


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance.

    Uses lru_cache for singleton behavior.
    Call get_settings.cache_clear() to reload settings.
    """
    return Settings()
