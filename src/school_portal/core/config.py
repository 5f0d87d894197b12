# src/school_portal/core/config.py
from __future__ import annotations

from typing import Optional

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # ---- App ----
    APP_NAME: str = "School Portal"
    APP_VERSION: str = "0.1.0"
    LOG_LEVEL: str = Field(
        default="INFO",
        validation_alias=AliasChoices("PORTAL_LOG_LEVEL", "LOG_LEVEL"),
    )

    # ---- DB ----
    # Unset means "no relational backend": startup falls back to in-memory storage.
    DATABASE_URL: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("DATABASE_URL", "ASYNC_DATABASE_URL"),
    )
    DB_ECHO: bool = False

    # Small bounded pool; managed Postgres plans cap connections aggressively.
    DB_POOL_SIZE: int = 5
    DB_MAX_OVERFLOW: int = 0
    DB_POOL_TIMEOUT: int = 10
    DB_POOL_RECYCLE: int = 60 * 30
    DB_IDLE_TIMEOUT: int = 20
    DB_CONNECT_TIMEOUT: int = 10
    DB_COMMAND_TIMEOUT: int = 30
    DB_SSL_REQUIRE: bool = False
    DB_APPLICATION_NAME: str = "school-portal"

    # ---- Retry ----
    DB_RETRY_ATTEMPTS: int = Field(default=3, ge=1, le=10)
    DB_RETRY_BASE_DELAY: float = Field(default=1.0, ge=0.0)
    DB_RETRY_MULTIPLIER: float = Field(default=2.0, ge=1.0)

    # ---- Pydantic settings config ----
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        env_ignore_empty=True,
        populate_by_name=True,
    )

    @field_validator("DATABASE_URL", mode="before")
    @classmethod
    def _blank_url_is_unset(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @property
    def use_database(self) -> bool:
        return bool(self.DATABASE_URL)


def get_settings() -> Settings:
    """Read settings fresh from the environment (and ``.env``)."""
    return Settings()


__all__ = ["Settings", "get_settings"]
