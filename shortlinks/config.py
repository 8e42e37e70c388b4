"""Configuration management for the link shortener.

This module provides centralized configuration management using Pydantic BaseSettings
with environment variable support and caching for performance.

Flow Diagram — get_settings()
=============================
::
    ┌─────────────┐
    │  Call get_  │
    │  settings() │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Check cache  │
    │ (lru_cache)  │
    └──────┬──────┘
    HIT?  │
    ┌─────┴─────┐
    │ NO         │ YES
    ▼            ▼
┌─────────┐  ┌─────────┐
│ Create  │  │ Return  │
│ Settings│  │ cached  │
│ + check │  │ value   │
│ salt    │  └─────────┘
└─────────┘

How to Use
===========
**Step 1 — Import**::
    from shortlinks.config import get_settings

**Step 2 — Get settings**::
    settings = get_settings()
    pool_size = settings.MAX_POOL_SIZE

**Step 3 — Override through the environment**::
    HASH_SALT="a long random string" APP_ENV=production uvicorn shortlinks.main:app

Key Behaviours
===============
- Settings are cached after first access for performance.
- Environment variables override defaults automatically.
- The default salt is rejected in production and only tolerated elsewhere.
- Changing HASH_SALT invalidates every token issued under the previous salt.

Classes:
    Settings:  Pydantic model for all configuration values.

"""

__all__ = ["DEFAULT_SALT", "Settings", "get_settings"]

from functools import lru_cache

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Shipped so the service boots out of the box. Never use it for real tokens.
DEFAULT_SALT = "Please change me!! I'll make you a sandwich!"


class Settings(BaseSettings):
    APP_NAME: str = "shortlinks"
    APP_ENV: str = "development"
    BASE_URL: str = "http://localhost:8080"
    LOG_LEVEL: str = "INFO"

    # PostgreSQL
    DATABASE_URL: str = "postgresql+asyncpg://shortlinks:shortlinks@db:5432/shortlinks"

    # Connection pool
    MAX_POOL_SIZE: int = 20
    POOL_TIMEOUT_SECONDS: float = 5.0

    # Gateway replies; None waits until the store answers
    REQUEST_TIMEOUT_SECONDS: float | None = None

    # Token codec
    HASH_SALT: str = DEFAULT_SALT
    HASH_MIN_LENGTH: int = 0

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
    )

    @field_validator("MAX_POOL_SIZE")
    @classmethod
    def validate_pool_size(cls, v: int) -> int:
        if v < 1:
            raise ValueError("MAX_POOL_SIZE must be a positive integer")
        return v

    @field_validator("POOL_TIMEOUT_SECONDS", "REQUEST_TIMEOUT_SECONDS")
    @classmethod
    def validate_timeouts(cls, v: float | None) -> float | None:
        if v is not None and v <= 0:
            raise ValueError("timeouts must be positive")
        return v

    @field_validator("HASH_MIN_LENGTH")
    @classmethod
    def validate_min_length(cls, v: int) -> int:
        if v < 0:
            raise ValueError("HASH_MIN_LENGTH must not be negative")
        return v

    @field_validator("HASH_SALT")
    @classmethod
    def validate_salt(cls, v: str) -> str:
        if not v:
            raise ValueError("HASH_SALT must be a non-empty string")
        return v

    @model_validator(mode="after")
    def reject_default_salt_in_production(self) -> "Settings":
        if self.APP_ENV == "production" and self.uses_default_salt:
            raise ValueError("HASH_SALT must be changed from its default value in production")
        return self

    @property
    def uses_default_salt(self) -> bool:
        return self.HASH_SALT == DEFAULT_SALT


@lru_cache()
def get_settings() -> Settings:
    return Settings()
