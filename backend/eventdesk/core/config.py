# backend/eventdesk/core/config.py

from __future__ import annotations

import logging
from typing import List
from urllib.parse import urlsplit, urlunsplit, parse_qsl, urlencode

from pydantic_settings import BaseSettings, SettingsConfigDict


def _strip_asyncpg_unsupported_params(url: str) -> str:
    """
    asyncpg does NOT accept sslmode or channel_binding as connect kwargs.
    If these appear in the URL query, SQLAlchemy can end up passing them to
    asyncpg.connect(), causing:
      TypeError: connect() got an unexpected keyword argument 'sslmode'
    """
    parts = urlsplit(url)
    if not parts.query:
        return url

    params = parse_qsl(parts.query, keep_blank_values=True)
    filtered = [(k, v) for (k, v) in params if k not in {"sslmode", "channel_binding"}]
    new_query = urlencode(filtered, doseq=True)
    return urlunsplit((parts.scheme, parts.netloc, parts.path, new_query, parts.fragment))


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # -----------------------------
    # Environment
    # -----------------------------
    # Use: development | staging | production
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    # -----------------------------
    # DB
    # -----------------------------
    DATABASE_URL_ASYNC: str = ""
    DATABASE_URL_SYNC: str = ""

    # -----------------------------
    # HTTP
    # -----------------------------
    CORS_ORIGINS: List[str] = [
        "http://localhost:5173",
        "http://127.0.0.1:5173",
    ]

    # -----------------------------
    # Revenue rules
    # -----------------------------
    # payment_source tag for sponsorship attributed to an internal target
    INTERNAL_QUOTA_SOURCE: str = "Chỉ tiêu"
    # referrer sentinel for guests acquired via advertising
    ADS_REFERRER: str = "ads"

    # -----------------------------
    # Summary cache
    # -----------------------------
    SUMMARY_CACHE_TTL_SECONDS: int = 300
    SUMMARY_CACHE_MAX_ENTRIES: int = 2000

    @property
    def DATABASE_URL_ASYNC_CLEAN(self) -> str:
        return _strip_asyncpg_unsupported_params(self.DATABASE_URL_ASYNC)

    def model_post_init(self, __context) -> None:  # pydantic v2 hook
        env = (self.ENVIRONMENT or "").strip().lower()

        if env in {"staging", "production"} and not self.DATABASE_URL_ASYNC.strip():
            raise ValueError("DATABASE_URL_ASYNC must be set in staging/production.")

        level = (self.LOG_LEVEL or "").strip().upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unsupported LOG_LEVEL={self.LOG_LEVEL!r}.")
        self.LOG_LEVEL = level

        if self.SUMMARY_CACHE_MAX_ENTRIES < 1:
            raise ValueError("SUMMARY_CACHE_MAX_ENTRIES must be at least 1.")


settings = Settings()
