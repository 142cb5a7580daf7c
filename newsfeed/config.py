"""
Configuration and settings for the newsfeed backend.

Environment variable names match the field names, upper-cased
(``SUPABASE_URL``, ``SUPABASE_KEY``, ``LOCAL_STORE_URL``...).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from typing import Optional
from urllib.parse import urlparse

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class BackendMode(str, Enum):
    REMOTE = "remote"
    LOCAL = "local"


@dataclass(frozen=True)
class BackendConfig:
    """Which backend to bind, decided once at start-up."""

    mode: BackendMode
    service_url: Optional[str] = None
    service_key: Optional[str] = None
    local_store_url: str = "sqlite:///newsfeed_local.db"
    local_jwt_secret: str = "dev-secret-change-me"
    local_token_ttl_minutes: int = 1440
    request_timeout_seconds: float = 10.0


def is_valid_service_url(value: Optional[str]) -> bool:
    if not value:
        return False
    parsed = urlparse(value.strip())
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def is_valid_service_key(value: Optional[str]) -> bool:
    return bool(value) and not any(ch.isspace() for ch in value)


class Settings(BaseSettings):
    """Environment-backed settings for the FastAPI service."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    api_prefix: str = Field(default="/api")
    log_level: str = Field(default="INFO")

    # Hosted Postgres service
    supabase_url: Optional[str] = Field(default=None)
    supabase_key: Optional[str] = Field(default=None)
    request_timeout_seconds: float = Field(default=10.0, gt=0)

    # Local fallback
    local_store_url: str = Field(default="sqlite:///newsfeed_local.db")
    local_jwt_secret: str = Field(default="dev-secret-change-me")
    local_token_ttl_minutes: int = Field(default=1440, gt=0)

    # S3-compatible avatar storage
    avatar_bucket: Optional[str] = Field(default=None)
    s3_endpoint: Optional[str] = Field(default=None)
    s3_region: Optional[str] = Field(default=None)
    aws_access_key_id: Optional[str] = Field(default=None)
    aws_secret_access_key: Optional[str] = Field(default=None)

    def backend_config(self) -> BackendConfig:
        """Bind the remote backend only when both service values are usable."""
        url_ok = is_valid_service_url(self.supabase_url)
        key_ok = is_valid_service_key(self.supabase_key)
        if url_ok and key_ok:
            mode = BackendMode.REMOTE
        else:
            mode = BackendMode.LOCAL
            if self.supabase_url or self.supabase_key:
                logger.warning(
                    "Remote service configuration incomplete or malformed "
                    "(url ok: %s, key ok: %s); using local fallback",
                    url_ok,
                    key_ok,
                )
        return BackendConfig(
            mode=mode,
            service_url=self.supabase_url.strip() if url_ok else None,
            service_key=self.supabase_key if key_ok else None,
            local_store_url=self.local_store_url,
            local_jwt_secret=self.local_jwt_secret,
            local_token_ttl_minutes=self.local_token_ttl_minutes,
            request_timeout_seconds=self.request_timeout_seconds,
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
