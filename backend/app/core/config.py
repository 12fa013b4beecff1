"""
Environment configuration — single source of truth for all settings.

Uses pydantic-settings for type-safe config with .env file support.
All values have sensible defaults for local development.

Usage:
    from backend.app.core.config import settings
    print(settings.NOTIFY_TIMEOUT_SECONDS)
"""

from __future__ import annotations

from functools import lru_cache
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application-wide settings loaded from environment variables or .env file.

    Precedence: env var > .env file > default value
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # ── Application ──
    APP_NAME: str = "Lost & Found Tracker"
    APP_VERSION: str = "1.0.0"
    ENVIRONMENT: str = "development"  # development | staging | production
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"  # DEBUG | INFO | WARNING | ERROR | CRITICAL

    # ── Server ──
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # ── CORS ──
    CORS_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://localhost:8000",
    ]
    CORS_ALLOW_ALL: bool = True  # False in production

    # ── Public portal ──
    PUBLIC_PORTAL_URL: Optional[str] = None  # base URL encoded in QR codes

    # ── Notifications ──
    NOTIFY_TIMEOUT_SECONDS: float = 10.0  # per-endpoint HTTP timeout
    NTFY_DEFAULT_HOST: str = "ntfy.sh"
    NOTIFY_USER_AGENT: str = "lost-found-tracker/1.0"

    # ── Captcha (Cloudflare Turnstile) ──
    TURNSTILE_SECRET_KEY: Optional[str] = None
    TURNSTILE_VERIFY_URL: str = (
        "https://challenges.cloudflare.com/turnstile/v0/siteverify"
    )

    # ── Rate limiting ──
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_SWEEP_SECONDS: int = 300  # expired-window sweep interval
    RATE_LIMIT_MAX_ENTRIES: int = 10_000  # bound on tracked identifiers

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"

    @property
    def is_development(self) -> bool:
        return self.ENVIRONMENT == "development"


@lru_cache()
def get_settings() -> Settings:
    """Cached settings singleton."""
    return Settings()


settings = get_settings()
