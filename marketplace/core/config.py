"""
Configuration helpers for the marketplace account core.

Settings are read once from environment variables so that services and
repositories never fetch os.environ directly.
"""

from dataclasses import dataclass
from functools import lru_cache
import os


@dataclass(frozen=True)
class Settings:
    """Typed view of environment variables."""

    app_env: str
    database_url: str
    public_base_url: str
    session_ttl_seconds: int
    stripe_secret_key: str
    stripe_currency: str
    stripe_account_type: str
    stripe_onboarding_refresh_path: str
    stripe_onboarding_return_path: str
    log_level: str


@lru_cache
def get_settings() -> Settings:
    """Read the current environment and build a Settings instance."""
    def _int(value: str, default: int = 0) -> int:
        try:
            return int(value)
        except (TypeError, ValueError):
            return default

    return Settings(
        app_env=(os.getenv("APP_ENV") or "dev").lower(),
        database_url=os.getenv("DATABASE_URL", ""),
        public_base_url=os.getenv("PUBLIC_BASE_URL", "http://localhost:8000").rstrip("/"),
        session_ttl_seconds=_int(os.getenv("SESSION_TTL_SECONDS", "86400"), 86400),
        stripe_secret_key=os.getenv("STRIPE_SECRET_KEY", ""),
        stripe_currency=(os.getenv("STRIPE_CURRENCY") or "usd").lower(),
        stripe_account_type=os.getenv("STRIPE_ACCOUNT_TYPE", "express"),
        stripe_onboarding_refresh_path=os.getenv("STRIPE_ONBOARDING_REFRESH_PATH", "/provider/onboarding/refresh"),
        stripe_onboarding_return_path=os.getenv("STRIPE_ONBOARDING_RETURN_PATH", "/provider/onboarding/complete"),
        log_level=(os.getenv("LOG_LEVEL") or "INFO").upper(),
    )
