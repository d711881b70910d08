"""
chathub configuration: all environment variables in one place.

Read from environment once at import. Components that need a setting get it
passed in at construction; only the wiring modules read `settings` directly.
"""

from __future__ import annotations

import os


def _bool_env(name: str, default: str = "false") -> bool:
    return os.environ.get(name, default).lower() == "true"


class Settings:
    """Application settings from environment variables."""

    # Database
    DATABASE_URL: str = os.environ.get("DATABASE_URL", "")

    # Auth
    JWT_SECRET: str = os.environ.get("JWT_SECRET", "")
    JWT_ALGORITHM: str = os.environ.get("JWT_ALGORITHM", "HS256")
    JWT_EXPIRY_HOURS: int = int(os.environ.get("JWT_EXPIRY_HOURS", "168"))  # 7 days

    # Google sign-in
    GOOGLE_CLIENT_ID: str = os.environ.get("GOOGLE_CLIENT_ID", "")

    # Free tier
    FREE_TIER_LIMIT: int = int(os.environ.get("FREE_TIER_LIMIT", "5"))  # per user per bot

    # AI Providers
    OPENAI_API_KEY: str = os.environ.get("OPENAI_API_KEY", "")
    ANTHROPIC_API_KEY: str = os.environ.get("ANTHROPIC_API_KEY", "")
    USE_MOCK_LLM: bool = _bool_env("USE_MOCK_LLM")
    PROVIDER_TIMEOUT_SECONDS: float = float(os.environ.get("PROVIDER_TIMEOUT_SECONDS", "60"))

    # In-flight reservations older than this stop counting against the limit
    RESERVATION_TTL_SECONDS: int = int(os.environ.get("RESERVATION_TTL_SECONDS", "600"))

    # Application
    ENVIRONMENT: str = os.environ.get("ENVIRONMENT", "development")
    LOG_LEVEL: str = os.environ.get("LOG_LEVEL", "INFO")

    @property
    def JWT_EXPIRY_SECONDS(self) -> int:
        return self.JWT_EXPIRY_HOURS * 3600


# Singleton instance
settings = Settings()

# Validate required settings (skip provider keys in test mode)
_testing = _bool_env("TESTING")

if not settings.DATABASE_URL:
    raise RuntimeError("DATABASE_URL environment variable is required")
if not settings.JWT_SECRET:
    raise RuntimeError("JWT_SECRET environment variable is required")

if not _testing and not settings.USE_MOCK_LLM:
    if not settings.OPENAI_API_KEY:
        raise RuntimeError("OPENAI_API_KEY environment variable is required")
