"""
DocHub configuration — all environment variables in one place.

Read from environment at runtime. Never hardcode secrets.
"""

from __future__ import annotations

import os
from pathlib import Path


class Settings:
    """Application settings from environment variables."""

    # Database (empty runs against the in-memory document store)
    DATABASE_URL: str = os.environ.get("DATABASE_URL", "")

    # Auth
    JWT_SECRET: str = os.environ.get("JWT_SECRET", "")
    JWT_ALGORITHM: str = os.environ.get("JWT_ALGORITHM", "HS256")
    JWT_EXPIRY_HOURS: int = int(os.environ.get("JWT_EXPIRY_HOURS", "24"))

    # Identity provider tokens exchanged at /auth/login
    IDP_SECRET: str = os.environ.get("IDP_SECRET", "") or JWT_SECRET

    # Per-profile admin-mode storage
    PROFILE_DIR: Path = Path(os.environ.get("PROFILE_DIR", str(Path.home() / ".dochub" / "profiles")))

    # Application
    ENVIRONMENT: str = os.environ.get("ENVIRONMENT", "development")
    TESTING: bool = os.environ.get("TESTING", "").lower() == "true"
    LOG_LEVEL: str = os.environ.get("LOG_LEVEL", "INFO").upper()

    @property
    def SECURE_COOKIES(self) -> bool:
        return self.ENVIRONMENT != "development" and not self.TESTING


# Singleton instance
settings = Settings()

# Validate required settings (skip in test mode)
if not settings.TESTING and not settings.JWT_SECRET:
    raise RuntimeError("JWT_SECRET environment variable is required")
