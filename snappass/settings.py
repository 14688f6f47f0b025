"""
Service configuration loaded from the environment.

Environment variables:
- SNAPPASS_STORE: "memory" (default) or "sqlite"
- SNAPPASS_DATABASE_URL: SQLAlchemy URL for the durable store
- SNAPPASS_DEFAULT_TTL: hour | day | week | month (default: hour)
- SNAPPASS_BASE_URL: prefix for share links (default: empty)
- SNAPPASS_LOG_LEVEL: logging level name (default: INFO)
- SNAPPASS_CREATE_SCHEMA: create the Secret table on startup (default: true)
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass

from snappass.models import TimeToLive

STORE_BACKENDS = ("memory", "sqlite")


def _opt(name: str, default: str) -> str:
    """Get optional environment variable with default."""
    return os.getenv(name, default)


def _opt_bool(name: str, default: bool) -> bool:
    """Parse boolean environment variable."""
    v = os.getenv(name)
    if v is None:
        return default
    return v.strip().lower() in ("1", "true", "yes", "y", "on")


@dataclass(frozen=True)
class Settings:
    """Runtime configuration for the secret exchange."""

    STORE: str = "memory"
    DATABASE_URL: str = "sqlite:///snappass.db"
    DEFAULT_TTL: TimeToLive = TimeToLive.HOUR
    BASE_URL: str = ""
    LOG_LEVEL: str = "INFO"
    CREATE_SCHEMA: bool = True

    def __post_init__(self) -> None:
        if self.STORE not in STORE_BACKENDS:
            raise RuntimeError(
                f"Invalid SNAPPASS_STORE {self.STORE!r}; expected one of {STORE_BACKENDS}"
            )
        if not isinstance(logging.getLevelName(self.LOG_LEVEL), int):
            raise RuntimeError(f"Invalid SNAPPASS_LOG_LEVEL {self.LOG_LEVEL!r}")

    @staticmethod
    def load() -> Settings:
        """Load settings from environment variables."""
        try:
            default_ttl = TimeToLive.parse(_opt("SNAPPASS_DEFAULT_TTL", "hour"))
        except ValueError as e:
            raise RuntimeError(f"Invalid SNAPPASS_DEFAULT_TTL: {e}") from e

        return Settings(
            STORE=_opt("SNAPPASS_STORE", "memory").strip().lower(),
            DATABASE_URL=_opt("SNAPPASS_DATABASE_URL", "sqlite:///snappass.db"),
            DEFAULT_TTL=default_ttl,
            BASE_URL=_opt("SNAPPASS_BASE_URL", "").rstrip("/"),
            LOG_LEVEL=_opt("SNAPPASS_LOG_LEVEL", "INFO").strip().upper(),
            CREATE_SCHEMA=_opt_bool("SNAPPASS_CREATE_SCHEMA", True),
        )
