"""Clock provider. Injected into stores so expiry can be tested without waiting."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Protocol


class Clock(Protocol):
    def now(self) -> datetime:
        """Return current UTC time (datetime, tz-aware)."""
        ...


class SystemClock:
    """Wall-clock time of the serving process."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class UtcClock:
    """
    Wraps an injected clock so every reading is tz-aware UTC.

    Naive readings are taken to be UTC already; aware ones are converted.
    """

    def __init__(self, clock: Clock):
        self.inner = clock

    def now(self) -> datetime:
        value = self.inner.now()
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)
