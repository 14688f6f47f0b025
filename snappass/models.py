from __future__ import annotations

import uuid
from datetime import datetime, timedelta
from enum import Enum
from typing import Union

from pydantic import BaseModel


class TimeToLive(str, Enum):
    HOUR = "hour"
    DAY = "day"
    WEEK = "week"
    MONTH = "month"

    @property
    def hours(self) -> int:
        return _TTL_HOURS[self]

    @property
    def duration(self) -> timedelta:
        return timedelta(hours=self.hours)

    @classmethod
    def parse(cls, value: Union[str, int, "TimeToLive"]) -> "TimeToLive":
        """
        Accept a TimeToLive, its name in any case, or the legacy integer
        codes (0=hour, 1=day, 2=week, 3=month).
        """
        if isinstance(value, TimeToLive):
            return value
        if isinstance(value, int) and not isinstance(value, bool):
            members = list(cls)
            if 0 <= value < len(members):
                return members[value]
            raise ValueError(f"Unknown time-to-live code: {value}")
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        raise ValueError(
            f"Unknown time-to-live {value!r}. Expected one of: {[t.value for t in cls]}"
        )


# Months are a flat 31 days (217 * 24 = 5208 hours), not calendar months.
_TTL_HOURS = {
    TimeToLive.HOUR: 1,
    TimeToLive.DAY: 24,
    TimeToLive.WEEK: 168,
    TimeToLive.MONTH: 5208,
}


def new_handle() -> str:
    """
    Mint a storage handle: 128 random bits as 32 lowercase hex characters.

    Hex never contains the token separator, so a handle always survives
    token encoding unchanged.
    """
    return uuid.uuid4().hex


class SecretRecord(BaseModel):
    handle: str
    ciphertext: str  # base64, never the plaintext
    created_at: datetime
    expires_at: datetime

    model_config = {"frozen": True}

    @classmethod
    def create(
        cls, handle: str, ciphertext: str, ttl: TimeToLive, now: datetime
    ) -> "SecretRecord":
        # Whole seconds only: the durable backend persists second precision,
        # and both backends must agree on when a record expires.
        created = now.replace(microsecond=0)
        return cls(
            handle=handle,
            ciphertext=ciphertext,
            created_at=created,
            expires_at=created + TimeToLive.parse(ttl).duration,
        )

    def is_expired(self, now: datetime) -> bool:
        return now > self.expires_at
