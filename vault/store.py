from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from typing import Dict, Optional

from snappass.errors import DuplicateHandleError
from snappass.models import SecretRecord, TimeToLive, new_handle

from .clock import Clock, SystemClock, UtcClock

logger = logging.getLogger(__name__)


class SecretStore(ABC):
    """
    Read-once, TTL-bounded holder of encrypted secrets.

    Records are keyed by storage handle. A record is handed out by
    ``retrieve`` at most once, and never after it expires. Expiry is checked
    lazily on access; nothing sweeps in the background.
    """

    def __init__(self, clock: Optional[Clock] = None, log: Optional[logging.Logger] = None):
        self.clock = UtcClock(clock or SystemClock())
        self.log = log or logger

    @abstractmethod
    def has(self, handle: str) -> bool:
        ...

    @abstractmethod
    def store(self, ciphertext: str, handle: str, ttl: TimeToLive) -> None:
        """
        Raises:
            DuplicateHandleError: a record with this handle already exists
        """
        ...

    @abstractmethod
    def retrieve(self, handle: Optional[str]) -> Optional[str]:
        """Consume the record: return its ciphertext once, or None."""
        ...

    @abstractmethod
    def purge_expired(self) -> int:
        """Drop every expired record. Returns the number removed."""
        ...

    def put(self, ciphertext: str, ttl: TimeToLive) -> str:
        """Store under a freshly minted handle and return the handle."""
        handle = new_handle()
        self.store(ciphertext, handle, ttl)
        return handle

    def _warn_null(self) -> None:
        self.log.warning("Tried to retrieve null key")

    def _warn_unknown(self, handle: str) -> None:
        self.log.warning(f"Tried to retrieve password for unknown key [{handle}]")

    def _warn_expired(self, record: SecretRecord) -> None:
        self.log.warning(
            f"Tried to retrieve password for key [{record.handle}] after date is expired. "
            f"Key set at [{record.created_at}] and expired at [{record.expires_at}]"
        )


class MemoryStore(SecretStore):
    """
    Volatile store: a dict in process memory, lost on restart.

    One lock guards the whole map; check, read and delete happen inside it,
    so two racing readers can never both see the same ciphertext.
    """

    def __init__(self, clock: Optional[Clock] = None, log: Optional[logging.Logger] = None):
        super().__init__(clock, log)
        self._items: Dict[str, SecretRecord] = {}
        self._lock = threading.Lock()

    def has(self, handle: str) -> bool:
        with self._lock:
            return handle in self._items

    def store(self, ciphertext: str, handle: str, ttl: TimeToLive) -> None:
        record = SecretRecord.create(handle, ciphertext, ttl, self.clock.now())
        with self._lock:
            if handle in self._items:
                raise DuplicateHandleError(f"Handle already stored: {handle}")
            self._items[handle] = record

    def retrieve(self, handle: Optional[str]) -> Optional[str]:
        if not handle:
            self._warn_null()
            return None

        with self._lock:
            record = self._items.pop(handle, None)

        if record is None:
            self._warn_unknown(handle)
            return None
        if record.is_expired(self.clock.now()):
            self._warn_expired(record)
            return None
        return record.ciphertext

    def purge_expired(self) -> int:
        now = self.clock.now()
        with self._lock:
            expired = [h for h, r in self._items.items() if r.is_expired(now)]
            for h in expired:
                del self._items[h]
        if expired:
            self.log.info(f"Purged {len(expired)} expired secrets")
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)
