"""
Durable secret store on an embedded SQLite database.

Table:
    Secret(Key TEXT PRIMARY KEY, CreatedAt TEXT, ExpiresAt TEXT, EncryptedPassword TEXT)

Timestamps are stored as UTC text in a fixed format, written and parsed by a
TimestampFormat instance passed into the store. Retrieval deletes the row
with a single DELETE ... RETURNING statement, so of two concurrent readers
only one ever receives the row. Every delete also clears out rows that have
already expired.
"""

from __future__ import annotations

import logging
import threading
from contextlib import nullcontext
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from sqlalchemy import Column, MetaData, Table, Text, create_engine, delete, exists, insert, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.pool import StaticPool

from snappass.errors import CorruptStateError, DuplicateHandleError
from snappass.models import SecretRecord, TimeToLive

from .clock import Clock
from .store import SecretStore

logger = logging.getLogger(__name__)

metadata = MetaData()

secret_table = Table(
    "Secret",
    metadata,
    Column("Key", Text, primary_key=True),
    Column("CreatedAt", Text, nullable=False),
    Column("ExpiresAt", Text, nullable=False),
    Column("EncryptedPassword", Text, nullable=False),
)


class TimestampFormat:
    """
    Serialization strategy for persisted timestamps.

    Default layout ``yyyy-MM-dd HH:mm:ss`` in UTC. Fixed-width, so text
    comparison in SQL orders the same way as the datetimes do.
    """

    FORMAT = "%Y-%m-%d %H:%M:%S"

    def dump(self, value: datetime) -> str:
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc).strftime(self.FORMAT)

    def load(self, value: Optional[str]) -> datetime:
        if value is None:
            raise CorruptStateError("Missing timestamp")
        try:
            parsed = datetime.strptime(value, self.FORMAT)
        except (TypeError, ValueError) as e:
            raise CorruptStateError(f"Unparseable timestamp {value!r}") from e
        return parsed.replace(tzinfo=timezone.utc)


def build_engine(database_url: str) -> Engine:
    """
    Create an engine for the durable store.

    An in-memory SQLite database lives only as long as its connection, so it
    is pinned to a single shared connection.
    """
    if database_url in ("sqlite://", "sqlite:///:memory:"):
        return create_engine(
            database_url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    return create_engine(database_url, connect_args={"timeout": 15})


class SqliteStore(SecretStore):
    """
    Durable store: survives process restarts.

    Usage:
        store = SqliteStore(build_engine("sqlite:///snappass.db"))
        store.create_schema()
        handle = store.put(ciphertext, TimeToLive.DAY)
    """

    def __init__(
        self,
        engine: Engine,
        clock: Optional[Clock] = None,
        log: Optional[logging.Logger] = None,
        timestamps: Optional[TimestampFormat] = None,
    ):
        super().__init__(clock, log or logger)
        self.engine = engine
        self.timestamps = timestamps or TimestampFormat()
        # A StaticPool hands every thread the same DBAPI connection; statements
        # on it must not interleave.
        self._guard = threading.Lock() if isinstance(engine.pool, StaticPool) else nullcontext()

    def create_schema(self) -> None:
        """Create the Secret table if it does not exist yet."""
        with self._guard:
            metadata.create_all(self.engine)

    def has(self, handle: str) -> bool:
        stmt = select(exists().where(secret_table.c.Key == handle))
        with self._guard, self.engine.connect() as conn:
            return bool(conn.execute(stmt).scalar())

    def store(self, ciphertext: str, handle: str, ttl: TimeToLive) -> None:
        record = SecretRecord.create(handle, ciphertext, ttl, self.clock.now())
        stmt = insert(secret_table).values(
            Key=record.handle,
            CreatedAt=self.timestamps.dump(record.created_at),
            ExpiresAt=self.timestamps.dump(record.expires_at),
            EncryptedPassword=record.ciphertext,
        )
        try:
            with self._guard, self.engine.begin() as conn:
                conn.execute(stmt)
        except IntegrityError as e:
            raise DuplicateHandleError(f"Handle already stored: {handle}") from e

    def retrieve(self, handle: Optional[str]) -> Optional[str]:
        if not handle:
            self._warn_null()
            return None

        now = self.clock.now()
        take = (
            delete(secret_table)
            .where(secret_table.c.Key == handle)
            .returning(
                secret_table.c.Key,
                secret_table.c.CreatedAt,
                secret_table.c.ExpiresAt,
                secret_table.c.EncryptedPassword,
            )
        )
        with self._guard, self.engine.begin() as conn:
            row = conn.execute(take).mappings().first()
            # Materialize before the janitor runs on the same connection.
            row = dict(row) if row is not None else None
            self._sweep(conn, now)

        if row is None:
            self._warn_unknown(handle)
            return None

        try:
            record = self._to_record(row)
        except CorruptStateError as e:
            self.log.error(f"Discarded unreadable secret for key [{handle}]: {e}")
            return None

        if record.is_expired(now):
            self._warn_expired(record)
            return None
        return record.ciphertext

    def purge_expired(self) -> int:
        with self._guard, self.engine.begin() as conn:
            removed = self._sweep(conn, self.clock.now())
        if removed:
            self.log.info(f"Purged {removed} expired secrets")
        return removed

    def _sweep(self, conn: Any, now: datetime) -> int:
        stmt = delete(secret_table).where(secret_table.c.ExpiresAt < self.timestamps.dump(now))
        return conn.execute(stmt).rowcount or 0

    def _to_record(self, row: Dict[str, Any]) -> SecretRecord:
        return SecretRecord(
            handle=row["Key"],
            ciphertext=row["EncryptedPassword"],
            created_at=self.timestamps.load(row["CreatedAt"]),
            expires_at=self.timestamps.load(row["ExpiresAt"]),
        )
