from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from vault.sqlite_store import SqliteStore, build_engine
from vault.store import MemoryStore


class FakeClock:
    """Controllable clock for expiry tests."""

    def __init__(self, start: datetime | None = None):
        self._now = start or datetime(2024, 3, 1, 12, 0, 0, tzinfo=timezone.utc)

    def now(self) -> datetime:
        return self._now

    def advance(self, **kwargs) -> None:
        self._now += timedelta(**kwargs)

    def set(self, when: datetime) -> None:
        self._now = when


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def db_url(tmp_path):
    return f"sqlite:///{tmp_path / 'snappass.db'}"


@pytest.fixture
def memory_store(clock):
    return MemoryStore(clock=clock)


@pytest.fixture
def sqlite_store(db_url, clock):
    engine = build_engine(db_url)
    store = SqliteStore(engine, clock=clock)
    store.create_schema()
    yield store
    engine.dispose()


@pytest.fixture
def sqlite_memory_store(clock):
    engine = build_engine("sqlite://")
    store = SqliteStore(engine, clock=clock)
    store.create_schema()
    yield store
    engine.dispose()


@pytest.fixture(params=["memory", "sqlite", "sqlite_memory"])
def store(request):
    """Every behaviour in the shared contract runs against every backend."""
    return request.getfixturevalue(f"{request.param}_store")
