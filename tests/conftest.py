"""
Shared pytest fixtures for the MR-ROBOT test suite.

Stores are faked at the pool level: the mediator is given a pool_factory
that returns FakePool objects, so no database is needed.
"""

from contextlib import contextmanager
from typing import Any, Dict, List, Optional

import psycopg
import pytest
from psycopg_pool import PoolClosed

from mrrobot.config import MediatorConfig, StoreConfig, reload_config
from mrrobot.storage import DualStoreMediator, StoreIdentity
from mrrobot.storage.mediator import PROBE_QUERY

ENV_KEYS = [
    f"{prefix}_{field}"
    for prefix in ("STORE_A", "STORE_B", "DB")
    for field in ("HOST", "PORT", "USER", "PASSWORD", "DATABASE")
] + ["DB_NAME", "DB_POOL_MAX_SIZE", "DB_CONNECT_TIMEOUT", "DB_POOL_MAX_IDLE",
     "NODE_ENV", "ENV", "VALID_API_KEYS", "AUTH_MODE"]


class FakeStore:
    """Behaviour of one fake Postgres store."""

    def __init__(self, identity: StoreIdentity, journal: List[Any]):
        self.identity = identity
        self.journal = journal
        self.rows: List[Dict[str, Any]] = []
        self.rowcount: Optional[int] = None
        self.query_error: Optional[Exception] = None
        self.probe_error: Optional[Exception] = None
        self.open_error: Optional[Exception] = None
        # Raised when a connection is checked out of the pool
        self.connection_error: Optional[Exception] = None
        self.calls: List[Any] = []
        self.probes = 0
        self.pools: List["FakePool"] = []


class FakeCursor:
    def __init__(self, store: FakeStore):
        self.store = store
        self.description = None
        self.rowcount = -1
        self._rows: List[Dict[str, Any]] = []

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def execute(self, sql, params=None):
        if sql == PROBE_QUERY:
            self.store.probes += 1
            if self.store.probe_error is not None:
                raise self.store.probe_error
            self._rows = [{"?column?": 1}]
            self.description = [("?column?",)]
            self.rowcount = 1
            return self

        self.store.calls.append((sql, params))
        self.store.journal.append(self.store.identity)
        if self.store.query_error is not None:
            raise self.store.query_error

        if sql.lstrip().upper().startswith(("SELECT", "WITH")) or "RETURNING" in sql.upper():
            self._rows = list(self.store.rows)
            self.description = [(name,) for name in (self._rows[0] if self._rows else {"id": None})]
        else:
            self._rows = []
            self.description = None

        if self.store.rowcount is not None:
            self.rowcount = self.store.rowcount
        else:
            self.rowcount = len(self._rows)
        return self

    def fetchall(self):
        if self.description is None:
            raise psycopg.ProgrammingError("the last operation didn't produce a result")
        return list(self._rows)


class FakeConnection:
    def __init__(self, store: FakeStore):
        self.store = store

    def cursor(self):
        return FakeCursor(self.store)


class FakePool:
    def __init__(self, config: StoreConfig, store: FakeStore):
        self.config = config
        self.store = store
        self.opened = False
        self.closed = False
        store.pools.append(self)

    def open(self, wait=False, timeout=30.0):
        if self.store.open_error is not None:
            raise self.store.open_error
        self.opened = True

    @contextmanager
    def connection(self, timeout=None):
        if self.closed:
            raise PoolClosed(f"the pool '{self.config.identity.key}' is already closed")
        if self.store.connection_error is not None:
            raise self.store.connection_error
        yield FakeConnection(self.store)

    def close(self, timeout=5.0):
        self.closed = True


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep the developer's shell environment and cached config out of the tests."""
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    yield
    monkeypatch.undo()
    reload_config()


@pytest.fixture
def journal() -> List[StoreIdentity]:
    """Order in which stores received statements."""
    return []


@pytest.fixture
def store_a(journal) -> FakeStore:
    return FakeStore(StoreIdentity.A, journal)


@pytest.fixture
def store_b(journal) -> FakeStore:
    return FakeStore(StoreIdentity.B, journal)


def make_store_config(identity: StoreIdentity, configured: bool = True) -> StoreConfig:
    if not configured:
        return StoreConfig(identity=identity)
    return StoreConfig(
        identity=identity,
        host=f"{identity.provider}.db.example.com",
        user="mrrobot",
        password="secret",
        database="MrRobot_ComputerService",
    )


@pytest.fixture
def mediator_config() -> MediatorConfig:
    return MediatorConfig(
        store_a=make_store_config(StoreIdentity.A),
        store_b=make_store_config(StoreIdentity.B),
    )


@pytest.fixture
def pool_factory(store_a, store_b):
    stores = {StoreIdentity.A: store_a, StoreIdentity.B: store_b}

    def factory(config: StoreConfig) -> FakePool:
        return FakePool(config, stores[config.identity])

    return factory


@pytest.fixture
def mediator(mediator_config, pool_factory) -> DualStoreMediator:
    """Uninitialized mediator over two fake stores."""
    return DualStoreMediator(mediator_config, pool_factory=pool_factory)


@pytest.fixture
def ready_mediator(mediator):
    """Initialized mediator, shut down after the test."""
    mediator.initialize()
    yield mediator
    mediator.shutdown()

