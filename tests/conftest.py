import asyncio

import pytest
from sqlalchemy import text
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from valet.checks.checker import ExternalChecker
from valet.config import get_settings


class RecordingChecker(ExternalChecker):
    """In-memory checker that records every call it receives."""

    def __init__(self, known=None, fail_tables=(), delays=None, on_call=None):
        self.known = {key: set(values) for key, values in (known or {}).items()}
        self.fail_tables = set(fail_tables)
        self.delays = delays or {}
        self.on_call = on_call
        self.calls = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def check_existence(self, cancellation, table, column, values, filters):
        self.calls.append((table, column, tuple(values), tuple(filters)))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.on_call is not None:
                self.on_call(table, column, values)
            delay = self.delays.get(table, 0)
            if delay:
                await asyncio.sleep(delay)
            if table in self.fail_tables:
                raise ConnectionError(f"{table} store unavailable")
            present = self.known.get((table, column), set())
            return {v: v in present for v in values}
        finally:
            self.in_flight -= 1


@pytest.fixture(autouse=True)
def fresh_settings(monkeypatch):
    """Settings read from a clean environment for every test."""
    for name in ("VALET_DISPATCH_MAX_CONCURRENCY", "VALET_DISPATCH_TIMEOUT_SECONDS", "VALET_DATABASE_URL"):
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def checker_factory():
    return RecordingChecker


@pytest.fixture
def catalog_checker():
    return RecordingChecker(known={
        ("products", "id"): {1, 2, 3},
        ("users", "email"): {"taken@example.com", "me@example.com"},
        ("users", "username"): {"bob"},
        ("tags", "name"): {"python", "go"},
    })


async def make_catalog_engine():
    """In-memory SQLite catalog shared by one event loop."""
    engine = create_async_engine("sqlite+aiosqlite://", poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.execute(text("CREATE TABLE products (id INTEGER PRIMARY KEY, sku TEXT, active INTEGER)"))
        await conn.execute(text(
            "INSERT INTO products (id, sku, active) VALUES (1, 'A-1', 1), (2, 'B-2', 0), (3, 'C-3', 1)"
        ))
        await conn.execute(text("CREATE TABLE users (id INTEGER PRIMARY KEY, email TEXT)"))
        await conn.execute(text("INSERT INTO users (id, email) VALUES (1, 'taken@example.com')"))
    return engine


@pytest.fixture
def catalog_engine():
    return make_catalog_engine
