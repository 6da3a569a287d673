"""Shared test configuration for dbfacade tests.

Provides:
- SQLite databases (file-based and in-memory) with a small schema
- A fake DB-API driver for the server backends
- Environment isolation for DBFACADE_* variables
"""

from collections.abc import Iterator
from pathlib import Path

import pytest
from fake_dbapi import FakeDriver

from dbfacade import ConnectionConfig, SqliteDatabase

USERS_SCHEMA = """
CREATE TABLE users (
    id INTEGER PRIMARY KEY,
    name TEXT NOT NULL UNIQUE,
    active INTEGER NOT NULL DEFAULT 1,
    created_at TEXT
);
"""


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the developer's DBFACADE_* settings out of the tests."""
    monkeypatch.delenv("DBFACADE_URL", raising=False)
    monkeypatch.delenv("DBFACADE_LOG_LEVEL", raising=False)


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    """Path of a not-yet-created SQLite database file."""
    return tmp_path / "app.db"


@pytest.fixture
def db(db_path: Path) -> Iterator[SqliteDatabase]:
    """File-backed SQLite database with the users table."""
    database = SqliteDatabase(ConnectionConfig(engine="sqlite", path=str(db_path)))
    database.execute_script(USERS_SCHEMA)
    yield database
    database.close()


@pytest.fixture
def memory_db() -> Iterator[SqliteDatabase]:
    """Empty in-memory SQLite database."""
    database = SqliteDatabase(ConnectionConfig(engine="sqlite", path=":memory:"))
    yield database
    database.close()


@pytest.fixture
def fake_driver() -> FakeDriver:
    """Fake DB-API driver module for the server backends."""
    return FakeDriver()
