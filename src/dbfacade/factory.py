"""Backend selection by engine."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from .backend import DatabaseBackendBase
from .config import ConnectionConfig, DatabaseEngine
from .mssql_backend import MssqlDatabase
from .mysql_backend import MysqlDatabase
from .postgres_backend import PostgresDatabase
from .sqlite_backend import SqliteDatabase

logger = logging.getLogger(__name__)

BACKENDS: dict[DatabaseEngine, type[DatabaseBackendBase]] = {
    DatabaseEngine.SQLITE: SqliteDatabase,
    DatabaseEngine.MYSQL: MysqlDatabase,
    DatabaseEngine.MSSQL: MssqlDatabase,
    DatabaseEngine.POSTGRESQL: PostgresDatabase,
}


def open_database(
    config: ConnectionConfig | str | None = None, **overrides: Any
) -> DatabaseBackendBase:
    """Create the backend for a configuration.

    The connection itself is opened lazily, on the first statement. The
    driver is imported right away so a missing optional dependency is
    reported here rather than on first use.

    Args:
        config: A ConnectionConfig, a database URL, or None to read the
            DBFACADE_URL environment variable
        **overrides: Field values applied on top of a URL

    Raises:
        ImportError: If the engine's driver package is not installed
        ValueError: If the configuration is invalid

    Example:
        with open_database("sqlite:///data/app.db") as db:
            db.query("CREATE TABLE IF NOT EXISTS notes (id INTEGER PRIMARY KEY, body TEXT)")
            note_id = db.insert("INSERT INTO notes (body) VALUES (?)", ["hello"])
    """
    if config is None:
        config = ConnectionConfig.from_env(**overrides)
    elif isinstance(config, str):
        config = ConnectionConfig.from_url(config, **overrides)
    elif overrides:
        config = ConnectionConfig.model_validate({**config.model_dump(), **overrides})

    backend_cls = BACKENDS[config.engine]
    backend = backend_cls(config)
    # Import the driver eagerly for a clear ImportError
    _ = backend.driver
    logger.debug(f"Created {backend_cls.__name__} for {config.redacted_url()}")
    return backend


def open_database_from_file(config_path: str | Path) -> DatabaseBackendBase:
    """Create the backend described by a YAML config file."""
    return open_database(ConnectionConfig.from_file(config_path))


__all__ = ["BACKENDS", "open_database", "open_database_from_file"]
