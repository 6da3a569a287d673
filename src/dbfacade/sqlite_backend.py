"""SQLite database backend implementation.

This module provides the SQLite backend, using the stdlib sqlite3 module.

Features:
    - Automatic busy_timeout for lock contention handling
    - Foreign key enforcement enabled
    - Path validation and parent directory creation
    - PRAGMA configuration via options
    - BEGIN DEFERRED / IMMEDIATE / EXCLUSIVE transactions
"""

from __future__ import annotations

import logging
import sqlite3
from pathlib import Path
from types import ModuleType
from typing import Any, ClassVar

from .backend import DatabaseBackendBase
from .config import DatabaseEngine
from .exceptions import DriverErrorInfo, SqlConnectionError, SqlSchemaError

logger = logging.getLogger(__name__)


class SqliteDatabase(DatabaseBackendBase):
    """SQLite backend using stdlib sqlite3.

    The connection is opened with ``isolation_level=None`` so sqlite3 never
    opens implicit transactions; explicit transactions are issued as SQL.

    Attributes:
        engine: DatabaseEngine.SQLITE
        DEFAULT_PRAGMAS: Default PRAGMA settings applied on connection

    Example:
        db = SqliteDatabase(ConnectionConfig(engine="sqlite", path="/data/app.db"))
        user = db.get_row("SELECT * FROM users WHERE id = ?", [42])
        db.close()
    """

    engine = DatabaseEngine.SQLITE

    DEFAULT_PRAGMAS: ClassVar[dict[str, str | int]] = {
        "foreign_keys": "ON",
    }

    ISOLATION_LEVELS: ClassVar[dict[str, str | None]] = {
        "deferred": "DEFERRED",
        "immediate": "IMMEDIATE",
        "exclusive": "EXCLUSIVE",
        # Server isolation levels: SQLite is always serializable, the lock
        # mode only decides when the write lock is taken
        "read_uncommitted": None,
        "read_committed": None,
        "repeatable_read": None,
        "serializable": "IMMEDIATE",
    }

    def _import_driver(self) -> ModuleType:
        return sqlite3

    def _open_connection(self) -> sqlite3.Connection:
        """Connect to SQLite database.

        Creates the parent directories of a file database if they don't exist.
        Applies PRAGMA settings from config.options or defaults.

        Raises:
            ValueError: If the config carries no path
            SqlConnectionError: If the parent directory cannot be created
        """
        path = self.config.path
        if not path:
            raise ValueError("SQLite requires 'path' parameter")

        # Handle special paths
        if path != ":memory:" and not path.startswith(("file:", ":")):
            try:
                Path(path).expanduser().parent.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                logger.debug(f"Creating the directory of {path} failed: {e}")
                raise SqlConnectionError(
                    "Connecting to database failed.", DriverErrorInfo(message=str(e))
                ) from e
            path = str(Path(path).expanduser())

        conn = sqlite3.connect(
            path,
            timeout=self.config.timeout,
            isolation_level=None,
            uri=path.startswith("file:"),
        )

        pragmas: dict[str, Any] = {**self.DEFAULT_PRAGMAS}
        pragmas["busy_timeout"] = self.config.timeout * 1000  # Convert to ms
        if self.config.options.get("sqlite_pragmas"):
            pragmas.update(self.config.options["sqlite_pragmas"])

        for pragma, value in pragmas.items():
            try:
                conn.execute(f"PRAGMA {pragma}={value}")
            except sqlite3.Error as e:
                logger.warning(f"Failed to set PRAGMA {pragma}={value}: {e}")

        return conn

    def _begin_statements(self, isolation: str | None) -> list[str]:
        return [f"BEGIN {isolation}" if isolation else "BEGIN"]

    def describe_error(self, exc: BaseException) -> DriverErrorInfo:
        """Describe a sqlite3 error using its extended result code.

        SQLite has no SQLSTATE; the result code name (e.g.
        SQLITE_CONSTRAINT_UNIQUE) prefixes the message instead.
        """
        name = getattr(exc, "sqlite_errorname", None)
        return DriverErrorInfo(
            code=getattr(exc, "sqlite_errorcode", None),
            message=f"{name}: {exc}" if name else str(exc),
        )

    def execute_script(self, sql: str) -> None:
        """Execute multi-statement SQL script.

        Outside a transaction this uses sqlite3's executescript(). Inside one
        the statements run one by one, because executescript() would commit
        the open transaction first.

        Raises:
            SqlSchemaError: If script execution fails
        """
        if self._in_transaction:
            super().execute_script(sql)
            return

        conn = self.get_connection()
        with self._translate(SqlSchemaError):
            conn.executescript(sql)
        logger.debug("Executed SQL script")


__all__ = ["SqliteDatabase"]
