"""Microsoft SQL Server database backend implementation.

This module provides the SQL Server backend, using the pymssql client
library (FreeTDS).

Features:
    - UTF-8 client character set
    - Generated ids read with SCOPE_IDENTITY() in the same batch as the INSERT
    - Server error number and message on every translated error

Note:
    Requires the 'pymssql' package: pip install dbfacade[mssql]
"""

from __future__ import annotations

import logging
from types import ModuleType
from typing import Any, ClassVar

from .backend import DatabaseBackendBase, normalize_insert_id
from .config import DatabaseEngine
from .exceptions import DriverErrorInfo
from .param_converter import strip_terminator

logger = logging.getLogger(__name__)

DEFAULT_CHARSET = "UTF-8"


def _import_pymssql() -> ModuleType:
    """Import pymssql with helpful error message if not installed."""
    try:
        import pymssql

        return pymssql
    except ImportError as e:
        raise ImportError(
            "SQL Server backend requires 'pymssql' package. "
            "Install with: pip install dbfacade[mssql]"
        ) from e


class MssqlDatabase(DatabaseBackendBase):
    """SQL Server backend using pymssql.

    Attributes:
        engine: DatabaseEngine.MSSQL

    Example:
        db = MssqlDatabase(ConnectionConfig(
            engine="mssql",
            host="sql01",
            database="crm",
            username="app",
            password="pass",
        ))
        customer_id = db.insert("INSERT INTO customers (name) VALUES (?)", ["Acme"])
    """

    engine = DatabaseEngine.MSSQL

    COMMIT_SQL: ClassVar[str] = "COMMIT TRANSACTION"
    ROLLBACK_SQL: ClassVar[str] = "ROLLBACK TRANSACTION"

    ISOLATION_LEVELS: ClassVar[dict[str, str | None]] = {
        "read_uncommitted": "READ UNCOMMITTED",
        "read_committed": "READ COMMITTED",
        "repeatable_read": "REPEATABLE READ",
        "serializable": "SERIALIZABLE",
        "snapshot": "SNAPSHOT",
        # SQLite modes map to closest equivalents
        "deferred": None,
        "immediate": "SERIALIZABLE",
        "exclusive": "SERIALIZABLE",
    }

    def _import_driver(self) -> ModuleType:
        return _import_pymssql()

    def _open_connection(self) -> Any:
        """Open a connection.

        Connection settings:
            - charset: config.charset or UTF-8
            - autocommit: True (explicit transactions override)
            - login_timeout: config.connect_timeout
            - timeout: config.timeout (query timeout)
        """
        pymssql = self.driver
        config = self.config

        logger.debug(f"Opening SQL Server connection to {config.redacted_url()}")
        return pymssql.connect(
            server=config.host,
            port=str(config.port or 1433),
            database=config.database,
            user=config.username,
            password=config.password_value(),
            charset=config.charset or DEFAULT_CHARSET,
            autocommit=True,
            login_timeout=config.connect_timeout,
            timeout=config.timeout,
            appname=config.options.get("appname"),
        )

    def _begin_statements(self, isolation: str | None) -> list[str]:
        statements = []
        if isolation:
            statements.append(f"SET TRANSACTION ISOLATION LEVEL {isolation}")
        statements.append("BEGIN TRANSACTION")
        return statements

    def _insert_statement(self, sql: str) -> str:
        """Append SCOPE_IDENTITY() so the id is read in the INSERT's own scope.

        The batch separator goes on its own line so a trailing ``--`` comment
        cannot swallow the SELECT.
        """
        return f"{strip_terminator(sql, self.engine.backslash_escapes)}\n; SELECT SCOPE_IDENTITY()"

    def _last_insert_id(self, cursor: Any) -> int | None:
        """Read SCOPE_IDENTITY() from the first result set that carries rows.

        SCOPE_IDENTITY() is NULL when the INSERT generated no identity value.
        """
        while True:
            if cursor.description:
                row = cursor.fetchone()
                return normalize_insert_id(row[0]) if row else None
            if not cursor.nextset():
                return None

    def describe_error(self, exc: BaseException) -> DriverErrorInfo:
        """Describe a pymssql error.

        pymssql errors carry the server's ``(number, message_bytes)`` pair,
        either as their args or as their single argument.
        """
        args = getattr(exc, "args", ())
        if len(args) == 1 and isinstance(args[0], tuple):
            args = args[0]
        if len(args) >= 2 and isinstance(args[0], int):
            message = args[1]
            if isinstance(message, bytes):
                message = message.decode("utf-8", errors="replace")
            return DriverErrorInfo(code=args[0], message=str(message).strip())
        return DriverErrorInfo(message=str(exc))


__all__ = ["MssqlDatabase"]
