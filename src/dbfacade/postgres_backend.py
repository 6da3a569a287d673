"""PostgreSQL database backend implementation.

This module provides the PostgreSQL backend, using psycopg (v3).

Features:
    - SSL/TLS support via sslmode
    - statement_timeout from config.timeout
    - Generated ids via RETURNING
    - SQLSTATE and primary message from the server diagnostics

Note:
    Requires the 'psycopg' package: pip install dbfacade[postgresql]
"""

from __future__ import annotations

import logging
from types import ModuleType
from typing import Any

from .backend import DatabaseBackendBase, normalize_insert_id
from .config import DatabaseEngine
from .exceptions import DriverErrorInfo, SqlSchemaError

logger = logging.getLogger(__name__)


def _import_psycopg() -> ModuleType:
    """Import psycopg with helpful error message if not installed."""
    try:
        import psycopg

        return psycopg
    except ImportError as e:
        raise ImportError(
            "PostgreSQL backend requires 'psycopg' package. "
            "Install with: pip install dbfacade[postgresql]"
        ) from e


class PostgresDatabase(DatabaseBackendBase):
    """PostgreSQL backend using psycopg.

    PostgreSQL has no connection-level "last insert id"; ``insert`` returns the
    first column of the row produced by a RETURNING clause.

    Attributes:
        engine: DatabaseEngine.POSTGRESQL

    Example:
        db = PostgresDatabase(ConnectionConfig(
            engine="postgresql",
            host="localhost",
            database="mydb",
            username="user",
            password="pass",
        ))
        user_id = db.insert("INSERT INTO users (name) VALUES (?) RETURNING id", ["Alice"])
    """

    engine = DatabaseEngine.POSTGRESQL

    def _import_driver(self) -> ModuleType:
        return _import_psycopg()

    def _open_connection(self) -> Any:
        """Open a connection.

        Connection settings:
            - autocommit: True (explicit transactions override)
            - connect_timeout: config.connect_timeout
            - statement_timeout: config.timeout
            - sslmode: config.ssl (True means "require")
        """
        psycopg = self.driver
        config = self.config

        kwargs: dict[str, Any] = {
            "host": config.host,
            "port": config.port or 5432,
            "dbname": config.database,
            "user": config.username,
            "password": config.password_value(),
            "connect_timeout": config.connect_timeout,
            "options": f"-c statement_timeout={config.timeout * 1000}",
            "autocommit": True,
        }
        if config.ssl:
            kwargs["sslmode"] = "require" if config.ssl is True else config.ssl
        if config.options.get("application_name"):
            kwargs["application_name"] = config.options["application_name"]

        return psycopg.connect(**kwargs)

    def _begin_statements(self, isolation: str | None) -> list[str]:
        if isolation:
            return [f"BEGIN TRANSACTION ISOLATION LEVEL {isolation}"]
        return ["BEGIN"]

    def _last_insert_id(self, cursor: Any) -> int | None:
        """Read the id from a RETURNING clause, None without one."""
        if not cursor.description:
            return None
        row = cursor.fetchone()
        return normalize_insert_id(row[0]) if row else None

    def execute_script(self, sql: str) -> None:
        """Execute multi-statement SQL script in one round trip.

        Without parameters psycopg sends the script through the simple query
        protocol, which accepts several statements.
        """
        conn = self.get_connection()
        with self._translate(SqlSchemaError):
            conn.execute(sql)
        logger.debug("Executed PostgreSQL SQL script")

    def describe_error(self, exc: BaseException) -> DriverErrorInfo:
        """Describe a psycopg error using its SQLSTATE and diagnostics."""
        sqlstate = getattr(exc, "sqlstate", None)
        diag = getattr(exc, "diag", None)
        message = getattr(diag, "message_primary", None) or str(exc).strip()
        return DriverErrorInfo(sqlstate=sqlstate, message=message)


__all__ = ["PostgresDatabase"]
