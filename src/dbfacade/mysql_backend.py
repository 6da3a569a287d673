"""MySQL/MariaDB database backend implementation.

This module provides the MySQL backend, using PyMySQL, the pure-Python
driver that aiomysql is built on.

Features:
    - utf8mb4 connection character set by default
    - SSL/TLS support
    - Compatible with MySQL 5.7+ and MariaDB 10.2+
    - Transaction isolation levels via SET TRANSACTION

Note:
    Requires the 'PyMySQL' package: pip install dbfacade[mysql]
"""

from __future__ import annotations

import logging
from types import ModuleType
from typing import Any

from .backend import DatabaseBackendBase
from .config import DatabaseEngine
from .exceptions import DriverErrorInfo

logger = logging.getLogger(__name__)

DEFAULT_CHARSET = "utf8mb4"


def _import_pymysql() -> ModuleType:
    """Import PyMySQL with helpful error message if not installed."""
    try:
        import pymysql

        return pymysql
    except ImportError as e:
        raise ImportError(
            "MySQL backend requires 'PyMySQL' package. Install with: pip install dbfacade[mysql]"
        ) from e


class MysqlDatabase(DatabaseBackendBase):
    """MySQL/MariaDB backend using PyMySQL.

    Attributes:
        engine: DatabaseEngine.MYSQL

    Example:
        db = MysqlDatabase(ConnectionConfig(
            engine="mysql",
            host="localhost",
            database="mydb",
            username="user",
            password="pass",
        ))
        user_id = db.insert("INSERT INTO users (name) VALUES (?)", ["Alice"])
    """

    engine = DatabaseEngine.MYSQL

    def _import_driver(self) -> ModuleType:
        return _import_pymysql()

    def _open_connection(self) -> Any:
        """Open a connection.

        Connection settings:
            - charset: config.charset or utf8mb4
            - autocommit: True (explicit transactions override)
            - connect_timeout: config.connect_timeout
            - read_timeout / write_timeout: config.timeout
            - init_command: options["init_command"], if given
        """
        pymysql = self.driver
        config = self.config

        # PyMySQL only enables TLS for a non-empty dict of ssl options (ca, cert, key, ...)
        ssl: dict[str, Any] | None = None
        if config.ssl:
            ssl = {
                "check_hostname": config.ssl == "verify-full",
                **config.options.get("ssl_options", {}),
            }

        logger.debug(f"Opening MySQL connection to {config.redacted_url()} (ssl={bool(ssl)})")
        return pymysql.connect(
            host=config.host,
            port=config.port or 3306,
            database=config.database,
            user=config.username,
            password=config.password_value() or "",
            charset=config.charset or DEFAULT_CHARSET,
            autocommit=True,
            connect_timeout=config.connect_timeout,
            read_timeout=config.timeout,
            write_timeout=config.timeout,
            init_command=config.options.get("init_command"),
            ssl=ssl,
        )

    def _begin_statements(self, isolation: str | None) -> list[str]:
        statements = []
        if isolation:
            statements.append(f"SET TRANSACTION ISOLATION LEVEL {isolation}")
        statements.append("START TRANSACTION")
        return statements

    def describe_error(self, exc: BaseException) -> DriverErrorInfo:
        """Describe a PyMySQL error.

        PyMySQL errors carry ``args == (errno, message)``.
        """
        args = getattr(exc, "args", ())
        if len(args) >= 2 and isinstance(args[0], int):
            return DriverErrorInfo(code=args[0], message=str(args[1]))
        return DriverErrorInfo(message=str(exc))


__all__ = ["MysqlDatabase"]
