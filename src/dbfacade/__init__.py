"""Minimal synchronous database access facade.

This package provides a uniform interface for executing parameterized SQL,
fetching rows and values, and managing transactions across multiple database
backends: SQLite, MySQL/MariaDB, SQL Server and PostgreSQL.

Features:
    - One placeholder dialect (? and :name) for every backend
    - Parameter type coercion (datetime, date, bool, ...)
    - Timestamp strings in results converted to datetime
    - Uniform SqlError exception family with driver code / SQLSTATE
    - Lazy connections in autocommit mode, explicit transactions

Usage:
    from dbfacade import ConnectionConfig, open_database

    # SQLite (always available)
    db = open_database("sqlite:///data/app.db")

    # MySQL (requires PyMySQL)
    db = open_database(ConnectionConfig(
        engine="mysql",
        host="localhost",
        database="mydb",
        username="user",
        password="pass",
    ))

    rows = db.get_data("SELECT * FROM users WHERE status = ?", ["active"])
    with db.transaction():
        user_id = db.insert("INSERT INTO users (name) VALUES (:name)", {"name": "Alice"})
"""

from .backend import Database, DatabaseBackendBase
from .config import ConnectionConfig, DatabaseEngine
from .exceptions import (
    DriverErrorInfo,
    SqlConnectionError,
    SqlError,
    SqlParameterError,
    SqlQueryError,
    SqlSchemaError,
    SqlTransactionError,
)
from .factory import open_database, open_database_from_file
from .mssql_backend import MssqlDatabase
from .mysql_backend import MysqlDatabase
from .param_converter import ParamConverter, Params, bind_value, convert_sql_for_engine
from .postgres_backend import PostgresDatabase
from .sqlite_backend import SqliteDatabase
from .values import convert_database_value

__version__ = "0.1.0"

__all__ = [
    # Core types
    "ConnectionConfig",
    "Database",
    "DatabaseBackendBase",
    "DatabaseEngine",
    "Params",
    # Exceptions
    "DriverErrorInfo",
    "SqlConnectionError",
    "SqlError",
    "SqlParameterError",
    "SqlQueryError",
    "SqlSchemaError",
    "SqlTransactionError",
    # Binding and conversion
    "ParamConverter",
    "bind_value",
    "convert_database_value",
    "convert_sql_for_engine",
    # Backends
    "MssqlDatabase",
    "MysqlDatabase",
    "PostgresDatabase",
    "SqliteDatabase",
    "open_database",
    "open_database_from_file",
]
