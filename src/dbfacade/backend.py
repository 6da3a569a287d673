"""Database interface protocol and shared DB-API backend implementation.

This module defines the uniform interface every backend offers, and the
abstract base class that implements it once on top of the DB-API 2.0 driver
contract. A concrete backend only supplies:

    - how to import its driver and open a connection
    - how to describe a driver error (code, SQLSTATE, message)
    - the statements that begin, commit and roll back a transaction
    - how to read the id generated by an INSERT, where the default differs

Connections are opened lazily on first use and in autocommit mode, so every
statement outside an explicit transaction commits on its own.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from types import ModuleType
from typing import TYPE_CHECKING, Any, ClassVar, Protocol, runtime_checkable

from .config import ConnectionConfig, DatabaseEngine
from .exceptions import (
    DriverErrorInfo,
    SqlConnectionError,
    SqlError,
    SqlQueryError,
    SqlSchemaError,
    SqlTransactionError,
)
from .param_converter import ParamConverter, Params, split_statements
from .values import convert_database_row, convert_database_value

if TYPE_CHECKING:
    from typing import Self

logger = logging.getLogger(__name__)

# Isolation levels shared by the server engines. SQLite lock modes map to the
# closest equivalent.
SERVER_ISOLATION_LEVELS: dict[str, str | None] = {
    "read_uncommitted": "READ UNCOMMITTED",
    "read_committed": "READ COMMITTED",
    "repeatable_read": "REPEATABLE READ",
    "serializable": "SERIALIZABLE",
    "deferred": None,
    "immediate": "SERIALIZABLE",
    "exclusive": "SERIALIZABLE",
}


@runtime_checkable
class Database(Protocol):
    """Protocol defining the uniform interface of every database backend.

    Example:
        def active_users(db: Database) -> list[dict[str, Any]]:
            return db.get_data("SELECT * FROM users WHERE status = ?", ["active"])
    """

    engine: DatabaseEngine

    def get_connection(self) -> Any:
        """Return the underlying driver connection, opening it on first use.

        Raises:
            SqlConnectionError: If the connection cannot be opened
        """
        ...

    def get_data(self, sql: str, params: Params = None) -> list[dict[str, Any]]:
        """Return every row as a dict of column name to value."""
        ...

    def get_row(self, sql: str, params: Params = None) -> dict[str, Any]:
        """Return the first row, or an empty dict when there is none."""
        ...

    def get_value(self, sql: str, params: Params = None) -> Any:
        """Return the first column of the first row, or None when there is none."""
        ...

    def get_values(self, sql: str, params: Params = None) -> list[Any]:
        """Return the first column of every row."""
        ...

    def insert(self, sql: str, params: Params = None) -> int | None:
        """Execute an INSERT and return the generated id, or None."""
        ...

    def query(self, sql: str, params: Params = None) -> None:
        """Execute a statement for its side effects."""
        ...

    def start_transaction(self, isolation_level: str | None = None) -> None:
        """Begin an explicit transaction.

        Raises:
            SqlTransactionError: If the transaction cannot be started
        """
        ...

    def rollback_transaction(self) -> None:
        """Roll back the current transaction.

        Raises:
            SqlTransactionError: If rollback fails or no transaction is active
        """
        ...

    def commit_transaction(self) -> None:
        """Commit the current transaction.

        Raises:
            SqlTransactionError: If commit fails or no transaction is active
        """
        ...


class DatabaseBackendBase(ABC):
    """Abstract base class for DB-API backed databases.

    Implements the full ``Database`` interface plus batch execution, script
    execution, a transaction context manager and connection lifecycle.

    Attributes:
        engine: Engine this backend serves
        ISOLATION_LEVELS: Accepted isolation level names mapped to the engine's
            own keyword (None means the engine default)
        COMMIT_SQL: Statement that commits a transaction
        ROLLBACK_SQL: Statement that rolls a transaction back
    """

    engine: ClassVar[DatabaseEngine]
    ISOLATION_LEVELS: ClassVar[dict[str, str | None]] = SERVER_ISOLATION_LEVELS
    COMMIT_SQL: ClassVar[str] = "COMMIT"
    ROLLBACK_SQL: ClassVar[str] = "ROLLBACK"

    def __init__(self, config: ConnectionConfig) -> None:
        """Initialize backend. No connection is opened until first use.

        Raises:
            ValueError: If the config targets a different engine
        """
        if config.engine is not self.engine:
            raise ValueError(
                f"{type(self).__name__} requires a {self.engine.value} config, "
                f"got {config.engine.value}"
            )
        self.config = config
        self._conn: Any = None
        self._in_transaction: bool = False
        self._driver: ModuleType | None = None
        self._converter = ParamConverter(self.engine.paramstyle, self.engine.backslash_escapes)

    # ------------------------------------------------------------------
    # Backend hooks
    # ------------------------------------------------------------------

    @abstractmethod
    def _import_driver(self) -> ModuleType:
        """Import and return the DB-API driver module."""

    @abstractmethod
    def _open_connection(self) -> Any:
        """Open a driver connection in autocommit mode.

        Driver errors propagate; ``get_connection`` translates them.
        """

    @abstractmethod
    def _begin_statements(self, isolation: str | None) -> list[str]:
        """Statements that begin a transaction at the given engine isolation keyword."""

    def describe_error(self, exc: BaseException) -> DriverErrorInfo:
        """Describe a driver error. Backends refine this for their driver."""
        return DriverErrorInfo(message=str(exc))

    def _insert_statement(self, sql: str) -> str:
        """SQL actually sent for an insert."""
        return sql

    def _last_insert_id(self, cursor: Any) -> int | None:
        """Read the generated id after an insert (0 or empty means none)."""
        return normalize_insert_id(cursor.lastrowid)

    # ------------------------------------------------------------------
    # Connection lifecycle
    # ------------------------------------------------------------------

    @property
    def driver(self) -> ModuleType:
        """The DB-API driver module, imported on first access."""
        if self._driver is None:
            self._driver = self._import_driver()
        return self._driver

    @property
    def driver_error(self) -> type[BaseException]:
        """The driver's DB-API ``Error`` base class."""
        error_cls: type[BaseException] = self.driver.Error
        return error_cls

    def get_connection(self) -> Any:
        """Return the driver connection, opening it on first use.

        Raises:
            SqlConnectionError: If the connection cannot be opened
        """
        if self._conn is None:
            driver_error = self.driver_error
            try:
                self._conn = self._open_connection()
            except driver_error as e:
                logger.debug(f"Connecting to {self.config.redacted_url()} failed: {e}")
                raise SqlConnectionError(
                    "Connecting to database failed.", self.describe_error(e)
                ) from e
            logger.debug(f"Connected to {self.config.redacted_url()}")
        return self._conn

    def close(self) -> None:
        """Close the connection.

        Safe to call multiple times or if never connected. An open transaction
        is discarded by the driver.
        """
        if self._conn is None:
            return

        conn, self._conn = self._conn, None
        self._in_transaction = False
        with self._translate(SqlConnectionError, "Closing connection failed."):
            conn.close()
        logger.debug(f"Disconnected from {self.config.redacted_url()}")

    @property
    def connected(self) -> bool:
        """Check if a connection is open."""
        return self._conn is not None

    def __enter__(self) -> Self:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.config.redacted_url()!r})"

    # ------------------------------------------------------------------
    # Statement execution
    # ------------------------------------------------------------------

    @contextmanager
    def _translate(self, error_cls: type[SqlError], message: str | None = None) -> Iterator[None]:
        """Re-raise driver errors raised in the block as ``error_cls``."""
        try:
            yield
        except self.driver_error as e:
            raise error_cls(message, self.describe_error(e)) from e

    @contextmanager
    def _statement(
        self,
        sql: str,
        params: Params = None,
        error_cls: type[SqlError] = SqlQueryError,
    ) -> Iterator[Any]:
        """Execute one statement and yield its open cursor.

        Parameter errors are raised before the driver is touched and are not
        translated.
        """
        statement, bound = self._converter.prepare(sql, params)
        connection = self.get_connection()

        with self._translate(error_cls):
            cursor = connection.cursor()
            try:
                if bound is None:
                    cursor.execute(statement)
                else:
                    cursor.execute(statement, bound)
                yield cursor
            finally:
                cursor.close()

    def get_data(self, sql: str, params: Params = None) -> list[dict[str, Any]]:
        """Execute a query and return every row.

        Args:
            sql: SQL statement using ? or :name placeholders
            params: Positional (sequence) or named (mapping) parameters

        Returns:
            List of rows, each a dict of column name to value (empty list when
            there are no rows)

        Raises:
            SqlQueryError: If execution fails
            SqlParameterError: If a parameter cannot be bound
        """
        with self._statement(sql, params) as cursor:
            columns = _columns(cursor)
            if not columns:
                return []
            return [convert_database_row(dict(zip(columns, row))) for row in cursor.fetchall()]

    def get_row(self, sql: str, params: Params = None) -> dict[str, Any]:
        """Execute a query and return the first row, or ``{}`` when there is none."""
        with self._statement(sql, params) as cursor:
            columns = _columns(cursor)
            row = cursor.fetchone() if columns else None
            if row is None:
                return {}
            return convert_database_row(dict(zip(columns, row)))

    def get_value(self, sql: str, params: Params = None) -> Any:
        """Execute a query and return the first column of the first row.

        Returns:
            The converted value, or None when there is no row
        """
        with self._statement(sql, params) as cursor:
            row = cursor.fetchone() if cursor.description else None
            if row is None:
                return None
            return convert_database_value(row[0])

    def get_values(self, sql: str, params: Params = None) -> list[Any]:
        """Execute a query and return the first column of every row."""
        with self._statement(sql, params) as cursor:
            if not cursor.description:
                return []
            return [convert_database_value(row[0]) for row in cursor.fetchall()]

    def insert(self, sql: str, params: Params = None) -> int | None:
        """Execute an INSERT.

        Returns:
            The id generated for a single-column primary key, or None when no
            id was generated
        """
        with self._statement(self._insert_statement(sql), params) as cursor:
            return self._last_insert_id(cursor)

    def query(self, sql: str, params: Params = None) -> None:
        """Execute a statement for its side effects (UPDATE, DELETE, DDL, ...)."""
        with self._statement(sql, params):
            pass

    def execute_many(self, sql: str, params_list: Sequence[Params]) -> int:
        """Execute the same statement once per parameter set.

        Runs inside the caller's transaction when one is active, otherwise in a
        transaction of its own, so the batch applies entirely or not at all.

        Returns:
            Total number of affected rows
        """
        if self._in_transaction:
            return self._execute_each(sql, params_list)
        with self.transaction():
            return self._execute_each(sql, params_list)

    def _execute_each(self, sql: str, params_list: Sequence[Params]) -> int:
        total_affected = 0
        for params in params_list:
            with self._statement(sql, params) as cursor:
                if cursor.rowcount and cursor.rowcount > 0:
                    total_affected += cursor.rowcount
        return total_affected

    def execute_script(self, sql: str) -> None:
        """Execute a multi-statement SQL script (schema creation, fixtures).

        The default implementation runs the statements one by one.

        Raises:
            SqlSchemaError: If any statement fails
        """
        connection = self.get_connection()
        with self._translate(SqlSchemaError):
            cursor = connection.cursor()
            try:
                for statement in split_statements(sql, self.engine.backslash_escapes):
                    cursor.execute(statement)
            finally:
                cursor.close()
        logger.debug("Executed SQL script")

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    @property
    def in_transaction(self) -> bool:
        """Check if an explicit transaction is active."""
        return self._in_transaction

    def resolve_isolation_level(self, isolation_level: str | None) -> str | None:
        """Map an isolation level name to the engine keyword.

        Raises:
            ValueError: If the name is unknown
        """
        if isolation_level is None or isolation_level.lower() == "default":
            return None
        key = isolation_level.lower()
        if key not in self.ISOLATION_LEVELS:
            raise ValueError(
                f"Unknown isolation level '{isolation_level}'. "
                f"Supported: {', '.join(sorted(self.ISOLATION_LEVELS))}"
            )
        return self.ISOLATION_LEVELS[key]

    def start_transaction(self, isolation_level: str | None = None) -> None:
        """Begin a transaction with optional isolation level.

        Args:
            isolation_level: read_uncommitted, read_committed, repeatable_read,
                serializable, or the SQLite lock modes deferred, immediate,
                exclusive. Each maps to the closest equivalent on other engines.

        Raises:
            SqlTransactionError: If a transaction is already active or the
                driver refuses to start one
            ValueError: If the isolation level is unknown
        """
        statements = self._begin_statements(self.resolve_isolation_level(isolation_level))
        if self._in_transaction:
            raise SqlTransactionError(
                "Starting transaction failed.",
                DriverErrorInfo(message="A transaction is already active"),
            )

        self._run_control(statements, "Starting transaction failed.")
        self._in_transaction = True
        logger.debug(f"Started transaction (isolation={isolation_level})")

    def commit_transaction(self) -> None:
        """Commit the current transaction.

        Raises:
            SqlTransactionError: If no transaction is active or commit fails
        """
        if not self._in_transaction:
            raise SqlTransactionError(
                "Committing transaction failed.", DriverErrorInfo(message="No active transaction")
            )

        self._run_control([self.COMMIT_SQL], "Committing transaction failed.")
        self._in_transaction = False
        logger.debug("Committed transaction")

    def rollback_transaction(self) -> None:
        """Roll back the current transaction.

        Raises:
            SqlTransactionError: If no transaction is active or rollback fails
        """
        if not self._in_transaction:
            raise SqlTransactionError(
                "Rolling back transaction failed.",
                DriverErrorInfo(message="No active transaction"),
            )

        try:
            self._run_control([self.ROLLBACK_SQL], "Rolling back transaction failed.")
        finally:
            # The server discards the transaction even when ROLLBACK reports an error
            self._in_transaction = False
        logger.debug("Rolled back transaction")

    @contextmanager
    def transaction(self, isolation_level: str | None = None) -> Iterator[Self]:
        """Run a block inside a transaction.

        Commits when the block finishes, rolls back and re-raises when it
        raises (KeyboardInterrupt included). A commit the server refuses, such
        as a deferred constraint violation, is rolled back before the
        SqlTransactionError propagates, so the connection never stays inside
        the failed transaction.

        Example:
            with db.transaction():
                order_id = db.insert("INSERT INTO orders (customer) VALUES (?)", [7])
                db.query("INSERT INTO order_lines (order_id) VALUES (?)", [order_id])
        """
        self.start_transaction(isolation_level)
        try:
            yield self
        except BaseException:
            self.rollback_transaction()
            raise
        try:
            self.commit_transaction()
        except SqlTransactionError:
            # A refused COMMIT leaves the transaction open on the server
            try:
                self.rollback_transaction()
            except SqlTransactionError:
                logger.warning("Rollback after failed commit also failed", exc_info=True)
            raise

    def _run_control(self, statements: list[str], message: str) -> None:
        """Run transaction control statements without parameters."""
        connection = self.get_connection()
        with self._translate(SqlTransactionError, message):
            cursor = connection.cursor()
            try:
                for statement in statements:
                    cursor.execute(statement)
            finally:
                cursor.close()


def _columns(cursor: Any) -> list[str]:
    """Column names of the current result set (empty when there is none)."""
    if not cursor.description:
        return []
    return [desc[0] for desc in cursor.description]


def normalize_insert_id(value: Any) -> int | None:
    """Normalize a driver-reported insert id (None, 0 and '' mean no id)."""
    if value is None or value == "" or value == 0:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


__all__ = [
    "Database",
    "DatabaseBackendBase",
    "SERVER_ISOLATION_LEVELS",
    "normalize_insert_id",
]
