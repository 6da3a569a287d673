"""Uniform exception family raised by every database backend.

Driver errors never escape a backend directly. Each backend catches its
driver's DB-API ``Error`` at the boundary and re-raises one of the classes
below with the driver exception chained as ``__cause__``:

    SqlError
    ├── SqlConnectionError   opening the connection failed
    ├── SqlQueryError        a statement failed
    ├── SqlTransactionError  begin / commit / rollback failed
    ├── SqlSchemaError       a multi-statement script failed
    └── SqlParameterError    a parameter could not be bound (also TypeError)
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class DriverErrorInfo:
    """Driver-neutral description of a driver error.

    Attributes:
        code: Native error number (MySQL errno, SQL Server error number,
            SQLite extended result code), when the driver exposes one
        sqlstate: Five-character SQLSTATE, when the driver exposes one
        message: Driver message text
    """

    code: int | None = None
    sqlstate: str | None = None
    message: str = ""

    def format(self) -> str:
        """Render as ``"<SQLSTATE>\\n\\n<message>"`` (SQLSTATE omitted when unknown)."""
        if self.sqlstate and self.message:
            return f"{self.sqlstate}\n\n{self.message}"
        return self.message or self.sqlstate or "Unknown database error"


class SqlError(Exception):
    """Base exception for all database errors.

    Attributes:
        code: Native driver error code, if known
        sqlstate: SQLSTATE, if known
        detail: Driver message, if known
    """

    default_message = "Database operation failed."

    def __init__(self, message: str | None = None, info: DriverErrorInfo | None = None):
        self.info = info or DriverErrorInfo()
        self.code = self.info.code
        self.sqlstate = self.info.sqlstate
        self.detail = self.info.message
        super().__init__(message or self.default_message)

    def __str__(self) -> str:
        message = super().__str__()
        if self.detail:
            return f"{message}\n{self.info.format()}"
        return message

    def __repr__(self) -> str:
        """Developer-friendly representation."""
        return (
            f"{type(self).__name__}({self.args[0]!r}, code={self.code!r}, "
            f"sqlstate={self.sqlstate!r})"
        )


class SqlConnectionError(SqlError):
    """Failed to establish database connection."""

    default_message = "Connecting to database failed."


class SqlQueryError(SqlError):
    """SQL execution failed."""

    default_message = "Query execution failed."


class SqlTransactionError(SqlError):
    """Starting, committing or rolling back a transaction failed."""

    default_message = "Transaction operation failed."


class SqlSchemaError(SqlError):
    """Multi-statement script execution failed."""

    default_message = "Script execution failed."


class SqlParameterError(SqlError, TypeError):
    """A parameter value has a type that cannot be bound, or the
    placeholders and parameters do not fit together."""

    default_message = "Unsupported parameter type."


__all__ = [
    "DriverErrorInfo",
    "SqlError",
    "SqlConnectionError",
    "SqlQueryError",
    "SqlTransactionError",
    "SqlSchemaError",
    "SqlParameterError",
]
