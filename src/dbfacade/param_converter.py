"""Parameter binding and placeholder translation.

Calling code writes one SQL dialect of placeholders regardless of the backend:

    - ? (positional)
    - :name (named)

This module coerces the bound values to driver-safe types and rewrites the
placeholders into the DB-API ``paramstyle`` of the target driver:

    - qmark (sqlite3) - ? and :name are both native, nothing to rewrite
    - format / pyformat (PyMySQL, pymssql, psycopg) - %s and %(name)s

Placeholders inside string literals, quoted identifiers and comments are left
alone, and PostgreSQL ``::`` casts are not mistaken for named placeholders.
"""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from datetime import date, datetime
from typing import Any

from .config import DatabaseEngine
from .exceptions import SqlParameterError

# Type alias for query parameters
Params = Sequence[Any] | Mapping[str, Any] | None

# Bound parameters as handed to the driver
BoundParams = tuple[Any, ...] | dict[str, Any] | None

DATETIME_FORMAT = "%Y-%m-%d %H:%M:%S"

SUPPORTED_PARAMSTYLES = ("qmark", "format", "pyformat")

# Standard SQL: a quote inside a literal is escaped by doubling it
_STANDARD_QUOTES = r"""
        '(?:[^']|'')*'                  # string literal
      | "(?:[^"]|"")*"                  # quoted identifier
"""

# MySQL also treats backslash as an escape inside quotes
_BACKSLASH_QUOTES = r"""
        '(?:[^'\\]|\\.|'')*'            # string literal
      | "(?:[^"\\]|\\.|"")*"            # double-quoted string
"""

_OTHER_LITERALS = r"""
      | `[^`]*`                         # backtick identifier (MySQL)
      | --[^\n]*                        # line comment
      | /\*.*?\*/                       # block comment
      | ::                              # cast operator
"""

_COMMENT_PATTERN = re.compile(r"--[^\n]*|/\*.*?\*/", re.DOTALL)


def _compile_patterns(quotes: str) -> tuple[re.Pattern[str], re.Pattern[str]]:
    """Build the placeholder token pattern and the statement end pattern."""
    literal = "(?P<literal>" + quotes + _OTHER_LITERALS + ")"
    token = re.compile(
        literal
        + r"""
        | (?P<qmark>\?)
        | :(?P<name>[A-Za-z_][A-Za-z0-9_]*)
        | (?P<percent>%)
        """,
        re.VERBOSE | re.DOTALL,
    )
    end = re.compile(literal + r"| (?P<end>;)", re.VERBOSE | re.DOTALL)
    return token, end


TOKEN_PATTERN, STATEMENT_END_PATTERN = _compile_patterns(_STANDARD_QUOTES)
BACKSLASH_TOKEN_PATTERN, BACKSLASH_STATEMENT_END_PATTERN = _compile_patterns(_BACKSLASH_QUOTES)


def bind_value(value: Any) -> Any:
    """Coerce a single parameter value to a type every driver accepts.

    Checked in order:
        - None binds as NULL
        - bool binds as a boolean (checked before int, bool is an int subclass)
        - int binds as an integer
        - str and float bind as themselves
        - datetime binds as "YYYY-MM-DD HH:MM:SS"
        - date binds as "YYYY-MM-DD"

    Raises:
        SqlParameterError: For any other type
    """
    if value is None:
        return None
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value
    if isinstance(value, (str, float)):
        return value
    if isinstance(value, datetime):
        return value.strftime(DATETIME_FORMAT)
    if isinstance(value, date):
        return value.isoformat()
    raise SqlParameterError(f"Unsupported parameter type: {type(value).__name__}.")


def bind_params(params: Params) -> BoundParams:
    """Coerce a full parameter set.

    Sequences become tuples, mappings become dicts with any leading ``:``
    stripped from their keys. Empty parameter sets become None.

    Raises:
        SqlParameterError: If params is neither a sequence nor a mapping, or a
            value cannot be bound
    """
    if params is None:
        return None
    if isinstance(params, Mapping):
        if not params:
            return None
        return {str(key).removeprefix(":"): bind_value(value) for key, value in params.items()}
    if isinstance(params, (str, bytes)) or not isinstance(params, Sequence):
        raise SqlParameterError(
            f"Parameters must be a sequence or a mapping, got {type(params).__name__}."
        )
    if not params:
        return None
    return tuple(bind_value(value) for value in params)


class ParamConverter:
    """Prepares a statement and its parameters for one driver paramstyle.

    Example:
        converter = ParamConverter("pyformat")
        sql, params = converter.prepare(
            "SELECT * FROM users WHERE id = :id AND name LIKE 'a%'", {"id": 42}
        )
        # sql == "SELECT * FROM users WHERE id = %(id)s AND name LIKE 'a%%'"
        # params == {"id": 42}
    """

    def __init__(self, paramstyle: str, backslash_escapes: bool = False):
        """Initialize converter for a DB-API paramstyle.

        Args:
            paramstyle: Target driver's ``paramstyle`` module attribute
            backslash_escapes: Whether backslash escapes a quote inside string
                literals (MySQL). Standard SQL only doubles quotes.

        Raises:
            ValueError: If the paramstyle is not supported
        """
        if paramstyle not in SUPPORTED_PARAMSTYLES:
            raise ValueError(
                f"Unsupported paramstyle '{paramstyle}'. "
                f"Supported: {', '.join(SUPPORTED_PARAMSTYLES)}"
            )
        self.paramstyle = paramstyle
        self.backslash_escapes = backslash_escapes
        self._token_pattern = BACKSLASH_TOKEN_PATTERN if backslash_escapes else TOKEN_PATTERN

    def prepare(self, sql: str, params: Params = None) -> tuple[str, BoundParams]:
        """Bind parameters and rewrite placeholders for the target driver.

        Args:
            sql: SQL statement using ? or :name placeholders
            params: Positional (sequence) or named (mapping) parameters

        Returns:
            Tuple of (driver SQL, bound parameters or None)

        Raises:
            SqlParameterError: If placeholders are mixed, or placeholders and
                parameters do not match
        """
        bound = bind_params(params)
        positional, names = self.scan(sql)

        if positional and names:
            raise SqlParameterError("Cannot mix positional (?) and named (:name) placeholders.")

        if names:
            if not isinstance(bound, dict):
                raise SqlParameterError(
                    f"Statement uses named placeholders ({', '.join(sorted(set(names)))}) "
                    "but parameters are not a mapping."
                )
            missing = sorted(set(names) - bound.keys())
            if missing:
                raise SqlParameterError(f"Missing named parameters: {', '.join(missing)}.")
        else:
            if isinstance(bound, dict):
                raise SqlParameterError(
                    "Statement uses positional placeholders but parameters are a mapping."
                )
            given = len(bound) if bound else 0
            if given != positional:
                raise SqlParameterError(
                    f"Statement expects {positional} positional parameters, got {given}."
                )

        if bound is None or self.paramstyle == "qmark":
            return sql, bound

        return self.convert(sql), bound

    def convert(self, sql: str) -> str:
        """Rewrite placeholders into the target paramstyle.

        For format/pyformat targets literal ``%`` characters are doubled, so the
        result must be executed with parameters.
        """
        if self.paramstyle == "qmark":
            return sql

        def replace(match: re.Match[str]) -> str:
            if match.group("literal") is not None:
                return match.group("literal").replace("%", "%%")
            if match.group("qmark") is not None:
                return "%s"
            if match.group("name") is not None:
                return f"%({match.group('name')})s"
            return "%%"

        return self._token_pattern.sub(replace, sql)

    def scan(self, sql: str) -> tuple[int, list[str]]:
        """Count positional placeholders and list named ones, in order.

        Returns:
            Tuple of (number of ? placeholders, named placeholder names)
        """
        positional = 0
        names: list[str] = []
        for match in self._token_pattern.finditer(sql):
            if match.group("qmark") is not None:
                positional += 1
            elif match.group("name") is not None:
                names.append(match.group("name"))
        return positional, names


def convert_sql_for_engine(sql: str, engine: DatabaseEngine) -> str:
    """Convenience function to rewrite SQL placeholders for an engine.

    Example:
        >>> convert_sql_for_engine("SELECT * FROM users WHERE id = ?", DatabaseEngine.MYSQL)
        'SELECT * FROM users WHERE id = %s'
    """
    return ParamConverter(engine.paramstyle, engine.backslash_escapes).convert(sql)


def split_statements(script: str, backslash_escapes: bool = False) -> list[str]:
    """Split a multi-statement script on semicolons outside literals and comments.

    Example:
        >>> split_statements("INSERT INTO t VALUES ('a;b'); DELETE FROM t;")
        ["INSERT INTO t VALUES ('a;b')", 'DELETE FROM t']
    """
    pattern = BACKSLASH_STATEMENT_END_PATTERN if backslash_escapes else STATEMENT_END_PATTERN
    statements: list[str] = []
    start = 0
    for match in pattern.finditer(script):
        if match.group("end") is not None:
            statements.append(script[start : match.start()])
            start = match.end()
    statements.append(script[start:])
    return [s.strip() for s in statements if s.strip()]


def strip_terminator(sql: str, backslash_escapes: bool = False) -> str:
    """Remove the final ``;`` of a statement, also when comments follow it.

    Example:
        >>> strip_terminator("INSERT INTO t VALUES (1); -- audit")
        'INSERT INTO t VALUES (1) -- audit'
    """
    pattern = BACKSLASH_STATEMENT_END_PATTERN if backslash_escapes else STATEMENT_END_PATTERN
    last_end = None
    for match in pattern.finditer(sql):
        if match.group("end") is not None:
            last_end = match
    if last_end is None:
        return sql.rstrip()

    tail = sql[last_end.end() :]
    if _COMMENT_PATTERN.sub("", tail).strip():
        # Something other than comments follows the semicolon
        return sql.rstrip()
    return (sql[: last_end.start()] + tail).rstrip()


__all__ = [
    "BoundParams",
    "DATETIME_FORMAT",
    "ParamConverter",
    "Params",
    "bind_params",
    "bind_value",
    "convert_sql_for_engine",
    "split_statements",
    "strip_terminator",
]
