"""Conversion of driver result values to Python values.

Most drivers already hand back ``datetime`` objects for temporal columns.
SQLite, which has no temporal storage class, hands back the text it stored.
Strings that are exactly a ``YYYY-MM-DD HH:MM:SS`` timestamp are therefore
turned into ``datetime`` objects here, for every backend alike.
"""

from __future__ import annotations

import re
from datetime import datetime
from typing import Any

TIMESTAMP_PATTERN = re.compile(r"\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}(?:\.\d{1,6})?")


def convert_database_value(value: Any) -> Any:
    """Convert a single result value.

    Args:
        value: Value as returned by the driver

    Returns:
        ``datetime`` for timestamp strings, the value unchanged otherwise

    Example:
        >>> convert_database_value("2024-03-01 12:30:00")
        datetime.datetime(2024, 3, 1, 12, 30)
        >>> convert_database_value("2024-13-01 12:30:00")
        '2024-13-01 12:30:00'
    """
    if isinstance(value, str) and TIMESTAMP_PATTERN.fullmatch(value):
        try:
            return datetime.fromisoformat(value)
        except ValueError:
            # Looks like a timestamp but isn't one (e.g. month 13)
            return value
    return value


def convert_database_row(row: dict[str, Any]) -> dict[str, Any]:
    """Convert every value of a row dict."""
    return {column: convert_database_value(value) for column, value in row.items()}


__all__ = ["TIMESTAMP_PATTERN", "convert_database_value", "convert_database_row"]
