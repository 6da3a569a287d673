"""Command-line entry point: run one SQL statement and print the result as JSON.

Examples:
    dbfacade --url sqlite:///app.db "SELECT * FROM users WHERE id = ?" 42
    DBFACADE_URL=mysql://app:pw@db/shop dbfacade --value "SELECT COUNT(*) FROM orders"
    dbfacade -c db.yml --execute "DELETE FROM sessions WHERE expires_at < ?" "2024-01-01 00:00:00"
"""

from __future__ import annotations

import json
import logging
import os
import sys
from pathlib import Path
from typing import Annotated, Any

import typer

from .config import URL_ENV_VAR, ConnectionConfig
from .exceptions import SqlError
from .factory import open_database

logger = logging.getLogger(__name__)

LOG_LEVEL_ENV_VAR = "DBFACADE_LOG_LEVEL"
VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}

app = typer.Typer(
    help="Run one SQL statement against a database and print the result as JSON.",
    no_args_is_help=True,
    add_completion=False,
)


def configure_logging() -> None:
    """Configure stderr logging from DBFACADE_LOG_LEVEL (default WARNING)."""
    log_level_str = os.getenv(LOG_LEVEL_ENV_VAR, "WARNING").upper()

    if log_level_str not in VALID_LOG_LEVELS:
        print(
            f"Warning: Invalid {LOG_LEVEL_ENV_VAR} '{log_level_str}'. "
            f"Valid levels: {', '.join(sorted(VALID_LOG_LEVELS))}. "
            "Using WARNING.",
            file=sys.stderr,
        )
        log_level_str = "WARNING"

    logging.basicConfig(
        level=getattr(logging, log_level_str),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )


def parse_param(text: str) -> Any:
    """Interpret a command-line parameter.

    JSON scalars (42, 1.5, true, null, "quoted") become the matching Python
    value; anything else is passed as a plain string.
    """
    try:
        value = json.loads(text)
    except ValueError:
        return text
    if isinstance(value, (dict, list)):
        return text
    return value


@app.command()
def run(
    sql: Annotated[str, typer.Argument(help="SQL statement using ? placeholders")],
    params: Annotated[
        list[str] | None, typer.Argument(help="Positional parameter values")
    ] = None,
    url: Annotated[
        str | None,
        typer.Option("--url", "-u", help=f"Database URL. Defaults to ${URL_ENV_VAR}"),
    ] = None,
    config_file: Annotated[
        Path | None,
        typer.Option("--config", "-c", help="YAML connection config file"),
    ] = None,
    value: Annotated[
        bool, typer.Option("--value", help="Print only the first column of the first row")
    ] = False,
    execute: Annotated[
        bool,
        typer.Option("--execute", "-x", help="Run for side effects and print nothing"),
    ] = False,
) -> None:
    """Run SQL and print the rows (or a single value) as JSON."""
    configure_logging()
    bound = [parse_param(p) for p in params or []]

    try:
        if config_file is not None:
            config = ConnectionConfig.from_file(config_file)
        elif url:
            config = ConnectionConfig.from_url(url)
        else:
            config = ConnectionConfig.from_env()

        with open_database(config) as db:
            if execute:
                db.query(sql, bound)
                return
            result: Any = db.get_value(sql, bound) if value else db.get_data(sql, bound)
    except (SqlError, ValueError, ImportError) as e:
        logger.debug("Command failed", exc_info=True)
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from e

    typer.echo(json.dumps(result, default=str, indent=2))


def main() -> None:
    """Console script entry point."""
    app()


__all__ = ["app", "configure_logging", "main", "parse_param"]
