"""Tests for backend selection and the exception family."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

from dbfacade import (
    ConnectionConfig,
    DriverErrorInfo,
    MssqlDatabase,
    SqlConnectionError,
    SqlError,
    SqliteDatabase,
    SqlParameterError,
    SqlQueryError,
    SqlSchemaError,
    SqlTransactionError,
    open_database,
    open_database_from_file,
)

# ============================================================================
# Factory Tests
# ============================================================================


class TestOpenDatabase:
    """Tests for open_database and open_database_from_file."""

    def test_from_url(self, tmp_path: Path) -> None:
        """A URL selects the backend."""
        with open_database(f"sqlite:///{tmp_path / 'app.db'}") as db:
            assert isinstance(db, SqliteDatabase)
            assert db.get_value("SELECT 1") == 1

    def test_from_config(self) -> None:
        """A ready ConnectionConfig is used as is."""
        config = ConnectionConfig(engine="sqlite", path=":memory:")
        db = open_database(config)
        assert db.config is config

    def test_from_environment(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        """Without a config DBFACADE_URL is read."""
        monkeypatch.setenv("DBFACADE_URL", f"sqlite:///{tmp_path / 'env.db'}")
        db = open_database()
        assert isinstance(db, SqliteDatabase)
        assert db.config.path == str(tmp_path / "env.db")

    def test_overrides(self) -> None:
        """Overrides are validated on top of the config."""
        config = ConnectionConfig(engine="sqlite", path=":memory:")
        db = open_database(config, timeout=5)
        assert db.config.timeout == 5
        assert config.timeout == 30

        with pytest.raises(ValueError):
            open_database(config, timeout=0)

    def test_connection_is_lazy(self, tmp_path: Path) -> None:
        """open_database does not connect."""
        db_path = tmp_path / "lazy.db"
        db = open_database(f"sqlite:///{db_path}")
        assert not db.connected
        assert not db_path.exists()

    def test_missing_driver_reported_eagerly(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """A missing driver package fails at open time."""
        monkeypatch.setitem(sys.modules, "pymssql", None)
        with pytest.raises(ImportError, match=r"pip install dbfacade\[mssql\]"):
            open_database("mssql://app:pw@sql01/crm")

    def test_backend_class_by_engine(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Each engine gets its backend."""
        monkeypatch.setattr(MssqlDatabase, "_import_driver", lambda self: object())
        assert isinstance(open_database("sqlserver://app@sql01/crm"), MssqlDatabase)

    def test_from_file(self, tmp_path: Path) -> None:
        """YAML config files are supported."""
        config_file = tmp_path / "db.yml"
        config_file.write_text(f"engine: sqlite\npath: {tmp_path / 'file.db'}\n")
        with open_database_from_file(config_file) as db:
            assert isinstance(db, SqliteDatabase)
            assert db.get_value("SELECT 2") == 2


# ============================================================================
# Exception Tests
# ============================================================================


class TestExceptions:
    """Tests for the SqlError family."""

    @pytest.mark.parametrize(
        ("error_cls", "message"),
        [
            (SqlConnectionError, "Connecting to database failed."),
            (SqlQueryError, "Query execution failed."),
            (SqlTransactionError, "Transaction operation failed."),
            (SqlSchemaError, "Script execution failed."),
            (SqlParameterError, "Unsupported parameter type."),
        ],
    )
    def test_default_messages(self, error_cls: type[SqlError], message: str) -> None:
        """Every error has a default message and is a SqlError."""
        error = error_cls()
        assert str(error) == message
        assert isinstance(error, SqlError)
        assert error.code is None
        assert error.sqlstate is None

    def test_driver_details(self) -> None:
        """Driver code, SQLSTATE and message are exposed and rendered."""
        error = SqlQueryError(
            "Query execution failed.",
            DriverErrorInfo(code=1146, sqlstate="42S02", message="Table 'shop.x' doesn't exist"),
        )
        assert error.code == 1146
        assert error.sqlstate == "42S02"
        assert error.detail == "Table 'shop.x' doesn't exist"
        assert str(error) == "Query execution failed.\n42S02\n\nTable 'shop.x' doesn't exist"
        assert repr(error) == (
            "SqlQueryError('Query execution failed.', code=1146, sqlstate='42S02')"
        )

    def test_format_without_message(self) -> None:
        """A bare SQLSTATE is rendered on its own."""
        assert DriverErrorInfo(sqlstate="08006").format() == "08006"
        assert DriverErrorInfo().format() == "Unknown database error"

    def test_parameter_error_is_type_error(self) -> None:
        """Binding errors can be caught as TypeError."""
        assert issubclass(SqlParameterError, TypeError)
        assert not issubclass(SqlQueryError, TypeError)
