"""Tests for the dbfacade command line."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from dbfacade import ConnectionConfig, SqliteDatabase
from dbfacade.cli import app, configure_logging, parse_param


@pytest.fixture
def cli_runner() -> CliRunner:
    """Return a CLI test runner."""
    return CliRunner()


@pytest.fixture
def db_url(tmp_path: Path) -> str:
    """URL of a SQLite database holding two users."""
    db_path = tmp_path / "cli.db"
    with SqliteDatabase(ConnectionConfig(engine="sqlite", path=str(db_path))) as db:
        db.execute_script(
            """
            CREATE TABLE users (id INTEGER PRIMARY KEY, name TEXT, created_at TEXT);
            INSERT INTO users (name, created_at) VALUES ('Alice', '2024-03-01 12:30:00');
            INSERT INTO users (name, created_at) VALUES ('Bob', NULL);
            """
        )
    return f"sqlite:///{db_path}"


class TestRunCommand:
    """Tests for running SQL from the command line."""

    def test_select_rows(self, cli_runner: CliRunner, db_url: str) -> None:
        """Rows are printed as a JSON list, datetimes as strings."""
        result = cli_runner.invoke(
            app, ["--url", db_url, "SELECT id, name, created_at FROM users WHERE id = ?", "1"]
        )

        assert result.exit_code == 0, result.output
        assert json.loads(result.stdout) == [
            {"id": 1, "name": "Alice", "created_at": "2024-03-01 12:30:00"}
        ]

    def test_value(self, cli_runner: CliRunner, db_url: str) -> None:
        """--value prints a single value."""
        result = cli_runner.invoke(app, ["--url", db_url, "--value", "SELECT COUNT(*) FROM users"])

        assert result.exit_code == 0, result.output
        assert json.loads(result.stdout) == 2

    def test_execute(self, cli_runner: CliRunner, db_url: str) -> None:
        """--execute runs the statement and prints nothing."""
        result = cli_runner.invoke(
            app, ["--url", db_url, "-x", "INSERT INTO users (name) VALUES (?)", "Carol"]
        )

        assert result.exit_code == 0, result.output
        assert result.stdout == ""
        with SqliteDatabase(ConnectionConfig.from_url(db_url)) as db:
            assert db.get_values("SELECT name FROM users ORDER BY id") == ["Alice", "Bob", "Carol"]

    def test_url_from_environment(
        self, cli_runner: CliRunner, db_url: str, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """DBFACADE_URL is used when --url is not given."""
        monkeypatch.setenv("DBFACADE_URL", db_url)
        result = cli_runner.invoke(app, ["--value", "SELECT name FROM users WHERE id = ?", "2"])

        assert result.exit_code == 0, result.output
        assert json.loads(result.stdout) == "Bob"

    def test_config_file(self, cli_runner: CliRunner, db_url: str, tmp_path: Path) -> None:
        """--config reads a YAML connection file."""
        config_file = tmp_path / "db.yml"
        config_file.write_text(f'url: "{db_url}"\n')
        result = cli_runner.invoke(
            app, ["--config", str(config_file), "--value", "SELECT MAX(id) FROM users"]
        )

        assert result.exit_code == 0, result.output
        assert json.loads(result.stdout) == 2

    def test_query_error(self, cli_runner: CliRunner, db_url: str) -> None:
        """SQL errors are reported with exit code 1."""
        result = cli_runner.invoke(app, ["--url", db_url, "SELECT * FROM missing"])

        assert result.exit_code == 1
        assert "Error: Query execution failed." in result.output
        assert "no such table: missing" in result.output

    def test_missing_url(self, cli_runner: CliRunner) -> None:
        """Without --url, --config or DBFACADE_URL the command fails."""
        result = cli_runner.invoke(app, ["SELECT 1"])

        assert result.exit_code == 1
        assert "DBFACADE_URL is not set" in result.output

    def test_parameter_mismatch(self, cli_runner: CliRunner, db_url: str) -> None:
        """Placeholder errors are reported, not raised."""
        result = cli_runner.invoke(app, ["--url", db_url, "SELECT ? + ?", "1"])

        assert result.exit_code == 1
        assert "expects 2 positional parameters, got 1" in result.output


class TestHelpers:
    """Tests for command-line helpers."""

    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("42", 42),
            ("1.5", 1.5),
            ("true", True),
            ("null", None),
            ('"007"', "007"),
            ("Alice", "Alice"),
            ("2024-03-01 12:30:00", "2024-03-01 12:30:00"),
            ("[1, 2]", "[1, 2]"),
            ('{"a": 1}', '{"a": 1}'),
        ],
    )
    def test_parse_param(self, text: str, expected: object) -> None:
        """JSON scalars are decoded, everything else stays text."""
        assert parse_param(text) == expected

    def test_invalid_log_level_warns(
        self, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
    ) -> None:
        """An unknown DBFACADE_LOG_LEVEL falls back to WARNING with a notice."""
        monkeypatch.setenv("DBFACADE_LOG_LEVEL", "loud")
        configure_logging()
        assert "Invalid DBFACADE_LOG_LEVEL 'LOUD'" in capsys.readouterr().err
