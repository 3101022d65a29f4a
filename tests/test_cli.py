"""
Tests for the boardsync CLI.

Commands run against the seeded local storage file selected through
BOARDSYNC_STORAGE_PATH.
"""

import json

import pytest
from conftest import ADA, PASSWORD
from typer.testing import CliRunner

from boardsync import __version__
from boardsync.cli import app
from boardsync.cli.context import get_session_path, load_session

runner = CliRunner()


@pytest.fixture
def cli_storage(seeded_storage, monkeypatch):
    monkeypatch.setenv("BOARDSYNC_STORAGE_PATH", str(seeded_storage))
    return seeded_storage


def login() -> None:
    result = runner.invoke(app, ["login", "--email", ADA.email, "--password", PASSWORD])
    assert result.exit_code == 0, result.output


def stored_board(path) -> dict:
    data = json.loads(path.read_text())
    return next(d for d in data["dashboards"] if d["id"] == "dash-1")


def stored_cards(path, column_id: str) -> list[str]:
    board = stored_board(path)
    column = next(c for c in board["columns"] if c["id"] == column_id)
    return [card["id"] for card in column["cards"]]


class TestAccountCommands:
    """Tests for login, logout and registration."""

    def test_version(self) -> None:
        """Test the version command."""
        result = runner.invoke(app, ["version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_login_persists_session(self, cli_storage) -> None:
        """Test that a login is remembered for later commands."""
        login()

        auth = load_session()
        assert auth is not None
        assert auth.email == ADA.email
        assert auth.token

    def test_login_failure(self, cli_storage) -> None:
        """Test that bad credentials exit with status 1."""
        result = runner.invoke(app, ["login", "--email", ADA.email, "--password", "Wrong!pass1"])

        assert result.exit_code == 1
        assert "Invalid credentials" in result.output
        assert not get_session_path().exists()

    def test_register_validation(self, cli_storage) -> None:
        """Test that weak passwords are refused before anything is stored."""
        result = runner.invoke(
            app,
            ["register", "--email", "new@example.com", "--name", "New User", "--password", "weak"],
        )

        assert result.exit_code == 1
        assert "at least 8 characters" in result.output

    def test_logout_removes_session(self, cli_storage) -> None:
        """Test that logout forgets the session."""
        login()

        result = runner.invoke(app, ["logout"])

        assert result.exit_code == 0
        assert not get_session_path().exists()

    def test_config_shows_effective_values(self, monkeypatch) -> None:
        """Test that the config command reflects env overrides."""
        monkeypatch.setenv("BOARDSYNC_DATA_SOURCE", "rest")
        monkeypatch.setenv("BOARDSYNC_API_URL", "https://api.example.com")

        result = runner.invoke(app, ["config"])

        assert result.exit_code == 0, result.output
        assert "rest" in result.output
        assert "https://api.example.com" in result.output

    def test_config_invalid(self, monkeypatch) -> None:
        """Test that the config command reports a bad configuration."""
        monkeypatch.setenv("BOARDSYNC_DATA_SOURCE", "carrier-pigeon")

        result = runner.invoke(app, ["config"])

        assert result.exit_code == 1
        assert "Configuration error" in result.output

    def test_invalid_configuration(self, monkeypatch) -> None:
        """Test that a bad configuration is reported cleanly."""
        monkeypatch.setenv("BOARDSYNC_DATA_SOURCE", "carrier-pigeon")

        result = runner.invoke(app, ["dashboards"])

        assert result.exit_code == 1
        assert "Configuration error" in result.output


class TestBoardCommands:
    """Tests for dashboard, column and card commands."""

    def test_list_dashboards(self, cli_storage) -> None:
        """Test listing dashboards."""
        result = runner.invoke(app, ["dashboards"])

        assert result.exit_code == 0
        assert "Roadmap" in result.output
        assert "Other" in result.output

    def test_show_dashboard(self, cli_storage) -> None:
        """Test showing columns and cards."""
        result = runner.invoke(app, ["dashboard", "show", "dash-1"])

        assert result.exit_code == 0
        assert "Card c1" in result.output
        assert "Card c3" in result.output

    def test_show_unknown_dashboard(self, cli_storage) -> None:
        """Test that an unknown dashboard exits with status 1."""
        result = runner.invoke(app, ["dashboard", "show", "dash-9"])

        assert result.exit_code == 1
        assert "Dashboard not found" in result.output

    def test_create_dashboard_requires_login(self, cli_storage) -> None:
        """Test that creating a dashboard needs a session."""
        result = runner.invoke(app, ["dashboard", "create", "Launch"])

        assert result.exit_code == 1
        assert "User not authenticated" in result.output

    def test_create_dashboard(self, cli_storage) -> None:
        """Test creating a dashboard after logging in."""
        login()

        result = runner.invoke(app, ["dashboard", "create", "Launch"])

        assert result.exit_code == 0
        assert "Created" in result.output
        titles = [d["title"] for d in json.loads(cli_storage.read_text())["dashboards"]]
        assert "Launch" in titles

    def test_card_move(self, cli_storage) -> None:
        """Test that a card move is persisted."""
        result = runner.invoke(app, ["card", "move", "dash-1", "col-a", "0", "col-b", "0"])

        assert result.exit_code == 0, result.output
        assert stored_cards(cli_storage, "col-a") == ["c2"]
        assert stored_cards(cli_storage, "col-b") == ["c1"]

    def test_card_move_unknown_column(self, cli_storage) -> None:
        """Test that a move to an unknown column fails without changes."""
        result = runner.invoke(app, ["card", "move", "dash-1", "col-a", "0", "col-z", "0"])

        assert result.exit_code == 1
        assert "Column not found" in result.output
        assert stored_cards(cli_storage, "col-a") == ["c1", "c2"]

    def test_column_reorder(self, cli_storage) -> None:
        """Test that a column reorder is persisted."""
        result = runner.invoke(app, ["column", "reorder", "dash-1", "2", "0"])

        assert result.exit_code == 0, result.output
        orders = {c["id"]: c["order"] for c in stored_board(cli_storage)["columns"]}
        assert orders == {"col-c": 0, "col-a": 1, "col-b": 2}

    def test_add_card(self, cli_storage) -> None:
        """Test adding a card."""
        result = runner.invoke(app, ["card", "add", "dash-1", "col-b", "Write docs"])

        assert result.exit_code == 0, result.output
        assert "#4" in result.output

    def test_stats(self, cli_storage) -> None:
        """Test the stats summary."""
        result = runner.invoke(app, ["dashboard", "stats", "dash-1"])

        assert result.exit_code == 0, result.output
        assert "Cards" in result.output

    def test_invite_invalid_email(self, cli_storage) -> None:
        """Test that an invalid invite exits with status 1."""
        result = runner.invoke(app, ["invite", "dash-1", "not-an-email"])

        assert result.exit_code == 1
        assert "valid email" in result.output

    def test_delete_dashboard(self, cli_storage) -> None:
        """Test deleting a dashboard without confirmation."""
        result = runner.invoke(app, ["dashboard", "delete", "dash-2", "--yes"])

        assert result.exit_code == 0
        ids = [d["id"] for d in json.loads(cli_storage.read_text())["dashboards"]]
        assert ids == ["dash-1"]
