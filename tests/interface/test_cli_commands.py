"""Tests for CLI commands: deck/card seeding, review, due, history, config and serve."""

import json
import logging
from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from cadence.interface.cli import app

runner = CliRunner()


@pytest.fixture
def db(mock_home, tmp_path):
    return str(tmp_path / "cli.db")


@pytest.fixture
def seeded(db):
    """Creates a deck with one card owned by alice; returns the card id."""
    deck = runner.invoke(app, ["deck", "create", "Biology", "--user", "alice", "--db", db])
    assert deck.exit_code == 0
    deck_id = deck.stdout.strip()

    card = runner.invoke(app, ["card", "add", deck_id, "Mitochondria?", "Powerhouse", "--db", db])
    assert card.exit_code == 0
    return card.stdout.strip()


def test_cli_help():
    result = runner.invoke(app, ["--help"])
    assert result.exit_code == 0
    assert "spaced-repetition" in result.stdout
    assert "review" in result.stdout
    assert "due" in result.stdout


def test_review_command(seeded, db):
    result = runner.invoke(app, ["review", seeded, "3", "--user", "alice", "--db", db])

    assert result.exit_code == 0
    assert "Ease factor: 2.36" in result.stdout
    assert "Next review in 6 days" in result.stdout


def test_review_reads_identity_from_env(seeded, db, monkeypatch):
    monkeypatch.setenv("CADENCE_USER", "alice")

    result = runner.invoke(app, ["review", seeded, "1", "--db", db])

    assert result.exit_code == 0
    assert "Next review in 1 day (" in result.stdout


def test_review_invalid_rating(seeded, db):
    result = runner.invoke(app, ["review", seeded, "7", "--user", "alice", "--db", db])
    assert result.exit_code == 1


def test_review_card_of_other_user(seeded, db):
    result = runner.invoke(app, ["review", seeded, "3", "--user", "mallory", "--db", db])
    assert result.exit_code == 1


def test_review_requires_identity(seeded, db):
    result = runner.invoke(app, ["review", seeded, "3", "--db", db])
    assert result.exit_code == 1


def test_review_storage_failure_exit_code(mock_home, tmp_path):
    # A directory where the database file should be cannot be opened
    bad = tmp_path / "not_a_db"
    bad.mkdir()

    result = runner.invoke(app, ["review", "card_1", "3", "--user", "alice", "--db", str(bad)])

    assert result.exit_code == 2


def test_due_json(seeded, db):
    runner.invoke(app, ["review", seeded, "4", "--user", "alice", "--db", db])

    result = runner.invoke(app, ["due", "--json", "--user", "alice", "--db", db])

    assert result.exit_code == 0
    data = json.loads(result.stdout)
    assert data["stats"] == {"total": 1, "new": 0, "due": 0, "upcoming": 1}
    assert data["upcoming_cards"][0]["id"] == seeded
    assert data["upcoming_cards"][0]["status"] == "upcoming"


def test_due_text_lists_new_cards(seeded, db):
    result = runner.invoke(app, ["due", "--user", "alice", "--db", db])

    assert result.exit_code == 0
    assert "Total: 1  New: 1  Due: 0  Upcoming: 0" in result.stdout
    assert seeded in result.stdout


def test_history_json(seeded, db):
    runner.invoke(app, ["review", seeded, "3", "--user", "alice", "--db", db])
    runner.invoke(app, ["review", seeded, "1", "--user", "alice", "--db", db])

    result = runner.invoke(app, ["history", seeded, "--json", "--user", "alice", "--db", db])

    assert result.exit_code == 0
    reviews = json.loads(result.stdout)["reviews"]
    assert [r["rating"] for r in reviews] == [1, 3]
    assert reviews[0]["user_id"] == "alice"


def test_history_empty(seeded, db):
    result = runner.invoke(app, ["history", seeded, "--session", "guest-1", "--db", db])
    assert result.exit_code == 0
    assert "No reviews yet." in result.stdout


def test_card_add_unknown_deck(db):
    result = runner.invoke(app, ["card", "add", "deck_missing", "Q", "A", "--db", db])
    assert result.exit_code == 1


def test_config_show_command(mock_home):
    result = runner.invoke(app, ["config", "show"])

    assert result.exit_code == 0
    data = json.loads(result.stdout)
    assert data["backend"] == "sqlite"
    assert data["database_path"].endswith("cadence.db")


@patch("uvicorn.run")
def test_serve_command(mock_run, mock_home):
    result = runner.invoke(app, ["serve", "--port", "9000"])
    assert result.exit_code == 0
    mock_run.assert_called_with("cadence.server:app", host="127.0.0.1", port=9000, reload=False)


def test_cli_logs_to_configured_log_dir(seeded, db, mock_home, monkeypatch):
    monkeypatch.setenv("CADENCE_VERBOSE", "2")

    result = runner.invoke(app, ["review", seeded, "3", "--user", "alice", "--db", db])

    assert result.exit_code == 0
    assert logging.getLogger().level == logging.DEBUG
    log_file = mock_home / ".config/cadence/logs/cadence.log"
    assert "Appended review" in log_file.read_text()


def test_verbose_flag_overrides_configured_level(mock_home, monkeypatch):
    monkeypatch.setenv("CADENCE_VERBOSE", "0")

    result = runner.invoke(app, ["config", "show"])
    assert result.exit_code == 0
    assert logging.getLogger().level == logging.WARNING

    result = runner.invoke(app, ["-v", "config", "show"])
    assert result.exit_code == 0
    assert logging.getLogger().level == logging.DEBUG
