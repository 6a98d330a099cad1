"""Database CLI command tests."""

from unittest.mock import patch

from typer.testing import CliRunner

from userhub.cli import app

runner = CliRunner()


def test_history_defaults_to_last_ten_revisions():
    with patch("userhub.cli.db._alembic", return_value=0) as alembic:
        result = runner.invoke(app, ["db", "history"])

    assert result.exit_code == 0
    alembic.assert_called_once_with("history", "-r-10:")


def test_history_limit_option():
    with patch("userhub.cli.db._alembic", return_value=0) as alembic:
        result = runner.invoke(app, ["db", "history", "-l", "3"])

    assert result.exit_code == 0
    alembic.assert_called_once_with("history", "-r-3:")


def test_history_passes_through_alembic_failure():
    with patch("userhub.cli.db._alembic", return_value=2):
        result = runner.invoke(app, ["db", "history"])

    assert result.exit_code == 2


def test_migrate_failure_exits_nonzero():
    with patch("userhub.cli.db._alembic", return_value=1) as alembic:
        result = runner.invoke(app, ["db", "migrate"])

    assert result.exit_code == 1
    alembic.assert_called_once_with("upgrade", "head")
