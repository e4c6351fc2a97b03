"""
Tests for the booking-core CLI.
"""

import logging
import uuid

import pytest
from sqlalchemy import text
from sqlalchemy.orm import sessionmaker
from typer.testing import CliRunner

from booking_core.models import User
from cli import _mask_url, app
from shared.infrastructure.db import build_engine

runner = CliRunner()


@pytest.fixture(autouse=True)
def restore_root_handlers():
    # The CLI callback installs a handler bound to the runner's captured stdout
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def database_url(tmp_path):
    url = f"sqlite:///{tmp_path / 'cli.db'}"
    result = runner.invoke(app, ["db-init", "--database-url", url])
    assert result.exit_code == 0, result.output
    return url


class TestDatabaseCommands:

    def test_db_init(self, database_url):
        assert "Schema ready" in runner.invoke(app, ["db-init", "--database-url", database_url]).output

    def test_stats_on_empty_database(self, database_url):
        result = runner.invoke(app, ["stats", "--database-url", database_url])

        assert result.exit_code == 0, result.output
        assert "Live Records" in result.output
        assert "users" in result.output

    def test_check_invariants_clean(self, database_url):
        result = runner.invoke(app, ["check-invariants", "--database-url", database_url])

        assert result.exit_code == 0, result.output
        assert "All invariants hold" in result.output

    def test_check_invariants_reports_duplicates(self, database_url):
        engine = build_engine(database_url)
        actor = uuid.uuid4()
        with engine.begin() as conn:
            # A database created before the rule existed
            conn.execute(text("DROP INDEX uq_users_email_live"))
        with sessionmaker(bind=engine)() as session:
            for n in range(2):
                user = User(email="dup@example.com", first_name="Dup", last_name=str(n), is_active=True)
                user.mark_created(actor)
                session.add(user)
            session.commit()
        engine.dispose()

        result = runner.invoke(app, ["check-invariants", "--database-url", database_url])

        assert result.exit_code == 1
        assert "uq_users_email_live" in result.output


class TestInfoCommands:

    def test_version(self):
        result = runner.invoke(app, ["version"])

        assert result.exit_code == 0
        assert "booking-core" in result.output

    def test_config(self):
        assert runner.invoke(app, ["config"]).exit_code == 0

    @pytest.mark.parametrize(
        "url,expected",
        [
            ("postgresql+psycopg://app:secret@db:5432/booking", "postgresql+psycopg://app:***@db:5432/booking"),
            ("sqlite:///booking.db", "sqlite:///booking.db"),
        ],
    )
    def test_mask_url(self, url, expected):
        assert _mask_url(url) == expected
