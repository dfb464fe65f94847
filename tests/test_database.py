"""Tests for engine/session helpers and logging setup."""

import logging

import pytest
from sqlalchemy import inspect, text

from repokit.core import get_logger
from repokit.database import (
    create_all_tables,
    create_db_engine,
    drop_all_tables,
    get_db,
    get_db_context,
)
from tests.sample_models import User, UserRepository


@pytest.fixture
def global_tables():
    create_all_tables()
    yield
    drop_all_tables()


class TestEngine:
    """Test create_db_engine."""

    def test_creates_sqlite_directory(self, tmp_path):
        path = tmp_path / "nested" / "repokit.db"
        file_engine = create_db_engine(f"sqlite:///{path}")
        try:
            create_all_tables(file_engine)
            assert path.parent.is_dir()
            assert "users" in inspect(file_engine).get_table_names()
        finally:
            file_engine.dispose()

    def test_foreign_keys_enabled(self):
        memory_engine = create_db_engine("sqlite://")
        try:
            with memory_engine.connect() as connection:
                assert connection.execute(text("PRAGMA foreign_keys")).scalar() == 1
        finally:
            memory_engine.dispose()


class TestSessions:
    """Test the session helpers."""

    def test_context_commits(self, global_tables):
        with get_db_context() as db:
            UserRepository(db).create({"name": "ada"})

        with get_db_context() as db:
            assert db.query(User).count() == 1

    def test_context_rolls_back_on_error(self, global_tables):
        with pytest.raises(RuntimeError):
            with get_db_context() as db:
                UserRepository(db).create({"name": "ada"})
                raise RuntimeError("boom")

        with get_db_context() as db:
            assert db.query(User).count() == 0

    def test_get_db_closes_session(self, global_tables):
        sessions = get_db()
        db = next(sessions)
        assert db.is_active
        sessions.close()


class TestLogging:
    """Test get_logger."""

    def test_package_logger_configured_once(self):
        first = get_logger("repokit.tests")
        get_logger("repokit.tests")

        package = logging.getLogger("repokit")
        assert first.name == "repokit.tests"
        assert len(package.handlers) == 1
