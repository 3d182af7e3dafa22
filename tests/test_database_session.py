"""Tests for the database manager and session helpers."""

import pytest
from sqlalchemy import inspect, text

from lending_library.database import BookRepository
from lending_library.database.session import (
    DatabaseManager,
    get_db_manager,
    reset_db_manager,
    safe_query,
)
from lending_library.models import Book


@pytest.fixture
def manager(tmp_path):
    db_manager = DatabaseManager(tmp_path / "manager.db")
    db_manager.init_database()
    yield db_manager
    db_manager.close()


def test_init_database_creates_tables(manager):
    tables = set(inspect(manager.engine).get_table_names())

    assert {"books", "members", "reservation_queue"} <= tables
    assert manager.verify_connection() is True


def test_foreign_keys_enabled(manager):
    with manager.engine.connect() as conn:
        assert conn.execute(text("PRAGMA foreign_keys")).scalar() == 1


def test_session_scope_commits(manager):
    with manager.session_scope() as session:
        BookRepository(session).save(Book(id="b1", title="Dune"))

    with manager.session_scope() as session:
        assert BookRepository(session).get_by_id("b1").title == "Dune"


def test_session_scope_rolls_back_on_error(manager):
    with pytest.raises(RuntimeError), manager.session_scope() as session:
        session.execute(text("INSERT INTO members (id, name) VALUES ('m1', 'Alice')"))
        raise RuntimeError("abort")

    with manager.session_scope() as session:
        assert session.execute(text("SELECT COUNT(*) FROM members")).scalar() == 0


def test_drop_existing_clears_data(manager):
    with manager.session_scope() as session:
        BookRepository(session).save(Book(id="b1", title="Dune"))

    manager.init_database(drop_existing=True)

    with manager.session_scope() as session:
        assert BookRepository(session).get_all() == []


def test_safe_query_wraps_errors(manager):
    with manager.session_scope() as session, pytest.raises(ValueError, match="Lookup failed"):
        safe_query(session, lambda s: s.execute(text("SELECT * FROM nowhere")), "Lookup failed")


def test_global_manager_uses_configured_path(tmp_path):
    reset_db_manager()
    try:
        db_manager = get_db_manager()

        assert db_manager is get_db_manager()
        assert db_manager.database_path == tmp_path / "library.db"
    finally:
        reset_db_manager()


def test_verify_connection_requires_library_tables(tmp_path):
    db_manager = DatabaseManager(tmp_path / "empty.db")
    try:
        assert db_manager.verify_connection() is False

        db_manager.init_database()

        assert db_manager.verify_connection() is True
    finally:
        db_manager.close()


def test_engine_creates_missing_parent_directory(tmp_path):
    db_manager = DatabaseManager(tmp_path / "nested" / "library.db")
    try:
        db_manager.init_database()

        assert (tmp_path / "nested" / "library.db").is_file()
    finally:
        db_manager.close()
