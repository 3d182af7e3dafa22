"""Test configuration and fixtures for the Lending Library.

- Isolated in-memory databases: each test gets a clean schema
- Configuration overrides through ``LENDING_LIBRARY_*`` variables
- A fixed clock for the engine so due dates are predictable
- ``get_session``/``session_scope`` patched in the MCP modules
"""

import os
from collections.abc import Generator
from contextlib import contextmanager
from datetime import date
from pathlib import Path

import logfire
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from lending_library.config import reset_config
from lending_library.database.book_repository import BookRepository
from lending_library.database.member_repository import MemberRepository
from lending_library.database.schema import Base
from lending_library.models import Book, Member
from lending_library.services import LibraryService

TODAY = date(2024, 3, 1)


def pytest_configure(config):
    """Keep Logfire local for the whole test run."""
    logfire.configure(send_to_logfire=False, console=False)


# === Environment Fixtures ===


@pytest.fixture(autouse=True)
def isolated_config(tmp_path: Path, monkeypatch) -> Generator[None, None, None]:
    """Point the configuration at a temporary database and reset it around each test."""
    for key in list(os.environ):
        if key.startswith("LENDING_LIBRARY_"):
            monkeypatch.delenv(key)
    monkeypatch.setenv("LENDING_LIBRARY_DATABASE_PATH", str(tmp_path / "library.db"))

    reset_config()
    yield
    reset_config()


# === Test Database Fixtures ===


@pytest.fixture
def test_db_session() -> Generator[Session, None, None]:
    """Provide a session bound to a fresh in-memory database."""
    engine = create_engine(
        "sqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(bind=engine)

    session_local = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    session = session_local()

    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture
def book_repo(test_db_session) -> BookRepository:
    return BookRepository(test_db_session)


@pytest.fixture
def member_repo(test_db_session) -> MemberRepository:
    return MemberRepository(test_db_session)


@pytest.fixture
def service(book_repo, member_repo) -> LibraryService:
    """Engine over the test repositories with the clock fixed at ``TODAY``."""
    return LibraryService(book_repo, member_repo, today=lambda: TODAY)


@pytest.fixture
def library(book_repo, member_repo):
    """Seed three members and three books, all available."""
    for member_id, name in [("m1", "Alice"), ("m2", "Bob"), ("m3", "Carol")]:
        member_repo.save(Member(id=member_id, name=name))
    for book_id, title in [
        ("b1", "The Great Gatsby"),
        ("b2", "To Kill a Mockingbird"),
        ("b3", "Great Expectations"),
    ]:
        book_repo.save(Book(id=book_id, title=title))
    return book_repo, member_repo


# === MCP Handler Fixtures ===


@pytest.fixture
def mock_get_session(test_db_session, monkeypatch) -> Session:
    """Route the tool handlers' sessions to the test session."""

    @contextmanager
    def _session():
        yield test_db_session

    monkeypatch.setattr("lending_library.tools.circulation.get_session", _session)
    monkeypatch.setattr("lending_library.tools.catalog.get_session", _session)
    return test_db_session


@pytest.fixture
def mock_session_scope(test_db_session, monkeypatch) -> Session:
    """Route the resource handlers' sessions to the test session."""

    @contextmanager
    def _scope():
        yield test_db_session

    monkeypatch.setattr("lending_library.resources.books.session_scope", _scope)
    monkeypatch.setattr("lending_library.resources.members.session_scope", _scope)
    return test_db_session
