"""
Database package for the Lending Library.

This package provides:
- SQLAlchemy schema definitions (schema.py)
- Session management and connection handling (session.py)
- Book and member repositories implementing the store contracts used by
  ``LibraryService``
"""

from .book_repository import BookRepository
from .member_repository import MemberRepository
from .repository import BaseRepository, RepositoryException
from .schema import Base, Book, Member, ReservationEntry
from .session import (
    DatabaseManager,
    get_db_manager,
    get_session,
    reset_db_manager,
    safe_commit,
    safe_query,
    session_scope,
)

__all__ = [
    "Base",
    "BaseRepository",
    "Book",
    "BookRepository",
    "DatabaseManager",
    "Member",
    "MemberRepository",
    "RepositoryException",
    "ReservationEntry",
    "get_db_manager",
    "get_session",
    "reset_db_manager",
    "safe_commit",
    "safe_query",
    "session_scope",
]
