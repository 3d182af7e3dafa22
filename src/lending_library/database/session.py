"""
SQLite storage for the Lending Library.

The catalog, the members and every reservation queue live in one SQLite file,
``LibraryConfig.database_path``. ``DatabaseManager`` owns the engine for that
file and hands out sessions; tool calls and resource reads each use one
short-lived session.

Queue rows are removed with their book through ``ON DELETE CASCADE``, so every
connection switches SQLite's foreign key enforcement on.
"""

import logging
from collections.abc import Callable, Generator
from contextlib import contextmanager
from pathlib import Path
from typing import TypeVar

from sqlalchemy import create_engine, event, inspect
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from ..config import get_config
from .schema import Base

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _enable_foreign_keys(dbapi_connection, connection_record):  # noqa: ARG001
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class DatabaseManager:
    """
    Engine and session factory for one library database file.

    Args:
        database_path: SQLite file to use; defaults to the configured
            ``database_path``
    """

    def __init__(self, database_path: Path | None = None):
        self.database_path = (database_path or get_config().database_path).absolute()
        self._engine: Engine | None = None
        self._session_factory: sessionmaker | None = None

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            self.database_path.parent.mkdir(parents=True, exist_ok=True)
            # One shared connection: the service serializes writers itself
            self._engine = create_engine(
                f"sqlite:///{self.database_path}",
                poolclass=StaticPool,
                connect_args={"check_same_thread": False},
            )
            event.listen(self._engine, "connect", _enable_foreign_keys)
            logger.info("Library database opened at %s", self.database_path)
        return self._engine

    def create_session(self) -> Session:
        """Create a new session. Callers must close it."""
        if self._session_factory is None:
            self._session_factory = sessionmaker(
                bind=self.engine, autoflush=False, expire_on_commit=False
            )
        return self._session_factory()

    @contextmanager
    def session_scope(self) -> Generator[Session, None, None]:
        """Session committed on success, rolled back on error and always closed."""
        session = self.create_session()
        try:
            yield session
            session.commit()
        except Exception:
            logger.exception("Library database error, rolling back")
            session.rollback()
            raise
        finally:
            session.close()

    def init_database(self, drop_existing: bool = False) -> None:
        """
        Create the books, members and reservation_queue tables.

        Args:
            drop_existing: Drop the tables first, discarding all loans and queues
        """
        if drop_existing:
            logger.warning("Dropping library tables at %s", self.database_path)
            Base.metadata.drop_all(bind=self.engine)

        Base.metadata.create_all(bind=self.engine)
        logger.info("Library schema ready (%d tables)", len(Base.metadata.tables))

    def verify_connection(self) -> bool:
        """True if the database answers and holds every library table."""
        try:
            present = set(inspect(self.engine).get_table_names())
        except Exception:
            logger.exception("Library database at %s is not reachable", self.database_path)
            return False

        missing = set(Base.metadata.tables) - present
        if missing:
            logger.error("Library database is missing tables: %s", ", ".join(sorted(missing)))
            return False
        return True

    def close(self) -> None:
        """Dispose of the engine. Called on server shutdown."""
        if self._engine is not None:
            self._engine.dispose()
            logger.info("Library database closed")
        self._engine = None
        self._session_factory = None


_db_manager: DatabaseManager | None = None


def get_db_manager() -> DatabaseManager:
    """The process-wide manager for the configured database file."""
    global _db_manager  # noqa: PLW0603

    if _db_manager is None:
        _db_manager = DatabaseManager()
    return _db_manager


def reset_db_manager() -> None:
    """Dispose of and forget the global manager (useful for testing)."""
    global _db_manager  # noqa: PLW0603

    if _db_manager is not None:
        _db_manager.close()
    _db_manager = None


def get_session() -> Session:
    """
    New session on the configured database.

    Repositories commit their own writes, so ``with get_session() as session``
    is enough for tool handlers.
    """
    return get_db_manager().create_session()


@contextmanager
def session_scope() -> Generator[Session, None, None]:
    with get_db_manager().session_scope() as session:
        yield session


def safe_commit(session: Session, operation: str) -> None:
    """
    Commit, rolling back when the commit fails.

    Raises:
        ValueError: naming ``operation``
    """
    try:
        session.commit()
    except Exception as e:
        session.rollback()
        raise ValueError(f"Could not {operation}: {e!s}") from e


def safe_query(session: Session, query_func: Callable[[Session], T], error_msg: str) -> T:
    """
    Run ``query_func`` on the session.

    Raises:
        ValueError: prefixed with ``error_msg`` when the query fails
    """
    try:
        return query_func(session)
    except Exception as e:
        logger.exception(error_msg)
        raise ValueError(f"{error_msg}: {e!s}") from e
