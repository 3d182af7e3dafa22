"""
Repository pattern implementation for the Lending Library.

Repositories are the store collaborators of ``LibraryService``: they look
entities up, list them, save them and delete them, and always hand back Pydantic
models rather than ORM rows. Business rules live in the service, never here.

Each write is committed immediately; the service performs at most a handful of
writes per operation and relies on the repositories to persist them in order.
Every public call runs inside a ``store.<table>.<operation>`` Logfire span.
"""

from abc import ABC, abstractmethod
from typing import Generic, TypeVar

from pydantic import BaseModel
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..database.schema import Base
from ..database.session import safe_commit, safe_query
from ..observability.context import trace_repository_operation

ModelType = TypeVar("ModelType", bound=Base)
ResponseSchemaType = TypeVar("ResponseSchemaType", bound=BaseModel)


class RepositoryException(Exception):
    """Base exception for repository operations."""


class BaseRepository(ABC, Generic[ModelType, ResponseSchemaType]):
    """
    Abstract base repository providing the common store operations.

    Subclasses name the ORM class and the response schema, and may override
    ``_to_response_model``/``_apply_changes`` when the two shapes differ.
    """

    def __init__(self, session: Session):
        """Initialize repository with database session."""
        self.session = session

    @property
    @abstractmethod
    def model_class(self) -> type[ModelType]:
        """Return the SQLAlchemy model class."""

    @property
    @abstractmethod
    def response_schema(self) -> type[ResponseSchemaType]:
        """Return the Pydantic response schema."""

    def _trace(self, operation: str, **attributes):
        return trace_repository_operation(
            self.session, self.model_class.__tablename__, operation, **attributes
        )

    def _to_response_model(self, db_obj: ModelType) -> ResponseSchemaType:
        """Convert database model to Pydantic response model."""
        return self.response_schema.model_validate(db_obj, from_attributes=True)

    def _apply_changes(self, db_obj: ModelType, data: ResponseSchemaType) -> None:
        """Copy the model's fields onto the row."""
        for field, value in data.model_dump().items():
            setattr(db_obj, field, value)

    def _get_row(self, id: str) -> ModelType | None:
        query = select(self.model_class).where(self.model_class.id == str(id))
        return safe_query(
            self.session,
            lambda s: s.execute(query).scalar_one_or_none(),
            f"Failed to get {self.model_class.__name__} by ID",
        )

    def get_by_id(self, id: str) -> ResponseSchemaType | None:
        """
        Get entity by ID.

        Returns:
            Pydantic model or None if not found

        Raises:
            ValueError: On database errors
        """
        with self._trace("get_by_id", entity_id=id) as span:
            db_obj = self._get_row(id)
            span.set_attribute("found", db_obj is not None)
        if db_obj is None:
            return None
        return self._to_response_model(db_obj)

    def get_all(self) -> list[ResponseSchemaType]:
        """Get all entities ordered by ID."""
        query = select(self.model_class).order_by(self.model_class.id)
        with self._trace("get_all") as span:
            results = safe_query(
                self.session,
                lambda s: s.execute(query).scalars().all(),
                "Failed to get all results",
            )
            span.set_attribute("row_count", len(results))
        return [self._to_response_model(item) for item in results]

    def save(self, data: ResponseSchemaType) -> ResponseSchemaType:
        """
        Insert the entity, or overwrite the stored one with the same ID.

        Returns:
            The entity as stored

        Raises:
            RepositoryException: If a constraint is violated or the write fails
        """
        with self._trace("save", entity_id=data.id) as span:
            db_obj = self._get_row(data.id)
            span.set_attribute("inserted", db_obj is None)
            if db_obj is None:
                db_obj = self.model_class(id=data.id)
                self.session.add(db_obj)

            self._apply_changes(db_obj, data)

            try:
                self.session.flush()
            except IntegrityError as e:
                self.session.rollback()
                raise RepositoryException(
                    f"{self.model_class.__name__} {data.id} violates a constraint: {e.orig}"
                ) from e
            except SQLAlchemyError as e:
                self.session.rollback()
                raise RepositoryException(f"Database error: {e!s}") from e

            safe_commit(self.session, f"save {self.model_class.__name__}")
        return self._to_response_model(db_obj)

    def delete(self, id: str) -> bool:
        """
        Delete entity by ID.

        Returns:
            True if deleted, False if not found

        Raises:
            RepositoryException: On database errors
        """
        with self._trace("delete", entity_id=id):
            db_obj = self._get_row(id)
            if db_obj is None:
                return False

            try:
                self.session.delete(db_obj)
                self.session.flush()
            except SQLAlchemyError as e:
                self.session.rollback()
                raise RepositoryException(f"Delete failed: {e!s}") from e

            safe_commit(self.session, f"delete {self.model_class.__name__}")
        return True

    def exists(self, id: str) -> bool:
        """Check if entity exists by ID."""
        query = (
            select(func.count()).select_from(self.model_class).where(self.model_class.id == str(id))
        )
        with self._trace("exists", entity_id=id):
            count = safe_query(
                self.session, lambda s: s.execute(query).scalar(), "Failed to check existence"
            )
        return count > 0
