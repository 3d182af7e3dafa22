"""Book Resources - Catalog Access

Read-only views of the catalog.

Resources:
- library://books/list - every book with its loan and queue state
- library://books/overdue - loaned books past their due date
- library://books/{book_id} - a single book
"""

import logging
from typing import Any

from fastmcp.exceptions import ResourceError
from pydantic import BaseModel, Field

from ..database.book_repository import BookRepository
from ..database.session import session_scope
from ..models.book import Book
from ..tools.common import build_library_service

logger = logging.getLogger(__name__)


class BookListResponse(BaseModel):
    """Books plus summary counts."""

    books: list[Book] = Field(..., description="Books ordered by id")
    total: int = Field(..., description="Number of books in the list")
    on_loan: int = Field(..., description="How many of them are loaned out")


async def list_books_handler() -> dict[str, Any]:
    """Returns the whole catalog."""
    try:
        logger.debug("MCP Resource Request - books/list")

        with session_scope() as session:
            books = BookRepository(session).get_all()

        response = BookListResponse(
            books=books,
            total=len(books),
            on_loan=sum(1 for book in books if not book.is_available),
        )
        return response.model_dump(mode="json")

    except Exception as e:
        logger.exception("Error in books/list resource")
        raise ResourceError(f"Failed to retrieve book list: {e!s}") from e


async def overdue_books_handler() -> dict[str, Any]:
    """Returns loaned books whose due date is before today."""
    try:
        logger.debug("MCP Resource Request - books/overdue")

        with session_scope() as session:
            service = build_library_service(session)
            books = service.overdue_books()

        return {
            "books": [book.model_dump(mode="json") for book in books],
            "total": len(books),
        }

    except Exception as e:
        logger.exception("Error in books/overdue resource")
        raise ResourceError(f"Failed to retrieve overdue books: {e!s}") from e


async def get_book_handler(book_id: str) -> dict[str, Any]:
    """Returns one book, including its reservation queue."""
    try:
        logger.debug("MCP Resource Request - books/%s", book_id)

        with session_scope() as session:
            book = BookRepository(session).get_by_id(book_id)

        if book is None:
            raise ResourceError(f"Book not found: {book_id}")

        return book.model_dump(mode="json")

    except ResourceError:
        raise
    except Exception as e:
        logger.exception("Error in books/{book_id} resource")
        raise ResourceError(f"Failed to retrieve book details: {e!s}") from e


book_resources: list[dict[str, Any]] = [
    {
        "uri": "library://books/list",
        "name": "Book Catalog",
        "description": "Every book in the catalog with its borrower, due date and queue.",
        "mime_type": "application/json",
        "handler": list_books_handler,
    },
    {
        "uri": "library://books/overdue",
        "name": "Overdue Books",
        "description": "Books on loan whose due date has passed.",
        "mime_type": "application/json",
        "handler": overdue_books_handler,
    },
    {
        "uri_template": "library://books/{book_id}",
        "name": "Book Details",
        "description": "A single book by id, including its reservation queue.",
        "mime_type": "application/json",
        "handler": get_book_handler,
    },
]
