"""
Catalog tools for the Lending Library MCP server.

- search_books: filter the catalog by title, availability and borrower
- add_book / update_book / remove_book: book administration
- add_member / update_member / remove_member: member administration

Administration tools only check that required fields are present and, for
updates and removals, that the record exists; loan and queue state is never
touched here.
"""

import logging
from collections.abc import Callable
from typing import Any

from pydantic import BaseModel, Field, ValidationError, field_validator

from ..database.session import get_session
from ..observability.decorators import trace_tool
from ..services.library_service import LibraryService, Result
from .common import build_library_service, error_response, refusal_response, text_response

logger = logging.getLogger(__name__)


class SearchBooksInput(BaseModel):
    """Input schema for the search_books tool. Omitted filters are ignored."""

    title_contains: str | None = Field(
        default=None,
        description="Case-insensitive text the title must contain",
        max_length=200,
        examples=["gatsby", "the"],
    )

    available_only: bool | None = Field(
        default=None,
        description="True for books not on loan, False for books on loan",
    )

    loaned_to: str | None = Field(
        default=None,
        description="Only books loaned to this member",
        examples=["m-alice"],
    )

    @field_validator("title_contains")
    @classmethod
    def strip_whitespace(cls, v: str | None) -> str | None:
        """Treat a blank search term as no filter."""
        if v is not None:
            v = v.strip()
            if not v:
                return None
        return v


class BookInput(BaseModel):
    book_id: str = Field(..., min_length=1, max_length=64, examples=["b-gatsby"])
    title: str = Field(..., min_length=1, max_length=500, examples=["The Great Gatsby"])


class BookIdInput(BaseModel):
    book_id: str = Field(..., min_length=1, max_length=64, examples=["b-gatsby"])


class MemberInput(BaseModel):
    member_id: str = Field(..., min_length=1, max_length=64, examples=["m-alice"])
    name: str = Field(..., min_length=1, max_length=200, examples=["Alice Smith"])


class MemberIdInput(BaseModel):
    member_id: str = Field(..., min_length=1, max_length=64, examples=["m-alice"])


@trace_tool("search_books")
async def search_books_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    """Handler for the search_books tool."""
    try:
        try:
            params = SearchBooksInput.model_validate(arguments)
        except ValidationError as e:
            logger.warning("Invalid search parameters: %s", e)
            return error_response(f"Invalid search parameters: {e}")

        logger.debug(
            "Book search: title=%s, available_only=%s, loaned_to=%s",
            params.title_contains,
            params.available_only,
            params.loaned_to,
        )

        with get_session() as session:
            books = build_library_service(session).search_books(
                title_contains=params.title_contains,
                available_only=params.available_only,
                loaned_to=params.loaned_to,
            )

        if not books:
            message = "No books found matching your search criteria."
        else:
            lines = [f"Found {len(books)} book(s):"]
            for book in books:
                status = "available" if book.is_available else f"on loan to {book.loaned_to}"
                lines.append(f"- {book.title} [{book.id}] ({status})")
            message = "\n".join(lines)

        return text_response(
            message,
            {"books": [book.model_dump(mode="json") for book in books], "total": len(books)},
        )

    except Exception as e:
        logger.exception("Unexpected error in search_books tool")
        return error_response(f"An unexpected error occurred: {e!s}")


async def _run_admin_operation(
    action: str,
    schema: type[BaseModel],
    arguments: dict[str, Any],
    operation: Callable[[LibraryService, Any], Result],
    success_message: Callable[[Any], str],
) -> dict[str, Any]:
    """Validate, run one administration operation and format its result."""
    try:
        try:
            params = schema.model_validate(arguments)
        except ValidationError as e:
            logger.warning("Invalid %s parameters: %s", action, e)
            return error_response(f"Invalid {action} parameters: {e}")

        with get_session() as session:
            result = operation(build_library_service(session), params)

        if not result.ok:
            logger.info("%s failed - %s", action, result.reason.value)
            return refusal_response(result, action.capitalize())

        return text_response(success_message(params), {"result": result.model_dump(mode="json")})

    except Exception as e:
        logger.exception("Unexpected error in %s tool", action)
        return error_response(f"An unexpected error occurred: {e!s}")


@trace_tool("add_book")
async def add_book_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    return await _run_admin_operation(
        "add book",
        BookInput,
        arguments,
        lambda service, p: service.create_book(p.book_id, p.title),
        lambda p: f"Book '{p.book_id}' added: {p.title}",
    )


@trace_tool("update_book")
async def update_book_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    return await _run_admin_operation(
        "update book",
        BookInput,
        arguments,
        lambda service, p: service.update_book(p.book_id, p.title),
        lambda p: f"Book '{p.book_id}' retitled: {p.title}",
    )


@trace_tool("remove_book")
async def remove_book_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    return await _run_admin_operation(
        "remove book",
        BookIdInput,
        arguments,
        lambda service, p: service.delete_book(p.book_id),
        lambda p: f"Book '{p.book_id}' removed from the catalog",
    )


@trace_tool("add_member")
async def add_member_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    return await _run_admin_operation(
        "add member",
        MemberInput,
        arguments,
        lambda service, p: service.create_member(p.member_id, p.name),
        lambda p: f"Member '{p.member_id}' added: {p.name}",
    )


@trace_tool("update_member")
async def update_member_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    return await _run_admin_operation(
        "update member",
        MemberInput,
        arguments,
        lambda service, p: service.update_member(p.member_id, p.name),
        lambda p: f"Member '{p.member_id}' renamed: {p.name}",
    )


@trace_tool("remove_member")
async def remove_member_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    return await _run_admin_operation(
        "remove member",
        MemberIdInput,
        arguments,
        lambda service, p: service.delete_member(p.member_id),
        lambda p: f"Member '{p.member_id}' removed",
    )


# =============================================================================
# TOOL REGISTRATION
# =============================================================================

search_books = {
    "name": "search_books",
    "description": (
        "Search the catalog. Filter by text contained in the title, by availability, "
        "or by the member a book is loaned to."
    ),
    "inputSchema": SearchBooksInput.model_json_schema(),
    "handler": search_books_handler,
}

add_book = {
    "name": "add_book",
    "description": "Add a book to the catalog, or reset an existing entry with the same id.",
    "inputSchema": BookInput.model_json_schema(),
    "handler": add_book_handler,
}

update_book = {
    "name": "update_book",
    "description": "Change the title of an existing book.",
    "inputSchema": BookInput.model_json_schema(),
    "handler": update_book_handler,
}

remove_book = {
    "name": "remove_book",
    "description": "Remove a book and its reservation queue from the catalog.",
    "inputSchema": BookIdInput.model_json_schema(),
    "handler": remove_book_handler,
}

add_member = {
    "name": "add_member",
    "description": "Register a library member.",
    "inputSchema": MemberInput.model_json_schema(),
    "handler": add_member_handler,
}

update_member = {
    "name": "update_member",
    "description": "Change a member's name.",
    "inputSchema": MemberInput.model_json_schema(),
    "handler": update_member_handler,
}

remove_member = {
    "name": "remove_member",
    "description": (
        "Remove a member. Their queue entries are dropped the next time the affected "
        "books are returned."
    ),
    "inputSchema": MemberIdInput.model_json_schema(),
    "handler": remove_member_handler,
}
