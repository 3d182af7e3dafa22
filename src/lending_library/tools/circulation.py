"""
Circulation tools for the Lending Library MCP server.

1. borrow_book: lend a book, honouring the reservation queue
2. return_book: take a book back and hand it to the next eligible member
3. reserve_book: join a book's queue (or get it at once when possible)
4. cancel_reservation: leave a book's queue
5. extend_loan: move a loan's due date

Each handler validates its arguments with a Pydantic schema, runs one
``LibraryService`` operation in its own session and turns the result into an
MCP response. Business refusals come back as ``isError`` responses whose
``data.result.reason`` carries the service's reason code.
"""

import logging
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from ..database.session import get_session
from ..observability.decorators import trace_tool
from .common import build_library_service, error_response, refusal_response, text_response

logger = logging.getLogger(__name__)


class LoanRequestInput(BaseModel):
    """Input schema shared by borrow, return, reserve and cancel."""

    book_id: str = Field(
        ...,
        description="Identifier of the book",
        min_length=1,
        max_length=64,
        examples=["b-gatsby", "b-mockingbird"],
    )

    member_id: str = Field(
        ...,
        description="Identifier of the member",
        min_length=1,
        max_length=64,
        examples=["m-alice", "m-bob"],
    )


class ExtendLoanInput(BaseModel):
    """Input schema for the extend_loan tool."""

    book_id: str = Field(
        ...,
        description="Identifier of the loaned book",
        min_length=1,
        max_length=64,
        examples=["b-gatsby"],
    )

    days: int = Field(
        ...,
        description="Days to add to the due date; negative values shorten the loan",
        ge=-365,
        le=365,
        examples=[7, 14, -3],
    )


# =============================================================================
# BORROW
# =============================================================================


@trace_tool("borrow_book")
async def borrow_book_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    """Handler for the borrow_book tool."""
    try:
        try:
            params = LoanRequestInput.model_validate(arguments)
        except ValidationError as e:
            logger.warning("Invalid borrow parameters: %s", e)
            return error_response(f"Invalid borrow parameters: {e}")

        with get_session() as session:
            service = build_library_service(session)
            result = service.borrow_book(params.book_id, params.member_id)
            book = service.find_book(params.book_id) if result.ok else None

        if not result.ok:
            logger.info("Borrow failed - %s", result.reason.value)
            return refusal_response(result, f"Borrowing '{params.book_id}'")

        return text_response(
            f"Book '{book.id}' loaned to member '{book.loaned_to}'. "
            f"Due date: {book.due_date.strftime('%B %d, %Y')}",
            {"result": result.model_dump(mode="json"), "book": book.model_dump(mode="json")},
        )

    except Exception as e:
        logger.exception("Unexpected error in borrow_book tool")
        return error_response(f"An unexpected error occurred: {e!s}")


# =============================================================================
# RETURN
# =============================================================================


@trace_tool("return_book")
async def return_book_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    """
    Handler for the return_book tool.

    The response names the member who received the book next, if any.
    """
    try:
        try:
            params = LoanRequestInput.model_validate(arguments)
        except ValidationError as e:
            logger.warning("Invalid return parameters: %s", e)
            return error_response(f"Invalid return parameters: {e}")

        with get_session() as session:
            result = build_library_service(session).return_book(params.book_id, params.member_id)

        if not result.ok:
            logger.info("Return failed - %s not loaned to %s", params.book_id, params.member_id)
            return error_response(
                f"Book '{params.book_id}' is not on loan to member '{params.member_id}'",
                {"result": result.model_dump(mode="json")},
            )

        message = f"Book '{params.book_id}' returned by member '{params.member_id}'."
        if result.next_member_id:
            message += f" Handed off to queued member '{result.next_member_id}'."
        else:
            message += " The book is now available."

        return text_response(message, {"result": result.model_dump(mode="json")})

    except Exception as e:
        logger.exception("Unexpected error in return_book tool")
        return error_response(f"An unexpected error occurred: {e!s}")


# =============================================================================
# RESERVATIONS
# =============================================================================


@trace_tool("reserve_book")
async def reserve_book_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    """
    Handler for the reserve_book tool.

    A member who can take an available book receives it immediately; everyone
    else is appended to the queue and told their position.
    """
    try:
        try:
            params = LoanRequestInput.model_validate(arguments)
        except ValidationError as e:
            logger.warning("Invalid reservation parameters: %s", e)
            return error_response(f"Invalid reservation parameters: {e}")

        with get_session() as session:
            service = build_library_service(session)
            result = service.reserve_book(params.book_id, params.member_id)
            book = service.find_book(params.book_id) if result.ok else None

        if not result.ok:
            logger.info("Reservation failed - %s", result.reason.value)
            return refusal_response(result, f"Reserving '{params.book_id}'")

        data = {"result": result.model_dump(mode="json"), "book": book.model_dump(mode="json")}
        if book.loaned_to == params.member_id:
            return text_response(
                f"Book '{book.id}' was available and is now loaned to member "
                f"'{params.member_id}'. Due date: {book.due_date.strftime('%B %d, %Y')}",
                data,
            )

        position = book.queue_position(params.member_id)
        data["queue_position"] = position
        return text_response(
            f"Member '{params.member_id}' reserved book '{book.id}'. Queue position: {position}",
            data,
        )

    except Exception as e:
        logger.exception("Unexpected error in reserve_book tool")
        return error_response(f"An unexpected error occurred: {e!s}")


@trace_tool("cancel_reservation")
async def cancel_reservation_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    """Handler for the cancel_reservation tool."""
    try:
        try:
            params = LoanRequestInput.model_validate(arguments)
        except ValidationError as e:
            logger.warning("Invalid cancellation parameters: %s", e)
            return error_response(f"Invalid cancellation parameters: {e}")

        with get_session() as session:
            result = build_library_service(session).cancel_reservation(
                params.book_id, params.member_id
            )

        if not result.ok:
            logger.info("Cancellation failed - %s", result.reason.value)
            return refusal_response(result, f"Cancelling reservation of '{params.book_id}'")

        return text_response(
            f"Reservation of book '{params.book_id}' by member '{params.member_id}' cancelled.",
            {"result": result.model_dump(mode="json")},
        )

    except Exception as e:
        logger.exception("Unexpected error in cancel_reservation tool")
        return error_response(f"An unexpected error occurred: {e!s}")


# =============================================================================
# EXTENSIONS
# =============================================================================


@trace_tool("extend_loan")
async def extend_loan_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    """Handler for the extend_loan tool."""
    try:
        try:
            params = ExtendLoanInput.model_validate(arguments)
        except ValidationError as e:
            logger.warning("Invalid extension parameters: %s", e)
            return error_response(f"Invalid extension parameters: {e}")

        with get_session() as session:
            service = build_library_service(session)
            result = service.extend_loan(params.book_id, params.days)
            book = service.find_book(params.book_id) if result.ok else None

        if not result.ok:
            logger.info("Extension failed - %s", result.reason.value)
            return refusal_response(result, f"Extending loan of '{params.book_id}'")

        return text_response(
            f"Loan of book '{book.id}' now due {book.due_date.strftime('%B %d, %Y')}",
            {"result": result.model_dump(mode="json"), "book": book.model_dump(mode="json")},
        )

    except Exception as e:
        logger.exception("Unexpected error in extend_loan tool")
        return error_response(f"An unexpected error occurred: {e!s}")


# =============================================================================
# TOOL REGISTRATION
# =============================================================================

borrow_book = {
    "name": "borrow_book",
    "description": (
        "Lend a book to a member for the standard loan period. Refused when the book "
        "is on loan, the member is at the borrowing limit, or another eligible member "
        "is waiting in the book's reservation queue."
    ),
    "inputSchema": LoanRequestInput.model_json_schema(),
    "handler": borrow_book_handler,
}

return_book = {
    "name": "return_book",
    "description": (
        "Return a book on behalf of its borrower. The book is handed to the first "
        "queued member who can still borrow, and the returning member may receive one "
        "of the books they reserved."
    ),
    "inputSchema": LoanRequestInput.model_json_schema(),
    "handler": return_book_handler,
}

reserve_book = {
    "name": "reserve_book",
    "description": (
        "Reserve a book. If it is available and the member can borrow, it is loaned "
        "immediately; otherwise the member joins the end of the reservation queue."
    ),
    "inputSchema": LoanRequestInput.model_json_schema(),
    "handler": reserve_book_handler,
}

cancel_reservation = {
    "name": "cancel_reservation",
    "description": "Remove a member from a book's reservation queue.",
    "inputSchema": LoanRequestInput.model_json_schema(),
    "handler": cancel_reservation_handler,
}

extend_loan = {
    "name": "extend_loan",
    "description": (
        "Move the due date of a loaned book by a non-zero number of days. Negative "
        "values shorten the loan."
    ),
    "inputSchema": ExtendLoanInput.model_json_schema(),
    "handler": extend_loan_handler,
}
