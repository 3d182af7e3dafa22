"""
Shared helpers for the Lending Library MCP tools.

Every tool call builds a ``LibraryService`` over a fresh session and formats the
service's result values as MCP tool responses.
"""

import threading
from typing import Any

from sqlalchemy.orm import Session

from ..config import get_config
from ..database.book_repository import BookRepository
from ..database.member_repository import MemberRepository
from ..services.library_service import LibraryService, ReasonCode, Result

# Shared by every service built here so that writes within one server process
# never interleave
CIRCULATION_LOCK = threading.RLock()

REASON_MESSAGES: dict[ReasonCode, str] = {
    ReasonCode.BOOK_NOT_FOUND: "book not found",
    ReasonCode.MEMBER_NOT_FOUND: "member not found",
    ReasonCode.ALREADY_LOANED: "the member already holds this book",
    ReasonCode.BOOK_UNAVAILABLE: "the book is on loan to another member",
    ReasonCode.BORROW_LIMIT: "the member has reached the borrowing limit",
    ReasonCode.QUEUE_EXISTS: "another member is first in the reservation queue",
    ReasonCode.ALREADY_RESERVED: "the member is already in the reservation queue",
    ReasonCode.NOT_RESERVED: "the member is not in the reservation queue",
    ReasonCode.INVALID_EXTENSION: "the extension must be a non-zero number of days",
    ReasonCode.NOT_LOANED: "the book is not on loan",
    ReasonCode.INVALID_REQUEST: "required fields are missing",
}


def build_library_service(session: Session) -> LibraryService:
    """Create a service over repositories bound to ``session``."""
    config = get_config()
    return LibraryService(
        BookRepository(session),
        MemberRepository(session),
        max_loans=config.borrow_limit,
        loan_days=config.loan_period_days,
        lock=CIRCULATION_LOCK,
    )


def text_response(message: str, data: dict[str, Any] | None = None) -> dict[str, Any]:
    response: dict[str, Any] = {"content": [{"type": "text", "text": message}]}
    if data is not None:
        response["data"] = data
    return response


def error_response(message: str, data: dict[str, Any] | None = None) -> dict[str, Any]:
    response = text_response(message, data)
    response["isError"] = True
    return response


def refusal_response(result: Result, action: str) -> dict[str, Any]:
    """Error response for a business rule refusal, keeping the reason code."""
    return error_response(
        f"{action} refused: {REASON_MESSAGES[result.reason]} ({result.reason.value})",
        {"result": result.model_dump(mode="json")},
    )
