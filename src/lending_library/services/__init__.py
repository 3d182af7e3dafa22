"""
Business services for the Lending Library.

``LibraryService`` implements loans, reservation queues and hand-offs over the
book and member stores.
"""

from .library_service import (
    DEFAULT_LOAN_DAYS,
    MAX_LOANS,
    BookStore,
    LibraryService,
    MemberStore,
    MemberSummary,
    ReasonCode,
    ReservationPosition,
    Result,
    ResultWithNext,
)

__all__ = [
    "DEFAULT_LOAN_DAYS",
    "MAX_LOANS",
    "BookStore",
    "LibraryService",
    "MemberStore",
    "MemberSummary",
    "ReasonCode",
    "ReservationPosition",
    "Result",
    "ResultWithNext",
]
