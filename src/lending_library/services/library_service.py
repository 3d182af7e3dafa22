"""
Loan and reservation rules for the Lending Library.

``LibraryService`` owns every business rule of circulation: who may borrow a
book, who must wait, and who receives a book when it comes back. It works over
two stores (see ``BookStore``/``MemberStore``) that only persist and look up
data; the SQLAlchemy repositories in ``lending_library.database`` implement them.

Expected failures are reported through result values (``Result``,
``ResultWithNext``, ``MemberSummary``) carrying a stable ``ReasonCode``. Storage
errors raised by the stores propagate unchanged and are never retried here.

Concurrency: mutating operations run under a re-entrant lock owned by the
service (or passed in by the caller). Services that share a lock are serialized
against each other; nothing protects writers in other processes, which may
still overwrite each other's changes.
"""

import enum
import logging
import threading
from collections.abc import Callable
from contextlib import AbstractContextManager
from datetime import date, timedelta
from typing import Protocol

from pydantic import BaseModel, ValidationError

from ..models.book import Book
from ..models.member import Member

logger = logging.getLogger(__name__)

MAX_LOANS = 5
DEFAULT_LOAN_DAYS = 14


class BookStore(Protocol):
    """Persistence operations the service needs for books."""

    def get_by_id(self, id: str) -> Book | None: ...

    def get_all(self) -> list[Book]: ...

    def save(self, data: Book) -> Book: ...

    def delete(self, id: str) -> bool: ...

    def count_by_loaned_to(self, member_id: str) -> int: ...

    def find_available_with_member_in_queue(self, member_id: str) -> list[Book]: ...


class MemberStore(Protocol):
    """Persistence operations the service needs for members."""

    def get_by_id(self, id: str) -> Member | None: ...

    def exists(self, id: str) -> bool: ...

    def get_all(self) -> list[Member]: ...

    def save(self, data: Member) -> Member: ...

    def delete(self, id: str) -> bool: ...


class ReasonCode(str, enum.Enum):
    """Stable failure codes returned by the service."""

    BOOK_NOT_FOUND = "BOOK_NOT_FOUND"
    MEMBER_NOT_FOUND = "MEMBER_NOT_FOUND"
    ALREADY_LOANED = "ALREADY_LOANED"
    BOOK_UNAVAILABLE = "BOOK_UNAVAILABLE"
    BORROW_LIMIT = "BORROW_LIMIT"
    QUEUE_EXISTS = "QUEUE_EXISTS"
    ALREADY_RESERVED = "ALREADY_RESERVED"
    NOT_RESERVED = "NOT_RESERVED"
    INVALID_EXTENSION = "INVALID_EXTENSION"
    NOT_LOANED = "NOT_LOANED"
    INVALID_REQUEST = "INVALID_REQUEST"


class Result(BaseModel):
    """Outcome of an operation: ``ok`` or a failure ``reason``."""

    ok: bool
    reason: ReasonCode | None = None

    @classmethod
    def success(cls) -> "Result":
        return cls(ok=True)

    @classmethod
    def failure(cls, reason: ReasonCode) -> "Result":
        return cls(ok=False, reason=reason)


class ResultWithNext(BaseModel):
    """Outcome of a return; ``next_member_id`` is who received the book next."""

    ok: bool
    next_member_id: str | None = None

    @classmethod
    def success(cls, next_member_id: str | None) -> "ResultWithNext":
        return cls(ok=True, next_member_id=next_member_id)

    @classmethod
    def failure(cls) -> "ResultWithNext":
        return cls(ok=False)


class ReservationPosition(BaseModel):
    book_id: str
    position: int


class MemberSummary(BaseModel):
    """A member's current loans and their place in every queue they joined."""

    ok: bool
    reason: ReasonCode | None = None
    loans: list[Book] = []
    reservations: list[ReservationPosition] = []


def _blank(value: str | None) -> bool:
    return value is None or not value.strip()


class LibraryService:
    """
    Loan and reservation engine.

    Args:
        books: Book store
        members: Member store
        max_loans: Number of books a member may hold at once
        loan_days: Length of a loan in days
        today: Clock used for due dates
        lock: Lock serializing mutating operations; pass the same lock to every
            service sharing the stores
    """

    def __init__(
        self,
        books: BookStore,
        members: MemberStore,
        *,
        max_loans: int = MAX_LOANS,
        loan_days: int = DEFAULT_LOAN_DAYS,
        today: Callable[[], date] = date.today,
        lock: AbstractContextManager | None = None,
    ):
        self.books = books
        self.members = members
        self.max_loans = max_loans
        self.loan_days = loan_days
        self._today = today
        self._lock = lock if lock is not None else threading.RLock()

    def _new_due_date(self) -> date:
        return self._today() + timedelta(days=self.loan_days)

    # === Eligibility ===

    def can_member_borrow(self, member_id: str) -> bool:
        """True if the member exists and holds fewer books than the limit."""
        if not self.members.exists(member_id):
            return False
        return self.books.count_by_loaned_to(member_id) < self.max_loans

    def _first_eligible(self, book: Book) -> str | None:
        """First queued member who exists and can still borrow.

        Deleted members are skipped, not removed.
        """
        for queued_member in book.reservation_queue:
            if self.members.exists(queued_member) and self.can_member_borrow(queued_member):
                return queued_member
        return None

    # === Circulation ===

    def borrow_book(self, book_id: str, member_id: str) -> Result:
        """Lend a book, refusing to let the member jump an eligible queue."""
        with self._lock:
            book = self.books.get_by_id(book_id)
            if book is None:
                return Result.failure(ReasonCode.BOOK_NOT_FOUND)
            if not self.members.exists(member_id):
                return Result.failure(ReasonCode.MEMBER_NOT_FOUND)

            # Book-specific problems are reported before the member's limit
            if book.loaned_to == member_id:
                return Result.failure(ReasonCode.ALREADY_LOANED)
            if book.loaned_to is not None:
                return Result.failure(ReasonCode.BOOK_UNAVAILABLE)
            if not self.can_member_borrow(member_id):
                return Result.failure(ReasonCode.BORROW_LIMIT)

            if book.reservation_queue:
                first_eligible = self._first_eligible(book)
                if first_eligible is not None and first_eligible != member_id:
                    logger.debug(
                        "Borrow of %s by %s refused: %s is first in queue",
                        book_id,
                        member_id,
                        first_eligible,
                    )
                    return Result.failure(ReasonCode.QUEUE_EXISTS)
                # Requester heads the queue, or nobody waiting can borrow

            book.lend_to(member_id, self._new_due_date())
            self.books.save(book)
            logger.info("Book %s loaned to %s until %s", book_id, member_id, book.due_date)
            return Result.success()

    def return_book(self, book_id: str, member_id: str | None) -> ResultWithNext:
        """
        Take a book back from its borrower.

        The book is handed to the first queued member who can still borrow it;
        afterwards the returning member may automatically receive one of the
        books they are waiting for.
        """
        with self._lock:
            book = self.books.get_by_id(book_id)
            if book is None or book.loaned_to is None:
                return ResultWithNext.failure()
            if member_id is None or book.loaned_to != member_id:
                return ResultWithNext.failure()

            book.clear_loan()
            next_member = self._hand_off(book)
            self.books.save(book)

            self._process_reservations_for(member_id)

            return ResultWithNext.success(next_member)

    def _hand_off(self, book: Book) -> str | None:
        """Give ``book`` to the first queued member who can borrow it.

        Members who no longer exist are dropped from the queue for good; members
        at their limit keep their place.
        """
        index = 0
        while index < len(book.reservation_queue):
            candidate = book.reservation_queue[index]

            if not self.members.exists(candidate):
                logger.info("Dropping deleted member %s from queue of %s", candidate, book.id)
                del book.reservation_queue[index]
                continue

            if self.can_member_borrow(candidate):
                book.lend_to(candidate, self._new_due_date())
                logger.info("Book %s handed off to %s", book.id, candidate)
                return candidate

            index += 1
        return None

    def _process_reservations_for(self, member_id: str) -> None:
        """Give the member at most one available book they head the queue for."""
        if not self.can_member_borrow(member_id):
            return

        for book in self.books.find_available_with_member_in_queue(member_id):
            if self._first_eligible(book) == member_id:
                book.lend_to(member_id, self._new_due_date())
                self.books.save(book)
                logger.info("Reserved book %s assigned to %s", book.id, member_id)
                break

    def reserve_book(self, book_id: str, member_id: str) -> Result:
        """Queue the member for a book, or lend it at once if they can take it now."""
        with self._lock:
            book = self.books.get_by_id(book_id)
            if book is None:
                return Result.failure(ReasonCode.BOOK_NOT_FOUND)
            if not self.members.exists(member_id):
                return Result.failure(ReasonCode.MEMBER_NOT_FOUND)

            if member_id in book.reservation_queue:
                return Result.failure(ReasonCode.ALREADY_RESERVED)
            if book.loaned_to == member_id:
                return Result.failure(ReasonCode.ALREADY_LOANED)

            if book.loaned_to is None and self.can_member_borrow(member_id):
                book.lend_to(member_id, self._new_due_date())
                self.books.save(book)
                logger.info("Reservation of %s by %s fulfilled immediately", book_id, member_id)
                return Result.success()

            # Book is loaned or the member is at their limit
            book.reservation_queue.append(member_id)
            self.books.save(book)
            logger.info(
                "Member %s queued for %s at position %d",
                member_id,
                book_id,
                len(book.reservation_queue) - 1,
            )
            return Result.success()

    def cancel_reservation(self, book_id: str, member_id: str) -> Result:
        with self._lock:
            book = self.books.get_by_id(book_id)
            if book is None:
                return Result.failure(ReasonCode.BOOK_NOT_FOUND)
            if not self.members.exists(member_id):
                return Result.failure(ReasonCode.MEMBER_NOT_FOUND)

            if member_id not in book.reservation_queue:
                return Result.failure(ReasonCode.NOT_RESERVED)
            book.reservation_queue.remove(member_id)
            self.books.save(book)
            return Result.success()

    def extend_loan(self, book_id: str, days: int) -> Result:
        """Move the due date by ``days`` (negative values shorten the loan)."""
        if days == 0:
            return Result.failure(ReasonCode.INVALID_EXTENSION)

        with self._lock:
            book = self.books.get_by_id(book_id)
            if book is None:
                return Result.failure(ReasonCode.BOOK_NOT_FOUND)
            if book.loaned_to is None:
                return Result.failure(ReasonCode.NOT_LOANED)

            base_date = book.due_date if book.due_date is not None else self._new_due_date()
            book.due_date = base_date + timedelta(days=days)
            self.books.save(book)
            return Result.success()

    # === Queries ===

    def search_books(
        self,
        title_contains: str | None = None,
        available_only: bool | None = None,
        loaned_to: str | None = None,
    ) -> list[Book]:
        """Filter all books; a filter left as None is ignored."""
        needle = title_contains.lower() if title_contains is not None else None
        return [
            book
            for book in self.books.get_all()
            if (needle is None or needle in book.title.lower())
            and (loaned_to is None or book.loaned_to == loaned_to)
            and (available_only is None or book.is_available == available_only)
        ]

    def overdue_books(self, as_of: date | None = None) -> list[Book]:
        """Loaned books whose due date is strictly before ``as_of`` (default today)."""
        as_of = as_of or self._today()
        return [
            book
            for book in self.books.get_all()
            if book.loaned_to is not None and book.due_date is not None and book.due_date < as_of
        ]

    def member_summary(self, member_id: str) -> MemberSummary:
        if not self.members.exists(member_id):
            return MemberSummary(ok=False, reason=ReasonCode.MEMBER_NOT_FOUND)

        loans = []
        reservations = []
        for book in self.books.get_all():
            if book.loaned_to == member_id:
                loans.append(book)
            position = book.queue_position(member_id)
            if position is not None:
                reservations.append(ReservationPosition(book_id=book.id, position=position))
        return MemberSummary(ok=True, loans=loans, reservations=reservations)

    # === Catalog administration ===

    def find_book(self, book_id: str) -> Book | None:
        return self.books.get_by_id(book_id)

    def all_books(self) -> list[Book]:
        return self.books.get_all()

    def all_members(self) -> list[Member]:
        return self.members.get_all()

    def create_book(self, book_id: str | None, title: str | None) -> Result:
        if _blank(book_id) or _blank(title):
            return Result.failure(ReasonCode.INVALID_REQUEST)
        try:
            book = Book(id=book_id, title=title)
        except ValidationError as e:
            logger.debug("Rejected book %r: %s", book_id, e)
            return Result.failure(ReasonCode.INVALID_REQUEST)
        with self._lock:
            self.books.save(book)
        return Result.success()

    def update_book(self, book_id: str, title: str | None) -> Result:
        with self._lock:
            book = self.books.get_by_id(book_id)
            if book is None:
                return Result.failure(ReasonCode.BOOK_NOT_FOUND)
            if _blank(title):
                return Result.failure(ReasonCode.INVALID_REQUEST)
            try:
                book = Book.model_validate({**book.model_dump(), "title": title})
            except ValidationError as e:
                logger.debug("Rejected title for book %s: %s", book_id, e)
                return Result.failure(ReasonCode.INVALID_REQUEST)
            self.books.save(book)
            return Result.success()

    def delete_book(self, book_id: str) -> Result:
        with self._lock:
            if not self.books.delete(book_id):
                return Result.failure(ReasonCode.BOOK_NOT_FOUND)
            return Result.success()

    def create_member(self, member_id: str | None, name: str | None) -> Result:
        if _blank(member_id) or _blank(name):
            return Result.failure(ReasonCode.INVALID_REQUEST)
        try:
            member = Member(id=member_id, name=name)
        except ValidationError as e:
            logger.debug("Rejected member %r: %s", member_id, e)
            return Result.failure(ReasonCode.INVALID_REQUEST)
        with self._lock:
            self.members.save(member)
        return Result.success()

    def update_member(self, member_id: str, name: str | None) -> Result:
        with self._lock:
            member = self.members.get_by_id(member_id)
            if member is None:
                return Result.failure(ReasonCode.MEMBER_NOT_FOUND)
            if _blank(name):
                return Result.failure(ReasonCode.INVALID_REQUEST)
            try:
                member = Member(id=member.id, name=name)
            except ValidationError as e:
                logger.debug("Rejected name for member %s: %s", member_id, e)
                return Result.failure(ReasonCode.INVALID_REQUEST)
            self.members.save(member)
            return Result.success()

    def delete_member(self, member_id: str) -> Result:
        """Delete a member; books that still reference them are left as they are."""
        with self._lock:
            if not self.members.delete(member_id):
                return Result.failure(ReasonCode.MEMBER_NOT_FOUND)
            return Result.success()
