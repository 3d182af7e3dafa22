"""
Tests for the circulation tools (borrow, return, reserve, cancel, extend).

1. Input validation
2. Success responses and their structured data
3. Business refusals carrying reason codes
4. State changes in the database
"""

from datetime import date, timedelta

import pytest

from lending_library.config import reset_config
from lending_library.database.book_repository import BookRepository
from lending_library.database.member_repository import MemberRepository
from lending_library.models import Book, Member
from lending_library.tools import all_tools
from lending_library.tools.circulation import (
    ExtendLoanInput,
    LoanRequestInput,
    borrow_book_handler,
    cancel_reservation_handler,
    extend_loan_handler,
    reserve_book_handler,
    return_book_handler,
)


@pytest.fixture
def setup_test_data(mock_get_session):
    """Two members and two available books."""
    members = MemberRepository(mock_get_session)
    books = BookRepository(mock_get_session)
    members.save(Member(id="m1", name="Alice"))
    members.save(Member(id="m2", name="Bob"))
    books.save(Book(id="b1", title="The Great Gatsby"))
    books.save(Book(id="b2", title="Moby Dick"))
    return books


def is_error(result) -> bool:
    return result.get("isError", False)


def text_of(result) -> str:
    return result["content"][0]["text"]


class TestInputSchemas:
    def test_loan_request_requires_both_ids(self):
        with pytest.raises(ValueError):
            LoanRequestInput(book_id="b1")

    def test_extension_range(self):
        assert ExtendLoanInput(book_id="b1", days=-3).days == -3
        with pytest.raises(ValueError):
            ExtendLoanInput(book_id="b1", days=400)


class TestBorrowBookTool:
    async def test_borrow_success(self, setup_test_data):
        result = await borrow_book_handler({"book_id": "b1", "member_id": "m1"})

        assert not is_error(result)
        assert result["content"][0]["type"] == "text"
        assert "Book 'b1' loaned to member 'm1'" in text_of(result)
        assert "Due date:" in text_of(result)
        assert result["data"]["result"] == {"ok": True, "reason": None}
        assert result["data"]["book"]["due_date"] == (date.today() + timedelta(days=14)).isoformat()

        assert setup_test_data.get_by_id("b1").loaned_to == "m1"

    async def test_borrow_uses_configured_loan_period(self, setup_test_data, monkeypatch):
        monkeypatch.setenv("LENDING_LIBRARY_LOAN_PERIOD_DAYS", "7")
        reset_config()

        result = await borrow_book_handler({"book_id": "b1", "member_id": "m1"})

        assert result["data"]["book"]["due_date"] == (date.today() + timedelta(days=7)).isoformat()

    async def test_borrow_invalid_parameters(self, setup_test_data):
        result = await borrow_book_handler({"book_id": "b1"})

        assert is_error(result)
        assert "Invalid borrow parameters" in text_of(result)
        assert "member_id" in text_of(result)

    async def test_borrow_unknown_book(self, setup_test_data):
        result = await borrow_book_handler({"book_id": "missing", "member_id": "m1"})

        assert is_error(result)
        assert "(BOOK_NOT_FOUND)" in text_of(result)
        assert result["data"]["result"]["reason"] == "BOOK_NOT_FOUND"

    async def test_borrow_queue_jump_refused(self, setup_test_data):
        setup_test_data.save(Book(id="b1", title="The Great Gatsby", reservation_queue=["m2"]))

        result = await borrow_book_handler({"book_id": "b1", "member_id": "m1"})

        assert is_error(result)
        assert "refused" in text_of(result)
        assert result["data"]["result"]["reason"] == "QUEUE_EXISTS"
        assert setup_test_data.get_by_id("b1").loaned_to is None

    async def test_unexpected_error_becomes_error_response(self, setup_test_data, monkeypatch):
        def boom(*args, **kwargs):
            raise RuntimeError("disk on fire")

        monkeypatch.setattr("lending_library.tools.circulation.build_library_service", boom)

        result = await borrow_book_handler({"book_id": "b1", "member_id": "m1"})

        assert is_error(result)
        assert "disk on fire" in text_of(result)


class TestReturnBookTool:
    async def test_return_makes_book_available(self, setup_test_data):
        await borrow_book_handler({"book_id": "b1", "member_id": "m1"})

        result = await return_book_handler({"book_id": "b1", "member_id": "m1"})

        assert not is_error(result)
        assert "now available" in text_of(result)
        assert result["data"]["result"] == {"ok": True, "next_member_id": None}

    async def test_return_hands_off_to_queue(self, setup_test_data):
        await borrow_book_handler({"book_id": "b1", "member_id": "m1"})
        await reserve_book_handler({"book_id": "b1", "member_id": "m2"})

        result = await return_book_handler({"book_id": "b1", "member_id": "m1"})

        assert "Handed off to queued member 'm2'" in text_of(result)
        assert result["data"]["result"]["next_member_id"] == "m2"
        assert setup_test_data.get_by_id("b1").loaned_to == "m2"

    async def test_return_by_wrong_member(self, setup_test_data):
        await borrow_book_handler({"book_id": "b1", "member_id": "m1"})

        result = await return_book_handler({"book_id": "b1", "member_id": "m2"})

        assert is_error(result)
        assert "not on loan to member 'm2'" in text_of(result)
        assert result["data"]["result"]["ok"] is False


class TestReserveBookTool:
    async def test_reserve_available_book_loans_it(self, setup_test_data):
        result = await reserve_book_handler({"book_id": "b1", "member_id": "m1"})

        assert not is_error(result)
        assert "was available and is now loaned" in text_of(result)
        assert "queue_position" not in result["data"]

    async def test_reserve_loaned_book_reports_position(self, setup_test_data):
        await borrow_book_handler({"book_id": "b1", "member_id": "m1"})

        result = await reserve_book_handler({"book_id": "b1", "member_id": "m2"})

        assert "Queue position: 0" in text_of(result)
        assert result["data"]["queue_position"] == 0
        assert result["data"]["book"]["reservation_queue"] == ["m2"]

    async def test_reserve_twice(self, setup_test_data):
        await borrow_book_handler({"book_id": "b1", "member_id": "m1"})
        await reserve_book_handler({"book_id": "b1", "member_id": "m2"})

        result = await reserve_book_handler({"book_id": "b1", "member_id": "m2"})

        assert result["data"]["result"]["reason"] == "ALREADY_RESERVED"


class TestCancelReservationTool:
    async def test_cancel_then_cancel_again(self, setup_test_data):
        await borrow_book_handler({"book_id": "b1", "member_id": "m1"})
        await reserve_book_handler({"book_id": "b1", "member_id": "m2"})

        first = await cancel_reservation_handler({"book_id": "b1", "member_id": "m2"})
        second = await cancel_reservation_handler({"book_id": "b1", "member_id": "m2"})

        assert not is_error(first)
        assert "cancelled" in text_of(first)
        assert is_error(second)
        assert second["data"]["result"]["reason"] == "NOT_RESERVED"


class TestExtendLoanTool:
    async def test_extend_loan(self, setup_test_data):
        await borrow_book_handler({"book_id": "b1", "member_id": "m1"})

        result = await extend_loan_handler({"book_id": "b1", "days": 7})

        expected = date.today() + timedelta(days=21)
        assert not is_error(result)
        assert result["data"]["book"]["due_date"] == expected.isoformat()

    async def test_extend_by_zero_days(self, setup_test_data):
        result = await extend_loan_handler({"book_id": "b1", "days": 0})

        assert result["data"]["result"]["reason"] == "INVALID_EXTENSION"

    async def test_extend_unloaned_book(self, setup_test_data):
        result = await extend_loan_handler({"book_id": "b2", "days": 5})

        assert result["data"]["result"]["reason"] == "NOT_LOANED"

    async def test_extend_invalid_parameters(self, setup_test_data):
        result = await extend_loan_handler({"book_id": "b1", "days": "soon"})

        assert is_error(result)
        assert "Invalid extension parameters" in text_of(result)


def test_all_tools_are_registered_once():
    names = [tool["name"] for tool in all_tools]

    assert len(names) == len(set(names)) == 12
    for tool in all_tools:
        assert callable(tool["handler"])
        assert tool["inputSchema"]["type"] == "object"
