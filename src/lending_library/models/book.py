"""
Book model for the Lending Library.

A book is a single lendable item. Besides its catalog data it carries the loan
state (who holds it and until when) and an ordered reservation queue of member
ids. The loan fields and the queue are only changed by the circulation
operations of ``LibraryService``; plain catalog edits touch the title only.

Instances are plain values: repositories hand out a fresh copy on every read,
so changing a book (or its queue list) has no effect until it is saved.
"""

from datetime import date

from pydantic import BaseModel, ConfigDict, Field, model_validator


class Book(BaseModel):
    """Represents a book in the library catalog together with its loan state."""

    id: str = Field(
        ...,
        description="Unique identifier of the book",
        min_length=1,
        max_length=64,
        examples=["b-gatsby", "b-mockingbird"],
    )

    title: str = Field(
        ...,
        description="The title of the book",
        min_length=1,
        max_length=500,
        examples=["The Great Gatsby", "To Kill a Mockingbird"],
    )

    loaned_to: str | None = Field(
        None,
        description="Id of the member currently holding the book",
        examples=["m-alice"],
    )

    due_date: date | None = Field(
        None,
        description="Date the current loan ends; set only while the book is loaned",
    )

    reservation_queue: list[str] = Field(
        default_factory=list,
        description="Member ids waiting for the book, in hand-off order",
    )

    @model_validator(mode="after")
    def validate_loan_state(self) -> "Book":
        """Check the loan/queue invariants."""
        if (self.loaned_to is None) != (self.due_date is None):
            raise ValueError("due_date must be set exactly when the book is loaned")
        if len(set(self.reservation_queue)) != len(self.reservation_queue):
            raise ValueError("A member can only appear once in the reservation queue")
        if self.loaned_to is not None and self.loaned_to in self.reservation_queue:
            raise ValueError("The current borrower cannot also be queued for the book")
        return self

    @property
    def is_available(self) -> bool:
        """Check if the book is not on loan."""
        return self.loaned_to is None

    def queue_position(self, member_id: str) -> int | None:
        """Zero-based position of ``member_id`` in the queue, or None."""
        try:
            return self.reservation_queue.index(member_id)
        except ValueError:
            return None

    def lend_to(self, member_id: str, due_date: date) -> None:
        """Assign the book to ``member_id`` and drop them from the queue."""
        self.loaned_to = member_id
        self.due_date = due_date
        if member_id in self.reservation_queue:
            self.reservation_queue.remove(member_id)

    def clear_loan(self) -> None:
        self.loaned_to = None
        self.due_date = None

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": "b-gatsby",
                "title": "The Great Gatsby",
                "loaned_to": "m-alice",
                "due_date": "2024-03-01",
                "reservation_queue": ["m-bob", "m-carol"],
            }
        }
    )
