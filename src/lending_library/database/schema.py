"""
SQLAlchemy database schema for the Lending Library.

Three tables back the two domain models:

- ``books``: catalog data plus the current loan (``loaned_to``/``due_date``)
- ``members``: library members
- ``reservation_queue``: one row per queued member, ordered by ``position``

``loaned_to`` and ``reservation_queue.member_id`` are deliberately not foreign
keys to ``members``: a member may be deleted while still holding or waiting for a
book, and the circulation logic cleans such references up lazily.
"""

from sqlalchemy import (
    CheckConstraint,
    Column,
    Date,
    ForeignKey,
    Index,
    Integer,
    String,
)
from sqlalchemy.orm import declarative_base, relationship

# Base class for all SQLAlchemy models
Base = declarative_base()


class Book(Base):
    """Books table - catalog entries and their current loan."""

    __tablename__ = "books"

    id = Column(String(64), primary_key=True)
    title = Column(String(500), nullable=False)
    loaned_to = Column(String(64), nullable=True)
    due_date = Column(Date, nullable=True)

    # Queue entries in hand-off order
    reservations = relationship(
        "ReservationEntry",
        back_populates="book",
        order_by="ReservationEntry.position",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        Index("idx_book_title", "title"),
        Index("idx_book_loaned_to", "loaned_to"),
        CheckConstraint(
            "(loaned_to IS NULL AND due_date IS NULL) "
            "OR (loaned_to IS NOT NULL AND due_date IS NOT NULL)",
            name="check_due_date_matches_loan",
        ),
    )


class Member(Base):
    """Members table - people who can borrow books."""

    __tablename__ = "members"

    id = Column(String(64), primary_key=True)
    name = Column(String(200), nullable=False)

    __table_args__ = (Index("idx_member_name", "name"),)


class ReservationEntry(Base):
    """Reservation queue table - one row per member waiting for a book."""

    __tablename__ = "reservation_queue"

    book_id = Column(
        String(64), ForeignKey("books.id", ondelete="CASCADE"), primary_key=True
    )
    # Primary key (book_id, member_id) keeps a member out of the same queue twice
    member_id = Column(String(64), primary_key=True)
    position = Column(Integer, nullable=False)

    book = relationship("Book", back_populates="reservations")

    __table_args__ = (
        Index("idx_reservation_member", "member_id"),
        Index("idx_reservation_order", "book_id", "position"),
        CheckConstraint("position >= 0", name="check_queue_position_non_negative"),
    )
