"""
Book repository implementation for the Lending Library.

Besides the common store operations this repository answers the two queries the
circulation logic needs:

1. ``count_by_loaned_to``: how many books a member currently holds
2. ``find_available_with_member_in_queue``: unloaned books a member waits for

The reservation queue is stored one row per member in ``reservation_queue``;
``save`` keeps those rows in step with the model's ordered list.
"""

from sqlalchemy import func, select

from ..database.schema import Book as BookDB
from ..database.schema import ReservationEntry
from ..database.session import safe_query
from ..models.book import Book as BookModel
from .repository import BaseRepository


class BookRepository(BaseRepository[BookDB, BookModel]):
    """Repository for book data access."""

    @property
    def model_class(self):
        return BookDB

    @property
    def response_schema(self):
        return BookModel

    def _to_response_model(self, db_obj: BookDB) -> BookModel:
        """Build the model, flattening queue rows into an ordered id list."""
        return BookModel(
            id=db_obj.id,
            title=db_obj.title,
            loaned_to=db_obj.loaned_to,
            due_date=db_obj.due_date,
            reservation_queue=[entry.member_id for entry in db_obj.reservations],
        )

    def _apply_changes(self, db_obj: BookDB, data: BookModel) -> None:
        """Copy loan fields and rewrite the queue, reusing rows that survive."""
        db_obj.title = data.title
        db_obj.loaned_to = data.loaned_to
        db_obj.due_date = data.due_date

        existing = {entry.member_id: entry for entry in db_obj.reservations}
        entries = []
        for position, member_id in enumerate(data.reservation_queue):
            entry = existing.get(member_id) or ReservationEntry(member_id=member_id)
            entry.position = position
            entries.append(entry)

        # Rows missing from the new list are removed by delete-orphan
        db_obj.reservations = entries

    def count_by_loaned_to(self, member_id: str) -> int:
        """Number of books currently loaned to ``member_id``."""
        query = select(func.count()).select_from(BookDB).where(BookDB.loaned_to == member_id)
        with self._trace("count_by_loaned_to", member_id=member_id):
            count = safe_query(
                self.session,
                lambda s: s.execute(query).scalar(),
                "Failed to count loans",
            )
        return count or 0

    def find_available_with_member_in_queue(self, member_id: str) -> list[BookModel]:
        """
        Unloaned books whose reservation queue contains ``member_id``.

        Results are ordered by book ID.
        """
        query = (
            select(BookDB)
            .join(ReservationEntry, ReservationEntry.book_id == BookDB.id)
            .where(BookDB.loaned_to.is_(None), ReservationEntry.member_id == member_id)
            .order_by(BookDB.id)
        )
        with self._trace("find_available_with_member_in_queue", member_id=member_id):
            results = safe_query(
                self.session,
                lambda s: s.execute(query).scalars().all(),
                "Failed to find reserved books",
            )
        return [self._to_response_model(book) for book in results]
