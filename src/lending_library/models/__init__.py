"""
Lending Library models.

Pydantic models for the two core entities:
- Book: catalog item with loan state and reservation queue
- Member: library member who borrows and reserves books
"""

from .book import Book
from .member import Member

__all__ = [
    "Book",
    "Member",
]
