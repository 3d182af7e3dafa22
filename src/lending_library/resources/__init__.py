"""Lending Library MCP Resources

Resources are the read-only side of the server: catalog listings, overdue
loans and member summaries. Changes go through the tools.
"""

from .books import book_resources
from .members import member_resources

all_resources = book_resources + member_resources

__all__ = [
    "all_resources",
    "book_resources",
    "member_resources",
]
