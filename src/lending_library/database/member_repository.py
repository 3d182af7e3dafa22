"""
Member repository implementation for the Lending Library.

Members are plain identity records, so the common store operations of
``BaseRepository`` cover everything; the service checks ``exists`` for every
queued member it considers.
"""

from ..database.schema import Member as MemberDB
from ..models.member import Member as MemberModel
from .repository import BaseRepository


class MemberRepository(BaseRepository[MemberDB, MemberModel]):
    """Repository for member data access."""

    @property
    def model_class(self):
        return MemberDB

    @property
    def response_schema(self):
        return MemberModel
