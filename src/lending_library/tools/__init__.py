"""
MCP tools for the Lending Library server.

Tools are the actions with side effects: loans, returns, reservations and
catalog administration. Each tool is a dictionary holding its name,
description, JSON input schema and async handler; the server registers every
entry of ``all_tools``.
"""

from .catalog import (
    add_book,
    add_member,
    remove_book,
    remove_member,
    search_books,
    update_book,
    update_member,
)
from .circulation import borrow_book, cancel_reservation, extend_loan, reserve_book, return_book

all_tools = [
    borrow_book,
    return_book,
    reserve_book,
    cancel_reservation,
    extend_loan,
    search_books,
    add_book,
    update_book,
    remove_book,
    add_member,
    update_member,
    remove_member,
]

__all__ = [
    "add_book",
    "add_member",
    "all_tools",
    "borrow_book",
    "cancel_reservation",
    "extend_loan",
    "remove_book",
    "remove_member",
    "reserve_book",
    "return_book",
    "search_books",
    "update_book",
    "update_member",
]
