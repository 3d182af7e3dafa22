"""Spans around store reads and writes."""

from contextlib import contextmanager

from sqlalchemy.orm import Session

from . import logfire


@contextmanager
def trace_repository_operation(session: Session, entity: str, operation: str, **attributes):
    """
    Span ``store.<entity>.<operation>`` for one repository call.

    ``db_system`` is the dialect of the engine the session is bound to.
    Extra keyword arguments become span attributes (for example the book id).
    """
    with logfire.span(
        "store.{entity}.{operation}",
        entity=entity,
        operation=operation,
        db_system=session.get_bind().dialect.name,
        **attributes,
    ) as span:
        try:
            yield span
        except Exception as e:
            span.set_attribute("store.error", str(e))
            raise
