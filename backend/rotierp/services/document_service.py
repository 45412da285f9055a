# Overview: Monotonic document numbers (orders, POS transactions, employee codes).

from __future__ import annotations

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import DocumentSequence


class DocumentSequenceError(Exception):
    """Raised when document sequence operations fail."""
    pass


def _current_next_number(document_type: str) -> int:
    return (
        db.session.query(DocumentSequence.next_number)
        .filter_by(document_type=document_type)
        .scalar()
    )


def allocate_number(document_type: str) -> int:
    """
    Atomically allocate the next integer for a document type.

    The increment runs in the caller's transaction, so a rolled-back caller
    releases nothing and a committed caller keeps its number.

    NOTE: call before adding other pending objects; losing the first-insert
    race rolls back the session.
    """
    if not document_type:
        raise DocumentSequenceError("document_type is required")

    stmt = (
        update(DocumentSequence)
        .where(DocumentSequence.document_type == document_type)
        .values(next_number=DocumentSequence.next_number + 1)
        .execution_options(synchronize_session=False)
    )

    result = db.session.execute(stmt)
    if result.rowcount:
        db.session.flush()
        return _current_next_number(document_type) - 1

    seq = DocumentSequence(document_type=document_type, next_number=2)
    db.session.add(seq)
    try:
        db.session.flush()
        return 1
    except IntegrityError:
        # Another writer created the row first; fall back to the increment
        db.session.rollback()
        result = db.session.execute(stmt)
        if not result.rowcount:
            raise
        db.session.flush()
        return _current_next_number(document_type) - 1


def next_document_number(
    *,
    document_type: str,
    prefix: str,
    pad: int = 6,
    separator: str = "-",
) -> str:
    """Allocate and format the next number, e.g. ORD-000001 or EMP001."""
    number = allocate_number(document_type)
    return f"{prefix}{separator}{number:0{pad}d}"
