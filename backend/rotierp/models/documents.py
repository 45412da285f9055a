from __future__ import annotations

from ..extensions import db
from ..time_utils import utcnow


class DocumentSequence(db.Model):
    """
    Atomic per-type document sequences.

    Backs order numbers (ORD-000001), POS transaction numbers (POS-000001)
    and employee codes (EMP001).
    """
    __tablename__ = "document_sequences"
    __table_args__ = (
        db.UniqueConstraint("document_type", name="uq_doc_sequences_type"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    document_type = db.Column(db.String(32), nullable=False, index=True)
    next_number = db.Column(db.Integer, nullable=False, default=1)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)
