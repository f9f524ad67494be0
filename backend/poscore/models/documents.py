from __future__ import annotations

from ..extensions import db
from poscore.time_utils import to_utc_z


class DocumentSequence(db.Model):
    """
    Atomic document counters.

    WHY: Prevent duplicate invoice/return numbers under concurrent commits.
    The counter is advanced with a single UPDATE inside the caller's
    transaction, so the row lock serializes issuers until commit.
    """
    __tablename__ = "document_sequences"
    __table_args__ = (
        db.UniqueConstraint("document_type", name="uq_doc_sequences_type"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    document_type = db.Column(db.String(32), nullable=False, index=True)
    next_number = db.Column(db.Integer, nullable=False, default=1)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "document_type": self.document_type,
            "next_number": self.next_number,
            "updated_at": to_utc_z(self.updated_at),
        }
