# Overview: Service-layer operations for document numbering; atomic counters for invoices, returns and log ids.

"""
Sequence Issuer

Invoice numbers: 7-digit zero padded ("0000042").
Return numbers:  "RTN-" + 6-digit zero padded ("RTN-000007").
Log ids:         "TRX-YYYYMMDD-" + 5 digits, restarting every day.

Numbers come from a DocumentSequence row advanced with one UPDATE inside the
caller's transaction. The row stays locked until the caller commits or rolls
back, so two concurrent checkouts can never receive the same number, and a
rolled-back checkout never leaks a number anyone else saw.

The first time a counter is used it is seeded from the largest number already
stored, so a database that predates the counter keeps counting upward.
"""

from __future__ import annotations

from datetime import date

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import DocumentSequence, PosTransaction, PosReturn, TransactionLog
from poscore.time_utils import utctoday


DOC_TYPE_INVOICE = "INVOICE"
DOC_TYPE_RETURN = "RETURN"

INVOICE_PAD = 7
RETURN_PREFIX = "RTN-"
RETURN_PAD = 6
TRANSACTION_LOG_PREFIX = "TRX-"
TRANSACTION_LOG_PAD = 5


class DocumentSequenceError(Exception):
    """Raised when document sequence operations fail."""
    pass


def _parse_number(value: str | None, prefix: str = "") -> int:
    if not value:
        return 0
    if prefix and value.startswith(prefix):
        value = value[len(prefix):]
    if prefix == TRANSACTION_LOG_PREFIX:
        value = value.rsplit("-", 1)[-1]
    try:
        return int(value)
    except ValueError:
        return 0


def _largest_existing(document_type: str) -> int:
    """Largest number already stored for a document type (0 when none)."""
    if document_type == DOC_TYPE_INVOICE:
        values = db.session.query(PosTransaction.invoice_no).all()
        return max((_parse_number(v) for (v,) in values), default=0)

    if document_type == DOC_TYPE_RETURN:
        values = db.session.query(PosReturn.return_no).all()
        return max((_parse_number(v, RETURN_PREFIX) for (v,) in values), default=0)

    if document_type.startswith(TRANSACTION_LOG_PREFIX):
        values = (
            db.session.query(TransactionLog.transaction_id)
            .filter(TransactionLog.transaction_id.like(f"{document_type}-%"))
            .all()
        )
        return max((_parse_number(v, TRANSACTION_LOG_PREFIX) for (v,) in values), default=0)

    return 0


def next_number(document_type: str) -> int:
    """
    Atomically allocate the next integer for a document type.

    Does not commit: the allocation becomes durable with the caller's unit of
    work and disappears with its rollback.
    """
    if not document_type:
        raise DocumentSequenceError("document_type is required")

    stmt = (
        update(DocumentSequence)
        .where(DocumentSequence.document_type == document_type)
        .values(next_number=DocumentSequence.next_number + 1)
    )

    result = db.session.execute(stmt)
    if result.rowcount:
        db.session.flush()
        current = (
            db.session.query(DocumentSequence.next_number)
            .filter_by(document_type=document_type)
            .scalar()
        )
        return current - 1

    first = _largest_existing(document_type) + 1
    seq = DocumentSequence(document_type=document_type, next_number=first + 1)
    savepoint = db.session.begin_nested()
    try:
        db.session.add(seq)
        db.session.flush()
        savepoint.commit()
        return first
    except IntegrityError:
        # Another issuer created the row first
        savepoint.rollback()

    result = db.session.execute(stmt)
    if not result.rowcount:
        raise DocumentSequenceError(f"Could not allocate number for {document_type}")
    db.session.flush()
    current = (
        db.session.query(DocumentSequence.next_number)
        .filter_by(document_type=document_type)
        .scalar()
    )
    return current - 1


def format_invoice_number(number: int) -> str:
    return f"{number:0{INVOICE_PAD}d}"


def format_return_number(number: int) -> str:
    return f"{RETURN_PREFIX}{number:0{RETURN_PAD}d}"


def next_invoice_number() -> str:
    """Issue the next invoice number, e.g. "0000001"."""
    return format_invoice_number(next_number(DOC_TYPE_INVOICE))


def next_return_number() -> str:
    """Issue the next return number, e.g. "RTN-000001"."""
    return format_return_number(next_number(DOC_TYPE_RETURN))


def next_transaction_log_id(today: date | None = None) -> str:
    """Issue the next transaction log id for the day, e.g. "TRX-20260115-00001"."""
    today = today or utctoday()
    day_key = f"{TRANSACTION_LOG_PREFIX}{today.strftime('%Y%m%d')}"
    number = next_number(day_key)
    return f"{day_key}-{number:0{TRANSACTION_LOG_PAD}d}"
