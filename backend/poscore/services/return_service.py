# Overview: Service-layer operations for register returns; eligibility, refund math and the atomic return commit.

"""
Returns Coordinator

Eligibility (checked before any write):
- the invoice exists
- it is at most RETURN_WINDOW_DAYS old (7 by default)
- it has never been returned (one return per invoice)

A return is committed as ONE unit of work:
  line ownership/quantity checks -> return number -> pos_returns header
  -> pos_return_lines (batched) -> stock increments per table
  -> transaction_log row -> supervisor + cashier activity entries -> commit

The unique constraint on pos_returns.invoice_no is what holds when two
returns for the same invoice race past the eligibility check; the losing
commit is reported as "already returned".
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta

from flask import current_app, has_app_context
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import PosTransaction, PosTransactionLine, PosReturn, PosReturnLine
from ..models.inventory import STOCK_TABLE_IN_STORE, STOCK_TABLE_ONLINE
from ..errors import AvailabilityError, EligibilityError, TransactionFailedError, ValidationError
from ..money import div_half_up, format_cents, to_cents
from .concurrency import begin_write_transaction
from .inventory_service import increment_stock
from .sequence_service import next_return_number
from .audit_service import (
    ACTIVITY_RETURN_AUTHORIZATION,
    ACTIVITY_RETURN_PROCESSING,
    append_activity,
    append_transaction_log,
)
from poscore.time_utils import utcnow, to_utc_z


DEFAULT_RETURN_WINDOW_DAYS = 7

REASON_NOT_FOUND = "not_found"
REASON_TOO_OLD = "too_old"
REASON_ALREADY_RETURNED = "already_returned"


class ReturnError(TransactionFailedError):
    """Raised when the return unit of work fails and is rolled back."""
    pass


class ReturnValidationError(ValidationError):
    pass


@dataclass(frozen=True)
class ReturnEligibility:
    is_eligible: bool
    message: str
    reason: str | None = None
    transaction: PosTransaction | None = None

    def to_dict(self) -> dict:
        return {
            "is_eligible": self.is_eligible,
            "message": self.message,
            "reason": self.reason,
        }


@dataclass(frozen=True)
class ReturnLineData:
    invoice_item_id: int | None
    qty_returned: int | None
    refund_amount_cents: int | None
    online_inventory_item_id: int | None = None
    in_store_inventory_id: int | None = None


@dataclass(frozen=True)
class ReturnData:
    invoice_no: str | None
    cashier_id: int | None
    supervisor_id: int | None
    refund_total_cents: int | None
    lines: tuple[ReturnLineData, ...] = field(default_factory=tuple)
    refund_method: str = "Cash"
    notes: str | None = None

    @classmethod
    def from_dict(cls, data: dict) -> "ReturnData":
        """Build from a JSON body; malformed numbers become None and fail validation."""
        items = data.get("items") or data.get("lines") or []
        lines = tuple(
            ReturnLineData(
                invoice_item_id=_int_or_none(item.get("invoice_item_id")),
                qty_returned=_int_or_none(item.get("qty_returned", item.get("quantity"))),
                refund_amount_cents=_cents_or_none(item.get("refund_amount_cents", item.get("refund_amount"))),
                online_inventory_item_id=_int_or_none(item.get("online_inventory_item_id")),
                in_store_inventory_id=_int_or_none(item.get("in_store_inventory_id")),
            )
            for item in items
            if isinstance(item, dict)
        )
        return cls(
            invoice_no=str(data.get("invoice_no") or "").strip() or None,
            cashier_id=_int_or_none(data.get("cashier_id")),
            supervisor_id=_int_or_none(data.get("supervisor_id")),
            refund_total_cents=_cents_or_none(data.get("refund_total_cents", data.get("refund_total"))),
            lines=lines,
            refund_method=data.get("refund_method") or "Cash",
            notes=data.get("notes"),
        )


@dataclass(frozen=True)
class ReturnResult:
    return_no: str
    return_id: int
    transaction_log_id: str
    refund_total_cents: int

    def to_dict(self) -> dict:
        return {
            "return_no": self.return_no,
            "return_id": self.return_id,
            "transaction_log_id": self.transaction_log_id,
            "refund_total_cents": self.refund_total_cents,
        }


def _int_or_none(value):
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _cents_or_none(value):
    try:
        return to_cents(value)
    except ValueError:
        return None


def _return_window() -> timedelta:
    days = DEFAULT_RETURN_WINDOW_DAYS
    if has_app_context():
        days = current_app.config.get("RETURN_WINDOW_DAYS", DEFAULT_RETURN_WINDOW_DAYS)
    return timedelta(days=days)


# =============================================================================
# ELIGIBILITY
# =============================================================================

def validate_invoice_for_return(invoice_no: str, *, now: datetime | None = None) -> ReturnEligibility:
    """Decide whether an invoice can still be returned. Read-only."""
    invoice_no = (invoice_no or "").strip()
    if not invoice_no:
        raise ReturnValidationError("Invoice number is required")

    txn = db.session.query(PosTransaction).filter_by(invoice_no=invoice_no).first()
    if txn is None:
        return ReturnEligibility(False, "Invoice not found", REASON_NOT_FOUND)

    now = now or utcnow()
    window = _return_window()
    if now - txn.transaction_date > window:
        return ReturnEligibility(
            False,
            f"Invoice is older than {window.days} days and can no longer be returned",
            REASON_TOO_OLD,
            txn,
        )

    already = db.session.query(PosReturn.id).filter_by(invoice_no=invoice_no).first()
    if already is not None:
        return ReturnEligibility(False, "Invoice has already been returned", REASON_ALREADY_RETURNED, txn)

    return ReturnEligibility(True, "Invoice is eligible for return", None, txn)


@dataclass(frozen=True)
class ReturnableLine:
    invoice_item_id: int
    sku: str
    quantity: int
    unit_price_cents: int
    line_subtotal_cents: int
    line_discount_cents: int
    online_inventory_item_id: int | None
    in_store_inventory_id: int | None

    @property
    def unit_discount_cents(self) -> int:
        return div_half_up(self.line_discount_cents, self.quantity) if self.quantity else 0

    def refund_for(self, qty: int) -> int:
        """Refund before tax for qty units, never negative."""
        return max(self.unit_price_cents - self.unit_discount_cents, 0) * qty

    def to_dict(self) -> dict:
        return {
            "invoice_item_id": self.invoice_item_id,
            "sku": self.sku,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "line_subtotal_cents": self.line_subtotal_cents,
            "line_discount_cents": self.line_discount_cents,
            "unit_discount_cents": self.unit_discount_cents,
            "online_inventory_item_id": self.online_inventory_item_id,
            "in_store_inventory_id": self.in_store_inventory_id,
        }


def proportional_discount(line_subtotal_cents: int, txn_subtotal_cents: int, txn_discount_cents: int) -> int:
    """Share of the transaction discount carried by one line."""
    if txn_discount_cents <= 0 or txn_subtotal_cents <= 0:
        return 0
    return div_half_up(line_subtotal_cents * txn_discount_cents, txn_subtotal_cents)


def load_invoice_for_return(invoice_no: str) -> tuple[PosTransaction, list[ReturnableLine]] | None:
    """Invoice header plus its lines priced for refund, or None when unknown."""
    txn = db.session.query(PosTransaction).filter_by(invoice_no=(invoice_no or "").strip()).first()
    if txn is None:
        return None

    lines = []
    for line in txn.lines:
        lines.append(
            ReturnableLine(
                invoice_item_id=line.id,
                sku=line.sku,
                quantity=line.order_quantity,
                unit_price_cents=line.unit_price_cents,
                line_subtotal_cents=line.subtotal_cents,
                line_discount_cents=proportional_discount(
                    line.subtotal_cents, txn.subtotal_cents, txn.discount_cents
                ),
                online_inventory_item_id=line.online_inventory_item_id,
                in_store_inventory_id=line.in_store_inventory_item_id,
            )
        )
    return txn, lines


def compute_refund_tax(txn: PosTransaction, refund_subtotal_cents: int) -> int:
    """Tax on a refund at the sale's effective rate: tax / (subtotal - discount)."""
    taxable = txn.subtotal_cents - txn.discount_cents
    if txn.tax_cents <= 0 or taxable <= 0 or refund_subtotal_cents <= 0:
        return 0
    return div_half_up(refund_subtotal_cents * txn.tax_cents, taxable)


# =============================================================================
# VALIDATION
# =============================================================================

def validate_return_data(data: ReturnData) -> str | None:
    """First failing rule's message, or None when the request is well formed."""
    if not (data.invoice_no or "").strip():
        return "Invoice number is required"
    if data.cashier_id is None or data.cashier_id <= 0:
        return "Valid cashier ID is required"
    if data.supervisor_id is None or data.supervisor_id <= 0:
        return "Valid supervisor ID is required"
    if data.refund_total_cents is None or data.refund_total_cents <= 0:
        return "Refund total must be greater than zero"
    if not data.lines:
        return "At least one return item is required"

    for line in data.lines:
        if line.invoice_item_id is None or line.invoice_item_id <= 0:
            return "Valid invoice item ID is required for all return items"
        if line.qty_returned is None or line.qty_returned <= 0:
            return "Return quantity must be greater than zero"
        if line.refund_amount_cents is None or line.refund_amount_cents < 0:
            return "Refund amount must be non-negative"
        has_online = line.online_inventory_item_id is not None and line.online_inventory_item_id > 0
        has_in_store = line.in_store_inventory_id is not None and line.in_store_inventory_id > 0
        if not has_online and not has_in_store:
            return "Each return item must reference either online or in-store inventory"

    return None


def _check_against_invoice(txn: PosTransaction, lines) -> None:
    """Every returned line belongs to the invoice and stays within the sold quantity."""
    sold = {
        row.id: row
        for row in db.session.query(PosTransactionLine).filter(
            PosTransactionLine.pos_transaction_id == txn.id
        )
    }

    requested: dict[int, int] = {}
    for line in lines:
        invoice_line = sold.get(line.invoice_item_id)
        if invoice_line is None:
            raise ReturnValidationError(
                "Return item does not belong to this invoice",
                details={"invoice_item_id": line.invoice_item_id},
            )
        if (
            line.online_inventory_item_id
            and line.online_inventory_item_id != invoice_line.online_inventory_item_id
        ) or (
            line.in_store_inventory_id
            and line.in_store_inventory_id != invoice_line.in_store_inventory_item_id
        ):
            raise ReturnValidationError(
                "Return item inventory does not match the invoice",
                details={"invoice_item_id": line.invoice_item_id},
            )
        requested[line.invoice_item_id] = requested.get(line.invoice_item_id, 0) + line.qty_returned

    for item_id, qty in requested.items():
        if qty > sold[item_id].order_quantity:
            raise ReturnValidationError(
                "Return quantity exceeds quantity sold",
                details={
                    "invoice_item_id": item_id,
                    "requested": qty,
                    "sold": sold[item_id].order_quantity,
                },
            )


# =============================================================================
# COMMIT
# =============================================================================

def commit_return(data: ReturnData, *, now: datetime | None = None) -> ReturnResult:
    """
    Commit one return atomically.

    Raises:
        ReturnValidationError: malformed request or lines not on the invoice
        EligibilityError: not found / too old / already returned
        ReturnError: the unit of work failed and was rolled back
    """
    error = validate_return_data(data)
    if error:
        raise ReturnValidationError(error)

    now = now or utcnow()
    invoice_no = data.invoice_no.strip()
    eligibility = validate_invoice_for_return(invoice_no, now=now)
    if not eligibility.is_eligible:
        raise EligibilityError(eligibility.message, eligibility.reason, details={"invoice_no": invoice_no})

    refund_display = format_cents(data.refund_total_cents)

    try:
        begin_write_transaction()
        _check_against_invoice(eligibility.transaction, data.lines)

        return_no = next_return_number()
        header = PosReturn(
            return_no=return_no,
            invoice_no=invoice_no,
            cashier_id=data.cashier_id,
            supervisor_id=data.supervisor_id,
            refund_total_cents=data.refund_total_cents,
            refund_method=data.refund_method,
            notes=data.notes,
            created_at=now,
        )
        db.session.add(header)
        db.session.flush()

        db.session.add_all(
            [
                PosReturnLine(
                    return_id=header.id,
                    invoice_item_id=line.invoice_item_id,
                    online_inventory_item_id=line.online_inventory_item_id,
                    in_store_inventory_id=line.in_store_inventory_id,
                    qty_returned=line.qty_returned,
                    refund_amount_cents=line.refund_amount_cents,
                )
                for line in data.lines
            ]
        )
        db.session.flush()

        online: dict[int, int] = {}
        in_store: dict[int, int] = {}
        for line in data.lines:
            if line.online_inventory_item_id:
                online[line.online_inventory_item_id] = online.get(line.online_inventory_item_id, 0) + line.qty_returned
            if line.in_store_inventory_id:
                in_store[line.in_store_inventory_id] = in_store.get(line.in_store_inventory_id, 0) + line.qty_returned
        increment_stock(STOCK_TABLE_ONLINE, online)
        increment_stock(STOCK_TABLE_IN_STORE, in_store)

        log_entry = append_transaction_log(type="return", return_id=header.id)

        append_activity(
            data.supervisor_id,
            ACTIVITY_RETURN_AUTHORIZATION,
            f"Authorized return for Invoice #{invoice_no} - Refund: ₱{refund_display} "
            f"- Processed by Cashier ID: {data.cashier_id}",
        )
        append_activity(
            data.cashier_id,
            ACTIVITY_RETURN_PROCESSING,
            f"Processed return for Invoice #{invoice_no} - Refund: ₱{refund_display} "
            f"- Authorized by Supervisor ID: {data.supervisor_id}",
        )

        db.session.commit()

    except (ValidationError, AvailabilityError):
        db.session.rollback()
        raise
    except IntegrityError as exc:
        db.session.rollback()
        if db.session.query(PosReturn.id).filter_by(invoice_no=invoice_no).first() is not None:
            raise EligibilityError(
                "Invoice has already been returned",
                REASON_ALREADY_RETURNED,
                details={"invoice_no": invoice_no},
            ) from exc
        current_app.logger.exception("Return transaction failed")
        raise ReturnError("Return transaction failed") from exc
    except Exception as exc:
        db.session.rollback()
        current_app.logger.exception("Return transaction failed")
        raise ReturnError("Return transaction failed") from exc

    current_app.logger.info("Committed return %s for invoice %s (refund %s)", return_no, invoice_no, refund_display)
    return ReturnResult(
        return_no=return_no,
        return_id=header.id,
        transaction_log_id=log_entry.transaction_id,
        refund_total_cents=data.refund_total_cents,
    )


def get_return(return_id: int) -> PosReturn | None:
    return db.session.get(PosReturn, return_id)


def invoice_summary(txn: PosTransaction) -> dict:
    return {
        "invoice_no": txn.invoice_no,
        "transaction_date": to_utc_z(txn.transaction_date),
        "subtotal_cents": txn.subtotal_cents,
        "discount_cents": txn.discount_cents,
        "tax_cents": txn.tax_cents,
        "total_amount_cents": txn.total_amount_cents,
    }
