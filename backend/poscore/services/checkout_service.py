# Overview: Service-layer operations for register checkout; one atomic unit per sale.

"""
Checkout Coordinator

A sale is committed as ONE unit of work, in this order:
  1. stock read under the lock; other carts' live holds are subtracted
  2. invoice number issued from the document sequence
  3. pos_transactions header inserted
  4. pos_transaction_lines inserted (one batched add_all)
  5. stock decremented with one conditional UPDATE per stock table
  6. transaction_log row + "sale" activity entry
  7. the cart's reservations released (when the cart id is given)
  8. commit

Either every row above exists afterwards or none does. Validation happens
before the first write and never consumes an invoice number.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from flask import current_app

from ..extensions import db
from ..models import PosTransaction, PosTransactionLine
from ..errors import AvailabilityError, TransactionFailedError, ValidationError
from ..money import format_cents, to_cents
from .concurrency import begin_write_transaction
from .inventory_service import resolve_sku, get_stock_quantities, decrement_stock
from .pricing_service import CartLine, CartTotals, PricingSnapshot, compute_cart_totals, current_snapshot
from .reservation_service import clear_for_transaction, delete_for_transactions, reserved_for_item
from .sequence_service import next_invoice_number
from .audit_service import ACTIVITY_SALE, append_activity, append_transaction_log
from poscore.time_utils import utcnow


PAYMENT_CASH = "Cash"
PAYMENT_EWALLET = "E-Wallet"
PAYMENT_METHODS = (PAYMENT_CASH, PAYMENT_EWALLET)


class CheckoutError(TransactionFailedError):
    """Raised when the checkout unit of work fails and is rolled back."""
    pass


class CheckoutValidationError(ValidationError):
    """Raised when a checkout request is rejected before any write."""
    pass


@dataclass(frozen=True)
class PaymentInfo:
    method: str
    amount_received_cents: int
    reference_no: str | None = None

    @property
    def is_cash(self) -> bool:
        return self.method == PAYMENT_CASH


@dataclass(frozen=True)
class CheckoutResult:
    invoice_no: str
    pos_transaction_id: int
    transaction_log_id: str
    totals: CartTotals
    change_cents: int
    released_reservations: int = 0

    def to_dict(self) -> dict:
        return {
            "invoice_no": self.invoice_no,
            "pos_transaction_id": self.pos_transaction_id,
            "transaction_log_id": self.transaction_log_id,
            "totals": self.totals.to_dict(),
            "change_cents": self.change_cents,
            "released_reservations": self.released_reservations,
        }


def validate_checkout(cart_lines, payment: PaymentInfo, staff_id, totals: CartTotals | None = None) -> None:
    """
    Reject a checkout request before anything is written.

    Raises CheckoutValidationError with the first failing rule's message.
    """
    if not cart_lines:
        raise CheckoutValidationError("Cart is empty. Please add items to the cart.")

    for line in cart_lines:
        if not (line.sku or "").strip():
            raise CheckoutValidationError("Every cart line needs a SKU")
        if not isinstance(line.quantity, int) or line.quantity <= 0:
            raise CheckoutValidationError(
                "Quantity must be greater than zero",
                details={"sku": line.sku, "quantity": line.quantity},
            )
        if line.unit_price_cents is None or line.unit_price_cents < 0:
            raise CheckoutValidationError(
                "Unit price cannot be negative",
                details={"sku": line.sku},
            )

    if not isinstance(staff_id, int) or staff_id <= 0:
        raise CheckoutValidationError("Valid staff ID is required")

    if payment is None or payment.method not in PAYMENT_METHODS:
        raise CheckoutValidationError(
            "Unsupported payment method",
            details={"allowed": list(PAYMENT_METHODS)},
        )

    if not payment.is_cash and not (payment.reference_no or "").strip():
        raise CheckoutValidationError("Reference number is required for E-Wallet payments.")

    if totals is not None and payment.amount_received_cents < totals.total_cents:
        message = "Insufficient cash." if payment.is_cash else "Insufficient amount."
        raise CheckoutValidationError(
            message,
            details={
                "total_cents": totals.total_cents,
                "received_cents": payment.amount_received_cents,
            },
        )


def _resolve_lines(cart_lines) -> list:
    """Pair each cart line with its stock row; unknown SKUs are a validation error."""
    resolved = []
    for line in cart_lines:
        item = resolve_sku(line.sku)
        if item is None:
            raise CheckoutValidationError("Product not found", details={"sku": line.sku})
        resolved.append((line, item))
    return resolved


def _with_catalog_categories(cart_lines) -> list[CartLine]:
    """Fill category ids the register did not send, so category promotions apply."""
    out = []
    for line in cart_lines:
        if line.category_id is None:
            item = resolve_sku(line.sku)
            if item is not None and item.category_id is not None:
                line = CartLine(line.sku, line.quantity, line.unit_price_cents, item.category_id)
        out.append(line)
    return out


def _check_holds(items, quantities, on_hand, cart_transaction_id, now) -> None:
    """
    Reject the sale when stock under the lock, less other carts' live holds,
    cannot cover the cart. Runs before the first insert.
    """
    for (table, item_id), item in items.items():
        requested = quantities[table][item_id]
        held = reserved_for_item(item, cart_transaction_id, now)
        available = on_hand[table].get(item_id, 0) - held
        if available < requested:
            raise AvailabilityError(
                f"Insufficient stock. Available: {available}, Requested: {requested}",
                available=available,
                details={"sku": item.sku},
            )


def commit_sale(
    cart_lines,
    payment: PaymentInfo,
    staff_id: int,
    *,
    snapshot: PricingSnapshot | None = None,
    cart_transaction_id: str | None = None,
    now: datetime | None = None,
) -> CheckoutResult:
    """
    Commit one register sale atomically.

    Raises:
        CheckoutValidationError: rejected before any write
        AvailabilityError: stock fell short under the lock (rolled back)
        CheckoutError: anything else failed (rolled back, cause chained)
    """
    cart_lines = list(cart_lines or [])
    validate_checkout(cart_lines, payment, staff_id)

    cart_lines = _with_catalog_categories(cart_lines)
    snapshot = snapshot or current_snapshot()
    totals = compute_cart_totals(cart_lines, snapshot)
    validate_checkout(cart_lines, payment, staff_id, totals)

    now = now or utcnow()
    change_cents = payment.amount_received_cents - totals.total_cents

    try:
        begin_write_transaction()
        resolved = _resolve_lines(cart_lines)

        # Group by stock table so each table gets one read and one UPDATE
        quantities: dict[str, dict[int, int]] = {}
        items: dict[tuple[str, int], object] = {}
        for line, item in resolved:
            per_table = quantities.setdefault(item.stock_table, {})
            per_table[item.inventory_item_id] = per_table.get(item.inventory_item_id, 0) + line.quantity
            items[(item.stock_table, item.inventory_item_id)] = item

        on_hand: dict[str, dict[int, int]] = {
            table: get_stock_quantities(table, ids.keys(), for_update=True)
            for table, ids in quantities.items()
        }
        _check_holds(items, quantities, on_hand, cart_transaction_id, now)

        invoice_no = next_invoice_number()

        header = PosTransaction(
            invoice_no=invoice_no,
            transaction_date=now,
            payment_method=payment.method,
            staff_id=staff_id,
            subtotal_cents=totals.subtotal_cents,
            discount_cents=totals.discount_cents,
            tax_cents=totals.tax_cents,
            total_amount_cents=totals.total_cents,
            received_amount_cents=payment.amount_received_cents,
            change_cents=change_cents,
            payment_ref_no=None if payment.is_cash else payment.reference_no.strip(),
            pricing_snapshot_id=snapshot.snapshot_id,
        )
        db.session.add(header)
        db.session.flush()

        rows = []
        for priced, (line, item) in zip(totals.lines, resolved):
            rows.append(
                PosTransactionLine(
                    pos_transaction_id=header.id,
                    sku=item.sku,
                    order_quantity=line.quantity,
                    stock_quantity_at_sale=on_hand[item.stock_table].get(item.inventory_item_id, 0),
                    unit_price_cents=line.unit_price_cents,
                    discount_cents=priced.discount_cents,
                    subtotal_cents=priced.subtotal_cents,
                    promotion_id=priced.promotion_id,
                    sale_channel=item.sale_channel,
                    online_inventory_item_id=item.online_inventory_item_id,
                    in_store_inventory_item_id=item.in_store_inventory_item_id,
                )
            )
        db.session.add_all(rows)
        db.session.flush()

        for table in sorted(quantities):
            decrement_stock(table, quantities[table])

        log_entry = append_transaction_log(type="sale", pos_transaction_id=header.id)
        append_activity(
            staff_id,
            ACTIVITY_SALE,
            f"Completed sale Invoice #{invoice_no} - Total: ₱{format_cents(totals.total_cents)}",
        )

        released = 0
        if cart_transaction_id:
            released = delete_for_transactions([cart_transaction_id])

        db.session.commit()

    except (ValidationError, AvailabilityError):
        db.session.rollback()
        raise
    except Exception as exc:
        db.session.rollback()
        current_app.logger.exception("Checkout failed")
        raise CheckoutError("Checkout failed") from exc

    current_app.logger.info(
        "Committed sale %s (%s lines, total %s)",
        invoice_no,
        len(rows),
        format_cents(totals.total_cents),
    )
    return CheckoutResult(
        invoice_no=invoice_no,
        pos_transaction_id=header.id,
        transaction_log_id=log_entry.transaction_id,
        totals=totals,
        change_cents=change_cents,
        released_reservations=released,
    )


def release_cart_reservations(cart_transaction_id: str) -> int:
    """Release a cart's holds after a sale committed elsewhere. Safe to repeat."""
    if not cart_transaction_id:
        return 0
    return clear_for_transaction(cart_transaction_id)


def get_transaction_by_invoice(invoice_no: str) -> PosTransaction | None:
    return db.session.query(PosTransaction).filter_by(invoice_no=(invoice_no or "").strip()).first()


def cart_lines_from_payload(items) -> list[CartLine]:
    """
    Build cart lines from a JSON list of {sku, quantity, unit_price_cents|unit_price}.

    A line without a price uses the catalog price.
    """
    if not isinstance(items, list):
        raise CheckoutValidationError("lines must be a list")

    lines = []
    for raw in items:
        if not isinstance(raw, dict):
            raise CheckoutValidationError("Each line must be an object")
        sku = (raw.get("sku") or "").strip()
        quantity = raw.get("quantity")
        if isinstance(quantity, bool) or not isinstance(quantity, int):
            raise CheckoutValidationError("Quantity must be a whole number", details={"sku": sku})

        if "unit_price_cents" in raw:
            unit_price = raw["unit_price_cents"]
        elif "unit_price" in raw:
            try:
                unit_price = to_cents(str(raw["unit_price"]))
            except ValueError:
                raise CheckoutValidationError("Invalid unit price", details={"sku": sku})
        else:
            item = resolve_sku(sku)
            if item is None or item.price_cents is None:
                raise CheckoutValidationError("Product not found", details={"sku": sku})
            unit_price = item.price_cents

        if isinstance(unit_price, bool) or not isinstance(unit_price, int):
            raise CheckoutValidationError("Invalid unit price", details={"sku": sku})

        category_id = raw.get("category_id")
        lines.append(CartLine(sku=sku, quantity=quantity, unit_price_cents=unit_price, category_id=category_id))
    return lines
