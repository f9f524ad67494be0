# Overview: Service-layer operations for inventory; SKU resolution, stock reads and batched quantity adjustment.

"""
Inventory Invariants (authoritative)

- A SKU resolves to exactly one stock row: in-store products to in_store_stock,
  online/both products to online_variant_stock.
- Stock quantities change only through adjust_stock(), called by the checkout
  and returns coordinators inside their own units of work.
- Decrements are conditional (quantity >= requested) and verified by row
  count, so a concurrent writer can never drive a quantity negative.
- One UPDATE per stock table per call, never one round trip per SKU.
"""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import case, update

from ..extensions import db
from ..models import Product, InStoreStock, OnlineVariantStock
from ..models.inventory import STOCK_TABLE_ONLINE, STOCK_TABLE_IN_STORE
from ..errors import AvailabilityError
from .concurrency import lock_for_update


STOCK_MODELS = {
    STOCK_TABLE_IN_STORE: InStoreStock,
    STOCK_TABLE_ONLINE: OnlineVariantStock,
}


@dataclass(frozen=True)
class InventoryItemRef:
    """Where a SKU's quantity lives."""
    product_id: int
    sku: str
    sale_channel: str
    stock_table: str
    inventory_item_id: int
    category_id: int | None = None
    price_cents: int | None = None

    @property
    def online_inventory_item_id(self) -> int | None:
        return self.inventory_item_id if self.stock_table == STOCK_TABLE_ONLINE else None

    @property
    def in_store_inventory_item_id(self) -> int | None:
        return self.inventory_item_id if self.stock_table == STOCK_TABLE_IN_STORE else None


def normalize_sku(sku: str) -> str:
    return (sku or "").strip()


def resolve_sku(sku: str) -> InventoryItemRef | None:
    """
    Resolve a SKU to its backing stock row.

    Returns None when the SKU is unknown, inactive or has no stock row.
    """
    sku = normalize_sku(sku)
    if not sku:
        return None

    product = db.session.query(Product).filter_by(sku=sku, is_active=True).first()
    if not product:
        return None

    stock_model = STOCK_MODELS[product.stock_table]
    stock_id = (
        db.session.query(stock_model.id)
        .filter(stock_model.product_id == product.id)
        .scalar()
    )
    if stock_id is None:
        return None

    return InventoryItemRef(
        product_id=product.id,
        sku=product.sku,
        sale_channel=product.sale_channel,
        stock_table=product.stock_table,
        inventory_item_id=stock_id,
        category_id=product.category_id,
        price_cents=product.price_cents,
    )


def get_stock_quantity(stock_table: str, inventory_item_id: int, *, for_update: bool = False) -> int:
    """Current on-hand quantity for a stock row (0 when the row is missing)."""
    stock_model = STOCK_MODELS[stock_table]
    q = db.session.query(stock_model.quantity).filter(stock_model.id == inventory_item_id)
    if for_update:
        q = lock_for_update(q)
    value = q.scalar()
    return int(value or 0)


def get_stock_quantities(stock_table: str, inventory_item_ids, *, for_update: bool = False) -> dict[int, int]:
    ids = sorted(set(inventory_item_ids))
    if not ids:
        return {}
    stock_model = STOCK_MODELS[stock_table]
    q = db.session.query(stock_model.id, stock_model.quantity).filter(stock_model.id.in_(ids))
    if for_update:
        q = lock_for_update(q)
    return {row_id: int(qty) for row_id, qty in q.all()}


def adjust_stock(stock_table: str, deltas: dict[int, int]) -> int:
    """
    Apply per-row quantity deltas to one stock table in a single UPDATE.

    Negative deltas are decrements and are only applied where the row holds
    enough stock; if any row falls short, AvailabilityError is raised and the
    caller's unit of work must be rolled back.

    Returns the number of rows updated. Does not commit.
    """
    deltas = {item_id: delta for item_id, delta in deltas.items() if delta}
    if not deltas:
        return 0

    stock_model = STOCK_MODELS[stock_table]
    ids = sorted(deltas)
    delta_expr = case(deltas, value=stock_model.id, else_=0)

    stmt = (
        update(stock_model)
        .where(stock_model.id.in_(ids))
        .where(stock_model.quantity + delta_expr >= 0)
        .values(quantity=stock_model.quantity + delta_expr)
        .execution_options(synchronize_session=False)
    )
    result = db.session.execute(stmt)

    if result.rowcount != len(ids):
        current = get_stock_quantities(stock_table, ids)
        short = [
            {
                "inventory_item_id": item_id,
                "requested": -deltas[item_id],
                "available": current.get(item_id, 0),
            }
            for item_id in ids
            if current.get(item_id, 0) + deltas[item_id] < 0
        ]
        available = short[0]["available"] if short else 0
        raise AvailabilityError(
            "Insufficient stock to complete the transaction",
            available=available,
            details={"items": short, "stock_table": stock_table},
        )

    return result.rowcount


def decrement_stock(stock_table: str, quantities: dict[int, int]) -> int:
    return adjust_stock(stock_table, {item_id: -qty for item_id, qty in quantities.items()})


def increment_stock(stock_table: str, quantities: dict[int, int]) -> int:
    return adjust_stock(stock_table, {item_id: qty for item_id, qty in quantities.items()})


def set_stock_quantity(stock_table: str, inventory_item_id: int, quantity: int) -> None:
    """Receiving/count correction entry point (CLI and fixtures)."""
    if quantity < 0:
        raise ValueError("quantity cannot be negative")
    stock_model = STOCK_MODELS[stock_table]
    row = db.session.query(stock_model).filter_by(id=inventory_item_id).first()
    if not row:
        raise ValueError(f"Stock row {inventory_item_id} not found in {stock_table}")
    row.quantity = quantity
    db.session.flush()


def create_product(
    *,
    sku: str,
    name: str,
    sale_channel: str,
    price_cents: int | None,
    quantity: int = 0,
    category_id: int | None = None,
) -> Product:
    """Create a product with its backing stock row. Does not commit."""
    sku = normalize_sku(sku)
    if not sku:
        raise ValueError("sku is required")
    if quantity < 0:
        raise ValueError("quantity cannot be negative")

    product = Product(
        sku=sku,
        name=name,
        sale_channel=sale_channel,
        price_cents=price_cents,
        category_id=category_id,
    )
    db.session.add(product)
    db.session.flush()

    stock_model = STOCK_MODELS[product.stock_table]
    db.session.add(stock_model(product_id=product.id, quantity=quantity))
    db.session.flush()
    return product
