from __future__ import annotations

from sqlalchemy.orm import validates

from ..extensions import db
from poscore.time_utils import to_utc_z


SALE_CHANNEL_IN_STORE = "in-store"
SALE_CHANNEL_ONLINE = "online"
SALE_CHANNEL_BOTH = "both"
SALE_CHANNELS = (SALE_CHANNEL_IN_STORE, SALE_CHANNEL_ONLINE, SALE_CHANNEL_BOTH)

# Which stock table backs a product
STOCK_TABLE_IN_STORE = "in_store"
STOCK_TABLE_ONLINE = "online"


def stock_table_for_channel(sale_channel: str) -> str:
    """'online' and 'both' products are stocked on the online variant table."""
    if (sale_channel or "").lower() in (SALE_CHANNEL_ONLINE, SALE_CHANNEL_BOTH):
        return STOCK_TABLE_ONLINE
    return STOCK_TABLE_IN_STORE


class Product(db.Model):
    """
    Catalog row for one sellable SKU.

    SKU DESIGN:
    - sku is globally unique (single store deployment).
    - sale_channel decides which stock table holds the quantity:
      in-store -> in_store_stock, online/both -> online_variant_stock.
    - sale_channel is immutable once the product exists, so a SKU always
      resolves to exactly one backing stock row.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.Index("ix_products_category", "category_id"),
        db.CheckConstraint(
            "sale_channel IN ('in-store', 'online', 'both')",
            name="ck_products_sale_channel",
        ),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sku = db.Column(db.String(64), nullable=False, unique=True)
    name = db.Column(db.String(255), nullable=False)
    category_id = db.Column(db.Integer, nullable=True)

    sale_channel = db.Column(db.String(16), nullable=False, default=SALE_CHANNEL_IN_STORE)

    # Authoritative storage in cents
    price_cents = db.Column(db.Integer, nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    in_store_stock = db.relationship("InStoreStock", back_populates="product", uselist=False)
    online_stock = db.relationship("OnlineVariantStock", back_populates="product", uselist=False)

    @validates("sale_channel")
    def _validate_sale_channel(self, key, value):
        value = (value or "").lower()
        if value not in SALE_CHANNELS:
            raise ValueError(f"Unknown sale channel: {value!r}")
        current = self.__dict__.get("sale_channel")
        if current is not None and self.id is not None and current != value:
            raise ValueError("sale_channel cannot be changed once a product exists")
        return value

    @property
    def stock_table(self) -> str:
        return stock_table_for_channel(self.sale_channel)

    @property
    def stock_row(self):
        if self.stock_table == STOCK_TABLE_ONLINE:
            return self.online_stock
        return self.in_store_stock

    def __repr__(self) -> str:
        return f"<Product id={self.id} sku={self.sku!r} channel={self.sale_channel!r}>"

    def to_dict(self) -> dict:
        stock = self.stock_row
        return {
            "id": self.id,
            "sku": self.sku,
            "name": self.name,
            "category_id": self.category_id,
            "sale_channel": self.sale_channel,
            "price_cents": self.price_cents,
            "is_active": self.is_active,
            "inventory_item_id": stock.id if stock else None,
            "quantity": stock.quantity if stock else None,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class InStoreStock(db.Model):
    """Quantity row for an in-store product (the in-store inventory item)."""
    __tablename__ = "in_store_stock"
    __table_args__ = (
        db.CheckConstraint("quantity >= 0", name="ck_in_store_stock_nonnegative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, unique=True)
    quantity = db.Column(db.Integer, nullable=False, default=0)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    product = db.relationship("Product", back_populates="in_store_stock")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "quantity": self.quantity,
            "updated_at": to_utc_z(self.updated_at),
        }


class OnlineVariantStock(db.Model):
    """Quantity row for an online/both product (the online inventory item)."""
    __tablename__ = "online_variant_stock"
    __table_args__ = (
        db.CheckConstraint("quantity >= 0", name="ck_online_variant_stock_nonnegative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, unique=True)
    quantity = db.Column(db.Integer, nullable=False, default=0)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    product = db.relationship("Product", back_populates="online_stock")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "quantity": self.quantity,
            "updated_at": to_utc_z(self.updated_at),
        }
