"""Initial POS core schema

Revision ID: 20261019_initial
Revises:
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261019_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "products",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("sku", sa.String(length=64), nullable=False, unique=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("category_id", sa.Integer(), nullable=True),
        sa.Column("sale_channel", sa.String(length=16), nullable=False),
        sa.Column("price_cents", sa.Integer(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("sale_channel IN ('in-store', 'online', 'both')", name="ck_products_sale_channel"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_products_category", "products", ["category_id"])

    for table in ("in_store_stock", "online_variant_stock"):
        op.create_table(
            table,
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("product_id", sa.Integer(), sa.ForeignKey("products.id"), nullable=False, unique=True),
            sa.Column("quantity", sa.Integer(), nullable=False),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
            sa.CheckConstraint("quantity >= 0", name=f"ck_{table}_nonnegative"),
            sqlite_autoincrement=True,
        )

    op.create_table(
        "stock_reservations",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("transaction_id", sa.String(length=64), nullable=False),
        sa.Column("online_inventory_item_id", sa.Integer(), sa.ForeignKey("online_variant_stock.id"), nullable=True),
        sa.Column("in_store_inventory_id", sa.Integer(), sa.ForeignKey("in_store_stock.id"), nullable=True),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("channel", sa.String(length=16), nullable=False),
        sa.Column("reserved_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("transaction_id", "online_inventory_item_id", name="uq_reservations_tx_online_item"),
        sa.UniqueConstraint("transaction_id", "in_store_inventory_id", name="uq_reservations_tx_in_store_item"),
        sa.CheckConstraint(
            "(online_inventory_item_id IS NULL) <> (in_store_inventory_id IS NULL)",
            name="ck_reservations_single_item_ref",
        ),
        sa.CheckConstraint("quantity > 0", name="ck_reservations_quantity_positive"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_stock_reservations_transaction_id", "stock_reservations", ["transaction_id"])
    op.create_index("ix_stock_reservations_expires_at", "stock_reservations", ["expires_at"])
    op.create_index("ix_reservations_online_expires", "stock_reservations", ["online_inventory_item_id", "expires_at"])
    op.create_index("ix_reservations_in_store_expires", "stock_reservations", ["in_store_inventory_id", "expires_at"])

    op.create_table(
        "promotions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("promo_type", sa.String(length=32), nullable=False),
        sa.Column("discount_value", sa.Integer(), nullable=False),
        sa.Column("min_purchase_cents", sa.Integer(), nullable=False),
        sa.Column("sale_channel", sa.String(length=16), nullable=False),
        sa.Column("application_method", sa.String(length=32), nullable=False),
        sa.Column("activation_date", sa.Date(), nullable=False),
        sa.Column("expiration_date", sa.Date(), nullable=False),
        sa.Column("applies_to_type", sa.String(length=16), nullable=False),
        sa.Column("applies_to_id", sa.String(length=64), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sqlite_autoincrement=True,
    )
    op.create_index(
        "ix_promotions_active_window",
        "promotions",
        ["application_method", "activation_date", "expiration_date"],
    )

    op.create_table(
        "system_settings",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("group_name", sa.String(length=64), nullable=False),
        sa.Column("variable_name", sa.String(length=64), nullable=False),
        sa.Column("value", sa.Text(), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("group_name", "variable_name", name="uq_system_settings_group_var"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_system_settings_group_name", "system_settings", ["group_name"])

    op.create_table(
        "document_sequences",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("document_type", sa.String(length=32), nullable=False),
        sa.Column("next_number", sa.Integer(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("document_type", name="uq_doc_sequences_type"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_document_sequences_document_type", "document_sequences", ["document_type"])

    op.create_table(
        "pos_transactions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("invoice_no", sa.String(length=32), nullable=False),
        sa.Column("transaction_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("payment_method", sa.String(length=32), nullable=False),
        sa.Column("staff_id", sa.Integer(), nullable=False),
        sa.Column("subtotal_cents", sa.Integer(), nullable=False),
        sa.Column("discount_cents", sa.Integer(), nullable=False),
        sa.Column("tax_cents", sa.Integer(), nullable=False),
        sa.Column("total_amount_cents", sa.Integer(), nullable=False),
        sa.Column("received_amount_cents", sa.Integer(), nullable=False),
        sa.Column("change_cents", sa.Integer(), nullable=False),
        sa.Column("payment_ref_no", sa.String(length=128), nullable=True),
        sa.Column("pricing_snapshot_id", sa.String(length=64), nullable=True),
        sa.UniqueConstraint("invoice_no", name="uq_pos_transactions_invoice_no"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_pos_transactions_date", "pos_transactions", ["transaction_date"])
    op.create_index("ix_pos_transactions_staff_id", "pos_transactions", ["staff_id"])

    op.create_table(
        "pos_transaction_lines",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("pos_transaction_id", sa.Integer(), sa.ForeignKey("pos_transactions.id"), nullable=False),
        sa.Column("sku", sa.String(length=64), nullable=False),
        sa.Column("order_quantity", sa.Integer(), nullable=False),
        sa.Column("stock_quantity_at_sale", sa.Integer(), nullable=False),
        sa.Column("unit_price_cents", sa.Integer(), nullable=False),
        sa.Column("discount_cents", sa.Integer(), nullable=False),
        sa.Column("subtotal_cents", sa.Integer(), nullable=False),
        sa.Column("promotion_id", sa.Integer(), nullable=True),
        sa.Column("sale_channel", sa.String(length=16), nullable=False),
        sa.Column("online_inventory_item_id", sa.Integer(), sa.ForeignKey("online_variant_stock.id"), nullable=True),
        sa.Column("in_store_inventory_item_id", sa.Integer(), sa.ForeignKey("in_store_stock.id"), nullable=True),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_pos_transaction_lines_pos_transaction_id", "pos_transaction_lines", ["pos_transaction_id"])

    op.create_table(
        "pos_returns",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("return_no", sa.String(length=32), nullable=False),
        sa.Column("invoice_no", sa.String(length=32), sa.ForeignKey("pos_transactions.invoice_no"), nullable=False),
        sa.Column("cashier_id", sa.Integer(), nullable=False),
        sa.Column("supervisor_id", sa.Integer(), nullable=False),
        sa.Column("refund_total_cents", sa.Integer(), nullable=False),
        sa.Column("refund_method", sa.String(length=32), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("return_no", name="uq_pos_returns_return_no"),
        sa.UniqueConstraint("invoice_no", name="uq_pos_returns_invoice_no"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_pos_returns_cashier_id", "pos_returns", ["cashier_id"])
    op.create_index("ix_pos_returns_supervisor_id", "pos_returns", ["supervisor_id"])

    op.create_table(
        "pos_return_lines",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("return_id", sa.Integer(), sa.ForeignKey("pos_returns.id"), nullable=False),
        sa.Column("invoice_item_id", sa.Integer(), sa.ForeignKey("pos_transaction_lines.id"), nullable=False),
        sa.Column("online_inventory_item_id", sa.Integer(), sa.ForeignKey("online_variant_stock.id"), nullable=True),
        sa.Column("in_store_inventory_id", sa.Integer(), sa.ForeignKey("in_store_stock.id"), nullable=True),
        sa.Column("qty_returned", sa.Integer(), nullable=False),
        sa.Column("refund_amount_cents", sa.Integer(), nullable=False),
        sa.CheckConstraint("qty_returned > 0", name="ck_pos_return_lines_qty_positive"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_pos_return_lines_return_id", "pos_return_lines", ["return_id"])

    op.create_table(
        "activity_log",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("staff_id", sa.Integer(), nullable=False),
        sa.Column("activity_type", sa.String(length=64), nullable=False),
        sa.Column("details", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_activity_log_activity_type", "activity_log", ["activity_type"])
    op.create_index("ix_activity_log_staff_created", "activity_log", ["staff_id", "created_at"])

    op.create_table(
        "transaction_log",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("transaction_id", sa.String(length=32), nullable=False),
        sa.Column("pos_transaction_id", sa.Integer(), sa.ForeignKey("pos_transactions.id"), nullable=True),
        sa.Column("return_id", sa.Integer(), sa.ForeignKey("pos_returns.id"), nullable=True),
        sa.Column("channel", sa.String(length=16), nullable=False),
        sa.Column("type", sa.String(length=16), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("transaction_id", name="uq_transaction_log_transaction_id"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_transaction_log_pos_transaction_id", "transaction_log", ["pos_transaction_id"])
    op.create_index("ix_transaction_log_return_id", "transaction_log", ["return_id"])


def downgrade():
    for table in (
        "transaction_log",
        "activity_log",
        "pos_return_lines",
        "pos_returns",
        "pos_transaction_lines",
        "pos_transactions",
        "document_sequences",
        "system_settings",
        "promotions",
        "stock_reservations",
        "online_variant_stock",
        "in_store_stock",
        "products",
    ):
        op.drop_table(table)
