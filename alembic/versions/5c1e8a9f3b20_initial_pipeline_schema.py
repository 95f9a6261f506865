"""initial pipeline schema

Revision ID: 5c1e8a9f3b20
Revises:
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "5c1e8a9f3b20"
down_revision = None
branch_labels = None
depends_on = None


def _item_columns():
    return [
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("position", sa.Integer, nullable=False, server_default="0"),
        sa.Column("product_id", sa.String(36), sa.ForeignKey("products.id"), nullable=False),
        sa.Column("sku", sa.String(64), nullable=False),
        sa.Column("quantity", sa.Integer, nullable=False),
        sa.Column("unit_price", sa.BigInteger, nullable=False),
        sa.Column("total_price", sa.BigInteger, nullable=False),
    ]


def _log_columns(parent_table: str, parent_fk: str):
    return [
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            parent_fk,
            sa.String(36),
            sa.ForeignKey(f"{parent_table}.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column("from_status", sa.String(20)),
        sa.Column("to_status", sa.String(20), nullable=False),
        sa.Column("actor", sa.String(100)),
        sa.Column("notes", sa.Text),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    ]


def upgrade():
    op.create_table(
        "companies",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(200), nullable=False, index=True),
        sa.Column("tax_id", sa.String(32)),
        sa.Column("registration_number", sa.String(64)),
        sa.Column("address", sa.String(300)),
        sa.Column("city", sa.String(100)),
        sa.Column("province", sa.String(100)),
        sa.Column("postal_code", sa.String(10)),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        "customers",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("email", sa.String(320), nullable=False, index=True),
        sa.Column("phone", sa.String(50)),
        sa.Column("type", sa.String(10), nullable=False, server_default="B2C"),
        sa.Column(
            "company_id",
            sa.String(36),
            sa.ForeignKey("companies.id", ondelete="SET NULL"),
            index=True,
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        "products",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("sku", sa.String(64), nullable=False, unique=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("base_price", sa.BigInteger, nullable=False),
        sa.Column("stock", sa.Integer, nullable=False, server_default="0"),
        sa.Column("min_stock", sa.Integer, nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        "pricing_tiers",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "product_id",
            sa.String(36),
            sa.ForeignKey("products.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column("min_quantity", sa.Integer, nullable=False),
        sa.Column("max_quantity", sa.Integer),
        sa.Column("price_per_unit", sa.BigInteger, nullable=False),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
    )

    op.create_table(
        "quotations",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("quotation_number", sa.String(32), nullable=False, unique=True),
        sa.Column("customer_id", sa.String(36), sa.ForeignKey("customers.id"), nullable=False, index=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="PENDING", index=True),
        sa.Column("urgency", sa.String(20), nullable=False, server_default="NORMAL"),
        sa.Column("subtotal", sa.BigInteger, nullable=False),
        sa.Column("tax_amount", sa.BigInteger, nullable=False, server_default="0"),
        sa.Column("total_amount", sa.BigInteger, nullable=False),
        sa.Column("valid_until", sa.DateTime(timezone=True), nullable=False, index=True),
        sa.Column("notes", sa.Text),
        sa.Column("converted_order_id", sa.String(36)),
        sa.Column("shipping_address", sa.String(300)),
        sa.Column("shipping_city", sa.String(100)),
        sa.Column("shipping_province", sa.String(100)),
        sa.Column("shipping_postal_code", sa.String(10)),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        "quotation_items",
        sa.Column(
            "quotation_id",
            sa.String(36),
            sa.ForeignKey("quotations.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        *_item_columns(),
    )
    op.create_table("quotation_status_logs", *_log_columns("quotations", "quotation_id"))

    op.create_table(
        "orders",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("order_number", sa.String(32), nullable=False, unique=True),
        sa.Column("customer_id", sa.String(36), sa.ForeignKey("customers.id"), nullable=False, index=True),
        # one order per quotation
        sa.Column("quotation_id", sa.String(36), sa.ForeignKey("quotations.id"), unique=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="NEW"),
        sa.Column("subtotal", sa.BigInteger, nullable=False),
        sa.Column("tax_amount", sa.BigInteger, nullable=False, server_default="0"),
        sa.Column("total_amount", sa.BigInteger, nullable=False),
        sa.Column("shipping_address", sa.String(300)),
        sa.Column("shipping_city", sa.String(100)),
        sa.Column("shipping_province", sa.String(100)),
        sa.Column("shipping_postal_code", sa.String(10)),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        "order_items",
        sa.Column(
            "order_id",
            sa.String(36),
            sa.ForeignKey("orders.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        *_item_columns(),
    )
    op.create_table("order_status_logs", *_log_columns("orders", "order_id"))

    op.create_table(
        "invoices",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("invoice_number", sa.String(32), nullable=False, unique=True),
        sa.Column("order_id", sa.String(36), sa.ForeignKey("orders.id"), nullable=False, unique=True),
        sa.Column("customer_id", sa.String(36), sa.ForeignKey("customers.id"), nullable=False, index=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="PENDING"),
        sa.Column("subtotal", sa.BigInteger, nullable=False),
        sa.Column("tax_amount", sa.BigInteger, nullable=False, server_default="0"),
        sa.Column("total_amount", sa.BigInteger, nullable=False),
        sa.Column("due_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("paid_at", sa.DateTime(timezone=True)),
        sa.Column("tax_invoice_requested", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        "invoice_items",
        sa.Column(
            "invoice_id",
            sa.String(36),
            sa.ForeignKey("invoices.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        *_item_columns(),
    )

    op.create_table(
        "tax_invoices",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("tax_invoice_number", sa.String(32), nullable=False, unique=True),
        sa.Column("invoice_id", sa.String(36), sa.ForeignKey("invoices.id"), nullable=False, unique=True),
        sa.Column("customer_id", sa.String(36), sa.ForeignKey("customers.id"), nullable=False, index=True),
        sa.Column("company_id", sa.String(36), sa.ForeignKey("companies.id"), nullable=False),
        sa.Column("ppn_rate", sa.Numeric(5, 4), nullable=False),
        sa.Column("ppn_amount", sa.BigInteger, nullable=False),
        sa.Column("total_with_ppn", sa.BigInteger, nullable=False),
        sa.Column("issued_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("issued_by", sa.String(100), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        "document_counters",
        sa.Column("kind", sa.String(20), primary_key=True),
        sa.Column("period", sa.String(8), primary_key=True),
        sa.Column("last_value", sa.BigInteger, nullable=False, server_default="0"),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )


def downgrade():
    op.drop_table("document_counters")
    op.drop_table("tax_invoices")
    op.drop_table("invoice_items")
    op.drop_table("invoices")
    op.drop_table("order_status_logs")
    op.drop_table("order_items")
    op.drop_table("orders")
    op.drop_table("quotation_status_logs")
    op.drop_table("quotation_items")
    op.drop_table("quotations")
    op.drop_table("pricing_tiers")
    op.drop_table("products")
    op.drop_table("customers")
    op.drop_table("companies")
