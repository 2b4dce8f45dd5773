"""Initial billing schema: stores, products, customers, invoices, sessions

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
        "stores",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("store_name", sa.String(255), nullable=False),
        sa.Column("owner_name", sa.String(255), nullable=True),
        sa.Column("type_of_business", sa.String(128), nullable=True),
        sa.Column("phone", sa.String(10), nullable=False),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("address", sa.Text(), nullable=True),
        sa.Column("gst_number", sa.String(15), nullable=True),
        sa.Column("pincode", sa.String(10), nullable=True),
        sa.Column("logo_url", sa.String(512), nullable=True),
        sa.Column("api_key", sa.String(64), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("phone", name="uq_stores_phone"),
        sa.UniqueConstraint("api_key", name="uq_stores_api_key"),
        sqlite_autoincrement=True,
    )

    with op.batch_alter_table("stores", schema=None) as batch_op:
        batch_op.create_index("ix_stores_email", ["email"], unique=False)
        batch_op.create_index("ix_stores_gst_number", ["gst_number"], unique=False)

    op.create_table(
        "products",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("store_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("sku", sa.String(64), nullable=False),
        sa.Column("price", sa.Numeric(12, 2), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("category", sa.String(128), nullable=True),
        sa.Column("unit", sa.String(32), nullable=True),
        sa.Column("version_id", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.ForeignKeyConstraint(["store_id"], ["stores.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("store_id", "sku", name="uq_products_store_sku"),
        sa.CheckConstraint("quantity >= 0", name="ck_products_quantity_nonnegative"),
        sa.CheckConstraint("price >= 0", name="ck_products_price_nonnegative"),
        sqlite_autoincrement=True,
    )

    with op.batch_alter_table("products", schema=None) as batch_op:
        batch_op.create_index("ix_products_store_id", ["store_id"], unique=False)
        batch_op.create_index("ix_products_store_name", ["store_id", "name"], unique=False)

    op.create_table(
        "customers",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("store_id", sa.Integer(), nullable=False),
        sa.Column("customer_code", sa.String(16), nullable=False),
        sa.Column("customer_name", sa.String(255), nullable=False),
        sa.Column("phone", sa.String(32), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.ForeignKeyConstraint(["store_id"], ["stores.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("customer_code", name="uq_customers_code"),
        sa.UniqueConstraint("store_id", "phone", name="uq_customers_store_phone"),
        sqlite_autoincrement=True,
    )

    with op.batch_alter_table("customers", schema=None) as batch_op:
        batch_op.create_index("ix_customers_store_id", ["store_id"], unique=False)
        batch_op.create_index("ix_customers_store_created", ["store_id", "created_at"], unique=False)

    op.create_table(
        "invoices",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("store_id", sa.Integer(), nullable=False),
        sa.Column("customer_id", sa.Integer(), nullable=True),
        sa.Column("customer_name", sa.String(255), nullable=False),
        sa.Column("phone", sa.String(32), nullable=True),
        sa.Column("total", sa.Numeric(12, 2), nullable=False),
        sa.Column("discount", sa.Numeric(5, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("payment_method", sa.String(32), nullable=False),
        sa.Column("status", sa.String(16), nullable=False, server_default="completed"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.ForeignKeyConstraint(["store_id"], ["stores.id"]),
        sa.ForeignKeyConstraint(["customer_id"], ["customers.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )

    with op.batch_alter_table("invoices", schema=None) as batch_op:
        batch_op.create_index("ix_invoices_store_id", ["store_id"], unique=False)
        batch_op.create_index("ix_invoices_status", ["status"], unique=False)
        batch_op.create_index("ix_invoices_store_created", ["store_id", "created_at"], unique=False)
        batch_op.create_index("ix_invoices_store_customer", ["store_id", "customer_id"], unique=False)

    op.create_table(
        "invoice_items",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("invoice_id", sa.Integer(), nullable=False),
        sa.Column("product_id", sa.Integer(), nullable=False),
        sa.Column("qty", sa.Integer(), nullable=False),
        sa.Column("price", sa.Numeric(12, 2), nullable=False),
        sa.ForeignKeyConstraint(["invoice_id"], ["invoices.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["product_id"], ["products.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("qty > 0", name="ck_invoice_items_qty_positive"),
        sqlite_autoincrement=True,
    )

    with op.batch_alter_table("invoice_items", schema=None) as batch_op:
        batch_op.create_index("ix_invoice_items_invoice_id", ["invoice_id"], unique=False)
        batch_op.create_index("ix_invoice_items_product_id", ["product_id"], unique=False)

    op.create_table(
        "store_sessions",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("store_id", sa.Integer(), nullable=False),
        sa.Column("token_hash", sa.String(64), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("revoked_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["store_id"], ["stores.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("token_hash", name="uq_store_sessions_token_hash"),
        sqlite_autoincrement=True,
    )

    with op.batch_alter_table("store_sessions", schema=None) as batch_op:
        batch_op.create_index("ix_store_sessions_store_id", ["store_id"], unique=False)


def downgrade():
    with op.batch_alter_table("store_sessions", schema=None) as batch_op:
        batch_op.drop_index("ix_store_sessions_store_id")
    op.drop_table("store_sessions")

    with op.batch_alter_table("invoice_items", schema=None) as batch_op:
        batch_op.drop_index("ix_invoice_items_product_id")
        batch_op.drop_index("ix_invoice_items_invoice_id")
    op.drop_table("invoice_items")

    with op.batch_alter_table("invoices", schema=None) as batch_op:
        batch_op.drop_index("ix_invoices_store_customer")
        batch_op.drop_index("ix_invoices_store_created")
        batch_op.drop_index("ix_invoices_status")
        batch_op.drop_index("ix_invoices_store_id")
    op.drop_table("invoices")

    with op.batch_alter_table("customers", schema=None) as batch_op:
        batch_op.drop_index("ix_customers_store_created")
        batch_op.drop_index("ix_customers_store_id")
    op.drop_table("customers")

    with op.batch_alter_table("products", schema=None) as batch_op:
        batch_op.drop_index("ix_products_store_name")
        batch_op.drop_index("ix_products_store_id")
    op.drop_table("products")

    with op.batch_alter_table("stores", schema=None) as batch_op:
        batch_op.drop_index("ix_stores_gst_number")
        batch_op.drop_index("ix_stores_email")
    op.drop_table("stores")
