"""Initial back-office schema: tenancy, catalog, inventory ledger and documents

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


NOW = sa.text("(CURRENT_TIMESTAMP)")


def _timestamps(updated: bool = True):
    cols = [sa.Column("created_at", sa.DateTime(timezone=True), server_default=NOW, nullable=False)]
    if updated:
        cols.append(sa.Column("updated_at", sa.DateTime(timezone=True), server_default=NOW, nullable=False))
    return cols


def _document_audit():
    return [
        sa.Column("status", sa.String(16), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_by_user_id", sa.Integer(), nullable=True),
        *_timestamps(),
    ]


def _line_columns(parent_table: str, parent_key: str, priced: bool = True):
    cols = [
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column(parent_key, sa.Integer(), nullable=False),
        sa.Column("product_id", sa.Integer(), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
    ]
    if priced:
        cols += [
            sa.Column("unit_price", sa.Numeric(12, 2), nullable=False),
            sa.Column("total_price", sa.Numeric(12, 2), nullable=False),
        ]
    cols += [
        sa.ForeignKeyConstraint([parent_key], [f"{parent_table}.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["product_id"], ["products.id"]),
        sa.PrimaryKeyConstraint("id"),
    ]
    return cols


def upgrade():
    # ---- tenancy ----
    op.create_table(
        "companies",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("status", sa.String(16), nullable=False, server_default="ACTIVE"),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name", name="uq_companies_name"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_companies_status", "companies", ["status"])

    op.create_table(
        "stores",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("company_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(120), nullable=False),
        sa.Column("address", sa.Text(), nullable=True),
        sa.Column("phone", sa.String(64), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("1")),
        *_timestamps(updated=False),
        sa.ForeignKeyConstraint(["company_id"], ["companies.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("company_id", "name", name="uq_stores_company_name"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_stores_company_id", "stores", ["company_id"])

    # ---- catalog ----
    op.create_table(
        "products",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("company_id", sa.Integer(), nullable=False),
        sa.Column("sku", sa.String(64), nullable=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("unit", sa.String(32), nullable=False, server_default="pcs"),
        sa.Column("cost_price", sa.Numeric(12, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("selling_price", sa.Numeric(12, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("reorder_level", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("1")),
        *_timestamps(),
        sa.ForeignKeyConstraint(["company_id"], ["companies.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("company_id", "sku", name="uq_products_company_sku"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_products_company_id", "products", ["company_id"])
    op.create_index("ix_products_company_name", "products", ["company_id", "name"])

    op.create_table(
        "vendors",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("company_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("phone", sa.String(64), nullable=True),
        sa.Column("address", sa.Text(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("1")),
        *_timestamps(updated=False),
        sa.ForeignKeyConstraint(["company_id"], ["companies.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("company_id", "name", name="uq_vendors_company_name"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_vendors_company_id", "vendors", ["company_id"])

    op.create_table(
        "customers",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("company_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("phone", sa.String(64), nullable=True),
        sa.Column("address", sa.Text(), nullable=True),
        *_timestamps(updated=False),
        sa.ForeignKeyConstraint(["company_id"], ["companies.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_customers_company_id", "customers", ["company_id"])

    # ---- inventory ledger ----
    op.create_table(
        "inventories",
        sa.Column("product_id", sa.Integer(), nullable=False),
        sa.Column("store_id", sa.Integer(), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=NOW, nullable=False),
        sa.Column("last_updated", sa.DateTime(timezone=True), server_default=NOW, nullable=False),
        sa.CheckConstraint("quantity >= 0", name="ck_inventories_quantity_non_negative"),
        sa.ForeignKeyConstraint(["product_id"], ["products.id"]),
        sa.ForeignKeyConstraint(["store_id"], ["stores.id"]),
        sa.PrimaryKeyConstraint("product_id", "store_id"),
    )
    op.create_index("ix_inventories_store_id", "inventories", ["store_id"])

    op.create_table(
        "stock_movements",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("store_id", sa.Integer(), nullable=False),
        sa.Column("product_id", sa.Integer(), nullable=False),
        sa.Column("quantity_delta", sa.Integer(), nullable=False),
        sa.Column("quantity_after", sa.Integer(), nullable=False),
        sa.Column("document_type", sa.String(32), nullable=False),
        sa.Column("document_id", sa.Integer(), nullable=True),
        sa.Column("document_number", sa.String(64), nullable=True),
        sa.Column("note", sa.String(255), nullable=True),
        sa.Column("actor_user_id", sa.Integer(), nullable=True),
        sa.Column("occurred_at", sa.DateTime(timezone=True), server_default=NOW, nullable=False),
        sa.ForeignKeyConstraint(["product_id"], ["products.id"]),
        sa.ForeignKeyConstraint(["store_id"], ["stores.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_stock_movements_document_type", "stock_movements", ["document_type"])
    op.create_index("ix_stock_movements_occurred_at", "stock_movements", ["occurred_at"])
    op.create_index("ix_stock_movements_store_product", "stock_movements", ["store_id", "product_id", "occurred_at"])
    op.create_index("ix_stock_movements_document", "stock_movements", ["document_type", "document_id"])

    op.create_table(
        "document_sequences",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("document_type", sa.String(32), nullable=False),
        sa.Column("scope_key", sa.String(32), nullable=False),
        sa.Column("business_date", sa.Date(), nullable=False),
        sa.Column("next_number", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=NOW, nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("document_type", "scope_key", "business_date", name="uq_doc_sequences_type_scope_day"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_document_sequences_document_type", "document_sequences", ["document_type"])

    # ---- purchases ----
    op.create_table(
        "purchases",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("document_number", sa.String(64), nullable=False),
        sa.Column("vendor_id", sa.Integer(), nullable=False),
        sa.Column("store_id", sa.Integer(), nullable=False),
        sa.Column("purchase_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("total_amount", sa.Numeric(12, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("paid_amount", sa.Numeric(12, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("due_amount", sa.Numeric(12, 2), nullable=False, server_default=sa.text("0")),
        *_document_audit(),
        sa.ForeignKeyConstraint(["store_id"], ["stores.id"]),
        sa.ForeignKeyConstraint(["vendor_id"], ["vendors.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("store_id", "document_number", name="uq_purchases_store_docnum"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_purchases_document_number", "purchases", ["document_number"])
    op.create_index("ix_purchases_store_status_created", "purchases", ["store_id", "status", "created_at"])
    op.create_index("ix_purchases_store_id", "purchases", ["store_id"])
    op.create_index("ix_purchases_vendor_id", "purchases", ["vendor_id"])
    op.create_index("ix_purchases_status", "purchases", ["status"])

    op.create_table("purchase_items", *_line_columns("purchases", "purchase_id"), sqlite_autoincrement=True)
    op.create_index("ix_purchase_items_purchase_id", "purchase_items", ["purchase_id"])
    op.create_index("ix_purchase_items_product_id", "purchase_items", ["product_id"])

    # ---- sales ----
    op.create_table(
        "sales",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("document_number", sa.String(64), nullable=False),
        sa.Column("customer_id", sa.Integer(), nullable=True),
        sa.Column("store_id", sa.Integer(), nullable=False),
        sa.Column("sale_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("subtotal", sa.Numeric(12, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("discount", sa.Numeric(12, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("tax", sa.Numeric(12, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("total_amount", sa.Numeric(12, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("paid_amount", sa.Numeric(12, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("due_amount", sa.Numeric(12, 2), nullable=False, server_default=sa.text("0")),
        *_document_audit(),
        sa.ForeignKeyConstraint(["customer_id"], ["customers.id"]),
        sa.ForeignKeyConstraint(["store_id"], ["stores.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("store_id", "document_number", name="uq_sales_store_docnum"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_sales_document_number", "sales", ["document_number"])
    op.create_index("ix_sales_store_status_created", "sales", ["store_id", "status", "created_at"])
    op.create_index("ix_sales_store_id", "sales", ["store_id"])
    op.create_index("ix_sales_customer_id", "sales", ["customer_id"])
    op.create_index("ix_sales_status", "sales", ["status"])

    op.create_table("sale_items", *_line_columns("sales", "sale_id"), sqlite_autoincrement=True)
    op.create_index("ix_sale_items_sale_id", "sale_items", ["sale_id"])
    op.create_index("ix_sale_items_product_id", "sale_items", ["product_id"])

    # ---- transfers ----
    op.create_table(
        "transfers",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("document_number", sa.String(64), nullable=False),
        sa.Column("from_store_id", sa.Integer(), nullable=False),
        sa.Column("to_store_id", sa.Integer(), nullable=False),
        sa.Column("transfer_date", sa.DateTime(timezone=True), nullable=False),
        *_document_audit(),
        sa.CheckConstraint("from_store_id <> to_store_id", name="ck_transfers_distinct_stores"),
        sa.ForeignKeyConstraint(["from_store_id"], ["stores.id"]),
        sa.ForeignKeyConstraint(["to_store_id"], ["stores.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("from_store_id", "document_number", name="uq_transfers_store_docnum"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_transfers_document_number", "transfers", ["document_number"])
    op.create_index("ix_transfers_from_store_id", "transfers", ["from_store_id"])
    op.create_index("ix_transfers_to_store_id", "transfers", ["to_store_id"])
    op.create_index("ix_transfers_status", "transfers", ["status"])

    op.create_table("transfer_items", *_line_columns("transfers", "transfer_id", priced=False), sqlite_autoincrement=True)
    op.create_index("ix_transfer_items_transfer_id", "transfer_items", ["transfer_id"])

    # ---- returns ----
    for table, original_key, original_table in (
        ("purchase_returns", "purchase_id", "purchases"),
        ("sale_returns", "sale_id", "sales"),
    ):
        op.create_table(
            table,
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("document_number", sa.String(64), nullable=False),
            sa.Column(original_key, sa.Integer(), nullable=False),
            sa.Column("store_id", sa.Integer(), nullable=False),
            sa.Column("return_date", sa.DateTime(timezone=True), nullable=False),
            sa.Column("reason", sa.Text(), nullable=False),
            sa.Column("refund_amount", sa.Numeric(12, 2), nullable=False, server_default=sa.text("0")),
            *_document_audit(),
            sa.ForeignKeyConstraint([original_key], [f"{original_table}.id"]),
            sa.ForeignKeyConstraint(["store_id"], ["stores.id"]),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("store_id", "document_number", name=f"uq_{table}_store_docnum"),
            sqlite_autoincrement=True,
        )
        op.create_index(f"ix_{table}_document_number", table, ["document_number"])
        op.create_index(f"ix_{table}_{original_key}", table, [original_key])
        op.create_index(f"ix_{table}_store_id", table, ["store_id"])
        op.create_index(f"ix_{table}_status", table, ["status"])

    op.create_table(
        "purchase_return_items",
        *_line_columns("purchase_returns", "purchase_return_id"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_purchase_return_items_purchase_return_id", "purchase_return_items", ["purchase_return_id"])

    op.create_table(
        "sale_return_items",
        *_line_columns("sale_returns", "sale_return_id"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_sale_return_items_sale_return_id", "sale_return_items", ["sale_return_id"])


def downgrade():
    for table in (
        "sale_return_items",
        "purchase_return_items",
        "sale_returns",
        "purchase_returns",
        "transfer_items",
        "transfers",
        "sale_items",
        "sales",
        "purchase_items",
        "purchases",
        "document_sequences",
        "stock_movements",
        "inventories",
        "customers",
        "vendors",
        "products",
        "stores",
        "companies",
    ):
        op.drop_table(table)
