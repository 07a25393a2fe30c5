"""Initial billing schema: users, sessions, shops, tenancy edges, invoices, products

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


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def upgrade():
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("username", sa.String(length=64), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        # Logical pointer into shops, deliberately without a foreign key
        sa.Column("default_shop_id", sa.Integer(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.Column("last_login_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("email", name="uq_users_email"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_users_username", "users", ["username"], unique=True)

    op.create_table(
        "session_tokens",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("token_hash", sa.String(length=255), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("last_used_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("is_revoked", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("revoked_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("revoked_reason", sa.String(length=255), nullable=True),
        sa.Column("user_agent", sa.String(length=512), nullable=True),
        sa.Column("ip_address", sa.String(length=45), nullable=True),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_session_tokens_user_id", "session_tokens", ["user_id"])
    op.create_index("ix_session_tokens_token_hash", "session_tokens", ["token_hash"], unique=True)
    op.create_index("ix_session_tokens_expires_at", "session_tokens", ["expires_at"])
    op.create_index("ix_session_tokens_is_revoked", "session_tokens", ["is_revoked"])
    op.create_index("ix_session_tokens_user_active", "session_tokens", ["user_id", "is_revoked"])

    op.create_table(
        "shops",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("legal_name", sa.String(length=255), nullable=True),
        sa.Column("gstin", sa.String(length=32), nullable=True),
        sa.Column("pan", sa.String(length=16), nullable=True),
        sa.Column("cin", sa.String(length=32), nullable=True),
        sa.Column("address", sa.Text(), nullable=True),
        sa.Column("state", sa.String(length=64), nullable=True),
        sa.Column("state_code", sa.String(length=8), nullable=True),
        sa.Column("pin", sa.String(length=16), nullable=True),
        sa.Column("bank_detail", sa.JSON(), nullable=True),
        sa.Column("signature_url", sa.String(length=512), nullable=True),
        *_timestamps(),
        sqlite_autoincrement=True,
    )

    op.create_table(
        "user_shops",
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("shop_id", sa.Integer(), sa.ForeignKey("shops.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("role", sa.String(length=16), nullable=False, server_default="VIEWER"),
        *_timestamps(),
    )
    op.create_index("ix_user_shops_shop", "user_shops", ["shop_id"])

    op.create_table(
        "invoices",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("shop_id", sa.Integer(), sa.ForeignKey("shops.id", ondelete="CASCADE"), nullable=False),
        sa.Column("created_by_user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("serial_no", sa.String(length=64), nullable=False),
        sa.Column("invoice_date", sa.Date(), nullable=True),
        sa.Column("invoice_type", sa.String(length=32), nullable=False, server_default="TAX_INVOICE"),
        sa.Column("shop_legal_name", sa.String(length=255), nullable=True),
        sa.Column("gstin", sa.String(length=32), nullable=True),
        sa.Column("pan_no", sa.String(length=16), nullable=True),
        sa.Column("cin_no", sa.String(length=32), nullable=True),
        sa.Column("address", sa.Text(), nullable=True),
        sa.Column("state", sa.String(length=64), nullable=True),
        sa.Column("state_code", sa.String(length=8), nullable=True),
        sa.Column("bank_detail", sa.JSON(), nullable=True),
        sa.Column("bill_to", sa.JSON(), nullable=False),
        sa.Column("ship_to", sa.JSON(), nullable=False),
        sa.Column("total", sa.Numeric(10, 2), nullable=False),
        sa.Column("additional_data", sa.JSON(), nullable=True),
        *_timestamps(),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_invoices_shop_id", "invoices", ["shop_id"])
    op.create_index("ix_invoices_shop_created", "invoices", ["shop_id", "created_at"])
    op.create_index("ix_invoices_shop_type", "invoices", ["shop_id", "invoice_type"])

    op.create_table(
        "invoice_items",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("invoice_id", sa.Integer(), sa.ForeignKey("invoices.id", ondelete="CASCADE"), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("description", sa.String(length=512), nullable=False),
        sa.Column("hsn_sac_code", sa.String(length=32), nullable=False, server_default=""),
        sa.Column("quantity", sa.Numeric(10, 2), nullable=False),
        sa.Column("unit_value", sa.Numeric(10, 2), nullable=False),
        sa.Column("discount", sa.Numeric(10, 2), nullable=False, server_default="0"),
        sa.Column("taxable_value", sa.Numeric(10, 2), nullable=False),
        sa.Column("cgst_rate", sa.Numeric(5, 2), nullable=False, server_default="0"),
        sa.Column("cgst_amount", sa.Numeric(10, 2), nullable=False, server_default="0"),
        sa.Column("sgst_rate", sa.Numeric(5, 2), nullable=False, server_default="0"),
        sa.Column("sgst_amount", sa.Numeric(10, 2), nullable=False, server_default="0"),
        sa.Column("igst_rate", sa.Numeric(5, 2), nullable=False, server_default="0"),
        sa.Column("igst_amount", sa.Numeric(10, 2), nullable=False, server_default="0"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_invoice_items_invoice_id", "invoice_items", ["invoice_id"])
    op.create_index("ix_invoice_items_invoice_position", "invoice_items", ["invoice_id", "position"])

    op.create_table(
        "products",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("shop_id", sa.Integer(), sa.ForeignKey("shops.id", ondelete="CASCADE"), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("price", sa.Numeric(10, 2), nullable=False, server_default="0"),
        sa.Column("hsn", sa.String(length=32), nullable=False, server_default=""),
        sa.Column("category", sa.String(length=120), nullable=False, server_default="General"),
        sa.Column("cgst", sa.Numeric(5, 2), nullable=False, server_default="0"),
        sa.Column("sgst", sa.Numeric(5, 2), nullable=False, server_default="0"),
        sa.Column("igst", sa.Numeric(5, 2), nullable=False, server_default="0"),
        sa.Column("discount_percent", sa.Numeric(5, 2), nullable=False, server_default="0"),
        *_timestamps(),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_products_shop_id", "products", ["shop_id"])
    op.create_index("ix_products_shop_name", "products", ["shop_id", "name"])


def downgrade():
    op.drop_table("products")
    op.drop_table("invoice_items")
    op.drop_table("invoices")
    op.drop_table("user_shops")
    op.drop_table("shops")
    op.drop_table("session_tokens")
    op.drop_table("users")
