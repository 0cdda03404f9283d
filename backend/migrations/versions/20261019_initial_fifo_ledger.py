"""Initial FIFO ledger schema

Revision ID: 20261019_initial
Revises:
Create Date: 2026-10-19

Catalog reference tables (stores, items, staff_members), inventory lots with
optimistic-locking version_id, immutable transfers and the append-only
inventory activity log.
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
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("location", sa.String(length=255), nullable=True),
        sa.Column("capability", sa.String(length=16), nullable=False, server_default="both"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("name", "location", name="uq_stores_name_location"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_stores_is_active", "stores", ["is_active"])

    op.create_table(
        "items",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("brand", sa.String(length=120), nullable=True),
        sa.Column("category", sa.String(length=120), nullable=True),
        sa.Column("color_code", sa.String(length=16), nullable=True),
        sa.Column("barcode", sa.String(length=64), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_items_barcode", "items", ["barcode"])

    op.create_table(
        "staff_members",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("title", sa.String(length=120), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sqlite_autoincrement=True,
    )

    op.create_table(
        "inventory_lots",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("store_id", sa.Integer(), sa.ForeignKey("stores.id"), nullable=False),
        sa.Column("item_id", sa.Integer(), sa.ForeignKey("items.id"), nullable=False),
        sa.Column("quantity", sa.Numeric(12, 3), nullable=False),
        sa.Column("expiration_date", sa.Date(), nullable=False),
        sa.Column("received_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("batch_number", sa.String(length=64), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="available"),
        sa.Column("priority_score", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("notes", sa.String(length=255), nullable=True),
        sa.Column("sold_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("version_id", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("quantity >= 0", name="ck_inventory_lots_quantity_nonneg"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_inventory_lots_store_id", "inventory_lots", ["store_id"])
    op.create_index("ix_inventory_lots_item_id", "inventory_lots", ["item_id"])
    op.create_index("ix_inventory_lots_expiration_date", "inventory_lots", ["expiration_date"])
    op.create_index("ix_inventory_lots_batch_number", "inventory_lots", ["batch_number"])
    op.create_index("ix_inventory_lots_status", "inventory_lots", ["status"])
    op.create_index("ix_inventory_lots_updated_at", "inventory_lots", ["updated_at"])
    op.create_index(
        "ix_lots_store_item_expiry_status",
        "inventory_lots",
        ["store_id", "item_id", "expiration_date", "status"],
    )
    op.create_index("ix_lots_store_status", "inventory_lots", ["store_id", "status"])

    op.create_table(
        "transfers",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("source_lot_id", sa.Integer(), sa.ForeignKey("inventory_lots.id"), nullable=False),
        sa.Column("destination_lot_id", sa.Integer(), sa.ForeignKey("inventory_lots.id"), nullable=False),
        sa.Column("item_id", sa.Integer(), sa.ForeignKey("items.id"), nullable=False),
        sa.Column("from_store_id", sa.Integer(), sa.ForeignKey("stores.id"), nullable=False),
        sa.Column("to_store_id", sa.Integer(), sa.ForeignKey("stores.id"), nullable=False),
        sa.Column("quantity", sa.Numeric(12, 3), nullable=False),
        sa.Column("batch_number", sa.String(length=64), nullable=False),
        sa.Column("expiration_date", sa.Date(), nullable=False),
        sa.Column("performed_by_staff_id", sa.Integer(), sa.ForeignKey("staff_members.id"), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="completed"),
        sa.Column("idempotency_key", sa.String(length=128), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("quantity > 0", name="ck_transfers_quantity_pos"),
        sa.UniqueConstraint("idempotency_key", name="uq_transfers_idempotency_key"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_transfers_source_lot_id", "transfers", ["source_lot_id"])
    op.create_index("ix_transfers_destination_lot_id", "transfers", ["destination_lot_id"])
    op.create_index("ix_transfers_item_id", "transfers", ["item_id"])
    op.create_index("ix_transfers_from_store_id", "transfers", ["from_store_id"])
    op.create_index("ix_transfers_to_store_id", "transfers", ["to_store_id"])
    op.create_index("ix_transfers_performed_by_staff_id", "transfers", ["performed_by_staff_id"])
    op.create_index("ix_transfers_created_at", "transfers", ["created_at"])
    op.create_index("ix_transfers_from_created", "transfers", ["from_store_id", "created_at"])
    op.create_index("ix_transfers_to_created", "transfers", ["to_store_id", "created_at"])

    op.create_table(
        "inventory_activity_log",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("lot_id", sa.Integer(), sa.ForeignKey("inventory_lots.id"), nullable=True),
        sa.Column("store_id", sa.Integer(), sa.ForeignKey("stores.id"), nullable=False),
        sa.Column("action_type", sa.String(length=16), nullable=False),
        sa.Column("quantity_before", sa.Numeric(12, 3), nullable=True),
        sa.Column("quantity_after", sa.Numeric(12, 3), nullable=True),
        sa.Column("performed_by_staff_id", sa.Integer(), sa.ForeignKey("staff_members.id"), nullable=True),
        sa.Column("transfer_id", sa.Integer(), sa.ForeignKey("transfers.id"), nullable=True),
        sa.Column("idempotency_key", sa.String(length=128), nullable=True),
        sa.Column("detail", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("idempotency_key", name="uq_activity_idempotency_key"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_inventory_activity_log_lot_id", "inventory_activity_log", ["lot_id"])
    op.create_index("ix_inventory_activity_log_store_id", "inventory_activity_log", ["store_id"])
    op.create_index("ix_inventory_activity_log_action_type", "inventory_activity_log", ["action_type"])
    op.create_index(
        "ix_inventory_activity_log_performed_by_staff_id", "inventory_activity_log", ["performed_by_staff_id"]
    )
    op.create_index("ix_inventory_activity_log_transfer_id", "inventory_activity_log", ["transfer_id"])
    op.create_index("ix_inventory_activity_log_created_at", "inventory_activity_log", ["created_at"])
    op.create_index("ix_activity_store_created", "inventory_activity_log", ["store_id", "created_at"])


def downgrade():
    op.drop_table("inventory_activity_log")
    op.drop_table("transfers")
    op.drop_table("inventory_lots")
    op.drop_table("staff_members")
    op.drop_table("items")
    op.drop_table("stores")
