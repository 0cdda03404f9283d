from __future__ import annotations

from datetime import date

from sqlalchemy import event

from ..extensions import db
from ..quantities import format_quantity
from ..time_utils import to_utc_z, to_iso_date, utcnow


LOT_STATUS_AVAILABLE = "available"
LOT_STATUS_TRANSFERRED = "transferred"
LOT_STATUS_SOLD = "sold"

TRANSFER_STATUS_COMPLETED = "completed"

ACTION_RECEIVED = "received"
ACTION_TRANSFERRED = "transferred"
ACTION_SOLD = "sold"
ACTION_TYPES = (ACTION_RECEIVED, ACTION_TRANSFERRED, ACTION_SOLD)


class InventoryLot(db.Model):
    """
    A quantity of one item at one store sharing one expiration date and batch.

    INVARIANTS:
    - quantity >= 0 (also enforced by a CHECK constraint)
    - status 'transferred' only when a transfer drains the lot to exactly 0
    - status 'sold' only through the explicit sale action (quantity forced to 0)
    - received_date is set once at creation
    - lots are never deleted

    CONCURRENCY:
    version_id is the optimistic-locking column. Every UPDATE is issued as
    "... WHERE version_id = :seen"; a concurrent writer makes the flush raise
    StaleDataError and the unit of work is retried (services/concurrency.py).

    priority_score is a cache of priority_service.compute_priority(), kept
    current by refresh_priority_scores. to_dict() reports a score computed
    for its as_of day; ordering decisions never rely on the cache.
    """
    __tablename__ = "inventory_lots"
    __table_args__ = (
        db.CheckConstraint("quantity >= 0", name="ck_inventory_lots_quantity_nonneg"),
        db.Index("ix_lots_store_item_expiry_status", "store_id", "item_id", "expiration_date", "status"),
        db.Index("ix_lots_store_status", "store_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)
    item_id = db.Column(db.Integer, db.ForeignKey("items.id"), nullable=False, index=True)

    quantity = db.Column(db.Numeric(12, 3), nullable=False)
    expiration_date = db.Column(db.Date, nullable=False, index=True)
    received_date = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    batch_number = db.Column(db.String(64), nullable=False, index=True)
    status = db.Column(db.String(16), nullable=False, default=LOT_STATUS_AVAILABLE, index=True)
    priority_score = db.Column(db.Integer, nullable=False, default=0)

    notes = db.Column(db.String(255), nullable=True)
    sold_at = db.Column(db.DateTime(timezone=True), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
        index=True,
    )

    store = db.relationship("Store", backref=db.backref("lots", lazy=True))
    item = db.relationship("Item", backref=db.backref("lots", lazy=True))

    __mapper_args__ = {"version_id_col": version_id}

    @property
    def is_active(self) -> bool:
        return self.status == LOT_STATUS_AVAILABLE and self.quantity > 0

    def __repr__(self) -> str:
        return (
            f"<InventoryLot id={self.id} store_id={self.store_id} item_id={self.item_id} "
            f"qty={self.quantity} exp={self.expiration_date} status={self.status}>"
        )

    def to_dict(self, as_of: date | None = None) -> dict:
        from ..services.priority_service import compute_priority, expiry_band

        priority = compute_priority(self.expiration_date, as_of)
        return {
            "id": self.id,
            "store_id": self.store_id,
            "item_id": self.item_id,
            "quantity": format_quantity(self.quantity),
            "expiration_date": to_iso_date(self.expiration_date),
            "received_date": to_utc_z(self.received_date),
            "batch_number": self.batch_number,
            "status": self.status,
            "is_active": self.is_active,
            "priority_score": priority.score,
            "days_until_expiry": priority.days_until_expiry,
            "expiry_band": expiry_band(priority.days_until_expiry),
            "notes": self.notes,
            "sold_at": to_utc_z(self.sold_at),
            "version_id": self.version_id,
            "updated_at": to_utc_z(self.updated_at),
        }


class Transfer(db.Model):
    """
    Completed movement of stock between two stores (immutable).

    Written inside the same DB transaction as the source decrement, the
    destination create/merge and the audit entry. There is no pending or
    cancelled state: a Transfer row exists only if the movement happened.

    idempotency_key is client-supplied and unique; a retried request with
    the same key returns this row instead of moving stock again.
    """
    __tablename__ = "transfers"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_transfers_quantity_pos"),
        db.Index("ix_transfers_from_created", "from_store_id", "created_at"),
        db.Index("ix_transfers_to_created", "to_store_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    source_lot_id = db.Column(db.Integer, db.ForeignKey("inventory_lots.id"), nullable=False, index=True)
    destination_lot_id = db.Column(db.Integer, db.ForeignKey("inventory_lots.id"), nullable=False, index=True)
    item_id = db.Column(db.Integer, db.ForeignKey("items.id"), nullable=False, index=True)
    from_store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)
    to_store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)

    quantity = db.Column(db.Numeric(12, 3), nullable=False)
    batch_number = db.Column(db.String(64), nullable=False)
    expiration_date = db.Column(db.Date, nullable=False)

    performed_by_staff_id = db.Column(db.Integer, db.ForeignKey("staff_members.id"), nullable=False, index=True)
    notes = db.Column(db.Text, nullable=True)
    status = db.Column(db.String(16), nullable=False, default=TRANSFER_STATUS_COMPLETED)
    idempotency_key = db.Column(db.String(128), nullable=True, unique=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    source_lot = db.relationship("InventoryLot", foreign_keys=[source_lot_id])
    destination_lot = db.relationship("InventoryLot", foreign_keys=[destination_lot_id])
    performed_by = db.relationship("StaffMember", foreign_keys=[performed_by_staff_id])

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "source_lot_id": self.source_lot_id,
            "destination_lot_id": self.destination_lot_id,
            "item_id": self.item_id,
            "from_store_id": self.from_store_id,
            "to_store_id": self.to_store_id,
            "quantity": format_quantity(self.quantity),
            "batch_number": self.batch_number,
            "expiration_date": to_iso_date(self.expiration_date),
            "performed_by_staff_id": self.performed_by_staff_id,
            "notes": self.notes,
            "status": self.status,
            "idempotency_key": self.idempotency_key,
            "created_at": to_utc_z(self.created_at),
        }


class ActivityLogEntry(db.Model):
    """
    Append-only audit row, one per ledger mutation.

    - lot_id is absent for store-level events
    - quantity_before / quantity_after describe the lot named by lot_id
    - detail is a small JSON payload (destination store for transfers, etc.)
    - idempotency_key deduplicates retried receives
    """
    __tablename__ = "inventory_activity_log"
    __table_args__ = (
        db.Index("ix_activity_store_created", "store_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    lot_id = db.Column(db.Integer, db.ForeignKey("inventory_lots.id"), nullable=True, index=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)
    action_type = db.Column(db.String(16), nullable=False, index=True)

    quantity_before = db.Column(db.Numeric(12, 3), nullable=True)
    quantity_after = db.Column(db.Numeric(12, 3), nullable=True)

    performed_by_staff_id = db.Column(db.Integer, db.ForeignKey("staff_members.id"), nullable=True, index=True)
    transfer_id = db.Column(db.Integer, db.ForeignKey("transfers.id"), nullable=True, index=True)
    idempotency_key = db.Column(db.String(128), nullable=True, unique=True)

    detail = db.Column(db.JSON, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "lot_id": self.lot_id,
            "store_id": self.store_id,
            "action_type": self.action_type,
            "quantity_before": format_quantity(self.quantity_before),
            "quantity_after": format_quantity(self.quantity_after),
            "performed_by_staff_id": self.performed_by_staff_id,
            "transfer_id": self.transfer_id,
            "idempotency_key": self.idempotency_key,
            "detail": self.detail,
            "created_at": to_utc_z(self.created_at),
        }


@event.listens_for(Transfer, "before_update")
@event.listens_for(ActivityLogEntry, "before_update")
def _refuse_update(mapper, connection, target):
    raise NotImplementedError(f"{type(target).__name__} is insert-only; updates are not allowed.")


@event.listens_for(Transfer, "before_delete")
@event.listens_for(ActivityLogEntry, "before_delete")
def _refuse_delete(mapper, connection, target):
    raise NotImplementedError(f"{type(target).__name__} records cannot be deleted.")
