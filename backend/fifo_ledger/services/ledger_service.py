# Overview: Service-layer operations for inventory lots; encapsulates business logic and database work.

from __future__ import annotations

import logging
import secrets
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Iterator

from sqlalchemy import and_, or_
from sqlalchemy.exc import IntegrityError

from ..errors import (
    InsufficientQuantityError,
    InvalidStatusTransitionError,
    NotFoundError,
    ValidationError,
)
from ..extensions import db
from ..models import InventoryLot, Store
from ..models.inventory import (
    ACTION_RECEIVED,
    ACTION_SOLD,
    LOT_STATUS_AVAILABLE,
    LOT_STATUS_SOLD,
    LOT_STATUS_TRANSFERRED,
)
from ..time_utils import to_iso_date, today, utcnow
from ..validation import coerce_date, coerce_key, coerce_quantity
from .activity_service import append_activity, find_by_idempotency_key
from .catalog_service import resolve_item, resolve_staff, resolve_store
from .concurrency import lock_for_update, run_with_retry
from .priority_service import compute_priority
"""
Inventory Lot Invariants (authoritative)

Quantities:
- Lot quantity is a Decimal with three places and never negative.
- Conservation: receive adds exactly its quantity, a transfer moves its
  quantity from one lot to another, a sale zeroes one lot. Nothing else
  changes a quantity.

Lifecycle:
- available -> available   (partial transfer out, merge in)
- available -> transferred (transfer drains the lot to exactly 0)
- available -> sold        (explicit sale; quantity forced to 0)
- transferred -> sold      (selling a drained lot is tolerated)
- sold is terminal; a transferred lot never regains quantity.
- Lots are never deleted.

Ordering:
- FIFO order is priority desc, expiration asc, received asc. Priority never
  increases as expiration moves out, so the same order is produced by
  expiration asc, received asc, id asc; queries sort on those columns and
  never on the cached priority_score.

Audit:
- Every mutation appends one ActivityLogEntry in the same DB transaction.
"""

logger = logging.getLogger(__name__)


def generate_batch_number() -> str:
    """Timestamp plus random suffix, e.g. B20260301142530-9F3A1C (best-effort unique)."""
    return f"B{utcnow():%Y%m%d%H%M%S}-{secrets.token_hex(3).upper()}"


def _active_filter():
    return and_(InventoryLot.status == LOT_STATUS_AVAILABLE, InventoryLot.quantity > 0)


def _fifo_order():
    return (
        InventoryLot.expiration_date.asc(),
        InventoryLot.received_date.asc(),
        InventoryLot.id.asc(),
    )


def _load_lot(lot_id: int, *, lock: bool = False) -> InventoryLot:
    query = db.session.query(InventoryLot).filter_by(id=lot_id)
    if lock:
        query = lock_for_update(query)
    lot = query.first()
    if lot is None:
        raise NotFoundError(f"Lot {lot_id} not found")
    return lot


def get_lot(lot_id: int) -> InventoryLot:
    return _load_lot(lot_id)


# ---------------------------------------------------------------------------
# Receive
# ---------------------------------------------------------------------------

def _replay_receive(entry, *, store_id: int, item_id: int, quantity: Decimal, expiration: date) -> InventoryLot:
    """Return the lot of an earlier receive with the same key, or reject a reused key."""
    lot = _load_lot(entry.lot_id)
    same = (
        entry.action_type == ACTION_RECEIVED
        and lot.store_id == store_id
        and lot.item_id == item_id
        and lot.expiration_date == expiration
        and entry.quantity_after == quantity
    )
    if not same:
        raise ValidationError("idempotency_key was already used for a different request")
    logger.info("Receive replayed for idempotency key %s (lot %s)", entry.idempotency_key, lot.id)
    return lot


def receive(
    store_id: int,
    item_id: int,
    quantity,
    expiration_date,
    batch_number: str | None = None,
    notes: str | None = None,
    performed_by: int | None = None,
    idempotency_key: str | None = None,
) -> InventoryLot:
    """
    Record a delivery as a new available lot.

    The store must accept deliveries (receive-only or both). With an
    idempotency key that already produced a lot, that lot is returned and
    nothing is written.
    """
    qty = coerce_quantity(quantity)
    if qty <= 0:
        raise ValidationError("quantity must be > 0 to receive stock")
    expiration = coerce_date(expiration_date, "expiration_date")
    key = coerce_key(idempotency_key)
    batch = (batch_number or "").strip() or None

    def _op():
        if key is not None:
            existing = find_by_idempotency_key(key)
            if existing is not None:
                return _replay_receive(
                    existing, store_id=store_id, item_id=item_id, quantity=qty, expiration=expiration
                )

        store = resolve_store(store_id)
        resolve_item(item_id)
        if performed_by is not None:
            resolve_staff(performed_by)
        if not store.can_receive:
            raise ValidationError(f"Store {store_id} ({store.capability}) cannot receive deliveries")

        lot = InventoryLot(
            store_id=store_id,
            item_id=item_id,
            quantity=qty,
            expiration_date=expiration,
            received_date=utcnow(),
            batch_number=batch or generate_batch_number(),
            status=LOT_STATUS_AVAILABLE,
            priority_score=compute_priority(expiration).score,
            notes=notes,
        )
        db.session.add(lot)
        db.session.flush()

        append_activity(
            store_id=store_id,
            lot_id=lot.id,
            action_type=ACTION_RECEIVED,
            quantity_before=Decimal("0"),
            quantity_after=qty,
            performed_by_staff_id=performed_by,
            idempotency_key=key,
            detail={
                "item_id": item_id,
                "batch_number": lot.batch_number,
                "expiration_date": to_iso_date(expiration),
            },
            occurred_at=lot.received_date,
        )

        db.session.commit()
        logger.info(
            "Received lot %s: store=%s item=%s qty=%s expires=%s",
            lot.id, store_id, item_id, qty, expiration,
        )
        return lot

    try:
        return run_with_retry(_op)
    except IntegrityError:
        # Concurrent receive with the same key won the unique constraint
        if key is None:
            raise
        existing = find_by_idempotency_key(key)
        if existing is None:
            raise
        return _replay_receive(existing, store_id=store_id, item_id=item_id, quantity=qty, expiration=expiration)


# ---------------------------------------------------------------------------
# Transfer primitives (flush only; the transfer coordinator commits)
# ---------------------------------------------------------------------------

def decrement_for_transfer(lot_id: int, quantity: Decimal) -> tuple[Decimal, str]:
    """
    Take quantity out of a lot for an outgoing transfer.

    Returns (remaining, status). A lot drained to exactly zero becomes
    'transferred'. Flushes but never commits.
    """
    qty = coerce_quantity(quantity)
    if qty <= 0:
        raise ValidationError("quantity must be > 0 to transfer stock")

    lot = _load_lot(lot_id, lock=True)
    if lot.status != LOT_STATUS_AVAILABLE:
        raise InvalidStatusTransitionError(f"Lot {lot_id} is {lot.status}; only available lots can be transferred")
    if qty > lot.quantity:
        raise InsufficientQuantityError(available=lot.quantity, requested=qty)

    lot.quantity = lot.quantity - qty
    if lot.quantity == 0:
        lot.status = LOT_STATUS_TRANSFERRED
    db.session.flush()
    return lot.quantity, lot.status


def create_or_merge_at_destination(
    store_id: int,
    item_id: int,
    quantity: Decimal,
    expiration_date: date,
    batch_number: str,
) -> tuple[InventoryLot, bool]:
    """
    Put transferred stock into the destination store.

    Merges into an available lot of the same item and expiration date when
    one exists (earliest received first), else creates a new lot carrying
    the source batch number. Returns (lot, merged). Flushes but never commits.

    The destination store row is locked first so concurrent transfers into
    the same store serialize here even when no matching lot exists yet.
    """
    qty = coerce_quantity(quantity)
    if qty <= 0:
        raise ValidationError("quantity must be > 0 to transfer stock")

    destination = lock_for_update(db.session.query(Store).filter(Store.id == store_id)).one_or_none()
    if destination is None:
        raise NotFoundError(f"Store {store_id} not found")

    query = (
        db.session.query(InventoryLot)
        .filter(
            InventoryLot.store_id == store_id,
            InventoryLot.item_id == item_id,
            InventoryLot.expiration_date == expiration_date,
            InventoryLot.status == LOT_STATUS_AVAILABLE,
        )
        .order_by(InventoryLot.received_date.asc(), InventoryLot.id.asc())
    )
    existing = lock_for_update(query).first()

    if existing is not None:
        existing.quantity = existing.quantity + qty
        existing.priority_score = compute_priority(expiration_date).score
        db.session.flush()
        return existing, True

    lot = InventoryLot(
        store_id=store_id,
        item_id=item_id,
        quantity=qty,
        expiration_date=expiration_date,
        received_date=utcnow(),
        batch_number=batch_number,
        status=LOT_STATUS_AVAILABLE,
        priority_score=compute_priority(expiration_date).score,
    )
    db.session.add(lot)
    db.session.flush()
    return lot, False


def find_fifo_source(store_id: int, item_id: int, *, lock: bool = False) -> InventoryLot | None:
    """Earliest-expiring available, non-empty lot of an item at a store."""
    query = (
        db.session.query(InventoryLot)
        .filter(InventoryLot.store_id == store_id, InventoryLot.item_id == item_id, _active_filter())
        .order_by(*_fifo_order())
    )
    if lock:
        query = lock_for_update(query)
    return query.first()


# ---------------------------------------------------------------------------
# Sale
# ---------------------------------------------------------------------------

def mark_sold(lot_id: int, performed_by: int | None = None) -> InventoryLot:
    """
    Close a lot as sold: quantity forced to 0, status 'sold', sold_at set.

    Already-sold lots are rejected. A transferred (drained) lot may still be
    marked sold.
    """
    def _op():
        lot = _load_lot(lot_id, lock=True)
        if lot.status == LOT_STATUS_SOLD:
            raise InvalidStatusTransitionError(f"Lot {lot_id} is already sold")
        if performed_by is not None:
            resolve_staff(performed_by)

        before = lot.quantity
        lot.quantity = Decimal("0")
        lot.status = LOT_STATUS_SOLD
        lot.sold_at = utcnow()
        db.session.flush()

        append_activity(
            store_id=lot.store_id,
            lot_id=lot.id,
            action_type=ACTION_SOLD,
            quantity_before=before,
            quantity_after=lot.quantity,
            performed_by_staff_id=performed_by,
            occurred_at=lot.sold_at,
        )

        db.session.commit()
        logger.info("Lot %s marked sold (had %s)", lot.id, before)
        return lot

    return run_with_retry(_op)


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------

def _iter_fifo(store_id: int, as_of: date | None, batch_size: int) -> Iterator[InventoryLot]:
    query = (
        db.session.query(InventoryLot)
        .filter(InventoryLot.store_id == store_id, _active_filter())
        .order_by(*_fifo_order())
    )
    yield from query.yield_per(batch_size)


def recommend_fifo_order(store_id: int, as_of: date | None = None, *, batch_size: int = 200) -> Iterator[InventoryLot]:
    """
    Available lots at a store in the order they should be used or moved.

    Returns a lazy iterator; calling again issues a fresh query. The store
    is resolved eagerly so a bad id fails here, not on first iteration.
    Lots come back as stored; render them with to_dict(as_of) for scores
    relative to a given day.
    """
    resolve_store(store_id, require_active=False)
    return _iter_fifo(store_id, as_of, batch_size)


def list_active(store_id: int | None = None) -> list[InventoryLot]:
    query = db.session.query(InventoryLot).filter(_active_filter())
    if store_id is not None:
        query = query.filter(InventoryLot.store_id == store_id)
    return query.order_by(*_fifo_order()).all()


def list_archived(store_id: int | None = None) -> list[InventoryLot]:
    """Closed lots: transferred, sold, or available but drained to zero."""
    query = db.session.query(InventoryLot).filter(
        or_(
            InventoryLot.status.in_((LOT_STATUS_TRANSFERRED, LOT_STATUS_SOLD)),
            and_(InventoryLot.status == LOT_STATUS_AVAILABLE, InventoryLot.quantity <= 0),
        )
    )
    if store_id is not None:
        query = query.filter(InventoryLot.store_id == store_id)
    return query.order_by(InventoryLot.updated_at.desc(), InventoryLot.id.desc()).all()


def list_expiring(
    store_id: int | None = None, within_days: int = 30, as_of: date | None = None
) -> list[InventoryLot]:
    """Active lots expiring on or before as_of + within_days (expired ones included), most urgent first."""
    if within_days < 0:
        raise ValidationError("within_days must be >= 0")
    cutoff = (as_of or today()) + timedelta(days=within_days)
    query = db.session.query(InventoryLot).filter(_active_filter(), InventoryLot.expiration_date <= cutoff)
    if store_id is not None:
        query = query.filter(InventoryLot.store_id == store_id)
    return query.order_by(*_fifo_order()).all()


def list_changed_since(since: datetime, store_id: int | None = None) -> list[InventoryLot]:
    """Lots updated after `since`, oldest change first (polling clients)."""
    query = db.session.query(InventoryLot).filter(InventoryLot.updated_at > since)
    if store_id is not None:
        query = query.filter(InventoryLot.store_id == store_id)
    return query.order_by(InventoryLot.updated_at.asc(), InventoryLot.id.asc()).all()


def refresh_priority_scores(as_of: date | None = None) -> int:
    """Recompute the cached score on active lots; returns how many changed."""
    def _op():
        updated = 0
        lots = db.session.query(InventoryLot).filter(_active_filter()).populate_existing().all()
        for lot in lots:
            score = compute_priority(lot.expiration_date, as_of).score
            if lot.priority_score != score:
                lot.priority_score = score
                updated += 1
        db.session.commit()
        return updated

    updated = run_with_retry(_op)
    logger.info("Refreshed priority scores on %s lots", updated)
    return updated
