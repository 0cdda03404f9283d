# Overview: Service-layer operations for store-to-store transfers; one atomic unit of work per transfer.

from __future__ import annotations

import logging
from decimal import Decimal

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError

from ..errors import InsufficientQuantityError, NotFoundError, SameStoreTransferError, ValidationError
from ..extensions import db
from ..models import Transfer
from ..models.inventory import ACTION_TRANSFERRED, TRANSFER_STATUS_COMPLETED
from ..time_utils import to_iso_date
from ..validation import coerce_key, coerce_quantity
from . import ledger_service
from .activity_service import append_activity
from .catalog_service import resolve_item, resolve_staff, resolve_store
from .concurrency import run_with_retry
"""
Transfer Invariants (authoritative)

- A transfer moves stock out of exactly one source lot: the earliest-expiring
  available lot of the item at the source store. Callers never pick the lot.
- Source decrement, destination create/merge, the Transfer row and the
  activity entry commit together or not at all.
- Quantity is conserved: the source loses exactly what the destination gains.
- Transfers are immutable and always 'completed'.
- A retried request with the same idempotency_key returns the first
  transfer; the same key with different parameters is rejected.
"""

logger = logging.getLogger(__name__)


def _replay_transfer(existing: Transfer, *, item_id, from_store_id, to_store_id, quantity) -> Transfer:
    same = (
        existing.item_id == item_id
        and existing.from_store_id == from_store_id
        and existing.to_store_id == to_store_id
        and existing.quantity == quantity
    )
    if not same:
        raise ValidationError("idempotency_key was already used for a different transfer")
    logger.info("Transfer replayed for idempotency key %s (transfer %s)", existing.idempotency_key, existing.id)
    return existing


def _find_by_key(key: str) -> Transfer | None:
    return db.session.query(Transfer).filter_by(idempotency_key=key).first()


def transfer(
    item_id: int,
    from_store_id: int,
    to_store_id: int,
    quantity,
    performed_by: int,
    notes: str | None = None,
    idempotency_key: str | None = None,
) -> Transfer:
    """
    Move `quantity` of an item from one store to another.

    The source is the FIFO head at the source store (earliest expiration,
    then earliest received). The destination merges into an available lot
    with the same expiration date or gets a new lot with the source batch.
    """
    qty = coerce_quantity(quantity)
    if qty <= 0:
        raise ValidationError("quantity must be > 0 to transfer stock")
    if from_store_id == to_store_id:
        raise SameStoreTransferError()
    key = coerce_key(idempotency_key)

    def _op():
        if key is not None:
            existing = _find_by_key(key)
            if existing is not None:
                return _replay_transfer(
                    existing,
                    item_id=item_id,
                    from_store_id=from_store_id,
                    to_store_id=to_store_id,
                    quantity=qty,
                )

        resolve_store(from_store_id)
        resolve_store(to_store_id)
        resolve_item(item_id)
        resolve_staff(performed_by)

        source = ledger_service.find_fifo_source(from_store_id, item_id, lock=True)
        if source is None:
            raise InsufficientQuantityError(
                available=Decimal("0"),
                requested=qty,
                message=f"No available stock of item {item_id} at store {from_store_id}",
            )
        if qty > source.quantity:
            raise InsufficientQuantityError(available=source.quantity, requested=qty)

        before = source.quantity
        remaining, _status = ledger_service.decrement_for_transfer(source.id, qty)

        destination, merged = ledger_service.create_or_merge_at_destination(
            to_store_id,
            item_id,
            qty,
            source.expiration_date,
            source.batch_number,
        )

        record = Transfer(
            source_lot_id=source.id,
            destination_lot_id=destination.id,
            item_id=item_id,
            from_store_id=from_store_id,
            to_store_id=to_store_id,
            quantity=qty,
            batch_number=source.batch_number,
            expiration_date=source.expiration_date,
            performed_by_staff_id=performed_by,
            notes=notes,
            status=TRANSFER_STATUS_COMPLETED,
            idempotency_key=key,
        )
        db.session.add(record)
        db.session.flush()

        append_activity(
            store_id=from_store_id,
            lot_id=source.id,
            action_type=ACTION_TRANSFERRED,
            quantity_before=before,
            quantity_after=remaining,
            performed_by_staff_id=performed_by,
            transfer_id=record.id,
            detail={
                "to_store_id": to_store_id,
                "destination_lot_id": destination.id,
                "merged": merged,
                "batch_number": source.batch_number,
                "expiration_date": to_iso_date(source.expiration_date),
            },
            occurred_at=record.created_at,
        )

        db.session.commit()
        logger.info(
            "Transfer %s: item=%s qty=%s store %s -> %s (lot %s -> lot %s, merged=%s)",
            record.id, item_id, qty, from_store_id, to_store_id, source.id, destination.id, merged,
        )
        return record

    try:
        return run_with_retry(_op)
    except IntegrityError:
        if key is None:
            raise
        existing = _find_by_key(key)
        if existing is None:
            raise
        return _replay_transfer(
            existing, item_id=item_id, from_store_id=from_store_id, to_store_id=to_store_id, quantity=qty
        )


def get_transfer(transfer_id: int) -> Transfer:
    record = db.session.get(Transfer, transfer_id)
    if record is None:
        raise NotFoundError(f"Transfer {transfer_id} not found")
    return record


def list_transfers(store_id: int | None = None, limit: int = 100) -> list[Transfer]:
    """Transfers touching a store (either side), newest first."""
    query = db.session.query(Transfer)
    if store_id is not None:
        query = query.filter(or_(Transfer.from_store_id == store_id, Transfer.to_store_id == store_id))
    limit = max(1, min(int(limit), 1000))
    return query.order_by(Transfer.created_at.desc(), Transfer.id.desc()).limit(limit).all()
