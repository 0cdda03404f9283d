# Overview: Append-only inventory activity log; writes and feed queries.

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Iterator, Optional

from flask import current_app

from ..errors import ValidationError
from ..extensions import db
from ..models import ActivityLogEntry
from ..models.inventory import ACTION_TYPES
from ..time_utils import utcnow
"""
Activity Log Invariants (authoritative)

- Append-only: no update or delete path exists (the model refuses both).
- Exactly one entry per ledger mutation (received, transferred, sold).
- Entries are written inside the same DB transaction as the mutation they
  record, so an entry exists if and only if its mutation committed.
- Feeds are ordered newest first (created_at desc, id desc).
"""


def append_activity(
    *,
    store_id: int,
    action_type: str,
    lot_id: int | None = None,
    quantity_before: Decimal | None = None,
    quantity_after: Decimal | None = None,
    performed_by_staff_id: int | None = None,
    transfer_id: int | None = None,
    idempotency_key: str | None = None,
    detail: Optional[dict] = None,
    occurred_at: Optional[datetime] = None,
) -> ActivityLogEntry:
    """
    Append one activity entry.

    - No domain logic here.
    - Flushes but never commits; the caller owns the transaction.
    """
    if action_type not in ACTION_TYPES:
        raise ValidationError(f"Unknown activity action_type: {action_type}")

    entry = ActivityLogEntry(
        store_id=store_id,
        lot_id=lot_id,
        action_type=action_type,
        quantity_before=quantity_before,
        quantity_after=quantity_after,
        performed_by_staff_id=performed_by_staff_id,
        transfer_id=transfer_id,
        idempotency_key=idempotency_key,
        detail=detail,
        created_at=occurred_at or utcnow(),
    )
    db.session.add(entry)
    db.session.flush()  # ensures entry.id is assigned without committing
    return entry


def find_by_idempotency_key(idempotency_key: str) -> ActivityLogEntry | None:
    return db.session.query(ActivityLogEntry).filter_by(idempotency_key=idempotency_key).first()


def _feed_query(store_id: int | None = None, since: datetime | None = None):
    q = db.session.query(ActivityLogEntry)
    if store_id is not None:
        q = q.filter(ActivityLogEntry.store_id == store_id)
    if since is not None:
        q = q.filter(ActivityLogEntry.created_at >= since)
    return q.order_by(ActivityLogEntry.created_at.desc(), ActivityLogEntry.id.desc())


def recent_activity(*, store_id: int | None = None, limit: int | None = None) -> list[ActivityLogEntry]:
    """Most recent entries for the dashboard feed (bounded window)."""
    if limit is None:
        limit = current_app.config.get("ACTIVITY_FEED_LIMIT", 50)
    max_limit = current_app.config.get("ACTIVITY_FEED_MAX_LIMIT", 500)
    limit = max(1, min(int(limit), max_limit))
    return _feed_query(store_id).limit(limit).all()


def iter_activity(
    *, store_id: int | None = None, since: datetime | None = None, batch_size: int = 500
) -> Iterator[ActivityLogEntry]:
    """Every entry, newest first, streamed in batches (reconciliation / export)."""
    yield from _feed_query(store_id, since).yield_per(batch_size)
