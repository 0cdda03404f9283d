# backend/fifo_ledger/routes/activity.py
"""
Activity feed routes (read-only; entries are written by ledger operations).
"""
from flask import Blueprint, request

from ..decorators import json_errors
from ..errors import ValidationError
from ..services import activity_service
from ..time_utils import parse_iso_datetime
from ..validation import coerce_id


activity_bp = Blueprint("activity", __name__, url_prefix="/api/activity")


@activity_bp.get("")
@json_errors
def recent_activity_route():
    """Newest entries first, bounded by ACTIVITY_FEED_MAX_LIMIT."""
    store_id = coerce_id(request.args.get("store_id"), "store_id")
    limit = coerce_id(request.args.get("limit"), "limit")
    entries = activity_service.recent_activity(store_id=store_id, limit=limit)
    return {"entries": [e.to_dict() for e in entries]}


@activity_bp.get("/all")
@json_errors
def all_activity_route():
    """Every entry (optionally since a timestamp) for reconciliation exports."""
    store_id = coerce_id(request.args.get("store_id"), "store_id")
    raw_since = request.args.get("since")
    try:
        since = parse_iso_datetime(raw_since) if raw_since else None
    except ValueError:
        raise ValidationError("since must be an ISO-8601 datetime")

    entries = activity_service.iter_activity(store_id=store_id, since=since)
    return {"entries": [e.to_dict() for e in entries]}
