# backend/fifo_ledger/routes/lots.py
"""
Inventory lot routes: receive, sell, listings and FIFO recommendations.

Time semantics:
- expiration_date is a calendar date (YYYY-MM-DD).
- `since` accepts ISO-8601 datetimes with Z/offsets; normalized to UTC-naive.
- Responses serialize datetimes as ISO-8601 'Z' strings, quantities as decimal strings.
"""
from flask import Blueprint, current_app, request

from ..decorators import json_errors
from ..errors import ValidationError
from ..models import InventoryLot
from ..services import ledger_service
from ..time_utils import parse_iso_datetime, to_iso_date, today
from ..validation import (
    ModelValidationPolicy,
    coerce_date,
    coerce_id,
    enforce_rules_receive,
    validate_payload,
)


lots_bp = Blueprint("lots", __name__, url_prefix="/api/lots")

LOT_RECEIVE_POLICY = ModelValidationPolicy(
    writable_fields={"store_id", "item_id", "quantity", "expiration_date", "batch_number", "notes"},
    required_on_create={"store_id", "item_id", "quantity", "expiration_date"},
    extra_fields={"idempotency_key"},
)


def _as_of_arg():
    raw = request.args.get("as_of")
    return coerce_date(raw, "as_of") if raw else None


@lots_bp.post("/receive")
@json_errors
def receive_route():
    """
    Receive a delivery as a new lot.

    Request body:
    {
        "store_id": int,
        "item_id": int,
        "quantity": number | decimal string,
        "expiration_date": "YYYY-MM-DD",
        "batch_number": str (optional, generated when absent),
        "notes": str (optional),
        "performed_by_staff_id": int (optional),
        "idempotency_key": str (optional)
    }
    """
    payload = request.get_json(silent=True) or {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    payload = dict(payload)
    staff_id = coerce_id(payload.pop("performed_by_staff_id", None), "performed_by_staff_id")

    patch = validate_payload(model=InventoryLot, payload=payload, policy=LOT_RECEIVE_POLICY, partial=False)
    enforce_rules_receive(patch)

    lot = ledger_service.receive(
        patch["store_id"],
        patch["item_id"],
        patch["quantity"],
        patch["expiration_date"],
        batch_number=patch.get("batch_number"),
        notes=patch.get("notes"),
        performed_by=staff_id,
        idempotency_key=patch.get("idempotency_key"),
    )
    return {"lot": lot.to_dict()}, 201


@lots_bp.post("/<int:lot_id>/sell")
@json_errors
def sell_route(lot_id: int):
    payload = request.get_json(silent=True) or {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    staff_id = coerce_id(payload.get("performed_by_staff_id"), "performed_by_staff_id")
    lot = ledger_service.mark_sold(lot_id, performed_by=staff_id)
    return {"lot": lot.to_dict()}


@lots_bp.get("/<int:lot_id>")
@json_errors
def get_lot_route(lot_id: int):
    return {"lot": ledger_service.get_lot(lot_id).to_dict(_as_of_arg())}


@lots_bp.get("")
@json_errors
def list_lots_route():
    """Active (default) or archived lots, optionally for one store."""
    store_id = coerce_id(request.args.get("store_id"), "store_id")
    status = (request.args.get("status") or "active").strip().lower()

    if status == "active":
        lots = ledger_service.list_active(store_id)
    elif status == "archived":
        lots = ledger_service.list_archived(store_id)
    else:
        raise ValidationError("status must be 'active' or 'archived'")

    as_of = _as_of_arg()
    return {"status": status, "lots": [lot.to_dict(as_of) for lot in lots]}


@lots_bp.get("/recommendations")
@json_errors
def recommendations_route():
    """FIFO order for a store: what to use or move first."""
    store_id = coerce_id(request.args.get("store_id"), "store_id")
    if store_id is None:
        raise ValidationError("store_id is required")

    as_of = _as_of_arg()
    lots = ledger_service.recommend_fifo_order(store_id, as_of=as_of)
    return {
        "store_id": store_id,
        "as_of": to_iso_date(as_of or today()),
        "lots": [lot.to_dict(as_of) for lot in lots],
    }


@lots_bp.get("/expiring")
@json_errors
def expiring_route():
    store_id = coerce_id(request.args.get("store_id"), "store_id")
    within_days = coerce_id(request.args.get("within_days"), "within_days")
    if within_days is None:
        within_days = current_app.config.get("EXPIRING_WITHIN_DAYS", 30)

    as_of = _as_of_arg()
    lots = ledger_service.list_expiring(store_id, within_days=within_days, as_of=as_of)
    return {"within_days": within_days, "lots": [lot.to_dict(as_of) for lot in lots]}


@lots_bp.get("/changes")
@json_errors
def changes_route():
    """Lots modified after `since` (polling replacement for push updates)."""
    raw = request.args.get("since")
    if not raw:
        raise ValidationError("since is required")
    try:
        since = parse_iso_datetime(raw)
    except ValueError:
        raise ValidationError("since must be an ISO-8601 datetime")

    store_id = coerce_id(request.args.get("store_id"), "store_id")
    lots = ledger_service.list_changed_since(since, store_id=store_id)
    return {"lots": [lot.to_dict() for lot in lots]}
