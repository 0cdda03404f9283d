# backend/fifo_ledger/routes/transfers.py
"""
Inter-store transfer API routes.
"""
from flask import Blueprint, request

from ..decorators import json_errors
from ..models import Transfer
from ..services import transfer_service
from ..validation import ModelValidationPolicy, coerce_id, enforce_rules_transfer, validate_payload


transfers_bp = Blueprint("transfers", __name__, url_prefix="/api/transfers")

TRANSFER_POLICY = ModelValidationPolicy(
    writable_fields={
        "item_id",
        "from_store_id",
        "to_store_id",
        "quantity",
        "performed_by_staff_id",
        "notes",
        "idempotency_key",
    },
    required_on_create={"item_id", "from_store_id", "to_store_id", "quantity", "performed_by_staff_id"},
)


@transfers_bp.route("", methods=["POST"])
@json_errors
def create_transfer():
    """
    Move stock between stores (FIFO source, atomic).

    Request body:
    {
        "item_id": int,
        "from_store_id": int,
        "to_store_id": int,
        "quantity": number | decimal string,
        "performed_by_staff_id": int,
        "notes": str (optional),
        "idempotency_key": str (optional)
    }

    Returns:
        201: Transfer completed
        400: Invalid request / same store
        404: Store, item or staff not found
        409: Insufficient quantity or concurrent modification
        503: Database unavailable
    """
    payload = request.get_json(silent=True) or {}

    patch = validate_payload(model=Transfer, payload=payload, policy=TRANSFER_POLICY, partial=False)
    enforce_rules_transfer(patch)

    transfer = transfer_service.transfer(
        patch["item_id"],
        patch["from_store_id"],
        patch["to_store_id"],
        patch["quantity"],
        patch["performed_by_staff_id"],
        notes=patch.get("notes"),
        idempotency_key=patch.get("idempotency_key"),
    )
    return {"transfer": transfer.to_dict()}, 201


@transfers_bp.route("", methods=["GET"])
@json_errors
def list_transfers():
    store_id = coerce_id(request.args.get("store_id"), "store_id")
    limit = coerce_id(request.args.get("limit"), "limit") or 100
    transfers = transfer_service.list_transfers(store_id=store_id, limit=limit)
    return {"transfers": [t.to_dict() for t in transfers]}


@transfers_bp.route("/<int:transfer_id>", methods=["GET"])
@json_errors
def get_transfer(transfer_id: int):
    return {"transfer": transfer_service.get_transfer(transfer_id).to_dict()}
