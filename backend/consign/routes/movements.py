# Overview: Flask API routes for the movement ledger; parses input and returns JSON responses.

# backend/consign/routes/movements.py
"""
Movement ledger routes.

Each write endpoint maps to one service entry point; the service does the
location-kind and on-hand checks. Reversal is the only way to undo a row.
"""
from flask import Blueprint, g, request

from ..decorators import require_auth, require_permission
from ..models import Movement, MovementAction
from ..services import ledger_service, movement_service, reversal_service
from ..services.movement_rules import ACTION_LABELS, actions_for_unit
from ..validation import ModelValidationPolicy, ValidationError, validate_payload
from .errors import DOMAIN_ERRORS, error_response

_COMMON = {"product_id", "quantity", "notes", "barcode_scanned", "performed_at"}

MOVEMENT_POLICY = ModelValidationPolicy(
    writable_fields=_COMMON | {
        "action", "unit_type", "from_location_id", "to_location_id", "vendor_id",
        "cost_per_box_cents", "price_snapshot_cents", "adjustment_reason",
    },
    required_on_create={"action", "product_id", "unit_type", "quantity"},
)

RECEIVE_POLICY = ModelValidationPolicy(
    writable_fields=_COMMON | {"to_location_id", "vendor_id", "cost_per_box_cents"},
    required_on_create={"product_id", "quantity", "to_location_id", "vendor_id", "cost_per_box_cents"},
)

TRANSFER_POLICY = ModelValidationPolicy(
    writable_fields=_COMMON | {"action", "unit_type", "from_location_id", "to_location_id"},
    required_on_create={"action", "product_id", "unit_type", "quantity", "from_location_id", "to_location_id"},
)

SALE_POLICY = ModelValidationPolicy(
    writable_fields=_COMMON | {"unit_type", "from_location_id", "price_per_unit_cents"},
    required_on_create={"product_id", "unit_type", "quantity", "from_location_id", "price_per_unit_cents"},
    extra_fields={"price_per_unit_cents": "int"},
)

ADJUSTMENT_POLICY = ModelValidationPolicy(
    writable_fields={"product_id", "unit_type", "quantity", "direction", "location_id", "reason", "notes",
                     "performed_at"},
    required_on_create={"product_id", "unit_type", "quantity", "direction", "location_id", "reason"},
    extra_fields={"direction": "str", "location_id": "int", "reason": "str"},
)

CONVERT_POLICY = ModelValidationPolicy(
    writable_fields={"product_id", "box_quantity", "location_id", "barcode_scanned", "performed_at"},
    required_on_create={"product_id", "box_quantity", "location_id"},
    extra_fields={"box_quantity": "int", "location_id": "int"},
)

REVERSE_POLICY = ModelValidationPolicy(
    writable_fields={"reason"},
    required_on_create={"reason"},
    extra_fields={"reason": "str"},
)

movements_bp = Blueprint("movements", __name__, url_prefix="/api/movements")


def _parse(policy: ModelValidationPolicy) -> dict:
    payload = request.get_json(silent=True)
    if payload is None:
        payload = {}
    patch = validate_payload(model=Movement, payload=payload, policy=policy, partial=False)
    for key in ("action", "unit_type", "direction"):
        if isinstance(patch.get(key), str):
            patch[key] = patch[key].upper()
    return patch


@movements_bp.get("")
@require_auth
@require_permission("VIEW_INVENTORY")
def list_movements_route():
    """
    History, newest first, reversals included.

    Query params: action, product_id, location_id, store_id, limit (max 500), offset
    """
    action = request.args.get("action")
    if action and action not in MovementAction.ALL:
        return {"error": f"unknown action: {action}"}, 400
    rows, total = ledger_service.list_movements(
        action=action,
        product_id=request.args.get("product_id", type=int),
        location_id=request.args.get("location_id", type=int),
        store_id=request.args.get("store_id", type=int),
        limit=request.args.get("limit", default=50, type=int),
        offset=request.args.get("offset", default=0, type=int),
    )
    return {"items": [m.to_dict() for m in rows], "total": total}


@movements_bp.get("/actions")
@require_auth
@require_permission("VIEW_INVENTORY")
def actions_route():
    """Actions available for a scanned unit type (?unit_type=BOX|PACK)."""
    unit_type = (request.args.get("unit_type") or "").upper()
    try:
        actions = actions_for_unit(unit_type)
    except DOMAIN_ERRORS as e:
        return error_response(e)
    return {"items": [{"action": a, "label": ACTION_LABELS[a]} for a in actions]}


@movements_bp.post("")
@require_auth
def append_movement_route():
    """Generic append; the service checks the action-specific permission."""
    try:
        patch = _parse(MOVEMENT_POLICY)
        movement = movement_service.append_movement(g.actor, **patch)
    except DOMAIN_ERRORS as e:
        return error_response(e)
    return movement.to_dict(), 201


@movements_bp.post("/receive")
@require_auth
@require_permission("RECEIVE_INVENTORY")
def receive_route():
    try:
        patch = _parse(RECEIVE_POLICY)
        movement = movement_service.receive_inventory(g.actor, **patch)
    except DOMAIN_ERRORS as e:
        return error_response(e)
    return movement.to_dict(), 201


@movements_bp.post("/transfer")
@require_auth
@require_permission("TRANSFER_INVENTORY")
def transfer_route():
    try:
        patch = _parse(TRANSFER_POLICY)
        movement = movement_service.transfer_inventory(g.actor, **patch)
    except DOMAIN_ERRORS as e:
        return error_response(e)
    return movement.to_dict(), 201


@movements_bp.post("/sale")
@require_auth
@require_permission("RECORD_SALE")
def sale_route():
    try:
        patch = _parse(SALE_POLICY)
        movement = movement_service.record_sale(g.actor, **patch)
    except DOMAIN_ERRORS as e:
        return error_response(e)
    return dict(movement.to_dict(), total_price_cents=movement.price_snapshot_cents), 201


@movements_bp.post("/adjustment")
@require_auth
@require_permission("ADJUST_INVENTORY")
def adjustment_route():
    try:
        patch = _parse(ADJUSTMENT_POLICY)
        movement = movement_service.create_adjustment(g.actor, **patch)
    except DOMAIN_ERRORS as e:
        return error_response(e)
    return movement.to_dict(), 201


@movements_bp.post("/convert")
@require_auth
@require_permission("CONVERT_INVENTORY")
def convert_route():
    try:
        patch = _parse(CONVERT_POLICY)
        result = movement_service.convert_box_to_packs(g.actor, **patch)
    except DOMAIN_ERRORS as e:
        return error_response(e)
    return result, 201


@movements_bp.post("/<int:movement_id>/reverse")
@require_auth
@require_permission("REVERSE_MOVEMENT")
def reverse_route(movement_id: int):
    try:
        patch = _parse(REVERSE_POLICY)
        reversal = reversal_service.reverse_movement(g.actor, movement_id, patch["reason"])
    except DOMAIN_ERRORS as e:
        return error_response(e)
    return reversal.to_dict(), 201
