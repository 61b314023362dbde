# Overview: Flask API routes for inventory operations; parses input and returns JSON responses.

# backend/consign/routes/inventory.py
"""
On-hand read routes. Figures are recomputed from the ledger on every call.
"""
from flask import Blueprint, request

from ..decorators import require_auth, require_permission
from ..services import inventory_service
from ..validation import ValidationError
from .errors import DOMAIN_ERRORS, error_response

inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")


@inventory_bp.get("")
@require_auth
@require_permission("VIEW_INVENTORY")
def full_inventory_route():
    """Non-zero on-hand for every (product, active location, unit type)."""
    return {"items": inventory_service.full_inventory()}


@inventory_bp.get("/by-kind")
@require_auth
@require_permission("VIEW_INVENTORY")
def by_kind_route():
    return {"items": inventory_service.inventory_by_location_kind()}


@inventory_bp.get("/on-hand")
@require_auth
@require_permission("VIEW_INVENTORY")
def on_hand_route():
    """Query params: product_id, unit_type, location_id (all required)."""
    product_id = request.args.get("product_id", type=int)
    location_id = request.args.get("location_id", type=int)
    unit_type = (request.args.get("unit_type") or "").upper()
    try:
        if product_id is None or location_id is None or not unit_type:
            raise ValidationError("product_id, unit_type and location_id are required")
        quantity = inventory_service.on_hand(product_id, unit_type, location_id)
    except DOMAIN_ERRORS as e:
        return error_response(e)
    return {
        "product_id": product_id,
        "unit_type": unit_type,
        "location_id": location_id,
        "on_hand": quantity,
    }
