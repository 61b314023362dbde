# Overview: Flask API routes for the location graph; parses input and returns JSON responses.

"""
Location routes.

STORE locations are not created here; they come with their store
(see routes/stores.py).
"""
from flask import Blueprint, g, request

from ..decorators import require_auth, require_permission
from ..models import Location
from ..services import location_service
from ..validation import ModelValidationPolicy, ValidationError, validate_payload
from .errors import DOMAIN_ERRORS, error_response

LOCATION_POLICY = ModelValidationPolicy(
    writable_fields={"name", "kind", "parent_id"},
    required_on_create={"name", "kind"},
)

locations_bp = Blueprint("locations", __name__, url_prefix="/api/locations")


def _parse_active(payload: dict) -> bool:
    active = payload.get("is_active")
    if not isinstance(active, bool):
        raise ValidationError("is_active must be true or false")
    return active


@locations_bp.get("")
@require_auth
@require_permission("VIEW_INVENTORY")
def list_locations_route():
    """
    Query params:
    - kind: repeatable, filter by location kind
    - include_inactive: "1" to include deactivated locations
    """
    kinds = request.args.getlist("kind") or None
    include_inactive = request.args.get("include_inactive") == "1"
    try:
        locations = location_service.list_locations(kinds=kinds, include_inactive=include_inactive)
    except DOMAIN_ERRORS as e:
        return error_response(e)
    return {"items": [loc.to_dict() for loc in locations]}


@locations_bp.post("")
@require_auth
@require_permission("MANAGE_CATALOG")
def create_location_route():
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Location, payload=payload, policy=LOCATION_POLICY, partial=False)
        location = location_service.create_location(
            g.actor,
            name=patch["name"],
            kind=patch["kind"].upper(),
            parent_id=patch.get("parent_id"),
        )
    except DOMAIN_ERRORS as e:
        return error_response(e)
    return location.to_dict(), 201


@locations_bp.post("/<int:location_id>/active")
@require_auth
@require_permission("MANAGE_CATALOG")
def set_location_active_route(location_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        location = location_service.set_location_active(g.actor, location_id, _parse_active(payload))
    except DOMAIN_ERRORS as e:
        return error_response(e)
    return location.to_dict()
