# Overview: Flask API routes for vendors operations; parses input and returns JSON responses.

from flask import Blueprint, g, request

from ..decorators import require_auth, require_permission
from ..models import Vendor
from ..services import vendor_service
from ..validation import ModelValidationPolicy, validate_payload
from .errors import DOMAIN_ERRORS, error_response
from .locations import _parse_active

VENDOR_POLICY = ModelValidationPolicy(
    writable_fields={"name", "contact_name", "contact_phone", "contact_email", "notes"},
    required_on_create={"name"},
)

vendors_bp = Blueprint("vendors", __name__, url_prefix="/api/vendors")


@vendors_bp.get("")
@require_auth
@require_permission("VIEW_CATALOG")
def list_vendors_route():
    include_inactive = request.args.get("include_inactive") == "1"
    vendors = vendor_service.list_vendors(include_inactive=include_inactive)
    return {"items": [v.to_dict() for v in vendors]}


@vendors_bp.post("")
@require_auth
@require_permission("MANAGE_CATALOG")
def create_vendor_route():
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Vendor, payload=payload, policy=VENDOR_POLICY, partial=False)
        vendor = vendor_service.create_vendor(g.actor, **patch)
    except DOMAIN_ERRORS as e:
        return error_response(e)
    return vendor.to_dict(), 201


@vendors_bp.put("/<int:vendor_id>")
@require_auth
@require_permission("MANAGE_CATALOG")
def update_vendor_route(vendor_id: int):
    """Full replace of vendor contact fields."""
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Vendor, payload=payload, policy=VENDOR_POLICY, partial=False)
        vendor = vendor_service.update_vendor(g.actor, vendor_id, **patch)
    except DOMAIN_ERRORS as e:
        return error_response(e)
    return vendor.to_dict()


@vendors_bp.post("/<int:vendor_id>/active")
@require_auth
@require_permission("MANAGE_CATALOG")
def set_vendor_active_route(vendor_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        vendor = vendor_service.set_vendor_active(g.actor, vendor_id, _parse_active(payload))
    except DOMAIN_ERRORS as e:
        return error_response(e)
    return vendor.to_dict()
