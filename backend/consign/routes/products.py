# Overview: Flask API routes for products operations; parses input and returns JSON responses.

# backend/consign/routes/products.py
"""
Product catalog routes: products, default pricing and barcodes.

- Read operations require VIEW_CATALOG
- Write operations require MANAGE_CATALOG
"""
from decimal import Decimal

from flask import Blueprint, g, request

from ..decorators import require_auth, require_permission
from ..models import Barcode, Product
from ..services import pricing_service, products_service
from ..services.movement_rules import ACTION_LABELS, actions_for_unit
from ..validation import ModelValidationPolicy, ValidationError, validate_payload
from .errors import DOMAIN_ERRORS, error_response
from .locations import _parse_active

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={"sku", "name", "variant", "notes", "packs_per_box"},
    required_on_create={"sku", "name", "packs_per_box"},
)

PRODUCT_UPDATE_POLICY = ModelValidationPolicy(
    writable_fields={"name", "variant", "notes"},
)

BARCODE_POLICY = ModelValidationPolicy(
    writable_fields={"value", "unit_type", "symbology", "label"},
    required_on_create={"value", "unit_type"},
)

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


def _pricing_json(pricing: dict | None) -> dict | None:
    if pricing is None:
        return None
    return {key: (str(value) if isinstance(value, Decimal) else value) for key, value in pricing.items()}


@products_bp.get("")
@require_auth
@require_permission("VIEW_CATALOG")
def list_products_route():
    """
    Query params:
    - q: substring match on name or SKU
    - include_inactive: "1" to include deactivated products
    """
    products = products_service.list_products(
        include_inactive=request.args.get("include_inactive") == "1",
        search=request.args.get("q"),
    )
    return {"items": [p.to_dict() for p in products]}


@products_bp.post("")
@require_auth
@require_permission("MANAGE_CATALOG")
def create_product_route():
    """Body: product fields plus an optional "pricing" object (cents)."""
    payload = dict(request.get_json(silent=True) or {})
    pricing = payload.pop("pricing", None)
    try:
        if pricing is not None and not isinstance(pricing, dict):
            raise ValidationError("pricing must be an object")
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
        product = products_service.create_product(g.actor, pricing=pricing, **patch)
    except DOMAIN_ERRORS as e:
        return error_response(e)
    return product.to_dict(), 201


@products_bp.patch("/<int:product_id>")
@require_auth
@require_permission("MANAGE_CATALOG")
def update_product_route(product_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_UPDATE_POLICY, partial=True)
        product = products_service.update_product(g.actor, product_id, **patch)
    except DOMAIN_ERRORS as e:
        return error_response(e)
    return product.to_dict()


@products_bp.post("/<int:product_id>/active")
@require_auth
@require_permission("MANAGE_CATALOG")
def set_product_active_route(product_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        product = products_service.set_product_active(g.actor, product_id, _parse_active(payload))
    except DOMAIN_ERRORS as e:
        return error_response(e)
    return product.to_dict()


@products_bp.get("/<int:product_id>/pricing")
@require_auth
@require_permission("VIEW_CATALOG")
def get_pricing_route(product_id: int):
    try:
        pricing = pricing_service.get_product_pricing(product_id)
    except DOMAIN_ERRORS as e:
        return error_response(e)
    if pricing is None:
        return {"error": "No pricing configured"}, 404
    return _pricing_json(pricing)


@products_bp.put("/<int:product_id>/pricing")
@require_auth
@require_permission("MANAGE_CATALOG")
def set_pricing_route(product_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        row = products_service.set_product_pricing(g.actor, product_id, payload)
    except DOMAIN_ERRORS as e:
        return error_response(e)
    return row.to_dict()


@products_bp.post("/<int:product_id>/barcodes")
@require_auth
@require_permission("MANAGE_CATALOG")
def register_barcode_route(product_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Barcode, payload=payload, policy=BARCODE_POLICY, partial=False)
        barcode = products_service.register_barcode(
            g.actor,
            product_id=product_id,
            value=patch["value"],
            unit_type=patch["unit_type"].upper(),
            symbology=patch.get("symbology"),
            label=patch.get("label"),
        )
    except DOMAIN_ERRORS as e:
        return error_response(e)
    return barcode.to_dict(), 201


@products_bp.get("/barcodes/<path:value>")
@require_auth
@require_permission("VIEW_CATALOG")
def lookup_barcode_route(value: str):
    """Scan flow: product, unit type, pricing and the actions offered for the unit."""
    found = products_service.lookup_barcode(value)
    if found is None:
        return {"error": "Barcode not registered"}, 404
    found["actions"] = [
        {"action": action, "label": ACTION_LABELS[action]}
        for action in actions_for_unit(found["unit_type"])
    ]
    return found
