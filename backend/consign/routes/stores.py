# Overview: Flask API routes for stores operations; parses input and returns JSON responses.

# backend/consign/routes/stores.py
"""
Store routes: store lifecycle, physical counts, payments, balances and
per-store price overrides.

Every store owns one STORE location, created and (de)activated with it.
"""
from flask import Blueprint, g, request

from ..decorators import require_auth, require_permission
from ..models import Store, StorePayment
from ..services import location_service, payment_service, products_service, reconciliation_service
from ..validation import ModelValidationPolicy, ValidationError, validate_payload
from .errors import DOMAIN_ERRORS, error_response
from .locations import _parse_active

STORE_POLICY = ModelValidationPolicy(
    writable_fields={"name", "contact_name", "contact_phone", "address"},
    required_on_create={"name"},
)

PAYMENT_POLICY = ModelValidationPolicy(
    writable_fields={"amount_cents", "payment_date", "method", "notes"},
    required_on_create={"amount_cents", "payment_date"},
)

stores_bp = Blueprint("stores", __name__, url_prefix="/api/stores")


def _balance_json(balance: dict) -> dict:
    return {
        "store_id": balance["store_id"],
        "total_owed": str(balance["total_owed"]),
        "total_paid": str(balance["total_paid"]),
        "balance": str(balance["balance"]),
        "total_owed_cents": balance["total_owed_cents"],
        "total_paid_cents": balance["total_paid_cents"],
        "balance_cents": balance["balance_cents"],
    }


@stores_bp.get("")
@require_auth
@require_permission("VIEW_STORES")
def list_stores_route():
    include_inactive = request.args.get("include_inactive") == "1"
    stores = location_service.list_stores(include_inactive=include_inactive)
    return {"items": [s.to_dict() for s in stores]}


@stores_bp.post("")
@require_auth
@require_permission("MANAGE_STORES")
def create_store_route():
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Store, payload=payload, policy=STORE_POLICY, partial=False)
        store = location_service.create_store(g.actor, **patch)
    except DOMAIN_ERRORS as e:
        return error_response(e)
    return store.to_dict(), 201


@stores_bp.patch("/<int:store_id>")
@require_auth
@require_permission("MANAGE_STORES")
def update_store_route(store_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Store, payload=payload, policy=STORE_POLICY, partial=True)
        store = location_service.update_store(g.actor, store_id, **patch)
    except DOMAIN_ERRORS as e:
        return error_response(e)
    return store.to_dict()


@stores_bp.post("/<int:store_id>/active")
@require_auth
@require_permission("MANAGE_STORES")
def set_store_active_route(store_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        store = location_service.set_store_active(g.actor, store_id, _parse_active(payload))
    except DOMAIN_ERRORS as e:
        return error_response(e)
    return store.to_dict()


# =============================================================================
# COUNTS
# =============================================================================

@stores_bp.get("/<int:store_id>/count-sheet")
@require_auth
@require_permission("VIEW_STORES")
def count_sheet_route(store_id: int):
    try:
        return reconciliation_service.get_count_sheet(store_id)
    except DOMAIN_ERRORS as e:
        return error_response(e)


@stores_bp.get("/<int:store_id>/counts")
@require_auth
@require_permission("VIEW_STORES")
def list_counts_route(store_id: int):
    product_id = request.args.get("product_id", type=int)
    try:
        counts = reconciliation_service.list_store_counts(store_id, product_id=product_id)
    except DOMAIN_ERRORS as e:
        return error_response(e)
    return {"items": [c.to_dict() for c in counts]}


@stores_bp.post("/<int:store_id>/counts")
@require_auth
@require_permission("SUBMIT_STORE_COUNT")
def submit_count_route(store_id: int):
    """
    Body: {"count_date": "YYYY-MM-DD", "entries": [{"product_id": 1, "boxes_remaining": 5}]}

    Responds with one result per entry; anomalies are reported, not rejected.
    """
    payload = request.get_json(silent=True) or {}
    try:
        if set(payload) - {"count_date", "entries"}:
            raise ValidationError("Only count_date and entries are allowed")
        results = reconciliation_service.submit_store_count(
            g.actor,
            store_id=store_id,
            count_date=payload.get("count_date"),
            entries=payload.get("entries"),
        )
    except DOMAIN_ERRORS as e:
        return error_response(e)

    return {
        "results": [dict(r, amount_owed=str(r["amount_owed"])) for r in results],
        "has_anomaly": any(r["has_anomaly"] for r in results),
    }, 201


# =============================================================================
# PAYMENTS AND BALANCE
# =============================================================================

@stores_bp.get("/<int:store_id>/payments")
@require_auth
@require_permission("VIEW_STORES")
def list_payments_route(store_id: int):
    try:
        payments = payment_service.list_payments(store_id)
    except DOMAIN_ERRORS as e:
        return error_response(e)
    return {"items": [p.to_dict() for p in payments]}


@stores_bp.post("/<int:store_id>/payments")
@require_auth
@require_permission("RECORD_PAYMENT")
def record_payment_route(store_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=StorePayment, payload=payload, policy=PAYMENT_POLICY, partial=False)
        payment = payment_service.record_payment(g.actor, store_id=store_id, **patch)
    except DOMAIN_ERRORS as e:
        return error_response(e)
    return payment.to_dict(), 201


@stores_bp.get("/<int:store_id>/balance")
@require_auth
@require_permission("VIEW_STORES")
def balance_route(store_id: int):
    try:
        balance = reconciliation_service.get_store_balance(store_id)
    except DOMAIN_ERRORS as e:
        return error_response(e)
    return _balance_json(balance)


# =============================================================================
# PRICE OVERRIDES
# =============================================================================

@stores_bp.get("/<int:store_id>/price-overrides")
@require_auth
@require_permission("VIEW_STORES")
def list_overrides_route(store_id: int):
    try:
        overrides = products_service.list_store_price_overrides(store_id)
    except DOMAIN_ERRORS as e:
        return error_response(e)
    return {"items": [o.to_dict() for o in overrides]}


@stores_bp.put("/<int:store_id>/price-overrides/<int:product_id>")
@require_auth
@require_permission("MANAGE_STORES")
def set_override_route(store_id: int, product_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        if set(payload) != {"wholesale_price_per_box_cents"}:
            raise ValidationError("Body must contain only wholesale_price_per_box_cents")
        override = products_service.set_store_price_override(
            g.actor,
            store_id=store_id,
            product_id=product_id,
            wholesale_price_per_box_cents=payload["wholesale_price_per_box_cents"],
        )
    except DOMAIN_ERRORS as e:
        return error_response(e)
    return override.to_dict()


@stores_bp.delete("/<int:store_id>/price-overrides/<int:product_id>")
@require_auth
@require_permission("MANAGE_STORES")
def clear_override_route(store_id: int, product_id: int):
    try:
        removed = products_service.clear_store_price_override(
            g.actor,
            store_id=store_id,
            product_id=product_id,
        )
    except DOMAIN_ERRORS as e:
        return error_response(e)
    if not removed:
        return {"error": "Override not found"}, 404
    return {"ok": True}
