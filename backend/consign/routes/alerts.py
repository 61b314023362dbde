# Overview: Flask API routes for alerts operations; parses input and returns JSON responses.

# backend/consign/routes/alerts.py
"""
Alert routes.

POST /api/alerts/scan is the external timer trigger. It authenticates with
the CRON_SECRET bearer token instead of a user session.
"""
from flask import Blueprint, g, request

from ..decorators import require_auth, require_cron_secret, require_permission
from ..services import alert_service
from .errors import DOMAIN_ERRORS, error_response

alerts_bp = Blueprint("alerts", __name__, url_prefix="/api/alerts")


@alerts_bp.get("")
@require_auth
@require_permission("VIEW_ALERTS")
def list_alerts_route():
    """Query params: status (repeatable), type, store_id, limit."""
    try:
        alerts = alert_service.list_alerts(
            status=request.args.getlist("status") or None,
            alert_type=request.args.get("type"),
            store_id=request.args.get("store_id", type=int),
            limit=request.args.get("limit", default=100, type=int),
        )
    except DOMAIN_ERRORS as e:
        return error_response(e)
    return {"items": [a.to_dict() for a in alerts]}


@alerts_bp.post("/<int:alert_id>/status")
@require_auth
@require_permission("MANAGE_ALERTS")
def update_status_route(alert_id: int):
    payload = request.get_json(silent=True) or {}
    status = payload.get("status")
    try:
        alert = alert_service.update_alert_status(
            g.actor,
            alert_id,
            status.upper() if isinstance(status, str) else status,
        )
    except DOMAIN_ERRORS as e:
        return error_response(e)
    return alert.to_dict()


@alerts_bp.post("/scan")
@require_cron_secret
def scan_route():
    try:
        created = alert_service.run_alert_scan()
    except DOMAIN_ERRORS as e:
        return error_response(e)
    return {"created": created}
