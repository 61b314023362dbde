# backend/consign/routes/system.py
"""
System health and version endpoints.
"""

import os
import time

from flask import Blueprint, current_app

from ..extensions import db
from ..models import Location, Movement, Product, Store

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    """
    Check database connectivity with a few cheap counts.

    Returns dict with status and details.
    """
    start_time = time.time()
    try:
        details = {
            "stores": db.session.query(Store).count(),
            "locations": db.session.query(Location).count(),
            "products": db.session.query(Product).count(),
            "movements": db.session.query(Movement).count(),
        }
        elapsed_ms = (time.time() - start_time) * 1000
        return {"status": "healthy", "latency_ms": round(elapsed_ms, 2), "details": details}
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {"status": "unhealthy", "latency_ms": round(elapsed_ms, 2), "error": "Database error"}


@system_bp.get("/api/health")
def health():
    database = check_database_health()
    status = 200 if database["status"] == "healthy" else 503
    return {"status": database["status"], "checks": {"database": database}}, status


@system_bp.get("/api/version")
def version():
    return {
        "name": "consign",
        "version": os.environ.get("APP_VERSION", "0.1.0"),
        "reconciliation_pricing": current_app.config.get("RECONCILIATION_PRICING"),
    }
