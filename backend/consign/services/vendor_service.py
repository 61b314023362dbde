# Overview: Service-layer operations for vendor; encapsulates business logic and database work.

"""
Vendor management.

WHY: Every RECEIVE names the vendor the boxes came from, so receipts can be
traced back to a supplier and its cost snapshot.

Vendors are never deleted; deactivation only hides them from pickers and
blocks new receipts.
"""
from __future__ import annotations

from ..extensions import db
from ..models import Vendor
from ..validation import require_text
from .concurrency import run_in_transaction
from .lookups import get_vendor
from .permission_service import Actor, require_permission


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None


def create_vendor(
    actor: Actor,
    *,
    name: str,
    contact_name: str | None = None,
    contact_phone: str | None = None,
    contact_email: str | None = None,
    notes: str | None = None,
) -> Vendor:
    require_permission(actor, "MANAGE_CATALOG")

    def _op():
        vendor = Vendor(
            name=require_text(name, "name"),
            contact_name=_clean(contact_name),
            contact_phone=_clean(contact_phone),
            contact_email=_clean(contact_email),
            notes=_clean(notes),
            is_active=True,
        )
        db.session.add(vendor)
        db.session.flush()
        return vendor

    return run_in_transaction(_op)


def update_vendor(
    actor: Actor,
    vendor_id: int,
    *,
    name: str,
    contact_name: str | None = None,
    contact_phone: str | None = None,
    contact_email: str | None = None,
    notes: str | None = None,
) -> Vendor:
    """Full replacement of the editable fields (blank clears a field)."""
    require_permission(actor, "MANAGE_CATALOG")

    def _op():
        vendor = get_vendor(vendor_id)
        vendor.name = require_text(name, "name")
        vendor.contact_name = _clean(contact_name)
        vendor.contact_phone = _clean(contact_phone)
        vendor.contact_email = _clean(contact_email)
        vendor.notes = _clean(notes)
        return vendor

    return run_in_transaction(_op)


def set_vendor_active(actor: Actor, vendor_id: int, active: bool) -> Vendor:
    require_permission(actor, "MANAGE_CATALOG")

    def _op():
        vendor = get_vendor(vendor_id)
        vendor.is_active = active
        return vendor

    return run_in_transaction(_op)


def list_vendors(*, include_inactive: bool = False) -> list[Vendor]:
    query = db.session.query(Vendor)
    if not include_inactive:
        query = query.filter(Vendor.is_active.is_(True))
    return query.order_by(Vendor.name.asc()).all()
