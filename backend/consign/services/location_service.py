# Overview: Location graph and store lifecycle; encapsulates business logic and database work.

"""
Location graph.

SHAPE (fixed, not configurable):
- STORAGE, TRUCK: top-level, no parent, no store link.
- SHELF: optional parent, which must be an active STORAGE location.
- STORE: exactly one per Store, created by create_store and never directly.

LIFECYCLE:
Deactivation hides a location from listings and inventory views; nothing is
deleted, so historical ledger rows keep valid references. A Store and its
STORE location are always deactivated/reactivated together.
"""
from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..models import Location, LocationKind, Store
from ..validation import ValidationError, require_text
from .concurrency import run_in_transaction
from .lookups import get_location, get_store
from .permission_service import Actor, require_permission


def store_location_name(store_name: str) -> str:
    return f"Store: {store_name}"


def create_location(
    actor: Actor,
    *,
    name: str,
    kind: str,
    parent_id: int | None = None,
) -> Location:
    """
    Create a STORAGE, SHELF or TRUCK location.

    Raises:
        ValidationError: unknown kind, STORE kind, or an illegal parent
    """
    require_permission(actor, "MANAGE_CATALOG")

    def _op():
        clean_name = require_text(name, "name")
        if kind not in LocationKind.ALL:
            raise ValidationError(f"kind must be one of {', '.join(LocationKind.ALL)}")
        if kind == LocationKind.STORE:
            raise ValidationError("STORE locations are created with their store")

        if parent_id is not None:
            if kind != LocationKind.SHELF:
                raise ValidationError("only SHELF locations may have a parent")
            parent = get_location(parent_id, require_active=True)
            if parent.kind != LocationKind.STORAGE:
                raise ValidationError(f"shelf parent must be STORAGE, got {parent.kind}")

        location = Location(name=clean_name, kind=kind, parent_id=parent_id, is_active=True)
        db.session.add(location)
        db.session.flush()
        return location

    return run_in_transaction(_op)


def list_locations(
    *,
    kinds: list[str] | None = None,
    include_inactive: bool = False,
) -> list[Location]:
    query = db.session.query(Location)
    if kinds:
        unknown = [k for k in kinds if k not in LocationKind.ALL]
        if unknown:
            raise ValidationError(f"unknown location kind(s): {', '.join(unknown)}")
        query = query.filter(Location.kind.in_(kinds))
    if not include_inactive:
        query = query.filter(Location.is_active.is_(True))
    return query.order_by(Location.kind.asc(), Location.name.asc()).all()


def set_location_active(actor: Actor, location_id: int, active: bool) -> Location:
    require_permission(actor, "MANAGE_CATALOG")

    def _op():
        location = get_location(location_id)
        if location.kind == LocationKind.STORE:
            raise ValidationError("STORE locations follow their store; use set_store_active")
        location.is_active = active
        return location

    return run_in_transaction(_op)


# =============================================================================
# STORES
# =============================================================================

def create_store(
    actor: Actor,
    *,
    name: str,
    contact_name: str | None = None,
    contact_phone: str | None = None,
    address: str | None = None,
) -> Store:
    """Create a Store and its STORE location in one transaction."""
    require_permission(actor, "MANAGE_STORES")

    def _op():
        clean_name = require_text(name, "name")
        store = Store(
            name=clean_name,
            contact_name=contact_name or None,
            contact_phone=contact_phone or None,
            address=address or None,
            is_active=True,
        )
        db.session.add(store)
        db.session.flush()

        location = Location(
            name=store_location_name(clean_name),
            kind=LocationKind.STORE,
            store_id=store.id,
            is_active=True,
        )
        db.session.add(location)
        db.session.flush()
        return store

    store = run_in_transaction(_op)
    current_app.logger.info("store created: id=%s name=%r", store.id, store.name)
    return store


def update_store(
    actor: Actor,
    store_id: int,
    *,
    name: str | None = None,
    contact_name: str | None = None,
    contact_phone: str | None = None,
    address: str | None = None,
) -> Store:
    require_permission(actor, "MANAGE_STORES")

    def _op():
        store = get_store(store_id, lock=True)
        if name is not None:
            store.name = require_text(name, "name")
            if store.location is not None:
                store.location.name = store_location_name(store.name)
        if contact_name is not None:
            store.contact_name = contact_name or None
        if contact_phone is not None:
            store.contact_phone = contact_phone or None
        if address is not None:
            store.address = address or None
        return store

    return run_in_transaction(_op)


def set_store_active(actor: Actor, store_id: int, active: bool) -> Store:
    """Deactivate or reactivate a store together with its STORE location."""
    require_permission(actor, "MANAGE_STORES")

    def _op():
        store = get_store(store_id, lock=True)
        store.is_active = active
        if store.location is not None:
            store.location.is_active = active
        return store

    return run_in_transaction(_op)


def list_stores(*, include_inactive: bool = False) -> list[Store]:
    query = db.session.query(Store)
    if not include_inactive:
        query = query.filter(Store.is_active.is_(True))
    return query.order_by(Store.name.asc()).all()
