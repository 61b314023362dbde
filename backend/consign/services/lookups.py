# Overview: Shared entity lookups that raise NotFoundError instead of returning None.

from __future__ import annotations

from ..extensions import db
from ..models import Location, Movement, Product, Store, Vendor, Alert, User
from ..validation import NotFoundError, ValidationError
from .concurrency import lock_for_update


def _get(model, entity_id, label: str, *, lock: bool = False):
    if entity_id is None:
        raise ValidationError(f"{label}_id is required")
    query = db.session.query(model).filter_by(id=entity_id)
    if lock:
        query = lock_for_update(query)
    entity = query.first()
    if entity is None:
        raise NotFoundError(f"{label} {entity_id} not found")
    return entity


def get_product(product_id: int, *, require_active: bool = False, lock: bool = False) -> Product:
    product = _get(Product, product_id, "product", lock=lock)
    if require_active and not product.is_active:
        raise ValidationError(f"product {product_id} is inactive")
    return product


def get_location(location_id: int, *, require_active: bool = False) -> Location:
    location = _get(Location, location_id, "location")
    if require_active and not location.is_active:
        raise ValidationError(f"location {location.name!r} is inactive")
    return location


def get_store(store_id: int, *, require_active: bool = False, lock: bool = False) -> Store:
    store = _get(Store, store_id, "store", lock=lock)
    if require_active and not store.is_active:
        raise ValidationError(f"store {store.name!r} is inactive")
    return store


def get_vendor(vendor_id: int, *, require_active: bool = False) -> Vendor:
    vendor = _get(Vendor, vendor_id, "vendor")
    if require_active and not vendor.is_active:
        raise ValidationError(f"vendor {vendor.name!r} is inactive")
    return vendor


def get_movement(movement_id: int, *, lock: bool = False) -> Movement:
    return _get(Movement, movement_id, "movement", lock=lock)


def get_alert(alert_id: int, *, lock: bool = False) -> Alert:
    return _get(Alert, alert_id, "alert", lock=lock)


def get_user(user_id: int) -> User:
    return _get(User, user_id, "user")
