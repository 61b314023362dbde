# Overview: Service-layer operations for products; encapsulates business logic and database work.

"""
Product catalog, barcodes and store price overrides.

PACKS PER BOX is set once here and never changed (see Product model).

BARCODES are globally unique. A box barcode and a pack barcode for the same
product are two rows with different unit_type values.
"""
from __future__ import annotations

from ..extensions import db
from ..models import Barcode, Product, ProductPricing, StorePriceOverride, UnitType
from ..validation import (
    ConflictError,
    ValidationError,
    enforce_money_cents,
    enforce_positive_quantity,
    require_text,
)
from .concurrency import run_in_transaction
from .lookups import get_product, get_store
from .permission_service import Actor, require_permission


PRICING_FIELDS = (
    "cost_per_box_cents",
    "retail_price_per_pack_cents",
    "retail_price_per_box_cents",
    "wholesale_price_per_box_cents",
)


def _validate_pricing(pricing: dict) -> dict:
    unknown = set(pricing) - set(PRICING_FIELDS)
    if unknown:
        raise ValidationError(f"unknown pricing field(s): {', '.join(sorted(unknown))}")
    if pricing.get("cost_per_box_cents") is None:
        raise ValidationError("cost_per_box_cents is required when pricing is given")
    clean = {}
    for field in PRICING_FIELDS:
        value = pricing.get(field)
        if value is None:
            value = 0
        enforce_money_cents(value, field)
        clean[field] = value
    return clean


def create_product(
    actor: Actor,
    *,
    name: str,
    sku: str,
    packs_per_box: int,
    variant: str | None = None,
    notes: str | None = None,
    pricing: dict | None = None,
) -> Product:
    """
    Create a product, optionally with default pricing.

    Raises:
        ValidationError: missing name/SKU, packs_per_box <= 0, bad pricing
        ConflictError: SKU already in use
    """
    require_permission(actor, "MANAGE_CATALOG")

    def _op():
        clean_sku = require_text(sku, "sku").upper()
        enforce_positive_quantity(packs_per_box, "packs_per_box")

        if db.session.query(Product).filter_by(sku=clean_sku).first() is not None:
            raise ConflictError(f"SKU {clean_sku} already exists")

        product = Product(
            name=require_text(name, "name"),
            sku=clean_sku,
            variant=(variant or "").strip() or None,
            notes=(notes or "").strip() or None,
            packs_per_box=packs_per_box,
            is_active=True,
        )
        db.session.add(product)
        db.session.flush()

        if pricing:
            db.session.add(ProductPricing(product_id=product.id, **_validate_pricing(pricing)))
            db.session.flush()

        return product

    return run_in_transaction(_op)


def update_product(
    actor: Actor,
    product_id: int,
    *,
    name: str | None = None,
    variant: str | None = None,
    notes: str | None = None,
) -> Product:
    """Edit descriptive fields. SKU and packs_per_box are not editable."""
    require_permission(actor, "MANAGE_CATALOG")

    def _op():
        product = get_product(product_id, lock=True)
        if name is not None:
            product.name = require_text(name, "name")
        if variant is not None:
            product.variant = variant.strip() or None
        if notes is not None:
            product.notes = notes.strip() or None
        return product

    return run_in_transaction(_op)


def set_product_pricing(actor: Actor, product_id: int, pricing: dict) -> ProductPricing:
    """
    Create or replace default pricing.

    Historical movements keep their own snapshots; only future deliveries
    (and CURRENT-mode reconciliation) see the new wholesale price.
    """
    require_permission(actor, "MANAGE_CATALOG")

    def _op():
        product = get_product(product_id)
        clean = _validate_pricing(pricing)
        row = product.pricing
        if row is None:
            row = ProductPricing(product_id=product.id, **clean)
            db.session.add(row)
        else:
            for field, value in clean.items():
                setattr(row, field, value)
        db.session.flush()
        return row

    return run_in_transaction(_op)


def set_product_active(actor: Actor, product_id: int, active: bool) -> Product:
    require_permission(actor, "MANAGE_CATALOG")

    def _op():
        product = get_product(product_id, lock=True)
        product.is_active = active
        return product

    return run_in_transaction(_op)


def list_products(*, include_inactive: bool = False, search: str | None = None) -> list[Product]:
    query = db.session.query(Product)
    if not include_inactive:
        query = query.filter(Product.is_active.is_(True))
    if search:
        like = f"%{search.strip()}%"
        query = query.filter(db.or_(Product.name.ilike(like), Product.sku.ilike(like)))
    return query.order_by(Product.name.asc(), Product.variant.asc()).all()


# =============================================================================
# BARCODES
# =============================================================================

def register_barcode(
    actor: Actor,
    *,
    product_id: int,
    value: str,
    unit_type: str,
    symbology: str | None = None,
    label: str | None = None,
) -> Barcode:
    """
    Register a scannable code for a product.

    Raises:
        ConflictError: the value is already registered (to any product)
    """
    require_permission(actor, "MANAGE_CATALOG")

    def _op():
        product = get_product(product_id)
        clean_value = require_text(value, "value")
        if unit_type not in UnitType.ALL:
            raise ValidationError(f"unit_type must be one of {', '.join(UnitType.ALL)}")

        if db.session.query(Barcode).filter_by(value=clean_value).first() is not None:
            raise ConflictError("This barcode is already registered")

        barcode = Barcode(
            product_id=product.id,
            value=clean_value,
            unit_type=unit_type,
            symbology=(symbology or "UPC_A").strip().upper(),
            label=(label or "").strip() or None,
        )
        db.session.add(barcode)
        db.session.flush()
        return barcode

    return run_in_transaction(_op)


def lookup_barcode(value: str) -> dict | None:
    """
    Resolve a scanned code to its product, unit type and pricing.

    Returns None for unknown codes.
    """
    if not value or not value.strip():
        return None
    barcode = db.session.query(Barcode).filter_by(value=value.strip()).first()
    if barcode is None:
        return None

    product = barcode.product
    return {
        "barcode_id": barcode.id,
        "value": barcode.value,
        "unit_type": barcode.unit_type,
        "product": {
            "id": product.id,
            "name": product.name,
            "variant": product.variant,
            "sku": product.sku,
            "packs_per_box": product.packs_per_box,
            "is_active": product.is_active,
        },
        "pricing": product.pricing.to_dict() if product.pricing is not None else None,
    }


# =============================================================================
# STORE PRICE OVERRIDES
# =============================================================================

def set_store_price_override(
    actor: Actor,
    *,
    store_id: int,
    product_id: int,
    wholesale_price_per_box_cents: int,
) -> StorePriceOverride:
    require_permission(actor, "MANAGE_STORES")

    def _op():
        get_store(store_id)
        get_product(product_id)
        enforce_money_cents(wholesale_price_per_box_cents, "wholesale_price_per_box_cents")

        override = db.session.query(StorePriceOverride).filter_by(
            store_id=store_id,
            product_id=product_id,
        ).first()
        if override is None:
            override = StorePriceOverride(
                store_id=store_id,
                product_id=product_id,
                wholesale_price_per_box_cents=wholesale_price_per_box_cents,
            )
            db.session.add(override)
        else:
            override.wholesale_price_per_box_cents = wholesale_price_per_box_cents
        db.session.flush()
        return override

    return run_in_transaction(_op)


def clear_store_price_override(actor: Actor, *, store_id: int, product_id: int) -> bool:
    """Remove an override so the product default applies again. Returns False if none existed."""
    require_permission(actor, "MANAGE_STORES")

    def _op():
        deleted = db.session.query(StorePriceOverride).filter_by(
            store_id=store_id,
            product_id=product_id,
        ).delete()
        return deleted > 0

    return run_in_transaction(_op)


def list_store_price_overrides(store_id: int) -> list[StorePriceOverride]:
    get_store(store_id)
    return db.session.query(StorePriceOverride).filter_by(store_id=store_id).order_by(
        StorePriceOverride.product_id.asc()
    ).all()
