# Overview: Wholesale price resolution and product margins.

from __future__ import annotations

from decimal import Decimal

from ..extensions import db
from ..models import ProductPricing, StorePriceOverride
from ..validation import ValidationError
from .lookups import get_product


def wholesale_price_cents(product_id: int, store_id: int) -> int:
    """
    Per-box wholesale price a store owes for a product.

    Resolution order:
    1. StorePriceOverride for the exact (store, product) pair
    2. ProductPricing.wholesale_price_per_box_cents

    Raises ValidationError when the product has no pricing at all.
    """
    override = db.session.query(StorePriceOverride).filter_by(
        store_id=store_id,
        product_id=product_id,
    ).first()
    if override is not None:
        return override.wholesale_price_per_box_cents

    pricing = db.session.query(ProductPricing).filter_by(product_id=product_id).first()
    if pricing is None:
        raise ValidationError(f"No pricing found for product {product_id}")

    return pricing.wholesale_price_per_box_cents


def get_product_pricing(product_id: int) -> dict | None:
    """
    Default pricing with derived per-pack cost and margins.

    Returns None when the product has no pricing configured.
    cost_per_pack_cents is fractional when the box cost does not divide evenly.
    """
    product = get_product(product_id)
    pricing = product.pricing
    if pricing is None:
        return None

    cost_per_pack = Decimal(pricing.cost_per_box_cents) / Decimal(product.packs_per_box)

    return {
        "product_id": product.id,
        "packs_per_box": product.packs_per_box,
        "cost_per_box_cents": pricing.cost_per_box_cents,
        "cost_per_pack_cents": cost_per_pack,
        "retail_price_per_pack_cents": pricing.retail_price_per_pack_cents,
        "retail_price_per_box_cents": pricing.retail_price_per_box_cents,
        "wholesale_price_per_box_cents": pricing.wholesale_price_per_box_cents,
        "margin_per_pack_cents": Decimal(pricing.retail_price_per_pack_cents) - cost_per_pack,
        "margin_per_box_cents": pricing.retail_price_per_box_cents - pricing.cost_per_box_cents,
    }
