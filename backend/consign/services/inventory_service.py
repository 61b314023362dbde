# Overview: On-hand queries built on the ledger projections.

"""
Inventory read side.

All figures are recomputed from the ledger on every call. Negative results
are returned as-is; the alert scan turns them into NEGATIVE_INVENTORY alerts.
"""
from __future__ import annotations

from collections import defaultdict

from ..extensions import db
from ..models import Location, LocationKind, Product, UnitType
from ..validation import ValidationError
from . import ledger_service
from .lookups import get_location, get_product
from .projections import aggregate_on_hand, net_on_hand


def _require_unit_type(unit_type: str) -> None:
    if unit_type not in UnitType.ALL:
        raise ValidationError(f"unit_type must be one of {', '.join(UnitType.ALL)}")


def on_hand(product_id: int, unit_type: str, location_id: int) -> int:
    """Current quantity of product/unit at one location. May be negative."""
    _require_unit_type(unit_type)
    get_product(product_id)
    get_location(location_id)
    rows = ledger_service.counting_movements(
        product_id=product_id,
        unit_type=unit_type,
        location_id=location_id,
    ).all()
    return net_on_hand(rows, location_id)


def _on_hand_rows(*, active_locations_only: bool) -> list[dict]:
    totals = aggregate_on_hand(ledger_service.counting_movements().all())
    if not totals:
        return []

    product_ids = {key[0] for key in totals}
    location_ids = {key[1] for key in totals}
    products = {p.id: p for p in db.session.query(Product).filter(Product.id.in_(product_ids))}
    locations = {l.id: l for l in db.session.query(Location).filter(Location.id.in_(location_ids))}

    rows = []
    for (product_id, location_id, unit_type), quantity in totals.items():
        location = locations[location_id]
        if active_locations_only and not location.is_active:
            continue
        product = products[product_id]
        rows.append({
            "product_id": product.id,
            "product_name": product.name,
            "variant": product.variant,
            "sku": product.sku,
            "unit_type": unit_type,
            "location_id": location.id,
            "location_name": location.name,
            "location_kind": location.kind,
            "on_hand": quantity,
        })
    rows.sort(key=lambda r: (r["product_name"], r["location_kind"], r["location_name"], r["unit_type"]))
    return rows


def full_inventory() -> list[dict]:
    """Every non-zero (product, active location, unit type) on-hand figure."""
    return [row for row in _on_hand_rows(active_locations_only=True) if row["on_hand"] != 0]


def inventory_by_location_kind() -> list[dict]:
    """Totals per (product, unit type, location kind), non-zero only."""
    totals: dict[tuple, int] = defaultdict(int)
    names: dict[int, tuple[str, str | None]] = {}
    for row in _on_hand_rows(active_locations_only=False):
        totals[(row["product_id"], row["unit_type"], row["location_kind"])] += row["on_hand"]
        names[row["product_id"]] = (row["product_name"], row["variant"])

    summary = [
        {
            "product_id": product_id,
            "product_name": names[product_id][0],
            "variant": names[product_id][1],
            "unit_type": unit_type,
            "location_kind": kind,
            "total_on_hand": total,
        }
        for (product_id, unit_type, kind), total in totals.items()
        if total != 0
    ]
    summary.sort(key=lambda r: (r["product_name"], r["location_kind"], r["unit_type"]))
    return summary


def find_negative_inventory() -> list[dict]:
    """(product, location, unit) triples with on-hand below zero, any location."""
    return [row for row in _on_hand_rows(active_locations_only=False) if row["on_hand"] < 0]


def find_low_stock(threshold: int) -> list[dict]:
    """Box on-hand in STORAGE locations within [0, threshold]."""
    return [
        row
        for row in _on_hand_rows(active_locations_only=False)
        if row["unit_type"] == UnitType.BOX
        and row["location_kind"] == LocationKind.STORAGE
        and 0 <= row["on_hand"] <= threshold
    ]
