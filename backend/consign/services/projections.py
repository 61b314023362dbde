# Overview: Pure folds over ledger rows; no database access.

"""
On-hand projections.

Every function here takes an iterable of movement-like rows (anything with
product_id, unit_type, quantity, from_location_id, to_location_id and the
reversal fields) and folds it. The callers decide which rows to feed in;
rows that should not count are skipped here as well, so a raw history can
be passed safely.
"""
from __future__ import annotations

from collections import defaultdict
from typing import Iterable


def counts_toward_inventory(row) -> bool:
    return row.reversed_by_id is None and not row.is_reversal


def net_on_hand(rows: Iterable, location_id: int) -> int:
    """+quantity where location_id is the destination, -quantity where it is the source."""
    total = 0
    for row in rows:
        if not counts_toward_inventory(row):
            continue
        if row.to_location_id == location_id:
            total += row.quantity
        if row.from_location_id == location_id:
            total -= row.quantity
    return total


def aggregate_on_hand(rows: Iterable) -> dict[tuple[int, int, str], int]:
    """
    On-hand for every (product_id, location_id, unit_type) the rows touch.

    Zero entries are kept; callers filter them out for listings.
    """
    totals: dict[tuple[int, int, str], int] = defaultdict(int)
    for row in rows:
        if not counts_toward_inventory(row):
            continue
        if row.to_location_id is not None:
            totals[(row.product_id, row.to_location_id, row.unit_type)] += row.quantity
        if row.from_location_id is not None:
            totals[(row.product_id, row.from_location_id, row.unit_type)] -= row.quantity
    return dict(totals)


def sum_quantity(rows: Iterable, action: str) -> int:
    return sum(row.quantity for row in rows if row.action == action and counts_toward_inventory(row))


def weighted_price_snapshot(rows: Iterable) -> int | None:
    """
    Quantity-weighted mean price_snapshot_cents of the given rows, in whole cents.

    Rows without a snapshot are ignored. Returns None if nothing is priced.
    """
    weighted = 0
    quantity = 0
    for row in rows:
        if row.price_snapshot_cents is None or not counts_toward_inventory(row):
            continue
        weighted += row.price_snapshot_cents * row.quantity
        quantity += row.quantity
    if quantity == 0:
        return None
    # round half up on non-negative integers
    return (2 * weighted + quantity) // (2 * quantity)
