"""
Pure ledger folds: on-hand, per-key aggregation, weighted price snapshots.
"""

from types import SimpleNamespace

from consign.services.projections import (
    aggregate_on_hand,
    counts_toward_inventory,
    net_on_hand,
    sum_quantity,
    weighted_price_snapshot,
)


def row(action="PUT_ON_SHELF", *, product_id=1, unit_type="BOX", quantity=1, src=None, dst=None,
        price=None, reversed_by_id=None, is_reversal=False):
    return SimpleNamespace(
        action=action,
        product_id=product_id,
        unit_type=unit_type,
        quantity=quantity,
        from_location_id=src,
        to_location_id=dst,
        price_snapshot_cents=price,
        reversed_by_id=reversed_by_id,
        is_reversal=is_reversal,
    )


def test_net_on_hand_signs_by_side():
    rows = [
        row("RECEIVE", quantity=10, dst=1),
        row("PUT_ON_SHELF", quantity=4, src=1, dst=2),
        row("SALE_RETAIL_BOX", quantity=1, src=2),
    ]
    assert net_on_hand(rows, 1) == 6
    assert net_on_hand(rows, 2) == 3
    assert net_on_hand(rows, 3) == 0


def test_net_on_hand_may_go_negative():
    assert net_on_hand([row("ADJUSTMENT", quantity=3, src=1)], 1) == -3


def test_reversed_pairs_are_skipped():
    original = row("RECEIVE", quantity=10, dst=1, reversed_by_id=2)
    reversal = row("RECEIVE", quantity=10, src=1, is_reversal=True)
    kept = row("RECEIVE", quantity=4, dst=1)

    assert not counts_toward_inventory(original)
    assert not counts_toward_inventory(reversal)
    assert net_on_hand([original, reversal, kept], 1) == 4


def test_same_location_on_both_sides_nets_to_zero():
    assert net_on_hand([row(quantity=5, src=1, dst=1)], 1) == 0


def test_aggregate_keys_by_product_location_unit():
    rows = [
        row("RECEIVE", quantity=5, dst=1),
        row("CONVERT_BOX_TO_PACKS", quantity=2, src=1),
        row("CONVERT_BOX_TO_PACKS", unit_type="PACK", quantity=20, dst=1),
        row("RECEIVE", product_id=2, quantity=1, dst=1),
    ]
    assert aggregate_on_hand(rows) == {
        (1, 1, "BOX"): 3,
        (1, 1, "PACK"): 20,
        (2, 1, "BOX"): 1,
    }


def test_sum_quantity_filters_action():
    rows = [
        row("DELIVER_TO_STORE", quantity=10),
        row("DELIVER_TO_STORE", quantity=7, reversed_by_id=9),
        row("RETURN_FROM_STORE", quantity=3),
    ]
    assert sum_quantity(rows, "DELIVER_TO_STORE") == 10
    assert sum_quantity(rows, "RETURN_FROM_STORE") == 3


class TestWeightedPriceSnapshot:

    def test_weighted_by_quantity(self):
        rows = [row(quantity=10, price=1800), row(quantity=30, price=2000)]
        assert weighted_price_snapshot(rows) == 1950

    def test_rounds_half_up(self):
        # (1000 * 1 + 1001 * 1) / 2 = 1000.5
        rows = [row(quantity=1, price=1000), row(quantity=1, price=1001)]
        assert weighted_price_snapshot(rows) == 1001

    def test_none_without_priced_rows(self):
        assert weighted_price_snapshot([]) is None
        assert weighted_price_snapshot([row(quantity=3)]) is None
