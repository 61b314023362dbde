"""
Location-kind rules per movement action.

Every (action, source kind, destination kind) triple is checked against the
table of legal combinations below; anything not listed must be rejected.
"""

import itertools

import pytest

from consign.models import LocationKind, MovementAction, UnitType
from consign.services.movement_rules import (
    ACTION_LABELS,
    LOCATION_RULES,
    actions_for_unit,
    check_sufficient_on_hand,
    validate_location_kinds,
)
from consign.validation import InsufficientInventoryError, ValidationError


STORAGE = LocationKind.STORAGE
SHELF = LocationKind.SHELF
TRUCK = LocationKind.TRUCK
STORE = LocationKind.STORE

LEGAL = {
    MovementAction.RECEIVE: {(None, STORAGE)},
    MovementAction.PUT_ON_SHELF: {(STORAGE, SHELF)},
    MovementAction.TAKE_OFF_SHELF: {(SHELF, STORAGE), (SHELF, TRUCK)},
    MovementAction.DELIVER_TO_STORE: {(STORAGE, STORE), (SHELF, STORE), (TRUCK, STORE)},
    MovementAction.RETURN_FROM_STORE: {(STORE, STORAGE), (STORE, TRUCK)},
    MovementAction.CONVERT_BOX_TO_PACKS: {
        (STORAGE, STORAGE), (STORAGE, SHELF), (SHELF, STORAGE), (SHELF, SHELF),
    },
    MovementAction.SALE_RETAIL_PACK: {(SHELF, None), (STORAGE, None)},
    MovementAction.SALE_RETAIL_BOX: {(SHELF, None), (STORAGE, None)},
    MovementAction.ADJUSTMENT: (
        {(kind, None) for kind in LocationKind.ALL} | {(None, kind) for kind in LocationKind.ALL}
    ),
}

SIDES = (None,) + LocationKind.ALL

GRID = [
    (action, from_kind, to_kind, (from_kind, to_kind) in LEGAL[action])
    for action in MovementAction.ALL
    for from_kind, to_kind in itertools.product(SIDES, SIDES)
]


def test_every_action_has_a_rule_and_label():
    assert set(LOCATION_RULES) == set(MovementAction.ALL)
    assert set(ACTION_LABELS) == set(MovementAction.ALL)


@pytest.mark.parametrize("action,from_kind,to_kind,legal", GRID)
def test_location_kind_grid(action, from_kind, to_kind, legal):
    if legal:
        validate_location_kinds(action, from_kind, to_kind)
    else:
        with pytest.raises(ValidationError):
            validate_location_kinds(action, from_kind, to_kind)


class TestRuleMessages:

    def test_receive_with_source_is_named(self):
        with pytest.raises(ValidationError, match="RECEIVE should not have a source location"):
            validate_location_kinds(MovementAction.RECEIVE, STORAGE, STORAGE)

    def test_missing_destination_is_named(self):
        with pytest.raises(ValidationError, match="PUT_ON_SHELF requires a destination location"):
            validate_location_kinds(MovementAction.PUT_ON_SHELF, STORAGE, None)

    def test_wrong_kind_lists_allowed_kinds(self):
        with pytest.raises(ValidationError, match="source must be SHELF, got TRUCK"):
            validate_location_kinds(MovementAction.TAKE_OFF_SHELF, TRUCK, STORAGE)

    def test_adjustment_needs_exactly_one_side(self):
        with pytest.raises(ValidationError, match="exactly one of source or destination"):
            validate_location_kinds(MovementAction.ADJUSTMENT, STORAGE, SHELF)
        with pytest.raises(ValidationError, match="exactly one of source or destination"):
            validate_location_kinds(MovementAction.ADJUSTMENT, None, None)

    def test_unknown_action(self):
        with pytest.raises(ValidationError, match="unknown action"):
            validate_location_kinds("TELEPORT", STORAGE, SHELF)


class TestActionsForUnit:

    def test_box_actions(self):
        actions = actions_for_unit(UnitType.BOX)
        assert MovementAction.CONVERT_BOX_TO_PACKS in actions
        assert MovementAction.DELIVER_TO_STORE in actions
        assert MovementAction.SALE_RETAIL_PACK not in actions

    def test_pack_actions(self):
        assert actions_for_unit(UnitType.PACK) == [
            MovementAction.PUT_ON_SHELF,
            MovementAction.TAKE_OFF_SHELF,
            MovementAction.SALE_RETAIL_PACK,
        ]

    def test_unknown_unit(self):
        with pytest.raises(ValidationError):
            actions_for_unit("CRATE")


class TestSufficientOnHand:

    def test_enough_passes(self):
        check_sufficient_on_hand(on_hand=5, quantity=5, unit_type="BOX", location_name="Main Storage")

    def test_short_raises_with_figures(self):
        with pytest.raises(InsufficientInventoryError) as exc:
            check_sufficient_on_hand(on_hand=2, quantity=3, unit_type="BOX", location_name="Main Storage")
        assert str(exc.value) == "Only 2 BOX on hand at Main Storage. Need 3."
        assert exc.value.on_hand == 2
        assert exc.value.requested == 3
