# Overview: Static location rules per movement action, plus the on-hand guard.

"""
Movement validation rules.

Each action has exactly one LocationRule. from_kinds / to_kinds of None
mean that side must be empty; a tuple lists the kinds allowed on that side.
ADJUSTMENT accepts any kind on either side but exactly one side is filled.

The table is checked against MovementAction.ALL at import time, so adding
an action without a rule fails on startup rather than at the first request.
"""
from __future__ import annotations

from dataclasses import dataclass

from ..models import LocationKind, MovementAction, UnitType
from ..validation import InsufficientInventoryError, ValidationError


@dataclass(frozen=True)
class LocationRule:
    from_kinds: tuple[str, ...] | None
    to_kinds: tuple[str, ...] | None
    exactly_one_side: bool = False


_ANY_KIND = (LocationKind.STORAGE, LocationKind.SHELF, LocationKind.TRUCK, LocationKind.STORE)

LOCATION_RULES: dict[str, LocationRule] = {
    MovementAction.RECEIVE: LocationRule(None, (LocationKind.STORAGE,)),
    MovementAction.PUT_ON_SHELF: LocationRule((LocationKind.STORAGE,), (LocationKind.SHELF,)),
    MovementAction.TAKE_OFF_SHELF: LocationRule(
        (LocationKind.SHELF,),
        (LocationKind.STORAGE, LocationKind.TRUCK),
    ),
    MovementAction.DELIVER_TO_STORE: LocationRule(
        (LocationKind.STORAGE, LocationKind.SHELF, LocationKind.TRUCK),
        (LocationKind.STORE,),
    ),
    MovementAction.RETURN_FROM_STORE: LocationRule(
        (LocationKind.STORE,),
        (LocationKind.STORAGE, LocationKind.TRUCK),
    ),
    MovementAction.CONVERT_BOX_TO_PACKS: LocationRule(
        (LocationKind.STORAGE, LocationKind.SHELF),
        (LocationKind.STORAGE, LocationKind.SHELF),
    ),
    MovementAction.SALE_RETAIL_PACK: LocationRule((LocationKind.SHELF, LocationKind.STORAGE), None),
    MovementAction.SALE_RETAIL_BOX: LocationRule((LocationKind.SHELF, LocationKind.STORAGE), None),
    MovementAction.ADJUSTMENT: LocationRule(_ANY_KIND, _ANY_KIND, exactly_one_side=True),
}

_missing = set(MovementAction.ALL) - set(LOCATION_RULES)
if _missing:
    raise RuntimeError(f"movement actions without a location rule: {', '.join(sorted(_missing))}")


ACTION_LABELS = {
    MovementAction.RECEIVE: "Receive from Vendor",
    MovementAction.PUT_ON_SHELF: "Put on Shelf",
    MovementAction.TAKE_OFF_SHELF: "Take off Shelf",
    MovementAction.DELIVER_TO_STORE: "Deliver to Store",
    MovementAction.RETURN_FROM_STORE: "Return from Store",
    MovementAction.CONVERT_BOX_TO_PACKS: "Convert Box to Packs",
    MovementAction.SALE_RETAIL_PACK: "Sell Packs (Retail)",
    MovementAction.SALE_RETAIL_BOX: "Sell Box (Retail)",
    MovementAction.ADJUSTMENT: "Adjustment",
}


def _check_side(action: str, allowed: tuple[str, ...] | None, kind: str | None, side: str, label: str) -> None:
    if allowed is None:
        if kind is not None:
            raise ValidationError(f"{action} should not have a {side} location")
        return
    if kind is None:
        raise ValidationError(f"{action} requires a {side} location")
    if kind not in allowed:
        raise ValidationError(f"{action}: {label} must be {' or '.join(allowed)}, got {kind}")


def validate_location_kinds(action: str, from_kind: str | None, to_kind: str | None) -> None:
    """
    Reject an illegal (action, from kind, to kind) triple.

    Raises:
        ValidationError: unknown action, missing/forbidden side, or wrong kind
    """
    rule = LOCATION_RULES.get(action)
    if rule is None:
        raise ValidationError(f"unknown action: {action}")

    if rule.exactly_one_side:
        if (from_kind is None) == (to_kind is None):
            raise ValidationError(f"{action} requires exactly one of source or destination location")
        if from_kind is not None and from_kind not in rule.from_kinds:
            raise ValidationError(f"{action}: source must be {' or '.join(rule.from_kinds)}, got {from_kind}")
        if to_kind is not None and to_kind not in rule.to_kinds:
            raise ValidationError(f"{action}: destination must be {' or '.join(rule.to_kinds)}, got {to_kind}")
        return

    _check_side(action, rule.from_kinds, from_kind, "source", "source")
    _check_side(action, rule.to_kinds, to_kind, "destination", "destination")


def actions_for_unit(unit_type: str) -> list[str]:
    """Actions offered after scanning a box or pack barcode."""
    if unit_type == UnitType.BOX:
        return [
            MovementAction.PUT_ON_SHELF,
            MovementAction.TAKE_OFF_SHELF,
            MovementAction.DELIVER_TO_STORE,
            MovementAction.RETURN_FROM_STORE,
            MovementAction.CONVERT_BOX_TO_PACKS,
            MovementAction.SALE_RETAIL_BOX,
            MovementAction.RECEIVE,
        ]
    if unit_type == UnitType.PACK:
        return [
            MovementAction.PUT_ON_SHELF,
            MovementAction.TAKE_OFF_SHELF,
            MovementAction.SALE_RETAIL_PACK,
        ]
    raise ValidationError(f"unit_type must be one of {', '.join(UnitType.ALL)}")


def check_sufficient_on_hand(
    *,
    on_hand: int,
    quantity: int,
    unit_type: str,
    location_name: str,
) -> None:
    """Advisory guard before a depleting movement; not atomic with the append."""
    if on_hand < quantity:
        raise InsufficientInventoryError(
            f"Only {on_hand} {unit_type} on hand at {location_name}. Need {quantity}.",
            on_hand=on_hand,
            requested=quantity,
        )
