# Overview: Validated entry points that append movements to the ledger.

"""
Movement entry points.

LIFECYCLE OF ONE MOVEMENT:
1. Permission check for the action family (before any lookup)
2. Product row selected FOR UPDATE (serializes writers per product on
   databases that honor it; SQLite ignores it)
3. Location kinds checked against movement_rules.LOCATION_RULES
4. Per-action field rules (vendor, cost, reason, snapshots)
5. Advisory on-hand check for depleting movements
6. ledger_service.append_movement, then commit

The on-hand check in step 5 is not atomic against writers on other
products or other sessions where row locks are ignored. Negative on-hand
that slips through is reported by the alert scan, not prevented.

SNAPSHOTS:
- RECEIVE stores the vendor cost per box given by the caller.
- DELIVER_TO_STORE stores the per-box wholesale price resolved for the store
  at the moment of delivery.
- Sales store the total amount (unit price x quantity).
"""
from __future__ import annotations

from datetime import datetime, timedelta

from flask import current_app

from ..models import Location, LocationKind, MovementAction, UnitType
from ..time_utils import parse_iso_datetime, utcnow
from ..validation import (
    InsufficientInventoryError,
    ValidationError,
    enforce_money_cents,
    enforce_positive_quantity,
    require_text,
)
from . import ledger_service
from .concurrency import run_in_transaction
from .inventory_service import on_hand
from .lookups import get_location, get_product, get_vendor
from .movement_rules import check_sufficient_on_hand, validate_location_kinds
from .permission_service import Actor, require_permission
from .pricing_service import wholesale_price_cents


ACTION_PERMISSIONS = {
    MovementAction.RECEIVE: "RECEIVE_INVENTORY",
    MovementAction.PUT_ON_SHELF: "TRANSFER_INVENTORY",
    MovementAction.TAKE_OFF_SHELF: "TRANSFER_INVENTORY",
    MovementAction.DELIVER_TO_STORE: "TRANSFER_INVENTORY",
    MovementAction.RETURN_FROM_STORE: "TRANSFER_INVENTORY",
    MovementAction.CONVERT_BOX_TO_PACKS: "CONVERT_INVENTORY",
    MovementAction.SALE_RETAIL_PACK: "RECORD_SALE",
    MovementAction.SALE_RETAIL_BOX: "RECORD_SALE",
    MovementAction.ADJUSTMENT: "ADJUST_INVENTORY",
}

# Clock skew allowed for client-supplied performed_at
FUTURE_TOLERANCE = timedelta(minutes=2)


class AdjustmentDirection:
    ADD = "ADD"
    REMOVE = "REMOVE"

    ALL = (ADD, REMOVE)


def _resolve_performed_at(performed_at) -> datetime:
    if performed_at is None:
        return utcnow()
    if isinstance(performed_at, datetime):
        dt = performed_at
    else:
        try:
            dt = parse_iso_datetime(str(performed_at))
        except ValueError:
            raise ValidationError("performed_at must be an ISO-8601 datetime")
        if dt is None:
            return utcnow()
    if dt.tzinfo is not None:
        dt = parse_iso_datetime(dt.isoformat())
    if dt > utcnow() + FUTURE_TOLERANCE:
        raise ValidationError("performed_at cannot be in the future")
    return dt


def _optional_location(location_id: int | None) -> Location | None:
    if location_id is None:
        return None
    return get_location(location_id, require_active=True)


def _append_checked(
    actor: Actor,
    *,
    action: str,
    product_id: int,
    unit_type: str,
    quantity: int,
    from_location_id: int | None = None,
    to_location_id: int | None = None,
    vendor_id: int | None = None,
    cost_per_box_cents: int | None = None,
    price_snapshot_cents: int | None = None,
    adjustment_reason: str | None = None,
    notes: str | None = None,
    barcode_scanned: str | None = None,
    performed_at=None,
):
    """Validate and append one row inside the caller's transaction."""
    enforce_positive_quantity(quantity)
    if unit_type not in UnitType.ALL:
        raise ValidationError(f"unit_type must be one of {', '.join(UnitType.ALL)}")

    product = get_product(product_id, require_active=True, lock=True)
    from_loc = _optional_location(from_location_id)
    to_loc = _optional_location(to_location_id)

    validate_location_kinds(
        action,
        from_loc.kind if from_loc is not None else None,
        to_loc.kind if to_loc is not None else None,
    )

    if action == MovementAction.RECEIVE:
        if unit_type != UnitType.BOX:
            raise ValidationError("RECEIVE is recorded in boxes")
        get_vendor(vendor_id, require_active=True)
        if cost_per_box_cents is None:
            raise ValidationError("cost_per_box_cents is required")
        enforce_money_cents(cost_per_box_cents, "cost_per_box_cents")
    else:
        if vendor_id is not None:
            raise ValidationError(f"{action} does not take a vendor")
        if cost_per_box_cents is not None:
            raise ValidationError(f"{action} does not take a cost snapshot")

    if action == MovementAction.ADJUSTMENT:
        adjustment_reason = require_text(adjustment_reason, "reason")
    elif adjustment_reason is not None:
        raise ValidationError(f"{action} does not take an adjustment reason")

    store_id = None
    for loc in (from_loc, to_loc):
        if loc is not None and loc.kind == LocationKind.STORE:
            store_id = loc.store_id

    if action in MovementAction.SALES:
        if price_snapshot_cents is None:
            raise ValidationError("sale amount is required")
        enforce_money_cents(price_snapshot_cents, "price_snapshot_cents")
    elif price_snapshot_cents is not None:
        raise ValidationError(f"{action} does not take a price snapshot")

    if action == MovementAction.DELIVER_TO_STORE:
        price_snapshot_cents = wholesale_price_cents(product.id, store_id)

    if from_loc is not None:
        check_sufficient_on_hand(
            on_hand=on_hand(product.id, unit_type, from_loc.id),
            quantity=quantity,
            unit_type=unit_type,
            location_name=from_loc.name,
        )

    return ledger_service.append_movement(
        action=action,
        product_id=product.id,
        unit_type=unit_type,
        quantity=quantity,
        from_location_id=from_loc.id if from_loc is not None else None,
        to_location_id=to_loc.id if to_loc is not None else None,
        vendor_id=vendor_id,
        store_id=store_id,
        cost_per_box_cents=cost_per_box_cents,
        price_snapshot_cents=price_snapshot_cents,
        adjustment_reason=adjustment_reason,
        approved_by_user_id=actor.user_id if action == MovementAction.ADJUSTMENT else None,
        performed_by_user_id=actor.user_id,
        notes=(notes or "").strip() or None,
        barcode_scanned=(barcode_scanned or "").strip() or None,
        performed_at=_resolve_performed_at(performed_at),
    )


def _log_movement(movement) -> None:
    current_app.logger.info(
        "movement appended: id=%s action=%s product_id=%s %s x%s from=%s to=%s user=%s",
        movement.id,
        movement.action,
        movement.product_id,
        movement.unit_type,
        movement.quantity,
        movement.from_location_id,
        movement.to_location_id,
        movement.performed_by_user_id,
    )


def append_movement(
    actor: Actor,
    *,
    action: str,
    product_id: int,
    unit_type: str,
    quantity: int,
    from_location_id: int | None = None,
    to_location_id: int | None = None,
    vendor_id: int | None = None,
    cost_per_box_cents: int | None = None,
    price_snapshot_cents: int | None = None,
    adjustment_reason: str | None = None,
    notes: str | None = None,
    barcode_scanned: str | None = None,
    performed_at=None,
):
    """
    Generic validated append for any single-row action.

    CONVERT_BOX_TO_PACKS writes two rows and goes through convert_box_to_packs.

    Raises:
        PermissionDeniedError: role lacks the action's permission
        ValidationError: rule violation (InsufficientInventoryError for stock)
        NotFoundError: unknown product, location or vendor
    """
    if action not in MovementAction.ALL:
        raise ValidationError(f"unknown action: {action}")
    require_permission(actor, ACTION_PERMISSIONS[action])
    if action == MovementAction.CONVERT_BOX_TO_PACKS:
        raise ValidationError("CONVERT_BOX_TO_PACKS must be recorded with convert_box_to_packs")

    def _op():
        return _append_checked(
            actor,
            action=action,
            product_id=product_id,
            unit_type=unit_type,
            quantity=quantity,
            from_location_id=from_location_id,
            to_location_id=to_location_id,
            vendor_id=vendor_id,
            cost_per_box_cents=cost_per_box_cents,
            price_snapshot_cents=price_snapshot_cents,
            adjustment_reason=adjustment_reason,
            notes=notes,
            barcode_scanned=barcode_scanned,
            performed_at=performed_at,
        )

    movement = run_in_transaction(_op)
    _log_movement(movement)
    return movement


def receive_inventory(
    actor: Actor,
    *,
    product_id: int,
    quantity: int,
    to_location_id: int,
    vendor_id: int,
    cost_per_box_cents: int,
    notes: str | None = None,
    barcode_scanned: str | None = None,
    performed_at=None,
):
    """Boxes arriving from a vendor into STORAGE."""
    return append_movement(
        actor,
        action=MovementAction.RECEIVE,
        product_id=product_id,
        unit_type=UnitType.BOX,
        quantity=quantity,
        to_location_id=to_location_id,
        vendor_id=vendor_id,
        cost_per_box_cents=cost_per_box_cents,
        notes=notes,
        barcode_scanned=barcode_scanned,
        performed_at=performed_at,
    )


def transfer_inventory(
    actor: Actor,
    *,
    action: str,
    product_id: int,
    unit_type: str,
    quantity: int,
    from_location_id: int,
    to_location_id: int,
    notes: str | None = None,
    barcode_scanned: str | None = None,
    performed_at=None,
):
    """PUT_ON_SHELF, TAKE_OFF_SHELF, DELIVER_TO_STORE or RETURN_FROM_STORE."""
    if action not in MovementAction.TRANSFERS:
        raise ValidationError(f"transfer action must be one of {', '.join(MovementAction.TRANSFERS)}")
    if from_location_id is None or to_location_id is None:
        raise ValidationError("from_location_id and to_location_id are required")
    return append_movement(
        actor,
        action=action,
        product_id=product_id,
        unit_type=unit_type,
        quantity=quantity,
        from_location_id=from_location_id,
        to_location_id=to_location_id,
        notes=notes,
        barcode_scanned=barcode_scanned,
        performed_at=performed_at,
    )


def record_sale(
    actor: Actor,
    *,
    product_id: int,
    unit_type: str,
    quantity: int,
    from_location_id: int,
    price_per_unit_cents: int,
    notes: str | None = None,
    barcode_scanned: str | None = None,
    performed_at=None,
):
    """
    Retail sale of packs or boxes; the row keeps the total amount.

    The action follows the unit type: PACK -> SALE_RETAIL_PACK, BOX -> SALE_RETAIL_BOX.
    """
    if unit_type not in UnitType.ALL:
        raise ValidationError(f"unit_type must be one of {', '.join(UnitType.ALL)}")
    enforce_money_cents(price_per_unit_cents, "price_per_unit_cents")
    if price_per_unit_cents is None:
        raise ValidationError("price_per_unit_cents is required")
    enforce_positive_quantity(quantity)

    action = MovementAction.SALE_RETAIL_PACK if unit_type == UnitType.PACK else MovementAction.SALE_RETAIL_BOX
    return append_movement(
        actor,
        action=action,
        product_id=product_id,
        unit_type=unit_type,
        quantity=quantity,
        from_location_id=from_location_id,
        price_snapshot_cents=price_per_unit_cents * quantity,
        notes=notes,
        barcode_scanned=barcode_scanned,
        performed_at=performed_at,
    )


def create_adjustment(
    actor: Actor,
    *,
    product_id: int,
    unit_type: str,
    quantity: int,
    direction: str,
    location_id: int,
    reason: str,
    notes: str | None = None,
    performed_at=None,
):
    """
    Manager correction. ADD credits location_id, REMOVE debits it.

    The acting manager is recorded as both performer and approver.
    """
    if direction not in AdjustmentDirection.ALL:
        raise ValidationError(f"direction must be one of {', '.join(AdjustmentDirection.ALL)}")
    if location_id is None:
        raise ValidationError("location_id is required")
    return append_movement(
        actor,
        action=MovementAction.ADJUSTMENT,
        product_id=product_id,
        unit_type=unit_type,
        quantity=quantity,
        from_location_id=location_id if direction == AdjustmentDirection.REMOVE else None,
        to_location_id=location_id if direction == AdjustmentDirection.ADD else None,
        adjustment_reason=reason,
        notes=notes,
        performed_at=performed_at,
    )


def convert_box_to_packs(
    actor: Actor,
    *,
    product_id: int,
    box_quantity: int,
    location_id: int,
    barcode_scanned: str | None = None,
    performed_at=None,
) -> dict:
    """
    Open boxes into packs at one STORAGE or SHELF location.

    Writes two rows in one transaction:
    - BOX row, from=location, quantity=box_quantity
    - PACK row, to=location, quantity=box_quantity * packs_per_box,
      linked_movement_id -> BOX row

    Returns {box_movement_id, pack_movement_id, packs_created}.
    """
    require_permission(actor, ACTION_PERMISSIONS[MovementAction.CONVERT_BOX_TO_PACKS])

    def _op():
        enforce_positive_quantity(box_quantity, "box_quantity")
        product = get_product(product_id, require_active=True, lock=True)
        location = get_location(location_id, require_active=True)
        validate_location_kinds(MovementAction.CONVERT_BOX_TO_PACKS, location.kind, location.kind)

        boxes = on_hand(product.id, UnitType.BOX, location.id)
        if boxes < box_quantity:
            raise InsufficientInventoryError(
                f"Only {boxes} boxes on hand. Cannot convert {box_quantity}.",
                on_hand=boxes,
                requested=box_quantity,
            )

        performed = _resolve_performed_at(performed_at)
        packs_created = box_quantity * product.packs_per_box

        box_row = ledger_service.append_movement(
            action=MovementAction.CONVERT_BOX_TO_PACKS,
            product_id=product.id,
            unit_type=UnitType.BOX,
            quantity=box_quantity,
            from_location_id=location.id,
            performed_by_user_id=actor.user_id,
            barcode_scanned=(barcode_scanned or "").strip() or None,
            performed_at=performed,
        )
        pack_row = ledger_service.append_movement(
            action=MovementAction.CONVERT_BOX_TO_PACKS,
            product_id=product.id,
            unit_type=UnitType.PACK,
            quantity=packs_created,
            to_location_id=location.id,
            linked_movement_id=box_row.id,
            performed_by_user_id=actor.user_id,
            performed_at=performed,
        )
        return {
            "box_movement_id": box_row.id,
            "pack_movement_id": pack_row.id,
            "packs_created": packs_created,
        }

    result = run_in_transaction(_op)
    current_app.logger.info(
        "boxes converted: product_id=%s location_id=%s boxes=%s packs=%s user=%s",
        product_id,
        location_id,
        box_quantity,
        result["packs_created"],
        actor.user_id,
    )
    return result
