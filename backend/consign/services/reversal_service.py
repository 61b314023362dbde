# Overview: Compensating ledger entries for mistaken movements.

"""
Movement reversal.

A reversal is a new ledger row that mirrors the original with from/to swapped.
The original gets reversed_by_id set, the one mutation the ledger allows.
Both writes happen in one transaction.

RULES:
- A movement can be reversed at most once ("Movement already reversed").
- A reversal row can never be reversed ("Cannot reverse a reversal").
- Reversing one row of a conversion pair does not touch its partner.

Both rows stay in history; projections skip both.
"""
from __future__ import annotations

from flask import current_app

from ..validation import ConflictError, require_text
from . import ledger_service
from .concurrency import run_in_transaction
from .lookups import get_movement
from .permission_service import Actor, require_permission


def reverse_movement(actor: Actor, movement_id: int, reason: str):
    """
    Reverse one movement and return the new reversal row.

    Raises:
        PermissionDeniedError: actor may not reverse movements
        NotFoundError: unknown movement
        ConflictError: already reversed, or target is a reversal
        ValidationError: blank reason
    """
    require_permission(actor, "REVERSE_MOVEMENT")

    def _op():
        clean_reason = require_text(reason, "reason")
        original = get_movement(movement_id, lock=True)

        if original.reversed_by_id is not None:
            raise ConflictError("Movement already reversed")
        if original.is_reversal:
            raise ConflictError("Cannot reverse a reversal")

        reversal = ledger_service.append_movement(
            action=original.action,
            product_id=original.product_id,
            unit_type=original.unit_type,
            quantity=original.quantity,
            from_location_id=original.to_location_id,
            to_location_id=original.from_location_id,
            vendor_id=original.vendor_id,
            store_id=original.store_id,
            cost_per_box_cents=original.cost_per_box_cents,
            price_snapshot_cents=original.price_snapshot_cents,
            performed_by_user_id=actor.user_id,
            notes=f"REVERSAL: {clean_reason}",
            is_reversal=True,
            reverses_id=original.id,
        )
        ledger_service.mark_reversed(original, reversal)
        return reversal

    reversal = run_in_transaction(_op)
    current_app.logger.info(
        "movement reversed: id=%s reversal_id=%s user=%s",
        movement_id,
        reversal.id,
        actor.user_id,
    )
    return reversal
