# Overview: Persistence for the append-only movement ledger.

"""
Movement ledger persistence.

WHY THIS MODULE EXISTS:
The ledger is the single source of truth for quantities. This module only
persists and reads rows; every rule that decides whether a row may be
written lives in movement_rules / movement_service.

CONTRACT:
- append_movement: add one row, flush, return it. No commit; the caller's
  transaction decides.
- mark_reversed: the single post-creation mutation (reversed_by_id, once).
- No update or delete functions exist. The Movement mapper events reject both.
"""
from __future__ import annotations

from datetime import datetime

from ..extensions import db
from ..models import Movement
from ..validation import ConflictError


def append_movement(**fields) -> Movement:
    """Insert one ledger row inside the current transaction and return it."""
    movement = Movement(**fields)
    db.session.add(movement)
    db.session.flush()
    return movement


def mark_reversed(original: Movement, reversal: Movement) -> None:
    if original.reversed_by_id is not None:
        raise ConflictError("Movement already reversed")
    original.reversed_by_id = reversal.id
    db.session.flush()


def counting_movements(
    *,
    product_id: int | None = None,
    unit_type: str | None = None,
    location_id: int | None = None,
    store_id: int | None = None,
    actions: tuple[str, ...] | list[str] | None = None,
    performed_from: datetime | None = None,
    performed_before: datetime | None = None,
):
    """
    Query of ledger rows that count toward projections.

    Reversed originals and reversal rows are both excluded.
    performed_from is inclusive; performed_before is exclusive.
    """
    query = db.session.query(Movement).filter(
        Movement.reversed_by_id.is_(None),
        Movement.is_reversal.is_(False),
    )
    if product_id is not None:
        query = query.filter(Movement.product_id == product_id)
    if unit_type is not None:
        query = query.filter(Movement.unit_type == unit_type)
    if location_id is not None:
        query = query.filter(
            db.or_(
                Movement.to_location_id == location_id,
                Movement.from_location_id == location_id,
            )
        )
    if store_id is not None:
        query = query.filter(Movement.store_id == store_id)
    if actions:
        query = query.filter(Movement.action.in_(actions))
    if performed_from is not None:
        query = query.filter(Movement.performed_at >= performed_from)
    if performed_before is not None:
        query = query.filter(Movement.performed_at < performed_before)
    return query


def list_movements(
    *,
    action: str | None = None,
    product_id: int | None = None,
    location_id: int | None = None,
    store_id: int | None = None,
    limit: int = 50,
    offset: int = 0,
) -> tuple[list[Movement], int]:
    """Full history (reversals included), newest first, with the unpaged total."""
    query = db.session.query(Movement)
    if action:
        query = query.filter(Movement.action == action)
    if product_id is not None:
        query = query.filter(Movement.product_id == product_id)
    if location_id is not None:
        query = query.filter(
            db.or_(
                Movement.to_location_id == location_id,
                Movement.from_location_id == location_id,
            )
        )
    if store_id is not None:
        query = query.filter(Movement.store_id == store_id)

    total = query.count()
    rows = (
        query.order_by(Movement.performed_at.desc(), Movement.id.desc())
        .offset(max(offset, 0))
        .limit(max(min(limit, 500), 1))
        .all()
    )
    return rows, total
