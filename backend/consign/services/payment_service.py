# Overview: Append-only store payment log.

from __future__ import annotations

from datetime import date

from flask import current_app

from ..extensions import db
from ..models import StorePayment
from ..validation import ValidationError, enforce_money_cents
from ..time_utils import parse_iso_date
from .concurrency import run_in_transaction
from .lookups import get_store
from .permission_service import Actor, require_permission


PAYMENT_METHODS = ("CASH", "CHECK", "CARD", "TRANSFER", "OTHER")


def record_payment(
    actor: Actor,
    *,
    store_id: int,
    amount_cents: int,
    payment_date,
    method: str | None = None,
    notes: str | None = None,
) -> StorePayment:
    """
    Record money collected from a store.

    Payments are never edited or deleted; a mistake is corrected with a
    manager adjustment outside this log.
    """
    require_permission(actor, "RECORD_PAYMENT")

    def _op():
        store = get_store(store_id)
        if amount_cents is None:
            raise ValidationError("amount_cents is required")
        enforce_money_cents(amount_cents, "amount_cents", allow_zero=False)
        try:
            paid_on = parse_iso_date(payment_date)
        except (TypeError, ValueError):
            raise ValidationError("payment_date must be an ISO-8601 date (YYYY-MM-DD)")

        clean_method = (method or "").strip().upper() or None
        if clean_method is not None and clean_method not in PAYMENT_METHODS:
            raise ValidationError(f"method must be one of {', '.join(PAYMENT_METHODS)}")

        payment = StorePayment(
            store_id=store.id,
            amount_cents=amount_cents,
            payment_date=paid_on,
            method=clean_method,
            notes=(notes or "").strip() or None,
            collected_by_user_id=actor.user_id,
        )
        db.session.add(payment)
        db.session.flush()
        return payment

    payment = run_in_transaction(_op)
    current_app.logger.info(
        "payment recorded: id=%s store_id=%s amount_cents=%s user=%s",
        payment.id,
        payment.store_id,
        payment.amount_cents,
        actor.user_id,
    )
    return payment


def list_payments(store_id: int) -> list[StorePayment]:
    get_store(store_id)
    return db.session.query(StorePayment).filter_by(store_id=store_id).order_by(
        StorePayment.payment_date.desc(),
        StorePayment.id.desc(),
    ).all()


def total_paid_cents(store_id: int) -> int:
    total = db.session.query(db.func.coalesce(db.func.sum(StorePayment.amount_cents), 0)).filter(
        StorePayment.store_id == store_id,
    ).scalar()
    return int(total or 0)


def last_payment_date(store_id: int) -> date | None:
    return db.session.query(db.func.max(StorePayment.payment_date)).filter(
        StorePayment.store_id == store_id,
    ).scalar()
