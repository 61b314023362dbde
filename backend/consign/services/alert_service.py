# Overview: Alert creation, the periodic alert scan, and status transitions.

"""
Alert engine.

SCAN (run_alert_scan), externally triggered, one run at a time:
- NEGATIVE_INVENTORY (CRITICAL): any (product, location) with on-hand < 0
- LOW_STOCK (WARNING): BOX on-hand in [0, LOW_STOCK_THRESHOLD] at STORAGE locations
- PAYMENT_OVERDUE (WARNING): active store with at least one counted delivery
  whose last payment is older than PAYMENT_OVERDUE_DAYS, or missing

DEDUP:
A scan alert is skipped while an OPEN or ACKNOWLEDGED alert of the same type
exists for the same (product, location), or the same store for
PAYMENT_OVERDUE. Dedup is by open-state existence only; a worsening figure
does not re-alert.

Count-submission alerts (SHRINKAGE_DETECTED, RECONCILIATION_MISMATCH) are
created directly by reconciliation_service with no dedup.

TRANSITIONS:
OPEN -> ACKNOWLEDGED -> RESOLVED, or OPEN -> RESOLVED. Never backwards.
"""
from __future__ import annotations

from datetime import date, timedelta

from flask import current_app

from ..extensions import db
from ..models import Alert, AlertSeverity, AlertStatus, AlertType, Movement, MovementAction, Store
from ..time_utils import utcnow
from ..validation import ConflictError, ValidationError
from .concurrency import run_in_transaction
from .inventory_service import find_low_stock, find_negative_inventory
from .lookups import get_alert
from .payment_service import last_payment_date
from .permission_service import Actor, require_permission


ALLOWED_TRANSITIONS = {
    AlertStatus.OPEN: (AlertStatus.ACKNOWLEDGED, AlertStatus.RESOLVED),
    AlertStatus.ACKNOWLEDGED: (AlertStatus.RESOLVED,),
    AlertStatus.RESOLVED: (),
}


def create_alert(
    *,
    alert_type: str,
    severity: str,
    title: str,
    description: str | None = None,
    product_id: int | None = None,
    store_id: int | None = None,
    location_id: int | None = None,
) -> Alert:
    """Add an OPEN alert to the current transaction (no commit)."""
    if alert_type not in AlertType.ALL:
        raise ValidationError(f"unknown alert type: {alert_type}")
    alert = Alert(
        alert_type=alert_type,
        severity=severity,
        title=title[:255],
        description=description,
        product_id=product_id,
        store_id=store_id,
        location_id=location_id,
        status=AlertStatus.OPEN,
    )
    db.session.add(alert)
    db.session.flush()
    return alert


def has_unresolved_alert(alert_type: str, **refs) -> bool:
    query = db.session.query(Alert.id).filter(
        Alert.alert_type == alert_type,
        Alert.status.in_(AlertStatus.UNRESOLVED),
    )
    for column, value in refs.items():
        query = query.filter(getattr(Alert, column) == value)
    return query.first() is not None


def _scan_negative_inventory() -> int:
    created = 0
    for row in find_negative_inventory():
        if has_unresolved_alert(
            AlertType.NEGATIVE_INVENTORY,
            product_id=row["product_id"],
            location_id=row["location_id"],
        ):
            continue
        create_alert(
            alert_type=AlertType.NEGATIVE_INVENTORY,
            severity=AlertSeverity.CRITICAL,
            title=f"Negative inventory: {row['product_name']} at {row['location_name']}",
            description=(
                f"On-hand is {row['on_hand']} {row['unit_type']}. "
                "Likely data entry error or unlogged movement."
            ),
            product_id=row["product_id"],
            location_id=row["location_id"],
        )
        created += 1
    return created


def _scan_low_stock(threshold: int) -> int:
    created = 0
    for row in find_low_stock(threshold):
        if has_unresolved_alert(
            AlertType.LOW_STOCK,
            product_id=row["product_id"],
            location_id=row["location_id"],
        ):
            continue
        create_alert(
            alert_type=AlertType.LOW_STOCK,
            severity=AlertSeverity.WARNING,
            title=f"Low stock: {row['product_name']} ({row['on_hand']} boxes left)",
            description=(
                f"Only {row['on_hand']} boxes remaining at {row['location_name']}. "
                "Consider reordering."
            ),
            product_id=row["product_id"],
            location_id=row["location_id"],
        )
        created += 1
    return created


def _scan_overdue_payments(overdue_days: int, today: date) -> int:
    cutoff = today - timedelta(days=overdue_days)
    created = 0

    stores = db.session.query(Store).filter(Store.is_active.is_(True)).order_by(Store.id.asc()).all()
    for store in stores:
        has_delivery = db.session.query(Movement.id).filter(
            Movement.store_id == store.id,
            Movement.action == MovementAction.DELIVER_TO_STORE,
            Movement.reversed_by_id.is_(None),
            Movement.is_reversal.is_(False),
        ).first() is not None
        if not has_delivery:
            continue

        last_payment = last_payment_date(store.id)
        if last_payment is not None and last_payment >= cutoff:
            continue
        if has_unresolved_alert(AlertType.PAYMENT_OVERDUE, store_id=store.id):
            continue

        if last_payment is None:
            description = "No payments on record for this store."
        else:
            days_since = (today - last_payment).days
            description = f"Last payment was {days_since} days ago on {last_payment.isoformat()}."

        create_alert(
            alert_type=AlertType.PAYMENT_OVERDUE,
            severity=AlertSeverity.WARNING,
            title=f"Payment overdue: {store.name}",
            description=description,
            store_id=store.id,
        )
        created += 1
    return created


def run_alert_scan(
    *,
    low_stock_threshold: int | None = None,
    overdue_days: int | None = None,
    today: date | None = None,
) -> dict:
    """
    Run all scan checks in one transaction.

    Thresholds default to LOW_STOCK_THRESHOLD / PAYMENT_OVERDUE_DAYS from config.
    Returns the number of alerts created per type.
    """
    if low_stock_threshold is None:
        low_stock_threshold = current_app.config.get("LOW_STOCK_THRESHOLD", 5)
    if overdue_days is None:
        overdue_days = current_app.config.get("PAYMENT_OVERDUE_DAYS", 14)
    if today is None:
        today = utcnow().date()

    def _op():
        return {
            AlertType.NEGATIVE_INVENTORY: _scan_negative_inventory(),
            AlertType.LOW_STOCK: _scan_low_stock(low_stock_threshold),
            AlertType.PAYMENT_OVERDUE: _scan_overdue_payments(overdue_days, today),
        }

    results = run_in_transaction(_op)
    current_app.logger.info(
        "alert scan finished: negative=%s low_stock=%s overdue=%s",
        results[AlertType.NEGATIVE_INVENTORY],
        results[AlertType.LOW_STOCK],
        results[AlertType.PAYMENT_OVERDUE],
    )
    return results


def update_alert_status(actor: Actor, alert_id: int, new_status: str) -> Alert:
    """
    Move an alert forward and stamp who did it.

    Raises:
        ValidationError: unknown status
        ConflictError: transition not allowed (backwards, repeated, or from RESOLVED)
    """
    require_permission(actor, "MANAGE_ALERTS")
    if new_status not in AlertStatus.ALL:
        raise ValidationError(f"status must be one of {', '.join(AlertStatus.ALL)}")

    def _op():
        alert = get_alert(alert_id, lock=True)
        if new_status not in ALLOWED_TRANSITIONS[alert.status]:
            raise ConflictError(f"cannot move alert from {alert.status} to {new_status}")

        now = utcnow()
        alert.status = new_status
        if new_status == AlertStatus.ACKNOWLEDGED:
            alert.acknowledged_by_user_id = actor.user_id
            alert.acknowledged_at = now
        elif new_status == AlertStatus.RESOLVED:
            alert.resolved_by_user_id = actor.user_id
            alert.resolved_at = now
        return alert

    alert = run_in_transaction(_op)
    current_app.logger.info("alert %s -> %s by user=%s", alert.id, new_status, actor.user_id)
    return alert


def list_alerts(
    *,
    status: str | list[str] | None = None,
    alert_type: str | None = None,
    store_id: int | None = None,
    limit: int = 100,
) -> list[Alert]:
    query = db.session.query(Alert)
    if status:
        statuses = [status] if isinstance(status, str) else list(status)
        unknown = [s for s in statuses if s not in AlertStatus.ALL]
        if unknown:
            raise ValidationError(f"unknown alert status: {', '.join(unknown)}")
        query = query.filter(Alert.status.in_(statuses))
    if alert_type:
        if alert_type not in AlertType.ALL:
            raise ValidationError(f"unknown alert type: {alert_type}")
        query = query.filter(Alert.alert_type == alert_type)
    if store_id is not None:
        query = query.filter(Alert.store_id == store_id)
    return query.order_by(Alert.created_at.desc(), Alert.id.desc()).limit(max(min(limit, 500), 1)).all()
