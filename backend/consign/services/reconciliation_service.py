# Overview: Store count submission, period arithmetic, and store balances.

"""
Store reconciliation.

PERIOD ARITHMETIC (per store, product, count date D):
    previous      = latest count with count_date < D, else remaining=0 and no date
    window        = [midnight after previous day, midnight after D); open-ended
                    at the start when there is no previous count
    delivered     = sum of counted BOX DELIVER_TO_STORE rows in window
    returned      = sum of counted BOX RETURN_FROM_STORE rows in window
    expected_max  = previous.remaining + delivered - returned
    boxes_sold    = expected_max - counted      (may be negative)
    amount_owed   = max(boxes_sold, 0) * price

ANOMALIES at submission, checked independently, no dedup:
- counted > expected_max -> RECONCILIATION_MISMATCH
- boxes_sold < 0         -> SHRINKAGE_DETECTED

PRICING MODE (RECONCILIATION_PRICING):
- CURRENT: live override-aware wholesale price at computation time.
  Price changes alter historical balances.
- DELIVERY_SNAPSHOT: quantity-weighted mean price_snapshot of the period's
  deliveries; if the period has none, the latest earlier delivery snapshot;
  if there is none either, the live price.

Balances are summed in integer cents and converted to 2-decimal Decimal only
when returned.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal, ROUND_HALF_UP

from flask import current_app

from ..extensions import db
from ..models import Movement, MovementAction, Product, StoreCount, UnitType, AlertSeverity, AlertType
from ..time_utils import end_of_day, parse_iso_date
from ..validation import ConflictError, ValidationError
from . import ledger_service
from .alert_service import create_alert
from .concurrency import run_in_transaction
from .lookups import get_product, get_store
from .payment_service import total_paid_cents
from .permission_service import Actor, require_permission
from .pricing_service import wholesale_price_cents
from .projections import sum_quantity, weighted_price_snapshot


class PricingMode:
    CURRENT = "CURRENT"
    DELIVERY_SNAPSHOT = "DELIVERY_SNAPSHOT"

    ALL = (CURRENT, DELIVERY_SNAPSHOT)


@dataclass(frozen=True)
class PeriodResult:
    product_id: int
    count_date: date
    previous_date: date | None
    previous_remaining: int
    delivered: int
    returned: int
    counted: int
    price_cents: int | None

    @property
    def expected_max(self) -> int:
        return self.previous_remaining + self.delivered - self.returned

    @property
    def boxes_sold(self) -> int:
        return self.expected_max - self.counted

    @property
    def amount_owed_cents(self) -> int:
        if self.boxes_sold <= 0:
            return 0
        return self.boxes_sold * self.price_cents

    @property
    def is_mismatch(self) -> bool:
        return self.counted > self.expected_max

    @property
    def is_shrinkage(self) -> bool:
        return self.boxes_sold < 0

    @property
    def has_anomaly(self) -> bool:
        return self.is_mismatch or self.is_shrinkage


def cents_to_decimal(cents: int) -> Decimal:
    return (Decimal(cents) / Decimal(100)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def _pricing_mode(pricing_mode: str | None) -> str:
    mode = (pricing_mode or current_app.config.get("RECONCILIATION_PRICING") or PricingMode.CURRENT).upper()
    if mode not in PricingMode.ALL:
        raise ValidationError(f"RECONCILIATION_PRICING must be one of {', '.join(PricingMode.ALL)}")
    return mode


def _snapshot_price(store_id: int, product_id: int, deliveries: list[Movement], window_start) -> int:
    price = weighted_price_snapshot(deliveries)
    if price is not None:
        return price
    if window_start is None:
        return wholesale_price_cents(product_id, store_id)

    earlier = ledger_service.counting_movements(
        store_id=store_id,
        product_id=product_id,
        unit_type=UnitType.BOX,
        actions=(MovementAction.DELIVER_TO_STORE,),
        performed_before=window_start,
    ).filter(Movement.price_snapshot_cents.isnot(None)).order_by(
        Movement.performed_at.desc(),
        Movement.id.desc(),
    ).first()
    if earlier is not None:
        return earlier.price_snapshot_cents

    return wholesale_price_cents(product_id, store_id)


def compute_period(
    *,
    store_id: int,
    product_id: int,
    count_date: date,
    counted: int,
    previous_date: date | None = None,
    previous_remaining: int = 0,
    pricing_mode: str | None = None,
) -> PeriodResult:
    """Reconcile one count against the ledger since the previous count."""
    mode = _pricing_mode(pricing_mode)
    window_start = end_of_day(previous_date) if previous_date is not None else None
    window_end = end_of_day(count_date)

    rows = ledger_service.counting_movements(
        store_id=store_id,
        product_id=product_id,
        unit_type=UnitType.BOX,
        actions=(MovementAction.DELIVER_TO_STORE, MovementAction.RETURN_FROM_STORE),
        performed_from=window_start,
        performed_before=window_end,
    ).all()
    deliveries = [row for row in rows if row.action == MovementAction.DELIVER_TO_STORE]
    delivered = sum_quantity(rows, MovementAction.DELIVER_TO_STORE)
    returned = sum_quantity(rows, MovementAction.RETURN_FROM_STORE)

    # Price is only needed when something was sold
    price_cents = None
    if previous_remaining + delivered - returned - counted > 0:
        if mode == PricingMode.DELIVERY_SNAPSHOT:
            price_cents = _snapshot_price(store_id, product_id, deliveries, window_start)
        else:
            price_cents = wholesale_price_cents(product_id, store_id)

    return PeriodResult(
        product_id=product_id,
        count_date=count_date,
        previous_date=previous_date,
        previous_remaining=previous_remaining,
        delivered=delivered,
        returned=returned,
        counted=counted,
        price_cents=price_cents,
    )


def _previous_count(store_id: int, product_id: int, count_date: date) -> StoreCount | None:
    return db.session.query(StoreCount).filter(
        StoreCount.store_id == store_id,
        StoreCount.product_id == product_id,
        StoreCount.count_date < count_date,
    ).order_by(StoreCount.count_date.desc()).first()


def _clean_entries(entries) -> list[tuple[int, int]]:
    if not isinstance(entries, (list, tuple)) or not entries:
        raise ValidationError("entries must be a non-empty list")
    cleaned = []
    seen = set()
    for entry in entries:
        if not isinstance(entry, dict):
            raise ValidationError("each entry must be an object with product_id and boxes_remaining")
        product_id = entry.get("product_id")
        remaining = entry.get("boxes_remaining")
        if product_id is None:
            raise ValidationError("product_id is required")
        if not isinstance(remaining, int) or isinstance(remaining, bool) or remaining < 0:
            raise ValidationError("boxes_remaining must be an integer >= 0")
        if product_id in seen:
            raise ValidationError(f"product {product_id} appears more than once")
        seen.add(product_id)
        cleaned.append((product_id, remaining))
    return cleaned


def _raise_anomaly_alerts(store_id: int, result: PeriodResult) -> None:
    if result.is_mismatch:
        create_alert(
            alert_type=AlertType.RECONCILIATION_MISMATCH,
            severity=AlertSeverity.CRITICAL,
            title=f"Count exceeds expected: {result.counted} counted, max {result.expected_max}",
            description="Store count shows more boxes than ledger expects. Possible unlogged delivery.",
            product_id=result.product_id,
            store_id=store_id,
        )
    if result.is_shrinkage:
        create_alert(
            alert_type=AlertType.SHRINKAGE_DETECTED,
            severity=AlertSeverity.CRITICAL,
            title=f"Negative sales detected: {result.boxes_sold} boxes",
            description=(
                f"Expected max {result.expected_max} but counted {result.counted}. "
                f"Prev: {result.previous_remaining}, delivered: {result.delivered}, "
                f"returned: {result.returned}"
            ),
            product_id=result.product_id,
            store_id=store_id,
        )


def submit_store_count(
    actor: Actor,
    *,
    store_id: int,
    count_date,
    entries: list[dict],
    pricing_mode: str | None = None,
) -> list[dict]:
    """
    Persist a physical count and reconcile each entry.

    entries: [{"product_id": int, "boxes_remaining": int}, ...]

    All entries are written in one transaction together with any anomaly
    alerts. Returns one result per entry with boxes_sold, amount_owed and
    has_anomaly.

    Raises:
        ConflictError: a count already exists for (store, product, count_date)
        ValidationError: bad entries, or pricing missing for a product with sales
    """
    require_permission(actor, "SUBMIT_STORE_COUNT")
    cleaned = _clean_entries(entries)
    try:
        counted_on = parse_iso_date(count_date)
    except (TypeError, ValueError):
        raise ValidationError("count_date must be an ISO-8601 date (YYYY-MM-DD)")

    def _op():
        store = get_store(store_id, require_active=True)
        results = []
        for product_id, remaining in cleaned:
            product = get_product(product_id)

            duplicate = db.session.query(StoreCount.id).filter_by(
                store_id=store.id,
                product_id=product.id,
                count_date=counted_on,
            ).first()
            if duplicate is not None:
                raise ConflictError(
                    f"A count for {product.name} at {store.name} on {counted_on.isoformat()} already exists"
                )

            previous = _previous_count(store.id, product.id, counted_on)
            result = compute_period(
                store_id=store.id,
                product_id=product.id,
                count_date=counted_on,
                counted=remaining,
                previous_date=previous.count_date if previous is not None else None,
                previous_remaining=previous.boxes_remaining if previous is not None else 0,
                pricing_mode=pricing_mode,
            )
            _raise_anomaly_alerts(store.id, result)

            count = StoreCount(
                store_id=store.id,
                product_id=product.id,
                count_date=counted_on,
                boxes_remaining=remaining,
                counted_by_user_id=actor.user_id,
            )
            db.session.add(count)
            db.session.flush()

            results.append({
                "count_id": count.id,
                "product_id": product.id,
                "expected_max": result.expected_max,
                "boxes_sold": result.boxes_sold,
                "amount_owed_cents": result.amount_owed_cents,
                "amount_owed": cents_to_decimal(result.amount_owed_cents),
                "has_anomaly": result.has_anomaly,
            })
        return results

    results = run_in_transaction(_op)
    anomalies = [r["product_id"] for r in results if r["has_anomaly"]]
    current_app.logger.info(
        "store count submitted: store_id=%s date=%s entries=%s user=%s",
        store_id,
        counted_on.isoformat(),
        len(results),
        actor.user_id,
    )
    if anomalies:
        current_app.logger.warning(
            "store count anomalies: store_id=%s date=%s product_ids=%s",
            store_id,
            counted_on.isoformat(),
            anomalies,
        )
    return results


def replay_store_periods(store_id: int, *, pricing_mode: str | None = None) -> list[PeriodResult]:
    """Every count for the store, reconciled in (product, date) order."""
    mode = _pricing_mode(pricing_mode)
    counts = db.session.query(StoreCount).filter(StoreCount.store_id == store_id).order_by(
        StoreCount.product_id.asc(),
        StoreCount.count_date.asc(),
    ).all()

    periods = []
    previous = None
    for count in counts:
        if previous is not None and previous.product_id != count.product_id:
            previous = None
        periods.append(compute_period(
            store_id=store_id,
            product_id=count.product_id,
            count_date=count.count_date,
            counted=count.boxes_remaining,
            previous_date=previous.count_date if previous is not None else None,
            previous_remaining=previous.boxes_remaining if previous is not None else 0,
            pricing_mode=mode,
        ))
        previous = count
    return periods


def get_store_balance(store_id: int, *, pricing_mode: str | None = None) -> dict:
    """
    Recompute what a store owes from its full count history.

    Returns total_owed, total_paid and balance as 2-decimal Decimals, plus
    the same figures in cents.
    """
    store = get_store(store_id)
    owed = sum(p.amount_owed_cents for p in replay_store_periods(store.id, pricing_mode=pricing_mode))
    paid = total_paid_cents(store.id)
    return {
        "store_id": store.id,
        "total_owed_cents": owed,
        "total_paid_cents": paid,
        "balance_cents": owed - paid,
        "total_owed": cents_to_decimal(owed),
        "total_paid": cents_to_decimal(paid),
        "balance": cents_to_decimal(owed - paid),
    }


def get_count_sheet(store_id: int) -> dict:
    """
    Products to count at a store: every active product ever delivered there,
    with the last counted remaining and boxes delivered since that count.
    """
    store = get_store(store_id)
    product_ids = [
        row[0]
        for row in ledger_service.counting_movements(
            store_id=store.id,
            actions=(MovementAction.DELIVER_TO_STORE,),
        ).with_entities(Movement.product_id).distinct()
    ]
    if not product_ids:
        return {"store_id": store.id, "store_name": store.name, "products": []}

    products = db.session.query(Product).filter(
        Product.id.in_(product_ids),
        Product.is_active.is_(True),
    ).order_by(Product.name.asc()).all()

    sheet = []
    for product in products:
        last = db.session.query(StoreCount).filter_by(
            store_id=store.id,
            product_id=product.id,
        ).order_by(StoreCount.count_date.desc()).first()

        rows = ledger_service.counting_movements(
            store_id=store.id,
            product_id=product.id,
            unit_type=UnitType.BOX,
            actions=(MovementAction.DELIVER_TO_STORE,),
            performed_from=end_of_day(last.count_date) if last is not None else None,
        ).all()

        sheet.append({
            "product_id": product.id,
            "name": product.name,
            "variant": product.variant,
            "last_count_date": last.count_date.isoformat() if last is not None else None,
            "last_remaining": last.boxes_remaining if last is not None else None,
            "delivered_since": sum_quantity(rows, MovementAction.DELIVER_TO_STORE),
        })
    return {"store_id": store.id, "store_name": store.name, "products": sheet}


def list_store_counts(store_id: int, *, product_id: int | None = None) -> list[StoreCount]:
    get_store(store_id)
    query = db.session.query(StoreCount).filter(StoreCount.store_id == store_id)
    if product_id is not None:
        query = query.filter(StoreCount.product_id == product_id)
    return query.order_by(StoreCount.count_date.desc(), StoreCount.product_id.asc()).all()
