"""
Alert scan (negative, low stock, overdue payments), dedup and status transitions.
"""

from datetime import timedelta

import pytest

from consign.models import Alert, AlertSeverity, AlertStatus, AlertType, MovementAction, UnitType
from consign.services import alert_service, ledger_service, location_service, movement_service, payment_service
from consign.services.permission_service import PermissionDeniedError
from consign.time_utils import utcnow
from consign.validation import ConflictError, ValidationError

from conftest import deliver


def _force_negative(db_session, manager, product, location, quantity):
    """Write a depleting row straight to the ledger, skipping the stock check."""
    ledger_service.append_movement(
        action=MovementAction.ADJUSTMENT,
        product_id=product.id,
        unit_type=UnitType.BOX,
        quantity=quantity,
        from_location_id=location.id,
        adjustment_reason="test setup",
        approved_by_user_id=manager.user_id,
        performed_by_user_id=manager.user_id,
        performed_at=utcnow(),
    )
    db_session.commit()


def _receive(actor, product, storage, vendor, quantity):
    return movement_service.receive_inventory(
        actor,
        product_id=product.id,
        quantity=quantity,
        to_location_id=storage.id,
        vendor_id=vendor.id,
        cost_per_box_cents=1200,
    )


# =============================================================================
# SCAN
# =============================================================================

class TestNegativeInventory:

    def test_negative_on_hand_raises_critical_alert(self, db_session, manager, product, shelf):
        _force_negative(db_session, manager, product, shelf, 2)

        created = alert_service.run_alert_scan()
        assert created == {
            AlertType.NEGATIVE_INVENTORY: 1,
            AlertType.LOW_STOCK: 0,
            AlertType.PAYMENT_OVERDUE: 0,
        }

        alert = Alert.query.one()
        assert alert.severity == AlertSeverity.CRITICAL
        assert alert.status == AlertStatus.OPEN
        assert alert.product_id == product.id
        assert alert.location_id == shelf.id
        assert alert.title == "Negative inventory: Gummy Bears at Shelf A"
        assert alert.description.startswith("On-hand is -2 BOX.")

    def test_worsening_figure_does_not_realert(self, db_session, manager, product, shelf):
        _force_negative(db_session, manager, product, shelf, 2)
        alert_service.run_alert_scan()
        _force_negative(db_session, manager, product, shelf, 3)
        created = alert_service.run_alert_scan()
        assert created[AlertType.NEGATIVE_INVENTORY] == 0
        assert Alert.query.count() == 1


class TestLowStock:

    def test_threshold_is_inclusive(self, manager, product, storage, vendor):
        _receive(manager, product, storage, vendor, 5)
        created = alert_service.run_alert_scan(low_stock_threshold=5)
        assert created[AlertType.LOW_STOCK] == 1

        alert = Alert.query.filter_by(alert_type=AlertType.LOW_STOCK).one()
        assert alert.severity == AlertSeverity.WARNING
        assert alert.title == "Low stock: Gummy Bears (5 boxes left)"

    def test_above_threshold_is_quiet(self, manager, product, storage, vendor):
        _receive(manager, product, storage, vendor, 6)
        assert alert_service.run_alert_scan(low_stock_threshold=5)[AlertType.LOW_STOCK] == 0

    def test_empty_storage_counts_as_low(self, manager, staff, product, storage, shelf, vendor):
        _receive(manager, product, storage, vendor, 4)
        movement_service.transfer_inventory(
            staff,
            action=MovementAction.PUT_ON_SHELF,
            product_id=product.id,
            unit_type=UnitType.BOX,
            quantity=4,
            from_location_id=storage.id,
            to_location_id=shelf.id,
        )
        created = alert_service.run_alert_scan(low_stock_threshold=2)
        # storage sits at 0; the shelf is never checked for low stock
        assert created[AlertType.LOW_STOCK] == 1
        assert Alert.query.one().location_id == storage.id

    def test_resolved_alert_allows_a_new_one(self, manager, product, storage, vendor):
        _receive(manager, product, storage, vendor, 1)
        alert_service.run_alert_scan()
        assert alert_service.run_alert_scan()[AlertType.LOW_STOCK] == 0

        alert = Alert.query.one()
        alert_service.update_alert_status(manager, alert.id, AlertStatus.RESOLVED)
        assert alert_service.run_alert_scan()[AlertType.LOW_STOCK] == 1
        assert Alert.query.count() == 2

    def test_acknowledged_alert_still_blocks(self, manager, product, storage, vendor):
        _receive(manager, product, storage, vendor, 1)
        alert_service.run_alert_scan()
        alert_service.update_alert_status(manager, Alert.query.one().id, AlertStatus.ACKNOWLEDGED)
        assert alert_service.run_alert_scan()[AlertType.LOW_STOCK] == 0


class TestPaymentOverdue:

    def test_store_with_deliveries_and_no_payment(self, staff, stocked, product, storage, store, store_location):
        deliver(staff, product, storage, store_location, 3)
        created = alert_service.run_alert_scan()
        assert created[AlertType.PAYMENT_OVERDUE] == 1

        alert = Alert.query.filter_by(alert_type=AlertType.PAYMENT_OVERDUE).one()
        assert alert.store_id == store.id
        assert alert.title == "Payment overdue: Corner Market"
        assert alert.description == "No payments on record for this store."

    def test_recent_payment_is_quiet(self, staff, stocked, product, storage, store, store_location):
        deliver(staff, product, storage, store_location, 3)
        today = utcnow().date()
        payment_service.record_payment(staff, store_id=store.id, amount_cents=500, payment_date=today)
        assert alert_service.run_alert_scan(overdue_days=14, today=today)[AlertType.PAYMENT_OVERDUE] == 0

    def test_old_payment_is_overdue(self, staff, stocked, product, storage, store, store_location):
        deliver(staff, product, storage, store_location, 3)
        today = utcnow().date()
        payment_service.record_payment(
            staff, store_id=store.id, amount_cents=500, payment_date=today - timedelta(days=20)
        )
        created = alert_service.run_alert_scan(overdue_days=14, today=today)
        assert created[AlertType.PAYMENT_OVERDUE] == 1
        alert = Alert.query.filter_by(alert_type=AlertType.PAYMENT_OVERDUE).one()
        assert alert.description.startswith("Last payment was 20 days ago")

    def test_store_without_deliveries_is_skipped(self, store):
        assert alert_service.run_alert_scan()[AlertType.PAYMENT_OVERDUE] == 0

    def test_inactive_store_is_skipped(self, manager, staff, stocked, product, storage, store, store_location):
        deliver(staff, product, storage, store_location, 3)
        location_service.set_store_active(manager, store.id, False)
        assert alert_service.run_alert_scan()[AlertType.PAYMENT_OVERDUE] == 0


# =============================================================================
# STATUS TRANSITIONS
# =============================================================================

@pytest.fixture
def open_alert(db_session, store):
    alert = alert_service.create_alert(
        alert_type=AlertType.PAYMENT_OVERDUE,
        severity=AlertSeverity.WARNING,
        title="Payment overdue: Corner Market",
        store_id=store.id,
    )
    db_session.commit()
    return alert


class TestTransitions:

    def test_acknowledge_then_resolve(self, manager, open_alert):
        alert = alert_service.update_alert_status(manager, open_alert.id, AlertStatus.ACKNOWLEDGED)
        assert alert.status == AlertStatus.ACKNOWLEDGED
        assert alert.acknowledged_by_user_id == manager.user_id
        assert alert.acknowledged_at is not None

        alert = alert_service.update_alert_status(manager, open_alert.id, AlertStatus.RESOLVED)
        assert alert.status == AlertStatus.RESOLVED
        assert alert.resolved_by_user_id == manager.user_id
        assert alert.resolved_at is not None

    def test_resolve_directly(self, manager, open_alert):
        alert = alert_service.update_alert_status(manager, open_alert.id, AlertStatus.RESOLVED)
        assert alert.status == AlertStatus.RESOLVED
        assert alert.acknowledged_at is None

    @pytest.mark.parametrize("path", [
        (AlertStatus.OPEN,),
        (AlertStatus.ACKNOWLEDGED, AlertStatus.ACKNOWLEDGED),
        (AlertStatus.ACKNOWLEDGED, AlertStatus.OPEN),
        (AlertStatus.RESOLVED, AlertStatus.OPEN),
        (AlertStatus.RESOLVED, AlertStatus.ACKNOWLEDGED),
        (AlertStatus.RESOLVED, AlertStatus.RESOLVED),
    ])
    def test_backward_or_repeated_moves_rejected(self, manager, open_alert, path):
        *allowed, last = path
        for status in allowed:
            alert_service.update_alert_status(manager, open_alert.id, status)
        with pytest.raises(ConflictError, match="cannot move alert"):
            alert_service.update_alert_status(manager, open_alert.id, last)

    def test_unknown_status(self, manager, open_alert):
        with pytest.raises(ValidationError):
            alert_service.update_alert_status(manager, open_alert.id, "SNOOZED")

    def test_staff_cannot_change_status(self, staff, open_alert):
        with pytest.raises(PermissionDeniedError):
            alert_service.update_alert_status(staff, open_alert.id, AlertStatus.RESOLVED)


class TestListAlerts:

    def test_filters(self, db_session, manager, store, product, shelf, open_alert):
        _force_negative(db_session, manager, product, shelf, 1)
        alert_service.run_alert_scan()

        assert len(alert_service.list_alerts()) == 2
        assert [a.alert_type for a in alert_service.list_alerts(alert_type=AlertType.NEGATIVE_INVENTORY)] == [
            AlertType.NEGATIVE_INVENTORY
        ]
        assert [a.id for a in alert_service.list_alerts(store_id=store.id)] == [open_alert.id]

        alert_service.update_alert_status(manager, open_alert.id, AlertStatus.RESOLVED)
        assert len(alert_service.list_alerts(status=list(AlertStatus.UNRESOLVED))) == 1

    def test_unknown_filter_values(self):
        with pytest.raises(ValidationError):
            alert_service.list_alerts(status="SNOOZED")
        with pytest.raises(ValidationError):
            alert_service.list_alerts(alert_type="FIRE")
