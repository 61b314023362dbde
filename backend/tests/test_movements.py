"""
Movement entry points: validation, snapshots, conversions and atomicity.
"""

from datetime import timedelta

import pytest
from sqlalchemy.exc import SQLAlchemyError

from consign.extensions import db
from consign.models import Movement, MovementAction, UnitType
from consign.services import (
    inventory_service,
    ledger_service,
    location_service,
    movement_service,
    products_service,
    vendor_service,
)
from consign.services.concurrency import TransactionFailedError
from consign.services.permission_service import PermissionDeniedError
from consign.time_utils import utcnow
from consign.validation import ConflictError, InsufficientInventoryError, NotFoundError, ValidationError

from conftest import WHOLESALE_CENTS, deliver


# =============================================================================
# RECEIVE
# =============================================================================

class TestReceive:

    def test_receive_adds_boxes_to_storage(self, staff, stocked, product, storage, vendor):
        movement_service.receive_inventory(
            staff,
            product_id=product.id,
            quantity=5,
            to_location_id=storage.id,
            vendor_id=vendor.id,
            cost_per_box_cents=1150,
            barcode_scanned=" 012345678905 ",
        )
        assert inventory_service.on_hand(product.id, UnitType.BOX, storage.id) == 55

        latest = Movement.query.order_by(Movement.id.desc()).first()
        assert latest.vendor_id == vendor.id
        assert latest.cost_per_box_cents == 1150
        assert latest.barcode_scanned == "012345678905"
        assert latest.store_id is None

    def test_receive_into_shelf_rejected(self, manager, product, shelf, vendor):
        with pytest.raises(ValidationError, match="destination must be STORAGE"):
            movement_service.receive_inventory(
                manager,
                product_id=product.id,
                quantity=1,
                to_location_id=shelf.id,
                vendor_id=vendor.id,
                cost_per_box_cents=1200,
            )

    def test_receive_requires_active_vendor(self, manager, product, storage, vendor):
        vendor_service.set_vendor_active(manager, vendor.id, False)
        with pytest.raises(ValidationError, match="inactive"):
            movement_service.receive_inventory(
                manager,
                product_id=product.id,
                quantity=1,
                to_location_id=storage.id,
                vendor_id=vendor.id,
                cost_per_box_cents=1200,
            )

    def test_receive_requires_cost(self, manager, product, storage, vendor):
        with pytest.raises(ValidationError, match="cost_per_box_cents is required"):
            movement_service.append_movement(
                manager,
                action=MovementAction.RECEIVE,
                product_id=product.id,
                unit_type=UnitType.BOX,
                quantity=1,
                to_location_id=storage.id,
                vendor_id=vendor.id,
            )

    def test_receive_packs_rejected(self, manager, product, storage, vendor):
        with pytest.raises(ValidationError, match="boxes"):
            movement_service.append_movement(
                manager,
                action=MovementAction.RECEIVE,
                product_id=product.id,
                unit_type=UnitType.PACK,
                quantity=1,
                to_location_id=storage.id,
                vendor_id=vendor.id,
                cost_per_box_cents=100,
            )

    def test_viewer_cannot_receive(self, viewer, product, storage, vendor):
        with pytest.raises(PermissionDeniedError):
            movement_service.receive_inventory(
                viewer,
                product_id=product.id,
                quantity=1,
                to_location_id=storage.id,
                vendor_id=vendor.id,
                cost_per_box_cents=1200,
            )
        assert Movement.query.count() == 0


# =============================================================================
# COMMON VALIDATION
# =============================================================================

class TestCommonValidation:

    @pytest.mark.parametrize("quantity", [0, -1, None])
    def test_quantity_must_be_positive(self, manager, product, storage, vendor, quantity):
        with pytest.raises(ValidationError, match="quantity must be > 0"):
            movement_service.receive_inventory(
                manager,
                product_id=product.id,
                quantity=quantity,
                to_location_id=storage.id,
                vendor_id=vendor.id,
                cost_per_box_cents=1200,
            )

    def test_inactive_product_rejected(self, manager, stocked, product, storage, shelf):
        products_service.set_product_active(manager, product.id, False)
        with pytest.raises(ValidationError, match="inactive"):
            movement_service.transfer_inventory(
                manager,
                action=MovementAction.PUT_ON_SHELF,
                product_id=product.id,
                unit_type=UnitType.BOX,
                quantity=1,
                from_location_id=storage.id,
                to_location_id=shelf.id,
            )

    def test_unknown_location(self, manager, stocked, product, storage):
        with pytest.raises(NotFoundError):
            movement_service.transfer_inventory(
                manager,
                action=MovementAction.PUT_ON_SHELF,
                product_id=product.id,
                unit_type=UnitType.BOX,
                quantity=1,
                from_location_id=storage.id,
                to_location_id=9999,
            )

    def test_future_performed_at_rejected(self, manager, stocked, product, storage, shelf):
        with pytest.raises(ValidationError, match="future"):
            movement_service.transfer_inventory(
                manager,
                action=MovementAction.PUT_ON_SHELF,
                product_id=product.id,
                unit_type=UnitType.BOX,
                quantity=1,
                from_location_id=storage.id,
                to_location_id=shelf.id,
                performed_at=utcnow() + timedelta(days=1),
            )

    def test_backdated_performed_at_kept(self, manager, stocked, product, storage, shelf):
        when = (utcnow() - timedelta(days=3)).replace(microsecond=0)
        movement = movement_service.transfer_inventory(
            manager,
            action=MovementAction.PUT_ON_SHELF,
            product_id=product.id,
            unit_type=UnitType.BOX,
            quantity=1,
            from_location_id=storage.id,
            to_location_id=shelf.id,
            performed_at=when.isoformat() + "Z",
        )
        assert movement.performed_at == when

    def test_transfer_only_accepts_transfer_actions(self, manager, product, storage, shelf):
        with pytest.raises(ValidationError, match="transfer action"):
            movement_service.transfer_inventory(
                manager,
                action=MovementAction.SALE_RETAIL_BOX,
                product_id=product.id,
                unit_type=UnitType.BOX,
                quantity=1,
                from_location_id=storage.id,
                to_location_id=shelf.id,
            )

    def test_generic_append_refuses_conversion(self, manager, stocked, product, storage):
        with pytest.raises(ValidationError, match="convert_box_to_packs"):
            movement_service.append_movement(
                manager,
                action=MovementAction.CONVERT_BOX_TO_PACKS,
                product_id=product.id,
                unit_type=UnitType.BOX,
                quantity=1,
                from_location_id=storage.id,
                to_location_id=storage.id,
            )


# =============================================================================
# TRANSFERS AND STOCK CHECK
# =============================================================================

class TestTransfers:

    def test_put_on_shelf_moves_stock(self, staff, stocked, product, storage, shelf):
        movement_service.transfer_inventory(
            staff,
            action=MovementAction.PUT_ON_SHELF,
            product_id=product.id,
            unit_type=UnitType.BOX,
            quantity=8,
            from_location_id=storage.id,
            to_location_id=shelf.id,
        )
        assert inventory_service.on_hand(product.id, UnitType.BOX, storage.id) == 42
        assert inventory_service.on_hand(product.id, UnitType.BOX, shelf.id) == 8

    def test_insufficient_stock_reports_figures(self, staff, product, storage, shelf):
        with pytest.raises(InsufficientInventoryError) as exc:
            movement_service.transfer_inventory(
                staff,
                action=MovementAction.PUT_ON_SHELF,
                product_id=product.id,
                unit_type=UnitType.BOX,
                quantity=3,
                from_location_id=storage.id,
                to_location_id=shelf.id,
            )
        assert str(exc.value) == "Only 0 BOX on hand at Main Storage. Need 3."
        assert exc.value.on_hand == 0
        assert exc.value.requested == 3
        assert Movement.query.count() == 0

    def test_delivery_snapshots_wholesale_price(self, staff, stocked, product, storage, store, store_location):
        movement = deliver(staff, product, storage, store_location, 4)
        assert movement.store_id == store.id
        assert movement.price_snapshot_cents == WHOLESALE_CENTS

    def test_delivery_snapshot_uses_store_override(
        self, manager, staff, stocked, product, storage, store, store_location
    ):
        products_service.set_store_price_override(
            manager, store_id=store.id, product_id=product.id, wholesale_price_per_box_cents=1650
        )
        movement = deliver(staff, product, storage, store_location, 2)
        assert movement.price_snapshot_cents == 1650

    def test_delivery_snapshot_is_not_recomputed(
        self, manager, staff, stocked, product, storage, store, store_location
    ):
        movement = deliver(staff, product, storage, store_location, 2)
        products_service.set_product_pricing(
            manager, product.id, {"cost_per_box_cents": 1200, "wholesale_price_per_box_cents": 9900}
        )
        assert db.session.get(Movement, movement.id).price_snapshot_cents == WHOLESALE_CENTS

    def test_return_from_store_sets_store(self, staff, stocked, product, storage, truck, store, store_location):
        deliver(staff, product, storage, store_location, 5)
        movement = movement_service.transfer_inventory(
            staff,
            action=MovementAction.RETURN_FROM_STORE,
            product_id=product.id,
            unit_type=UnitType.BOX,
            quantity=2,
            from_location_id=store_location.id,
            to_location_id=truck.id,
        )
        assert movement.store_id == store.id
        assert movement.price_snapshot_cents is None
        assert inventory_service.on_hand(product.id, UnitType.BOX, store_location.id) == 3
        assert inventory_service.on_hand(product.id, UnitType.BOX, truck.id) == 2


# =============================================================================
# SALES
# =============================================================================

class TestSales:

    def test_pack_sale_snapshots_total(self, staff, manager, stocked, product, storage, shelf):
        movement_service.convert_box_to_packs(manager, product_id=product.id, box_quantity=1, location_id=storage.id)
        movement = movement_service.record_sale(
            staff,
            product_id=product.id,
            unit_type=UnitType.PACK,
            quantity=3,
            from_location_id=storage.id,
            price_per_unit_cents=300,
        )
        assert movement.action == MovementAction.SALE_RETAIL_PACK
        assert movement.price_snapshot_cents == 900
        assert movement.to_location_id is None
        assert inventory_service.on_hand(product.id, UnitType.PACK, storage.id) == 7

    def test_box_sale_action_follows_unit(self, staff, stocked, product, storage):
        movement = movement_service.record_sale(
            staff,
            product_id=product.id,
            unit_type=UnitType.BOX,
            quantity=2,
            from_location_id=storage.id,
            price_per_unit_cents=2400,
        )
        assert movement.action == MovementAction.SALE_RETAIL_BOX
        assert movement.price_snapshot_cents == 4800

    def test_sale_from_store_rejected(self, staff, stocked, product, storage, store_location):
        deliver(staff, product, storage, store_location, 2)
        with pytest.raises(ValidationError, match="source must be"):
            movement_service.record_sale(
                staff,
                product_id=product.id,
                unit_type=UnitType.BOX,
                quantity=1,
                from_location_id=store_location.id,
                price_per_unit_cents=2400,
            )

    def test_sale_price_required(self, staff, stocked, product, storage):
        with pytest.raises(ValidationError):
            movement_service.record_sale(
                staff,
                product_id=product.id,
                unit_type=UnitType.BOX,
                quantity=1,
                from_location_id=storage.id,
                price_per_unit_cents=None,
            )


# =============================================================================
# ADJUSTMENTS
# =============================================================================

class TestAdjustments:

    def test_staff_cannot_adjust(self, staff, product, storage):
        with pytest.raises(PermissionDeniedError):
            movement_service.create_adjustment(
                staff,
                product_id=product.id,
                unit_type=UnitType.BOX,
                quantity=1,
                direction="ADD",
                location_id=storage.id,
                reason="found a box",
            )

    def test_add_credits_location_and_records_approver(self, manager, product, storage):
        movement = movement_service.create_adjustment(
            manager,
            product_id=product.id,
            unit_type=UnitType.BOX,
            quantity=2,
            direction="ADD",
            location_id=storage.id,
            reason="found behind pallet",
        )
        assert movement.to_location_id == storage.id
        assert movement.from_location_id is None
        assert movement.adjustment_reason == "found behind pallet"
        assert movement.approved_by_user_id == manager.user_id
        assert inventory_service.on_hand(product.id, UnitType.BOX, storage.id) == 2

    def test_remove_is_stock_checked(self, manager, product, storage):
        with pytest.raises(InsufficientInventoryError):
            movement_service.create_adjustment(
                manager,
                product_id=product.id,
                unit_type=UnitType.BOX,
                quantity=1,
                direction="REMOVE",
                location_id=storage.id,
                reason="damaged",
            )

    def test_reason_required(self, manager, product, storage):
        with pytest.raises(ValidationError, match="reason is required"):
            movement_service.create_adjustment(
                manager,
                product_id=product.id,
                unit_type=UnitType.BOX,
                quantity=1,
                direction="ADD",
                location_id=storage.id,
                reason="   ",
            )

    def test_unknown_direction(self, manager, product, storage):
        with pytest.raises(ValidationError, match="direction"):
            movement_service.create_adjustment(
                manager,
                product_id=product.id,
                unit_type=UnitType.BOX,
                quantity=1,
                direction="SIDEWAYS",
                location_id=storage.id,
                reason="x",
            )

    def test_reason_only_on_adjustments(self, manager, stocked, product, storage, shelf):
        with pytest.raises(ValidationError, match="adjustment reason"):
            movement_service.append_movement(
                manager,
                action=MovementAction.PUT_ON_SHELF,
                product_id=product.id,
                unit_type=UnitType.BOX,
                quantity=1,
                from_location_id=storage.id,
                to_location_id=shelf.id,
                adjustment_reason="because",
            )


# =============================================================================
# CONVERSIONS
# =============================================================================

class TestConversion:

    def test_conversion_conserves_units(self, staff, stocked, product, storage):
        result = movement_service.convert_box_to_packs(
            staff, product_id=product.id, box_quantity=3, location_id=storage.id
        )
        assert result["packs_created"] == 30
        assert inventory_service.on_hand(product.id, UnitType.BOX, storage.id) == 47
        assert inventory_service.on_hand(product.id, UnitType.PACK, storage.id) == 30

        box_row = db.session.get(Movement, result["box_movement_id"])
        pack_row = db.session.get(Movement, result["pack_movement_id"])
        assert box_row.unit_type == UnitType.BOX
        assert box_row.from_location_id == storage.id and box_row.to_location_id is None
        assert pack_row.unit_type == UnitType.PACK
        assert pack_row.to_location_id == storage.id and pack_row.from_location_id is None
        assert pack_row.linked_movement_id == box_row.id
        assert pack_row.performed_at == box_row.performed_at

    def test_conversion_needs_boxes(self, staff, product, storage):
        with pytest.raises(InsufficientInventoryError, match="Only 0 boxes on hand. Cannot convert 2."):
            movement_service.convert_box_to_packs(
                staff, product_id=product.id, box_quantity=2, location_id=storage.id
            )

    def test_conversion_not_at_store(self, staff, stocked, product, storage, store_location):
        deliver(staff, product, storage, store_location, 2)
        with pytest.raises(ValidationError, match="source must be"):
            movement_service.convert_box_to_packs(
                staff, product_id=product.id, box_quantity=1, location_id=store_location.id
            )

    def test_conversion_is_atomic(self, monkeypatch, staff, stocked, product, storage):
        """A failure on the PACK row leaves neither row behind."""
        real_append = ledger_service.append_movement
        calls = []

        def failing_append(**fields):
            calls.append(fields["unit_type"])
            if len(calls) == 2:
                raise SQLAlchemyError("disk full")
            return real_append(**fields)

        monkeypatch.setattr(ledger_service, "append_movement", failing_append)

        with pytest.raises(TransactionFailedError):
            movement_service.convert_box_to_packs(
                staff, product_id=product.id, box_quantity=2, location_id=storage.id
            )

        assert calls == [UnitType.BOX, UnitType.PACK]
        assert Movement.query.filter_by(action=MovementAction.CONVERT_BOX_TO_PACKS).count() == 0
        assert inventory_service.on_hand(product.id, UnitType.BOX, storage.id) == 50
        assert inventory_service.on_hand(product.id, UnitType.PACK, storage.id) == 0


# =============================================================================
# LEDGER IMMUTABILITY AND HISTORY
# =============================================================================

class TestLedger:

    def test_rows_cannot_be_edited(self, db_session, stocked):
        movement = db.session.get(Movement, stocked.id)
        movement.quantity = 999
        with pytest.raises(ConflictError, match="immutable"):
            db_session.flush()
        db_session.rollback()
        assert db.session.get(Movement, stocked.id).quantity == 50

    def test_rows_cannot_be_deleted(self, db_session, stocked):
        db_session.delete(db.session.get(Movement, stocked.id))
        with pytest.raises(ConflictError, match="cannot be deleted"):
            db_session.flush()
        db_session.rollback()
        assert Movement.query.count() == 1

    def test_history_newest_first_with_total(self, staff, stocked, product, storage, shelf):
        for _ in range(3):
            movement_service.transfer_inventory(
                staff,
                action=MovementAction.PUT_ON_SHELF,
                product_id=product.id,
                unit_type=UnitType.BOX,
                quantity=1,
                from_location_id=storage.id,
                to_location_id=shelf.id,
            )
        rows, total = ledger_service.list_movements(location_id=shelf.id, limit=2)
        assert total == 3
        assert len(rows) == 2
        assert rows[0].id > rows[1].id

        rows, total = ledger_service.list_movements(action=MovementAction.RECEIVE)
        assert total == 1
        assert rows[0].id == stocked.id


# =============================================================================
# FULL INVENTORY
# =============================================================================

class TestFullInventory:

    def _figures(self):
        return [(row["location_name"], row["unit_type"], row["on_hand"]) for row in inventory_service.full_inventory()]

    def test_zero_rows_are_omitted(self, staff, stocked, product, storage, shelf):
        movement_service.transfer_inventory(
            staff,
            action=MovementAction.PUT_ON_SHELF,
            product_id=product.id,
            unit_type=UnitType.BOX,
            quantity=50,
            from_location_id=storage.id,
            to_location_id=shelf.id,
        )
        assert self._figures() == [("Shelf A", "BOX", 50)]

    def test_inactive_locations_are_omitted(self, manager, staff, stocked, product, storage, shelf):
        movement_service.transfer_inventory(
            staff,
            action=MovementAction.PUT_ON_SHELF,
            product_id=product.id,
            unit_type=UnitType.BOX,
            quantity=50,
            from_location_id=storage.id,
            to_location_id=shelf.id,
        )
        location_service.set_location_active(manager, shelf.id, False)

        assert inventory_service.full_inventory() == []
        # the ledger still knows where the boxes are
        assert inventory_service.on_hand(product.id, UnitType.BOX, shelf.id) == 50
