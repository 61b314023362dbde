from __future__ import annotations

from sqlalchemy import event, inspect

from ..extensions import db
from ..time_utils import to_utc_z, utcnow
from ..validation import ConflictError


class MovementAction:
    RECEIVE = "RECEIVE"
    PUT_ON_SHELF = "PUT_ON_SHELF"
    TAKE_OFF_SHELF = "TAKE_OFF_SHELF"
    DELIVER_TO_STORE = "DELIVER_TO_STORE"
    RETURN_FROM_STORE = "RETURN_FROM_STORE"
    CONVERT_BOX_TO_PACKS = "CONVERT_BOX_TO_PACKS"
    SALE_RETAIL_PACK = "SALE_RETAIL_PACK"
    SALE_RETAIL_BOX = "SALE_RETAIL_BOX"
    ADJUSTMENT = "ADJUSTMENT"

    ALL = (
        RECEIVE,
        PUT_ON_SHELF,
        TAKE_OFF_SHELF,
        DELIVER_TO_STORE,
        RETURN_FROM_STORE,
        CONVERT_BOX_TO_PACKS,
        SALE_RETAIL_PACK,
        SALE_RETAIL_BOX,
        ADJUSTMENT,
    )

    TRANSFERS = (PUT_ON_SHELF, TAKE_OFF_SHELF, DELIVER_TO_STORE, RETURN_FROM_STORE)
    SALES = (SALE_RETAIL_PACK, SALE_RETAIL_BOX)


class Movement(db.Model):
    """
    One row of the append-only movement ledger.

    LEDGER INVARIANTS:
    - Rows are never deleted and never updated, with one exception:
      reversed_by_id is set exactly once, when the row is reversed.
      The mapper events below reject every other change.
    - A row contributes +quantity at to_location and -quantity at from_location.
    - Rows with reversed_by_id set, and reversal rows themselves, are left out of
      on-hand and financial projections. The pair still shows in history.

    SNAPSHOTS:
    - cost_per_box_cents: RECEIVE only, the vendor cost at receipt.
    - price_snapshot_cents: DELIVER_TO_STORE stores the per-box wholesale price in
      effect for the store; SALE_RETAIL_* stores the total sale amount.
      Never recomputed from current pricing.

    CONVERSIONS:
    CONVERT_BOX_TO_PACKS writes a BOX row (from=location) and a PACK row
    (to=location). The PACK row's linked_movement_id points at the BOX row.
    """
    __tablename__ = "movements"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_movements_quantity_positive"),
        db.Index("ix_movements_product_unit", "product_id", "unit_type"),
        db.Index("ix_movements_store_action_performed", "store_id", "action", "performed_at"),
        db.Index("ix_movements_from_location", "from_location_id"),
        db.Index("ix_movements_to_location", "to_location_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    action = db.Column(db.String(32), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    unit_type = db.Column(db.String(8), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)

    from_location_id = db.Column(db.Integer, db.ForeignKey("locations.id"), nullable=True)
    to_location_id = db.Column(db.Integer, db.ForeignKey("locations.id"), nullable=True)

    vendor_id = db.Column(db.Integer, db.ForeignKey("vendors.id"), nullable=True, index=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=True)

    cost_per_box_cents = db.Column(db.Integer, nullable=True)
    price_snapshot_cents = db.Column(db.Integer, nullable=True)

    adjustment_reason = db.Column(db.Text, nullable=True)
    approved_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    performed_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    notes = db.Column(db.Text, nullable=True)
    barcode_scanned = db.Column(db.String(128), nullable=True)

    # Business time of the movement; created_at is system time
    performed_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    is_reversal = db.Column(db.Boolean, nullable=False, default=False, index=True)
    reverses_id = db.Column(db.Integer, db.ForeignKey("movements.id"), nullable=True, unique=True)
    reversed_by_id = db.Column(db.Integer, db.ForeignKey("movements.id"), nullable=True, unique=True)
    linked_movement_id = db.Column(db.Integer, db.ForeignKey("movements.id"), nullable=True, index=True)

    product = db.relationship("Product")
    from_location = db.relationship("Location", foreign_keys=[from_location_id])
    to_location = db.relationship("Location", foreign_keys=[to_location_id])
    vendor = db.relationship("Vendor")
    store = db.relationship("Store")

    def __repr__(self) -> str:
        return (
            f"<Movement id={self.id} action={self.action} product_id={self.product_id} "
            f"{self.unit_type} x{self.quantity} {self.from_location_id}->{self.to_location_id}>"
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "action": self.action,
            "product_id": self.product_id,
            "unit_type": self.unit_type,
            "quantity": self.quantity,
            "from_location_id": self.from_location_id,
            "to_location_id": self.to_location_id,
            "vendor_id": self.vendor_id,
            "store_id": self.store_id,
            "cost_per_box_cents": self.cost_per_box_cents,
            "price_snapshot_cents": self.price_snapshot_cents,
            "adjustment_reason": self.adjustment_reason,
            "approved_by_user_id": self.approved_by_user_id,
            "performed_by_user_id": self.performed_by_user_id,
            "notes": self.notes,
            "barcode_scanned": self.barcode_scanned,
            "performed_at": to_utc_z(self.performed_at),
            "created_at": to_utc_z(self.created_at),
            "is_reversal": self.is_reversal,
            "reverses_id": self.reverses_id,
            "reversed_by_id": self.reversed_by_id,
            "linked_movement_id": self.linked_movement_id,
        }


@event.listens_for(Movement, "before_update")
def _reject_movement_updates(mapper, connection, target):
    """Only reversed_by_id may change, and only from NULL to a value."""
    state = inspect(target)
    for attr in mapper.column_attrs:
        history = state.attrs[attr.key].history
        if not history.has_changes():
            continue
        if attr.key != "reversed_by_id":
            raise ConflictError(f"movement {target.id} is immutable ({attr.key} cannot change)")
        previous = history.deleted[0] if history.deleted else None
        if previous is not None:
            raise ConflictError(f"movement {target.id} is already reversed")


@event.listens_for(Movement, "before_delete")
def _reject_movement_deletes(mapper, connection, target):
    raise ConflictError(f"movement {target.id} cannot be deleted")
