from __future__ import annotations

from ..extensions import db
from ..time_utils import to_iso_date, to_utc_z


class StoreCount(db.Model):
    """
    Physical count of boxes remaining at a store for one product on one day.

    AUDIT SNAPSHOT: one row per (store, product, count_date); never updated
    or deleted. Reconciliation replays these in date order.
    """
    __tablename__ = "store_counts"
    __table_args__ = (
        db.UniqueConstraint("store_id", "product_id", "count_date", name="uq_store_counts_store_product_date"),
        db.CheckConstraint("boxes_remaining >= 0", name="ck_store_counts_remaining_non_negative"),
        db.Index("ix_store_counts_store_product_date", "store_id", "product_id", "count_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)

    count_date = db.Column(db.Date, nullable=False)
    boxes_remaining = db.Column(db.Integer, nullable=False)

    counted_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    store = db.relationship("Store", backref=db.backref("counts", lazy=True))
    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "store_id": self.store_id,
            "product_id": self.product_id,
            "count_date": to_iso_date(self.count_date),
            "boxes_remaining": self.boxes_remaining,
            "counted_by_user_id": self.counted_by_user_id,
            "created_at": to_utc_z(self.created_at),
        }


class StorePayment(db.Model):
    """Money collected from a store. Append-only."""
    __tablename__ = "store_payments"
    __table_args__ = (
        db.CheckConstraint("amount_cents > 0", name="ck_store_payments_amount_positive"),
        db.Index("ix_store_payments_store_date", "store_id", "payment_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False)

    amount_cents = db.Column(db.Integer, nullable=False)
    payment_date = db.Column(db.Date, nullable=False)
    method = db.Column(db.String(32), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    collected_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    store = db.relationship("Store", backref=db.backref("payments", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "store_id": self.store_id,
            "amount_cents": self.amount_cents,
            "payment_date": to_iso_date(self.payment_date),
            "method": self.method,
            "notes": self.notes,
            "collected_by_user_id": self.collected_by_user_id,
            "created_at": to_utc_z(self.created_at),
        }
