from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class AlertType:
    NEGATIVE_INVENTORY = "NEGATIVE_INVENTORY"
    LOW_STOCK = "LOW_STOCK"
    PAYMENT_OVERDUE = "PAYMENT_OVERDUE"
    SHRINKAGE_DETECTED = "SHRINKAGE_DETECTED"
    RECONCILIATION_MISMATCH = "RECONCILIATION_MISMATCH"

    ALL = (NEGATIVE_INVENTORY, LOW_STOCK, PAYMENT_OVERDUE, SHRINKAGE_DETECTED, RECONCILIATION_MISMATCH)


class AlertSeverity:
    CRITICAL = "CRITICAL"
    WARNING = "WARNING"


class AlertStatus:
    OPEN = "OPEN"
    ACKNOWLEDGED = "ACKNOWLEDGED"
    RESOLVED = "RESOLVED"

    ALL = (OPEN, ACKNOWLEDGED, RESOLVED)
    UNRESOLVED = (OPEN, ACKNOWLEDGED)


class Alert(db.Model):
    """
    Operator-facing signal raised by the alert scan or by count submission.

    LIFECYCLE: OPEN -> ACKNOWLEDGED -> RESOLVED, forward only; ACKNOWLEDGED may
    be skipped. A RESOLVED alert is never reopened; a later scan creates a new row.
    """
    __tablename__ = "alerts"
    __table_args__ = (
        db.Index("ix_alerts_type_status", "alert_type", "status"),
        db.Index("ix_alerts_product_location", "product_id", "location_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    alert_type = db.Column(db.String(32), nullable=False)
    severity = db.Column(db.String(16), nullable=False)
    title = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)

    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=True, index=True)
    location_id = db.Column(db.Integer, db.ForeignKey("locations.id"), nullable=True)

    status = db.Column(db.String(16), nullable=False, default="OPEN", index=True)

    acknowledged_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    acknowledged_at = db.Column(db.DateTime(timezone=True), nullable=True)
    resolved_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    resolved_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "alert_type": self.alert_type,
            "severity": self.severity,
            "title": self.title,
            "description": self.description,
            "product_id": self.product_id,
            "store_id": self.store_id,
            "location_id": self.location_id,
            "status": self.status,
            "acknowledged_by_user_id": self.acknowledged_by_user_id,
            "acknowledged_at": to_utc_z(self.acknowledged_at) if self.acknowledged_at else None,
            "resolved_by_user_id": self.resolved_by_user_id,
            "resolved_at": to_utc_z(self.resolved_at) if self.resolved_at else None,
            "created_at": to_utc_z(self.created_at),
        }
