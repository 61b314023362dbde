from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class LocationKind:
    """The four fixed location kinds. Topology is not configurable."""
    STORAGE = "STORAGE"
    SHELF = "SHELF"
    TRUCK = "TRUCK"
    STORE = "STORE"

    ALL = (STORAGE, SHELF, TRUCK, STORE)


class Location(db.Model):
    """
    A place inventory can sit.

    HIERARCHY:
    - Only SHELF locations may have a parent, and the parent is a STORAGE location.
    - Only STORE locations reference a Store. They are created 1:1 with the Store
      and activated/deactivated in lockstep with it (see location_service).

    Inactive locations are hidden from listings and inventory views but are never
    removed: ledger rows keep pointing at them.
    """
    __tablename__ = "locations"
    __table_args__ = (
        db.CheckConstraint("parent_id IS NULL OR kind = 'SHELF'", name="ck_locations_parent_shelf_only"),
        db.CheckConstraint("store_id IS NULL OR kind = 'STORE'", name="ck_locations_store_link_store_only"),
        db.Index("ix_locations_kind_active", "kind", "is_active"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    kind = db.Column(db.String(16), nullable=False, index=True)

    parent_id = db.Column(db.Integer, db.ForeignKey("locations.id"), nullable=True, index=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=True, unique=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    parent = db.relationship("Location", remote_side=[id], backref=db.backref("children", lazy=True))
    store = db.relationship("Store", backref=db.backref("location", uselist=False))

    def __repr__(self) -> str:
        return f"<Location id={self.id} name={self.name!r} kind={self.kind}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "kind": self.kind,
            "parent_id": self.parent_id,
            "store_id": self.store_id,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }


class Store(db.Model):
    """
    Consignment partner store.

    WHY separate from Location: the Store carries the commercial relationship
    (contacts, counts, payments, price overrides); its Location carries the
    inventory. A Store-kind Location is created with every Store.
    """
    __tablename__ = "stores"
    __table_args__ = (
        db.Index("ix_stores_active", "is_active"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)

    contact_name = db.Column(db.String(255), nullable=True)
    contact_phone = db.Column(db.String(64), nullable=True)
    address = db.Column(db.Text, nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<Store id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "contact_name": self.contact_name,
            "contact_phone": self.contact_phone,
            "address": self.address,
            "is_active": self.is_active,
            "location_id": self.location.id if self.location is not None else None,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class Vendor(db.Model):
    """
    Supplier that boxes are RECEIVEd from.

    Every RECEIVE movement names exactly one vendor.
    """
    __tablename__ = "vendors"
    __table_args__ = (
        db.Index("ix_vendors_active", "is_active"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)

    # Contact information
    contact_name = db.Column(db.String(255), nullable=True)
    contact_phone = db.Column(db.String(64), nullable=True)
    contact_email = db.Column(db.String(255), nullable=True)

    notes = db.Column(db.Text, nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def __repr__(self) -> str:
        return f"<Vendor id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "contact_name": self.contact_name,
            "contact_phone": self.contact_phone,
            "contact_email": self.contact_email,
            "notes": self.notes,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
