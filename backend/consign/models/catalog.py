from __future__ import annotations

from sqlalchemy.orm import validates

from ..extensions import db
from ..time_utils import to_utc_z
from ..validation import ConflictError


class UnitType:
    BOX = "BOX"
    PACK = "PACK"

    ALL = (BOX, PACK)


class Product(db.Model):
    """
    Product master data.

    PACKS PER BOX:
    packs_per_box is fixed at creation. CONVERT_BOX_TO_PACKS rows already in the
    ledger were sized with it, so changing it would silently rewrite history.
    The validator below rejects any attempt to change it once set.

    SKU is globally unique. Barcodes (box and pack) live in the barcodes table.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.UniqueConstraint("sku", name="uq_products_sku"),
        db.CheckConstraint("packs_per_box > 0", name="ck_products_packs_per_box_positive"),
        db.Index("ix_products_name", "name"),
        db.Index("ix_products_active", "is_active"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    sku = db.Column(db.String(64), nullable=False)
    name = db.Column(db.String(255), nullable=False)
    variant = db.Column(db.String(255), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    packs_per_box = db.Column(db.Integer, nullable=False)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    pricing = db.relationship("ProductPricing", uselist=False, back_populates="product")
    __mapper_args__ = {"version_id_col": version_id}

    @validates("packs_per_box")
    def _validate_packs_per_box(self, key, value):
        if self.packs_per_box is not None and value != self.packs_per_box:
            raise ConflictError("packs_per_box cannot be changed after creation")
        return value

    def __repr__(self) -> str:
        return f"<Product id={self.id} sku={self.sku!r} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sku": self.sku,
            "name": self.name,
            "variant": self.variant,
            "notes": self.notes,
            "packs_per_box": self.packs_per_box,
            "is_active": self.is_active,
            "pricing": self.pricing.to_dict() if self.pricing is not None else None,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class ProductPricing(db.Model):
    """
    Default pricing for a product (one-to-one). All amounts in cents.

    wholesale_price_per_box_cents is what a store owes per sold box unless a
    StorePriceOverride exists for that store.
    """
    __tablename__ = "product_pricing"
    __table_args__ = (
        db.UniqueConstraint("product_id", name="uq_product_pricing_product"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)

    cost_per_box_cents = db.Column(db.Integer, nullable=False)
    retail_price_per_pack_cents = db.Column(db.Integer, nullable=False, default=0)
    retail_price_per_box_cents = db.Column(db.Integer, nullable=False, default=0)
    wholesale_price_per_box_cents = db.Column(db.Integer, nullable=False, default=0)

    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    product = db.relationship("Product", back_populates="pricing")

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "cost_per_box_cents": self.cost_per_box_cents,
            "retail_price_per_pack_cents": self.retail_price_per_pack_cents,
            "retail_price_per_box_cents": self.retail_price_per_box_cents,
            "wholesale_price_per_box_cents": self.wholesale_price_per_box_cents,
            "updated_at": to_utc_z(self.updated_at),
        }


class Barcode(db.Model):
    """
    Scannable code for a product, tagged with the unit it identifies.

    UNIQUENESS: value is globally unique; a second registration of the same
    value is rejected by products_service before the constraint is hit.
    """
    __tablename__ = "barcodes"
    __table_args__ = (
        db.UniqueConstraint("value", name="uq_barcodes_value"),
        db.Index("ix_barcodes_product", "product_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)

    value = db.Column(db.String(128), nullable=False)
    unit_type = db.Column(db.String(8), nullable=False)
    symbology = db.Column(db.String(32), nullable=False, default="UPC_A")
    label = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    product = db.relationship("Product", backref=db.backref("barcodes", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "value": self.value,
            "unit_type": self.unit_type,
            "symbology": self.symbology,
            "label": self.label,
            "created_at": to_utc_z(self.created_at),
        }


class StorePriceOverride(db.Model):
    """Per-store wholesale price for one product. Wins over ProductPricing."""
    __tablename__ = "store_price_overrides"
    __table_args__ = (
        db.UniqueConstraint("store_id", "product_id", name="uq_store_price_overrides_store_product"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    wholesale_price_per_box_cents = db.Column(db.Integer, nullable=False)

    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    store = db.relationship("Store", backref=db.backref("price_overrides", lazy=True))
    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "store_id": self.store_id,
            "product_id": self.product_id,
            "wholesale_price_per_box_cents": self.wholesale_price_per_box_cents,
            "updated_at": to_utc_z(self.updated_at),
        }
