from __future__ import annotations

import enum

from ..extensions import db
from ckms.time_utils import to_utc_z, to_iso_date


class Product(db.Model):
    """
    Product master data.

    Products are global (not store-scoped): the same product code is
    produced at the central kitchen and stocked at every store.
    Inactive products cannot be ordered.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.UniqueConstraint("code", name="uq_products_code"),
        db.Index("ix_products_active", "is_active"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(64), nullable=False)
    name = db.Column(db.String(255), nullable=False)

    # Display unit, e.g. "kg", "box", "portion"
    unit = db.Column(db.String(32), nullable=False)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<Product id={self.id} code={self.code!r} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "code": self.code,
            "name": self.name,
            "unit": self.unit,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class BatchStatus(str, enum.Enum):
    PLANNED = "PLANNED"
    PRODUCED = "PRODUCED"
    STOCKED = "STOCKED"
    CANCELLED = "CANCELLED"


class ProductBatch(db.Model):
    """
    A production run of one product at the central kitchen.

    LIFECYCLE:
    1. PLANNED: planned_quantity set, nothing produced yet
    2. PRODUCED: produced_quantity, production_date and expired_date recorded
    3. STOCKED: central inventory row created for this batch
    4. CANCELLED: abandoned while PLANNED or PRODUCED

    expired_date governs earliest-expiry-first allocation of supply orders.
    """
    __tablename__ = "product_batches"
    __table_args__ = (
        db.UniqueConstraint("code", name="uq_product_batches_code"),
        db.Index("ix_product_batches_product_expiry", "product_id", "expired_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(32), nullable=False)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    status = db.Column(
        db.Enum(BatchStatus, native_enum=False, length=16),
        nullable=False,
        default=BatchStatus.PLANNED,
        index=True,
    )

    planned_quantity = db.Column(db.Integer, nullable=False)
    produced_quantity = db.Column(db.Integer, nullable=True)

    production_date = db.Column(db.Date, nullable=True)
    expired_date = db.Column(db.Date, nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    product = db.relationship("Product", backref=db.backref("batches", lazy=True))

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<ProductBatch id={self.id} code={self.code!r} status={self.status.value}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "code": self.code,
            "product_id": self.product_id,
            "product_name": self.product.name if self.product else None,
            "unit": self.product.unit if self.product else None,
            "status": self.status.value,
            "planned_quantity": self.planned_quantity,
            "produced_quantity": self.produced_quantity,
            "production_date": to_iso_date(self.production_date),
            "expired_date": to_iso_date(self.expired_date),
            "created_at": to_utc_z(self.created_at),
        }
