from __future__ import annotations

import enum

from ..extensions import db
from ckms.time_utils import to_utc_z, to_iso_date


class InventoryStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    NEAR_EXPIRY = "NEAR_EXPIRY"
    EXPIRED = "EXPIRED"
    DISPOSED = "DISPOSED"


class DisposalReason(str, enum.Enum):
    EXPIRED = "EXPIRED"
    WRONG_DATA = "WRONG_DATA"
    DEFECTIVE = "DEFECTIVE"


class Inventory(db.Model):
    """
    Quantity of one production batch held at one store.

    There is at most one row per (store, batch). Central kitchen rows are
    debited when a supply order starts delivery; store rows are created or
    credited when the store stocks a received order.

    status is recomputed from the batch expiry date by the expiry sweep;
    DISPOSED is terminal and set only by disposal.
    """
    __tablename__ = "inventory"
    __table_args__ = (
        db.UniqueConstraint("store_id", "batch_id", name="uq_inventory_store_batch"),
        db.CheckConstraint("quantity >= 0", name="ck_inventory_quantity_non_negative"),
        db.Index("ix_inventory_store_status", "store_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)
    batch_id = db.Column(db.Integer, db.ForeignKey("product_batches.id"), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False, default=0)

    status = db.Column(
        db.Enum(InventoryStatus, native_enum=False, length=16),
        nullable=False,
        default=InventoryStatus.ACTIVE,
    )
    disposed_reason = db.Column(db.Enum(DisposalReason, native_enum=False, length=16), nullable=True)
    disposed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    disposed_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    store = db.relationship("Store", backref=db.backref("inventory", lazy=True))
    batch = db.relationship("ProductBatch", backref=db.backref("inventory", lazy=True))

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Inventory id={self.id} store_id={self.store_id} batch_id={self.batch_id} qty={self.quantity}>"

    def to_dict(self) -> dict:
        batch = self.batch
        product = batch.product if batch else None
        return {
            "id": self.id,
            "store_id": self.store_id,
            "batch_id": self.batch_id,
            "batch_code": batch.code if batch else None,
            "product_id": batch.product_id if batch else None,
            "product_code": product.code if product else None,
            "product_name": product.name if product else None,
            "unit": product.unit if product else None,
            "production_date": to_iso_date(batch.production_date) if batch else None,
            "expired_date": to_iso_date(batch.expired_date) if batch else None,
            "quantity": self.quantity,
            "status": self.status.value,
            "disposed_reason": self.disposed_reason.value if self.disposed_reason else None,
            "disposed_at": to_utc_z(self.disposed_at) if self.disposed_at else None,
            "created_at": to_utc_z(self.created_at),
        }
