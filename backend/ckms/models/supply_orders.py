from __future__ import annotations

import enum

from ..extensions import db
from ckms.time_utils import to_utc_z, to_iso_date


class SupplyOrderStatus(str, enum.Enum):
    SUBMITTED = "SUBMITTED"
    APPROVED = "APPROVED"
    PARTLY_APPROVED = "PARTLY_APPROVED"
    REJECTED = "REJECTED"
    DELIVERING = "DELIVERING"
    RECEIPTED = "RECEIPTED"
    STOCKED = "STOCKED"
    CANCELLED = "CANCELLED"


class SupplyOrderItemStatus(str, enum.Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    PARTLY_APPROVED = "PARTLY_APPROVED"
    REJECTED = "REJECTED"


class SupplyOrder(db.Model):
    """
    Store-to-central-kitchen supply order.

    LIFECYCLE:
    1. SUBMITTED: Created by store staff, items PENDING
    2. APPROVED / PARTLY_APPROVED / REJECTED: Reviewed by central staff,
       inventory batches allocated for every approved quantity
    3. DELIVERING: Central inventory debited by the allocated quantities
    4. RECEIPTED: Store confirmed what physically arrived
    5. STOCKED: Received quantities credited into store inventory
    6. CANCELLED: Abandoned after review, before delivery

    version_id guards every status change: a transition only commits if the
    row still carries the version it was read with.
    """
    __tablename__ = "supply_orders"
    __table_args__ = (
        db.UniqueConstraint("code", name="uq_supply_orders_code"),
        db.Index("ix_supply_orders_store_status", "store_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # SO-YYYYMM-NNNN, stored upper case
    code = db.Column(db.String(32), nullable=False)

    # Ordering (destination) store
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)

    status = db.Column(
        db.Enum(SupplyOrderStatus, native_enum=False, length=32),
        nullable=False,
        default=SupplyOrderStatus.SUBMITTED,
        index=True,
    )

    # User attribution for accountability
    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    reviewed_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    delivered_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    received_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    stocked_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    cancelled_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    # Timestamps for each lifecycle stage
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    reviewed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    delivery_started_at = db.Column(db.DateTime(timezone=True), nullable=True)
    received_at = db.Column(db.DateTime(timezone=True), nullable=True)
    stocked_at = db.Column(db.DateTime(timezone=True), nullable=True)
    cancelled_at = db.Column(db.DateTime(timezone=True), nullable=True)

    cancellation_reason = db.Column(db.Text, nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    store = db.relationship("Store", backref=db.backref("supply_orders", lazy=True))
    created_by = db.relationship("User", foreign_keys=[created_by_user_id])
    items = db.relationship(
        "SupplyOrderItem",
        back_populates="supply_order",
        order_by="SupplyOrderItem.id",
        lazy=True,
    )

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<SupplyOrder id={self.id} code={self.code!r} status={self.status.value}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "code": self.code,
            "store_id": self.store_id,
            "store_name": self.store.name if self.store else None,
            "status": self.status.value,
            "created_by_user_id": self.created_by_user_id,
            "created_by_username": self.created_by.username if self.created_by else None,
            "reviewed_by_user_id": self.reviewed_by_user_id,
            "delivered_by_user_id": self.delivered_by_user_id,
            "received_by_user_id": self.received_by_user_id,
            "stocked_by_user_id": self.stocked_by_user_id,
            "cancelled_by_user_id": self.cancelled_by_user_id,
            "created_at": to_utc_z(self.created_at),
            "reviewed_at": to_utc_z(self.reviewed_at) if self.reviewed_at else None,
            "delivery_started_at": to_utc_z(self.delivery_started_at) if self.delivery_started_at else None,
            "received_at": to_utc_z(self.received_at) if self.received_at else None,
            "stocked_at": to_utc_z(self.stocked_at) if self.stocked_at else None,
            "cancelled_at": to_utc_z(self.cancelled_at) if self.cancelled_at else None,
            "cancellation_reason": self.cancellation_reason,
            "version_id": self.version_id,
        }


class SupplyOrderItem(db.Model):
    """
    One product line of a supply order.

    approved_quantity and status are written together, once, during review.
    """
    __tablename__ = "supply_order_items"
    __table_args__ = (
        db.UniqueConstraint("supply_order_id", "product_id", name="uq_supply_order_items_order_product"),
        db.CheckConstraint("requested_quantity > 0", name="ck_supply_order_items_requested_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    supply_order_id = db.Column(db.Integer, db.ForeignKey("supply_orders.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    requested_quantity = db.Column(db.Integer, nullable=False)
    approved_quantity = db.Column(db.Integer, nullable=True)

    status = db.Column(
        db.Enum(SupplyOrderItemStatus, native_enum=False, length=16),
        nullable=False,
        default=SupplyOrderItemStatus.PENDING,
    )

    supply_order = db.relationship("SupplyOrder", back_populates="items")
    product = db.relationship("Product")
    allocations = db.relationship(
        "SupplyOrderItemBatch",
        back_populates="item",
        order_by="SupplyOrderItemBatch.id",
        lazy=True,
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "supply_order_id": self.supply_order_id,
            "product_id": self.product_id,
            "product_code": self.product.code if self.product else None,
            "product_name": self.product.name if self.product else None,
            "unit": self.product.unit if self.product else None,
            "requested_quantity": self.requested_quantity,
            "approved_quantity": self.approved_quantity,
            "status": self.status.value,
        }


class SupplyOrderItemBatch(db.Model):
    """
    Allocation line: units of one inventory batch drawn for one order item.

    quantity is fixed at review. receipted_quantity is set once at receipt
    confirmation, stocked_quantity once at stocking; NULL means "not yet
    recorded" and is distinct from zero.

        quantity >= receipted_quantity >= stocked_quantity >= 0
    """
    __tablename__ = "supply_order_item_batches"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_item_batches_quantity_positive"),
        db.CheckConstraint(
            "receipted_quantity IS NULL OR (receipted_quantity >= 0 AND receipted_quantity <= quantity)",
            name="ck_item_batches_receipted_bounds",
        ),
        db.CheckConstraint(
            "stocked_quantity IS NULL OR (stocked_quantity >= 0 AND stocked_quantity <= receipted_quantity)",
            name="ck_item_batches_stocked_bounds",
        ),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    supply_order_item_id = db.Column(
        db.Integer, db.ForeignKey("supply_order_items.id"), nullable=False, index=True
    )
    batch_id = db.Column(db.Integer, db.ForeignKey("product_batches.id"), nullable=False, index=True)

    # Central kitchen inventory row the quantity is drawn from
    inventory_id = db.Column(db.Integer, db.ForeignKey("inventory.id"), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False)
    receipted_quantity = db.Column(db.Integer, nullable=True)
    stocked_quantity = db.Column(db.Integer, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    item = db.relationship("SupplyOrderItem", back_populates="allocations")
    batch = db.relationship("ProductBatch")
    inventory = db.relationship("Inventory")

    def to_dict(self) -> dict:
        batch = self.batch
        return {
            "id": self.id,
            "supply_order_item_id": self.supply_order_item_id,
            "batch_id": self.batch_id,
            "batch_code": batch.code if batch else None,
            "expired_date": to_iso_date(batch.expired_date) if batch else None,
            "inventory_id": self.inventory_id,
            "quantity": self.quantity,
            "receipted_quantity": self.receipted_quantity,
            "stocked_quantity": self.stocked_quantity,
            "created_at": to_utc_z(self.created_at),
        }
