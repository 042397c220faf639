# Overview: Service-layer operations for inventory; encapsulates business logic and database work.

"""
Per-batch inventory at the central kitchen and at stores.

Central rows are the shared pool supply orders allocate from: they are
debited exactly once per allocation line when delivery starts. Store rows
are credited when a store stocks a received order.

STATUS:
    ACTIVE       expiry date more than NEAR_EXPIRY_DAYS away
    NEAR_EXPIRY  expiry date within NEAR_EXPIRY_DAYS (inclusive)
    EXPIRED      expiry date in the past
    DISPOSED     terminal, set only by dispose_inventory

EXPIRED and DISPOSED rows are never offered for allocation.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta

from flask import current_app
from sqlalchemy import func

from ..extensions import db
from ..models import DisposalReason, Inventory, InventoryStatus, ProductBatch
from ..validation import ConflictError, NotFoundError, ValidationError
from .catalog_service import central_store_id as resolve_central_store_id
from .concurrency import lock_for_update, run_in_transaction
from .permission_service import CallerIdentity, PermissionDeniedError, require_permission
from ckms.time_utils import today, utcnow


UNALLOCATABLE_STATUSES = (InventoryStatus.EXPIRED, InventoryStatus.DISPOSED)


class InsufficientInventoryError(ConflictError):
    """Raised when inventory cannot cover a requested quantity."""
    pass


@dataclass(frozen=True)
class AllocatableBatch:
    """One central inventory row eligible for allocation."""
    inventory_id: int
    batch_id: int
    quantity: int
    expiry_date: date | None


def _allocatable_query(product_id: int, store_id: int):
    return (
        db.session.query(Inventory)
        .join(ProductBatch, Inventory.batch_id == ProductBatch.id)
        .filter(
            Inventory.store_id == store_id,
            ProductBatch.product_id == product_id,
            Inventory.quantity > 0,
            Inventory.status.notin_(UNALLOCATABLE_STATUSES),
        )
    )


def find_available_central_quantity(product_id: int, central_store_id: int | None = None) -> int:
    """Sum of allocatable central inventory for a product."""
    store_id = resolve_central_store_id(central_store_id)
    total = (
        _allocatable_query(product_id, store_id)
        .with_entities(func.coalesce(func.sum(Inventory.quantity), 0))
        .scalar()
    )
    return int(total or 0)


def find_allocatable_batches(
    product_id: int,
    central_store_id: int | None = None,
    *,
    lock: bool = False,
) -> list[AllocatableBatch]:
    """
    Central inventory rows for a product, earliest expiry first.

    Ties on expiry date are broken by inventory id so the order is stable.
    With lock=True the rows are selected FOR UPDATE.
    """
    store_id = resolve_central_store_id(central_store_id)
    query = _allocatable_query(product_id, store_id).order_by(
        ProductBatch.expired_date.is_(None),
        ProductBatch.expired_date.asc(),
        Inventory.id.asc(),
    )
    if lock:
        query = lock_for_update(query)

    return [
        AllocatableBatch(
            inventory_id=row.id,
            batch_id=row.batch_id,
            quantity=row.quantity,
            expiry_date=row.batch.expired_date,
        )
        for row in query.all()
    ]


def get_inventory(inventory_id: int, *, lock: bool = False) -> Inventory:
    query = db.session.query(Inventory).filter_by(id=inventory_id)
    if lock:
        query = lock_for_update(query)
    row = query.first()
    if row is None:
        raise NotFoundError(f"Inventory {inventory_id} not found")
    return row


def debit_inventory(inventory_id: int, quantity: int) -> Inventory:
    """
    Decrement one inventory row.

    Never lets a row go negative: raises InsufficientInventoryError when the
    row holds less than requested. Disposed rows cannot be debited.
    """
    if quantity <= 0:
        raise ValidationError("Debit quantity must be positive")

    row = get_inventory(inventory_id, lock=True)
    if row.status == InventoryStatus.DISPOSED:
        raise ConflictError(f"Inventory {inventory_id} has been disposed")
    if row.quantity < quantity:
        raise InsufficientInventoryError(
            f"Inventory {inventory_id} holds {row.quantity} units, cannot debit {quantity}"
        )

    row.quantity -= quantity
    db.session.flush()
    return row


def credit_store_inventory(batch_id: int, store_id: int, quantity: int) -> Inventory:
    """
    Add quantity to a store's row for a batch, creating the row if absent.

    A newly created row starts with the status its batch expiry implies.
    A DISPOSED row is reopened: its written-off units stay written off, it
    holds only the credited quantity and its status is recomputed.
    """
    if quantity <= 0:
        raise ValidationError("Credit quantity must be positive")

    row = lock_for_update(
        db.session.query(Inventory).filter_by(store_id=store_id, batch_id=batch_id)
    ).first()

    if row is None:
        batch = db.session.get(ProductBatch, batch_id)
        if batch is None:
            raise NotFoundError(f"Batch {batch_id} not found")
        row = Inventory(
            store_id=store_id,
            batch_id=batch_id,
            quantity=quantity,
            status=compute_expiry_status(batch.expired_date),
        )
        db.session.add(row)
    elif row.status == InventoryStatus.DISPOSED:
        current_app.logger.info(
            "Reopening disposed inventory %s (%s units written off) with %s units",
            row.id, row.quantity, quantity,
        )
        row.quantity = quantity
        row.status = compute_expiry_status(row.batch.expired_date)
        row.disposed_reason = None
        row.disposed_at = None
        row.disposed_by_user_id = None
    else:
        row.quantity += quantity

    db.session.flush()
    return row


def compute_expiry_status(
    expired_date: date | None,
    as_of: date | None = None,
    near_expiry_days: int | None = None,
) -> InventoryStatus:
    """
    Status implied by an expiry date.

    Past -> EXPIRED; within near_expiry_days (inclusive) -> NEAR_EXPIRY;
    otherwise, or with no expiry date, ACTIVE.
    """
    if expired_date is None:
        return InventoryStatus.ACTIVE
    as_of = as_of or today()
    if near_expiry_days is None:
        near_expiry_days = int(current_app.config.get("NEAR_EXPIRY_DAYS", 3))

    if expired_date < as_of:
        return InventoryStatus.EXPIRED
    if expired_date <= as_of + timedelta(days=near_expiry_days):
        return InventoryStatus.NEAR_EXPIRY
    return InventoryStatus.ACTIVE


def refresh_expiry_statuses(as_of: date | None = None) -> int:
    """
    Recompute the status of every non-disposed row from its batch expiry date.

    Returns the number of rows whose status changed. Flushes, does not commit.
    """
    as_of = as_of or today()
    near_days = int(current_app.config.get("NEAR_EXPIRY_DAYS", 3))

    rows = (
        db.session.query(Inventory)
        .filter(Inventory.status != InventoryStatus.DISPOSED)
        .all()
    )

    changed = 0
    for row in rows:
        new_status = compute_expiry_status(row.batch.expired_date, as_of, near_days)
        if row.status != new_status:
            row.status = new_status
            changed += 1

    db.session.flush()
    if changed:
        current_app.logger.info("Expiry sweep updated %d inventory rows", changed)
    return changed


def dispose_inventory(caller: CallerIdentity, inventory_id: int, reason: str) -> Inventory:
    """
    Mark an inventory row DISPOSED.

    RULES:
    - An EXPIRED row is always disposed with reason EXPIRED
    - WRONG_DATA may only be chosen by an Admin
    - Non-admins may only dispose rows of their own store; for Central
      Staff that is the central kitchen
    - A DISPOSED row cannot be disposed again
    """
    require_permission(caller, "DISPOSE_INVENTORY")

    try:
        disposal_reason = DisposalReason(str(reason or "").strip().upper())
    except ValueError:
        raise ValidationError(
            f"Invalid disposal reason. Must be one of: {', '.join(r.value for r in DisposalReason)}"
        )

    def _op():
        row = get_inventory(inventory_id, lock=True)

        if not caller.is_admin:
            own_store = (
                resolve_central_store_id() if caller.is_central_staff else caller.store_id
            )
            if row.store_id != own_store:
                current_app.logger.warning(
                    "Disposal denied: user %s cannot dispose inventory %s of store %s",
                    caller.user_id, row.id, row.store_id,
                )
                raise PermissionDeniedError("Permission denied: inventory belongs to another store")

        if row.status == InventoryStatus.DISPOSED:
            raise ConflictError("Inventory is already disposed")

        final_reason = disposal_reason
        if row.status == InventoryStatus.EXPIRED:
            final_reason = DisposalReason.EXPIRED
        elif disposal_reason == DisposalReason.WRONG_DATA and not caller.is_admin:
            raise PermissionDeniedError("Only an admin may dispose inventory as WRONG_DATA")

        row.status = InventoryStatus.DISPOSED
        row.disposed_reason = final_reason
        row.disposed_at = utcnow()
        row.disposed_by_user_id = caller.user_id
        db.session.flush()

        current_app.logger.info(
            "Inventory %s disposed by user %s (%s)", row.id, caller.user_id, final_reason.value
        )
        return row

    return run_in_transaction(_op)


def list_store_inventory(store_id: int) -> list[Inventory]:
    """Inventory rows of a store, newest batch first."""
    return (
        db.session.query(Inventory)
        .join(ProductBatch, Inventory.batch_id == ProductBatch.id)
        .filter(Inventory.store_id == store_id)
        .order_by(ProductBatch.created_at.desc(), Inventory.id.desc())
        .all()
    )
