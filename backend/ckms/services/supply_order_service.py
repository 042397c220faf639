# Overview: Service-layer operations for supply orders; encapsulates business logic and database work.
"""
Store-to-central-kitchen supply orders.

LIFECYCLE:
1. SUBMITTED: store staff create the order, one PENDING item per product
2. APPROVED / PARTLY_APPROVED / REJECTED: central staff review every item;
   approved quantities are allocated to central batches, earliest expiry first
3. DELIVERING: each allocation line's quantity is debited from its central
   inventory row
4. RECEIPTED: the store records what arrived per allocation line
5. STOCKED: the store records what it shelves per line; store inventory is
   credited by exactly that amount
6. CANCELLED: from APPROVED or PARTLY_APPROVED only, no inventory effect

Every mutation is one unit of work: the order row is read FOR UPDATE and
version-checked on flush, and any failure rolls back everything the call
wrote (allocation lines, debits, credits, status).

Per allocation line the quantities never grow along the chain:

    quantity >= receipted_quantity >= stocked_quantity >= 0
"""
from __future__ import annotations

from dataclasses import dataclass

from flask import current_app

from ..extensions import db
from ..models import (
    Store,
    SupplyOrder,
    SupplyOrderItem,
    SupplyOrderItemBatch,
    SupplyOrderItemStatus,
    SupplyOrderStatus,
)
from ..validation import (
    SUPPLY_ORDER_CODE_RE,
    ConflictError,
    NotFoundError,
    ValidationError,
    coerce_int,
    normalize_code,
    require_dict,
)
from .allocation_service import ApprovalLedger, allocate_item, total_allocated
from .catalog_service import central_store_id as resolve_central_store_id
from .catalog_service import get_product
from .concurrency import lock_for_update, run_in_transaction
from .inventory_service import credit_store_inventory, debit_inventory, find_available_central_quantity
from .permission_service import (
    CallerIdentity,
    PermissionDeniedError,
    ensure_store_access,
    has_permission,
    require_permission,
)
from .supply_order_lifecycle import assert_operation_allowed, derive_review_status, transition


REVIEW_ACTIONS = {
    "APPROVE": SupplyOrderItemStatus.APPROVED,
    "PARTLY_APPROVE": SupplyOrderItemStatus.PARTLY_APPROVED,
    "REJECT": SupplyOrderItemStatus.REJECTED,
}


@dataclass(frozen=True)
class ReviewDecision:
    item_id: int
    action: str
    approved_quantity: int | None


def _scoped_orders(caller: CallerIdentity, query):
    """Store Staff only ever see rows of their own store."""
    if caller.is_store_staff:
        return query.filter(SupplyOrder.store_id == caller.store_id)
    return query


def _order_missing(caller: CallerIdentity, order_id: int) -> Exception:
    # A store-scoped caller gets the same 403 whether the order is absent or foreign.
    if caller.is_store_staff:
        current_app.logger.warning(
            "Supply order %s denied to user %s (store %s)", order_id, caller.user_id, caller.store_id
        )
        return PermissionDeniedError("Permission denied: resource belongs to another store")
    return NotFoundError(f"Supply order {order_id} not found")


def _get_order_for_update(caller: CallerIdentity, order_id: int) -> SupplyOrder:
    query = _scoped_orders(caller, db.session.query(SupplyOrder).filter_by(id=order_id))
    order = lock_for_update(query).first()
    if order is None:
        raise _order_missing(caller, order_id)
    return order


def _order_lines(order: SupplyOrder) -> list[SupplyOrderItemBatch]:
    return (
        db.session.query(SupplyOrderItemBatch)
        .join(SupplyOrderItem, SupplyOrderItemBatch.supply_order_item_id == SupplyOrderItem.id)
        .filter(SupplyOrderItem.supply_order_id == order.id)
        .order_by(SupplyOrderItemBatch.id.asc())
        .all()
    )


def _parse_line_quantities(entries, quantity_field: str) -> dict[int, int]:
    """
    [{"item_batch_id": .., <quantity_field>: ..}, ...] -> {line_id: quantity}.

    A line may be named at most once per call.
    """
    if not isinstance(entries, list) or not entries:
        raise ValidationError("batches must be a non-empty list")

    parsed: dict[int, int] = {}
    for raw in entries:
        entry = require_dict(raw, "batch entry")
        line_id = coerce_int(entry.get("item_batch_id"), "item_batch_id")
        quantity = coerce_int(entry.get(quantity_field), quantity_field)
        if line_id in parsed:
            raise ValidationError(f"Batch allocation {line_id} listed more than once")
        parsed[line_id] = quantity
    return parsed


# -- CREATE --

def create_supply_order(caller: CallerIdentity, code, items) -> SupplyOrder:
    """
    Submit a new order for the caller's own store.

    items: [{"product_id": int, "requested_quantity": int}, ...]

    Raises:
        PermissionDeniedError: caller may not create orders or has no store
        ValidationError: malformed code, empty/duplicate items, bad quantity,
            inactive product
        ConflictError: code already used
        NotFoundError: unknown product
    """
    require_permission(caller, "CREATE_SUPPLY_ORDERS")
    if caller.store_id is None:
        raise PermissionDeniedError("Permission denied: user is not assigned to a store")

    order_code = normalize_code(code, "Supply order code", SUPPLY_ORDER_CODE_RE, "SO-YYYYMM-XXXX")

    if not isinstance(items, list) or not items:
        raise ValidationError("Supply order must have at least one item")

    requested = []
    for raw in items:
        entry = require_dict(raw, "item")
        product_id = coerce_int(entry.get("product_id"), "product_id")
        quantity = coerce_int(entry.get("requested_quantity"), "requested_quantity")
        requested.append((product_id, quantity))

    product_ids = [product_id for product_id, _ in requested]
    if len(product_ids) != len(set(product_ids)):
        raise ValidationError("Cannot select the same product twice in one order")

    def _op():
        store = db.session.get(Store, caller.store_id)
        if store is None or not store.is_active:
            raise ValidationError("Ordering store is not active")

        if db.session.query(SupplyOrder).filter_by(code=order_code).first():
            raise ConflictError(f"Supply order code {order_code} already exists")

        for product_id, quantity in requested:
            try:
                product = get_product(product_id)
            except NotFoundError:
                raise NotFoundError(f"Product with ID {product_id} not found")
            if not product.is_active:
                raise ValidationError(f'Product "{product.name}" is not active')
            if quantity <= 0:
                raise ValidationError("Requested quantity must be greater than 0")

        order = SupplyOrder(
            code=order_code,
            store_id=store.id,
            status=SupplyOrderStatus.SUBMITTED,
            created_by_user_id=caller.user_id,
        )
        db.session.add(order)
        db.session.flush()

        for product_id, quantity in requested:
            db.session.add(SupplyOrderItem(
                supply_order_id=order.id,
                product_id=product_id,
                requested_quantity=quantity,
                status=SupplyOrderItemStatus.PENDING,
            ))
        db.session.flush()

        current_app.logger.info(
            "Supply order %s submitted by user %s for store %s (%d items)",
            order.code, caller.user_id, store.id, len(requested),
        )
        return order

    return run_in_transaction(_op)


# -- REVIEW --

def _parse_review(reviews) -> list[ReviewDecision]:
    if not isinstance(reviews, list) or not reviews:
        raise ValidationError("items must be a non-empty list")

    decisions = []
    seen: set[int] = set()
    for raw in reviews:
        entry = require_dict(raw, "review item")
        item_id = coerce_int(entry.get("supply_order_item_id"), "supply_order_item_id")
        action = str(entry.get("action") or "").strip().upper()
        if action not in REVIEW_ACTIONS:
            raise ValidationError(
                f"Invalid review action for item {item_id}. Must be one of: {', '.join(REVIEW_ACTIONS)}"
            )
        approved_quantity = None
        if action == "PARTLY_APPROVE":
            approved_quantity = coerce_int(entry.get("approved_quantity"), "approved_quantity")
        if item_id in seen:
            raise ValidationError(f"Item {item_id} reviewed more than once")
        seen.add(item_id)
        decisions.append(ReviewDecision(item_id, action, approved_quantity))
    return decisions


def review_supply_order(
    caller: CallerIdentity,
    order_id: int,
    reviews,
    central_store_id: int | None = None,
) -> SupplyOrder:
    """
    Approve, partly approve or reject every item of a SUBMITTED order.

    reviews: [{"supply_order_item_id": int, "action": APPROVE|PARTLY_APPROVE|REJECT,
               "approved_quantity": int (PARTLY_APPROVE only)}, ...]

    Items are processed in the given order. For each approved quantity the
    running per-product total is checked against available central inventory,
    then batches are allocated earliest expiry first. The whole review is
    all-or-nothing: a capacity failure on any item discards the allocations
    of every earlier item too.
    """
    require_permission(caller, "REVIEW_SUPPLY_ORDERS")
    decisions = _parse_review(reviews)
    store_id = resolve_central_store_id(central_store_id)

    def _op():
        order = _get_order_for_update(caller, order_id)
        assert_operation_allowed(order, "review")

        items_by_id = {item.id: item for item in order.items}
        for decision in decisions:
            if decision.item_id not in items_by_id:
                raise NotFoundError(f"Item {decision.item_id} not found in order")
        missing = sorted(set(items_by_id) - {d.item_id for d in decisions})
        if missing:
            raise ValidationError(
                f"Every item must be reviewed; missing: {', '.join(str(i) for i in missing)}"
            )

        # Resolve quantities before touching inventory
        resolved = []
        for decision in decisions:
            item = items_by_id[decision.item_id]
            if decision.action == "APPROVE":
                quantity = item.requested_quantity
            elif decision.action == "PARTLY_APPROVE":
                quantity = decision.approved_quantity
                if quantity <= 0 or quantity >= item.requested_quantity:
                    raise ValidationError(
                        "Approved quantity must be greater than 0 and less than "
                        f"requested quantity ({item.requested_quantity})"
                    )
            else:
                quantity = None
            resolved.append((item, REVIEW_ACTIONS[decision.action], quantity))

        ledger = ApprovalLedger(store_id)
        for item, item_status, quantity in resolved:
            if quantity is not None:
                ledger.reserve(item.product, quantity)
                allocate_item(item, quantity, store_id)
            item.approved_quantity = quantity
            item.status = item_status

        transition(order, derive_review_status(status for _, status, _ in resolved), caller.user_id)
        db.session.flush()
        return order

    return run_in_transaction(_op)


# -- DELIVERY --

def start_delivery(caller: CallerIdentity, order_id: int) -> SupplyOrder:
    """
    Debit every allocation line from its central inventory row, then mark
    the order DELIVERING. Either every debit happens or none does.
    """
    require_permission(caller, "DELIVER_SUPPLY_ORDERS")

    def _op():
        order = _get_order_for_update(caller, order_id)
        assert_operation_allowed(order, "start_delivery")

        debited = 0
        for line in _order_lines(order):
            if line.quantity > 0:
                debit_inventory(line.inventory_id, line.quantity)
                debited += line.quantity

        transition(order, SupplyOrderStatus.DELIVERING, caller.user_id)
        db.session.flush()
        current_app.logger.info("Supply order %s: %d units debited from central inventory", order.code, debited)
        return order

    return run_in_transaction(_op)


def confirm_received(caller: CallerIdentity, order_id: int, batches) -> SupplyOrder:
    """
    Record the received quantity of every allocation line of a DELIVERING order.

    batches: [{"item_batch_id": int, "receipted_quantity": int}, ...]
    Each receipted_quantity must lie in 0..line.quantity. Every line of the
    order must be listed exactly once.
    """
    require_permission(caller, "RECEIVE_SUPPLY_ORDERS")
    received = _parse_line_quantities(batches, "receipted_quantity")

    def _op():
        order = _get_order_for_update(caller, order_id)
        assert_operation_allowed(order, "confirm_received")

        lines = {line.id: line for line in _order_lines(order)}
        for line_id, quantity in received.items():
            line = lines.get(line_id)
            if line is None:
                raise NotFoundError(f"Batch allocation {line_id} not found")
            if quantity < 0 or quantity > line.quantity:
                raise ValidationError(f"Receipted quantity must be between 0 and {line.quantity}")

        missing = sorted(set(lines) - set(received))
        if missing:
            raise ValidationError(
                f"Receipted quantity missing for batch allocation(s): {', '.join(str(i) for i in missing)}"
            )

        for line_id, quantity in received.items():
            lines[line_id].receipted_quantity = quantity

        transition(order, SupplyOrderStatus.RECEIPTED, caller.user_id)
        db.session.flush()
        return order

    return run_in_transaction(_op)


def stock_supply_order(caller: CallerIdentity, order_id: int, batches) -> SupplyOrder:
    """
    Shelve received quantities into the ordering store's inventory.

    batches: [{"item_batch_id": int, "stocked_quantity": int}, ...]
    Each stocked_quantity must lie in 0..line.receipted_quantity. Lines
    received with 0 units cannot be named; they are recorded as 0 stocked.
    Every line with receipted_quantity > 0 must be listed.
    """
    require_permission(caller, "STOCK_SUPPLY_ORDERS")
    stocked = _parse_line_quantities(batches, "stocked_quantity")

    def _op():
        order = _get_order_for_update(caller, order_id)
        assert_operation_allowed(order, "stock")

        lines = {line.id: line for line in _order_lines(order)}
        if not any((line.receipted_quantity or 0) > 0 for line in lines.values()):
            raise ValidationError("Cannot stock order: No batches have receipted quantity > 0")

        for line_id, quantity in stocked.items():
            line = lines.get(line_id)
            if line is None:
                raise NotFoundError(f"Batch allocation {line_id} not found")
            receipted = line.receipted_quantity or 0
            if receipted == 0:
                raise ValidationError("Cannot stock batch with 0 receipted quantity")
            if quantity < 0 or quantity > receipted:
                raise ValidationError(f"Stocked quantity must be between 0 and {receipted}")

        missing = sorted(
            line.id for line in lines.values()
            if (line.receipted_quantity or 0) > 0 and line.id not in stocked
        )
        if missing:
            raise ValidationError(
                f"Stocked quantity missing for batch allocation(s): {', '.join(str(i) for i in missing)}"
            )

        credited = 0
        for line in lines.values():
            quantity = stocked.get(line.id, 0)
            line.stocked_quantity = quantity
            if quantity > 0:
                credit_store_inventory(line.batch_id, order.store_id, quantity)
                credited += quantity

        transition(order, SupplyOrderStatus.STOCKED, caller.user_id)
        db.session.flush()
        current_app.logger.info(
            "Supply order %s: %d units credited to store %s", order.code, credited, order.store_id
        )
        return order

    return run_in_transaction(_op)


def cancel_supply_order(caller: CallerIdentity, order_id: int, reason: str | None = None) -> SupplyOrder:
    """Cancel a reviewed order before delivery starts. No inventory effect."""
    require_permission(caller, "CANCEL_SUPPLY_ORDERS")

    def _op():
        order = _get_order_for_update(caller, order_id)
        assert_operation_allowed(order, "cancel")

        order.cancellation_reason = (reason or "").strip() or None
        transition(order, SupplyOrderStatus.CANCELLED, caller.user_id)
        db.session.flush()
        return order

    return run_in_transaction(_op)


# -- READS --

def _require_view(caller: CallerIdentity) -> bool:
    """Returns True when the caller may see every store's orders."""
    if has_permission(caller, "VIEW_ALL_SUPPLY_ORDERS"):
        return True
    require_permission(caller, "VIEW_STORE_SUPPLY_ORDERS")
    return False


def get_supply_order(caller: CallerIdentity, order_id: int) -> SupplyOrder:
    _require_view(caller)
    order = _scoped_orders(caller, db.session.query(SupplyOrder).filter_by(id=order_id)).first()
    if order is None:
        raise _order_missing(caller, order_id)
    return order


def list_supply_orders(
    caller: CallerIdentity,
    store_id: int | None = None,
    status: str | None = None,
) -> list[SupplyOrder]:
    """
    Orders visible to the caller, newest first.

    Store Staff always get their own store's orders; asking for another
    store is a permission error.
    """
    sees_all = _require_view(caller)
    if not sees_all:
        if store_id is not None:
            ensure_store_access(caller, store_id)
        store_id = caller.store_id

    query = db.session.query(SupplyOrder)
    if store_id is not None:
        query = query.filter(SupplyOrder.store_id == store_id)
    if status:
        try:
            query = query.filter(SupplyOrder.status == SupplyOrderStatus(status.upper()))
        except ValueError:
            raise ValidationError(f"Unknown supply order status {status}")

    return query.order_by(SupplyOrder.created_at.desc(), SupplyOrder.id.desc()).all()


def supply_order_summary(order: SupplyOrder, central_store_id: int | None = None) -> dict:
    """
    Order with its items, each item's allocation lines and the product's
    current available central quantity.
    """
    store_id = resolve_central_store_id(central_store_id)
    items = []
    for item in order.items:
        items.append({
            **item.to_dict(),
            "available_quantity": find_available_central_quantity(item.product_id, store_id),
            "allocated_quantity": total_allocated(item.allocations),
            "allocations": [line.to_dict() for line in item.allocations],
        })
    return {**order.to_dict(), "items": items}
