# Overview: Supply order state machine; the one place order transitions are checked.

"""
Supply order lifecycle.

STATE MACHINE:
    SUBMITTED -> APPROVED | PARTLY_APPROVED | REJECTED
    APPROVED | PARTLY_APPROVED -> DELIVERING | CANCELLED
    DELIVERING -> RECEIPTED
    RECEIPTED -> STOCKED

    REJECTED, CANCELLED and STOCKED are terminal.

RULES:
1. Cannot skip states
2. Cannot reverse states
3. Once DELIVERING the central inventory debit has happened, so there is
   no cancellation path from there on
"""

from __future__ import annotations

from typing import Iterable

from flask import current_app

from ..models import SupplyOrder, SupplyOrderItemStatus, SupplyOrderStatus
from ..validation import ConflictError
from ckms.time_utils import utcnow


S = SupplyOrderStatus

SUPPLY_ORDER_TRANSITIONS: dict[SupplyOrderStatus, frozenset[SupplyOrderStatus]] = {
    S.SUBMITTED: frozenset({S.APPROVED, S.PARTLY_APPROVED, S.REJECTED}),
    S.APPROVED: frozenset({S.DELIVERING, S.CANCELLED}),
    S.PARTLY_APPROVED: frozenset({S.DELIVERING, S.CANCELLED}),
    S.DELIVERING: frozenset({S.RECEIPTED}),
    S.RECEIPTED: frozenset({S.STOCKED}),
    S.REJECTED: frozenset(),
    S.CANCELLED: frozenset(),
    S.STOCKED: frozenset(),
}

TERMINAL_STATUSES = frozenset(s for s, targets in SUPPLY_ORDER_TRANSITIONS.items() if not targets)

# operation -> (statuses it may start from, human label)
OPERATIONS: dict[str, tuple[frozenset[SupplyOrderStatus], str]] = {
    "review": (frozenset({S.SUBMITTED}), "review"),
    "start_delivery": (frozenset({S.APPROVED, S.PARTLY_APPROVED}), "start delivery for"),
    "confirm_received": (frozenset({S.DELIVERING}), "confirm receipt of"),
    "stock": (frozenset({S.RECEIPTED}), "stock"),
    "cancel": (frozenset({S.APPROVED, S.PARTLY_APPROVED}), "cancel"),
}

# Timestamp and attribution columns written on entering a status
_STAMPS = {
    S.APPROVED: ("reviewed_at", "reviewed_by_user_id"),
    S.PARTLY_APPROVED: ("reviewed_at", "reviewed_by_user_id"),
    S.REJECTED: ("reviewed_at", "reviewed_by_user_id"),
    S.DELIVERING: ("delivery_started_at", "delivered_by_user_id"),
    S.RECEIPTED: ("received_at", "received_by_user_id"),
    S.STOCKED: ("stocked_at", "stocked_by_user_id"),
    S.CANCELLED: ("cancelled_at", "cancelled_by_user_id"),
}


class SupplyOrderStateError(ConflictError):
    """An operation was attempted from a status that does not allow it."""

    def __init__(self, message: str, current_status: SupplyOrderStatus):
        self.current_status = current_status
        super().__init__(message)


def can_transition(from_status: SupplyOrderStatus, to_status: SupplyOrderStatus) -> bool:
    return SupplyOrderStatus(to_status) in SUPPLY_ORDER_TRANSITIONS[SupplyOrderStatus(from_status)]


def assert_operation_allowed(order: SupplyOrder, operation: str) -> None:
    """
    Raise SupplyOrderStateError unless operation may run from the order's
    current status. The message names the current status.
    """
    allowed, label = OPERATIONS[operation]
    if order.status not in allowed:
        expected = " or ".join(sorted(s.value for s in allowed))
        raise SupplyOrderStateError(
            f"Cannot {label} supply order {order.code} in {order.status.value} status "
            f"(requires {expected})",
            order.status,
        )


def transition(order: SupplyOrder, to_status: SupplyOrderStatus, user_id: int) -> SupplyOrder:
    """
    Move an order to to_status, stamping the matching timestamp and actor.

    The caller must have read the order with a row lock; the version_id
    column makes the flush fail if another transaction changed it meanwhile.
    """
    from_status = order.status
    if not can_transition(from_status, to_status):
        raise SupplyOrderStateError(
            f"Cannot move supply order {order.code} from {from_status.value} to {to_status.value}",
            from_status,
        )

    order.status = to_status
    at_column, by_column = _STAMPS[to_status]
    setattr(order, at_column, utcnow())
    setattr(order, by_column, user_id)

    current_app.logger.info(
        "Supply order %s: %s -> %s (user %s)", order.code, from_status.value, to_status.value, user_id
    )
    return order


def derive_review_status(item_statuses: Iterable[SupplyOrderItemStatus]) -> SupplyOrderStatus:
    """
    Order status implied by its reviewed items.

    Any partly approved item, or approved and rejected items together, give
    PARTLY_APPROVED. All approved gives APPROVED, all rejected REJECTED.
    Anything else falls back to PARTLY_APPROVED.
    """
    statuses = list(item_statuses)
    approved = statuses.count(SupplyOrderItemStatus.APPROVED)
    partly = statuses.count(SupplyOrderItemStatus.PARTLY_APPROVED)
    rejected = statuses.count(SupplyOrderItemStatus.REJECTED)

    if partly > 0 or (approved > 0 and rejected > 0):
        return S.PARTLY_APPROVED
    if statuses and approved == len(statuses):
        return S.APPROVED
    if statuses and rejected == len(statuses):
        return S.REJECTED
    return S.PARTLY_APPROVED
