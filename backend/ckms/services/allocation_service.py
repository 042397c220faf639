# Overview: Service-layer operations for batch allocation; encapsulates business logic and database work.

"""
Earliest-expiry-first allocation of central kitchen inventory to supply
order items.

Given an approved quantity for one item, walk the product's allocatable
central inventory rows in expiry order and take min(remaining, row.quantity)
from each until the quantity is covered. Allocation only records lines; the
inventory itself is debited later, when delivery starts.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Sequence

from flask import current_app

from ..extensions import db
from ..models import SupplyOrderItem, SupplyOrderItemBatch
from .inventory_service import (
    AllocatableBatch,
    InsufficientInventoryError,
    find_allocatable_batches,
    find_available_central_quantity,
)


class AllocationShortError(InsufficientInventoryError):
    """Allocatable batches ran out before the approved quantity was covered."""

    def __init__(self, product_name: str, short_by: int):
        self.product_name = product_name
        self.short_by = short_by
        super().__init__(
            f"Failed to allocate all batches for {product_name}. Short by {short_by} units."
        )


@dataclass(frozen=True)
class AllocationSlice:
    inventory_id: int
    batch_id: int
    quantity: int


def plan_allocation(
    candidates: Sequence[AllocatableBatch],
    quantity: int,
) -> tuple[list[AllocationSlice], int]:
    """
    Greedy split of quantity over candidates, in the order given.

    Returns (slices, remaining). remaining > 0 means the candidates could
    not cover the quantity.
    """
    slices: list[AllocationSlice] = []
    remaining = quantity
    for candidate in candidates:
        if remaining <= 0:
            break
        if candidate.quantity <= 0:
            continue
        take = min(remaining, candidate.quantity)
        slices.append(AllocationSlice(candidate.inventory_id, candidate.batch_id, take))
        remaining -= take
    return slices, remaining


class ApprovalLedger:
    """
    Running total of approved quantity per product within one review call.

    Each new approval is checked against the product's available central
    quantity before any allocation line is written.

    NOTE: available quantity is what sits in central inventory now. Lines
    already allocated to other approved orders that have not started
    delivery are not subtracted, so two orders may be approved against the
    same units. The debit guard in start_delivery is what refuses the
    second one.
    """

    def __init__(self, central_store_id: int):
        self.central_store_id = central_store_id
        self._totals: dict[int, int] = {}

    def reserve(self, product, quantity: int) -> int:
        available = find_available_central_quantity(product.id, self.central_store_id)
        total = self._totals.get(product.id, 0) + quantity
        if total > available:
            raise InsufficientInventoryError(
                f"Cannot approve {total} {product.unit} of {product.name}. "
                f"Only {available} {product.unit} available in inventory"
            )
        self._totals[product.id] = total
        return total


def allocate_item(
    item: SupplyOrderItem,
    quantity: int,
    central_store_id: int,
) -> list[SupplyOrderItemBatch]:
    """
    Create allocation lines for an item, earliest expiry first.

    Raises AllocationShortError when the batches are exhausted first. The
    caller's transaction is expected to discard any lines already added.
    """
    product = item.product
    candidates = find_allocatable_batches(product.id, central_store_id, lock=True)
    slices, remaining = plan_allocation(candidates, quantity)
    if remaining > 0:
        raise AllocationShortError(product.name, remaining)

    lines = []
    for piece in slices:
        line = SupplyOrderItemBatch(
            supply_order_item_id=item.id,
            batch_id=piece.batch_id,
            inventory_id=piece.inventory_id,
            quantity=piece.quantity,
        )
        db.session.add(line)
        lines.append(line)

    db.session.flush()
    current_app.logger.debug(
        "Allocated %d %s of %s to item %s over %d batch(es): %s",
        quantity, product.unit, product.name, item.id, len(slices),
        ", ".join(f"inventory {p.inventory_id} x{p.quantity}" for p in slices),
    )
    return lines


def total_allocated(lines: Iterable[SupplyOrderItemBatch]) -> int:
    return sum(line.quantity for line in lines)
