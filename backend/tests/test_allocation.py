"""
Earliest-expiry-first batch allocation during supply order review.
"""

import pytest

from ckms.extensions import db
from ckms.models import Inventory, InventoryStatus, SupplyOrderItemBatch, SupplyOrderStatus
from ckms.services import allocation_service, supply_order_service
from ckms.services.allocation_service import AllocationShortError, plan_allocation
from ckms.services.inventory_service import AllocatableBatch, InsufficientInventoryError

from conftest import all_lines


def _candidate(inventory_id, quantity):
    return AllocatableBatch(inventory_id=inventory_id, batch_id=inventory_id, quantity=quantity, expiry_date=None)


class TestPlanAllocation:
    """Pure greedy split, no database."""

    def test_exact_fit_single_candidate(self):
        slices, remaining = plan_allocation([_candidate(1, 20)], 20)
        assert remaining == 0
        assert [(s.inventory_id, s.quantity) for s in slices] == [(1, 20)]

    def test_spills_into_next_candidate(self):
        slices, remaining = plan_allocation([_candidate(1, 60), _candidate(2, 80)], 100)
        assert remaining == 0
        assert [(s.inventory_id, s.quantity) for s in slices] == [(1, 60), (2, 40)]

    def test_stops_once_covered(self):
        slices, _ = plan_allocation([_candidate(1, 60), _candidate(2, 80), _candidate(3, 5)], 70)
        assert [s.inventory_id for s in slices] == [1, 2]

    def test_reports_shortfall(self):
        slices, remaining = plan_allocation([_candidate(1, 10), _candidate(2, 5)], 20)
        assert remaining == 5
        assert sum(s.quantity for s in slices) == 15

    def test_skips_empty_candidates(self):
        slices, remaining = plan_allocation([_candidate(1, 0), _candidate(2, 3)], 3)
        assert remaining == 0
        assert [s.inventory_id for s in slices] == [2]


class TestReviewAllocation:
    """Allocation lines written when central staff review an order."""

    def test_approve_spans_batches_earliest_expiry_first(
        self, db_session, central, staff_a, product_p, stock_central, submit_order
    ):
        """100 requested, B1 (2 days, 60) and B2 (10 days, 80): 60 from B1 then 40 from B2."""
        b2 = stock_central(product_p, 80, expires_in_days=10)
        b1 = stock_central(product_p, 60, expires_in_days=2)
        order = submit_order(staff_a, [(product_p, 100)])

        supply_order_service.review_supply_order(
            central, order.id,
            [{"supply_order_item_id": order.items[0].id, "action": "APPROVE"}],
        )
        db_session.commit()

        lines = all_lines(order)
        assert [(line.inventory_id, line.quantity) for line in lines] == [(b1.id, 60), (b2.id, 40)]
        assert order.status == SupplyOrderStatus.APPROVED
        assert order.items[0].approved_quantity == 100

    def test_partly_approve_exhausts_earliest_batch_first(
        self, db_session, central, staff_a, product_p, stock_central, submit_order
    ):
        """Approving 70 of 100 takes all 60 of B1 and only 10 of B2."""
        b1 = stock_central(product_p, 60, expires_in_days=2)
        b2 = stock_central(product_p, 80, expires_in_days=10)
        order = submit_order(staff_a, [(product_p, 100)])

        supply_order_service.review_supply_order(
            central, order.id,
            [{"supply_order_item_id": order.items[0].id, "action": "PARTLY_APPROVE", "approved_quantity": 70}],
        )
        db_session.commit()

        lines = all_lines(order)
        assert [(line.inventory_id, line.quantity) for line in lines] == [(b1.id, 60), (b2.id, 10)]
        assert order.status == SupplyOrderStatus.PARTLY_APPROVED

    def test_capacity_error_leaves_nothing_behind(
        self, db_session, central, staff_a, product_p, stock_central, submit_order
    ):
        """Total available 50, approving 60 fails with no rows and no status change."""
        row = stock_central(product_p, 50, expires_in_days=5)
        order = submit_order(staff_a, [(product_p, 60)])

        with pytest.raises(InsufficientInventoryError) as exc:
            supply_order_service.review_supply_order(
                central, order.id,
                [{"supply_order_item_id": order.items[0].id, "action": "APPROVE"}],
            )
        assert "Only 50 kg available" in str(exc.value)

        assert db_session.query(SupplyOrderItemBatch).count() == 0
        assert db.session.get(Inventory, row.id).quantity == 50
        assert order.status == SupplyOrderStatus.SUBMITTED
        assert order.items[0].approved_quantity is None

    def test_expired_and_disposed_rows_are_skipped(
        self, db_session, central, staff_a, product_p, stock_central, submit_order
    ):
        expired = stock_central(product_p, 100, expires_in_days=-1)
        disposed = stock_central(product_p, 100, expires_in_days=1)
        disposed.status = InventoryStatus.DISPOSED
        good = stock_central(product_p, 30, expires_in_days=20)
        db_session.commit()
        assert expired.status == InventoryStatus.EXPIRED

        order = submit_order(staff_a, [(product_p, 25)])
        supply_order_service.review_supply_order(
            central, order.id,
            [{"supply_order_item_id": order.items[0].id, "action": "APPROVE"}],
        )
        db_session.commit()

        assert [line.inventory_id for line in all_lines(order)] == [good.id]

    def test_other_store_inventory_is_not_allocated(
        self, db_session, central, staff_a, store_b, product_p, stock_central, submit_order
    ):
        stock_central(product_p, 100, expires_in_days=1, store=store_b)
        order = submit_order(staff_a, [(product_p, 10)])

        with pytest.raises(InsufficientInventoryError):
            supply_order_service.review_supply_order(
                central, order.id,
                [{"supply_order_item_id": order.items[0].id, "action": "APPROVE"}],
            )

    def test_allocation_does_not_debit_inventory(
        self, db_session, central, staff_a, product_p, stock_central, submit_order
    ):
        row = stock_central(product_p, 40, expires_in_days=5)
        order = submit_order(staff_a, [(product_p, 15)])
        supply_order_service.review_supply_order(
            central, order.id,
            [{"supply_order_item_id": order.items[0].id, "action": "APPROVE"}],
        )
        db_session.commit()

        assert db.session.get(Inventory, row.id).quantity == 40

    def test_failure_on_later_item_discards_earlier_allocations(
        self, db_session, central, staff_a, product_p, product_q, stock_central, submit_order
    ):
        stock_central(product_p, 100, expires_in_days=5)
        stock_central(product_q, 5, expires_in_days=5)
        order = submit_order(staff_a, [(product_p, 10), (product_q, 10)])
        item_p, item_q = order.items

        with pytest.raises(InsufficientInventoryError):
            supply_order_service.review_supply_order(
                central, order.id,
                [
                    {"supply_order_item_id": item_p.id, "action": "APPROVE"},
                    {"supply_order_item_id": item_q.id, "action": "APPROVE"},
                ],
            )

        assert db_session.query(SupplyOrderItemBatch).count() == 0
        assert order.status == SupplyOrderStatus.SUBMITTED

    def test_rejected_items_get_no_allocation(
        self, db_session, central, staff_a, product_p, product_q, stock_central, submit_order
    ):
        stock_central(product_p, 100, expires_in_days=5)
        order = submit_order(staff_a, [(product_p, 10), (product_q, 10)])
        item_p, item_q = order.items

        supply_order_service.review_supply_order(
            central, order.id,
            [
                {"supply_order_item_id": item_p.id, "action": "APPROVE"},
                {"supply_order_item_id": item_q.id, "action": "REJECT"},
            ],
        )
        db_session.commit()

        assert sum(line.quantity for line in item_p.allocations) == 10
        assert item_q.allocations == []
        assert item_q.approved_quantity is None
        assert order.status == SupplyOrderStatus.PARTLY_APPROVED

    def test_short_batches_raise_allocation_short(
        self, db_session, central, staff_a, product_p, stock_central, submit_order, monkeypatch
    ):
        """If the availability figure overstates the batches, the allocator still refuses."""
        stock_central(product_p, 10, expires_in_days=5)
        order = submit_order(staff_a, [(product_p, 25)])
        monkeypatch.setattr(allocation_service, "find_available_central_quantity", lambda *a, **k: 1000)

        with pytest.raises(AllocationShortError) as exc:
            supply_order_service.review_supply_order(
                central, order.id,
                [{"supply_order_item_id": order.items[0].id, "action": "APPROVE"}],
            )

        assert exc.value.short_by == 15
        assert "Short by 15 units" in str(exc.value)
        assert db_session.query(SupplyOrderItemBatch).count() == 0


class TestOrderSummary:

    def test_summary_reports_available_and_allocated(
        self, db_session, central, staff_a, product_p, stock_central, submit_order
    ):
        stock_central(product_p, 60, expires_in_days=2)
        stock_central(product_p, 80, expires_in_days=10)
        order = submit_order(staff_a, [(product_p, 100)])
        supply_order_service.review_supply_order(
            central, order.id,
            [{"supply_order_item_id": order.items[0].id, "action": "APPROVE"}],
        )
        db_session.commit()

        summary = supply_order_service.supply_order_summary(order)
        item = summary["items"][0]
        assert summary["status"] == "APPROVED"
        assert item["available_quantity"] == 140
        assert item["allocated_quantity"] == 100
        assert [a["quantity"] for a in item["allocations"]] == [60, 40]
        assert item["allocations"][0]["batch_code"] == "BATCH-202601-001"
