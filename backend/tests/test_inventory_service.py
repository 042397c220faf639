"""
Inventory service: expiry status, availability, debit/credit and disposal.
"""

from datetime import date, timedelta

import pytest

from ckms.extensions import db
from ckms.models import DisposalReason, Inventory, InventoryStatus
from ckms.services import inventory_service
from ckms.services.inventory_service import InsufficientInventoryError, compute_expiry_status
from ckms.services.permission_service import PermissionDeniedError
from ckms.time_utils import today
from ckms.validation import ConflictError, NotFoundError, ValidationError


AS_OF = date(2026, 1, 10)


class TestComputeExpiryStatus:

    @pytest.mark.parametrize("expired,expected", [
        (date(2026, 1, 9), InventoryStatus.EXPIRED),
        (date(2026, 1, 10), InventoryStatus.NEAR_EXPIRY),
        (date(2026, 1, 13), InventoryStatus.NEAR_EXPIRY),
        (date(2026, 1, 14), InventoryStatus.ACTIVE),
        (None, InventoryStatus.ACTIVE),
    ])
    def test_three_day_window(self, app, expired, expected):
        assert compute_expiry_status(expired, AS_OF, near_expiry_days=3) == expected

    def test_window_from_config(self, app):
        app.config["NEAR_EXPIRY_DAYS"] = 7
        try:
            assert compute_expiry_status(AS_OF + timedelta(days=6), AS_OF) == InventoryStatus.NEAR_EXPIRY
        finally:
            app.config["NEAR_EXPIRY_DAYS"] = 3


class TestRefreshExpiryStatuses:

    def test_updates_changed_rows_only(self, db_session, product_p, stock_central):
        fresh = stock_central(product_p, 5, expires_in_days=30)
        ageing = stock_central(product_p, 5, expires_in_days=2)
        assert ageing.status == InventoryStatus.NEAR_EXPIRY

        changed = inventory_service.refresh_expiry_statuses(as_of=today() + timedelta(days=5))
        db_session.commit()

        assert changed == 1
        assert ageing.status == InventoryStatus.EXPIRED
        assert fresh.status == InventoryStatus.ACTIVE

    def test_disposed_rows_stay_disposed(self, db_session, product_p, stock_central):
        row = stock_central(product_p, 5, expires_in_days=-10)
        row.status = InventoryStatus.DISPOSED
        db_session.commit()

        assert inventory_service.refresh_expiry_statuses() == 0
        assert row.status == InventoryStatus.DISPOSED


class TestAvailability:

    def test_sums_allocatable_central_rows(self, db_session, store_a, product_p, product_q, stock_central):
        stock_central(product_p, 10, expires_in_days=1)
        stock_central(product_p, 15, expires_in_days=9)
        stock_central(product_p, 99, expires_in_days=-1)
        stock_central(product_p, 77, expires_in_days=9, store=store_a)
        stock_central(product_q, 5, expires_in_days=9)
        disposed = stock_central(product_p, 40, expires_in_days=9)
        disposed.status = InventoryStatus.DISPOSED
        db_session.commit()

        assert inventory_service.find_available_central_quantity(product_p.id) == 25

    def test_zero_when_nothing_stocked(self, db_session, central_store, product_p):
        assert inventory_service.find_available_central_quantity(product_p.id) == 0

    def test_batches_ordered_by_expiry_then_id(self, db_session, product_p, stock_central):
        late = stock_central(product_p, 5, expires_in_days=9)
        early = stock_central(product_p, 5, expires_in_days=4)
        tie = stock_central(product_p, 5, expires_in_days=4)
        empty = stock_central(product_p, 0, expires_in_days=1)

        batches = inventory_service.find_allocatable_batches(product_p.id)

        assert [b.inventory_id for b in batches] == [early.id, tie.id, late.id]
        assert empty.id not in [b.inventory_id for b in batches]


class TestDebitAndCredit:

    def test_debit_decrements(self, db_session, product_p, stock_central):
        row = stock_central(product_p, 10, expires_in_days=5)
        inventory_service.debit_inventory(row.id, 4)
        db_session.commit()
        assert row.quantity == 6

    def test_debit_never_goes_negative(self, db_session, product_p, stock_central):
        row = stock_central(product_p, 3, expires_in_days=5)
        with pytest.raises(InsufficientInventoryError):
            inventory_service.debit_inventory(row.id, 4)

    @pytest.mark.parametrize("qty", [0, -2])
    def test_debit_requires_positive_quantity(self, db_session, product_p, stock_central, qty):
        row = stock_central(product_p, 3, expires_in_days=5)
        with pytest.raises(ValidationError):
            inventory_service.debit_inventory(row.id, qty)

    def test_debit_unknown_row(self, db_session, central_store):
        with pytest.raises(NotFoundError):
            inventory_service.debit_inventory(12345, 1)

    def test_credit_creates_then_adds(self, db_session, store_a, product_p, stock_central):
        central_row = stock_central(product_p, 10, expires_in_days=2)

        first = inventory_service.credit_store_inventory(central_row.batch_id, store_a.id, 4)
        db_session.commit()
        assert first.quantity == 4
        assert first.status == InventoryStatus.NEAR_EXPIRY

        second = inventory_service.credit_store_inventory(central_row.batch_id, store_a.id, 3)
        db_session.commit()
        assert second.id == first.id
        assert second.quantity == 7

    def test_credit_reopens_disposed_row(self, db_session, staff_a, store_a, product_p, stock_central):
        central_row = stock_central(product_p, 10, expires_in_days=10)
        row = inventory_service.credit_store_inventory(central_row.batch_id, store_a.id, 4)
        db_session.commit()
        inventory_service.dispose_inventory(staff_a, row.id, "DEFECTIVE")
        db_session.commit()

        reopened = inventory_service.credit_store_inventory(central_row.batch_id, store_a.id, 3)
        db_session.commit()

        assert reopened.id == row.id
        assert reopened.quantity == 3
        assert reopened.status == InventoryStatus.ACTIVE
        assert reopened.disposed_reason is None
        assert reopened.disposed_at is None
        assert reopened.disposed_by_user_id is None


# =============================================================================
# DISPOSAL
# =============================================================================


class TestDisposeInventory:

    def test_central_staff_dispose_defective(self, db_session, central, product_p, stock_central):
        row = stock_central(product_p, 10, expires_in_days=5)

        inventory_service.dispose_inventory(central, row.id, "defective")
        db_session.commit()

        assert row.status == InventoryStatus.DISPOSED
        assert row.disposed_reason == DisposalReason.DEFECTIVE
        assert row.disposed_by_user_id == central.user_id
        assert row.quantity == 10

    def test_expired_row_forces_expired_reason(self, db_session, central, product_p, stock_central):
        row = stock_central(product_p, 10, expires_in_days=-2)
        inventory_service.dispose_inventory(central, row.id, "DEFECTIVE")
        db_session.commit()
        assert row.disposed_reason == DisposalReason.EXPIRED

    def test_wrong_data_is_admin_only(self, db_session, admin, central, product_p, stock_central):
        row = stock_central(product_p, 10, expires_in_days=5)

        with pytest.raises(PermissionDeniedError):
            inventory_service.dispose_inventory(central, row.id, "WRONG_DATA")
        assert db.session.get(Inventory, row.id).status == InventoryStatus.ACTIVE

        inventory_service.dispose_inventory(admin, row.id, "WRONG_DATA")
        db_session.commit()
        assert row.disposed_reason == DisposalReason.WRONG_DATA

    def test_store_staff_only_own_store(self, db_session, staff_a, staff_b, store_a, product_p, stock_central):
        row = stock_central(product_p, 10, expires_in_days=5, store=store_a)

        with pytest.raises(PermissionDeniedError):
            inventory_service.dispose_inventory(staff_b, row.id, "DEFECTIVE")

        inventory_service.dispose_inventory(staff_a, row.id, "DEFECTIVE")
        db_session.commit()
        assert row.status == InventoryStatus.DISPOSED

    def test_store_staff_cannot_dispose_central_rows(self, db_session, staff_a, product_p, stock_central):
        row = stock_central(product_p, 10, expires_in_days=5)
        with pytest.raises(PermissionDeniedError):
            inventory_service.dispose_inventory(staff_a, row.id, "DEFECTIVE")

    def test_central_staff_cannot_dispose_store_rows(self, db_session, central, store_a, product_p, stock_central):
        row = stock_central(product_p, 10, expires_in_days=5, store=store_a)
        with pytest.raises(PermissionDeniedError):
            inventory_service.dispose_inventory(central, row.id, "DEFECTIVE")

    def test_already_disposed(self, db_session, central, product_p, stock_central):
        row = stock_central(product_p, 10, expires_in_days=5)
        inventory_service.dispose_inventory(central, row.id, "DEFECTIVE")
        db_session.commit()

        with pytest.raises(ConflictError, match="already disposed"):
            inventory_service.dispose_inventory(central, row.id, "DEFECTIVE")

    def test_invalid_reason(self, db_session, central, product_p, stock_central):
        row = stock_central(product_p, 10, expires_in_days=5)
        with pytest.raises(ValidationError, match="Invalid disposal reason"):
            inventory_service.dispose_inventory(central, row.id, "LOST")

    def test_disposed_row_leaves_availability(self, db_session, central, product_p, stock_central):
        row = stock_central(product_p, 10, expires_in_days=5)
        inventory_service.dispose_inventory(central, row.id, "DEFECTIVE")
        db_session.commit()
        assert inventory_service.find_available_central_quantity(product_p.id) == 0
