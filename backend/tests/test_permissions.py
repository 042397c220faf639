"""
Static role -> permission catalog.
"""

import pytest

from ckms.decorators import require_permission
from ckms.models import Role
from ckms.permissions import (
    DEFAULT_ROLE_PERMISSIONS,
    PermissionCategory,
    get_all_permission_codes,
    role_permissions_by_category,
    validate_permission_code,
)
from ckms.services.permission_service import (
    CallerIdentity,
    PermissionDeniedError,
    ensure_store_access,
    has_permission,
)


class TestPermissionCatalog:

    def test_codes_are_unique(self):
        codes = get_all_permission_codes()
        assert len(codes) == len(set(codes))

    @pytest.mark.parametrize("role", list(Role))
    def test_every_granted_code_is_defined(self, role):
        assert all(validate_permission_code(code) == code for code in DEFAULT_ROLE_PERMISSIONS[role])

    def test_unknown_code_rejected(self):
        with pytest.raises(ValueError):
            validate_permission_code("LAUNCH_ROCKETS")

    def test_route_decorator_rejects_unknown_code(self):
        with pytest.raises(ValueError):
            require_permission("VIEW_EVERYTHING")

    def test_grouping_by_category(self):
        grouped = role_permissions_by_category(Role.CENTRAL_STAFF)
        assert list(grouped) == [
            PermissionCategory.SUPPLY_ORDERS, PermissionCategory.INVENTORY, PermissionCategory.PRODUCTION,
        ]
        flattened = [d["code"] for defs in grouped.values() for d in defs]
        assert sorted(flattened) == sorted(DEFAULT_ROLE_PERMISSIONS[Role.CENTRAL_STAFF])
        assert PermissionCategory.PRODUCTION not in role_permissions_by_category(Role.STORE_STAFF)


class TestRoleGrants:

    @pytest.mark.parametrize("role,code,expected", [
        (Role.STORE_STAFF, "CREATE_SUPPLY_ORDERS", True),
        (Role.STORE_STAFF, "REVIEW_SUPPLY_ORDERS", False),
        (Role.STORE_STAFF, "DELIVER_SUPPLY_ORDERS", False),
        (Role.CENTRAL_STAFF, "REVIEW_SUPPLY_ORDERS", True),
        (Role.CENTRAL_STAFF, "DELIVER_SUPPLY_ORDERS", True),
        (Role.CENTRAL_STAFF, "RECEIVE_SUPPLY_ORDERS", False),
        (Role.CENTRAL_STAFF, "STOCK_SUPPLY_ORDERS", False),
        (Role.ADMIN, "VIEW_ALL_SUPPLY_ORDERS", True),
        (Role.ADMIN, "CANCEL_SUPPLY_ORDERS", False),
        (Role.ADMIN, "CREATE_SUPPLY_ORDERS", False),
    ])
    def test_grants(self, app, role, code, expected):
        assert has_permission(CallerIdentity(user_id=1, role=role), code) is expected

    def test_store_scope_applies_to_store_staff_only(self, app):
        ensure_store_access(CallerIdentity(1, Role.CENTRAL_STAFF, None), 7)
        ensure_store_access(CallerIdentity(1, Role.ADMIN, None), 7)
        ensure_store_access(CallerIdentity(1, Role.STORE_STAFF, 7), 7)
        with pytest.raises(PermissionDeniedError):
            ensure_store_access(CallerIdentity(1, Role.STORE_STAFF, 8), 7)
        with pytest.raises(PermissionDeniedError):
            ensure_store_access(CallerIdentity(1, Role.STORE_STAFF, None), 7)

    def test_caller_role_flags(self):
        caller = CallerIdentity(1, Role.CENTRAL_STAFF)
        assert caller.is_central_staff
        assert not caller.is_admin and not caller.is_store_staff
