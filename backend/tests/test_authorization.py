"""
Authorization tests over HTTP.

Tests that:
1. Unauthenticated requests return 401
2. Roles lacking a permission get 403, before any lookup (no 404 leak)
3. Store Staff cannot see or act on another store's orders
4. Sessions end on logout and are refused for deactivated stores
"""

import pytest

from ckms.models import Role, SessionToken
from ckms.services import session_service
from ckms.services.auth_service import PasswordValidationError, authenticate, create_user

from conftest import approve_all, auth_headers, get_auth_token


# =============================================================================
# AUTHENTICATION
# =============================================================================


class TestAuthenticationRequired:
    """Protected endpoints refuse missing or bogus tokens."""

    @pytest.mark.parametrize("method,path", [
        ("get", "/api/supply-orders"),
        ("get", "/api/supply-orders/1"),
        ("post", "/api/supply-orders"),
        ("post", "/api/supply-orders/1/review"),
        ("post", "/api/supply-orders/1/start-delivery"),
        ("post", "/api/supply-orders/1/confirm-received"),
        ("post", "/api/supply-orders/1/stock"),
        ("post", "/api/supply-orders/1/cancel"),
        ("get", "/api/inventory/stores/1"),
        ("post", "/api/inventory/1/dispose"),
        ("get", "/api/batches"),
        ("get", "/api/auth/me"),
    ])
    def test_no_token(self, client, db_session, method, path):
        response = getattr(client, method)(path, json={})
        assert response.status_code == 401

    def test_bogus_token(self, client, db_session):
        response = client.get('/api/supply-orders', headers=auth_headers("not-a-token"))
        assert response.status_code == 401


class TestLogin:

    def test_login_returns_token_and_permissions(self, client, store_user_a):
        response = client.post('/api/auth/login', json={'username': 'staff_a', 'password': 'Password123!'})
        assert response.status_code == 200
        body = response.json
        assert body['token']
        assert body['store_id'] == store_user_a.store_id
        assert 'CREATE_SUPPLY_ORDERS' in body['permissions']
        assert 'REVIEW_SUPPLY_ORDERS' not in body['permissions']

    def test_wrong_password(self, client, store_user_a):
        response = client.post('/api/auth/login', json={'username': 'staff_a', 'password': 'Nope123!!'})
        assert response.status_code == 401

    def test_missing_fields(self, client, db_session):
        response = client.post('/api/auth/login', json={'username': 'staff_a'})
        assert response.status_code == 400

    def test_me(self, client, staff_a_headers, store_a):
        response = client.get('/api/auth/me', headers=staff_a_headers)
        assert response.status_code == 200
        assert response.json['user']['role'] == 'STORE_STAFF'
        assert response.json['store']['id'] == store_a.id

    def test_logout_revokes_token(self, client, store_user_a):
        token = get_auth_token(client, 'staff_a')
        assert client.post('/api/auth/logout', headers=auth_headers(token)).status_code == 200
        assert client.get('/api/auth/me', headers=auth_headers(token)).status_code == 401
        assert client.post('/api/auth/logout', headers=auth_headers(token)).status_code == 401

    def test_inactive_store_cannot_log_in(self, client, db_session, store_user_a, store_a):
        store_a.is_active = False
        db_session.commit()
        assert get_auth_token(client, 'staff_a') is None

    def test_session_dropped_when_store_deactivated(self, client, db_session, store_user_a, store_a):
        token = get_auth_token(client, 'staff_a')
        store_a.is_active = False
        db_session.commit()

        assert client.get('/api/auth/me', headers=auth_headers(token)).status_code == 401
        session = db_session.query(SessionToken).filter_by(token_hash=session_service.hash_token(token)).one()
        assert session.is_revoked
        assert session.revoked_reason == "Store deactivated"


class TestUserAccounts:

    def test_store_staff_require_store(self, db_session, central_store):
        with pytest.raises(ValueError, match="assigned to a store"):
            create_user("nostore", "Password123!", Role.STORE_STAFF)

    def test_weak_password(self, db_session, store_a):
        with pytest.raises(PasswordValidationError):
            create_user("weak", "password", Role.STORE_STAFF, store_a.id)

    def test_duplicate_username(self, db_session, store_user_a, store_a):
        with pytest.raises(ValueError, match="already exists"):
            create_user("staff_a", "Password123!", Role.STORE_STAFF, store_a.id)

    def test_authenticate_sets_last_login(self, db_session, store_user_a):
        user = authenticate("staff_a", "Password123!")
        assert user.id == store_user_a.id
        assert user.last_login_at is not None
        assert authenticate("staff_a", "wrong") is None


# =============================================================================
# ROLE PERMISSIONS
# =============================================================================


class TestRolePermissions:
    """403 comes from the role, regardless of whether the target exists."""

    def test_central_cannot_create_orders(self, client, central_headers, product_p):
        response = client.post('/api/supply-orders', headers=central_headers, json={
            'code': 'SO-202601-0001',
            'items': [{'product_id': product_p.id, 'requested_quantity': 1}],
        })
        assert response.status_code == 403

    @pytest.mark.parametrize("path", [
        "/api/supply-orders/999999/review",
        "/api/supply-orders/999999/start-delivery",
    ])
    def test_store_staff_denied_before_lookup(self, client, staff_a_headers, path):
        response = client.post(path, headers=staff_a_headers, json={'items': []})
        assert response.status_code == 403

    @pytest.mark.parametrize("path,body", [
        ("/api/supply-orders/999999/confirm-received", {'batches': [{'item_batch_id': 1, 'receipted_quantity': 0}]}),
        ("/api/supply-orders/999999/stock", {'batches': [{'item_batch_id': 1, 'stocked_quantity': 0}]}),
        ("/api/supply-orders/999999/cancel", {}),
        ("/api/supply-orders/999999/review", {'items': [{'supply_order_item_id': 1, 'action': 'REJECT'}]}),
    ])
    def test_admin_is_read_only(self, client, admin_headers, path, body):
        response = client.post(path, headers=admin_headers, json=body)
        assert response.status_code == 403

    def test_missing_order_is_404_for_permitted_role(self, client, central_headers):
        response = client.post('/api/supply-orders/999999/start-delivery', headers=central_headers)
        assert response.status_code == 404

    def test_store_staff_cannot_manage_batches(self, client, staff_a_headers):
        response = client.post('/api/batches', headers=staff_a_headers, json={'batches': []})
        assert response.status_code == 403
        assert response.json['required_permission'] == 'MANAGE_BATCHES'

    def test_store_staff_cannot_refresh_statuses(self, client, staff_a_headers):
        response = client.post('/api/inventory/refresh-statuses', headers=staff_a_headers)
        assert response.status_code == 403


# =============================================================================
# STORE ISOLATION
# =============================================================================


class TestStoreIsolation:

    def test_other_store_order_is_forbidden(self, client, staff_a, staff_b_headers, product_p, submit_order):
        order = submit_order(staff_a, [(product_p, 3)])
        response = client.get(f'/api/supply-orders/{order.id}', headers=staff_b_headers)
        assert response.status_code == 403

    def test_list_is_scoped_to_own_store(
        self, client, staff_a, staff_b, staff_a_headers, central_headers, product_p, submit_order
    ):
        own = submit_order(staff_a, [(product_p, 3)])
        submit_order(staff_b, [(product_p, 3)])

        response = client.get('/api/supply-orders', headers=staff_a_headers)
        assert response.status_code == 200
        assert [o['id'] for o in response.json['items']] == [own.id]

        response = client.get('/api/supply-orders', headers=central_headers)
        assert response.json['count'] == 2

    def test_list_other_store_explicitly_is_forbidden(self, client, store_b, staff_a_headers):
        response = client.get(f'/api/supply-orders?store_id={store_b.id}', headers=staff_a_headers)
        assert response.status_code == 403

    def test_other_store_cannot_cancel(
        self, client, db_session, central, staff_a, staff_b_headers, product_p, stock_central, submit_order
    ):
        stock_central(product_p, 10, expires_in_days=5)
        order = approve_all(db_session, central, submit_order(staff_a, [(product_p, 3)]))

        response = client.post(f'/api/supply-orders/{order.id}/cancel', headers=staff_b_headers, json={})
        assert response.status_code == 403

    @pytest.mark.parametrize("method,suffix,body", [
        ("get", "", None),
        ("post", "/cancel", {}),
        ("post", "/confirm-received", {'batches': [{'item_batch_id': 1, 'receipted_quantity': 0}]}),
        ("post", "/stock", {'batches': [{'item_batch_id': 1, 'stocked_quantity': 0}]}),
    ])
    def test_missing_and_foreign_orders_look_alike(
        self, client, staff_a, staff_b_headers, product_p, submit_order, method, suffix, body
    ):
        foreign = submit_order(staff_a, [(product_p, 3)])
        call = getattr(client, method)
        kwargs = {'headers': staff_b_headers}
        if body is not None:
            kwargs['json'] = body

        on_foreign = call(f'/api/supply-orders/{foreign.id}{suffix}', **kwargs)
        on_missing = call(f'/api/supply-orders/999999{suffix}', **kwargs)

        assert on_foreign.status_code == on_missing.status_code == 403
        assert on_foreign.json == on_missing.json

    def test_other_store_inventory_is_forbidden(self, client, store_b, staff_a_headers):
        response = client.get(f'/api/inventory/stores/{store_b.id}', headers=staff_a_headers)
        assert response.status_code == 403

    def test_central_sees_any_store_inventory(self, client, store_a, central_headers):
        response = client.get(f'/api/inventory/stores/{store_a.id}', headers=central_headers)
        assert response.status_code == 200
        assert response.json['count'] == 0
