"""
Authorization tests.

Verifies:
- Unauthenticated sessions get AUTHENTICATION_REQUIRED for everything but login
- Cashier denied manager/admin actions (FORBIDDEN), handler never runs
- Stock Manager denied admin-only actions
- Admin allowed through every tier
"""

import pytest

from stockline.extensions import db
from stockline.models import Product
from stockline.server import get_router


# =============================================================================
# UNAUTHENTICATED ACCESS
# =============================================================================


class TestUnauthenticatedAccess:
    @pytest.mark.parametrize(
        "action",
        [
            "logout",
            "get_all_products",
            "get_product",
            "record_transaction",
            "add_product",
            "delete_product",
            "get_all_users",
            "register_user",
            "get_audit_logs",
            "get_sales_summary",
            "get_active_clients",
        ],
    )
    def test_requires_auth(self, app, make_session, action):
        resp = get_router(app).dispatch(make_session(), action, {})
        assert resp.success is False
        assert resp.error == "AUTHENTICATION_REQUIRED"
        assert resp.message == "Authentication required"

    def test_login_needs_no_auth(self, app, users, make_session):
        resp = get_router(app).dispatch(make_session(), "login", {"username": "cashier", "password": "Password123!"})
        assert resp.success is True


# =============================================================================
# CASHIER DENIED
# =============================================================================


class TestCashierDenied:
    @pytest.mark.parametrize(
        "action",
        [
            "add_product",
            "update_product",
            "add_supplier",
            "update_supplier",
            "get_sales_summary",
            "get_inventory_status",
            "delete_product",
            "delete_supplier",
            "get_all_users",
            "register_user",
            "get_audit_logs",
            "get_active_clients",
            "get_user_activity",
        ],
    )
    def test_forbidden(self, app, session_as, action):
        resp = get_router(app).dispatch(session_as("cashier"), action, {})
        assert resp.success is False
        assert resp.error == "FORBIDDEN"

    def test_add_product_never_creates_row(self, app, session_as):
        resp = get_router(app).dispatch(session_as("cashier"), "add_product", {
            "name": "Contraband",
            "unit_price_cents": 100,
            "quantity": 5,
        })
        assert resp.error == "FORBIDDEN"
        assert db.session.query(Product).filter_by(name="Contraband").count() == 0

    @pytest.mark.parametrize(
        "action",
        ["get_all_products", "get_low_stock", "get_all_suppliers", "get_all_transactions", "get_today_transactions"],
    )
    def test_read_actions_allowed(self, app, session_as, action):
        resp = get_router(app).dispatch(session_as("cashier"), action, {})
        assert resp.success is True, resp.message


# =============================================================================
# STOCK MANAGER
# =============================================================================


class TestStockManager:
    def test_can_add_product(self, app, session_as):
        resp = get_router(app).dispatch(session_as("manager"), "add_product", {
            "name": "Stapler",
            "unit_price_cents": 1299,
        })
        assert resp.success is True, resp.message
        assert resp.data["quantity"] == 0
        assert resp.data["category"] == "Uncategorized"

    @pytest.mark.parametrize(
        "action",
        ["delete_product", "delete_supplier", "get_all_users", "register_user", "get_audit_logs", "get_user_activity"],
    )
    def test_admin_only_forbidden(self, app, session_as, action):
        resp = get_router(app).dispatch(session_as("manager"), action, {})
        assert resp.error == "FORBIDDEN"


# =============================================================================
# ADMIN
# =============================================================================


class TestAdmin:
    def test_can_list_users(self, app, session_as):
        resp = get_router(app).dispatch(session_as("admin"), "get_all_users", {})
        assert resp.success is True
        usernames = {u["username"] for u in resp.data}
        assert usernames == {"admin", "manager", "cashier"}
        assert all("password_hash" not in u for u in resp.data)

    def test_can_delete_product(self, app, session_as, product):
        resp = get_router(app).dispatch(session_as("admin"), "delete_product", {"product_id": product.id})
        assert resp.success is True
        assert resp.data["is_active"] is False
