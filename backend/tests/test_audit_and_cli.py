"""
Audit trail and CLI tests.

Verifies:
- mutating actions leave one audit entry for the acting user
- audit log listing and per-user filtering (admin only)
- retention purge
- system init / users / maintenance commands
"""

from datetime import timedelta

import pytest
from sqlalchemy.exc import OperationalError

from stockline.errors import ValidationError
from stockline.extensions import db
from stockline.models import AuditLogEntry, Product, Supplier, User
from stockline.server import get_router
from stockline.services import audit_service, auth_service
from stockline.time_utils import utcnow


# =============================================================================
# AUDIT TRAIL
# =============================================================================


class TestAuditTrail:
    def test_record_transaction_audited(self, app, session_as, users, product, db_session):
        resp = get_router(app).dispatch(session_as("cashier"), "record_transaction", {
            "product_id": product.id, "type": "Sale", "quantity": 2,
        })
        assert resp.success is True, resp.message

        entry = db_session.query(AuditLogEntry).filter_by(action="RECORD_TRANSACTION").one()
        assert entry.user_id == users["cashier"].id

    def test_failed_transaction_not_audited(self, app, session_as, product, db_session):
        resp = get_router(app).dispatch(session_as("cashier"), "record_transaction", {
            "product_id": product.id, "type": "Sale", "quantity": 11,
        })
        assert resp.error == "INSUFFICIENT_STOCK"
        assert db_session.query(AuditLogEntry).filter_by(action="RECORD_TRANSACTION").count() == 0

    def test_audit_failure_does_not_fail_request(self, app, session_as, product, monkeypatch):
        def broken(*args, **kwargs):
            raise OperationalError("INSERT INTO audit_log", {}, Exception("disk I/O error"))

        monkeypatch.setattr(audit_service, "log_action", broken)

        resp = get_router(app).dispatch(session_as("cashier"), "record_transaction", {
            "product_id": product.id, "type": "Sale", "quantity": 1,
        })
        assert resp.success is True
        db.session.expire_all()
        assert db.session.get(Product, product.id).quantity == 9

    def test_get_audit_logs_newest_first(self, app, users, session_as):
        audit_service.log_action(users["manager"].id, "FIRST")
        audit_service.log_action(users["cashier"].id, "SECOND")

        resp = get_router(app).dispatch(session_as("admin"), "get_audit_logs", {"limit": 2})
        assert [e["action"] for e in resp.data] == ["SECOND", "FIRST"]
        assert resp.data[0]["username"] == "cashier"

    def test_get_audit_logs_for_user(self, app, users, session_as):
        audit_service.log_action(users["manager"].id, "ADD_PRODUCT")
        audit_service.log_action(users["cashier"].id, "RECORD_TRANSACTION")

        resp = get_router(app).dispatch(session_as("admin"), "get_audit_logs", {"user_id": users["manager"].id})
        assert [e["action"] for e in resp.data] == ["ADD_PRODUCT"]

    def test_purge_older_than(self, app, users, db_session):
        db_session.add(AuditLogEntry(user_id=users["admin"].id, action="OLD", occurred_at=utcnow() - timedelta(days=100)))
        db_session.add(AuditLogEntry(user_id=users["admin"].id, action="NEW", occurred_at=utcnow() - timedelta(days=1)))
        db_session.commit()

        assert audit_service.purge_older_than(90) == 1
        assert [e.action for e in audit_service.list_logs(10)] == ["NEW"]

    def test_purge_rejects_zero_days(self, app):
        with pytest.raises(ValidationError):
            audit_service.purge_older_than(0)


# =============================================================================
# CLI
# =============================================================================


class TestCli:
    def test_system_init_is_idempotent(self, app):
        runner = app.test_cli_runner()

        first = runner.invoke(args=["system", "init"])
        assert first.exit_code == 0, first.output
        assert "PASS Created user: admin" in first.output
        assert db.session.query(User).count() == 3
        products = db.session.query(Product).count()
        suppliers = db.session.query(Supplier).count()
        assert products > 0 and suppliers > 0

        second = runner.invoke(args=["system", "init"])
        assert second.exit_code == 0, second.output
        assert "already exists" in second.output
        assert db.session.query(User).count() == 3
        assert db.session.query(Product).count() == products

        assert auth_service.authenticate("admin", "Password123!") is not None

    def test_users_create_and_list(self, app):
        runner = app.test_cli_runner()

        created = runner.invoke(args=[
            "users", "create", "--username", "clerk", "--password", "Clerk!2345", "--role", "Cashier",
        ])
        assert created.exit_code == 0, created.output

        listed = runner.invoke(args=["users", "list"])
        assert "clerk" in listed.output
        assert "Cashier" in listed.output

    def test_users_create_weak_password(self, app):
        result = app.test_cli_runner().invoke(args=[
            "users", "create", "--username", "clerk", "--password", "weak", "--role", "Cashier",
        ])
        assert result.exit_code != 0
        assert db.session.query(User).filter_by(username="clerk").count() == 0

    def test_purge_command(self, app, users, db_session):
        db_session.add(AuditLogEntry(user_id=users["admin"].id, action="OLD", occurred_at=utcnow() - timedelta(days=400)))
        db_session.commit()

        result = app.test_cli_runner().invoke(args=["maintenance", "purge-audit-logs", "--days", "365"])
        assert result.exit_code == 0, result.output
        assert "Deleted 1 audit entries" in result.output
