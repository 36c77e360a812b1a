"""
End-to-end tests over real TCP connections.

Verifies:
- greeting on connect, one response line per request line
- unauthenticated requests rejected, login upgrades the same connection
- malformed lines answered with PROTOCOL_ERROR, connection stays usable
- sessions are per-connection
- lockout after repeated failures
- admin view of live connections, entry removed on disconnect
- over-long lines, idle timeout, capacity rejection
- graceful shutdown lets an in-flight request answer before EOF
"""

import contextlib
import threading
import time

from stockline.extensions import db
from stockline.models import Product
from stockline.permissions import Tier
from stockline.server import get_router
from stockline.server import supervisor as supervisor_module
from stockline.server.protocol import Response
from stockline.server.router import Action
from stockline.server.supervisor import BUSY_MESSAGE, GREETING, ConnectionSupervisor


@contextlib.contextmanager
def running_server(app, **config):
    """Start a supervisor with per-test config overrides; shut it down on exit."""
    app.config.update(config)
    supervisor = ConnectionSupervisor(app, host="127.0.0.1", port=0)
    supervisor.bind()
    thread = threading.Thread(
        target=supervisor.serve_forever,
        kwargs={"install_signal_handlers": False},
        daemon=True,
    )
    thread.start()
    try:
        yield supervisor
    finally:
        supervisor.shutdown()
        thread.join(timeout=15)


def wait_until(predicate, timeout=5.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.02)
    return predicate()


# =============================================================================
# CONNECTION BASICS
# =============================================================================


class TestConnection:
    def test_greeting(self, connect):
        client = connect()
        assert client.greeting["success"] is True
        assert client.greeting["message"] == GREETING
        assert client.greeting["data"]["connection_id"] >= 1

    def test_unauthenticated_then_login_on_same_connection(self, users, product, connect):
        client = connect()

        denied = client.call("get_all_products")
        assert denied["success"] is False
        assert denied["message"] == "Authentication required"

        login = client.login("cashier")
        assert login["success"] is True
        assert login["data"]["role"] == "Cashier"

        listed = client.call("get_all_products")
        assert listed["success"] is True
        assert [p["name"] for p in listed["data"]] == ["Widget"]

    def test_malformed_line_keeps_connection_open(self, users, connect):
        client = connect()
        client.send_raw(b"this is not json\n")
        bad = client.recv()
        assert bad["success"] is False
        assert bad["error"] == "PROTOCOL_ERROR"

        assert client.login("manager")["success"] is True

    def test_hostile_json_keeps_connection_open(self, users, connect):
        client = connect()
        client.send_raw(b'{"action": "login", "username": ' + b"9" * 5000 + b"}\n")
        huge_int = client.recv()
        assert huge_int["error"] == "PROTOCOL_ERROR"
        assert huge_int["message"] == "Invalid JSON format"

        client.send_raw(b"[" * 30000 + b"\n")
        nested = client.recv()
        assert nested["error"] == "PROTOCOL_ERROR"
        assert nested["message"] == "Invalid JSON format"

        assert client.login("cashier")["success"] is True

    def test_blank_lines_are_ignored(self, users, connect):
        client = connect()
        client.send_raw(b"\n\r\n")
        assert client.login("cashier")["success"] is True

    def test_unknown_action(self, connect):
        resp = connect().call("format_disk")
        assert resp["error"] == "UNKNOWN_COMMAND"

    def test_pipelined_requests_answered_in_order(self, users, product, connect):
        client = connect()
        client.login("cashier")
        client.send_raw(
            b'{"action": "get_product", "product_id": %d}\n'
            b'{"action": "get_product", "product_id": 9999}\n' % product.id
        )
        first, second = client.recv(), client.recv()
        assert first["success"] is True
        assert first["data"]["id"] == product.id
        assert second["error"] == "NOT_FOUND"


# =============================================================================
# SESSION ISOLATION
# =============================================================================


class TestSessionIsolation:
    def test_login_does_not_leak_to_other_connection(self, users, connect):
        admin = connect()
        stranger = connect()

        assert admin.login("admin")["success"] is True

        assert stranger.call("get_all_users")["error"] == "AUTHENTICATION_REQUIRED"
        assert admin.call("get_all_users")["success"] is True

    def test_cashier_cannot_add_product(self, users, connect):
        client = connect()
        client.login("cashier")

        resp = client.call("add_product", name="Contraband", unit_price_cents=100, quantity=5)

        assert resp["error"] == "FORBIDDEN"
        db.session.expire_all()
        assert db.session.query(Product).filter_by(name="Contraband").count() == 0

    def test_logout_returns_connection_to_unauthenticated(self, users, connect):
        client = connect()
        client.login("manager")
        assert client.call("logout")["success"] is True
        assert client.call("get_all_products")["error"] == "AUTHENTICATION_REQUIRED"


# =============================================================================
# LOGIN LOCKOUT
# =============================================================================


class TestLockout:
    def test_fifth_failure_locks_out(self, users, connect):
        client = connect()
        for _ in range(4):
            assert client.login("admin", "Wrong123!")["error"] == "INVALID_CREDENTIALS"

        assert client.login("admin", "Wrong123!")["error"] == "RATE_LIMITED"
        assert client.login("admin")["error"] == "RATE_LIMITED"

    def test_lockout_follows_origin_not_connection(self, users, connect):
        first = connect()
        for _ in range(5):
            first.login("admin", "Wrong123!")
        first.close()

        second = connect()
        assert second.login("admin")["error"] == "RATE_LIMITED"


# =============================================================================
# ACTIVE CLIENTS
# =============================================================================


class TestActiveClients:
    def test_admin_sees_all_connections(self, users, connect):
        admin = connect()
        admin.login("admin")
        cashier = connect()
        cashier.login("cashier")
        anonymous = connect()

        resp = admin.call("get_active_clients")
        assert resp["success"] is True
        by_id = {c["connection_id"]: c for c in resp["data"]}

        assert by_id[admin.greeting["data"]["connection_id"]]["username"] == "admin"
        assert by_id[cashier.greeting["data"]["connection_id"]]["role"] == "Cashier"
        anon = by_id[anonymous.greeting["data"]["connection_id"]]
        assert anon["authenticated"] is False
        assert anon["username"] is None

    def test_entry_removed_after_disconnect(self, users, live_server, connect):
        client = connect()
        connection_id = client.greeting["data"]["connection_id"]
        assert live_server.registry.get(connection_id) is not None

        client.close()

        assert wait_until(lambda: live_server.registry.get(connection_id) is None)


# =============================================================================
# LIMITS AND LIFECYCLE
# =============================================================================


class TestLimits:
    def test_over_long_line(self, app, users, open_client):
        with running_server(app, MAX_LINE_BYTES=1024) as server:
            client = open_client(server.address)
            client.send_raw(b'{"action": "login", "username": "' + b"x" * 4000 + b'"}\n')
            resp = client.recv()
            assert resp["error"] == "PROTOCOL_ERROR"
            assert resp["message"] == "Request line too long"

            assert client.login("cashier")["success"] is True

    def test_idle_connection_is_closed(self, app, open_client):
        with running_server(app, IDLE_TIMEOUT_SECONDS=1) as server:
            client = open_client(server.address)
            assert client.recv() is None

    def test_reject_policy_sends_busy(self, app, open_client):
        with running_server(app, MAX_CLIENTS=1, CLIENT_OVERFLOW_POLICY="reject") as server:
            holder = open_client(server.address)
            assert holder.greeting["message"] == GREETING

            extra = open_client(server.address)
            assert extra.greeting["success"] is False
            assert extra.greeting["error"] == "SERVER_BUSY"
            assert extra.greeting["message"] == BUSY_MESSAGE
            assert extra.recv() is None

    def test_slot_freed_after_disconnect(self, app, open_client):
        with running_server(app, MAX_CLIENTS=1, CLIENT_OVERFLOW_POLICY="reject") as server:
            open_client(server.address).close()

            # the worker releases its slot shortly after the close
            assert wait_until(lambda: open_client(server.address).greeting["message"] == GREETING)

    def test_slot_freed_when_session_setup_fails(self, app, open_client, monkeypatch):
        real_session = supervisor_module.SessionState
        calls = []

        def flaky_session(*args, **kwargs):
            calls.append(args)
            if len(calls) == 1:
                raise RuntimeError("session setup failed")
            return real_session(*args, **kwargs)

        monkeypatch.setattr(supervisor_module, "SessionState", flaky_session)
        with running_server(app, MAX_CLIENTS=1, CLIENT_OVERFLOW_POLICY="reject") as server:
            failed = open_client(server.address)
            assert failed.greeting is None

            assert wait_until(lambda: open_client(server.address).greeting["message"] == GREETING)


class TestShutdown:
    def test_shutdown_closes_idle_connections(self, app, open_client):
        supervisor = ConnectionSupervisor(app, host="127.0.0.1", port=0)
        supervisor.bind()
        thread = threading.Thread(
            target=supervisor.serve_forever,
            kwargs={"install_signal_handlers": False},
            daemon=True,
        )
        thread.start()

        client = open_client(supervisor.address)
        supervisor.shutdown()

        assert client.recv() is None
        assert supervisor.wait_for_shutdown(timeout=10)
        thread.join(timeout=5)
        assert not thread.is_alive()
        assert supervisor.is_running is False

    def test_in_flight_request_finishes_during_shutdown(self, app, open_client):
        started = threading.Event()
        release = threading.Event()

        def slow_echo(ctx):
            started.set()
            release.wait(timeout=10)
            return Response.ok("Echo", {"value": ctx.payload.get("value")})

        get_router(app).register(Action(name="slow_echo", tier=Tier.NONE, handler=slow_echo))

        supervisor = ConnectionSupervisor(app, host="127.0.0.1", port=0)
        supervisor.bind()
        thread = threading.Thread(
            target=supervisor.serve_forever,
            kwargs={"install_signal_handlers": False},
            daemon=True,
        )
        thread.start()

        client = open_client(supervisor.address)
        client.send_raw(b'{"action": "slow_echo", "value": 7}\n')
        assert started.wait(timeout=5)

        supervisor.shutdown()
        release.set()

        resp = client.recv()
        assert resp["success"] is True
        assert resp["message"] == "Echo"
        assert resp["data"] == {"value": 7}
        assert client.recv() is None

        assert supervisor.wait_for_shutdown(timeout=10)
        thread.join(timeout=5)
        assert not thread.is_alive()
