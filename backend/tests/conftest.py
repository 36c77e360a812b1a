"""
Pytest fixtures for stockline backend tests.

Provides a file-backed SQLite database per test (worker threads need to
share it), default users, sample catalogue rows, session helpers, and a
live TCP server for end-to-end tests.
"""

import json
import socket
import threading

import pytest

from stockline import create_app
from stockline.extensions import db
from stockline.models import Product, Supplier, User
from stockline.permissions import Role
from stockline.server.session import SessionState
from stockline.server.supervisor import ConnectionSupervisor
from stockline.services.auth_service import hash_password

TEST_PASSWORD = "Password123!"


@pytest.fixture(scope='session')
def password_hash():
    """bcrypt is slow on purpose; hash the shared test password once."""
    return hash_password(TEST_PASSWORD)


@pytest.fixture(scope='function')
def app(tmp_path):
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': f"sqlite:///{tmp_path / 'stockline-test.sqlite3'}",
        'IDLE_TIMEOUT_SECONDS': 10,
        'MAX_CLIENTS': 8,
        'LOGIN_MAX_FAILURES': 5,
        'LOGIN_LOCKOUT_SECONDS': 300,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()
        db.engine.dispose()


@pytest.fixture(scope='function')
def db_session(app):
    return db.session


@pytest.fixture(scope='function')
def users(db_session, password_hash):
    """admin / manager / cashier, all with TEST_PASSWORD."""
    created = {}
    for username, role in (
        ("admin", Role.ADMIN),
        ("manager", Role.STOCK_MANAGER),
        ("cashier", Role.CASHIER),
    ):
        user = User(username=username, password_hash=password_hash, role=role.value, is_active=True)
        db_session.add(user)
        created[username] = user
    db_session.commit()
    return created


@pytest.fixture(scope='function')
def supplier(db_session):
    s = Supplier(name="Acme Wholesale", contact_info="Jane Porter", email="orders@acme.example")
    db_session.add(s)
    db_session.commit()
    return s


@pytest.fixture(scope='function')
def make_product(db_session):
    def _make(name="Widget", quantity=10, unit_price_cents=250, category="General", supplier_id=None, is_active=True):
        p = Product(
            name=name,
            category=category,
            unit_price_cents=unit_price_cents,
            quantity=quantity,
            supplier_id=supplier_id,
            is_active=is_active,
        )
        db_session.add(p)
        db_session.commit()
        return p
    return _make


@pytest.fixture(scope='function')
def product(make_product):
    return make_product()


@pytest.fixture(scope='function')
def make_session():
    counter = iter(range(1, 10_000))

    def _make(host="127.0.0.1", port=50000):
        return SessionState(next(counter), (host, port))
    return _make


@pytest.fixture(scope='function')
def session_as(make_session, users):
    """Authenticated SessionState for one of the default users."""
    def _as(username):
        user = users[username]
        session = make_session()
        session.authenticate(user.id, user.username, user.role)
        return session
    return _as


# =============================================================================
# LIVE SERVER
# =============================================================================


class LineClient:
    """Blocking test client for the line protocol."""

    def __init__(self, address, timeout=10.0):
        self.sock = socket.create_connection(address, timeout=timeout)
        self.reader = self.sock.makefile("rb")
        self.greeting = self.recv()

    def send_raw(self, raw: bytes):
        self.sock.sendall(raw)

    def recv(self):
        line = self.reader.readline()
        if not line:
            return None
        return json.loads(line)

    def call(self, action, **fields):
        self.send_raw((json.dumps({"action": action, **fields}) + "\n").encode("utf-8"))
        return self.recv()

    def login(self, username, password=TEST_PASSWORD):
        return self.call("login", username=username, password=password)

    def close(self):
        self.reader.close()
        self.sock.close()


@pytest.fixture(scope='function')
def live_server(app):
    supervisor = ConnectionSupervisor(app, host="127.0.0.1", port=0)
    supervisor.bind()
    thread = threading.Thread(
        target=supervisor.serve_forever,
        kwargs={"install_signal_handlers": False},
        daemon=True,
    )
    thread.start()
    yield supervisor
    supervisor.shutdown()
    thread.join(timeout=15)


@pytest.fixture(scope='function')
def open_client():
    """Factory for LineClients against any address; all closed on teardown."""
    clients = []

    def _open(address):
        client = LineClient(address)
        clients.append(client)
        return client

    yield _open
    for client in clients:
        client.close()


@pytest.fixture(scope='function')
def connect(live_server, open_client):
    def _connect():
        return open_client(live_server.address)
    return _connect
