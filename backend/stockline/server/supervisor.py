# Overview: Accept loop, bounded worker pool, and per-connection read-dispatch-write cycle.

"""
Connection Supervisor

CONNECTION LIFECYCLE:
    Accepted      socket options set, SessionState created, registry entry
                  published, greeting written
    Active        read one line -> dispatch -> write one response, repeat.
                  Authenticated or not, the loop is the same; the router
                  enforces auth per action.
    Closing       end of stream, idle timeout, I/O error, or shutdown
    Closed        registry entry removed, socket closed, pool slot
                  released. Runs in a finally block on every exit path.

CONCURRENCY:
- One worker thread per connection, at most MAX_CLIENTS at a time.
- Over capacity: "reject" answers with a busy envelope and closes,
  "block" holds the connection until a slot frees up.
- Requests on one connection are strictly sequential: the next line is
  not read until the current response is written.
- Each dispatched request runs in its own Flask app context, so each gets
  its own database session, removed when the context pops.

SHUTDOWN (SIGINT/SIGTERM or shutdown()):
    1. Stop accepting
    2. Half-close the read side of live connections. Idle workers see EOF;
       a worker mid-request still writes its response, then exits.
    3. Join the worker pool
    4. Dispose the database engine
"""

from __future__ import annotations

import itertools
import logging
import signal
import socket
import threading
from concurrent.futures import ThreadPoolExecutor

from flask import Flask
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from ..errors import ProtocolError, StorageFailure
from ..extensions import db
from . import get_registry, get_router
from .protocol import Response, encode_response
from .session import SessionState

logger = logging.getLogger(__name__)

GREETING = "Connected to Inventory Server"
BUSY_MESSAGE = "Server busy, try again later"

OVERFLOW_REJECT = "reject"
OVERFLOW_BLOCK = "block"


class ConnectionSupervisor:
    def __init__(self, app: Flask, host: str | None = None, port: int | None = None):
        self.app = app
        self.host = host if host is not None else app.config["SERVER_HOST"]
        self.port = port if port is not None else app.config["SERVER_PORT"]
        self.backlog = app.config["SERVER_BACKLOG"]
        self.max_clients = app.config["MAX_CLIENTS"]
        self.idle_timeout = app.config["IDLE_TIMEOUT_SECONDS"]
        self.max_line_bytes = app.config["MAX_LINE_BYTES"]

        self.overflow_policy = app.config["CLIENT_OVERFLOW_POLICY"]
        if self.overflow_policy not in (OVERFLOW_REJECT, OVERFLOW_BLOCK):
            raise ValueError(f"CLIENT_OVERFLOW_POLICY must be '{OVERFLOW_REJECT}' or '{OVERFLOW_BLOCK}'")
        if self.max_clients < 1:
            raise ValueError("MAX_CLIENTS must be at least 1")

        self.router = get_router(app)
        self.registry = get_registry(app)

        self._socket: socket.socket | None = None
        self._running = False
        self._shutdown_event = threading.Event()
        self._stopped_event = threading.Event()
        self._slots = threading.BoundedSemaphore(self.max_clients)
        self._executor: ThreadPoolExecutor | None = None
        self._connection_ids = itertools.count(1)
        self._live: dict[int, socket.socket] = {}
        self._live_lock = threading.Lock()
        self._original_handlers: dict = {}

    # -- lifecycle -----------------------------------------------------------

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def address(self) -> tuple[str, int]:
        """Bound (host, port). Useful when port 0 asked the OS to pick."""
        if self._socket is None:
            return (self.host, self.port)
        return self._socket.getsockname()[:2]

    def check_storage(self) -> None:
        """Fail fast if the database is unreachable."""
        try:
            with self.app.app_context():
                db.session.execute(text("SELECT 1"))
        except SQLAlchemyError as exc:
            logger.error("Database connectivity check failed: %s", exc)
            raise StorageFailure("Database connectivity check failed") from exc

    def bind(self) -> None:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
        # accept() wakes up every second to notice shutdown
        sock.settimeout(1.0)
        try:
            sock.bind((self.host, self.port))
            sock.listen(self.backlog)
        except OSError:
            sock.close()
            raise
        self._socket = sock
        logger.info("Listening on %s:%s (max %d clients, overflow=%s)",
                    *self.address, self.max_clients, self.overflow_policy)

    def serve_forever(self, *, install_signal_handlers: bool = True) -> None:
        """Accept until shutdown() is called. Blocks. Cleans up on return."""
        if self._socket is None:
            self.bind()

        self._running = True
        self._executor = ThreadPoolExecutor(max_workers=self.max_clients, thread_name_prefix="stockline-conn")
        if install_signal_handlers and threading.current_thread() is threading.main_thread():
            self._setup_signals()

        try:
            while not self._shutdown_event.is_set():
                try:
                    conn, addr = self._socket.accept()
                except socket.timeout:
                    continue
                except OSError:
                    if self._shutdown_event.is_set():
                        break
                    raise

                if not self._acquire_slot(conn, addr):
                    continue

                connection_id = next(self._connection_ids)
                try:
                    self._executor.submit(self._serve_connection, conn, addr, connection_id)
                except RuntimeError:
                    self._slots.release()
                    conn.close()
                    break
        finally:
            self._cleanup()

    def shutdown(self) -> None:
        """Request graceful shutdown. Safe to call from any thread or a signal handler."""
        if self._shutdown_event.is_set():
            return
        logger.info("Shutdown requested")
        self._shutdown_event.set()
        self._half_close_live_connections()

    def wait_for_shutdown(self, timeout: float | None = None) -> bool:
        return self._stopped_event.wait(timeout)

    def _setup_signals(self) -> None:
        def shutdown_handler(signum, frame):
            logger.info("Received %s, initiating shutdown...", signal.Signals(signum).name)
            self.shutdown()

        self._original_handlers[signal.SIGTERM] = signal.signal(signal.SIGTERM, shutdown_handler)
        self._original_handlers[signal.SIGINT] = signal.signal(signal.SIGINT, shutdown_handler)

    def _restore_signals(self) -> None:
        for sig, handler in self._original_handlers.items():
            signal.signal(sig, handler)
        self._original_handlers.clear()

    def _half_close_live_connections(self) -> None:
        with self._live_lock:
            live = list(self._live.values())
        for conn in live:
            try:
                conn.shutdown(socket.SHUT_RD)
            except OSError:
                # Already closed by its worker
                pass

    def _cleanup(self) -> None:
        self._shutdown_event.set()
        if self._socket is not None:
            self._socket.close()
        self._half_close_live_connections()
        if self._executor is not None:
            self._executor.shutdown(wait=True)
        with self.app.app_context():
            db.engine.dispose()
        self._restore_signals()
        self._running = False
        self._stopped_event.set()
        logger.info("Server stopped")

    # -- admission -------------------------------------------------------------

    def _acquire_slot(self, conn: socket.socket, addr) -> bool:
        if self.overflow_policy == OVERFLOW_REJECT:
            if self._slots.acquire(blocking=False):
                return True
            logger.warning("Rejecting %s:%s, %d clients connected", addr[0], addr[1], self.max_clients)
            self._send_and_close(conn, Response.fail(BUSY_MESSAGE, "SERVER_BUSY"))
            return False

        while not self._shutdown_event.is_set():
            if self._slots.acquire(timeout=1.0):
                return True
        conn.close()
        return False

    def _send_and_close(self, conn: socket.socket, response: Response) -> None:
        try:
            conn.settimeout(5.0)
            conn.sendall(encode_response(response, self.app.json))
        except OSError as exc:
            logger.debug("Could not notify rejected client: %s", exc)
        finally:
            conn.close()

    # -- per-connection worker ---------------------------------------------------

    def _serve_connection(self, conn: socket.socket, addr, connection_id: int) -> None:
        host, port = addr[0], addr[1]
        reader = None
        logger.info("Connection %d accepted from %s:%s", connection_id, host, port)

        try:
            with self._live_lock:
                self._live[connection_id] = conn
            session = SessionState(connection_id, (host, port), on_change=self.registry.publish)
            conn.settimeout(self.idle_timeout)
            conn.setsockopt(socket.SOL_SOCKET, socket.SO_KEEPALIVE, 1)
            conn.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
            self.registry.publish(session.snapshot())

            # Shutdown may have raced with accept
            if self._shutdown_event.is_set():
                return

            reader = conn.makefile("rb")
            self._send(conn, Response.ok(GREETING, {"connection_id": connection_id}))

            while not self._shutdown_event.is_set():
                line = reader.readline(self.max_line_bytes + 1)
                if not line:
                    logger.debug("Connection %d: end of stream", connection_id)
                    break

                if len(line) > self.max_line_bytes and not line.endswith(b"\n"):
                    if not self._discard_rest_of_line(reader):
                        break
                    response = Response.from_error(ProtocolError("Request line too long"))
                elif not line.strip():
                    continue
                else:
                    session.touch()
                    with self.app.app_context():
                        response = self.router.handle_line(session, line)

                self._send(conn, response)
        except socket.timeout:
            logger.info("Connection %d idle for %ss, closing", connection_id, self.idle_timeout)
        except OSError as exc:
            logger.info("Connection %d I/O error: %s", connection_id, exc)
        except Exception:
            logger.exception("Connection %d worker failed", connection_id)
        finally:
            self.registry.remove(connection_id)
            with self._live_lock:
                self._live.pop(connection_id, None)
            if reader is not None:
                try:
                    reader.close()
                except OSError:
                    pass
            try:
                conn.close()
            finally:
                self._slots.release()
            logger.info("Connection %d closed", connection_id)

    def _discard_rest_of_line(self, reader) -> bool:
        """Skip to the end of an over-long line. False if the stream ended first."""
        while True:
            chunk = reader.readline(self.max_line_bytes + 1)
            if not chunk:
                return False
            if chunk.endswith(b"\n"):
                return True

    def _send(self, conn: socket.socket, response: Response) -> None:
        conn.sendall(encode_response(response, self.app.json))
