# backend/stockline/config.py
from __future__ import annotations
import os


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    return int(raw)


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/stockline.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///stockline.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Seconds a SQLite writer waits on the database lock before giving up
    SQLITE_BUSY_TIMEOUT = _env_int("STOCKLINE_SQLITE_BUSY_TIMEOUT", 30)

    # TCP listener
    SERVER_HOST = os.environ.get("STOCKLINE_HOST", "0.0.0.0")
    SERVER_PORT = _env_int("STOCKLINE_PORT", 8080)
    SERVER_BACKLOG = _env_int("STOCKLINE_BACKLOG", 128)

    # Worker pool: one worker per connection, capped at MAX_CLIENTS.
    # "reject" answers over-capacity clients with a busy envelope, "block" queues them.
    MAX_CLIENTS = _env_int("STOCKLINE_MAX_CLIENTS", 50)
    CLIENT_OVERFLOW_POLICY = os.environ.get("STOCKLINE_OVERFLOW_POLICY", "reject")

    IDLE_TIMEOUT_SECONDS = _env_int("STOCKLINE_IDLE_TIMEOUT", 300)
    MAX_LINE_BYTES = _env_int("STOCKLINE_MAX_LINE_BYTES", 65536)

    # Login throttling per (origin, username)
    LOGIN_MAX_FAILURES = _env_int("STOCKLINE_LOGIN_MAX_FAILURES", 5)
    LOGIN_LOCKOUT_SECONDS = _env_int("STOCKLINE_LOGIN_LOCKOUT_SECONDS", 300)

    LOW_STOCK_THRESHOLD = _env_int("STOCKLINE_LOW_STOCK_THRESHOLD", 10)
    LIST_LIMIT = _env_int("STOCKLINE_LIST_LIMIT", 1000)

    LOG_LEVEL = os.environ.get("STOCKLINE_LOG_LEVEL", "INFO")
