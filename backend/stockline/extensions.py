# Overview: Flask extension instances for database and migrations, plus SQLite engine defaults.

from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate

db = SQLAlchemy()
migrate = Migrate()


def apply_sqlite_defaults(app) -> None:
    """
    Connection workers write from many threads. For SQLite URIs, let a
    writer wait SQLITE_BUSY_TIMEOUT seconds on the database lock and allow
    pooled connections to move between threads.
    """
    if not app.config["SQLALCHEMY_DATABASE_URI"].startswith("sqlite"):
        return
    engine_options = dict(app.config.get("SQLALCHEMY_ENGINE_OPTIONS") or {})
    connect_args = dict(engine_options.get("connect_args") or {})
    connect_args.setdefault("timeout", app.config["SQLITE_BUSY_TIMEOUT"])
    connect_args.setdefault("check_same_thread", False)
    engine_options["connect_args"] = connect_args
    app.config["SQLALCHEMY_ENGINE_OPTIONS"] = engine_options
