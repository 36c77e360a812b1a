# backend/stockline/__init__.py
import logging

from flask import Flask

from .config import Config
from .extensions import apply_sqlite_defaults, db, migrate


def create_app(test_config: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if test_config:
        app.config.update(test_config)
    apply_sqlite_defaults(app)

    app.logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))
    logging.getLogger("stockline").setLevel(app.config.get("LOG_LEVEL", "INFO"))

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Action table, session registry, login limiter
    from . import server
    server.init_app(app)

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
