# Overview: TCP line-protocol server; per-app router, session registry, and login limiter.

from __future__ import annotations

from flask import Flask, current_app

from .rate_limit import RateLimiter
from .registry import SessionRegistry
from .router import RequestRouter

ROUTER_KEY = "stockline.router"
REGISTRY_KEY = "stockline.registry"
RATE_LIMITER_KEY = "stockline.rate_limiter"


def init_app(app: Flask) -> None:
    """Build the action table and the shared in-memory state for one app."""
    from ..actions import register_actions

    router = RequestRouter()
    register_actions(router)

    app.extensions[ROUTER_KEY] = router
    app.extensions[REGISTRY_KEY] = SessionRegistry()
    app.extensions[RATE_LIMITER_KEY] = RateLimiter(
        max_failures=app.config["LOGIN_MAX_FAILURES"],
        lockout_seconds=app.config["LOGIN_LOCKOUT_SECONDS"],
    )


def get_router(app: Flask | None = None) -> RequestRouter:
    return (app or current_app).extensions[ROUTER_KEY]


def get_registry(app: Flask | None = None) -> SessionRegistry:
    return (app or current_app).extensions[REGISTRY_KEY]


def get_rate_limiter(app: Flask | None = None) -> RateLimiter:
    return (app or current_app).extensions[RATE_LIMITER_KEY]
