# Overview: Login, logout, and password change actions.

"""
SECURITY:
- Lockout is checked BEFORE credentials are verified, so a locked key
  can't be used to probe passwords.
- Unknown username, inactive account and wrong password all return the
  same INVALID_CREDENTIALS message.
- The limiter key is (client host, attempted username).
"""

from __future__ import annotations

from flask import current_app

from ..errors import InvalidCredentials, RateLimited
from ..permissions import Tier
from ..server import get_rate_limiter
from ..server.protocol import Response
from ..server.router import ActionContext, ActionGroup
from ..services import auth_service
from ..validation import get_str
from .common import record_audit

auth = ActionGroup("auth")


def _locked_out(seconds: int) -> RateLimited:
    minutes = max(1, (seconds + 59) // 60)
    return RateLimited(f"Too many failed login attempts. Try again in {minutes} minute(s)")


@auth.action("login", tier=Tier.NONE)
def login(ctx: ActionContext) -> Response:
    username = get_str(ctx.payload, "username", max_length=50)
    password = get_str(ctx.payload, "password", strip=False)

    limiter = get_rate_limiter()
    key = limiter.key(ctx.session.host, username)

    if limiter.is_locked(key):
        current_app.logger.warning("Login blocked for %s from %s (locked out)", username, ctx.session.host)
        raise _locked_out(limiter.remaining_lockout_seconds(key))

    user = auth_service.authenticate(username, password)
    if user is None:
        now_locked = limiter.record_failure(key)
        current_app.logger.warning("Failed login for %s from %s", username, ctx.session.host)
        if now_locked:
            current_app.logger.warning("Locking out %s from %s", username, ctx.session.host)
            raise _locked_out(limiter.remaining_lockout_seconds(key))
        raise InvalidCredentials()

    limiter.clear(key)
    ctx.session.authenticate(user.id, user.username, user.role)
    current_app.logger.info("User %s logged in from %s (connection %d)",
                            user.username, ctx.session.host, ctx.session.connection_id)
    record_audit(ctx, "LOGIN", f"Login from {ctx.session.host}")

    return Response.ok("Login successful", user.to_dict())


@auth.action("logout", tier=Tier.AUTHENTICATED)
def logout(ctx: ActionContext) -> Response:
    username = ctx.principal.username
    record_audit(ctx, "LOGOUT")
    ctx.session.clear()
    current_app.logger.info("User %s logged out (connection %d)", username, ctx.session.connection_id)
    return Response.ok("Logged out successfully")


@auth.action("change_password", tier=Tier.AUTHENTICATED)
def change_password(ctx: ActionContext) -> Response:
    old_password = get_str(ctx.payload, "old_password", strip=False)
    new_password = get_str(ctx.payload, "new_password", strip=False)

    auth_service.change_password(ctx.principal.user_id, old_password, new_password)
    record_audit(ctx, "CHANGE_PASSWORD")
    return Response.ok("Password changed successfully")
