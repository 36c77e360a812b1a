# Overview: Admin-only actions; user accounts, live connections, and the audit trail.

from __future__ import annotations

from ..permissions import Tier
from ..server import get_registry
from ..server.protocol import Response
from ..server.router import ActionContext, ActionGroup
from ..services import audit_service, auth_service
from ..validation import get_id, get_str
from .common import body_of, dicts, list_limit, record_audit

admin = ActionGroup("admin")


@admin.action("get_all_users", tier=Tier.ADMIN)
def get_all_users(ctx: ActionContext) -> Response:
    users = auth_service.list_users()
    return Response.ok(f"Retrieved {len(users)} users", dicts(users))


@admin.action("register_user", tier=Tier.ADMIN, aliases=("register",))
def register_user(ctx: ActionContext) -> Response:
    body = body_of(ctx.payload, "user")
    username = get_str(body, "username", max_length=50)
    password = get_str(body, "password", strip=False)
    role = get_str(body, "role")

    user = auth_service.create_user(username, password, role)
    record_audit(ctx, "REGISTER_USER", f"Created user {user.username} ({user.role})")
    return Response.ok("User registered successfully", user.to_dict())


@admin.action("get_active_clients", tier=Tier.ADMIN)
def get_active_clients(ctx: ActionContext) -> Response:
    snapshots = get_registry().snapshots()
    return Response.ok(
        f"{len(snapshots)} active connections",
        [s.to_dict() for s in snapshots],
    )


@admin.action("get_audit_logs", tier=Tier.ADMIN)
def get_audit_logs(ctx: ActionContext) -> Response:
    limit = list_limit(ctx.payload)
    user_id = get_id(ctx.payload, "user_id", required=False)

    if user_id is not None:
        entries = audit_service.list_logs_for_user(user_id, limit)
    else:
        entries = audit_service.list_logs(limit)
    return Response.ok(f"Retrieved {len(entries)} audit entries", dicts(entries))
