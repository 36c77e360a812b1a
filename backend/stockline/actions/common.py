# Overview: Small helpers shared by action handlers.

from __future__ import annotations

from datetime import date

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from ..errors import ValidationError
from ..extensions import db
from ..services import audit_service
from ..server.router import ActionContext
from ..time_utils import parse_iso_date
from ..validation import MAX_QUANTITY, get_int, get_object, get_str


def record_audit(ctx: ActionContext, action: str, details: str | None = None) -> None:
    """
    Append an audit entry for the acting user.

    Called after the audited change has committed. A failed audit write is
    logged and does not turn the response into a failure.
    """
    principal = ctx.session.principal
    user_id = principal.user_id if principal else None
    try:
        audit_service.log_action(user_id, action, details)
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("Audit write failed for %s by user %s", action, user_id)


def body_of(payload: dict, key: str) -> dict:
    """Fields may arrive flat or nested under `key` (e.g. {"product": {...}})."""
    nested = get_object(payload, key, required=False)
    return nested if nested is not None else payload


def list_limit(payload: dict) -> int:
    cap = current_app.config["LIST_LIMIT"]
    return get_int(payload, "limit", required=False, default=cap, minimum=1, maximum=cap)


def low_stock_threshold(payload: dict) -> int:
    return get_int(
        payload,
        "threshold",
        required=False,
        default=current_app.config["LOW_STOCK_THRESHOLD"],
        minimum=0,
        maximum=MAX_QUANTITY,
    )


def get_date(payload: dict, name: str) -> date:
    raw = get_str(payload, name)
    try:
        return parse_iso_date(raw)
    except ValueError:
        raise ValidationError(f"{name} must be a date in YYYY-MM-DD format")


def dicts(items) -> list[dict]:
    return [item.to_dict() for item in items]
