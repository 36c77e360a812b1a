# Overview: Service-layer operations for the audit trail; append, read, and retention purge.

"""
Audit Service

WHY: Admins need to see who changed stock, prices, and accounts.

- log_action commits its own row. It is called after the audited mutation
  has already committed, so a failure here never undoes the mutation.
- Rows are never edited. purge_older_than is the only delete path and is
  reachable from the maintenance CLI only.
"""

from __future__ import annotations

from datetime import timedelta

from ..errors import ValidationError
from ..extensions import db
from ..models import AuditLogEntry
from ..time_utils import utcnow


def log_action(user_id: int | None, action: str, details: str | None = None) -> AuditLogEntry:
    entry = AuditLogEntry(
        user_id=user_id,
        action=action,
        details=details,
        occurred_at=utcnow(),
    )
    db.session.add(entry)
    db.session.commit()
    return entry


def list_logs(limit: int) -> list[AuditLogEntry]:
    if limit <= 0:
        raise ValidationError("limit must be positive")
    return (
        db.session.query(AuditLogEntry)
        .order_by(AuditLogEntry.occurred_at.desc(), AuditLogEntry.id.desc())
        .limit(limit)
        .all()
    )


def list_logs_for_user(user_id: int, limit: int) -> list[AuditLogEntry]:
    if limit <= 0:
        raise ValidationError("limit must be positive")
    return (
        db.session.query(AuditLogEntry)
        .filter(AuditLogEntry.user_id == user_id)
        .order_by(AuditLogEntry.occurred_at.desc(), AuditLogEntry.id.desc())
        .limit(limit)
        .all()
    )


def purge_older_than(days: int) -> int:
    """Delete entries older than `days` days. Returns the number removed."""
    if days < 1:
        raise ValidationError("days must be at least 1")
    cutoff = utcnow() - timedelta(days=days)
    deleted = (
        db.session.query(AuditLogEntry)
        .filter(AuditLogEntry.occurred_at < cutoff)
        .delete(synchronize_session=False)
    )
    db.session.commit()
    return deleted
