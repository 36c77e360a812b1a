from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class AuditLogEntry(db.Model):
    """
    Audit trail of user actions.

    WHY: Admins need to see who changed stock, prices, and accounts.

    IMMUTABLE: Never update. Rows are only removed by the retention purge
    (maintenance CLI), never by request handlers.
    """
    __tablename__ = "audit_log"
    __table_args__ = (
        db.Index("ix_audit_log_user_occurred", "user_id", "occurred_at"),
        db.CheckConstraint("length(trim(action)) > 0", name="ck_audit_log_action_not_empty"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # Nullable so that the trail survives if a user row is ever removed
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)

    action = db.Column(db.String(100), nullable=False)  # e.g. LOGIN, RECORD_TRANSACTION
    details = db.Column(db.Text, nullable=True)

    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    user = db.relationship("User", backref=db.backref("audit_entries", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "username": self.user.username if self.user else None,
            "action": self.action,
            "details": self.details,
            "occurred_at": to_utc_z(self.occurred_at),
        }
