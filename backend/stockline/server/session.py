# Overview: Per-connection authentication state and the read-only snapshot published to the registry.

"""
SessionState

WHY: Each connection's worker owns exactly one SessionState. Nothing else
holds a reference to it, so there is no locking and no way for one
connection's login to show up on another.

INVARIANTS:
- principal is None or a complete Principal (user id + username + role).
  It is swapped as one immutable object, never filled in field by field.
- SessionState never checks credentials. The login action verifies the
  password first and only then calls authenticate().
- The registry only ever sees SessionSnapshot copies.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Iterable, Optional

from ..permissions import Role
from ..time_utils import utcnow, to_utc_z


@dataclass(frozen=True)
class Principal:
    user_id: int
    username: str
    role: Role

    def to_dict(self) -> dict:
        return {"user_id": self.user_id, "username": self.username, "role": self.role.value}


@dataclass(frozen=True)
class SessionSnapshot:
    connection_id: int
    host: str
    port: int
    connected_at: datetime
    last_activity_at: datetime
    username: str | None
    role: str | None

    def to_dict(self) -> dict:
        return {
            "connection_id": self.connection_id,
            "host": self.host,
            "port": self.port,
            "connected_at": to_utc_z(self.connected_at),
            "last_activity_at": to_utc_z(self.last_activity_at),
            "username": self.username,
            "role": self.role,
            "authenticated": self.username is not None,
        }


class SessionState:
    def __init__(
        self,
        connection_id: int,
        origin: tuple[str, int],
        *,
        on_change: Optional[Callable[[SessionSnapshot], None]] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.connection_id = connection_id
        self.host, self.port = origin[0], origin[1]
        self._clock = clock
        self._on_change = on_change
        self.connected_at = clock()
        self.last_activity_at = self.connected_at
        self._principal: Principal | None = None

    @property
    def principal(self) -> Principal | None:
        return self._principal

    def authenticate(self, user_id: int, username: str, role: Role | str) -> Principal:
        """Attach a verified principal. Replaces any previous one."""
        principal = Principal(user_id=user_id, username=username, role=Role.parse(role))
        self._principal = principal
        self._publish()
        return principal

    def clear(self) -> None:
        self._principal = None
        self._publish()

    def is_authenticated(self) -> bool:
        return self._principal is not None

    def has_role(self, allowed: Iterable[Role]) -> bool:
        principal = self._principal
        return principal is not None and principal.role in set(allowed)

    def touch(self) -> None:
        self.last_activity_at = self._clock()
        self._publish()

    def snapshot(self) -> SessionSnapshot:
        principal = self._principal
        return SessionSnapshot(
            connection_id=self.connection_id,
            host=self.host,
            port=self.port,
            connected_at=self.connected_at,
            last_activity_at=self.last_activity_at,
            username=principal.username if principal else None,
            role=principal.role.value if principal else None,
        )

    def _publish(self) -> None:
        if self._on_change is not None:
            self._on_change(self.snapshot())
