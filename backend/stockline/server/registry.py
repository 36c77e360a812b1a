# Overview: Process-wide view of live connections for the admin "who's connected" query.

from __future__ import annotations

from .session import SessionSnapshot
from .striped import StripedMap


class SessionRegistry:
    """
    Live connections keyed by connection id.

    Workers publish a fresh SessionSnapshot whenever their session changes
    and remove it in their cleanup block. Readers only get copies.
    """

    def __init__(self, stripes: int = 16):
        self._entries: StripedMap[int, SessionSnapshot] = StripedMap(stripes)

    def publish(self, snapshot: SessionSnapshot) -> None:
        self._entries.set(snapshot.connection_id, snapshot)

    def remove(self, connection_id: int) -> None:
        self._entries.pop(connection_id)

    def get(self, connection_id: int) -> SessionSnapshot | None:
        return self._entries.get(connection_id)

    def snapshots(self) -> list[SessionSnapshot]:
        return sorted(self._entries.values(), key=lambda s: s.connection_id)

    def count(self) -> int:
        return len(self._entries)

    def authenticated_count(self) -> int:
        return sum(1 for s in self._entries.values() if s.username is not None)
