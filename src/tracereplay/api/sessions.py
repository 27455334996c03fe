"""
Viewer session presence.

The trace cache evicts traces whose owning viewer session went away. How a
session is known to be alive depends on the transport, so the cache only
depends on the :class:`SessionPresence` capability. The HTTP app uses
:class:`SessionRegistry`, which treats a session as alive for a fixed TTL
after its last request.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from typing import Protocol


class SessionPresence(Protocol):
    """Capability answering whether a viewer session is still connected."""

    def is_alive(self, session_id: str) -> bool: ...


class SessionRegistry:
    """In-memory last-seen registry with a time-to-live."""

    def __init__(self, ttl_seconds: float, clock: Callable[[], float] = time.monotonic) -> None:
        self._ttl = ttl_seconds
        self._clock = clock
        self._last_seen: dict[str, float] = {}

    def touch(self, session_id: str) -> None:
        """Record activity for ``session_id``."""
        self._last_seen[session_id] = self._clock()

    def is_alive(self, session_id: str) -> bool:
        seen = self._last_seen.get(session_id)
        return seen is not None and self._clock() - seen <= self._ttl

    def expire(self) -> list[str]:
        """Drop sessions whose TTL has lapsed; return their ids."""
        expired = [sid for sid in self._last_seen if not self.is_alive(sid)]
        for session_id in expired:
            del self._last_seen[session_id]
        return expired

    def sessions(self) -> tuple[str, ...]:
        """Return the ids of sessions that are currently alive."""
        return tuple(sid for sid in self._last_seen if self.is_alive(sid))


__all__ = ["SessionPresence", "SessionRegistry"]
