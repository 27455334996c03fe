"""
In-Memory Trace Cache and Virtual Router.

This module keeps the traces opened by viewer sessions and dispatches the
viewer's lookups to them.

Responsibilities
----------------
- **Load**: open a trace on first reference and remember which session asked.
- **Dispatch**: answer context, snapshot, snapshot-size and resource lookups.
- **Evict**: drop traces whose owning session is no longer alive.

Note on Concurrency
-------------------
Loading is not single-flight. Two concurrent first references to the same
trace may both load it; the last one stored wins and the other result is
discarded. Nothing else is shared between traces, so no lock is taken.
A failed load leaves the cache untouched, and a later request may try again.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from starlette.concurrency import run_in_threadpool

from tracereplay.api.sessions import SessionPresence
from tracereplay.core.contracts import ContextEntry
from tracereplay.core.settings import get_logger, load_settings
from tracereplay.core.snapshot.server import ServedResponse, SnapshotServer
from tracereplay.core.trace.model import TraceModel, load_trace

logger = get_logger(__name__)

TraceLoader = Callable[[str], TraceModel]


@dataclass
class LoadedTrace:
    """Cache entry: one ingested trace, its server and the session that opened it."""

    model: TraceModel
    server: SnapshotServer
    session_id: str


def _default_loader(trace_id: str) -> TraceModel:
    return load_trace(trace_id, trace_root=load_settings().trace_root)


class TraceRouter:
    """
    A dictionary-backed cache of loaded traces keyed by trace identifier.
    """

    def __init__(
        self,
        loader: TraceLoader | None = None,
        presence: SessionPresence | None = None,
    ) -> None:
        self._loader = loader or _default_loader
        self._presence = presence
        self._traces: dict[str, LoadedTrace] = {}
        # Trace each session rendered a snapshot from most recently.
        self._active_trace: dict[str, str] = {}

    # ------------------------------- Cache ----------------------------------

    def loaded(self) -> tuple[str, ...]:
        """Return the identifiers of the traces currently cached."""
        return tuple(self._traces)

    def get(self, trace_id: str) -> LoadedTrace | None:
        return self._traces.get(trace_id)

    def evict(self, trace_id: str) -> bool:
        """Remove ``trace_id`` from the cache; return True if it was present."""
        if self._traces.pop(trace_id, None) is None:
            return False
        for session_id in [s for s, t in self._active_trace.items() if t == trace_id]:
            del self._active_trace[session_id]
        logger.info("Evicted trace %s", trace_id)
        return True

    async def load(self, trace_id: str, session_id: str) -> LoadedTrace:
        """Return the cached entry for ``trace_id``, loading it if needed.

        Loading runs in a worker thread. Errors propagate to the caller and
        nothing is cached for the failed identifier.
        """
        entry = self._traces.get(trace_id)
        if entry is not None:
            return entry
        model = await run_in_threadpool(self._loader, trace_id)
        entry = LoadedTrace(
            model=model,
            server=SnapshotServer(model.storage, model.resource_for_sha1),
            session_id=session_id,
        )
        self._traces[trace_id] = entry
        return entry

    async def collect_garbage(self) -> list[str]:
        """Evict traces whose owning session is gone; return the evicted ids.

        Per-session state of dead sessions (active trace, active snapshot) is
        dropped as well. Without a presence capability nothing is ever
        considered gone.
        """
        if self._presence is None:
            return []
        is_alive = self._presence.is_alive
        dead = [
            trace_id for trace_id, entry in self._traces.items() if not is_alive(entry.session_id)
        ]
        for trace_id in dead:
            self.evict(trace_id)
        for session_id in [s for s in self._active_trace if not is_alive(s)]:
            del self._active_trace[session_id]
        for entry in self._traces.values():
            entry.server.prune_sessions(is_alive)
        return dead

    # ------------------------------- Lookups --------------------------------

    async def context(self, trace_id: str, session_id: str) -> ContextEntry:
        """Load-or-fetch the trace and return its context aggregate."""
        await self.collect_garbage()
        entry = await self.load(trace_id, session_id)
        return entry.model.context

    def snapshot_size(self, trace_id: str, frame_id: str, name: str | None) -> ServedResponse:
        """Viewport of a named snapshot; ``{}`` when anything is unknown."""
        entry = self._traces.get(trace_id)
        if entry is None:
            return ServedResponse.json({})
        return entry.server.serve_snapshot_size(frame_id, name)

    async def snapshot(
        self, trace_id: str, frame_id: str, name: str | None, session_id: str
    ) -> ServedResponse:
        """Rendered HTML of a named snapshot; 404 when anything is unknown.

        Rendering runs in a worker thread.
        """
        entry = self._traces.get(trace_id)
        if entry is None:
            return ServedResponse.not_found()
        response = await run_in_threadpool(
            entry.server.serve_snapshot, frame_id, name, session_id
        )
        if response.ok:
            self._active_trace[session_id] = trace_id
        return response

    async def resource_by_sha1(self, sha1: str) -> ServedResponse:
        """Raw blob for ``sha1`` from the first loaded trace that has it."""
        for entry in list(self._traces.values()):
            body = await run_in_threadpool(entry.model.resource_for_sha1, sha1)
            if body is not None:
                return ServedResponse(status=200, body=body)
        return ServedResponse.not_found()

    async def resource(
        self, url: str, session_id: str, trace_id: str | None = None
    ) -> ServedResponse:
        """Resolve ``url`` against the session's last-rendered snapshot.

        The snapshot is looked up in ``trace_id`` when given, otherwise in
        the trace the session rendered from most recently.
        """
        trace_id = trace_id or self._active_trace.get(session_id)
        entry = self._traces.get(trace_id) if trace_id else None
        if entry is None:
            return ServedResponse.not_found()
        return await run_in_threadpool(entry.server.serve_resource, url, session_id)


__all__ = ["LoadedTrace", "TraceLoader", "TraceRouter"]
