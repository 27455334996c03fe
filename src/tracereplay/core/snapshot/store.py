"""
Snapshot Store: per-frame snapshot history plus the trace's resource log.

Each frame owns an append-only list of raw snapshots and a parallel list of
renderers bound to them. A main-frame snapshot also registers its page id as
an alias of the same history, so lookups by page id or frame id both work.

Subscribers implementing :class:`SnapshotListener` are notified after each
snapshot is added.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Protocol

from tracereplay.core.contracts import FrameSnapshot, ResourceSnapshot
from tracereplay.core.errors import NotFoundError

from .renderer import SnapshotRenderer


class SnapshotListener(Protocol):
    """Observer notified whenever a frame snapshot is added to a store."""

    def on_snapshot(self, renderer: SnapshotRenderer) -> None: ...


@dataclass
class FrameHistory:
    raw: list[FrameSnapshot] = field(default_factory=list)
    renderers: list[SnapshotRenderer] = field(default_factory=list)


class SnapshotStore:
    """Indexed, append-only collection of frame snapshots and resources."""

    def __init__(self) -> None:
        self._resources: list[ResourceSnapshot] = []
        self._frames: dict[str, FrameHistory] = {}
        self._listeners: list[SnapshotListener] = []

    # ------------------------------- Observers ------------------------------

    def subscribe(self, listener: SnapshotListener) -> Callable[[], None]:
        """Register ``listener`` and return a callable that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # ------------------------------- Mutation -------------------------------

    def add_resource(self, resource: ResourceSnapshot) -> None:
        self._resources.append(resource)

    def add_frame_snapshot(self, snapshot: FrameSnapshot) -> SnapshotRenderer:
        """Append ``snapshot`` to its frame's history and return its renderer."""
        history = self._frames.get(snapshot.frame_id)
        if history is None:
            history = FrameHistory()
            self._frames[snapshot.frame_id] = history
            if snapshot.is_main_frame and snapshot.page_id:
                self._frames[snapshot.page_id] = history
        history.raw.append(snapshot)
        renderer = SnapshotRenderer(self._resources, history.raw, len(history.raw) - 1)
        history.renderers.append(renderer)
        for listener in list(self._listeners):
            listener.on_snapshot(renderer)
        return renderer

    def clear(self) -> None:
        """Drop all snapshots and resources (renderers already handed out keep theirs)."""
        self._resources = []
        self._frames.clear()

    # ------------------------------- Lookups --------------------------------

    def resources(self) -> list[ResourceSnapshot]:
        """Return a copy of the resource log in capture order."""
        return list(self._resources)

    def frame_ids(self) -> tuple[str, ...]:
        """Return every key snapshots can be looked up by (frame and page ids)."""
        return tuple(self._frames)

    def snapshot_count(self) -> int:
        """Return the number of distinct snapshots stored."""
        unique = {id(history): history for history in self._frames.values()}
        return sum(len(history.raw) for history in unique.values())

    def snapshots(self, frame_id: str) -> tuple[SnapshotRenderer, ...]:
        """Return the renderers of ``frame_id`` in capture order."""
        return tuple(self._history(frame_id).renderers)

    def snapshot_by_name(self, frame_id: str, name: str | None) -> SnapshotRenderer:
        """Return the first snapshot of ``frame_id`` named ``name``.

        Raises
        ------
        NotFoundError
            If the frame is unknown or none of its snapshots has that name.
        """
        for renderer in self._history(frame_id).renderers:
            if renderer.snapshot_name == name:
                return renderer
        raise NotFoundError(f"Snapshot {name!r} not found in frame {frame_id!r}")

    def snapshot_by_index(self, frame_id: str, index: int) -> SnapshotRenderer:
        """Return the ``index``-th snapshot of ``frame_id``.

        Raises
        ------
        NotFoundError
            If the frame is unknown or ``index`` is out of range.
        """
        renderers = self._history(frame_id).renderers
        if not 0 <= index < len(renderers):
            raise NotFoundError(f"Snapshot #{index} not found in frame {frame_id!r}")
        return renderers[index]

    def _history(self, frame_id: str) -> FrameHistory:
        history = self._frames.get(frame_id)
        if history is None:
            raise NotFoundError(f"Unknown frame {frame_id!r}")
        return history


__all__ = ["FrameHistory", "SnapshotListener", "SnapshotStore"]
