"""Resolve "what did URL X look like when snapshot Y was taken"."""

from __future__ import annotations

from collections.abc import Sequence

from tracereplay.core.contracts import FrameSnapshot, ResourceSnapshot


class ResourceResolver:
    """Time-bounded URL lookups over a shared, capture-ordered resource log.

    The resolver holds the log by reference: resources appended after it was
    created are visible to later lookups.
    """

    def __init__(self, resources: Sequence[ResourceSnapshot]) -> None:
        self._resources = resources

    def _first_before(
        self, snapshot: FrameSnapshot, url: str, frame_id: str | None
    ) -> ResourceSnapshot | None:
        for resource in self._resources:
            # The log is capture-ordered, so nothing past this point qualifies.
            if resource.monotonic_time >= snapshot.timestamp:
                break
            if resource.request.url != url:
                continue
            if frame_id is None or resource.frame_ref == frame_id:
                return resource
        return None

    def resource_by_url(self, snapshot: FrameSnapshot, url: str) -> ResourceSnapshot | None:
        """Return the resource ``snapshot`` saw for ``url``, or ``None``.

        Lookup order:
        1. first resource captured before the snapshot by the same frame;
        2. otherwise the first one captured before it by any frame (the
           earliest eligible entry, not the latest);
        3. if the snapshot overrides ``url`` with its own content hash, a copy
           of the match pointing at that hash is returned instead.
        """
        match = self._first_before(snapshot, url, snapshot.frame_id)
        if match is None:
            match = self._first_before(snapshot, url, None)
        if match is None:
            return None
        for override in snapshot.resource_overrides:
            if override.url == url and override.sha1:
                return match.with_content_sha1(override.sha1)
        return match


__all__ = ["ResourceResolver"]
