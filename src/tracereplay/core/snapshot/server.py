"""
Snapshot Server: transport-agnostic responses for one loaded trace.

Builds the three kinds of answers the viewer needs from a trace:

- rendered snapshot HTML (remembering which snapshot each session looked at),
- snapshot viewport sizes,
- resource bodies resolved against the session's current snapshot.

Responses are plain :class:`ServedResponse` values; the HTTP layer turns them
into framework responses.
"""

from __future__ import annotations

import json
import re
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import urldefrag

from tracereplay.core.contracts import ResourceSnapshot
from tracereplay.core.errors import NotFoundError
from tracereplay.core.settings import get_logger

from .renderer import SnapshotRenderer
from .store import SnapshotStore

logger = get_logger(__name__)

#: Prefix the recorder uses for resources that had ``blob:`` URLs.
BLOB_URL_PREFIX = "http://playwright.bloburl/#"
LONG_LIVED_CACHE = "public, max-age=31536000"

_TEXTUAL_MIME = re.compile(r"^text/|^application/(javascript|json)")

ContentReader = Callable[[str], "bytes | None"]


@dataclass(frozen=True, slots=True)
class ServedResponse:
    """Status, body and headers of one answer, independent of the transport."""

    status: int
    body: bytes = b""
    headers: dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    @classmethod
    def not_found(cls) -> ServedResponse:
        return cls(status=404)

    @classmethod
    def json(cls, payload: Any, *, cache: bool = True) -> ServedResponse:
        headers = {"Content-Type": "application/json"}
        if cache:
            headers["Cache-Control"] = LONG_LIVED_CACHE
        return cls(status=200, body=json.dumps(payload).encode("utf-8"), headers=headers)

    @classmethod
    def html(cls, text: str) -> ServedResponse:
        return cls(status=200, body=text.encode("utf-8"), headers={"Content-Type": "text/html"})


def normalize_resource_url(url: str) -> str:
    """Map a requested URL to the key it was recorded under."""
    if url.startswith(BLOB_URL_PREFIX):
        return url[len(BLOB_URL_PREFIX) :]
    return urldefrag(url).url


def content_type_for(mime_type: str | None) -> str:
    """Return the Content-Type to serve, forcing UTF-8 on textual types."""
    value = mime_type or "application/octet-stream"
    if _TEXTUAL_MIME.match(value) and "charset" not in value:
        value = f"{value}; charset=utf-8"
    return value


def _set_header(headers: dict[str, str], name: str, value: str) -> None:
    _delete_header(headers, name)
    headers[name] = value


def _delete_header(headers: dict[str, str], name: str) -> None:
    for key in [key for key in headers if key.lower() == name.lower()]:
        del headers[key]


def resource_headers(resource: ResourceSnapshot, size: int) -> dict[str, str]:
    """Build the response headers for a replayed resource body.

    Recorded headers are replayed first; the body was stored decoded, so
    ``Content-Encoding`` is dropped and ``Content-Length`` recomputed.
    """
    headers: dict[str, str] = {}
    for header in resource.response.headers:
        _set_header(headers, header.name, header.value)
    _set_header(headers, "Content-Type", content_type_for(resource.response.content.mime_type))
    _delete_header(headers, "Content-Encoding")
    _set_header(headers, "Access-Control-Allow-Origin", "*")
    _set_header(headers, "Content-Length", str(size))
    _set_header(headers, "Cache-Control", LONG_LIVED_CACHE)
    return headers


class SnapshotServer:
    """Serve snapshots and resources of one trace.

    Parameters
    ----------
    storage:
        The trace's snapshot store.
    read_content:
        Returns the archived blob for a content hash, or ``None``.
    """

    def __init__(self, storage: SnapshotStore, read_content: ContentReader) -> None:
        self._storage = storage
        self._read_content = read_content
        self._session_snapshots: dict[str, SnapshotRenderer] = {}

    def _snapshot(self, frame_id: str, name: str | None) -> SnapshotRenderer | None:
        try:
            return self._storage.snapshot_by_name(frame_id, name)
        except NotFoundError:
            return None

    def active_snapshot(self, session_id: str) -> SnapshotRenderer | None:
        """Return the snapshot ``session_id`` rendered last, if any."""
        return self._session_snapshots.get(session_id)

    def prune_sessions(self, is_alive: Callable[[str], bool]) -> list[str]:
        """Forget the active snapshot of every session that is no longer alive."""
        dead = [sid for sid in list(self._session_snapshots) if not is_alive(sid)]
        for session_id in dead:
            self._session_snapshots.pop(session_id, None)
        return dead

    def serve_snapshot(self, frame_id: str, name: str | None, session_id: str) -> ServedResponse:
        """Render a named snapshot and make it the session's active one."""
        renderer = self._snapshot(frame_id, name)
        if renderer is None:
            return ServedResponse.not_found()
        rendered = renderer.render()
        self._session_snapshots[session_id] = renderer
        return ServedResponse.html(rendered.html)

    def serve_snapshot_size(self, frame_id: str, name: str | None) -> ServedResponse:
        """Return the named snapshot's viewport, or ``{}`` if unknown."""
        renderer = self._snapshot(frame_id, name)
        viewport = renderer.viewport() if renderer else None
        return ServedResponse.json(viewport.to_wire() if viewport else {})

    def serve_resource(self, url: str, session_id: str) -> ServedResponse:
        """Serve ``url`` as the session's active snapshot saw it."""
        renderer = self.active_snapshot(session_id)
        if renderer is None:
            return ServedResponse.not_found()
        resource = renderer.resource_by_url(normalize_resource_url(url))
        if resource is None or not resource.response.content.sha1:
            return ServedResponse.not_found()
        body = self._read_content(resource.response.content.sha1)
        if body is None:
            logger.debug("Resource %s references a missing blob", url)
            return ServedResponse.not_found()
        return ServedResponse(status=200, body=body, headers=resource_headers(resource, len(body)))


__all__ = [
    "BLOB_URL_PREFIX",
    "LONG_LIVED_CACHE",
    "ServedResponse",
    "SnapshotServer",
    "content_type_for",
    "normalize_resource_url",
    "resource_headers",
]
