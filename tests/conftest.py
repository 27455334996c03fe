"""
Shared fixtures: small, realistic trace archives built in `tmp_path`.

`SAMPLE_RECORDS` / `SAMPLE_NETWORK` describe one page with a main frame, two
snapshots (the second delta-encoded against the first) and one stylesheet.
"""

from __future__ import annotations

import json
import zipfile
from collections.abc import Callable, Iterable, Mapping
from pathlib import Path
from typing import Any

import pytest

PAGE = "page@1"
FRAME = "frame@1"
CSS_URL = "http://example.com/style.css"
CSS_SHA1 = "c0ffee.css"
CSS_BODY = b"body { color: red; }"

SAMPLE_RECORDS: list[dict[str, Any]] = [
    {
        "type": "context-options",
        "version": 3,
        "browserName": "chromium",
        "options": {"viewport": {"width": 800, "height": 600}},
    },
    {
        "type": "action",
        "hasSnapshot": True,
        "metadata": {
            "type": "Frame",
            "method": "click",
            "pageId": PAGE,
            "startTime": 20.0,
            "endTime": 30.0,
        },
    },
    {
        "type": "action",
        "hasSnapshot": True,
        "metadata": {
            "type": "Frame",
            "method": "goto",
            "pageId": PAGE,
            "startTime": 10.0,
            "endTime": 15.0,
        },
    },
    {
        "type": "event",
        "metadata": {"pageId": PAGE, "method": "console", "startTime": 12.0, "endTime": 12.0},
    },
    {
        "type": "event",
        "metadata": {
            "pageId": PAGE,
            "method": "__create__",
            "params": {"guid": "frame@1", "initializer": {"url": "http://example.com/"}},
        },
    },
    {"type": "screencast-frame", "pageId": PAGE, "sha1": "frame-1.jpeg", "timestamp": 11.0},
    {
        "type": "frame-snapshot",
        "snapshot": {
            "snapshotName": "before@call@1",
            "frameId": FRAME,
            "pageId": PAGE,
            "isMainFrame": True,
            "doctype": "html",
            "viewport": {"width": 800, "height": 600},
            "timestamp": 100.0,
            "html": [
                "HTML",
                {},
                ["HEAD", {}, ["LINK", {"rel": "stylesheet", "href": CSS_URL}]],
                ["BODY", {}, ["DIV", {"id": "a"}, "x"]],
            ],
        },
    },
    {
        "type": "frame-snapshot",
        "snapshot": {
            "snapshotName": "after@call@1",
            "frameId": FRAME,
            "pageId": PAGE,
            "isMainFrame": True,
            "doctype": "html",
            "viewport": {"width": 800, "height": 600},
            "timestamp": 200.0,
            "html": ["HTML", {}, [[1, 1]], ["BODY", {}, [[1, 4]], "y"]],
        },
    },
]

SAMPLE_NETWORK: list[dict[str, Any]] = [
    {
        "type": "resource-snapshot",
        "snapshot": {
            "_frameref": FRAME,
            "request": {"url": CSS_URL, "method": "GET", "headers": []},
            "response": {
                "status": 200,
                "headers": [
                    {"name": "Content-Encoding", "value": "gzip"},
                    {"name": "X-Served-By", "value": "edge"},
                ],
                "content": {"mimeType": "text/css", "_sha1": CSS_SHA1},
            },
            "_monotonicTime": 50.0,
        },
    }
]


def ndjson(records: Iterable[Mapping[str, Any]]) -> str:
    return "\n".join(json.dumps(record) for record in records) + "\n"


TraceFactory = Callable[..., Path]


@pytest.fixture  # type: ignore[misc]
def make_trace(tmp_path: Path) -> TraceFactory:
    """
    Factory fixture writing a zip trace archive and returning its path.

    Parameters of the returned callable: `records` (event log), `network`
    (resource log, optional), `resources` (sha1 -> bytes) and `name`.
    """

    def _make(
        records: Iterable[Mapping[str, Any]] = SAMPLE_RECORDS,
        network: Iterable[Mapping[str, Any]] | None = SAMPLE_NETWORK,
        resources: Mapping[str, bytes] | None = None,
        name: str = "trace.zip",
    ) -> Path:
        path = tmp_path / name
        blobs = {CSS_SHA1: CSS_BODY} if resources is None else resources
        with zipfile.ZipFile(path, "w") as archive:
            archive.writestr("trace.trace", ndjson(records))
            if network is not None:
                archive.writestr("trace.network", ndjson(network))
            for sha1, body in blobs.items():
                archive.writestr(f"resources/{sha1}", body)
        return path

    return _make


@pytest.fixture  # type: ignore[misc]
def sample_trace(make_trace: TraceFactory) -> Path:
    """The default sample archive."""
    return make_trace()
