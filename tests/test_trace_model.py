"""
Tests for event log ingestion into `TraceModel`.

Scenarios
---------
1. **Happy path**: the sample archive folds into context, page and snapshot aggregates.
2. **Leniency**: malformed lines (bad JSON, bad UTF-8, bad fields) are skipped,
   counted and leave no partial state behind.
3. **Ordering**: equal start times keep log order; object creations are last-write-wins.
4. **Versioning**: legacy logs are migrated; unsupported versions abort the load.
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from conftest import (
    CSS_BODY,
    CSS_SHA1,
    CSS_URL,
    FRAME,
    PAGE,
    SAMPLE_RECORDS,
    TraceFactory,
    ndjson,
)

from tracereplay.core.errors import TraceLoadError, UnsupportedVersionError
from tracereplay.core.trace.archive import DirectoryTraceArchive
from tracereplay.core.trace.model import TraceModel, decode_line, load_trace


def test_load_sample_trace(sample_trace: Path) -> None:
    model = load_trace(str(sample_trace))
    context = model.context

    assert context.browser_name == "chromium"
    assert context.options == {"viewport": {"width": 800, "height": 600}}
    assert context.start_time == 10.0
    assert context.end_time == 30.0
    assert [page.page_id for page in context.pages] == [PAGE]
    assert model.version == 3
    assert model.skipped_lines == 0


def test_actions_sorted_and_events_split(sample_trace: Path) -> None:
    page = load_trace(str(sample_trace)).page_entries[PAGE]

    assert [a["metadata"]["method"] for a in page.actions] == ["goto", "click"]
    assert [e["metadata"]["method"] for e in page.events] == ["console"]
    assert page.objects == {"frame@1": {"url": "http://example.com/"}}
    assert len(page.screencast_frames) == 1


def test_snapshots_and_resources_are_stored(sample_trace: Path) -> None:
    model = load_trace(str(sample_trace))

    assert model.storage.snapshot_count() == 2
    # Main frame snapshots are reachable by page id too.
    assert set(model.storage.frame_ids()) == {FRAME, PAGE}
    assert [r.request.url for r in model.context.resources] == [CSS_URL]
    assert model.resource_for_sha1(CSS_SHA1) == CSS_BODY
    assert model.resource_for_sha1("missing") is None


def test_action_without_snapshot_is_dropped(make_trace: TraceFactory) -> None:
    records = [
        SAMPLE_RECORDS[0],
        {
            "type": "action",
            "hasSnapshot": False,
            "metadata": {"pageId": PAGE, "startTime": 5.0, "endTime": 6.0},
        },
    ]
    model = load_trace(str(make_trace(records=records, network=None)))
    # The action still widens the time range even though it is not listed.
    assert model.context.start_time == 5.0
    assert all(not page.actions for page in model.context.pages)


def test_malformed_lines_are_skipped() -> None:
    model = TraceModel()
    model.append_event(json.dumps(SAMPLE_RECORDS[0]))
    model.append_event("{not json")
    model.append_event("[1, 2, 3]")
    model.append_event(json.dumps({"type": "action", "metadata": "oops"}))
    model.append_event(json.dumps({"type": "frame-snapshot", "snapshot": {"html": "x"}}))
    model.append_event("   ")
    model.append_event(json.dumps(SAMPLE_RECORDS[1]))
    model.finalize()

    assert model.skipped_lines == 4
    assert len(model.page_entries[PAGE].actions) == 1


def test_time_range_is_none_without_actions_or_events() -> None:
    model = TraceModel()
    model.append_event(json.dumps(SAMPLE_RECORDS[0]))
    model.finalize()
    assert model.context.start_time is None
    assert model.context.end_time is None


def test_legacy_trace_is_migrated(make_trace: TraceFactory) -> None:
    records = [
        {"type": "context-options", "version": 0, "browserName": "firefox", "options": {}},
        {
            "type": "action",
            "metadata": {
                "type": "Frame",
                "method": "fill",
                "pageId": PAGE,
                "startTime": 1.0,
                "endTime": 2.0,
                "error": "boom",
            },
        },
        {
            "type": "frame-snapshot",
            "snapshot": {
                "snapshotName": "s1",
                "frameId": FRAME,
                "pageId": PAGE,
                "isMainFrame": True,
                "html": ["DIV", {}, "legacy"],
                "timestamp": 10.0,
            },
        },
    ]
    network = [
        {
            "type": "resource-snapshot",
            "snapshot": {
                "frameId": FRAME,
                "url": CSS_URL,
                "method": "GET",
                "status": 200,
                "contentType": "text/css",
                "responseSha1": CSS_SHA1,
                "timestamp": 5.0,
            },
        }
    ]
    model = load_trace(str(make_trace(records=records, network=network)))

    action = model.page_entries[PAGE].actions[0]
    assert action["hasSnapshot"] is True
    assert action["metadata"]["error"]["error"]["message"] == "boom"

    renderer = model.storage.snapshot_by_name(FRAME, "s1")
    viewport = renderer.viewport()
    assert viewport is not None and (viewport.width, viewport.height) == (1280, 720)

    resource = model.context.resources[0]
    assert resource.response.content.mime_type == "text/css"
    assert resource.frame_ref == FRAME


def test_unsupported_version_aborts_load(make_trace: TraceFactory) -> None:
    records = [{"type": "context-options", "version": 99, "options": {}}]
    with pytest.raises(UnsupportedVersionError):
        load_trace(str(make_trace(records=records, network=None)))


def test_archive_without_event_log(tmp_path: Path) -> None:
    (tmp_path / "resources").mkdir()
    with pytest.raises(TraceLoadError):
        TraceModel(DirectoryTraceArchive(tmp_path)).load()
    with pytest.raises(TraceLoadError):
        TraceModel().load()


def test_decode_line_rejects_non_objects() -> None:
    assert decode_line('{"type": "event"}') == {"type": "event"}
    with pytest.raises(ValueError):
        decode_line('"just a string"')


def _action(method: str, start: object, end: object = 40.0) -> str:
    return json.dumps(
        {
            "type": "action",
            "hasSnapshot": True,
            "metadata": {"method": method, "pageId": PAGE, "startTime": start, "endTime": end},
        }
    )


def test_invalid_utf8_line_is_skipped(tmp_path: Path) -> None:
    log = ndjson(SAMPLE_RECORDS).encode("utf-8")
    broken = b'{"type": "event", "metadata": {"note": "\xff"}}'
    (tmp_path / "t.trace").write_bytes(broken + b"\n" + log)

    model = TraceModel(DirectoryTraceArchive(tmp_path)).load()

    assert model.skipped_lines == 1
    assert model.context.browser_name == "chromium"
    assert len(model.page_entries[PAGE].actions) == 2
    assert model.storage.snapshot_count() == 2


def test_non_numeric_times_leave_no_trace() -> None:
    model = TraceModel()
    model.append_event(json.dumps(SAMPLE_RECORDS[0]))
    model.append_event(_action("bad", "oops"))
    model.append_event(_action("flag", True))
    model.append_event(_action("good", 25.0))
    model.finalize()

    assert model.skipped_lines == 2
    assert [a["metadata"]["method"] for a in model.page_entries[PAGE].actions] == ["good"]
    assert (model.context.start_time, model.context.end_time) == (25.0, 40.0)


def test_skipped_object_creation_creates_no_page() -> None:
    model = TraceModel()
    model.append_event(
        json.dumps(
            {
                "type": "event",
                "metadata": {"pageId": "page@2", "method": "__create__", "params": {}},
            }
        )
    )
    model.finalize()

    assert model.skipped_lines == 1
    assert model.page_entries == {}
    assert model.context.pages == []


def test_equal_start_times_keep_log_order() -> None:
    model = TraceModel()
    model.append_event(json.dumps(SAMPLE_RECORDS[0]))
    for method in ("late", "first", "second", "third"):
        model.append_event(_action(method, 50.0 if method == "late" else 5.0))
    model.finalize()

    methods = [a["metadata"]["method"] for a in model.page_entries[PAGE].actions]
    assert methods == ["first", "second", "third", "late"]


def test_object_creation_is_last_write_wins() -> None:
    model = TraceModel()
    for url in ("http://a/", "http://b/"):
        model.append_event(
            json.dumps(
                {
                    "type": "event",
                    "metadata": {
                        "pageId": PAGE,
                        "method": "__create__",
                        "params": {"guid": "frame@9", "initializer": {"url": url}},
                    },
                }
            )
        )
    model.finalize()

    page = model.page_entries[PAGE]
    assert page.objects == {"frame@9": {"url": "http://b/"}}
    assert page.events == []
