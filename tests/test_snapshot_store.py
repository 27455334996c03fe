"""Unit tests for the per-frame snapshot store and its observers."""

from __future__ import annotations

from typing import Any

import pytest

from tracereplay.core.contracts import FrameSnapshot, RequestInfo, ResourceSnapshot
from tracereplay.core.errors import NotFoundError
from tracereplay.core.snapshot.renderer import SnapshotRenderer
from tracereplay.core.snapshot.store import SnapshotStore


def _snapshot(name: str, frame: str = "frame@1", **extra: Any) -> FrameSnapshot:
    return FrameSnapshot.model_validate(
        {"snapshotName": name, "frameId": frame, "html": ["DIV", {}, name], **extra}
    )


class _Recorder:
    def __init__(self) -> None:
        self.seen: list[str] = []

    def on_snapshot(self, renderer: SnapshotRenderer) -> None:
        self.seen.append(renderer.snapshot_name)


def test_history_is_append_only_and_indexed() -> None:
    store = SnapshotStore()
    first = store.add_frame_snapshot(_snapshot("a"))
    second = store.add_frame_snapshot(_snapshot("b"))

    assert (first.index, second.index) == (0, 1)
    assert store.snapshots("frame@1") == (first, second)
    assert store.snapshot_by_index("frame@1", 1) is second
    assert store.snapshot_count() == 2


def test_main_frame_is_aliased_by_page_id() -> None:
    store = SnapshotStore()
    renderer = store.add_frame_snapshot(_snapshot("a", pageId="page@1", isMainFrame=True))
    store.add_frame_snapshot(_snapshot("x", frame="frame@2", pageId="page@1"))

    assert store.snapshot_by_name("page@1", "a") is renderer
    assert set(store.frame_ids()) == {"frame@1", "page@1", "frame@2"}
    assert store.snapshot_count() == 2


def test_lookup_by_name_returns_first_match() -> None:
    store = SnapshotStore()
    first = store.add_frame_snapshot(_snapshot("dup"))
    store.add_frame_snapshot(_snapshot("dup"))
    assert store.snapshot_by_name("frame@1", "dup") is first


def test_unknown_lookups_raise_not_found() -> None:
    store = SnapshotStore()
    store.add_frame_snapshot(_snapshot("a"))
    with pytest.raises(NotFoundError):
        store.snapshot_by_name("frame@1", "zzz")
    with pytest.raises(NotFoundError):
        store.snapshot_by_name("ghost", "a")
    with pytest.raises(NotFoundError):
        store.snapshot_by_index("frame@1", 5)


def test_listeners_are_notified_until_unsubscribed() -> None:
    store = SnapshotStore()
    recorder = _Recorder()
    unsubscribe = store.subscribe(recorder)

    store.add_frame_snapshot(_snapshot("a"))
    unsubscribe()
    store.add_frame_snapshot(_snapshot("b"))
    unsubscribe()

    assert recorder.seen == ["a"]


def test_resources_are_copied_and_cleared() -> None:
    store = SnapshotStore()
    store.add_resource(ResourceSnapshot(request=RequestInfo(url="http://a/")))
    copy = store.resources()
    copy.clear()
    assert len(store.resources()) == 1

    store.clear()
    assert store.resources() == []
    assert store.frame_ids() == ()


def test_renderers_see_resources_added_later() -> None:
    store = SnapshotStore()
    renderer = store.add_frame_snapshot(_snapshot("a", timestamp=10.0))
    store.add_resource(
        ResourceSnapshot.model_validate(
            {"_frameref": "frame@1", "request": {"url": "http://a/"}, "_monotonicTime": 1.0}
        )
    )
    resource = renderer.resource_by_url("http://a/")
    assert resource is not None and resource.request.url == "http://a/"
