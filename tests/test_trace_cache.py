"""
Tests for the in-memory trace cache (`TraceRouter`).

Scenarios
---------
1. **Load-or-fetch**: a trace is loaded once and reused afterwards.
2. **Garbage collection**: traces and per-session state of dead sessions are dropped.
3. **Lookups**: snapshots, sizes, sha1 blobs and session-scoped resources.
4. **Failures**: a failed load caches nothing.

Async methods are driven with `asyncio.run`.
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path

import pytest
from conftest import CSS_BODY, CSS_SHA1, CSS_URL, FRAME, PAGE, TraceFactory

from tracereplay.api.sessions import SessionRegistry
from tracereplay.api.trace_cache import TraceRouter
from tracereplay.core.errors import NotFoundError
from tracereplay.core.trace.model import TraceModel, load_trace


class _Clock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


class _CountingLoader:
    def __init__(self) -> None:
        self.calls: list[str] = []

    def __call__(self, trace_id: str) -> TraceModel:
        self.calls.append(trace_id)
        return load_trace(trace_id)


def test_context_loads_once(sample_trace: Path) -> None:
    loader = _CountingLoader()
    router = TraceRouter(loader=loader)

    first = asyncio.run(router.context(str(sample_trace), "s1"))
    second = asyncio.run(router.context(str(sample_trace), "s2"))

    assert first is second
    assert loader.calls == [str(sample_trace)]
    assert router.loaded() == (str(sample_trace),)
    entry = router.get(str(sample_trace))
    assert entry is not None and entry.session_id == "s1"


def test_failed_load_caches_nothing(tmp_path: Path) -> None:
    router = TraceRouter(loader=load_trace)
    with pytest.raises(NotFoundError):
        asyncio.run(router.context(str(tmp_path / "ghost.zip"), "s1"))
    assert router.loaded() == ()


def test_dead_sessions_are_collected(make_trace: TraceFactory) -> None:
    clock = _Clock()
    sessions = SessionRegistry(ttl_seconds=10, clock=clock)
    router = TraceRouter(loader=load_trace, presence=sessions)
    old = str(make_trace(name="old.zip"))
    new = str(make_trace(name="new.zip"))

    sessions.touch("gone")
    asyncio.run(router.context(old, "gone"))
    clock.now = 20.0
    sessions.touch("here")
    # Loading a trace first collects garbage.
    asyncio.run(router.context(new, "here"))

    assert router.loaded() == (new,)
    assert asyncio.run(router.collect_garbage()) == []


def test_without_presence_nothing_is_collected(sample_trace: Path) -> None:
    router = TraceRouter(loader=load_trace)
    asyncio.run(router.load(str(sample_trace), "s1"))
    assert asyncio.run(router.collect_garbage()) == []
    assert router.loaded() == (str(sample_trace),)


def test_snapshot_and_size_lookups(sample_trace: Path) -> None:
    router = TraceRouter(loader=load_trace)
    trace = str(sample_trace)

    # Nothing is loaded yet.
    assert asyncio.run(router.snapshot(trace, FRAME, "before@call@1", "s1")).status == 404
    assert json.loads(router.snapshot_size(trace, FRAME, "before@call@1").body) == {}

    asyncio.run(router.load(trace, "s1"))
    assert asyncio.run(router.snapshot(trace, PAGE, "before@call@1", "s1")).ok
    assert json.loads(router.snapshot_size(trace, FRAME, "after@call@1").body) == {
        "width": 800,
        "height": 600,
    }


def test_resource_follows_the_session_snapshot(sample_trace: Path) -> None:
    router = TraceRouter(loader=load_trace)
    trace = str(sample_trace)
    asyncio.run(router.load(trace, "s1"))

    assert asyncio.run(router.resource(CSS_URL, "s1")).status == 404
    asyncio.run(router.snapshot(trace, FRAME, "before@call@1", "s1"))
    response = asyncio.run(router.resource(CSS_URL, "s1"))
    assert response.ok and response.body == CSS_BODY

    # Evicting the trace forgets the session's active snapshot too.
    assert router.evict(trace)
    assert not router.evict(trace)
    assert asyncio.run(router.resource(CSS_URL, "s1")).status == 404


def test_resource_by_sha1(sample_trace: Path) -> None:
    router = TraceRouter(loader=load_trace)
    assert asyncio.run(router.resource_by_sha1(CSS_SHA1)).status == 404

    asyncio.run(router.load(str(sample_trace), "s1"))
    response = asyncio.run(router.resource_by_sha1(CSS_SHA1))
    assert response.ok and response.body == CSS_BODY
    assert asyncio.run(router.resource_by_sha1("unknown")).status == 404


def test_resource_with_explicit_trace(make_trace: TraceFactory) -> None:
    router = TraceRouter(loader=load_trace)
    first = str(make_trace(name="first.zip"))
    second = str(make_trace(name="second.zip"))
    asyncio.run(router.load(first, "s1"))
    asyncio.run(router.load(second, "s1"))

    asyncio.run(router.snapshot(first, FRAME, "before@call@1", "s1"))
    # The session has not rendered anything from the second trace.
    assert asyncio.run(router.resource(CSS_URL, "s1", second)).status == 404
    assert asyncio.run(router.resource(CSS_URL, "s1", first)).ok
    assert asyncio.run(router.resource(CSS_URL, "s1")).ok


def test_dead_sessions_lose_their_active_snapshot(sample_trace: Path) -> None:
    clock = _Clock()
    sessions = SessionRegistry(ttl_seconds=10, clock=clock)
    router = TraceRouter(loader=load_trace, presence=sessions)
    trace = str(sample_trace)

    sessions.touch("owner")
    sessions.touch("visitor")
    asyncio.run(router.load(trace, "owner"))
    for session_id in ("owner", "visitor"):
        asyncio.run(router.snapshot(trace, FRAME, "before@call@1", session_id))

    clock.now = 15.0
    sessions.touch("owner")
    assert asyncio.run(router.collect_garbage()) == []

    entry = router.get(trace)
    assert entry is not None
    assert entry.server.active_snapshot("visitor") is None
    assert entry.server.active_snapshot("owner") is not None
    assert asyncio.run(router.resource(CSS_URL, "visitor")).status == 404
    assert asyncio.run(router.resource(CSS_URL, "owner")).ok
