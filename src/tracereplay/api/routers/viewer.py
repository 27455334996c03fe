"""
API Routes for the Trace Viewer.

This module defines the path surface the viewer front end talks to. Every
route is a thin adapter: it reads the trace id, session id and query
parameters, asks the :class:`TraceRouter`, and converts the transport-agnostic
answer into a FastAPI response.

Endpoints
---------
- `GET /context`: load (or reuse) a trace and return its context aggregate.
- `GET /snapshotSize/{frame_id}`: viewport of a named snapshot.
- `GET /snapshot/{frame_id}`: rendered HTML of a named snapshot.
- `GET /sha1/{sha1}`: raw archived blob by content hash.
- `GET /resource`: a resource URL as the session's current snapshot saw it
  (optionally scoped to `trace`).
- `GET /{path}`: any other URL, resolved the same way as `/resource`.

Sessions
--------
The session id comes from the `X-Trace-Session` header, else the `session`
query parameter, else `"default"`. Every request marks its session alive.
"""

from __future__ import annotations

from typing import Annotated, Any

from fastapi import APIRouter, Depends, Header, Query, Request
from fastapi.responses import Response

from tracereplay.api.sessions import SessionRegistry
from tracereplay.api.trace_cache import TraceRouter
from tracereplay.core.snapshot.server import ServedResponse

DEFAULT_SESSION = "default"
#: Query parameters the viewer adds to resource URLs; never part of a recorded URL.
VIEWER_PARAMS = ("session", "trace")


def get_router(request: Request) -> TraceRouter:
    """Dependency: the app's trace router."""
    trace_router: TraceRouter = request.app.state.trace_router
    return trace_router


def get_session_id(
    request: Request,
    x_trace_session: Annotated[str | None, Header()] = None,
    session: Annotated[str | None, Query()] = None,
) -> str:
    """Dependency: identify the calling viewer session and mark it alive."""
    session_id = x_trace_session or session or DEFAULT_SESSION
    registry: SessionRegistry = request.app.state.sessions
    registry.touch(session_id)
    return session_id


TraceRouterDep = Annotated[TraceRouter, Depends(get_router)]
SessionDep = Annotated[str, Depends(get_session_id)]
TraceParam = Annotated[str, Query(description="Trace identifier: URL or path.")]

# Marks the calling session alive on every request.
router = APIRouter(tags=["Viewer"], dependencies=[Depends(get_session_id)])


def _to_response(served: ServedResponse) -> Response:
    return Response(content=served.body, status_code=served.status, headers=served.headers)


@router.get("/context", summary="Load a trace and return its context")
async def get_context(
    trace: TraceParam, trace_router: TraceRouterDep, session_id: SessionDep
) -> Any:
    """
    Load-or-fetch the trace and return the serialized context aggregate.

    Unknown traces answer 404 (via the `NotFoundError` handler); unsupported
    schema versions answer 400.
    """
    context = await trace_router.context(trace, session_id)
    return context.to_wire()


@router.get("/snapshotSize/{frame_id}", summary="Viewport of a named snapshot")
async def get_snapshot_size(
    frame_id: str,
    trace: TraceParam,
    trace_router: TraceRouterDep,
    name: str | None = None,
) -> Response:
    return _to_response(trace_router.snapshot_size(trace, frame_id, name))


@router.get("/snapshot/{frame_id}", summary="Rendered HTML of a named snapshot")
async def get_snapshot(
    frame_id: str,
    trace: TraceParam,
    trace_router: TraceRouterDep,
    session_id: SessionDep,
    name: str | None = None,
) -> Response:
    """
    Render a snapshot and remember it as the session's active snapshot, so
    later resource requests from the same session resolve against it.
    """
    return _to_response(await trace_router.snapshot(trace, frame_id, name, session_id))


@router.get("/sha1/{sha1}", summary="Archived blob by content hash")
async def get_sha1(sha1: str, trace_router: TraceRouterDep) -> Response:
    return _to_response(await trace_router.resource_by_sha1(sha1))


@router.get("/resource", summary="Resource as seen by the active snapshot")
async def get_resource(
    url: Annotated[str, Query(description="Recorded resource URL.")],
    trace_router: TraceRouterDep,
    session_id: SessionDep,
    trace: str | None = None,
) -> Response:
    return _to_response(await trace_router.resource(url, session_id, trace))


@router.get("/{path:path}", include_in_schema=False)
async def get_any(
    request: Request, trace_router: TraceRouterDep, session_id: SessionDep
) -> Response:
    """Fallback: resolve the request URL itself against the active snapshot.

    The viewer's own `session` and `trace` parameters are stripped first.
    """
    url = request.url
    trace = request.query_params.get("trace")
    if any(key in request.query_params for key in VIEWER_PARAMS):
        url = url.remove_query_params(VIEWER_PARAMS)
    return _to_response(await trace_router.resource(str(url), session_id, trace))


__all__ = ["router"]
