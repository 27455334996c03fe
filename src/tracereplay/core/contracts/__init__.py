"""Typed trace record contracts (Pydantic v2)."""

from __future__ import annotations

from .context import ContextEntry, PageEntry, TraceEvent
from .resource import ContentInfo, Header, PostData, RequestInfo, ResourceSnapshot, ResponseInfo
from .snapshot import FrameSnapshot, ResourceOverride, Viewport
from .wire import WireModel

__all__ = [
    "ContentInfo",
    "ContextEntry",
    "FrameSnapshot",
    "Header",
    "PageEntry",
    "PostData",
    "RequestInfo",
    "ResourceOverride",
    "ResourceSnapshot",
    "ResponseInfo",
    "TraceEvent",
    "Viewport",
    "WireModel",
]
