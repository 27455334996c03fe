"""Context-level and page-level aggregates built while ingesting a trace.

`ContextEntry` is what the viewer receives from ``GET /context``. Actions,
events and screencast frames are kept as the decoded JSON objects the
recorder wrote; the viewer consumes them verbatim.
"""

from __future__ import annotations

from typing import Any

from pydantic import Field

from .resource import ResourceSnapshot
from .wire import WireModel

TraceEvent = dict[str, Any]


class PageEntry(WireModel):
    """Everything recorded for one page id.

    Attributes
    ----------
    page_id : str
        The recorder's page guid.
    actions : list[TraceEvent]
        Snapshot-bearing actions, sorted by ``metadata.startTime`` once the
        trace is finalized.
    events : list[TraceEvent]
        Page events in log order (object creations excluded).
    objects : dict[str, Any]
        ``guid -> initializer`` of objects created on this page; a later
        ``__create__`` for the same guid replaces the earlier entry.
    screencast_frames : list[TraceEvent]
        Screencast frame records in log order.
    """

    page_id: str = Field(alias="pageId")
    actions: list[TraceEvent] = Field(default_factory=list)
    events: list[TraceEvent] = Field(default_factory=list)
    objects: dict[str, Any] = Field(default_factory=dict)
    screencast_frames: list[TraceEvent] = Field(default_factory=list, alias="screencastFrames")


class ContextEntry(WireModel):
    """Singleton aggregate describing one loaded trace.

    ``start_time``/``end_time`` stay ``None`` until the first action or event
    is ingested; afterwards ``start_time <= end_time`` always holds.
    ``resources`` is a snapshot of the resource log taken at finalization and
    is never appended to directly.
    """

    start_time: float | None = Field(default=None, alias="startTime")
    end_time: float | None = Field(default=None, alias="endTime")
    browser_name: str = Field(default="", alias="browserName")
    options: dict[str, Any] = Field(default_factory=dict)
    pages: list[PageEntry] = Field(default_factory=list)
    resources: list[ResourceSnapshot] = Field(default_factory=list)

    def widen(self, start: float | None, end: float | None) -> None:
        """Extend the time range so it covers ``[start, end]``."""
        for value in (start, end):
            if value is None:
                continue
            if self.start_time is None or value < self.start_time:
                self.start_time = value
            if self.end_time is None or value > self.end_time:
                self.end_time = value


__all__ = ["ContextEntry", "PageEntry", "TraceEvent"]
