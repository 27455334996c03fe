"""Frame snapshot contract: one DOM capture of one frame at one moment."""

from __future__ import annotations

from typing import Any

from pydantic import Field, PrivateAttr

from tracereplay.core.snapshot.nodes import FlatTree, flatten_tree

from .wire import WireModel


class Viewport(WireModel):
    width: int
    height: int


class ResourceOverride(WireModel):
    """Snapshot-local replacement of a resource body (e.g. a mutated stylesheet)."""

    url: str
    sha1: str | None = None


class FrameSnapshot(WireModel):
    """Raw snapshot record as appended to a frame's history.

    Records are never modified after they are appended. The two private
    attributes are a render memo owned by the snapshot layer: the flattened
    node arena (built on first use) and a side table of rendered element
    strings keyed by arena position. Both are idempotent to recompute.
    """

    snapshot_name: str = Field(default="", alias="snapshotName")
    frame_id: str = Field(alias="frameId")
    page_id: str = Field(default="", alias="pageId")
    is_main_frame: bool = Field(default=False, alias="isMainFrame")
    html: Any = None
    doctype: str | None = None
    viewport: Viewport | None = None
    resource_overrides: list[ResourceOverride] = Field(
        default_factory=list, alias="resourceOverrides"
    )
    timestamp: float = 0.0

    _flat: FlatTree | None = PrivateAttr(default=None)
    _rendered: dict[int, str] = PrivateAttr(default_factory=dict)

    def flat(self) -> FlatTree:
        """Return the pre-order arena of :attr:`html`, building it once."""
        if self._flat is None:
            self._flat = flatten_tree(self.html)
        return self._flat

    @property
    def render_memo(self) -> dict[int, str]:
        """Rendered element strings keyed by arena position."""
        return self._rendered


__all__ = ["FrameSnapshot", "ResourceOverride", "Viewport"]
