"""
Snapshot Renderer: rebuild full HTML from delta-compressed node trees.

Consecutive snapshots of a frame usually differ in a small subtree, so the
recorder encodes unchanged subtrees as two-integer back-references into an
earlier snapshot of the same frame. Rendering resolves those references
against the frame's history.

Memoization
-----------
Rendered element strings are cached per snapshot in a side table keyed by the
element's position in the snapshot's pre-order arena (see
:mod:`tracereplay.core.snapshot.nodes`). A subtree shared by many later
snapshots is therefore rendered once, and the cost of rendering a snapshot
is bounded by its changed portion plus O(1) per back-reference.

Leniency
--------
Out-of-range back-references and node shapes the renderer does not know
render as empty strings. A reference that loops back into a node currently
being rendered also renders as empty, so resolution always terminates. Elements
whose subtree was cut that way are not memoized.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field

from tracereplay.core.contracts import FrameSnapshot, ResourceSnapshot, Viewport

from .bootstrap import snapshot_epilogue
from .nodes import BackRef, Child
from .resolver import ResourceResolver

#: Elements that never get a closing tag (compared upper-cased).
VOID_ELEMENTS: frozenset[str] = frozenset(
    {
        "AREA",
        "BASE",
        "BR",
        "COL",
        "COMMAND",
        "EMBED",
        "HR",
        "IMG",
        "INPUT",
        "KEYGEN",
        "LINK",
        "MENUITEM",
        "META",
        "PARAM",
        "SOURCE",
        "TRACK",
        "WBR",
    }
)


def escape_text(text: str) -> str:
    """Escape text content (only ``&`` and ``<`` are significant there)."""
    return text.replace("&", "&amp;").replace("<", "&lt;")


def escape_attribute(value: str) -> str:
    """Escape a double-quoted attribute value."""
    return (
        value.replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
        .replace("'", "&#39;")
    )


@dataclass(slots=True)
class _RenderState:
    """Nodes on the current render path and how often the cycle guard fired."""

    active: set[tuple[int, int]] = field(default_factory=set)
    cuts: int = 0


@dataclass(frozen=True, slots=True)
class RenderedSnapshot:
    html: str
    page_id: str
    frame_id: str
    index: int


class SnapshotRenderer:
    """Renderer bound to one snapshot of one frame.

    Parameters
    ----------
    resources:
        The trace's resource log, shared by reference.
    snapshots:
        The frame's ordered snapshot history, shared by reference.
    index:
        Position of the bound snapshot in ``snapshots``.
    """

    def __init__(
        self,
        resources: Sequence[ResourceSnapshot],
        snapshots: Sequence[FrameSnapshot],
        index: int,
    ) -> None:
        self._snapshots = snapshots
        self._index = index
        self._resolver = ResourceResolver(resources)
        self.snapshot_name = snapshots[index].snapshot_name

    @property
    def index(self) -> int:
        return self._index

    def snapshot(self) -> FrameSnapshot:
        return self._snapshots[self._index]

    def viewport(self) -> Viewport | None:
        return self.snapshot().viewport

    def resource_by_url(self, url: str) -> ResourceSnapshot | None:
        """Resolve ``url`` as seen by the bound snapshot."""
        return self._resolver.resource_by_url(self.snapshot(), url)

    def render(self) -> RenderedSnapshot:
        """Reconstruct the bound snapshot's HTML document.

        An empty root yields an empty ``html`` string; otherwise the doctype
        (if recorded) is prepended and the bootstrap epilogue appended.
        """
        snapshot = self.snapshot()
        html = self._render_child(snapshot.flat().root, self._index, _RenderState())
        if html:
            if snapshot.doctype:
                html = f"<!DOCTYPE {snapshot.doctype}>" + html
            html += snapshot_epilogue(self.snapshot_name)
        return RenderedSnapshot(
            html=html,
            page_id=snapshot.page_id,
            frame_id=snapshot.frame_id,
            index=self._index,
        )

    # ------------------------------------------------------------------------

    def _render_child(self, child: Child, at_index: int, state: _RenderState) -> str:
        if child is None:
            return ""
        if isinstance(child, BackRef):
            target = at_index - child.delta
            if target < 0 or target > at_index:
                return ""
            flat = self._snapshots[target].flat()
            if child.index < 0 or child.index >= len(flat):
                return ""
            return self._render_node(target, child.index, state)
        return self._render_node(at_index, child, state)

    def _render_node(self, at_index: int, position: int, state: _RenderState) -> str:
        snapshot = self._snapshots[at_index]
        node = snapshot.flat().nodes[position]
        if isinstance(node, str):
            return escape_text(node)

        memo = snapshot.render_memo
        cached = memo.get(position)
        if cached is not None:
            return cached
        key = (at_index, position)
        if key in state.active:
            state.cuts += 1
            return ""
        state.active.add(key)
        cuts = state.cuts

        parts = ["<", node.tag]
        for name, value in node.attrs:
            parts.extend((" ", name, '="', escape_attribute(value), '"'))
        parts.append(">")
        for child in node.children:
            parts.append(self._render_child(child, at_index, state))
        if node.tag.upper() not in VOID_ELEMENTS:
            parts.extend(("</", node.tag, ">"))

        state.active.discard(key)
        rendered = "".join(parts)
        # A subtree cut short by the cycle guard depends on where rendering began.
        if state.cuts == cuts:
            memo[position] = rendered
        return rendered


__all__ = [
    "RenderedSnapshot",
    "SnapshotRenderer",
    "VOID_ELEMENTS",
    "escape_attribute",
    "escape_text",
]
