"""Compact DOM node trees and their flattened arena form.

Snapshots store the DOM as nested JSON arrays:

- ``"text"``                          a text node,
- ``[tag, {attr: value}, *children]`` an element,
- ``[[frame_delta, flat_index]]``     a back-reference to node ``flat_index``
  of the snapshot ``frame_delta`` positions earlier in the same frame.

Back-references index into the *pre-order* flattening of the referenced
snapshot: every text and element node takes the next position before its
children are visited, back-references take no position. :func:`flatten_tree`
produces that flattening as an immutable arena; element children are stored
as arena positions, so a rendered string can be memoized per position instead
of per Python object.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, TypeAlias, cast


@dataclass(frozen=True, slots=True)
class BackRef:
    """Reference to node ``index`` of the snapshot ``delta`` steps back."""

    delta: int
    index: int


# An arena position in the same snapshot, a back-reference, or None for a
# node shape the renderer cannot interpret (rendered as empty).
Child: TypeAlias = int | BackRef | None


@dataclass(frozen=True, slots=True)
class Element:
    tag: str
    attrs: tuple[tuple[str, str], ...]
    children: tuple[Child, ...]


ArenaNode: TypeAlias = str | Element


@dataclass(frozen=True, slots=True)
class FlatTree:
    """Pre-order arena of one snapshot plus how to reach its root."""

    nodes: tuple[ArenaNode, ...]
    root: Child

    def __len__(self) -> int:
        return len(self.nodes)


def _as_back_ref(head: Any) -> BackRef | None:
    if not isinstance(head, list) or len(head) < 2:
        return None
    delta, index = head[0], head[1]
    for value in (delta, index):
        if not isinstance(value, int) or isinstance(value, bool):
            return None
    return BackRef(delta=delta, index=index)


def _attr_pairs(raw: Any) -> tuple[tuple[str, str], ...]:
    if not isinstance(raw, dict):
        return ()
    return tuple((str(name), str(value)) for name, value in raw.items())


def flatten_tree(html: Any) -> FlatTree:
    """Flatten a compact node tree into a pre-order arena.

    The walk is deterministic: flattening the same tree twice yields equal
    arenas, and position ``0`` is always the root when the root is a text or
    element node.
    """
    nodes: list[ArenaNode | None] = []

    def visit(node: Any) -> Child:
        if isinstance(node, str):
            nodes.append(node)
            return len(nodes) - 1
        if not isinstance(node, list) or not node:
            return None
        head = node[0]
        if isinstance(head, str):
            position = len(nodes)
            nodes.append(None)  # reserved so the element precedes its subtree
            children = tuple(visit(child) for child in node[2:])
            attrs = _attr_pairs(node[1]) if len(node) > 1 else ()
            nodes[position] = Element(tag=head, attrs=attrs, children=children)
            return position
        return _as_back_ref(head)

    root = visit(html)
    return FlatTree(nodes=tuple(cast(list[ArenaNode], nodes)), root=root)


__all__ = ["ArenaNode", "BackRef", "Child", "Element", "FlatTree", "flatten_tree"]
