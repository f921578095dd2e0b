"""Local mirror of a streamed store subtree.

This is the only component allowed to apply stream events.  Semantics
follow the Realtime Database: ``put`` replaces the value at a path
(``null`` deletes it), ``patch`` puts each child of the payload, and a
node left without children disappears.
"""

from __future__ import annotations

import copy
from typing import Any

from soilwatch.state.events import StreamEvent, StreamEventType


def _segments(path: str) -> list[str]:
    return [segment for segment in path.strip("/").split("/") if segment]


def _is_empty(value: Any) -> bool:
    return value is None or value == {} or value == []


class SnapshotTree:
    """In-memory tree rebuilt from ``put``/``patch`` events."""

    def __init__(self) -> None:
        self._root: Any = None

    def apply(self, event: StreamEvent) -> bool:
        """Apply a stream event; returns ``True`` if the tree may have changed."""
        if event.type == StreamEventType.PUT:
            self.put(event.path, event.data)
            return True
        if event.type == StreamEventType.PATCH:
            self.patch(event.path, event.data)
            return True
        return False

    def put(self, path: str, data: Any) -> None:
        segments = _segments(path)
        value = copy.deepcopy(data)
        if not segments:
            self._root = None if _is_empty(value) else value
            return
        self._root = self._set(self._root, segments, value)

    def patch(self, path: str, data: Any) -> None:
        if not isinstance(data, dict):
            self.put(path, data)
            return
        base = path.rstrip("/")
        for key, value in data.items():
            self.put(f"{base}/{key}", value)

    def get(self, path: str = "/") -> Any:
        node = self._root
        for segment in _segments(path):
            node = _child(node, segment)
            if node is None:
                return None
        return copy.deepcopy(node)

    def snapshot(self) -> Any:
        """Deep copy of the whole tree (``None`` when empty)."""
        return copy.deepcopy(self._root)

    def _set(self, node: Any, segments: list[str], value: Any) -> Any:
        head, rest = segments[0], segments[1:]
        container = _as_dict(node)
        if rest:
            child = self._set(container.get(head), rest, value)
        else:
            child = value
        if _is_empty(child):
            container.pop(head, None)
        else:
            container[head] = child
        return container or None


def _child(node: Any, segment: str) -> Any:
    if isinstance(node, dict):
        return node.get(segment)
    if isinstance(node, list) and segment.isdigit():
        index = int(segment)
        return node[index] if index < len(node) else None
    return None


def _as_dict(node: Any) -> dict[str, Any]:
    if isinstance(node, dict):
        return node
    if isinstance(node, list):
        # Arrays are addressed by index; once written into, keep them as objects.
        return {str(index): item for index, item in enumerate(node) if item is not None}
    return {}
