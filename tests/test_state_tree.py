from __future__ import annotations

import pytest

from soilwatch._transport import SseDecoder
from soilwatch.exceptions import SoilwatchDataShapeError
from soilwatch.state.events import StreamEvent, StreamEventType, decode_stream_event
from soilwatch.state.tree import SnapshotTree


def _put(path: str, data: object) -> StreamEvent:
    return StreamEvent(type=StreamEventType.PUT, path=path, data=data)


def test_root_put_replaces_tree() -> None:
    tree = SnapshotTree()
    tree.apply(_put("/", {"a": {"b": 1}}))
    tree.apply(_put("/", {"c": 2}))

    assert tree.snapshot() == {"c": 2}


def test_nested_put_creates_parents() -> None:
    tree = SnapshotTree()

    tree.put("/farmer1/Farm/Nodes/N1/Coordinates", {"X": 1, "Y": 2})

    assert tree.get("farmer1/Farm/Nodes/N1") == {"Coordinates": {"X": 1, "Y": 2}}


def test_null_put_deletes_and_prunes_empty_parents() -> None:
    tree = SnapshotTree()
    tree.put("/", {"farmer1": {"Farm": {"Nodes": {"N1": {"Coordinates": {"X": 1}}}}}, "farmer2": {"x": 1}})

    tree.put("/farmer1/Farm/Nodes/N1/Coordinates/X", None)

    assert tree.snapshot() == {"farmer2": {"x": 1}}


def test_patch_merges_children_only() -> None:
    tree = SnapshotTree()
    tree.put("/", {"n": {"a": 1, "b": 2}})

    tree.apply(StreamEvent(type=StreamEventType.PATCH, path="/n", data={"b": 3, "c": 4, "a": None}))

    assert tree.snapshot() == {"n": {"b": 3, "c": 4}}


def test_put_preserves_packet_insertion_order() -> None:
    tree = SnapshotTree()
    tree.put("/Packets", {"-k1": {"ph": 6}})

    tree.put("/Packets/-k2", {"ph": 7})

    assert list(tree.get("/Packets")) == ["-k1", "-k2"]


def test_snapshot_is_detached_from_tree() -> None:
    tree = SnapshotTree()
    tree.put("/", {"a": {"b": 1}})

    copy = tree.snapshot()
    copy["a"]["b"] = 99

    assert tree.get("/a/b") == 1


def test_keep_alive_does_not_mutate() -> None:
    tree = SnapshotTree()

    assert tree.apply(StreamEvent(type=StreamEventType.KEEP_ALIVE)) is False
    assert tree.snapshot() is None


def test_decode_sse_block() -> None:
    lines = [
        "event: put",
        'data: {"path": "/", "data": {"farmer1": {"Farm": {}}}}',
        "",
        ": comment",
        "event: keep-alive",
        "data: null",
        "",
        "event: patch",
        'data: {"path": "/farmer1", "data": {"Profile": {"a": 1}}}',
        "",
    ]

    decoder = SseDecoder()
    events = [event for event in map(decoder.feed, lines) if event is not None]

    assert [event.type for event in events] == [
        StreamEventType.PUT,
        StreamEventType.KEEP_ALIVE,
        StreamEventType.PATCH,
    ]
    assert events[0].data == {"farmer1": {"Farm": {}}}
    assert events[2].path == "/farmer1"


def test_cancel_event_is_terminal() -> None:
    decoder = SseDecoder()
    decoder.feed("event: cancel")
    decoder.feed('data: "Permission denied"')

    event = decoder.feed("")

    assert event is not None
    assert event.terminal is True
    assert event.data == "Permission denied"


def test_unknown_event_is_ignored() -> None:
    assert decode_stream_event("rules_changed", "{}") is None


def test_malformed_put_frame_raises() -> None:
    with pytest.raises(SoilwatchDataShapeError):
        decode_stream_event("put", "{not json")
    with pytest.raises(SoilwatchDataShapeError):
        decode_stream_event("patch", '{"data": {}}')
