from __future__ import annotations

import logging
from typing import Any

from soilwatch.models.marker import Marker
from soilwatch.models.parameters import SoilParameter
from soilwatch.reconcile import MarkerReconciler


def _reconciler(surface: Any) -> tuple[MarkerReconciler, dict[str, Marker]]:
    markers: dict[str, Marker] = {}
    return MarkerReconciler(surface, markers), markers


def test_marker_keys_are_exactly_nodes_with_coordinates(surface, users) -> None:
    reconciler, markers = _reconciler(surface)

    reconciler.reconcile(users)

    assert set(markers) == {"farmer1_NodeA", "farmer2_NodeC"}
    assert {marker.marker_id for marker in surface.rendered.values()} == set(markers)


def test_node_without_coordinates_is_skipped_and_logged(surface, users, caplog) -> None:
    reconciler, markers = _reconciler(surface)

    with caplog.at_level(logging.WARNING, logger="soilwatch.reconcile"):
        reconciler.reconcile(users)

    assert "farmer1_NodeB" not in markers
    assert "NodeB (farmer1) skipped: missing coordinates" in caplog.text


def test_partial_coordinates_count_as_missing(surface) -> None:
    reconciler, markers = _reconciler(surface)

    reconciler.reconcile({"t": {"Farm": {"Nodes": {"N": {"Coordinates": {"X": 1}}}}}})

    assert markers == {}


def test_marker_uses_latest_packet(surface, users) -> None:
    reconciler, markers = _reconciler(surface)

    reconciler.reconcile(users)

    marker = markers["farmer1_NodeA"]
    assert marker.packet is not None and marker.packet.key == "-p2"
    assert marker.color == "red"
    assert (marker.coordinates.x, marker.coordinates.y) == (10.5, 20.25)
    assert marker.panel.title == "NodeA (farmer1)"
    assert [row.parameter for row in marker.panel.rows] == list(SoilParameter)
    ph = marker.panel.row(SoilParameter.PH)
    assert ph is not None
    assert ph.value == 5.0
    assert ph.bar_color == "red"
    assert ph.affordance.disabled is False


def test_in_range_moisture_row_is_green_and_disabled(surface, users) -> None:
    reconciler, markers = _reconciler(surface)

    reconciler.reconcile(users)

    row = markers["farmer1_NodeA"].panel.row(SoilParameter.MOISTURE)
    assert row is not None
    assert row.evaluation.in_range is True
    assert row.bar_color == "darkgreen"
    assert row.bar_width == 40.0
    assert row.affordance.disabled is True


def test_node_without_packets_is_grey_with_notice(surface, users) -> None:
    reconciler, markers = _reconciler(surface)

    reconciler.reconcile(users)

    marker = markers["farmer2_NodeC"]
    assert marker.color == "grey"
    assert marker.packet is None
    assert marker.panel.notice == "No data available yet."
    assert marker.panel.rows == []


def test_acknowledged_packet_keeps_affordance_disabled_while_out_of_range(surface, make_packet) -> None:
    reconciler, markers = _reconciler(surface)
    packet = make_packet(ph=5.0, Disabled_pH_done=1_760_000_000_000)

    reconciler.reconcile({"t": {"Farm": {"Nodes": {"N": {"Coordinates": {"X": 1, "Y": 2}, "Packets": {"k1": packet}}}}}})

    row = markers["t_N"].panel.row(SoilParameter.PH)
    assert row is not None
    assert row.evaluation.in_range is False
    assert row.affordance.disabled is True


def test_newer_packet_without_marker_reenables_affordance(surface, make_packet) -> None:
    reconciler, markers = _reconciler(surface)
    packets = {
        "k1": make_packet(ph=5.0, Disabled_pH_done=1_760_000_000_000),
        "k2": make_packet(ph=5.1),
    }

    reconciler.reconcile({"t": {"Farm": {"Nodes": {"N": {"Coordinates": {"X": 1, "Y": 2}, "Packets": packets}}}}})

    assert markers["t_N"].panel.row(SoilParameter.PH).affordance.disabled is False


def test_reconcile_replaces_every_marker(surface, users) -> None:
    reconciler, markers = _reconciler(surface)
    reconciler.reconcile(users)
    first_handles = {marker.handle for marker in markers.values()}

    del users["farmer2"]
    reconciler.reconcile(users)

    assert set(surface.removed) == first_handles
    assert set(markers) == {"farmer1_NodeA"}
    assert markers["farmer1_NodeA"].handle not in first_handles
    assert len(surface.rendered) == 1


def test_empty_snapshot_clears_markers(surface, users) -> None:
    reconciler, markers = _reconciler(surface)
    reconciler.reconcile(users)

    reconciler.reconcile(None)

    assert markers == {}
    assert surface.rendered == {}


def test_malformed_node_is_skipped_without_aborting(surface, users, caplog) -> None:
    reconciler, markers = _reconciler(surface)
    users["farmer2"]["Farm"]["Nodes"]["Broken"] = "not-a-node"

    with caplog.at_level(logging.WARNING, logger="soilwatch.reconcile"):
        reconciler.reconcile(users)

    assert set(markers) == {"farmer1_NodeA", "farmer2_NodeC"}
    assert "Broken (farmer2) skipped" in caplog.text


def test_packets_delivered_as_array(surface, make_packet) -> None:
    reconciler, markers = _reconciler(surface)

    reconciler.reconcile(
        {"t": {"Farm": {"Nodes": {"N": {"Coordinates": {"X": "4.5", "Y": "1"}, "Packets": [None, make_packet(), make_packet(ph=9)]}}}}}
    )

    marker = markers["t_N"]
    assert marker.packet is not None and marker.packet.key == "2"
    assert marker.panel.row(SoilParameter.PH).evaluation.in_range is False
    assert marker.coordinates.x == 4.5


def test_extra_rows_are_collapsed_until_toggled(surface, users) -> None:
    reconciler, markers = _reconciler(surface)
    reconciler.reconcile(users)
    panel = markers["farmer1_NodeA"].panel

    assert [row.parameter for row in panel.visible_rows()] == list(SoilParameter)[:4]
    assert panel.toggle_extras() is True
    assert len(panel.visible_rows()) == len(SoilParameter)
    assert panel.toggle_extras() is False
