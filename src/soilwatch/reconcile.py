"""Marker reconciliation.

Every accepted snapshot fully replaces the rendered marker set: all
markers are removed, then one marker is built per node that has
coordinates.  Snapshots are whole-tree and infrequent, so correctness
(no stale or duplicate pins) wins over render cost.
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError

from soilwatch._constants import (
    BAR_COLOR_IN_RANGE,
    BAR_COLOR_OUT_OF_RANGE,
    NO_DATA_TEXT,
    VISIBLE_ROWS,
)
from soilwatch.advisory import acknowledgment_disabled
from soilwatch.evaluation import RangeEvaluator
from soilwatch.exceptions import SoilwatchDataShapeError
from soilwatch.models.marker import AckAffordance, DetailPanel, Marker, ParameterRow
from soilwatch.models.parameters import SoilParameter
from soilwatch.models.telemetry import Node, Packet, iter_tenant_nodes
from soilwatch.surface import MapSurface

_logger = logging.getLogger(__name__)


class MarkerReconciler:
    """Rebuilds the marker set from a ``Users`` snapshot.

    ``markers`` is owned by the controller and mutated in place so every
    holder of the mapping sees the current set.
    """

    def __init__(
        self,
        surface: MapSurface,
        markers: dict[str, Marker],
        *,
        evaluator: RangeEvaluator | None = None,
    ) -> None:
        self._surface = surface
        self._markers = markers
        self._evaluator = evaluator or RangeEvaluator()
        self._nodes: dict[str, Node] = {}

    @property
    def evaluator(self) -> RangeEvaluator:
        return self._evaluator

    def node(self, marker_id: str) -> Node | None:
        """Parsed node behind a rendered marker."""
        return self._nodes.get(marker_id)

    def reconcile(self, users: Any) -> dict[str, Marker]:
        self.clear()

        skipped = 0
        for tenant, name, raw in iter_tenant_nodes(users):
            try:
                node = Node.from_raw(tenant, name, raw)
            except (SoilwatchDataShapeError, ValidationError) as exc:
                _logger.warning("%s (%s) skipped: %s", name, tenant, exc)
                skipped += 1
                continue

            if node.coordinates is None:
                _logger.warning("%s (%s) skipped: missing coordinates", name, tenant)
                skipped += 1
                continue

            if not node.packets:
                _logger.debug("%s (%s) has no packets yet", name, tenant)

            marker = self.build_marker(node)
            marker.handle = self._surface.render_marker(marker)
            self._markers[marker.marker_id] = marker
            self._nodes[marker.marker_id] = node

        _logger.debug("Reconciled markers=%d skipped=%d", len(self._markers), skipped)
        return self._markers

    def clear(self) -> None:
        """Remove every rendered marker."""
        for marker in self._markers.values():
            self._surface.remove_marker(marker.handle)
        self._markers.clear()
        self._nodes.clear()

    def build_marker(self, node: Node) -> Marker:
        if node.coordinates is None:
            raise SoilwatchDataShapeError("node has no coordinates", tenant=node.tenant, node=node.name)

        packet = node.latest_packet
        panel = DetailPanel(title=f"{node.name} ({node.tenant})")
        if packet is None:
            panel.notice = NO_DATA_TEXT
        else:
            panel.rows = [self._build_row(index, parameter, packet) for index, parameter in enumerate(SoilParameter)]

        return Marker(
            marker_id=node.marker_id,
            tenant=node.tenant,
            node=node.name,
            coordinates=node.coordinates,
            panel=panel,
            packet=packet,
        )

    def _build_row(self, index: int, parameter: SoilParameter, packet: Packet) -> ParameterRow:
        evaluation = self._evaluator.evaluate(parameter, packet.value(parameter))
        return ParameterRow(
            parameter=parameter,
            value=evaluation.value,
            evaluation=evaluation,
            bar_color=BAR_COLOR_IN_RANGE if evaluation.in_range else BAR_COLOR_OUT_OF_RANGE,
            affordance=AckAffordance(disabled=acknowledgment_disabled(evaluation, packet, parameter)),
            extra=index >= VISIBLE_ROWS,
        )
