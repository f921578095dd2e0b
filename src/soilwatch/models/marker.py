"""Rendered marker and detail-panel content.

These are the content trees handed to the map surface.  They are plain
mutable dataclasses: the acknowledgment affordance and the panel's
expanded state change in place after rendering.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from soilwatch._constants import MARKER_COLOR_DATA, MARKER_COLOR_NO_DATA
from soilwatch.models.parameters import SoilParameter
from soilwatch.models.telemetry import Coordinates, Packet

if TYPE_CHECKING:
    from soilwatch.evaluation import RangeEvaluation


@dataclass(slots=True)
class AckAffordance:
    """The per-row button that opens an advisory.

    Once disabled for a packet it stays disabled; only a rebuild from a
    newer packet can produce an enabled affordance again.
    """

    disabled: bool = False

    def disable(self) -> None:
        self.disabled = True


@dataclass(slots=True)
class ParameterRow:
    parameter: SoilParameter
    value: float
    evaluation: RangeEvaluation
    bar_color: str
    affordance: AckAffordance
    extra: bool = False

    @property
    def bar_width(self) -> float:
        """Bar fill in percent, already clamped to ``[0, 100]``."""
        return self.evaluation.percent


@dataclass(slots=True)
class DetailPanel:
    title: str
    rows: list[ParameterRow] = field(default_factory=list)
    notice: str | None = None
    expanded: bool = False

    def row(self, parameter: SoilParameter) -> ParameterRow | None:
        for row in self.rows:
            if row.parameter == parameter:
                return row
        return None

    def visible_rows(self) -> list[ParameterRow]:
        if self.expanded:
            return list(self.rows)
        return [row for row in self.rows if not row.extra]

    def toggle_extras(self) -> bool:
        """Show or hide the collapsed rows; returns the new expanded state."""
        self.expanded = not self.expanded
        return self.expanded


@dataclass(slots=True)
class Marker:
    """A node rendered on the map, keyed by ``<tenant>_<node>``."""

    marker_id: str
    tenant: str
    node: str
    coordinates: Coordinates
    panel: DetailPanel
    packet: Packet | None = None
    handle: Any = None

    @property
    def color(self) -> str:
        return MARKER_COLOR_DATA if self.packet is not None else MARKER_COLOR_NO_DATA

    def disable_acknowledgment(self, parameter: SoilParameter) -> bool:
        """Disable the affordance for *parameter*; returns ``False`` if there is no such row."""
        row = self.panel.row(parameter)
        if row is None:
            return False
        row.affordance.disable()
        return True


@dataclass(frozen=True, slots=True)
class AdvisoryContent:
    """What the map surface shows for an open advisory."""

    message: str
    note: str
    acknowledge_label: str
