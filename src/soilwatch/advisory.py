"""Advisory lifecycle and the snapshot suppression gate.

At most one advisory is open at any time.  Opening the pair that is
already open closes it; opening any other pair replaces it.  While an
acknowledgment write is settling, the :class:`UpdateGate` keeps incoming
snapshots away from the reconciler so the write's own echo cannot rebuild
the markers mid-transaction.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING

from soilwatch._constants import ACKNOWLEDGE_LABEL, ADVISORY_NOTE, MESSAGES, acknowledgment_path
from soilwatch.evaluation import Direction, RangeEvaluation
from soilwatch.exceptions import SoilwatchAdvisoryError
from soilwatch.models.marker import AdvisoryContent, Marker
from soilwatch.models.parameters import ParameterRange, SoilParameter
from soilwatch.models.telemetry import Node, Packet
from soilwatch.surface import MapSurface, ScreenPosition, ScreenRect, ScreenSize

if TYPE_CHECKING:
    from soilwatch.store import TelemetryStore

_logger = logging.getLogger(__name__)


def acknowledgment_disabled(evaluation: RangeEvaluation, packet: Packet, parameter: SoilParameter) -> bool:
    """Whether the acknowledgment affordance is disabled for this packet.

    Sticky per packet: an in-range value or an existing
    ``Disabled_<Param>_done`` marker disables it until a newer packet arrives.
    """
    return evaluation.in_range or packet.is_acknowledged(parameter)


def advisory_message(parameter: SoilParameter, direction: Direction) -> str:
    return MESSAGES[parameter.value][direction.value]


def compute_position(
    anchor: ScreenRect,
    size: ScreenSize,
    *,
    scroll: tuple[float, float] = (0.0, 0.0),
    gap: float = 8.0,
) -> ScreenPosition:
    """Centre the advisory horizontally under *anchor*, *gap* pixels below it."""
    scroll_x, scroll_y = scroll
    return ScreenPosition(
        top=anchor.bottom + scroll_y + gap,
        left=anchor.left + scroll_x + anchor.width / 2 - size.width / 2,
    )


class UpdateGate:
    """Process-wide suppress-update flag with a release cooldown.

    This is a heuristic window, not a lock: once the cooldown has elapsed
    snapshots flow again even if the store has not caught up yet.
    """

    def __init__(self, *, cooldown: float = 2.0) -> None:
        self._cooldown = cooldown
        self._held = False
        self._timer: asyncio.TimerHandle | None = None

    @property
    def suppressed(self) -> bool:
        return self._held or self._timer is not None

    @property
    def held(self) -> bool:
        """Whether a write is currently in flight (cooldown excluded)."""
        return self._held

    def hold(self) -> None:
        self._cancel_timer()
        self._held = True

    def release(self, *, cooldown: bool = True) -> None:
        """End the hold, optionally keeping snapshots suppressed for the cooldown."""
        self._held = False
        self._cancel_timer()
        if cooldown and self._cooldown > 0:
            loop = asyncio.get_running_loop()
            self._timer = loop.call_later(self._cooldown, self._expire)

    def close(self) -> None:
        self._held = False
        self._cancel_timer()

    def _expire(self) -> None:
        self._timer = None
        _logger.debug("Snapshot suppression cooldown elapsed")

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None


@dataclass(frozen=True, slots=True)
class AdvisoryClosed:
    is_open = False


@dataclass(frozen=True, slots=True)
class AdvisoryOpen:
    marker_id: str
    parameter: SoilParameter
    direction: Direction
    message: str
    node: Node | None = None
    is_open = True


AdvisoryState = AdvisoryClosed | AdvisoryOpen

CLOSED = AdvisoryClosed()


class AdvisoryStateMachine:
    """Single advisory shared by every marker.

    Parameters
    ----------
    store : TelemetryStore
        Target of acknowledgment writes.
    surface : MapSurface
        Where the advisory is shown and positioned.
    gate : UpdateGate
        Suppression flag owned by the controller.
    markers : Mapping[str, Marker]
        Live marker set owned by the controller; used to disable the
        affordance of the marker currently rendered for an acknowledged pair.
    """

    def __init__(
        self,
        *,
        store: TelemetryStore,
        surface: MapSurface,
        gate: UpdateGate,
        markers: Mapping[str, Marker],
    ) -> None:
        self._store = store
        self._surface = surface
        self._gate = gate
        self._markers = markers
        self._state: AdvisoryState = CLOSED
        self._size: ScreenSize | None = None

    @property
    def state(self) -> AdvisoryState:
        return self._state

    @property
    def is_open(self) -> bool:
        return isinstance(self._state, AdvisoryOpen)

    def is_active(self, marker_id: str, parameter: SoilParameter) -> bool:
        state = self._state
        return isinstance(state, AdvisoryOpen) and state.marker_id == marker_id and state.parameter == parameter

    def request_open(
        self,
        marker_id: str,
        parameter: SoilParameter | str,
        value: float,
        param_range: ParameterRange,
        *,
        node: Node | None = None,
    ) -> AdvisoryState:
        """Open the advisory for a pair, or close it if that pair is already open."""
        parameter = SoilParameter(parameter)
        if self.is_active(marker_id, parameter):
            self.close()
            return self._state

        direction = Direction.LOW if value < param_range.minimum else Direction.HIGH
        message = advisory_message(parameter, direction)
        self._state = AdvisoryOpen(
            marker_id=marker_id,
            parameter=parameter,
            direction=direction,
            message=message,
            node=node,
        )
        self._size = self._surface.show_advisory(
            AdvisoryContent(message=message, note=ADVISORY_NOTE, acknowledge_label=ACKNOWLEDGE_LABEL)
        )
        _logger.debug("Advisory opened marker=%s parameter=%s direction=%s", marker_id, parameter, direction)
        self.reposition()
        return self._state

    def close(self) -> None:
        if not self.is_open:
            return
        self._surface.hide_advisory()
        self._state = CLOSED
        self._size = None

    def reposition(self) -> ScreenPosition | None:
        """Recompute the advisory position from the anchor panel; read-only on state."""
        state = self._state
        if not isinstance(state, AdvisoryOpen) or self._size is None:
            return None
        anchor = self._surface.project_to_screen(state.marker_id)
        if anchor is None:
            return None
        position = compute_position(anchor, self._size)
        self._surface.place_advisory(position)
        return position

    async def acknowledge(self, node: Node, parameter: SoilParameter | str) -> bool:
        """Record an acknowledgment on the node's latest packet.

        Returns ``True`` when the write succeeded.  Either way the advisory
        ends up closed; only a successful write disables the affordance.

        Raises
        ------
        SoilwatchAdvisoryError
            If the pair is not the open advisory, or another
            acknowledgment is still in flight.
        """
        parameter = SoilParameter(parameter)
        if not self.is_active(node.marker_id, parameter):
            raise SoilwatchAdvisoryError(f"No open advisory for {node.marker_id}/{parameter}")
        if self._gate.held:
            raise SoilwatchAdvisoryError("An acknowledgment write is already in flight")

        packet = node.latest_packet
        if packet is None:
            _logger.warning("Cannot acknowledge %s/%s: node has no packets", node.marker_id, parameter)
            self.close()
            return False

        path = acknowledgment_path(node.tenant, node.name, packet.key, parameter.ack_key)
        self._gate.hold()
        try:
            await self._store.write(path, int(time.time() * 1000))
        except asyncio.CancelledError:
            _logger.warning("Acknowledgment write cancelled path=%s", path)
            self._gate.release(cooldown=False)
            self.close()
            raise
        except Exception:
            _logger.error("Acknowledgment write failed path=%s", path, exc_info=True)
            self._gate.release(cooldown=False)
            self.close()
            return False

        # Only the marker still showing the acknowledged packet is disabled;
        # a marker rebuilt from a newer packet keeps its own affordance.
        marker = self._markers.get(node.marker_id)
        if marker is not None and marker.packet is not None and marker.packet.key == packet.key:
            marker.disable_acknowledgment(parameter)
        self.close()
        self._gate.release(cooldown=True)
        _logger.debug("Acknowledged %s/%s on packet=%s", node.marker_id, parameter, packet.key)
        return True
