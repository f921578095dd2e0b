"""Map surface interface.

The map widget itself lives outside this library.  Anything that can
place pins, float a content tree next to them and report viewport moves
can drive the engine by implementing :class:`MapSurface`.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Protocol

from soilwatch.models.marker import AdvisoryContent, Marker

#: Viewport events that trigger advisory repositioning.
VIEWPORT_EVENTS: frozenset[str] = frozenset({"move", "zoom"})


@dataclass(frozen=True, slots=True)
class ScreenRect:
    """Bounding box in page coordinates (pixels)."""

    left: float
    top: float
    width: float
    height: float

    @property
    def bottom(self) -> float:
        return self.top + self.height

    @property
    def right(self) -> float:
        return self.left + self.width


@dataclass(frozen=True, slots=True)
class ScreenSize:
    width: float
    height: float


@dataclass(frozen=True, slots=True)
class ScreenPosition:
    top: float
    left: float


class MapSurface(Protocol):
    """Structural interface of the map widget.

    Test doubles only need to implement these methods; no base class is
    required.
    """

    def render_marker(self, marker: Marker) -> Any:
        """Place *marker* on the map and return an opaque handle."""
        ...

    def remove_marker(self, handle: Any) -> None: ...

    def project_to_screen(self, marker_id: str) -> ScreenRect | None:
        """Screen box of the marker's detail panel, or ``None`` if not shown."""
        ...

    def on_viewport_change(self, callback: Callable[[str], None]) -> Callable[[], None]:
        """Register *callback* for viewport events; returns an unregister function."""
        ...

    def show_advisory(self, content: AdvisoryContent) -> ScreenSize:
        """Show the advisory box and return its rendered size."""
        ...

    def place_advisory(self, position: ScreenPosition) -> None: ...

    def hide_advisory(self) -> None: ...
